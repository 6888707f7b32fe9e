"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Result wrapper used where a failure is an expected outcome
  (webhook handlers, background tasks) rather than an error for the caller
- BaseService: Base class with logging and transaction helpers

Service Layer Philosophy:
    Views handle HTTP concerns, models hold data and state transitions,
    services own the business rules and transaction boundaries.

Pattern Comparison:
    - ServiceResult: Expected outcomes a worker reports back (handler failed,
      event ignored)
    - Exceptions: Rejected domain operations (NotFound, BadRequest, Forbidden),
      which must leave every entity untouched

Usage:
    from core.services import BaseService, ServiceResult

    class BookingService(BaseService):
        @classmethod
        def start(cls, booking_id, vendor):
            with cls.atomic():
                booking = cls._lock_booking(booking_id)
                ...
            cls.get_logger().info("Booking started", extra={...})
            return booking
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code

    Usage:
        return ServiceResult.success(payment)
        return ServiceResult.failure("Payment not found", "PAYMENT_NOT_FOUND")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code
        """
        return cls(success=False, error=error, error_code=error_code)

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own error_code; anything else falls
        back to the exception class name.
        """
        return cls(
            success=False,
            error=getattr(exc, "message", str(exc)),
            error_code=error_code
            or getattr(exc, "error_code", None)
            or exc.__class__.__name__.upper(),
        )

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Design Notes:
        - Use @classmethod (no instance state)
        - Raise core.exceptions for rejected operations
        - Wrap each domain event in a single cls.atomic() block
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        If any operation in the block raises, every write in the block is
        rolled back, so a rejected operation never leaves partial state.
        Nested calls become savepoints.
        """
        with transaction.atomic():
            yield

    @staticmethod
    def on_commit(func) -> None:
        """
        Run func after the current transaction commits.

        Used to emit domain events only once the state they describe is
        durable. Outside a transaction, func runs immediately.
        """
        transaction.on_commit(func)
