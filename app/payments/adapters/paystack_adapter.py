"""
Paystack API adapter for payment and payout operations.

This module provides the PaystackAdapter class which encapsulates all
Paystack HTTP calls. Services never talk to Paystack directly: every call
goes through this adapter for consistent timeouts, error translation and
logging.

Features:
- Configurable timeout on every request
- Translation of HTTP/transport failures into PaystackError subclasses
  with an is_retryable flag
- Structured logging with timing
- Webhook signature verification (HMAC-SHA512 over the raw body)

Amounts are whole currency units in our models; Paystack wants the minor
unit (kobo), so the adapter multiplies by 100 on the way out and divides
on the way back.

Configuration (via settings):
- PAYSTACK_SECRET_KEY: API secret key, also the webhook signing key
- PAYSTACK_BASE_URL: API root (default: https://api.paystack.co)
- PAYSTACK_API_TIMEOUT_SECONDS: Request timeout (default: 10)
- PAYSTACK_CALLBACK_URL: Where checkout redirects after payment

Usage:
    from payments.adapters import InitializeTransactionParams, PaystackAdapter

    result = PaystackAdapter.initialize_transaction(
        InitializeTransactionParams(
            email=client.email,
            amount=6000,
            reference="PAY-1718000000000-9f2c1a7b",
            metadata={"booking_id": str(booking.id)},
        )
    )
    result.authorization_url
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import requests
from django.conf import settings

from payments.exceptions import (
    PaystackAPIUnavailableError,
    PaystackAuthenticationError,
    PaystackError,
    PaystackInvalidRequestError,
    PaystackRateLimitError,
    PaystackTimeoutError,
)

KOBO_PER_UNIT = 100


# =============================================================================
# Bank Codes
# =============================================================================

DEFAULT_BANK_CODE = "044"

# Lower-cased bank name fragments to Paystack (NIBSS) bank codes
BANK_CODES: dict[str, str] = {
    "access": "044",
    "gtbank": "058",
    "guaranty trust": "058",
    "first bank": "011",
    "uba": "033",
    "united bank for africa": "033",
    "zenith": "057",
    "fidelity": "070",
    "fcmb": "214",
    "first city monument": "214",
    "sterling": "232",
    "union bank": "032",
    "wema": "035",
    "polaris": "076",
    "stanbic": "221",
    "standard chartered": "068",
    "keystone": "082",
    "unity": "215",
    "jaiz": "301",
    "heritage": "030",
    "ecobank": "050",
    "kuda": "50211",
    "opay": "999992",
    "palmpay": "999991",
}


def get_bank_code(bank_name: str) -> str:
    """
    Look up the Paystack bank code for a bank name.

    Matching is case-insensitive on the name fragments in BANK_CODES.
    Unknown banks fall back to Access Bank (044).
    """
    normalized = (bank_name or "").strip().lower()
    for fragment, code in BANK_CODES.items():
        if fragment in normalized:
            return code
    return DEFAULT_BANK_CODE


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class InitializeTransactionParams:
    """
    Parameters for starting a Paystack checkout.

    Attributes:
        email: Payer's email (Paystack requires one)
        amount: Whole currency units; sent as amount * 100
        reference: Our payment reference, echoed back in webhooks
        currency: ISO 4217 code (default: PLATFORM_CURRENCY)
        callback_url: Redirect after checkout (default: PAYSTACK_CALLBACK_URL)
        metadata: Echoed back by Paystack on verify and webhooks
    """

    email: str
    amount: int
    reference: str
    currency: str | None = None
    callback_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")
        if not self.reference:
            raise ValueError("reference is required")


@dataclass
class InitializeTransactionResult:
    authorization_url: str
    access_code: str
    reference: str
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class VerifyTransactionResult:
    """
    Outcome of a transaction verify call.

    Attributes:
        status: Paystack status ("success", "failed", "abandoned", ...)
        amount: Whole currency units (converted back from kobo)
        authorization_code: Reusable card authorization, if any
    """

    reference: str
    status: str
    amount: int
    currency: str
    authorization_code: str = ""
    gateway_response: str = ""
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def is_successful(self) -> bool:
        return self.status == "success"


@dataclass
class TransferRecipientParams:
    account_name: str
    account_number: str
    bank_code: str
    currency: str | None = None


@dataclass
class TransferParams:
    """
    Parameters for a payout transfer.

    reference doubles as Paystack's idempotency key for transfers, so a
    retried call with the same reference cannot pay twice.
    """

    amount: int
    recipient_code: str
    reference: str
    reason: str = ""
    currency: str | None = None

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("amount must be positive")


@dataclass
class TransferResult:
    transfer_code: str
    reference: str
    status: str
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Adapter
# =============================================================================


class PaystackAdapter:
    """
    Adapter for Paystack API operations.

    All methods are classmethods - no instance state is maintained.
    Thread-safe for use from Celery workers.

    Usage:
        result = PaystackAdapter.verify_transaction("PAY-...")
        recipient_code = PaystackAdapter.create_transfer_recipient(params)
        transfer = PaystackAdapter.initiate_transfer(params)
    """

    SIGNATURE_HEADER = "HTTP_X_PAYSTACK_SIGNATURE"

    # =========================================================================
    # Configuration
    # =========================================================================

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @staticmethod
    def _headers() -> dict[str, str]:
        return {
            "Authorization": f"Bearer {settings.PAYSTACK_SECRET_KEY}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def _url(path: str) -> str:
        return f"{settings.PAYSTACK_BASE_URL.rstrip('/')}/{path.lstrip('/')}"

    # =========================================================================
    # Core Operations
    # =========================================================================

    @classmethod
    def initialize_transaction(
        cls,
        params: InitializeTransactionParams,
    ) -> InitializeTransactionResult:
        """
        Start a checkout and return the redirect artifacts.

        Raises:
            PaystackError subclass on any failure; no Payment row should be
            written when this raises.
        """
        body = {
            "email": params.email,
            "amount": params.amount * KOBO_PER_UNIT,
            "reference": params.reference,
            "currency": params.currency or settings.PLATFORM_CURRENCY,
            "metadata": params.metadata,
        }
        callback_url = params.callback_url or settings.PAYSTACK_CALLBACK_URL
        if callback_url:
            body["callback_url"] = callback_url

        data = cls._request(
            "POST",
            "transaction/initialize",
            json=body,
            log_context={"operation": "initialize_transaction", "reference": params.reference},
        )
        return InitializeTransactionResult(
            authorization_url=data.get("authorization_url", ""),
            access_code=data.get("access_code", ""),
            reference=data.get("reference", params.reference),
            raw_response=data,
        )

    @classmethod
    def verify_transaction(cls, reference: str) -> VerifyTransactionResult:
        data = cls._request(
            "GET",
            f"transaction/verify/{reference}",
            log_context={"operation": "verify_transaction", "reference": reference},
        )
        authorization = data.get("authorization") or {}
        return VerifyTransactionResult(
            reference=data.get("reference", reference),
            status=data.get("status", ""),
            amount=int(data.get("amount") or 0) // KOBO_PER_UNIT,
            currency=data.get("currency", ""),
            authorization_code=authorization.get("authorization_code", ""),
            gateway_response=data.get("gateway_response", ""),
            raw_response=data,
        )

    @classmethod
    def create_transfer_recipient(cls, params: TransferRecipientParams) -> str:
        """Register a bank account as a transfer recipient. Returns recipient_code."""
        data = cls._request(
            "POST",
            "transferrecipient",
            json={
                "type": "nuban",
                "name": params.account_name,
                "account_number": params.account_number,
                "bank_code": params.bank_code,
                "currency": params.currency or settings.PLATFORM_CURRENCY,
            },
            log_context={"operation": "create_transfer_recipient", "bank_code": params.bank_code},
        )
        return data.get("recipient_code", "")

    @classmethod
    def initiate_transfer(cls, params: TransferParams) -> TransferResult:
        data = cls._request(
            "POST",
            "transfer",
            json={
                "source": "balance",
                "amount": params.amount * KOBO_PER_UNIT,
                "recipient": params.recipient_code,
                "reference": params.reference,
                "reason": params.reason,
                "currency": params.currency or settings.PLATFORM_CURRENCY,
            },
            log_context={"operation": "initiate_transfer", "reference": params.reference},
        )
        return TransferResult(
            transfer_code=data.get("transfer_code", ""),
            reference=data.get("reference", params.reference),
            status=data.get("status", ""),
            raw_response=data,
        )

    # =========================================================================
    # Webhooks
    # =========================================================================

    @staticmethod
    def compute_signature(payload: bytes, secret: str | None = None) -> str:
        key = (secret or settings.PAYSTACK_SECRET_KEY).encode("utf-8")
        return hmac.new(key, payload, hashlib.sha512).hexdigest()

    @classmethod
    def verify_webhook_signature(cls, payload: bytes, signature: str | None) -> bool:
        """Constant-time check of the X-Paystack-Signature header."""
        if not signature or not settings.PAYSTACK_SECRET_KEY:
            return False
        return hmac.compare_digest(cls.compute_signature(payload), signature)

    # =========================================================================
    # HTTP
    # =========================================================================

    @classmethod
    def _request(
        cls,
        method: str,
        path: str,
        log_context: dict[str, Any],
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Send one request and return the "data" member of the envelope.

        Paystack wraps every response as {"status": bool, "message": str,
        "data": {...}}; a false status is treated as a rejected request.
        """
        logger = cls.get_logger()
        start_time = time.time()
        logger.info("Starting Paystack operation", extra=log_context)

        try:
            response = requests.request(
                method,
                cls._url(path),
                headers=cls._headers(),
                json=json,
                timeout=settings.PAYSTACK_API_TIMEOUT_SECONDS,
            )
        except requests.exceptions.Timeout as e:
            logger.error("Paystack request timed out", extra=log_context, exc_info=True)
            raise PaystackTimeoutError(
                "Payment provider timed out. Please retry.",
                details={"error": str(e)},
            )
        except requests.exceptions.RequestException as e:
            logger.error("Connection error to Paystack", extra=log_context, exc_info=True)
            raise PaystackAPIUnavailableError(
                "Payment provider is unavailable. Please retry.",
                details={"error": str(e)},
            )

        duration_ms = (time.time() - start_time) * 1000
        log_context = {
            **log_context,
            "http_status": response.status_code,
            "duration_ms": duration_ms,
        }

        try:
            envelope = response.json()
        except ValueError:
            envelope = {}

        if response.status_code >= 400 or not envelope.get("status"):
            cls._handle_error_response(response.status_code, envelope, log_context)

        logger.info("Paystack operation completed", extra=log_context)
        data = envelope.get("data")
        return data if isinstance(data, dict) else {}

    @classmethod
    def _handle_error_response(
        cls,
        status_code: int,
        envelope: dict[str, Any],
        log_context: dict[str, Any],
    ) -> None:
        """
        Translate a failed Paystack response into a domain exception.

        Raises:
            PaystackAuthenticationError: 401
            PaystackRateLimitError: 429
            PaystackAPIUnavailableError: 5xx
            PaystackInvalidRequestError: any other rejection
        """
        logger = cls.get_logger()
        message = envelope.get("message") or "Payment provider rejected the request"

        if status_code == 401:
            logger.error("Paystack authentication failed", extra=log_context)
            raise PaystackAuthenticationError(message, http_status_code=status_code)

        if status_code == 429:
            logger.warning("Rate limited by Paystack", extra=log_context)
            raise PaystackRateLimitError(message, http_status_code=status_code)

        if status_code >= 500:
            logger.error("Paystack server error", extra=log_context)
            raise PaystackAPIUnavailableError(message, http_status_code=status_code)

        logger.error(
            "Invalid request to Paystack",
            extra={**log_context, "paystack_message": message},
        )
        raise PaystackInvalidRequestError(message, http_status_code=status_code)
