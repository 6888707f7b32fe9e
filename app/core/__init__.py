"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the domain apps (bookings, payments,
disputes, referrals). No business rules live here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - SoftDeleteMixin: Soft delete support (is_deleted, deleted_at)

Managers (import from core.managers):
    - SoftDeleteManager / SoftDeleteQuerySet

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper

Exceptions (import from core.exceptions):
    - BaseApplicationError, BadRequestError, ValidationError, NotFoundError,
      PermissionDeniedError, ConflictError, ExternalServiceError

Helpers (import from core.helpers):
    - generate_reference, generate_referral_code, haversine_km,
      percentage_of, get_client_ip

Note:
    Django models, model mixins and managers are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

from .services import BaseService, ServiceResult

from .exceptions import (
    BadRequestError,
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

from .helpers import (
    generate_reference,
    generate_referral_code,
    get_client_ip,
    haversine_km,
    percentage_of,
)

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "BadRequestError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "ExternalServiceError",
    # Helpers
    "generate_reference",
    "generate_referral_code",
    "get_client_ip",
    "haversine_km",
    "percentage_of",
]
