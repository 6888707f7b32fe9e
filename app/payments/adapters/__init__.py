"""
Payment adapters for external services.

All Paystack API calls go through PaystackAdapter to ensure consistent
error handling, timeouts and observability.

Usage:
    from payments.adapters import PaystackAdapter, TransferParams

    transfer = PaystackAdapter.initiate_transfer(
        TransferParams(amount=4900, recipient_code="RCP_xxx", reference="WTH-...")
    )
"""

from payments.adapters.paystack_adapter import (
    BANK_CODES,
    DEFAULT_BANK_CODE,
    KOBO_PER_UNIT,
    InitializeTransactionParams,
    InitializeTransactionResult,
    PaystackAdapter,
    TransferParams,
    TransferRecipientParams,
    TransferResult,
    VerifyTransactionResult,
    get_bank_code,
)

__all__ = [
    "BANK_CODES",
    "DEFAULT_BANK_CODE",
    "KOBO_PER_UNIT",
    "InitializeTransactionParams",
    "InitializeTransactionResult",
    "PaystackAdapter",
    "TransferParams",
    "TransferRecipientParams",
    "TransferResult",
    "VerifyTransactionResult",
    "get_bank_code",
]
