"""
Payment services.

This module provides:
- EscrowService: Payment initialization, confirmation and escrow exits
  (release, refund, split)
- CommissionService: Vendor commission rate lookup
- WithdrawalService: Vendor payouts from wallet balance

Usage:
    from payments.services import EscrowService

    result = EscrowService.initialize_payment(client, booking.id)
    EscrowService.confirm_payment(result.payment.reference)

    # Bilateral completion
    EscrowService.release(booking.id, actor=vendor)

    # Dispute resolution
    EscrowService.split(booking.id, refund_amount=2000, vendor_amount=3800, actor=admin)
"""

from payments.services.commission_service import CommissionService
from payments.services.escrow_service import (
    EscrowService,
    PaymentInitialization,
    validate_split,
)
from payments.services.withdrawal_service import WithdrawalService

__all__ = [
    "CommissionService",
    "EscrowService",
    "PaymentInitialization",
    "WithdrawalService",
    "validate_split",
]
