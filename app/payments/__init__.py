"""
Payments app: escrow, wallet ledger and withdrawals.

This app handles:
- Escrowed booking payments through Paystack (initialize, verify, webhook)
- Commission snapshots from vendor subscriptions
- Per-user wallet ledger (credits and debits with idempotent references)
- Vendor withdrawals paid out by Paystack transfers

Related apps:
    - bookings: Booking.payment_status mirrors Payment.escrow_status
    - disputes: Resolution moves escrow through EscrowService

Usage:
    from payments.services import EscrowService

    init = EscrowService.initialize_payment(client, booking.id)
    EscrowService.confirm_payment(init.payment.reference)
"""
