"""
Escrow payment lifecycle.

EscrowService owns every change to Payment.escrow_status and the matching
Booking.payment_status cache:

    initialize  -> Payment(pending/pending) + gateway checkout
    confirm     -> pending -> held,        booking: pending -> escrowed
    release     -> held -> released,       vendor wallet += vendor_amount
    refund      -> held -> refunded,       client wallet += amount
    split       -> held -> released,       client += refund, vendor += share

Concurrency:
    Each move locks the booking row first (the same lock BookingService
    takes), then changes escrow_status with a conditional update that only
    matches while the payment is in the expected state. If two paths race
    (bilateral completion vs. dispute resolution, or duplicate webhooks),
    exactly one update matches; the other raises InvalidEscrowStateError
    and its transaction rolls back before any wallet is touched.

Idempotency:
    confirm() is a no-op once the payment has left pending, and every
    ledger reference is derived from the payment id, so a replayed event
    can never credit twice.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from bookings.models import Booking, BookingPaymentStatus, BookingStatus
from core.exceptions import (
    BadRequestError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from core.helpers import generate_reference
from core.services import BaseService
from payments import signals
from payments.adapters import InitializeTransactionParams, PaystackAdapter
from payments.exceptions import (
    InvalidEscrowStateError,
    PaymentExpiredError,
    PaymentNotFoundError,
)
from payments.ledger.models import TransactionType
from payments.ledger.services import WalletService
from payments.ledger.types import LedgerEntryParams
from payments.models import Payment
from payments.services.commission_service import CommissionService
from payments.state_machines import EscrowStatus, PaymentStatus

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User


@dataclass
class PaymentInitialization:
    """What a client needs to complete checkout."""

    payment: Payment
    authorization_url: str
    access_code: str


class EscrowService(BaseService):
    """
    Escrow operations on booking payments.

    All methods are classmethods - no instance state is maintained.
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    @classmethod
    def initialize_payment(cls, client: User, booking_id: uuid.UUID) -> PaymentInitialization:
        """
        Start paying for a booking.

        Snapshots the vendor's current commission rate, asks the gateway
        for a checkout, then stores the Payment. The gateway call happens
        first: if it fails, no Payment row exists.

        Raises:
            NotFoundError: Booking missing
            PermissionDeniedError: Actor is not the booking's client
            BadRequestError: Booking cancelled, no longer pending, or
                already paid
            PaystackError: Gateway failure
        """
        booking = cls._get_booking(booking_id)
        if booking.client_id != client.pk:
            raise PermissionDeniedError(
                "Only the booking's client can pay for it",
                details={"booking_id": str(booking.id)},
            )
        cls._check_payable(booking)

        rate = CommissionService.get_rate(booking.vendor_id)
        platform_fee, vendor_amount = Payment.split_commission(booking.total_amount, rate)
        reference = generate_reference("PAY")

        checkout = PaystackAdapter.initialize_transaction(
            InitializeTransactionParams(
                email=client.email,
                amount=booking.total_amount,
                reference=reference,
                metadata={
                    "booking_id": str(booking.id),
                    "client_id": str(client.pk),
                },
            )
        )

        with cls.atomic():
            booking = Booking.objects.select_for_update().get(pk=booking.pk)
            cls._check_payable(booking)

            for stale in booking.payments.filter(status=PaymentStatus.PENDING):
                stale.mark_failed("Superseded by a newer payment")
                stale.save()

            payment = Payment.objects.create(
                booking=booking,
                client_id=booking.client_id,
                vendor_id=booking.vendor_id,
                amount=booking.total_amount,
                currency=settings.PLATFORM_CURRENCY,
                commission_rate=rate,
                platform_fee=platform_fee,
                vendor_amount=vendor_amount,
                reference=reference,
                access_code=checkout.access_code,
                authorization_url=checkout.authorization_url,
                expires_at=Payment.default_expiry(),
            )

        cls.get_logger().info(
            "Payment initialized",
            extra={
                "payment_id": str(payment.id),
                "booking_id": str(booking.id),
                "reference": reference,
                "amount": payment.amount,
                "commission_rate": str(rate),
                "platform_fee": platform_fee,
            },
        )
        return PaymentInitialization(
            payment=payment,
            authorization_url=checkout.authorization_url,
            access_code=checkout.access_code,
        )

    @staticmethod
    def _check_payable(booking: Booking) -> None:
        if booking.status == BookingStatus.CANCELLED:
            raise BadRequestError(
                "Cancelled bookings cannot be paid",
                error_code="BOOKING_CANCELLED",
                details={"booking_id": str(booking.id)},
            )
        if booking.payment_status != BookingPaymentStatus.PENDING:
            raise BadRequestError(
                "Booking is already paid",
                error_code="BOOKING_ALREADY_PAID",
                details={"booking_id": str(booking.id), "payment_status": booking.payment_status},
            )
        if booking.status != BookingStatus.PENDING:
            raise BadRequestError(
                "Only pending bookings can be paid",
                error_code="INVALID_BOOKING_STATE",
                details={"booking_id": str(booking.id), "status": booking.status},
            )

    # =========================================================================
    # Confirmation
    # =========================================================================

    @classmethod
    def confirm_payment(
        cls,
        reference: str,
        authorization_code: str = "",
        gateway_response: dict[str, Any] | None = None,
    ) -> Payment:
        """
        Move a payment into escrow after the gateway reports success.

        Idempotent: a payment that already left pending is returned as-is.

        Raises:
            PaymentNotFoundError: Unknown reference
            PaymentExpiredError: Pending payment past expires_at (the
                payment is marked failed before raising)
            BadRequestError: Payment failed/superseded, or the booking is
                already escrowed by another payment
        """
        payment = Payment.objects.filter(reference=reference).first()
        if payment is None:
            raise PaymentNotFoundError(
                "Payment not found",
                details={"reference": reference},
            )

        expired = False
        with cls.atomic():
            booking = Booking.all_objects.select_for_update().get(pk=payment.booking_id)
            payment.refresh_from_db()

            if payment.escrow_status != EscrowStatus.PENDING:
                cls.get_logger().info(
                    "Duplicate payment confirmation ignored",
                    extra={"reference": reference, "escrow_status": payment.escrow_status},
                )
                return payment

            if payment.is_expired:
                payment.mark_failed("Payment expired before confirmation")
                payment.save()
                expired = True
            else:
                cls._hold(payment, booking, authorization_code, gateway_response or {})

        if expired:
            cls.get_logger().warning(
                "Expired payment confirmation rejected",
                extra={"reference": reference, "payment_id": str(payment.id)},
            )
            raise PaymentExpiredError(
                "Payment has expired",
                details={"reference": reference},
            )

        cls.get_logger().info(
            "Payment held in escrow",
            extra={
                "payment_id": str(payment.id),
                "booking_id": str(payment.booking_id),
                "reference": reference,
                "amount": payment.amount,
            },
        )
        return payment

    @classmethod
    def _hold(
        cls,
        payment: Payment,
        booking: Booking,
        authorization_code: str,
        gateway_response: dict[str, Any],
    ) -> None:
        if payment.status != PaymentStatus.PENDING:
            raise BadRequestError(
                "Payment is no longer active",
                error_code="PAYMENT_NOT_ACTIVE",
                details={"reference": payment.reference, "status": payment.status},
            )
        if booking.payment_status != BookingPaymentStatus.PENDING:
            raise BadRequestError(
                "Booking is already paid",
                error_code="BOOKING_ALREADY_PAID",
                details={"booking_id": str(booking.id), "payment_status": booking.payment_status},
            )

        now = timezone.now()
        rows = Payment.objects.filter(
            pk=payment.pk,
            status=PaymentStatus.PENDING,
            escrow_status=EscrowStatus.PENDING,
        ).update(
            status=PaymentStatus.COMPLETED,
            escrow_status=EscrowStatus.HELD,
            paid_at=now,
            held_at=now,
            authorization_code=authorization_code,
            gateway_response=gateway_response,
            updated_at=now,
        )
        if rows == 0:
            raise InvalidEscrowStateError(
                "Payment is not awaiting confirmation",
                details={"reference": payment.reference},
            )

        booking.payment_status = BookingPaymentStatus.ESCROWED
        booking.save(update_fields=["payment_status", "updated_at"])
        payment.refresh_from_db()

        cls.on_commit(lambda: signals.payment_held.send(sender=Payment, payment=payment))

    @classmethod
    def verify_payment(cls, reference: str, actor: User | None = None) -> Payment:
        """
        Ask the gateway for a payment's outcome and apply it.

        success confirms the payment; any other gateway status marks a
        still-pending payment failed. Payments already in escrow (or past
        it) are returned without calling the gateway.
        """
        payment = Payment.objects.filter(reference=reference).first()
        if payment is None:
            raise PaymentNotFoundError(
                "Payment not found",
                details={"reference": reference},
            )
        if actor is not None and actor.pk != payment.client_id and not actor.is_platform_admin:
            raise PermissionDeniedError(
                "You can only verify your own payments",
                details={"reference": reference},
            )

        if payment.escrow_status != EscrowStatus.PENDING or payment.status != PaymentStatus.PENDING:
            return payment

        result = PaystackAdapter.verify_transaction(reference)
        if result.is_successful:
            return cls.confirm_payment(
                reference,
                authorization_code=result.authorization_code,
                gateway_response=result.raw_response,
            )

        with cls.atomic():
            payment = Payment.objects.select_for_update().get(pk=payment.pk)
            if payment.status == PaymentStatus.PENDING:
                payment.mark_failed(result.gateway_response or result.status)
                payment.save()

        cls.get_logger().info(
            "Payment verification failed",
            extra={"reference": reference, "gateway_status": result.status},
        )
        return payment

    # =========================================================================
    # Escrow exits
    # =========================================================================

    @classmethod
    def release(
        cls,
        booking_id: uuid.UUID,
        actor: User | None = None,
        enforce_completion: bool = True,
    ) -> Payment:
        """
        Pay the vendor their share of a held payment.

        The normal path requires a completed booking. Dispute resolution
        passes enforce_completion=False, since a pay_vendor ruling can come
        before the parties finish.

        Raises:
            BadRequestError: Booking not completed
            InvalidEscrowStateError: Payment not held (already released or
                refunded, or never confirmed)
        """
        with cls.atomic():
            booking = cls._lock_booking(booking_id)
            if enforce_completion and booking.status != BookingStatus.COMPLETED:
                raise BadRequestError(
                    "Only completed bookings can release payment",
                    error_code="BOOKING_NOT_COMPLETED",
                    details={"booking_id": str(booking.id), "status": booking.status},
                )

            payment = cls._held_payment(booking)
            now = timezone.now()
            cls._move_escrow(
                payment,
                EscrowStatus.RELEASED,
                released_at=now,
                refund_amount=0,
                vendor_payment_amount=payment.vendor_amount,
            )
            if payment.vendor_amount > 0:
                WalletService.credit(
                    LedgerEntryParams(
                        user_id=payment.vendor_id,
                        amount=payment.vendor_amount,
                        type=TransactionType.BOOKING_PAYMENT,
                        reference=f"escrow:{payment.id}:release",
                        booking_id=booking.id,
                        payment_id=payment.id,
                        description="Escrow released to vendor",
                    )
                )
            cls._set_booking_payment_status(booking, BookingPaymentStatus.RELEASED)
            cls.on_commit(
                lambda: signals.payment_released.send(
                    sender=Payment, payment=payment, amount=payment.vendor_amount
                )
            )

        cls.get_logger().info(
            "Escrow released",
            extra={
                "payment_id": str(payment.id),
                "booking_id": str(booking.id),
                "vendor_amount": payment.vendor_amount,
                "actor_id": str(actor.pk) if actor else None,
            },
        )
        return payment

    @classmethod
    def refund(cls, booking_id: uuid.UUID, actor: User | None = None, reason: str = "") -> Payment:
        """
        Return the full held amount to the client.

        Raises:
            InvalidEscrowStateError: Payment not held
        """
        with cls.atomic():
            booking = cls._lock_booking(booking_id)
            payment = cls._held_payment(booking)
            now = timezone.now()
            cls._move_escrow(
                payment,
                EscrowStatus.REFUNDED,
                status=PaymentStatus.REFUNDED,
                refunded_at=now,
                refund_amount=payment.amount,
                vendor_payment_amount=0,
                refund_reason=reason[:500],
            )
            WalletService.credit(
                LedgerEntryParams(
                    user_id=payment.client_id,
                    amount=payment.amount,
                    type=TransactionType.REFUND,
                    reference=f"escrow:{payment.id}:refund",
                    booking_id=booking.id,
                    payment_id=payment.id,
                    description=reason[:255] or "Escrow refunded to client",
                )
            )
            cls._set_booking_payment_status(booking, BookingPaymentStatus.REFUNDED)
            cls.on_commit(
                lambda: signals.payment_refunded.send(
                    sender=Payment, payment=payment, amount=payment.amount, reason=reason
                )
            )

        cls.get_logger().info(
            "Escrow refunded",
            extra={
                "payment_id": str(payment.id),
                "booking_id": str(booking.id),
                "amount": payment.amount,
                "actor_id": str(actor.pk) if actor else None,
            },
        )
        return payment

    @classmethod
    def split(
        cls,
        booking_id: uuid.UUID,
        refund_amount: int,
        vendor_amount: int,
        actor: User | None = None,
    ) -> Payment:
        """
        Divide a held payment between client and vendor.

        Used by dispute resolution only. Whatever is left of the amount
        after both shares stays with the platform.

        Raises:
            ValidationError: Negative shares, zero total, or shares above
                the payment amount
            InvalidEscrowStateError: Payment not held
        """
        with cls.atomic():
            booking = cls._lock_booking(booking_id)
            payment = cls._held_payment(booking)
            validate_split(refund_amount, vendor_amount, payment.amount)

            now = timezone.now()
            cls._move_escrow(
                payment,
                EscrowStatus.RELEASED,
                released_at=now,
                refund_amount=refund_amount,
                vendor_payment_amount=vendor_amount,
            )
            if refund_amount > 0:
                WalletService.credit(
                    LedgerEntryParams(
                        user_id=payment.client_id,
                        amount=refund_amount,
                        type=TransactionType.REFUND,
                        reference=f"escrow:{payment.id}:split:client",
                        booking_id=booking.id,
                        payment_id=payment.id,
                        description="Partial refund from dispute resolution",
                    )
                )
            if vendor_amount > 0:
                WalletService.credit(
                    LedgerEntryParams(
                        user_id=payment.vendor_id,
                        amount=vendor_amount,
                        type=TransactionType.BOOKING_PAYMENT,
                        reference=f"escrow:{payment.id}:split:vendor",
                        booking_id=booking.id,
                        payment_id=payment.id,
                        description="Partial payment from dispute resolution",
                    )
                )
            cls._set_booking_payment_status(booking, BookingPaymentStatus.RELEASED)
            cls.on_commit(
                lambda: signals.payment_released.send(
                    sender=Payment, payment=payment, amount=vendor_amount
                )
            )

        cls.get_logger().info(
            "Escrow split",
            extra={
                "payment_id": str(payment.id),
                "booking_id": str(booking.id),
                "refund_amount": refund_amount,
                "vendor_amount": vendor_amount,
                "actor_id": str(actor.pk) if actor else None,
            },
        )
        return payment

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def get_payment(cls, actor: User, payment_id: uuid.UUID) -> Payment:
        payment = Payment.objects.filter(pk=payment_id).first()
        if payment is None:
            raise PaymentNotFoundError(
                "Payment not found",
                details={"payment_id": str(payment_id)},
            )
        if actor.pk not in (payment.client_id, payment.vendor_id) and not actor.is_platform_admin:
            raise PermissionDeniedError(
                "You are not a party to this payment",
                details={"payment_id": str(payment_id)},
            )
        return payment

    @classmethod
    def list_payments(cls, user: User) -> QuerySet[Payment]:
        return Payment.objects.filter(Q(client=user) | Q(vendor=user)).select_related("booking")

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _get_booking(booking_id: uuid.UUID) -> Booking:
        booking = Booking.objects.filter(pk=booking_id).first()
        if booking is None:
            raise NotFoundError(
                "Booking not found",
                error_code="BOOKING_NOT_FOUND",
                details={"booking_id": str(booking_id)},
            )
        return booking

    @staticmethod
    def _lock_booking(booking_id: uuid.UUID) -> Booking:
        booking = Booking.objects.select_for_update().filter(pk=booking_id).first()
        if booking is None:
            raise NotFoundError(
                "Booking not found",
                error_code="BOOKING_NOT_FOUND",
                details={"booking_id": str(booking_id)},
            )
        return booking

    @staticmethod
    def _held_payment(booking: Booking) -> Payment:
        payment = booking.payments.filter(escrow_status=EscrowStatus.HELD).first()
        if payment is None:
            latest = booking.payments.order_by("-created_at").first()
            raise InvalidEscrowStateError(
                "Booking has no payment held in escrow",
                details={
                    "booking_id": str(booking.id),
                    "escrow_status": latest.escrow_status if latest else None,
                },
            )
        return payment

    @staticmethod
    def _move_escrow(payment: Payment, target: str, **fields: Any) -> None:
        """
        Conditionally move a held payment to target.

        Matches only while escrow_status is still held, so a concurrent
        exit that committed first makes this raise instead of double-paying.
        """
        now = timezone.now()
        rows = Payment.objects.filter(
            pk=payment.pk,
            escrow_status=EscrowStatus.HELD,
        ).update(escrow_status=target, updated_at=now, **fields)
        if rows == 0:
            raise InvalidEscrowStateError(
                "Payment has already left escrow",
                details={"payment_id": str(payment.id)},
            )
        payment.refresh_from_db()

    @staticmethod
    def _set_booking_payment_status(booking: Booking, payment_status: str) -> None:
        booking.payment_status = payment_status
        booking.save(update_fields=["payment_status", "updated_at"])


def validate_split(refund_amount: Any, vendor_amount: Any, payment_amount: int) -> None:
    """
    Check a partial-refund split against the payment amount.

    Both shares must be whole numbers >= 0, at least one positive, and
    together no more than the payment amount.
    """
    for name, value in (("refund_amount", refund_amount), ("vendor_amount", vendor_amount)):
        if value is None:
            raise ValidationError(
                f"{name} is required for a partial refund",
                error_code="SPLIT_AMOUNT_REQUIRED",
                details={"field": name},
            )
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ValidationError(
                f"{name} must be a whole number of at least 0",
                error_code="INVALID_SPLIT_AMOUNT",
                details={"field": name, "value": value},
            )

    total = refund_amount + vendor_amount
    if total <= 0:
        raise ValidationError(
            "Split amounts must add up to more than 0",
            error_code="INVALID_SPLIT_AMOUNT",
        )
    if total > payment_amount:
        raise ValidationError(
            "Split amounts exceed the payment amount",
            error_code="SPLIT_EXCEEDS_PAYMENT",
            details={
                "refund_amount": refund_amount,
                "vendor_amount": vendor_amount,
                "payment_amount": payment_amount,
            },
        )
