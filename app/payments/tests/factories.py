"""
Factory Boy factories for payment test data.

Usage:
    from payments.tests.factories import EscrowedBookingFactory, PaymentFactory

    # Pending checkout for a booking
    payment = PaymentFactory(booking=booking)

    # Booking whose payment is already held in escrow
    booking = EscrowedBookingFactory(accepted=True)
    payment = booking.payments.get()
"""

from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone

from authentication.tests.factories import UserFactory, VendorFactory
from bookings.models import BookingPaymentStatus
from bookings.tests.factories import BookingFactory
from core.helpers import percentage_of
from payments.models import Payment, VendorSubscription, WebhookEvent, Withdrawal
from payments.state_machines import (
    EscrowStatus,
    PaymentStatus,
    SubscriptionPlan,
    SubscriptionStatus,
    WebhookEventStatus,
)


class PaymentFactory(factory.django.DjangoModelFactory):
    """
    Payment for a booking at the default 10% commission.

    Default creates a PENDING checkout that expires in an hour. Use
    held=True for a payment already in escrow.
    """

    class Meta:
        model = Payment

    booking = factory.SubFactory(BookingFactory)
    client = factory.SelfAttribute("booking.client")
    vendor = factory.SelfAttribute("booking.vendor")
    amount = factory.LazyAttribute(lambda o: o.booking.total_amount)
    currency = "NGN"
    commission_rate = Decimal("10.00")
    platform_fee = factory.LazyAttribute(lambda o: percentage_of(o.amount, o.commission_rate))
    vendor_amount = factory.LazyAttribute(lambda o: o.amount - o.platform_fee)
    reference = factory.Sequence(lambda n: f"PAY-1718000000000-{n:08x}")
    access_code = factory.Sequence(lambda n: f"access_{n}")
    authorization_url = factory.LazyAttribute(
        lambda o: f"https://checkout.paystack.com/{o.access_code}"
    )
    expires_at = factory.LazyFunction(lambda: timezone.now() + timedelta(hours=1))

    class Params:
        held = factory.Trait(
            status=PaymentStatus.COMPLETED,
            escrow_status=EscrowStatus.HELD,
            paid_at=factory.LazyFunction(timezone.now),
            held_at=factory.LazyFunction(timezone.now),
        )


class EscrowedBookingFactory(BookingFactory):
    """Booking with a held payment; payment_status is escrowed."""

    class Meta:
        skip_postgeneration_save = True

    payment_status = BookingPaymentStatus.ESCROWED

    @factory.post_generation
    def payment(obj, create, extracted, **kwargs):
        if not create:
            return
        PaymentFactory(booking=obj, held=True, **kwargs)


class VendorSubscriptionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = VendorSubscription

    vendor = factory.SubFactory(VendorFactory)
    plan = SubscriptionPlan.BOTH
    status = SubscriptionStatus.ACTIVE
    expires_at = factory.LazyFunction(lambda: timezone.now() + timedelta(days=30))


class WithdrawalFactory(factory.django.DjangoModelFactory):
    """
    Pending withdrawal. The wallet debit is not recorded; tests that care
    about balances go through WithdrawalService.request instead.
    """

    class Meta:
        model = Withdrawal

    user = factory.SubFactory(VendorFactory)
    amount = 5000
    fee = 100
    net_amount = factory.LazyAttribute(lambda o: o.amount - o.fee)
    currency = "NGN"
    bank_name = "GTBank"
    bank_code = "058"
    account_number = "0123456789"
    account_name = "Ada Vendor"
    reference = factory.Sequence(lambda n: f"WTH-1718000000000-{n:08x}")


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Stored Paystack delivery.

    Example:
        WebhookEventFactory(event_type="transfer.success", reference=withdrawal.reference)
    """

    class Meta:
        model = WebhookEvent

    event_type = "charge.success"
    reference = factory.Sequence(lambda n: f"PAY-1718000000000-{n:08x}")
    event_key = factory.LazyAttribute(lambda o: WebhookEvent.build_key(o.event_type, o.reference))
    payload = factory.LazyAttribute(
        lambda o: {"event": o.event_type, "data": {"reference": o.reference}}
    )
    status = WebhookEventStatus.PENDING


__all__ = [
    "EscrowedBookingFactory",
    "PaymentFactory",
    "UserFactory",
    "VendorFactory",
    "VendorSubscriptionFactory",
    "WebhookEventFactory",
    "WithdrawalFactory",
]
