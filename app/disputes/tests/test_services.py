"""
Tests for DisputeService.

Resolution tests check both the dispute record and where the held payment
went, since the two commit together.
"""

import pytest

from authentication.models import UserRole
from authentication.tests.factories import AdminFactory, UserFactory
from bookings.models import BookingPaymentStatus
from bookings.tests.factories import BookingFactory
from core.exceptions import BadRequestError, NotFoundError, PermissionDeniedError, ValidationError
from disputes import signals
from disputes.models import (
    Dispute,
    DisputeCategory,
    DisputePriority,
    DisputeResolution,
    DisputeStatus,
    EvidenceType,
)
from disputes.services import DisputeService
from payments.ledger.services import WalletService
from payments.services import EscrowService
from payments.state_machines import EscrowStatus
from payments.tests.factories import EscrowedBookingFactory


def open_dispute(booking, raiser=None, **kwargs):
    fields = {
        "reason": "Service not delivered",
        "description": "The vendor never arrived at the address",
        "category": DisputeCategory.SERVICE_QUALITY,
    }
    fields.update(kwargs)
    return DisputeService.open(raiser or booking.client, booking.id, **fields)


@pytest.fixture
def booking(db):
    return EscrowedBookingFactory(in_progress=True)


@pytest.fixture
def dispute(booking):
    return open_dispute(booking)


# =============================================================================
# Opening
# =============================================================================


class TestOpen:
    def test_flags_booking(self, booking):
        dispute = open_dispute(
            booking,
            evidence=[{"type": EvidenceType.TEXT, "content": "  Waited two hours  "}],
        )

        assert dispute.status == DisputeStatus.OPEN
        assert dispute.raised_by_id == booking.client_id
        assert dispute.against_id == booking.vendor_id
        assert dispute.evidence.get().content == "Waited two hours"
        booking.refresh_from_db()
        assert booking.has_dispute
        assert booking.active_dispute_id == dispute.id
        assert booking.status == "in_progress"

    def test_vendor_can_raise(self, booking):
        dispute = open_dispute(booking, raiser=booking.vendor, category=DisputeCategory.PAYMENT)

        assert dispute.against_id == booking.client_id

    def test_outsider(self, booking, client_user):
        with pytest.raises(PermissionDeniedError):
            open_dispute(booking, raiser=client_user)

    def test_pending_booking_not_disputable(self, db):
        booking = BookingFactory()

        with pytest.raises(BadRequestError) as exc_info:
            open_dispute(booking)

        assert exc_info.value.error_code == "BOOKING_NOT_DISPUTABLE"

    def test_completed_booking_still_in_escrow(self, db):
        booking = EscrowedBookingFactory(completed=True)

        dispute = open_dispute(booking)

        assert dispute.status == DisputeStatus.OPEN

    def test_released_payment_not_disputable(self, db):
        """Should refuse a dispute once the money has left escrow."""
        booking = EscrowedBookingFactory(completed=True)
        EscrowService.release(booking.id)

        with pytest.raises(BadRequestError) as exc_info:
            open_dispute(booking)

        assert exc_info.value.error_code == "PAYMENT_NOT_ESCROWED"
        booking.refresh_from_db()
        assert not booking.has_dispute
        assert booking.active_dispute_id is None
        assert not Dispute.objects.exists()

    def test_one_active_dispute_per_booking(self, booking, dispute):
        with pytest.raises(BadRequestError) as exc_info:
            open_dispute(booking, raiser=booking.vendor)

        assert exc_info.value.error_code == "DISPUTE_ALREADY_OPEN"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"category": "weather"},
            {"evidence": [{"type": "video", "content": "clip"}]},
            {"evidence": [{"type": EvidenceType.TEXT, "content": "   "}]},
        ],
    )
    def test_invalid_input(self, booking, kwargs):
        with pytest.raises(ValidationError):
            open_dispute(booking, **kwargs)

        assert not Dispute.objects.exists()

    def test_missing_booking(self, client_user):
        with pytest.raises(NotFoundError):
            DisputeService.open(
                client_user,
                "00000000-0000-0000-0000-000000000000",
                reason="x",
                description="y",
                category=DisputeCategory.OTHER,
            )

    def test_opened_signal(self, booking, mocker, django_capture_on_commit_callbacks):
        send = mocker.patch.object(signals.dispute_opened, "send")

        with django_capture_on_commit_callbacks(execute=True):
            dispute = open_dispute(booking)

        send.assert_called_once_with(sender=Dispute, dispute=dispute, actor=booking.client)


# =============================================================================
# Party actions
# =============================================================================


class TestEvidenceAndMessages:
    def test_add_evidence(self, dispute, booking):
        DisputeService.add_evidence(
            booking.vendor,
            dispute.id,
            [{"type": EvidenceType.IMAGE, "content": "https://cdn.example.com/a.jpg"}],
        )

        assert dispute.evidence.count() == 1
        assert dispute.evidence.get().uploaded_by == booking.vendor

    def test_evidence_requires_items(self, dispute, booking):
        with pytest.raises(ValidationError):
            DisputeService.add_evidence(booking.client, dispute.id, [])

    def test_admin_cannot_add_evidence(self, dispute, admin_user):
        with pytest.raises(PermissionDeniedError):
            DisputeService.add_evidence(
                admin_user, dispute.id, [{"type": EvidenceType.TEXT, "content": "note"}]
            )

    def test_no_evidence_after_resolution(self, dispute, booking, admin_user):
        DisputeService.resolve(admin_user, dispute.id, DisputeResolution.REFUND_CLIENT)

        with pytest.raises(BadRequestError) as exc_info:
            DisputeService.add_evidence(
                booking.client, dispute.id, [{"type": EvidenceType.TEXT, "content": "late"}]
            )

        assert exc_info.value.error_code == "DISPUTE_NOT_ACTIVE"

    def test_messages_from_parties_and_admins(self, dispute, booking, admin_user):
        DisputeService.add_message(booking.client, dispute.id, "  Any update?  ")
        DisputeService.add_message(admin_user, dispute.id, "Looking into it")

        messages = list(dispute.messages.values_list("message", flat=True))
        assert messages == ["Any update?", "Looking into it"]

    def test_outsider_cannot_message(self, dispute, client_user):
        with pytest.raises(PermissionDeniedError):
            DisputeService.add_message(client_user, dispute.id, "Hello")

    def test_empty_message(self, dispute, booking):
        with pytest.raises(ValidationError):
            DisputeService.add_message(booking.client, dispute.id, "   ")


# =============================================================================
# Admin actions
# =============================================================================


class TestAssign:
    def test_first_assignment_starts_review(self, dispute, admin_user):
        assignee = AdminFactory()

        dispute = DisputeService.assign(admin_user, dispute.id, assignee.pk)

        assert dispute.status == DisputeStatus.IN_REVIEW
        assert dispute.assigned_to == assignee
        assert dispute.reviewed_at is not None

    def test_reassign_keeps_status(self, dispute, admin_user):
        DisputeService.assign(admin_user, dispute.id, admin_user.pk)
        other = AdminFactory()

        dispute = DisputeService.assign(admin_user, dispute.id, other.pk)

        assert dispute.status == DisputeStatus.IN_REVIEW
        assert dispute.assigned_to == other

    def test_assignee_must_be_admin(self, dispute, admin_user, client_user):
        with pytest.raises(BadRequestError) as exc_info:
            DisputeService.assign(admin_user, dispute.id, client_user.pk)

        assert exc_info.value.error_code == "INVALID_ASSIGNEE"

    def test_support_cannot_assign(self, dispute, admin_user):
        support = UserFactory(role=UserRole.SUPPORT)

        with pytest.raises(PermissionDeniedError):
            DisputeService.assign(support, dispute.id, admin_user.pk)

    def test_update_priority(self, dispute, admin_user):
        dispute = DisputeService.update_priority(admin_user, dispute.id, DisputePriority.URGENT)

        assert dispute.priority == DisputePriority.URGENT


class TestResolve:
    def test_refund_client(self, dispute, booking, admin_user):
        dispute = DisputeService.resolve(
            admin_user,
            dispute.id,
            DisputeResolution.REFUND_CLIENT,
            details="Vendor did not show up",
        )

        assert dispute.status == DisputeStatus.RESOLVED
        assert dispute.resolved_by == admin_user
        assert dispute.refund_amount == 6000
        assert WalletService.get_balance(booking.client_id) == 6000
        booking.refresh_from_db()
        assert booking.payment_status == BookingPaymentStatus.REFUNDED
        assert booking.active_dispute_id is None
        assert booking.has_dispute

    def test_pay_vendor_without_completion(self, dispute, booking, admin_user):
        dispute = DisputeService.resolve(admin_user, dispute.id, DisputeResolution.PAY_VENDOR)

        assert dispute.vendor_payment_amount == 5400
        assert WalletService.get_balance(booking.vendor_id) == 5400
        assert booking.payments.get().escrow_status == EscrowStatus.RELEASED

    def test_partial_refund(self, dispute, booking, admin_user):
        dispute = DisputeService.resolve(
            admin_user,
            dispute.id,
            DisputeResolution.PARTIAL_REFUND,
            refund_amount=2000,
            vendor_payment_amount=3800,
        )

        assert (dispute.refund_amount, dispute.vendor_payment_amount) == (2000, 3800)
        assert WalletService.get_balance(booking.client_id) == 2000
        assert WalletService.get_balance(booking.vendor_id) == 3800

    def test_bad_split_leaves_dispute_open(self, dispute, booking, admin_user):
        with pytest.raises(ValidationError):
            DisputeService.resolve(
                admin_user,
                dispute.id,
                DisputeResolution.PARTIAL_REFUND,
                refund_amount=5000,
                vendor_payment_amount=5000,
            )

        dispute.refresh_from_db()
        assert dispute.status == DisputeStatus.OPEN
        assert booking.payments.get().escrow_status == EscrowStatus.HELD

    def test_cannot_resolve_twice(self, dispute, admin_user):
        DisputeService.resolve(admin_user, dispute.id, DisputeResolution.REFUND_CLIENT)

        with pytest.raises(BadRequestError) as exc_info:
            DisputeService.resolve(admin_user, dispute.id, DisputeResolution.PAY_VENDOR)

        assert exc_info.value.error_code == "DISPUTE_ALREADY_RESOLVED"

    def test_unknown_resolution(self, dispute, admin_user):
        with pytest.raises(ValidationError):
            DisputeService.resolve(admin_user, dispute.id, "coin_toss")

    def test_party_cannot_resolve(self, dispute, booking):
        with pytest.raises(PermissionDeniedError):
            DisputeService.resolve(booking.client, dispute.id, DisputeResolution.REFUND_CLIENT)

    def test_resolved_signal(self, dispute, admin_user, mocker, django_capture_on_commit_callbacks):
        send = mocker.patch.object(signals.dispute_resolved, "send")

        with django_capture_on_commit_callbacks(execute=True):
            DisputeService.resolve(admin_user, dispute.id, DisputeResolution.REFUND_CLIENT)

        send.assert_called_once()

    def test_no_new_dispute_after_resolution(self, dispute, booking, admin_user):
        DisputeService.resolve(admin_user, dispute.id, DisputeResolution.REFUND_CLIENT)

        with pytest.raises(BadRequestError) as exc_info:
            open_dispute(booking, raiser=booking.vendor)

        assert exc_info.value.error_code == "PAYMENT_NOT_ESCROWED"
        assert Dispute.objects.filter(booking=booking).count() == 1


class TestClose:
    def test_close_resolved(self, dispute, admin_user):
        DisputeService.resolve(admin_user, dispute.id, DisputeResolution.REFUND_CLIENT)

        dispute = DisputeService.close(admin_user, dispute.id)

        assert dispute.status == DisputeStatus.CLOSED
        assert dispute.closed_by == admin_user

    def test_close_requires_resolution(self, dispute, admin_user):
        with pytest.raises(BadRequestError) as exc_info:
            DisputeService.close(admin_user, dispute.id)

        assert exc_info.value.error_code == "DISPUTE_NOT_RESOLVED"


# =============================================================================
# Queries
# =============================================================================


class TestQueries:
    def test_parties_see_their_disputes(self, dispute, booking, client_user, admin_user):
        assert list(DisputeService.list_disputes(booking.vendor)) == [dispute]
        assert not DisputeService.list_disputes(client_user).exists()
        assert DisputeService.list_disputes(admin_user).count() == 1

    def test_admin_filters(self, dispute, admin_user):
        DisputeService.update_priority(admin_user, dispute.id, DisputePriority.HIGH)

        assert DisputeService.list_disputes(admin_user, priority=DisputePriority.HIGH).count() == 1
        assert not DisputeService.list_disputes(admin_user, status=DisputeStatus.CLOSED).exists()

    def test_get_is_private(self, dispute, client_user):
        with pytest.raises(PermissionDeniedError):
            DisputeService.get(client_user, dispute.id)

    def test_stats(self, dispute, admin_user):
        stats = DisputeService.stats(admin_user)

        assert stats["total"] == 1
        assert stats["by_status"][DisputeStatus.OPEN] == 1
        assert stats["by_category"][DisputeCategory.SERVICE_QUALITY] == 1
        assert stats["by_priority"][DisputePriority.MEDIUM] == 1

    def test_stats_admin_only(self, dispute, booking):
        with pytest.raises(PermissionDeniedError):
            DisputeService.stats(booking.client)
