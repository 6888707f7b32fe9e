"""
API tests for the booking endpoints.
"""

from datetime import timedelta

from django.urls import reverse
from django.utils import timezone

from bookings.models import BookingPaymentStatus, BookingStatus
from bookings.tests.factories import BookingFactory, ServiceFactory
from payments.tests.factories import EscrowedBookingFactory


def action_url(booking, name):
    return reverse(f"bookings:booking-{name}", kwargs={"pk": booking.pk})


class TestCreateBooking:
    url = reverse("bookings:booking-list")

    def test_create(self, auth_client, client_user):
        service = ServiceFactory(base_price=4500)

        response = auth_client(client_user).post(
            self.url,
            {
                "service_id": str(service.id),
                "scheduled_at": (timezone.now() + timedelta(days=1)).isoformat(),
            },
            format="json",
        )

        assert response.status_code == 201
        assert response.data["total_amount"] == 4500
        assert response.data["status"] == BookingStatus.PENDING
        assert response.data["payment_status"] == BookingPaymentStatus.PENDING
        assert len(response.data["status_history"]) == 1

    def test_coordinates_must_come_together(self, auth_client, client_user):
        service = ServiceFactory()

        response = auth_client(client_user).post(
            self.url,
            {
                "service_id": str(service.id),
                "scheduled_at": (timezone.now() + timedelta(days=1)).isoformat(),
                "latitude": 6.5,
            },
            format="json",
        )

        assert response.status_code == 400

    def test_vendor_cannot_book(self, auth_client, vendor):
        service = ServiceFactory()

        response = auth_client(vendor).post(
            self.url,
            {
                "service_id": str(service.id),
                "scheduled_at": (timezone.now() + timedelta(days=1)).isoformat(),
            },
            format="json",
        )

        assert response.status_code == 403
        assert response.data["error_code"] == "PERMISSION_DENIED"

    def test_requires_authentication(self, api_client, db):
        assert api_client.get(self.url).status_code == 401


class TestListAndRetrieve:
    def test_list_filters(self, auth_client, db):
        booking = BookingFactory()
        BookingFactory(client=booking.client, completed=True)
        url = reverse("bookings:booking-list")

        response = auth_client(booking.client).get(url, {"status": BookingStatus.PENDING})

        assert response.status_code == 200
        assert [b["id"] for b in response.data["results"]] == [str(booking.id)]

    def test_invalid_filter(self, auth_client, client_user):
        response = auth_client(client_user).get(
            reverse("bookings:booking-list"), {"role": "landlord"}
        )

        assert response.status_code == 400

    def test_retrieve_is_private(self, auth_client, client_user, db):
        booking = BookingFactory()
        url = reverse("bookings:booking-detail", kwargs={"pk": booking.pk})

        assert auth_client(booking.vendor).get(url).status_code == 200
        assert auth_client(client_user).get(url).status_code == 403

    def test_stats(self, auth_client, db):
        booking = BookingFactory()

        response = auth_client(booking.client).get(reverse("bookings:booking-stats"))

        assert response.status_code == 200
        assert response.data["total"] == 1


class TestLifecycleActions:
    def test_accept_start_complete(self, auth_client, db):
        """Walk an escrowed booking through to release over the API."""
        booking = EscrowedBookingFactory()
        vendor = auth_client(booking.vendor)
        client = auth_client(booking.client)

        assert vendor.post(action_url(booking, "accept")).data["status"] == BookingStatus.ACCEPTED
        assert vendor.post(action_url(booking, "start")).data["status"] == BookingStatus.IN_PROGRESS
        client.post(action_url(booking, "complete"))
        response = vendor.post(action_url(booking, "complete"))

        assert response.status_code == 200
        assert response.data["status"] == BookingStatus.COMPLETED
        assert response.data["payment_status"] == BookingPaymentStatus.RELEASED

    def test_accept_before_payment(self, auth_client, db):
        booking = BookingFactory()

        response = auth_client(booking.vendor).post(action_url(booking, "accept"))

        assert response.status_code == 400
        assert response.data["error_code"] == "PAYMENT_NOT_ESCROWED"

    def test_cancel_with_reason(self, auth_client, db):
        booking = EscrowedBookingFactory(accepted=True)

        response = auth_client(booking.client).post(
            action_url(booking, "cancel"), {"reason": "Travelling"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["cancellation_reason"] == "Travelling"
        assert response.data["payment_status"] == BookingPaymentStatus.REFUNDED

    def test_reject(self, auth_client, db):
        booking = BookingFactory()

        response = auth_client(booking.vendor).post(action_url(booking, "reject"))

        assert response.data["status"] == BookingStatus.CANCELLED

    def test_notes(self, auth_client, db):
        booking = BookingFactory()

        response = auth_client(booking.client).patch(
            action_url(booking, "notes"), {"notes": "Gate code 1234"}, format="json"
        )

        assert response.status_code == 200
        assert response.data["client_notes"] == "Gate code 1234"

    def test_unknown_booking(self, auth_client, client_user):
        url = reverse(
            "bookings:booking-accept", kwargs={"pk": "00000000-0000-0000-0000-000000000000"}
        )

        response = auth_client(client_user).post(url)

        assert response.status_code == 404
        assert response.data["error_code"] == "BOOKING_NOT_FOUND"
