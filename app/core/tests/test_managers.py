"""
Tests for SoftDeleteManager, SoftDeleteQuerySet and SoftDeleteMixin.

Booking is used as the concrete model; every soft-deletable domain model
shares the same manager pair.
"""

import pytest

from bookings.models import Booking
from bookings.tests.factories import BookingFactory


@pytest.fixture
def bookings(db):
    return BookingFactory.create_batch(3)


class TestSoftDeleteManager:
    def test_excludes_deleted_rows(self, bookings):
        bookings[0].soft_delete()

        assert Booking.objects.count() == 2
        assert Booking.all_objects.count() == 3

    def test_deleted_row_is_not_found_by_default(self, bookings):
        bookings[0].soft_delete()

        assert not Booking.objects.filter(pk=bookings[0].pk).exists()


class TestSoftDeleteQuerySet:
    def test_delete_tags_rows(self, bookings):
        count, by_model = Booking.objects.filter(pk=bookings[0].pk).delete()

        assert count == 1
        assert by_model == {"bookings.Booking": 1}
        row = Booking.all_objects.get(pk=bookings[0].pk)
        assert row.is_deleted
        assert row.deleted_at is not None

    def test_delete_skips_already_deleted(self, bookings):
        bookings[0].soft_delete()

        count, _ = Booking.all_objects.all().delete()

        assert count == 2

    def test_unfiltered_manager_never_removes_rows(self, bookings):
        """Deleting through all_objects should still only tag rows."""
        Booking.all_objects.filter(pk=bookings[0].pk).delete()

        assert Booking.all_objects.count() == 3
        assert Booking.all_objects.filter(is_deleted=True).count() == 1


class TestSoftDeleteMixin:
    def test_instance_delete_is_soft(self, bookings):
        bookings[0].delete()

        assert Booking.all_objects.get(pk=bookings[0].pk).is_deleted

    def test_soft_delete_is_idempotent(self, bookings):
        booking = bookings[0]
        booking.soft_delete()
        deleted_at = booking.deleted_at

        booking.soft_delete()

        assert booking.deleted_at == deleted_at
