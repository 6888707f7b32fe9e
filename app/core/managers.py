"""
Custom QuerySet and Manager classes for soft deletion.

Domain records (bookings, payments, disputes, withdrawals) are never
physically removed; they are tagged deleted and excluded at the query
layer. Ledger transactions do not use these managers at all: they are
immutable and never deleted.

Usage:
    from core.managers import SoftDeleteManager, SoftDeleteQuerySet

    class BookingQuerySet(SoftDeleteQuerySet):
        def for_party(self, user):
            return self.filter(Q(client=user) | Q(vendor=user))

    class Booking(SoftDeleteMixin, BaseModel):
        objects = SoftDeleteManager.from_queryset(BookingQuerySet)()
        all_objects = SoftDeleteQuerySet.as_manager()

    Booking.objects.for_party(user)       # excludes deleted
    Booking.all_objects.all()             # includes deleted
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone


class SoftDeleteQuerySet(models.QuerySet):
    """
    QuerySet whose delete() tags rows instead of removing them.

    The default filtering of deleted rows happens in SoftDeleteManager, so
    the same QuerySet can back an unfiltered manager.
    """

    def delete(self) -> tuple[int, dict[str, int]]:
        """
        Soft delete all objects in queryset.

        Returns:
            Tuple of (count, {model_label: count}) matching Django's delete()
        """
        count = self.filter(is_deleted=False).update(
            is_deleted=True, deleted_at=timezone.now()
        )
        return count, {self.model._meta.label: count}


class SoftDeleteManager(models.Manager.from_queryset(SoftDeleteQuerySet)):
    """
    Manager that filters out soft-deleted records by default.

    Pair with ``all_objects = SoftDeleteQuerySet.as_manager()`` for admin
    access to deleted rows.
    """

    def get_queryset(self) -> SoftDeleteQuerySet:
        return super().get_queryset().filter(is_deleted=False)
