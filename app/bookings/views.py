"""
ViewSet for the bookings API.

URL Structure:
    /api/v1/bookings/                   GET, POST
    /api/v1/bookings/stats/             GET
    /api/v1/bookings/{id}/              GET
    /api/v1/bookings/{id}/accept/       POST (vendor)
    /api/v1/bookings/{id}/reject/       POST (vendor)
    /api/v1/bookings/{id}/start/        POST (vendor)
    /api/v1/bookings/{id}/complete/     POST (client or vendor)
    /api/v1/bookings/{id}/cancel/       POST (client, vendor or admin)
    /api/v1/bookings/{id}/notes/        PATCH (client or vendor)

Every action delegates to BookingService; domain errors are rendered by
core.views.api_exception_handler.
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bookings.serializers import (
    BookingCreateSerializer,
    BookingFilterSerializer,
    BookingListSerializer,
    BookingSerializer,
    NotesSerializer,
    ReasonSerializer,
)
from bookings.services import BookingService

TAGS = ["Bookings"]


@extend_schema_view(
    list=extend_schema(
        operation_id="list_bookings",
        summary="List bookings",
        parameters=[BookingFilterSerializer],
        tags=TAGS,
    ),
    create=extend_schema(
        operation_id="create_booking",
        summary="Create booking",
        request=BookingCreateSerializer,
        responses={201: BookingSerializer},
        tags=TAGS,
    ),
    retrieve=extend_schema(
        operation_id="get_booking",
        summary="Get booking",
        tags=TAGS,
    ),
)
class BookingViewSet(
    mixins.ListModelMixin,
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for booking operations.

    list:
        Bookings where the user is a party. Filter with ?role=client|vendor
        and ?status=.

    create:
        Book a service. Price (including distance charge) is computed
        server-side.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = "[0-9a-f-]{36}"

    def get_queryset(self):
        filters = BookingFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return BookingService.list_bookings(
            self.request.user,
            role=filters.validated_data.get("role"),
            status=filters.validated_data.get("status"),
        )

    def get_serializer_class(self):
        if self.action == "list":
            return BookingListSerializer
        return BookingSerializer

    def create(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        booking = BookingService.create(request.user, **serializer.validated_data)
        return Response(BookingSerializer(booking).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        booking = BookingService.get(request.user, pk)
        return Response(BookingSerializer(booking).data)

    def _respond(self, booking):
        return Response(BookingSerializer(booking).data)

    @extend_schema(operation_id="accept_booking", summary="Accept booking", request=None, tags=TAGS)
    @action(detail=True, methods=["post"])
    def accept(self, request, pk=None):
        return self._respond(BookingService.accept(request.user, pk))

    @extend_schema(operation_id="reject_booking", summary="Reject booking", request=ReasonSerializer, tags=TAGS)
    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(
            BookingService.reject(request.user, pk, reason=serializer.validated_data["reason"])
        )

    @extend_schema(operation_id="start_booking", summary="Start booking", request=None, tags=TAGS)
    @action(detail=True, methods=["post"])
    def start(self, request, pk=None):
        return self._respond(BookingService.start(request.user, pk))

    @extend_schema(
        operation_id="complete_booking",
        summary="Mark booking complete",
        description=(
            "Record the caller's completion confirmation. When both parties "
            "have confirmed, the booking completes and escrow is released."
        ),
        request=None,
        tags=TAGS,
    )
    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        return self._respond(BookingService.mark_complete(request.user, pk))

    @extend_schema(operation_id="cancel_booking", summary="Cancel booking", request=ReasonSerializer, tags=TAGS)
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(
            BookingService.cancel(request.user, pk, reason=serializer.validated_data["reason"])
        )

    @extend_schema(operation_id="update_booking_notes", summary="Update my notes", request=NotesSerializer, tags=TAGS)
    @action(detail=True, methods=["patch"])
    def notes(self, request, pk=None):
        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(
            BookingService.update_notes(request.user, pk, serializer.validated_data["notes"])
        )

    @extend_schema(operation_id="booking_stats", summary="Booking counts per status", tags=TAGS)
    @action(detail=False, methods=["get"])
    def stats(self, request):
        return Response(BookingService.stats(request.user))
