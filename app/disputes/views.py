"""
ViewSet for the disputes API.

URL Structure:
    /api/v1/disputes/                    GET, POST
    /api/v1/disputes/stats/              GET (admin)
    /api/v1/disputes/{id}/               GET
    /api/v1/disputes/{id}/evidence/      POST (party)
    /api/v1/disputes/{id}/messages/      POST (party or admin)
    /api/v1/disputes/{id}/assign/        POST (admin)
    /api/v1/disputes/{id}/priority/      POST (admin)
    /api/v1/disputes/{id}/resolve/       POST (admin)
    /api/v1/disputes/{id}/close/         POST (admin)
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from disputes.serializers import (
    AddEvidenceSerializer,
    AddMessageSerializer,
    AssignDisputeSerializer,
    DisputeCreateSerializer,
    DisputeFilterSerializer,
    DisputeListSerializer,
    DisputeMessageSerializer,
    DisputeSerializer,
    ResolveDisputeSerializer,
    UpdatePrioritySerializer,
)
from disputes.services import DisputeService

TAGS = ["Disputes"]


@extend_schema_view(
    list=extend_schema(
        operation_id="list_disputes",
        summary="List disputes",
        parameters=[DisputeFilterSerializer],
        tags=TAGS,
    ),
    create=extend_schema(
        operation_id="open_dispute",
        summary="Open a dispute on a booking",
        request=DisputeCreateSerializer,
        responses={201: DisputeSerializer},
        tags=TAGS,
    ),
    retrieve=extend_schema(operation_id="get_dispute", summary="Get dispute", tags=TAGS),
)
class DisputeViewSet(
    mixins.ListModelMixin,
    mixins.CreateModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    ViewSet for dispute operations.

    Parties see their own disputes; admins see all of them.
    """

    permission_classes = [IsAuthenticated]
    lookup_value_regex = "[0-9a-f-]{36}"

    def get_queryset(self):
        filters = DisputeFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        return DisputeService.list_disputes(self.request.user, **filters.validated_data)

    def get_serializer_class(self):
        if self.action == "list":
            return DisputeListSerializer
        return DisputeSerializer

    def create(self, request):
        serializer = DisputeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dispute = DisputeService.open(request.user, **serializer.validated_data)
        return Response(DisputeSerializer(dispute).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return Response(DisputeSerializer(DisputeService.get(request.user, pk)).data)

    def _respond(self, dispute):
        return Response(DisputeSerializer(dispute).data)

    @extend_schema(operation_id="add_dispute_evidence", summary="Add evidence", request=AddEvidenceSerializer, tags=TAGS)
    @action(detail=True, methods=["post"])
    def evidence(self, request, pk=None):
        serializer = AddEvidenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(
            DisputeService.add_evidence(request.user, pk, serializer.validated_data["evidence"])
        )

    @extend_schema(
        operation_id="add_dispute_message",
        summary="Post a message",
        request=AddMessageSerializer,
        responses={201: DisputeMessageSerializer},
        tags=TAGS,
    )
    @action(detail=True, methods=["post"])
    def messages(self, request, pk=None):
        serializer = AddMessageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = DisputeService.add_message(request.user, pk, **serializer.validated_data)
        return Response(DisputeMessageSerializer(message).data, status=status.HTTP_201_CREATED)

    @extend_schema(operation_id="assign_dispute", summary="Assign to an admin", request=AssignDisputeSerializer, tags=TAGS)
    @action(detail=True, methods=["post"])
    def assign(self, request, pk=None):
        serializer = AssignDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(
            DisputeService.assign(request.user, pk, serializer.validated_data["assign_to_id"])
        )

    @extend_schema(operation_id="update_dispute_priority", summary="Set priority", request=UpdatePrioritySerializer, tags=TAGS)
    @action(detail=True, methods=["post"])
    def priority(self, request, pk=None):
        serializer = UpdatePrioritySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._respond(
            DisputeService.update_priority(request.user, pk, serializer.validated_data["priority"])
        )

    @extend_schema(
        operation_id="resolve_dispute",
        summary="Resolve dispute",
        description="Decide the dispute and move the held payment (refund, release or split).",
        request=ResolveDisputeSerializer,
        tags=TAGS,
    )
    @action(detail=True, methods=["post"])
    def resolve(self, request, pk=None):
        serializer = ResolveDisputeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        return self._respond(
            DisputeService.resolve(
                request.user,
                pk,
                resolution=data["resolution"],
                details=data["resolution_details"],
                refund_amount=data.get("refund_amount"),
                vendor_payment_amount=data.get("vendor_payment_amount"),
            )
        )

    @extend_schema(operation_id="close_dispute", summary="Close dispute", request=None, tags=TAGS)
    @action(detail=True, methods=["post"])
    def close(self, request, pk=None):
        return self._respond(DisputeService.close(request.user, pk))

    @extend_schema(operation_id="dispute_stats", summary="Dispute counts", tags=TAGS)
    @action(detail=False, methods=["get"])
    def stats(self, request):
        return Response(DisputeService.stats(request.user))
