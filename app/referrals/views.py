"""
Views for referrals.

URL Structure:
    /api/v1/referrals/          GET  - Referrals made with my code
    /api/v1/referrals/apply/    POST - Apply someone's code
    /api/v1/referrals/stats/    GET  - My referral counts and earnings
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from referrals.serializers import ApplyReferralCodeSerializer, ReferralSerializer
from referrals.services import ReferralService

TAGS = ["Referrals"]


@extend_schema_view(
    get=extend_schema(operation_id="list_referrals", summary="List my referrals", tags=TAGS),
)
class ReferralListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ReferralSerializer

    def get_queryset(self):
        return ReferralService.list_referrals(self.request.user)


class ApplyReferralCodeView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="apply_referral_code",
        summary="Apply a referral code",
        request=ApplyReferralCodeSerializer,
        responses={201: ReferralSerializer},
        tags=TAGS,
    )
    def post(self, request):
        serializer = ApplyReferralCodeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        referral = ReferralService.apply_code(request.user, serializer.validated_data["code"])
        return Response(ReferralSerializer(referral).data, status=status.HTTP_201_CREATED)


class ReferralStatsView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(operation_id="referral_stats", summary="My referral stats", tags=TAGS)
    def get(self, request):
        return Response(ReferralService.stats(request.user))
