"""
DRF views for payments app.

This module provides API views for:
- Payment initialization, verification and history
- Wallet balance and transaction history
- Withdrawal requests, PIN setup and admin processing

Related files:
    - services/: EscrowService, WithdrawalService
    - ledger/services.py: WalletService
    - serializers.py: Request/response serializers
    - urls.py: URL routing

Endpoints:
    POST /api/v1/payments/initialize/                     - Start checkout
    POST /api/v1/payments/verify/{reference}/             - Verify with gateway
    GET  /api/v1/payments/                                - List my payments
    GET  /api/v1/payments/{id}/                           - Payment detail
    POST /api/v1/payments/webhooks/paystack/              - Paystack webhook
    GET  /api/v1/wallet/                                  - Wallet summary
    GET  /api/v1/wallet/transactions/                     - Ledger history
    GET  /api/v1/wallet/withdrawals/                      - List withdrawals
    POST /api/v1/wallet/withdrawals/                      - Request withdrawal
    POST /api/v1/wallet/pin/                              - Set withdrawal PIN
    POST /api/v1/wallet/withdrawals/{id}/process/         - Admin: pay out
    POST /api/v1/wallet/withdrawals/{id}/reject/          - Admin: reject

Security:
    - All endpoints require authentication except the webhook
    - Ownership and admin checks happen in the services
"""

from __future__ import annotations

from django.conf import settings
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import generics, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from payments.ledger.services import WalletService
from payments.serializers import (
    InitializePaymentSerializer,
    PaymentInitializationSerializer,
    PaymentSerializer,
    RejectWithdrawalSerializer,
    SetPinSerializer,
    TransactionFilterSerializer,
    TransactionSerializer,
    WalletSerializer,
    WithdrawalRequestSerializer,
    WithdrawalSerializer,
)
from payments.services import EscrowService, WithdrawalService

# =============================================================================
# Payments
# =============================================================================


@extend_schema_view(
    list=extend_schema(
        operation_id="list_payments",
        summary="List my payments",
        tags=["Payments"],
    ),
    retrieve=extend_schema(
        operation_id="get_payment",
        summary="Get payment",
        tags=["Payments"],
    ),
)
class PaymentViewSet(viewsets.ReadOnlyModelViewSet):
    """Payments where the current user is the client or the vendor."""

    permission_classes = [IsAuthenticated]
    serializer_class = PaymentSerializer

    def get_queryset(self):
        return EscrowService.list_payments(self.request.user)

    def retrieve(self, request, pk=None):
        payment = EscrowService.get_payment(request.user, pk)
        return Response(self.get_serializer(payment).data)


class InitializePaymentView(APIView):
    """
    Start paying for a booking.

    POST /api/v1/payments/initialize/

    Request body:
        {"booking_id": "<uuid>"}

    Returns:
        {"payment": {...}, "authorization_url": "...", "access_code": "..."}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="initialize_payment",
        summary="Initialize booking payment",
        request=InitializePaymentSerializer,
        responses={201: PaymentInitializationSerializer},
        tags=["Payments"],
    )
    def post(self, request):
        serializer = InitializePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = EscrowService.initialize_payment(
            request.user,
            serializer.validated_data["booking_id"],
        )
        return Response(
            PaymentInitializationSerializer(result).data,
            status=status.HTTP_201_CREATED,
        )


class VerifyPaymentView(APIView):
    """
    Ask the gateway for the outcome of a checkout.

    POST /api/v1/payments/verify/{reference}/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="verify_payment",
        summary="Verify payment",
        request=None,
        responses={200: PaymentSerializer},
        tags=["Payments"],
    )
    def post(self, request, reference):
        payment = EscrowService.verify_payment(reference, actor=request.user)
        return Response(PaymentSerializer(payment).data)


# =============================================================================
# Wallet
# =============================================================================


class WalletView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_wallet",
        summary="Wallet summary",
        responses={200: WalletSerializer},
        tags=["Wallet"],
    )
    def get(self, request):
        stats = WalletService.get_stats(request.user.pk)
        stats["currency"] = settings.PLATFORM_CURRENCY
        return Response(WalletSerializer(stats).data)


@extend_schema_view(
    get=extend_schema(
        operation_id="list_wallet_transactions",
        summary="List wallet transactions",
        parameters=[TransactionFilterSerializer],
        tags=["Wallet"],
    ),
)
class TransactionListView(generics.ListAPIView):
    """
    Ledger history, newest first.

    GET /api/v1/wallet/transactions/?type=refund&since=...&until=...
    """

    permission_classes = [IsAuthenticated]
    serializer_class = TransactionSerializer

    def get_queryset(self):
        filters = TransactionFilterSerializer(data=self.request.query_params)
        filters.is_valid(raise_exception=True)
        data = filters.validated_data

        return WalletService.get_transactions(
            self.request.user.pk,
            transaction_type=data.get("type"),
            since=data.get("since"),
            until=data.get("until"),
        )


class SetPinView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="set_withdrawal_pin",
        summary="Set withdrawal PIN",
        request=SetPinSerializer,
        responses={204: None},
        tags=["Wallet"],
    )
    def post(self, request):
        serializer = SetPinSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        WithdrawalService.set_pin(request.user, serializer.validated_data["pin"])
        return Response(status=status.HTTP_204_NO_CONTENT)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_withdrawals",
        summary="List withdrawals",
        description="Vendors see their own withdrawals; admins see all.",
        tags=["Wallet - Withdrawals"],
    ),
    create=extend_schema(
        operation_id="request_withdrawal",
        summary="Request withdrawal",
        request=WithdrawalRequestSerializer,
        responses={201: WithdrawalSerializer},
        tags=["Wallet - Withdrawals"],
    ),
)
class WithdrawalViewSet(
    mixins.ListModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = WithdrawalSerializer

    def get_queryset(self):
        return WithdrawalService.list_for(self.request.user)

    def create(self, request):
        serializer = WithdrawalRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        withdrawal = WithdrawalService.request(request.user, **serializer.validated_data)
        return Response(WithdrawalSerializer(withdrawal).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="process_withdrawal",
        summary="Process withdrawal (admin)",
        request=None,
        responses={202: WithdrawalSerializer},
        tags=["Wallet - Withdrawals"],
    )
    @action(detail=True, methods=["post"])
    def process(self, request, pk=None):
        withdrawal = WithdrawalService.process(request.user, pk)
        return Response(WithdrawalSerializer(withdrawal).data, status=status.HTTP_202_ACCEPTED)

    @extend_schema(
        operation_id="reject_withdrawal",
        summary="Reject withdrawal (admin)",
        request=RejectWithdrawalSerializer,
        responses={200: WithdrawalSerializer},
        tags=["Wallet - Withdrawals"],
    )
    @action(detail=True, methods=["post"])
    def reject(self, request, pk=None):
        serializer = RejectWithdrawalSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        withdrawal = WithdrawalService.reject(
            request.user, pk, reason=serializer.validated_data["reason"]
        )
        return Response(WithdrawalSerializer(withdrawal).data)
