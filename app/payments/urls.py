"""
URL configuration for the payments app.

Routes:
    payments/                          - Payment list/detail, initialize, verify
    payments/webhooks/paystack/        - Paystack webhook endpoint
    wallet/                            - Wallet summary, transactions, PIN
    wallet/withdrawals/                - Withdrawal list/create/process/reject

Included at /api/v1/ by config/urls.py.
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from payments.views import (
    InitializePaymentView,
    PaymentViewSet,
    SetPinView,
    TransactionListView,
    VerifyPaymentView,
    WalletView,
    WithdrawalViewSet,
)
from payments.webhooks.views import paystack_webhook

payments_router = SimpleRouter()
payments_router.register(r"", PaymentViewSet, basename="payment")

withdrawals_router = SimpleRouter()
withdrawals_router.register(r"withdrawals", WithdrawalViewSet, basename="withdrawal")

app_name = "payments"

urlpatterns = [
    # Payments
    path("payments/initialize/", InitializePaymentView.as_view(), name="payment-initialize"),
    path(
        "payments/verify/<str:reference>/",
        VerifyPaymentView.as_view(),
        name="payment-verify",
    ),
    path("payments/webhooks/paystack/", paystack_webhook, name="paystack-webhook"),
    path("payments/", include(payments_router.urls)),
    # Wallet
    path("wallet/", WalletView.as_view(), name="wallet"),
    path("wallet/transactions/", TransactionListView.as_view(), name="wallet-transactions"),
    path("wallet/pin/", SetPinView.as_view(), name="wallet-pin"),
    path("wallet/", include(withdrawals_router.urls)),
]
