"""
DRF serializers for payments app.

This module provides serializers for:
- Payment initialization and display
- Wallet summary and transaction history
- Withdrawal requests, PIN setup and admin actions

Related files:
    - models/: Payment, Withdrawal; ledger/models.py: Wallet, Transaction
    - views.py: Payment and wallet API views

Serializers only validate request shape. Business rules (minimum amount,
PIN check, balance) are enforced by the services, which raise
core.exceptions errors rendered by core.views.api_exception_handler.
"""

from __future__ import annotations

from rest_framework import serializers

from payments.ledger.models import Transaction, TransactionType
from payments.models import Payment, Withdrawal

# =============================================================================
# Payments
# =============================================================================


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "booking",
            "client",
            "vendor",
            "amount",
            "currency",
            "commission_rate",
            "platform_fee",
            "vendor_amount",
            "status",
            "escrow_status",
            "reference",
            "authorization_url",
            "expires_at",
            "paid_at",
            "held_at",
            "released_at",
            "refunded_at",
            "refund_amount",
            "vendor_payment_amount",
            "created_at",
        ]
        read_only_fields = fields


class InitializePaymentSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()


class PaymentInitializationSerializer(serializers.Serializer):
    """Checkout artifacts returned by POST /payments/initialize/."""

    payment = PaymentSerializer()
    authorization_url = serializers.URLField()
    access_code = serializers.CharField()


# =============================================================================
# Wallet
# =============================================================================


class WalletSerializer(serializers.Serializer):
    balance = serializers.IntegerField()
    currency = serializers.CharField()
    total_received = serializers.IntegerField()
    total_withdrawn = serializers.IntegerField()
    pending_withdrawals = serializers.IntegerField()


class TransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Transaction
        fields = [
            "id",
            "type",
            "amount",
            "balance_before",
            "balance_after",
            "currency",
            "reference",
            "booking",
            "payment",
            "withdrawal",
            "description",
            "created_at",
        ]
        read_only_fields = fields


class TransactionFilterSerializer(serializers.Serializer):
    """Query parameters for GET /wallet/transactions/."""

    type = serializers.ChoiceField(choices=TransactionType.choices, required=False)
    since = serializers.DateTimeField(required=False)
    until = serializers.DateTimeField(required=False)


# =============================================================================
# Withdrawals
# =============================================================================


class WithdrawalSerializer(serializers.ModelSerializer):
    class Meta:
        model = Withdrawal
        fields = [
            "id",
            "amount",
            "fee",
            "net_amount",
            "currency",
            "bank_name",
            "account_number",
            "account_name",
            "status",
            "reference",
            "processed_at",
            "completed_at",
            "failed_at",
            "rejected_at",
            "failure_reason",
            "rejection_reason",
            "created_at",
        ]
        read_only_fields = fields


class WithdrawalRequestSerializer(serializers.Serializer):
    amount = serializers.IntegerField(min_value=1)
    bank_name = serializers.CharField(max_length=100)
    account_number = serializers.RegexField(
        r"^\d{10}$",
        error_messages={"invalid": "Account number must be 10 digits."},
    )
    account_name = serializers.CharField(max_length=200)
    pin = serializers.CharField(write_only=True)


class SetPinSerializer(serializers.Serializer):
    pin = serializers.CharField(write_only=True)


class RejectWithdrawalSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
