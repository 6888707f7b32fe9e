"""
Withdrawal service: vendor payouts from wallet balance to a bank account.

Lifecycle:
    request   -> wallet debited, Withdrawal PENDING
    process   -> admin queues execute_withdrawal
    execute   -> PROCESSING, transfer recipient + transfer at Paystack
    complete  -> COMPLETED (transfer.success webhook), debit stands
    fail      -> FAILED (gateway error, transfer.failed/reversed), re-credit
    reject    -> REJECTED (admin declines a pending request), re-credit

execute() follows the two-phase pattern used for every gateway call that
moves money out:
    1. Under a Redis lock, move the withdrawal to PROCESSING and commit
    2. Call Paystack outside any transaction
    3. Store recipient/transfer codes; webhooks advance the state

Transient gateway errors are re-raised so the Celery task retries with the
same transfer reference (Paystack's idempotency key). Permanent errors
fail the withdrawal and re-credit the wallet.
"""

from __future__ import annotations

import re
import uuid
from typing import TYPE_CHECKING

from django.conf import settings
from django.db.models import QuerySet

from core.exceptions import PermissionDeniedError, ValidationError
from core.helpers import generate_reference
from core.services import BaseService
from payments import signals
from payments.adapters import (
    PaystackAdapter,
    TransferParams,
    TransferRecipientParams,
    get_bank_code,
)
from payments.exceptions import (
    InvalidWithdrawalError,
    LockAcquisitionError,
    PaystackError,
    WithdrawalNotFoundError,
)
from payments.ledger.models import TransactionType
from payments.ledger.services import WalletService
from payments.ledger.types import LedgerEntryParams
from payments.locks import DistributedLock
from payments.models import Withdrawal
from payments.state_machines import WithdrawalStatus

if TYPE_CHECKING:
    from authentication.models import User


# =============================================================================
# Constants
# =============================================================================

WITHDRAWAL_LOCK_TTL = 120
WITHDRAWAL_LOCK_TIMEOUT = 10.0

PIN_PATTERN = re.compile(r"^\d{4,6}$")


class WithdrawalService(BaseService):
    """
    Service for vendor withdrawals.

    All methods are classmethods - no instance state is maintained.
    """

    # =========================================================================
    # PIN
    # =========================================================================

    @classmethod
    def set_pin(cls, user: User, pin: str) -> None:
        """
        Set or replace the user's withdrawal PIN.

        Raises:
            ValidationError: PIN is not 4-6 digits
        """
        if not isinstance(pin, str) or not PIN_PATTERN.match(pin):
            raise ValidationError(
                "PIN must be 4 to 6 digits",
                error_code="INVALID_PIN_FORMAT",
            )
        user.set_withdrawal_pin(pin)
        user.save(update_fields=["withdrawal_pin", "updated_at"])
        cls.get_logger().info("Withdrawal PIN set", extra={"user_id": str(user.pk)})

    # =========================================================================
    # Request
    # =========================================================================

    @classmethod
    def request(
        cls,
        user: User,
        amount: int,
        bank_name: str,
        account_number: str,
        account_name: str,
        pin: str,
    ) -> Withdrawal:
        """
        Request a withdrawal and reserve the funds.

        The wallet is debited now; the bank transfer happens when an admin
        processes the request.

        Raises:
            PermissionDeniedError: User is not a vendor
            InvalidWithdrawalError: PIN missing/wrong, amount below minimum
                or not above the fee
            InsufficientBalance: Wallet balance below amount
        """
        if not user.is_vendor:
            raise PermissionDeniedError("Only vendors can withdraw funds")

        if not user.has_withdrawal_pin:
            raise InvalidWithdrawalError(
                "Set a withdrawal PIN first",
                error_code="WITHDRAWAL_PIN_NOT_SET",
            )
        if not user.check_withdrawal_pin(pin):
            cls.get_logger().warning(
                "Withdrawal rejected: wrong PIN",
                extra={"user_id": str(user.pk)},
            )
            raise InvalidWithdrawalError(
                "Invalid withdrawal PIN",
                error_code="INVALID_WITHDRAWAL_PIN",
            )

        minimum = settings.WITHDRAWAL_MIN_AMOUNT
        fee = settings.WITHDRAWAL_FEE
        if amount < minimum:
            raise InvalidWithdrawalError(
                f"Minimum withdrawal amount is {minimum}",
                error_code="WITHDRAWAL_BELOW_MINIMUM",
                details={"amount": amount, "minimum": minimum},
            )
        if amount <= fee:
            raise InvalidWithdrawalError(
                "Withdrawal amount must exceed the fee",
                details={"amount": amount, "fee": fee},
            )

        with cls.atomic():
            withdrawal = Withdrawal.objects.create(
                user=user,
                amount=amount,
                fee=fee,
                net_amount=amount - fee,
                currency=settings.PLATFORM_CURRENCY,
                bank_name=bank_name,
                bank_code=get_bank_code(bank_name),
                account_number=account_number,
                account_name=account_name,
                reference=generate_reference("WTH"),
            )
            WalletService.debit(
                LedgerEntryParams(
                    user_id=user.pk,
                    amount=amount,
                    type=TransactionType.WITHDRAWAL,
                    reference=f"withdrawal:{withdrawal.id}:debit",
                    withdrawal_id=withdrawal.id,
                    description=f"Withdrawal to {bank_name} {account_number[-4:]}",
                )
            )
            cls.on_commit(
                lambda: signals.withdrawal_requested.send(sender=Withdrawal, withdrawal=withdrawal)
            )

        cls.get_logger().info(
            "Withdrawal requested",
            extra={
                "withdrawal_id": str(withdrawal.id),
                "user_id": str(user.pk),
                "amount": amount,
                "fee": fee,
                "reference": withdrawal.reference,
            },
        )
        return withdrawal

    # =========================================================================
    # Admin actions
    # =========================================================================

    @classmethod
    def process(cls, admin: User, withdrawal_id: uuid.UUID) -> Withdrawal:
        """
        Queue a pending withdrawal for payout.

        The gateway calls run in payments.tasks.execute_withdrawal once this
        transaction commits.
        """
        from payments.tasks import execute_withdrawal

        cls._require_admin(admin)
        withdrawal = cls.get_withdrawal(withdrawal_id)
        if withdrawal.status != WithdrawalStatus.PENDING:
            raise InvalidWithdrawalError(
                "Only pending withdrawals can be processed",
                details={"withdrawal_id": str(withdrawal.id), "status": withdrawal.status},
            )

        cls.on_commit(lambda: execute_withdrawal.delay(str(withdrawal.id), str(admin.pk)))
        cls.get_logger().info(
            "Withdrawal queued for processing",
            extra={"withdrawal_id": str(withdrawal.id), "admin_id": str(admin.pk)},
        )
        return withdrawal

    @classmethod
    def reject(cls, admin: User, withdrawal_id: uuid.UUID, reason: str = "") -> Withdrawal:
        """
        Decline a pending withdrawal and return the funds.

        Raises:
            PermissionDeniedError: Actor is not an admin
            InvalidWithdrawalError: Withdrawal is no longer pending
        """
        cls._require_admin(admin)
        with cls.atomic():
            withdrawal = cls._lock(withdrawal_id)
            if withdrawal.status != WithdrawalStatus.PENDING:
                raise InvalidWithdrawalError(
                    "Only pending withdrawals can be rejected",
                    details={"withdrawal_id": str(withdrawal.id), "status": withdrawal.status},
                )
            withdrawal.reject(admin=admin, reason=reason)
            withdrawal.save()
            cls._reverse(withdrawal, reason or "Withdrawal rejected")
            cls.on_commit(
                lambda: signals.withdrawal_failed.send(
                    sender=Withdrawal, withdrawal=withdrawal, reason=reason
                )
            )

        cls.get_logger().info(
            "Withdrawal rejected",
            extra={
                "withdrawal_id": str(withdrawal.id),
                "admin_id": str(admin.pk),
                "amount": withdrawal.amount,
            },
        )
        return withdrawal

    # =========================================================================
    # Execution
    # =========================================================================

    @classmethod
    def execute(cls, withdrawal_id: uuid.UUID, admin_id: uuid.UUID | None = None) -> Withdrawal:
        """
        Send a withdrawal to the bank.

        Raises:
            LockAcquisitionError: Another worker is executing it
            PaystackError: Transient gateway failure (retryable); permanent
                failures are absorbed into the FAILED state instead
        """
        lock_key = f"withdrawal:execute:{withdrawal_id}"
        try:
            with DistributedLock(lock_key, ttl=WITHDRAWAL_LOCK_TTL, timeout=WITHDRAWAL_LOCK_TIMEOUT):
                return cls._execute_with_lock(withdrawal_id, admin_id)
        except LockAcquisitionError:
            cls.get_logger().warning(
                "Failed to acquire lock for withdrawal execution",
                extra={"withdrawal_id": str(withdrawal_id)},
            )
            raise

    @classmethod
    def _execute_with_lock(cls, withdrawal_id: uuid.UUID, admin_id: uuid.UUID | None) -> Withdrawal:
        # Phase 1: PENDING -> PROCESSING, committed before any gateway call
        with cls.atomic():
            withdrawal = cls._lock(withdrawal_id)
            if withdrawal.status == WithdrawalStatus.PENDING:
                admin = cls._user(admin_id) if admin_id else None
                withdrawal.start_processing(admin)
                withdrawal.save()
            elif withdrawal.status != WithdrawalStatus.PROCESSING or withdrawal.transfer_code:
                cls.get_logger().info(
                    "Withdrawal already executed, skipping",
                    extra={"withdrawal_id": str(withdrawal.id), "status": withdrawal.status},
                )
                return withdrawal

        # Phase 2: gateway calls, outside the transaction
        try:
            if not withdrawal.recipient_code:
                withdrawal.recipient_code = PaystackAdapter.create_transfer_recipient(
                    TransferRecipientParams(
                        account_name=withdrawal.account_name,
                        account_number=withdrawal.account_number,
                        bank_code=withdrawal.bank_code,
                        currency=withdrawal.currency,
                    )
                )
                withdrawal.save(update_fields=["recipient_code", "updated_at"])

            transfer = PaystackAdapter.initiate_transfer(
                TransferParams(
                    amount=withdrawal.net_amount,
                    recipient_code=withdrawal.recipient_code,
                    reference=withdrawal.reference,
                    reason=f"Withdrawal {withdrawal.reference}",
                    currency=withdrawal.currency,
                )
            )
        except PaystackError as e:
            if e.is_retryable:
                cls.get_logger().warning(
                    "Transient gateway error during withdrawal, will retry",
                    extra={"withdrawal_id": str(withdrawal.id), "error_code": e.error_code},
                )
                raise
            cls.get_logger().error(
                "Withdrawal transfer failed",
                extra={"withdrawal_id": str(withdrawal.id), "error_code": e.error_code},
                exc_info=True,
            )
            return cls.fail(withdrawal.reference, reason=e.message)

        # Phase 3: record the transfer; webhooks finish the job
        withdrawal.transfer_code = transfer.transfer_code
        withdrawal.save(update_fields=["transfer_code", "updated_at"])

        cls.get_logger().info(
            "Withdrawal transfer initiated",
            extra={
                "withdrawal_id": str(withdrawal.id),
                "transfer_code": transfer.transfer_code,
                "net_amount": withdrawal.net_amount,
            },
        )
        return withdrawal

    # =========================================================================
    # Transfer outcomes
    # =========================================================================

    @classmethod
    def complete(cls, reference: str, transfer_code: str = "") -> Withdrawal:
        """
        Mark a processing withdrawal completed. Idempotent.

        Outcomes for withdrawals that are not processing are logged and
        ignored; the wallet debit stands either way.
        """
        with cls.atomic():
            withdrawal = cls._lock_by_reference(reference)
            if withdrawal.status != WithdrawalStatus.PROCESSING:
                cls.get_logger().info(
                    "Transfer success ignored",
                    extra={"withdrawal_id": str(withdrawal.id), "status": withdrawal.status},
                )
                return withdrawal

            withdrawal.complete()
            if transfer_code and not withdrawal.transfer_code:
                withdrawal.transfer_code = transfer_code
            withdrawal.save()
            cls.on_commit(
                lambda: signals.withdrawal_completed.send(sender=Withdrawal, withdrawal=withdrawal)
            )

        cls.get_logger().info(
            "Withdrawal completed",
            extra={"withdrawal_id": str(withdrawal.id), "reference": reference},
        )
        return withdrawal

    @classmethod
    def fail(cls, reference: str, reason: str = "") -> Withdrawal:
        """
        Fail a processing withdrawal and re-credit the wallet. Idempotent.
        """
        with cls.atomic():
            withdrawal = cls._lock_by_reference(reference)
            if withdrawal.status != WithdrawalStatus.PROCESSING:
                cls.get_logger().info(
                    "Transfer failure ignored",
                    extra={"withdrawal_id": str(withdrawal.id), "status": withdrawal.status},
                )
                return withdrawal

            withdrawal.fail(reason)
            withdrawal.save()
            cls._reverse(withdrawal, reason or "Withdrawal failed")
            cls.on_commit(
                lambda: signals.withdrawal_failed.send(
                    sender=Withdrawal, withdrawal=withdrawal, reason=reason
                )
            )

        cls.get_logger().warning(
            "Withdrawal failed and reversed",
            extra={
                "withdrawal_id": str(withdrawal.id),
                "reference": reference,
                "reason": reason,
                "amount": withdrawal.amount,
            },
        )
        return withdrawal

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def list_for(cls, user: User) -> QuerySet[Withdrawal]:
        if user.is_platform_admin:
            return Withdrawal.objects.all()
        return Withdrawal.objects.filter(user=user)

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _reverse(withdrawal: Withdrawal, description: str) -> None:
        WalletService.credit(
            LedgerEntryParams(
                user_id=withdrawal.user_id,
                amount=withdrawal.amount,
                type=TransactionType.WITHDRAWAL_REVERSAL,
                reference=f"withdrawal:{withdrawal.id}:reversal",
                withdrawal_id=withdrawal.id,
                description=description[:255],
            )
        )

    @staticmethod
    def _require_admin(user: User) -> None:
        if not user.is_platform_admin:
            raise PermissionDeniedError("Only admins can manage withdrawals")

    @staticmethod
    def _user(user_id: uuid.UUID) -> User:
        from django.contrib.auth import get_user_model

        return get_user_model().objects.filter(pk=user_id).first()

    @staticmethod
    def get_withdrawal(withdrawal_id: uuid.UUID) -> Withdrawal:
        withdrawal = Withdrawal.objects.filter(pk=withdrawal_id).first()
        if withdrawal is None:
            raise WithdrawalNotFoundError(
                "Withdrawal not found",
                details={"withdrawal_id": str(withdrawal_id)},
            )
        return withdrawal

    @staticmethod
    def _lock(withdrawal_id: uuid.UUID) -> Withdrawal:
        withdrawal = Withdrawal.objects.select_for_update().filter(pk=withdrawal_id).first()
        if withdrawal is None:
            raise WithdrawalNotFoundError(
                "Withdrawal not found",
                details={"withdrawal_id": str(withdrawal_id)},
            )
        return withdrawal

    @staticmethod
    def _lock_by_reference(reference: str) -> Withdrawal:
        withdrawal = Withdrawal.objects.select_for_update().filter(reference=reference).first()
        if withdrawal is None:
            raise WithdrawalNotFoundError(
                "Withdrawal not found",
                details={"reference": reference},
            )
        return withdrawal
