"""
Pytest fixtures for payment tests.

Sections:
    - Gateway Fixtures: PaystackAdapter with every network call mocked
    - Lock Fixtures: Redis connection replaced for DistributedLock
    - Booking Fixtures: Bookings with money already in escrow
"""

from unittest.mock import MagicMock

import pytest

from payments.adapters import (
    InitializeTransactionResult,
    PaystackAdapter,
    TransferResult,
    VerifyTransactionResult,
)
from payments.tests.factories import EscrowedBookingFactory


# ==========================================================================
# Gateway Fixtures
# ==========================================================================


@pytest.fixture
def mock_paystack(mocker):
    """
    Mock every outbound PaystackAdapter call.

    Each attribute is the MagicMock standing in for the adapter method, so
    tests can inspect calls or swap return values and side effects:

        mock_paystack.initiate_transfer.side_effect = PaystackTimeoutError("slow")
    """
    mocks = MagicMock()
    mocks.initialize_transaction = mocker.patch.object(
        PaystackAdapter,
        "initialize_transaction",
        side_effect=lambda params: InitializeTransactionResult(
            authorization_url=f"https://checkout.paystack.com/{params.reference}",
            access_code=f"ac_{params.reference[-8:]}",
            reference=params.reference,
        ),
    )
    mocks.verify_transaction = mocker.patch.object(
        PaystackAdapter,
        "verify_transaction",
        side_effect=lambda reference: VerifyTransactionResult(
            reference=reference,
            status="success",
            amount=0,
            currency="NGN",
            authorization_code="AUTH_test",
            gateway_response="Successful",
            raw_response={"reference": reference, "status": "success"},
        ),
    )
    mocks.create_transfer_recipient = mocker.patch.object(
        PaystackAdapter,
        "create_transfer_recipient",
        return_value="RCP_test123",
    )
    mocks.initiate_transfer = mocker.patch.object(
        PaystackAdapter,
        "initiate_transfer",
        side_effect=lambda params: TransferResult(
            transfer_code="TRF_test123",
            reference=params.reference,
            status="pending",
        ),
    )
    return mocks


# ==========================================================================
# Lock Fixtures
# ==========================================================================


@pytest.fixture
def redis_conn(mocker):
    """
    Redis connection used by DistributedLock.

    SET NX succeeds and the release script reports a deleted key, so every
    lock is acquired on the first try.
    """
    conn = MagicMock()
    conn.set.return_value = True
    conn.eval.return_value = 1
    mocker.patch("payments.locks.get_redis_connection", return_value=conn)
    return conn


# ==========================================================================
# Booking Fixtures
# ==========================================================================


@pytest.fixture
def escrowed_booking(db):
    """Accepted booking (6000, 10% commission) with its payment held."""
    return EscrowedBookingFactory(accepted=True)


@pytest.fixture
def held_payment(escrowed_booking):
    return escrowed_booking.payments.get()
