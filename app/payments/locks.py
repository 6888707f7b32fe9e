"""
Redis-backed distributed lock for payout-rail calls.

Database row locks serialize ledger writes, but a withdrawal's gateway
calls happen outside any transaction. DistributedLock keeps two workers
(a retried Celery task and an admin clicking "process" twice) from sending
the same withdrawal to Paystack concurrently.

Usage:
    from payments.locks import DistributedLock

    with DistributedLock(f"withdrawal:execute:{withdrawal_id}", ttl=60, timeout=5.0):
        WithdrawalService._execute_with_lock(withdrawal_id)
"""

from __future__ import annotations

import time
import uuid
from typing import TYPE_CHECKING

from django_redis import get_redis_connection

from payments.exceptions import LockAcquisitionError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis


class DistributedLock:
    """
    Token-owned Redis lock with a TTL.

    The TTL frees the key if the holder crashes; the token makes release a
    no-op for anyone but the holder.

    Args:
        key: Lock identifier, stored as "lock:<key>"
        ttl: Seconds before Redis expires the key
        blocking: Poll until acquired (or timeout) instead of failing at once
        timeout: Maximum seconds to poll in blocking mode

    Raises:
        LockAcquisitionError: When the lock is held elsewhere
    """

    # Delete only if we still own the key
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    POLL_INTERVAL = 0.05

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    @property
    def redis(self) -> Redis:
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    @property
    def is_held(self) -> bool:
        return self._token is not None

    def acquire(self) -> bool:
        token = uuid.uuid4().hex
        deadline = time.monotonic() + (self.timeout if self.blocking else 0)

        while True:
            if self.redis.set(self.key, token, nx=True, ex=self.ttl):
                self._token = token
                return True
            if time.monotonic() >= deadline:
                break
            time.sleep(self.POLL_INTERVAL)

        raise LockAcquisitionError(
            f"Lock '{self.key}' is held by another worker",
            details={"key": self.key, "timeout": self.timeout},
        )

    def release(self) -> bool:
        """Release the lock if we hold it. Safe to call more than once."""
        if self._token is None:
            return False

        released = self.redis.eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(released)

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


__all__ = [
    "DistributedLock",
]
