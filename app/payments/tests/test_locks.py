"""
Tests for DistributedLock against a mocked Redis connection.
"""

import pytest

from payments.exceptions import LockAcquisitionError
from payments.locks import DistributedLock


class TestAcquire:
    def test_sets_key_with_nx_and_ttl(self, redis_conn):
        lock = DistributedLock("withdrawal:execute:abc", ttl=60)

        assert lock.acquire() is True

        key, token = redis_conn.set.call_args.args
        assert key == "lock:withdrawal:execute:abc"
        assert redis_conn.set.call_args.kwargs == {"nx": True, "ex": 60}
        assert lock.is_held
        assert lock._token == token

    def test_non_blocking_fails_immediately(self, redis_conn):
        redis_conn.set.return_value = False
        lock = DistributedLock("busy", blocking=False)

        with pytest.raises(LockAcquisitionError) as exc_info:
            lock.acquire()

        assert redis_conn.set.call_count == 1
        assert exc_info.value.details["key"] == "lock:busy"
        assert not lock.is_held

    def test_blocking_polls_until_free(self, redis_conn, mocker):
        clock = mocker.patch("payments.locks.time")
        clock.monotonic.return_value = 0.0
        redis_conn.set.side_effect = [False, False, True]
        lock = DistributedLock("busy", timeout=5.0)

        assert lock.acquire() is True
        assert redis_conn.set.call_count == 3
        assert clock.sleep.call_count == 2

    def test_blocking_gives_up_after_timeout(self, redis_conn, mocker):
        clock = mocker.patch("payments.locks.time")
        clock.monotonic.side_effect = [0.0, 0.5, 1.5]
        redis_conn.set.return_value = False
        lock = DistributedLock("busy", timeout=1.0)

        with pytest.raises(LockAcquisitionError):
            lock.acquire()

        assert redis_conn.set.call_count == 2


class TestRelease:
    def test_release_runs_owner_check_script(self, redis_conn):
        lock = DistributedLock("k")
        lock.acquire()
        token = lock._token

        assert lock.release() is True

        script, numkeys, key, arg = redis_conn.eval.call_args.args
        assert script == DistributedLock.RELEASE_SCRIPT
        assert (numkeys, key, arg) == (1, "lock:k", token)
        assert not lock.is_held

    def test_release_without_acquire_is_a_no_op(self, redis_conn):
        assert DistributedLock("k").release() is False
        redis_conn.eval.assert_not_called()

    def test_release_reports_lost_lock(self, redis_conn):
        redis_conn.eval.return_value = 0
        lock = DistributedLock("k")
        lock.acquire()

        assert lock.release() is False


class TestContextManager:
    def test_releases_on_exception(self, redis_conn):
        with pytest.raises(RuntimeError):
            with DistributedLock("k"):
                raise RuntimeError("boom")

        redis_conn.eval.assert_called_once()

    def test_does_not_enter_when_held_elsewhere(self, redis_conn):
        redis_conn.set.return_value = False
        entered = False

        with pytest.raises(LockAcquisitionError):
            with DistributedLock("k", blocking=False):
                entered = True

        assert entered is False
        redis_conn.eval.assert_not_called()
