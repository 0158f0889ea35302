"""
Tests for the keyed booking lock manager.
"""

from datetime import date
import threading
import time
from unittest.mock import MagicMock

import pytest

from goreserve.core.booking_lock import (
    BookingLockManager,
    booking_lock_key,
    slot_lock_key,
    wallet_lock_key,
)
from goreserve.core.exceptions import BookingLockTimeoutException


def test_key_helpers():
    assert slot_lock_key("biz", date(2026, 3, 2)) == "slot:biz:2026-03-02"
    assert booking_lock_key("bk") == "booking:bk:mutex"
    assert wallet_lock_key("u") == "wallet:u:mutex"


def test_same_key_is_serialized():
    manager = BookingLockManager(backend="local", wait_seconds=2)
    inside = []
    overlap = []

    def worker():
        with manager.hold("slot:biz:2026-03-02"):
            if inside:
                overlap.append(True)
            inside.append(True)
            time.sleep(0.05)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert overlap == []
    assert manager.active_keys() == 0


def test_different_keys_do_not_block():
    manager = BookingLockManager(backend="local", wait_seconds=0.1)
    with manager.hold("slot:a:2026-03-02"):
        with manager.hold("slot:b:2026-03-02"):
            assert manager.active_keys() == 2


def test_timeout_raises():
    manager = BookingLockManager(backend="local", wait_seconds=0.05)
    held = threading.Event()
    release = threading.Event()

    def holder():
        with manager.hold("booking:x:mutex"):
            held.set()
            release.wait(2)

    thread = threading.Thread(target=holder)
    thread.start()
    held.wait(2)
    try:
        with pytest.raises(BookingLockTimeoutException) as exc_info:
            with manager.hold("booking:x:mutex"):
                pass
        assert exc_info.value.code == "BOOKING_LOCK_TIMEOUT"
        assert exc_info.value.details["lock_key"] == "booking:x:mutex"
    finally:
        release.set()
        thread.join()


def test_lock_released_on_error():
    manager = BookingLockManager(backend="local", wait_seconds=0.05)
    with pytest.raises(ValueError):
        with manager.hold("k"):
            raise ValueError("boom")
    with manager.hold("k", wait_seconds=0.05):
        pass
    assert manager.active_keys() == 0


class TestRedisBackend:
    def test_acquires_and_releases_with_token(self):
        client = MagicMock()
        client.set.return_value = True
        tokens = []
        client.set.side_effect = lambda key, token, nx, ex: tokens.append(token) or True
        client.get.side_effect = lambda key: tokens[0]
        manager = BookingLockManager(backend="redis", wait_seconds=0.1, ttl_seconds=7, redis_client=client)

        with manager.hold("slot:biz:2026-03-02"):
            pass

        key = client.set.call_args.args[0]
        assert key == "goreserve:lock:slot:biz:2026-03-02"
        assert client.set.call_args.kwargs == {"nx": True, "ex": 7}
        client.delete.assert_called_once_with(key)

    def test_times_out_when_key_is_taken(self):
        client = MagicMock()
        client.set.return_value = False
        manager = BookingLockManager(backend="redis", wait_seconds=0.05, redis_client=client)

        with pytest.raises(BookingLockTimeoutException):
            with manager.hold("slot:biz:2026-03-02"):
                pass
        client.delete.assert_not_called()

    def test_redis_errors_fall_back_to_local_lock(self):
        client = MagicMock()
        client.set.side_effect = ConnectionError("down")
        manager = BookingLockManager(backend="redis", wait_seconds=0.05, redis_client=client)

        with manager.hold("slot:biz:2026-03-02") as key:
            assert key == "slot:biz:2026-03-02"

    def test_redis_errors_no_longer_serialize_separate_managers(self):
        client = MagicMock()
        client.set.side_effect = ConnectionError("down")
        worker_a = BookingLockManager(backend="redis", wait_seconds=0.05, redis_client=client)
        worker_b = BookingLockManager(backend="redis", wait_seconds=0.05, redis_client=client)

        with worker_a.hold("slot:biz:2026-03-02"):
            with worker_b.hold("slot:biz:2026-03-02") as key:
                assert key == "slot:biz:2026-03-02"
