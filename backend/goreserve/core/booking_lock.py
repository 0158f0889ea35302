from __future__ import annotations

from contextlib import contextmanager
from datetime import date
import logging
import threading
import time
from typing import Dict, Iterator, Optional
import uuid

from redis import Redis

from goreserve.core.config import settings
from goreserve.core.exceptions import BookingLockTimeoutException
from goreserve.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_SYNC_REDIS: Optional[Redis] = None
_SYNC_REDIS_LOCK = threading.Lock()

_REDIS_POLL_INTERVAL_S = 0.05


def slot_lock_key(business_id: str, booking_date: date) -> str:
    """Key serializing check-then-write for every resource of a business on one date."""
    return f"slot:{business_id}:{booking_date.isoformat()}"


def booking_lock_key(booking_id: str) -> str:
    return f"booking:{booking_id}:mutex"


def wallet_lock_key(user_id: str) -> str:
    return f"wallet:{user_id}:mutex"


def _namespaced_key(key: str) -> str:
    return f"goreserve:lock:{key}"


def _get_sync_redis() -> Optional[Redis]:
    global _SYNC_REDIS
    if _SYNC_REDIS is not None:
        return _SYNC_REDIS
    with _SYNC_REDIS_LOCK:
        if _SYNC_REDIS is not None:
            return _SYNC_REDIS
        try:
            client = Redis.from_url(
                settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            client.ping()
        except Exception as exc:
            logger.warning("booking_lock_sync_redis_unavailable: %s", exc)
            return None
        _SYNC_REDIS = client
        return _SYNC_REDIS


class _KeyedEntry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class BookingLockManager:
    """
    Keyed mutex for booking critical sections.

    Every key maps to its own threading.Lock, created on demand and
    discarded once no thread holds or waits on it. Checks for different
    keys proceed in parallel; the same key is serialized. With the
    ``redis`` backend a ``SET NX EX`` lock is taken on top of the local
    one so that separate worker processes are serialized too. If Redis is
    unreachable the lock fails open to the local lock alone and that
    cross-process guarantee is lost until Redis answers again.
    """

    def __init__(
        self,
        backend: Optional[str] = None,
        wait_seconds: Optional[float] = None,
        ttl_seconds: Optional[int] = None,
        redis_client: Optional[Redis] = None,
    ) -> None:
        self.backend = backend or settings.booking_lock_backend
        self.wait_seconds = (
            settings.booking_lock_wait_seconds if wait_seconds is None else wait_seconds
        )
        self.ttl_seconds = ttl_seconds or settings.booking_lock_ttl_seconds
        self._redis_client = redis_client
        self._entries: Dict[str, _KeyedEntry] = {}
        self._registry_lock = threading.Lock()

    def _checkout(self, key: str) -> _KeyedEntry:
        with self._registry_lock:
            entry = self._entries.get(key)
            if entry is None:
                entry = _KeyedEntry()
                self._entries[key] = entry
            entry.holders += 1
            return entry

    def _checkin(self, key: str, entry: _KeyedEntry) -> None:
        with self._registry_lock:
            entry.holders -= 1
            if entry.holders == 0 and self._entries.get(key) is entry:
                del self._entries[key]

    def active_keys(self) -> int:
        with self._registry_lock:
            return len(self._entries)

    def _redis(self) -> Optional[Redis]:
        if self._redis_client is not None:
            return self._redis_client
        return _get_sync_redis()

    def _acquire_redis(self, key: str, token: str, deadline: float) -> bool:
        """
        Take the Redis half of the lock, polling until ``deadline``.

        Returns False on timeout. When Redis is unreachable or errors the
        lock fails open and returns True: only the process-local lock is
        held, so other processes are no longer serialized for ``key``.
        """
        client = self._redis()
        if client is None:
            # Local lock still serializes this process.
            prometheus_metrics.record_booking_lock("acquire", "redis_unavailable")
            logger.warning("booking_lock_redis_unavailable", extra={"lock_key": key})
            return True
        while True:
            try:
                if client.set(_namespaced_key(key), token, nx=True, ex=self.ttl_seconds):
                    return True
            except Exception as exc:
                prometheus_metrics.record_booking_lock("acquire", "error")
                logger.warning(
                    "booking_lock_redis_acquire_failed",
                    extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
                )
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(_REDIS_POLL_INTERVAL_S)

    def _release_redis(self, key: str, token: str) -> None:
        client = self._redis()
        if client is None:
            return
        try:
            namespaced = _namespaced_key(key)
            if client.get(namespaced) == token:
                client.delete(namespaced)
        except Exception as exc:
            prometheus_metrics.record_booking_lock("release", "error")
            logger.warning(
                "booking_lock_redis_release_failed",
                extra={"lock_key": key, "error": str(exc), "error_type": type(exc).__name__},
            )

    @contextmanager
    def hold(self, key: str, wait_seconds: Optional[float] = None) -> Iterator[str]:
        """
        Hold the lock for ``key`` for the duration of the block.

        Raises:
            BookingLockTimeoutException: lock not acquired within ``wait_seconds``
        """
        wait = self.wait_seconds if wait_seconds is None else wait_seconds
        started = time.monotonic()
        deadline = started + wait
        entry = self._checkout(key)
        try:
            if not entry.lock.acquire(timeout=wait):
                prometheus_metrics.record_booking_lock("acquire", "timeout")
                raise BookingLockTimeoutException(key, round(time.monotonic() - started, 3))
            try:
                token = uuid.uuid4().hex
                if self.backend == "redis" and not self._acquire_redis(key, token, deadline):
                    prometheus_metrics.record_booking_lock("acquire", "timeout")
                    raise BookingLockTimeoutException(key, round(time.monotonic() - started, 3))
                prometheus_metrics.record_booking_lock("acquire", "success")
                try:
                    yield key
                finally:
                    if self.backend == "redis":
                        self._release_redis(key, token)
                    prometheus_metrics.record_booking_lock("release", "success")
            finally:
                entry.lock.release()
        finally:
            self._checkin(key, entry)


_default_manager: Optional[BookingLockManager] = None
_default_manager_lock = threading.Lock()


def get_lock_manager() -> BookingLockManager:
    """Process-wide lock manager shared by every service instance."""
    global _default_manager
    if _default_manager is None:
        with _default_manager_lock:
            if _default_manager is None:
                _default_manager = BookingLockManager()
    return _default_manager
