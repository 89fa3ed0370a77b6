"""Per-session billing context: cached overviews plus a per-owner reentrancy guard."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, Set, TypeVar

from core.logging import get_logger
from services.billing import billing_metrics
from services.billing.config import get_billing_settings
from services.billing.errors import BillingDataError

logger = get_logger(__name__)

T = TypeVar("T")


class BillingCache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def invalidate(self, key: Optional[str] = None) -> None: ...


@dataclass
class _CacheEntry:
    value: Any
    expires_at: float


class MemoryBillingCache:
    """In-process TTL cache keyed by string."""

    def __init__(self, ttl_seconds: Optional[int] = None, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl_seconds if ttl_seconds is not None else get_billing_settings().cache_ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._entries.pop(key, None)
            return None
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = _CacheEntry(value=value, expires_at=self._clock() + self._ttl)

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None:
            self._entries.clear()
            return
        self._entries.pop(key, None)


def _cache_key(owner_id: Any) -> str:
    return f"billing::{str(owner_id).strip().lower()}"


class BillingSessionContext:
    """Holds the cache and in-flight markers for one session (or one app instance).

    At most one refresh runs per owner identity. A second caller arriving
    while one is in flight gets the cached value immediately instead of
    queueing. Remote reads are raced against a timeout and fall back to the
    cache on timeout or transient read failure.
    """

    def __init__(self, cache: Optional[BillingCache] = None, *, timeout_seconds: Optional[float] = None) -> None:
        self.cache: BillingCache = cache if cache is not None else MemoryBillingCache()
        self._timeout = timeout_seconds if timeout_seconds is not None else get_billing_settings().fetch_timeout_seconds
        self._in_flight: Set[str] = set()

    def is_refreshing(self, owner_id: Any) -> bool:
        return _cache_key(owner_id) in self._in_flight

    def cached(self, owner_id: Any) -> Optional[Any]:
        return self.cache.get(_cache_key(owner_id))

    def invalidate(self, owner_id: Any) -> None:
        self.cache.invalidate(_cache_key(owner_id))

    async def refresh(self, owner_id: Any, loader: Callable[[], T]) -> Optional[T]:
        """Run ``loader`` in a worker thread and cache its result.

        Returns the cached value (possibly ``None``) when another refresh for
        the same owner is running, when the loader times out, or when it
        raises :class:`BillingDataError`.
        """
        key = _cache_key(owner_id)
        if key in self._in_flight:
            logger.debug("Billing refresh already in flight for %s; serving cache.", key)
            billing_metrics.record_refresh("short_circuit")
            return self.cache.get(key)

        self._in_flight.add(key)
        # The worker thread cannot be interrupted, so the marker stays set
        # until it returns even when this caller stops waiting.
        worker = asyncio.ensure_future(asyncio.to_thread(loader))
        worker.add_done_callback(lambda future: self._release(key, future))
        try:
            result = await asyncio.wait_for(asyncio.shield(worker), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning("Billing refresh for %s timed out after %.1fs; serving cache.", key, self._timeout)
            billing_metrics.record_refresh("timeout")
            return self.cache.get(key)
        except BillingDataError as exc:
            logger.warning("Billing refresh for %s failed (%s); serving cache.", key, exc.code)
            billing_metrics.record_refresh("read_failed")
            return self.cache.get(key)

        if result is not None:
            self.cache.set(key, result)
        billing_metrics.record_refresh("ok")
        return result

    def _release(self, key: str, worker: "asyncio.Future[Any]") -> None:
        self._in_flight.discard(key)
        if worker.cancelled():
            return
        exc = worker.exception()
        if exc is not None and not isinstance(exc, BillingDataError):
            logger.debug("Billing refresh worker for %s finished with %r.", key, exc)


__all__ = ["BillingCache", "BillingSessionContext", "MemoryBillingCache"]
