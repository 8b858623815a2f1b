"""In-memory freshness cache for upstream market-data calls.

Each key holds the last successful fetch and its monotonic timestamp. A
lookup returns the cached value while it is younger than the TTL; otherwise
exactly one fetch runs per key and every concurrent caller for that key
waits on it and gets the same outcome.

Note: the cache is per-process. With several uvicorn workers each worker
keeps its own entries and may fetch the same key once.
"""

import asyncio
import inspect
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from errors import UpstreamTimeout, UpstreamUnavailable

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], Awaitable[Any] | Any]


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    fetched_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.fetched_at < self.ttl


@dataclass(frozen=True)
class CacheResult:
    """Value handed back by ``FreshnessCache.get``.

    ``stale`` is only true when a refresh failed and the previous value was
    served in its place.
    """

    value: Any
    fetched_at: float
    stale: bool = False

    def age(self, now: float) -> float:
        return max(0.0, now - self.fetched_at)


def make_key(*parts: Any) -> str:
    """Build a canonical cache key from query parameters.

    Strings are stripped and lower-cased so ``"USD"`` and ``" usd"`` share
    an entry. Order is significant; sort multi-valued parameters first.
    """
    normalized = []
    for part in parts:
        if isinstance(part, str):
            part = part.strip().lower()
        normalized.append(str(part))
    return ":".join(normalized)


class FreshnessCache:
    def __init__(
        self,
        ttl_seconds: float = 60,
        timeout_seconds: float | None = 10,
        serve_stale_on_error: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self.ttl = ttl_seconds
        self.timeout = timeout_seconds
        self.serve_stale_on_error = serve_stale_on_error
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, asyncio.Future] = {}
        # Held only to claim a key or install a result, never across an await.
        self._lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0, "fetches": 0, "failures": 0, "stale_served": 0}

    def now(self) -> float:
        return self._clock()

    async def get(self, key: str, fetcher: Fetcher) -> CacheResult:
        """Return the freshest known value for ``key``.

        Raises:
            UpstreamTimeout: the fetch exceeded the timeout and no stale value
                may be served.
            UpstreamUnavailable: the fetch failed and no stale value may be
                served.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.is_fresh(self._clock()):
                self._stats["hits"] += 1
                return CacheResult(entry.value, entry.fetched_at)

            self._stats["misses"] += 1
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = asyncio.get_running_loop().create_future()
                self._in_flight[key] = future
                self._stats["fetches"] += 1

        if owner:
            await self._refresh(key, fetcher, future)
            return future.result()

        # Shielded so a cancelled waiter does not cancel the shared fetch.
        return await asyncio.shield(future)

    async def _refresh(self, key: str, fetcher: Fetcher, future: asyncio.Future) -> None:
        logger.debug("Refreshing cache key %s", key)
        try:
            value = await self._call(key, fetcher)
        except (asyncio.TimeoutError, TimeoutError) as e:
            logger.warning("Upstream fetch for %s timed out after %ss", key, self.timeout)
            error = UpstreamTimeout(key, self.timeout)
            error.__cause__ = e
            self._resolve_failure(key, future, error)
        except UpstreamUnavailable as e:
            logger.warning("Upstream fetch for %s failed: %s", key, e)
            self._resolve_failure(key, future, e)
        except Exception as e:
            logger.warning("Upstream fetch for %s failed: %s", key, e)
            error = UpstreamUnavailable(f"Upstream unavailable for {key}: {e}")
            error.__cause__ = e
            self._resolve_failure(key, future, error)
        except BaseException:
            # Cancellation or interpreter shutdown: release the waiters, then propagate.
            self._resolve_failure(key, future, UpstreamUnavailable(f"Fetch for {key} was interrupted"))
            # Mark the outcome retrieved; the owner is gone and there may be no waiters.
            future.exception()
            raise
        else:
            with self._lock:
                entry = CacheEntry(key=key, value=value, fetched_at=self._clock(), ttl=self.ttl)
                self._entries[key] = entry
                self._in_flight.pop(key, None)
            future.set_result(CacheResult(entry.value, entry.fetched_at))
        finally:
            with self._lock:
                if self._in_flight.get(key) is future:
                    del self._in_flight[key]

    async def _call(self, key: str, fetcher: Fetcher) -> Any:
        async def run() -> Any:
            if inspect.iscoroutinefunction(fetcher) or inspect.iscoroutinefunction(
                getattr(fetcher, "__call__", None)
            ):
                return await fetcher(key)
            # Blocking fetchers run in a worker thread.
            result = await asyncio.to_thread(fetcher, key)
            if inspect.isawaitable(result):
                result = await result
            return result

        if self.timeout is None:
            return await run()
        return await asyncio.wait_for(run(), timeout=self.timeout)

    def _resolve_failure(self, key: str, future: asyncio.Future, error: UpstreamUnavailable) -> None:
        with self._lock:
            self._stats["failures"] += 1
            self._in_flight.pop(key, None)
            stale = self._entries.get(key) if self.serve_stale_on_error else None
            if stale is not None:
                self._stats["stale_served"] += 1

        if future.done():
            return
        if stale is not None:
            logger.warning("Serving stale value for %s (age %.1fs)", key, self._clock() - stale.fetched_at)
            future.set_result(CacheResult(stale.value, stale.fetched_at, stale=True))
        else:
            future.set_exception(error)

    def peek(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict:
        with self._lock:
            return {
                **self._stats,
                "entries": len(self._entries),
                "in_flight": len(self._in_flight),
                "ttl_seconds": self.ttl,
            }
