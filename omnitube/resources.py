"""Per-resource request coalescing and freshness cache.

A resource is one adapter + path + parameters triple. While a request for a
resource is in flight, further loads of the same key await the same task
instead of issuing a second request. Successful results are kept for a TTL
so that ``load(force=False)`` can reuse them.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300
DEFAULT_MAX_ENTRIES = 2000

ResourceKey = tuple[Hashable, ...]


def resource_key(owner: Hashable, path: str, params: dict[str, Any] | None = None) -> ResourceKey:
    """Build a cache key; parameter order does not matter."""
    return (owner, path, tuple(sorted((params or {}).items())))


class ResourceCache:
    """Coalesces concurrent loads and caches results for ``ttl`` seconds."""

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, max_entries: int = DEFAULT_MAX_ENTRIES):
        self.ttl = ttl_seconds
        self.max = max_entries
        self._store: dict[ResourceKey, tuple[float, Any]] = {}
        self._in_flight: dict[ResourceKey, asyncio.Task] = {}

    def get(self, key: ResourceKey) -> Any | None:
        """Return a fresh cached value, or None."""
        item = self._store.get(key)
        if not item:
            return None
        expires, value = item
        if expires < time.monotonic():
            self._store.pop(key, None)
            return None
        return value

    def set(self, key: ResourceKey, value: Any) -> None:
        if len(self._store) >= self.max and key not in self._store:
            # oldest insertion goes first
            self._store.pop(next(iter(self._store)))
        self._store[key] = (time.monotonic() + self.ttl, value)

    def invalidate(self, owner: Hashable | None = None, path_prefix: str = "") -> int:
        """Drop cached entries of ``owner`` whose path starts with ``path_prefix``.

        With no owner, the whole cache is cleared. Returns the number dropped.
        """
        if owner is None:
            count = len(self._store)
            self._store.clear()
            return count

        stale = [k for k in self._store if k[0] == owner and k[1].startswith(path_prefix)]
        for key in stale:
            del self._store[key]
        return len(stale)

    def in_flight(self, key: ResourceKey) -> bool:
        return key in self._in_flight

    async def load(
        self,
        key: ResourceKey,
        fetch: Callable[[], Awaitable[Any]],
        force: bool = False,
    ) -> Any:
        """Load a resource.

        Joins an in-flight request for the same key if there is one. Without
        ``force``, a fresh cached value is returned without fetching.
        Failures are never cached and propagate to every waiter.
        """
        task = self._in_flight.get(key)
        if task is None:
            if not force:
                cached = self.get(key)
                if cached is not None:
                    logger.debug(f"Cache hit: {key[1]}")
                    return cached

            task = asyncio.ensure_future(self._run(key, fetch))
            self._in_flight[key] = task
        else:
            logger.debug(f"Joining in-flight request: {key[1]}")

        # shield so one cancelled waiter does not cancel the shared request
        return await asyncio.shield(task)

    async def _run(self, key: ResourceKey, fetch: Callable[[], Awaitable[Any]]) -> Any:
        try:
            value = await fetch()
            self.set(key, value)
            return value
        finally:
            self._in_flight.pop(key, None)
