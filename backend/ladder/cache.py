from __future__ import annotations

from asyncio import Lock
import time
from typing import Any

from .config import CACHE_TTL_SECONDS


class TTLCache:
    """A simple in-memory TTL cache with async-safe access.

    Keys are tuples whose first element names the entity kind (``"players"``,
    ``"matches"``) so a write can drop everything derived from that kind.
    """

    def __init__(self, ttl_seconds: float = 30.0) -> None:
        self._ttl = ttl_seconds
        self._lock = Lock()
        self._store: dict[Any, tuple[Any, float]] = {}
        self._generations: dict[str, int] = {}

    async def get(self, key: Any) -> Any | None:
        now = time.monotonic()
        async with self._lock:
            entry = self._store.get(key)
            if not entry:
                return None
            value, expires_at = entry
            if expires_at <= now:
                self._store.pop(key, None)
                return None
            return value

    def generation(self, kind: str) -> int:
        """Counter bumped by every ``invalidate_kind`` touching ``kind``.

        Read it before loading a value and pass it to ``set`` so a result
        computed before an invalidation is not cached after it.
        """
        return self._generations.get(kind, 0)

    async def set(
        self,
        key: Any,
        value: Any,
        ttl_seconds: float | None = None,
        *,
        generation: int | None = None,
    ) -> None:
        ttl = self._ttl if ttl_seconds is None else ttl_seconds
        expires_at = time.monotonic() + max(ttl, 0.0)
        async with self._lock:
            if generation is not None and generation != self.generation(key[0]):
                return
            if ttl <= 0:
                self._store.pop(key, None)
            else:
                self._store[key] = (value, expires_at)

    async def invalidate(self, key: Any) -> None:
        async with self._lock:
            self._store.pop(key, None)

    async def invalidate_kind(self, *kinds: str) -> None:
        wanted = {k for k in kinds if k}
        if not wanted:
            return
        async with self._lock:
            for kind in wanted:
                self._generations[kind] = self._generations.get(kind, 0) + 1
            keys_to_remove = [
                key
                for key in self._store
                if isinstance(key, tuple) and key and key[0] in wanted
            ]
            for key in keys_to_remove:
                self._store.pop(key, None)

    async def clear(self) -> None:
        async with self._lock:
            self._store.clear()


read_cache = TTLCache(ttl_seconds=CACHE_TTL_SECONDS)
