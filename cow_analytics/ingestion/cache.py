"""
Snapshot Cache Module

In-memory caching layer for ingestion results with:
- Namespaced keys
- TTL management against an injectable clock
- get_or_set for the fetch-parse-build path

A cache miss simply re-runs the pipeline; refresh is idempotent, so no
locking is needed around writes.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


@dataclass
class _Entry:
    value: Any
    expires_at: Optional[float]


class SnapshotCache:
    """
    Cache with namespace support and per-entry expiry.

    Example:
        cache = SnapshotCache("snapshot", default_ttl=300)
        snapshot = cache.get_or_set(source_id, lambda: pipeline.build(payload))
    """

    def __init__(
        self,
        namespace: str = "snapshot",
        default_ttl: int = 300,
        clock: Optional[Clock] = None,
    ):
        self.namespace = namespace
        self.default_ttl = default_ttl
        self._clock = clock or time.monotonic
        self._entries: Dict[str, _Entry] = {}

    def _key(self, key: str) -> str:
        """Generate namespaced key"""
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache, or None if absent or expired"""
        full_key = self._key(key)
        entry = self._entries.get(full_key)
        if entry is None:
            return None

        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del self._entries[full_key]
            logger.debug("Cache entry expired", key=full_key)
            return None

        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds; 0 stores without expiry

        Returns:
            True if stored
        """
        ttl = self.default_ttl if ttl is None else ttl
        expires_at = self._clock() + ttl if ttl else None
        self._entries[self._key(key)] = _Entry(value=value, expires_at=expires_at)
        return True

    def delete(self, key: str) -> bool:
        """Delete key from cache"""
        return self._entries.pop(self._key(key), None) is not None

    def invalidate_all(self) -> int:
        """Invalidate all keys in namespace"""
        count = len(self._entries)
        self._entries.clear()
        return count

    def get_or_set(
        self,
        key: str,
        factory: Callable[[], Any],
        ttl: Optional[int] = None,
    ) -> Any:
        """
        Get from cache or compute and cache.

        Args:
            key: Cache key
            factory: Function to compute value if not cached
            ttl: Time-to-live

        Returns:
            Cached or computed value
        """
        value = self.get(key)

        if value is not None:
            logger.debug("Cache hit", key=self._key(key))
            return value

        value = factory()
        self.set(key, value, ttl)

        return value

    def __len__(self) -> int:
        return len(self._entries)
