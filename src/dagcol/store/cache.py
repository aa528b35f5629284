"""Cache backends for raw store blocks.

Blocks are addressed by content, so a cached block never goes stale; TTLs
only bound memory use.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from threading import Lock
from typing import Any, Dict, Optional

import redis

from dagcol.config.config import StoreConfig

__all__ = [
    "BlockCacheBackend",
    "InMemoryBlockCache",
    "RedisBlockCache",
    "NullBlockCache",
    "build_cache",
]


class BlockCacheBackend(ABC):
    """
    Abstract base class for block caches.

    Entries map a CID string to the raw block bytes.
    """

    @abstractmethod
    def get(self, cid: str) -> Optional[bytes]:
        """Cached block or None if not found/expired."""

    @abstractmethod
    def set(self, cid: str, data: bytes, ttl: Optional[int] = None) -> None:
        """Store a block (ttl in seconds, None = backend default)."""

    @abstractmethod
    def delete(self, cid: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        pass


class InMemoryBlockCache(BlockCacheBackend):
    """
    Thread-safe LRU cache with optional TTL.
    """

    def __init__(
        self, max_size: Optional[int] = None, default_ttl: Optional[int] = None
    ) -> None:
        """
        Args:
            max_size: Maximum number of cached blocks (None = unlimited)
            default_ttl: Default TTL in seconds (None = no expiration)
        """
        self._blocks: OrderedDict[str, tuple[bytes, Optional[float]]] = OrderedDict()
        self._lock = Lock()
        self.max_size = max_size
        self.default_ttl = default_ttl

    def get(self, cid: str) -> Optional[bytes]:
        with self._lock:
            entry = self._blocks.get(cid)
            if entry is None:
                return None
            data, expiry = entry
            if expiry is not None and time.time() > expiry:
                del self._blocks[cid]
                return None
            self._blocks.move_to_end(cid)
            return data

    def set(self, cid: str, data: bytes, ttl: Optional[int] = None) -> None:
        with self._lock:
            effective_ttl = ttl if ttl is not None else self.default_ttl
            expiry = time.time() + effective_ttl if effective_ttl else None
            if cid in self._blocks:
                self._blocks.move_to_end(cid)
            elif self.max_size and len(self._blocks) >= self.max_size:
                self._blocks.popitem(last=False)
            self._blocks[cid] = (bytes(data), expiry)

    def delete(self, cid: str) -> None:
        with self._lock:
            self._blocks.pop(cid, None)

    def clear(self) -> None:
        with self._lock:
            self._blocks.clear()

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            now = time.time()
            expired = sum(
                1 for _, expiry in self._blocks.values() if expiry and now > expiry
            )
            return {
                "entries": len(self._blocks),
                "expired": expired,
                "bytes": sum(len(data) for data, _ in self._blocks.values()),
                "max_size": self.max_size,
            }


class RedisBlockCache(BlockCacheBackend):
    """
    Redis-backed block cache storing raw bytes under a key prefix.
    """

    def __init__(
        self,
        redis_client: Any,
        key_prefix: str = "dagcol:block:",
        default_ttl: Optional[int] = None,
    ) -> None:
        self.redis = redis_client
        self.key_prefix = key_prefix
        self.default_ttl = default_ttl

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisBlockCache":
        return cls(redis.Redis.from_url(url), **kwargs)

    def _make_key(self, cid: str) -> str:
        return f"{self.key_prefix}{cid}"

    def get(self, cid: str) -> Optional[bytes]:
        raw = self.redis.get(self._make_key(cid))
        return bytes(raw) if raw is not None else None

    def set(self, cid: str, data: bytes, ttl: Optional[int] = None) -> None:
        key = self._make_key(cid)
        effective_ttl = ttl if ttl is not None else self.default_ttl
        if effective_ttl:
            self.redis.setex(key, effective_ttl, data)
        else:
            self.redis.set(key, data)

    def delete(self, cid: str) -> None:
        self.redis.delete(self._make_key(cid))

    def _scan_keys(self) -> list:
        keys: list = []
        cursor = 0
        while True:
            cursor, batch = self.redis.scan(cursor, match=f"{self.key_prefix}*", count=100)
            keys.extend(batch)
            if cursor == 0:
                return keys

    def clear(self) -> None:
        keys = self._scan_keys()
        if keys:
            self.redis.delete(*keys)

    def get_stats(self) -> Dict[str, Any]:
        return {"entries": len(self._scan_keys()), "prefix": self.key_prefix}


class NullBlockCache(BlockCacheBackend):
    """No-op cache (always misses)."""

    def get(self, cid: str) -> Optional[bytes]:
        return None

    def set(self, cid: str, data: bytes, ttl: Optional[int] = None) -> None:
        pass

    def delete(self, cid: str) -> None:
        pass

    def clear(self) -> None:
        pass

    def get_stats(self) -> Dict[str, Any]:
        return {"type": "null", "enabled": False}


def build_cache(cfg: StoreConfig) -> BlockCacheBackend:
    if cfg.cache_backend == "redis":
        if not cfg.redis_url:
            raise RuntimeError("redis_url must be set when cache_backend=redis")
        return RedisBlockCache.from_url(cfg.redis_url, default_ttl=cfg.cache_ttl)
    if cfg.cache_backend == "none":
        return NullBlockCache()
    return InMemoryBlockCache(max_size=cfg.cache_max_size, default_ttl=cfg.cache_ttl)
