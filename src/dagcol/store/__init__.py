"""Content-addressed store clients."""

from .base import StoreClient, resolve_path, split_ref
from .cache import (
    BlockCacheBackend,
    InMemoryBlockCache,
    NullBlockCache,
    RedisBlockCache,
    build_cache,
)
from .http_client import HttpStoreClient
from .memory import InMemoryStoreClient

__all__ = [
    "StoreClient",
    "HttpStoreClient",
    "InMemoryStoreClient",
    "BlockCacheBackend",
    "InMemoryBlockCache",
    "RedisBlockCache",
    "NullBlockCache",
    "build_cache",
    "resolve_path",
    "split_ref",
]
