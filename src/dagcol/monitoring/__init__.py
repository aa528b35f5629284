"""Monitoring helpers for dagcol."""

from .metrics import (
    BLOCK_CACHE_HITS,
    BLOCK_CACHE_MISSES,
    DECODE_FAILURES,
    STORE_LATENCY,
    STORE_REQUESTS,
)

__all__ = [
    "STORE_REQUESTS",
    "STORE_LATENCY",
    "BLOCK_CACHE_HITS",
    "BLOCK_CACHE_MISSES",
    "DECODE_FAILURES",
]
