"""Prometheus metrics for dagcol components."""

from prometheus_client import (
    Counter,
    Histogram,
)

# Store boundary
STORE_REQUESTS = Counter(
    "dagcol_store_requests_total",
    "Store requests",
    ["operation", "status"],
)
STORE_LATENCY = Histogram(
    "dagcol_store_latency_seconds",
    "Store request latency",
    ["operation"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5),
)

# Block cache
BLOCK_CACHE_HITS = Counter(
    "dagcol_block_cache_hits_total",
    "Block cache hits",
)
BLOCK_CACHE_MISSES = Counter(
    "dagcol_block_cache_misses_total",
    "Block cache misses",
)

# Decoding
DECODE_FAILURES = Counter(
    "dagcol_decode_failures_total",
    "Decode failures",
    ["format"],
)

__all__ = [
    "STORE_REQUESTS",
    "STORE_LATENCY",
    "BLOCK_CACHE_HITS",
    "BLOCK_CACHE_MISSES",
    "DECODE_FAILURES",
]
