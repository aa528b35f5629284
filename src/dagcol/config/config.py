"""Store client configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator

CACHE_BACKENDS = ("memory", "redis", "none")


class StoreConfig(BaseModel):
    """Configuration for the content-addressed store client."""

    api_url: str = Field(
        "http://localhost:5001",
        description="Base URL of the IPFS (Kubo) RPC API",
    )
    request_timeout: float = Field(
        30.0,
        description="Timeout for store requests (seconds)",
    )
    max_retries: int = Field(
        3,
        description="Attempts per store request on transport errors",
    )
    backoff_base: float = Field(
        0.5,
        description="First retry wait in seconds, doubled per attempt",
    )
    cache_backend: str = Field(
        "memory",
        description="Block cache backend: memory, redis or none",
    )
    redis_url: Optional[str] = Field(
        None,
        description="Redis URL if cache_backend=redis",
    )
    cache_ttl: Optional[int] = Field(
        None,
        description="Block cache TTL in seconds (None = no expiration)",
    )
    cache_max_size: Optional[int] = Field(
        1024,
        description="Maximum cached blocks for the memory backend",
    )
    log_level: str = Field("INFO", description="Log level name")
    json_logs: bool = Field(False, description="Render logs as JSON lines")

    @field_validator("cache_backend")
    @classmethod
    def _check_cache_backend(cls, value: str) -> str:
        if value not in CACHE_BACKENDS:
            raise ValueError(f"cache_backend must be one of {CACHE_BACKENDS}, got {value!r}")
        return value

    @field_validator("api_url")
    @classmethod
    def _strip_api_url(cls, value: str) -> str:
        return value.rstrip("/")

    @classmethod
    def from_env(cls) -> "StoreConfig":
        cache_backend = os.getenv("DAGCOL_CACHE_BACKEND", "memory")
        redis_url = os.getenv("DAGCOL_REDIS_URL")
        if cache_backend == "redis" and not redis_url:
            raise RuntimeError("DAGCOL_REDIS_URL must be set when DAGCOL_CACHE_BACKEND=redis")
        cache_ttl = os.getenv("DAGCOL_CACHE_TTL")
        cache_max_size = os.getenv("DAGCOL_CACHE_MAX_SIZE")

        return cls(
            api_url=os.getenv("DAGCOL_API_URL", "http://localhost:5001"),
            request_timeout=float(os.getenv("DAGCOL_REQUEST_TIMEOUT", "30")),
            max_retries=int(os.getenv("DAGCOL_MAX_RETRIES", "3")),
            backoff_base=float(os.getenv("DAGCOL_BACKOFF_BASE", "0.5")),
            cache_backend=cache_backend,
            redis_url=redis_url if cache_backend == "redis" else None,
            cache_ttl=int(cache_ttl) if cache_ttl else None,
            cache_max_size=int(cache_max_size) if cache_max_size else 1024,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            json_logs=os.getenv("DAGCOL_JSON_LOGS", "false").lower() == "true",
        )

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "StoreConfig":
        """
        Load from a YAML mapping; a top-level "store" section is used when present.
        """
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"{path}: expected a YAML mapping")
        section = raw.get("store", raw)
        if not isinstance(section, dict):
            raise ValueError(f"{path}: 'store' must be a mapping")
        return cls(**section)


__all__ = ["StoreConfig", "CACHE_BACKENDS"]
