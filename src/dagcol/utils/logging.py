"""structlog setup for dagcol, bridged onto stdlib logging."""

from __future__ import annotations

import logging
import os
import sys
from contextlib import contextmanager
from typing import IO, Any, Iterator, Optional, cast

import structlog
from structlog.dev import ConsoleRenderer
from structlog.stdlib import BoundLogger
from structlog.types import Processor

DAGCOL_VERSION = "0.1.0"


def _coerce_level(level: str | int) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if isinstance(resolved, str):
            raise ValueError(f"Invalid log level: {level}")
        return int(resolved)
    return int(level)


def _pre_chain() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def configure_logging(
    level: str | int = "INFO",
    json_output: bool = True,
    stream: Optional[IO[str]] = None,
) -> None:
    """
    Route structlog events through a single stdlib handler.

    Args:
        level: Minimum level name or number
        json_output: JSON lines when True, coloured console output otherwise
        stream: Handler stream (stderr by default so command output on
            stdout stays parseable)
    """
    numeric_level = _coerce_level(level)
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_output else ConsoleRenderer()
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)
    )
    logging.basicConfig(level=numeric_level, handlers=[handler], force=True)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> BoundLogger:
    """
    Logger with service name and version bound.

    The proxy resolves on first use, so module-level loggers pick up the
    configuration applied later by configure_logging.
    """
    return cast(
        BoundLogger,
        structlog.get_logger(
            name,
            service_name=os.getenv("SERVICE_NAME", "dagcol"),
            version=os.getenv("APP_VERSION", DAGCOL_VERSION),
        ),
    )


@contextmanager
def log_context(**kwargs: Any) -> Iterator[None]:
    """Bind context variables (e.g. cid=...) for the duration of a block."""
    if not kwargs:
        yield
        return
    tokens = structlog.contextvars.bind_contextvars(**kwargs)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)


__all__ = ["configure_logging", "get_logger", "log_context"]
