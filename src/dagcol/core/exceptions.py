"""Error taxonomy for DAG node decoding, traversal and storage."""

from __future__ import annotations

from typing import Optional


class DagError(Exception):
    """Base class for all dagcol errors."""


class DecodeError(DagError, ValueError):
    """Malformed or truncated input in either the readable or binary format."""


class EncodeError(DagError, ValueError):
    """Node cannot be represented in the target format."""


class TypeMismatchError(DagError, TypeError):
    """Operation attempted on a node of the wrong kind."""


class NodeNotFoundError(DagError, KeyError):
    """Map key or list index not present in a node."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class DagIOError(DagError, OSError):
    """Underlying stream or file failure."""


class StoreError(DagError):
    """
    Failure surfaced from the content-addressed store boundary.

    Attributes:
        operation: Store operation that failed (put, get, block_get)
        status_code: HTTP status when the store answered, None otherwise
    """

    def __init__(
        self,
        message: str,
        operation: str = "",
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code

    def __str__(self) -> str:
        base = super().__str__()
        if self.operation:
            base = f"{self.operation}: {base}"
        if self.status_code is not None:
            base = f"{base} (HTTP {self.status_code})"
        return base


__all__ = [
    "DagError",
    "DecodeError",
    "EncodeError",
    "TypeMismatchError",
    "NodeNotFoundError",
    "DagIOError",
    "StoreError",
]
