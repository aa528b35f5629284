"""Byte-source helpers shared by the decoders."""

from __future__ import annotations

from typing import BinaryIO, Union

from dagcol.core.exceptions import DecodeError

ByteSource = Union[bytes, bytearray, memoryview, BinaryIO]


def read_source(source: ByteSource, operation: str) -> bytes:
    """
    Consume a byte source to completion.

    Raises:
        DecodeError: If the stream cannot be read (cause attached)
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    read = getattr(source, "read", None)
    if read is None:
        raise DecodeError(f"{operation}: unsupported source type {type(source).__name__}")
    try:
        data = read()
    except OSError as exc:
        raise DecodeError(f"{operation}: failed to read input stream: {exc}") from exc
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


__all__ = ["ByteSource", "read_source"]
