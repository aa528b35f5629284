"""
Fixed-width little-endian column codec.

A column is a byte string holding consecutive values of a single element
type (u8..u64, i8..i64, f32, f64). The float vector decoder is the f32 case.
"""

from __future__ import annotations

import struct
from functools import lru_cache
from typing import BinaryIO, Sequence, Union

from dagcol.core.constants import COLUMN_TYPES, DEFAULT_COLUMN_TYPE, FLOAT32_SIZE
from dagcol.core.exceptions import DecodeError, EncodeError
from dagcol.core.models import GenericNode
from dagcol.utils.logging import get_logger

logger = get_logger(__name__)

Number = Union[int, float]


@lru_cache(maxsize=None)
def column_struct(type_name: str) -> struct.Struct:
    """
    Struct for a single element of the given column type.

    Unknown type names are read as f32.
    """
    code = COLUMN_TYPES.get(type_name)
    if code is None:
        logger.warning("unknown_column_type", type=type_name, fallback=DEFAULT_COLUMN_TYPE)
        code = COLUMN_TYPES[DEFAULT_COLUMN_TYPE]
    return struct.Struct("<" + code)


def decode_column(data: bytes, type_name: str = DEFAULT_COLUMN_TYPE, strict: bool = True) -> list:
    """
    Decode consecutive fixed-width values, in stream order.

    Args:
        data: Raw column bytes
        type_name: Element type (see COLUMN_TYPES)
        strict: Reject a trailing partial element; when False the trailing
            bytes are dropped (floor(len / width) values are returned)

    Raises:
        DecodeError: In strict mode when len(data) is not a multiple of the
            element width
    """
    element = column_struct(type_name)
    count, remainder = divmod(len(data), element.size)
    if remainder:
        if strict:
            raise DecodeError(
                f"decode_column({type_name}): {len(data)} bytes is not a multiple "
                f"of the {element.size}-byte element width ({remainder} trailing bytes)"
            )
        logger.debug(
            "column_trailing_bytes_dropped",
            type=type_name,
            length=len(data),
            dropped=remainder,
        )
    if count == 0:
        return []
    return list(struct.unpack_from(f"<{count}{element.format[1:]}", data))


def encode_column(values: Sequence[Number], type_name: str = DEFAULT_COLUMN_TYPE) -> bytes:
    """
    Encode values as a little-endian column.

    Raises:
        EncodeError: If a value does not fit the element type
    """
    element = column_struct(type_name)
    out = bytearray()
    for value in values:
        try:
            out += element.pack(value)
        except (struct.error, OverflowError) as exc:
            raise EncodeError(f"encode_column({type_name}): cannot pack {value!r}: {exc}") from exc
    return bytes(out)


def float32_from_bytes(data: bytes, strict: bool = True) -> list[float]:
    """
    Interpret bytes as little-endian IEEE-754 single-precision floats.

    An empty buffer yields an empty list. A length that is not a multiple of
    4 raises DecodeError unless strict is False, in which case the trailing
    bytes are dropped.
    """
    return decode_column(data, "f32", strict=strict)


def float32_to_bytes(values: Sequence[float]) -> bytes:
    return encode_column(values, "f32")


def read_float32_vector(stream: BinaryIO, count: int) -> list[float]:
    """
    Read exactly count floats from a stream.

    Raises:
        DecodeError: On a short read or a failing stream
    """
    need = count * FLOAT32_SIZE
    try:
        buf = stream.read(need)
    except OSError as exc:
        raise DecodeError(f"read_float32_vector: stream read failed: {exc}") from exc
    if len(buf) < need:
        raise DecodeError(f"read_float32_vector: short read, expected {need} bytes, got {len(buf)}")
    return float32_from_bytes(buf)


def column_from_node(
    node: GenericNode, type_name: str = DEFAULT_COLUMN_TYPE, strict: bool = True
) -> list:
    """
    Decode a bytes node as a column.

    Raises:
        TypeMismatchError: If the node is not a bytes node
    """
    return decode_column(node.as_bytes(), type_name, strict=strict)


__all__ = [
    "column_struct",
    "decode_column",
    "encode_column",
    "float32_from_bytes",
    "float32_to_bytes",
    "read_float32_vector",
    "column_from_node",
]
