"""
Binary tree format (DAG-CBOR) codec.

The decoder accepts any RFC 8949 conformant encoding of the DAG data model,
including indefinite-length containers and half/single precision floats.
The encoder always emits the canonical DAG-CBOR form used for hashing:
    - shortest-form integer heads
    - definite lengths only
    - floats as 64-bit
    - map keys sorted by encoded length, then bytewise
"""

from __future__ import annotations

import math

from dagcol.core.cid import Cid
from dagcol.core.constants import (
    AI_INDEFINITE,
    AI_UINT8,
    AI_UINT16,
    AI_UINT32,
    AI_UINT64,
    BREAK,
    CID_TAG_PREFIX,
    FLOAT16,
    FLOAT16_STRUCT,
    FLOAT32,
    FLOAT32_STRUCT,
    FLOAT64,
    FLOAT64_STRUCT,
    MAX_NESTING_DEPTH,
    MT_ARRAY,
    MT_BYTES,
    MT_MAP,
    MT_NEGATIVE,
    MT_SIMPLE,
    MT_TAG,
    MT_TEXT,
    MT_UNSIGNED,
    SIMPLE_FALSE,
    SIMPLE_NULL,
    SIMPLE_TRUE,
    SIMPLE_UNDEFINED,
    TAG_CID,
    UINT8_STRUCT,
    UINT16_STRUCT,
    UINT32_STRUCT,
    UINT64_STRUCT,
)
from dagcol.core.exceptions import DecodeError, EncodeError
from dagcol.core.models import NULL_NODE, GenericNode, Kind, NodeBuilder
from dagcol.core.sources import ByteSource, read_source

_ARG_STRUCTS = {
    AI_UINT8: UINT8_STRUCT,
    AI_UINT16: UINT16_STRUCT,
    AI_UINT32: UINT32_STRUCT,
    AI_UINT64: UINT64_STRUCT,
}
_FLOAT_STRUCTS = {
    FLOAT16: FLOAT16_STRUCT,
    FLOAT32: FLOAT32_STRUCT,
    FLOAT64: FLOAT64_STRUCT,
}
_FALSE_NODE = GenericNode(Kind.BOOL, False)
_TRUE_NODE = GenericNode(Kind.BOOL, True)


class _Decoder:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def _take(self, size: int) -> bytes:
        end = self.pos + size
        if end > len(self.data):
            raise DecodeError(
                f"truncated input: need {size} bytes at offset {self.pos}, "
                f"have {len(self.data) - self.pos}"
            )
        chunk = self.data[self.pos:end]
        self.pos = end
        return chunk

    def _peek_break(self) -> bool:
        if self.pos >= len(self.data):
            raise DecodeError("truncated input: missing break in indefinite-length item")
        if self.data[self.pos] == BREAK:
            self.pos += 1
            return True
        return False

    def _argument(self, info: int) -> int:
        if info < AI_UINT8:
            return info
        fmt = _ARG_STRUCTS.get(info)
        if fmt is None:
            raise DecodeError(f"reserved additional information {info} at offset {self.pos - 1}")
        (value,) = fmt.unpack(self._take(fmt.size))
        return value

    def _check_count(self, count: int) -> None:
        # every item takes at least one byte
        if count > len(self.data) - self.pos:
            raise DecodeError(f"truncated input: container declares {count} items")

    def read_item(self, depth: int = 0) -> GenericNode:
        if depth > MAX_NESTING_DEPTH:
            raise DecodeError(f"nesting deeper than {MAX_NESTING_DEPTH} levels")

        (initial,) = self._take(1)
        major, info = initial >> 5, initial & 0x1F

        if major == MT_SIMPLE:
            return self._read_simple(info)

        if info == AI_INDEFINITE:
            return self._read_indefinite(major, depth)

        arg = self._argument(info)

        if major == MT_UNSIGNED:
            return GenericNode(Kind.INT, arg)
        if major == MT_NEGATIVE:
            return GenericNode(Kind.INT, -1 - arg)
        if major == MT_BYTES:
            return GenericNode(Kind.BYTES, self._take(arg))
        if major == MT_TEXT:
            return GenericNode(Kind.STRING, self._decode_text(self._take(arg)))
        if major == MT_ARRAY:
            self._check_count(arg)
            builder = NodeBuilder.list()
            for _ in range(arg):
                builder.append(self.read_item(depth + 1))
            return builder.build()
        if major == MT_MAP:
            self._check_count(arg)
            builder = NodeBuilder.map()
            for _ in range(arg):
                key = self._read_key(depth)
                builder.put(key, self.read_item(depth + 1))
            return builder.build()
        # MT_TAG
        return self._read_tag(arg, depth)

    def _read_indefinite(self, major: int, depth: int) -> GenericNode:
        if major in (MT_BYTES, MT_TEXT):
            chunks = []
            while not self._peek_break():
                (initial,) = self._take(1)
                if initial >> 5 != major or initial & 0x1F == AI_INDEFINITE:
                    raise DecodeError("invalid chunk inside indefinite-length string")
                chunks.append(self._take(self._argument(initial & 0x1F)))
            raw = b"".join(chunks)
            if major == MT_BYTES:
                return GenericNode(Kind.BYTES, raw)
            return GenericNode(Kind.STRING, self._decode_text(raw))
        if major == MT_ARRAY:
            builder = NodeBuilder.list()
            while not self._peek_break():
                builder.append(self.read_item(depth + 1))
            return builder.build()
        if major == MT_MAP:
            builder = NodeBuilder.map()
            while not self._peek_break():
                key = self._read_key(depth)
                builder.put(key, self.read_item(depth + 1))
            return builder.build()
        raise DecodeError(f"indefinite length not allowed for major type {major}")

    def _read_key(self, depth: int) -> str:
        key = self.read_item(depth + 1)
        if key.kind is not Kind.STRING:
            raise DecodeError(f"map key must be a text string, got {key.kind.value}")
        return key.value

    def _read_tag(self, tag: int, depth: int) -> GenericNode:
        if tag != TAG_CID:
            raise DecodeError(f"unsupported CBOR tag {tag}")
        payload = self.read_item(depth + 1)
        if payload.kind is not Kind.BYTES:
            raise DecodeError("CID tag must wrap a byte string")
        raw = payload.value
        if not raw.startswith(CID_TAG_PREFIX):
            raise DecodeError("CID byte string must start with the identity multibase prefix")
        try:
            cid = Cid.from_bytes(raw[len(CID_TAG_PREFIX):])
        except DecodeError as exc:
            raise DecodeError(f"invalid CID in tag {TAG_CID}: {exc}") from exc
        return GenericNode(Kind.LINK, cid)

    def _read_simple(self, info: int) -> GenericNode:
        if info == SIMPLE_FALSE:
            return _FALSE_NODE
        if info == SIMPLE_TRUE:
            return _TRUE_NODE
        if info == SIMPLE_NULL:
            return NULL_NODE
        if info == SIMPLE_UNDEFINED:
            raise DecodeError("'undefined' is not representable as a node")
        fmt = _FLOAT_STRUCTS.get(info)
        if fmt is not None:
            (value,) = fmt.unpack(self._take(fmt.size))
            if math.isnan(value) or math.isinf(value):
                raise DecodeError(f"non-finite float not representable: {value!r}")
            return GenericNode(Kind.FLOAT, float(value))
        if info == AI_INDEFINITE:
            raise DecodeError(f"unexpected break at offset {self.pos - 1}")
        raise DecodeError(f"unsupported simple value {info}")

    @staticmethod
    def _decode_text(raw: bytes) -> str:
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeError(f"invalid UTF-8 in text string: {exc}") from exc


def decode_cbor(source: ByteSource) -> GenericNode:
    """
    Decode a DAG-CBOR byte stream into a GenericNode.

    Raises:
        DecodeError: On truncated/malformed input, trailing bytes, or
            values not representable as a node
    """
    data = read_source(source, "decode_cbor")
    if not data:
        raise DecodeError("decode_cbor: empty input")
    decoder = _Decoder(data)
    try:
        node = decoder.read_item()
    except DecodeError as exc:
        raise DecodeError(f"decode_cbor: {exc}") from exc
    if decoder.pos != len(data):
        raise DecodeError(
            f"decode_cbor: {len(data) - decoder.pos} trailing bytes after top-level item"
        )
    return node


def _head(major: int, arg: int) -> bytes:
    if arg < AI_UINT8:
        return bytes([(major << 5) | arg])
    if arg <= 0xFF:
        return bytes([(major << 5) | AI_UINT8]) + UINT8_STRUCT.pack(arg)
    if arg <= 0xFFFF:
        return bytes([(major << 5) | AI_UINT16]) + UINT16_STRUCT.pack(arg)
    if arg <= 0xFFFFFFFF:
        return bytes([(major << 5) | AI_UINT32]) + UINT32_STRUCT.pack(arg)
    if arg <= 0xFFFFFFFFFFFFFFFF:
        return bytes([(major << 5) | AI_UINT64]) + UINT64_STRUCT.pack(arg)
    raise EncodeError(f"integer argument out of 64-bit range: {arg}")


def _map_key_order(item: tuple[bytes, GenericNode]) -> tuple[int, bytes]:
    key = item[0]
    return len(key), key


def _encode(node: GenericNode, out: bytearray, depth: int) -> None:
    if depth > MAX_NESTING_DEPTH:
        raise EncodeError(f"nesting deeper than {MAX_NESTING_DEPTH} levels")
    kind = node.kind
    if kind is Kind.MAP:
        out += _head(MT_MAP, node.length)
        encoded = sorted(
            ((key.encode("utf-8"), child) for key, child in node.value),
            key=_map_key_order,
        )
        for key_bytes, child in encoded:
            out += _head(MT_TEXT, len(key_bytes))
            out += key_bytes
            _encode(child, out, depth + 1)
    elif kind is Kind.LIST:
        out += _head(MT_ARRAY, node.length)
        for child in node.value:
            _encode(child, out, depth + 1)
    elif kind is Kind.INT:
        if node.value >= 0:
            out += _head(MT_UNSIGNED, node.value)
        else:
            out += _head(MT_NEGATIVE, -1 - node.value)
    elif kind is Kind.FLOAT:
        if math.isnan(node.value) or math.isinf(node.value):
            raise EncodeError(f"non-finite float not allowed: {node.value!r}")
        out.append((MT_SIMPLE << 5) | FLOAT64)
        out += FLOAT64_STRUCT.pack(node.value)
    elif kind is Kind.BOOL:
        out.append((MT_SIMPLE << 5) | (SIMPLE_TRUE if node.value else SIMPLE_FALSE))
    elif kind is Kind.NULL:
        out.append((MT_SIMPLE << 5) | SIMPLE_NULL)
    elif kind is Kind.STRING:
        raw = node.value.encode("utf-8")
        out += _head(MT_TEXT, len(raw))
        out += raw
    elif kind is Kind.BYTES:
        out += _head(MT_BYTES, len(node.value))
        out += node.value
    elif kind is Kind.LINK:
        raw = CID_TAG_PREFIX + node.value.to_bytes()
        out += _head(MT_TAG, TAG_CID)
        out += _head(MT_BYTES, len(raw))
        out += raw
    else:
        raise EncodeError(f"unknown node kind: {kind!r}")


def encode_cbor(node: GenericNode) -> bytes:
    """Encode a node in canonical DAG-CBOR form."""
    out = bytearray()
    try:
        _encode(node, out, 0)
    except UnicodeEncodeError as exc:
        raise EncodeError(f"encode_cbor: text is not valid Unicode: {exc}") from exc
    return bytes(out)


__all__ = ["decode_cbor", "encode_cbor"]
