"""
Readable tree format (DAG-JSON) codec.

DAG-JSON extends plain JSON with two reserved single-key maps:
    {"/": "<cid>"}                 -> link
    {"/": {"bytes": "<base64>"}}   -> bytes (standard alphabet, unpadded)
"""

from __future__ import annotations

import base64
import binascii
import json
import math
import os
from typing import Any, Union

from dagcol.core.cid import Cid
from dagcol.core.constants import MAX_NESTING_DEPTH
from dagcol.core.exceptions import DecodeError, EncodeError
from dagcol.core.models import NULL_NODE, GenericNode, Kind, NodeBuilder
from dagcol.core.sources import ByteSource, read_source
from dagcol.utils.logging import get_logger

logger = get_logger(__name__)

_LINK_KEY = "/"
_BYTES_KEY = "bytes"


class _Pairs(list):
    """Ordered key/value pairs of a JSON object, duplicates preserved."""


def _reject_constant(name: str) -> Any:
    raise DecodeError(f"non-finite number not allowed: {name}")


def _decode_bytes(encoded: Any) -> bytes:
    if not isinstance(encoded, str):
        raise DecodeError("bytes form requires a base64 string")
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        return base64.b64decode(padded, validate=True)
    except binascii.Error as exc:
        raise DecodeError(f"invalid base64 in bytes form: {exc}") from exc


def _special_form(pairs: _Pairs) -> GenericNode | None:
    if len(pairs) != 1 or pairs[0][0] != _LINK_KEY:
        return None
    inner = pairs[0][1]
    if isinstance(inner, str):
        return GenericNode(Kind.LINK, Cid.decode(inner))
    if isinstance(inner, _Pairs) and len(inner) == 1 and inner[0][0] == _BYTES_KEY:
        return GenericNode(Kind.BYTES, _decode_bytes(inner[0][1]))
    return None


def _checked_text(text: str, what: str) -> str:
    # json.loads lets lone surrogates through \u escapes
    try:
        text.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise DecodeError(f"{what} is not valid Unicode: {exc}") from exc
    return text


def _to_node(obj: Any, depth: int) -> GenericNode:
    if depth > MAX_NESTING_DEPTH:
        raise DecodeError(f"nesting deeper than {MAX_NESTING_DEPTH} levels")
    if isinstance(obj, _Pairs):
        special = _special_form(obj)
        if special is not None:
            return special
        builder = NodeBuilder.map()
        for key, value in obj:
            builder.put(_checked_text(key, "map key"), _to_node(value, depth + 1))
        return builder.build()
    if isinstance(obj, list):
        builder = NodeBuilder.list()
        for item in obj:
            builder.append(_to_node(item, depth + 1))
        return builder.build()
    if obj is None:
        return NULL_NODE
    if isinstance(obj, bool):
        return GenericNode(Kind.BOOL, obj)
    if isinstance(obj, int):
        return GenericNode(Kind.INT, obj)
    if isinstance(obj, float):
        if not math.isfinite(obj):
            raise DecodeError(f"non-finite number not allowed: {obj!r}")
        return GenericNode(Kind.FLOAT, obj)
    return GenericNode(Kind.STRING, _checked_text(obj, "string"))


def decode_json(source: ByteSource) -> GenericNode:
    """
    Decode a DAG-JSON byte stream into a GenericNode.

    Raises:
        DecodeError: On invalid UTF-8, malformed JSON, duplicate keys,
            non-finite numbers or a failing stream
    """
    data = read_source(source, "decode_json")
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"decode_json: invalid UTF-8: {exc}") from exc
    try:
        parsed = json.loads(
            text,
            object_pairs_hook=_Pairs,
            parse_constant=_reject_constant,
        )
        return _to_node(parsed, 0)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"decode_json: {exc}") from exc
    except RecursionError as exc:
        raise DecodeError("decode_json: document nested too deeply") from exc
    except DecodeError as exc:
        raise DecodeError(f"decode_json: {exc}") from exc


def node_from_json_file(path: Union[str, os.PathLike]) -> GenericNode:
    """
    Read a DAG-JSON document from a local file.

    Raises:
        DecodeError: If the file cannot be opened or read (OSError attached
            as __cause__) or its content is malformed
    """
    try:
        f = open(path, "rb")
    except OSError as exc:
        raise DecodeError(f"node_from_json_file: cannot open {os.fspath(path)!r}: {exc}") from exc
    with f:
        node = decode_json(f)
    logger.debug("json_node_loaded", path=os.fspath(path), kind=node.kind.value, length=node.length)
    return node


def _to_json_value(node: GenericNode) -> Any:
    kind = node.kind
    if kind is Kind.MAP:
        ordered = sorted(node.value, key=lambda pair: pair[0].encode("utf-8"))
        return {key: _to_json_value(child) for key, child in ordered}
    if kind is Kind.LIST:
        return [_to_json_value(child) for child in node.value]
    if kind is Kind.BYTES:
        encoded = base64.b64encode(node.value).decode("ascii").rstrip("=")
        return {_LINK_KEY: {_BYTES_KEY: encoded}}
    if kind is Kind.LINK:
        return {_LINK_KEY: node.value.encode()}
    return node.value


def encode_json(node: GenericNode) -> bytes:
    """Render a node as compact DAG-JSON with bytewise-sorted map keys."""
    try:
        text = json.dumps(
            _to_json_value(node),
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
        )
        return text.encode("utf-8")
    except ValueError as exc:
        # UnicodeEncodeError included
        raise EncodeError(f"encode_json: {exc}") from exc
    except RecursionError as exc:
        raise EncodeError("encode_json: node nested too deeply") from exc


__all__ = ["decode_json", "encode_json", "node_from_json_file"]
