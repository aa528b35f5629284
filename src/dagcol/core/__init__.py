"""dagcol core functionality."""

from .cbor_codec import decode_cbor, encode_cbor
from .cid import DEFAULT_LINK_PREFIX, Cid, LinkPrefix
from .columns import decode_column, encode_column, float32_from_bytes, read_float32_vector
from .exceptions import (
    DagError,
    DagIOError,
    DecodeError,
    EncodeError,
    NodeNotFoundError,
    StoreError,
    TypeMismatchError,
)
from .head_record import append_row, build_head_record, format_timestamp, read_columns, select_rows
from .json_codec import decode_json, encode_json, node_from_json_file
from .models import GenericNode, Kind, NodeBuilder, node_from_python

__all__ = [
    "Cid",
    "LinkPrefix",
    "DEFAULT_LINK_PREFIX",
    "GenericNode",
    "Kind",
    "NodeBuilder",
    "node_from_python",
    "decode_cbor",
    "encode_cbor",
    "decode_json",
    "encode_json",
    "node_from_json_file",
    "decode_column",
    "encode_column",
    "float32_from_bytes",
    "read_float32_vector",
    "build_head_record",
    "append_row",
    "read_columns",
    "select_rows",
    "format_timestamp",
    "DagError",
    "DecodeError",
    "EncodeError",
    "TypeMismatchError",
    "NodeNotFoundError",
    "DagIOError",
    "StoreError",
]
