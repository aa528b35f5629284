"""
Store-backed operations: publish a readable document, fetch its binary
block back, descend by field name and decode column bytes.

Every function receives the store client explicitly.
"""

from __future__ import annotations

import os
from typing import Optional, Sequence, Union

from dagcol.core.cbor_codec import decode_cbor, encode_cbor
from dagcol.core.columns import decode_column, float32_from_bytes
from dagcol.core.constants import DEFAULT_COLUMN_TYPE, FIELDS_KEY, TYPE_KEY, VALUES_KEY
from dagcol.core.exceptions import DagIOError, DecodeError
from dagcol.core.head_record import Row, append_row, build_head_record, select_rows
from dagcol.core.json_codec import node_from_json_file
from dagcol.core.models import GenericNode, Kind
from dagcol.monitoring.metrics import DECODE_FAILURES
from dagcol.store.base import StoreClient
from dagcol.utils.logging import get_logger, log_context

logger = get_logger(__name__)

PathLike = Union[str, os.PathLike]


def put_json_file(client: StoreClient, path: PathLike) -> str:
    """
    Store a DAG-JSON file as DAG-CBOR and return its CID.

    Raises:
        DagIOError: If the file cannot be read
        StoreError: If the store rejects the content
    """
    try:
        with open(path, "rb") as f:
            data = f.read()
    except OSError as exc:
        raise DagIOError(f"put_json_file: cannot read {os.fspath(path)!r}: {exc}") from exc
    cid = client.put(data, "json", "cbor")
    logger.info("json_file_stored", path=os.fspath(path), cid=cid)
    return cid


def put_node(client: StoreClient, node: GenericNode) -> str:
    """Store a node in its canonical binary form."""
    return client.put(encode_cbor(node), "cbor", "cbor")


def fetch_node(client: StoreClient, cid: str) -> GenericNode:
    """
    Fetch the raw block for cid and decode it as DAG-CBOR.

    Raises:
        StoreError: If the block cannot be fetched
        DecodeError: If the block is not valid DAG-CBOR
    """
    with log_context(cid=cid):
        block = client.block_get(cid)
        try:
            node = decode_cbor(block)
        except DecodeError:
            DECODE_FAILURES.labels(format="dag-cbor").inc()
            logger.warning("block_decode_failed", size=len(block))
            raise
        logger.debug("block_decoded", kind=node.kind.value, length=node.length)
    return node


def lookup_path(node: GenericNode, *keys: str) -> GenericNode:
    """Sequential single-level map lookups."""
    current = node
    for key in keys:
        current = current.lookup_by_key(key)
    return current


def read_float_vector(
    client: StoreClient,
    cid: str,
    field: str = FIELDS_KEY,
    values: str = VALUES_KEY,
    strict: bool = True,
) -> list[float]:
    """
    Fetch cid, descend node[field][values] and decode the bytes as f32.

    Raises:
        StoreError, DecodeError, NodeNotFoundError, TypeMismatchError
    """
    node = fetch_node(client, cid)
    values_node = lookup_path(node, field, values)
    floats = float32_from_bytes(values_node.as_bytes(), strict=strict)
    logger.debug("float_vector_read", cid=cid, field=field, count=len(floats))
    return floats


def read_column(
    client: StoreClient,
    cid: str,
    field: str,
    type_name: Optional[str] = None,
    strict: bool = True,
    values: str = VALUES_KEY,
) -> list:
    """
    Decode one head-record column. The element type defaults to the
    field's own "type" entry, then to f32.
    """
    entry = fetch_node(client, cid).lookup_by_key(field)
    if type_name is None:
        type_node = entry.get(TYPE_KEY)
        if type_node is not None and type_node.kind is Kind.STRING:
            type_name = type_node.value
        else:
            type_name = DEFAULT_COLUMN_TYPE
    return decode_column(entry.lookup_by_key(values).as_bytes(), type_name, strict=strict)


def put_head_record(client: StoreClient, schema_path: PathLike) -> str:
    """Build an empty head record from a DAG-JSON schema file and store it."""
    head = build_head_record(node_from_json_file(schema_path))
    cid = put_node(client, head)
    logger.info("head_record_stored", schema=os.fspath(schema_path), cid=cid, fields=head.length)
    return cid


def append_to_head_record(
    client: StoreClient, head_cid: str, row: Row, timestamp: Optional[int] = None
) -> str:
    """Append one row to a stored head record; returns the new record's CID."""
    head = fetch_node(client, head_cid)
    cid = put_node(client, append_row(head, row, timestamp=timestamp))
    logger.info("head_record_appended", previous=head_cid, cid=cid)
    return cid


def select(
    client: StoreClient,
    cid: str,
    fields: Sequence[str] = (),
    limit: Optional[int] = None,
    strict: bool = True,
) -> tuple[list[str], list[list]]:
    """Read the named columns of a stored head record as rows (see select_rows)."""
    names, rows = select_rows(fetch_node(client, cid), fields, limit=limit, strict=strict)
    logger.debug("rows_selected", cid=cid, fields=names, count=len(rows))
    return names, rows


__all__ = [
    "put_json_file",
    "put_node",
    "fetch_node",
    "lookup_path",
    "read_float_vector",
    "read_column",
    "put_head_record",
    "append_to_head_record",
    "select",
]
