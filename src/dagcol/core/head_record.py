"""
Head records: one {type, values} entry per schema field.

    {
      "_timestamp": {"type": "u64", "values": b"..."},
      "temperature": {"type": "f32", "values": b"..."}
    }

"values" is a byte string holding the column in its little-endian element
encoding, so it can be stored in the binary format but not in plain JSON.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence, Union

from dagcol.core.columns import decode_column, encode_column
from dagcol.core.constants import FIELDS_KEY, TIMESTAMP_KEY, TYPE_KEY, VALUES_KEY
from dagcol.core.exceptions import DecodeError, EncodeError, TypeMismatchError
from dagcol.core.models import GenericNode, Kind, NodeBuilder

Row = Union[GenericNode, Mapping[str, Any]]


def schema_fields(schema: GenericNode) -> GenericNode:
    """Field map of a schema: its "fields" entry when that is a map, else the schema."""
    fields = schema.get(FIELDS_KEY) if schema.kind is Kind.MAP else None
    if fields is not None and fields.kind is Kind.MAP:
        return fields
    if schema.kind is not Kind.MAP:
        raise TypeMismatchError(f"schema: not a map (kind={schema.kind.value})")
    return schema


def field_type(field: GenericNode, name: str) -> str:
    if field.kind is not Kind.MAP:
        raise TypeMismatchError(f"field {name!r}: not a map (kind={field.kind.value})")
    type_node = field.get(TYPE_KEY)
    if type_node is None or type_node.kind is not Kind.STRING:
        raise TypeMismatchError(f"field {name!r}: missing string {TYPE_KEY!r}")
    return type_node.value


def build_head_record(schema: GenericNode) -> GenericNode:
    """Empty head record for every field declared by the schema."""
    head = NodeBuilder.map()
    for name, field in schema_fields(schema).items():
        entry = NodeBuilder.map()
        entry.put(TYPE_KEY, GenericNode(Kind.STRING, field_type(field, name)))
        entry.put(VALUES_KEY, GenericNode(Kind.BYTES, b""))
        head.put(name, entry.build())
    return head.build()


def _row_value(row: Mapping[str, Any], name: str, type_name: str) -> Any:
    if name not in row:
        raise DecodeError(f"append_row: row has no value for field {name!r}")
    value = row[name]
    if type_name.startswith(("u", "i")):
        if isinstance(value, bool) or not isinstance(value, int):
            raise DecodeError(f"append_row: field {name!r} ({type_name}) needs an integer, got {value!r}")
        return value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise DecodeError(f"append_row: field {name!r} ({type_name}) needs a number, got {value!r}")
    try:
        return float(value)
    except OverflowError as exc:
        raise EncodeError(f"append_row: field {name!r} ({type_name}): {exc}") from exc


def append_row(head: GenericNode, row: Row, timestamp: Optional[int] = None) -> GenericNode:
    """
    Return a new head record with one value appended to every column.

    When the head record has a "_timestamp" column and the row does not
    supply it, timestamp (default: current Unix time in seconds) is used.

    Raises:
        DecodeError: If the row lacks a field or a value has the wrong type
        EncodeError: If a value is out of range for its column type
        TypeMismatchError: If head or row are not maps
    """
    if isinstance(row, GenericNode):
        if row.kind is not Kind.MAP:
            raise TypeMismatchError(f"append_row: row is not a map (kind={row.kind.value})")
        values: dict[str, Any] = row.to_python()
    else:
        values = dict(row)
    if head.kind is not Kind.MAP:
        raise TypeMismatchError(f"append_row: head record is not a map (kind={head.kind.value})")
    if TIMESTAMP_KEY in head and TIMESTAMP_KEY not in values:
        values[TIMESTAMP_KEY] = int(time.time()) if timestamp is None else timestamp

    updated = NodeBuilder.map()
    for name, field in head.items():
        type_name = field_type(field, name)
        existing = field.get(VALUES_KEY)
        data = existing.as_bytes() if existing is not None else b""
        data += encode_column([_row_value(values, name, type_name)], type_name)
        entry = NodeBuilder.map()
        for key, child in field.items():
            if key != VALUES_KEY:
                entry.put(key, child)
        entry.put(VALUES_KEY, GenericNode(Kind.BYTES, data))
        updated.put(name, entry.build())
    return updated.build()


def read_columns(head: GenericNode, strict: bool = True) -> dict[str, list]:
    """Decode every column of a head record by its declared type."""
    columns: dict[str, list] = {}
    for name, field in head.items():
        type_name = field_type(field, name)
        columns[name] = decode_column(field.lookup_by_key(VALUES_KEY).as_bytes(), type_name, strict=strict)
    return columns


def select_rows(
    head: GenericNode,
    fields: Sequence[str] = (),
    limit: Optional[int] = None,
    strict: bool = True,
) -> tuple[list[str], list[list]]:
    """
    Row-oriented read of a head record.

    Args:
        head: Head record node
        fields: Columns to read, in output order (all columns when empty)
        limit: Maximum number of rows (None or negative = all)
        strict: Passed to decode_column

    Returns:
        (field names, rows); rows stop at the shortest column

    Raises:
        NodeNotFoundError: If a requested field is not in the record
    """
    names = list(fields) or head.keys()
    columns = []
    for name in names:
        field = head.lookup_by_key(name)
        data = field.lookup_by_key(VALUES_KEY).as_bytes()
        columns.append(decode_column(data, field_type(field, name), strict=strict))
    rows = [list(values) for values in zip(*columns)]
    if limit is not None and limit >= 0:
        rows = rows[:limit]
    return names, rows


def format_timestamp(seconds: int) -> str:
    """Unix seconds as a UTC "YYYY-MM-DD HH:MM" string."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


__all__ = [
    "schema_fields",
    "field_type",
    "build_head_record",
    "append_row",
    "read_columns",
    "select_rows",
    "format_timestamp",
]
