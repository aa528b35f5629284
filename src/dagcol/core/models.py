"""
Generic DAG node model.

A GenericNode is an immutable, kind-tagged tree value produced by decoding
either the readable (DAG-JSON) or the binary (DAG-CBOR) format.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from dagcol.core.cid import Cid
from dagcol.core.exceptions import DecodeError, NodeNotFoundError, TypeMismatchError


class Kind(str, Enum):
    MAP = "map"
    LIST = "list"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    STRING = "string"
    NULL = "null"
    BYTES = "bytes"
    LINK = "link"

    @property
    def is_scalar(self) -> bool:
        return self in _SCALAR_KINDS


_SCALAR_KINDS = frozenset({Kind.INT, Kind.FLOAT, Kind.BOOL, Kind.STRING, Kind.NULL})

_EMPTY_INDEX: Mapping[str, int] = MappingProxyType({})


@dataclass(frozen=True)
class GenericNode:
    """
    Immutable tree value.

    Attributes:
        kind: Node kind tag
        value: Payload; tuple of (key, node) pairs for MAP, tuple of nodes
            for LIST, bytes for BYTES, Cid for LINK, the Python scalar
            otherwise (None for NULL)
    """

    kind: Kind
    value: Any = None
    _index: Mapping[str, int] = field(
        default_factory=lambda: _EMPTY_INDEX, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        kind, value = self.kind, self.value
        if kind is Kind.MAP:
            pairs = tuple(value or ())
            index: dict[str, int] = {}
            for pos, (key, child) in enumerate(pairs):
                if not isinstance(key, str):
                    raise TypeMismatchError(f"map keys must be strings, got {type(key).__name__}")
                if not isinstance(child, GenericNode):
                    raise TypeMismatchError(f"map value for {key!r} is not a GenericNode")
                if key in index:
                    raise DecodeError(f"duplicate map key: {key!r}")
                index[key] = pos
            object.__setattr__(self, "value", pairs)
            object.__setattr__(self, "_index", MappingProxyType(index))
        elif kind is Kind.LIST:
            items = tuple(value or ())
            for child in items:
                if not isinstance(child, GenericNode):
                    raise TypeMismatchError("list items must be GenericNode instances")
            object.__setattr__(self, "value", items)
        elif kind is Kind.BYTES:
            if not isinstance(value, (bytes, bytearray, memoryview)):
                raise TypeMismatchError("bytes node requires a bytes-like value")
            object.__setattr__(self, "value", bytes(value))
        elif kind is Kind.STRING:
            if not isinstance(value, str):
                raise TypeMismatchError("string node requires a str value")
        elif kind is Kind.BOOL:
            if not isinstance(value, bool):
                raise TypeMismatchError("bool node requires a bool value")
        elif kind is Kind.INT:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeMismatchError("int node requires an int value")
        elif kind is Kind.FLOAT:
            if not isinstance(value, float):
                raise TypeMismatchError("float node requires a float value")
        elif kind is Kind.NULL:
            if value is not None:
                raise TypeMismatchError("null node cannot carry a value")
        elif kind is Kind.LINK:
            if not isinstance(value, Cid):
                raise TypeMismatchError("link node requires a Cid value")

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def length(self) -> int:
        """Children for MAP/LIST, byte count for BYTES, 0 otherwise."""
        if self.kind in (Kind.MAP, Kind.LIST, Kind.BYTES):
            return len(self.value)
        return 0

    def __len__(self) -> int:
        return self.length

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup_by_key(self, key: str) -> "GenericNode":
        """
        Single-level, exact, case-sensitive map lookup.

        Raises:
            TypeMismatchError: If this node is not a map
            NodeNotFoundError: If the key is absent
        """
        if self.kind is not Kind.MAP:
            raise TypeMismatchError(f"lookup_by_key({key!r}): not a map (kind={self.kind.value})")
        pos = self._index.get(key)
        if pos is None:
            raise NodeNotFoundError(f"lookup_by_key: key not found: {key!r}")
        return self.value[pos][1]

    def get(self, key: str, default: Optional["GenericNode"] = None) -> Optional["GenericNode"]:
        """Like lookup_by_key, but returns default when the key is absent."""
        try:
            return self.lookup_by_key(key)
        except NodeNotFoundError:
            return default

    def lookup_by_index(self, index: int) -> "GenericNode":
        if self.kind is not Kind.LIST:
            raise TypeMismatchError(f"lookup_by_index({index}): not a list (kind={self.kind.value})")
        if not 0 <= index < len(self.value):
            raise NodeNotFoundError(f"lookup_by_index: index out of range: {index}")
        return self.value[index]

    def lookup_by_segment(self, segment: str) -> "GenericNode":
        """Resolve one path segment: map key, or decimal index for lists."""
        if self.kind is Kind.LIST:
            if not segment.isdigit():
                raise NodeNotFoundError(f"lookup_by_segment: not a list index: {segment!r}")
            return self.lookup_by_index(int(segment))
        return self.lookup_by_key(segment)

    def __contains__(self, key: object) -> bool:
        return self.kind is Kind.MAP and key in self._index

    def keys(self) -> list[str]:
        if self.kind is not Kind.MAP:
            raise TypeMismatchError(f"keys(): not a map (kind={self.kind.value})")
        return [key for key, _ in self.value]

    def items(self) -> Iterator[tuple[str, "GenericNode"]]:
        if self.kind is not Kind.MAP:
            raise TypeMismatchError(f"items(): not a map (kind={self.kind.value})")
        return iter(self.value)

    def __iter__(self) -> Iterator["GenericNode"]:
        if self.kind is not Kind.LIST:
            raise TypeMismatchError(f"iteration: not a list (kind={self.kind.value})")
        return iter(self.value)

    # ------------------------------------------------------------------
    # Scalar access
    # ------------------------------------------------------------------

    def _expect(self, kind: Kind, op: str) -> Any:
        if self.kind is not kind:
            raise TypeMismatchError(f"{op}(): not {kind.value} (kind={self.kind.value})")
        return self.value

    def as_bytes(self) -> bytes:
        return self._expect(Kind.BYTES, "as_bytes")

    def as_string(self) -> str:
        return self._expect(Kind.STRING, "as_string")

    def as_int(self) -> int:
        return self._expect(Kind.INT, "as_int")

    def as_float(self) -> float:
        if self.kind is Kind.INT:
            return float(self.value)
        return self._expect(Kind.FLOAT, "as_float")

    def as_bool(self) -> bool:
        return self._expect(Kind.BOOL, "as_bool")

    def as_link(self) -> Cid:
        return self._expect(Kind.LINK, "as_link")

    def is_null(self) -> bool:
        return self.kind is Kind.NULL

    def to_python(self) -> Any:
        """Convert to plain Python values (dict, list, bytes, Cid, scalars)."""
        if self.kind is Kind.MAP:
            return {key: child.to_python() for key, child in self.value}
        if self.kind is Kind.LIST:
            return [child.to_python() for child in self.value]
        return self.value

    def __repr__(self) -> str:
        if self.kind in (Kind.MAP, Kind.LIST, Kind.BYTES):
            return f"GenericNode(kind={self.kind.value}, length={self.length})"
        return f"GenericNode(kind={self.kind.value}, value={self.value!r})"


NULL_NODE = GenericNode(Kind.NULL)


class NodeBuilder:
    """
    One-shot builder for container nodes.

    Children are collected with put()/append() and frozen by build(); the
    builder refuses further use once built.
    """

    def __init__(self, kind: Kind) -> None:
        if kind not in (Kind.MAP, Kind.LIST):
            raise TypeMismatchError(f"NodeBuilder only builds maps and lists, not {kind.value}")
        self.kind = kind
        self._entries: list[Any] = []
        self._keys: set[str] = set()
        self._built = False

    @classmethod
    def map(cls) -> "NodeBuilder":
        return cls(Kind.MAP)

    @classmethod
    def list(cls) -> "NodeBuilder":
        return cls(Kind.LIST)

    def _check_open(self) -> None:
        if self._built:
            raise RuntimeError("NodeBuilder already built")

    def put(self, key: str, node: GenericNode) -> "NodeBuilder":
        self._check_open()
        if self.kind is not Kind.MAP:
            raise TypeMismatchError("put(): builder is not a map")
        if key in self._keys:
            raise DecodeError(f"duplicate map key: {key!r}")
        self._keys.add(key)
        self._entries.append((key, node))
        return self

    def append(self, node: GenericNode) -> "NodeBuilder":
        self._check_open()
        if self.kind is not Kind.LIST:
            raise TypeMismatchError("append(): builder is not a list")
        self._entries.append(node)
        return self

    def build(self) -> GenericNode:
        self._check_open()
        self._built = True
        return GenericNode(self.kind, tuple(self._entries))


def node_from_python(obj: Any) -> GenericNode:
    """
    Build a node from plain Python data.

    dict -> MAP (keys must be str), list/tuple -> LIST, bytes -> BYTES,
    Cid -> LINK, and scalars map to their kinds.
    """
    if isinstance(obj, GenericNode):
        return obj
    if obj is None:
        return NULL_NODE
    if isinstance(obj, bool):
        return GenericNode(Kind.BOOL, obj)
    if isinstance(obj, int):
        return GenericNode(Kind.INT, obj)
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            raise DecodeError(f"non-finite float not representable: {obj!r}")
        return GenericNode(Kind.FLOAT, obj)
    if isinstance(obj, str):
        return GenericNode(Kind.STRING, obj)
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return GenericNode(Kind.BYTES, bytes(obj))
    if isinstance(obj, Cid):
        return GenericNode(Kind.LINK, obj)
    if isinstance(obj, Mapping):
        builder = NodeBuilder.map()
        for key, value in obj.items():
            if not isinstance(key, str):
                raise TypeMismatchError(f"map keys must be strings, got {type(key).__name__}")
            builder.put(key, node_from_python(value))
        return builder.build()
    if isinstance(obj, (list, tuple)):
        builder = NodeBuilder.list()
        for item in obj:
            builder.append(node_from_python(item))
        return builder.build()
    raise TypeMismatchError(f"cannot build a node from {type(obj).__name__}")


__all__ = ["Kind", "GenericNode", "NodeBuilder", "NULL_NODE", "node_from_python"]
