"""dagcol - content-addressed DAG nodes with columnar float payloads."""

from .core import (
    DEFAULT_LINK_PREFIX,
    Cid,
    DecodeError,
    GenericNode,
    Kind,
    LinkPrefix,
    NodeBuilder,
    NodeNotFoundError,
    StoreError,
    TypeMismatchError,
    decode_cbor,
    decode_json,
    encode_cbor,
    encode_json,
    float32_from_bytes,
)
from .store import HttpStoreClient, InMemoryStoreClient, StoreClient

__all__ = [
    "Cid",
    "LinkPrefix",
    "DEFAULT_LINK_PREFIX",
    "GenericNode",
    "Kind",
    "NodeBuilder",
    "decode_cbor",
    "encode_cbor",
    "decode_json",
    "encode_json",
    "float32_from_bytes",
    "StoreClient",
    "HttpStoreClient",
    "InMemoryStoreClient",
    "DecodeError",
    "TypeMismatchError",
    "NodeNotFoundError",
    "StoreError",
]

__version__ = "0.1.0"
