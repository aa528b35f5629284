"""In-process store client implementing the same contract as the HTTP one."""

from __future__ import annotations

from threading import Lock
from typing import Dict

from dagcol.core.cbor_codec import decode_cbor, encode_cbor
from dagcol.core.cid import DEFAULT_LINK_PREFIX, LinkPrefix
from dagcol.core.constants import CODEC_NAMES
from dagcol.core.exceptions import DecodeError, StoreError
from dagcol.core.json_codec import decode_json
from dagcol.core.models import GenericNode
from dagcol.store.base import (
    DEFAULT_INPUT_CODEC,
    DEFAULT_STORE_CODEC,
    StoreClient,
    resolve_path,
    split_ref,
)

_DECODERS = {"dag-json": decode_json, "dag-cbor": decode_cbor}


class InMemoryStoreClient(StoreClient):
    """
    Dict-backed store. Content is canonicalised to DAG-CBOR and addressed
    with the link prefix, exactly as the real store is configured to do.
    """

    def __init__(self, link_prefix: LinkPrefix = DEFAULT_LINK_PREFIX) -> None:
        self.link_prefix = link_prefix
        self._blocks: Dict[str, bytes] = {}
        self._lock = Lock()

    def put(
        self,
        data: bytes,
        input_codec: str = DEFAULT_INPUT_CODEC,
        store_codec: str = DEFAULT_STORE_CODEC,
    ) -> str:
        input_name = CODEC_NAMES.get(input_codec)
        if input_name is None:
            raise StoreError(f"unsupported input codec: {input_codec!r}", operation="put")
        if CODEC_NAMES.get(store_codec) != "dag-cbor":
            raise StoreError(f"unsupported store codec: {store_codec!r}", operation="put")
        try:
            node = _DECODERS[input_name](data)
        except DecodeError as exc:
            raise StoreError(f"invalid {input_name} input: {exc}", operation="put") from exc
        block = encode_cbor(node)
        cid = self.link_prefix.build_link(block).encode()
        with self._lock:
            self._blocks[cid] = block
        return cid

    def block_get(self, cid: str) -> bytes:
        with self._lock:
            block = self._blocks.get(cid)
        if block is None:
            raise StoreError(f"block not found: {cid}", operation="block_get")
        return block

    def get(self, ref: str) -> GenericNode:
        cid, segments = split_ref(ref)
        node = decode_cbor(self.block_get(cid))
        return resolve_path(self, node, segments)

    def __contains__(self, cid: str) -> bool:
        with self._lock:
            return cid in self._blocks

    def __len__(self) -> int:
        with self._lock:
            return len(self._blocks)


__all__ = ["InMemoryStoreClient"]
