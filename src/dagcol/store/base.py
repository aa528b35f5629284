"""Content-addressed store boundary."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from dagcol.core.cbor_codec import decode_cbor
from dagcol.core.exceptions import DagError, StoreError
from dagcol.core.models import GenericNode, Kind

DEFAULT_INPUT_CODEC = "json"
DEFAULT_STORE_CODEC = "cbor"


def split_ref(ref: str) -> tuple[str, list[str]]:
    """
    Split "<cid>/a/b" (optionally prefixed with /ipfs/) into cid and path.
    """
    text = ref.strip()
    if text.startswith("/ipfs/"):
        text = text[len("/ipfs/"):]
    parts = [part for part in text.split("/") if part]
    if not parts:
        raise StoreError(f"empty reference: {ref!r}", operation="get")
    return parts[0], parts[1:]


class StoreClient(ABC):
    """
    put/get/block_get capability handed explicitly to every operation that
    needs the store.
    """

    @abstractmethod
    def put(
        self,
        data: bytes,
        input_codec: str = DEFAULT_INPUT_CODEC,
        store_codec: str = DEFAULT_STORE_CODEC,
    ) -> str:
        """Persist data given in input_codec as store_codec; return its CID string."""

    @abstractmethod
    def get(self, ref: str) -> GenericNode:
        """Resolve a CID, optionally followed by /field path segments, to a node."""

    @abstractmethod
    def block_get(self, cid: str) -> bytes:
        """Raw stored bytes for a CID, uninterpreted."""

    def close(self) -> None:
        pass

    def __enter__(self) -> "StoreClient":
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Any,
    ) -> None:
        self.close()


def resolve_path(client: StoreClient, node: GenericNode, segments: list[str]) -> GenericNode:
    """
    Walk path segments from node, loading linked blocks through the client.

    Raises:
        StoreError: If a segment cannot be resolved
    """
    current = node
    for depth, segment in enumerate(segments):
        if current.kind is Kind.LINK:
            current = decode_cbor(client.block_get(current.value.encode()))
        try:
            current = current.lookup_by_segment(segment)
        except DagError as exc:
            walked = "/".join(segments[:depth])
            raise StoreError(
                f"cannot resolve {segment!r} under /{walked}: {exc}", operation="get"
            ) from exc
    return current


__all__ = [
    "StoreClient",
    "split_ref",
    "resolve_path",
    "DEFAULT_INPUT_CODEC",
    "DEFAULT_STORE_CODEC",
]
