"""Store client for the IPFS (Kubo) HTTP RPC API."""

from __future__ import annotations

import time
from typing import Any, Optional

import httpx

from dagcol.config.config import StoreConfig
from dagcol.core.cid import DEFAULT_LINK_PREFIX, Cid, LinkPrefix
from dagcol.core.constants import CODEC_NAMES, HASH_NAMES
from dagcol.core.exceptions import DecodeError, StoreError
from dagcol.core.json_codec import decode_json
from dagcol.core.models import GenericNode
from dagcol.monitoring.metrics import (
    BLOCK_CACHE_HITS,
    BLOCK_CACHE_MISSES,
    DECODE_FAILURES,
    STORE_LATENCY,
    STORE_REQUESTS,
)
from dagcol.store.base import DEFAULT_INPUT_CODEC, DEFAULT_STORE_CODEC, StoreClient
from dagcol.store.cache import BlockCacheBackend, NullBlockCache
from dagcol.utils.logging import get_logger
from dagcol.utils.retry import retry

logger = get_logger(__name__)

API_PREFIX = "/api/v0"


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text.strip() or response.reason_phrase
    if isinstance(payload, dict) and payload.get("Message"):
        return str(payload["Message"])
    return response.text.strip()


class HttpStoreClient(StoreClient):
    """
    put/get/block_get over the Kubo RPC API.

    Transport errors are retried with exponential backoff; HTTP error
    answers are not. Raw blocks are verified against their CID when it
    uses the configured link prefix, then cached.
    """

    def __init__(
        self,
        config: Optional[StoreConfig] = None,
        http_client: Optional[httpx.Client] = None,
        cache: Optional[BlockCacheBackend] = None,
        link_prefix: LinkPrefix = DEFAULT_LINK_PREFIX,
    ) -> None:
        self.config = config or StoreConfig()
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(
            base_url=self.config.api_url,
            timeout=self.config.request_timeout,
        )
        self.cache = cache or NullBlockCache()
        self.link_prefix = link_prefix
        self._send = retry(
            max_attempts=self.config.max_retries,
            backoff_base=self.config.backoff_base,
            exceptions=(httpx.TransportError,),
        )(self._send_once)

    def _send_once(self, endpoint: str, params: dict[str, str], files: Any = None) -> httpx.Response:
        return self._http.post(f"{API_PREFIX}/{endpoint}", params=params, files=files)

    def _call(
        self,
        operation: str,
        endpoint: str,
        params: dict[str, str],
        files: Any = None,
    ) -> httpx.Response:
        started = time.perf_counter()
        try:
            response = self._send(endpoint, params, files)
        except httpx.HTTPError as exc:
            STORE_REQUESTS.labels(operation=operation, status="error").inc()
            logger.error("store_unavailable", operation=operation, error=str(exc))
            raise StoreError(f"store unavailable: {exc}", operation=operation) from exc
        finally:
            STORE_LATENCY.labels(operation=operation).observe(time.perf_counter() - started)

        STORE_REQUESTS.labels(operation=operation, status=str(response.status_code)).inc()
        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "store_request_failed",
                operation=operation,
                status_code=response.status_code,
                error=message,
            )
            raise StoreError(message, operation=operation, status_code=response.status_code)
        return response

    def put(
        self,
        data: bytes,
        input_codec: str = DEFAULT_INPUT_CODEC,
        store_codec: str = DEFAULT_STORE_CODEC,
    ) -> str:
        input_name = CODEC_NAMES.get(input_codec)
        store_name = CODEC_NAMES.get(store_codec)
        if input_name is None or store_name is None:
            raise StoreError(
                f"unsupported codec pair: {input_codec!r} -> {store_codec!r}", operation="put"
            )
        params = {
            "input-codec": input_name,
            "store-codec": store_name,
            "hash": HASH_NAMES[self.link_prefix.mh_type],
            "pin": "true",
        }
        response = self._call("put", "dag/put", params, files={"file": ("data", data)})
        try:
            cid_text = response.json()["Cid"]["/"]
        except (ValueError, KeyError, TypeError) as exc:
            raise StoreError(f"unexpected dag/put response: {response.text!r}", operation="put") from exc

        if store_name == "dag-cbor":
            try:
                cid = Cid.decode(cid_text)
            except DecodeError as exc:
                raise StoreError(f"store returned unparseable CID {cid_text!r}", operation="put") from exc
            if not self.link_prefix.matches(cid):
                raise StoreError(
                    f"store returned {cid_text} outside the configured identifier scheme",
                    operation="put",
                )
        logger.info("dag_put_completed", cid=cid_text, input_codec=input_name, size=len(data))
        return cid_text

    def get(self, ref: str) -> GenericNode:
        response = self._call("get", "dag/get", {"arg": ref, "output-codec": "dag-json"})
        try:
            return decode_json(response.content)
        except DecodeError:
            DECODE_FAILURES.labels(format="dag-json").inc()
            raise

    def block_get(self, cid: str) -> bytes:
        cached = self.cache.get(cid)
        if cached is not None:
            BLOCK_CACHE_HITS.inc()
            return cached
        BLOCK_CACHE_MISSES.inc()

        block = self._call("block_get", "block/get", {"arg": cid}).content
        self._verify_block(cid, block)
        self.cache.set(cid, block)
        logger.debug("block_fetched", cid=cid, size=len(block))
        return block

    def _verify_block(self, cid_text: str, block: bytes) -> None:
        try:
            cid = Cid.decode(cid_text)
        except DecodeError:
            return
        if self.link_prefix.matches(cid) and not cid.verify(block):
            raise StoreError(f"block digest mismatch for {cid_text}", operation="block_get")

    def close(self) -> None:
        if self._owns_http:
            self._http.close()


__all__ = ["HttpStoreClient", "API_PREFIX"]
