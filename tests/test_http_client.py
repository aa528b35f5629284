"""HTTP store client against a mocked Kubo RPC API."""
import json
import sys
from pathlib import Path

import httpx
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dagcol.config.config import StoreConfig  # noqa: E402
from dagcol.core.cbor_codec import encode_cbor  # noqa: E402
from dagcol.core.cid import DEFAULT_LINK_PREFIX, Cid  # noqa: E402
from dagcol.core.exceptions import DecodeError, StoreError  # noqa: E402
from dagcol.core.json_codec import decode_json  # noqa: E402
from dagcol.core.models import Kind  # noqa: E402
from dagcol.store.cache import InMemoryBlockCache  # noqa: E402
from dagcol.store.http_client import HttpStoreClient  # noqa: E402

DOC = b'{"a": 1, "b": [true, false]}'
BLOCK = encode_cbor(decode_json(DOC))
CID = DEFAULT_LINK_PREFIX.build_link(BLOCK).encode()


class FakeKubo:
    """Minimal dag/put, dag/get and block/get endpoints."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.blocks = {CID: BLOCK}
        self.put_cid = CID
        self.fail_next: list[Exception] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_next:
            raise self.fail_next.pop(0)
        path = request.url.path
        arg = request.url.params.get("arg")
        if path == "/api/v0/dag/put":
            return httpx.Response(200, json={"Cid": {"/": self.put_cid}})
        if path == "/api/v0/block/get":
            if arg not in self.blocks:
                return httpx.Response(500, json={"Message": "block was not found locally", "Code": 0})
            return httpx.Response(200, content=self.blocks[arg])
        if path == "/api/v0/dag/get":
            return httpx.Response(200, content=DOC)
        return httpx.Response(404, text="404 page not found")

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def kubo() -> FakeKubo:
    return FakeKubo()


@pytest.fixture
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list:
    waits: list = []
    monkeypatch.setattr("dagcol.utils.retry.time.sleep", waits.append)
    return waits


def make_client(kubo: FakeKubo, **kwargs) -> HttpStoreClient:
    http = httpx.Client(transport=httpx.MockTransport(kubo), base_url="http://ipfs.test")
    return HttpStoreClient(config=StoreConfig(backoff_base=0), http_client=http, **kwargs)


@pytest.mark.unit
def test_put_sends_codec_and_hash_params(kubo: FakeKubo) -> None:
    client = make_client(kubo)

    assert client.put(DOC, "json", "cbor") == CID

    (request,) = kubo.requests
    assert request.method == "POST"
    assert request.url.path == "/api/v0/dag/put"
    params = request.url.params
    assert params["input-codec"] == "dag-json"
    assert params["store-codec"] == "dag-cbor"
    assert params["hash"] == "sha3-384"
    assert params["pin"] == "true"
    assert DOC in request.read()


@pytest.mark.unit
def test_put_rejects_cid_outside_scheme(kubo: FakeKubo) -> None:
    kubo.put_cid = Cid(1, 0x71, 0x12, b"\x00" * 32).encode()
    client = make_client(kubo)

    with pytest.raises(StoreError, match="identifier scheme"):
        client.put(DOC)


@pytest.mark.unit
def test_put_rejects_unknown_codec(kubo: FakeKubo) -> None:
    client = make_client(kubo)
    with pytest.raises(StoreError, match="unsupported codec"):
        client.put(DOC, "yaml", "cbor")
    assert kubo.requests == []


@pytest.mark.unit
def test_block_get_verifies_and_caches(kubo: FakeKubo) -> None:
    client = make_client(kubo, cache=InMemoryBlockCache())

    assert client.block_get(CID) == BLOCK
    assert client.block_get(CID) == BLOCK
    assert kubo.paths() == ["/api/v0/block/get"]
    assert kubo.requests[0].url.params["arg"] == CID


@pytest.mark.unit
def test_block_get_digest_mismatch(kubo: FakeKubo) -> None:
    kubo.blocks[CID] = BLOCK + b"\x00"
    cache = InMemoryBlockCache()
    client = make_client(kubo, cache=cache)

    with pytest.raises(StoreError, match="digest mismatch"):
        client.block_get(CID)
    assert cache.get(CID) is None


@pytest.mark.unit
def test_http_error_carries_status_and_message(kubo: FakeKubo) -> None:
    client = make_client(kubo)
    missing = DEFAULT_LINK_PREFIX.build_link(b"other").encode()

    with pytest.raises(StoreError) as excinfo:
        client.block_get(missing)

    assert excinfo.value.status_code == 500
    assert excinfo.value.operation == "block_get"
    assert "not found locally" in str(excinfo.value)
    # HTTP error answers are not retried
    assert len(kubo.requests) == 1


@pytest.mark.unit
def test_transport_errors_are_retried(kubo: FakeKubo, no_sleep: list) -> None:
    kubo.fail_next = [httpx.ConnectError("refused"), httpx.ReadTimeout("slow")]
    client = make_client(kubo)

    assert client.block_get(CID) == BLOCK
    assert len(kubo.requests) == 3
    assert len(no_sleep) == 2


@pytest.mark.unit
def test_store_unavailable_after_retries(kubo: FakeKubo, no_sleep: list) -> None:
    kubo.fail_next = [httpx.ConnectError("refused")] * 3
    client = make_client(kubo)

    with pytest.raises(StoreError, match="store unavailable") as excinfo:
        client.block_get(CID)
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert excinfo.value.status_code is None


@pytest.mark.unit
def test_get_decodes_readable_answer(kubo: FakeKubo) -> None:
    client = make_client(kubo)

    node = client.get(f"{CID}/b")
    assert node.kind is Kind.MAP
    params = kubo.requests[0].url.params
    assert params["arg"] == f"{CID}/b"
    assert params["output-codec"] == "dag-json"


@pytest.mark.unit
def test_get_malformed_answer() -> None:
    http = httpx.Client(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, content=b"{nope")),
        base_url="http://ipfs.test",
    )
    client = HttpStoreClient(http_client=http)

    with pytest.raises(DecodeError):
        client.get(CID)


@pytest.mark.unit
def test_unexpected_put_answer() -> None:
    http = httpx.Client(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text=json.dumps({"Hash": "x"}))),
        base_url="http://ipfs.test",
    )
    client = HttpStoreClient(http_client=http)

    with pytest.raises(StoreError, match="unexpected dag/put response"):
        client.put(DOC)


@pytest.mark.unit
def test_close_leaves_injected_client_open(kubo: FakeKubo) -> None:
    http = httpx.Client(transport=httpx.MockTransport(kubo), base_url="http://ipfs.test")
    with HttpStoreClient(http_client=http) as client:
        client.block_get(CID)
    assert not http.is_closed

    owned = HttpStoreClient(StoreConfig(api_url="http://ipfs.test/"))
    assert str(owned._http.base_url).rstrip("/") == "http://ipfs.test"
    owned.close()
    assert owned._http.is_closed
