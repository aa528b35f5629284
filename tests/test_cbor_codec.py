import io
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dagcol.core.cbor_codec import decode_cbor, encode_cbor  # noqa: E402
from dagcol.core.cid import DEFAULT_LINK_PREFIX  # noqa: E402
from dagcol.core.exceptions import DecodeError, EncodeError  # noqa: E402
from dagcol.core.models import GenericNode, Kind, node_from_python  # noqa: E402


@pytest.mark.unit
def test_round_trip_preserves_kind_length_and_content() -> None:
    node = node_from_python(
        {
            "fields": {"type": "f32", "values": b"\x00\x00\x80\x3f"},
            "list": [1, -1, 2**40, -(2**40), 1.5, True, False, None, "héllo"],
            "empty": {},
            "link": DEFAULT_LINK_PREFIX.build_link(b"x"),
        }
    )
    decoded = decode_cbor(encode_cbor(node))

    assert decoded.kind is Kind.MAP
    assert decoded.length == node.length
    assert decoded.to_python() == node.to_python()
    assert decoded.lookup_by_key("fields").lookup_by_key("values").length == 4


@pytest.mark.unit
def test_known_encoding() -> None:
    node = node_from_python({"a": 1, "b": [True, False]})
    assert encode_cbor(node) == bytes.fromhex("a2616101616282f5f4")


@pytest.mark.unit
def test_canonical_key_order_is_length_first() -> None:
    node = node_from_python({"aa": 1, "b": 2})
    assert encode_cbor(node) == bytes.fromhex("a2616202626161" + "01")


@pytest.mark.unit
def test_floats_encode_as_64_bit() -> None:
    assert encode_cbor(node_from_python(1.0)) == bytes.fromhex("fb3ff0000000000000")


@pytest.mark.unit
@pytest.mark.parametrize(
    "hex_data,expected",
    [
        ("00", 0),
        ("17", 23),
        ("1818", 24),
        ("190100", 256),
        ("1a00010000", 65536),
        ("1bffffffffffffffff", 2**64 - 1),
        ("20", -1),
        ("3863", -100),
        ("3bffffffffffffffff", -(2**64)),
    ],
)
def test_integers(hex_data: str, expected: int) -> None:
    node = decode_cbor(bytes.fromhex(hex_data))
    assert node.kind is Kind.INT
    assert node.value == expected


@pytest.mark.unit
def test_non_shortest_integer_is_accepted() -> None:
    assert decode_cbor(bytes.fromhex("1b0000000000000001")).value == 1


@pytest.mark.unit
@pytest.mark.parametrize("hex_data", ["f93c00", "fa3f800000", "fb3ff0000000000000"])
def test_all_float_widths(hex_data: str) -> None:
    node = decode_cbor(bytes.fromhex(hex_data))
    assert node.kind is Kind.FLOAT
    assert node.value == 1.0


@pytest.mark.unit
def test_indefinite_length_containers() -> None:
    # {_ "a": [_ 1, 2], "b": (_ h'0102', h'03')}
    data = bytes.fromhex("bf" "6161" "9f0102ff" "6162" "5f42010241" "03ff" "ff")
    node = decode_cbor(data)

    assert node.length == 2
    assert node.lookup_by_key("a").to_python() == [1, 2]
    assert node.lookup_by_key("b").as_bytes() == b"\x01\x02\x03"
    # re-encoding produces the definite-length canonical form
    assert decode_cbor(encode_cbor(node)) == node


@pytest.mark.unit
def test_indefinite_text_string() -> None:
    node = decode_cbor(bytes.fromhex("7f" "626869" "6121" "ff"))
    assert node.as_string() == "hi!"


@pytest.mark.unit
def test_cid_tag() -> None:
    cid = DEFAULT_LINK_PREFIX.build_link(b"target")
    encoded = encode_cbor(GenericNode(Kind.LINK, cid))

    assert encoded[:2] == b"\xd8\x2a"
    node = decode_cbor(encoded)
    assert node.kind is Kind.LINK
    assert node.as_link() == cid


@pytest.mark.unit
def test_decode_from_stream() -> None:
    node = decode_cbor(io.BytesIO(bytes.fromhex("a2616101616282f5f4")))
    assert node.lookup_by_key("b").length == 2


@pytest.mark.unit
@pytest.mark.parametrize(
    "hex_data,message",
    [
        ("", "empty"),
        ("82", "truncated"),
        ("8201", "truncated"),
        ("1a0001", "truncated"),
        ("6361", "truncated"),
        ("0102", "trailing"),
        ("1c", "reserved"),
        ("ff", "break"),
        ("f7", "undefined"),
        ("f820", "simple"),
        ("c100", "tag"),
        ("a10102", "map key"),
        ("a2616101616102", "duplicate"),
        ("62c328", "UTF-8"),
        ("9f01", "break"),
        ("f97e00", "non-finite"),
        ("d82a4100", "CID"),
        ("d82a01", "byte string"),
        ("5f6161ff", "chunk"),
        ("9bffffffffffffffff", "truncated"),
    ],
)
def test_malformed_input(hex_data: str, message: str) -> None:
    with pytest.raises(DecodeError, match=message):
        decode_cbor(bytes.fromhex(hex_data))


@pytest.mark.unit
def test_nesting_limit() -> None:
    data = b"\x81" * 1000 + b"\x01"
    with pytest.raises(DecodeError, match="nesting"):
        decode_cbor(data)


@pytest.mark.unit
def test_encode_out_of_range_integer() -> None:
    with pytest.raises(EncodeError):
        encode_cbor(node_from_python(2**64))


@pytest.mark.unit
def test_encode_lone_surrogate_is_encode_error() -> None:
    with pytest.raises(EncodeError, match="Unicode"):
        encode_cbor(node_from_python({"a": "\ud800"}))
    with pytest.raises(EncodeError):
        encode_cbor(node_from_python({"\udfff": 1}))
