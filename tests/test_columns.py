import io
import struct
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from dagcol.core.columns import (  # noqa: E402
    column_from_node,
    decode_column,
    encode_column,
    float32_from_bytes,
    float32_to_bytes,
    read_float32_vector,
)
from dagcol.core.exceptions import DecodeError, EncodeError, TypeMismatchError  # noqa: E402
from dagcol.core.models import node_from_python  # noqa: E402


@pytest.mark.unit
def test_little_endian_floats() -> None:
    assert float32_from_bytes(bytes([0x00, 0x00, 0x80, 0x3F, 0x00, 0x00, 0x00, 0x40])) == [1.0, 2.0]


@pytest.mark.unit
def test_empty_buffer_is_empty_vector() -> None:
    assert float32_from_bytes(b"") == []
    assert column_from_node(node_from_python(b"")) == []


@pytest.mark.unit
def test_partial_trailing_window_strict() -> None:
    with pytest.raises(DecodeError, match="2 trailing bytes"):
        float32_from_bytes(bytes.fromhex("0000803f0000"))


@pytest.mark.unit
def test_partial_trailing_window_lenient() -> None:
    assert float32_from_bytes(bytes.fromhex("0000803f0000"), strict=False) == [1.0]
    assert float32_from_bytes(b"\x00\x00\x80", strict=False) == []


@pytest.mark.unit
def test_stream_order_preserved() -> None:
    values = [0.5, -1.25, 3.0, 1024.0]
    assert float32_from_bytes(float32_to_bytes(values)) == values


@pytest.mark.unit
def test_f32_precision_is_single() -> None:
    (decoded,) = float32_from_bytes(struct.pack("<f", 0.1))
    assert decoded != 0.1
    assert decoded == pytest.approx(0.1, rel=1e-7)


@pytest.mark.unit
def test_read_float32_vector_exact() -> None:
    stream = io.BytesIO(bytes.fromhex("0000803f00000040ffff"))
    assert read_float32_vector(stream, 2) == [1.0, 2.0]


@pytest.mark.unit
def test_read_float32_vector_short_read() -> None:
    stream = io.BytesIO(bytes.fromhex("0000803f0000"))
    with pytest.raises(DecodeError, match="short read"):
        read_float32_vector(stream, 2)


@pytest.mark.unit
def test_read_float32_vector_failing_stream() -> None:
    class BrokenStream:
        def read(self, size):
            raise OSError("gone")

    with pytest.raises(DecodeError) as excinfo:
        read_float32_vector(BrokenStream(), 1)
    assert isinstance(excinfo.value.__cause__, OSError)


@pytest.mark.unit
@pytest.mark.parametrize(
    "type_name,values",
    [
        ("u8", [0, 255]),
        ("u16", [1, 65535]),
        ("u32", [7, 2**32 - 1]),
        ("u64", [1700000000, 2**64 - 1]),
        ("i8", [-128, 127]),
        ("i16", [-32768, 5]),
        ("i32", [-1, 2**31 - 1]),
        ("i64", [-(2**63), 42]),
        ("f64", [0.1, -2.5]),
    ],
)
def test_typed_columns(type_name: str, values: list) -> None:
    assert decode_column(encode_column(values, type_name), type_name) == values


@pytest.mark.unit
def test_u64_layout_is_little_endian() -> None:
    assert encode_column([1], "u64") == b"\x01" + b"\x00" * 7


@pytest.mark.unit
def test_unknown_type_reads_as_f32() -> None:
    assert decode_column(bytes.fromhex("0000803f"), "float") == [1.0]


@pytest.mark.unit
def test_encode_out_of_range() -> None:
    with pytest.raises(EncodeError):
        encode_column([256], "u8")
    with pytest.raises(EncodeError):
        encode_column([-1], "u32")
    with pytest.raises(EncodeError):
        encode_column([1e300], "f32")


@pytest.mark.unit
def test_column_from_non_bytes_node() -> None:
    with pytest.raises(TypeMismatchError):
        column_from_node(node_from_python("not bytes"))
