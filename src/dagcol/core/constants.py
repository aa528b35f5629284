"""
Codec tags, multihash codes, CBOR layout constants and column types.
"""

import struct

# CID
CID_VERSION = 1
MULTIBASE_BASE32 = "b"  # RFC 4648 base32, lower-case, no padding

# Multicodec tags
CODEC_RAW = 0x55
CODEC_DAG_CBOR = 0x71  # binary tree format
CODEC_DAG_JSON = 0x0129  # readable tree format

# Multihash codes
MH_SHA2_256 = 0x12
MH_SHA3_384 = 0x15
SHA3_384_LENGTH = 48  # sha3-384 produces a 48-byte digest

# Store-side codec names (Kubo RPC)
CODEC_NAMES = {
    "json": "dag-json",
    "dag-json": "dag-json",
    "cbor": "dag-cbor",
    "dag-cbor": "dag-cbor",
}
HASH_NAMES = {
    MH_SHA3_384: "sha3-384",
    MH_SHA2_256: "sha2-256",
}

# CBOR major types (RFC 8949, section 3.1)
MT_UNSIGNED = 0
MT_NEGATIVE = 1
MT_BYTES = 2
MT_TEXT = 3
MT_ARRAY = 4
MT_MAP = 5
MT_TAG = 6
MT_SIMPLE = 7

# Additional information values
AI_UINT8 = 24
AI_UINT16 = 25
AI_UINT32 = 26
AI_UINT64 = 27
AI_INDEFINITE = 31

# Simple values / floats (major type 7)
SIMPLE_FALSE = 20
SIMPLE_TRUE = 21
SIMPLE_NULL = 22
SIMPLE_UNDEFINED = 23
FLOAT16 = 25
FLOAT32 = 26
FLOAT64 = 27
BREAK = 0xFF

# Tag 42 carries a CID, prefixed by the identity multibase byte 0x00
TAG_CID = 42
CID_TAG_PREFIX = b"\x00"

# Big-endian CBOR argument structs
UINT8_STRUCT = struct.Struct(">B")
UINT16_STRUCT = struct.Struct(">H")
UINT32_STRUCT = struct.Struct(">I")
UINT64_STRUCT = struct.Struct(">Q")
FLOAT16_STRUCT = struct.Struct(">e")
FLOAT32_STRUCT = struct.Struct(">f")
FLOAT64_STRUCT = struct.Struct(">d")

# Column element types: name -> little-endian struct code
COLUMN_TYPES = {
    "u8": "B",
    "u16": "H",
    "u32": "I",
    "u64": "Q",
    "i8": "b",
    "i16": "h",
    "i32": "i",
    "i64": "q",
    "f32": "f",
    "f64": "d",
}
DEFAULT_COLUMN_TYPE = "f32"
FLOAT32_SIZE = 4

# Head record layout
TYPE_KEY = "type"
VALUES_KEY = "values"
FIELDS_KEY = "fields"
TIMESTAMP_KEY = "_timestamp"

# Nesting guard for both decoders
MAX_NESTING_DEPTH = 256
