"""
Content identifiers (CIDv1) and the link prefix used to derive them.

Binary layout of a CIDv1:
    varint(version) + varint(codec) + varint(mh_type) + varint(mh_length) + digest

String form: multibase "b" (RFC 4648 base32, lower-case, unpadded).
"""

from __future__ import annotations

import base64
import hashlib
from dataclasses import dataclass
from typing import Callable

from dagcol.core.constants import (
    CID_VERSION,
    CODEC_DAG_CBOR,
    MH_SHA3_384,
    MULTIBASE_BASE32,
    SHA3_384_LENGTH,
)
from dagcol.core.exceptions import DecodeError

# Hash functions this package can compute, keyed by multihash code
HASH_FUNCTIONS: dict[int, tuple[Callable[[bytes], bytes], int]] = {
    MH_SHA3_384: (lambda data: hashlib.sha3_384(data).digest(), SHA3_384_LENGTH),
}


def encode_varint(value: int) -> bytes:
    """Unsigned LEB128 varint."""
    if value < 0:
        raise ValueError("varint must be non-negative")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decode an unsigned varint.

    Returns:
        (value, new_offset)

    Raises:
        DecodeError: If the varint is truncated or longer than 9 bytes
    """
    value = 0
    shift = 0
    pos = offset
    while True:
        if pos >= len(data):
            raise DecodeError("truncated varint")
        if pos - offset >= 9:
            raise DecodeError("varint too long")
        byte = data[pos]
        value |= (byte & 0x7F) << shift
        pos += 1
        if not byte & 0x80:
            return value, pos
        shift += 7


def _b32encode(raw: bytes) -> str:
    return base64.b32encode(raw).decode("ascii").lower().rstrip("=")


def _b32decode(text: str) -> bytes:
    padded = text.upper() + "=" * (-len(text) % 8)
    try:
        return base64.b32decode(padded)
    except ValueError as exc:
        raise DecodeError(f"invalid base32 CID: {text!r}") from exc


@dataclass(frozen=True)
class Cid:
    """
    Version-1 content identifier.

    Attributes:
        version: CID version (always 1 here)
        codec: Multicodec tag of the addressed content
        mh_type: Multihash function code
        digest: Raw hash digest
    """

    version: int
    codec: int
    mh_type: int
    digest: bytes

    def to_bytes(self) -> bytes:
        return (
            encode_varint(self.version)
            + encode_varint(self.codec)
            + encode_varint(self.mh_type)
            + encode_varint(len(self.digest))
            + self.digest
        )

    def encode(self) -> str:
        """Multibase base32 string form."""
        return MULTIBASE_BASE32 + _b32encode(self.to_bytes())

    def __str__(self) -> str:
        return self.encode()

    def __repr__(self) -> str:
        return f"Cid({self.encode()!r})"

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Cid":
        """
        Parse the binary form of a CIDv1.

        Raises:
            DecodeError: On truncation, trailing bytes or a non-1 version
        """
        version, pos = decode_varint(raw, 0)
        if version != CID_VERSION:
            raise DecodeError(f"unsupported CID version: {version} (expected {CID_VERSION})")
        codec, pos = decode_varint(raw, pos)
        mh_type, pos = decode_varint(raw, pos)
        mh_length, pos = decode_varint(raw, pos)
        digest = raw[pos:]
        if len(digest) != mh_length:
            raise DecodeError(
                f"CID digest length mismatch: header says {mh_length}, got {len(digest)}"
            )
        return cls(version=version, codec=codec, mh_type=mh_type, digest=bytes(digest))

    @classmethod
    def decode(cls, text: str) -> "Cid":
        """Parse a multibase base32 CIDv1 string."""
        if not text or text[0] != MULTIBASE_BASE32:
            raise DecodeError(f"unsupported CID encoding (expected base32 CIDv1): {text!r}")
        return cls.from_bytes(_b32decode(text[1:]))

    def verify(self, data: bytes) -> bool:
        """Recompute the digest of data and compare."""
        entry = HASH_FUNCTIONS.get(self.mh_type)
        if entry is None:
            raise ValueError(f"unsupported multihash code: {self.mh_type:#x}")
        hash_fn, _ = entry
        return hash_fn(data)[: len(self.digest)] == self.digest


@dataclass(frozen=True)
class LinkPrefix:
    """
    Template that turns canonical node bytes into a Cid.

    Not an identifier itself; combined with a canonical encoding it
    deterministically yields one.
    """

    version: int = CID_VERSION
    codec: int = CODEC_DAG_CBOR
    mh_type: int = MH_SHA3_384
    mh_length: int = SHA3_384_LENGTH

    def __post_init__(self) -> None:
        if self.version != CID_VERSION:
            raise ValueError(f"Unsupported CID version: {self.version} (expected {CID_VERSION})")
        entry = HASH_FUNCTIONS.get(self.mh_type)
        if entry is None:
            raise ValueError(f"Unsupported multihash code: {self.mh_type:#x}")
        _, full_length = entry
        if not 0 < self.mh_length <= full_length:
            raise ValueError(
                f"Invalid digest length {self.mh_length} for multihash {self.mh_type:#x}"
            )

    def build_link(self, data: bytes) -> Cid:
        hash_fn, _ = HASH_FUNCTIONS[self.mh_type]
        digest = hash_fn(data)[: self.mh_length]
        return Cid(version=self.version, codec=self.codec, mh_type=self.mh_type, digest=digest)

    def matches(self, cid: Cid) -> bool:
        """True when cid was built with this prefix's configuration."""
        return (
            cid.version == self.version
            and cid.codec == self.codec
            and cid.mh_type == self.mh_type
            and len(cid.digest) == self.mh_length
        )


DEFAULT_LINK_PREFIX = LinkPrefix()


__all__ = [
    "Cid",
    "LinkPrefix",
    "DEFAULT_LINK_PREFIX",
    "HASH_FUNCTIONS",
    "encode_varint",
    "decode_varint",
]
