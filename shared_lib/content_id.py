"""
shared_lib.content_id — Size-aware content identifiers ("midhash" CIDs).

A content identifier is a self-describing CIDv1-style string computed from a
file's size and a deterministic sample of its bytes:

    sample  = whole file            if size <= 1 MiB
              1 MiB centered window otherwise, starting at (size - 1 MiB) // 2
    digest  = sha256(uint64_be(size) + sample)
    record  = varint(version=1) varint(codec=0x55 raw)
              varint(hash=0x12 sha2-256) varint(len=32) digest
    cid     = "b" + base32_lower_nopad(record)

Two files with the same size and the same sampled region share an identifier,
which makes it usable both as a cache key and as a dedup key for generated
artifacts. The sample is read through a ByteSource, so local and WebDAV
access give byte-for-byte identical results.

Example:
    >>> address_of(3, b"abc")[:1]
    'b'
    >>> decode_content_id(address_of(3, b"abc")).digest_length
    32
"""

from __future__ import annotations

import base64
import hashlib
import logging
from typing import NamedTuple

from shared_lib.byte_source import ByteSource, ByteSourceError

log = logging.getLogger("shared_lib.content_id")

SAMPLE_SIZE = 1024 * 1024

CID_VERSION = 0x01
RAW_CODEC = 0x55
SHA2_256 = 0x12
DIGEST_LENGTH = 32

MULTIBASE_BASE32 = "b"


class ContentIdInfo(NamedTuple):
    """Decoded fields of a content identifier."""

    version: int
    codec: int
    hash_code: int
    digest_length: int
    digest: bytes


def _encode_varint(value: int) -> bytes:
    """Unsigned LEB128 varint, as used by multiformats."""
    if value < 0:
        raise ValueError("varint value must be non-negative")
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _decode_varint(data: bytes, offset: int) -> tuple[int, int]:
    """Return (value, next_offset) for the varint starting at *offset*."""
    value = 0
    shift = 0
    while True:
        if offset >= len(data):
            raise ValueError("truncated varint in content identifier")
        byte = data[offset]
        offset += 1
        value |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return value, offset
        shift += 7
        if shift > 63:
            raise ValueError("varint too long in content identifier")


def sample_window(size: int) -> tuple[int, int]:
    """
    Return the ``[start, end)`` byte window sampled for a file of *size* bytes.

    Files up to SAMPLE_SIZE are sampled whole. Larger files are sampled over a
    SAMPLE_SIZE window starting at ``(size - SAMPLE_SIZE) // 2``.
    """
    if size < 0:
        raise ValueError(f"size must be non-negative, got {size}")
    if size <= SAMPLE_SIZE:
        return 0, size
    start = (size - SAMPLE_SIZE) // 2
    return start, start + SAMPLE_SIZE


def address_of(size: int, sample: bytes) -> str:
    """
    Derive the content identifier for a file of *size* bytes.

    Args:
        size:   Total file size in bytes (fits in an unsigned 64-bit integer).
        sample: Bytes selected by sample_window(size).

    Returns:
        Multibase base32 identifier string, e.g. ``"bafkrei..."``.
    """
    if not 0 <= size < 2 ** 64:
        raise ValueError(f"size out of uint64 range: {size}")

    digest = hashlib.sha256(size.to_bytes(8, "big") + sample).digest()
    record = (
        _encode_varint(CID_VERSION)
        + _encode_varint(RAW_CODEC)
        + _encode_varint(SHA2_256)
        + _encode_varint(DIGEST_LENGTH)
        + digest
    )
    encoded = base64.b32encode(record).decode("ascii").lower().rstrip("=")
    return MULTIBASE_BASE32 + encoded


def decode_content_id(cid: str) -> ContentIdInfo:
    """
    Decode an identifier produced by address_of.

    Raises:
        ValueError: Unknown multibase prefix or malformed record.
    """
    if not cid or cid[0] != MULTIBASE_BASE32:
        raise ValueError(f"unsupported multibase prefix in {cid!r}")
    body = cid[1:].upper()
    body += "=" * (-len(body) % 8)
    try:
        record = base64.b32decode(body)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"invalid base32 in content identifier: {exc}") from exc

    version, offset = _decode_varint(record, 0)
    codec, offset = _decode_varint(record, offset)
    hash_code, offset = _decode_varint(record, offset)
    digest_length, offset = _decode_varint(record, offset)
    digest = record[offset:]
    if len(digest) != digest_length:
        raise ValueError(
            f"digest length mismatch: header says {digest_length}, got {len(digest)}"
        )
    return ContentIdInfo(version, codec, hash_code, digest_length, digest)


async def read_sample(source: ByteSource, path: str) -> tuple[int, bytes]:
    """
    Read the size and sampled bytes of *path* through *source*.

    Raises:
        ByteSourceNotFound: Path does not exist.
        ByteSourceError:    Backend failure or short read.
    """
    info = await source.stat(path)
    start, end = sample_window(info.size)
    if start == 0 and end == info.size:
        sample = await source.read_all(path)
    else:
        sample = await source.read_range(path, start, end)

    if len(sample) != end - start:
        raise ByteSourceError(
            f"Short read for {path}: expected {end - start} bytes, got {len(sample)}"
        )
    return info.size, sample


async def compute_content_id(source: ByteSource, path: str) -> str:
    """
    Compute the content identifier of *path* stored in *source*.

    Raises:
        ByteSourceNotFound: Path does not exist.
        ByteSourceError:    Backend failure or short read.
    """
    size, sample = await read_sample(source, path)
    cid = address_of(size, sample)
    log.debug("Content id for %s (%d bytes): %s", path, size, cid)
    return cid
