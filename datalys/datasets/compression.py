# ==============================
# Compressed Dataset Envelope
# ==============================
"""
base64(gzip(UTF-8 JSON)) codec for dataset payloads.

The gzip trailer (CRC32 + ISIZE) is checked against the inflated bytes;
any decoding failure surfaces as CorruptDatasetError.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import gzip
import json
import struct
import zlib
from typing import Any

from datalys.contracts.errors import CorruptDatasetError


CHUNK_SIZE = 64 * 1024
_GZIP_MAGIC = b"\x1f\x8b"
_MIN_MEMBER_SIZE = 18


def compress_object_to_gzip_b64(obj: Any) -> str:
    raw = json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return base64.b64encode(gzip.compress(raw, mtime=0)).decode("ascii")


def _b64decode(payload: str) -> bytes:
    text = "".join(payload.split())
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise CorruptDatasetError(f"invalid base64 payload: {exc}") from exc


def inflate_gzip(blob: bytes, *, chunk_size: int = CHUNK_SIZE) -> bytes:
    if len(blob) < _MIN_MEMBER_SIZE or blob[:2] != _GZIP_MAGIC:
        raise CorruptDatasetError("payload is not a gzip envelope")

    inflater = zlib.decompressobj(wbits=16 + zlib.MAX_WBITS)
    out = bytearray()
    consumed = 0
    try:
        for start in range(0, len(blob), chunk_size):
            chunk = blob[start : start + chunk_size]
            out += inflater.decompress(chunk)
            if inflater.eof:
                consumed = start + len(chunk) - len(inflater.unused_data)
                break
        out += inflater.flush()
    except zlib.error as exc:
        raise CorruptDatasetError(f"gzip stream failed to inflate: {exc}") from exc

    if not inflater.eof:
        raise CorruptDatasetError("gzip stream is truncated")
    if consumed != len(blob):
        raise CorruptDatasetError("unexpected bytes after gzip member", details={"trailing": len(blob) - consumed})

    crc, isize = struct.unpack("<II", blob[consumed - 8 : consumed])
    if zlib.crc32(out) & 0xFFFFFFFF != crc:
        raise CorruptDatasetError("gzip checksum mismatch")
    if len(out) & 0xFFFFFFFF != isize:
        raise CorruptDatasetError("gzip length mismatch", details={"expected": isize, "actual": len(out)})
    return bytes(out)


def inflate_gzip_b64_to_object(payload: str) -> Any:
    raw = inflate_gzip(_b64decode(payload))
    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise CorruptDatasetError(f"decompressed payload is not UTF-8 JSON: {exc}") from exc


async def decompress_gzip_b64_to_object(payload: str) -> Any:
    """Inflate on a worker thread so independent datasets decode concurrently."""
    return await asyncio.to_thread(inflate_gzip_b64_to_object, payload)
