"""
solcodec.hash_api: Keccak-256 wrappers used by selectors, topics and EIP-712.

Goals
-----
- Strictly bytes-in, bytes-out (no implicit text/encoding).
- One backend: PyCryptodome's Keccak (pre-SHA3 padding, as used by Ethereum).

Provided APIs
-------------
- keccak256(data: bytes) -> bytes
- keccak256_hex(data: bytes) -> str
- hash_concat_keccak256(*chunks: bytes) -> bytes
"""

from __future__ import annotations

from typing import Iterable

from Crypto.Hash import keccak as _keccak

from .errors import ValueTypeMismatch

BytesLike = bytes | bytearray | memoryview


def _ensure_bytes(buf: object, name: str) -> bytes:
    if isinstance(buf, (bytes, bytearray, memoryview)):
        return bytes(buf)
    raise ValueTypeMismatch(f"{name} must be bytes-like (got {type(buf).__name__})")


def _new_keccak256():
    return _keccak.new(digest_bits=256)


def keccak256(data: BytesLike) -> bytes:
    """Keccak-256 (pre-SHA3) as used by Ethereum."""
    h = _new_keccak256()
    h.update(_ensure_bytes(data, "data"))
    return h.digest()


def keccak256_hex(data: BytesLike) -> str:
    return "0x" + keccak256(data).hex()


def _hash_concat(chunks: Iterable[BytesLike], h) -> bytes:
    for i, c in enumerate(chunks):
        h.update(_ensure_bytes(c, f"chunk[{i}]"))
    return h.digest()


def hash_concat_keccak256(*chunks: BytesLike) -> bytes:
    """keccak256(chunk0 || chunk1 || ...) without building the joined buffer."""
    return _hash_concat(chunks, _new_keccak256())


__all__ = ["keccak256", "keccak256_hex", "hash_concat_keccak256"]
