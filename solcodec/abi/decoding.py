"""
Inverse of solcodec.abi.encoding for the standard (head/tail) mode.

Top-level:
- decode(data, typ, validate=None) -> value
- decode_sequence(data, types, validate=None) -> tuple
- decode_word(typ, word, validate=None) -> value      (single value-type word)

`validate=None` follows the configured default (SOLCODEC_VALIDATE).

Checked in every mode
---------------------
- reads past the end of the buffer                       -> Overrun
- offsets beyond the end of the buffer                   -> InvalidOffset
- lengths larger than the buffer, or arrays whose minimum
  element footprint does not fit in the remaining bytes  -> InvalidLength
- input larger than SOLCODEC_MAX_DECODE_BYTES             -> InvalidLength
- more decoding work than the input can honestly describe
  (offsets shared between values)                        -> InvalidLength

Checked only with validate=True
-------------------------------
- offsets must point at or past the end of their head    -> InvalidOffset
- bytes/string tails must fit, padding included          -> InvalidLength
- bool words are exactly 0 or 1                          -> InvalidBool
- dirty high bits (uintN, address), bad sign extension
  (intN), dirty low bytes (bytesN), non-zero tail padding -> InvalidPadding
- string content is valid UTF-8                          -> InvalidUtf8

Without validation, integer words are masked to their width, any non-zero
bool word is True, and invalid UTF-8 is replaced with U+FFFD.

Address values always come back as EIP-55 checksummed strings, whatever
form they were encoded from.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple

from ..config import load_config
from ..errors import (DecodeError, InvalidBool, InvalidLength, InvalidOffset,
                      InvalidPadding, InvalidUtf8, Overrun, ValueTypeMismatch)
from ..logging import get_logger
from .encoding import encode_int_word
from .types import (WORD, AddressType, ArrayType, BoolType, BytesType,
                    FixedArrayType, FixedBytesType, IntType, StringType,
                    TupleType, TypeLike, UIntType, WireType, as_type,
                    normalize_hex, to_checksum_address)

__all__ = [
    "decode",
    "decode_sequence",
    "decode_word",
]

log = get_logger(__name__)

_ZERO_WORD = b"\x00" * WORD


class _Budget:
    """
    Words of work left for one decode call. Every region head and every
    bytes/string tail is charged. A well-formed encoding never charges a word
    twice, so the budget only runs out when several offsets point at the
    same tail.
    """

    __slots__ = ("left",)

    def __init__(self, size: int) -> None:
        self.left = 2 * (size // WORD) + 8

    def spend(self, words: int, at: int) -> None:
        self.left -= words
        if self.left < 0:
            raise InvalidLength("decoding work exceeds input size (shared offsets?)", at=at)


# ──────────────────────────────────────────────────────────────────────────────
# Low-level readers
# ──────────────────────────────────────────────────────────────────────────────


def _read_word(buf: bytes, pos: int) -> bytes:
    end = pos + WORD
    if end > len(buf):
        raise Overrun(needed=end, available=len(buf), at=pos)
    return buf[pos:end]


def _read_offset(buf: bytes, pos: int, region: int) -> int:
    off = int.from_bytes(_read_word(buf, pos), "big")
    if region + off > len(buf):
        raise InvalidOffset("offset points past the end of the buffer", at=pos, offset=off)
    return off


def _read_length(buf: bytes, pos: int) -> int:
    n = int.from_bytes(_read_word(buf, pos), "big")
    if n > len(buf):
        raise InvalidLength("length exceeds buffer size", at=pos, length=n)
    return n


def _value_from_word(t: WireType, word: bytes, validate: bool) -> Any:
    n = int.from_bytes(word, "big")
    if isinstance(t, BoolType):
        if validate and n > 1:
            raise InvalidBool(word)
        return n != 0
    if isinstance(t, UIntType):
        if validate and n >> t.bits:
            raise InvalidPadding(f"{t.name} has dirty high-order bits")
        return n & ((1 << t.bits) - 1)
    if isinstance(t, IntType):
        low = n & ((1 << t.bits) - 1)
        v = low - (1 << t.bits) if low >> (t.bits - 1) else low
        if validate and encode_int_word(v) != word:
            raise InvalidPadding(f"{t.name} is not correctly sign-extended")
        return v
    if isinstance(t, AddressType):
        if validate and any(word[:12]):
            raise InvalidPadding("address has dirty high-order bytes")
        return to_checksum_address(word[12:])
    if isinstance(t, FixedBytesType):
        if validate and any(word[t.size:]):
            raise InvalidPadding(f"{t.name} has dirty low-order bytes")
        return word[: t.size]
    raise ValueTypeMismatch(f"{t.name} is not a single-word value type")


# ──────────────────────────────────────────────────────────────────────────────
# Recursive decoding
# ──────────────────────────────────────────────────────────────────────────────


def _decode_static(t: WireType, buf: bytes, pos: int, validate: bool) -> Any:
    if isinstance(t, FixedArrayType):
        step = t.elem.head_size
        return [_decode_static(t.elem, buf, pos + i * step, validate) for i in range(t.length)]
    if isinstance(t, TupleType):
        out = []
        for m in t.types:
            out.append(_decode_static(m, buf, pos, validate))
            pos += m.head_size
        return tuple(out)
    return _value_from_word(t, _read_word(buf, pos), validate)


def _decode_bytes(buf: bytes, pos: int, validate: bool, budget: _Budget) -> bytes:
    n = _read_length(buf, pos)
    start = pos + WORD
    end = start + n
    if end > len(buf):
        if validate:
            raise InvalidLength("length word implies a tail past the buffer", at=pos, length=n)
        raise Overrun(needed=end, available=len(buf), at=start)
    budget.spend((n + WORD - 1) // WORD, pos)
    if validate:
        padded_end = start + (n + WORD - 1) // WORD * WORD
        if padded_end > len(buf):
            raise InvalidLength("tail padding is truncated", at=pos, length=n)
        if any(buf[end:padded_end]):
            raise InvalidPadding("non-zero tail padding", at=end)
    return buf[start:end]


def _decode_content(t: WireType, buf: bytes, pos: int, validate: bool, budget: _Budget) -> Any:
    """Decode a dynamic value whose content starts at `pos`."""
    if isinstance(t, BytesType):
        return _decode_bytes(buf, pos, validate, budget)
    if isinstance(t, StringType):
        raw = _decode_bytes(buf, pos, validate, budget)
        if not validate:
            return raw.decode("utf-8", errors="replace")
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidUtf8(at=pos, reason=str(e)) from e
    if isinstance(t, ArrayType):
        n = _read_length(buf, pos)
        start = pos + WORD
        if n * t.elem.head_size > len(buf) - start:
            if validate:
                raise InvalidLength("array length exceeds remaining buffer", at=pos, length=n)
            raise Overrun(needed=start + n * t.elem.head_size, available=len(buf), at=start)
        return _decode_region(buf, start, [t.elem] * n, validate, budget)
    if isinstance(t, FixedArrayType):
        return _decode_region(buf, pos, [t.elem] * t.length, validate, budget)
    if isinstance(t, TupleType):
        return tuple(_decode_region(buf, pos, t.types, validate, budget))
    raise ValueTypeMismatch(f"unsupported ABI type: {t!r}")


def _decode_region(
    buf: bytes, start: int, types: Sequence[WireType], validate: bool, budget: _Budget
) -> List[Any]:
    head_size = sum(t.head_size for t in types)
    budget.spend(max(1, head_size // WORD), start)
    out: List[Any] = []
    cursor = start
    for t in types:
        if t.dynamic:
            off = _read_offset(buf, cursor, start)
            if validate and off < head_size:
                raise InvalidOffset(
                    "offset points into the head region", at=cursor, offset=off, head_size=head_size
                )
            out.append(_decode_content(t, buf, start + off, validate, budget))
        else:
            out.append(_decode_static(t, buf, cursor, validate))
        cursor += t.head_size
    return out


# ──────────────────────────────────────────────────────────────────────────────
# Public API
# ──────────────────────────────────────────────────────────────────────────────


def _as_buffer(data: Any) -> bytes:
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return normalize_hex(data)
    raise ValueTypeMismatch("data must be bytes-like or 0x-hex", got=type(data).__name__)


def _policy(validate: Optional[bool]) -> Tuple[bool, int]:
    cfg = load_config()
    return (cfg.validate_by_default if validate is None else validate), cfg.max_decode_bytes


def decode_sequence(
    data: Any, types: Sequence[TypeLike], validate: Optional[bool] = None
) -> Tuple[Any, ...]:
    """
    Decode top-level values encoded by `encode_sequence`.

    Raises:
        DecodeError (Overrun, InvalidOffset, InvalidLength, InvalidBool,
        InvalidPadding, InvalidUtf8) when the input is rejected.
    """
    buf = _as_buffer(data)
    wire = [as_type(t) for t in types]
    strict, max_bytes = _policy(validate)
    if len(buf) > max_bytes:
        raise InvalidLength("input exceeds maximum decode size", size=len(buf), limit=max_bytes)
    try:
        return tuple(_decode_region(buf, 0, wire, strict, _Budget(len(buf))))
    except DecodeError as e:
        log.debug(
            "rejected ABI input",
            extra={"code": e.to_dict()["code"], "types": ",".join(t.name for t in wire), "size": len(buf)},
        )
        raise


def decode(data: Any, typ: TypeLike, validate: Optional[bool] = None) -> Any:
    """
    Inverse of `encode(value, typ)`.

    Addresses decode to checksummed strings, so the round trip is exact for
    values given in that canonical form.
    """
    return decode_sequence(data, [typ], validate)[0]


def decode_word(typ: TypeLike, word: bytes, validate: Optional[bool] = None) -> Any:
    """Decode one 32-byte word of a value type (used for event topics)."""
    t = as_type(typ)
    strict, _ = _policy(validate)
    buf = _as_buffer(word)
    if len(buf) != WORD:
        raise InvalidLength("word must be exactly 32 bytes", size=len(buf))
    return _value_from_word(t, buf, strict)
