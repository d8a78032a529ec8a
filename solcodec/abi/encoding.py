"""
Standard and packed ABI encoding.

Standard mode (head/tail)
-------------------------
A sequence of values is laid out as one *region*:

    head_0 || head_1 || ... || head_{n-1} || tail_a || tail_b || ...

- static value:  its encoding sits in the head, in place
- dynamic value: the head holds a 32-byte offset (measured from the start of
                 the region) to where its tail content begins

Value words:
- bool / uintN / address: big-endian, left-padded with zero bytes to 32
- intN:                   two's complement, sign-extended to 32 bytes
- bytesN:                 raw bytes, right-padded with zeros to 32

Dynamic contents:
- bytes / string:  length word || data zero-padded to a 32-byte boundary
- T[]:             length word || region(elements)
- dynamic T[k] / dynamic tuple: region(members), no length word
- static T[k] / static tuple:   members inline, no indirection

Packed mode
-----------
No padding and no offsets: value types at their natural width, bytes/string
raw, array elements padded to 32 bytes each, tuple members concatenated.
Packed output is for pre-hash buffers only; it cannot be decoded.
"""

from __future__ import annotations

from typing import Any, List, Sequence

from ..errors import ValueTypeMismatch
from .types import (
    WORD,
    AddressType,
    ArrayType,
    BoolType,
    BytesType,
    FixedArrayType,
    FixedBytesType,
    IntType,
    StringType,
    TupleType,
    TypeLike,
    UIntType,
    WireType,
    as_type,
)

__all__ = [
    "encode_uint_word",
    "encode_int_word",
    "encode_word",
    "encode",
    "encode_sequence",
    "encode_packed",
    "encoded_size",
    "packed_size",
]

_MOD_256 = 1 << 256


# ──────────────────────────────────────────────────────────────────────────────
# Low-level helpers
# ──────────────────────────────────────────────────────────────────────────────


def _pad_right(b: bytes) -> bytes:
    rem = len(b) % WORD
    return b if rem == 0 else b + b"\x00" * (WORD - rem)


def _padded_len(n: int) -> int:
    return (n + WORD - 1) // WORD * WORD


def encode_uint_word(n: int) -> bytes:
    return n.to_bytes(WORD, "big")


def encode_int_word(n: int) -> bytes:
    return (n % _MOD_256).to_bytes(WORD, "big")


def _is_value_type(t: WireType) -> bool:
    return isinstance(t, (BoolType, UIntType, IntType, AddressType, FixedBytesType))


def _word(t: WireType, v: Any) -> bytes:
    if isinstance(t, BoolType):
        return encode_uint_word(1 if v else 0)
    if isinstance(t, UIntType):
        return encode_uint_word(v)
    if isinstance(t, IntType):
        return encode_int_word(v)
    if isinstance(t, AddressType):
        return v.rjust(WORD, b"\x00")
    if isinstance(t, FixedBytesType):
        return v.ljust(WORD, b"\x00")
    raise ValueTypeMismatch(f"{t.name} is not a single-word value type")


def encode_word(typ: TypeLike, value: Any) -> bytes:
    """The 32-byte head word of a value type (bool, intN, uintN, address, bytesN)."""
    t = as_type(typ)
    if not _is_value_type(t):
        raise ValueTypeMismatch(f"{t.name} is not a single-word value type")
    return _word(t, t.validate(value))


# ──────────────────────────────────────────────────────────────────────────────
# Standard (head/tail) encoding of validated values
# ──────────────────────────────────────────────────────────────────────────────


def _encode(t: WireType, v: Any) -> bytes:
    if _is_value_type(t):
        return _word(t, v)
    if isinstance(t, BytesType):
        return encode_uint_word(len(v)) + _pad_right(v)
    if isinstance(t, StringType):
        raw = v.encode("utf-8")
        return encode_uint_word(len(raw)) + _pad_right(raw)
    if isinstance(t, FixedArrayType):
        if not t.dynamic:
            return b"".join(_encode(t.elem, x) for x in v)
        return _encode_region([t.elem] * len(v), v)
    if isinstance(t, ArrayType):
        return encode_uint_word(len(v)) + _encode_region([t.elem] * len(v), v)
    if isinstance(t, TupleType):
        return _encode_region(t.types, v)
    raise ValueTypeMismatch(f"unsupported ABI type: {t!r}")


def _encode_region(types: Sequence[WireType], values: Sequence[Any]) -> bytes:
    # Pass 1: the head size is known from the types alone.
    head_size = sum(t.head_size for t in types)
    heads: List[bytes] = []
    tails: List[bytes] = []
    offset = head_size
    # Pass 2: static values in place, dynamic ones as offsets into the tail.
    for t, v in zip(types, values):
        if t.dynamic:
            tail = _encode(t, v)
            heads.append(encode_uint_word(offset))
            tails.append(tail)
            offset += len(tail)
        else:
            heads.append(_encode(t, v))
    return b"".join(heads) + b"".join(tails)


def encode_sequence(types: Sequence[TypeLike], values: Sequence[Any]) -> bytes:
    """
    Encode top-level values (function arguments, return values, event data)
    as a single head/tail region.

    Raises:
        ValueTypeMismatch when the values do not fit the types. This is a
        programming error, not a recoverable condition.
    """
    wire = [as_type(t) for t in types]
    if len(wire) != len(values):
        raise ValueTypeMismatch(
            "types and values length mismatch", types=len(wire), values=len(values)
        )
    checked = [t.validate(v) for t, v in zip(wire, values)]
    return _encode_region(wire, checked)


def encode(value: Any, typ: TypeLike) -> bytes:
    """`abi.encode(value)`: a single value encoded as a one-element sequence."""
    return encode_sequence([typ], [value])


# ──────────────────────────────────────────────────────────────────────────────
# Packed encoding
# ──────────────────────────────────────────────────────────────────────────────


def _packed(t: WireType, v: Any) -> bytes:
    if isinstance(t, BoolType):
        return b"\x01" if v else b"\x00"
    if isinstance(t, UIntType):
        return v.to_bytes(t.bits // 8, "big")
    if isinstance(t, IntType):
        return (v % (1 << t.bits)).to_bytes(t.bits // 8, "big")
    if isinstance(t, (AddressType, FixedBytesType, BytesType)):
        return v
    if isinstance(t, StringType):
        return v.encode("utf-8")
    if isinstance(t, (FixedArrayType, ArrayType)):
        if _is_value_type(t.elem):
            return b"".join(_word(t.elem, x) for x in v)
        return b"".join(_packed(t.elem, x) for x in v)
    if isinstance(t, TupleType):
        return b"".join(_packed(m, x) for m, x in zip(t.types, v))
    raise ValueTypeMismatch(f"unsupported ABI type: {t!r}")


def encode_packed(types: Sequence[TypeLike], values: Sequence[Any]) -> bytes:
    """Non-standard packed encoding (`abi.encodePacked`)."""
    wire = [as_type(t) for t in types]
    if len(wire) != len(values):
        raise ValueTypeMismatch(
            "types and values length mismatch", types=len(wire), values=len(values)
        )
    return b"".join(_packed(t, t.validate(v)) for t, v in zip(wire, values))


# ──────────────────────────────────────────────────────────────────────────────
# Sizes (computed without encoding)
# ──────────────────────────────────────────────────────────────────────────────


def _content_size(t: WireType, v: Any) -> int:
    if not t.dynamic:
        return t.head_size
    if isinstance(t, BytesType):
        return WORD + _padded_len(len(v))
    if isinstance(t, StringType):
        return WORD + _padded_len(len(v.encode("utf-8")))
    if isinstance(t, ArrayType):
        return WORD + _region_size([t.elem] * len(v), v)
    if isinstance(t, FixedArrayType):
        return _region_size([t.elem] * len(v), v)
    if isinstance(t, TupleType):
        return _region_size(t.types, v)
    raise ValueTypeMismatch(f"unsupported ABI type: {t!r}")


def _region_size(types: Sequence[WireType], values: Sequence[Any]) -> int:
    return sum(t.head_size + (_content_size(t, v) if t.dynamic else 0) for t, v in zip(types, values))


def encoded_size(typ: TypeLike, value: Any) -> int:
    """len(encode(value, typ)), without building the buffer."""
    t = as_type(typ)
    return _region_size([t], [t.validate(value)])


def _packed_len(t: WireType, v: Any) -> int:
    if isinstance(t, BoolType):
        return 1
    if isinstance(t, (UIntType, IntType)):
        return t.bits // 8
    if isinstance(t, AddressType):
        return 20
    if isinstance(t, FixedBytesType):
        return t.size
    if isinstance(t, BytesType):
        return len(v)
    if isinstance(t, StringType):
        return len(v.encode("utf-8"))
    if isinstance(t, (FixedArrayType, ArrayType)):
        if _is_value_type(t.elem):
            return WORD * len(v)
        return sum(_packed_len(t.elem, x) for x in v)
    if isinstance(t, TupleType):
        return sum(_packed_len(m, x) for m, x in zip(t.types, v))
    raise ValueTypeMismatch(f"unsupported ABI type: {t!r}")


def packed_size(typ: TypeLike, value: Any) -> int:
    """len(encode_packed([typ], [value])), without building the buffer."""
    t = as_type(typ)
    return _packed_len(t, t.validate(value))
