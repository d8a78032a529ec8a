"""
ABI type model for solcodec.

The closed set of wire types understood by the codec:
  - bool
  - uintN / intN          (N ∈ {8, 16, …, 256})
  - address               (20 bytes)
  - bytesN                (1 ≤ N ≤ 32, right-padded)
  - bytes / string        (dynamic, length-prefixed)
  - T[k] / T[]            (fixed / dynamic arrays)
  - (T1,T2,…)             (tuples; optionally named, which makes them structs)

Every type is a frozen, hashable dataclass. Classification (static vs.
dynamic, static word width) is computed once per type object and cached.

Utilities here *only* describe types and coerce/validate Python values; the
on-wire encoding is implemented in solcodec.abi.encoding/decoding.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Optional, Tuple, Union

from ..config import load_config
from ..errors import InvalidTypeDescriptor, ValueTypeMismatch
from ..hash_api import keccak256

__all__ = [
    "WORD",
    "WireType",
    "BoolType",
    "UIntType",
    "IntType",
    "AddressType",
    "FixedBytesType",
    "BytesType",
    "StringType",
    "FixedArrayType",
    "ArrayType",
    "TupleType",
    "TypeLike",
    "is_dynamic",
    "static_word_count",
    "parse_type",
    "as_type",
    "struct",
    "normalize_hex",
    "to_checksum_address",
]

WORD = 32

_IDENT = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

# ──────────────────────────────────────────────────────────────────────────────
# Hex / address helpers
# ──────────────────────────────────────────────────────────────────────────────


def normalize_hex(s: str) -> bytes:
    """Convert a 0x-prefixed hex string to bytes, accepting even-length only."""
    if not isinstance(s, str) or not s.startswith(("0x", "0X")):
        raise ValueTypeMismatch("expected 0x-prefixed hex string")
    hex_part = s[2:]
    if len(hex_part) % 2 != 0:
        raise ValueTypeMismatch("hex string must have an even number of digits")
    try:
        return bytes.fromhex(hex_part)
    except ValueError as e:
        raise ValueTypeMismatch(f"invalid hex: {e}") from e


def to_checksum_address(raw: bytes) -> str:
    """EIP-55 mixed-case checksum encoding of a 20-byte address."""
    if len(raw) != 20:
        raise ValueTypeMismatch("address must be 20 bytes", got=len(raw))
    hex_addr = raw.hex()
    digest = keccak256(hex_addr.encode("ascii")).hex()
    return "0x" + "".join(
        c.upper() if c.isalpha() and int(digest[i], 16) >= 8 else c
        for i, c in enumerate(hex_addr)
    )


def _coerce_address(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        if len(value) != 20:
            raise ValueTypeMismatch("address must be 20 bytes", got=len(value))
        return bytes(value)
    if not isinstance(value, str):
        raise ValueTypeMismatch(
            "address must be 20 bytes or a 0x-hex string", got=type(value).__name__
        )
    raw = normalize_hex(value)
    if len(raw) != 20:
        raise ValueTypeMismatch("address must be 20 bytes", got=len(raw))
    body = value[2:]
    # all-lower / all-upper carry no checksum; mixed case must be EIP-55 valid
    if body != body.lower() and body != body.upper() and to_checksum_address(raw)[2:] != body:
        raise ValueTypeMismatch("bad EIP-55 address checksum", address=value)
    return raw


def _coerce_bytes(value: Any, what: str) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str) and value.startswith(("0x", "0X")):
        return normalize_hex(value)
    raise ValueTypeMismatch(f"{what} must be bytes, bytearray, or 0x-hex string", got=type(value).__name__)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


# ──────────────────────────────────────────────────────────────────────────────
# Type specs
# ──────────────────────────────────────────────────────────────────────────────


class WireType:
    """
    Common behaviour of every ABI type.

    Subclasses are frozen dataclasses; `cached_property` values are stored in
    the instance ``__dict__`` and never change after first access.
    """

    @property
    def name(self) -> str:  # pragma: no cover - overridden
        raise NotImplementedError

    @cached_property
    def dynamic(self) -> bool:
        return False

    @cached_property
    def static_words(self) -> Optional[int]:
        return None if self.dynamic else 1

    @property
    def head_size(self) -> int:
        """Bytes this type occupies in an enclosing head region."""
        words = self.static_words
        return WORD * (1 if words is None else words)

    @cached_property
    def depth(self) -> int:
        return 1

    def validate(self, value: Any) -> Any:  # pragma: no cover - overridden
        raise NotImplementedError

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class BoolType(WireType):
    def validate(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)
        raise ValueTypeMismatch("bool must be True/False", got=repr(value))

    @property
    def name(self) -> str:
        return "bool"


def _check_bits(bits: Any) -> None:
    if not isinstance(bits, int) or isinstance(bits, bool) or bits % 8 != 0 or not 8 <= bits <= 256:
        raise InvalidTypeDescriptor("bit width must be a multiple of 8 in 8..256", bits=bits)


@dataclass(frozen=True)
class UIntType(WireType):
    bits: int = 256

    def __post_init__(self) -> None:
        _check_bits(self.bits)

    @property
    def max_value(self) -> int:
        return (1 << self.bits) - 1

    def validate(self, value: Any) -> int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueTypeMismatch(f"{self.name} must be a Python int", got=type(value).__name__)
        if value < 0 or value > self.max_value:
            raise ValueTypeMismatch(f"{self.name} out of range [0, {self.max_value}]", value=value)
        return value

    @property
    def name(self) -> str:
        return f"uint{self.bits}"


@dataclass(frozen=True)
class IntType(WireType):
    bits: int = 256

    def __post_init__(self) -> None:
        _check_bits(self.bits)

    @property
    def min_value(self) -> int:
        return -(1 << (self.bits - 1))

    @property
    def max_value(self) -> int:
        return (1 << (self.bits - 1)) - 1

    def validate(self, value: Any) -> int:
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueTypeMismatch(f"{self.name} must be a Python int", got=type(value).__name__)
        if value < self.min_value or value > self.max_value:
            raise ValueTypeMismatch(
                f"{self.name} out of range [{self.min_value}, {self.max_value}]", value=value
            )
        return value

    @property
    def name(self) -> str:
        return f"int{self.bits}"


@dataclass(frozen=True)
class AddressType(WireType):
    def validate(self, value: Any) -> bytes:
        return _coerce_address(value)

    @property
    def name(self) -> str:
        return "address"


@dataclass(frozen=True)
class FixedBytesType(WireType):
    size: int = 32

    def __post_init__(self) -> None:
        if not isinstance(self.size, int) or isinstance(self.size, bool) or not 1 <= self.size <= 32:
            raise InvalidTypeDescriptor("bytesN length must be in 1..32", size=self.size)

    def validate(self, value: Any) -> bytes:
        b = _coerce_bytes(value, self.name)
        if len(b) != self.size:
            raise ValueTypeMismatch(f"{self.name} length must be exactly {self.size}", got=len(b))
        return b

    @property
    def name(self) -> str:
        return f"bytes{self.size}"


@dataclass(frozen=True)
class BytesType(WireType):
    @cached_property
    def dynamic(self) -> bool:
        return True

    def validate(self, value: Any) -> bytes:
        return _coerce_bytes(value, "bytes")

    @property
    def name(self) -> str:
        return "bytes"


@dataclass(frozen=True)
class StringType(WireType):
    @cached_property
    def dynamic(self) -> bool:
        return True

    def validate(self, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueTypeMismatch("string must be a Python str", got=type(value).__name__)
        return value

    @property
    def name(self) -> str:
        return "string"


def _check_depth(t: WireType) -> None:
    limit = load_config().max_type_depth
    if t.depth > limit:
        raise InvalidTypeDescriptor("type nesting too deep", depth=t.depth, limit=limit)


@dataclass(frozen=True)
class FixedArrayType(WireType):
    elem: WireType
    length: int

    def __post_init__(self) -> None:
        if not isinstance(self.elem, WireType):
            raise InvalidTypeDescriptor("array element must be a WireType", got=repr(self.elem))
        if not isinstance(self.length, int) or isinstance(self.length, bool) or self.length < 0:
            raise InvalidTypeDescriptor("fixed array length must be >= 0", length=self.length)
        _check_depth(self)

    @cached_property
    def dynamic(self) -> bool:
        return self.elem.dynamic

    @cached_property
    def static_words(self) -> Optional[int]:
        if self.dynamic:
            return None
        return self.elem.static_words * self.length  # type: ignore[operator]

    @cached_property
    def depth(self) -> int:
        return 1 + self.elem.depth

    def validate(self, value: Any) -> list:
        if not _is_sequence(value):
            raise ValueTypeMismatch(f"{self.name} expects a sequence", got=type(value).__name__)
        if len(value) != self.length:
            raise ValueTypeMismatch(f"{self.name} expects {self.length} elements", got=len(value))
        return [self.elem.validate(v) for v in value]

    @property
    def name(self) -> str:
        return f"{self.elem.name}[{self.length}]"


@dataclass(frozen=True)
class ArrayType(WireType):
    elem: WireType

    def __post_init__(self) -> None:
        if not isinstance(self.elem, WireType):
            raise InvalidTypeDescriptor("array element must be a WireType", got=repr(self.elem))
        _check_depth(self)

    @cached_property
    def dynamic(self) -> bool:
        return True

    @cached_property
    def depth(self) -> int:
        return 1 + self.elem.depth

    def validate(self, value: Any) -> list:
        if not _is_sequence(value):
            raise ValueTypeMismatch(f"{self.name} expects a sequence", got=type(value).__name__)
        return [self.elem.validate(v) for v in value]

    @property
    def name(self) -> str:
        return f"{self.elem.name}[]"


@dataclass(frozen=True)
class TupleType(WireType):
    """
    Ordered, named members. A non-empty `struct_name` turns the tuple into a
    struct for EIP-712 purposes; the ABI canonical name is always the
    expanded ``(t1,t2,...)`` form.
    """

    components: Tuple[Tuple[str, WireType], ...] = field(default=())
    struct_name: Optional[str] = None

    def __post_init__(self) -> None:
        norm = []
        for item in self.components:
            if isinstance(item, WireType):
                norm.append(("", item))
                continue
            if not isinstance(item, (tuple, list)) or len(item) != 2:
                raise InvalidTypeDescriptor("tuple component must be (name, type)", got=repr(item))
            fname, ftype = item
            if not isinstance(fname, str):
                raise InvalidTypeDescriptor("tuple field name must be a string", got=repr(fname))
            norm.append((fname, as_type(ftype)))
        if self.struct_name is not None and not _IDENT.match(self.struct_name):
            raise InvalidTypeDescriptor("invalid struct name", struct_name=self.struct_name)
        names = [n for n, _ in norm if n]
        if len(names) != len(set(names)):
            raise InvalidTypeDescriptor("duplicate tuple field name", fields=names)
        object.__setattr__(self, "components", tuple(norm))
        _check_depth(self)

    @property
    def types(self) -> Tuple[WireType, ...]:
        return tuple(t for _, t in self.components)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(n for n, _ in self.components)

    @cached_property
    def dynamic(self) -> bool:
        return any(t.dynamic for t in self.types)

    @cached_property
    def static_words(self) -> Optional[int]:
        if self.dynamic:
            return None
        return sum(t.static_words for t in self.types)  # type: ignore[misc]

    @cached_property
    def depth(self) -> int:
        return 1 + max((t.depth for t in self.types), default=0)

    def validate(self, value: Any) -> tuple:
        types = self.types
        if isinstance(value, Mapping):
            names = self.field_names
            if not all(names):
                raise ValueTypeMismatch(f"{self.name} has unnamed fields; pass a sequence")
            missing = [n for n in names if n not in value]
            if missing or len(value) != len(names):
                raise ValueTypeMismatch(
                    f"{self.name} field mismatch", missing=missing, got=sorted(map(str, value))
                )
            return tuple(t.validate(value[n]) for n, t in self.components)
        if not _is_sequence(value):
            raise ValueTypeMismatch(f"{self.name} expects a sequence or mapping", got=type(value).__name__)
        if len(value) != len(types):
            raise ValueTypeMismatch(f"{self.name} expects {len(types)} values", got=len(value))
        return tuple(t.validate(v) for t, v in zip(types, value))

    def as_dict(self, value: Sequence[Any]) -> dict:
        """Map a decoded tuple back onto its field names."""
        if len(value) != len(self.components):
            raise ValueTypeMismatch(f"{self.name} expects {len(self.components)} values", got=len(value))
        return {n or str(i): v for i, ((n, _), v) in enumerate(zip(self.components, value))}

    @property
    def name(self) -> str:
        return "(" + ",".join(t.name for t in self.types) + ")"


TypeLike = Union[str, WireType]


def is_dynamic(t: TypeLike) -> bool:
    return as_type(t).dynamic


def static_word_count(t: TypeLike) -> Optional[int]:
    """Number of 32-byte words of a static type; None iff the type is dynamic."""
    return as_type(t).static_words


def as_type(t: TypeLike) -> WireType:
    if isinstance(t, WireType):
        return t
    if isinstance(t, str):
        return parse_type(t)
    raise InvalidTypeDescriptor("expected a WireType or type string", got=repr(t))


def struct(name: str, fields: Sequence[Tuple[str, TypeLike]]) -> TupleType:
    """Build a named tuple (struct) from ``(field_name, type)`` pairs."""
    return TupleType(tuple((n, as_type(t)) for n, t in fields), struct_name=name)


# ──────────────────────────────────────────────────────────────────────────────
# Parser for textual type specs (e.g., "uint256", "(address,bytes)[2][]")
# ──────────────────────────────────────────────────────────────────────────────

_ATOMIC = re.compile(r"^(bool|address|string|bytes|byte|uint|int)(\d*)$")
_SUFFIX = re.compile(r"\[(\d*)\]")


def parse_type(spec: str) -> WireType:
    """
    Parse a textual type spec into a WireType.
    Supported forms:
      - "bool", "address", "string", "bytes"
      - "uintN" / "intN" where N ∈ {8,16,…,256}; "uint"/"int" mean 256 bits
      - "bytesN" where 1 ≤ N ≤ 32; "byte" means bytes1
      - "T[k]", "T[]" (any depth), "(T1,T2,...)" and "tuple(T1,...)"
    """
    if not isinstance(spec, str) or not spec.strip():
        raise InvalidTypeDescriptor("type spec must be a non-empty string")
    s = "".join(spec.split())
    t, pos = _parse_at(s, 0, 0)
    if pos != len(s):
        raise InvalidTypeDescriptor(f"unexpected trailing text in type spec: {spec!r}")
    return t


def _parse_at(s: str, pos: int, depth: int) -> Tuple[WireType, int]:
    if depth > load_config().max_type_depth:
        raise InvalidTypeDescriptor("type nesting too deep", spec=s)
    if s.startswith("tuple(", pos):
        pos += len("tuple")
    if pos < len(s) and s[pos] == "(":
        members = []
        pos += 1
        if pos < len(s) and s[pos] == ")":
            pos += 1
        else:
            while True:
                member, pos = _parse_at(s, pos, depth + 1)
                members.append(member)
                if pos >= len(s):
                    raise InvalidTypeDescriptor(f"unterminated tuple in type spec: {s!r}")
                if s[pos] == ",":
                    pos += 1
                    continue
                if s[pos] == ")":
                    pos += 1
                    break
                raise InvalidTypeDescriptor(f"unexpected {s[pos]!r} in type spec: {s!r}")
        base: WireType = TupleType(tuple(members))
    else:
        end = pos
        while end < len(s) and s[end] not in "[],()":
            end += 1
        base = _parse_atomic(s[pos:end])
        pos = end
    while pos < len(s) and s[pos] == "[":
        m = _SUFFIX.match(s, pos)
        if m is None:
            raise InvalidTypeDescriptor(f"malformed array suffix in type spec: {s!r}")
        base = ArrayType(base) if m.group(1) == "" else FixedArrayType(base, int(m.group(1)))
        pos = m.end()
    return base, pos


def _parse_atomic(token: str) -> WireType:
    m = _ATOMIC.match(token)
    if m is None:
        raise InvalidTypeDescriptor(f"unsupported type spec: {token!r}")
    kind, digits = m.groups()
    if kind in ("bool", "address", "string", "byte") and digits:
        raise InvalidTypeDescriptor(f"unsupported type spec: {token!r}")
    if kind == "bool":
        return BoolType()
    if kind == "address":
        return AddressType()
    if kind == "string":
        return StringType()
    if kind == "byte":
        return FixedBytesType(1)
    if kind == "bytes":
        return FixedBytesType(int(digits)) if digits else BytesType()
    bits = int(digits) if digits else 256
    return UIntType(bits) if kind == "uint" else IntType(bits)
