"""
EIP-712 typed structured data hashing.

    encodeType(S) = root(S) ++ root(C1) ++ root(C2) ++ ...     (Ci sorted by name)
    typeHash(S)   = keccak256(encodeType(S))
    hashStruct(s) = keccak256(typeHash(S) ++ encodeData(s))
    digest        = keccak256(0x19 0x01 ++ domainSeparator ++ hashStruct(message))

encodeData maps each field to one 32-byte word:
  - value types        -> their ABI head word
  - bytes / string     -> keccak256(contents)
  - nested struct      -> hashStruct(member)
  - T[] / T[k]         -> keccak256(concat(encodeData word of each element))

A struct is a TupleType with a `struct_name`; every field must be named.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple, Union

from ..errors import InvalidTypeDescriptor, ValueTypeMismatch
from ..hash_api import hash_concat_keccak256, keccak256
from .encoding import _is_value_type, _word
from .types import (WORD, ArrayType, BytesType, FixedArrayType, StringType,
                    TupleType, TypeLike, WireType, as_type, normalize_hex,
                    struct)

__all__ = [
    "eip712_root_type",
    "eip712_components",
    "eip712_encode_type",
    "eip712_type_hash",
    "eip712_data_word",
    "eip712_encode_data",
    "hash_struct",
    "Eip712Domain",
    "hash_typed_data",
]

EIP712_PREFIX = b"\x19\x01"


# ──────────────────────────────────────────────────────────────────────────────
# Type strings
# ──────────────────────────────────────────────────────────────────────────────


def _require_struct(t: WireType) -> TupleType:
    if not isinstance(t, TupleType):
        raise InvalidTypeDescriptor("EIP-712 root must be a struct", got=t.name)
    if not t.struct_name:
        raise InvalidTypeDescriptor("anonymous tuple cannot be used as an EIP-712 struct", tuple=t.name)
    return t


def _type_ref(t: WireType) -> str:
    if isinstance(t, TupleType):
        return _require_struct(t).struct_name  # type: ignore[return-value]
    if isinstance(t, FixedArrayType):
        return f"{_type_ref(t.elem)}[{t.length}]"
    if isinstance(t, ArrayType):
        return f"{_type_ref(t.elem)}[]"
    return t.name


def _base(t: WireType) -> WireType:
    while isinstance(t, (FixedArrayType, ArrayType)):
        t = t.elem
    return t


def eip712_root_type(s: TupleType) -> str:
    """`Name(type1 field1,type2 field2,...)` in declared field order."""
    s = _require_struct(s)
    parts = []
    for fname, ftype in s.components:
        if not fname:
            raise InvalidTypeDescriptor("EIP-712 struct fields must be named", struct=s.struct_name)
        parts.append(f"{_type_ref(ftype)} {fname}")
    return f"{s.struct_name}(" + ",".join(parts) + ")"


def _collect(s: TupleType, seen: Dict[str, TupleType]) -> None:
    for _, ftype in s.components:
        inner = _base(ftype)
        if not isinstance(inner, TupleType):
            continue
        name = _require_struct(inner).struct_name
        prev = seen.get(name)  # type: ignore[arg-type]
        if prev is None:
            seen[name] = inner  # type: ignore[index]
            _collect(inner, seen)
        elif prev != inner:
            raise InvalidTypeDescriptor("conflicting definitions for struct", struct=name)


def _referenced(s: TupleType) -> List[TupleType]:
    s = _require_struct(s)
    seen: Dict[str, TupleType] = {s.struct_name: s}  # type: ignore[dict-item]
    _collect(s, seen)
    del seen[s.struct_name]  # type: ignore[arg-type]
    return [seen[k] for k in sorted(seen)]


def eip712_components(s: TupleType) -> Tuple[str, ...]:
    """Root clauses of every nested struct, deduplicated and sorted by name."""
    return tuple(eip712_root_type(c) for c in _referenced(s))


def eip712_encode_type(s: TupleType) -> str:
    return eip712_root_type(s) + "".join(eip712_components(s))


@lru_cache(maxsize=1024)
def eip712_type_hash(s: TupleType) -> bytes:
    return keccak256(eip712_encode_type(s).encode("utf-8"))


# ──────────────────────────────────────────────────────────────────────────────
# Data encoding
# ──────────────────────────────────────────────────────────────────────────────


def _data_word(t: WireType, v: Any) -> bytes:
    if _is_value_type(t):
        return _word(t, v)
    if isinstance(t, BytesType):
        return keccak256(v)
    if isinstance(t, StringType):
        return keccak256(v.encode("utf-8"))
    if isinstance(t, (FixedArrayType, ArrayType)):
        return hash_concat_keccak256(*(_data_word(t.elem, x) for x in v))
    if isinstance(t, TupleType):
        return _hash_struct(_require_struct(t), v)
    raise ValueTypeMismatch(f"unsupported ABI type: {t!r}")


def _hash_struct(s: TupleType, v: Any) -> bytes:
    return hash_concat_keccak256(
        eip712_type_hash(s), *(_data_word(t, x) for t, x in zip(s.types, v))
    )


def eip712_data_word(typ: TypeLike, value: Any) -> bytes:
    """The 32-byte encodeData word of one field value."""
    t = as_type(typ)
    return _data_word(t, t.validate(value))


def eip712_encode_data(s: TupleType, value: Any) -> bytes:
    s = _require_struct(s)
    v = s.validate(value)
    return b"".join(_data_word(t, x) for t, x in zip(s.types, v))


def hash_struct(s: TupleType, value: Any) -> bytes:
    """keccak256(typeHash ++ encodeData). `value` is a sequence or a field mapping."""
    s = _require_struct(s)
    return _hash_struct(s, s.validate(value))


# ──────────────────────────────────────────────────────────────────────────────
# Domain & digest
# ──────────────────────────────────────────────────────────────────────────────

_DOMAIN_FIELDS = (
    ("name", "name", "string"),
    ("version", "version", "string"),
    ("chain_id", "chainId", "uint256"),
    ("verifying_contract", "verifyingContract", "address"),
    ("salt", "salt", "bytes32"),
)


@dataclass(frozen=True)
class Eip712Domain:
    """
    EIP712Domain with only the fields that are set, in the order fixed by
    EIP-712: name, version, chainId, verifyingContract, salt.
    """

    name: Optional[str] = None
    version: Optional[str] = None
    chain_id: Optional[int] = None
    verifying_contract: Optional[Union[str, bytes]] = None
    salt: Optional[bytes] = None

    def _present(self) -> List[Tuple[str, str, Any]]:
        out = []
        for attr, fname, ftype in _DOMAIN_FIELDS:
            v = getattr(self, attr)
            if v is not None:
                out.append((fname, ftype, v))
        return out

    def struct_type(self) -> TupleType:
        return struct("EIP712Domain", [(f, t) for f, t, _ in self._present()])

    def separator(self) -> bytes:
        return hash_struct(self.struct_type(), [v for _, _, v in self._present()])


def hash_typed_data(
    domain: Union[bytes, str, Eip712Domain], s: TupleType, value: Any
) -> bytes:
    """keccak256(0x1901 ++ domainSeparator ++ hashStruct(message))."""
    if isinstance(domain, Eip712Domain):
        sep = domain.separator()
    elif isinstance(domain, str):
        sep = normalize_hex(domain)
    elif isinstance(domain, (bytes, bytearray, memoryview)):
        sep = bytes(domain)
    else:
        raise ValueTypeMismatch(
            "domain must be an Eip712Domain, 32 bytes or 0x-hex", got=type(domain).__name__
        )
    if len(sep) != WORD:
        raise ValueTypeMismatch("domain separator must be 32 bytes", got=len(sep))
    return keccak256(EIP712_PREFIX + sep + hash_struct(s, value))
