"""
Function selectors, calldata assembly and revert payloads.

    canonical signature := name "(" type ["," type]* ")"     (tuples expanded)
    selector            := keccak256(signature)[:4]
    calldata            := selector || encode_sequence(inputs)

Custom errors follow the same scheme; the two built-in revert payloads are
`Error(string)` (0x08c379a0) and `Panic(uint256)` (0x4e487b71).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property, lru_cache
from typing import Any, Mapping, Optional, Sequence, Tuple, Union

from ..errors import InvalidTypeDescriptor, Overrun, RevertError, UnknownSelector
from ..hash_api import keccak256
from .decoding import decode_sequence
from .encoding import encode_sequence
from .table import SortedTable
from .types import (WORD, ArrayType, BytesType, FixedArrayType, StringType,
                    TupleType, TypeLike, WireType, as_type)

__all__ = [
    "function_signature",
    "function_selector",
    "Function",
    "ErrorDef",
    "DecodedCall",
    "DecodedRevert",
    "ERROR_STRING",
    "PANIC",
    "PANIC_REASONS",
    "decode_revert",
]

ParamsLike = Union[TupleType, Sequence[Any]]

_MUTABILITY = ("pure", "view", "nonpayable", "payable")


def function_signature(name: str, types: Sequence[TypeLike]) -> str:
    """`name(t1,t2,...)` using canonical type names (tuples expanded)."""
    return f"{name}(" + ",".join(as_type(t).name for t in types) + ")"


@lru_cache(maxsize=4096)
def function_selector(signature: str) -> bytes:
    """First 4 bytes of keccak256(signature)."""
    return keccak256(signature.encode("utf-8"))[:4]


def _params(spec: ParamsLike) -> TupleType:
    """Accept a TupleType, or a sequence of types / type strings / (name, type) pairs."""
    if isinstance(spec, TupleType):
        return spec
    if isinstance(spec, (str, bytes)):
        raise InvalidTypeDescriptor("parameters must be a sequence, not a single string", got=spec)
    items = []
    for p in spec:
        if isinstance(p, (str, WireType)):
            items.append(("", as_type(p)))
        else:
            items.append(p)
    return TupleType(tuple(items))


def _check_name(name: str) -> None:
    if not isinstance(name, str) or not name or not (name[0].isalpha() or name[0] in "_$"):
        raise InvalidTypeDescriptor("invalid function or error name", name=name)


def _min_content(t: WireType) -> int:
    if isinstance(t, (BytesType, StringType, ArrayType)):
        return WORD
    if isinstance(t, FixedArrayType):
        return t.length * _min_footprint(t.elem)
    if isinstance(t, TupleType):
        return sum(_min_footprint(m) for m in t.types)
    return t.head_size


def _min_footprint(t: WireType) -> int:
    """Head word(s) plus the smallest tail a value of `t` can have."""
    return WORD + _min_content(t) if t.dynamic else t.head_size


def _split_selector(data: bytes) -> Tuple[bytes, bytes]:
    if len(data) < 4:
        raise Overrun(needed=4, available=len(data))
    return bytes(data[:4]), bytes(data[4:])


@dataclass(frozen=True)
class Function:
    name: str
    inputs: TupleType = field(default_factory=TupleType)
    outputs: TupleType = field(default_factory=TupleType)
    state_mutability: str = "nonpayable"

    def __post_init__(self) -> None:
        _check_name(self.name)
        object.__setattr__(self, "inputs", _params(self.inputs))
        object.__setattr__(self, "outputs", _params(self.outputs))
        if self.state_mutability not in _MUTABILITY:
            raise InvalidTypeDescriptor("unknown state mutability", got=self.state_mutability)

    @cached_property
    def signature(self) -> str:
        return function_signature(self.name, self.inputs.types)

    @cached_property
    def selector(self) -> bytes:
        return function_selector(self.signature)

    @property
    def min_data_length(self) -> int:
        """Smallest possible argument data after the selector."""
        return sum(_min_footprint(t) for t in self.inputs.types)

    def encode_call(self, params: Union[Sequence[Any], Mapping[str, Any]] = ()) -> bytes:
        return self.selector + encode_sequence(self.inputs.types, self.inputs.validate(params))

    def decode_call(self, calldata: bytes, validate: Optional[bool] = None) -> Tuple[Any, ...]:
        sel, body = _split_selector(calldata)
        if sel != self.selector:
            raise UnknownSelector(sel, self.signature)
        return decode_sequence(body, self.inputs.types, validate)

    def encode_return(self, values: Union[Sequence[Any], Mapping[str, Any]] = ()) -> bytes:
        return encode_sequence(self.outputs.types, self.outputs.validate(values))

    def decode_return(self, data: bytes, validate: Optional[bool] = None) -> Tuple[Any, ...]:
        return decode_sequence(data, self.outputs.types, validate)

    def __str__(self) -> str:
        return self.signature


@dataclass(frozen=True)
class ErrorDef:
    """A Solidity custom error: `error Name(T1 a, T2 b)`."""

    name: str
    inputs: TupleType = field(default_factory=TupleType)

    def __post_init__(self) -> None:
        _check_name(self.name)
        object.__setattr__(self, "inputs", _params(self.inputs))

    @cached_property
    def signature(self) -> str:
        return function_signature(self.name, self.inputs.types)

    @cached_property
    def selector(self) -> bytes:
        return function_selector(self.signature)

    def encode(self, values: Union[Sequence[Any], Mapping[str, Any]] = ()) -> bytes:
        return self.selector + encode_sequence(self.inputs.types, self.inputs.validate(values))

    def decode(self, data: bytes, validate: Optional[bool] = None) -> Tuple[Any, ...]:
        sel, body = _split_selector(data)
        if sel != self.selector:
            raise UnknownSelector(sel, self.signature)
        return decode_sequence(body, self.inputs.types, validate)

    def __str__(self) -> str:
        return self.signature


ERROR_STRING = ErrorDef("Error", (("message", "string"),))
PANIC = ErrorDef("Panic", (("code", "uint256"),))

PANIC_REASONS = {
    0x00: "generic compiler panic",
    0x01: "assertion failed",
    0x11: "arithmetic overflow or underflow",
    0x12: "division or modulo by zero",
    0x21: "invalid enum value",
    0x22: "invalid storage byte array encoding",
    0x31: "pop on empty array",
    0x32: "array index out of bounds",
    0x41: "out of memory",
    0x51: "call to zero-initialized function",
}


@dataclass(frozen=True)
class DecodedCall:
    function: Function
    args: Tuple[Any, ...]

    def as_dict(self) -> dict:
        return self.function.inputs.as_dict(self.args)


@dataclass(frozen=True)
class DecodedRevert:
    """A decoded revert payload. `error` is None for a revert without data."""

    error: Optional[ErrorDef]
    args: Tuple[Any, ...] = ()

    @property
    def reason(self) -> Optional[str]:
        if self.error is None:
            return None
        if self.error == ERROR_STRING:
            return self.args[0]
        if self.error == PANIC:
            code = self.args[0]
            return f"panic 0x{code:02x}: {PANIC_REASONS.get(code, 'unknown panic code')}"
        return self.error.signature

    def to_exception(self) -> RevertError:
        name = self.error.name if self.error is not None else ""
        return RevertError(name, self.args, self.reason)


_BUILTIN_ERRORS: SortedTable[ErrorDef] = SortedTable(
    ((e.selector, e) for e in (ERROR_STRING, PANIC)), width=4
)


def decode_revert(
    data: bytes,
    errors: Optional[SortedTable[ErrorDef]] = None,
    *,
    interface: str = "",
    validate: Optional[bool] = None,
) -> DecodedRevert:
    """
    Decode revert data against the built-in errors and an optional table of
    custom errors. Empty data is a revert without a reason.
    """
    if len(data) == 0:
        return DecodedRevert(None)
    sel, body = _split_selector(data)
    err = _BUILTIN_ERRORS.get(sel)
    if err is None and errors is not None:
        err = errors.get(sel)
    if err is None:
        raise UnknownSelector(sel, interface)
    return DecodedRevert(err, decode_sequence(body, err.inputs.types, validate))
