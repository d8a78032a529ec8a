"""
Event logs: topics and data.

    topic0   = keccak256("Name(t1,t2,...)")          (omitted for anonymous events)
    topic_i  = encode_topic(type_i, value_i)          (one per indexed parameter)
    data     = encode_sequence(non-indexed types, non-indexed values)

Indexed parameters of a value type occupy their head word directly. Any
other indexed parameter is committed to by hash and cannot be recovered from
the log; decoding returns the raw 32-byte topic for those.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import InvalidLog, InvalidTypeDescriptor, ValueTypeMismatch
from ..hash_api import keccak256
from ..logging import get_logger
from .decoding import decode_sequence, decode_word
from .encoding import _is_value_type, _pad_right, _word, encode_sequence
from .selectors import function_signature
from .table import SortedTable
from .types import (WORD, ArrayType, BytesType, FixedArrayType, StringType,
                    TupleType, TypeLike, WireType, as_type, normalize_hex)

__all__ = [
    "EventParam",
    "Event",
    "DecodedLog",
    "EventTable",
    "encode_topic",
    "encode_topic_preimage",
    "topic_preimage_length",
]

log = get_logger(__name__)


# ──────────────────────────────────────────────────────────────────────────────
# Topic encoding
# ──────────────────────────────────────────────────────────────────────────────


def _preimage(t: WireType, v: Any) -> bytes:
    if _is_value_type(t):
        return _word(t, v)
    if isinstance(t, BytesType):
        return _pad_right(v)
    if isinstance(t, StringType):
        return _pad_right(v.encode("utf-8"))
    if isinstance(t, (FixedArrayType, ArrayType)):
        return b"".join(_preimage(t.elem, x) for x in v)
    if isinstance(t, TupleType):
        return b"".join(_preimage(m, x) for m, x in zip(t.types, v))
    raise ValueTypeMismatch(f"unsupported ABI type: {t!r}")


def _preimage_len(t: WireType, v: Any) -> int:
    if _is_value_type(t):
        return WORD
    if isinstance(t, BytesType):
        return (len(v) + WORD - 1) // WORD * WORD
    if isinstance(t, StringType):
        return (len(v.encode("utf-8")) + WORD - 1) // WORD * WORD
    if isinstance(t, (FixedArrayType, ArrayType)):
        return sum(_preimage_len(t.elem, x) for x in v)
    if isinstance(t, TupleType):
        return sum(_preimage_len(m, x) for m, x in zip(t.types, v))
    raise ValueTypeMismatch(f"unsupported ABI type: {t!r}")


def encode_topic_preimage(typ: TypeLike, value: Any) -> bytes:
    """
    In-place encoding hashed for indexed reference types: value words,
    bytes/string zero-padded to a word multiple, and arrays/tuples as the
    plain concatenation of their members (no offsets, no length words).
    """
    t = as_type(typ)
    return _preimage(t, t.validate(value))


def topic_preimage_length(typ: TypeLike, value: Any) -> int:
    t = as_type(typ)
    return _preimage_len(t, t.validate(value))


def encode_topic(typ: TypeLike, value: Any) -> bytes:
    """The 32-byte topic for one indexed parameter."""
    t = as_type(typ)
    v = t.validate(value)
    if _is_value_type(t):
        return _word(t, v)
    if isinstance(t, BytesType):
        return keccak256(v)
    if isinstance(t, StringType):
        return keccak256(v.encode("utf-8"))
    return keccak256(_preimage(t, v))


def _as_data(data: Any) -> bytes:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        try:
            return normalize_hex(data)
        except ValueTypeMismatch as e:
            raise InvalidLog("log data is not valid hex", raw=data) from e
    raise InvalidLog("log data must be bytes-like or 0x-hex", raw=data, got=type(data).__name__)


def _as_topics(topics: Sequence[Any], data: bytes) -> List[bytes]:
    out = []
    for t in topics:
        if isinstance(t, str):
            try:
                t = normalize_hex(t)
            except ValueTypeMismatch:
                t = None
        if not isinstance(t, (bytes, bytearray, memoryview)) or len(t) != WORD:
            raise InvalidLog("topic must be 32 bytes", topics=out, log_data=data, index=len(out))
        out.append(bytes(t))
    return out


# ──────────────────────────────────────────────────────────────────────────────
# Event definitions
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EventParam:
    name: str
    typ: WireType
    indexed: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "typ", as_type(self.typ))


def _event_param(p: Any) -> EventParam:
    if isinstance(p, EventParam):
        return p
    if isinstance(p, (tuple, list)) and len(p) in (2, 3):
        return EventParam(*p)
    raise InvalidTypeDescriptor("event input must be EventParam or (name, type[, indexed])", got=repr(p))


@dataclass(frozen=True)
class DecodedLog:
    event: "Event"
    values: Tuple[Any, ...]

    @property
    def args(self) -> dict:
        return {p.name or str(i): v for i, (p, v) in enumerate(zip(self.event.inputs, self.values))}

    def __getitem__(self, key: Union[int, str]) -> Any:
        if isinstance(key, int):
            return self.values[key]
        return self.args[key]


@dataclass(frozen=True)
class Event:
    name: str
    inputs: Tuple[EventParam, ...] = field(default=())
    anonymous: bool = False

    def __post_init__(self) -> None:
        params = tuple(_event_param(p) for p in self.inputs)
        object.__setattr__(self, "inputs", params)
        limit = 4 if self.anonymous else 3
        n = sum(1 for p in params if p.indexed)
        if n > limit:
            raise InvalidTypeDescriptor(
                f"event {self.name} has too many indexed parameters", indexed=n, limit=limit
            )
        names = [p.name for p in params if p.name]
        if len(names) != len(set(names)):
            raise InvalidTypeDescriptor("duplicate event parameter name", event=self.name)

    @cached_property
    def signature(self) -> str:
        return function_signature(self.name, [p.typ for p in self.inputs])

    @cached_property
    def topic0(self) -> bytes:
        return keccak256(self.signature.encode("utf-8"))

    @property
    def indexed(self) -> Tuple[EventParam, ...]:
        return tuple(p for p in self.inputs if p.indexed)

    @property
    def non_indexed(self) -> Tuple[EventParam, ...]:
        return tuple(p for p in self.inputs if not p.indexed)

    @property
    def topic_count(self) -> int:
        return len(self.indexed) + (0 if self.anonymous else 1)

    def _ordered(self, values: Union[Sequence[Any], Mapping[str, Any]]) -> List[Any]:
        if isinstance(values, Mapping):
            missing = [p.name for p in self.inputs if p.name not in values]
            if missing or len(values) != len(self.inputs):
                raise ValueTypeMismatch(f"event {self.name} field mismatch", missing=missing)
            return [values[p.name] for p in self.inputs]
        if len(values) != len(self.inputs):
            raise ValueTypeMismatch(
                f"event {self.name} expects {len(self.inputs)} values", got=len(values)
            )
        return list(values)

    def encode_log(self, values: Union[Sequence[Any], Mapping[str, Any]]) -> Tuple[List[bytes], bytes]:
        """Return (topics, data) for one emission of this event."""
        ordered = self._ordered(values)
        topics = [] if self.anonymous else [self.topic0]
        data_types, data_values = [], []
        for p, v in zip(self.inputs, ordered):
            if p.indexed:
                topics.append(encode_topic(p.typ, v))
            else:
                data_types.append(p.typ)
                data_values.append(v)
        return topics, encode_sequence(data_types, data_values)

    def decode_log(
        self, topics: Sequence[Any], data: bytes, validate: Optional[bool] = None
    ) -> DecodedLog:
        data = _as_data(data)
        raw = _as_topics(topics, data)
        if len(raw) != self.topic_count:
            raise InvalidLog(
                f"event {self.name} expects {self.topic_count} topics",
                topics=raw, log_data=data, got=len(raw),
            )
        if not self.anonymous:
            if raw[0] != self.topic0:
                raise InvalidLog("topic0 does not match event signature", topics=raw, log_data=data)
            raw = raw[1:]
        body = iter(decode_sequence(data, [p.typ for p in self.non_indexed], validate))
        words = iter(raw)
        out = []
        for p in self.inputs:
            if not p.indexed:
                out.append(next(body))
            elif _is_value_type(p.typ):
                out.append(decode_word(p.typ, next(words), validate))
            else:
                out.append(next(words))
        return DecodedLog(self, tuple(out))

    def __str__(self) -> str:
        return self.signature


class EventTable:
    """Events dispatchable by topic0. Anonymous events are left out."""

    def __init__(self, events: Iterable[Event]) -> None:
        evs = list(events)
        self._table: SortedTable[Event] = SortedTable(
            ((e.topic0, e) for e in evs if not e.anonymous), width=WORD
        )
        log.debug("built event table", extra={"events": len(self._table), "anonymous": len(evs) - len(self._table)})

    def get(self, topic0: bytes) -> Optional[Event]:
        return self._table.get(topic0)

    def __len__(self) -> int:
        return len(self._table)

    def __iter__(self):
        return iter(self._table)

    def decode_log(
        self, topics: Sequence[Any], data: bytes, validate: Optional[bool] = None
    ) -> DecodedLog:
        data = _as_data(data)
        raw = _as_topics(topics, data)
        if not raw:
            raise InvalidLog("log has no topics", topics=(), log_data=data)
        event = self._table.get(raw[0])
        if event is None:
            raise InvalidLog("no event matches topic0", topics=raw, log_data=data)
        return event.decode_log(raw, data, validate)
