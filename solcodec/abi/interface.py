"""
ContractInterface: the dispatch tables of one contract.

Functions and custom errors are indexed by 4-byte selector, events by topic0.
All tables are sorted once at construction and never mutated, so a single
interface object can be shared freely between threads.

    erc20 = ContractInterface(
        functions=[Function("transfer", [("to", "address"), ("amount", "uint256")], ["bool"])],
        events=[Event("Transfer", [EventParam("from", "address", True),
                                   EventParam("to", "address", True),
                                   EventParam("value", "uint256")])],
        name="ERC20",
    )
    call = erc20.decode_call(calldata)       # DecodedCall(function, args)
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..errors import Overrun, UnknownSelector, ValueTypeMismatch
from ..logging import bound, get_logger
from .decoding import decode_sequence
from .events import DecodedLog, Event, EventTable
from .selectors import (DecodedCall, DecodedRevert, ErrorDef, Function,
                        decode_revert)
from .table import SortedTable
from .types import normalize_hex

__all__ = ["ContractInterface"]

log = get_logger(__name__)

FunctionKey = Union[str, bytes]


def _as_bytes(data: Any) -> bytes:
    if isinstance(data, str):
        return normalize_hex(data)
    return bytes(data)


class ContractInterface:
    def __init__(
        self,
        functions: Iterable[Function] = (),
        events: Iterable[Event] = (),
        errors: Iterable[ErrorDef] = (),
        name: str = "",
    ) -> None:
        self.name = name
        fns = list(functions)
        self._functions: SortedTable[Function] = SortedTable(
            ((f.selector, f) for f in fns), width=4
        )
        self._errors: SortedTable[ErrorDef] = SortedTable(((e.selector, e) for e in errors), width=4)
        self._event_list: Tuple[Event, ...] = tuple(events)
        self._events = EventTable(self._event_list)

        self._by_signature: Dict[str, Function] = {f.signature: f for f in fns}
        self._by_name: Dict[str, List[Function]] = {}
        for f in fns:
            self._by_name.setdefault(f.name, []).append(f)

        log.debug(
            "built contract interface",
            extra={
                "contract": name,
                "functions": len(self._functions),
                "events": len(self._event_list),
                "errors": len(self._errors),
            },
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @property
    def functions(self) -> Tuple[Function, ...]:
        return tuple(self._functions)

    @property
    def events(self) -> Tuple[Event, ...]:
        """Every event, anonymous ones included."""
        return self._event_list

    @property
    def errors(self) -> Tuple[ErrorDef, ...]:
        return tuple(self._errors)

    def function(self, key: FunctionKey) -> Function:
        """
        Resolve a function by 4-byte selector (bytes or 0x-hex), canonical
        signature, or bare name. A bare name must not be overloaded.
        """
        if isinstance(key, (bytes, bytearray)) or (isinstance(key, str) and key.startswith("0x")):
            sel = _as_bytes(key)
            fn = self._functions.get(sel)
            if fn is None:
                raise UnknownSelector(sel, self.name)
            return fn
        if "(" in key:
            fn = self._by_signature.get("".join(key.split()))
            if fn is None:
                raise ValueTypeMismatch(f"no function with signature {key}", contract=self.name)
            return fn
        candidates = self._by_name.get(key, [])
        if not candidates:
            raise ValueTypeMismatch(f"no function named {key}", contract=self.name)
        if len(candidates) > 1:
            raise ValueTypeMismatch(
                f"function name {key} is overloaded; use a signature or selector",
                candidates=[f.signature for f in candidates],
            )
        return candidates[0]

    def event(self, name: str) -> Event:
        for ev in self._event_list:
            if ev.name == name or ev.signature == name:
                return ev
        raise ValueTypeMismatch(f"no event named {name}", contract=self.name)

    @property
    def min_data_length(self) -> int:
        """Smallest argument data (after the selector) any function accepts."""
        return min((f.min_data_length for f in self._functions), default=0)

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def encode_call(
        self, key: FunctionKey, params: Union[Sequence[Any], Mapping[str, Any]] = ()
    ) -> bytes:
        return self.function(key).encode_call(params)

    def decode_call(self, calldata: Any, validate: Optional[bool] = None) -> DecodedCall:
        buf = _as_bytes(calldata)
        if len(buf) < 4:
            raise Overrun(needed=4, available=len(buf))
        sel = buf[:4]
        fn = self._functions.get(sel)
        if fn is None:
            log.debug("unknown selector", extra={"contract": self.name, "selector": "0x" + sel.hex()})
            raise UnknownSelector(sel, self.name)
        with bound(function=fn.signature):
            args = decode_sequence(buf[4:], fn.inputs.types, validate)
        return DecodedCall(fn, args)

    def decode_call_return(
        self, key: FunctionKey, data: Any, validate: Optional[bool] = None
    ) -> Any:
        """Decoded outputs of `key`; a single output is returned unwrapped."""
        out = self.function(key).decode_return(_as_bytes(data), validate)
        return out[0] if len(out) == 1 else out

    # ------------------------------------------------------------------
    # Logs & reverts
    # ------------------------------------------------------------------

    def decode_log(
        self, topics: Sequence[Any], data: Any, validate: Optional[bool] = None
    ) -> DecodedLog:
        return self._events.decode_log(topics, data, validate)

    def decode_revert(self, data: Any, validate: Optional[bool] = None) -> DecodedRevert:
        return decode_revert(_as_bytes(data), self._errors, interface=self.name, validate=validate)

    def __repr__(self) -> str:
        return (
            f"ContractInterface(name={self.name!r}, functions={len(self._functions)}, "
            f"events={len(self._event_list)}, errors={len(self._errors)})"
        )
