"""
solcodec.errors
---------------

A small, consistent error system for the codec.

Design goals
------------
- One root `CodecError` with machine-friendly `code` and optional `data`.
- Three families with different handling expectations:
    * definition-time (`InvalidTypeDescriptor`): a bug in static type
      declarations, fatal;
    * encode-time (`ValueTypeMismatch`): a locally built value does not fit
      its declared type, fatal;
    * decode/dispatch-time (`DecodeError` and subclasses): untrusted input was
      rejected, recoverable.
- Safe JSON representation (`to_dict`) suitable for logs and RPC bridges.

This module uses only stdlib so every other module can import it early.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence


class CodecErrorCode(str, Enum):
    # Definition / encode time
    INVALID_TYPE = "ABI/INVALID_TYPE_DESCRIPTOR"
    VALUE_MISMATCH = "ABI/VALUE_TYPE_MISMATCH"

    # Decode time
    DECODE = "ABI/DECODE"
    OVERRUN = "ABI/OVERRUN"
    INVALID_OFFSET = "ABI/INVALID_OFFSET"
    INVALID_LENGTH = "ABI/INVALID_LENGTH"
    INVALID_BOOL = "ABI/INVALID_BOOL"
    INVALID_PADDING = "ABI/INVALID_PADDING"
    INVALID_UTF8 = "ABI/INVALID_UTF8"

    # Dispatch time
    UNKNOWN_SELECTOR = "ABI/UNKNOWN_SELECTOR"
    INVALID_LOG = "ABI/INVALID_LOG"
    REVERT = "ABI/REVERT"


@dataclass(eq=False)
class CodecError(Exception):
    """
    Root error for solcodec.

    Attributes
    ----------
    code: str
        Machine-stable error code (see CodecErrorCode).
    message: str
        Human hint suitable for logs.
    data: dict
        Optional machine data (offsets, sizes, selectors). JSON-serializable.
    """

    code: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(f"{_code_str(self.code)}: {self.message}")

    def with_context(self, **ctx: Any) -> "CodecError":
        """Return a *new* error with extra context merged (does not mutate)."""
        # BaseException.__new__ does not run the subclass __init__, whose
        # signature differs per subclass.
        out = type(self).__new__(type(self))
        out.__dict__.update(self.__dict__)
        out.args = self.args
        out.data = {**self.data, **_jsonmap(ctx)}
        return out

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe shape suitable for logs/RPC bridges."""
        return {
            "code": _code_str(self.code),
            "message": self.message,
            "data": jsonable(self.data),
        }

    def __str__(self) -> str:  # pragma: no cover - human formatting
        parts = [f"{_code_str(self.code)}: {self.message}"]
        if self.data:
            preview = ", ".join(f"{k}={_preview(v)}" for k, v in self.data.items())
            parts.append(f"[{preview}]")
        return " ".join(parts)


# ---------------------------------------------------------------------------
# Definition / encode time (fatal)
# ---------------------------------------------------------------------------


class InvalidTypeDescriptor(CodecError, TypeError):
    """A type description is malformed (bad bit width, bad bytesN size, ...)."""

    def __init__(self, message: str = "invalid type descriptor", **data: Any) -> None:
        super().__init__(
            code=CodecErrorCode.INVALID_TYPE, message=message, data=_jsonmap(data)
        )


class ValueTypeMismatch(CodecError, ValueError):
    """A Python value does not conform to the type it is encoded as."""

    def __init__(self, message: str = "value does not match type", **data: Any) -> None:
        super().__init__(
            code=CodecErrorCode.VALUE_MISMATCH, message=message, data=_jsonmap(data)
        )


# ---------------------------------------------------------------------------
# Decode time (recoverable)
# ---------------------------------------------------------------------------


class DecodeError(CodecError, ValueError):
    """Base class for every rejection of untrusted input."""

    default_code = CodecErrorCode.DECODE

    def __init__(self, message: str = "decode failed", **data: Any) -> None:
        super().__init__(code=self.default_code, message=message, data=_jsonmap(data))


class Overrun(DecodeError):
    default_code = CodecErrorCode.OVERRUN

    def __init__(self, needed: int, available: int, **data: Any) -> None:
        super().__init__(
            f"buffer overrun: need {needed} bytes, {available} available",
            needed=needed,
            available=available,
            **data,
        )


class InvalidOffset(DecodeError):
    default_code = CodecErrorCode.INVALID_OFFSET

    def __init__(self, message: str = "invalid offset", **data: Any) -> None:
        super().__init__(message, **data)


class InvalidLength(DecodeError):
    default_code = CodecErrorCode.INVALID_LENGTH

    def __init__(self, message: str = "invalid length", **data: Any) -> None:
        super().__init__(message, **data)


class InvalidBool(DecodeError):
    default_code = CodecErrorCode.INVALID_BOOL

    def __init__(self, word: bytes, **data: Any) -> None:
        super().__init__("bool word must be 0 or 1", word=word, **data)


class InvalidPadding(DecodeError):
    default_code = CodecErrorCode.INVALID_PADDING

    def __init__(self, message: str = "non-zero padding", **data: Any) -> None:
        super().__init__(message, **data)


class InvalidUtf8(DecodeError):
    default_code = CodecErrorCode.INVALID_UTF8

    def __init__(self, message: str = "string is not valid UTF-8", **data: Any) -> None:
        super().__init__(message, **data)


# ---------------------------------------------------------------------------
# Dispatch time (recoverable)
# ---------------------------------------------------------------------------


class UnknownSelector(DecodeError):
    default_code = CodecErrorCode.UNKNOWN_SELECTOR

    def __init__(self, selector: bytes, interface: str = "") -> None:
        self.selector = bytes(selector)
        self.interface = interface
        where = f" in {interface}" if interface else ""
        super().__init__(
            f"unknown selector 0x{self.selector.hex()}{where}",
            selector=self.selector,
            interface=interface,
        )


class InvalidLog(DecodeError):
    """
    A log could not be matched or decoded. The raw topics and data are kept on
    the error (`topics`, `log_data`) so callers can inspect or re-route them.
    """

    default_code = CodecErrorCode.INVALID_LOG

    def __init__(
        self,
        message: str,
        topics: Sequence[bytes] = (),
        log_data: bytes = b"",
        **data: Any,
    ) -> None:
        self.topics = tuple(bytes(t) for t in topics)
        self.log_data = bytes(log_data)
        super().__init__(
            message,
            topics=["0x" + t.hex() for t in self.topics],
            log_data=self.log_data,
            **data,
        )


class RevertError(CodecError):
    """Raised by callers that want to surface a decoded revert as an exception."""

    def __init__(self, name: str, args: Sequence[Any] = (), reason: Optional[str] = None) -> None:
        self.name = name
        self.args_decoded = tuple(args)
        self.reason = reason
        msg = f"execution reverted: {reason}" if reason is not None else f"execution reverted: {name}"
        super().__init__(
            code=CodecErrorCode.REVERT,
            message=msg,
            data=_jsonmap({"error": name, "args": list(self.args_decoded)}),
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _code_str(code: Any) -> str:
    return code.value if isinstance(code, Enum) else str(code)


def _jsonmap(data: Mapping[str, Any]) -> Dict[str, Any]:
    return {k: jsonable(v) for k, v in data.items()}


def jsonable(v: Any) -> Any:
    # Keep JSON primitives; hex-encode bytes; recurse into containers.
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, Mapping):
        return {str(k): jsonable(x) for k, x in v.items()}
    if isinstance(v, (list, tuple)):
        return [jsonable(x) for x in v]
    return str(v)


def _preview(v: Any, limit: int = 96) -> str:
    s = str(jsonable(v))
    return s if len(s) <= limit else s[:limit] + "…"


__all__ = [
    "CodecErrorCode",
    "jsonable",
    "CodecError",
    "InvalidTypeDescriptor",
    "ValueTypeMismatch",
    "DecodeError",
    "Overrun",
    "InvalidOffset",
    "InvalidLength",
    "InvalidBool",
    "InvalidPadding",
    "InvalidUtf8",
    "UnknownSelector",
    "InvalidLog",
    "RevertError",
]
