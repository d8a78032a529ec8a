"""
solcodec.logging
----------------

Structured logging for the codec, on top of the standard library:

- `JSONFormatter` (one JSON object per line) and `TextFormatter` (aligned,
  optionally colored one-liners);
- context fields carried in a `ContextVar` (`bind`, `unbind`, `bound`), so a
  caller can tag everything decoded for one contract or one request;
- bytes and dataclasses rendered JSON-safe (0x-hex, dicts).

Library modules only call `get_logger(__name__)` and log at DEBUG. Nothing is
printed unless the embedding application installs a handler, either its own
or through `configure()`:

    from solcodec import logging as slog

    slog.configure(level="DEBUG")
    with slog.bound(contract="LightClient"):
        iface.decode_call(calldata)
"""

from __future__ import annotations

import datetime as _dt
import io
import json
import logging
import os
import sys
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterator, Mapping, Optional

from .config import load_config
from .errors import jsonable

ROOT_LOGGER = "solcodec"

# Keys shown first (in this order) by the text formatter.
DEFAULT_CONTEXT_KEYS = ("contract", "function", "event", "selector")

_CTX: ContextVar[Mapping[str, Any]] = ContextVar("solcodec_log_context", default={})


# ──────────────────────────────────────────────────────────────────────────────
# Context fields
# ──────────────────────────────────────────────────────────────────────────────


def _field_value(v: Any) -> Any:
    if is_dataclass(v) and not isinstance(v, type):
        v = asdict(v)
    return jsonable(v)


def context() -> Dict[str, Any]:
    return dict(_CTX.get())


def bind(**fields: Any) -> None:
    """Add fields to every record logged from the current context."""
    _CTX.set({**_CTX.get(), **{k: _field_value(v) for k, v in fields.items()}})


def unbind(*keys: str) -> None:
    _CTX.set({k: v for k, v in _CTX.get().items() if k not in keys})


def clear_context() -> None:
    _CTX.set({})


@contextmanager
def bound(**fields: Any) -> Iterator[None]:
    """Scoped `bind`: the previous context is restored on exit."""
    token = _CTX.set({**_CTX.get(), **{k: _field_value(v) for k, v in fields.items()}})
    try:
        yield
    finally:
        _CTX.reset(token)


# ──────────────────────────────────────────────────────────────────────────────
# Formatters
# ──────────────────────────────────────────────────────────────────────────────

# Attributes every LogRecord has; anything else arrived through `extra=`.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_COLORS = {
    logging.DEBUG: "\x1b[90m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[1;35m",
}
_RESET = "\x1b[0m"


def _timestamp(record: logging.LogRecord) -> str:
    ts = _dt.datetime.fromtimestamp(record.created, tz=_dt.timezone.utc)
    return ts.isoformat(timespec="milliseconds")


def _is_tty(stream: Any) -> bool:
    try:
        return bool(stream.isatty()) and "NO_COLOR" not in os.environ
    except (AttributeError, ValueError):
        return False


def _record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _field_value(v)
        for k, v in vars(record).items()
        if k not in _STANDARD_ATTRS and not k.startswith("_")
    }


def _exc_text(record: logging.LogRecord) -> Optional[str]:
    if not record.exc_info:
        return None
    return "".join(traceback.format_exception(*record.exc_info)).rstrip()


class JSONFormatter(logging.Formatter):
    """One JSON object per record. Context fields win over `extra=` fields."""

    def format(self, record: logging.LogRecord) -> str:
        out: Dict[str, Any] = {
            "ts": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            **_record_fields(record),
            **context(),
        }
        err = _exc_text(record)
        if err:
            out["err"] = err
        return json.dumps(out, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """
    ts | LEVEL | logger | contract=ERC20 selector=0xa9059cbb size=68 | message
    """

    def __init__(self, stream: Any = None, *, color: Optional[bool] = None) -> None:
        super().__init__()
        self._color = _is_tty(stream) if color is None else color

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        ordered = [k for k in DEFAULT_CONTEXT_KEYS if k in ctx]
        ordered += [k for k in ctx if k not in DEFAULT_CONTEXT_KEYS]
        pairs = [f"{k}={ctx[k]}" for k in ordered]
        pairs += [f"{k}={v}" for k, v in _record_fields(record).items() if k not in ctx]

        level = f"{record.levelname:<7}"
        if self._color:
            level = f"{_COLORS.get(record.levelno, '')}{level}{_RESET}"
        cols = [_timestamp(record), level, record.name]
        if pairs:
            cols.append(" ".join(pairs))
        cols.append(record.getMessage())

        line = " | ".join(cols)
        err = _exc_text(record)
        return f"{line}\n{err}" if err else line


# ──────────────────────────────────────────────────────────────────────────────
# Setup
# ──────────────────────────────────────────────────────────────────────────────


def _level(level: Any) -> int:
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.WARNING


def configure(
    *,
    json: Optional[bool] = None,
    level: Optional[Any] = None,
    stream: io.TextIOBase = sys.stderr,
) -> logging.Logger:
    """
    Replace the handlers of the `solcodec` logger with one stream handler.

    `json` and `level` default to SOLCODEC_LOG_FORMAT / SOLCODEC_LOG_LEVEL;
    without a configured format, JSON is used unless `stream` is a terminal.
    """
    cfg = load_config()
    lvl = _level(cfg.log_level if level is None else level)
    if json is None:
        json = cfg.log_format == "json" if cfg.log_format else not _is_tty(stream)

    handler = logging.StreamHandler(stream)
    handler.setLevel(lvl)
    handler.setFormatter(JSONFormatter() if json else TextFormatter(stream))

    logger = logging.getLogger(ROOT_LOGGER)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    logger.addHandler(handler)
    logger.setLevel(lvl)
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """A logger inside the `solcodec` namespace."""
    if not name or name == ROOT_LOGGER:
        return logging.getLogger(ROOT_LOGGER)
    if name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


logging.getLogger(ROOT_LOGGER).addHandler(logging.NullHandler())

__all__ = [
    "configure",
    "get_logger",
    "bind",
    "unbind",
    "bound",
    "context",
    "clear_context",
    "JSONFormatter",
    "TextFormatter",
]
