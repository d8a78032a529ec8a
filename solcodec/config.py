"""
solcodec.config: decode policy defaults and resource caps.

This module centralizes configuration for the codec. It has NO third-party
deps and is safe to import very early.

Each value comes from its SOLCODEC_* environment variable when set and
parsable, otherwise from the default below. Integers are clamped to a safe
range rather than rejected.

Variables (booleans accept 1/true/yes/on, anything else is false):
  - SOLCODEC_VALIDATE            (bool)   default: true
  - SOLCODEC_MAX_DECODE_BYTES    (int)    default: 16_777_216  (16 MiB)
  - SOLCODEC_MAX_TYPE_DEPTH      (int)    default: 32
  - SOLCODEC_LOG_LEVEL           (str)    default: WARNING
  - SOLCODEC_LOG_FORMAT          (str)    json | text, default: auto

Usage:
    from solcodec.config import CFG
    if CFG.validate_by_default: ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

# ----------------------------- helpers ---------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val in ("1", "true", "t", "yes", "y", "on")


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_choice(name: str, choices: tuple[str, ...]) -> Optional[str]:
    raw = (os.getenv(name) or "").strip().lower()
    return raw if raw in choices else None


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class CodecConfig:
    # Decode policy used when a caller passes validate=None
    validate_by_default: bool

    # Numeric caps
    max_decode_bytes: int
    max_type_depth: int

    # Logging
    log_level: str
    log_format: Optional[str]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "validate_by_default": self.validate_by_default,
            "max_decode_bytes": self.max_decode_bytes,
            "max_type_depth": self.max_type_depth,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


@lru_cache(maxsize=1)
def load_config() -> CodecConfig:
    """
    Build and cache a CodecConfig from environment + safe defaults.
    """
    return CodecConfig(
        validate_by_default=_env_bool("SOLCODEC_VALIDATE", True),
        max_decode_bytes=_env_int(
            "SOLCODEC_MAX_DECODE_BYTES", 16 * 1024 * 1024, min_v=1_024, max_v=1 << 30
        ),
        max_type_depth=_env_int("SOLCODEC_MAX_TYPE_DEPTH", 32, min_v=1, max_v=256),
        log_level=(os.getenv("SOLCODEC_LOG_LEVEL") or "WARNING").strip().upper(),
        log_format=_env_choice("SOLCODEC_LOG_FORMAT", ("json", "text")),
    )


# Snapshot taken at import. Codec modules call load_config() at call time so
# that tests can change the environment and clear the cache.
CFG: CodecConfig = load_config()

__all__ = ["CodecConfig", "load_config", "CFG"]
