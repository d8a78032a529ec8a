"""solcodec.version: package version.

Resolution order (first match wins):
  1) SOLCODEC_VERSION environment variable (exact value)
  2) Installed distribution metadata for 'solcodec'
  3) BASE_VERSION + '+dev'
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import metadata as importlib_metadata
from typing import Optional

# Bump whenever encoded outputs (selectors, topics, digests) could change.
BASE_VERSION = "0.1.0"


def _pkg_metadata_version(dist_name: str = "solcodec") -> Optional[str]:
    try:
        v = importlib_metadata.version(dist_name)
    except importlib_metadata.PackageNotFoundError:
        return None
    return v if v and v != "0.0.0" else None


@lru_cache(maxsize=1)
def compute_version() -> str:
    val = os.getenv("SOLCODEC_VERSION")
    if val:
        return val
    return _pkg_metadata_version() or f"{BASE_VERSION}+dev"


__version__ = compute_version()

__all__ = ["__version__", "BASE_VERSION", "compute_version"]
