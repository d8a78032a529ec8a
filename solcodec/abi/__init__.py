"""
solcodec.abi
============

Public ABI surface:
  • Type model (`WireType` and friends, `parse_type`, `struct`).
  • Standard head/tail and packed encoders, and the validating decoder.
  • Function selectors, calldata, custom errors and revert payloads.
  • Event topics and log decoding.
  • EIP-712 typed-data hashing.
  • `ContractInterface`, the sorted dispatch tables of one contract.

Everything here is pure-Python and deterministic.
"""

from __future__ import annotations

from .decoding import *  # noqa: F401,F403
from .decoding import __all__ as _all_decoding
from .eip712 import *  # noqa: F401,F403
from .eip712 import __all__ as _all_eip712
from .encoding import *  # noqa: F401,F403
from .encoding import __all__ as _all_encoding
from .events import *  # noqa: F401,F403
from .events import __all__ as _all_events
from .interface import *  # noqa: F401,F403
from .interface import __all__ as _all_interface
from .selectors import *  # noqa: F401,F403
from .selectors import __all__ as _all_selectors
from .table import SortedTable
from .types import *  # noqa: F401,F403
from .types import __all__ as _all_types

__all__ = tuple(
    dict.fromkeys(  # preserve order, dedupe
        (
            *_all_types,
            *_all_encoding,
            *_all_decoding,
            *_all_selectors,
            *_all_events,
            *_all_eip712,
            *_all_interface,
            "SortedTable",
        )
    )
)
