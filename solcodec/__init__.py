"""
solcodec: Solidity ABI contract-interface codec.

Byte-exact encoding and decoding of typed values in the 32-byte-word
head/tail format, 4-byte function selectors, event topics, and EIP-712
typed-data digests.

    from solcodec import Function, parse_type

    transfer = Function("transfer", [("to", "address"), ("amount", "uint256")], ["bool"])
    calldata = transfer.encode_call([to, 10**18])

Errors derive from `solcodec.errors.CodecError`; untrusted input is rejected
with a `DecodeError` subclass.
"""

from __future__ import annotations

from .abi import *  # noqa: F401,F403
from .abi import __all__ as _all_abi
from .config import CFG, CodecConfig, load_config
from .errors import *  # noqa: F401,F403
from .errors import __all__ as _all_errors
from .hash_api import keccak256, keccak256_hex
from .version import __version__


def version() -> str:
    """Return the solcodec version string."""
    return __version__


__all__ = tuple(
    dict.fromkeys(
        (
            *_all_abi,
            *_all_errors,
            "CFG",
            "CodecConfig",
            "load_config",
            "keccak256",
            "keccak256_hex",
            "__version__",
            "version",
        )
    )
)
