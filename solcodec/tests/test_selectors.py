from __future__ import annotations

import pytest

from solcodec.abi.interface import ContractInterface
from solcodec.abi.selectors import (ERROR_STRING, PANIC, DecodedRevert,
                                    ErrorDef, Function, decode_revert,
                                    function_selector, function_signature)
from solcodec.abi.types import struct
from solcodec.errors import (InvalidTypeDescriptor, Overrun, RevertError,
                             UnknownSelector, ValueTypeMismatch)


def w(n: int) -> bytes:
    return n.to_bytes(32, "big")


ADDR = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"

TRANSFER = Function("transfer", [("to", "address"), ("amount", "uint256")], ["bool"])
BALANCE_OF = Function("balanceOf", [("owner", "address")], [("balance", "uint256")], "view")
APPROVE = Function("approve", [("spender", "address"), ("amount", "uint256")], ["bool"])


# ──────────────────────────────────────────────────────────────────────────────
# Selectors
# ──────────────────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "signature,selector",
    [
        ("transfer(address,uint256)", "a9059cbb"),
        ("balanceOf(address)", "70a08231"),
        ("approve(address,uint256)", "095ea7b3"),
        ("Error(string)", "08c379a0"),
        ("Panic(uint256)", "4e487b71"),
        ("currentEpoch()", "76671808"),
        ("deposit(uint256,uint64)", "7d552ea6"),
        ("deposit((uint256,uint256,uint256,uint256),uint64)", "771f6f44"),
        ("InvalidProofLength()", "4dc5f6a4"),
        ("OwnableUnauthorizedAccount(address)", "118cdaa7"),
        ("AddressEmptyCode(address)", "9996b315"),
    ],
)
def test_known_selectors(signature, selector):
    assert function_selector(signature).hex() == selector


def test_function_signature_expands_tuples():
    fn = Function(
        "computeStakeTableComm",
        ["(uint64,uint64,uint256,uint256,uint256,uint256,uint256,uint256)"],
        ["bytes32"],
        "pure",
    )
    assert fn.signature == "computeStakeTableComm((uint64,uint64,uint256,uint256,uint256,uint256,uint256,uint256))"
    assert fn.selector.hex() == "aa922732"


def test_signature_of_struct_uses_expanded_form():
    domain = struct("EvalDomain", [("logSize", "uint256"), ("size", "uint256"), ("elements", "uint256[11]")])
    sig = function_signature("evalDataGen", [domain, "uint256", "uint256[11]"])
    assert sig == "evalDataGen((uint256,uint256,uint256[11]),uint256,uint256[11])"
    assert function_selector(sig).hex() == "a197afc4"


def test_nested_tuple_signature():
    fn = Function("exitEscrowPeriod", ["(address,uint8,uint64,uint64,uint64,(uint256,uint256))"])
    assert fn.selector.hex() == "c84c7fa1"


def test_function_definition_errors():
    with pytest.raises(InvalidTypeDescriptor):
        Function("", ["uint256"])
    with pytest.raises(InvalidTypeDescriptor):
        Function("f", ["uint256"], state_mutability="constant")
    with pytest.raises(InvalidTypeDescriptor):
        Function("f", "uint256")


# ──────────────────────────────────────────────────────────────────────────────
# Calldata
# ──────────────────────────────────────────────────────────────────────────────


def test_encode_and_decode_transfer():
    data = TRANSFER.encode_call([ADDR, 10**18])
    assert data[:4].hex() == "a9059cbb"
    assert len(data) == 4 + 64
    assert data[4:36] == b"\x00" * 12 + bytes.fromhex(ADDR[2:])
    assert TRANSFER.decode_call(data) == (ADDR, 10**18)


def test_encode_call_accepts_mapping():
    assert TRANSFER.encode_call({"amount": 5, "to": ADDR}) == TRANSFER.encode_call([ADDR, 5])


def test_decode_call_wrong_selector_and_short_input():
    with pytest.raises(UnknownSelector) as ei:
        TRANSFER.decode_call(APPROVE.encode_call([ADDR, 1]))
    assert ei.value.selector.hex() == "095ea7b3"
    with pytest.raises(Overrun):
        TRANSFER.decode_call(b"\xa9\x05")


def test_return_roundtrip():
    assert BALANCE_OF.decode_return(BALANCE_OF.encode_return([42])) == (42,)
    assert BALANCE_OF.decode_return(w(42)) == (42,)


def test_min_data_length():
    assert Function("owner").min_data_length == 0
    assert TRANSFER.min_data_length == 64
    assert Function("f", ["bytes"]).min_data_length == 64
    assert Function("g", ["(uint256,bytes)"]).min_data_length == 32 + 32 + 64


# ──────────────────────────────────────────────────────────────────────────────
# Errors & reverts
# ──────────────────────────────────────────────────────────────────────────────


def test_builtin_revert_payloads():
    assert ERROR_STRING.selector.hex() == "08c379a0"
    assert PANIC.selector.hex() == "4e487b71"

    r = decode_revert(ERROR_STRING.encode(["boom"]))
    assert r.error == ERROR_STRING
    assert r.args == ("boom",)
    assert r.reason == "boom"

    p = decode_revert(PANIC.encode([0x11]))
    assert p.args == (0x11,)
    assert "overflow" in p.reason


def test_revert_without_data():
    r = decode_revert(b"")
    assert r == DecodedRevert(None)
    assert r.reason is None


def test_custom_error_roundtrip():
    err = ErrorDef("OwnableUnauthorizedAccount", [("account", "address")])
    assert err.selector.hex() == "118cdaa7"
    payload = err.encode([ADDR])
    assert err.decode(payload) == (ADDR,)

    from solcodec.abi.table import SortedTable

    table = SortedTable([(err.selector, err)], width=4)
    r = decode_revert(payload, table)
    assert r.error is err
    assert r.reason == "OwnableUnauthorizedAccount(address)"


def test_unknown_revert_selector():
    with pytest.raises(UnknownSelector):
        decode_revert(b"\xde\xad\xbe\xef")
    with pytest.raises(Overrun):
        decode_revert(b"\x08\xc3")


def test_revert_to_exception():
    exc = decode_revert(ERROR_STRING.encode(["nope"])).to_exception()
    assert isinstance(exc, RevertError)
    assert exc.reason == "nope"
    assert exc.to_dict()["code"] == "ABI/REVERT"
    assert "nope" in str(exc)


# ──────────────────────────────────────────────────────────────────────────────
# ContractInterface
# ──────────────────────────────────────────────────────────────────────────────


SAFE_3 = Function("safeTransferFrom", ["address", "address", "uint256"])
SAFE_4 = Function("safeTransferFrom", ["address", "address", "uint256", "bytes"])
UNAUTHORIZED = ErrorDef("OwnableUnauthorizedAccount", [("account", "address")])


@pytest.fixture
def erc() -> ContractInterface:
    return ContractInterface(
        functions=[TRANSFER, BALANCE_OF, APPROVE, SAFE_3, SAFE_4],
        errors=[UNAUTHORIZED],
        name="Token",
    )


def test_interface_dispatch(erc):
    call = erc.decode_call(TRANSFER.encode_call([ADDR, 7]))
    assert call.function is TRANSFER
    assert call.args == (ADDR, 7)
    assert call.as_dict() == {"to": ADDR, "amount": 7}


def test_interface_tables_are_sorted(erc):
    selectors = [f.selector for f in erc.functions]
    assert selectors == sorted(selectors)


def test_interface_unknown_selector(erc):
    with pytest.raises(UnknownSelector) as ei:
        erc.decode_call(b"\x00\x00\x00\x00" + w(1))
    assert ei.value.interface == "Token"
    assert ei.value.to_dict()["data"]["selector"] == "0x00000000"


def test_interface_function_lookup(erc):
    assert erc.function("transfer") is TRANSFER
    assert erc.function(bytes.fromhex("a9059cbb")) is TRANSFER
    assert erc.function("0xa9059cbb") is TRANSFER
    assert erc.function("safeTransferFrom(address,address,uint256,bytes)") is SAFE_4
    with pytest.raises(ValueTypeMismatch):
        erc.function("safeTransferFrom")
    with pytest.raises(ValueTypeMismatch):
        erc.function("mint")
    with pytest.raises(UnknownSelector):
        erc.function(b"\x01\x02\x03\x04")


def test_interface_encode_and_return(erc):
    assert erc.encode_call("approve", [ADDR, 1]) == APPROVE.encode_call([ADDR, 1])
    assert erc.decode_call_return("balanceOf", w(99)) == 99
    assert erc.decode_call_return(SAFE_3.selector, b"") == ()


def test_interface_min_data_length(erc):
    assert erc.min_data_length == 32
    assert ContractInterface().min_data_length == 0


def test_interface_revert(erc):
    r = erc.decode_revert(UNAUTHORIZED.encode([ADDR]))
    assert r.error is UNAUTHORIZED
    assert erc.decode_revert(ERROR_STRING.encode(["x"])).reason == "x"
    with pytest.raises(UnknownSelector) as ei:
        erc.decode_revert(b"\xde\xad\xbe\xef")
    assert ei.value.interface == "Token"


def test_duplicate_selector_rejected():
    with pytest.raises(InvalidTypeDescriptor):
        ContractInterface(functions=[TRANSFER, Function("transfer", ["address", "uint256"])])
