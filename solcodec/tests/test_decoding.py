from __future__ import annotations

import pytest

from solcodec.abi.decoding import decode, decode_sequence, decode_word
from solcodec.abi.encoding import encode, encode_sequence
from solcodec.errors import (DecodeError, InvalidBool, InvalidLength,
                             InvalidOffset, InvalidPadding, InvalidUtf8,
                             Overrun)


def w(n: int) -> bytes:
    return n.to_bytes(32, "big")


ADDR = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
ADDR_RAW = bytes.fromhex(ADDR[2:])


# ──────────────────────────────────────────────────────────────────────────────
# Well-formed input
# ──────────────────────────────────────────────────────────────────────────────


def test_decode_uint_and_bytes():
    data = w(1) + w(0x40) + w(5) + b"\xaa" * 5 + b"\x00" * 27
    assert decode_sequence(data, ["uint256", "bytes"]) == (1, b"\xaa" * 5)


def test_decode_native_shapes():
    assert decode(encode(ADDR.lower(), "address"), "address") == ADDR
    assert decode(encode([1, 2], "uint256[2]"), "uint256[2]") == [1, 2]
    assert decode(encode((1, "x"), "(uint8,string)"), "(uint8,string)") == (1, "x")
    assert decode(encode(-5, "int24"), "int24") == -5


def test_decode_empty_values():
    assert decode(w(0x20) + w(0), "bytes") == b""
    assert decode(w(0x20) + w(0), "string") == ""
    assert decode(w(0x20) + w(0), "uint256[]") == []


def test_decode_accepts_hex_and_bytearray():
    assert decode("0x" + w(5).hex(), "uint256") == 5
    assert decode(bytearray(w(6)), "uint256") == 6


def test_decode_nested_roundtrip():
    typ = "(uint256,(bool,string)[],bytes32[2])"
    value = (7, [(True, "a"), (False, "bcd")], [b"\x01" * 32, b"\x02" * 32])
    assert decode(encode(value, typ), typ) == value


def test_trailing_bytes_are_ignored():
    assert decode(w(9) + b"\x00" * 7, "uint256") == 9


# ──────────────────────────────────────────────────────────────────────────────
# Checks applied in both modes
# ──────────────────────────────────────────────────────────────────────────────


@pytest.mark.parametrize("validate", [True, False])
def test_short_buffer_overruns(validate):
    with pytest.raises(Overrun):
        decode(b"\x00" * 31, "uint256", validate=validate)


@pytest.mark.parametrize("validate", [True, False])
def test_offset_past_end(validate):
    with pytest.raises(InvalidOffset):
        decode(w(0x1000), "bytes", validate=validate)


@pytest.mark.parametrize("validate", [True, False])
def test_huge_length(validate):
    with pytest.raises(InvalidLength):
        decode(w(0x20) + w(2**255), "bytes", validate=validate)


@pytest.mark.parametrize("validate", [True, False])
def test_offset_equal_to_buffer_length_overruns(validate):
    with pytest.raises(Overrun):
        decode(w(0x20), "bytes", validate=validate)


def test_array_footprint_exceeds_buffer():
    data = w(0x20) + w(3) + w(1)
    with pytest.raises(InvalidLength):
        decode(data, "uint256[]", validate=True)
    with pytest.raises(Overrun):
        decode(data, "uint256[]", validate=False)


def test_bytes_tail_past_end():
    data = w(0x20) + w(40) + b"\x01" * 32
    with pytest.raises(InvalidLength):
        decode(data, "bytes", validate=True)
    with pytest.raises(Overrun):
        decode(data, "bytes", validate=False)


def test_max_decode_bytes(env):
    env(SOLCODEC_MAX_DECODE_BYTES="1024")
    with pytest.raises(InvalidLength):
        decode(b"\x00" * 2048, "uint256")
    assert decode(b"\x00" * 1024, "uint256") == 0


def _shared_inner(n: int, m: int) -> bytes:
    # uint256[][] whose n outer offsets all point at one inner array of m words
    heads = b"".join(w(n * 32) for _ in range(n))
    inner = w(m) + b"".join(w(i) for i in range(m))
    return w(0x20) + w(n) + heads + inner


@pytest.mark.parametrize("validate", [True, False])
def test_shared_offsets_exhaust_work_budget(validate):
    with pytest.raises(InvalidLength):
        decode(_shared_inner(64, 64), "uint256[][]", validate=validate)


def test_shared_offsets_within_budget_still_decode():
    assert decode(_shared_inner(2, 3), "uint256[][]") == [[0, 1, 2], [0, 1, 2]]


def test_shared_bytes_tail_exhausts_work_budget():
    n = 32
    tail = w(1024) + b"\x07" * 1024
    data = w(0x20) + w(n) + b"".join(w(n * 32) for _ in range(n)) + tail
    with pytest.raises(InvalidLength):
        decode(data, "bytes[]")


def test_large_honest_nesting_fits_budget():
    value = [[[i, j] for j in range(16)] for i in range(16)]
    assert decode(encode(value, "uint256[2][][]"), "uint256[2][][]") == value


# ──────────────────────────────────────────────────────────────────────────────
# Checks applied only when validating
# ──────────────────────────────────────────────────────────────────────────────


def test_offset_into_head():
    data = w(0) + w(0x20) + w(0) + w(0)
    with pytest.raises(InvalidOffset):
        decode_sequence(data, ["uint256", "bytes"], validate=True)
    assert decode_sequence(data, ["uint256", "bytes"], validate=False) == (0, b"\x00" * 32)


def test_bool_word():
    with pytest.raises(InvalidBool):
        decode(w(2), "bool", validate=True)
    assert decode(w(2), "bool", validate=False) is True
    assert decode(w(0), "bool", validate=False) is False


def test_uint_dirty_high_bits():
    with pytest.raises(InvalidPadding):
        decode(w(0x1FF), "uint8", validate=True)
    assert decode(w(0x1FF), "uint8", validate=False) == 0xFF


def test_int_bad_sign_extension():
    # 0x80 in an int8 slot without the 0xff sign-extension bytes
    with pytest.raises(InvalidPadding):
        decode(w(0x80), "int8", validate=True)
    assert decode(w(0x80), "int8", validate=False) == -128
    assert decode(encode(-128, "int8"), "int8", validate=True) == -128


def test_address_dirty_high_bytes():
    data = b"\x01" + b"\x00" * 11 + ADDR_RAW
    with pytest.raises(InvalidPadding):
        decode(data, "address", validate=True)
    assert decode(data, "address", validate=False) == ADDR


def test_fixed_bytes_dirty_low_bytes():
    data = b"ab\x01" + b"\x00" * 29
    with pytest.raises(InvalidPadding):
        decode(data, "bytes2", validate=True)
    assert decode(data, "bytes2", validate=False) == b"ab"


def test_bytes_dirty_tail_padding():
    data = w(0x20) + w(5) + b"\xaa" * 5 + b"\x01" + b"\x00" * 26
    with pytest.raises(InvalidPadding):
        decode(data, "bytes", validate=True)
    assert decode(data, "bytes", validate=False) == b"\xaa" * 5


def test_bytes_truncated_tail_padding():
    data = w(0x20) + w(5) + b"\xaa" * 5
    with pytest.raises(InvalidLength):
        decode(data, "bytes", validate=True)
    assert decode(data, "bytes", validate=False) == b"\xaa" * 5


def test_invalid_utf8():
    data = w(0x20) + w(1) + b"\xff" + b"\x00" * 31
    with pytest.raises(InvalidUtf8):
        decode(data, "string", validate=True)
    assert decode(data, "string", validate=False) == "\ufffd"


# ──────────────────────────────────────────────────────────────────────────────
# Policy & error shape
# ──────────────────────────────────────────────────────────────────────────────


def test_validate_default_from_config(env):
    with pytest.raises(InvalidBool):
        decode(w(2), "bool")
    env(SOLCODEC_VALIDATE="false")
    assert decode(w(2), "bool") is True


def test_decode_errors_are_value_errors():
    with pytest.raises(ValueError):
        decode(b"", "uint256")
    try:
        decode(w(2), "bool", validate=True)
    except DecodeError as e:
        assert e.to_dict()["code"] == "ABI/INVALID_BOOL"


def test_decode_word():
    assert decode_word("uint16", w(513)) == 513
    assert decode_word("address", encode(ADDR, "address")) == ADDR
    with pytest.raises(InvalidLength):
        decode_word("uint256", b"\x00" * 31)


def test_sequence_roundtrip_with_many_dynamic_members():
    types = ["string", "uint8", "bytes", "address[]", "(string,bytes)"]
    values = ("hi", 3, b"\x00\x01", [ADDR], ("a", b"b"))
    assert decode_sequence(encode_sequence(types, values), types) == values
