# -*- coding: utf-8 -*-
"""
Property tests for the word codec: encode ↔ decode round-trip, byte-level
idempotence, size agreement, and agreement between the validating and the
fast decoding paths on well-formed input.
"""
from __future__ import annotations

import pytest
from hypothesis import given, settings, strategies as st

from solcodec.abi.decoding import decode, decode_sequence
from solcodec.abi.encoding import encode, encode_sequence, encoded_size
from solcodec.abi.events import encode_topic
from solcodec.abi.selectors import Function
from solcodec.abi.types import to_checksum_address
from solcodec.hash_api import keccak256

U256 = st.integers(min_value=0, max_value=2**256 - 1)
I64 = st.integers(min_value=-(2**63), max_value=2**63 - 1)
# Decoded addresses are EIP-55 strings, so round trips are drawn in that form.
ADDRESS = st.binary(min_size=20, max_size=20).map(to_checksum_address)

CASES = [
    ("uint256", U256),
    ("int64", I64),
    ("bool", st.booleans()),
    ("address", ADDRESS),
    ("bytes32", st.binary(min_size=32, max_size=32)),
    ("bytes", st.binary(max_size=100)),
    ("string", st.text(max_size=40)),
    ("uint8[]", st.lists(st.integers(0, 255), max_size=10)),
    ("string[2]", st.lists(st.text(max_size=10), min_size=2, max_size=2)),
    ("address[2]", st.lists(ADDRESS, min_size=2, max_size=2)),
    ("(uint256,bytes)[]", st.lists(st.tuples(U256, st.binary(max_size=40)), max_size=5)),
    ("(address,bytes)[]", st.lists(st.tuples(ADDRESS, st.binary(max_size=40)), max_size=5)),
    ("(bool,(int64,string[]))", st.tuples(st.booleans(), st.tuples(I64, st.lists(st.text(max_size=5), max_size=3)))),
    ("bytes[][]", st.lists(st.lists(st.binary(max_size=33), max_size=3), max_size=3)),
]


@pytest.mark.parametrize("typ,strategy", CASES, ids=[c[0] for c in CASES])
@settings(max_examples=60, deadline=None)
@given(data=st.data())
def test_roundtrip(typ, strategy, data):
    value = data.draw(strategy)
    enc = encode(value, typ)
    assert decode(enc, typ, validate=True) == value


@pytest.mark.parametrize("typ,strategy", CASES, ids=[c[0] for c in CASES])
@settings(max_examples=40, deadline=None)
@given(data=st.data())
def test_reencode_is_idempotent_and_sized(typ, strategy, data):
    value = data.draw(strategy)
    enc = encode(value, typ)
    assert len(enc) % 32 == 0
    assert encoded_size(typ, value) == len(enc)
    assert encode(decode(enc, typ), typ) == enc
    assert decode(enc, typ, validate=False) == decode(enc, typ, validate=True)


@settings(max_examples=60, deadline=None)
@given(addr=ADDRESS, amount=U256, memo=st.binary(max_size=64))
def test_calldata_roundtrip(addr, amount, memo):
    fn = Function("send", [("to", "address"), ("amount", "uint256"), ("memo", "bytes")])
    call = fn.encode_call([addr, amount, memo])
    to, got_amount, got_memo = fn.decode_call(call)
    assert to == addr
    assert (got_amount, got_memo) == (amount, memo)


@settings(max_examples=60, deadline=None)
@given(values=st.lists(U256, max_size=8))
def test_sequence_of_words_is_plain_concatenation(values):
    types = ["uint256"] * len(values)
    enc = encode_sequence(types, values)
    assert enc == b"".join(v.to_bytes(32, "big") for v in values)
    assert decode_sequence(enc, types) == tuple(values)


@settings(max_examples=60, deadline=None)
@given(raw=st.binary(max_size=100))
def test_dynamic_topic_is_hash_of_contents(raw):
    assert encode_topic("bytes", raw) == keccak256(raw)


@settings(max_examples=60, deadline=None)
@given(raw=st.binary(min_size=20, max_size=20))
def test_address_inputs_decode_to_checksum_form(raw):
    canonical = to_checksum_address(raw)
    for given_form in (raw, "0x" + raw.hex(), canonical):
        assert decode(encode(given_form, "address"), "address") == canonical
