"""
Property-based tests for the wire codecs.

Arbitrary bytes either decode or raise MalformedEncoding; no other
exception escapes a decoder.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from shieldpool.core import (
    MINT_SIZE,
    RECLAIM_SIZE,
    TRANSFER_SIZE,
    MintData,
    PrivateTransferData,
    ReclaimData,
)
from shieldpool.crypto.hashing import FIELD_MODULUS, FieldElement
from shieldpool.errors import MalformedEncoding


def decodes_or_rejects(decoder, data):
    try:
        decoder(data)
    except MalformedEncoding:
        pass


@composite
def near_size(draw, size):
    """Bytes of the expected size or a few bytes off, with a valid version byte."""
    length = draw(st.sampled_from([size - 1, size, size + 1]))
    body = draw(st.binary(min_size=length - 1, max_size=length - 1))
    return b"\x01" + body


class TestDecoderProperties:
    """Decoders never crash on arbitrary input."""

    @given(data=st.binary(max_size=700))
    @settings(max_examples=200)
    def test_arbitrary_bytes(self, data):
        """Random byte strings are decoded or rejected."""
        decodes_or_rejects(MintData.from_bytes, data)
        decodes_or_rejects(PrivateTransferData.from_bytes, data)
        decodes_or_rejects(ReclaimData.from_bytes, data)

    @given(data=near_size(MINT_SIZE))
    @settings(max_examples=200)
    def test_mint_near_size(self, data):
        """Mint payloads of roughly the right size are decoded or rejected."""
        decodes_or_rejects(MintData.from_bytes, data)

    @given(data=near_size(TRANSFER_SIZE))
    @settings(max_examples=100)
    def test_transfer_near_size(self, data):
        """Transfer payloads of roughly the right size are decoded or rejected."""
        decodes_or_rejects(PrivateTransferData.from_bytes, data)

    @given(data=near_size(RECLAIM_SIZE))
    @settings(max_examples=100)
    def test_reclaim_near_size(self, data):
        """Reclaim payloads of roughly the right size are decoded or rejected."""
        decodes_or_rejects(ReclaimData.from_bytes, data)


class TestFieldElementProperties:
    """Canonical field element encoding."""

    @given(value=st.integers(min_value=0, max_value=FIELD_MODULUS - 1))
    @settings(max_examples=200)
    def test_canonical_round_trip(self, value):
        """Every field element decodes from its own encoding."""
        element = FieldElement(value)
        assert FieldElement.from_bytes(element.to_bytes()) == element

    @given(value=st.integers(min_value=FIELD_MODULUS, max_value=2**256 - 1))
    @settings(max_examples=200)
    def test_unreduced_rejected(self, value):
        """Encodings at or above the modulus are rejected."""
        with pytest.raises(MalformedEncoding):
            FieldElement.from_bytes(value.to_bytes(32, "little"))
