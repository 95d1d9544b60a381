"""
Unit tests for hashing and field utilities.
"""

import pytest

from shieldpool.crypto.hashing import (
    FIELD_MODULUS,
    Blake2Hasher,
    FieldElement,
    Hash,
    expect_length,
    pack_bytes,
)
from shieldpool.errors import MalformedEncoding


class TestHash:
    """Test the Hash class."""

    def test_hash_creation(self):
        """Test creating a hash from 32 bytes."""
        h = Hash(b"\x01" * 32)
        assert h.to_hex() == "01" * 32
        assert str(h) == "01" * 32

    def test_hash_wrong_length(self):
        """Test that non-32-byte digests are rejected."""
        with pytest.raises(ValueError, match="exactly 32 bytes"):
            Hash(b"\x01" * 31)

    def test_hash_from_hex(self):
        """Test hex round trip."""
        h = Hash.from_hex("ab" * 32)
        assert h.value == b"\xab" * 32
        assert Hash.zero().value == b"\x00" * 32


class TestFieldElement:
    """Test the FieldElement class."""

    def test_encoding_is_little_endian(self):
        """Test that the canonical encoding is 32 little-endian bytes."""
        element = FieldElement(1)
        assert element.to_bytes() == b"\x01" + b"\x00" * 31
        assert FieldElement.from_bytes(element.to_bytes()) == element

    def test_largest_element(self):
        """Test that modulus minus one decodes."""
        data = (FIELD_MODULUS - 1).to_bytes(32, "little")
        assert FieldElement.from_bytes(data).value == FIELD_MODULUS - 1

    def test_non_canonical_rejected(self):
        """Test that the modulus itself is not a canonical encoding."""
        data = FIELD_MODULUS.to_bytes(32, "little")
        with pytest.raises(MalformedEncoding, match="canonical field element"):
            FieldElement.from_bytes(data, field="cm")

    def test_wrong_length_rejected(self):
        """Test that short input is rejected with the field name."""
        with pytest.raises(MalformedEncoding) as exc_info:
            FieldElement.from_bytes(b"\x00" * 31, field="root")
        assert exc_info.value.field == "root"

    def test_out_of_range_constructor(self):
        """Test that values outside the field cannot be constructed."""
        with pytest.raises(ValueError, match="out of range"):
            FieldElement(FIELD_MODULUS)
        with pytest.raises(ValueError):
            FieldElement(-1)

    def test_reduce(self):
        """Test reducing integers and bytes into the field."""
        assert FieldElement.reduce(FIELD_MODULUS + 5).value == 5
        assert FieldElement.reduce(b"\x02").value == 2

    def test_ordering_and_hashing(self):
        """Test that elements order by value and work as dict keys."""
        assert FieldElement(1) < FieldElement(2)
        assert {FieldElement(3): "x"}[FieldElement(3)] == "x"


class TestBlake2Hasher:
    """Test the BLAKE2 helpers."""

    def test_keyed_hash_depends_on_key(self):
        """Test that different keys give different digests."""
        a = Blake2Hasher.keyed_hash(b"a" * 32, b"data")
        b = Blake2Hasher.keyed_hash(b"b" * 32, b"data")
        assert len(a) == 64
        assert a != b

    def test_hash_to_field_in_range(self):
        """Test that hash_to_field lands in the field."""
        element = Blake2Hasher.hash_to_field(b"k" * 32, b"payload")
        assert 0 <= element.value < FIELD_MODULUS

    def test_prf_and_checksum_sizes(self):
        """Test digest sizes of the PRF and checksum."""
        assert len(Blake2Hasher.prf(b"k" * 32, b"x" * 32)) == 32
        assert isinstance(Blake2Hasher.checksum(b"blob"), Hash)

    def test_derive_key_separates_labels(self):
        """Test that labels give independent keys."""
        seed = b"\x01" * 32
        assert Blake2Hasher.derive_key(seed, b"one") != Blake2Hasher.derive_key(seed, b"two")


class TestPacking:
    """Test byte packing into field elements."""

    def test_nullifier_packs_into_two_elements(self):
        """Test that 32 bytes pack into a 31-byte and a 1-byte chunk."""
        data = bytes(range(32))
        packed = pack_bytes(data)
        assert len(packed) == 2
        assert packed[0].value == int.from_bytes(data[:31], "little")
        assert packed[1].value == data[31]

    def test_all_ones_fit(self):
        """Test that the largest 31-byte chunk is below the modulus."""
        packed = pack_bytes(b"\xff" * 32)
        assert packed[0].value == 2**248 - 1

    def test_expect_length(self):
        """Test the length guard."""
        assert expect_length(bytearray(b"ab"), 2, "x") == b"ab"
        with pytest.raises(MalformedEncoding, match="'x'"):
            expect_length(b"abc", 2, "x")
