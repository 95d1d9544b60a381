"""
Hash functions and field utilities for shieldpool.

Implements the BLAKE2 based hashing used by the ledger together with the
scalar field of the BLS12-381 proof system that commitments, roots and
public inputs live in.
"""

import logging

logger = logging.getLogger(__name__)
import hashlib
from dataclasses import dataclass
from typing import List, Union

from ..errors import MalformedEncoding, create_malformed_error

# Order of the BLS12-381 scalar field.
FIELD_MODULUS = 0x73EDA753299D7D483339D80809A1D80553BDA402FFFE5BFEFFFFFFFF00000001
FIELD_ELEMENT_SIZE = 32
# Largest chunk that always fits below the modulus.
PACKING_CHUNK_SIZE = 31


@dataclass(frozen=True)
class Hash:
    """Immutable 32-byte digest with comparison and string representation."""

    value: bytes

    def __post_init__(self) -> None:
        if len(self.value) != 32:
            raise ValueError("Hash must be exactly 32 bytes")

    def __str__(self) -> str:
        return self.value.hex()

    def __repr__(self) -> str:
        return f"Hash('{self.value.hex()}')"

    def __lt__(self, other: "Hash") -> bool:
        return self.value < other.value

    @classmethod
    def from_hex(cls, hex_string: str) -> "Hash":
        """Create a Hash from a hexadecimal string."""
        return cls(bytes.fromhex(hex_string))

    @classmethod
    def zero(cls) -> "Hash":
        """Create a zero hash (all zeros)."""
        return cls(b"\x00" * 32)

    def to_hex(self) -> str:
        """Convert hash to hexadecimal string."""
        return self.value.hex()


@dataclass(frozen=True, order=True)
class FieldElement:
    """Element of the BLS12-381 scalar field.

    The canonical encoding is exactly 32 little-endian bytes of an integer
    strictly below the field modulus.
    """

    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or not 0 <= self.value < FIELD_MODULUS:
            raise ValueError("Field element out of range")

    def __repr__(self) -> str:
        return f"FieldElement(0x{self.value:064x})"

    @classmethod
    def from_bytes(cls, data: bytes, field: str = "field_element") -> "FieldElement":
        """Decode a canonical field element.

        Args:
            data: 32 little-endian bytes
            field: Name used in the error when decoding fails

        Returns:
            The decoded element

        Raises:
            MalformedEncoding: If the length is wrong or the value is not
                reduced modulo the field order
        """
        if not isinstance(data, (bytes, bytearray)) or len(data) != FIELD_ELEMENT_SIZE:
            raise create_malformed_error(field, "32 bytes")
        value = int.from_bytes(data, "little")
        if value >= FIELD_MODULUS:
            raise create_malformed_error(field, "canonical field element")
        return cls(value)

    @classmethod
    def reduce(cls, value: Union[int, bytes]) -> "FieldElement":
        """Map an integer or little-endian byte string into the field."""
        if isinstance(value, (bytes, bytearray)):
            value = int.from_bytes(value, "little")
        return cls(value % FIELD_MODULUS)

    @classmethod
    def zero(cls) -> "FieldElement":
        return cls(0)

    def to_bytes(self) -> bytes:
        """Canonical 32-byte little-endian encoding."""
        return self.value.to_bytes(FIELD_ELEMENT_SIZE, "little")

    def to_hex(self) -> str:
        return self.to_bytes().hex()


class Blake2Hasher:
    """BLAKE2 hashing utilities."""

    @staticmethod
    def keyed_hash(key: bytes, data: bytes) -> bytes:
        """
        Keyed BLAKE2b-512 of data.

        Args:
            key: Key of at most 64 bytes
            data: Data to hash

        Returns:
            64-byte digest
        """
        return hashlib.blake2b(data, key=key, digest_size=64).digest()

    @staticmethod
    def hash_to_field(key: bytes, data: bytes) -> FieldElement:
        """Hash data under a key and reduce the 512-bit digest into the field."""
        return FieldElement.reduce(Blake2Hasher.keyed_hash(key, data))

    @staticmethod
    def prf(key: bytes, data: bytes) -> bytes:
        """Keyed BLAKE2s-256."""
        return hashlib.blake2s(data, key=key, digest_size=32).digest()

    @staticmethod
    def derive_key(seed: bytes, label: bytes) -> bytes:
        """Derive a 32-byte key from a seed and a domain label."""
        return hashlib.blake2s(label, key=seed, digest_size=32).digest()

    @staticmethod
    def checksum(data: bytes) -> Hash:
        """BLAKE2s-256 checksum of a parameter or key blob."""
        return Hash(hashlib.blake2s(data, digest_size=32).digest())


def pack_bytes(data: bytes) -> List[FieldElement]:
    """
    Pack a byte string into field elements.

    The bytes are split into 31-byte chunks, each read little-endian, so
    every chunk fits below the modulus and no information is lost. A
    32-byte string therefore packs into two elements.
    """
    return [
        FieldElement(int.from_bytes(data[i : i + PACKING_CHUNK_SIZE], "little"))
        for i in range(0, len(data), PACKING_CHUNK_SIZE)
    ]


def expect_length(data: bytes, length: int, field: str) -> bytes:
    """Return data unchanged if it has the given length, else raise MalformedEncoding."""
    if not isinstance(data, (bytes, bytearray)) or len(data) != length:
        raise create_malformed_error(field, f"{length} bytes")
    return bytes(data)


__all__ = [
    "FIELD_MODULUS",
    "FIELD_ELEMENT_SIZE",
    "Hash",
    "FieldElement",
    "Blake2Hasher",
    "MalformedEncoding",
    "pack_bytes",
    "expect_length",
]
