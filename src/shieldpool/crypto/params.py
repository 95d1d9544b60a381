"""
Pinned public parameters.

Hash and commitment parameters are fixed-size versioned blobs generated
deterministically from seeds. The ledger stores only their checksums and
rejects any operation whose parameters hash differently.
"""

import logging

logger = logging.getLogger(__name__)
from dataclasses import dataclass
from typing import Any, Dict

from ..errors import MalformedEncoding, create_malformed_error
from .hashing import Blake2Hasher, Hash, expect_length

HASH_PARAM_SEED = b"\x01" * 32
COMMIT_PARAM_SEED = b"\x02" * 32
ZKP_PARAM_SEED = b"\x03" * 32

PARAMS_VERSION = 1
KEY_SIZE = 32


def _check_version(data: bytes, field: str) -> None:
    if data[0] != PARAMS_VERSION:
        raise create_malformed_error(field, f"version {PARAMS_VERSION}")


@dataclass(frozen=True)
class HashParameters:
    """Keys of the leaf hash and the two-to-one node compression."""

    leaf_key: bytes
    node_key: bytes

    SIZE = 1 + 2 * KEY_SIZE

    def __post_init__(self) -> None:
        if len(self.leaf_key) != KEY_SIZE or len(self.node_key) != KEY_SIZE:
            raise ValueError("Hash parameter keys must be 32 bytes")
        if self.leaf_key == self.node_key:
            raise ValueError("Leaf and node keys must differ")

    @classmethod
    def generate(cls, seed: bytes = HASH_PARAM_SEED) -> "HashParameters":
        """Derive hash parameters from a 32-byte seed."""
        return cls(
            leaf_key=Blake2Hasher.derive_key(seed, b"shieldpool/merkle-leaf"),
            node_key=Blake2Hasher.derive_key(seed, b"shieldpool/merkle-node"),
        )

    def to_bytes(self) -> bytes:
        return bytes([PARAMS_VERSION]) + self.leaf_key + self.node_key

    @classmethod
    def from_bytes(cls, data: bytes) -> "HashParameters":
        data = expect_length(data, cls.SIZE, "hash_parameters")
        _check_version(data, "hash_parameters")
        try:
            return cls(leaf_key=data[1:33], node_key=data[33:65])
        except ValueError as e:
            raise MalformedEncoding(str(e), field="hash_parameters") from e

    def checksum(self) -> Hash:
        return Blake2Hasher.checksum(self.to_bytes())


@dataclass(frozen=True)
class CommitmentParameters:
    """Key of the commitment scheme."""

    key: bytes

    SIZE = 1 + KEY_SIZE

    def __post_init__(self) -> None:
        if len(self.key) != KEY_SIZE:
            raise ValueError("Commitment key must be 32 bytes")

    @classmethod
    def generate(cls, seed: bytes = COMMIT_PARAM_SEED) -> "CommitmentParameters":
        """Derive commitment parameters from a 32-byte seed."""
        return cls(key=Blake2Hasher.derive_key(seed, b"shieldpool/commitment"))

    def to_bytes(self) -> bytes:
        return bytes([PARAMS_VERSION]) + self.key

    @classmethod
    def from_bytes(cls, data: bytes) -> "CommitmentParameters":
        data = expect_length(data, cls.SIZE, "commitment_parameters")
        _check_version(data, "commitment_parameters")
        return cls(key=data[1:])

    def checksum(self) -> Hash:
        return Blake2Hasher.checksum(self.to_bytes())


@dataclass(frozen=True)
class Checksums:
    """Pinned checksums of the four parameter blobs."""

    hash_param: Hash
    commit_param: Hash
    transfer_key: Hash
    reclaim_key: Hash

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash_param": self.hash_param.value,
            "commit_param": self.commit_param.value,
            "transfer_key": self.transfer_key.value,
            "reclaim_key": self.reclaim_key.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Checksums":
        return cls(
            hash_param=Hash(data["hash_param"]),
            commit_param=Hash(data["commit_param"]),
            transfer_key=Hash(data["transfer_key"]),
            reclaim_key=Hash(data["reclaim_key"]),
        )


@dataclass(frozen=True)
class ParameterSet:
    """Everything an operation is validated against.

    The verifying keys are carried as their serialized blobs; they are only
    decoded by the verifier.
    """

    hash_params: HashParameters
    commit_params: CommitmentParameters
    transfer_vk: bytes
    reclaim_vk: bytes

    def checksums(self) -> Checksums:
        return Checksums(
            hash_param=self.hash_params.checksum(),
            commit_param=self.commit_params.checksum(),
            transfer_key=Blake2Hasher.checksum(self.transfer_vk),
            reclaim_key=Blake2Hasher.checksum(self.reclaim_vk),
        )
