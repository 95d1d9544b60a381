"""
Cryptographic primitives for shieldpool.

This module provides the field and hash utilities, pinned parameters,
commitments, the PRF, the Merkle accumulator and the Diffie-Hellman value
channel.
"""

from .commitment import CommitmentScheme
from .dh import decrypt, encrypt, generate_keypair
from .hashing import FIELD_MODULUS, Blake2Hasher, FieldElement, Hash, pack_bytes
from .merkle import MembershipPath, MerkleAccumulator, verify_path
from .params import (
    COMMIT_PARAM_SEED,
    HASH_PARAM_SEED,
    ZKP_PARAM_SEED,
    Checksums,
    CommitmentParameters,
    HashParameters,
    ParameterSet,
)
from .prf import PseudoRandomFunction

__all__ = [
    "FIELD_MODULUS",
    "Hash",
    "FieldElement",
    "Blake2Hasher",
    "pack_bytes",
    "HASH_PARAM_SEED",
    "COMMIT_PARAM_SEED",
    "ZKP_PARAM_SEED",
    "HashParameters",
    "CommitmentParameters",
    "Checksums",
    "ParameterSet",
    "CommitmentScheme",
    "PseudoRandomFunction",
    "MembershipPath",
    "MerkleAccumulator",
    "verify_path",
    "generate_keypair",
    "encrypt",
    "decrypt",
]
