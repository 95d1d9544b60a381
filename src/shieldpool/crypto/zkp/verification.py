"""
Groth16 verification over BLS12-381.

This module provides the proof and verifying key codecs, the prepared-key
cache and the verifier the ledger calls for private transfers and reclaims.
"""

import logging
import struct
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from py_ecc.optimized_bls12_381 import (
    FQ12,
    add,
    final_exponentiate,
    multiply,
    neg,
    pairing,
)

from ..hashing import Blake2Hasher, FieldElement, Hash
from .core import VerificationResult, ZKPConfig, ZKPError, ZKPStatus
from .curve import (
    G1_SIZE,
    G2_SIZE,
    Point,
    g1_from_bytes,
    g1_to_bytes,
    g2_from_bytes,
    g2_to_bytes,
)

logger = logging.getLogger(__name__)

PROOF_SIZE = 2 * G1_SIZE + G2_SIZE
VK_HEADER_SIZE = G1_SIZE + 3 * G2_SIZE + 4


@dataclass(frozen=True)
class Proof:
    """A Groth16 proof ``(A, B, C)``."""
    a: Point
    b: Point
    c: Point

    def to_bytes(self) -> bytes:
        """Serialize as ``A(48) ‖ B(96) ‖ C(48)``."""
        return g1_to_bytes(self.a) + g2_to_bytes(self.b) + g1_to_bytes(self.c)

    @classmethod
    def from_bytes(cls, data: bytes, subgroup_check: bool = True) -> "Proof":
        """Deserialize a proof, raising ZKPError on malformed data."""
        if len(data) != PROOF_SIZE:
            raise ZKPError(f"Proof must be {PROOF_SIZE} bytes", ZKPStatus.MALFORMED_DATA)
        return cls(
            a=g1_from_bytes(data[:G1_SIZE], subgroup_check),
            b=g2_from_bytes(data[G1_SIZE:G1_SIZE + G2_SIZE], subgroup_check),
            c=g1_from_bytes(data[G1_SIZE + G2_SIZE:], subgroup_check),
        )


@dataclass(frozen=True)
class VerifyingKey:
    """Groth16 verifying key."""
    alpha_g1: Point
    beta_g2: Point
    gamma_g2: Point
    delta_g2: Point
    ic: Tuple[Point, ...]

    @property
    def num_public_inputs(self) -> int:
        return len(self.ic) - 1

    def to_bytes(self) -> bytes:
        """Serialize as ``alpha ‖ beta ‖ gamma ‖ delta ‖ u32le n ‖ n × ic``."""
        parts = [
            g1_to_bytes(self.alpha_g1),
            g2_to_bytes(self.beta_g2),
            g2_to_bytes(self.gamma_g2),
            g2_to_bytes(self.delta_g2),
            struct.pack("<I", len(self.ic)),
        ]
        parts.extend(g1_to_bytes(point) for point in self.ic)
        return b"".join(parts)

    @classmethod
    def from_bytes(cls, data: bytes, subgroup_check: bool = True) -> "VerifyingKey":
        """Deserialize a verifying key, raising ZKPError on malformed data."""
        if len(data) < VK_HEADER_SIZE:
            raise ZKPError("Verifying key too short", ZKPStatus.MALFORMED_DATA)

        offset = 0
        alpha = g1_from_bytes(data[offset:offset + G1_SIZE], subgroup_check)
        offset += G1_SIZE
        g2_points = []
        for _ in range(3):
            g2_points.append(g2_from_bytes(data[offset:offset + G2_SIZE], subgroup_check))
            offset += G2_SIZE
        (count,) = struct.unpack_from("<I", data, offset)
        offset += 4

        if count == 0 or len(data) != offset + count * G1_SIZE:
            raise ZKPError("Verifying key length does not match its IC count",
                           ZKPStatus.MALFORMED_DATA)
        ic = tuple(
            g1_from_bytes(data[offset + i * G1_SIZE:offset + (i + 1) * G1_SIZE], subgroup_check)
            for i in range(count)
        )
        return cls(alpha, g2_points[0], g2_points[1], g2_points[2], ic)


class PreparedVerifyingKey:
    """Verifying key with the constant pairing factor precomputed."""

    def __init__(self, vk: VerifyingKey):
        self.vk = vk
        # Miller loop of e(alpha, beta); the final exponentiation is shared.
        self.alpha_beta = pairing(vk.beta_g2, vk.alpha_g1, final_exponentiate=False)

    def accumulate_inputs(self, public_inputs: Sequence[FieldElement]) -> Point:
        """``L = IC_0 + sum(x_i * IC_i)``."""
        acc = self.vk.ic[0]
        for x, point in zip(public_inputs, self.vk.ic[1:]):
            if x.value:
                acc = add(acc, multiply(point, x.value))
        return acc


@dataclass
class CacheEntry:
    """Entry in the prepared key cache."""
    key: PreparedVerifyingKey
    timestamp: float
    access_count: int = 0


class VerificationCache:
    """LRU cache of prepared verifying keys, keyed by key checksum."""

    def __init__(self, max_size: int = 8):
        self.max_size = max_size
        self._cache: "OrderedDict[Hash, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def get(self, key: Hash) -> Optional[PreparedVerifyingKey]:
        """Get a cached prepared key."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is not None:
                self._cache.move_to_end(key)
                entry.access_count += 1
                self._hits += 1
                return entry.key

            self._misses += 1
            return None

    def set(self, key: Hash, prepared: PreparedVerifyingKey) -> None:
        """Cache a prepared key."""
        with self._lock:
            while len(self._cache) >= self.max_size:
                self._cache.popitem(last=False)
            self._cache[key] = CacheEntry(prepared, time.time())

    def clear(self) -> None:
        """Clear the cache."""
        with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            total_requests = self._hits + self._misses
            hit_rate = self._hits / total_requests if total_requests > 0 else 0.0

            return {
                'size': len(self._cache),
                'max_size': self.max_size,
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': hit_rate,
            }


class Groth16Verifier:
    """Verifies Groth16 proofs against serialized verifying keys."""

    def __init__(self, config: Optional[ZKPConfig] = None):
        self.config = config or ZKPConfig()
        self.config.validate()
        self._cache = VerificationCache(self.config.cache_size)

    @property
    def cache(self) -> VerificationCache:
        return self._cache

    def prepare(self, vk_bytes: bytes) -> PreparedVerifyingKey:
        """Decode and prepare a verifying key, reusing the cached copy."""
        checksum = Blake2Hasher.checksum(vk_bytes)
        prepared = self._cache.get(checksum)
        if prepared is None:
            vk = VerifyingKey.from_bytes(vk_bytes, self.config.enable_subgroup_checks)
            prepared = PreparedVerifyingKey(vk)
            self._cache.set(checksum, prepared)
        return prepared

    def check(self, prepared: PreparedVerifyingKey, proof: Proof,
              public_inputs: Sequence[FieldElement]) -> bool:
        """
        Evaluate the Groth16 pairing equation.

        ``e(A, B) == e(alpha, beta) * e(L, gamma) * e(C, delta)``, checked as a
        product of Miller loops with one final exponentiation.
        """
        vk = prepared.vk
        if len(public_inputs) != vk.num_public_inputs:
            raise ZKPError(
                f"Expected {vk.num_public_inputs} public inputs, got {len(public_inputs)}",
                ZKPStatus.INVALID_INPUT,
            )

        acc = prepared.accumulate_inputs(public_inputs)
        product = prepared.alpha_beta
        product = product * pairing(proof.b, neg(proof.a), final_exponentiate=False)
        product = product * pairing(vk.gamma_g2, acc, final_exponentiate=False)
        product = product * pairing(vk.delta_g2, proof.c, final_exponentiate=False)
        return final_exponentiate(product) == FQ12.one()

    def verify(self, vk_bytes: bytes, public_inputs: List[FieldElement],
               proof_bytes: bytes) -> VerificationResult:
        """
        Verify a serialized proof.

        Args:
            vk_bytes: Serialized verifying key
            public_inputs: Public input vector in circuit layout order
            proof_bytes: Serialized proof

        Returns:
            A VerificationResult; ``is_valid`` is True only for an accepted
            proof. Undecodable keys or proofs yield MALFORMED_DATA.
        """
        start_time = time.time()

        if len(public_inputs) > self.config.max_public_inputs:
            return VerificationResult(
                status=ZKPStatus.INVALID_INPUT,
                error_message="Too many public inputs",
            )

        try:
            prepared = self.prepare(vk_bytes)
            proof = Proof.from_bytes(proof_bytes, self.config.enable_subgroup_checks)
            is_valid = self.check(prepared, proof, public_inputs)
        except ZKPError as e:
            logger.debug("Proof verification aborted: %s", e)
            return VerificationResult(
                status=e.status,
                error_message=str(e),
                verification_time=time.time() - start_time,
            )

        return VerificationResult(
            status=ZKPStatus.SUCCESS if is_valid else ZKPStatus.VERIFICATION_FAILED,
            is_valid=is_valid,
            error_message=None if is_valid else "Pairing check failed",
            verification_time=time.time() - start_time,
        )


__all__ = [
    "PROOF_SIZE",
    "Proof",
    "VerifyingKey",
    "PreparedVerifyingKey",
    "VerificationCache",
    "Groth16Verifier",
]
