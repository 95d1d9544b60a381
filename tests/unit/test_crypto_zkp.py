"""
Unit tests for the Groth16 layer: point codecs, keys, proofs and the verifier.
"""

import pytest
from py_ecc.optimized_bls12_381 import G1, G2, multiply

from shieldpool.crypto.hashing import FieldElement
from shieldpool.crypto.zkp import (
    PROOF_SIZE,
    RECLAIM_CIRCUIT,
    TRANSFER_CIRCUIT,
    Groth16Verifier,
    Proof,
    ProvingKey,
    VerifyingKey,
    ZKPConfig,
    ZKPError,
    ZKPStatus,
    generate_keys,
    setup,
)
from shieldpool.crypto.zkp.curve import (
    G1_SIZE,
    G2_SIZE,
    g1_from_bytes,
    g1_to_bytes,
    g2_from_bytes,
    g2_to_bytes,
)


def inputs(count, start=1):
    return [FieldElement(start + i) for i in range(count)]


class TestCurveEncoding:
    """Test compressed point codecs."""

    def test_g1_round_trip(self):
        """Test G1 compression round trip."""
        point = multiply(G1, 12345)
        data = g1_to_bytes(point)
        assert len(data) == G1_SIZE
        assert g1_to_bytes(g1_from_bytes(data)) == data

    def test_g2_round_trip(self):
        """Test G2 compression round trip."""
        point = multiply(G2, 6789)
        data = g2_to_bytes(point)
        assert len(data) == G2_SIZE
        assert g2_to_bytes(g2_from_bytes(data)) == data

    def test_g1_garbage_rejected(self):
        """Test that random bytes do not decode as a point."""
        with pytest.raises(ZKPError) as exc_info:
            g1_from_bytes(b"\xff" * G1_SIZE)
        assert exc_info.value.status == ZKPStatus.MALFORMED_DATA

    def test_wrong_sizes(self):
        """Test length checks."""
        with pytest.raises(ZKPError, match="48 bytes"):
            g1_from_bytes(b"\x00" * 47)
        with pytest.raises(ZKPError, match="96 bytes"):
            g2_from_bytes(b"\x00" * 95)


class TestKeys:
    """Test key generation and codecs."""

    def test_generation_is_deterministic(self):
        """Test that the same seed yields the same verifying key blob."""
        _, vk_a = generate_keys(TRANSFER_CIRCUIT, b"\x03" * 32)
        _, vk_b = generate_keys(TRANSFER_CIRCUIT, b"\x03" * 32)
        assert vk_a == vk_b

    def test_circuits_get_distinct_keys(self):
        """Test that transfer and reclaim keys differ."""
        params = setup().parameters
        assert params.transfer_vk != params.reclaim_vk

    def test_verifying_key_layout(self):
        """Test the verifying key blob size and IC count."""
        vk_bytes = setup().parameters.transfer_vk
        vk = VerifyingKey.from_bytes(vk_bytes)
        assert vk.num_public_inputs == TRANSFER_CIRCUIT.num_public_inputs == 10
        assert len(vk_bytes) == G1_SIZE + 3 * G2_SIZE + 4 + 11 * G1_SIZE
        assert vk.to_bytes() == vk_bytes

    def test_verifying_key_truncated(self):
        """Test that a truncated key is rejected."""
        vk_bytes = setup().parameters.transfer_vk
        with pytest.raises(ZKPError, match="IC count"):
            VerifyingKey.from_bytes(vk_bytes[:-1])
        with pytest.raises(ZKPError, match="too short"):
            VerifyingKey.from_bytes(vk_bytes[:100])

    def test_proving_key_round_trip(self):
        """Test msgpack proving key encoding."""
        pk = setup().reclaim_pk
        assert ProvingKey.from_bytes(pk.to_bytes()) == pk

    def test_proving_key_garbage(self):
        """Test that garbage is not a proving key."""
        with pytest.raises(ZKPError) as exc_info:
            ProvingKey.from_bytes(b"\x93\x01\x02\x03")
        assert exc_info.value.status == ZKPStatus.MALFORMED_DATA


class TestGroth16Verifier:
    """Test proof verification with trapdoor proofs over raw inputs."""

    @pytest.fixture
    def verifier(self):
        return Groth16Verifier(ZKPConfig(cache_size=2))

    def test_valid_proof(self, verifier):
        """Test that a proof for the given inputs verifies."""
        output = setup()
        public = inputs(10)
        proof = output.transfer_prover()._prove_inputs(public)
        assert len(proof) == PROOF_SIZE
        result = verifier.verify(output.parameters.transfer_vk, public, proof)
        assert result.is_valid
        assert result.is_success

    def test_wrong_inputs(self, verifier):
        """Test that the proof is bound to its public inputs."""
        output = setup()
        proof = output.transfer_prover()._prove_inputs(inputs(10))
        result = verifier.verify(output.parameters.transfer_vk, inputs(10, start=2), proof)
        assert not result.is_valid
        assert result.status == ZKPStatus.VERIFICATION_FAILED

    def test_wrong_key(self, verifier):
        """Test that a transfer proof does not verify under the reclaim key."""
        output = setup()
        public = inputs(10)
        proof = output.transfer_prover()._prove_inputs(public)
        result = verifier.verify(output.parameters.reclaim_vk, public, proof)
        assert not result.is_valid

    def test_wrong_input_count(self, verifier):
        """Test that an input vector of the wrong width is reported."""
        output = setup()
        proof = output.transfer_prover()._prove_inputs(inputs(10))
        result = verifier.verify(output.parameters.transfer_vk, inputs(9), proof)
        assert result.status == ZKPStatus.INVALID_INPUT

    def test_malformed_proof(self, verifier):
        """Test that undecodable proofs are results, not exceptions."""
        output = setup()
        result = verifier.verify(output.parameters.transfer_vk, inputs(10), b"\x00" * 10)
        assert result.status == ZKPStatus.MALFORMED_DATA
        assert not result.is_valid

    def test_prepared_key_cache(self, verifier):
        """Test that prepared keys are reused."""
        vk_bytes = setup().parameters.reclaim_vk
        first = verifier.prepare(vk_bytes)
        assert verifier.prepare(vk_bytes) is first
        stats = verifier.cache.get_stats()
        assert stats["hits"] >= 1

    def test_proof_codec(self):
        """Test proof serialization round trip."""
        proof_bytes = setup().reclaim_prover()._prove_inputs(inputs(RECLAIM_CIRCUIT.num_public_inputs))
        assert Proof.from_bytes(proof_bytes).to_bytes() == proof_bytes
