"""
Unit tests for the wire payload codec.
"""

import pytest

from shieldpool.core import (
    MINT_SIZE,
    RECEIVER_SIZE,
    RECLAIM_SIZE,
    SENDER_SIZE,
    TRANSFER_SIZE,
    MintData,
    PrivateTransferData,
    ReceiverData,
    ReclaimData,
    SenderData,
    generate_mint_payload,
    make_coin,
)
from shieldpool.crypto.hashing import FIELD_MODULUS, FieldElement
from shieldpool.crypto.params import CommitmentParameters
from shieldpool.crypto.zkp import PROOF_SIZE
from shieldpool.errors import MalformedEncoding


def sender(n=1):
    return SenderData(k=FieldElement(n), nullifier=bytes([n]) * 32, root=FieldElement(n + 10))


def receiver(n=1):
    return ReceiverData(
        k=FieldElement(n), cm=FieldElement(n + 20), sender_pk=bytes([n]) * 32, cipher=bytes([n]) * 16
    )


class TestSizes:
    """Test fixed payload sizes."""

    def test_sizes(self):
        """Test the documented layout sizes."""
        assert MINT_SIZE == 105
        assert SENDER_SIZE == 96
        assert RECEIVER_SIZE == 112
        assert TRANSFER_SIZE == 609
        assert RECLAIM_SIZE == 505


class TestMintData:
    """Test mint payloads."""

    def test_round_trip(self):
        """Test encode and decode of a mint payload."""
        coin = make_coin(CommitmentParameters.generate(), b"\x01" * 32, 10)
        data = generate_mint_payload(coin)
        encoded = data.to_bytes()
        assert len(encoded) == MINT_SIZE
        assert encoded[0] == 1
        assert MintData.from_bytes(encoded) == data

    def test_unknown_version(self):
        """Test that other versions are rejected."""
        encoded = b"\x02" + b"\x00" * (MINT_SIZE - 1)
        with pytest.raises(MalformedEncoding, match="version"):
            MintData.from_bytes(encoded)

    def test_wrong_length(self):
        """Test that truncated payloads are rejected."""
        with pytest.raises(MalformedEncoding, match="105 bytes"):
            MintData.from_bytes(b"\x01" * 104)

    def test_non_canonical_commitment(self):
        """Test that an unreduced field element is rejected by name."""
        encoded = b"\x01" + (10).to_bytes(8, "little") + FIELD_MODULUS.to_bytes(32, "little") + b"\x00" * 64
        with pytest.raises(MalformedEncoding) as exc_info:
            MintData.from_bytes(encoded)
        assert exc_info.value.field == "mint.cm"

    def test_amount_must_fit(self):
        """Test that oversized amounts cannot be encoded."""
        data = MintData(amount=2**64, cm=FieldElement(1), k=FieldElement(2), s=FieldElement(3))
        with pytest.raises(MalformedEncoding):
            data.to_bytes()


class TestSlots:
    """Test sender and receiver slots."""

    def test_sender_round_trip(self):
        """Test sender slot layout."""
        encoded = sender().to_bytes()
        assert len(encoded) == SENDER_SIZE
        assert SenderData.from_bytes(encoded) == sender()

    def test_receiver_round_trip(self):
        """Test receiver slot layout."""
        encoded = receiver().to_bytes()
        assert len(encoded) == RECEIVER_SIZE
        assert ReceiverData.from_bytes(encoded) == receiver()

    def test_sender_bad_nullifier(self):
        """Test that nullifiers must be 32 bytes."""
        with pytest.raises(MalformedEncoding, match="nullifier"):
            SenderData(k=FieldElement(1), nullifier=b"\x00", root=FieldElement(2))

    def test_receiver_bad_cipher(self):
        """Test that ciphertexts must be 16 bytes."""
        with pytest.raises(MalformedEncoding, match="cipher"):
            ReceiverData(k=FieldElement(1), cm=FieldElement(2), sender_pk=b"\x00" * 32, cipher=b"")


class TestTransferPayloads:
    """Test private transfer and reclaim payloads."""

    def test_transfer_round_trip(self):
        """Test that a transfer payload decodes to the same structure."""
        data = PrivateTransferData(
            senders=(sender(1), sender(2)),
            receivers=(receiver(3), receiver(4)),
            proof=b"\x07" * PROOF_SIZE,
        )
        encoded = data.to_bytes()
        assert len(encoded) == TRANSFER_SIZE
        assert PrivateTransferData.from_bytes(encoded) == data

    def test_reclaim_round_trip(self):
        """Test that a reclaim payload carries its amount."""
        data = ReclaimData(
            amount=100,
            senders=(sender(1), sender(2)),
            receiver=receiver(3),
            proof=b"\x07" * PROOF_SIZE,
        )
        encoded = data.to_bytes()
        assert len(encoded) == RECLAIM_SIZE
        decoded = ReclaimData.from_bytes(encoded)
        assert decoded.amount == 100
        assert decoded == data

    def test_transfer_needs_two_senders(self):
        """Test structure checks."""
        with pytest.raises(MalformedEncoding, match="two senders"):
            PrivateTransferData(
                senders=(sender(1),),
                receivers=(receiver(3), receiver(4)),
                proof=b"\x00" * PROOF_SIZE,
            )

    def test_short_proof(self):
        """Test that the proof must be 192 bytes."""
        with pytest.raises(MalformedEncoding, match="proof"):
            ReclaimData(
                amount=1, senders=(sender(1), sender(2)), receiver=receiver(3), proof=b"\x00"
            )

    def test_trailing_bytes(self):
        """Test that extra bytes make a payload malformed."""
        data = PrivateTransferData(
            senders=(sender(1), sender(2)),
            receivers=(receiver(3), receiver(4)),
            proof=b"\x07" * PROOF_SIZE,
        )
        with pytest.raises(MalformedEncoding):
            PrivateTransferData.from_bytes(data.to_bytes() + b"\x00")
