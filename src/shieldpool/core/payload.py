"""
Wire payloads.

Every payload is a fixed-layout byte string with a leading version byte.
Decoding checks the version, the exact length and that every field element
is canonical, raising MalformedEncoding otherwise; nothing is trusted before
it has been decoded here.

Layouts (sizes in bytes)::

    mint      version(1) amount(8) cm(32) k(32) s(32)                = 105
    sender    k(32) nullifier(32) root(32)                           =  96
    receiver  k(32) cm(32) sender_pk(32) cipher(16)                  = 112
    transfer  version(1) sender*2 receiver*2 proof(192)              = 609
    reclaim   version(1) amount(8) sender*2 receiver proof(192)      = 505
"""

import logging

logger = logging.getLogger(__name__)
import struct
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from ..crypto.hashing import FieldElement, expect_length
from ..crypto.merkle import MembershipPath
from ..crypto.zkp.circuits import CircuitWitness
from ..crypto.zkp.generation import TrapdoorProver
from ..crypto.zkp.verification import PROOF_SIZE
from ..errors import MalformedEncoding, create_malformed_error
from .coin import Coin, ProcessedReceiver

PAYLOAD_VERSION = 1

MINT_SIZE = 1 + 8 + 3 * 32
SENDER_SIZE = 3 * 32
RECEIVER_SIZE = 3 * 32 + 16
TRANSFER_SIZE = 1 + 2 * SENDER_SIZE + 2 * RECEIVER_SIZE + PROOF_SIZE
RECLAIM_SIZE = 1 + 8 + 2 * SENDER_SIZE + RECEIVER_SIZE + PROOF_SIZE


class _Reader:
    """Sequential reader over a fixed-size buffer."""

    def __init__(self, data: bytes, size: int, name: str):
        self.data = expect_length(data, size, name)
        self.offset = 0
        self.name = name

    def take(self, n: int) -> bytes:
        chunk = self.data[self.offset:self.offset + n]
        self.offset += n
        return chunk

    def version(self) -> None:
        version = self.take(1)[0]
        if version != PAYLOAD_VERSION:
            raise create_malformed_error(
                f"{self.name}.version", f"version {PAYLOAD_VERSION}",
                f"Unknown {self.name} payload version {version}",
            )

    def u64(self) -> int:
        (value,) = struct.unpack("<Q", self.take(8))
        return value

    def field_element(self, field: str) -> FieldElement:
        return FieldElement.from_bytes(self.take(32), field=f"{self.name}.{field}")


def _check_amount(amount: int) -> None:
    if not isinstance(amount, int) or not 0 <= amount < 2**64:
        raise create_malformed_error("amount", "u64")


@dataclass(frozen=True)
class MintData:
    """Deposit of a public amount into a new coin."""

    amount: int
    cm: FieldElement
    k: FieldElement
    s: FieldElement

    def to_bytes(self) -> bytes:
        _check_amount(self.amount)
        return (
            bytes([PAYLOAD_VERSION])
            + struct.pack("<Q", self.amount)
            + self.cm.to_bytes()
            + self.k.to_bytes()
            + self.s.to_bytes()
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "MintData":
        reader = _Reader(data, MINT_SIZE, "mint")
        reader.version()
        return cls(
            amount=reader.u64(),
            cm=reader.field_element("cm"),
            k=reader.field_element("k"),
            s=reader.field_element("s"),
        )


@dataclass(frozen=True)
class SenderData:
    """Public data of a spent coin."""

    k: FieldElement
    nullifier: bytes
    root: FieldElement

    def __post_init__(self) -> None:
        expect_length(self.nullifier, 32, "sender.nullifier")

    def to_bytes(self) -> bytes:
        return self.k.to_bytes() + self.nullifier + self.root.to_bytes()

    @classmethod
    def read(cls, reader: _Reader) -> "SenderData":
        return cls(
            k=reader.field_element("sender.k"),
            nullifier=reader.take(32),
            root=reader.field_element("sender.root"),
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "SenderData":
        return cls.read(_Reader(data, SENDER_SIZE, "sender"))


@dataclass(frozen=True)
class ReceiverData:
    """Public data of a created coin."""

    k: FieldElement
    cm: FieldElement
    sender_pk: bytes
    cipher: bytes

    def __post_init__(self) -> None:
        expect_length(self.sender_pk, 32, "receiver.sender_pk")
        expect_length(self.cipher, 16, "receiver.cipher")

    def to_bytes(self) -> bytes:
        return self.k.to_bytes() + self.cm.to_bytes() + self.sender_pk + self.cipher

    @classmethod
    def read(cls, reader: _Reader) -> "ReceiverData":
        return cls(
            k=reader.field_element("receiver.k"),
            cm=reader.field_element("receiver.cm"),
            sender_pk=reader.take(32),
            cipher=reader.take(16),
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "ReceiverData":
        return cls.read(_Reader(data, RECEIVER_SIZE, "receiver"))

    @classmethod
    def from_processed(cls, processed: ProcessedReceiver) -> "ReceiverData":
        return cls(
            k=processed.k,
            cm=processed.cm,
            sender_pk=processed.sender_pk,
            cipher=processed.cipher,
        )


@dataclass(frozen=True)
class PrivateTransferData:
    """Two coins in, two coins out."""

    senders: Tuple[SenderData, SenderData]
    receivers: Tuple[ReceiverData, ReceiverData]
    proof: bytes

    def __post_init__(self) -> None:
        if len(self.senders) != 2 or len(self.receivers) != 2:
            raise MalformedEncoding("Private transfer needs two senders and two receivers")
        expect_length(self.proof, PROOF_SIZE, "private_transfer.proof")

    def to_bytes(self) -> bytes:
        return b"".join(
            [bytes([PAYLOAD_VERSION])]
            + [sender.to_bytes() for sender in self.senders]
            + [receiver.to_bytes() for receiver in self.receivers]
            + [self.proof]
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "PrivateTransferData":
        reader = _Reader(data, TRANSFER_SIZE, "private_transfer")
        reader.version()
        senders = (SenderData.read(reader), SenderData.read(reader))
        receivers = (ReceiverData.read(reader), ReceiverData.read(reader))
        return cls(senders=senders, receivers=receivers, proof=reader.take(PROOF_SIZE))


@dataclass(frozen=True)
class ReclaimData:
    """Two coins in, one change coin out, the rest back to a public balance."""

    amount: int
    senders: Tuple[SenderData, SenderData]
    receiver: ReceiverData
    proof: bytes

    def __post_init__(self) -> None:
        if len(self.senders) != 2:
            raise MalformedEncoding("Reclaim needs two senders")
        expect_length(self.proof, PROOF_SIZE, "reclaim.proof")

    def to_bytes(self) -> bytes:
        _check_amount(self.amount)
        return b"".join(
            [bytes([PAYLOAD_VERSION]), struct.pack("<Q", self.amount)]
            + [sender.to_bytes() for sender in self.senders]
            + [self.receiver.to_bytes(), self.proof]
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "ReclaimData":
        reader = _Reader(data, RECLAIM_SIZE, "reclaim")
        reader.version()
        amount = reader.u64()
        senders = (SenderData.read(reader), SenderData.read(reader))
        receiver = ReceiverData.read(reader)
        return cls(amount=amount, senders=senders, receiver=receiver, proof=reader.take(PROOF_SIZE))


@dataclass(frozen=True)
class SenderMetadata:
    """A coin being spent with its membership path under a shard root."""

    coin: Coin
    path: MembershipPath
    root: FieldElement

    def to_sender_data(self) -> SenderData:
        return SenderData(k=self.coin.public.k, nullifier=self.coin.nullifier, root=self.root)


def generate_mint_payload(coin: Coin) -> MintData:
    """Mint payload depositing the coin's value."""
    return MintData(amount=coin.value, cm=coin.cm, k=coin.public.k, s=coin.public.s)


def generate_private_transfer_payload(
    prover: TrapdoorProver,
    senders: Sequence[SenderMetadata],
    receivers: Sequence[ProcessedReceiver],
    rng: Optional[Callable[[int], bytes]] = None,
) -> PrivateTransferData:
    """
    Build and prove a private transfer.

    Raises:
        ZKPError: If the senders and receivers do not form a valid transfer
    """
    witness = CircuitWitness(
        senders=tuple(s.coin.to_sender_witness(s.path, s.root) for s in senders),
        receivers=tuple(r.to_witness() for r in receivers),
    )
    proof = prover.prove(witness, rng)
    return PrivateTransferData(
        senders=tuple(s.to_sender_data() for s in senders),
        receivers=tuple(ReceiverData.from_processed(r) for r in receivers),
        proof=proof,
    )


def generate_reclaim_payload(
    prover: TrapdoorProver,
    senders: Sequence[SenderMetadata],
    receiver: ProcessedReceiver,
    amount: int,
    rng: Optional[Callable[[int], bytes]] = None,
) -> ReclaimData:
    """
    Build and prove a reclaim of amount with receiver as the change coin.

    Raises:
        ZKPError: If the values do not balance or a sender is invalid
    """
    witness = CircuitWitness(
        senders=tuple(s.coin.to_sender_witness(s.path, s.root) for s in senders),
        receivers=(receiver.to_witness(),),
        amount=amount,
    )
    proof = prover.prove(witness, rng)
    return ReclaimData(
        amount=amount,
        senders=tuple(s.to_sender_data() for s in senders),
        receiver=ReceiverData.from_processed(receiver),
        proof=proof,
    )
