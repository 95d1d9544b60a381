"""
Coin model.

A coin is a value-hiding UTXO. Its commitment ``cm`` is the only thing the
ledger stores; the opening lives with the owner as public info
``(pk, rho, s, r, k)`` and private info ``(value, sk, sn)``.

Receiving works in two halves. The receiver creates an address secret and
hands out ``(k, enc_pk)``; the sender picks ``s``, commits to the value and
encrypts it to ``enc_pk``. The receiver then rebuilds the full coin from the
processed receiver data.
"""

import logging

logger = logging.getLogger(__name__)
import secrets
from dataclasses import dataclass
from typing import Callable, Optional

from ..crypto import dh
from ..crypto.commitment import CommitmentScheme
from ..crypto.hashing import FieldElement
from ..crypto.merkle import MembershipPath
from ..crypto.params import CommitmentParameters
from ..crypto.prf import PseudoRandomFunction
from ..crypto.zkp.circuits import ReceiverWitness, SenderWitness

RandomSource = Callable[[int], bytes]


def _rng(rng: Optional[RandomSource]) -> RandomSource:
    return rng or secrets.token_bytes


def random_field_element(rng: Optional[RandomSource] = None) -> FieldElement:
    """Sample a field element from 64 random bytes."""
    return FieldElement.reduce(_rng(rng)(64))


@dataclass(frozen=True)
class CoinPublicInfo:
    """Opening data that is not secret on its own."""

    pk: bytes
    rho: bytes
    s: FieldElement
    r: FieldElement
    k: FieldElement


@dataclass(frozen=True)
class CoinPrivateInfo:
    """Value and spending secrets of a coin."""

    value: int
    sk: bytes
    sn: bytes


@dataclass(frozen=True)
class Coin:
    """A coin together with its full opening."""

    cm: FieldElement
    public: CoinPublicInfo
    private: CoinPrivateInfo

    @property
    def value(self) -> int:
        return self.private.value

    @property
    def nullifier(self) -> bytes:
        return self.private.sn

    def to_sender_witness(
        self, path: MembershipPath, root: FieldElement
    ) -> SenderWitness:
        """Witness for spending this coin under a shard root."""
        return SenderWitness(
            value=self.private.value,
            sk=self.private.sk,
            rho=self.public.rho,
            r=self.public.r,
            s=self.public.s,
            k=self.public.k,
            cm=self.cm,
            path=path,
            root=root,
        )


def make_coin(
    params: CommitmentParameters,
    sk: bytes,
    value: int,
    rng: Optional[RandomSource] = None,
) -> Coin:
    """
    Create a fresh coin owned by sk.

    Args:
        params: Commitment parameters
        sk: 32-byte spending key
        value: Amount in [0, 2**64)
        rng: Optional random source for rho, r and s

    Returns:
        The coin with its opening
    """
    rng = _rng(rng)
    scheme = CommitmentScheme(params)

    rho = rng(32)
    pk = PseudoRandomFunction.public_key(sk)
    sn = PseudoRandomFunction.nullifier(sk, rho)
    r = random_field_element(rng)
    k = scheme.commit_address(pk, rho, r)
    s = random_field_element(rng)
    cm = scheme.commit_value(value, k, s)

    return Coin(
        cm=cm,
        public=CoinPublicInfo(pk=pk, rho=rho, s=s, r=r, k=k),
        private=CoinPrivateInfo(value=value, sk=sk, sn=sn),
    )


@dataclass(frozen=True)
class ReceivingAddress:
    """What a receiver hands to a sender."""

    k: FieldElement
    enc_pk: bytes


@dataclass(frozen=True)
class AddressSecret:
    """Receiver-side secrets behind a receiving address."""

    sk: bytes
    rho: bytes
    r: FieldElement
    k: FieldElement
    enc_sk: bytes
    enc_pk: bytes

    @property
    def pk(self) -> bytes:
        return PseudoRandomFunction.public_key(self.sk)

    @property
    def address(self) -> ReceivingAddress:
        return ReceivingAddress(k=self.k, enc_pk=self.enc_pk)


def new_address(
    params: CommitmentParameters,
    sk: Optional[bytes] = None,
    rng: Optional[RandomSource] = None,
) -> AddressSecret:
    """Create a receiving address, with a fresh spending key unless one is given."""
    rng = _rng(rng)
    sk = sk if sk is not None else rng(32)
    rho = rng(32)
    r = random_field_element(rng)
    k = CommitmentScheme(params).commit_address(
        PseudoRandomFunction.public_key(sk), rho, r
    )
    enc_sk, enc_pk = dh.generate_keypair(rng)
    return AddressSecret(sk=sk, rho=rho, r=r, k=k, enc_sk=enc_sk, enc_pk=enc_pk)


@dataclass(frozen=True)
class ProcessedReceiver:
    """Sender-side output for one new coin.

    ``cm``, ``k``, ``sender_pk`` and ``cipher`` go on the ledger; ``s`` is
    passed to the receiver off-ledger.
    """

    value: int
    k: FieldElement
    s: FieldElement
    cm: FieldElement
    sender_pk: bytes
    cipher: bytes

    def to_witness(self) -> ReceiverWitness:
        return ReceiverWitness(value=self.value, k=self.k, s=self.s, cm=self.cm)


def prepare_receiver(
    params: CommitmentParameters,
    address: ReceivingAddress,
    value: int,
    rng: Optional[RandomSource] = None,
) -> ProcessedReceiver:
    """Commit to value for the receiver and encrypt the value to them."""
    rng = _rng(rng)
    s = random_field_element(rng)
    cm = CommitmentScheme(params).commit_value(value, address.k, s)
    sender_pk, cipher = dh.encrypt(address.enc_pk, value, rng)
    return ProcessedReceiver(
        value=value, k=address.k, s=s, cm=cm, sender_pk=sender_pk, cipher=cipher
    )


def receive_coin(
    params: CommitmentParameters,
    secret: AddressSecret,
    s: FieldElement,
    cm: FieldElement,
    sender_pk: bytes,
    cipher: bytes,
) -> Coin:
    """
    Rebuild a received coin from ledger data and the off-ledger ``s``.

    The value is recovered through the value channel and the commitment is
    recomputed before the coin is returned.

    Raises:
        DecryptionError: If the ciphertext was not made for this address
        ValueError: If the recovered opening does not match cm
    """
    value = dh.decrypt(cipher, sender_pk, secret.enc_sk)
    if CommitmentScheme(params).commit_value(value, secret.k, s) != cm:
        raise ValueError("Received coin does not open to its commitment")

    return Coin(
        cm=cm,
        public=CoinPublicInfo(pk=secret.pk, rho=secret.rho, s=s, r=secret.r, k=secret.k),
        private=CoinPrivateInfo(
            value=value,
            sk=secret.sk,
            sn=PseudoRandomFunction.nullifier(secret.sk, secret.rho),
        ),
    )
