"""
Ledger operations.

Each operation is split into a ``validate_*`` function, which runs every
check against the state and returns a StateDelta without touching the
state, and a thin wrapper that applies the delta. Checks run in a fixed
order so that the reported error is deterministic.
"""

import logging
from collections import Counter
from typing import List, Optional, Sequence

from ..crypto.commitment import CommitmentScheme
from ..crypto.params import ParameterSet
from ..crypto.zkp.circuits import RECLAIM_CIRCUIT, TRANSFER_CIRCUIT, Circuit
from ..crypto.zkp.core import ZKPError
from ..crypto.zkp.verification import Groth16Verifier
from ..core.payload import MintData, PrivateTransferData, ReceiverData, ReclaimData, SenderData
from ..errors import (
    AlreadyInitialized,
    AlreadySpent,
    AmountZero,
    BalanceLow,
    CapacityExceeded,
    DuplicateCommitment,
    InvalidLedgerState,
    MintFail,
    NotInitialized,
    ParameterMismatch,
    PoolOverdrawn,
    ZKPFail,
    create_malformed_error,
)
from .events import Issued, LedgerEvent, Minted, PrivateTransferred, Reclaimed, Transferred
from .state import Ciphertext, LedgerState, StateDelta

logger = logging.getLogger(__name__)


def _require_initialized(state: LedgerState) -> None:
    if not state.initialized:
        raise NotInitialized("Ledger is not initialized")


def _check_u64(value: int, field: str) -> None:
    if not isinstance(value, int) or not 0 <= value < 2**64:
        raise create_malformed_error(field, "u64")


def _check_commitment_params(state: LedgerState, params: ParameterSet) -> None:
    if params.hash_params.checksum() != state.checksums.hash_param:
        raise ParameterMismatch("Hash parameters do not match the pinned checksum")
    if params.commit_params.checksum() != state.checksums.commit_param:
        raise ParameterMismatch("Commitment parameters do not match the pinned checksum")


def _check_senders(state: LedgerState, senders: Sequence[SenderData]) -> None:
    seen = set()
    for sender in senders:
        if state.is_spent(sender.nullifier) or sender.nullifier in seen:
            raise AlreadySpent(f"Nullifier {sender.nullifier.hex()} already spent")
        seen.add(sender.nullifier)

    for sender in senders:
        if not state.shards.check_root(sender.root):
            raise InvalidLedgerState(f"Unknown Merkle root {sender.root.to_hex()}")


def _check_receivers(state: LedgerState, receivers: Sequence[ReceiverData]) -> None:
    seen = set()
    for receiver in receivers:
        if state.shards.exists(receiver.cm) or receiver.cm in seen:
            raise DuplicateCommitment(f"Commitment {receiver.cm.to_hex()} already exists")
        seen.add(receiver.cm)

    per_shard = Counter(state.shards.shard_for(r.cm).index for r in receivers)
    for receiver in receivers:
        count = per_shard[state.shards.shard_for(receiver.cm).index]
        if not state.shards.can_accept(receiver.cm, count):
            raise CapacityExceeded(
                f"Shard {state.shards.shard_for(receiver.cm).index} is full"
            )


def _verify_payload(
    verifier: Groth16Verifier,
    circuit: Circuit,
    vk_bytes: bytes,
    senders: Sequence[SenderData],
    receivers: Sequence[ReceiverData],
    proof: bytes,
    amount: Optional[int] = None,
) -> None:
    try:
        inputs = circuit.public_inputs(
            sender_ks=[s.k for s in senders],
            receiver_cms=[r.cm for r in receivers],
            nullifiers=[s.nullifier for s in senders],
            roots=[s.root for s in senders],
            amount=amount,
        )
    except ZKPError as e:
        raise ZKPFail(str(e), cause=e) from e

    result = verifier.verify(vk_bytes, inputs, proof)
    if not result.is_valid:
        logger.debug("%s proof rejected: %s", circuit.name, result.error_message)
        raise ZKPFail(result.error_message or "Proof rejected")


def validate_init(
    state: LedgerState, params: ParameterSet, owner: str, total: int
) -> StateDelta:
    if state.initialized:
        raise AlreadyInitialized("Ledger is already initialized")
    _check_u64(total, "total")

    delta = StateDelta(checksums=params.checksums(), total_supply=total)
    if total:
        delta.credit(owner, total)
    delta.events.append(Issued(owner=owner, total=total))
    return delta


def validate_transfer_asset(
    state: LedgerState, origin: str, target: str, amount: int
) -> StateDelta:
    _require_initialized(state)
    _check_u64(amount, "amount")
    if amount == 0:
        raise AmountZero("Transfer amount must be non-zero")
    if state.balance(origin) < amount:
        raise BalanceLow(f"Balance of {origin} is lower than {amount}")

    delta = StateDelta()
    delta.debit(origin, amount)
    delta.credit(target, amount)
    delta.events.append(Transferred(sender=origin, target=target, amount=amount))
    return delta


def validate_mint(
    state: LedgerState, origin: str, data: MintData, params: ParameterSet
) -> StateDelta:
    _require_initialized(state)
    if data.amount == 0:
        raise AmountZero("Mint amount must be non-zero")
    _check_commitment_params(state, params)

    scheme = CommitmentScheme(params.commit_params)
    if scheme.commit_value(data.amount, data.k, data.s) != data.cm:
        raise MintFail("Commitment does not open to the minted amount")
    if state.shards.exists(data.cm):
        raise DuplicateCommitment(f"Commitment {data.cm.to_hex()} already exists")
    if not state.shards.can_accept(data.cm):
        raise CapacityExceeded(f"Shard {state.shards.shard_for(data.cm).index} is full")
    if state.balance(origin) < data.amount:
        raise BalanceLow(f"Balance of {origin} is lower than {data.amount}")

    delta = StateDelta(pool_change=data.amount, commitments=[data.cm])
    delta.debit(origin, data.amount)
    delta.events.append(Minted(who=origin, amount=data.amount))
    return delta


def validate_private_transfer(
    state: LedgerState,
    origin: str,
    data: PrivateTransferData,
    params: ParameterSet,
    verifier: Groth16Verifier,
) -> StateDelta:
    _require_initialized(state)
    _check_commitment_params(state, params)
    if params.checksums().transfer_key != state.checksums.transfer_key:
        raise ParameterMismatch("Transfer verifying key does not match the pinned checksum")

    _check_senders(state, data.senders)
    _check_receivers(state, data.receivers)
    _verify_payload(
        verifier, TRANSFER_CIRCUIT, params.transfer_vk, data.senders, data.receivers, data.proof
    )

    return StateDelta(
        nullifiers=[s.nullifier for s in data.senders],
        commitments=[r.cm for r in data.receivers],
        ciphertexts=[Ciphertext(r.sender_pk, r.cipher) for r in data.receivers],
        events=[PrivateTransferred(who=origin)],
    )


def validate_reclaim(
    state: LedgerState,
    origin: str,
    data: ReclaimData,
    params: ParameterSet,
    verifier: Groth16Verifier,
) -> StateDelta:
    _require_initialized(state)
    if data.amount == 0:
        raise AmountZero("Reclaim amount must be non-zero")
    _check_commitment_params(state, params)
    if params.checksums().reclaim_key != state.checksums.reclaim_key:
        raise ParameterMismatch("Reclaim verifying key does not match the pinned checksum")

    _check_senders(state, data.senders)
    _check_receivers(state, [data.receiver])
    if state.pool_balance < data.amount:
        raise PoolOverdrawn(f"Pool balance is lower than {data.amount}")
    _verify_payload(
        verifier,
        RECLAIM_CIRCUIT,
        params.reclaim_vk,
        data.senders,
        [data.receiver],
        data.proof,
        amount=data.amount,
    )

    delta = StateDelta(
        pool_change=-data.amount,
        nullifiers=[s.nullifier for s in data.senders],
        commitments=[data.receiver.cm],
        ciphertexts=[Ciphertext(data.receiver.sender_pk, data.receiver.cipher)],
        events=[Reclaimed(who=origin, amount=data.amount)],
    )
    delta.credit(origin, data.amount)
    return delta


def init(state: LedgerState, params: ParameterSet, owner: str, total: int) -> List[LedgerEvent]:
    """Initialize the ledger, pin the parameter checksums and issue total to owner."""
    return state.apply(validate_init(state, params, owner, total))


def transfer_asset(state: LedgerState, origin: str, target: str, amount: int) -> List[LedgerEvent]:
    """Move public tokens between accounts."""
    return state.apply(validate_transfer_asset(state, origin, target, amount))


def mint(state: LedgerState, origin: str, data: MintData, params: ParameterSet) -> List[LedgerEvent]:
    """Deposit a public amount into the pool as a new coin."""
    return state.apply(validate_mint(state, origin, data, params))


def private_transfer(
    state: LedgerState,
    origin: str,
    data: PrivateTransferData,
    params: ParameterSet,
    verifier: Groth16Verifier,
) -> List[LedgerEvent]:
    """Spend two coins into two new coins."""
    return state.apply(validate_private_transfer(state, origin, data, params, verifier))


def reclaim(
    state: LedgerState,
    origin: str,
    data: ReclaimData,
    params: ParameterSet,
    verifier: Groth16Verifier,
) -> List[LedgerEvent]:
    """Spend two coins into one change coin and a public amount."""
    return state.apply(validate_reclaim(state, origin, data, params, verifier))
