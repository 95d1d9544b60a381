"""
Circuit definitions for private transfer and reclaim.

A circuit is described by how many coins it spends and creates, whether it
releases a public amount, and the ordered layout of its public inputs. The
ledger uses the layout to turn a payload into the verifier's input vector;
the prover uses the relation check to refuse witnesses that do not satisfy
the statement.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from ..commitment import CommitmentScheme
from ..hashing import FieldElement, pack_bytes
from ..merkle import MembershipPath, verify_path
from ..params import CommitmentParameters, HashParameters
from ..prf import PseudoRandomFunction
from .core import ZKPError, ZKPStatus

MAX_AMOUNT = 2**64 - 1


class InputKind(Enum):
    """How a named public value is laid out in the input vector."""

    FIELD = "field"
    PACKED_BYTES = "packed_bytes"
    AMOUNT = "amount"


@dataclass(frozen=True)
class InputSlot:
    """One named public value of a circuit."""

    name: str
    kind: InputKind

    @property
    def width(self) -> int:
        """Number of field elements the slot occupies."""
        return 2 if self.kind == InputKind.PACKED_BYTES else 1

    def encode(self, value: Any) -> List[FieldElement]:
        if self.kind == InputKind.FIELD:
            if not isinstance(value, FieldElement):
                raise ZKPError(f"{self.name} must be a field element", ZKPStatus.INVALID_INPUT)
            return [value]
        if self.kind == InputKind.PACKED_BYTES:
            if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
                raise ZKPError(f"{self.name} must be 32 bytes", ZKPStatus.INVALID_INPUT)
            return pack_bytes(bytes(value))
        if not isinstance(value, int) or not 0 <= value <= MAX_AMOUNT:
            raise ZKPError(f"{self.name} must be a u64 amount", ZKPStatus.INVALID_INPUT)
        return [FieldElement(value)]


@dataclass(frozen=True)
class PublicInputLayout:
    """Ordered public inputs of a circuit."""

    slots: Tuple[InputSlot, ...]

    @property
    def width(self) -> int:
        return sum(slot.width for slot in self.slots)

    @property
    def names(self) -> List[str]:
        return [slot.name for slot in self.slots]

    def assemble(self, values: Mapping[str, Any]) -> List[FieldElement]:
        """
        Build the public input vector.

        Args:
            values: Public value for every slot name

        Returns:
            Field elements in layout order

        Raises:
            ZKPError: If a slot is missing or has the wrong type
        """
        inputs: List[FieldElement] = []
        for slot in self.slots:
            if slot.name not in values:
                raise ZKPError(f"Missing public input {slot.name}", ZKPStatus.INVALID_INPUT)
            inputs.extend(slot.encode(values[slot.name]))
        return inputs


@dataclass(frozen=True)
class SenderWitness:
    """Private data of a coin being spent."""

    value: int
    sk: bytes
    rho: bytes
    r: FieldElement
    s: FieldElement
    k: FieldElement
    cm: FieldElement
    path: MembershipPath
    root: FieldElement

    @property
    def nullifier(self) -> bytes:
        return PseudoRandomFunction.nullifier(self.sk, self.rho)


@dataclass(frozen=True)
class ReceiverWitness:
    """Private data of a coin being created."""

    value: int
    k: FieldElement
    s: FieldElement
    cm: FieldElement


@dataclass(frozen=True)
class CircuitWitness:
    """Full assignment for one proof."""

    senders: Tuple[SenderWitness, ...]
    receivers: Tuple[ReceiverWitness, ...]
    amount: Optional[int] = None


def _build_layout(
    num_senders: int, num_receivers: int, public_amount: bool
) -> PublicInputLayout:
    slots = [InputSlot(f"sender_k_{i}", InputKind.FIELD) for i in range(1, num_senders + 1)]
    slots += [
        InputSlot(f"receiver_cm_{i}", InputKind.FIELD) for i in range(1, num_receivers + 1)
    ]
    slots += [
        InputSlot(f"sender_sn_{i}", InputKind.PACKED_BYTES)
        for i in range(1, num_senders + 1)
    ]
    slots += [
        InputSlot(f"sender_root_{i}", InputKind.FIELD) for i in range(1, num_senders + 1)
    ]
    if public_amount:
        slots.append(InputSlot("amount", InputKind.AMOUNT))
    return PublicInputLayout(tuple(slots))


class Circuit:
    """A spend-and-create statement with a fixed public input layout."""

    def __init__(
        self,
        name: str,
        num_senders: int,
        num_receivers: int,
        public_amount: bool = False,
    ):
        if num_senders <= 0 or num_receivers <= 0:
            raise ValueError("Circuit needs at least one sender and one receiver")

        self.name = name
        self.num_senders = num_senders
        self.num_receivers = num_receivers
        self.public_amount = public_amount
        self.layout = _build_layout(num_senders, num_receivers, public_amount)

    @property
    def num_public_inputs(self) -> int:
        return self.layout.width

    def statement(
        self,
        sender_ks: Sequence[FieldElement],
        receiver_cms: Sequence[FieldElement],
        nullifiers: Sequence[bytes],
        roots: Sequence[FieldElement],
        amount: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Name the public values of one proof."""
        if (
            len(sender_ks) != self.num_senders
            or len(nullifiers) != self.num_senders
            or len(roots) != self.num_senders
            or len(receiver_cms) != self.num_receivers
        ):
            raise ZKPError(f"Wrong number of coins for {self.name}", ZKPStatus.INVALID_INPUT)
        if self.public_amount and amount is None:
            raise ZKPError(f"{self.name} requires a public amount", ZKPStatus.INVALID_INPUT)

        values: Dict[str, Any] = {}
        for i in range(self.num_senders):
            values[f"sender_k_{i + 1}"] = sender_ks[i]
            values[f"sender_sn_{i + 1}"] = nullifiers[i]
            values[f"sender_root_{i + 1}"] = roots[i]
        for i in range(self.num_receivers):
            values[f"receiver_cm_{i + 1}"] = receiver_cms[i]
        if self.public_amount:
            values["amount"] = amount
        return values

    def public_inputs(self, **statement: Any) -> List[FieldElement]:
        return self.layout.assemble(self.statement(**statement))

    def witness_public_inputs(self, witness: CircuitWitness) -> List[FieldElement]:
        """Public inputs implied by a witness."""
        return self.public_inputs(
            sender_ks=[s.k for s in witness.senders],
            receiver_cms=[r.cm for r in witness.receivers],
            nullifiers=[s.nullifier for s in witness.senders],
            roots=[s.root for s in witness.senders],
            amount=witness.amount,
        )

    def check_relation(
        self,
        witness: CircuitWitness,
        hash_params: HashParameters,
        commit_params: CommitmentParameters,
    ) -> None:
        """
        Check the statement on a witness in the clear.

        For each sender: ``pk = PRF(sk, 0)``, ``k = Commit(pk ‖ rho, r)``,
        ``cm = Commit(v ‖ k, s)`` and ``cm`` is a member under ``root``. For
        each receiver: ``cm = Commit(v ‖ k, s)``. Input and output values
        balance, counting the public amount as an output.

        Raises:
            ZKPError: With INVALID_INPUT status naming the failed constraint
        """
        if len(witness.senders) != self.num_senders:
            raise ZKPError("Wrong number of senders", ZKPStatus.INVALID_INPUT)
        if len(witness.receivers) != self.num_receivers:
            raise ZKPError("Wrong number of receivers", ZKPStatus.INVALID_INPUT)

        scheme = CommitmentScheme(commit_params)

        for i, sender in enumerate(witness.senders, 1):
            if not 0 <= sender.value <= MAX_AMOUNT:
                raise ZKPError(f"Sender {i} value out of range", ZKPStatus.INVALID_INPUT)
            pk = PseudoRandomFunction.public_key(sender.sk)
            if scheme.commit_address(pk, sender.rho, sender.r) != sender.k:
                raise ZKPError(f"Sender {i} address commitment mismatch", ZKPStatus.INVALID_INPUT)
            if scheme.commit_value(sender.value, sender.k, sender.s) != sender.cm:
                raise ZKPError(f"Sender {i} value commitment mismatch", ZKPStatus.INVALID_INPUT)
            if not verify_path(hash_params, sender.cm, sender.path, sender.root):
                raise ZKPError(f"Sender {i} is not a member under its root", ZKPStatus.INVALID_INPUT)

        for i, receiver in enumerate(witness.receivers, 1):
            if not 0 <= receiver.value <= MAX_AMOUNT:
                raise ZKPError(f"Receiver {i} value out of range", ZKPStatus.INVALID_INPUT)
            if scheme.commit_value(receiver.value, receiver.k, receiver.s) != receiver.cm:
                raise ZKPError(f"Receiver {i} value commitment mismatch", ZKPStatus.INVALID_INPUT)

        amount = witness.amount or 0
        if self.public_amount and not 0 <= amount <= MAX_AMOUNT:
            raise ZKPError("Public amount out of range", ZKPStatus.INVALID_INPUT)
        inputs = sum(s.value for s in witness.senders)
        outputs = sum(r.value for r in witness.receivers) + amount
        if inputs != outputs:
            raise ZKPError("Input and output values do not balance", ZKPStatus.INVALID_INPUT)

    def get_circuit_info(self) -> Dict[str, Any]:
        """Get information about the circuit."""
        return {
            "name": self.name,
            "num_senders": self.num_senders,
            "num_receivers": self.num_receivers,
            "public_amount": self.public_amount,
            "public_inputs": self.layout.names,
            "num_public_inputs": self.num_public_inputs,
        }

    def __repr__(self) -> str:
        return f"Circuit({self.name!r}, inputs={self.num_public_inputs})"


TRANSFER_CIRCUIT = Circuit("private_transfer", num_senders=2, num_receivers=2)
RECLAIM_CIRCUIT = Circuit("reclaim", num_senders=2, num_receivers=1, public_amount=True)
