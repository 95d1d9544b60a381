"""
Key generation and proving.

The setup derives all trapdoor scalars deterministically from a seed, so the
same seed always yields the same verifying key blob. The prover knows the
trapdoor: it checks the circuit relation on the witness in the clear and
then produces a proof that satisfies the Groth16 pairing equation for the
witness's public inputs. It is meant for tests and development networks
where the proving key is held by the operator.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import msgpack
from py_ecc.optimized_bls12_381 import G1, G2, curve_order, multiply

from ..hashing import Blake2Hasher, FieldElement
from ..params import (
    COMMIT_PARAM_SEED,
    HASH_PARAM_SEED,
    ZKP_PARAM_SEED,
    CommitmentParameters,
    HashParameters,
    ParameterSet,
)
from .circuits import RECLAIM_CIRCUIT, TRANSFER_CIRCUIT, Circuit, CircuitWitness
from .core import ZKPError, ZKPStatus
from .verification import Proof, VerifyingKey

logger = logging.getLogger(__name__)

PROVING_KEY_MAGIC = "shieldpool-groth16-pk"
PROVING_KEY_VERSION = 1


def _derive_scalar(seed: bytes, label: str) -> int:
    counter = 0
    while True:
        digest = Blake2Hasher.keyed_hash(seed, f"{label}/{counter}".encode())
        scalar = int.from_bytes(digest, "little") % curve_order
        if scalar:
            return scalar
        counter += 1


def _random_scalar(rng: Optional[Callable[[int], bytes]]) -> int:
    if rng is None:
        return secrets.randbelow(curve_order - 1) + 1
    scalar = int.from_bytes(rng(64), "little") % curve_order
    return scalar or 1


@dataclass(frozen=True)
class ProvingKey:
    """Trapdoor of one circuit's setup."""

    circuit_name: str
    alpha: int
    beta: int
    gamma: int
    delta: int
    ic: Tuple[int, ...]

    def to_bytes(self) -> bytes:
        return msgpack.packb(
            {
                "magic": PROVING_KEY_MAGIC,
                "version": PROVING_KEY_VERSION,
                "circuit": self.circuit_name,
                "scalars": [
                    FieldElement(v).to_bytes()
                    for v in (self.alpha, self.beta, self.gamma, self.delta)
                ],
                "ic": [FieldElement(v).to_bytes() for v in self.ic],
            },
            use_bin_type=True,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> "ProvingKey":
        try:
            parsed = msgpack.unpackb(data, raw=False)
            if parsed["magic"] != PROVING_KEY_MAGIC or parsed["version"] != PROVING_KEY_VERSION:
                raise ValueError("not a proving key")
            alpha, beta, gamma, delta = (int.from_bytes(s, "little") for s in parsed["scalars"])
            ic = tuple(int.from_bytes(s, "little") for s in parsed["ic"])
            return cls(parsed["circuit"], alpha, beta, gamma, delta, ic)
        except (ValueError, KeyError, TypeError, msgpack.UnpackException) as e:
            raise ZKPError(f"Invalid proving key: {e}", ZKPStatus.MALFORMED_DATA) from e

    def verifying_key(self) -> VerifyingKey:
        """Derive the matching verifying key."""
        return VerifyingKey(
            alpha_g1=multiply(G1, self.alpha),
            beta_g2=multiply(G2, self.beta),
            gamma_g2=multiply(G2, self.gamma),
            delta_g2=multiply(G2, self.delta),
            ic=tuple(multiply(G1, t) for t in self.ic),
        )


def generate_keys(circuit: Circuit, seed: bytes = ZKP_PARAM_SEED) -> Tuple[ProvingKey, bytes]:
    """
    Run the deterministic setup for a circuit.

    Args:
        circuit: Circuit whose public input width sizes the key
        seed: 32-byte setup seed

    Returns:
        Tuple of (proving key, serialized verifying key)
    """
    label = f"shieldpool/groth16/{circuit.name}"
    proving_key = ProvingKey(
        circuit_name=circuit.name,
        alpha=_derive_scalar(seed, f"{label}/alpha"),
        beta=_derive_scalar(seed, f"{label}/beta"),
        gamma=_derive_scalar(seed, f"{label}/gamma"),
        delta=_derive_scalar(seed, f"{label}/delta"),
        ic=tuple(
            _derive_scalar(seed, f"{label}/ic/{i}")
            for i in range(circuit.num_public_inputs + 1)
        ),
    )
    logger.info(
        "Generated keys for circuit %s with %d public inputs",
        circuit.name,
        circuit.num_public_inputs,
    )
    return proving_key, proving_key.verifying_key().to_bytes()


class TrapdoorProver:
    """Produces proofs for one circuit using the setup trapdoor."""

    def __init__(
        self,
        circuit: Circuit,
        proving_key: ProvingKey,
        hash_params: HashParameters,
        commit_params: CommitmentParameters,
    ):
        if proving_key.circuit_name != circuit.name:
            raise ValueError(
                f"Proving key for {proving_key.circuit_name} used with {circuit.name}"
            )
        if len(proving_key.ic) != circuit.num_public_inputs + 1:
            raise ValueError("Proving key does not match circuit input width")

        self.circuit = circuit
        self.proving_key = proving_key
        self.hash_params = hash_params
        self.commit_params = commit_params

    def _prove_inputs(
        self,
        public_inputs: Sequence[FieldElement],
        rng: Optional[Callable[[int], bytes]] = None,
    ) -> bytes:
        """Prove a raw public input vector. No relation is checked."""
        pk = self.proving_key
        if len(public_inputs) != len(pk.ic) - 1:
            raise ZKPError("Wrong number of public inputs", ZKPStatus.INVALID_INPUT)

        r = curve_order
        acc = pk.ic[0]
        for x, t in zip(public_inputs, pk.ic[1:]):
            acc = (acc + x.value * t) % r

        a = _random_scalar(rng)
        b = _random_scalar(rng)
        c = (a * b - pk.alpha * pk.beta - pk.gamma * acc) * pow(pk.delta, -1, r) % r

        proof = Proof(a=multiply(G1, a), b=multiply(G2, b), c=multiply(G1, c))
        return proof.to_bytes()

    def prove(
        self,
        witness: CircuitWitness,
        rng: Optional[Callable[[int], bytes]] = None,
    ) -> bytes:
        """
        Prove a witness.

        Raises:
            ZKPError: With INVALID_INPUT status if the witness does not
                satisfy the circuit
        """
        try:
            self.circuit.check_relation(witness, self.hash_params, self.commit_params)
        except ZKPError:
            logger.warning("Refusing to prove unsatisfied %s witness", self.circuit.name)
            raise
        return self._prove_inputs(self.circuit.witness_public_inputs(witness), rng)


@dataclass(frozen=True)
class SetupOutput:
    """Parameters pinned by the ledger plus the matching proving keys."""

    parameters: ParameterSet
    transfer_pk: ProvingKey
    reclaim_pk: ProvingKey

    def transfer_prover(self) -> TrapdoorProver:
        return TrapdoorProver(
            TRANSFER_CIRCUIT,
            self.transfer_pk,
            self.parameters.hash_params,
            self.parameters.commit_params,
        )

    def reclaim_prover(self) -> TrapdoorProver:
        return TrapdoorProver(
            RECLAIM_CIRCUIT,
            self.reclaim_pk,
            self.parameters.hash_params,
            self.parameters.commit_params,
        )


_SETUP_CACHE: Dict[Tuple[bytes, bytes, bytes], SetupOutput] = {}


def setup(
    hash_seed: bytes = HASH_PARAM_SEED,
    commit_seed: bytes = COMMIT_PARAM_SEED,
    zkp_seed: bytes = ZKP_PARAM_SEED,
) -> SetupOutput:
    """
    Generate the full parameter set from seeds.

    For development and tests only. Anyone who knows ``zkp_seed`` can
    rebuild the trapdoor and prove arbitrary statements, and the default
    seed is public, so a deployment must take its verifying keys from a
    setup whose trapdoor was destroyed.

    Results are memoized per seed triple since key generation is slow.
    """
    cache_key = (hash_seed, commit_seed, zkp_seed)
    cached = _SETUP_CACHE.get(cache_key)
    if cached is not None:
        return cached

    if zkp_seed == ZKP_PARAM_SEED:
        logger.warning("Generating proving keys from the public default seed")

    transfer_pk, transfer_vk = generate_keys(TRANSFER_CIRCUIT, zkp_seed)
    reclaim_pk, reclaim_vk = generate_keys(RECLAIM_CIRCUIT, zkp_seed)
    output = SetupOutput(
        parameters=ParameterSet(
            hash_params=HashParameters.generate(hash_seed),
            commit_params=CommitmentParameters.generate(commit_seed),
            transfer_vk=transfer_vk,
            reclaim_vk=reclaim_vk,
        ),
        transfer_pk=transfer_pk,
        reclaim_pk=reclaim_pk,
    )
    _SETUP_CACHE[cache_key] = output
    return output


__all__ = [
    "ProvingKey",
    "TrapdoorProver",
    "SetupOutput",
    "generate_keys",
    "setup",
]
