"""
Zero-knowledge proof layer for shieldpool.

Groth16 over BLS12-381: circuits with explicit public input layouts, a
verifier with a prepared-key cache, and deterministic key generation with a
trapdoor prover for development use.

Security Considerations:
- Proofs and keys are untrusted bytes; every point is checked to be on the
  curve and in the prime-order subgroup
- Malformed proofs are reported as results, never as crashes
"""

from .circuits import (
    RECLAIM_CIRCUIT,
    TRANSFER_CIRCUIT,
    Circuit,
    CircuitWitness,
    InputKind,
    InputSlot,
    PublicInputLayout,
    ReceiverWitness,
    SenderWitness,
)
from .core import VerificationResult, ZKPConfig, ZKPError, ZKPStatus
from .generation import ProvingKey, SetupOutput, TrapdoorProver, generate_keys, setup
from .verification import (
    PROOF_SIZE,
    Groth16Verifier,
    PreparedVerifyingKey,
    Proof,
    VerificationCache,
    VerifyingKey,
)

__all__ = [
    # Core types
    "ZKPConfig",
    "ZKPError",
    "ZKPStatus",
    "VerificationResult",
    # Circuits
    "Circuit",
    "CircuitWitness",
    "SenderWitness",
    "ReceiverWitness",
    "InputKind",
    "InputSlot",
    "PublicInputLayout",
    "TRANSFER_CIRCUIT",
    "RECLAIM_CIRCUIT",
    # Verification
    "PROOF_SIZE",
    "Proof",
    "VerifyingKey",
    "PreparedVerifyingKey",
    "VerificationCache",
    "Groth16Verifier",
    # Generation
    "ProvingKey",
    "TrapdoorProver",
    "SetupOutput",
    "generate_keys",
    "setup",
]
