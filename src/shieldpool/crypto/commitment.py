"""
Commitment scheme.

A commitment binds a payload to a field element under secret randomness:
keyed BLAKE2b-512 over ``randomness ‖ payload`` reduced into the scalar
field. Coins use it twice, once for the address commitment
``k = Commit(pk ‖ rho, r)`` and once for the value commitment
``cm = Commit(value_le64 ‖ k, s)``.
"""

import logging

logger = logging.getLogger(__name__)
from typing import Union

from ..errors import MalformedEncoding
from .hashing import Blake2Hasher, FieldElement
from .params import CommitmentParameters

FieldLike = Union[FieldElement, bytes]


def _as_field(value: FieldLike, field: str) -> FieldElement:
    if isinstance(value, FieldElement):
        return value
    return FieldElement.from_bytes(value, field=field)


class CommitmentScheme:
    """Keyed hash commitments over the BLS12-381 scalar field."""

    def __init__(self, params: CommitmentParameters):
        self.params = params

    def commit(self, payload: bytes, randomness: FieldLike) -> FieldElement:
        """
        Commit to a payload.

        Args:
            payload: Bytes being committed to
            randomness: Blinding field element, or its canonical encoding

        Returns:
            The commitment

        Raises:
            MalformedEncoding: If randomness is not a canonical field element
        """
        r = _as_field(randomness, "randomness")
        return Blake2Hasher.hash_to_field(self.params.key, r.to_bytes() + bytes(payload))

    def open(self, payload: bytes, randomness: FieldLike, output: FieldLike) -> bool:
        """Check that output is the commitment to payload under randomness.

        Arguments that do not decode to field elements never open.
        """
        try:
            r = _as_field(randomness, "randomness")
            expected = _as_field(output, "commitment")
        except MalformedEncoding:
            logger.debug("Commitment opening with undecodable field element")
            return False
        return self.commit(payload, r) == expected

    def commit_address(self, pk: bytes, rho: bytes, r: FieldLike) -> FieldElement:
        """``k = Commit(pk ‖ rho, r)``."""
        return self.commit(pk + rho, r)

    def commit_value(self, value: int, k: FieldLike, s: FieldLike) -> FieldElement:
        """``cm = Commit(value_le64 ‖ k, s)``."""
        return self.commit(value_payload(value, _as_field(k, "k")), s)


def value_payload(value: int, k: FieldElement) -> bytes:
    """Serialize the value commitment payload."""
    if not 0 <= value < 2**64:
        raise ValueError("value must fit in 64 bits")
    return value.to_bytes(8, "little") + k.to_bytes()
