"""Pseudo-random function used for public keys and nullifiers."""

from .hashing import Blake2Hasher, expect_length

PUBLIC_KEY_INPUT = b"\x00" * 32


class PseudoRandomFunction:
    """Keyed BLAKE2s-256 PRF over 32-byte keys and inputs."""

    @staticmethod
    def evaluate(key: bytes, data: bytes) -> bytes:
        """
        Evaluate the PRF.

        Args:
            key: 32-byte key (a spending key)
            data: 32-byte input

        Returns:
            32-byte output

        Raises:
            MalformedEncoding: If key or input is not 32 bytes
        """
        key = expect_length(key, 32, "prf_key")
        data = expect_length(data, 32, "prf_input")
        return Blake2Hasher.prf(key, data)

    @classmethod
    def public_key(cls, sk: bytes) -> bytes:
        """``pk = PRF(sk, 0^32)``."""
        return cls.evaluate(sk, PUBLIC_KEY_INPUT)

    @classmethod
    def nullifier(cls, sk: bytes, rho: bytes) -> bytes:
        """``sn = PRF(sk, rho)``."""
        return cls.evaluate(sk, rho)
