"""
Diffie-Hellman value channel.

A sender encrypts the value of a new coin to the receiver's static X25519
key with a fresh ephemeral key. The shared secret is expanded with
HKDF-SHA512/256 into an AES-256 key and the value is encrypted as a single
block ``value_le64 ‖ 0^8``. The zero padding lets the receiver detect a
wrong key.
"""

import logging

logger = logging.getLogger(__name__)
from typing import Callable, Optional, Tuple

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..errors import DecryptionError, ValidationError
from .hashing import expect_length

KEY_SIZE = 32
CIPHER_SIZE = 16
KDF_LABEL = b"shieldpool value channel v1"
MAX_VALUE = 2**64 - 1

RandomSource = Callable[[int], bytes]


def _private_key(rng: Optional[RandomSource]) -> X25519PrivateKey:
    if rng is None:
        return X25519PrivateKey.generate()
    return X25519PrivateKey.from_private_bytes(expect_length(rng(KEY_SIZE), KEY_SIZE, "rng"))


def _raw_private(key: X25519PrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _raw_public(key: X25519PrivateKey) -> bytes:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def _derive_cipher(shared_secret: bytes) -> Cipher:
    key = HKDF(
        algorithm=hashes.SHA512_256(),
        length=32,
        salt=None,
        info=KDF_LABEL,
    ).derive(shared_secret)
    return Cipher(algorithms.AES(key), modes.ECB())


def generate_keypair(rng: Optional[RandomSource] = None) -> Tuple[bytes, bytes]:
    """
    Generate a static X25519 key pair.

    Args:
        rng: Optional callable returning n random bytes; the OS generator
            is used when omitted

    Returns:
        Tuple of (secret key, public key), 32 bytes each
    """
    key = _private_key(rng)
    return _raw_private(key), _raw_public(key)


def encrypt(
    receiver_pk: bytes, value: int, rng: Optional[RandomSource] = None
) -> Tuple[bytes, bytes]:
    """
    Encrypt a coin value to a receiver.

    Args:
        receiver_pk: Receiver's 32-byte X25519 public key
        value: Amount in [0, 2**64)
        rng: Optional random source for the ephemeral key

    Returns:
        Tuple of (sender ephemeral public key, 16-byte ciphertext)
    """
    if not isinstance(value, int) or not 0 <= value <= MAX_VALUE:
        raise ValidationError(
            "Value must fit in 64 bits", field="value", value=value, expected="u64"
        )
    peer = X25519PublicKey.from_public_bytes(
        expect_length(receiver_pk, KEY_SIZE, "receiver_pk")
    )

    ephemeral = _private_key(rng)
    try:
        shared = ephemeral.exchange(peer)
    except ValueError as e:
        raise ValidationError("Receiver public key is a low-order point", field="receiver_pk") from e

    encryptor = _derive_cipher(shared).encryptor()
    block = value.to_bytes(8, "little") + b"\x00" * 8
    cipher = encryptor.update(block) + encryptor.finalize()
    return _raw_public(ephemeral), cipher


def decrypt(cipher: bytes, sender_pk: bytes, receiver_sk: bytes) -> int:
    """
    Recover a coin value.

    Args:
        cipher: 16-byte ciphertext
        sender_pk: Sender's ephemeral public key
        receiver_sk: Receiver's static secret key

    Returns:
        The decrypted value

    Raises:
        DecryptionError: If the keys do not match the ciphertext
        MalformedEncoding: If any argument has the wrong length
    """
    cipher = expect_length(cipher, CIPHER_SIZE, "cipher")
    key = X25519PrivateKey.from_private_bytes(
        expect_length(receiver_sk, KEY_SIZE, "receiver_sk")
    )
    peer = X25519PublicKey.from_public_bytes(expect_length(sender_pk, KEY_SIZE, "sender_pk"))

    try:
        shared = key.exchange(peer)
    except ValueError as e:
        raise DecryptionError("Key agreement failed", algorithm="X25519", cause=e) from e

    decryptor = _derive_cipher(shared).decryptor()
    block = decryptor.update(cipher) + decryptor.finalize()
    if block[8:] != b"\x00" * 8:
        raise DecryptionError("Ciphertext padding mismatch", algorithm="AES-256-ECB")
    return int.from_bytes(block[:8], "little")
