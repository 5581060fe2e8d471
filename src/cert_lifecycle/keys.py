"""RSA key pair and serial number generation."""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from cert_lifecycle.errors import CryptoProviderError

logger = logging.getLogger(__name__)

RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537
SERIAL_NUMBER_BITS = 128


@dataclass(frozen=True)
class KeyPair:
    """An RSA key pair.

    Parameters
    ----------
    private_key:
        The RSA private key; the public half is derived from it.
    """

    private_key: RSAPrivateKey

    @property
    def public_key(self) -> RSAPublicKey:
        return self.private_key.public_key()

    @property
    def modulus(self) -> int:
        """Public modulus ``n``, handy for comparing key material."""
        return self.public_key.public_numbers().n

    @property
    def key_size(self) -> int:
        return self.private_key.key_size

    def private_key_pem(self) -> bytes:
        """Return PEM-encoded private key bytes (unencrypted)."""
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def public_key_pem(self) -> bytes:
        """Return PEM-encoded SubjectPublicKeyInfo bytes."""
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )


def generate_key_pair(
    key_size: int = RSA_KEY_SIZE,
    public_exponent: int = RSA_PUBLIC_EXPONENT,
) -> KeyPair:
    """Generate a fresh RSA key pair from the OS secure random source.

    Raises
    ------
    ValueError
        If ``key_size`` is less than 2048.
    CryptoProviderError
        If the backend cannot produce key material.
    """
    if key_size < RSA_KEY_SIZE:
        raise ValueError(f"key_size must be at least {RSA_KEY_SIZE} bits, got {key_size}")
    try:
        private_key = rsa.generate_private_key(
            public_exponent=public_exponent,
            key_size=key_size,
        )
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise CryptoProviderError("key generation", str(exc)) from exc
    logger.debug("Generated %d-bit RSA key pair", key_size)
    return KeyPair(private_key=private_key)


def generate_serial_number(bits: int = SERIAL_NUMBER_BITS) -> int:
    """Return a random positive serial number of at most *bits* bits.

    Zero is not a legal X.509 serial, so it is redrawn.
    """
    if not 1 <= bits <= 159:
        raise ValueError(f"bits must be between 1 and 159, got {bits}")
    serial = 0
    while serial == 0:
        serial = secrets.randbits(bits)
    return serial


__all__ = [
    "KeyPair",
    "RSA_KEY_SIZE",
    "RSA_PUBLIC_EXPONENT",
    "SERIAL_NUMBER_BITS",
    "generate_key_pair",
    "generate_serial_number",
]
