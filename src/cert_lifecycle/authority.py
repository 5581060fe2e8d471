"""SigningAuthority — custody of a CA private key and its signature algorithm.

Issuance and revocation operations take a SigningAuthority instead of a
raw private key so that alternative key custody (an HSM, a remote signer)
can be substituted by subclassing and overriding :meth:`SigningAuthority.sign`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from cert_lifecycle.errors import CryptoProviderError
from cert_lifecycle.keys import KeyPair

_Signed = Union[
    x509.Certificate,
    x509.CertificateSigningRequest,
    x509.CertificateRevocationList,
]

_Builder = Union[
    x509.CertificateBuilder,
    x509.CertificateSigningRequestBuilder,
    x509.CertificateRevocationListBuilder,
]


@dataclass(frozen=True)
class SigningAuthority:
    """A private key plus the hash algorithm used with it (RSA PKCS#1 v1.5).

    Parameters
    ----------
    private_key:
        The RSA private key that produces signatures.
    hash_algorithm:
        Digest used for every signature. Defaults to SHA-256.
    """

    private_key: RSAPrivateKey
    hash_algorithm: hashes.HashAlgorithm = field(default_factory=hashes.SHA256)

    def __post_init__(self) -> None:
        if not isinstance(self.private_key, RSAPrivateKey):
            raise TypeError(
                f"SigningAuthority requires an RSA private key, got {type(self.private_key).__name__}"
            )

    @classmethod
    def coerce(
        cls,
        signer: "SigningAuthority | KeyPair | RSAPrivateKey",
        hash_algorithm: hashes.HashAlgorithm | None = None,
    ) -> "SigningAuthority":
        """Accept a SigningAuthority, a KeyPair, or a bare RSA private key."""
        if isinstance(signer, SigningAuthority):
            return signer
        if isinstance(signer, KeyPair):
            signer = signer.private_key
        if hash_algorithm is None:
            return cls(private_key=signer)
        return cls(private_key=signer, hash_algorithm=hash_algorithm)

    def public_key(self) -> RSAPublicKey:
        return self.private_key.public_key()

    def sign(self, builder: _Builder, operation: str = "signing") -> _Signed:
        """Sign a certificate, CSR, or CRL builder.

        Raises
        ------
        CryptoProviderError
            If the backend rejects the key, algorithm, or builder contents.
        """
        try:
            return builder.sign(self.private_key, self.hash_algorithm)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise CryptoProviderError(operation, str(exc)) from exc


__all__ = ["SigningAuthority"]
