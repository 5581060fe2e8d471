"""Certificate signing requests — building, exporting, and verifying.

A CertificationRequest carries a subject name and public key, self-signed by
the matching private key as proof of possession. Issuance from a request
only proceeds once :meth:`CertificationRequest.verify` returns True.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from cert_lifecycle.authority import SigningAuthority
from cert_lifecycle.keys import KeyPair
from cert_lifecycle.names import parse_distinguished_name
from cert_lifecycle.pem import CSR_LABEL, pem_decode, pem_encode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CertificationRequest:
    """A PKCS#10 certification request.

    Parameters
    ----------
    request:
        The underlying signed X.509 CSR.
    """

    request: x509.CertificateSigningRequest

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    def from_der(cls, data: bytes) -> "CertificationRequest":
        return cls(request=x509.load_der_x509_csr(data))

    @classmethod
    def from_pem(cls, data: str | bytes) -> "CertificationRequest":
        """Load a request from PEM text (CRLF or LF line endings)."""
        text = data.decode("ascii") if isinstance(data, bytes) else data
        return cls.from_der(pem_decode(text, CSR_LABEL))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def subject(self) -> x509.Name:
        return self.request.subject

    def public_key(self) -> RSAPublicKey:
        key = self.request.public_key()
        if not isinstance(key, RSAPublicKey):
            raise TypeError(f"CSR public key is not RSA: {type(key).__name__}")
        return key

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify(self) -> bool:
        """Return True iff the self-signature validates against the embedded key."""
        return self.request.is_signature_valid

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_der(self) -> bytes:
        return self.request.public_bytes(serialization.Encoding.DER)

    def to_pem(self) -> str:
        return pem_encode(self.to_der(), CSR_LABEL)


def generate_csr_object(
    key_pair: KeyPair | SigningAuthority,
    subject_name: str,
) -> CertificationRequest:
    """Build a CSR for *subject_name*, self-signed by *key_pair*.

    Raises
    ------
    InvalidSubjectError
        If *subject_name* cannot be parsed.
    CryptoProviderError
        If signing fails.
    """
    subject = parse_distinguished_name(subject_name)
    signer = SigningAuthority.coerce(key_pair)
    builder = x509.CertificateSigningRequestBuilder().subject_name(subject)
    request = signer.sign(builder, operation="CSR signing")
    logger.debug("Built CSR for %s", subject.rfc4514_string())
    return CertificationRequest(request=request)


def generate_csr(key_pair: KeyPair | SigningAuthority, subject_name: str) -> str:
    """Build a CSR and return it as PEM text."""
    return generate_csr_object(key_pair, subject_name).to_pem()


__all__ = ["CertificationRequest", "generate_csr", "generate_csr_object"]
