"""Certificate verification — signature, issuer, validity, and revocation checks.

CertVerifier validates a certificate against a trusted CA certificate and,
optionally, against a RevocationList.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import padding
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey

from cert_lifecycle.revocation import RevocationList


def verify_certificate_signature(cert: x509.Certificate, public_key: RSAPublicKey) -> bool:
    """Return True if *cert* was signed by the private half of *public_key*."""
    if not isinstance(public_key, RSAPublicKey):
        raise TypeError(f"expected an RSA public key, got {type(public_key).__name__}")
    hash_algorithm = cert.signature_hash_algorithm
    if hash_algorithm is None:
        return False
    try:
        public_key.verify(
            cert.signature,
            cert.tbs_certificate_bytes,
            padding.PKCS1v15(),
            hash_algorithm,
        )
    except (InvalidSignature, UnsupportedAlgorithm):
        return False
    return True


@dataclass
class VerificationResult:
    """Outcome of a certificate verification check.

    Parameters
    ----------
    valid:
        Overall pass/fail result.
    chain_valid:
        Whether the certificate names and was signed by the expected CA.
    not_expired:
        Whether the certificate is within its validity window.
    not_revoked:
        Whether the certificate serial is absent from the CRL.
    errors:
        List of human-readable error strings describing failures.
    """

    valid: bool
    chain_valid: bool
    not_expired: bool
    not_revoked: bool
    errors: list[str] = field(default_factory=list)


class CertVerifier:
    """Verifies certificates against a trusted CA.

    Parameters
    ----------
    ca_cert:
        The trusted CA certificate used for chain validation.
    revocation_list:
        Optional RevocationList for revocation checks.
    """

    def __init__(
        self,
        ca_cert: x509.Certificate,
        revocation_list: RevocationList | None = None,
    ) -> None:
        self._ca_cert = ca_cert
        self._revocation_list = revocation_list

    def verify(
        self, cert: x509.Certificate, at: datetime.datetime | None = None
    ) -> VerificationResult:
        """Verify *cert* at time *at* (default: now).

        Returns
        -------
        VerificationResult
            Detailed result with per-check flags and error messages.
        """
        errors: list[str] = []
        now = at or datetime.datetime.now(datetime.timezone.utc)

        chain_valid = self._verify_chain(cert, errors)
        not_expired = self._verify_expiry(cert, now, errors)
        not_revoked = self._verify_revocation(cert, errors)

        return VerificationResult(
            valid=chain_valid and not_expired and not_revoked,
            chain_valid=chain_valid,
            not_expired=not_expired,
            not_revoked=not_revoked,
            errors=errors,
        )

    # ------------------------------------------------------------------
    # Internal checks
    # ------------------------------------------------------------------

    def _verify_chain(self, cert: x509.Certificate, errors: list[str]) -> bool:
        if cert.issuer != self._ca_cert.subject:
            errors.append(
                f"Certificate issuer {cert.issuer.rfc4514_string()} does not match "
                f"CA subject {self._ca_cert.subject.rfc4514_string()}"
            )
            return False

        ca_public_key = self._ca_cert.public_key()
        if not isinstance(ca_public_key, RSAPublicKey):
            errors.append("CA public key is not RSA")
            return False

        if not verify_certificate_signature(cert, ca_public_key):
            errors.append("Certificate signature is invalid; not signed by trusted CA")
            return False
        return True

    def _verify_expiry(
        self, cert: x509.Certificate, now: datetime.datetime, errors: list[str]
    ) -> bool:
        not_before = cert.not_valid_before_utc
        not_after = cert.not_valid_after_utc

        if now < not_before:
            errors.append(
                f"Certificate is not yet valid (valid from {not_before.isoformat()})"
            )
            return False

        if now > not_after:
            errors.append(f"Certificate expired at {not_after.isoformat()}")
            return False

        return True

    def _verify_revocation(self, cert: x509.Certificate, errors: list[str]) -> bool:
        if self._revocation_list is None:
            return True

        if self._revocation_list.is_revoked(cert.serial_number):
            errors.append(f"Certificate serial {cert.serial_number} has been revoked")
            return False

        return True


__all__ = ["CertVerifier", "VerificationResult", "verify_certificate_signature"]
