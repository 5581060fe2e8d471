"""Certificate issuance — self-signed roots and CA-signed end-entity certificates.

Both end-entity entry points converge on :func:`_issue_end_entity`; the only
difference is where the subject and public key come from. The CSR path
requires proof of possession, the direct path deliberately does not.
"""
from __future__ import annotations

import datetime
import logging

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import CertificatePublicKeyTypes

from cert_lifecycle.authority import SigningAuthority
from cert_lifecycle.config import DEFAULT_SETTINGS, LifecycleSettings
from cert_lifecycle.csr import CertificationRequest
from cert_lifecycle.errors import InvalidCsrSignatureError
from cert_lifecycle.keys import KeyPair, generate_serial_number
from cert_lifecycle.names import parse_distinguished_name

logger = logging.getLogger(__name__)

# RFC 5280 caps serial numbers at 20 octets.
_MAX_SERIAL_BITS = 159


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _validity_window(validity_days: int) -> tuple[datetime.datetime, datetime.datetime]:
    if validity_days <= 0:
        raise ValueError(f"validity_days must be positive, got {validity_days}")
    now = datetime.datetime.now(datetime.timezone.utc)
    return now, now + datetime.timedelta(days=validity_days)


def _check_serial_number(serial_number: int) -> None:
    if isinstance(serial_number, bool) or not isinstance(serial_number, int):
        raise TypeError(f"serial_number must be an int, got {type(serial_number).__name__}")
    if serial_number <= 0:
        raise ValueError(f"serial_number must be positive, got {serial_number}")
    if serial_number.bit_length() > _MAX_SERIAL_BITS:
        raise ValueError(f"serial_number exceeds {_MAX_SERIAL_BITS} bits")


def _key_usage(**enabled: bool) -> x509.KeyUsage:
    flags = {
        "digital_signature": False,
        "content_commitment": False,
        "key_encipherment": False,
        "data_encipherment": False,
        "key_agreement": False,
        "key_cert_sign": False,
        "crl_sign": False,
        "encipher_only": False,
        "decipher_only": False,
    }
    flags.update(enabled)
    return x509.KeyUsage(**flags)


def _crl_distribution_points(uri: str) -> x509.CRLDistributionPoints:
    return x509.CRLDistributionPoints(
        [
            x509.DistributionPoint(
                full_name=[x509.UniformResourceIdentifier(uri)],
                relative_name=None,
                reasons=None,
                crl_issuer=None,
            )
        ]
    )


def _add_crl_distribution_point(
    builder: x509.CertificateBuilder, uri: str | None
) -> x509.CertificateBuilder:
    """Attach the CRL distribution point, or return *builder* unchanged on failure."""
    if not uri:
        logger.debug("No CRL distribution URI configured; skipping extension")
        return builder
    try:
        return builder.add_extension(_crl_distribution_points(uri), critical=False)
    except Exception:
        logger.warning(
            "Could not attach CRL distribution point %r; issuing without it",
            uri,
            exc_info=True,
        )
        return builder


def _resolve_signer(signer: "SigningAuthority | KeyPair", settings: LifecycleSettings) -> SigningAuthority:
    return SigningAuthority.coerce(signer, settings.signature_hash())


# ---------------------------------------------------------------------------
# Self-signed issuance
# ---------------------------------------------------------------------------


def issue_self_signed_certificate(
    key_pair: "SigningAuthority | KeyPair",
    subject_name: str,
    validity_days: int | None = None,
    settings: LifecycleSettings = DEFAULT_SETTINGS,
) -> x509.Certificate:
    """Issue a self-signed CA certificate whose subject equals its issuer.

    Parameters
    ----------
    key_pair:
        Key pair (or signing authority) that both owns and signs the certificate.
    subject_name:
        Distinguished name string, e.g. ``"CN=RootCA,O=Org,C=SA"``.
    validity_days:
        Lifetime in days; defaults to ``settings.ca_validity_days`` (3650).
    settings:
        Policy settings.

    Returns
    -------
    x509.Certificate
        A certificate with BasicConstraints CA=true and KeyUsage
        {keyCertSign, cRLSign}, both critical.

    Raises
    ------
    InvalidSubjectError
        If *subject_name* cannot be parsed.
    CryptoProviderError
        If signing fails.
    """
    if validity_days is None:
        validity_days = settings.ca_validity_days
    subject = parse_distinguished_name(subject_name)
    signer = _resolve_signer(key_pair, settings)
    not_before, not_after = _validity_window(validity_days)

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(subject)
        .public_key(signer.public_key())
        .serial_number(generate_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(_key_usage(key_cert_sign=True, crl_sign=True), critical=True)
    )
    cert = signer.sign(builder, operation="self-signed certificate signing")

    logger.info(
        "Issued self-signed certificate subject=%s serial=%s",
        subject.rfc4514_string(),
        cert.serial_number,
    )
    return cert


# ---------------------------------------------------------------------------
# End-entity issuance
# ---------------------------------------------------------------------------


def _issue_end_entity(
    ca_cert: x509.Certificate,
    authority: "SigningAuthority | KeyPair",
    subject: x509.Name,
    public_key: CertificatePublicKeyTypes,
    serial_number: int,
    validity_days: int,
    settings: LifecycleSettings,
) -> x509.Certificate:
    _check_serial_number(serial_number)
    signer = _resolve_signer(authority, settings)
    not_before, not_after = _validity_window(validity_days)

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(ca_cert.subject)
        .public_key(public_key)
        .serial_number(serial_number)
        .not_valid_before(not_before)
        .not_valid_after(not_after)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            _key_usage(digital_signature=True, content_commitment=True),
            critical=True,
        )
    )
    builder = _add_crl_distribution_point(builder, settings.crl_distribution_uri)
    cert = signer.sign(builder, operation="end-entity certificate signing")

    logger.info(
        "Issued end-entity certificate subject=%s issuer=%s serial=%s",
        subject.rfc4514_string(),
        ca_cert.subject.rfc4514_string(),
        serial_number,
    )
    return cert


def issue_end_entity_certificate_from_csr(
    ca_cert: x509.Certificate,
    authority: "SigningAuthority | KeyPair",
    csr: CertificationRequest | x509.CertificateSigningRequest,
    serial_number: int,
    validity_days: int | None = None,
    settings: LifecycleSettings = DEFAULT_SETTINGS,
) -> x509.Certificate:
    """Issue an end-entity certificate for a verified CSR.

    The subject and public key come from the request; the issuer is always
    ``ca_cert.subject``. The serial number is the caller's responsibility.

    Raises
    ------
    InvalidCsrSignatureError
        If the request's self-signature does not verify. Nothing is signed.
    """
    if isinstance(csr, x509.CertificateSigningRequest):
        csr = CertificationRequest(request=csr)
    if not csr.verify():
        logger.warning(
            "Rejected CSR with invalid signature subject=%s", csr.subject.rfc4514_string()
        )
        raise InvalidCsrSignatureError(csr.subject.rfc4514_string())
    if validity_days is None:
        validity_days = settings.end_entity_validity_days
    return _issue_end_entity(
        ca_cert,
        authority,
        subject=csr.subject,
        public_key=csr.request.public_key(),
        serial_number=serial_number,
        validity_days=validity_days,
        settings=settings,
    )


def issue_end_entity_certificate(
    ca_cert: x509.Certificate,
    authority: "SigningAuthority | KeyPair",
    end_entity_public_key: CertificatePublicKeyTypes,
    subject_name: str,
    serial_number: int,
    validity_days: int | None = None,
    settings: LifecycleSettings = DEFAULT_SETTINGS,
) -> x509.Certificate:
    """Issue an end-entity certificate for a raw public key.

    No proof of possession is required on this path.

    Raises
    ------
    InvalidSubjectError
        If *subject_name* cannot be parsed.
    """
    subject = parse_distinguished_name(subject_name)
    if validity_days is None:
        validity_days = settings.end_entity_validity_days
    return _issue_end_entity(
        ca_cert,
        authority,
        subject=subject,
        public_key=end_entity_public_key,
        serial_number=serial_number,
        validity_days=validity_days,
        settings=settings,
    )


__all__ = [
    "issue_end_entity_certificate",
    "issue_end_entity_certificate_from_csr",
    "issue_self_signed_certificate",
]
