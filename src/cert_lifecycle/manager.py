"""CertificateLifecycleManager — one object exposing the whole CA lifecycle.

The manager holds only its LifecycleSettings; every method is a pure
function of its arguments plus the OS random source. Example::

    manager = CertificateLifecycleManager()
    ca_keys = manager.generate_key_pair()
    root = manager.issue_self_signed_certificate(ca_keys, "CN=RootCA,O=Org,C=SA")
    crl = manager.generate_empty_crl(root, ca_keys)

    user_keys = manager.generate_key_pair()
    csr = manager.generate_csr_object(user_keys, "CN=user@example.com,O=Org,C=SA")
    cert = manager.issue_end_entity_certificate_from_csr(root, ca_keys, csr, 500)
    crl = manager.revoke_and_update_crl(crl, root, ca_keys, cert)
"""
from __future__ import annotations

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPublicKey
from cryptography.hazmat.primitives.asymmetric.types import CertificatePublicKeyTypes

from cert_lifecycle import csr as _csr
from cert_lifecycle import issuance, revocation
from cert_lifecycle.authority import SigningAuthority
from cert_lifecycle.config import LifecycleSettings
from cert_lifecycle.csr import CertificationRequest
from cert_lifecycle.keys import KeyPair, generate_key_pair, generate_serial_number
from cert_lifecycle.revocation import RevocationList, RevocationReason
from cert_lifecycle.verifier import verify_certificate_signature


class CertificateLifecycleManager:
    """Facade binding LifecycleSettings to every lifecycle operation.

    Parameters
    ----------
    settings:
        Policy settings; defaults to :class:`LifecycleSettings` defaults.
    """

    def __init__(self, settings: LifecycleSettings | None = None) -> None:
        self._settings = settings or LifecycleSettings()

    @property
    def settings(self) -> LifecycleSettings:
        return self._settings

    def signing_authority(self, key_pair: KeyPair) -> SigningAuthority:
        """Wrap *key_pair* with the configured signature hash."""
        return SigningAuthority(key_pair.private_key, self._settings.signature_hash())

    def _signer(self, signer: KeyPair | SigningAuthority) -> SigningAuthority:
        if isinstance(signer, KeyPair):
            return self.signing_authority(signer)
        return signer

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def generate_key_pair(self) -> KeyPair:
        return generate_key_pair(
            key_size=self._settings.key_size,
            public_exponent=self._settings.public_exponent,
        )

    def generate_serial_number(self) -> int:
        return generate_serial_number()

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def issue_self_signed_certificate(
        self,
        key_pair: KeyPair | SigningAuthority,
        subject_name: str,
        validity_days: int | None = None,
    ) -> x509.Certificate:
        return issuance.issue_self_signed_certificate(
            key_pair, subject_name, validity_days, settings=self._settings
        )

    def generate_csr(self, key_pair: KeyPair | SigningAuthority, subject_name: str) -> str:
        return _csr.generate_csr(self._signer(key_pair), subject_name)

    def generate_csr_object(
        self, key_pair: KeyPair | SigningAuthority, subject_name: str
    ) -> CertificationRequest:
        return _csr.generate_csr_object(self._signer(key_pair), subject_name)

    def issue_end_entity_certificate_from_csr(
        self,
        ca_cert: x509.Certificate,
        ca_authority: KeyPair | SigningAuthority,
        csr: CertificationRequest | x509.CertificateSigningRequest,
        serial_number: int,
        validity_days: int | None = None,
    ) -> x509.Certificate:
        return issuance.issue_end_entity_certificate_from_csr(
            ca_cert, ca_authority, csr, serial_number, validity_days, settings=self._settings
        )

    def issue_end_entity_certificate(
        self,
        ca_cert: x509.Certificate,
        ca_authority: KeyPair | SigningAuthority,
        end_entity_public_key: CertificatePublicKeyTypes,
        subject_name: str,
        serial_number: int,
        validity_days: int | None = None,
    ) -> x509.Certificate:
        return issuance.issue_end_entity_certificate(
            ca_cert,
            ca_authority,
            end_entity_public_key,
            subject_name,
            serial_number,
            validity_days,
            settings=self._settings,
        )

    # ------------------------------------------------------------------
    # Revocation
    # ------------------------------------------------------------------

    def generate_empty_crl(
        self, ca_cert: x509.Certificate, ca_authority: KeyPair | SigningAuthority
    ) -> RevocationList:
        return revocation.generate_empty_crl(ca_cert, ca_authority, settings=self._settings)

    def revoke_certificate_and_update_crl(
        self,
        ca_cert: x509.Certificate,
        ca_authority: KeyPair | SigningAuthority,
        cert_to_revoke: x509.Certificate,
        reason: int = RevocationReason.UNSPECIFIED,
    ) -> RevocationList:
        return revocation.revoke_certificate_and_update_crl(
            ca_cert, ca_authority, cert_to_revoke, reason, settings=self._settings
        )

    def revoke_and_update_crl(
        self,
        existing_crl: RevocationList | x509.CertificateRevocationList | None,
        ca_cert: x509.Certificate,
        ca_authority: KeyPair | SigningAuthority,
        cert_to_revoke: x509.Certificate,
        reason: int = RevocationReason.UNSPECIFIED,
    ) -> RevocationList:
        return revocation.revoke_and_update_crl(
            existing_crl, ca_cert, ca_authority, cert_to_revoke, reason, settings=self._settings
        )

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_certificate(self, cert: x509.Certificate, public_key: RSAPublicKey) -> bool:
        return verify_certificate_signature(cert, public_key)


__all__ = ["CertificateLifecycleManager"]
