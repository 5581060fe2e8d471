"""cert-lifecycle — a small certificate authority: keys, roots, CSRs, issuance, and CRLs.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Quick start
-----------
::

    from cert_lifecycle import CertificateLifecycleManager

    manager = CertificateLifecycleManager()
    ca_keys = manager.generate_key_pair()
    root = manager.issue_self_signed_certificate(ca_keys, "CN=RootCA,O=Org,C=SA")
"""
from __future__ import annotations

__version__: str = "0.1.0"

from cert_lifecycle.authority import SigningAuthority
from cert_lifecycle.config import LifecycleSettings
from cert_lifecycle.csr import CertificationRequest, generate_csr, generate_csr_object
from cert_lifecycle.errors import (
    CertLifecycleError,
    CryptoProviderError,
    DuplicateSerialNumberError,
    InvalidCsrSignatureError,
    InvalidSubjectError,
)
from cert_lifecycle.issuance import (
    issue_end_entity_certificate,
    issue_end_entity_certificate_from_csr,
    issue_self_signed_certificate,
)
from cert_lifecycle.keys import KeyPair, generate_key_pair, generate_serial_number
from cert_lifecycle.manager import CertificateLifecycleManager
from cert_lifecycle.names import parse_distinguished_name
from cert_lifecycle.pem import pem_decode, pem_encode
from cert_lifecycle.revocation import (
    RevocationEntry,
    RevocationList,
    RevocationReason,
    generate_empty_crl,
    revoke_and_update_crl,
    revoke_certificate_and_update_crl,
)
from cert_lifecycle.serials import SerialNumberAllocator
from cert_lifecycle.verifier import CertVerifier, VerificationResult, verify_certificate_signature

__all__ = [
    "__version__",
    # Core
    "CertificateLifecycleManager",
    "LifecycleSettings",
    "SigningAuthority",
    # Keys
    "KeyPair",
    "generate_key_pair",
    "generate_serial_number",
    # Requests
    "CertificationRequest",
    "generate_csr",
    "generate_csr_object",
    # Issuance
    "issue_end_entity_certificate",
    "issue_end_entity_certificate_from_csr",
    "issue_self_signed_certificate",
    "parse_distinguished_name",
    # Revocation
    "RevocationEntry",
    "RevocationList",
    "RevocationReason",
    "generate_empty_crl",
    "revoke_and_update_crl",
    "revoke_certificate_and_update_crl",
    # Verification
    "CertVerifier",
    "VerificationResult",
    "verify_certificate_signature",
    # Helpers
    "SerialNumberAllocator",
    "pem_decode",
    "pem_encode",
    # Errors
    "CertLifecycleError",
    "CryptoProviderError",
    "DuplicateSerialNumberError",
    "InvalidCsrSignatureError",
    "InvalidSubjectError",
]
