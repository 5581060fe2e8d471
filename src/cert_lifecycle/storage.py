"""PEM file loading and saving for keys, certificates, CSRs, and CRLs."""
from __future__ import annotations

from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from cert_lifecycle.csr import CertificationRequest
from cert_lifecycle.keys import KeyPair
from cert_lifecycle.revocation import RevocationList


def _write(path: Path, data: bytes) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_private_key(path: Path) -> KeyPair:
    """Load an unencrypted PEM RSA private key as a KeyPair."""
    key = serialization.load_pem_private_key(path.read_bytes(), password=None)
    if not isinstance(key, RSAPrivateKey):
        raise TypeError("Private key must be an RSA private key")
    return KeyPair(private_key=key)


def load_public_key(path: Path) -> RSAPublicKey:
    key = serialization.load_pem_public_key(path.read_bytes())
    if not isinstance(key, RSAPublicKey):
        raise TypeError("Public key must be an RSA public key")
    return key


def load_certificate(path: Path) -> x509.Certificate:
    return x509.load_pem_x509_certificate(path.read_bytes())


def load_csr(path: Path) -> CertificationRequest:
    return CertificationRequest.from_pem(path.read_bytes())


def load_crl(path: Path) -> RevocationList:
    return RevocationList.from_x509(x509.load_pem_x509_crl(path.read_bytes()))


# ---------------------------------------------------------------------------
# Saving
# ---------------------------------------------------------------------------


def save_private_key(key_pair: KeyPair, path: Path) -> Path:
    path = _write(path, key_pair.private_key_pem())
    path.chmod(0o600)
    return path


def save_public_key(key_pair: KeyPair, path: Path) -> Path:
    return _write(path, key_pair.public_key_pem())


def save_certificate(cert: x509.Certificate, path: Path) -> Path:
    return _write(path, cert.public_bytes(serialization.Encoding.PEM))


def save_csr(csr: CertificationRequest, path: Path) -> Path:
    return _write(path, csr.to_pem().encode("ascii"))


def save_crl(crl: RevocationList, path: Path) -> Path:
    return _write(path, crl.to_pem())


__all__ = [
    "load_certificate",
    "load_crl",
    "load_csr",
    "load_private_key",
    "load_public_key",
    "save_certificate",
    "save_crl",
    "save_csr",
    "save_private_key",
    "save_public_key",
]
