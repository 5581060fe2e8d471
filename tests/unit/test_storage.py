"""Tests for cert_lifecycle.storage — PEM file helpers."""
from __future__ import annotations

import stat
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from cert_lifecycle.csr import generate_csr_object
from cert_lifecycle.issuance import issue_self_signed_certificate
from cert_lifecycle.keys import KeyPair, generate_key_pair
from cert_lifecycle.revocation import revoke_and_update_crl
from cert_lifecycle.storage import (
    load_certificate,
    load_crl,
    load_csr,
    load_private_key,
    load_public_key,
    save_certificate,
    save_crl,
    save_csr,
    save_private_key,
    save_public_key,
)


@pytest.fixture(scope="module")
def key_pair() -> KeyPair:
    return generate_key_pair()


class TestKeys:
    def test_private_key_round_trip(self, key_pair: KeyPair, tmp_path: Path) -> None:
        path = save_private_key(key_pair, tmp_path / "keys" / "ca.key")
        assert load_private_key(path).modulus == key_pair.modulus

    def test_private_key_file_is_owner_only(self, key_pair: KeyPair, tmp_path: Path) -> None:
        path = save_private_key(key_pair, tmp_path / "ca.key")
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_public_key_round_trip(self, key_pair: KeyPair, tmp_path: Path) -> None:
        path = save_public_key(key_pair, tmp_path / "ca.pub")
        assert load_public_key(path).public_numbers().n == key_pair.modulus

    def test_non_rsa_private_key_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "ec.key"
        path.write_bytes(
            ec.generate_private_key(ec.SECP256R1()).private_bytes(
                serialization.Encoding.PEM,
                serialization.PrivateFormat.PKCS8,
                serialization.NoEncryption(),
            )
        )
        with pytest.raises(TypeError, match="RSA"):
            load_private_key(path)


class TestArtifacts:
    def test_certificate_round_trip(self, key_pair: KeyPair, tmp_path: Path) -> None:
        cert = issue_self_signed_certificate(key_pair, "CN=Stored Root")
        path = save_certificate(cert, tmp_path / "root.pem")
        assert load_certificate(path) == cert

    def test_csr_round_trip(self, key_pair: KeyPair, tmp_path: Path) -> None:
        request = generate_csr_object(key_pair, "CN=Stored Request")
        path = save_csr(request, tmp_path / "req.csr")
        loaded = load_csr(path)
        assert loaded.verify() is True
        assert loaded.subject == request.subject

    def test_crl_round_trip(self, key_pair: KeyPair, tmp_path: Path) -> None:
        cert = issue_self_signed_certificate(key_pair, "CN=Stored Root")
        crl = revoke_and_update_crl(None, cert, key_pair, cert, reason=1)
        loaded = load_crl(save_crl(crl, tmp_path / "root.crl"))
        assert loaded.entries == crl.entries
        assert loaded.is_signature_valid(key_pair.public_key)
