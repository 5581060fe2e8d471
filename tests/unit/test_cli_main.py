"""Tests for cert_lifecycle.cli.main — CLI commands via Click test runner."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from cert_lifecycle.cli.main import cli


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(scope="module")
def pki(tmp_path_factory: pytest.TempPathFactory) -> Path:
    """A directory holding a root CA, an empty CRL, and a requester key."""
    base = tmp_path_factory.mktemp("pki")
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "ca",
            "init",
            "--subject",
            "CN=RootCA,O=Org,C=SA",
            "--key-out",
            str(base / "ca.key"),
            "--cert-out",
            str(base / "ca.pem"),
        ],
    )
    assert result.exit_code == 0, result.output
    result = runner.invoke(
        cli,
        ["crl", "init", "--ca-cert", str(base / "ca.pem"), "--ca-key", str(base / "ca.key"), "--out", str(base / "ca.crl")],
    )
    assert result.exit_code == 0, result.output
    result = runner.invoke(
        cli,
        ["key", "generate", "--out", str(base / "user.key"), "--public-out", str(base / "user.pub")],
    )
    assert result.exit_code == 0, result.output
    return base


def _issue(runner: CliRunner, pki: Path, out: Path, serial: int) -> None:
    result = runner.invoke(
        cli,
        [
            "cert",
            "issue",
            "--ca-cert",
            str(pki / "ca.pem"),
            "--ca-key",
            str(pki / "ca.key"),
            "--public-key",
            str(pki / "user.pub"),
            "--subject",
            f"CN=user-{serial},O=Org",
            "--serial",
            str(serial),
            "--out",
            str(out),
        ],
    )
    assert result.exit_code == 0, result.output


# ---------------------------------------------------------------------------
# Root CLI
# ---------------------------------------------------------------------------


class TestRootCLI:
    def test_help_exits_zero(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0

    def test_version_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "cert-lifecycle" in result.output.lower()

    def test_invalid_environment_settings_exit_one(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"], env={"CERT_LIFECYCLE_KEY_SIZE": "512"})
        assert result.exit_code == 1
        assert "Error" in result.output


# ---------------------------------------------------------------------------
# ca init
# ---------------------------------------------------------------------------


class TestCaInit:
    def test_root_certificate_is_a_ca(self, runner: CliRunner, pki: Path) -> None:
        result = runner.invoke(cli, ["cert", "show", str(pki / "ca.pem"), "--json"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["is_ca"] is True
        assert data["subject"] == data["issuer"] == "CN=RootCA,O=Org,C=SA"

    def test_invalid_subject_exits_one(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            cli,
            [
                "ca",
                "init",
                "--subject",
                "not a name",
                "--key-out",
                str(tmp_path / "ca.key"),
                "--cert-out",
                str(tmp_path / "ca.pem"),
            ],
        )
        assert result.exit_code == 1
        assert "Error" in result.output
        assert not (tmp_path / "ca.pem").exists()


# ---------------------------------------------------------------------------
# csr
# ---------------------------------------------------------------------------


class TestCsrCommands:
    def test_create_to_stdout(self, runner: CliRunner, pki: Path) -> None:
        result = runner.invoke(
            cli, ["csr", "create", "--key", str(pki / "user.key"), "--subject", "CN=user@example.com,O=Org,C=SA"]
        )
        assert result.exit_code == 0
        assert result.output.startswith("-----BEGIN CERTIFICATE REQUEST-----")

    def test_create_and_verify(self, runner: CliRunner, pki: Path, tmp_path: Path) -> None:
        csr_path = tmp_path / "user.csr"
        result = runner.invoke(
            cli,
            ["csr", "create", "--key", str(pki / "user.key"), "--subject", "CN=user,O=Org", "--out", str(csr_path)],
        )
        assert result.exit_code == 0
        result = runner.invoke(cli, ["csr", "verify", str(csr_path)])
        assert result.exit_code == 0
        assert "PASS" in result.output

    def test_verify_fails_for_tampered_request(self, runner: CliRunner, tmp_path: Path) -> None:
        from cert_lifecycle.csr import CertificationRequest, generate_csr_object
        from cert_lifecycle.keys import generate_key_pair

        request = generate_csr_object(generate_key_pair(), "CN=tampered")
        der = bytearray(request.to_der())
        der[-1] ^= 0xFF
        csr_path = tmp_path / "bad.csr"
        csr_path.write_text(CertificationRequest.from_der(bytes(der)).to_pem(), encoding="ascii")

        result = runner.invoke(cli, ["csr", "verify", str(csr_path)])
        assert result.exit_code == 1
        assert "FAIL" in result.output


# ---------------------------------------------------------------------------
# cert issue / show
# ---------------------------------------------------------------------------


class TestCertIssue:
    def test_issue_from_csr(self, runner: CliRunner, pki: Path, tmp_path: Path) -> None:
        csr_path = tmp_path / "user.csr"
        runner.invoke(
            cli,
            ["csr", "create", "--key", str(pki / "user.key"), "--subject", "CN=user@example.com,O=Org,C=SA", "--out", str(csr_path)],
        )
        cert_path = tmp_path / "user.pem"
        result = runner.invoke(
            cli,
            [
                "cert",
                "issue",
                "--ca-cert",
                str(pki / "ca.pem"),
                "--ca-key",
                str(pki / "ca.key"),
                "--csr",
                str(csr_path),
                "--serial",
                "500",
                "--out",
                str(cert_path),
            ],
        )
        assert result.exit_code == 0, result.output
        assert "500" in result.output

        data = json.loads(runner.invoke(cli, ["cert", "show", str(cert_path), "--json"]).output)
        assert data["serial_number"] == "500"
        assert data["is_ca"] is False
        assert data["issuer"] == "CN=RootCA,O=Org,C=SA"
        assert data["crl_distribution_points"] == ["http://example.com/crl"]

    def test_serial_db_allocates_sequentially(self, runner: CliRunner, pki: Path, tmp_path: Path) -> None:
        serial_db = tmp_path / "serials.json"
        serials = []
        for index in range(2):
            cert_path = tmp_path / f"leaf-{index}.pem"
            result = runner.invoke(
                cli,
                [
                    "cert",
                    "issue",
                    "--ca-cert",
                    str(pki / "ca.pem"),
                    "--ca-key",
                    str(pki / "ca.key"),
                    "--public-key",
                    str(pki / "user.pub"),
                    "--subject",
                    f"CN=leaf-{index}",
                    "--serial-db",
                    str(serial_db),
                    "--out",
                    str(cert_path),
                ],
            )
            assert result.exit_code == 0, result.output
            data = json.loads(runner.invoke(cli, ["cert", "show", str(cert_path), "--json"]).output)
            serials.append(int(data["serial_number"]))
        assert serials == [1, 2]

    def test_duplicate_serial_in_db_exits_one(self, runner: CliRunner, pki: Path, tmp_path: Path) -> None:
        serial_db = tmp_path / "serials.json"
        args = [
            "cert",
            "issue",
            "--ca-cert",
            str(pki / "ca.pem"),
            "--ca-key",
            str(pki / "ca.key"),
            "--public-key",
            str(pki / "user.pub"),
            "--subject",
            "CN=dup",
            "--serial",
            "7",
            "--serial-db",
            str(serial_db),
            "--out",
        ]
        assert runner.invoke(cli, [*args, str(tmp_path / "first.pem")]).exit_code == 0
        result = runner.invoke(cli, [*args, str(tmp_path / "second.pem")])
        assert result.exit_code == 1
        assert not (tmp_path / "second.pem").exists()

    def test_failed_issue_leaves_serial_free(self, runner: CliRunner, pki: Path, tmp_path: Path) -> None:
        serial_db = tmp_path / "serials.json"
        base = [
            "cert",
            "issue",
            "--ca-cert",
            str(pki / "ca.pem"),
            "--ca-key",
            str(pki / "ca.key"),
            "--public-key",
            str(pki / "user.pub"),
            "--serial",
            "9",
            "--serial-db",
            str(serial_db),
            "--out",
            str(tmp_path / "retry.pem"),
        ]
        result = runner.invoke(cli, [*base, "--subject", "garbage"])
        assert result.exit_code == 1
        assert not (tmp_path / "retry.pem").exists()
        assert not serial_db.exists()

        result = runner.invoke(cli, [*base, "--subject", "CN=retry,O=Org"])
        assert result.exit_code == 0, result.output
        stored = json.loads(serial_db.read_text(encoding="utf-8"))
        assert stored["issuers"]["CN=RootCA,O=Org,C=SA"] == [9]

    def test_failed_allocation_is_not_consumed(self, runner: CliRunner, pki: Path, tmp_path: Path) -> None:
        serial_db = tmp_path / "serials.json"
        base = [
            "cert",
            "issue",
            "--ca-cert",
            str(pki / "ca.pem"),
            "--ca-key",
            str(pki / "ca.key"),
            "--public-key",
            str(pki / "user.pub"),
            "--serial-db",
            str(serial_db),
            "--out",
            str(tmp_path / "auto.pem"),
        ]
        assert runner.invoke(cli, [*base, "--subject", "garbage"]).exit_code == 1
        result = runner.invoke(cli, [*base, "--subject", "CN=auto"])
        assert result.exit_code == 0, result.output
        data = json.loads(runner.invoke(cli, ["cert", "show", str(tmp_path / "auto.pem"), "--json"]).output)
        assert data["serial_number"] == "1"

    def test_requires_exactly_one_source(self, runner: CliRunner, pki: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            cli,
            [
                "cert",
                "issue",
                "--ca-cert",
                str(pki / "ca.pem"),
                "--ca-key",
                str(pki / "ca.key"),
                "--serial",
                "1",
                "--out",
                str(tmp_path / "x.pem"),
            ],
        )
        assert result.exit_code == 1

    def test_public_key_requires_subject(self, runner: CliRunner, pki: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            cli,
            [
                "cert",
                "issue",
                "--ca-cert",
                str(pki / "ca.pem"),
                "--ca-key",
                str(pki / "ca.key"),
                "--public-key",
                str(pki / "user.pub"),
                "--serial",
                "1",
                "--out",
                str(tmp_path / "x.pem"),
            ],
        )
        assert result.exit_code == 1

    def test_cert_show_table(self, runner: CliRunner, pki: Path) -> None:
        result = runner.invoke(cli, ["cert", "show", str(pki / "ca.pem")])
        assert result.exit_code == 0
        assert "RootCA" in result.output


# ---------------------------------------------------------------------------
# crl
# ---------------------------------------------------------------------------


class TestCrlCommands:
    def test_empty_crl_show(self, runner: CliRunner, pki: Path) -> None:
        result = runner.invoke(cli, ["crl", "show", str(pki / "ca.crl")])
        assert result.exit_code == 0
        assert "No revoked certificates" in result.output

    def test_revocations_accumulate(self, runner: CliRunner, pki: Path, tmp_path: Path) -> None:
        crl_path = pki / "ca.crl"
        for serial, reason in ((601, "key_compromise"), (602, "superseded")):
            cert_path = tmp_path / f"user-{serial}.pem"
            _issue(runner, pki, cert_path, serial)
            next_crl = tmp_path / f"after-{serial}.crl"
            result = runner.invoke(
                cli,
                [
                    "crl",
                    "revoke",
                    "--ca-cert",
                    str(pki / "ca.pem"),
                    "--ca-key",
                    str(pki / "ca.key"),
                    "--cert",
                    str(cert_path),
                    "--crl",
                    str(crl_path),
                    "--reason",
                    reason,
                    "--out",
                    str(next_crl),
                ],
            )
            assert result.exit_code == 0, result.output
            assert f"Revoked serial {serial}" in result.output
            crl_path = next_crl

        data = json.loads(runner.invoke(cli, ["crl", "show", str(crl_path), "--json"]).output)
        assert data["issuer"] == "CN=RootCA,O=Org,C=SA"
        assert data["revoked_count"] == 2
        assert [entry["serial_number"] for entry in data["revoked"]] == ["601", "602"]
        # Carried-forward entries lose their reason.
        assert [entry["reason"] for entry in data["revoked"]] == ["unspecified", "superseded"]

    def test_snapshot_holds_single_entry(self, runner: CliRunner, pki: Path, tmp_path: Path) -> None:
        cert_path = tmp_path / "snap.pem"
        _issue(runner, pki, cert_path, 700)
        out = tmp_path / "snap.crl"
        result = runner.invoke(
            cli,
            [
                "crl",
                "revoke",
                "--ca-cert",
                str(pki / "ca.pem"),
                "--ca-key",
                str(pki / "ca.key"),
                "--cert",
                str(cert_path),
                "--snapshot",
                "--out",
                str(out),
            ],
        )
        assert result.exit_code == 0, result.output
        assert "CRL entries: 1" in result.output

        result = runner.invoke(cli, ["crl", "show", str(out)])
        assert result.exit_code == 0
        assert "700" in result.output

    def test_snapshot_with_crl_is_rejected(self, runner: CliRunner, pki: Path) -> None:
        result = runner.invoke(
            cli,
            [
                "crl",
                "revoke",
                "--ca-cert",
                str(pki / "ca.pem"),
                "--ca-key",
                str(pki / "ca.key"),
                "--cert",
                str(pki / "ca.pem"),
                "--crl",
                str(pki / "ca.crl"),
                "--snapshot",
                "--out",
                str(pki / "unused.crl"),
            ],
        )
        assert result.exit_code == 1

    def test_unknown_reason_rejected(self, runner: CliRunner, pki: Path) -> None:
        result = runner.invoke(
            cli,
            [
                "crl",
                "revoke",
                "--ca-cert",
                str(pki / "ca.pem"),
                "--ca-key",
                str(pki / "ca.key"),
                "--cert",
                str(pki / "ca.pem"),
                "--reason",
                "because",
                "--out",
                str(pki / "unused.crl"),
            ],
        )
        assert result.exit_code != 0
