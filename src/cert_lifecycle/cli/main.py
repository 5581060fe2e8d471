"""CLI entry point for cert-lifecycle.

Invoked as::

    cert-lifecycle [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m cert_lifecycle.cli.main

Commands
--------
key generate   Generate an RSA key pair
ca init        Create a self-signed root CA certificate
csr create     Build a certificate signing request
csr verify     Check a CSR's self-signature
cert issue     Issue an end-entity certificate from a CSR or a public key
cert show      Display a certificate
crl init       Sign an empty CRL
crl revoke     Revoke a certificate and write an updated CRL
crl show       Display a CRL

Policy defaults are read from ``CERT_LIFECYCLE_*`` environment variables.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable, TypeVar

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from cert_lifecycle import __version__
from cert_lifecycle.config import LifecycleSettings
from cert_lifecycle.errors import CertLifecycleError, DuplicateSerialNumberError
from cert_lifecycle.manager import CertificateLifecycleManager
from cert_lifecycle.revocation import RevocationReason

console = Console()

_T = TypeVar("_T")

_REASON_NAMES = [reason.name.lower() for reason in RevocationReason]


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="cert-lifecycle")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
@click.pass_context
def cli(ctx: click.Context, log_level: str) -> None:
    """Certificate authority lifecycle: keys, roots, CSRs, issuance, and CRLs"""
    logging.basicConfig(level=getattr(logging, log_level.upper()))
    try:
        settings = LifecycleSettings.from_env()
    except ValidationError as exc:
        console.print(f"[red]Error:[/red] invalid CERT_LIFECYCLE_* settings: {escape(str(exc))}")
        sys.exit(1)
    ctx.obj = CertificateLifecycleManager(settings)


@cli.command(name="version")
def version_command() -> None:
    """Show version information."""
    console.print(f"[bold]cert-lifecycle[/bold] v{__version__}")


def _run(action: Callable[[], _T]) -> _T:
    """Run *action*, turning expected failures into an error message and exit 1."""
    try:
        return action()
    except (CertLifecycleError, ValueError, TypeError, OSError) as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)


# ------------------------------------------------------------------
# key
# ------------------------------------------------------------------


@cli.group(name="key")
def key_group() -> None:
    """Manage RSA key pairs."""


@key_group.command(name="generate")
@click.option("--out", "out", type=click.Path(dir_okay=False), required=True, help="Private key PEM output path.")
@click.option("--public-out", type=click.Path(dir_okay=False), default=None, help="Optional public key PEM output path.")
@click.pass_obj
def key_generate_command(manager: CertificateLifecycleManager, out: str, public_out: str | None) -> None:
    """Generate a new RSA key pair."""
    from cert_lifecycle.storage import save_private_key, save_public_key

    key_pair = _run(manager.generate_key_pair)
    _run(lambda: save_private_key(key_pair, Path(out)))
    if public_out:
        _run(lambda: save_public_key(key_pair, Path(public_out)))
    console.print(f"[green]Generated[/green] {key_pair.key_size}-bit RSA key: {out}")


# ------------------------------------------------------------------
# ca
# ------------------------------------------------------------------


@cli.group(name="ca")
def ca_group() -> None:
    """Manage the certificate authority."""


@ca_group.command(name="init")
@click.option("--subject", "-s", required=True, help='CA distinguished name, e.g. "CN=RootCA,O=Org,C=SA".')
@click.option("--key-out", type=click.Path(dir_okay=False), required=True, help="CA private key PEM output path.")
@click.option("--cert-out", type=click.Path(dir_okay=False), required=True, help="CA certificate PEM output path.")
@click.option("--days", type=int, default=None, help="Validity in days (default from settings).")
@click.pass_obj
def ca_init_command(
    manager: CertificateLifecycleManager,
    subject: str,
    key_out: str,
    cert_out: str,
    days: int | None,
) -> None:
    """Generate a CA key pair and a self-signed root certificate."""
    from cert_lifecycle.storage import save_certificate, save_private_key

    key_pair = _run(manager.generate_key_pair)
    cert = _run(lambda: manager.issue_self_signed_certificate(key_pair, subject, days))
    _run(lambda: save_private_key(key_pair, Path(key_out)))
    _run(lambda: save_certificate(cert, Path(cert_out)))

    console.print("[green]Root CA created[/green]")
    console.print(f"  Subject:    {cert.subject.rfc4514_string()}")
    console.print(f"  Serial:     {cert.serial_number}")
    console.print(f"  Not after:  {cert.not_valid_after_utc.isoformat()}")


# ------------------------------------------------------------------
# csr
# ------------------------------------------------------------------


@cli.group(name="csr")
def csr_group() -> None:
    """Build and check certificate signing requests."""


@csr_group.command(name="create")
@click.option("--key", "key_file", type=click.Path(exists=True, dir_okay=False), required=True, help="Requester private key PEM.")
@click.option("--subject", "-s", required=True, help="Requested subject distinguished name.")
@click.option("--out", type=click.Path(dir_okay=False), default=None, help="Write the CSR here instead of stdout.")
@click.pass_obj
def csr_create_command(
    manager: CertificateLifecycleManager, key_file: str, subject: str, out: str | None
) -> None:
    """Build a CSR self-signed by the requester's key."""
    from cert_lifecycle.storage import load_private_key

    key_pair = _run(lambda: load_private_key(Path(key_file)))
    pem = _run(lambda: manager.generate_csr(key_pair, subject))
    if out:
        _run(lambda: Path(out).write_text(pem, encoding="ascii"))
        console.print(f"[green]CSR written to[/green] {out}")
    else:
        click.echo(pem, nl=False)


@csr_group.command(name="verify")
@click.argument("csr_file", type=click.Path(exists=True, dir_okay=False))
def csr_verify_command(csr_file: str) -> None:
    """Verify the self-signature of CSR_FILE."""
    from cert_lifecycle.storage import load_csr

    csr = _run(lambda: load_csr(Path(csr_file)))
    subject = csr.subject.rfc4514_string()
    if csr.verify():
        console.print(f"  [green]PASS[/green]  CSR signature valid for {subject}")
    else:
        console.print(f"  [red]FAIL[/red]  CSR signature invalid for {subject}")
        sys.exit(1)


# ------------------------------------------------------------------
# cert
# ------------------------------------------------------------------


@cli.group(name="cert")
def cert_group() -> None:
    """Issue and inspect certificates."""


@cert_group.command(name="issue")
@click.option("--ca-cert", type=click.Path(exists=True, dir_okay=False), required=True, help="CA certificate PEM.")
@click.option("--ca-key", type=click.Path(exists=True, dir_okay=False), required=True, help="CA private key PEM.")
@click.option("--csr", "csr_file", type=click.Path(exists=True, dir_okay=False), default=None, help="CSR PEM to issue from.")
@click.option("--public-key", type=click.Path(exists=True, dir_okay=False), default=None, help="Public key PEM to certify directly.")
@click.option("--subject", "-s", default=None, help="Subject name (required with --public-key).")
@click.option("--serial", type=int, default=None, help="Serial number; allocated from --serial-db when omitted.")
@click.option(
    "--serial-db",
    type=click.Path(dir_okay=False),
    default=None,
    help="JSON file tracking serial numbers per issuer.",
)
@click.option("--days", type=int, default=None, help="Validity in days (default from settings).")
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="Certificate PEM output path.")
@click.pass_obj
def cert_issue_command(
    manager: CertificateLifecycleManager,
    ca_cert: str,
    ca_key: str,
    csr_file: str | None,
    public_key: str | None,
    subject: str | None,
    serial: int | None,
    serial_db: str | None,
    days: int | None,
    out: str,
) -> None:
    """Issue an end-entity certificate signed by the CA."""
    from cert_lifecycle.serials import SerialNumberAllocator
    from cert_lifecycle.storage import (
        load_certificate,
        load_csr,
        load_private_key,
        load_public_key,
        save_certificate,
    )

    if (csr_file is None) == (public_key is None):
        console.print("[red]Error:[/red] pass exactly one of --csr or --public-key")
        sys.exit(1)
    if public_key is not None and not subject:
        console.print("[red]Error:[/red] --subject is required with --public-key")
        sys.exit(1)
    if serial is None and serial_db is None:
        console.print("[red]Error:[/red] pass --serial, --serial-db, or both")
        sys.exit(1)

    issuer_cert = _run(lambda: load_certificate(Path(ca_cert)))
    issuer_keys = _run(lambda: load_private_key(Path(ca_key)))

    # The serial is recorded only once the certificate has been signed.
    allocator = None
    if serial_db is not None:
        allocator = SerialNumberAllocator(persist_path=Path(serial_db))
        if serial is None:
            serial = allocator.peek(issuer_cert)
        elif allocator.is_allocated(issuer_cert, serial):
            error = DuplicateSerialNumberError(issuer_cert.subject.rfc4514_string(), serial)
            console.print(f"[red]Error:[/red] {escape(str(error))}")
            sys.exit(1)

    if csr_file is not None:
        request = _run(lambda: load_csr(Path(csr_file)))
        cert = _run(
            lambda: manager.issue_end_entity_certificate_from_csr(
                issuer_cert, issuer_keys, request, serial, days
            )
        )
    else:
        end_entity_key = _run(lambda: load_public_key(Path(public_key)))
        cert = _run(
            lambda: manager.issue_end_entity_certificate(
                issuer_cert, issuer_keys, end_entity_key, subject, serial, days
            )
        )

    if allocator is not None:
        _run(lambda: allocator.reserve(issuer_cert, serial))
    _run(lambda: save_certificate(cert, Path(out)))
    console.print(f"[green]Issued[/green] certificate serial [bold]{cert.serial_number}[/bold]")
    console.print(f"  Subject:  {cert.subject.rfc4514_string()}")
    console.print(f"  Issuer:   {cert.issuer.rfc4514_string()}")


@cert_group.command(name="show")
@click.argument("cert_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit JSON.")
def cert_show_command(cert_file: str, as_json: bool) -> None:
    """Display CERT_FILE."""
    from cert_lifecycle.cli.models import CertificateSummary
    from cert_lifecycle.storage import load_certificate

    cert = _run(lambda: load_certificate(Path(cert_file)))
    summary = CertificateSummary.from_certificate(cert)
    if as_json:
        click.echo(summary.model_dump_json(indent=2))
        return

    table = Table(title="Certificate", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in summary.model_dump().items():
        if isinstance(value, list):
            value = ", ".join(value) or "(none)"
        table.add_row(name, str(value))
    console.print(table)


# ------------------------------------------------------------------
# crl
# ------------------------------------------------------------------


@cli.group(name="crl")
def crl_group() -> None:
    """Maintain certificate revocation lists."""


@crl_group.command(name="init")
@click.option("--ca-cert", type=click.Path(exists=True, dir_okay=False), required=True, help="CA certificate PEM.")
@click.option("--ca-key", type=click.Path(exists=True, dir_okay=False), required=True, help="CA private key PEM.")
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="CRL PEM output path.")
@click.pass_obj
def crl_init_command(manager: CertificateLifecycleManager, ca_cert: str, ca_key: str, out: str) -> None:
    """Sign an empty CRL for the CA."""
    from cert_lifecycle.storage import load_certificate, load_private_key, save_crl

    issuer_cert = _run(lambda: load_certificate(Path(ca_cert)))
    issuer_keys = _run(lambda: load_private_key(Path(ca_key)))
    crl = _run(lambda: manager.generate_empty_crl(issuer_cert, issuer_keys))
    _run(lambda: save_crl(crl, Path(out)))
    console.print(f"[green]Empty CRL written to[/green] {out}")


@crl_group.command(name="revoke")
@click.option("--ca-cert", type=click.Path(exists=True, dir_okay=False), required=True, help="CA certificate PEM.")
@click.option("--ca-key", type=click.Path(exists=True, dir_okay=False), required=True, help="CA private key PEM.")
@click.option("--cert", "cert_file", type=click.Path(exists=True, dir_okay=False), required=True, help="Certificate to revoke.")
@click.option("--crl", "crl_file", type=click.Path(exists=True, dir_okay=False), default=None, help="Existing CRL whose entries are carried forward.")
@click.option(
    "--reason",
    type=click.Choice(_REASON_NAMES),
    default="unspecified",
    show_default=True,
    help="CRL reason code.",
)
@click.option("--snapshot", is_flag=True, default=False, help="Write a single-entry CRL without prior history.")
@click.option("--out", type=click.Path(dir_okay=False), required=True, help="CRL PEM output path.")
@click.pass_obj
def crl_revoke_command(
    manager: CertificateLifecycleManager,
    ca_cert: str,
    ca_key: str,
    cert_file: str,
    crl_file: str | None,
    reason: str,
    snapshot: bool,
    out: str,
) -> None:
    """Revoke a certificate and write the updated CRL."""
    from cert_lifecycle.storage import load_certificate, load_crl, load_private_key, save_crl

    if snapshot and crl_file:
        console.print("[red]Error:[/red] --snapshot ignores history; do not pass --crl with it")
        sys.exit(1)

    issuer_cert = _run(lambda: load_certificate(Path(ca_cert)))
    issuer_keys = _run(lambda: load_private_key(Path(ca_key)))
    target = _run(lambda: load_certificate(Path(cert_file)))
    code = RevocationReason[reason.upper()]

    if snapshot:
        crl = _run(
            lambda: manager.revoke_certificate_and_update_crl(issuer_cert, issuer_keys, target, code)
        )
    else:
        existing = _run(lambda: load_crl(Path(crl_file))) if crl_file else None
        crl = _run(
            lambda: manager.revoke_and_update_crl(existing, issuer_cert, issuer_keys, target, code)
        )

    _run(lambda: save_crl(crl, Path(out)))
    console.print(f"[red]Revoked[/red] serial [bold]{target.serial_number}[/bold] ({reason})")
    console.print(f"  CRL entries: {crl.count()}")


@crl_group.command(name="show")
@click.argument("crl_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit JSON.")
def crl_show_command(crl_file: str, as_json: bool) -> None:
    """Display CRL_FILE."""
    from cert_lifecycle.cli.models import RevocationListSummary
    from cert_lifecycle.storage import load_crl

    crl = _run(lambda: load_crl(Path(crl_file)))
    summary = RevocationListSummary.from_revocation_list(crl)
    if as_json:
        click.echo(summary.model_dump_json(indent=2))
        return

    console.print(f"  Issuer:       {summary.issuer}")
    console.print(f"  This update:  {summary.this_update}")
    console.print(f"  Next update:  {summary.next_update or '(none)'}")

    if not summary.revoked:
        console.print("[yellow]No revoked certificates.[/yellow]")
        return

    table = Table(title="Revoked Certificates", show_header=True)
    table.add_column("Serial", style="cyan")
    table.add_column("Revoked At")
    table.add_column("Reason")
    for entry in summary.revoked:
        table.add_row(entry.serial_number, entry.revocation_date, entry.reason)
    console.print(table)
    console.print(f"\nTotal: {summary.revoked_count} revoked certificate(s)")


if __name__ == "__main__":
    cli()
