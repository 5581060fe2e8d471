"""Pydantic summary models for the ``--json`` output of the CLI."""
from __future__ import annotations

from typing import Optional

from cryptography import x509
from pydantic import BaseModel, Field

from cert_lifecycle.revocation import RevocationEntry, RevocationList


class CertificateSummary(BaseModel):
    """Human-facing view of an X.509 certificate."""

    subject: str
    issuer: str
    serial_number: str
    not_before: str
    not_after: str
    is_ca: bool
    crl_distribution_points: list[str] = Field(default_factory=list)

    @classmethod
    def from_certificate(cls, cert: x509.Certificate) -> "CertificateSummary":
        try:
            is_ca = cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca
        except x509.ExtensionNotFound:
            is_ca = False
        try:
            points = cert.extensions.get_extension_for_class(x509.CRLDistributionPoints).value
            uris = [
                name.value
                for point in points
                for name in (point.full_name or [])
                if isinstance(name, x509.UniformResourceIdentifier)
            ]
        except x509.ExtensionNotFound:
            uris = []
        return cls(
            subject=cert.subject.rfc4514_string(),
            issuer=cert.issuer.rfc4514_string(),
            # Serials can exceed JSON's safe integer range.
            serial_number=str(cert.serial_number),
            not_before=cert.not_valid_before_utc.isoformat(),
            not_after=cert.not_valid_after_utc.isoformat(),
            is_ca=is_ca,
            crl_distribution_points=uris,
        )


class RevokedEntrySummary(BaseModel):
    serial_number: str
    revocation_date: str
    reason: str

    @classmethod
    def from_entry(cls, entry: RevocationEntry) -> "RevokedEntrySummary":
        return cls(
            serial_number=str(entry.serial_number),
            revocation_date=entry.revocation_date.isoformat(),
            reason=entry.reason.name.lower(),
        )


class RevocationListSummary(BaseModel):
    """Human-facing view of a CRL."""

    issuer: str
    this_update: str
    next_update: Optional[str] = None
    revoked_count: int = 0
    revoked: list[RevokedEntrySummary] = Field(default_factory=list)

    @classmethod
    def from_revocation_list(cls, crl: RevocationList) -> "RevocationListSummary":
        return cls(
            issuer=crl.issuer.rfc4514_string(),
            this_update=crl.this_update.isoformat(),
            next_update=crl.next_update.isoformat() if crl.next_update else None,
            revoked_count=crl.count(),
            revoked=[RevokedEntrySummary.from_entry(entry) for entry in crl],
        )


__all__ = ["CertificateSummary", "RevocationListSummary", "RevokedEntrySummary"]
