"""Certificate Revocation List (CRL) building and maintenance.

A RevocationList is an immutable value: a signed X.509 v2 CRL together with
an ordered, read-only mapping of serial number to RevocationEntry. Every
revocation operation signs and returns a *new* list and never touches the
list it was given, so earlier snapshots stay valid.

Two revocation operations exist on purpose:

- :func:`revoke_and_update_crl` carries every prior entry forward and
  appends the new one. Use it to build a growing revocation history.
- :func:`revoke_certificate_and_update_crl` produces a one-entry snapshot
  with no history.
"""
from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from enum import IntEnum
from types import MappingProxyType
from typing import Iterator, Mapping

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import CertificateIssuerPublicKeyTypes

from cert_lifecycle.authority import SigningAuthority
from cert_lifecycle.config import DEFAULT_SETTINGS, LifecycleSettings
from cert_lifecycle.keys import KeyPair

logger = logging.getLogger(__name__)


class RevocationReason(IntEnum):
    """RFC 5280 CRLReason codes. Code 7 is unassigned."""

    UNSPECIFIED = 0
    KEY_COMPROMISE = 1
    CA_COMPROMISE = 2
    AFFILIATION_CHANGED = 3
    SUPERSEDED = 4
    CESSATION_OF_OPERATION = 5
    CERTIFICATE_HOLD = 6
    REMOVE_FROM_CRL = 8
    PRIVILEGE_WITHDRAWN = 9
    AA_COMPROMISE = 10

    def to_flag(self) -> x509.ReasonFlags:
        return _REASON_TO_FLAG[self]

    @classmethod
    def from_flag(cls, flag: x509.ReasonFlags) -> "RevocationReason":
        return _FLAG_TO_REASON[flag]


_REASON_TO_FLAG: dict[RevocationReason, x509.ReasonFlags] = {
    RevocationReason.UNSPECIFIED: x509.ReasonFlags.unspecified,
    RevocationReason.KEY_COMPROMISE: x509.ReasonFlags.key_compromise,
    RevocationReason.CA_COMPROMISE: x509.ReasonFlags.ca_compromise,
    RevocationReason.AFFILIATION_CHANGED: x509.ReasonFlags.affiliation_changed,
    RevocationReason.SUPERSEDED: x509.ReasonFlags.superseded,
    RevocationReason.CESSATION_OF_OPERATION: x509.ReasonFlags.cessation_of_operation,
    RevocationReason.CERTIFICATE_HOLD: x509.ReasonFlags.certificate_hold,
    RevocationReason.REMOVE_FROM_CRL: x509.ReasonFlags.remove_from_crl,
    RevocationReason.PRIVILEGE_WITHDRAWN: x509.ReasonFlags.privilege_withdrawn,
    RevocationReason.AA_COMPROMISE: x509.ReasonFlags.aa_compromise,
}
_FLAG_TO_REASON = {flag: reason for reason, flag in _REASON_TO_FLAG.items()}


# ---------------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RevocationEntry:
    """A single revoked serial number.

    Parameters
    ----------
    serial_number:
        Serial number of the revoked certificate.
    revocation_date:
        When the certificate was revoked (UTC, second precision).
    reason:
        Revocation reason code.
    """

    serial_number: int
    revocation_date: datetime.datetime
    reason: RevocationReason = RevocationReason.UNSPECIFIED

    def to_revoked_certificate(self) -> x509.RevokedCertificate:
        """Build the CRL entry; ``unspecified`` is left unencoded."""
        builder = (
            x509.RevokedCertificateBuilder()
            .serial_number(self.serial_number)
            .revocation_date(self.revocation_date)
        )
        if self.reason != RevocationReason.UNSPECIFIED:
            builder = builder.add_extension(
                x509.CRLReason(self.reason.to_flag()), critical=False
            )
        return builder.build()

    @classmethod
    def from_revoked_certificate(cls, revoked: x509.RevokedCertificate) -> "RevocationEntry":
        try:
            flag = revoked.extensions.get_extension_for_class(x509.CRLReason).value.reason
            reason = RevocationReason.from_flag(flag)
        except x509.ExtensionNotFound:
            reason = RevocationReason.UNSPECIFIED
        return cls(
            serial_number=revoked.serial_number,
            revocation_date=revoked.revocation_date_utc,
            reason=reason,
        )


# ---------------------------------------------------------------------------
# Revocation list
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RevocationList:
    """A signed CRL and its entries keyed by serial number.

    Use :meth:`from_x509` to wrap a CRL produced elsewhere.
    """

    crl: x509.CertificateRevocationList
    _entries: Mapping[int, RevocationEntry] = field(repr=False)

    def __hash__(self) -> int:
        return hash(self.to_der())

    @classmethod
    def from_x509(cls, crl: x509.CertificateRevocationList) -> "RevocationList":
        entries = {
            revoked.serial_number: RevocationEntry.from_revoked_certificate(revoked)
            for revoked in crl
        }
        return cls(crl=crl, _entries=MappingProxyType(entries))

    # ------------------------------------------------------------------
    # Header fields
    # ------------------------------------------------------------------

    @property
    def issuer(self) -> x509.Name:
        return self.crl.issuer

    @property
    def this_update(self) -> datetime.datetime:
        return self.crl.last_update_utc

    @property
    def next_update(self) -> datetime.datetime | None:
        return self.crl.next_update_utc

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    @property
    def entries(self) -> tuple[RevocationEntry, ...]:
        """Entries in CRL order."""
        return tuple(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RevocationEntry]:
        return iter(self._entries.values())

    def __contains__(self, serial_number: object) -> bool:
        return serial_number in self._entries

    def get(self, serial_number: int) -> RevocationEntry | None:
        return self._entries.get(serial_number)

    def is_revoked(self, serial_number: int) -> bool:
        """Return True if the given serial number is on this list."""
        return serial_number in self._entries

    def revoked_serials(self) -> frozenset[int]:
        """Return all revoked serial numbers."""
        return frozenset(self._entries)

    def count(self) -> int:
        """Return the number of revoked certificates."""
        return len(self._entries)

    # ------------------------------------------------------------------
    # Signature & serialization
    # ------------------------------------------------------------------

    def is_signature_valid(self, public_key: CertificateIssuerPublicKeyTypes) -> bool:
        return self.crl.is_signature_valid(public_key)

    def to_der(self) -> bytes:
        return self.crl.public_bytes(serialization.Encoding.DER)

    def to_pem(self) -> bytes:
        return self.crl.public_bytes(serialization.Encoding.PEM)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def _now() -> datetime.datetime:
    # CRL times are encoded with second precision.
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)


def _sign_crl(
    ca_cert: x509.Certificate,
    authority: "SigningAuthority | KeyPair",
    entries: dict[int, RevocationEntry],
    now: datetime.datetime,
    settings: LifecycleSettings,
) -> RevocationList:
    signer = SigningAuthority.coerce(authority, settings.signature_hash())
    next_update = now + datetime.timedelta(days=settings.crl_next_update_days)
    builder = (
        x509.CertificateRevocationListBuilder()
        .issuer_name(ca_cert.subject)
        .last_update(now)
        .next_update(next_update)
    )
    for entry in entries.values():
        builder = builder.add_revoked_certificate(entry.to_revoked_certificate())
    crl = signer.sign(builder, operation="CRL signing")

    logger.info(
        "Signed CRL issuer=%s entries=%d next_update=%s",
        ca_cert.subject.rfc4514_string(),
        len(entries),
        next_update.isoformat(),
    )
    return RevocationList(crl=crl, _entries=MappingProxyType(entries))


def _warn_if_foreign(ca_cert: x509.Certificate, cert_to_revoke: x509.Certificate) -> None:
    if cert_to_revoke.issuer != ca_cert.subject:
        logger.warning(
            "Revoking serial %s issued by %s on a CRL for %s",
            cert_to_revoke.serial_number,
            cert_to_revoke.issuer.rfc4514_string(),
            ca_cert.subject.rfc4514_string(),
        )


def generate_empty_crl(
    ca_cert: x509.Certificate,
    authority: "SigningAuthority | KeyPair",
    settings: LifecycleSettings = DEFAULT_SETTINGS,
) -> RevocationList:
    """Sign a CRL with no entries for *ca_cert*."""
    return _sign_crl(ca_cert, authority, {}, _now(), settings)


def revoke_certificate_and_update_crl(
    ca_cert: x509.Certificate,
    authority: "SigningAuthority | KeyPair",
    cert_to_revoke: x509.Certificate,
    reason: int = RevocationReason.UNSPECIFIED,
    settings: LifecycleSettings = DEFAULT_SETTINGS,
) -> RevocationList:
    """Sign a single-entry CRL revoking *cert_to_revoke*.

    No earlier revocations are carried over; use
    :func:`revoke_and_update_crl` to accumulate history.

    Raises
    ------
    ValueError
        If *reason* is not a known CRLReason code.
    """
    reason = RevocationReason(reason)
    _warn_if_foreign(ca_cert, cert_to_revoke)
    now = _now()
    entry = RevocationEntry(cert_to_revoke.serial_number, now, reason)
    return _sign_crl(ca_cert, authority, {entry.serial_number: entry}, now, settings)


def revoke_and_update_crl(
    existing_crl: RevocationList | x509.CertificateRevocationList | None,
    ca_cert: x509.Certificate,
    authority: "SigningAuthority | KeyPair",
    cert_to_revoke: x509.Certificate,
    reason: int = RevocationReason.UNSPECIFIED,
    settings: LifecycleSettings = DEFAULT_SETTINGS,
) -> RevocationList:
    """Sign a new CRL holding every entry of *existing_crl* plus *cert_to_revoke*.

    Carried-forward entries keep their serial number and revocation date;
    their reason codes are not re-encoded. If the serial is already on the
    list, the old entry is replaced by the new one at the end of the list.
    *existing_crl* may be None, giving a single-entry CRL.

    Raises
    ------
    ValueError
        If *reason* is not a known CRLReason code.
    """
    reason = RevocationReason(reason)
    _warn_if_foreign(ca_cert, cert_to_revoke)
    if isinstance(existing_crl, x509.CertificateRevocationList):
        existing_crl = RevocationList.from_x509(existing_crl)

    entries: dict[int, RevocationEntry] = {}
    if existing_crl is not None:
        if existing_crl.issuer != ca_cert.subject:
            logger.warning(
                "Carrying forward entries from a CRL issued by %s into a CRL for %s",
                existing_crl.issuer.rfc4514_string(),
                ca_cert.subject.rfc4514_string(),
            )
        for previous in existing_crl:
            entries[previous.serial_number] = RevocationEntry(
                previous.serial_number, previous.revocation_date
            )

    serial_number = cert_to_revoke.serial_number
    if entries.pop(serial_number, None) is not None:
        logger.info("Serial %s already revoked; replacing its entry", serial_number)

    now = _now()
    entries[serial_number] = RevocationEntry(serial_number, now, reason)
    return _sign_crl(ca_cert, authority, entries, now, settings)


__all__ = [
    "RevocationEntry",
    "RevocationList",
    "RevocationReason",
    "generate_empty_crl",
    "revoke_and_update_crl",
    "revoke_certificate_and_update_crl",
]
