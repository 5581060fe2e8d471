"""Issuer-scoped serial number allocation with uniqueness checks.

End-entity issuance takes caller-supplied serial numbers. SerialNumberAllocator
is an optional helper that hands out or reserves serials per issuer and
refuses duplicates, with optional JSON persistence to disk.
"""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from cryptography import x509

from cert_lifecycle.errors import DuplicateSerialNumberError

logger = logging.getLogger(__name__)


def _issuer_key(issuer: x509.Name | x509.Certificate | str) -> str:
    if isinstance(issuer, x509.Certificate):
        issuer = issuer.subject
    if isinstance(issuer, x509.Name):
        return issuer.rfc4514_string()
    return issuer


class SerialNumberAllocator:
    """Tracks serial numbers used by each issuer.

    Thread-safe. Issuers may be given as an ``x509.Name``, a CA certificate
    (its subject is used), or an RFC 4514 string.

    Parameters
    ----------
    persist_path:
        If provided, allocations are read from and written to this JSON file.
    start:
        First serial number handed out by :meth:`allocate` for a new issuer.
    """

    def __init__(self, persist_path: Path | None = None, start: int = 1) -> None:
        if start <= 0:
            raise ValueError(f"start must be positive, got {start}")
        self._start = start
        self._allocated: dict[str, set[int]] = {}
        self._lock = threading.Lock()
        self._persist_path = persist_path

        if persist_path is not None and persist_path.exists():
            self._load_from_disk()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def allocate(self, issuer: x509.Name | x509.Certificate | str) -> int:
        """Return the next unused serial for *issuer* and mark it used."""
        key = _issuer_key(issuer)
        with self._lock:
            used = self._allocated.setdefault(key, set())
            serial = self._next_serial(used)
            used.add(serial)
            self._save_to_disk()
        logger.debug("Allocated serial %s for issuer %s", serial, key)
        return serial

    def reserve(self, issuer: x509.Name | x509.Certificate | str, serial_number: int) -> int:
        """Claim a caller-chosen serial for *issuer*.

        Raises
        ------
        DuplicateSerialNumberError
            If the serial is already allocated for this issuer.
        ValueError
            If the serial is not positive.
        """
        if serial_number <= 0:
            raise ValueError(f"serial_number must be positive, got {serial_number}")
        key = _issuer_key(issuer)
        with self._lock:
            used = self._allocated.setdefault(key, set())
            if serial_number in used:
                raise DuplicateSerialNumberError(key, serial_number)
            used.add(serial_number)
            self._save_to_disk()
        return serial_number

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def peek(self, issuer: x509.Name | x509.Certificate | str) -> int:
        """Return the serial :meth:`allocate` would hand out, without claiming it."""
        key = _issuer_key(issuer)
        with self._lock:
            return self._next_serial(self._allocated.get(key, set()))

    def _next_serial(self, used: set[int]) -> int:
        return max(used, default=self._start - 1) + 1

    def is_allocated(self, issuer: x509.Name | x509.Certificate | str, serial_number: int) -> bool:
        key = _issuer_key(issuer)
        with self._lock:
            return serial_number in self._allocated.get(key, set())

    def allocated_serials(self, issuer: x509.Name | x509.Certificate | str) -> frozenset[int]:
        """Return a snapshot of the serials used by *issuer*."""
        key = _issuer_key(issuer)
        with self._lock:
            return frozenset(self._allocated.get(key, set()))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _save_to_disk(self) -> None:
        """Write allocations to the persist path as JSON. Caller holds the lock."""
        if self._persist_path is None:
            return
        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "issuers": {key: sorted(serials) for key, serials in sorted(self._allocated.items())}
        }
        self._persist_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def _load_from_disk(self) -> None:
        if self._persist_path is None or not self._persist_path.exists():
            return
        try:
            payload = json.loads(self._persist_path.read_text(encoding="utf-8"))
            self._allocated = {
                key: set(serials) for key, serials in payload["issuers"].items()
            }
        except (json.JSONDecodeError, KeyError, AttributeError, TypeError):
            logger.warning(
                "Ignoring unreadable serial allocation file %s", self._persist_path
            )
            self._allocated = {}


__all__ = ["SerialNumberAllocator"]
