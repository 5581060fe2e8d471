"""Exception hierarchy for certificate lifecycle operations."""
from __future__ import annotations


class CertLifecycleError(Exception):
    """Base class for all certificate lifecycle errors."""


class InvalidSubjectError(CertLifecycleError, ValueError):
    """Raised when a distinguished-name string cannot be parsed."""

    def __init__(self, subject_name: str, reason: str) -> None:
        self.subject_name = subject_name
        self.reason = reason
        super().__init__(f"Invalid subject name {subject_name!r}: {reason}")


class InvalidCsrSignatureError(CertLifecycleError):
    """Raised when a CSR's self-signature does not verify."""

    def __init__(self, subject: str) -> None:
        self.subject = subject
        super().__init__(
            f"Invalid CSR signature for subject {subject!r}; refusing to issue"
        )


class CryptoProviderError(CertLifecycleError):
    """Raised when the cryptographic backend fails a primitive operation."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Crypto provider failed during {operation}: {reason}")


class DuplicateSerialNumberError(CertLifecycleError, ValueError):
    """Raised when a serial number is already in use for an issuer."""

    def __init__(self, issuer: str, serial_number: int) -> None:
        self.issuer = issuer
        self.serial_number = serial_number
        super().__init__(
            f"Serial number {serial_number} already allocated for issuer {issuer!r}"
        )


__all__ = [
    "CertLifecycleError",
    "CryptoProviderError",
    "DuplicateSerialNumberError",
    "InvalidCsrSignatureError",
    "InvalidSubjectError",
]
