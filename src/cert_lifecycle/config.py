"""Lifecycle settings — policy knobs shared by every issuance operation.

Settings are an immutable pydantic model so that a single instance can be
passed around freely. Values can be overridden from the environment using
``CERT_LIFECYCLE_<FIELD>`` variables, for example::

    CERT_LIFECYCLE_CRL_DISTRIBUTION_URI=http://pki.internal/root.crl
    CERT_LIFECYCLE_END_ENTITY_VALIDITY_DAYS=90
"""
from __future__ import annotations

import os
from typing import Literal, Mapping, Optional

from cryptography.hazmat.primitives import hashes
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "CERT_LIFECYCLE_"

_HASH_MAP: dict[str, type[hashes.HashAlgorithm]] = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


class LifecycleSettings(BaseModel):
    """Policy defaults for key generation, issuance and CRL maintenance."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    key_size: int = Field(default=2048, ge=2048)
    public_exponent: int = Field(default=65537, ge=3)
    ca_validity_days: int = Field(default=3650, gt=0)
    end_entity_validity_days: int = Field(default=365, gt=0)
    crl_next_update_days: int = Field(default=30, gt=0)
    crl_distribution_uri: Optional[str] = "http://example.com/crl"
    hash_algorithm: Literal["sha256", "sha384", "sha512"] = "sha256"

    def signature_hash(self) -> hashes.HashAlgorithm:
        """Return a fresh hash algorithm instance for signing."""
        return _HASH_MAP[self.hash_algorithm]()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LifecycleSettings":
        """Build settings from ``CERT_LIFECYCLE_*`` environment variables.

        Unset variables keep their defaults. Raises
        :class:`pydantic.ValidationError` for values that fail validation.
        """
        source = os.environ if environ is None else environ
        overrides: dict[str, str] = {}
        for name in cls.model_fields:
            value = source.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                overrides[name] = value
        return cls.model_validate(overrides)


DEFAULT_SETTINGS = LifecycleSettings()

__all__ = ["DEFAULT_SETTINGS", "ENV_PREFIX", "LifecycleSettings"]
