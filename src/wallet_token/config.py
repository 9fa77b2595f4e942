"""Configuration management for the wallet token engine.

Two layers:

- Settings: environment-driven options (pydantic-settings), read once by
  the embedding application.
- VerifierConfig: the immutable option set the engine runs against. The
  default value covers the standard scheme; callers merge overrides into a
  new value instead of mutating it.
"""

import re
from pathlib import Path
from typing import Any, Optional, Union

from cryptography import x509
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

OID_LEAF_CERTIFICATE = "1.2.840.113635.100.6.29"
OID_INTERMEDIATE_CERTIFICATE = "1.2.840.113635.100.6.2.14"
OID_MERCHANT_IDENTIFIER = "1.2.840.113635.100.6.32"
REPLAY_THRESHOLD_SECONDS = 300

_OID_PATTERN = re.compile(r"^[0-2](\.(0|[1-9][0-9]*))+$")


def load_certificate(material: Union[bytes, str, x509.Certificate]) -> x509.Certificate:
    """Load a certificate given as PEM/DER bytes, PEM text, or a certificate.

    Raises:
        ValueError: If the material is not a parseable certificate
    """
    if isinstance(material, x509.Certificate):
        return material
    if isinstance(material, str):
        material = material.encode("ascii")
    if b"-----BEGIN CERTIFICATE-----" in material:
        return x509.load_pem_x509_certificate(material)
    return x509.load_der_x509_certificate(material)


class VerifierConfig(BaseModel):
    """Immutable options for signature verification and key agreement.

    Attributes:
        trusted_root: Root certificate the token's chain must end in
        oid_leaf: Extension OID marking the leaf certificate
        oid_intermediate: Extension OID marking the intermediate certificate
        oid_merchant_identifier: Extension OID holding the merchant id
        replay_threshold_seconds: Allowed skew between now and the signing time
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    trusted_root: Optional[x509.Certificate] = Field(
        default=None, description="Trusted root certificate"
    )
    oid_leaf: str = Field(default=OID_LEAF_CERTIFICATE)
    oid_intermediate: str = Field(default=OID_INTERMEDIATE_CERTIFICATE)
    oid_merchant_identifier: str = Field(default=OID_MERCHANT_IDENTIFIER)
    replay_threshold_seconds: int = Field(default=REPLAY_THRESHOLD_SECONDS, ge=0)

    @field_validator("trusted_root", mode="before")
    @classmethod
    def _load_trusted_root(cls, value: Any) -> Any:
        if value is None or isinstance(value, x509.Certificate):
            return value
        if isinstance(value, (bytes, str)):
            return load_certificate(value)
        raise ValueError("trusted_root must be PEM/DER bytes, PEM text or a certificate")

    @field_validator("oid_leaf", "oid_intermediate", "oid_merchant_identifier")
    @classmethod
    def _check_oid(cls, value: str) -> str:
        if not _OID_PATTERN.match(value):
            raise ValueError(f"Invalid object identifier: {value}")
        return value

    def merge(self, **overrides: Any) -> "VerifierConfig":
        """Return a new config with the given options replaced.

        Raises:
            ValueError: If an option is unknown or a value is invalid
        """
        unknown = set(overrides) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown config options: {', '.join(sorted(unknown))}")

        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(overrides)
        try:
            return type(self).model_validate(values)
        except ValidationError as e:
            raise ValueError(f"Invalid config override: {e}") from e

    @classmethod
    def from_settings(cls, settings: "Settings") -> "VerifierConfig":
        """Build a config from environment settings.

        Reads the trusted root PEM file if a path is configured.
        """
        trusted_root = None
        if settings.trusted_root_pem_path:
            trusted_root = Path(settings.trusted_root_pem_path).read_bytes()

        return cls(
            trusted_root=trusted_root,
            oid_leaf=settings.oid_leaf,
            oid_intermediate=settings.oid_intermediate,
            oid_merchant_identifier=settings.oid_merchant_identifier,
            replay_threshold_seconds=settings.replay_threshold_seconds,
        )


DEFAULT_CONFIG = VerifierConfig()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Trust
    trusted_root_pem_path: Optional[str] = None

    # Role and merchant object identifiers
    oid_leaf: str = OID_LEAF_CERTIFICATE
    oid_intermediate: str = OID_INTERMEDIATE_CERTIFICATE
    oid_merchant_identifier: str = OID_MERCHANT_IDENTIFIER

    # Replay window
    replay_threshold_seconds: int = REPLAY_THRESHOLD_SECONDS

    # Logging
    log_level: str = "INFO"
    log_format_json: bool = True

    model_config = SettingsConfigDict(
        env_prefix="WALLET_TOKEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


def load_settings() -> Settings:
    """Read settings from the environment."""
    return Settings()
