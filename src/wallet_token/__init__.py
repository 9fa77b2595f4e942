"""Verification and decryption of wallet payment tokens."""

from wallet_token.config import DEFAULT_CONFIG, Settings, VerifierConfig, load_settings
from wallet_token.domain import (
    AesKeyError,
    SignatureError,
    TokenEngine,
    TokenEnvelope,
    TokenError,
    TokenFormatError,
)

__all__ = [
    "DEFAULT_CONFIG",
    "Settings",
    "VerifierConfig",
    "load_settings",
    "TokenEngine",
    "TokenEnvelope",
    "TokenError",
    "TokenFormatError",
    "SignatureError",
    "AesKeyError",
]
