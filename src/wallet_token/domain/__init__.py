"""Wallet token domain layer.

This package contains the token model, the signature verification gates,
payload decryption and key recovery for wallet payment tokens.
"""

from wallet_token.domain.certificates import CertificateBundle, extract_certificates
from wallet_token.domain.chain import verify_root_certificate, verify_x509_chain
from wallet_token.domain.container import SignatureContainer, parse_signature_container
from wallet_token.domain.encryption import decrypt_aes, encrypt_aes
from wallet_token.domain.engine import TokenEngine
from wallet_token.domain.envelope import TokenEnvelope, WireToken
from wallet_token.domain.exceptions import (
    AesKeyError,
    AesKeyFailure,
    CertificateError,
    PrivateKeyError,
    SignatureError,
    SignatureFailure,
    TokenError,
    TokenFormatError,
)
from wallet_token.domain.result import Err, Ok, Result
from wallet_token.domain.schemes import KeyKind, Scheme
from wallet_token.domain.signature import (
    SignatureVerifier,
    validate_signature,
    verify_signed_time,
)

__all__ = [
    # Token model
    "TokenEnvelope",
    "WireToken",
    "Scheme",
    "KeyKind",
    # Exceptions
    "TokenError",
    "TokenFormatError",
    "SignatureError",
    "SignatureFailure",
    "AesKeyError",
    "AesKeyFailure",
    "CertificateError",
    "PrivateKeyError",
    # Results
    "Ok",
    "Err",
    "Result",
    # Signature verification
    "SignatureContainer",
    "parse_signature_container",
    "CertificateBundle",
    "extract_certificates",
    "verify_root_certificate",
    "verify_x509_chain",
    "validate_signature",
    "verify_signed_time",
    "SignatureVerifier",
    # Encryption
    "encrypt_aes",
    "decrypt_aes",
    # Facade
    "TokenEngine",
]
