"""Custom exceptions for the wallet token engine."""

from enum import Enum


class TokenError(Exception):
    """Base exception for token-related errors."""

    pass


class TokenFormatError(TokenError):
    """
    Raised when a wire token cannot be decoded into a TokenEnvelope.

    Examples:
    - Missing required field (version, data, header.transactionId)
    - Invalid base64 in data, signature or a header key
    - Invalid hex in transactionId or applicationData
    - Unsupported version
    """

    pass


class SignatureFailure(str, Enum):
    """Classified reasons for a failed signature verification."""

    NO_SIGNATURE = "no_signature"
    INVALID_CONTAINER = "invalid_container"
    NO_LEAF = "no_leaf"
    NO_INTERMEDIATE = "no_intermediate"
    NO_UNIQUE_LEAF = "no_unique_leaf"
    NO_UNIQUE_INTERMEDIATE = "no_unique_intermediate"
    TOO_MANY_CERTIFICATES = "too_many_certificates"
    NO_ROOT = "no_root"
    ROOT_NOT_TRUSTED = "root_not_trusted"
    INVALID_CHAIN = "invalid_chain"
    SIGNATURE_MISMATCH = "signature_mismatch"
    SIGNED_TIME = "signed_time"


class SignatureError(TokenError):
    """
    Raised when a token's signature cannot be verified.

    This is a TERMINAL error. Cryptographic failures are not transient and
    the token must be rejected.

    Attributes:
        reason: Which verification gate failed
    """

    def __init__(self, reason: SignatureFailure, message: str):
        super().__init__(message)
        self.reason = reason


class AesKeyFailure(str, Enum):
    """Classified reasons for a failed symmetric decryption."""

    INVALID_KEY_LENGTH = "invalid_key_length"
    AUTHENTICATION_FAILED = "authentication_failed"


class AesKeyError(TokenError):
    """
    Raised when symmetric decryption fails.

    A wrong key and tampered ciphertext both surface as AUTHENTICATION_FAILED
    with the same message.
    """

    def __init__(self, reason: AesKeyFailure, message: str):
        super().__init__(message)
        self.reason = reason


class CertificateError(TokenError):
    """Raised when a merchant certificate lacks the data needed for key agreement."""

    pass


class PrivateKeyError(TokenError):
    """Raised when the merchant private key cannot be used for the token's scheme."""

    pass
