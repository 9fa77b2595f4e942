"""Authenticated symmetric decryption of the token payload.

The payload is AES-GCM ciphertext with the 16-byte authentication tag
appended. The IV is not transmitted: it is all zeros, which is only safe
because every symmetric key is derived for a single token.
"""

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from wallet_token.domain.exceptions import AesKeyError, AesKeyFailure
from wallet_token.domain.schemes import Scheme
from wallet_token.logging_config import get_logger

logger = get_logger(__name__)

_AUTHENTICATION_FAILED = "Failed to decrypt data - invalid key or corrupted data"


def _check_key(key: bytes, scheme: Scheme) -> None:
    expected = scheme.parameters.key_length
    if len(key) != expected:
        raise AesKeyError(
            AesKeyFailure.INVALID_KEY_LENGTH,
            f"{scheme.symmetric_algorithm} key must be {expected} bytes, got {len(key)}",
        )


def encrypt_aes(plaintext: bytes, key: bytes, scheme: Scheme = Scheme.EC_V1) -> bytes:
    """Encrypt a payload the way the token issuer does.

    Args:
        plaintext: Data to encrypt (may be empty)
        key: Symmetric key of the scheme's key length
        scheme: Token scheme

    Returns:
        Ciphertext with the authentication tag appended

    Raises:
        AesKeyError: If the key length does not match the scheme
    """
    _check_key(key, scheme)
    parameters = scheme.parameters
    iv = b"\x00" * parameters.iv_length
    return AESGCM(key).encrypt(iv, plaintext, None)


def decrypt_aes(encrypted_data: bytes, key: bytes, scheme: Scheme = Scheme.EC_V1) -> bytes:
    """Decrypt and authenticate a token payload.

    Args:
        encrypted_data: Ciphertext followed by the authentication tag
        key: Symmetric key of the scheme's key length
        scheme: Token scheme

    Returns:
        Decrypted plaintext bytes

    Raises:
        AesKeyError: INVALID_KEY_LENGTH if the key has the wrong length (no
            decryption is attempted); AUTHENTICATION_FAILED if the tag does
            not verify

    Security notes:
        - A wrong key and tampered data produce the same error
        - Payloads shorter than the tag cannot authenticate and are reported
          the same way
    """
    _check_key(key, scheme)
    parameters = scheme.parameters

    if len(encrypted_data) < parameters.tag_length:
        logger.warning("aes_decryption_failed", algorithm=parameters.symmetric_algorithm)
        raise AesKeyError(AesKeyFailure.AUTHENTICATION_FAILED, _AUTHENTICATION_FAILED)

    ciphertext = encrypted_data[: -parameters.tag_length]
    tag = encrypted_data[-parameters.tag_length :]
    iv = b"\x00" * parameters.iv_length

    try:
        plaintext = AESGCM(key).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as e:
        # Don't expose detailed error messages for security
        logger.warning("aes_decryption_failed", algorithm=parameters.symmetric_algorithm)
        raise AesKeyError(AesKeyFailure.AUTHENTICATION_FAILED, _AUTHENTICATION_FAILED) from e

    logger.debug(
        "aes_decrypted",
        algorithm=parameters.symmetric_algorithm,
        ciphertext_length=len(encrypted_data),
        plaintext_length=len(plaintext),
    )
    return plaintext
