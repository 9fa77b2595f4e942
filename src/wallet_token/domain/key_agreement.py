"""Symmetric key recovery from the merchant's private key material.

EC_v1:
    1. ECDH between the merchant private key and the token's ephemeral
       public key yields a shared secret.
    2. NIST SP 800-56A single-step KDF (Concat KDF, SHA-256) over the shared
       secret with otherInfo = len("id-aes256-GCM") || "id-aes256-GCM" ||
       "Apple" || merchant id yields the 32-byte symmetric key.

RSA_v1:
    The symmetric key is RSA-OAEP (SHA-256) wrapped in the token header.

The merchant id is the SHA-256 of the merchant identifier, stored hex-encoded
in a custom extension of the merchant certificate.
"""

from typing import Optional

from asn1crypto import core
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.kdf.concatkdf import ConcatKDFHash

from wallet_token.config import OID_MERCHANT_IDENTIFIER
from wallet_token.domain.exceptions import CertificateError, PrivateKeyError
from wallet_token.logging_config import get_logger

logger = get_logger(__name__)

KDF_ALGORITHM = b"id-aes256-GCM"
KDF_PARTY_U_INFO = b"Apple"


def merchant_id(certificate: x509.Certificate, oid: str = OID_MERCHANT_IDENTIFIER) -> bytes:
    """Extract the raw merchant id from a merchant certificate.

    The extension value is a DER string (UTF8String, IA5String or similar)
    holding the hex-encoded id.

    Raises:
        CertificateError: If the extension is absent or does not hold hex
    """
    try:
        extension = certificate.extensions.get_extension_for_oid(x509.ObjectIdentifier(oid))
    except x509.ExtensionNotFound as e:
        raise CertificateError("no merchant identifier in certificate") from e

    value = extension.value
    raw = value.value if isinstance(value, x509.UnrecognizedExtension) else value.public_bytes()
    try:
        decoded = core.load(raw, strict=True).native
    except (ValueError, TypeError) as e:
        raise CertificateError(f"merchant identifier is not a DER string: {e}") from e

    if isinstance(decoded, bytes):
        decoded = decoded.decode("ascii", errors="replace")
    if not isinstance(decoded, str) or not decoded:
        raise CertificateError("merchant identifier is not hex-encoded")
    try:
        return bytes.fromhex(decoded)
    except ValueError as e:
        raise CertificateError("merchant identifier is not hex-encoded") from e


def shared_secret(
    private_key: ec.EllipticCurvePrivateKey, ephemeral_public_key: Optional[bytes]
) -> bytes:
    """Compute the ECDH shared secret with the token's ephemeral public key.

    Args:
        private_key: Merchant EC private key
        ephemeral_public_key: DER SubjectPublicKeyInfo from the token header

    Raises:
        PrivateKeyError: If the key is not an EC key, the ephemeral key is
            missing or malformed, or the curves differ
    """
    if not isinstance(private_key, ec.EllipticCurvePrivateKey):
        raise PrivateKeyError("EC_v1 tokens require an EC private key")
    if not ephemeral_public_key:
        raise PrivateKeyError("token has no ephemeral public key")

    try:
        public_key = serialization.load_der_public_key(ephemeral_public_key)
    except ValueError as e:
        raise PrivateKeyError(f"invalid ephemeral public key: {e}") from e

    if not isinstance(public_key, ec.EllipticCurvePublicKey):
        raise PrivateKeyError("ephemeral public key is not an EC key")
    if public_key.curve.name != private_key.curve.name:
        raise PrivateKeyError(
            f"curve mismatch: private key uses {private_key.curve.name}, "
            f"ephemeral key uses {public_key.curve.name}"
        )

    return private_key.exchange(ec.ECDH(), public_key)


def symmetric_key(shared_secret: bytes, merchant_id: bytes) -> bytes:
    """Derive the 32-byte EC_v1 symmetric key from the shared secret."""
    other_info = bytes([len(KDF_ALGORITHM)]) + KDF_ALGORITHM + KDF_PARTY_U_INFO + merchant_id
    kdf = ConcatKDFHash(algorithm=hashes.SHA256(), length=32, otherinfo=other_info)
    key = kdf.derive(shared_secret)
    logger.debug("symmetric_key_derived", key_length=len(key))
    return key


def unwrap_symmetric_key(private_key: rsa.RSAPrivateKey, wrapped_key: Optional[bytes]) -> bytes:
    """Unwrap the RSA_v1 symmetric key.

    Raises:
        PrivateKeyError: If the key is not an RSA key, the wrapped key is
            missing, or unwrapping fails
    """
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise PrivateKeyError("RSA_v1 tokens require an RSA private key")
    if not wrapped_key:
        raise PrivateKeyError("token has no wrapped key")

    try:
        return private_key.decrypt(
            wrapped_key,
            padding.OAEP(
                mgf=padding.MGF1(algorithm=hashes.SHA256()),
                algorithm=hashes.SHA256(),
                label=None,
            ),
        )
    except ValueError as e:
        raise PrivateKeyError("failed to unwrap symmetric key") from e
