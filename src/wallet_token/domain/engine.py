"""Token engine facade.

TokenEngine ties signature verification, key recovery and payload
decryption together for a single token:

    engine = TokenEngine.from_token(token_json, config=config)
    engine.verify_signature()              # raises SignatureError
    plaintext = engine.decrypt_aes(key)    # raises AesKeyError

or, in one step from the merchant key material:

    plaintext = engine.decrypt(private_key=key, certificate=merchant_cert)
"""

from datetime import datetime
from typing import Any, Mapping, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from wallet_token.config import DEFAULT_CONFIG, VerifierConfig
from wallet_token.domain import key_agreement
from wallet_token.domain.certificates import CertificateBundle
from wallet_token.domain.encryption import decrypt_aes
from wallet_token.domain.envelope import TokenEnvelope
from wallet_token.domain.exceptions import SignatureError
from wallet_token.domain.schemes import KeyKind, Scheme
from wallet_token.domain.signature import SignatureVerifier
from wallet_token.logging_config import get_logger

logger = get_logger(__name__)


class TokenEngine:
    """Verifies and decrypts one payment token.

    Args:
        envelope: Decoded token
        config: Verification options; defaults to DEFAULT_CONFIG
        verifier: Signature verifier; defaults to one built from config
    """

    def __init__(
        self,
        envelope: TokenEnvelope,
        config: VerifierConfig = DEFAULT_CONFIG,
        verifier: Optional[SignatureVerifier] = None,
    ):
        self.envelope = envelope
        self.config = config
        self.verifier = verifier if verifier is not None else SignatureVerifier(config=config)

    @classmethod
    def from_token(
        cls,
        token: Union[Mapping[str, Any], str, bytes],
        config: VerifierConfig = DEFAULT_CONFIG,
    ) -> "TokenEngine":
        """Build an engine from a wire token (mapping or JSON text).

        Raises:
            TokenFormatError: If the token cannot be decoded
        """
        if isinstance(token, (str, bytes)):
            envelope = TokenEnvelope.from_json(token)
        else:
            envelope = TokenEnvelope.from_dict(token)
        return cls(envelope, config=config)

    @property
    def scheme(self) -> Scheme:
        return self.envelope.scheme

    def verify_signature(self, now: Optional[datetime] = None) -> CertificateBundle:
        """Verify the token signature, chain of trust and signing time.

        Args:
            now: Reference time for the replay window; defaults to the
                verifier's clock

        Returns:
            The validated leaf, intermediate and root certificates

        Raises:
            SignatureError: From the first failing check
        """
        return self.verifier.verify(self.envelope, now=now).unwrap()

    def is_valid_signature(self, now: Optional[datetime] = None) -> bool:
        """Return True if verify_signature succeeds, False on SignatureError."""
        try:
            self.verify_signature(now=now)
        except SignatureError:
            return False
        return True

    def decrypt_aes(self, key: bytes) -> bytes:
        """Decrypt the payload with a caller-supplied symmetric key.

        Raises:
            AesKeyError: If the key has the wrong length or does not authenticate
        """
        return decrypt_aes(self.envelope.encrypted_data, key, self.scheme)

    def symmetric_key(
        self,
        private_key: Union[ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey],
        merchant_id: Optional[bytes] = None,
        certificate: Optional[x509.Certificate] = None,
    ) -> bytes:
        """Recover the token's symmetric key from the merchant key material.

        EC_v1 needs exactly one of merchant_id or certificate; RSA_v1 needs
        only the private key.

        Raises:
            ValueError: If the argument combination does not fit the scheme
            CertificateError: If the certificate holds no merchant id
            PrivateKeyError: If the private key cannot be used
        """
        if self.scheme.asymmetric_key_kind is KeyKind.RSA:
            return key_agreement.unwrap_symmetric_key(private_key, self.envelope.wrapped_key)

        if (merchant_id is None) == (certificate is None):
            raise ValueError("Provide exactly one of merchant_id or certificate")
        if merchant_id is None:
            merchant_id = key_agreement.merchant_id(
                certificate, oid=self.config.oid_merchant_identifier
            )
        secret = key_agreement.shared_secret(private_key, self.envelope.ephemeral_public_key)
        return key_agreement.symmetric_key(secret, merchant_id)

    def decrypt(
        self,
        symmetric_key: Optional[bytes] = None,
        private_key: Optional[Union[ec.EllipticCurvePrivateKey, rsa.RSAPrivateKey]] = None,
        merchant_id: Optional[bytes] = None,
        certificate: Optional[x509.Certificate] = None,
        now: Optional[datetime] = None,
    ) -> bytes:
        """Verify the signature, then decrypt the payload.

        Either pass the symmetric key directly, or pass the merchant private
        key (plus merchant_id or certificate for EC_v1) to derive it.

        Raises:
            ValueError: If both or neither of symmetric_key and private_key are given
            SignatureError: If verification fails
            AesKeyError: If decryption fails
        """
        if (symmetric_key is None) == (private_key is None):
            raise ValueError("Provide exactly one of symmetric_key or private_key")
        if symmetric_key is not None and (merchant_id is not None or certificate is not None):
            raise ValueError("merchant_id and certificate are only used with private_key")
        if (
            private_key is not None
            and self.scheme.asymmetric_key_kind is KeyKind.EC
            and (merchant_id is None) == (certificate is None)
        ):
            raise ValueError("Provide exactly one of merchant_id or certificate")

        self.verify_signature(now=now)

        if symmetric_key is None:
            symmetric_key = self.symmetric_key(
                private_key, merchant_id=merchant_id, certificate=certificate
            )

        plaintext = self.decrypt_aes(symmetric_key)
        logger.info(
            "token_decrypted",
            version=self.scheme.value,
            transaction_id=self.envelope.transaction_id,
        )
        return plaintext
