"""Unit tests for the token engine facade."""

import base64
import json
from datetime import timedelta

import pytest

from tests.fixtures.token_fixtures import SAMPLE_PAYLOAD, Merchant, SampleToken, TokenBackend
from wallet_token import TokenEngine
from wallet_token.domain.exceptions import (
    AesKeyError,
    AesKeyFailure,
    PrivateKeyError,
    SignatureError,
    SignatureFailure,
    TokenFormatError,
)
from wallet_token.domain.schemes import Scheme
from wallet_token.domain.signature import SignatureVerifier


def _engine(sample: SampleToken, config) -> TokenEngine:
    return TokenEngine.from_token(sample.token, config=config)


class TestFromToken:
    """Tests for building an engine from a wire token."""

    def test_from_mapping(self, sample_token: SampleToken, config) -> None:
        """Test building from a parsed JSON object."""
        engine = TokenEngine.from_token(sample_token.token, config=config)

        assert engine.scheme is Scheme.EC_V1
        assert engine.config is config

    def test_from_json_text(self, sample_token: SampleToken, config) -> None:
        """Test building from JSON text and bytes."""
        text = json.dumps(sample_token.token)

        assert TokenEngine.from_token(text).scheme is Scheme.EC_V1
        assert TokenEngine.from_token(text.encode("utf-8")).scheme is Scheme.EC_V1

    def test_malformed_token(self) -> None:
        """Test that structural errors surface as TokenFormatError."""
        with pytest.raises(TokenFormatError):
            TokenEngine.from_token({"version": "EC_v1"})


class TestVerifySignature:
    """Tests for signature verification through the engine."""

    def test_valid_signature(
        self, sample_token: SampleToken, backend: TokenBackend, config
    ) -> None:
        """Test that a fresh token verifies and returns its certificates."""
        bundle = _engine(sample_token, config).verify_signature()

        assert bundle.leaf == backend.leaf_certificate
        assert bundle.root == backend.ca_certificate

    def test_is_valid_signature(self, sample_token: SampleToken, config) -> None:
        """Test the boolean form of verification."""
        assert _engine(sample_token, config).is_valid_signature() is True

    def test_untrusted_root(
        self, sample_token: SampleToken, other_backend: TokenBackend, config
    ) -> None:
        """Test that a token from another provider is rejected."""
        engine = _engine(sample_token, config.merge(trusted_root=other_backend.ca_certificate))

        with pytest.raises(SignatureError) as exc_info:
            engine.verify_signature()

        assert exc_info.value.reason is SignatureFailure.ROOT_NOT_TRUSTED
        assert engine.is_valid_signature() is False

    def test_missing_signature(
        self, backend: TokenBackend, merchant: Merchant, config
    ) -> None:
        """Test that an unsigned token never verifies."""
        sample = backend.encrypt_and_sign(SAMPLE_PAYLOAD, merchant, include_signature=False)
        engine = _engine(sample, config)

        with pytest.raises(SignatureError, match="no signature present"):
            engine.verify_signature()
        assert engine.is_valid_signature() is False

    def test_invalid_container(self, sample_token: SampleToken, config) -> None:
        """Test that a signature that is not a container is rejected."""
        token = dict(sample_token.token, signature="AAECAw==")

        with pytest.raises(SignatureError) as exc_info:
            TokenEngine.from_token(token, config=config).verify_signature()

        assert exc_info.value.reason is SignatureFailure.INVALID_CONTAINER

    def test_corrupted_embedded_certificate(self, sample_token: SampleToken, config) -> None:
        """Test that a certificate that cannot be loaded makes the signature invalid."""
        signature = base64.b64decode(sample_token.token["signature"])
        corrupted = signature.replace(b"\xa0\x03\x02\x01\x02", b"\xa0\x03\x02\x01\x58", 1)
        token = dict(sample_token.token, signature=base64.b64encode(corrupted).decode("ascii"))
        engine = TokenEngine.from_token(token, config=config)

        assert engine.is_valid_signature() is False
        with pytest.raises(SignatureError) as exc_info:
            engine.verify_signature()
        assert exc_info.value.reason is SignatureFailure.INVALID_CONTAINER

    def test_expired_token(self, sample_token: SampleToken, container, config) -> None:
        """Test that verification honours the given reference time."""
        engine = _engine(sample_token, config)
        later = container.signing_time + timedelta(seconds=config.replay_threshold_seconds + 1)

        assert engine.is_valid_signature(now=container.signing_time) is True
        assert engine.is_valid_signature(now=later) is False

    def test_is_valid_signature_propagates_other_errors(
        self, sample_token: SampleToken, config
    ) -> None:
        """Test that only signature errors are turned into False."""

        def broken_extract(container, cfg):
            raise RuntimeError("unexpected")

        engine = _engine(sample_token, config)
        engine.verifier = SignatureVerifier(config=config, extract=broken_extract)

        with pytest.raises(RuntimeError, match="unexpected"):
            engine.is_valid_signature()


class TestDecryptEC:
    """Tests for EC_v1 decryption."""

    def test_decrypt_aes_with_symmetric_key(self, sample_token: SampleToken, config) -> None:
        """Test decrypting with the known symmetric key."""
        engine = _engine(sample_token, config)

        assert engine.decrypt_aes(sample_token.symmetric_key) == SAMPLE_PAYLOAD

    def test_symmetric_key_from_certificate(
        self, sample_token: SampleToken, merchant: Merchant, config
    ) -> None:
        """Test deriving the key from the merchant certificate."""
        engine = _engine(sample_token, config)

        key = engine.symmetric_key(merchant.private_key, certificate=merchant.certificate)

        assert key == sample_token.symmetric_key

    def test_decrypt_with_certificate(
        self, sample_token: SampleToken, merchant: Merchant, config
    ) -> None:
        """Test the full flow from merchant private key and certificate."""
        engine = _engine(sample_token, config)

        plaintext = engine.decrypt(
            private_key=merchant.private_key, certificate=merchant.certificate
        )

        assert json.loads(plaintext)["applicationPrimaryAccountNumber"] == "4111111111111111"

    def test_decrypt_with_merchant_id(
        self, sample_token: SampleToken, merchant: Merchant, config
    ) -> None:
        """Test the full flow from merchant private key and raw merchant id."""
        engine = _engine(sample_token, config)

        plaintext = engine.decrypt(
            private_key=merchant.private_key, merchant_id=merchant.merchant_id
        )

        assert plaintext == SAMPLE_PAYLOAD

    def test_decrypt_with_symmetric_key(self, sample_token: SampleToken, config) -> None:
        """Test the full flow with a known symmetric key."""
        engine = _engine(sample_token, config)

        assert engine.decrypt(symmetric_key=sample_token.symmetric_key) == SAMPLE_PAYLOAD

    def test_decrypt_wrong_merchant(
        self, sample_token: SampleToken, backend: TokenBackend, config
    ) -> None:
        """Test that another merchant's key fails authentication."""
        stranger = backend.generate_merchant(identifier="merchant.com.example.other")
        engine = _engine(sample_token, config)

        with pytest.raises(AesKeyError) as exc_info:
            engine.decrypt(private_key=stranger.private_key, certificate=stranger.certificate)

        assert exc_info.value.reason is AesKeyFailure.AUTHENTICATION_FAILED

    def test_decrypt_verifies_first(
        self, sample_token: SampleToken, merchant: Merchant, other_backend: TokenBackend, config
    ) -> None:
        """Test that an untrusted token is not decrypted."""
        engine = _engine(sample_token, config.merge(trusted_root=other_backend.ca_certificate))

        with pytest.raises(SignatureError):
            engine.decrypt(private_key=merchant.private_key, certificate=merchant.certificate)

    def test_rsa_key_for_ec_token(
        self, sample_token: SampleToken, rsa_merchant: Merchant, config
    ) -> None:
        """Test that an RSA key cannot decrypt an EC_v1 token."""
        engine = _engine(sample_token, config)

        with pytest.raises(PrivateKeyError):
            engine.decrypt(private_key=rsa_merchant.private_key, merchant_id=b"\x00" * 32)


class TestDecryptRSA:
    """Tests for RSA_v1 decryption."""

    def test_verify_and_decrypt(
        self, rsa_sample_token: SampleToken, rsa_merchant: Merchant, config
    ) -> None:
        """Test the full flow from the merchant RSA key."""
        engine = _engine(rsa_sample_token, config)

        assert engine.scheme is Scheme.RSA_V1
        assert engine.decrypt(private_key=rsa_merchant.private_key) == SAMPLE_PAYLOAD

    def test_symmetric_key_is_unwrapped(
        self, rsa_sample_token: SampleToken, rsa_merchant: Merchant, config
    ) -> None:
        """Test that the unwrapped key equals the issuer's key."""
        engine = _engine(rsa_sample_token, config)

        key = engine.symmetric_key(rsa_merchant.private_key)

        assert key == rsa_sample_token.symmetric_key
        assert len(key) == 16

    def test_ec_key_for_rsa_token(
        self, rsa_sample_token: SampleToken, merchant: Merchant, config
    ) -> None:
        """Test that an EC key cannot decrypt an RSA_v1 token."""
        engine = _engine(rsa_sample_token, config)

        with pytest.raises(PrivateKeyError):
            engine.decrypt(private_key=merchant.private_key)


class TestDecryptArguments:
    """Tests for argument validation in decrypt."""

    def test_neither_key(self, sample_token: SampleToken, config) -> None:
        """Test that a key source is required."""
        with pytest.raises(ValueError, match="exactly one of symmetric_key or private_key"):
            _engine(sample_token, config).decrypt()

    def test_both_keys(self, sample_token: SampleToken, merchant: Merchant, config) -> None:
        """Test that only one key source is accepted."""
        with pytest.raises(ValueError, match="exactly one of symmetric_key or private_key"):
            _engine(sample_token, config).decrypt(
                symmetric_key=sample_token.symmetric_key,
                private_key=merchant.private_key,
                certificate=merchant.certificate,
            )

    def test_merchant_arguments_with_symmetric_key(
        self, sample_token: SampleToken, merchant: Merchant, config
    ) -> None:
        """Test that merchant data is rejected alongside a symmetric key."""
        with pytest.raises(ValueError, match="only used with private_key"):
            _engine(sample_token, config).decrypt(
                symmetric_key=sample_token.symmetric_key, merchant_id=merchant.merchant_id
            )

    def test_ec_requires_merchant_data(
        self, sample_token: SampleToken, merchant: Merchant, config
    ) -> None:
        """Test that EC_v1 needs a merchant id or certificate."""
        with pytest.raises(ValueError, match="exactly one of merchant_id or certificate"):
            _engine(sample_token, config).decrypt(private_key=merchant.private_key)

    def test_ec_rejects_both_merchant_sources(
        self, sample_token: SampleToken, merchant: Merchant, config
    ) -> None:
        """Test that EC_v1 takes only one merchant id source."""
        with pytest.raises(ValueError, match="exactly one of merchant_id or certificate"):
            _engine(sample_token, config).decrypt(
                private_key=merchant.private_key,
                merchant_id=merchant.merchant_id,
                certificate=merchant.certificate,
            )

    def test_argument_errors_precede_verification(
        self, sample_token: SampleToken, other_backend: TokenBackend, config
    ) -> None:
        """Test that argument validation happens before signature checks."""
        engine = _engine(sample_token, config.merge(trusted_root=other_backend.ca_certificate))

        with pytest.raises(ValueError):
            engine.decrypt()
