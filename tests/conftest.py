"""Pytest configuration and shared fixtures for all tests.

This module provides shared test fixtures including:
- A wallet provider PKI (root, intermediate, leaf) and a second, untrusted one
- EC and RSA merchant credentials
- Signed and encrypted sample tokens
"""

import pytest

from tests.fixtures.token_fixtures import SAMPLE_PAYLOAD, Merchant, SampleToken, TokenBackend
from wallet_token.config import DEFAULT_CONFIG, VerifierConfig
from wallet_token.domain.container import SignatureContainer, parse_signature_container
from wallet_token.domain.envelope import TokenEnvelope
from wallet_token.domain.schemes import KeyKind, Scheme


@pytest.fixture(scope="session")
def backend() -> TokenBackend:
    """Wallet provider whose root is configured as trusted."""
    return TokenBackend.generate()


@pytest.fixture(scope="session")
def other_backend() -> TokenBackend:
    """Independent wallet provider with its own root."""
    return TokenBackend.generate()


@pytest.fixture(scope="session")
def rsa_backend() -> TokenBackend:
    """Wallet provider whose leaf signs with an RSA key."""
    return TokenBackend.generate(leaf_key_kind=KeyKind.RSA)


@pytest.fixture(scope="session")
def merchant(backend: TokenBackend) -> Merchant:
    """EC merchant credentials."""
    return backend.generate_merchant()


@pytest.fixture(scope="session")
def rsa_merchant(backend: TokenBackend) -> Merchant:
    """RSA merchant credentials."""
    return backend.generate_merchant(key_kind=KeyKind.RSA)


@pytest.fixture
def config(backend: TokenBackend) -> VerifierConfig:
    """Default config trusting the backend root."""
    return DEFAULT_CONFIG.merge(trusted_root=backend.ca_certificate)


@pytest.fixture
def sample_token(backend: TokenBackend, merchant: Merchant) -> SampleToken:
    """Freshly signed EC_v1 token."""
    return backend.encrypt_and_sign(SAMPLE_PAYLOAD, merchant)


@pytest.fixture
def rsa_sample_token(backend: TokenBackend, rsa_merchant: Merchant) -> SampleToken:
    """Freshly signed RSA_v1 token."""
    return backend.encrypt_and_sign(SAMPLE_PAYLOAD, rsa_merchant, scheme=Scheme.RSA_V1)


@pytest.fixture
def envelope(sample_token: SampleToken) -> TokenEnvelope:
    """Decoded EC_v1 sample token."""
    return TokenEnvelope.from_dict(sample_token.token)


@pytest.fixture
def container(envelope: TokenEnvelope) -> SignatureContainer:
    """Parsed signature container of the EC_v1 sample token."""
    return parse_signature_container(envelope.signature).unwrap()
