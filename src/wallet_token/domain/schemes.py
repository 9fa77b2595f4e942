"""Token schemes and their algorithm parameters.

A token's ``version`` selects one Scheme. Each scheme carries the parameters
that the signature check and the symmetric decryption depend on:

- EC_v1: merchant key is an EC key; the symmetric key is derived via ECDH
  with the header's ephemeral public key; payload is AES-256-GCM.
- RSA_v1: merchant key is an RSA key; the symmetric key is unwrapped from
  the header's wrapped key; payload is AES-128-GCM.
"""

from enum import Enum
from typing import TYPE_CHECKING, Callable, NamedTuple, Optional

if TYPE_CHECKING:
    from wallet_token.domain.envelope import TokenEnvelope


class KeyKind(str, Enum):
    """Asymmetric key type expected for the merchant private key."""

    EC = "EC"
    RSA = "RSA"


class SchemeParameters(NamedTuple):
    """Algorithm parameters for a token scheme.

    Attributes:
        symmetric_algorithm: OpenSSL-style cipher name (e.g., "aes-256-gcm")
        key_length: Required symmetric key length in bytes
        tag_length: Length of the GCM authentication tag appended to the payload
        iv_length: Length of the all-zero IV
        asymmetric_key_kind: Key type of the merchant private key
        signed_content: Builds the bytes covered by the detached signature
    """

    symmetric_algorithm: str
    key_length: int
    tag_length: int
    iv_length: int
    asymmetric_key_kind: KeyKind
    signed_content: Callable[["TokenEnvelope"], bytes]


def _join(*parts: Optional[bytes]) -> bytes:
    return b"".join(part for part in parts if part is not None)


def _ec_signed_content(envelope: "TokenEnvelope") -> bytes:
    return _join(
        envelope.ephemeral_public_key,
        envelope.encrypted_data,
        envelope.transaction_id,
        envelope.application_data,
    )


def _rsa_signed_content(envelope: "TokenEnvelope") -> bytes:
    return _join(
        envelope.wrapped_key,
        envelope.encrypted_data,
        envelope.transaction_id,
        envelope.application_data,
    )


class Scheme(str, Enum):
    """Token scheme identified by the wire ``version`` field."""

    EC_V1 = "EC_v1"
    RSA_V1 = "RSA_v1"

    @property
    def parameters(self) -> SchemeParameters:
        return _PARAMETERS[self]

    @property
    def symmetric_algorithm(self) -> str:
        return self.parameters.symmetric_algorithm

    @property
    def asymmetric_key_kind(self) -> KeyKind:
        return self.parameters.asymmetric_key_kind

    @classmethod
    def from_version(cls, version: str) -> "Scheme":
        """Look up a scheme by its wire version string.

        Raises:
            ValueError: If the version is not supported
        """
        for scheme in cls:
            if scheme.value == version:
                return scheme
        supported = ", ".join(scheme.value for scheme in cls)
        raise ValueError(f"Unsupported version: {version}. Supported versions: {supported}")


_PARAMETERS: dict[Scheme, SchemeParameters] = {
    Scheme.EC_V1: SchemeParameters(
        symmetric_algorithm="aes-256-gcm",
        key_length=32,
        tag_length=16,
        iv_length=16,
        asymmetric_key_kind=KeyKind.EC,
        signed_content=_ec_signed_content,
    ),
    Scheme.RSA_V1: SchemeParameters(
        symmetric_algorithm="aes-128-gcm",
        key_length=16,
        tag_length=16,
        iv_length=16,
        asymmetric_key_kind=KeyKind.RSA,
        signed_content=_rsa_signed_content,
    ),
}
