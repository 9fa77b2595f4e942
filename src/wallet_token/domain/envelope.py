"""Wire token parsing.

The wire token is a JSON object:

    {
      "version": "EC_v1",
      "data": "<base64 ciphertext + tag>",
      "signature": "<base64 DER PKCS #7 detached signature>",
      "header": {
        "transactionId": "<hex>",
        "applicationData": "<hex, optional>",
        "ephemeralPublicKey": "<base64 DER, EC_v1>",
        "wrappedKey": "<base64, RSA_v1>"
      }
    }

WireToken validates the structure; TokenEnvelope holds the decoded bytes.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from wallet_token.domain.exceptions import TokenFormatError
from wallet_token.domain.schemes import Scheme


class WireHeader(BaseModel):
    """Header section of the wire token."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    transaction_id: str = Field(..., alias="transactionId", description="Transaction id (hex)")
    application_data: Optional[str] = Field(
        None, alias="applicationData", description="Application data hash (hex)"
    )
    ephemeral_public_key: Optional[str] = Field(
        None, alias="ephemeralPublicKey", description="Ephemeral EC public key (base64 DER)"
    )
    wrapped_key: Optional[str] = Field(
        None, alias="wrappedKey", description="RSA-wrapped symmetric key (base64)"
    )
    public_key_hash: Optional[str] = Field(
        None, alias="publicKeyHash", description="Hash of the merchant public key (base64)"
    )


class WireToken(BaseModel):
    """Structural model of the wire token."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., description="Scheme identifier (e.g., EC_v1)")
    data: str = Field(..., description="Encrypted payload (base64)")
    signature: Optional[str] = Field(None, description="Detached signature (base64)")
    header: WireHeader


def _decode_base64(value: str, field_name: str) -> bytes:
    # Line breaks are common in wire tokens produced by MIME-style encoders
    compact = "".join(value.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise TokenFormatError(f"Invalid base64 in {field_name}: {e}") from e


def _decode_hex(value: str, field_name: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise TokenFormatError(f"Invalid hex in {field_name}: {e}") from e


@dataclass(frozen=True)
class TokenEnvelope:
    """Decoded payment token.

    Attributes:
        version: Token scheme
        encrypted_data: Ciphertext with the authentication tag appended
        signature: DER detached signature container, or None if absent
        transaction_id: Raw transaction id
        application_data: Raw application data, or None if none was bound
        ephemeral_public_key: DER SubjectPublicKeyInfo (EC_v1 only)
        wrapped_key: RSA-wrapped symmetric key (RSA_v1 only)
    """

    version: Scheme
    encrypted_data: bytes
    signature: Optional[bytes]
    transaction_id: bytes
    application_data: Optional[bytes] = None
    ephemeral_public_key: Optional[bytes] = None
    wrapped_key: Optional[bytes] = None

    @property
    def scheme(self) -> Scheme:
        return self.version

    @classmethod
    def from_wire(cls, wire: WireToken) -> "TokenEnvelope":
        """Decode a validated WireToken.

        Raises:
            TokenFormatError: If any field fails to decode or the version is unknown
        """
        try:
            version = Scheme.from_version(wire.version)
        except ValueError as e:
            raise TokenFormatError(str(e)) from e

        header = wire.header
        return cls(
            version=version,
            encrypted_data=_decode_base64(wire.data, "data"),
            signature=(
                _decode_base64(wire.signature, "signature")
                if wire.signature is not None
                else None
            ),
            transaction_id=_decode_hex(header.transaction_id, "header.transactionId"),
            application_data=(
                _decode_hex(header.application_data, "header.applicationData")
                if header.application_data is not None
                else None
            ),
            ephemeral_public_key=(
                _decode_base64(header.ephemeral_public_key, "header.ephemeralPublicKey")
                if header.ephemeral_public_key is not None
                else None
            ),
            wrapped_key=(
                _decode_base64(header.wrapped_key, "header.wrappedKey")
                if header.wrapped_key is not None
                else None
            ),
        )

    @classmethod
    def from_dict(cls, token: Mapping[str, Any]) -> "TokenEnvelope":
        """Parse a wire token given as a mapping.

        Raises:
            TokenFormatError: If the token is structurally invalid or fails to decode
        """
        try:
            wire = WireToken.model_validate(token)
        except ValidationError as e:
            raise TokenFormatError(f"Invalid token structure: {e}") from e
        return cls.from_wire(wire)

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "TokenEnvelope":
        """Parse a wire token given as JSON text.

        Raises:
            TokenFormatError: If the JSON is invalid or the token fails to decode
        """
        try:
            wire = WireToken.model_validate_json(raw)
        except ValidationError as e:
            raise TokenFormatError(f"Invalid token structure: {e}") from e
        return cls.from_wire(wire)
