"""Detached signature container parsing.

The token signature is a DER-encoded PKCS #7 / CMS ContentInfo wrapping a
SignedData without encapsulated content. Parsing is done with asn1crypto;
the embedded certificates are handed on as cryptography certificates.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import NamedTuple, Optional

from asn1crypto import cms
from cryptography import x509

from wallet_token.domain.exceptions import SignatureError, SignatureFailure
from wallet_token.domain.result import Err, Ok, Result

# signedAttrs are signed as an explicit SET OF, not as the [0] IMPLICIT field
_SET_OF_TAG = b"\x31"


class SignerInfo(NamedTuple):
    """The parts of a CMS SignerInfo needed to verify the token.

    Attributes:
        digest_algorithm: asn1crypto digest name (e.g., "sha256")
        signature_algorithm: asn1crypto signature algorithm name
        pss_salt_length: Salt length when signature_algorithm is RSASSA-PSS
        signature: Raw signature value
        signed_attributes: DER of the signed attributes as a SET OF, or None
        message_digest: messageDigest signed attribute, or None
        signing_time: signingTime signed attribute, or None
        issuer: DER of the signer certificate issuer, if identified by issuer/serial
        serial_number: Serial of the signer certificate, if identified by issuer/serial
        subject_key_identifier: Signer key identifier, if identified by SKI
    """

    digest_algorithm: str
    signature_algorithm: str
    pss_salt_length: Optional[int]
    signature: bytes
    signed_attributes: Optional[bytes]
    message_digest: Optional[bytes]
    signing_time: Optional[datetime]
    issuer: Optional[bytes]
    serial_number: Optional[int]
    subject_key_identifier: Optional[bytes]


@dataclass(frozen=True)
class SignatureContainer:
    """Parsed detached signature: embedded certificates plus the first signer."""

    certificates: tuple[x509.Certificate, ...]
    signer: SignerInfo

    @property
    def signing_time(self) -> Optional[datetime]:
        return self.signer.signing_time


def _invalid(detail: str) -> Err:
    return Err(
        SignatureError(
            SignatureFailure.INVALID_CONTAINER,
            f"invalid PKCS #7 signature container format: {detail}",
        )
    )


def _parse_signer(signer_info: cms.SignerInfo) -> SignerInfo:
    signature_algorithm = signer_info["signature_algorithm"]
    algorithm_name = signature_algorithm["algorithm"].native
    pss_salt_length = None
    if algorithm_name == "rsassa_pss":
        pss_salt_length = signature_algorithm["parameters"]["salt_length"].native

    signed_attributes = None
    message_digest = None
    signing_time = None
    signed_attrs = signer_info["signed_attrs"]
    if signed_attrs:
        signed_attributes = _SET_OF_TAG + signed_attrs.dump()[1:]
        for attribute in signed_attrs:
            attribute_type = attribute["type"].native
            if attribute_type == "message_digest":
                message_digest = attribute["values"][0].native
            elif attribute_type == "signing_time":
                signing_time = attribute["values"][0].native

    issuer = None
    serial_number = None
    subject_key_identifier = None
    sid = signer_info["sid"]
    if sid.name == "issuer_and_serial_number":
        issuer = sid.chosen["issuer"].dump()
        serial_number = sid.chosen["serial_number"].native
    else:
        subject_key_identifier = sid.chosen.native

    return SignerInfo(
        digest_algorithm=signer_info["digest_algorithm"]["algorithm"].native,
        signature_algorithm=algorithm_name,
        pss_salt_length=pss_salt_length,
        signature=signer_info["signature"].native,
        signed_attributes=signed_attributes,
        message_digest=message_digest,
        signing_time=signing_time,
        issuer=issuer,
        serial_number=serial_number,
        subject_key_identifier=subject_key_identifier,
    )


def parse_signature_container(raw: bytes) -> Result[SignatureContainer]:
    """Parse a DER detached signature container.

    Args:
        raw: DER-encoded ContentInfo

    Returns:
        Ok(SignatureContainer), or Err(SignatureError(INVALID_CONTAINER)) if
        the bytes are not a SignedData with at least one signer
    """
    try:
        content_info = cms.ContentInfo.load(raw, strict=True)
        content_type = content_info["content_type"].native
        if content_type != "signed_data":
            return _invalid(f"unexpected content type {content_type}")

        signed_data = content_info["content"]
        certificates = []
        for choice in signed_data["certificates"] or ():
            if choice.name != "certificate":
                continue
            certificate = x509.load_der_x509_certificate(choice.chosen.dump())
            # Extensions are parsed lazily; fail here rather than mid-verification
            certificate.extensions
            certificates.append(certificate)

        signer_infos = signed_data["signer_infos"]
        if len(signer_infos) == 0:
            return _invalid("no signer information")
        signer = _parse_signer(signer_infos[0])
    except (ValueError, TypeError, x509.InvalidVersion, x509.DuplicateExtension) as e:
        return _invalid(str(e))

    return Ok(SignatureContainer(certificates=tuple(certificates), signer=signer))
