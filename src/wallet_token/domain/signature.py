"""Token signature verification.

verify_signature runs these checks in order and stops at the first failure:

    a. extract leaf, intermediate and root from the signature container
    b. the root equals the configured trusted root
    c. root -> intermediate -> leaf is a valid chain
    d. the detached signature verifies over the token's signed content
       with the leaf's public key
    e. the signing time is within the replay window

Each check is a plain function returning a Result. SignatureVerifier takes
them as fields so that any gate can be replaced in isolation.
"""

import hmac
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from wallet_token.config import DEFAULT_CONFIG, VerifierConfig
from wallet_token.domain.certificates import CertificateBundle, extract_certificates
from wallet_token.domain.chain import verify_root_certificate, verify_x509_chain
from wallet_token.domain.container import SignatureContainer, SignerInfo, parse_signature_container
from wallet_token.domain.envelope import TokenEnvelope
from wallet_token.domain.exceptions import SignatureError, SignatureFailure
from wallet_token.domain.result import Err, Ok, Result
from wallet_token.logging_config import get_logger

logger = get_logger(__name__)

_DIGESTS: dict[str, type[hashes.HashAlgorithm]] = {
    "sha1": hashes.SHA1,
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


def _mismatch(message: str = "signature does not match the message") -> Err:
    return Err(SignatureError(SignatureFailure.SIGNATURE_MISMATCH, message))


def _signed_by(signer: SignerInfo, leaf: x509.Certificate) -> bool:
    if signer.serial_number is not None:
        tbs = asn1_x509.Certificate.load(leaf.public_bytes(serialization.Encoding.DER))
        return (
            signer.serial_number == leaf.serial_number
            and signer.issuer == tbs["tbs_certificate"]["issuer"].dump()
        )
    try:
        extension = leaf.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
    except x509.ExtensionNotFound:
        return False
    return extension.value.digest == signer.subject_key_identifier


def verify_detached_signature(
    container: SignatureContainer, leaf: x509.Certificate, content: bytes
) -> Result[bool]:
    """Verify the container's signer over detached content with the leaf key.

    With signed attributes present, the messageDigest attribute must match
    the content digest and the signature covers the attributes. Without
    them, the signature covers the content directly.

    Returns:
        Ok(True) or Err(SignatureError(SIGNATURE_MISMATCH))
    """
    signer = container.signer

    hash_class = _DIGESTS.get(signer.digest_algorithm)
    if hash_class is None:
        return _mismatch(f"unsupported digest algorithm: {signer.digest_algorithm}")

    if not _signed_by(signer, leaf):
        return _mismatch("signer is not the leaf certificate")

    if signer.signed_attributes is not None:
        if signer.message_digest is None:
            return _mismatch("signed attributes lack a message digest")
        digest = hashes.Hash(hash_class())
        digest.update(content)
        if not hmac.compare_digest(digest.finalize(), signer.message_digest):
            return _mismatch()
        signed_bytes = signer.signed_attributes
    else:
        signed_bytes = content

    try:
        public_key = leaf.public_key()
    except (UnsupportedAlgorithm, ValueError) as e:
        return _mismatch(f"unsupported leaf public key: {e}")

    try:
        if isinstance(public_key, ec.EllipticCurvePublicKey):
            public_key.verify(signer.signature, signed_bytes, ec.ECDSA(hash_class()))
        elif isinstance(public_key, rsa.RSAPublicKey):
            if signer.signature_algorithm == "rsassa_pss":
                rsa_padding = padding.PSS(
                    mgf=padding.MGF1(hash_class()),
                    salt_length=signer.pss_salt_length,
                )
            else:
                rsa_padding = padding.PKCS1v15()
            public_key.verify(signer.signature, signed_bytes, rsa_padding, hash_class())
        else:
            return _mismatch(f"unsupported leaf key type: {type(public_key).__name__}")
    except InvalidSignature:
        return _mismatch()
    except (UnsupportedAlgorithm, ValueError) as e:
        return _mismatch(f"signature cannot be checked: {e}")

    return Ok(True)


def validate_signature(
    envelope: TokenEnvelope, container: SignatureContainer, leaf: x509.Certificate
) -> Result[bool]:
    """Verify the token signature over the scheme's signed content."""
    content = envelope.scheme.parameters.signed_content(envelope)
    return verify_detached_signature(container, leaf, content)


def verify_signed_time(
    container: SignatureContainer, now: datetime, replay_threshold_seconds: int
) -> Result[bool]:
    """Check that the signing time is within the replay window of ``now``.

    The window is inclusive on both sides: a skew of exactly
    replay_threshold_seconds passes.

    Args:
        container: Parsed signature container
        now: Reference time; naive values are taken as UTC
        replay_threshold_seconds: Allowed absolute skew

    Returns:
        Ok(True) or Err(SignatureError(SIGNED_TIME))
    """
    signing_time = container.signing_time
    if signing_time is None:
        return Err(SignatureError(SignatureFailure.SIGNED_TIME, "no signing time in signature"))

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    skew = abs((now - signing_time).total_seconds())
    if skew > replay_threshold_seconds:
        return Err(
            SignatureError(
                SignatureFailure.SIGNED_TIME,
                f"signed time outside replay window: {skew:.0f}s exceeds "
                f"{replay_threshold_seconds}s",
            )
        )
    return Ok(True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SignatureVerifier:
    """Runs the verification gates over a token.

    Attributes:
        config: Trusted root, role OIDs and replay threshold
        extract: Gate a
        verify_root: Gate b
        verify_chain: Gate c
        validate: Gate d
        verify_time: Gate e
        clock: Source of "now" when the caller does not pass one
    """

    config: VerifierConfig = field(default_factory=lambda: DEFAULT_CONFIG)
    extract: Callable[[SignatureContainer, VerifierConfig], Result[CertificateBundle]] = (
        extract_certificates
    )
    verify_root: Callable[[x509.Certificate, Optional[x509.Certificate]], Result[bool]] = (
        verify_root_certificate
    )
    verify_chain: Callable[
        [x509.Certificate, x509.Certificate, x509.Certificate], Result[bool]
    ] = verify_x509_chain
    validate: Callable[
        [TokenEnvelope, SignatureContainer, x509.Certificate], Result[bool]
    ] = validate_signature
    verify_time: Callable[[SignatureContainer, datetime, int], Result[bool]] = verify_signed_time
    clock: Callable[[], datetime] = _utcnow

    def verify(
        self, envelope: TokenEnvelope, now: Optional[datetime] = None
    ) -> Result[CertificateBundle]:
        """Run all gates, returning the bundle or the first error."""
        result = self._run_gates(envelope, now)

        if isinstance(result, Err):
            error = result.error
            logger.warning(
                "signature_verification_failed",
                reason=getattr(error, "reason", None),
                error=str(error),
                version=envelope.version.value,
                transaction_id=envelope.transaction_id,
            )
        else:
            logger.info(
                "signature_verified",
                version=envelope.version.value,
                transaction_id=envelope.transaction_id,
            )
        return result

    def _run_gates(
        self, envelope: TokenEnvelope, now: Optional[datetime]
    ) -> Result[CertificateBundle]:
        if envelope.signature is None:
            return Err(SignatureError(SignatureFailure.NO_SIGNATURE, "no signature present"))

        parsed = parse_signature_container(envelope.signature)
        if isinstance(parsed, Err):
            return parsed
        container = parsed.value

        extracted = self.extract(container, self.config)
        if isinstance(extracted, Err):
            return extracted
        bundle = extracted.value

        checks = (
            lambda: self.verify_root(bundle.root, self.config.trusted_root),
            lambda: self.verify_chain(bundle.root, bundle.intermediate, bundle.leaf),
            lambda: self.validate(envelope, container, bundle.leaf),
            lambda: self.verify_time(
                container,
                now if now is not None else self.clock(),
                self.config.replay_threshold_seconds,
            ),
        )
        for check in checks:
            outcome = check()
            if isinstance(outcome, Err):
                return outcome

        return Ok(bundle)
