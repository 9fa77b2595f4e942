"""Certificate extraction by role.

The signature container embeds the whole chain. Roles are not given by
position but by custom extensions: the leaf carries one OID, the
intermediate another, and the root carries neither.
"""

from typing import NamedTuple

from cryptography import x509

from wallet_token.config import VerifierConfig
from wallet_token.domain.container import SignatureContainer
from wallet_token.domain.exceptions import SignatureError, SignatureFailure
from wallet_token.domain.result import Err, Ok, Result


class CertificateBundle(NamedTuple):
    """Role-tagged certificates extracted from one signature container."""

    leaf: x509.Certificate
    intermediate: x509.Certificate
    root: x509.Certificate


def has_extension(certificate: x509.Certificate, oid: str) -> bool:
    """Return True if the certificate carries an extension with the given OID."""
    target = x509.ObjectIdentifier(oid)
    return any(extension.oid == target for extension in certificate.extensions)


def _fail(reason: SignatureFailure, message: str) -> Err:
    return Err(SignatureError(reason, message))


def extract_certificates(
    container: SignatureContainer, config: VerifierConfig
) -> Result[CertificateBundle]:
    """Partition the container's certificates into leaf, intermediate and root.

    Membership is tested per role, so a certificate carrying both OIDs is a
    candidate for both. Exactly one candidate per role is required.

    Args:
        container: Parsed signature container
        config: Supplies the leaf and intermediate OIDs

    Returns:
        Ok(CertificateBundle) or Err(SignatureError) naming the first
        cardinality violation
    """
    certificates = container.certificates

    leaves = [c for c in certificates if has_extension(c, config.oid_leaf)]
    intermediates = [c for c in certificates if has_extension(c, config.oid_intermediate)]
    roots = [
        c
        for c in certificates
        if not has_extension(c, config.oid_leaf)
        and not has_extension(c, config.oid_intermediate)
    ]

    if not leaves:
        return _fail(SignatureFailure.NO_LEAF, "no leaf certificate found")
    if not intermediates:
        return _fail(SignatureFailure.NO_INTERMEDIATE, "no intermediate certificate found")
    if len(leaves) > 1:
        return _fail(
            SignatureFailure.NO_UNIQUE_LEAF,
            f"no unique leaf certificate found ({len(leaves)} candidates)",
        )
    if len(intermediates) > 1:
        return _fail(
            SignatureFailure.NO_UNIQUE_INTERMEDIATE,
            f"no unique intermediate certificate found ({len(intermediates)} candidates)",
        )
    if len(roots) > 1:
        subjects = "; ".join(c.subject.rfc4514_string() for c in roots)
        return _fail(
            SignatureFailure.TOO_MANY_CERTIFICATES,
            f"too many certificates found in the signature: {subjects}",
        )
    if not roots:
        return _fail(SignatureFailure.NO_ROOT, "no root certificate found")

    return Ok(CertificateBundle(leaf=leaves[0], intermediate=intermediates[0], root=roots[0]))
