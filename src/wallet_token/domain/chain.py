"""Chain-of-trust checks for the extracted certificates."""

from typing import Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from wallet_token.domain.exceptions import SignatureError, SignatureFailure
from wallet_token.domain.result import Err, Ok, Result


def _der(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.DER)


def _invalid_chain(message: str = "invalid chain") -> Err:
    return Err(SignatureError(SignatureFailure.INVALID_CHAIN, message))


def _issued_by(certificate: x509.Certificate, issuer: x509.Certificate) -> bool:
    try:
        certificate.verify_directly_issued_by(issuer)
    except (InvalidSignature, UnsupportedAlgorithm, ValueError, TypeError):
        return False
    return True


def verify_root_certificate(
    root: x509.Certificate, trusted_root: Optional[x509.Certificate]
) -> Result[bool]:
    """Check that the extracted root is byte-identical to the trusted root.

    Args:
        root: Root certificate extracted from the signature
        trusted_root: Configured trusted root, or None if none is configured

    Returns:
        Ok(True) or Err(SignatureError(ROOT_NOT_TRUSTED))
    """
    if trusted_root is None:
        return Err(
            SignatureError(
                SignatureFailure.ROOT_NOT_TRUSTED,
                "root certificate is not trusted: no trusted root configured",
            )
        )
    if _der(root) != _der(trusted_root):
        return Err(
            SignatureError(SignatureFailure.ROOT_NOT_TRUSTED, "root certificate is not trusted")
        )
    return Ok(True)


def verify_x509_chain(
    root: x509.Certificate,
    intermediate: x509.Certificate,
    leaf: x509.Certificate,
) -> Result[bool]:
    """Validate root -> intermediate -> leaf.

    The three certificates must be pairwise distinct, the root must have
    issued the intermediate, and the intermediate must have issued the leaf.
    A distinctness violation fails even when the signatures would verify,
    e.g. a self-signed certificate in all three positions.

    Returns:
        Ok(True) or Err(SignatureError(INVALID_CHAIN))
    """
    root_der, intermediate_der, leaf_der = _der(root), _der(intermediate), _der(leaf)

    if intermediate_der in (root_der, leaf_der):
        return _invalid_chain("invalid chain due to intermediate")
    if root_der == leaf_der:
        return _invalid_chain()

    if not _issued_by(intermediate, root):
        return _invalid_chain()
    if not _issued_by(leaf, intermediate):
        return _invalid_chain()

    return Ok(True)
