"""HMAC-SHA256 signing for purchase tokens."""

import hashlib
import hmac

from .config import SigningKey


def sign(key: SigningKey, data: bytes) -> bytes:
    """Compute the HMAC-SHA256 signature of ``data``.

    Args:
        key: Signing key.
        data: Canonical payload bytes.

    Returns:
        The raw 32-byte digest.
    """
    return hmac.new(key.secret, data, hashlib.sha256).digest()


def verify(key: SigningKey, data: bytes, signature: bytes) -> bool:
    """Check a signature against ``data``.

    Args:
        key: Signing key.
        data: Canonical payload bytes.
        signature: Raw signature bytes taken from the token.

    Returns:
        True if the signature is valid, False otherwise.
    """
    expected = sign(key, data)

    # Use constant-time comparison to prevent timing attacks
    return hmac.compare_digest(expected, signature)
