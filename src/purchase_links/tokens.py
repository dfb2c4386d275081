"""Purchase token generation and validation.

A token is ``base64url(canonical payload) + "." + base64url(HMAC-SHA256)``.
Validation is a total function: every input string maps to exactly one
``ValidationResult`` and nothing is raised to the caller.

Validation order matters. The signature is checked before any field
(including ``expires_at``) is trusted, and before the payload is exposed in
the EXPIRED case.
"""

import secrets
import time
from typing import Optional, Tuple

from .config import DEFAULT_TOKEN_TTL_SECONDS, SigningKey
from .encoding import b64url_decode, b64url_encode, decode_payload, encode_payload
from .errors import ConfigError, MalformedTokenError
from .logging_utils import get_logger, mask_token
from .models import IssuedToken, TokenPayload, ValidationResult
from .signing import sign, verify

logger = get_logger(__name__)

# Not part of the base64url alphabet
SEPARATOR = "."

NONCE_BYTES = 16


def assemble_token(payload_bytes: bytes, signature: bytes) -> str:
    """Join payload and signature into a URL-safe token."""
    return f"{b64url_encode(payload_bytes)}{SEPARATOR}{b64url_encode(signature)}"


def parse_token(token: str) -> Tuple[bytes, bytes]:
    """Split a token into payload bytes and signature bytes.

    Args:
        token: Token string as received from the URL.

    Returns:
        Tuple of (payload_bytes, signature_bytes).

    Raises:
        MalformedTokenError: If the token does not have exactly two non-empty
            base64url segments.
    """
    if not isinstance(token, str):
        raise MalformedTokenError("token is not a string")

    parts = token.split(SEPARATOR)
    if len(parts) != 2:
        raise MalformedTokenError(f"expected 2 segments, got {len(parts)}")

    payload_part, signature_part = parts
    if not payload_part or not signature_part:
        raise MalformedTokenError("token has an empty segment")

    return b64url_decode(payload_part), b64url_decode(signature_part)


def issue_payload(
    *,
    business_id: str,
    business_name: str,
    price: int,
    value: int,
    campaign_id: str = "",
    preview_pages: int = 0,
    now: Optional[int] = None,
    ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS,
    nonce: Optional[str] = None,
) -> TokenPayload:
    """Build a payload whose expiry is ``now + ttl_seconds``.

    Raises:
        ConfigError: If ``ttl_seconds`` is not positive.
        pydantic.ValidationError: If a field violates its constraints.
    """
    if ttl_seconds <= 0:
        raise ConfigError(f"token TTL must be positive, got {ttl_seconds}")

    issued_at = int(time.time()) if now is None else now
    return TokenPayload(
        business_id=business_id,
        business_name=business_name,
        price=price,
        value=value,
        campaign_id=campaign_id,
        preview_pages=preview_pages,
        issued_at=issued_at,
        expires_at=issued_at + ttl_seconds,
        nonce=secrets.token_hex(NONCE_BYTES) if nonce is None else nonce,
    )


def sign_payload(key: SigningKey, payload: TokenPayload) -> str:
    """Encode and sign an existing payload."""
    payload_bytes = encode_payload(payload)
    return assemble_token(payload_bytes, sign(key, payload_bytes))


def generate_token(key: SigningKey, **fields) -> IssuedToken:
    """Issue a new signed token.

    Args:
        key: Signing key.
        **fields: Arguments accepted by ``issue_payload``.

    Returns:
        The token and the payload it carries.
    """
    payload = issue_payload(**fields)
    token = sign_payload(key, payload)
    logger.info(
        f"Issued purchase token {mask_token(token)} for business {payload.business_id}, "
        f"expires_at={payload.expires_at}"
    )
    return IssuedToken(token=token, payload=payload)


def validate_token(token: str, key: SigningKey, now: Optional[int] = None) -> ValidationResult:
    """Validate a token and classify the outcome.

    Args:
        token: Untrusted token string.
        key: Signing key.
        now: Current unix time in seconds. Defaults to the wall clock.

    Returns:
        VALID or EXPIRED with the payload, otherwise TAMPERED or MALFORMED.
    """
    now = int(time.time()) if now is None else now

    try:
        payload_bytes, signature = parse_token(token)
        payload = decode_payload(payload_bytes)
    except MalformedTokenError as e:
        logger.info(f"Malformed purchase token {mask_token(token)}: {e}")
        return ValidationResult.malformed()

    # Verify against the re-encoding, not the transported bytes
    if not verify(key, encode_payload(payload), signature):
        logger.warning(f"Purchase token signature mismatch {mask_token(token)}")
        return ValidationResult.tampered()

    if now > payload.expires_at:
        logger.info(
            f"Expired purchase token for business {payload.business_id} "
            f"(expired_at={payload.expires_at}, now={now})"
        )
        return ValidationResult.expired(payload)

    return ValidationResult.valid(payload)


class TokenService:
    """Token operations bound to one signing key and TTL.

    Constructed once at process start and passed to request handlers. It holds
    no mutable state, so it is safe to share across threads and tasks.
    """

    def __init__(self, key: SigningKey, ttl_seconds: int = DEFAULT_TOKEN_TTL_SECONDS):
        if ttl_seconds <= 0:
            raise ConfigError(f"token TTL must be positive, got {ttl_seconds}")
        self._key = key
        self.ttl_seconds = ttl_seconds

    def generate(
        self,
        *,
        business_id: str,
        business_name: str,
        price: int,
        value: int,
        campaign_id: str = "",
        preview_pages: int = 0,
        now: Optional[int] = None,
    ) -> IssuedToken:
        return generate_token(
            self._key,
            business_id=business_id,
            business_name=business_name,
            price=price,
            value=value,
            campaign_id=campaign_id,
            preview_pages=preview_pages,
            now=now,
            ttl_seconds=self.ttl_seconds,
        )

    def validate(self, token: str, now: Optional[int] = None) -> ValidationResult:
        return validate_token(token, self._key, now=now)
