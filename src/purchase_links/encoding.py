"""Canonical payload encoding and strict base64url helpers.

The payload is serialized as compact JSON with sorted keys, so every payload
has exactly one byte representation and string escaping keeps field values
from ever being read as structure. Decoding accepts only that canonical form.
"""

import base64
import binascii
import json
import re
from typing import Any

from pydantic import ValidationError

from .errors import MalformedTokenError
from .models import TokenPayload

_B64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")


def encode_payload(payload: TokenPayload) -> bytes:
    """Serialize a payload to its canonical bytes.

    Args:
        payload: The payload to encode.

    Returns:
        ASCII-escaped JSON with sorted keys and no insignificant whitespace.
    """
    return json.dumps(
        payload.model_dump(mode="json"),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
    ).encode("utf-8")


def _reject_duplicate_keys(pairs: list[tuple[str, Any]]) -> dict:
    result = {}
    for key, value in pairs:
        if key in result:
            raise MalformedTokenError(f"duplicate payload field: {key}")
        result[key] = value
    return result


def decode_payload(data: bytes) -> TokenPayload:
    """Decode canonical payload bytes.

    Args:
        data: Bytes produced by ``encode_payload``.

    Returns:
        The decoded payload.

    Raises:
        MalformedTokenError: If the bytes are not the canonical encoding of a
            valid payload.
    """
    try:
        text = data.decode("utf-8")
        obj = json.loads(text, object_pairs_hook=_reject_duplicate_keys)
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise MalformedTokenError(f"payload is not valid JSON: {e}") from e

    if not isinstance(obj, dict):
        raise MalformedTokenError("payload is not a JSON object")

    missing = set(TokenPayload.model_fields) - set(obj)
    if missing:
        raise MalformedTokenError(f"payload is missing fields: {sorted(missing)}")

    try:
        payload = TokenPayload.model_validate(obj, strict=True)
    except ValidationError as e:
        raise MalformedTokenError(f"payload failed validation: {e.error_count()} error(s)") from e

    if encode_payload(payload) != data:
        raise MalformedTokenError("payload is not canonically encoded")
    return payload


def b64url_encode(data: bytes) -> str:
    """Encode bytes as unpadded base64url."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytes:
    """Strictly decode unpadded base64url.

    Only the alphabet ``[A-Za-z0-9_-]`` is accepted, without padding, and the
    text must be the canonical encoding of the result (unused trailing bits
    zero), so each byte string has exactly one accepted encoding.

    Raises:
        MalformedTokenError: If the text is not canonical base64url.
    """
    if not isinstance(text, str) or not _B64URL_RE.match(text):
        raise MalformedTokenError("segment contains characters outside base64url")
    if len(text) % 4 == 1:
        raise MalformedTokenError("segment has an impossible base64url length")
    try:
        data = base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))
    except (binascii.Error, ValueError) as e:
        raise MalformedTokenError(f"segment is not base64url: {e}") from e
    if b64url_encode(data) != text:
        raise MalformedTokenError("segment is not canonically encoded")
    return data
