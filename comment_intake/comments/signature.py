"""Payload signing and verification.

Comment payloads are signed by the embedding client with a shared API key:
HMAC-SHA256 (JWA ``HS256``) over the compact JSON serialization of the
payload, encoded as unpadded base64url.

The signature covers bytes, not objects: both sides must serialize the payload
exactly once and sign/verify that byte sequence. ``canonical_payload_bytes``
produces the same bytes as ``JSON.stringify`` for JSON-decoded payloads (key
order preserved, no whitespace, non-ASCII emitted as raw UTF-8).
"""

import binascii
from typing import Any

import orjson
from jose import jwk
from jose.backends.base import Key
from jose.exceptions import JWKError
from jose.utils import base64url_decode, base64url_encode

from .exceptions import VerificationError


SIGNATURE_ALGORITHM = "HS256"


def canonical_payload_bytes(payload: Any) -> bytes:
    """Serialize a payload to the byte sequence that gets signed.

    Example:
        >>> canonical_payload_bytes({"b": 1, "a": "é"})
        b'{"b":1,"a":"\\xc3\\xa9"}'
    """
    return orjson.dumps(payload)


def _hmac_key(secret: str | bytes) -> Key:
    return jwk.construct(secret, SIGNATURE_ALGORITHM)


def sign_payload(raw_payload: bytes, secret: str | bytes) -> str:
    """Sign serialized payload bytes.

    Args:
        raw_payload: Exact bytes to sign (see ``canonical_payload_bytes``)
        secret: Shared API key

    Returns:
        Unpadded base64url HMAC-SHA256 digest
    """
    digest = _hmac_key(secret).sign(raw_payload)
    return base64url_encode(digest).decode("ascii")


def verify_signature(raw_payload: bytes, signature: Any, secret: str | bytes) -> None:
    """Verify that ``signature`` was produced over ``raw_payload`` with ``secret``.

    The digest comparison is constant-time.

    Raises:
        VerificationError: On any mismatch or malformed signature.
    """
    if not secret or not isinstance(signature, str) or not signature:
        raise VerificationError

    try:
        expected = base64url_decode(signature.encode("ascii"))
        key = _hmac_key(secret)
    except (binascii.Error, UnicodeEncodeError, ValueError, JWKError) as e:
        raise VerificationError from e

    if not key.verify(raw_payload, expected):
        raise VerificationError


def is_valid_signature(raw_payload: bytes, signature: Any, secret: str | bytes) -> bool:
    """Boolean form of ``verify_signature``."""
    try:
        verify_signature(raw_payload, signature, secret)
    except VerificationError:
        return False
    return True
