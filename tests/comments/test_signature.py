"""Tests for payload signing and verification."""

import base64
import hashlib
import hmac
import json

import pytest

from comment_intake.comments.exceptions import VerificationError
from comment_intake.comments.signature import (
    canonical_payload_bytes,
    is_valid_signature,
    sign_payload,
    verify_signature,
)


SECRET = "shared-secret"


class TestCanonicalPayloadBytes:
    """Tests for the signed byte representation."""

    def test_matches_compact_json(self) -> None:
        """Should equal compact JSON with keys in insertion order."""
        payload = {"permalink": "http://example.com/", "commentContent": "Hi", "n": 3}
        assert canonical_payload_bytes(payload) == (
            b'{"permalink":"http://example.com/","commentContent":"Hi","n":3}'
        )

    def test_keeps_non_ascii_as_utf8(self) -> None:
        """Non-ASCII text should be raw UTF-8, not \\u escapes."""
        payload = {"commentContent": "비빔밥(乒乓飯)"}
        raw = canonical_payload_bytes(payload)
        assert raw == '{"commentContent":"비빔밥(乒乓飯)"}'.encode()
        assert b"\\u" not in raw

    def test_does_not_reorder_keys(self) -> None:
        """Different key order should produce different bytes."""
        first = canonical_payload_bytes({"a": 1, "b": 2})
        second = canonical_payload_bytes({"b": 2, "a": 1})
        assert first != second


class TestSignPayload:
    """Tests for signature creation."""

    def test_is_unpadded_base64url_hmac_sha256(self) -> None:
        """Should match the JWA HS256 encoding."""
        raw = b'{"a":1}'
        digest = hmac.new(SECRET.encode(), raw, hashlib.sha256).digest()
        expected = base64.urlsafe_b64encode(digest).rstrip(b"=").decode()
        assert sign_payload(raw, SECRET) == expected

    def test_is_deterministic(self) -> None:
        """Same bytes and secret should give the same signature."""
        raw = b'{"a":1}'
        assert sign_payload(raw, SECRET) == sign_payload(raw, SECRET)


class TestVerifySignature:
    """Tests for signature verification."""

    def test_round_trip_succeeds(self) -> None:
        """Signing then verifying with the same secret should pass."""
        raw = canonical_payload_bytes({"commentContent": "My comment"})
        verify_signature(raw, sign_payload(raw, SECRET), SECRET)

    @pytest.mark.parametrize("other_secret", ["bad api key", "shared-secreT", "x"])
    def test_other_secret_fails(self, other_secret: str) -> None:
        """A signature made with another secret should be rejected."""
        raw = canonical_payload_bytes({"commentContent": "My comment"})
        with pytest.raises(VerificationError) as exc_info:
            verify_signature(raw, sign_payload(raw, other_secret), SECRET)
        assert exc_info.value.data == {"_error": "Checksum verification failed."}

    def test_tampered_payload_fails(self) -> None:
        """Changing one byte of the payload should be rejected."""
        raw = canonical_payload_bytes({"commentContent": "My comment"})
        signature = sign_payload(raw, SECRET)
        tampered = canonical_payload_bytes({"commentContent": "My commenT"})
        with pytest.raises(VerificationError):
            verify_signature(tampered, signature, SECRET)

    def test_reformatted_payload_fails(self) -> None:
        """Re-serializing with different whitespace changes the digest."""
        payload = {"commentContent": "My comment"}
        signature = sign_payload(canonical_payload_bytes(payload), SECRET)
        pretty = json.dumps(payload, indent=2).encode()
        with pytest.raises(VerificationError):
            verify_signature(pretty, signature, SECRET)

    @pytest.mark.parametrize("signature", [None, "", 123, "%%%not-base64%%%", "abc"])
    def test_malformed_signature_fails(self, signature: object) -> None:
        """Missing, non-string or undecodable signatures should be rejected."""
        with pytest.raises(VerificationError):
            verify_signature(b"{}", signature, SECRET)

    def test_empty_secret_fails(self) -> None:
        """An unconfigured secret should never verify anything."""
        raw = b"{}"
        with pytest.raises(VerificationError):
            verify_signature(raw, sign_payload(raw, "k"), "")

    def test_is_valid_signature(self) -> None:
        """Boolean helper should mirror verify_signature."""
        raw = b'{"a":1}'
        signature = sign_payload(raw, SECRET)
        assert is_valid_signature(raw, signature, SECRET) is True
        assert is_valid_signature(raw, signature, "other") is False
