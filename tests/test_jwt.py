"""Tests for JWT payload decoding and identity extraction."""

import base64
import json

import pytest

from conftest import make_jwt
from navette.auth.jwt import AccountIdentity, decode_jwt_payload, extract_identity
from navette.errors import MalformedToken


class TestDecodeJwtPayload:
    """Tests for decode_jwt_payload()."""

    @pytest.mark.parametrize(
        "claims",
        [
            {"sub": "a"},
            {"sub": "ab"},
            {"sub": "abc"},
            {"email": "ünïcödé@example.com", "exp": 1700000000},
            {"nested": {"list": [1, 2, 3]}, "url": "https://x/?a=b&c=d"},
        ],
    )
    def test_payload_roundtrip(self, claims: dict):
        """Encoding claims without padding and decoding returns them unchanged."""
        token = make_jwt(claims)

        assert decode_jwt_payload(token) == claims

    def test_payload_bytes_survive_reencoding(self):
        """The decoded payload re-encodes to the original segment."""
        token = make_jwt({"email": "me@example.com", "n": 12345})
        segment = token.split(".")[1]

        claims = decode_jwt_payload(token)
        raw = json.dumps(claims).encode()
        reencoded = base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

        assert reencoded == segment

    def test_handles_url_safe_alphabet(self):
        """Payloads containing - and _ decode correctly."""
        # Any 3-byte aligned block "???" encodes to "Pz8_" in the URL-safe alphabet
        claims = {"v": "??????"}
        token = make_jwt(claims)
        segment = token.split(".")[1]

        assert "_" in segment
        assert decode_jwt_payload(token) == claims

    @pytest.mark.parametrize(
        "token",
        ["", "abc", "a.b", "a.b.c.d", "....", "only.one"],
    )
    def test_wrong_segment_count_raises(self, token: str):
        """Tokens without exactly three segments raise MalformedToken."""
        with pytest.raises(MalformedToken):
            decode_jwt_payload(token)

    def test_length_remainder_one_raises(self):
        """A payload whose length % 4 == 1 cannot be valid base64."""
        with pytest.raises(MalformedToken):
            decode_jwt_payload("h.abcde.s")

    def test_invalid_base64_raises(self):
        """Characters outside the base64 alphabet raise MalformedToken."""
        with pytest.raises(MalformedToken):
            decode_jwt_payload("h.ab!$.s")

    def test_non_json_payload_raises(self):
        """A payload that is not JSON raises MalformedToken."""
        segment = base64.urlsafe_b64encode(b"not json").rstrip(b"=").decode()
        with pytest.raises(MalformedToken):
            decode_jwt_payload(f"h.{segment}.s")

    def test_non_object_payload_raises(self):
        """A JSON payload that is not an object raises MalformedToken."""
        segment = base64.urlsafe_b64encode(b"[1, 2]").rstrip(b"=").decode()
        with pytest.raises(MalformedToken):
            decode_jwt_payload(f"h.{segment}.s")


class TestExtractIdentity:
    """Tests for extract_identity()."""

    def test_reads_claims(self):
        """Email, plan, subscription end and expiry are extracted."""
        token = make_jwt(
            {
                "email": "me@example.com",
                "exp": 1767225600,
                "https://api.openai.com/auth": {
                    "chatgpt_plan_type": "pro",
                    "chatgpt_subscription_active_until": "2026-06-30",
                },
            }
        )

        identity = extract_identity(token)

        assert identity == AccountIdentity(
            email="me@example.com",
            plan_type="pro",
            subscription_end="2026-06-30",
            expires_at=1767225600,
        )

    def test_missing_claims_use_defaults(self):
        """Absent claims fall back to unknown / None."""
        identity = extract_identity(make_jwt({"sub": "x"}))

        assert identity.email == "unknown"
        assert identity.plan_type == "unknown"
        assert identity.subscription_end is None
        assert identity.expires_at is None

    def test_malformed_token_gives_unknown_identity(self):
        """A broken token is not an error, just an unknown identity."""
        assert extract_identity("garbage") == AccountIdentity()
