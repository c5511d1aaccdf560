"""Unit tests for auth/tokens.py -- issue/verify and the failure taxonomy.

Verification is pure, so every test injects `now` instead of sleeping.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import TokenExpiredError, TokenMalformedError, TokenSignatureError
from auth.tokens import TokenCodec
from conftest import TEST_SECRET

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET)


class TestRoundTrip:
    @pytest.mark.parametrize("ttl", [1, 60, 15 * 60, 7 * 24 * 3600])
    def test_verify_returns_subject_before_expiry(self, codec, ttl):
        token = codec.issue("user-123", ttl, now=T0)
        assert codec.verify(token, now=T0) == "user-123"
        assert codec.verify(token, now=T0 + timedelta(seconds=ttl - 1)) == "user-123"

    def test_verify_with_real_clock(self, codec):
        assert codec.verify(codec.issue("user-123", 60)) == "user-123"

    def test_any_codec_with_same_secret_verifies(self, codec):
        token = codec.issue("user-123", 60, now=T0)
        assert TokenCodec(TEST_SECRET).verify(token, now=T0) == "user-123"

    def test_tokens_are_unique_within_same_instant(self, codec):
        assert codec.issue("user-123", 60, now=T0) != codec.issue("user-123", 60, now=T0)

    def test_claims(self, codec):
        claims = jwt.get_unverified_claims(codec.issue("user-123", 60, now=T0))
        assert claims["sub"] == "user-123"
        assert claims["exp"] - claims["iat"] == 60
        assert claims["jti"]

    @pytest.mark.parametrize("ttl", [0, -1])
    def test_non_positive_ttl_rejected(self, codec, ttl):
        with pytest.raises(ValueError):
            codec.issue("user-123", ttl)


class TestFailures:
    def test_expired_at_exact_expiry(self, codec):
        token = codec.issue("user-123", 60, now=T0)
        with pytest.raises(TokenExpiredError):
            codec.verify(token, now=T0 + timedelta(seconds=60))

    def test_expired_long_after(self, codec):
        token = codec.issue("user-123", 60, now=T0 - timedelta(days=30))
        with pytest.raises(TokenExpiredError):
            codec.verify(token)

    def test_foreign_secret_is_signature_error(self, codec):
        foreign = TokenCodec("another-secret-that-is-long-enough-xx").issue("user-123", 60, now=T0)
        with pytest.raises(TokenSignatureError):
            codec.verify(foreign, now=T0)

    def test_swapped_payload_is_signature_error(self, codec):
        """Header and signature from one token, claims from another."""
        victim = codec.issue("user-123", 60, now=T0).split(".")
        attacker = codec.issue("admin-1", 60, now=T0).split(".")
        forged = ".".join([victim[0], attacker[1], victim[2]])
        with pytest.raises(TokenSignatureError):
            codec.verify(forged, now=T0)

    @pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", "x" * 200])
    def test_garbage_is_malformed(self, codec, garbage):
        with pytest.raises(TokenMalformedError):
            codec.verify(garbage, now=T0)

    def test_missing_subject_is_malformed(self, codec):
        exp = int(T0.timestamp()) + 60
        token = jwt.encode({"exp": exp}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(TokenMalformedError):
            codec.verify(token, now=T0)

    def test_non_string_subject_is_malformed(self, codec):
        exp = int(T0.timestamp()) + 60
        token = jwt.encode({"sub": 42, "exp": exp}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(TokenMalformedError):
            codec.verify(token, now=T0)

    def test_missing_expiry_is_malformed(self, codec):
        token = jwt.encode({"sub": "user-123"}, TEST_SECRET, algorithm="HS256")
        with pytest.raises(TokenMalformedError):
            codec.verify(token, now=T0)
