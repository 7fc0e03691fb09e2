"""
Tests for identity token freshness
"""

import base64
import json

from wolfgift.auth.token_clock import (
    EXPIRY_MARGIN_SECONDS,
    decode_claims,
    expires_at,
    is_expired,
    seconds_remaining,
)
from wolfgift.core.types import TokenSet


class TestDecodeClaims:
    def test_decodes_payload(self, token_with_claims):
        token = token_with_claims({"sub": "abc"}, exp=123)
        assert decode_claims(token) == {"sub": "abc", "exp": 123}

    def test_tolerates_missing_padding(self, token_with_claims):
        # payload lengths that are not multiples of four
        for sub in ("a", "ab", "abc", "abcd"):
            token = token_with_claims({"sub": sub}, exp=1)
            assert "=" not in token
            assert decode_claims(token)["sub"] == sub

    def test_wrong_segment_count(self):
        assert decode_claims("only.two") is None
        assert decode_claims("a.b.c.d") is None

    def test_empty_and_non_string(self):
        assert decode_claims("") is None
        assert decode_claims(None) is None

    def test_garbage_payload(self):
        assert decode_claims("aaa.!!!notbase64!!!.ccc") is None
        not_json = base64.urlsafe_b64encode(b"hello").decode()
        assert decode_claims(f"aaa.{not_json}.ccc") is None

    def test_non_object_payload(self):
        array = base64.urlsafe_b64encode(json.dumps([1, 2]).encode()).decode()
        assert decode_claims(f"aaa.{array}.ccc") is None


class TestIsExpired:
    def test_fresh_token(self, make_token, now):
        assert is_expired(make_token(3600), now=now) is False

    def test_just_over_margin_is_fresh(self, make_token, now):
        assert is_expired(make_token(EXPIRY_MARGIN_SECONDS + 1), now=now) is False

    def test_exactly_margin_is_expired(self, make_token, now):
        assert is_expired(make_token(EXPIRY_MARGIN_SECONDS), now=now) is True

    def test_inside_margin_is_expired(self, make_token, now):
        assert is_expired(make_token(60), now=now) is True

    def test_already_expired(self, make_token, now):
        assert is_expired(make_token(-10), now=now) is True

    def test_expiring_now(self, make_token, now):
        assert is_expired(make_token(0), now=now) is True

    def test_zero_exp(self, token_with_claims, now):
        assert is_expired(token_with_claims(exp=0), now=now) is True

    def test_missing_exp(self, make_token, now):
        assert is_expired(make_token(None), now=now) is True

    def test_non_numeric_exp(self, token_with_claims, now):
        assert is_expired(token_with_claims({"exp": "soon"}), now=now) is True
        assert is_expired(token_with_claims({"exp": True}), now=now) is True

    def test_non_finite_exp(self, token_with_claims, now):
        assert is_expired(token_with_claims({"exp": float("nan")}), now=now) is True
        assert is_expired(token_with_claims({"exp": float("inf")}), now=now) is True
        assert is_expired(token_with_claims({"exp": float("-inf")}), now=now) is True

    def test_exp_too_large_for_float(self, token_with_claims, now):
        token = token_with_claims({"exp": 10**400})

        assert expires_at(token) is None
        assert is_expired(token, now=now) is True

    def test_malformed_token(self, now):
        assert is_expired("not-a-token", now=now) is True
        assert is_expired("", now=now) is True
        assert is_expired(None, now=now) is True

    def test_accepts_token_set(self, make_token, now):
        assert is_expired(TokenSet(make_token(3600), "r", "c"), now=now) is False
        assert is_expired(TokenSet("", "r", "c"), now=now) is True

    def test_custom_margin(self, make_token, now):
        token = make_token(120)
        assert is_expired(token, now=now, margin_seconds=60) is False
        assert is_expired(token, now=now, margin_seconds=120) is True


class TestRemaining:
    def test_seconds_remaining(self, make_token, now):
        assert seconds_remaining(make_token(900), now=now) == 900

    def test_unreadable_token(self, now):
        assert seconds_remaining("bad", now=now) is None
        assert expires_at("bad") is None
