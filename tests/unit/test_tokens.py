"""Tests for auth.tokens — bearer token issue and verification."""

from datetime import datetime, timedelta, timezone

import pytest

from labgate.auth.tokens import TokenCodec
from labgate.common.exceptions import InvalidToken


SECRET = "test-token-secret-for-unit-tests"
CLAIMS = {"id": "user-1", "email": "tech@calibra.com.br", "role": "technician"}


@pytest.fixture
def codec():
    return TokenCodec(SECRET)


class TestIssueAndVerify:
    def test_round_trip(self, codec):
        token = codec.issue(CLAIMS)
        verified = codec.verify(token)
        assert verified.claims == CLAIMS

    def test_round_trip_unicode_claims(self, codec):
        claims = {"id": "u-9", "name": "José Araújo", "nested": {"a": [1, 2]}}
        assert codec.verify(codec.issue(claims)).claims == claims

    def test_default_ttl_is_24_hours(self, codec):
        now = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        verified = codec.verify(codec.issue(CLAIMS, now=now), now=now)
        assert verified.issued_at == now
        assert verified.expires_at - verified.issued_at == timedelta(hours=24)

    def test_custom_ttl(self, codec):
        now = datetime.now(timezone.utc).replace(microsecond=0)
        verified = codec.verify(codec.issue(CLAIMS, ttl=timedelta(minutes=5), now=now))
        assert verified.expires_at == now + timedelta(minutes=5)

    def test_token_is_url_safe_string(self, codec):
        token = codec.issue(CLAIMS)
        assert isinstance(token, str)
        assert " " not in token and "/" not in token and "+" not in token


class TestRejection:
    def test_expired_token_rejected(self, codec):
        now = datetime.now(timezone.utc)
        token = codec.issue(CLAIMS, now=now)
        with pytest.raises(InvalidToken):
            codec.verify(token, now=now + timedelta(hours=24, seconds=1))

    def test_valid_just_before_expiry(self, codec):
        now = datetime.now(timezone.utc).replace(microsecond=0)
        token = codec.issue(CLAIMS, now=now)
        verified = codec.verify(token, now=now + timedelta(hours=23, minutes=59))
        assert verified.claims == CLAIMS

    def test_sub_second_issue_time_kept(self, codec):
        now = datetime(2026, 6, 1, 8, 0, 0, 900000, tzinfo=timezone.utc)
        token = codec.issue(CLAIMS, now=now)
        verified = codec.verify(token, now=now + timedelta(hours=24) - timedelta(milliseconds=500))
        assert verified.claims == CLAIMS
        assert verified.issued_at == now
        assert verified.expires_at == now + timedelta(hours=24)
        with pytest.raises(InvalidToken):
            codec.verify(token, now=now + timedelta(hours=24))

    def test_wrong_secret_rejected(self, codec):
        token = codec.issue(CLAIMS)
        with pytest.raises(InvalidToken):
            TokenCodec("another-secret").verify(token)

    def test_rotating_secret_invalidates_tokens(self, codec):
        token = codec.issue(CLAIMS)
        rotated = TokenCodec(SECRET + "-rotated")
        with pytest.raises(InvalidToken):
            rotated.verify(token)

    def test_tampered_token_rejected(self, codec):
        token = codec.issue(CLAIMS)
        payload, _, sig = token.rpartition(".")
        tampered = payload[:-2] + ("AA" if payload[-2:] != "AA" else "BB") + "." + sig
        with pytest.raises(InvalidToken):
            codec.verify(tampered)

    @pytest.mark.parametrize("garbage", ["", "garbage", "a.b.c", "....."])
    def test_garbage_rejected(self, codec, garbage):
        with pytest.raises(InvalidToken):
            codec.verify(garbage)

    def test_empty_secret_refused(self):
        with pytest.raises(ValueError):
            TokenCodec("")


class TestPurity:
    def test_verify_has_no_side_effects(self, codec):
        token = codec.issue(CLAIMS)
        first = codec.verify(token)
        second = codec.verify(token)
        assert first == second
