"""Tests for token minting and verification."""

from datetime import UTC, datetime, timedelta

import jwt
import pytest

from authgate.models.principal import Principal
from authgate.services.errors import (
    TokenExpiredError,
    TokenInvalidSignatureError,
    TokenMalformedError,
    TokenUnsupportedError,
)
from authgate.services.token_codec import (
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    DecodeFailure,
    TokenCodec,
)

SECRET = "unit-test-secret-key-with-32-plus-characters"


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def token_codec(clock) -> TokenCodec:
    return TokenCodec(SECRET, clock=clock)


class TestMintAndParse:
    def test_roundtrip_preserves_subject_and_claims(self, token_codec):
        token = token_codec.mint("a@x.com", {"role": "USER", "enabled": True}, timedelta(minutes=5))
        parsed = token_codec.parse(token)

        assert parsed.subject == "a@x.com"
        assert parsed.claims == {"role": "USER", "enabled": True}

    def test_expires_after_ttl(self, token_codec, clock):
        token = token_codec.mint("a@x.com", None, timedelta(minutes=5))

        clock.advance(timedelta(minutes=4, seconds=59))
        assert token_codec.parse(token).subject == "a@x.com"

        clock.advance(timedelta(seconds=1))
        with pytest.raises(TokenExpiredError):
            token_codec.parse(token)

    def test_expiry_timestamp(self, token_codec, clock):
        token = token_codec.mint("a@x.com", None, timedelta(hours=1))
        assert token_codec.parse(token).expires_at == clock.now + timedelta(hours=1)

    def test_tokens_minted_in_same_instant_differ(self, token_codec):
        first = token_codec.mint("a@x.com", None, timedelta(minutes=5))
        second = token_codec.mint("a@x.com", None, timedelta(minutes=5))
        assert first != second

    def test_reserved_claims_rejected(self, token_codec):
        with pytest.raises(ValueError, match="sub"):
            token_codec.mint("a@x.com", {"sub": "someone-else"}, timedelta(minutes=5))

    def test_wrong_key_is_invalid_signature(self, token_codec, clock):
        other = TokenCodec("another-secret-key-also-longer-than-32-chars", clock=clock)
        token = other.mint("a@x.com", None, timedelta(minutes=5))

        with pytest.raises(TokenInvalidSignatureError):
            token_codec.parse(token)

    def test_garbage_is_malformed(self, token_codec):
        with pytest.raises(TokenMalformedError):
            token_codec.parse("not-a-token")

    def test_missing_subject_is_malformed(self, token_codec, clock):
        now = int(clock.now.timestamp())
        token = jwt.encode({"iat": now, "exp": now + 60}, SECRET, algorithm="HS256")

        with pytest.raises(TokenMalformedError):
            token_codec.parse(token)

    def test_other_algorithm_is_unsupported(self, token_codec, clock):
        now = int(clock.now.timestamp())
        token = jwt.encode(
            {"sub": "a@x.com", "iat": now, "exp": now + 60}, SECRET, algorithm="HS512"
        )

        with pytest.raises(TokenUnsupportedError):
            token_codec.parse(token)

    def test_type_mismatch_is_unsupported(self, token_codec):
        token = token_codec.mint_refresh_token("a@x.com")

        with pytest.raises(TokenUnsupportedError):
            token_codec.parse(token, expected_type=TOKEN_TYPE_ACCESS)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenCodec("")


class TestInspect:
    def test_ok(self, token_codec):
        token = token_codec.mint_refresh_token("a@x.com")
        result = token_codec.inspect(token, expected_type=TOKEN_TYPE_REFRESH)

        assert result.ok
        assert result.failure is None
        assert result.token.token_type == TOKEN_TYPE_REFRESH

    def test_expired_reported_as_value(self, token_codec, clock):
        token = token_codec.mint("a@x.com", None, timedelta(seconds=30))
        clock.advance(timedelta(minutes=1))

        result = token_codec.inspect(token)

        assert not result.ok
        assert result.failure == DecodeFailure.EXPIRED

    def test_malformed_reported_as_value(self, token_codec):
        result = token_codec.inspect("a.b.c")
        assert result.failure == DecodeFailure.MALFORMED


class TestTokenClasses:
    def test_ttls_are_independent(self, clock):
        token_codec = TokenCodec(
            SECRET,
            access_ttl=timedelta(minutes=1),
            refresh_ttl=timedelta(minutes=10),
            activation_ttl=timedelta(minutes=20),
            reset_ttl=timedelta(minutes=2),
            clock=clock,
        )
        start = clock.now

        assert token_codec.parse(token_codec.mint_refresh_token("a@x.com")).expires_at == start + timedelta(
            minutes=10
        )
        assert token_codec.parse(
            token_codec.mint_activation_token("a@x.com")
        ).expires_at == start + timedelta(minutes=20)
        assert token_codec.parse(token_codec.mint_reset_token("a@x.com")).expires_at == start + timedelta(
            minutes=2
        )

    def test_access_token_carries_role_and_enabled(self, token_codec):
        principal = Principal(email="d@x.com", role="DOCTOR", enabled=True)
        parsed = token_codec.parse(token_codec.mint_access_token(principal), TOKEN_TYPE_ACCESS)

        assert parsed.subject == "d@x.com"
        assert parsed.claims == {"role": "DOCTOR", "enabled": True}

    def test_is_token_valid_for(self, token_codec, clock):
        token = token_codec.mint_refresh_token("a@x.com")

        assert token_codec.is_token_valid_for(token, "a@x.com")
        assert not token_codec.is_token_valid_for(token, "b@x.com")

        clock.advance(token_codec.refresh_ttl)
        assert not token_codec.is_token_valid_for(token, "a@x.com")
