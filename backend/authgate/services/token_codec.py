"""Signed, expiring token encoding and decoding.

Every token is an HMAC-signed JWT. One ``mint`` primitive produces all four
token classes; they differ only in lifetime, the ``type`` claim and the
extra claims they carry. The codec holds no state besides the key and a
clock, so it can be shared freely between requests.
"""

import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from functools import lru_cache
from typing import Any

import jwt
from jwt.exceptions import (
    DecodeError,
    InvalidAlgorithmError,
    InvalidSignatureError,
    PyJWTError,
)

from authgate.core.config import Settings, settings
from authgate.models.principal import Principal
from authgate.services.errors import (
    TokenError,
    TokenExpiredError,
    TokenInvalidSignatureError,
    TokenMalformedError,
    TokenUnsupportedError,
)

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"
TOKEN_TYPE_ACTIVATION = "activation"
TOKEN_TYPE_PASSWORD_RESET = "password_reset"

# Claims the codec manages itself; callers' claims never include these
RESERVED_CLAIMS = frozenset({"sub", "iat", "exp", "jti", "type"})


@dataclass(frozen=True)
class ParsedToken:
    """Verified content of a token."""

    subject: str
    claims: dict[str, Any]
    expires_at: datetime
    token_type: str | None = None
    token_id: str | None = None


class DecodeFailure(str, Enum):
    EXPIRED = "expired"
    MALFORMED = "malformed"
    INVALID_SIGNATURE = "invalid_signature"
    UNSUPPORTED = "unsupported"


_FAILURE_BY_ERROR: dict[type[TokenError], DecodeFailure] = {
    TokenExpiredError: DecodeFailure.EXPIRED,
    TokenMalformedError: DecodeFailure.MALFORMED,
    TokenInvalidSignatureError: DecodeFailure.INVALID_SIGNATURE,
    TokenUnsupportedError: DecodeFailure.UNSUPPORTED,
}


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of ``TokenCodec.inspect``: either a parsed token or a failure."""

    token: ParsedToken | None = None
    failure: DecodeFailure | None = None
    detail: str = field(default="")

    @property
    def ok(self) -> bool:
        return self.token is not None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class TokenCodec:
    """Mint and verify HMAC-signed tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        *,
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        activation_ttl: timedelta = timedelta(days=1),
        reset_ttl: timedelta = timedelta(minutes=15),
        clock: Callable[[], datetime] = _utcnow,
    ):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.activation_ttl = activation_ttl
        self.reset_ttl = reset_ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, config: Settings) -> "TokenCodec":
        return cls(
            config.effective_jwt_secret_key,
            config.jwt_algorithm,
            access_ttl=timedelta(minutes=config.access_token_ttl_minutes),
            refresh_ttl=timedelta(minutes=config.refresh_token_ttl_minutes),
            activation_ttl=timedelta(minutes=config.activation_token_ttl_minutes),
            reset_ttl=timedelta(minutes=config.reset_token_ttl_minutes),
        )

    def mint(
        self,
        subject: str,
        claims: dict[str, Any] | None,
        ttl: timedelta,
        *,
        token_type: str | None = None,
    ) -> str:
        """Create a signed token for ``subject`` that expires after ``ttl``."""
        claims = dict(claims or {})
        clashing = RESERVED_CLAIMS.intersection(claims)
        if clashing:
            raise ValueError(f"Reserved claims cannot be overridden: {sorted(clashing)}")

        now = self._clock()
        payload: dict[str, Any] = {
            **claims,
            "sub": subject,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            # Two tokens minted in the same second must still differ
            "jti": secrets.token_hex(16),
        }
        if token_type is not None:
            payload["type"] = token_type

        # PyJWT 2.x returns str
        return str(jwt.encode(payload, self._secret_key, algorithm=self.algorithm))

    def parse(self, token: str, expected_type: str | None = None) -> ParsedToken:
        """Verify a token and return its content.

        Raises:
            TokenExpiredError: lifetime is over (checked against this codec's clock)
            TokenMalformedError: not a decodable token or required claims missing
            TokenInvalidSignatureError: signature does not match our key
            TokenUnsupportedError: wrong algorithm, or ``type`` differs from expected_type
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={
                    "require": ["sub", "exp", "iat"],
                    # Time checks use the injected clock below
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except InvalidSignatureError as e:
            raise TokenInvalidSignatureError("Token signature is invalid") from e
        except InvalidAlgorithmError as e:
            raise TokenUnsupportedError(f"Token algorithm is not supported: {e}") from e
        except DecodeError as e:
            raise TokenMalformedError(f"Token is malformed: {e}") from e
        except PyJWTError as e:
            raise TokenMalformedError(f"Token is invalid: {e}") from e

        exp = payload["exp"]
        if not isinstance(exp, int | float) or isinstance(exp, bool):
            raise TokenMalformedError("Token expiry is not a timestamp")
        expires_at = datetime.fromtimestamp(exp, tz=UTC)
        if expires_at <= self._clock():
            raise TokenExpiredError("Token has expired")

        subject = payload["sub"]
        if not isinstance(subject, str) or not subject:
            raise TokenMalformedError("Token subject is missing")

        token_type = payload.get("type")
        if expected_type is not None and token_type != expected_type:
            raise TokenUnsupportedError(f"Expected a {expected_type} token, got {token_type!r}")

        return ParsedToken(
            subject=subject,
            claims={k: v for k, v in payload.items() if k not in RESERVED_CLAIMS},
            expires_at=expires_at,
            token_type=token_type,
            token_id=payload.get("jti"),
        )

    def inspect(self, token: str, expected_type: str | None = None) -> DecodeResult:
        """Like ``parse`` but reports failure as a value instead of raising."""
        try:
            return DecodeResult(token=self.parse(token, expected_type))
        except TokenError as e:
            return DecodeResult(failure=_FAILURE_BY_ERROR[type(e)], detail=str(e))

    def is_token_valid_for(self, token: str, subject: str) -> bool:
        """True if ``token`` verifies, is unexpired and was issued to ``subject``."""
        result = self.inspect(token)
        return result.ok and result.token.subject == subject

    # --- Token classes ---

    def mint_access_token(self, principal: Principal) -> str:
        # role/enabled are informational; authorization re-reads the live record
        claims = {"role": principal.role, "enabled": principal.enabled}
        return self.mint(principal.email, claims, self.access_ttl, token_type=TOKEN_TYPE_ACCESS)

    def mint_refresh_token(self, email: str) -> str:
        return self.mint(email, None, self.refresh_ttl, token_type=TOKEN_TYPE_REFRESH)

    def mint_activation_token(self, email: str) -> str:
        return self.mint(email, None, self.activation_ttl, token_type=TOKEN_TYPE_ACTIVATION)

    def mint_reset_token(self, email: str) -> str:
        return self.mint(email, None, self.reset_ttl, token_type=TOKEN_TYPE_PASSWORD_RESET)


@lru_cache
def get_token_codec() -> TokenCodec:
    """Process-wide codec built from settings (cached)."""
    return TokenCodec.from_settings(settings)
