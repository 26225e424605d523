"""Per-request bearer token authorization.

Every request outside the public allow-list must carry
``Authorization: Bearer <access token>``. The token has to verify (signature,
expiry, access type), be on record as not revoked, and belong to an existing
principal. The resolved identity is attached to ``request.state.principal``
for the handlers of this request only.

Clients get the same 401 body whatever the failure; the specific reason only
goes to the server log.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from fastapi import Request, Response
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import JSONResponse
from starlette.types import ASGIApp

from authgate.core import database
from authgate.core.logging import token_fingerprint
from authgate.models.principal import Principal
from authgate.services.auth_session import extract_bearer_token
from authgate.services.token_codec import TOKEN_TYPE_ACCESS, TokenCodec, get_token_codec
from authgate.services.token_store import TokenStore

logger = logging.getLogger(__name__)

# Reachable without a token (exact or segment-boundary match)
PUBLIC_PATHS = [
    "/auth/register",
    "/auth/authenticate",
    "/auth/refresh-token",
    "/auth/enable-user",
    "/auth/forgot-password",
    "/auth/reset-password",
    "/health",
]

# Interactive API docs, only mounted (and only public) when debug is on
DOCS_PATHS = ["/docs", "/redoc", "/openapi.json"]

UNAUTHORIZED_DETAIL = "Authentication required"


def is_public_path(path: str, public_paths: Sequence[str] = PUBLIC_PATHS) -> bool:
    return any(path == public or path.startswith(public + "/") for public in public_paths)


class AuthorizationState(str, Enum):
    PUBLIC_PATH = "public_path"
    NO_TOKEN = "no_token"
    REJECTED = "rejected"
    AUTHENTICATED = "authenticated"
    ALREADY_AUTHENTICATED = "already_authenticated"


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """Identity and authority of the caller, as seen by request handlers."""

    id: int
    email: str
    role: str

    @classmethod
    def from_principal(cls, principal: Principal) -> "AuthenticatedPrincipal":
        return cls(id=principal.id, email=principal.email, role=principal.role)


@dataclass(frozen=True)
class AuthorizationResult:
    state: AuthorizationState
    principal: AuthenticatedPrincipal | None = None
    reason: str = ""

    @property
    def allowed(self) -> bool:
        return self.state in (
            AuthorizationState.PUBLIC_PATH,
            AuthorizationState.AUTHENTICATED,
            AuthorizationState.ALREADY_AUTHENTICATED,
        )


class RequestAuthorizer:
    """Decide whether a request may proceed and who is making it.

    Reads the token store and principal table but never writes to them.
    """

    def __init__(
        self,
        codec: TokenCodec | None = None,
        public_paths: Sequence[str] | None = None,
    ):
        self._codec = codec
        self.public_paths = tuple(public_paths if public_paths is not None else PUBLIC_PATHS)

    @property
    def codec(self) -> TokenCodec:
        return self._codec or get_token_codec()

    def classify(
        self,
        method: str,
        path: str,
        authorization_header: str | None,
        current: AuthenticatedPrincipal | None = None,
    ) -> AuthorizationResult | None:
        """Decide what can be decided without the database. None means look the token up."""
        # CORS preflight is answered by CORSMiddleware
        if method == "OPTIONS" or is_public_path(path, self.public_paths):
            return AuthorizationResult(AuthorizationState.PUBLIC_PATH)

        if extract_bearer_token(authorization_header) is None:
            return AuthorizationResult(AuthorizationState.NO_TOKEN, reason="missing_bearer_token")

        if current is not None:
            return AuthorizationResult(AuthorizationState.ALREADY_AUTHENTICATED, principal=current)

        return None

    async def authorize(
        self,
        session: AsyncSession,
        method: str,
        path: str,
        authorization_header: str | None,
        current: AuthenticatedPrincipal | None = None,
    ) -> AuthorizationResult:
        decided = self.classify(method, path, authorization_header, current)
        if decided is not None:
            return decided
        return await self.resolve(session, extract_bearer_token(authorization_header))

    async def resolve(self, session: AsyncSession, token: str) -> AuthorizationResult:
        """Resolve a bearer token to the principal it was issued to."""
        decoded = self.codec.inspect(token, expected_type=TOKEN_TYPE_ACCESS)
        if not decoded.ok:
            return AuthorizationResult(
                AuthorizationState.REJECTED, reason=f"token_{decoded.failure.value}"
            )

        result = await session.execute(
            select(Principal).where(Principal.email == decoded.token.subject)
        )
        principal = result.scalar_one_or_none()
        if principal is None:
            return AuthorizationResult(AuthorizationState.REJECTED, reason="unknown_subject")

        if not await TokenStore(session).is_valid(token):
            return AuthorizationResult(AuthorizationState.REJECTED, reason="token_revoked")

        if not self.codec.is_token_valid_for(token, principal.email):
            return AuthorizationResult(AuthorizationState.REJECTED, reason="subject_mismatch")

        return AuthorizationResult(
            AuthorizationState.AUTHENTICATED,
            principal=AuthenticatedPrincipal.from_principal(principal),
        )


def unauthorized_response() -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"detail": UNAUTHORIZED_DETAIL},
        headers={"WWW-Authenticate": "Bearer"},
    )


class RequestAuthorizerMiddleware(BaseHTTPMiddleware):
    """Run ``RequestAuthorizer`` in front of every route.

    Rejected requests end here with a 401; handlers are not invoked.
    """

    def __init__(
        self,
        app: ASGIApp,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        codec: TokenCodec | None = None,
        public_paths: Sequence[str] | None = None,
    ):
        super().__init__(app)
        self._session_factory = session_factory
        self.authorizer = RequestAuthorizer(codec, public_paths)

    def _sessions(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory or database.async_session_maker

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        method = request.method
        path = request.url.path
        header = request.headers.get("Authorization")
        current = getattr(request.state, "principal", None)

        result = self.authorizer.classify(method, path, header, current)
        if result is None:
            # Closed before call_next; the route opens its own session afterwards
            async with self._sessions()() as session:
                result = await self.authorizer.resolve(session, extract_bearer_token(header))

        if not result.allowed:
            token = extract_bearer_token(header)
            fingerprint = token_fingerprint(token) if token else "-"
            logger.warning(f"Rejected {method} {path}: {result.reason} (token {fingerprint})")
            return unauthorized_response()

        if result.principal is not None:
            request.state.principal = result.principal
        return await call_next(request)
