"""Middleware module for AuthGate."""

from authgate.middleware.request_authorizer import (
    AuthenticatedPrincipal,
    AuthorizationResult,
    AuthorizationState,
    RequestAuthorizer,
    RequestAuthorizerMiddleware,
)

__all__ = [
    "AuthenticatedPrincipal",
    "AuthorizationResult",
    "AuthorizationState",
    "RequestAuthorizer",
    "RequestAuthorizerMiddleware",
]
