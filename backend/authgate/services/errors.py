"""Authentication error taxonomy.

Services raise these; route handlers translate them into HTTP status codes
and the request authorizer turns every token failure into a uniform 401.
"""


class AuthError(Exception):
    """Base authentication error."""

    pass


class PasswordMismatchError(AuthError):
    """Password and its confirmation differ."""

    def __init__(self, message: str = "Password and password confirmation do not match"):
        super().__init__(message)


class EmailExistsError(AuthError):
    """An account with this email is already registered."""

    def __init__(self, message: str = "Email already exists"):
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password; deliberately does not say which."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class AccountLockedError(AuthError):
    """Account is locked after too many failed logins (or by an admin)."""

    def __init__(self, message: str = "Account is locked"):
        super().__init__(message)


class AccountDisabledError(AuthError):
    """Account has not been activated yet."""

    def __init__(self, message: str = "Account is not activated"):
        super().__init__(message)


class PrincipalNotFoundError(AuthError):
    """No principal with the given identity."""

    pass


class TokenError(AuthError):
    """A token could not be accepted."""

    pass


class TokenExpiredError(TokenError):
    """Token signature is fine but its lifetime is over."""

    pass


class TokenMalformedError(TokenError):
    """Token is not a well-formed signed token."""

    pass


class TokenUnsupportedError(TokenError):
    """Token uses an algorithm or token type that is not accepted here."""

    pass


class TokenInvalidSignatureError(TokenError):
    """Token was not signed with our key."""

    pass


class TokenRevokedError(TokenError):
    """Token decodes fine but its stored record is revoked, expired or missing."""

    pass


class UnauthorizedError(AuthError):
    """Generic request-authorization rejection.

    ``reason`` is for server-side logs only; clients always get the same
    response regardless of why authorization failed.
    """

    def __init__(self, reason: str, message: str = "Unauthorized"):
        super().__init__(message)
        self.reason = reason


class NotifierError(AuthError):
    """Outbound notification could not be delivered. Never fatal."""

    pass
