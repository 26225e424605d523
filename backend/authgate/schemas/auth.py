"""Pydantic schemas for authentication API."""

from typing import Annotated

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, Field, field_validator

from authgate.models.principal import Role


def check_email_format(v: str) -> str:
    """Reject malformed addresses; the value is kept exactly as submitted."""
    try:
        validate_email(v, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(str(e)) from e
    return v


# Emails are matched case-sensitively, so the normalized form is discarded
EmailAddress = Annotated[str, AfterValidator(check_email_format)]


class RegisterRequest(BaseModel):
    """Request to create a new (not yet activated) account."""

    first_name: str | None = Field(None, min_length=3, max_length=16)
    last_name: str | None = Field(None, min_length=3, max_length=16)
    email: EmailAddress
    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="Password (minimum 8 characters)",
    )
    confirm_password: str
    role: Role | None = Field(None, description="USER (default) or DOCTOR; ADMIN is refused")

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Role | None) -> Role | None:
        if v == Role.ADMIN:
            raise ValueError("Administrator accounts cannot be self-registered")
        return v


class RegisterResponse(BaseModel):
    """Response after registration; the token is the activation token."""

    message: str
    token: str


class AuthenticationRequest(BaseModel):
    """Request for login."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Response with an access/refresh token pair."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class ForgotPasswordRequest(BaseModel):
    """Request for a password reset link."""

    email: EmailAddress


class ResetPasswordRequest(BaseModel):
    """New password submitted with a reset token."""

    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="New password (minimum 8 characters)",
    )
    password_confirm: str


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
