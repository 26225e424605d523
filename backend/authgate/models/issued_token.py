"""IssuedToken model - revocation record for an access-class token."""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authgate.models.base import BaseModel

if TYPE_CHECKING:
    from authgate.models.principal import Principal


class TokenKind(str, Enum):
    """Token classes that are persisted. Refresh tokens never are."""

    ACCESS = "access"
    ACTIVATION = "activation"
    PASSWORD_RESET = "password_reset"


class IssuedToken(BaseModel):
    """A signed token that was handed to a client and can be revoked.

    A token is usable only while a row exists with revoked=False and
    expired=False. Rows are flagged on logout, login/refresh rotation and
    password change, then removed by the expiry sweeper.
    """

    __tablename__ = "issued_tokens"

    __table_args__ = (Index("ix_issued_tokens_principal_valid", "principal_id", "revoked", "expired"),)

    token: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True, index=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False, default=TokenKind.ACCESS.value)
    revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    expired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    principal_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=False,
    )
    principal: Mapped["Principal"] = relationship("Principal", back_populates="tokens")

    @property
    def is_valid(self) -> bool:
        return not self.revoked and not self.expired

    def __repr__(self) -> str:
        return f"<IssuedToken {self.id} kind={self.kind} principal_id={self.principal_id} valid={self.is_valid}>"
