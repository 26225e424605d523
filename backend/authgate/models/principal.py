"""Principal model - an account that can authenticate."""

from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authgate.models.base import BaseModel

if TYPE_CHECKING:
    from authgate.models.issued_token import IssuedToken


class Role(str, Enum):
    """The single role a principal holds."""

    USER = "USER"
    ADMIN = "ADMIN"
    DOCTOR = "DOCTOR"


class Principal(BaseModel):
    """A user account.

    New accounts start with enabled=False and only become usable once the
    emailed activation link is followed. account_non_locked flips to False
    after too many consecutive failed logins (or an admin lock) and stays
    that way until an admin unlocks the account.
    """

    __tablename__ = "principals"

    # Matched case-sensitively, exactly as registered
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(30), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(30), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default=Role.USER.value)

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    account_non_locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    failed_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    tokens: Mapped[list["IssuedToken"]] = relationship(
        "IssuedToken",
        back_populates="principal",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Principal {self.email} role={self.role} enabled={self.enabled}>"
