"""
token.py

Issued bearer token records (the token ledger table).

A row is written for every access token handed out. The gate accepts a
token only while its row is neither expired nor revoked AND the JWT
itself still verifies; the two checks are independent.

"""

import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mss.core.clock import utcnow
from mss.db.base import Base

if TYPE_CHECKING:
    from mss.models.user import User


class TokenType(str, Enum):
    BEARER = "BEARER"


class Token(Base):
    __tablename__ = "tokens"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(1024), unique=True, index=True, nullable=False)
    token_type: Mapped[TokenType] = mapped_column(
        SAEnum(TokenType, name="token_type"), nullable=False, default=TokenType.BEARER
    )

    expired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    user: Mapped["User"] = relationship(back_populates="tokens")

    @property
    def is_usable(self) -> bool:
        return not self.expired and not self.revoked
