"""
user.py

User, Role and Permission definitions.

The User record is the identity every authentication flow works on:
credentials, role, verification state, password-reset state and the
soft-delete flag.

"""

import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, Enum as SAEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from mss.core.clock import utcnow
from mss.db.base import Base

if TYPE_CHECKING:
    from mss.models.token import Token


class Permission(str, Enum):
    ADMIN_READ = "admin:read"
    ADMIN_UPDATE = "admin:update"
    ADMIN_CREATE = "admin:create"
    ADMIN_DELETE = "admin:delete"
    USER_READ = "user:read"
    USER_UPDATE = "user:update"
    USER_CREATE = "user:create"
    USER_DELETE = "user:delete"


"""
Roles

- ADMIN : every admin:* and user:* permission
- USER  : user:* permissions only

"""

class Role(str, Enum):
    ADMIN = "ADMIN"
    USER = "USER"


ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.USER: frozenset(
        {
            Permission.USER_READ,
            Permission.USER_UPDATE,
            Permission.USER_CREATE,
            Permission.USER_DELETE,
        }
    ),
}


def authorities_for(role: Role) -> frozenset[str]:
    """Permission strings of the role plus its ROLE_<NAME> marker."""
    names = {permission.value for permission in ROLE_PERMISSIONS[role]}
    names.add(f"ROLE_{role.value}")
    return frozenset(names)


"""
User model

- email is the unique login name and the token subject
- enabled stays False until the emailed verification code is confirmed
- verification_code / password_code hold bcrypt hashes, never the codes
- is_deleted / deleted_at implement soft delete; the purge job removes
  the row once the retention window has passed

"""

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    firstname: Mapped[str] = mapped_column(String(100), nullable=False)
    lastname: Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[str] = mapped_column(String(320), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    mobile_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    date_of_birth: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

    role: Mapped[Role] = mapped_column(SAEnum(Role, name="user_role"), nullable=False, default=Role.USER)

    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    verification_code: Mapped[str | None] = mapped_column(String(255), nullable=True)
    verification_expiration: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    password_code: Mapped[str | None] = mapped_column(String(255), nullable=True)
    password_code_expiration: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    deleted_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    tokens: Mapped[list["Token"]] = relationship(back_populates="user")

    @property
    def authorities(self) -> frozenset[str]:
        return authorities_for(self.role)
