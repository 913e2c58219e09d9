"""
services/users.py

Operations on the authenticated user and on other accounts.

Main features:
- current user profile and details
- self-service profile update and password change
- user listing, lookup by id and filtered search
- profile update by an administrator (including soft delete / restore)
- account deletion by an administrator (soft delete; tokens removed)

Design notes:
- no HTTP / FastAPI dependencies
- flush only; the router owns the commit
- a soft-deleted account keeps its row until the purge job removes it
- the email is the token subject, so changing it invalidates the
  user's outstanding tokens

Related files:
- mss.routers.users      : HTTP surface
- mss.services.purge     : permanent removal after the retention window

"""

import logging
import re

from sqlalchemy.orm import Session

from mss.core.clock import utcnow
from mss.core.errors import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from mss.core.gate import Principal
from mss.core.security import get_password_hash, verify_password
from mss.models.user import Role, User
from mss.repositories import token as token_repo
from mss.repositories import user as user_repo
from mss.schemas.auth import PasswordChangeRequest
from mss.schemas.user import UserFiltersQuery, UserUpdateRequest

logger = logging.getLogger(__name__)

USER_ID_NOT_FOUND = "User with this id doesn't exist"


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def get_current_user(self, principal: Principal) -> User:
        user = user_repo.get_user_by_id(self.db, principal.user_id)
        if user is None:
            raise RuntimeError("Authentication object does not contain user details")
        return user

    def get_user(self, user_id: int) -> User:
        user = user_repo.get_user_by_id(self.db, user_id)
        if user is None:
            raise NotFoundError(USER_ID_NOT_FOUND)
        return user

    def list_users(self) -> list[User]:
        return user_repo.list_users(self.db)

    def search_users(self, filters: UserFiltersQuery, page: int, page_size: int) -> tuple[list[User], int]:
        # phone numbers are matched on their digits only
        phone_digits = re.sub(r"[^0-9]", "", filters.phone_number) if filters.phone_number else None
        return user_repo.search_users(
            self.db,
            is_deleted=filters.is_deleted,
            full_name=filters.full_name,
            address=filters.address,
            email=filters.email,
            phone_digits=phone_digits,
            offset=page * page_size,
            limit=page_size,
        )

    def _apply_update(self, user: User, dto: UserUpdateRequest) -> None:
        if dto.email != user.email and user_repo.email_taken(self.db, dto.email):
            raise ConflictError("Email already registered")

        user.firstname = dto.firstname
        user.lastname = dto.lastname
        user.email = dto.email
        user.mobile_number = dto.mobile_number
        user.date_of_birth = dto.date_of_birth
        user.address = dto.address
        user.image_url = dto.image_url
        user.updated_at = utcnow()

    def update_current_user(self, principal: Principal, dto: UserUpdateRequest) -> User:
        user = self.get_current_user(principal)
        self._apply_update(user, dto)
        self.db.flush()
        logger.info("Profile updated for user_id=%s", user.id)
        return user

    def update_user_by_admin(self, user_id: int, dto: UserUpdateRequest) -> User:
        # deleted accounts stay reachable here so they can be restored
        user = user_repo.get_user_by_id(self.db, user_id, include_deleted=True)
        if user is None:
            raise NotFoundError(USER_ID_NOT_FOUND)

        self._apply_update(user, dto)
        if dto.is_deleted is not None and dto.is_deleted != user.is_deleted:
            if dto.is_deleted and user.role == Role.ADMIN:
                raise ForbiddenError("Admin cannot be deleted")
            user.is_deleted = dto.is_deleted
            user.deleted_at = utcnow() if dto.is_deleted else None
        self.db.flush()

        logger.info("User_id=%s updated by admin (deleted=%s)", user.id, user.is_deleted)
        return user

    def change_password(self, principal: Principal, dto: PasswordChangeRequest) -> None:
        user = self.get_current_user(principal)
        if dto.new_password != dto.repeat_new_password:
            raise BadRequestError("New passwords don't match")
        if not verify_password(dto.password, user.password_hash):
            raise BadRequestError("Incorrect password")

        user.password_hash = get_password_hash(dto.new_password)
        self.db.flush()
        logger.info("Password changed for user_id=%s", user.id)

    def delete_user(self, user_id: int) -> None:
        user = user_repo.get_user_by_id(self.db, user_id)
        if user is None:
            raise NotFoundError("User not found")
        if user.role == Role.ADMIN:
            raise ForbiddenError("Admin cannot be deleted")

        removed = token_repo.delete_tokens_by_user_ids(self.db, [user.id])
        user.is_deleted = True
        user.deleted_at = utcnow()
        self.db.flush()
        logger.info("Soft-deleted user_id=%s (%d token(s) removed)", user.id, removed)
