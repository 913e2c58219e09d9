"""
repositories/user.py

User lookups for the credential store.

Every lookup returns the row or None; callers decide which error an
absent user maps to. Soft-deleted users are excluded unless
include_deleted=True.

"""

import datetime

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from mss.models.user import User


def get_user_by_id(db: Session, user_id: int, *, include_deleted: bool = False) -> User | None:
    stmt = select(User).where(User.id == user_id)
    if not include_deleted:
        stmt = stmt.where(User.is_deleted.is_(False))
    return db.scalar(stmt)


def get_user_by_email(db: Session, email: str, *, include_deleted: bool = False) -> User | None:
    stmt = select(User).where(User.email == email)
    if not include_deleted:
        stmt = stmt.where(User.is_deleted.is_(False))
    return db.scalar(stmt)


def email_taken(db: Session, email: str) -> bool:
    # the unique index also covers soft-deleted rows
    return get_user_by_email(db, email, include_deleted=True) is not None


def add_user(db: Session, user: User) -> User:
    db.add(user)
    db.flush()
    return user


def find_user_ids_deleted_before(db: Session, cutoff: datetime.datetime) -> list[int]:
    return list(
        db.scalars(
            select(User.id).where(
                User.is_deleted.is_(True),
                User.deleted_at.is_not(None),
                User.deleted_at < cutoff,
            )
        ).all()
    )


def delete_users_by_ids(db: Session, user_ids: list[int]) -> int:
    if not user_ids:
        return 0
    result = db.execute(delete(User).where(User.id.in_(user_ids)))
    return result.rowcount or 0


def list_users(db: Session, *, include_deleted: bool = False) -> list[User]:
    stmt = select(User).order_by(User.id)
    if not include_deleted:
        stmt = stmt.where(User.is_deleted.is_(False))
    return list(db.scalars(stmt).all())


def search_users(
    db: Session,
    *,
    is_deleted: bool = False,
    full_name: str | None = None,
    address: str | None = None,
    email: str | None = None,
    phone_digits: str | None = None,
    offset: int = 0,
    limit: int = 5,
) -> tuple[list[User], int]:
    """
    Case-insensitive substring filters over users with the given deletion
    status, ordered by first name. Returns (page of users, total matches).
    """
    conditions = [User.is_deleted.is_(is_deleted)]
    if full_name:
        conditions.append(func.lower(User.firstname + " " + User.lastname).like(f"%{full_name.lower()}%"))
    if address:
        conditions.append(func.lower(User.address).like(f"%{address.lower()}%"))
    if email:
        conditions.append(func.lower(User.email).like(f"%{email.lower()}%"))
    if phone_digits:
        conditions.append(User.mobile_number.like(f"%{phone_digits}%"))

    total = db.scalar(select(func.count()).select_from(User).where(*conditions)) or 0
    users = db.scalars(
        select(User).where(*conditions).order_by(User.firstname, User.id).offset(offset).limit(limit)
    ).all()
    return list(users), total
