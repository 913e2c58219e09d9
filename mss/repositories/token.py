"""
repositories/token.py

Queries over the issued-token table.

"""

import datetime

from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from mss.models.token import Token


def find_by_token(db: Session, token: str) -> Token | None:
    return db.scalar(select(Token).where(Token.token == token))


def find_all_valid_tokens_by_user(db: Session, user_id: int) -> list[Token]:
    """
    Tokens of the user that are not fully retired.

    expired = false OR revoked = false: a token with only one of the two
    flags set still counts and gets retired on the next revocation.
    """
    return list(
        db.scalars(
            select(Token).where(
                Token.user_id == user_id,
                or_(Token.expired.is_(False), Token.revoked.is_(False)),
            )
        ).all()
    )


def add_token(db: Session, token: Token) -> Token:
    db.add(token)
    db.flush()
    return token


def delete_tokens_by_user_ids(db: Session, user_ids: list[int]) -> int:
    if not user_ids:
        return 0
    result = db.execute(delete(Token).where(Token.user_id.in_(user_ids)))
    return result.rowcount or 0


def delete_tokens_created_before(db: Session, cutoff: datetime.datetime) -> int:
    result = db.execute(delete(Token).where(Token.created_at < cutoff))
    return result.rowcount or 0
