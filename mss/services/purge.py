"""Permanent deletion: remove soft-deleted users and stale token records."""

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from mss.core.clock import utcnow
from mss.repositories import token as token_repo
from mss.repositories import user as user_repo

if TYPE_CHECKING:
    from mss.core.config import Settings

logger = logging.getLogger(__name__)


def run_permanent_deletion(session: Session, settings: "Settings") -> tuple[int, int]:
    """
    Delete users soft-deleted more than PURGE_RETENTION_DAYS ago, their
    token records, and any token record created before the same cutoff.

    Returns (users_deleted, tokens_deleted). Idempotent: safe to run repeatedly.
    """
    if not settings.PURGE_ENABLED:
        logger.info("Permanent deletion is disabled (PURGE_ENABLED=false); skipping.")
        return (0, 0)

    cutoff = utcnow() - timedelta(days=settings.PURGE_RETENTION_DAYS)

    user_ids = user_repo.find_user_ids_deleted_before(session, cutoff)
    # tokens first; tokens.user_id references users.id
    tokens_deleted = token_repo.delete_tokens_by_user_ids(session, user_ids)
    tokens_deleted += token_repo.delete_tokens_created_before(session, cutoff)
    users_deleted = user_repo.delete_users_by_ids(session, user_ids)
    session.commit()

    if users_deleted or tokens_deleted:
        logger.info(
            "Permanent deletion run: cutoff=%s, users_deleted=%s, tokens_deleted=%s",
            cutoff.isoformat(),
            users_deleted,
            tokens_deleted,
        )
    return (users_deleted, tokens_deleted)
