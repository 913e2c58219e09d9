"""
CLI entrypoint for the permanent deletion job. Run from cron, e.g.:

  python -m mss.purge

Or daily: 0 3 * * * cd /path/to/mss && .venv/bin/python -m mss.purge
"""

import logging
import sys

from mss.core.config import get_settings
from mss.core.logging import configure_logging
from mss.db.session import SessionLocal
from mss.services.purge import run_permanent_deletion

logger = logging.getLogger(__name__)


def main() -> int:
    """Purge soft-deleted users and stale token records."""
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)
    db = SessionLocal()
    try:
        users_deleted, tokens_deleted = run_permanent_deletion(db, settings)
        logger.info(
            "Permanent deletion completed: users_deleted=%s, tokens_deleted=%s",
            users_deleted,
            tokens_deleted,
        )
        return 0
    except Exception as e:
        db.rollback()
        logger.exception("Permanent deletion job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
