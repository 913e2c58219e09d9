"""
session.py

Database engine and session factory.

Routes get a request-scoped session through mss.core.deps.get_db; the
authentication middleware and the purge CLI open sessions from the same
SessionLocal.

Related files:
- mss.core.config        : DATABASE_URL
- mss.core.deps          : get_db dependency

"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from mss.core.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are shared across the threadpool workers
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


# pool_pre_ping=True:
#   detects connections dropped while idle and reconnects
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)
