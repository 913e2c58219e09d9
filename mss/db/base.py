"""
base.py

SQLAlchemy declarative Base shared by every ORM model.

All models (User, Token) register their tables on this Base, and the
Alembic environment reads Base.metadata from here.

Related files:
- mss.models.*            : ORM models
- alembic/env.py          : migration metadata

"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
