import os

# cheap hashing for tests; must be set before mss settings are loaded
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SMTP_HOST", "")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from mss.main import app as fastapi_app
from mss.core.config import settings
from mss.core.deps import get_db
from mss.core.errors import EmailDeliveryError
from mss.db.base import Base
from mss.models import Token, User
from mss.services.email import get_email_service


class RecordingMailer:
    """Stands in for EmailService; keeps the plain codes that would be emailed."""

    def __init__(self):
        self.verification_codes: dict[str, str] = {}
        self.reset_codes: dict[str, str] = {}
        self.fail = False

    def send_verification_email(self, email: str, code: str) -> None:
        if self.fail:
            raise EmailDeliveryError("smtp down")
        self.verification_codes[email] = code

    def send_password_reset_email(self, email: str, code: str) -> None:
        if self.fail:
            raise EmailDeliveryError("smtp down")
        self.reset_codes[email] = code


@pytest.fixture(scope="session")
def engine(tmp_path_factory):
    url = settings.TEST_DATABASE_URL or os.getenv("TEST_DATABASE_URL")
    if not url:
        url = f"sqlite:///{tmp_path_factory.mktemp('db') / 'test.db'}"
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def clean_tables(engine):
    """Rows are removed after every test; the schema stays."""
    yield
    with engine.begin() as conn:
        conn.execute(Token.__table__.delete())
        conn.execute(User.__table__.delete())


@pytest.fixture()
def db_session(session_factory):
    """Session for arranging and inspecting data directly."""
    session = session_factory()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def mailer():
    return RecordingMailer()


@pytest.fixture()
def client(session_factory, mailer):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_email_service] = lambda: mailer
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()
