"""
Authentication gate decision tests.

Exercises AuthenticationGate.evaluate directly against the test database:
public paths and header-less requests pass through, bad tokens and
retired ledger records are rejected with 401, valid tokens produce a
principal carrying the role's authorities.

"""

from contextlib import contextmanager
from datetime import timedelta

import pytest

from mss.core.clock import utcnow
from mss.core.config import settings
from mss.core.gate import AuthenticationGate, Principal
from mss.core.security import TokenCodec, token_codec
from mss.models.user import Role
from mss.services.ledger import TokenLedger
from tests.helpers import auth_header, create_user_in_db, unique_email

PROTECTED = "/api/v1/users/user"


@pytest.fixture()
def gate():
    return AuthenticationGate.from_settings(settings, token_codec)


@pytest.fixture()
def open_session(session_factory):
    @contextmanager
    def _open():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    return _open


def issue(db, user) -> str:
    token = token_codec.generate_token(user)
    TokenLedger(db).record(user, token)
    db.commit()
    return token


def evaluate(gate, open_session, token=None, path=PROTECTED):
    authorization = auth_header(token)["Authorization"] if token else None
    return gate.evaluate(open_session, path=path, authorization=authorization)


@pytest.mark.parametrize(
    "path",
    ["/api/v1/auth/authenticate", "/api/v1/auth/refresh-token", "/docs", "/openapi.json", "/health"],
)
def test_public_paths_pass_through(gate, open_session, path):
    decision = evaluate(gate, open_session, token="garbage", path=path)
    assert not decision.rejected
    assert decision.principal is None


def test_public_prefix_does_not_match_lookalike(gate):
    assert gate.is_public("/api/v1/auth/logout")
    assert not gate.is_public("/api/v1/authx")


def test_no_header_passes_through(gate, open_session):
    decision = evaluate(gate, open_session)
    assert not decision.rejected
    assert decision.principal is None


def test_non_bearer_header_passes_through(gate, open_session):
    decision = gate.evaluate(open_session, path=PROTECTED, authorization="Basic abc")
    assert not decision.rejected
    assert decision.principal is None


def test_malformed_token_rejected(gate, open_session):
    decision = evaluate(gate, open_session, token="not-a-jwt")
    assert decision.status_code == 401
    assert decision.message.startswith("Invalid token: ")


def test_expired_token_rejected(gate, open_session, db_session):
    user = create_user_in_db(db_session, email=unique_email())
    stale = TokenCodec(
        secret_key=settings.SECRET_KEY.get_secret_value(),
        refresh_secret_key=settings.REFRESH_SECRET_KEY.get_secret_value(),
        now=lambda: utcnow() - timedelta(days=1),
    )
    decision = evaluate(gate, open_session, token=stale.generate_token(user))
    assert decision.status_code == 401
    assert decision.message.startswith("Token expired: ")


def test_unknown_user_rejected(gate, open_session, db_session):
    user = create_user_in_db(db_session, email=unique_email())
    token = token_codec.generate_token(user)
    db_session.delete(user)
    db_session.commit()

    decision = evaluate(gate, open_session, token=token)
    assert decision.status_code == 401
    assert decision.message == "User not found."


def test_token_without_ledger_record_rejected(gate, open_session, db_session):
    user = create_user_in_db(db_session, email=unique_email())
    decision = evaluate(gate, open_session, token=token_codec.generate_token(user))
    assert decision.status_code == 401
    assert decision.message == "Invalid token."


def test_revoked_token_rejected(gate, open_session, db_session):
    user = create_user_in_db(db_session, email=unique_email())
    token = issue(db_session, user)
    TokenLedger(db_session).revoke_all_user_tokens(user)
    db_session.commit()

    decision = evaluate(gate, open_session, token=token)
    assert decision.status_code == 401
    assert decision.message == "Token is either revoked or invalid."


def test_unverified_account_rejected(gate, open_session, db_session):
    user = create_user_in_db(db_session, email=unique_email(), enabled=False)
    decision = evaluate(gate, open_session, token=issue(db_session, user))
    assert decision.status_code == 401
    assert decision.message == "Account is not verified."


@pytest.mark.parametrize("role", [Role.USER, Role.ADMIN])
def test_valid_token_yields_principal(gate, open_session, db_session, role):
    user = create_user_in_db(db_session, email=unique_email(), role=role)
    decision = evaluate(gate, open_session, token=issue(db_session, user))

    assert not decision.rejected
    principal = decision.principal
    assert principal.user_id == user.id
    assert principal.email == user.email
    assert principal.role == role
    assert f"ROLE_{role.value}" in principal.authorities
    assert principal.has_authority("user:read")
    assert principal.has_authority("admin:delete") is (role == Role.ADMIN)


def test_existing_principal_is_kept(gate, open_session, db_session):
    user = create_user_in_db(db_session, email=unique_email())
    current = Principal.for_user(user)

    @contextmanager
    def no_session():
        raise AssertionError("ledger must not be consulted")
        yield

    decision = gate.evaluate(
        no_session,
        path=PROTECTED,
        authorization=auth_header(token_codec.generate_token(user))["Authorization"],
        current=current,
    )
    assert decision.principal is current


def test_principal_carries_caller_details(gate, open_session, db_session):
    user = create_user_in_db(db_session, email=unique_email())
    decision = gate.evaluate(
        open_session,
        path=PROTECTED,
        authorization=auth_header(issue(db_session, user))["Authorization"],
        client_host="203.0.113.7",
        user_agent="shop-frontend/1.0",
    )
    assert decision.principal.client_host == "203.0.113.7"
    assert decision.principal.user_agent == "shop-frontend/1.0"


def test_middleware_fills_caller_details(client, db_session):
    from fastapi import Depends

    from mss.core.deps import get_current_principal
    from mss.main import app
    from tests.helpers import USER_PASSWORD, login

    @app.get("/api/v1/_caller")
    def caller(principal: Principal = Depends(get_current_principal)):
        return {"host": principal.client_host, "agent": principal.user_agent}

    try:
        email = unique_email()
        create_user_in_db(db_session, email=email)
        token = login(client, email, USER_PASSWORD)["accessToken"]

        r = client.get("/api/v1/_caller", headers={**auth_header(token), "User-Agent": "shop-frontend/1.0"})
        assert r.status_code == 200, r.text
        assert r.json() == {"host": "testclient", "agent": "shop-frontend/1.0"}
    finally:
        app.router.routes[:] = [route for route in app.router.routes if getattr(route, "path", None) != "/api/v1/_caller"]
