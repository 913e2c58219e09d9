# tests/helpers.py
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from mss.core.security import get_password_hash
from mss.models.token import Token
from mss.models.user import Role, User

API = "/api/v1"

ADMIN_PASSWORD = "AdminPassw0rd!"
USER_PASSWORD = "UserPassw0rd!"


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def refresh_header(token: str) -> dict:
    return {"Refresh": f"Bearer {token}"}


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:6]}@test.com"


def create_user_in_db(
    db: Session,
    *,
    email: str,
    password: str = USER_PASSWORD,
    role: Role = Role.USER,
    enabled: bool = True,
) -> User:
    user = User(
        firstname="Test",
        lastname=role.value.title(),
        email=email,
        password_hash=get_password_hash(password),
        mobile_number="0123456789",
        role=role,
        enabled=enabled,
        is_deleted=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_admin_in_db(db: Session, *, email: str, password: str = ADMIN_PASSWORD) -> User:
    return create_user_in_db(db, email=email, password=password, role=Role.ADMIN)


def login(client, email: str, password: str) -> dict:
    r = client.post(f"{API}/auth/authenticate", json={"email": email, "password": password})
    assert r.status_code == 200, r.text
    return r.json()


def admin_token(client, db: Session) -> str:
    email = unique_email("admin")
    create_admin_in_db(db, email=email)
    return login(client, email, ADMIN_PASSWORD)["accessToken"]


def register_payload(email: str, password: str = USER_PASSWORD) -> dict:
    return {
        "firstname": "Jane",
        "lastname": "Doe",
        "email": email,
        "password": password,
        "role": "USER",
        "mobileNumber": "0123456789",
    }


def get_user(db: Session, email: str) -> User:
    db.expire_all()
    return db.scalar(select(User).where(User.email == email))


def get_token_record(db: Session, token: str) -> Token:
    db.expire_all()
    return db.scalar(select(Token).where(Token.token == token))
