"""
security.py

Password hashing and the JWT token codec.

Low-level security helpers only; no routing and no database access.

Main features:
- password / one-time code hashing and verification (bcrypt)
- access token generation (subject = user email, role claim)
- refresh token generation (separate signing key, longer lifetime)
- subject extraction with expired / invalid classification
- token-to-user validity check

Related files:
- mss.core.config        : secrets, algorithm and lifetimes
- mss.core.gate          : validates bearer tokens per request
- mss.services.auth      : issues tokens on login / refresh / verification

"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Literal

from jose import JWTError, jwt
from passlib.context import CryptContext

from mss.core.clock import utcnow
from mss.core.config import Settings, settings
from mss.core.errors import ExpiredTokenError, InvalidTokenError
from mss.models.user import User

TokenKind = Literal["access", "refresh"]


# bcrypt hashing context
# deprecated="auto" lets stored hashes migrate if the scheme ever changes
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


class TokenCodec:
    """
    Encodes and decodes signed, expiring bearer tokens.

    Access and refresh tokens share one layout (sub, role, type, iat, exp,
    jti) but are signed with different keys, so a refresh token never
    verifies as an access token and vice versa. The codec is a pure
    function of token, keys and the injected clock.
    """

    def __init__(
        self,
        *,
        secret_key: str,
        refresh_secret_key: str,
        algorithm: str = "HS256",
        access_lifetime: timedelta = timedelta(minutes=60),
        refresh_lifetime: timedelta = timedelta(days=7),
        now: Callable[[], datetime] = utcnow,
    ):
        self._keys = {"access": secret_key, "refresh": refresh_secret_key}
        self._lifetimes = {"access": access_lifetime, "refresh": refresh_lifetime}
        self.algorithm = algorithm
        self._now = now

    @classmethod
    def from_settings(cls, config: Settings) -> "TokenCodec":
        return cls(
            secret_key=config.SECRET_KEY.get_secret_value(),
            refresh_secret_key=config.REFRESH_SECRET_KEY.get_secret_value(),
            algorithm=config.ALGORITHM,
            access_lifetime=timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_lifetime=timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS),
        )

    def _encode(self, user: User, token_type: TokenKind) -> str:
        issued_at = self._now()
        payload = {
            "sub": user.email,
            "role": user.role.value,
            "type": token_type,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._lifetimes[token_type]).timestamp()),
            # two tokens issued within the same second must still differ
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._keys[token_type], algorithm=self.algorithm)

    def generate_token(self, user: User) -> str:
        return self._encode(user, "access")

    def generate_refresh_token(self, user: User) -> str:
        return self._encode(user, "refresh")

    def extract_username(self, token: str, token_type: TokenKind = "access") -> str:
        """
        Return the subject (user email) of a token.

        The embedded expiry is checked before the signature, so an expired
        token is always reported as ExpiredTokenError. Anything else that
        fails to decode raises InvalidTokenError.
        """
        try:
            unverified = jwt.get_unverified_claims(token)
        except JWTError as e:
            raise InvalidTokenError(str(e)) from e

        exp = unverified.get("exp")
        if isinstance(exp, (int, float)) and exp <= self._now().timestamp():
            expired_at = datetime.fromtimestamp(exp, timezone.utc).isoformat()
            raise ExpiredTokenError(f"JWT expired at {expired_at}")

        try:
            payload = jwt.decode(
                token,
                self._keys[token_type],
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise InvalidTokenError(str(e)) from e

        if exp is None:
            raise InvalidTokenError("Token has no expiry")
        if payload.get("type") != token_type:
            raise InvalidTokenError(f"Not a {token_type} token")
        subject = payload.get("sub")
        if not subject:
            raise InvalidTokenError("Token has no subject")
        return subject

    def is_token_valid(self, token: str, user: User, token_type: TokenKind = "access") -> bool:
        try:
            subject = self.extract_username(token, token_type)
        except (ExpiredTokenError, InvalidTokenError):
            return False
        return subject == user.email


token_codec = TokenCodec.from_settings(settings)


def get_token_codec() -> TokenCodec:
    return token_codec
