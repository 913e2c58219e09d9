"""
gate.py

Request-time authentication gate.

Decides, for one request, whether it proceeds unauthenticated, proceeds
with an authenticated Principal, or is rejected with 401. The decision
is returned as a value; mss.core.middleware turns it into a response and
attaches the principal to request.state for the route dependencies.

Flow:
1. public paths (auth namespace, API docs, health) pass through
2. no "Authorization: Bearer ..." header passes through unauthenticated
3. the token subject is extracted; expired / invalid tokens are rejected
4. the user and the ledger record are loaded; unknown, retired or
   mismatching tokens are rejected, as are tokens of unverified accounts
5. otherwise a Principal carrying the role's authorities is produced

Related files:
- mss.core.security      : TokenCodec
- mss.services.ledger    : token ledger lookups
- mss.core.middleware    : runs the gate once per request
- mss.core.deps          : get_current_principal / require_authority

"""

import logging
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.orm import Session

from mss.core.config import Settings
from mss.core.errors import ExpiredTokenError, InvalidTokenError
from mss.core.security import TokenCodec
from mss.models.user import Role, User
from mss.repositories import user as user_repo
from mss.services.ledger import TokenLedger

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

DOCS_PATHS = ("/docs", "/redoc", "/openapi.json")
HEALTH_PATHS = ("/health", "/db-ping")

SessionProvider = Callable[[], AbstractContextManager[Session]]


@dataclass(frozen=True)
class Principal:
    """Authenticated caller, passed explicitly to route handlers."""

    user_id: int
    email: str
    role: Role
    authorities: frozenset[str]
    client_host: str | None = None
    user_agent: str | None = None

    @classmethod
    def for_user(cls, user: User, *, client_host: str | None = None, user_agent: str | None = None) -> "Principal":
        return cls(
            user_id=user.id,
            email=user.email,
            role=user.role,
            authorities=user.authorities,
            client_host=client_host,
            user_agent=user_agent,
        )

    def has_authority(self, *names: str) -> bool:
        return any(name in self.authorities for name in names)


@dataclass(frozen=True)
class GateDecision:
    principal: Principal | None = None
    status_code: int | None = None
    message: str | None = None

    @property
    def rejected(self) -> bool:
        return self.status_code is not None


PASS_THROUGH = GateDecision()


def _reject(message: str) -> GateDecision:
    return GateDecision(status_code=401, message=message)


@dataclass
class AuthenticationGate:
    codec: TokenCodec
    public_prefixes: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_settings(cls, config: Settings, codec: TokenCodec) -> "AuthenticationGate":
        return cls(
            codec=codec,
            public_prefixes=(f"{config.API_V1_PREFIX}/auth",) + DOCS_PATHS + HEALTH_PATHS,
        )

    def is_public(self, path: str) -> bool:
        return any(path == prefix or path.startswith(prefix.rstrip("/") + "/") for prefix in self.public_prefixes)

    @staticmethod
    def extract_bearer(authorization: str | None) -> str | None:
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return None
        return authorization[len(BEARER_PREFIX):]

    def evaluate(
        self,
        open_session: SessionProvider,
        *,
        path: str,
        authorization: str | None,
        client_host: str | None = None,
        user_agent: str | None = None,
        current: Principal | None = None,
    ) -> GateDecision:
        if self.is_public(path):
            return PASS_THROUGH

        token = self.extract_bearer(authorization)
        if token is None:
            return PASS_THROUGH

        try:
            email = self.codec.extract_username(token)
        except ExpiredTokenError as e:
            return _reject(f"Token expired: {e}")
        except InvalidTokenError as e:
            return _reject(f"Invalid token: {e}")

        if current is not None:
            return GateDecision(principal=current)

        with open_session() as db:
            return self._check_ledger(
                db, token, email, client_host=client_host, user_agent=user_agent
            )

    def _check_ledger(
        self,
        db: Session,
        token: str,
        email: str,
        *,
        client_host: str | None,
        user_agent: str | None,
    ) -> GateDecision:
        user = user_repo.get_user_by_email(db, email)
        if user is None:
            return _reject("User not found.")

        record = TokenLedger(db).lookup(token)
        if record is None:
            return _reject("Invalid token.")

        if not record.is_usable or record.user_id != user.id or not self.codec.is_token_valid(token, user):
            logger.warning("Retired or mismatching token used for user_id=%s", user.id)
            return _reject("Token is either revoked or invalid.")

        # tokens handed out at registration stay unusable until verification
        if not user.enabled:
            return _reject("Account is not verified.")

        return GateDecision(
            principal=Principal.for_user(user, client_host=client_host, user_agent=user_agent)
        )
