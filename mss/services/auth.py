"""
services/auth.py

Authentication flows.

Main features:
- registration of a new (disabled) account with an emailed 6-digit code
- login with email / password
- access token renewal from a refresh token
- account verification and verification code resend
- password reset request / completion
- logout (retires the presented access token)

Every successful login / refresh / verification / reset issues a new
access token, retires the user's earlier tokens and records the new one
in the token ledger.

Design notes:
- no HTTP / FastAPI dependencies; failures are ServiceError subclasses
  (or RuntimeError for the unstructured cases)
- the router owns the commit; this module only flushes
- verification and reset codes are stored as bcrypt hashes

Related files:
- mss.core.security      : TokenCodec, password hashing
- mss.services.ledger    : token bookkeeping
- mss.services.email     : verification / reset emails
- mss.routers.auth       : HTTP surface

"""

import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.orm import Session

from mss.core.clock import as_utc, utcnow
from mss.core.config import settings
from mss.core.errors import (
    BadRequestError,
    ConflictError,
    EmailDeliveryError,
    ForbiddenError,
    GoneError,
    NotFoundError,
    ServiceError,
    UnauthorizedError,
)
from mss.core.logging import redact_email
from mss.core.security import TokenCodec, get_password_hash, verify_password
from mss.models.user import User
from mss.repositories import user as user_repo
from mss.schemas.auth import (
    AuthenticationRequest,
    PasswordResetRequest,
    RegisterRequest,
    TokenPair,
    VerifyUserRequest,
)
from mss.services.email import EmailService
from mss.services.ledger import TokenLedger

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

RESET_CODE_ALPHABET = string.ascii_letters + string.digits
RESET_CODE_LENGTH = 64


def generate_verification_code() -> str:
    """Six-digit numeric code in 100000..999999."""
    return str(100000 + secrets.randbelow(900000))


def generate_reset_code() -> str:
    return "".join(secrets.choice(RESET_CODE_ALPHABET) for _ in range(RESET_CODE_LENGTH))


def authenticate_credentials(db: Session, email: str, password: str) -> User:
    """
    Credential re-validation run after the login pre-checks.

    Reloads the account (soft-deleted rows included) and checks it on its
    own: deleted accounts are locked, disabled ones unverified, and the
    password is verified again.
    """
    user = user_repo.get_user_by_email(db, email, include_deleted=True)
    if user is None or not verify_password(password, user.password_hash):
        raise UnauthorizedError("Bad credentials")
    if user.is_deleted:
        raise UnauthorizedError("Account is locked")
    if not user.enabled:
        raise ForbiddenError("Account is not verified")
    return user


class AuthenticationService:
    def __init__(
        self,
        db: Session,
        *,
        codec: TokenCodec,
        mailer: EmailService,
        authenticator: Callable[[Session, str, str], User] = authenticate_credentials,
        now: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.codec = codec
        self.mailer = mailer
        self.ledger = TokenLedger(db)
        self.authenticator = authenticator
        self._now = now

    def _issue_tokens(self, user: User, *, revoke_previous: bool = True) -> TokenPair:
        access_token = self.codec.generate_token(user)
        refresh_token = self.codec.generate_refresh_token(user)
        if revoke_previous:
            self.ledger.revoke_all_user_tokens(user)
        self.ledger.record(user, access_token)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def _assign_verification_code(self, user: User) -> str:
        code = generate_verification_code()
        user.verification_code = get_password_hash(code)
        user.verification_expiration = self._now() + timedelta(hours=settings.VERIFICATION_CODE_EXPIRE_HOURS)
        return code

    def _send_verification_email(self, email: str, code: str) -> None:
        try:
            self.mailer.send_verification_email(email, code)
        except EmailDeliveryError:
            logger.exception("Verification email to %s could not be sent", redact_email(email))

    def _require_user(self, email: str) -> User:
        user = user_repo.get_user_by_email(self.db, email)
        if user is None:
            raise NotFoundError("User doesn't exist")
        return user

    def register(self, request: RegisterRequest) -> TokenPair:
        if user_repo.email_taken(self.db, request.email):
            raise ConflictError("Email already registered")

        user = User(
            firstname=request.firstname,
            lastname=request.lastname,
            email=request.email,
            password_hash=get_password_hash(request.password),
            mobile_number=request.mobile_number,
            date_of_birth=request.date_of_birth,
            address=request.address,
            image_url=request.image_url,
            role=request.role,
            enabled=False,
            is_deleted=False,
        )
        code = self._assign_verification_code(user)
        self._send_verification_email(user.email, code)

        user_repo.add_user(self.db, user)
        logger.info("Registered user_id=%s (%s)", user.id, redact_email(user.email))
        return self._issue_tokens(user, revoke_previous=False)

    def authenticate(self, request: AuthenticationRequest) -> TokenPair:
        # soft-deleted accounts are found here and rejected as locked below
        user = user_repo.get_user_by_email(self.db, request.email, include_deleted=True)
        if user is None or not verify_password(request.password, user.password_hash):
            raise UnauthorizedError("Invalid email or password")
        if not user.enabled:
            raise ForbiddenError("Account is not verified")

        user = self.authenticator(self.db, request.email, request.password)

        return self._issue_tokens(user)

    def refresh_token(self, refresh_header: str | None) -> TokenPair:
        if not refresh_header or not refresh_header.startswith(BEARER_PREFIX):
            raise BadRequestError("Missing refresh token")
        refresh_token = refresh_header[len(BEARER_PREFIX):]

        # ExpiredTokenError / InvalidTokenError propagate; the router answers 401 text
        email = self.codec.extract_username(refresh_token, "refresh")

        user = user_repo.get_user_by_email(self.db, email)
        if user is None:
            raise UnauthorizedError("User not found")
        if not self.codec.is_token_valid(refresh_token, user, "refresh"):
            raise UnauthorizedError("Invalid refresh token")
        if not user.enabled:
            raise ForbiddenError("Account is not verified")

        access_token = self.codec.generate_token(user)
        self.ledger.revoke_all_user_tokens(user)
        self.ledger.record(user, access_token)
        return TokenPair(access_token=access_token, refresh_token=refresh_token)

    def verify_user(self, dto: VerifyUserRequest) -> TokenPair:
        user = self._require_user(dto.email)
        if user.enabled:
            raise ConflictError("User is already verified")
        if user.verification_expiration is None or as_utc(user.verification_expiration) < self._now():
            raise GoneError("Verification code has expired")
        if not verify_password(dto.verification_code, user.verification_code):
            raise RuntimeError("Invalid verification code")

        user.enabled = True
        user.verification_code = None
        user.verification_expiration = None
        self.db.flush()

        logger.info("Verified user_id=%s", user.id)
        return self._issue_tokens(user)

    def resend_verification_code(self, email: str) -> None:
        user = self._require_user(email)
        if user.enabled:
            raise RuntimeError("User is already verified")

        code = self._assign_verification_code(user)
        self._send_verification_email(user.email, code)
        self.db.flush()

    def request_password_reset(self, email: str) -> None:
        user = self._require_user(email)

        code = generate_reset_code()
        user.password_code = get_password_hash(code)
        user.password_code_expiration = self._now() + timedelta(minutes=settings.PASSWORD_CODE_EXPIRE_MINUTES)
        self.ledger.revoke_all_user_tokens(user)
        self.db.flush()

        try:
            self.mailer.send_password_reset_email(user.email, code)
        except EmailDeliveryError as e:
            raise ServiceError("Failed to send email") from e

    def reset_password(self, code: str, email: str, dto: PasswordResetRequest) -> TokenPair:
        user = self._require_user(email)
        if not verify_password(code, user.password_code):
            raise BadRequestError("Invalid password reset code")
        if user.password_code_expiration is None or as_utc(user.password_code_expiration) < self._now():
            raise GoneError("Password link has expired")
        if dto.new_password != dto.repeat_new_password:
            raise BadRequestError("New passwords don't match")

        user.password_hash = get_password_hash(dto.new_password)
        user.password_code = None
        user.password_code_expiration = None
        self.db.flush()

        logger.info("Password reset for user_id=%s", user.id)
        return self._issue_tokens(user)

    def logout(self, authorization: str | None) -> bool:
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return False
        return self.ledger.revoke(authorization[len(BEARER_PREFIX):])
