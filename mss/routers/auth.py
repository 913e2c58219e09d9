"""
auth.py

Public authentication API.

Everything under {API_V1_PREFIX}/auth is reachable without a bearer
token; the authentication gate lets these paths through untouched.

Main features:
- login (access + refresh token pair)
- access token renewal from the Refresh header
- account verification and verification code resend
- password reset request / completion
- logout (retires the presented access token)

Design principles:
- the access token travels in the Authorization header, the refresh
  token in the Refresh header ("Bearer <token>")
- each issuance retires the user's earlier access tokens (token ledger)
- business rules live in mss.services.auth; this module only commits
  and shapes responses

Related files:
- mss.services.auth        : AuthenticationService
- mss.core.deps            : get_db / get_auth_service
- mss.schemas.auth         : request / response bodies

"""

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mss.core.deps import get_auth_service, get_db
from mss.core.errors import ExpiredTokenError, InvalidTokenError
from mss.schemas.auth import (
    AuthenticationRequest,
    EmailRequest,
    PasswordResetRequest,
    TokenPair,
    VerifyUserRequest,
)
from mss.services.auth import AuthenticationService

router = APIRouter(prefix="/auth", tags=["auth"])


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")


"""
Login API

- email / password check
- unverified accounts are refused (403)
- earlier access tokens of the user are retired

"""

@router.post("/authenticate", response_model=TokenPair)
def authenticate(
    data: AuthenticationRequest,
    db: Session = Depends(get_db),
    service: AuthenticationService = Depends(get_auth_service),
):
    pair = service.authenticate(data)
    _commit(db)
    return pair

"""
Access token renewal API

- reads "Refresh: Bearer <refresh token>"
- returns a new access token together with the same refresh token
- expired / invalid refresh tokens are answered with 401 text

"""

@router.post("/refresh-token", response_model=TokenPair)
def refresh_token(
    refresh: str | None = Header(default=None, alias="Refresh"),
    db: Session = Depends(get_db),
    service: AuthenticationService = Depends(get_auth_service),
):
    try:
        pair = service.refresh_token(refresh)
    except ExpiredTokenError as e:
        return PlainTextResponse(f"Token expired: {e}", status_code=status.HTTP_401_UNAUTHORIZED)
    except InvalidTokenError as e:
        return PlainTextResponse(f"Invalid token: {e}", status_code=status.HTTP_401_UNAUTHORIZED)

    _commit(db)
    return pair

"""
Account verification API

- the emailed 6-digit code must match and be unexpired
- the account is enabled and a token pair is issued

"""

@router.post("/verification", response_model=TokenPair)
def verify_user(
    data: VerifyUserRequest,
    db: Session = Depends(get_db),
    service: AuthenticationService = Depends(get_auth_service),
):
    pair = service.verify_user(data)
    _commit(db)
    return pair

"""
Verification code resend API

- a new code replaces the previous one
- already verified accounts get 400

"""

@router.post("/resend-verification", response_class=PlainTextResponse)
def resend_verification(
    data: EmailRequest,
    db: Session = Depends(get_db),
    service: AuthenticationService = Depends(get_auth_service),
):
    try:
        service.resend_verification_code(data.email)
    except RuntimeError as e:
        return PlainTextResponse(str(e), status_code=status.HTTP_400_BAD_REQUEST)

    _commit(db)
    return PlainTextResponse("Verification code sent")

"""
Password reset request API

- emails a reset link carrying a one-time code
- all access tokens of the user are retired

"""

@router.post("/forgot-password", response_class=PlainTextResponse)
def forgot_password(
    data: EmailRequest,
    db: Session = Depends(get_db),
    service: AuthenticationService = Depends(get_auth_service),
):
    service.request_password_reset(data.email)
    _commit(db)
    return PlainTextResponse("Password reset link sent")

"""
Password reset API

- code and email arrive as query parameters (from the emailed link)
- on success the new password is stored and a token pair is issued

"""

@router.post("/reset-password", response_model=TokenPair)
def reset_password(
    data: PasswordResetRequest,
    token: str,
    email: str,
    db: Session = Depends(get_db),
    service: AuthenticationService = Depends(get_auth_service),
):
    pair = service.reset_password(token, email, data)
    _commit(db)
    return pair

"""
Logout API

- retires the access token from the Authorization header
- unknown or missing tokens are ignored

"""

@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db),
    service: AuthenticationService = Depends(get_auth_service),
):
    if service.logout(authorization):
        _commit(db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
