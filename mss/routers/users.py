"""
users.py

User API for authenticated callers.

Main features:
- current user profile / details and self-service update
- password change
- verification code resend for a pending account
- user listing, lookup by id, filtered search (administrators)
- profile update and account deletion by administrators

Design principles:
- every route needs a principal set by the authentication gate
- authorities follow the role table (user:* / admin:*)
- administrators cannot be deleted
- deletion is soft; the purge job removes the row later

Related files:
- mss.services.users       : UserService
- mss.services.auth        : verification code resend
- mss.core.deps            : principal / authority dependencies

"""

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from mss.core.deps import (
    get_admin_deleter,
    get_admin_reader,
    get_admin_updater,
    get_auth_service,
    get_current_user_principal,
    get_current_user_updater,
    get_db,
    get_user_creator,
    get_user_service,
)
from mss.core.gate import Principal
from mss.schemas.auth import EmailRequest, PasswordChangeRequest
from mss.schemas.user import UserDetails, UserFiltersQuery, UserResponse, UserUpdateRequest
from mss.services.auth import AuthenticationService
from mss.services.users import UserService

router = APIRouter(prefix="/users", tags=["users"])


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")


@router.get("", response_model=list[UserDetails])
def list_users(
    principal: Principal = Depends(get_current_user_principal),
    service: UserService = Depends(get_user_service),
):
    return service.list_users()


@router.get("/user", response_model=UserResponse)
def current_user(
    principal: Principal = Depends(get_current_user_principal),
    service: UserService = Depends(get_user_service),
):
    return service.get_current_user(principal)


@router.get("/user-details", response_model=UserDetails)
def current_user_details(
    principal: Principal = Depends(get_current_user_principal),
    service: UserService = Depends(get_user_service),
):
    return service.get_current_user(principal)


"""
Self-service profile update API

- name, email, phone, birth date, address and image can be changed
- a new email must not belong to another account
- the email is the token subject: after changing it the user logs in again

"""

@router.put("/user-details-update", response_model=UserDetails)
def update_current_user(
    data: UserUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user_updater),
    service: UserService = Depends(get_user_service),
):
    user = service.update_current_user(principal, data)
    _commit(db)
    db.refresh(user)
    return user


"""
Password change API

- current password must match
- new password and its repetition must match

"""

@router.put("/change-password", response_class=PlainTextResponse)
def change_password(
    data: PasswordChangeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user_updater),
    service: UserService = Depends(get_user_service),
):
    service.change_password(principal, data)
    _commit(db)
    return PlainTextResponse("Password changed successfully")


"""
Verification code resend API (authenticated)

- same rules as {API_V1_PREFIX}/auth/resend-verification
- answers 201 on success, 400 text for already verified accounts

"""

@router.post("", response_class=PlainTextResponse, status_code=status.HTTP_201_CREATED)
def resend_verification_code(
    data: EmailRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_user_creator),
    auth_service: AuthenticationService = Depends(get_auth_service),
):
    try:
        auth_service.resend_verification_code(data.email)
    except RuntimeError as e:
        return PlainTextResponse(str(e), status_code=status.HTTP_400_BAD_REQUEST)

    _commit(db)
    return PlainTextResponse("Verification code successfully sent.", status_code=status.HTTP_201_CREATED)


"""
User search API (admin)

- optional filters: fullName, address, email, phoneNumber (digits only)
- isDeleted selects active (default) or soft-deleted accounts
- paging via ?page=&pageSize=; totals in X-Total-* headers

"""

@router.post("/search", response_model=list[UserDetails])
def search_users(
    response: Response,
    filters: UserFiltersQuery | None = Body(default=None),
    page: int = Query(default=0, ge=0),
    page_size: int = Query(default=5, ge=1, le=100, alias="pageSize"),
    principal: Principal = Depends(get_admin_reader),
    service: UserService = Depends(get_user_service),
):
    users, total = service.search_users(filters or UserFiltersQuery(), page, page_size)

    response.headers["X-Total-Items"] = str(total)
    response.headers["X-Total-Pages"] = str((total + page_size - 1) // page_size)
    response.headers["X-Current-Page"] = str(page)
    return users


@router.get("/id/{user_id}", response_model=UserDetails)
def get_user(
    user_id: int,
    principal: Principal = Depends(get_admin_reader),
    service: UserService = Depends(get_user_service),
):
    return service.get_user(user_id)


"""
Profile update API (admin)

- same fields as the self-service update
- isDeleted soft-deletes or restores the account (ADMIN cannot be deleted)

"""

@router.put("/id/{user_id}", response_model=UserDetails)
def update_user(
    user_id: int,
    data: UserUpdateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_admin_updater),
    service: UserService = Depends(get_user_service),
):
    user = service.update_user_by_admin(user_id, data)
    _commit(db)
    db.refresh(user)
    return user


"""
Account deletion API (admin)

- ADMIN accounts cannot be deleted (403)
- absent or already deleted accounts give 404
- the user's token records are removed, the account is soft-deleted

"""

@router.delete("/id/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: Principal = Depends(get_admin_deleter),
    service: UserService = Depends(get_user_service),
):
    service.delete_user(user_id)
    _commit(db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
