from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from mss.core.gate import Principal
from mss.core.security import TokenCodec, get_token_codec
from mss.db.session import SessionLocal
from mss.models.user import Permission
from mss.services.auth import AuthenticationService
from mss.services.email import EmailService, get_email_service
from mss.services.users import UserService

# lets Swagger "Authorize" send the bearer token; validation happens in the middleware
bearer_scheme = HTTPBearer(auto_error=False)


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_principal(
    request: Request,
    _cred: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal:
    principal = getattr(request.state, "principal", None)
    if principal is None:
        # unauthenticated DELETEs do not reveal whether the resource exists
        if request.method == "DELETE":
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Resource is not found.",
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def require_authority(*authorities: Permission | str):
    names = tuple(getattr(a, "value", a) for a in authorities)

    def _checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_authority(*names):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of: {', '.join(names)}",
            )
        return principal

    return _checker


def get_auth_service(
    db: Session = Depends(get_db),
    codec: TokenCodec = Depends(get_token_codec),
    mailer: EmailService = Depends(get_email_service),
) -> AuthenticationService:
    return AuthenticationService(db, codec=codec, mailer=mailer)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


get_current_user_principal = require_authority(Permission.USER_READ, Permission.ADMIN_READ)
get_current_user_updater = require_authority(Permission.USER_UPDATE, Permission.ADMIN_UPDATE)
get_user_creator = require_authority(Permission.USER_CREATE, Permission.ADMIN_CREATE)
get_admin_reader = require_authority(Permission.ADMIN_READ)
get_admin_updater = require_authority(Permission.ADMIN_UPDATE)
get_admin_creator = require_authority(Permission.ADMIN_CREATE)
get_admin_deleter = require_authority(Permission.ADMIN_DELETE)
