"""
register.py

Account creation API (administrators only).

New accounts start disabled; the user confirms the emailed verification
code through {API_V1_PREFIX}/auth/verification before the issued tokens
become usable.

Related files:
- mss.services.auth        : AuthenticationService.register
- mss.core.deps            : get_admin_creator (admin:create)

"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mss.core.deps import get_admin_creator, get_auth_service, get_db
from mss.core.gate import Principal
from mss.schemas.auth import RegisterRequest, TokenPair
from mss.services.auth import AuthenticationService

router = APIRouter(tags=["register"])


@router.post("/register", response_model=TokenPair)
def register(
    data: RegisterRequest,
    db: Session = Depends(get_db),
    service: AuthenticationService = Depends(get_auth_service),
    admin: Principal = Depends(get_admin_creator),
):
    try:
        pair = service.register(data)
        db.commit()
    except IntegrityError:
        # concurrent registration of the same email
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    except SQLAlchemyError as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return pair
