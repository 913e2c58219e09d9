"""
errors.py

Error taxonomy and the global exception handlers.

Token errors are raised by the token codec and are always turned into
401 plain-text responses by the authentication gate or the refresh
endpoint; they never reach the handlers below.

Service errors carry their HTTP status and message. The handlers map
them to {"detail": message} with that status, the same body shape
FastAPI uses for HTTPException.

Unstructured runtime errors (RuntimeError) have no mapping of their own
and are answered as server errors.

Related files:
- mss.core.security      : raises ExpiredTokenError / InvalidTokenError
- mss.services.*         : raise ServiceError subclasses
- mss.main               : register_exception_handlers(app)

"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Bearer token could not be decoded."""


class ExpiredTokenError(TokenError):
    pass


class InvalidTokenError(TokenError):
    pass


class ServiceError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, status_code: int | None = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnauthorizedError(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT


class GoneError(ServiceError):
    status_code = status.HTTP_410_GONE


class EmailDeliveryError(Exception):
    """Mail transport failed to deliver a message."""


def register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "Service error on %s %s: %s %s",
            request.method,
            request.url.path,
            exc.status_code,
            exc.detail,
        )
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    @app.exception_handler(RuntimeError)
    async def handle_runtime_error(request: Request, exc: RuntimeError):
        logger.error(
            "Unhandled runtime error on %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": str(exc)},
        )
