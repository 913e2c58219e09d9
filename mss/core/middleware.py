"""
middleware.py

Starlette middleware running the authentication gate once per request.

The gate decision is computed in the threadpool (it performs blocking
database reads). Rejections are answered directly with a 401 plain-text
body; otherwise the principal (or None) is stored on request.state and
the request continues down the stack.

The database session comes from the same provider the routes use, so a
dependency override of get_db also applies here.

"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from mss.core.config import settings
from mss.core.deps import get_db
from mss.core.gate import AuthenticationGate, GateDecision
from mss.core.security import get_token_codec

logger = logging.getLogger(__name__)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, gate: AuthenticationGate | None = None):
        super().__init__(app)
        self._gate = gate

    def _get_gate(self) -> AuthenticationGate:
        if self._gate is None:
            self._gate = AuthenticationGate.from_settings(settings, get_token_codec())
        return self._gate

    @staticmethod
    def _session_provider(request: Request) -> Callable[[], Iterator[Session]]:
        provider = request.app.dependency_overrides.get(get_db, get_db)

        @contextmanager
        def open_session() -> Iterator[Session]:
            sessions = provider()
            try:
                yield next(sessions)
            finally:
                sessions.close()

        return open_session

    def _evaluate(self, request: Request) -> GateDecision:
        return self._get_gate().evaluate(
            self._session_provider(request),
            path=request.url.path,
            authorization=request.headers.get("Authorization"),
            client_host=request.client.host if request.client else None,
            user_agent=request.headers.get("User-Agent"),
            current=getattr(request.state, "principal", None),
        )

    async def dispatch(self, request: Request, call_next) -> Response:
        decision = await run_in_threadpool(self._evaluate, request)

        if decision.rejected:
            logger.info(
                "Rejected %s %s: %s",
                request.method,
                request.url.path,
                decision.message,
            )
            return PlainTextResponse(decision.message, status_code=decision.status_code)

        request.state.principal = decision.principal
        return await call_next(request)
