"""
main.py

FastAPI application entry point.

Loaded first when the server starts; assembles configuration,
middleware and routers.

Main roles:
- create the FastAPI app instance
- logging setup
- CORS and authentication middleware
- global exception handlers
- router registration (auth, register, users)
- health and DB connectivity endpoints

Design principles:
- no business logic here; assembly only
- real work is delegated to the routers / services layers
- health/db-ping stay public so the service can be probed safely

Related files:
- mss.core.config        : environment variables and settings
- mss.core.middleware    : authentication gate
- mss.core.errors        : exception handlers
- mss.routers.*          : API routers

"""

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from mss import __version__
from mss.core.config import settings
from mss.core.deps import get_db
from mss.core.errors import register_exception_handlers
from mss.core.logging import configure_logging
from mss.core.middleware import AuthenticationMiddleware
from mss.routers import auth, register, users


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME, version=__version__)

    # CORS is added after the gate so it wraps it (preflight requests carry no token)
    app.add_middleware(AuthenticationMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(auth.router, prefix=settings.API_V1_PREFIX)
    app.include_router(register.router, prefix=settings.API_V1_PREFIX)
    app.include_router(users.router, prefix=settings.API_V1_PREFIX)

    """
    Health check endpoint

    - confirms the application process is up
    - used by load balancers / deployment probes

    """
    @app.get("/health")
    def health():
        return {"status": "ok"}

    """
    Database connectivity endpoint

    - runs SELECT 1 to confirm the DB connection
    - separates "server alive, DB down" from a full outage

    """
    @app.get("/db-ping")
    def db_ping(db: Session = Depends(get_db)):
        value = db.execute(text("SELECT 1")).scalar_one()
        return {"db": "ok", "value": value}

    return app


app = create_app()
