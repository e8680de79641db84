import os
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from sqlalchemy.orm import sessionmaker

from .config import settings
from .db import Base, create_db_engine, create_session_factory
from .errors import HelpdeskError
from .logging import setup_logging, RequestIdMiddleware
from .auth.router import router as auth_router
from .routes.accounts import router as accounts_router
from .routes.tickets import router as tickets_router
from .routes.dashboard import router as dashboard_router


log = structlog.get_logger(__name__)


def create_app(session_factory: Optional[sessionmaker] = None) -> FastAPI:
    setup_logging(settings.log_level)
    app = FastAPI(title=settings.app_name)

    if session_factory is None:
        session_factory = create_session_factory(create_db_engine())
    app.state.session_factory = session_factory

    # Middlewares
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    @app.exception_handler(HelpdeskError)
    async def _helpdesk_error(request: Request, exc: HelpdeskError):
        return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.to_dict()})

    # Routers
    app.include_router(auth_router)
    app.include_router(accounts_router)
    app.include_router(tickets_router)
    app.include_router(dashboard_router)

    # Metrics
    if settings.metrics_enabled:
        Instrumentator().instrument(app).expose(app)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.on_event("startup")
    def _startup():
        if not settings.auto_create_db:
            return
        engine = session_factory.kw["bind"]
        # Ensure local SQLite directory exists
        if str(engine.url).startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        Base.metadata.create_all(bind=engine)
        log.info("tables_verified", tables=len(Base.metadata.tables))

    return app


app = create_app()
