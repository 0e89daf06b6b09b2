"""
FastAPI application factory.

Collaborators (settings, database, notifier) are passed in or built from
settings, stored on ``app.state`` and opened/closed by the lifespan handler.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings
from .database import Database
from .exceptions import ReachError
from .routers import (
    auth_router,
    health_router,
    profiles_router,
    setup_router,
    staff_router,
    users_router,
)
from .services.email import Notifier, build_notifier
from .services.gate import AuthGate
from .services.rate_limiter import RateLimiter
from .services.tokens import TokenService

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.settings.validate_for_environment()
    app.state.database.init()
    app.state.notifier.init()
    logger.info("ReachMAI API started", extra={"environment": app.state.settings.environment})
    yield
    app.state.notifier.close()
    app.state.database.close()
    logger.info("ReachMAI API stopped")


async def reach_error_handler(request: Request, exc: ReachError) -> JSONResponse:
    headers = {}
    if exc.status_code == 401:
        headers["WWW-Authenticate"] = "Bearer"
    if "retry_after" in exc.details:
        headers["Retry-After"] = str(exc.details["retry_after"])
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers or None)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    notifier: Optional[Notifier] = None,
) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="ReachMAI API",
        description="Accounts, staff invitations and profile setup for the Musical Arts Institute portal",
        version="1.0.0",
        lifespan=lifespan,
    )

    tokens = TokenService.from_settings(settings)
    app.state.settings = settings
    app.state.database = database or Database(settings.database_url)
    app.state.notifier = notifier or build_notifier(settings)
    app.state.tokens = tokens
    app.state.gate = AuthGate.from_settings(tokens, settings)
    app.state.login_rate_limiter = RateLimiter(
        max_requests=settings.login_rate_limit_requests,
        window_seconds=settings.login_rate_limit_window_seconds,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ReachError, reach_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    for router in (
        health_router,
        auth_router,
        profiles_router,
        staff_router,
        setup_router,
        users_router,
    ):
        app.include_router(router, prefix=API_PREFIX)

    return app


app = create_app()
