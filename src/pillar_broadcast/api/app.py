"""
pillar_broadcast.api.app

FastAPI app factory for the Pillar Broadcast service.

Responsibilities:
- Build the FastAPI application and register routers/middleware.
- Own app-lifetime collaborators: DB engine/sessionmaker, rate limiter,
  identity verifier and email transport.
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from pillar_broadcast.api.routers.admin import router as admin_router
from pillar_broadcast.api.routers.dev_auth import router as dev_auth_router
from pillar_broadcast.api.routers.health import router as health_router
from pillar_broadcast.api.routers.send_email import router as send_email_router
from pillar_broadcast.auth.identity import (
    HttpIdentityVerifier,
    IdentityVerifier,
    JwtIdentityVerifier,
)
from pillar_broadcast.auth.jwt import JwtConfig
from pillar_broadcast.db.init_db import init_db
from pillar_broadcast.db.session import create_engine, create_sessionmaker
from pillar_broadcast.mail.transport import EmailTransport, SmtpTransport
from pillar_broadcast.observability.logging import configure_logging, get_logger
from pillar_broadcast.observability.middleware import RequestContextMiddleware
from pillar_broadcast.security.rate_limit import RateLimiter
from pillar_broadcast.settings import Settings

log = get_logger(__name__)


def _identity_verifier(settings: Settings) -> tuple[IdentityVerifier, httpx.AsyncClient | None]:
    if settings.identity_mode == "http":
        http = httpx.AsyncClient(
            base_url=settings.identity_url.rstrip("/"),
            timeout=settings.identity_timeout_seconds,
        )
        return HttpIdentityVerifier(http=http, api_key=settings.identity_api_key), http
    return JwtIdentityVerifier(JwtConfig.from_settings(settings)), None


def _email_transport(settings: Settings) -> EmailTransport | None:
    if not settings.smtp_configured:
        log.warning("smtp_not_configured", note="broadcasts will be simulated")
        return None
    return SmtpTransport.from_settings(settings)


def create_app(*, settings: Settings) -> FastAPI:
    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env, identity_mode=settings.identity_mode)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod should use Alembic migrations.
            await init_db(engine)

        verifier, identity_http = _identity_verifier(settings)
        app.state.identity_verifier = verifier
        transport = _email_transport(settings)
        app.state.email_transport = transport
        try:
            yield
        finally:
            if identity_http is not None:
                await identity_http.aclose()
            if isinstance(transport, SmtpTransport):
                await transport.aclose()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Pillar Broadcast Admin Portal",
        version="0.1.0",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.rate_limiter = RateLimiter(
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )

    app.add_middleware(RequestContextMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(send_email_router)
    app.include_router(admin_router)

    return app


# --- Module Notes -----------------------------------------------------------
# The rate limiter is created with the app rather than at startup so its counters
# span the whole process lifetime and stay isolated per app instance.
