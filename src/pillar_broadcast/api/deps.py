"""
pillar_broadcast.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and DB sessions.
- Assemble the per-request `BroadcastService` from app-lifetime collaborators.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pillar_broadcast.services.audit import AuditRecorder
from pillar_broadcast.services.broadcast_service import BroadcastService
from pillar_broadcast.settings import Settings


def settings_dep(request: Request) -> Settings:
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # Created at startup in `pillar_broadcast.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


def broadcast_service(
    request: Request,
    session: AsyncSession = Depends(db_session),
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
    settings: Settings = Depends(settings_dep),
) -> BroadcastService:
    state = request.app.state
    return BroadcastService(
        session=session,
        settings=settings,
        identity=state.identity_verifier,
        rate_limiter=state.rate_limiter,
        audit=AuditRecorder(session_factory),
        transport=state.email_transport,
    )


# --- Module Notes -----------------------------------------------------------
# Tests swap collaborators by assigning to `app.state` after startup; nothing here
# caches them.
