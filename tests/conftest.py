"""
tests.conftest

Shared fixtures for API and service tests.

Responsibilities:
- Build an app against a throwaway SQLite database with lifespan managed explicitly.
- Provide a recording email transport and helpers to seed directory/admin rows.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pillar_broadcast.api.app import create_app
from pillar_broadcast.auth.jwt import JwtConfig, issue_token
from pillar_broadcast.db.models import Employee
from pillar_broadcast.db.repositories.admins import AdminUserRepo
from pillar_broadcast.db.repositories.audit import AuditLogRepo
from pillar_broadcast.settings import Settings

ADMIN_ID = "6f1c2a9e-admin-0001"
USER_ID = "0b7d4e11-user-0002"


@dataclass
class RecordingTransport:
    """In-memory email transport: records sends, fails or stalls for chosen addresses."""

    fail_for: set[str] = field(default_factory=set)
    stall_for: set[str] = field(default_factory=set)
    sent: list[dict[str, str]] = field(default_factory=list)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[RecordingTransport]:
        yield self

    async def send(self, *, to: str, subject: str, html: str) -> None:
        if to in self.stall_for:
            await asyncio.sleep(3600)
        if to in self.fail_for:
            raise ConnectionError(f"mailbox unavailable: {to}")
        self.sent.append({"to": to, "subject": subject, "html": html})


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}",
        jwt_secret="test-secret-0123456789abcdef0123456789",
        smtp_username="",
        smtp_password="",
    )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest_asyncio.fixture
async def app(settings: Settings, transport: RecordingTransport) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings)
    # httpx ASGITransport does not run lifespan; drive it explicitly.
    async with app.router.lifespan_context(app):
        app.state.email_transport = transport
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://test"
    ) as c:
        yield c


@pytest.fixture
def sessionmaker(app: FastAPI) -> async_sessionmaker[AsyncSession]:
    return app.state.sessionmaker


def token_for(settings: Settings, user_id: str) -> str:
    return issue_token(cfg=JwtConfig.from_settings(settings), subject=user_id)


def bearer(settings: Settings, user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token_for(settings, user_id)}"}


async def seed_admin(sessionmaker: async_sessionmaker[AsyncSession], user_id: str) -> None:
    async with sessionmaker() as session:
        await AdminUserRepo(session).add(user_id)
        await session.commit()


async def seed_employees(
    sessionmaker: async_sessionmaker[AsyncSession],
    pillar: str,
    count: int,
    *,
    start: int = 0,
) -> list[str]:
    emails = [f"employee{start + i}@example.com" for i in range(count)]
    async with sessionmaker() as session:
        session.add_all(
            Employee(
                employee_id=start + i,
                name=f"Employee {start + i}",
                email=email,
                pillar=pillar,
                level="L2",
            )
            for i, email in enumerate(emails)
        )
        await session.commit()
    return emails


async def audit_actions(sessionmaker: async_sessionmaker[AsyncSession]) -> list[str]:
    async with sessionmaker() as session:
        entries = await AuditLogRepo(session).list_recent(limit=500)
    return [e.action for e in reversed(entries)]
