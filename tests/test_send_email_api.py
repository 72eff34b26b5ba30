"""
tests.test_send_email_api

End-to-end tests for the bulk-send endpoint.

Responsibilities:
- Walk every terminal state of the request pipeline (405 ... 200).
- Check audit entries written at each decision point.
- Check generic, non-revealing error bodies.
"""

from __future__ import annotations

import asyncio
import json
from collections import Counter

import httpx
import pytest
from conftest import (
    ADMIN_ID,
    USER_ID,
    RecordingTransport,
    audit_actions,
    bearer,
    seed_admin,
    seed_employees,
)
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pillar_broadcast.db.repositories.admins import AdminUserRepo
from pillar_broadcast.db.repositories.audit import AuditLogRepo
from pillar_broadcast.db.repositories.employees import EmployeeRepo
from pillar_broadcast.settings import Settings

URL = "/functions/v1/send-email"
BODY = {"pillar": "Engineering", "subject": "Update", "content": "Hello team"}


@pytest.fixture
def count_directory_queries(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    calls: list[str] = []
    original = EmployeeRepo.list_by_pillar

    async def counting(self: EmployeeRepo, pillar: str, *, limit: int):
        calls.append(pillar)
        return await original(self, pillar, limit=limit)

    monkeypatch.setattr(EmployeeRepo, "list_by_pillar", counting)
    return calls


@pytest.mark.asyncio
async def test_end_to_end_broadcast(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    transport: RecordingTransport,
) -> None:
    await seed_admin(sessionmaker, ADMIN_ID)
    emails = await seed_employees(sessionmaker, "Engineering", 3)
    await seed_employees(sessionmaker, "Sales", 2, start=100)

    r = await client.post(URL, json=BODY, headers=bearer(settings, ADMIN_ID))

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["recipients"] == 3
    assert body["failures"] == 0
    assert body["message"] == "Emails sent successfully to 3 employees"
    assert r.headers["access-control-allow-origin"] == "*"
    assert sorted(s["to"] for s in transport.sent) == sorted(emails)

    actions = Counter(await audit_actions(sessionmaker))
    assert actions["email_send_initiated"] == 1
    assert actions["email_send_completed"] == 1

    async with sessionmaker() as session:
        (completed,) = await AuditLogRepo(session).list_recent(action="email_send_completed")
    assert completed.admin_user_id == ADMIN_ID
    assert json.loads(completed.details)["successCount"] == 3


@pytest.mark.asyncio
async def test_short_alias_path(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
) -> None:
    await seed_admin(sessionmaker, ADMIN_ID)
    await seed_employees(sessionmaker, "Engineering", 1)

    r = await client.post("/send-email", json=BODY, headers=bearer(settings, ADMIN_ID))
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_partial_failure_is_still_200(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    transport: RecordingTransport,
) -> None:
    await seed_admin(sessionmaker, ADMIN_ID)
    emails = await seed_employees(sessionmaker, "Engineering", 5)
    transport.fail_for.add(emails[2])

    r = await client.post(URL, json=BODY, headers=bearer(settings, ADMIN_ID))

    assert r.status_code == 200
    assert (r.json()["recipients"], r.json()["failures"]) == (4, 1)
    assert "mailbox unavailable" not in r.text


@pytest.mark.asyncio
async def test_non_admin_is_forbidden_without_directory_query(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    count_directory_queries: list[str],
) -> None:
    await seed_admin(sessionmaker, ADMIN_ID)
    await seed_employees(sessionmaker, "Engineering", 3)

    r = await client.post(URL, json=BODY, headers=bearer(settings, USER_ID))

    assert r.status_code == 403
    assert r.json() == {"error": "Access denied"}
    assert await audit_actions(sessionmaker) == ["unauthorized_email_attempt"]
    assert count_directory_queries == []


@pytest.mark.asyncio
async def test_admin_lookup_error_fails_closed(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    count_directory_queries: list[str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    await seed_admin(sessionmaker, ADMIN_ID)
    await seed_employees(sessionmaker, "Engineering", 3)

    async def unavailable(self: AdminUserRepo, user_id: str) -> None:
        raise SQLAlchemyError("admin_users unavailable")

    monkeypatch.setattr(AdminUserRepo, "get_by_user_id", unavailable)

    r = await client.post(URL, json=BODY, headers=bearer(settings, ADMIN_ID))

    assert r.status_code == 403
    assert r.json() == {"error": "Access denied"}
    assert await audit_actions(sessionmaker) == ["unauthorized_email_attempt"]
    assert count_directory_queries == []


@pytest.mark.asyncio
async def test_duplicate_admin_rows_fail_closed(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    transport: RecordingTransport,
) -> None:
    await seed_admin(sessionmaker, ADMIN_ID)
    await seed_admin(sessionmaker, ADMIN_ID)
    await seed_employees(sessionmaker, "Engineering", 3)

    r = await client.post(URL, json=BODY, headers=bearer(settings, ADMIN_ID))

    assert r.status_code == 403
    assert await audit_actions(sessionmaker) == ["unauthorized_email_attempt"]
    assert transport.sent == []


@pytest.mark.asyncio
async def test_invalid_token_is_audited_as_unknown(
    client: httpx.AsyncClient,
    sessionmaker: async_sessionmaker[AsyncSession],
) -> None:
    r = await client.post(URL, json=BODY, headers={"Authorization": "Bearer not-a-valid-jwt"})

    assert r.status_code == 401
    assert r.json() == {"error": "Authentication required"}
    async with sessionmaker() as session:
        (entry,) = await AuditLogRepo(session).list_recent()
    assert (entry.admin_user_id, entry.action) == ("unknown", "unauthorized_email_attempt")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "headers",
    [{}, {"Authorization": "Basic abcdefghijkl"}, {"Authorization": "Bearer short"}],
)
async def test_missing_or_malformed_header_is_401_without_audit(
    client: httpx.AsyncClient,
    sessionmaker: async_sessionmaker[AsyncSession],
    headers: dict[str, str],
) -> None:
    r = await client.post(URL, json=BODY, headers=headers)

    assert r.status_code == 401
    assert await audit_actions(sessionmaker) == []


@pytest.mark.asyncio
async def test_rate_limit_applies_per_caller(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
) -> None:
    await seed_admin(sessionmaker, ADMIN_ID)
    await seed_employees(sessionmaker, "Engineering", 1)
    headers = bearer(settings, ADMIN_ID)

    statuses = [
        (await client.post(URL, json=BODY, headers=headers)).status_code for _ in range(11)
    ]

    assert statuses == [200] * 10 + [429]
    assert (await client.post(URL, json=BODY, headers=headers)).json() == {
        "error": "Too many requests"
    }
    assert Counter(await audit_actions(sessionmaker))["rate_limit_exceeded"] == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw",
    [
        b"",
        b"{not json",
        b"[1, 2, 3]",
        b"x" * 50_001,
        b"[" * 20_000 + b"]" * 20_000,
    ],
)
async def test_unparseable_body_is_400(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    raw: bytes,
) -> None:
    await seed_admin(sessionmaker, ADMIN_ID)

    r = await client.post(
        URL,
        content=raw,
        headers={**bearer(settings, ADMIN_ID), "Content-Type": "application/json"},
    )

    assert r.status_code == 400
    assert r.json() == {"error": "Invalid request parameters"}
    assert await audit_actions(sessionmaker) == ["invalid_request_body"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {**BODY, "pillar": "Eng<script>"},
        {**BODY, "subject": ""},
        {**BODY, "content": "x" * 10_001},
        {**BODY, "content": '<img src=x onerror="alert(1)">'},
        {"pillar": "Engineering"},
    ],
)
async def test_validation_failure_never_reaches_directory(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    transport: RecordingTransport,
    count_directory_queries: list[str],
    body: dict[str, str],
) -> None:
    await seed_admin(sessionmaker, ADMIN_ID)
    await seed_employees(sessionmaker, "Engineering", 2)

    r = await client.post(URL, json=body, headers=bearer(settings, ADMIN_ID))

    assert r.status_code == 400
    assert r.json() == {"error": "Invalid request parameters"}
    assert await audit_actions(sessionmaker) == ["email_validation_failed"]
    assert count_directory_queries == []
    assert transport.sent == []


@pytest.mark.asyncio
async def test_empty_pillar_is_404(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    transport: RecordingTransport,
) -> None:
    await seed_admin(sessionmaker, ADMIN_ID)
    await seed_employees(sessionmaker, "Sales", 2)

    r = await client.post(URL, json=BODY, headers=bearer(settings, ADMIN_ID))

    assert r.status_code == 404
    assert r.json() == {"error": "Resource not found"}
    assert await audit_actions(sessionmaker) == ["email_no_recipients"]
    assert transport.sent == []


@pytest.mark.asyncio
@pytest.mark.parametrize(("count", "status"), [(500, 200), (501, 400)])
async def test_recipient_cap(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    transport: RecordingTransport,
    count: int,
    status: int,
) -> None:
    await seed_admin(sessionmaker, ADMIN_ID)
    await seed_employees(sessionmaker, "Engineering", count)

    r = await client.post(URL, json=BODY, headers=bearer(settings, ADMIN_ID))

    assert r.status_code == status
    if status == 400:
        assert transport.sent == []
        async with sessionmaker() as session:
            (entry,) = await AuditLogRepo(session).list_recent()
        assert entry.action == "email_too_many_recipients"
        assert json.loads(entry.details)["count"] == 501
    else:
        assert len(transport.sent) == 500


@pytest.mark.asyncio
async def test_directory_error_is_generic_500(
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    from sqlalchemy.exc import OperationalError

    await seed_admin(sessionmaker, ADMIN_ID)

    async def broken(self: EmployeeRepo, pillar: str, *, limit: int):
        raise OperationalError("SELECT ...", {}, Exception("connection reset by db-host-7"))

    monkeypatch.setattr(EmployeeRepo, "list_by_pillar", broken)

    r = await client.post(URL, json=BODY, headers=bearer(settings, ADMIN_ID))

    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}
    assert "db-host-7" not in r.text
    assert await audit_actions(sessionmaker) == ["email_database_error"]


@pytest.mark.asyncio
async def test_batch_timeout_returns_partial_tally(
    app: FastAPI,
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    transport: RecordingTransport,
) -> None:
    settings.batch_timeout_seconds = 0.1
    await seed_admin(sessionmaker, ADMIN_ID)
    emails = await seed_employees(sessionmaker, "Engineering", 3)
    transport.stall_for.add(emails[0])

    r = await asyncio.wait_for(
        client.post(URL, json=BODY, headers=bearer(settings, ADMIN_ID)), timeout=10
    )

    assert r.status_code == 200
    body = r.json()
    assert (body["recipients"], body["failures"], body["total"]) == (2, 1, 3)
    assert body["timed_out"] is True


@pytest.mark.asyncio
async def test_simulated_when_transport_not_configured(
    app: FastAPI,
    client: httpx.AsyncClient,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
) -> None:
    app.state.email_transport = None
    await seed_admin(sessionmaker, ADMIN_ID)
    await seed_employees(sessionmaker, "Engineering", 4)

    r = await client.post(URL, json=BODY, headers=bearer(settings, ADMIN_ID))

    assert r.status_code == 200
    assert r.json()["message"] == "Email simulated for 4 employees"
    assert r.json()["recipients"] == 4
    assert "note" in r.json()
    assert sorted(await audit_actions(sessionmaker)) == [
        "email_send_initiated",
        "email_send_simulated",
    ]


@pytest.mark.asyncio
async def test_missing_configuration_is_500(
    client: httpx.AsyncClient,
    settings: Settings,
) -> None:
    settings.jwt_secret = ""

    r = await client.post(URL, json=BODY, headers={"Authorization": "Bearer whatever-token"})

    assert r.status_code == 500
    assert r.json() == {"error": "Internal server error"}


@pytest.mark.asyncio
async def test_preflight_and_method_not_allowed(client: httpx.AsyncClient) -> None:
    r = await client.options(URL)
    assert r.status_code == 200
    assert r.text == "ok"
    assert r.headers["access-control-allow-methods"] == "POST, OPTIONS"

    for method in ("GET", "PUT", "DELETE", "TRACE", "PROPFIND"):
        r = await client.request(method, URL)
        assert r.status_code == 405
        assert r.json() == {"error": "Method not allowed"}
        assert r.headers["access-control-allow-origin"] == "*"
