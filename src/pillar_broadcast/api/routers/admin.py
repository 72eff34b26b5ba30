"""
pillar_broadcast.api.routers.admin

Read-only admin endpoints backing the portal dashboard.

Responsibilities:
- Employee headcounts per pillar (the pillar picker and statistics panel).
- Recent admin audit entries.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import JSONResponse, Response

from pillar_broadcast.api.deps import broadcast_service, db_session
from pillar_broadcast.api.responses import READ_CORS_HEADERS, error_response, preflight_response
from pillar_broadcast.db.repositories.audit import AuditLogRepo
from pillar_broadcast.db.repositories.employees import EmployeeRepo
from pillar_broadcast.errors import BroadcastError
from pillar_broadcast.services.audit import RequestMeta
from pillar_broadcast.services.broadcast_service import UNAUTHORIZED_READ, BroadcastService

router = APIRouter(prefix="/v1", tags=["admin"])


class PillarStats(BaseModel):
    pillar: str
    employees: int


class PillarStatsResponse(BaseModel):
    total: int
    pillars: list[PillarStats]


class AuditEntryResponse(BaseModel):
    admin_user_id: str
    action: str
    details: str
    ip_address: str
    user_agent: str
    created_at: str


async def _authorize(request: Request, service: BroadcastService) -> Response | None:
    try:
        await service.authorize_caller(
            authorization=request.headers.get("authorization"),
            meta=RequestMeta.from_headers(request.headers),
            rate_limited=False,
            denied_action=UNAUTHORIZED_READ,
        )
    except BroadcastError as e:
        return error_response(e.status_code, headers=READ_CORS_HEADERS)
    return None


@router.get("/pillars")
async def pillar_stats(
    request: Request,
    service: BroadcastService = Depends(broadcast_service),
    session: AsyncSession = Depends(db_session),
) -> Response:
    rejected = await _authorize(request, service)
    if rejected is not None:
        return rejected

    counts = await EmployeeRepo(session).pillar_counts()
    payload = PillarStatsResponse(
        total=sum(counts.values()),
        pillars=[PillarStats(pillar=p, employees=n) for p, n in counts.items()],
    )
    return JSONResponse(payload.model_dump(), headers=READ_CORS_HEADERS)


@router.get("/audit-log")
async def audit_log(
    request: Request,
    action: str | None = Query(default=None, max_length=100),
    limit: int = Query(default=100, ge=1, le=500),
    service: BroadcastService = Depends(broadcast_service),
    session: AsyncSession = Depends(db_session),
) -> Response:
    rejected = await _authorize(request, service)
    if rejected is not None:
        return rejected

    entries = await AuditLogRepo(session).list_recent(action=action, limit=limit)
    payload = [
        AuditEntryResponse(
            admin_user_id=e.admin_user_id,
            action=e.action,
            details=e.details,
            ip_address=e.ip_address,
            user_agent=e.user_agent,
            created_at=e.created_at.isoformat(),
        ).model_dump()
        for e in entries
    ]
    return JSONResponse(payload, headers=READ_CORS_HEADERS)


@router.options("/pillars", include_in_schema=False)
@router.options("/audit-log", include_in_schema=False)
async def admin_preflight() -> Response:
    return preflight_response(headers=READ_CORS_HEADERS)


# --- Module Notes -----------------------------------------------------------
# These endpoints share the send endpoint's authentication and admin check but not its
# rate limit; dashboard polling never spends the send budget.
