"""
pillar_broadcast.services.audit

Best-effort audit recorder.

Responsibilities:
- Derive client IP / user agent from request headers.
- Truncate and sanitize audit fields before storage.
- Write each entry in its own committed session, never raising to the caller.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pillar_broadcast.db.repositories.audit import AuditLogRepo
from pillar_broadcast.observability.logging import get_logger
from pillar_broadcast.security.sanitize import sanitize

log = get_logger(__name__)

UNKNOWN = "Unknown"
UNKNOWN_ACTOR = "unknown"

ACTION_MAX = 100
DETAILS_MAX = 1000
USER_AGENT_MAX = 500
IP_MAX = 45
USER_ID_MAX = 128


@dataclass(frozen=True, slots=True)
class RequestMeta:
    ip_address: str = UNKNOWN
    user_agent: str = UNKNOWN

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> RequestMeta:
        forwarded = (headers.get("x-forwarded-for") or "").split(",")[0].strip()
        ip = forwarded or headers.get("x-real-ip") or UNKNOWN
        user_agent = headers.get("user-agent") or UNKNOWN
        return cls(ip_address=ip[:IP_MAX], user_agent=user_agent[:USER_AGENT_MAX])


def serialize_details(details: Any) -> str:
    if isinstance(details, Mapping):
        text = json.dumps(dict(details), default=str, ensure_ascii=False)
    else:
        text = sanitize(str(details))
    return text[:DETAILS_MAX]


class AuditRecorder:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def record(
        self,
        user_id: str,
        action: str,
        details: Any,
        meta: RequestMeta,
    ) -> None:
        try:
            async with self._session_factory() as session:
                await AuditLogRepo(session).add(
                    admin_user_id=str(user_id)[:USER_ID_MAX],
                    action=sanitize(action)[:ACTION_MAX],
                    details=serialize_details(details),
                    ip_address=meta.ip_address[:IP_MAX],
                    user_agent=meta.user_agent[:USER_AGENT_MAX],
                )
                await session.commit()
        except Exception:
            # Audit failures never fail the request.
            log.exception("audit_write_failed", action=action)


# --- Module Notes -----------------------------------------------------------
# `record` is awaited inline (not fire-and-forget) so entries are ordered with the
# request's decisions; only its failures are swallowed.
