"""
pillar_broadcast.db.repositories.audit

Repository for `AdminAuditLog` entries.

Responsibilities:
- Append audit entries (admin actions and rejected attempts).
- Query the most recent entries for review.
"""

from __future__ import annotations

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from pillar_broadcast.db.models import AdminAuditLog


class AuditLogRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        admin_user_id: str,
        action: str,
        details: str,
        ip_address: str,
        user_agent: str,
    ) -> AdminAuditLog:
        # Append-only: no update/delete methods exist on this repo.
        entry = AdminAuditLog(
            admin_user_id=admin_user_id,
            action=action,
            details=details,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def list_recent(
        self, *, action: str | None = None, limit: int = 200
    ) -> list[AdminAuditLog]:
        stmt = select(AdminAuditLog).order_by(desc(AdminAuditLog.created_at)).limit(limit)
        if action is not None:
            stmt = stmt.where(AdminAuditLog.action == action)
        return list((await self._session.execute(stmt)).scalars().all())


# --- Module Notes -----------------------------------------------------------
# Writes are committed by `services.audit.AuditRecorder` in their own session so a
# failed request transaction never discards its audit trail.
