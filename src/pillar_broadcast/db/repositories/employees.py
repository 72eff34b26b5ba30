"""
pillar_broadcast.db.repositories.employees

Read-only repository for the employee directory.

Responsibilities:
- Fetch the members of one pillar with a hard row limit.
- Aggregate per-pillar headcounts for the admin dashboard.
"""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pillar_broadcast.db.models import Employee


class EmployeeRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_by_pillar(self, pillar: str, *, limit: int) -> list[Employee]:
        # Bound parameters only; `pillar` has already passed validation.
        stmt = select(Employee).where(Employee.pillar == pillar).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())

    async def pillar_counts(self) -> dict[str, int]:
        stmt = (
            select(Employee.pillar, func.count(Employee.id))
            .group_by(Employee.pillar)
            .order_by(Employee.pillar)
        )
        return {pillar: count for pillar, count in (await self._session.execute(stmt)).all()}
