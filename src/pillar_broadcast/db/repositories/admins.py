from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pillar_broadcast.db.models import AdminUser


class AdminUserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_user_id(self, user_id: str) -> AdminUser | None:
        # scalar_one_or_none raises MultipleResultsFound on duplicates.
        stmt = select(AdminUser).where(AdminUser.user_id == user_id)
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def add(self, user_id: str) -> AdminUser:
        admin = AdminUser(user_id=user_id)
        self._session.add(admin)
        await self._session.flush()
        return admin
