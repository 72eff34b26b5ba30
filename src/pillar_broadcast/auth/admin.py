"""
pillar_broadcast.auth.admin

Admin allow-list authorization.

Responsibilities:
- Decide whether a verified user id is an admin, failing closed on any error.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pillar_broadcast.db.repositories.admins import AdminUserRepo
from pillar_broadcast.errors import AuthorizationError
from pillar_broadcast.observability.logging import get_logger

log = get_logger(__name__)


class AdminAuthorizer:
    def __init__(self, session: AsyncSession) -> None:
        self._admins = AdminUserRepo(session)

    async def is_admin(self, user_id: str) -> bool:
        try:
            # Raises on duplicate rows; exactly one match is required.
            record = await self._admins.get_by_user_id(user_id)
        except SQLAlchemyError:
            log.exception("admin_lookup_failed")
            return False
        return record is not None

    async def require_admin(
        self, user_id: str, *, audit_action: str = "unauthorized_email_attempt"
    ) -> None:
        if not await self.is_admin(user_id):
            raise AuthorizationError(
                "caller is not in the admin allow-list",
                audit_action=audit_action,
                audit_details={"reason": "Not an admin user"},
            )


# --- Module Notes -----------------------------------------------------------
# No caching: admin status is re-read on every request so revocation is immediate.
