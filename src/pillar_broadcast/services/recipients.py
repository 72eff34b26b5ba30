"""
pillar_broadcast.services.recipients

Recipient resolution for a pillar broadcast.

Responsibilities:
- Query the directory once for a pillar, bounded by the fetch limit.
- Distinguish lookup errors, empty pillars and oversized pillars.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pillar_broadcast.db.repositories.employees import EmployeeRepo
from pillar_broadcast.errors import DirectoryError, NoRecipientsError, TooManyRecipientsError
from pillar_broadcast.observability.logging import get_logger
from pillar_broadcast.security.sanitize import sanitize

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Recipient:
    name: str
    email: str
    pillar: str


class RecipientResolver:
    def __init__(self, session: AsyncSession, *, fetch_limit: int, send_limit: int) -> None:
        self._employees = EmployeeRepo(session)
        self._fetch_limit = fetch_limit
        self._send_limit = send_limit

    async def resolve(self, pillar: str) -> tuple[Recipient, ...]:
        audit_details = {"pillar": sanitize(pillar)}
        try:
            rows = await self._employees.list_by_pillar(pillar, limit=self._fetch_limit)
        except SQLAlchemyError as e:
            log.exception("directory_query_failed")
            raise DirectoryError(
                "directory query failed",
                audit_action="email_database_error",
                audit_details=audit_details,
            ) from e

        if not rows:
            raise NoRecipientsError(
                "pillar has no employees",
                audit_action="email_no_recipients",
                audit_details=audit_details,
            )

        # Oversized pillars are rejected, never truncated.
        if len(rows) > self._send_limit:
            raise TooManyRecipientsError(
                "recipient count exceeds send limit",
                audit_action="email_too_many_recipients",
                audit_details={**audit_details, "count": len(rows)},
            )

        return tuple(Recipient(name=r.name, email=r.email, pillar=r.pillar) for r in rows)


# --- Module Notes -----------------------------------------------------------
# The returned tuple is the recipient set for the whole request; employees added
# afterwards are not contacted.
