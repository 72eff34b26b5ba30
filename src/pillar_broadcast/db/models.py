"""
pillar_broadcast.db.models

Persistence schema for the admin portal.

Responsibilities:
- Employee: directory entry; recipients are selected by `pillar`.
- AdminUser: admin allow-list; one row per admin user id.
- AdminAuditLog: append-only trail of admin actions and rejections.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Index, Integer, String, Text, Uuid as SAUuid
from sqlalchemy.orm import Mapped, mapped_column

from pillar_broadcast.db.base import Base


def _utcnow() -> datetime:
    return datetime.utcnow()


class Employee(Base):
    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    employee_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    pillar: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    level: Mapped[str] = mapped_column(String(64), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)


class AdminUser(Base):
    __tablename__ = "admin_users"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    # Identity-provider user id; not unique at the schema level, duplicates fail closed.
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)


class AdminAuditLog(Base):
    __tablename__ = "admin_audit_log"

    id: Mapped[uuid.UUID] = mapped_column(
        SAUuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    admin_user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    # Serialized JSON, truncated to 1000 chars by the recorder.
    details: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False, default="Unknown")
    user_agent: Mapped[str] = mapped_column(String(500), nullable=False, default="Unknown")

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, index=True)

    __table_args__ = (Index("ix_admin_audit_user_created", "admin_user_id", "created_at"),)


# --- Module Notes -----------------------------------------------------------
# `details` is stored as text rather than JSON because truncation can cut a document
# mid-token; readers should treat it as an opaque, best-effort snapshot.
