"""
Audit Log Model
===============

Append-only record of administrative mutations.

Every role or status change, deletion and bulk action writes one row
inside the same transaction as the change itself, so an audit record
exists if and only if the mutation was committed.
"""

import uuid
from datetime import datetime, UTC
from typing import Any, Optional

from sqlalchemy import DateTime, ForeignKey, Index, JSON, String, Uuid
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from consultancy.db.base import Base


class AuditAction:
    """Audit action names."""

    ROLE_CHANGED = "user.role_changed"
    STATUS_CHANGED = "user.status_changed"
    USER_DELETED = "user.deleted"
    USER_UNLOCKED = "user.unlocked"
    USER_REGISTERED = "user.registered"
    BULK_UPDATE_ROLE = "user.bulk_update_role"
    BULK_UPDATE_STATUS = "user.bulk_update_status"
    SUPER_ADMIN_SEEDED = "user.super_admin_seeded"


class AuditLog(Base):
    """
    Audit entry capturing actor, target, old value, new value and time.

    ``actor_id`` is nulled if the acting account is later deleted; the
    target is kept as a plain string so records survive target deletion.
    """

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    action: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(64), nullable=False, default="User")
    entity_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    old_value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    new_value: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        Index("ix_audit_logs_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog(action={self.action}, entity_id={self.entity_id})>"
