"""
Audit Service Module
====================

Append-only audit records for administrative changes.

``record_event`` only adds the row to the caller's session; the caller
commits it together with the mutation it describes.
"""

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from consultancy.models.audit_log import AuditLog


def record_event(
    db: Session,
    *,
    actor_id: Optional[UUID],
    action: str,
    entity_id: Any = None,
    entity_type: str = "User",
    old_value: Optional[str] = None,
    new_value: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    """
    Add an audit record to the current transaction.

    Returns:
        The pending AuditLog instance
    """
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        old_value=old_value,
        new_value=new_value,
        details=details,
        ip_address=ip_address,
    )
    db.add(entry)
    return entry


def list_events(
    db: Session,
    *,
    action: Optional[str] = None,
    entity_id: Optional[str] = None,
    actor_id: Optional[UUID] = None,
    skip: int = 0,
    limit: int = 50,
) -> tuple[list[AuditLog], int]:
    """
    Page through audit records, newest first.

    Returns:
        Tuple of (records, total matching count)
    """
    statement = select(AuditLog)
    if action:
        statement = statement.where(AuditLog.action == action)
    if entity_id:
        statement = statement.where(AuditLog.entity_id == entity_id)
    if actor_id:
        statement = statement.where(AuditLog.actor_id == actor_id)

    total = db.scalar(select(func.count()).select_from(statement.subquery())) or 0
    records = db.scalars(
        statement.order_by(AuditLog.created_at.desc()).offset(skip).limit(limit)
    ).all()
    return list(records), total
