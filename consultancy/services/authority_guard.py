"""
Last-Authority-Standing Guard
=============================

Prevents a demotion, deactivation or deletion from leaving the system
with no ACTIVE account in the administrative tier.

The check runs in the caller's transaction immediately before the
write. Candidate rows are locked, so two concurrent requests demoting
the last two administrators cannot both pass on PostgreSQL.
"""

from typing import Iterable, Optional
from uuid import UUID

from consultancy.core.enums import AccountStatus
from consultancy.core.exceptions import LastAuthorityError
from consultancy.core.logging import audit_logger
from consultancy.core.rbac import DEFAULT_POLICY, RbacPolicy
from consultancy.models.role_enum import Role
from consultancy.models.user import User
from consultancy.services.account_store import AccountStore


def loses_authority(
    user: User,
    *,
    new_role: Optional[Role] = None,
    new_status: Optional[AccountStatus] = None,
    deleted: bool = False,
    policy: RbacPolicy = DEFAULT_POLICY,
) -> bool:
    """Whether the pending change takes an ACTIVE authority account out of the tier."""
    if user.status != AccountStatus.ACTIVE or user.role not in policy.authority_roles:
        return False
    if deleted:
        return True
    if new_role is not None and new_role not in policy.authority_roles:
        return True
    if new_status is not None and new_status != AccountStatus.ACTIVE:
        return True
    return False


def ensure_authority_remains(
    store: AccountStore,
    targets: Iterable[User],
    *,
    actor_id: Optional[UUID],
    operation: str,
    new_role: Optional[Role] = None,
    new_status: Optional[AccountStatus] = None,
    deleted: bool = False,
    policy: RbacPolicy = DEFAULT_POLICY,
) -> None:
    """
    Refuse the operation if it would remove the last ACTIVE authority account.

    Every target is excluded from the count, not only those losing
    authority, so a bulk operation cannot count its own targets as the
    survivors.

    Raises:
        LastAuthorityError: If no other ACTIVE authority account would remain
    """
    target_list = list(targets)
    affected = [
        user for user in target_list
        if loses_authority(
            user,
            new_role=new_role,
            new_status=new_status,
            deleted=deleted,
            policy=policy,
        )
    ]
    if not affected:
        return

    remaining = store.count_active_by_role_set(
        policy.authority_roles,
        excluding_ids=[user.id for user in target_list],
        lock=True,
    )
    if remaining >= 1:
        return

    target_ids = [str(user.id) for user in affected]
    audit_logger.log_authority_guard_blocked(
        actor_id=str(actor_id) if actor_id else "system",
        target_ids=target_ids,
        operation=operation,
    )
    raise LastAuthorityError(target_ids=target_ids)
