"""
User Administration Service
===========================

Role, status, unlock and deletion workflows for administrators.

Each mutation follows the same order:
1. reject self-targeting
2. lock the authority tier and the targets in id order, then load the targets
3. evaluate the RBAC predicate for every target
4. run the last-authority guard
5. apply the change, write the audit record and commit once

A rejected step raises before anything is written, so a failed request
never leaves a partial change behind.
"""

import csv
import io
import json
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from consultancy.core.enums import AccountStatus, BulkAction, ExportFormat
from consultancy.core.exceptions import (
    AuthorizationError,
    SelfActionError,
    UserNotFoundError,
    ValidationError,
)
from consultancy.core.logging import get_logger, audit_logger, security_logger
from consultancy.core.rbac import (
    DEFAULT_POLICY,
    Principal,
    RbacPolicy,
    can_assign_role,
    can_delete_user,
    can_manage_users,
    can_update_user_status,
)
from consultancy.models.audit_log import AuditAction
from consultancy.models.role_enum import Role
from consultancy.models.user import User
from consultancy.services.account_store import AccountStore
from consultancy.services.audit_service import list_events, record_event
from consultancy.services.authority_guard import ensure_authority_remains

# Initialize logger
logger = get_logger(__name__)

EXPORT_COLUMNS = ("id", "email", "name", "role", "status", "is_locked", "last_login_at", "created_at")

# Leading characters spreadsheet applications evaluate as a formula.
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def neutralize_formula(value):
    """Prefix text cells that a spreadsheet would evaluate with a quote."""
    if isinstance(value, str) and value.startswith(FORMULA_PREFIXES):
        return f"'{value}"
    return value


class UserAdminService:
    """
    Administrative operations on user accounts.

    Usage:
        service = UserAdminService(db)
        service.change_role(actor, user_id, Role.EDITOR)
    """

    def __init__(self, db: Session, policy: RbacPolicy = DEFAULT_POLICY):
        self.db = db
        self.policy = policy
        self.store = AccountStore(db)

    # --------------------------
    # Helpers
    # --------------------------

    def _deny(self, actor: Principal, target: User, action: str, message: str) -> AuthorizationError:
        security_logger.log_unauthorized_access(
            user_id=str(actor.id),
            resource=f"user:{target.id}",
            action=action,
            reason="insufficient_rank",
        )
        return AuthorizationError(message=message, details={"user_id": str(target.id)})

    @staticmethod
    def _reject_self(actor: Principal, target_ids: Iterable[UUID], message: str) -> None:
        if any(actor.id == target_id for target_id in target_ids):
            raise SelfActionError(message)

    # --------------------------
    # Role Changes
    # --------------------------

    def change_role(
        self,
        actor: Principal,
        user_id: UUID,
        new_role: Role,
        ip_address: Optional[str] = None,
    ) -> User:
        """
        Reassign a user's role.

        Raises:
            UserNotFoundError: If the target does not exist
            SelfActionError: If the actor targets itself
            AuthorizationError: If the actor cannot assign this role to this target
            LastAuthorityError: If this would demote the last administrator
        """
        self._reject_self(actor, [user_id], "You cannot change your own role")
        self.store.lock_authority_rows(self.policy.authority_roles, [user_id])
        target = self.store.get_or_raise(user_id, for_update=True)

        if not can_assign_role(actor, Principal.from_user(target), new_role, self.policy):
            raise self._deny(actor, target, "update_role", "You cannot assign this role to this user")

        if target.role == new_role:
            return target

        ensure_authority_remains(
            self.store,
            [target],
            actor_id=actor.id,
            operation="update_role",
            new_role=new_role,
            policy=self.policy,
        )

        old_role = target.role
        target.role = new_role
        record_event(
            self.db,
            actor_id=actor.id,
            action=AuditAction.ROLE_CHANGED,
            entity_id=target.id,
            old_value=old_role.value,
            new_value=new_role.value,
            ip_address=ip_address,
        )
        self.db.commit()

        audit_logger.log_role_changed(
            actor_id=str(actor.id),
            target_user_id=str(target.id),
            old_role=old_role.value,
            new_role=new_role.value,
        )
        return target

    # --------------------------
    # Status Changes
    # --------------------------

    def _apply_status(self, target: User, new_status: AccountStatus) -> AccountStatus:
        old_status = target.status
        target.status = new_status
        if new_status != AccountStatus.ACTIVE:
            # Outstanding tokens stop validating immediately.
            target.invalidate_tokens()
        return old_status

    def change_status(
        self,
        actor: Principal,
        user_id: UUID,
        new_status: AccountStatus,
        ip_address: Optional[str] = None,
    ) -> User:
        """
        Move a user to a new account status.

        Leaving ACTIVE revokes every token the user holds.

        Raises:
            UserNotFoundError: If the target does not exist
            SelfActionError: If the actor targets itself
            AuthorizationError: If the actor cannot make this status change
            LastAuthorityError: If this would deactivate the last administrator
        """
        self._reject_self(actor, [user_id], "You cannot change your own status")
        self.store.lock_authority_rows(self.policy.authority_roles, [user_id])
        target = self.store.get_or_raise(user_id, for_update=True)

        if not can_update_user_status(actor, Principal.from_user(target), new_status, self.policy):
            raise self._deny(actor, target, "update_status", "You cannot change this user's status")

        if target.status == new_status:
            return target

        ensure_authority_remains(
            self.store,
            [target],
            actor_id=actor.id,
            operation="update_status",
            new_status=new_status,
            policy=self.policy,
        )

        old_status = self._apply_status(target, new_status)
        record_event(
            self.db,
            actor_id=actor.id,
            action=AuditAction.STATUS_CHANGED,
            entity_id=target.id,
            old_value=old_status.value,
            new_value=new_status.value,
            ip_address=ip_address,
        )
        self.db.commit()

        audit_logger.log_status_changed(
            actor_id=str(actor.id),
            target_user_id=str(target.id),
            old_status=old_status.value,
            new_status=new_status.value,
        )
        return target

    # --------------------------
    # Deletion & Unlock
    # --------------------------

    def delete_user(
        self,
        actor: Principal,
        user_id: UUID,
        ip_address: Optional[str] = None,
    ) -> None:
        """
        Permanently delete a user account.

        Raises:
            UserNotFoundError: If the target does not exist
            SelfActionError: If the actor targets itself
            AuthorizationError: If the actor does not outrank the target
            LastAuthorityError: If this would delete the last administrator
        """
        self._reject_self(actor, [user_id], "You cannot delete your own account")
        self.store.lock_authority_rows(self.policy.authority_roles, [user_id])
        target = self.store.get_or_raise(user_id, for_update=True)

        if not can_delete_user(actor, Principal.from_user(target), self.policy):
            raise self._deny(actor, target, "delete", "You cannot delete this user")

        ensure_authority_remains(
            self.store,
            [target],
            actor_id=actor.id,
            operation="delete",
            deleted=True,
            policy=self.policy,
        )

        email = target.email
        record_event(
            self.db,
            actor_id=actor.id,
            action=AuditAction.USER_DELETED,
            entity_id=target.id,
            old_value=target.role.value,
            details={"email": email},
            ip_address=ip_address,
        )
        self.db.delete(target)
        self.db.commit()

        audit_logger.log_user_deleted(
            actor_id=str(actor.id),
            target_user_id=str(user_id),
            email=email,
        )

    def unlock_user(
        self,
        actor: Principal,
        user_id: UUID,
        ip_address: Optional[str] = None,
    ) -> User:
        """
        Clear a login lockout.

        Raises:
            UserNotFoundError: If the target does not exist
            SelfActionError: If the actor targets itself
            AuthorizationError: If the actor cannot manage the target's role
        """
        self._reject_self(actor, [user_id], "You cannot unlock your own account")
        target = self.store.get_or_raise(user_id)

        if not can_manage_users(actor, target.role, self.policy):
            raise self._deny(actor, target, "unlock", "You cannot unlock this user")

        if not target.is_locked and target.failed_attempts == 0:
            return target

        target.unlock_account()
        record_event(
            self.db,
            actor_id=actor.id,
            action=AuditAction.USER_UNLOCKED,
            entity_id=target.id,
            ip_address=ip_address,
        )
        self.db.commit()

        audit_logger.log_user_unlocked(actor_id=str(actor.id), target_user_id=str(target.id))
        return target

    # --------------------------
    # Bulk Actions
    # --------------------------

    def bulk_update(
        self,
        actor: Principal,
        user_ids: Iterable[UUID],
        action: BulkAction,
        role: Optional[Role] = None,
        status: Optional[AccountStatus] = None,
        ip_address: Optional[str] = None,
    ) -> int:
        """
        Apply one role or status change to many users, all or nothing.

        Every target is checked before any is changed; a single refusal
        aborts the whole request.

        Returns:
            Number of accounts actually changed

        Raises:
            ValidationError: If the value for the action is missing
            SelfActionError: If the actor is among the targets
            UserNotFoundError: If any target does not exist
            AuthorizationError: If any target fails the RBAC check
            LastAuthorityError: If the batch would remove the last administrator
        """
        if action == BulkAction.UPDATE_ROLE and role is None:
            raise ValidationError("Role is required for UPDATE_ROLE")
        if action == BulkAction.UPDATE_STATUS and status is None:
            raise ValidationError("Status is required for UPDATE_STATUS")

        ids = list(dict.fromkeys(user_ids))
        if not ids:
            raise ValidationError("At least one user id is required")
        self._reject_self(actor, ids, "Bulk actions cannot include your own account")
        self.store.lock_authority_rows(self.policy.authority_roles, ids)

        targets = self.store.get_many_for_update(ids)
        found = {user.id for user in targets}
        missing = [user_id for user_id in ids if user_id not in found]
        if missing:
            raise UserNotFoundError(identifier=str(missing[0]))

        for target in targets:
            principal = Principal.from_user(target)
            if action == BulkAction.UPDATE_ROLE:
                allowed = can_assign_role(actor, principal, role, self.policy)
            else:
                allowed = can_update_user_status(actor, principal, status, self.policy)
            if not allowed:
                raise self._deny(
                    actor,
                    target,
                    f"bulk_{action.value.lower()}",
                    "Bulk action includes a user you cannot modify",
                )

        ensure_authority_remains(
            self.store,
            targets,
            actor_id=actor.id,
            operation=f"bulk_{action.value.lower()}",
            new_role=role if action == BulkAction.UPDATE_ROLE else None,
            new_status=status if action == BulkAction.UPDATE_STATUS else None,
            policy=self.policy,
        )

        affected = 0
        for target in targets:
            if action == BulkAction.UPDATE_ROLE:
                if target.role == role:
                    continue
                old_value = target.role.value
                target.role = role
                new_value = role.value
                audit_action = AuditAction.BULK_UPDATE_ROLE
            else:
                if target.status == status:
                    continue
                old_value = self._apply_status(target, status).value
                new_value = status.value
                audit_action = AuditAction.BULK_UPDATE_STATUS

            record_event(
                self.db,
                actor_id=actor.id,
                action=audit_action,
                entity_id=target.id,
                old_value=old_value,
                new_value=new_value,
                ip_address=ip_address,
            )
            affected += 1

        self.db.commit()

        audit_logger.log_bulk_action(
            actor_id=str(actor.id),
            action=action.value,
            target_ids=[str(user_id) for user_id in ids],
            affected=affected,
        )
        return affected

    # --------------------------
    # Reporting
    # --------------------------

    def export_users(
        self,
        export_format: ExportFormat,
        role: Optional[Role] = None,
        status: Optional[AccountStatus] = None,
    ) -> str:
        """
        Render the filtered user list as CSV or JSON text.

        Credentials and lockout counters are never exported.
        """
        rows = [
            {column: user.to_dict().get(column) for column in EXPORT_COLUMNS}
            for user in self.store.all_users(role=role, status=status)
        ]

        if export_format == ExportFormat.JSON:
            return json.dumps(rows, indent=2)

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS)
        writer.writeheader()
        writer.writerows(
            {column: neutralize_formula(value) for column, value in row.items()}
            for row in rows
        )
        return buffer.getvalue()

    def dashboard_summary(self, recent: int = 10) -> dict:
        """Account counts by role and status plus the latest audit records."""
        by_role = self.store.count_by_role()
        events, _ = list_events(self.db, limit=recent)
        return {
            "total_users": sum(by_role.values()),
            "users_by_role": by_role,
            "users_by_status": self.store.count_by_status(),
            "recent_activity": events,
        }
