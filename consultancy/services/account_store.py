"""
Account Store Module
====================

Query helpers over the ``users`` table used by the admin services.

Security Features:
- Row locks (SELECT ... FOR UPDATE, ordered by id) for authority counts taken right
  before a demotion, deactivation or deletion. SQLite ignores the lock.
"""

from typing import Iterable, Optional, Sequence
from uuid import UUID

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.orm import Session

from consultancy.core.enums import AccountStatus
from consultancy.core.exceptions import UserNotFoundError
from consultancy.models.role_enum import Role
from consultancy.models.user import User


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user search text matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class AccountStore:
    """
    Read access to user accounts bound to one session.

    Usage:
        store = AccountStore(db)
        user = store.get_or_raise(user_id)
    """

    def __init__(self, db: Session):
        self.db = db

    # --------------------------
    # Single Account Lookups
    # --------------------------

    def get(self, user_id: UUID) -> Optional[User]:
        return self.db.get(User, user_id)

    def get_or_raise(self, user_id: UUID, for_update: bool = False) -> User:
        """
        Load an account by id.

        Raises:
            UserNotFoundError: If no account has this id
        """
        statement = select(User).where(User.id == user_id)
        if for_update:
            statement = statement.with_for_update()
        user = self.db.scalar(statement)
        if user is None:
            raise UserNotFoundError(identifier=str(user_id))
        return user

    def get_many_for_update(self, user_ids: Iterable[UUID]) -> list[User]:
        """Load and lock several accounts; missing ids are simply absent."""
        ids = list(user_ids)
        if not ids:
            return []
        statement = select(User).where(User.id.in_(ids)).order_by(User.id).with_for_update()
        return list(self.db.scalars(statement).all())

    # --------------------------
    # Authority Counts
    # --------------------------

    @staticmethod
    def authority_lock_statement(roles: Iterable[Role], target_ids: Iterable[UUID]) -> Optional[Select]:
        role_list = list(roles)
        ids = list(target_ids)
        conditions = []
        if role_list:
            conditions.append(and_(User.role.in_(role_list), User.status == AccountStatus.ACTIVE))
        if ids:
            conditions.append(User.id.in_(ids))
        if not conditions:
            return None
        return select(User.id).where(or_(*conditions)).order_by(User.id).with_for_update()

    def lock_authority_rows(self, roles: Iterable[Role], target_ids: Iterable[UUID]) -> None:
        """
        Lock every ACTIVE account holding ``roles`` plus ``target_ids``.

        One statement in id order, taken before any other row lock of the
        mutation, so concurrent demotions queue instead of deadlocking.
        """
        statement = self.authority_lock_statement(roles, target_ids)
        if statement is not None:
            self.db.scalars(statement).all()

    def count_active_by_role_set(
        self,
        roles: Iterable[Role],
        excluding_ids: Iterable[UUID] = (),
        lock: bool = False,
    ) -> int:
        """
        Count ACTIVE accounts holding any of ``roles``, ignoring ``excluding_ids``.

        With ``lock`` the matching rows are selected FOR UPDATE, which
        PostgreSQL does not allow together with an aggregate, so the
        ids are fetched and counted here.
        """
        role_list = list(roles)
        if not role_list:
            return 0

        statement = select(User.id).where(
            User.role.in_(role_list),
            User.status == AccountStatus.ACTIVE,
        )
        excluded = list(excluding_ids)
        if excluded:
            statement = statement.where(User.id.not_in(excluded))

        if lock:
            return len(self.db.scalars(statement.order_by(User.id).with_for_update()).all())
        return self.db.scalar(select(func.count()).select_from(statement.subquery())) or 0

    # --------------------------
    # Listing & Aggregates
    # --------------------------

    def _filtered(
        self,
        role: Optional[Role] = None,
        status: Optional[AccountStatus] = None,
        q: Optional[str] = None,
    ):
        statement = select(User)
        if role is not None:
            statement = statement.where(User.role == role)
        if status is not None:
            statement = statement.where(User.status == status)
        if q:
            pattern = f"%{escape_like(q.lower())}%"
            statement = statement.where(
                or_(
                    User.email.ilike(pattern, escape="\\"),
                    User.name.ilike(pattern, escape="\\"),
                )
            )
        return statement

    def list_users(
        self,
        role: Optional[Role] = None,
        status: Optional[AccountStatus] = None,
        q: Optional[str] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[User], int]:
        """
        Page through accounts, newest first.

        Returns:
            Tuple of (users, total matching count)
        """
        statement = self._filtered(role, status, q)
        total = self.db.scalar(select(func.count()).select_from(statement.subquery())) or 0
        users = self.db.scalars(
            statement.order_by(User.created_at.desc()).offset(skip).limit(limit)
        ).all()
        return list(users), total

    def all_users(
        self,
        role: Optional[Role] = None,
        status: Optional[AccountStatus] = None,
    ) -> Sequence[User]:
        """Every account matching the filters, newest first (used by export)."""
        statement = self._filtered(role, status).order_by(User.created_at.desc())
        return self.db.scalars(statement).all()

    def count_by_role(self) -> dict[str, int]:
        rows = self.db.execute(select(User.role, func.count()).group_by(User.role)).all()
        counts = {role.value: 0 for role in Role}
        counts.update({role.value: count for role, count in rows})
        return counts

    def count_by_status(self) -> dict[str, int]:
        rows = self.db.execute(select(User.status, func.count()).group_by(User.status)).all()
        counts = {status.value: 0 for status in AccountStatus}
        counts.update({status.value: count for status, count in rows})
        return counts
