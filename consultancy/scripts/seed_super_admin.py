"""Create or promote the bootstrap SUPER_ADMIN account (idempotent).

No role can grant its own role through the API, so the first top-level
administrator is created here.

Usage:
  consultancy-seed-admin --email owner@example.com
  SEED_ADMIN_PASSWORD=... consultancy-seed-admin --email owner@example.com --name "Site Owner"
"""

import argparse
import getpass
import os
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from consultancy.core.enums import AccountStatus
from consultancy.core.logging import configure_logging, get_logger
from consultancy.db.session import SessionLocal
from consultancy.models.audit_log import AuditAction
from consultancy.models.role_enum import Role
from consultancy.models.user import User
from consultancy.services.audit_service import record_event
from consultancy.services.auth_service import AuthService

logger = get_logger(__name__)


def seed_super_admin(
    db: Session,
    email: str,
    password: Optional[str] = None,
    name: Optional[str] = None,
) -> tuple[User, bool]:
    """
    Ensure ``email`` is an ACTIVE, unlocked SUPER_ADMIN.

    An existing account is promoted and its password is left alone;
    a new account requires ``password``.

    Returns:
        Tuple of (user, changed)
    """
    normalized = email.lower()
    user = db.scalar(select(User).where(User.email == normalized))

    if user is None:
        if not password:
            raise ValueError("A password is required to create a new account")
        user = User(
            email=normalized,
            name=name,
            hashed_password=AuthService.hash_password(password),
            role=Role.SUPER_ADMIN,
            status=AccountStatus.ACTIVE,
        )
        db.add(user)
        db.flush()
        old_role = None
    else:
        if user.role == Role.SUPER_ADMIN and user.is_active and not user.is_locked:
            return user, False
        old_role = user.role.value
        user.role = Role.SUPER_ADMIN
        user.status = AccountStatus.ACTIVE
        user.unlock_account()

    record_event(
        db,
        actor_id=None,
        action=AuditAction.SUPER_ADMIN_SEEDED,
        entity_id=user.id,
        old_value=old_role,
        new_value=Role.SUPER_ADMIN.value,
    )
    db.commit()
    logger.info("super_admin_seeded", user_id=str(user.id), created=old_role is None)
    return user, True


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--email", required=True, help="Account email")
    parser.add_argument("--name", default=None, help="Display name for a new account")
    args = parser.parse_args(argv)

    configure_logging()

    db = SessionLocal()
    try:
        exists = db.scalar(select(User.id).where(User.email == args.email.lower())) is not None
        password = None
        if not exists:
            password = os.environ.get("SEED_ADMIN_PASSWORD") or getpass.getpass("Password: ")

        user, changed = seed_super_admin(db, args.email, password=password, name=args.name)
        if changed:
            print(f"SUPER_ADMIN ready: {user.email}")
        else:
            print(f"Already a SUPER_ADMIN: {user.email}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
