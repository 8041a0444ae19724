"""
User Model
==========

Security Features:
- Enum-based role enforcement (closed set, validated by the database type)
- Enum-based account status (only ACTIVE accounts hold authority)
- Account lock after configurable failed attempts
- Token version for JWT invalidation

Database Indexes:
- Primary key: id (UUID)
- Unique index: email
- Index: role, status (last-administrator counts)
"""

import uuid
from datetime import datetime, UTC
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Uuid,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import Mapped, mapped_column

from consultancy.core.enums import AccountStatus
from consultancy.db.base import Base
from consultancy.models.role_enum import Role


def _utcnow() -> datetime:
    return datetime.now(UTC)


class User(Base):
    """
    User entity representing site accounts, from readers to administrators.

    Attributes:
        id: UUID primary key
        email: Unique email address (stored lower-case)
        name: Display name
        hashed_password: Argon2 hashed password
        role: Privilege tier (enum)
        status: Account lifecycle state (enum)
        failed_attempts: Failed login counter
        is_locked: Account lock status
        token_version: JWT version for invalidation
        last_login_at: Last successful login
        created_at: Account creation timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "users"

    def __init__(self, **kwargs):
        """Initialize User with Python-level defaults."""
        kwargs.setdefault("role", Role.VIEWER)
        kwargs.setdefault("status", AccountStatus.ACTIVE)
        kwargs.setdefault("failed_attempts", 0)
        kwargs.setdefault("is_locked", False)
        kwargs.setdefault("token_version", 1)
        super().__init__(**kwargs)

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    role: Mapped[Role] = mapped_column(
        Enum(Role, name="role_enum"),
        nullable=False,
        default=Role.VIEWER,
    )

    status: Mapped[AccountStatus] = mapped_column(
        Enum(AccountStatus, name="account_status_enum"),
        nullable=False,
        default=AccountStatus.ACTIVE,
    )

    # Lockout Protection
    failed_attempts: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    is_locked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    # JWT Version Control
    token_version: Mapped[int] = mapped_column(
        Integer,
        default=1,
        nullable=False,
    )

    last_login_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_users_role_status", "role", "status"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role}, status={self.status})>"

    @property
    def is_active(self) -> bool:
        """Only ACTIVE accounts may sign in or exercise their role."""
        return self.status == AccountStatus.ACTIVE

    def lock_account(self) -> None:
        """Lock the user account."""
        self.is_locked = True

    def unlock_account(self) -> None:
        """Unlock the user account and reset failed attempts."""
        self.is_locked = False
        self.failed_attempts = 0

    def increment_failed_attempts(self, max_attempts: int = 5) -> bool:
        """
        Increment failed login attempts.

        Args:
            max_attempts: Maximum attempts before lockout

        Returns:
            True if account should be locked
        """
        self.failed_attempts += 1
        if self.failed_attempts >= max_attempts:
            self.lock_account()
            return True
        return False

    def invalidate_tokens(self) -> None:
        """Invalidate all tokens by incrementing version."""
        self.token_version += 1

    def to_dict(self) -> dict:
        """
        Convert user to dictionary (excludes sensitive data).

        Returns:
            Dictionary with user data
        """
        return {
            "id": str(self.id),
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
            "status": self.status.value,
            "is_locked": self.is_locked,
            "last_login_at": self.last_login_at.isoformat() if self.last_login_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
