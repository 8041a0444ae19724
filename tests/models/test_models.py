"""
Model Unit Tests
================

Tests for SQLAlchemy models including:
- Role enum
- User model defaults, lockout helpers and serialization
- AuditLog persistence rules
"""

import pytest
from datetime import datetime, UTC
from uuid import UUID, uuid4

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from consultancy.core.enums import AccountStatus
from consultancy.models.audit_log import AuditAction, AuditLog
from consultancy.models.role_enum import Role
from consultancy.models.user import User


pytestmark = pytest.mark.unit


class TestRoleEnum:
    """Tests for Role enum."""

    def test_closed_set_of_six_roles(self):
        assert {role.value for role in Role} == {
            "SUPER_ADMIN", "ADMIN", "EDITOR", "AUTHOR", "CONTRIBUTOR", "VIEWER",
        }

    def test_role_is_string(self):
        """Test that roles compare equal to their wire values."""
        assert Role.EDITOR == "EDITOR"
        assert Role("AUTHOR") is Role.AUTHOR

    def test_unknown_role_rejected(self):
        with pytest.raises(ValueError):
            Role("OWNER")


class TestUserModel:
    """Tests for User model."""

    def test_python_defaults(self):
        # Act
        user = User(email="new@example.com", hashed_password="x")

        # Assert
        assert user.role == Role.VIEWER
        assert user.status == AccountStatus.ACTIVE
        assert user.failed_attempts == 0
        assert user.is_locked is False
        assert user.token_version == 1

    @pytest.mark.parametrize("status,expected", [
        (AccountStatus.ACTIVE, True),
        (AccountStatus.INACTIVE, False),
        (AccountStatus.PENDING, False),
        (AccountStatus.SUSPENDED, False),
    ])
    def test_is_active(self, status, expected):
        assert User(email="a@example.com", hashed_password="x", status=status).is_active is expected

    def test_increment_failed_attempts_locks_at_threshold(self):
        # Arrange
        user = User(email="a@example.com", hashed_password="x")

        # Act
        results = [user.increment_failed_attempts(max_attempts=3) for _ in range(3)]

        # Assert
        assert results == [False, False, True]
        assert user.is_locked is True

    def test_unlock_resets_counter(self):
        user = User(email="a@example.com", hashed_password="x", failed_attempts=5, is_locked=True)

        user.unlock_account()

        assert user.is_locked is False
        assert user.failed_attempts == 0

    def test_invalidate_tokens(self):
        user = User(email="a@example.com", hashed_password="x")
        user.invalidate_tokens()
        assert user.token_version == 2

    def test_to_dict_excludes_credentials(self):
        # Arrange
        user = User(
            id=uuid4(),
            email="a@example.com",
            hashed_password="secret-hash",
            role=Role.EDITOR,
            created_at=datetime(2026, 1, 2, tzinfo=UTC),
        )

        # Act
        data = user.to_dict()

        # Assert
        assert "hashed_password" not in data
        assert "failed_attempts" not in data
        assert "token_version" not in data
        assert data["role"] == "EDITOR"
        assert data["status"] == "ACTIVE"
        assert data["created_at"].startswith("2026-01-02")

    @pytest.mark.integration
    def test_persisted_user_gets_uuid_and_timestamps(self, db_session: Session, make_user):
        user = make_user(Role.AUTHOR)

        assert isinstance(user.id, UUID)
        assert user.created_at is not None
        assert user.updated_at is not None

    @pytest.mark.integration
    def test_email_unique(self, db_session: Session, viewer):
        db_session.add(User(email=viewer.email, hashed_password="x"))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()


class TestAuditLogModel:
    """Tests for AuditLog model."""

    @pytest.mark.integration
    def test_actor_set_null_on_delete(self, db_session: Session, make_user, viewer):
        """Test that audit rows outlive the account that wrote them."""
        # Arrange
        actor = make_user(Role.ADMIN)
        entry = AuditLog(
            actor_id=actor.id,
            action=AuditAction.ROLE_CHANGED,
            entity_id=str(viewer.id),
            old_value="VIEWER",
            new_value="AUTHOR",
        )
        db_session.add(entry)
        db_session.commit()
        entry_id = entry.id

        # Act
        db_session.delete(actor)
        db_session.commit()
        db_session.expire_all()

        # Assert
        kept = db_session.get(AuditLog, entry_id)
        assert kept is not None
        assert kept.actor_id is None
        assert kept.entity_type == "User"
