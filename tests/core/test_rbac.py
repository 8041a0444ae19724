"""
Role-Based Access Control (RBAC) Unit Tests
============================================

Tests for the pure RBAC policy including:
- Role hierarchy completeness and strict ordering
- Permission lookup (exact tokens and wildcard)
- can_manage_users / can_update_user_status / can_delete_user
- get_assignable_user_roles / can_assign_role
- Policy construction validation
"""

import itertools
from types import MappingProxyType
from uuid import uuid4

import pytest

from consultancy.core.enums import AccountStatus
from consultancy.core.exceptions import RbacConfigurationError
from consultancy.core.permissions import Permission, all_permission_tokens
from consultancy.core.rbac import (
    DEFAULT_POLICY,
    ROLE_DESCRIPTIONS,
    ROLE_HIERARCHY,
    ROLE_PERMISSIONS,
    Principal,
    RbacPolicy,
    can_assign_role,
    can_delete_user,
    can_manage_users,
    can_update_user_status,
    describe_role,
    get_assignable_user_roles,
    get_permissions,
    has_permission,
    weight_of,
)
from consultancy.models.role_enum import Role


pytestmark = [pytest.mark.rbac, pytest.mark.unit]

NON_ACTIVE = [s for s in AccountStatus if s != AccountStatus.ACTIVE]
ROLES_BY_RANK = [
    Role.SUPER_ADMIN,
    Role.ADMIN,
    Role.EDITOR,
    Role.AUTHOR,
    Role.CONTRIBUTOR,
    Role.VIEWER,
]


def principal(role: Role, status: AccountStatus = AccountStatus.ACTIVE, id=None) -> Principal:
    return Principal(id=id or uuid4(), role=role, status=status)


class TestRoleHierarchy:
    """Tests for role hierarchy configuration."""

    def test_every_role_has_a_weight(self):
        """Test that weight_of is defined for every Role member."""
        # Act / Assert
        for role in Role:
            assert isinstance(weight_of(role), int)
            assert weight_of(role) > 0

    def test_weights_are_unique(self):
        """Test that no two roles share a weight."""
        # Act
        weights = [weight_of(role) for role in Role]

        # Assert
        assert len(set(weights)) == len(Role)

    def test_roles_ordered_from_super_admin_to_viewer(self):
        """Test the documented order of privilege."""
        # Act
        ranked = DEFAULT_POLICY.ranked(Role)

        # Assert
        assert ranked == ROLES_BY_RANK

    def test_top_role_is_super_admin(self):
        assert DEFAULT_POLICY.top_role == Role.SUPER_ADMIN

    def test_outranks_is_strict(self):
        """Test that equal weight never outranks."""
        for role in Role:
            assert DEFAULT_POLICY.outranks(role, role) is False

    def test_tables_are_read_only(self):
        """Test that the default tables cannot be mutated at runtime."""
        # Assert
        assert isinstance(ROLE_HIERARCHY, MappingProxyType)
        with pytest.raises(TypeError):
            ROLE_HIERARCHY[Role.VIEWER] = 99  # type: ignore[index]
        with pytest.raises(TypeError):
            DEFAULT_POLICY.hierarchy[Role.VIEWER] = 99  # type: ignore[index]

    def test_every_role_has_a_description(self):
        for role in Role:
            assert describe_role(role) == ROLE_DESCRIPTIONS[role]


class TestHasPermission:
    """Tests for permission lookup."""

    def test_super_admin_wildcard_grants_arbitrary_token(self):
        """Test that the wildcard matches any token, registered or not."""
        # Arrange
        actor = principal(Role.SUPER_ADMIN)

        # Act / Assert
        assert has_permission(actor, "anything:arbitrary") is True
        assert has_permission(actor, Permission.USERS_DELETE) is True

    def test_viewer_cannot_delete_users(self):
        assert has_permission(principal(Role.VIEWER), Permission.USERS_DELETE) is False

    def test_viewer_can_read_content(self):
        assert has_permission(principal(Role.VIEWER), Permission.CONTENT_READ) is True

    def test_admin_permissions(self):
        """Test the administrative tokens granted to ADMIN."""
        # Arrange
        actor = principal(Role.ADMIN)

        # Assert
        assert has_permission(actor, Permission.USERS_UPDATE) is True
        assert has_permission(actor, Permission.AUDIT_READ) is True
        assert has_permission(actor, "anything:arbitrary") is False

    def test_editor_cannot_manage_users(self):
        actor = principal(Role.EDITOR)
        assert has_permission(actor, Permission.CONTENT_PUBLISH) is True
        assert has_permission(actor, Permission.USERS_UPDATE) is False

    def test_scoped_token_is_distinct_from_unscoped(self):
        """Test that content:update:own and content:update never imply each other."""
        # Arrange
        author = principal(Role.AUTHOR)
        editor = principal(Role.EDITOR)

        # Assert
        assert has_permission(author, Permission.CONTENT_UPDATE_OWN) is True
        assert has_permission(author, Permission.CONTENT_UPDATE) is False
        assert has_permission(editor, Permission.CONTENT_UPDATE) is True
        assert has_permission(editor, Permission.CONTENT_UPDATE_OWN) is False

    def test_no_prefix_matching(self):
        assert has_permission(principal(Role.VIEWER), "content") is False
        assert has_permission(principal(Role.VIEWER), "content:read:all") is False

    @pytest.mark.parametrize("status", NON_ACTIVE)
    def test_non_active_principal_holds_nothing(self, status):
        """Test that even the wildcard is ignored for non-active accounts."""
        # Arrange
        actor = principal(Role.SUPER_ADMIN, status)

        # Assert
        assert has_permission(actor, Permission.CONTENT_READ) is False
        assert has_permission(actor, "anything:arbitrary") is False
        assert get_permissions(actor) == frozenset()

    def test_get_permissions_matches_table(self):
        for role in Role:
            assert get_permissions(principal(role)) == ROLE_PERMISSIONS[role]


class TestCanManageUsers:
    """Tests for can_manage_users."""

    def test_admin_manages_editor(self):
        assert can_manage_users(principal(Role.ADMIN), Role.EDITOR) is True

    def test_editor_cannot_manage_admin(self):
        assert can_manage_users(principal(Role.EDITOR), Role.ADMIN) is False

    @pytest.mark.parametrize("role", list(Role))
    def test_no_role_manages_its_own_rank(self, role):
        """Test that equal rank never manages equal rank, the top role included."""
        assert can_manage_users(principal(role), role) is False

    def test_never_manages_equal_or_higher_rank(self):
        """Test every pair where the actor does not strictly outrank the target."""
        for actor_role, target_role in itertools.product(Role, Role):
            if weight_of(actor_role) <= weight_of(target_role):
                assert can_manage_users(principal(actor_role), target_role) is False

    def test_manages_every_strictly_lower_rank(self):
        for actor_role, target_role in itertools.product(Role, Role):
            if weight_of(actor_role) > weight_of(target_role):
                assert can_manage_users(principal(actor_role), target_role) is True

    @pytest.mark.parametrize("status", NON_ACTIVE)
    def test_non_active_actor_denied(self, status):
        assert can_manage_users(principal(Role.SUPER_ADMIN, status), Role.VIEWER) is False


class TestCanUpdateUserStatus:
    """Tests for can_update_user_status."""

    def test_admin_can_deactivate_editor(self):
        # Arrange
        actor = principal(Role.ADMIN)
        target = principal(Role.EDITOR)

        # Act
        result = can_update_user_status(actor, target, AccountStatus.INACTIVE)

        # Assert
        assert result is True

    @pytest.mark.parametrize("new_status", list(AccountStatus))
    def test_self_status_change_forbidden(self, new_status):
        """Test that an admin can never change their own status."""
        # Arrange
        actor = principal(Role.ADMIN)
        same_identity = Principal(id=actor.id, role=actor.role, status=actor.status)

        # Assert
        assert can_update_user_status(actor, same_identity, new_status) is False

    def test_self_check_uses_identity_not_object(self):
        """Test that two distinct objects with the same id are the same identity."""
        # Arrange
        user_id = uuid4()
        actor = Principal(id=user_id, role=Role.SUPER_ADMIN, status=AccountStatus.ACTIVE)
        target = Principal(id=user_id, role=Role.VIEWER, status=AccountStatus.ACTIVE)

        # Assert
        assert can_update_user_status(actor, target, AccountStatus.INACTIVE) is False

    def test_requires_strict_rank(self):
        assert can_update_user_status(
            principal(Role.ADMIN), principal(Role.ADMIN), AccountStatus.INACTIVE
        ) is False
        assert can_update_user_status(
            principal(Role.EDITOR), principal(Role.ADMIN), AccountStatus.INACTIVE
        ) is False

    def test_super_admin_cannot_suspend_another_super_admin(self):
        """Test that the top role is never suspendable, even by a different top-role account."""
        # Arrange
        actor = principal(Role.SUPER_ADMIN)
        target = principal(Role.SUPER_ADMIN)

        # Assert
        assert can_update_user_status(actor, target, AccountStatus.SUSPENDED) is False

    def test_suspension_guard_is_independent_of_rank(self):
        """Test the unsuspendable guard on a policy where the actor outranks the protected role."""
        # Arrange
        policy = RbacPolicy(
            ROLE_HIERARCHY,
            ROLE_PERMISSIONS,
            unsuspendable_roles={Role.SUPER_ADMIN, Role.ADMIN},
        )
        actor = principal(Role.SUPER_ADMIN)
        target = principal(Role.ADMIN)

        # Act
        suspend = can_update_user_status(actor, target, AccountStatus.SUSPENDED, policy)
        deactivate = can_update_user_status(actor, target, AccountStatus.INACTIVE, policy)

        # Assert
        assert suspend is False
        assert deactivate is True
        # The same pair is allowed under the default policy
        assert can_update_user_status(actor, target, AccountStatus.SUSPENDED) is True

    def test_default_unsuspendable_roles_is_top_role(self):
        assert DEFAULT_POLICY.unsuspendable_roles == frozenset({Role.SUPER_ADMIN})

    @pytest.mark.parametrize("status", NON_ACTIVE)
    def test_non_active_actor_denied(self, status):
        actor = principal(Role.SUPER_ADMIN, status)
        assert can_update_user_status(actor, principal(Role.VIEWER), AccountStatus.ACTIVE) is False


class TestCanDeleteUser:
    """Tests for can_delete_user."""

    def test_admin_deletes_author(self):
        assert can_delete_user(principal(Role.ADMIN), principal(Role.AUTHOR)) is True

    def test_cannot_delete_self(self):
        actor = principal(Role.SUPER_ADMIN)
        assert can_delete_user(actor, Principal(actor.id, Role.SUPER_ADMIN, AccountStatus.ACTIVE)) is False

    def test_cannot_delete_peer(self):
        assert can_delete_user(principal(Role.ADMIN), principal(Role.ADMIN)) is False

    def test_rank_is_checked_against_current_role(self):
        """Test that a suspended admin is still an admin for rank purposes."""
        # Arrange
        target = principal(Role.ADMIN, AccountStatus.SUSPENDED)

        # Assert
        assert can_delete_user(principal(Role.EDITOR), target) is False
        assert can_delete_user(principal(Role.SUPER_ADMIN), target) is True

    @pytest.mark.parametrize("status", NON_ACTIVE)
    def test_non_active_actor_denied(self, status):
        assert can_delete_user(principal(Role.SUPER_ADMIN, status), principal(Role.VIEWER)) is False


class TestAssignableRoles:
    """Tests for get_assignable_user_roles and can_assign_role."""

    def test_super_admin_cannot_assign_super_admin(self):
        """Test that the top role follows the same strict rule as every other role."""
        # Act
        roles = get_assignable_user_roles(principal(Role.SUPER_ADMIN))

        # Assert
        assert Role.SUPER_ADMIN not in roles
        assert roles == frozenset(ROLES_BY_RANK[1:])

    def test_never_includes_own_role(self):
        for role in Role:
            assert role not in get_assignable_user_roles(principal(role))

    def test_size_strictly_decreases_with_rank(self):
        """Test that lower-ranked actors can assign strictly fewer roles, down to none."""
        # Act
        sizes = [len(get_assignable_user_roles(principal(role))) for role in ROLES_BY_RANK]

        # Assert
        assert sizes == sorted(sizes, reverse=True)
        assert len(set(sizes)) == len(sizes)
        assert sizes[-1] == 0

    def test_admin_assignable_roles(self):
        assert get_assignable_user_roles(principal(Role.ADMIN)) == frozenset({
            Role.EDITOR, Role.AUTHOR, Role.CONTRIBUTOR, Role.VIEWER,
        })

    @pytest.mark.parametrize("status", NON_ACTIVE)
    def test_non_active_actor_assigns_nothing(self, status):
        assert get_assignable_user_roles(principal(Role.SUPER_ADMIN, status)) == frozenset()

    def test_consistent_with_can_manage_users(self):
        """Test that a role is assignable exactly when the actor could manage holders of it."""
        for actor_role, role in itertools.product(Role, Role):
            actor = principal(actor_role)
            assert (role in get_assignable_user_roles(actor)) == can_manage_users(actor, role)

    def test_can_assign_role_promotion_within_rank(self):
        """Test that an admin can promote an author to editor but not to admin."""
        # Arrange
        actor = principal(Role.ADMIN)
        target = principal(Role.AUTHOR)

        # Assert
        assert can_assign_role(actor, target, Role.EDITOR) is True
        assert can_assign_role(actor, target, Role.ADMIN) is False

    def test_can_assign_role_requires_rank_over_current_role(self):
        """Test that an admin cannot demote a super admin."""
        assert can_assign_role(principal(Role.ADMIN), principal(Role.SUPER_ADMIN), Role.VIEWER) is False

    def test_can_assign_role_rejects_self(self):
        actor = principal(Role.SUPER_ADMIN)
        assert can_assign_role(actor, Principal(actor.id, Role.SUPER_ADMIN, AccountStatus.ACTIVE), Role.VIEWER) is False


class TestPurity:
    """Predicates are deterministic."""

    def test_repeated_calls_agree(self):
        # Arrange
        actor = principal(Role.ADMIN)
        target = principal(Role.EDITOR)

        # Act
        first = (
            has_permission(actor, Permission.USERS_UPDATE),
            can_manage_users(actor, target.role),
            can_update_user_status(actor, target, AccountStatus.SUSPENDED),
            can_delete_user(actor, target),
            get_assignable_user_roles(actor),
            can_assign_role(actor, target, Role.AUTHOR),
        )
        second = (
            has_permission(actor, Permission.USERS_UPDATE),
            can_manage_users(actor, target.role),
            can_update_user_status(actor, target, AccountStatus.SUSPENDED),
            can_delete_user(actor, target),
            get_assignable_user_roles(actor),
            can_assign_role(actor, target, Role.AUTHOR),
        )

        # Assert
        assert first == second

    def test_principal_is_immutable(self):
        actor = principal(Role.ADMIN)
        with pytest.raises(AttributeError):
            actor.role = Role.SUPER_ADMIN  # type: ignore[misc]


class TestPolicyValidation:
    """Tests for RbacPolicy construction checks."""

    def test_missing_role_in_hierarchy(self):
        # Arrange
        hierarchy = {role: weight for role, weight in ROLE_HIERARCHY.items() if role != Role.AUTHOR}

        # Act / Assert
        with pytest.raises(RbacConfigurationError, match="AUTHOR"):
            RbacPolicy(hierarchy, ROLE_PERMISSIONS)

    def test_duplicate_weights(self):
        hierarchy = dict(ROLE_HIERARCHY)
        hierarchy[Role.AUTHOR] = hierarchy[Role.EDITOR]
        with pytest.raises(RbacConfigurationError, match="unique"):
            RbacPolicy(hierarchy, ROLE_PERMISSIONS)

    def test_non_positive_weight(self):
        hierarchy = dict(ROLE_HIERARCHY)
        hierarchy[Role.VIEWER] = 0
        with pytest.raises(RbacConfigurationError, match="positive"):
            RbacPolicy(hierarchy, ROLE_PERMISSIONS)

    def test_missing_role_in_permissions(self):
        permissions = {role: tokens for role, tokens in ROLE_PERMISSIONS.items() if role != Role.VIEWER}
        with pytest.raises(RbacConfigurationError, match="VIEWER"):
            RbacPolicy(ROLE_HIERARCHY, permissions)

    def test_unregistered_permission_token(self):
        """Test that a typo in the table fails construction instead of silently denying."""
        # Arrange
        permissions = dict(ROLE_PERMISSIONS)
        permissions[Role.EDITOR] = frozenset({"content:pubilsh"})

        # Act / Assert
        with pytest.raises(RbacConfigurationError, match="content:pubilsh"):
            RbacPolicy(ROLE_HIERARCHY, permissions)

    def test_default_tables_only_use_registered_tokens(self):
        known = all_permission_tokens() | {Permission.ALL}
        for tokens in ROLE_PERMISSIONS.values():
            assert tokens <= known

    def test_authority_roles_are_top_two_tiers(self):
        assert DEFAULT_POLICY.authority_roles == frozenset({Role.SUPER_ADMIN, Role.ADMIN})

    def test_policy_copies_input_tables(self):
        """Test that mutating the source dict after construction has no effect."""
        # Arrange
        hierarchy = dict(ROLE_HIERARCHY)
        policy = RbacPolicy(hierarchy, ROLE_PERMISSIONS)

        # Act
        hierarchy[Role.VIEWER] = 100

        # Assert
        assert policy.weight_of(Role.VIEWER) == ROLE_HIERARCHY[Role.VIEWER]
