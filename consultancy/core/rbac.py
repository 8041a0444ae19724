"""
Role-Based Access Control (RBAC) Policy Module
==============================================

Pure authorization decisions for administrative actions.

Contents:
- Role hierarchy (strict total order by weight)
- Permission table (exact-token matching with a wildcard)
- Management authority predicates (manage, status change, delete, assign)

Every predicate is a deterministic function of its inputs and an
immutable ``RbacPolicy``; nothing here performs I/O or raises for
well-formed input. A ``False`` result is a normal outcome that callers
translate into an authorization failure at the HTTP boundary.

Usage:
    actor = Principal.from_user(current_user)
    if not can_manage_users(actor, Role.EDITOR):
        raise AuthorizationError()
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional

from consultancy.core.enums import AccountStatus
from consultancy.core.exceptions import RbacConfigurationError
from consultancy.core.permissions import Permission, all_permission_tokens
from consultancy.models.role_enum import Role


# =====================================
# Principal
# =====================================

@dataclass(frozen=True)
class Principal:
    """
    Subject of an authorization decision.

    Built fresh per request from the authenticated account and never
    persisted. Identity comparisons use ``id`` only.
    """

    id: Any
    role: Role
    status: AccountStatus

    @property
    def is_active(self) -> bool:
        return self.status == AccountStatus.ACTIVE

    @classmethod
    def from_user(cls, user: Any) -> "Principal":
        """Build a principal from any object exposing id, role and status."""
        return cls(id=user.id, role=Role(user.role), status=AccountStatus(user.status))


# =====================================
# Default Tables
# =====================================

# Higher weight = more privileged. Values carry no meaning beyond order.
ROLE_HIERARCHY: Mapping[Role, int] = MappingProxyType({
    Role.SUPER_ADMIN: 6,
    Role.ADMIN: 5,
    Role.EDITOR: 4,
    Role.AUTHOR: 3,
    Role.CONTRIBUTOR: 2,
    Role.VIEWER: 1,
})

ROLE_PERMISSIONS: Mapping[Role, frozenset[str]] = MappingProxyType({
    Role.SUPER_ADMIN: frozenset({Permission.ALL}),
    Role.ADMIN: frozenset({
        Permission.USERS_READ,
        Permission.USERS_UPDATE,
        Permission.USERS_DELETE,
        Permission.USERS_EXPORT,
        Permission.CONTENT_READ,
        Permission.CONTENT_CREATE,
        Permission.CONTENT_UPDATE,
        Permission.CONTENT_PUBLISH,
        Permission.CONTENT_DELETE,
        Permission.COMMENTS_MODERATE,
        Permission.SETTINGS_MANAGE,
        Permission.ANALYTICS_VIEW,
        Permission.AUDIT_READ,
    }),
    Role.EDITOR: frozenset({
        Permission.CONTENT_READ,
        Permission.CONTENT_CREATE,
        Permission.CONTENT_UPDATE,
        Permission.CONTENT_PUBLISH,
        Permission.CONTENT_DELETE,
        Permission.COMMENTS_MODERATE,
        Permission.ANALYTICS_VIEW,
    }),
    Role.AUTHOR: frozenset({
        Permission.CONTENT_READ,
        Permission.CONTENT_CREATE,
        Permission.CONTENT_UPDATE_OWN,
    }),
    Role.CONTRIBUTOR: frozenset({
        Permission.CONTENT_READ,
        Permission.CONTENT_CREATE,
    }),
    Role.VIEWER: frozenset({
        Permission.CONTENT_READ,
    }),
})

ROLE_DESCRIPTIONS: Mapping[Role, str] = MappingProxyType({
    Role.SUPER_ADMIN: "Full system access and administration",
    Role.ADMIN: "Administrative access to manage content and users",
    Role.EDITOR: "Can create, edit, and publish all content",
    Role.AUTHOR: "Can create and edit their own content",
    Role.CONTRIBUTOR: "Can submit content for review",
    Role.VIEWER: "Can view published content only",
})


# =====================================
# Policy
# =====================================

class RbacPolicy:
    """
    Immutable, validated RBAC configuration.

    Construction checks that the tables are exhaustive over ``Role``,
    that weights are positive and unique, and that every permission
    token is registered. Any defect raises ``RbacConfigurationError``,
    so a broken default policy fails application startup.

    Args:
        hierarchy: Role -> weight, highest weight most privileged.
        permissions: Role -> permission tokens.
        unsuspendable_roles: Roles that may never be moved to SUSPENDED
            through a status change. Defaults to the top-most role.
        authority_floor: Lowest role of the administrative tier protected
            by the last-authority-standing guard.
    """

    def __init__(
        self,
        hierarchy: Mapping[Role, int],
        permissions: Mapping[Role, Iterable[str]],
        unsuspendable_roles: Optional[Iterable[Role]] = None,
        authority_floor: Role = Role.ADMIN,
    ) -> None:
        self._validate_hierarchy(hierarchy)
        self._validate_permissions(permissions)

        self._hierarchy: Mapping[Role, int] = MappingProxyType(dict(hierarchy))
        self._permissions: Mapping[Role, frozenset[str]] = MappingProxyType(
            {role: frozenset(tokens) for role, tokens in permissions.items()}
        )
        self._top_role = max(self._hierarchy, key=self._hierarchy.__getitem__)
        self._unsuspendable = (
            frozenset(unsuspendable_roles)
            if unsuspendable_roles is not None
            else frozenset({self._top_role})
        )
        floor = self.weight_of(authority_floor)
        self._authority_roles = frozenset(
            role for role, weight in self._hierarchy.items() if weight >= floor
        )

    @staticmethod
    def _validate_hierarchy(hierarchy: Mapping[Role, int]) -> None:
        missing = [role.value for role in Role if role not in hierarchy]
        if missing:
            raise RbacConfigurationError(f"Role hierarchy is missing roles: {missing}")
        weights = list(hierarchy.values())
        if any(not isinstance(w, int) or w <= 0 for w in weights):
            raise RbacConfigurationError("Role weights must be positive integers")
        if len(set(weights)) != len(weights):
            raise RbacConfigurationError("Role weights must be unique")

    @staticmethod
    def _validate_permissions(permissions: Mapping[Role, Iterable[str]]) -> None:
        missing = [role.value for role in Role if role not in permissions]
        if missing:
            raise RbacConfigurationError(f"Permission table is missing roles: {missing}")
        known = all_permission_tokens() | {Permission.ALL}
        for role, tokens in permissions.items():
            unknown = sorted(set(tokens) - known)
            if unknown:
                raise RbacConfigurationError(
                    f"Role {role.value} references unregistered permissions: {unknown}"
                )

    @property
    def hierarchy(self) -> Mapping[Role, int]:
        return self._hierarchy

    @property
    def permissions(self) -> Mapping[Role, frozenset[str]]:
        return self._permissions

    @property
    def top_role(self) -> Role:
        return self._top_role

    @property
    def unsuspendable_roles(self) -> frozenset[Role]:
        return self._unsuspendable

    @property
    def authority_roles(self) -> frozenset[Role]:
        """Roles covered by the last-authority-standing guard."""
        return self._authority_roles

    def weight_of(self, role: Role) -> int:
        """
        Get the hierarchy weight for a role.

        Raises:
            RbacConfigurationError: If the role is absent from the table.
        """
        try:
            return self._hierarchy[role]
        except KeyError:
            raise RbacConfigurationError(f"Role {role!r} has no hierarchy weight") from None

    def outranks(self, role: Role, other: Role) -> bool:
        """Strict dominance: equal weight never outranks."""
        return self.weight_of(role) > self.weight_of(other)

    def ranked(self, roles: Iterable[Role]) -> list[Role]:
        """Order roles from most to least privileged."""
        return sorted(roles, key=self.weight_of, reverse=True)


DEFAULT_POLICY = RbacPolicy(ROLE_HIERARCHY, ROLE_PERMISSIONS)


# =====================================
# Hierarchy Helpers
# =====================================

def weight_of(role: Role, policy: RbacPolicy = DEFAULT_POLICY) -> int:
    """Hierarchy weight of ``role`` under ``policy``."""
    return policy.weight_of(role)


def describe_role(role: Role) -> str:
    return ROLE_DESCRIPTIONS.get(role, "No description available")


# =====================================
# Permission Checks
# =====================================

def has_permission(
    principal: Principal,
    permission: str,
    policy: RbacPolicy = DEFAULT_POLICY,
) -> bool:
    """
    Check whether a principal holds a permission token.

    Non-active principals hold nothing. Otherwise the role's set must
    contain the wildcard or the exact token.
    """
    if not principal.is_active:
        return False
    granted = policy.permissions.get(principal.role, frozenset())
    return Permission.ALL in granted or permission in granted


def get_permissions(
    principal: Principal,
    policy: RbacPolicy = DEFAULT_POLICY,
) -> frozenset[str]:
    """Effective permission tokens of a principal (empty when not active)."""
    if not principal.is_active:
        return frozenset()
    return policy.permissions.get(principal.role, frozenset())


# =====================================
# Management Authority Predicates
# =====================================

def can_manage_users(
    actor: Principal,
    target_role: Role,
    policy: RbacPolicy = DEFAULT_POLICY,
) -> bool:
    """
    Check whether ``actor`` may act on accounts holding ``target_role``.

    Equal rank never manages equal rank, including the top role.
    """
    if not actor.is_active:
        return False
    if actor.role == target_role:
        return False
    return policy.outranks(actor.role, target_role)


def can_update_user_status(
    actor: Principal,
    target: Principal,
    new_status: AccountStatus,
    policy: RbacPolicy = DEFAULT_POLICY,
) -> bool:
    """
    Check whether ``actor`` may move ``target`` to ``new_status``.

    Self-status changes are forbidden, the actor must strictly outrank
    the target, and unsuspendable roles can never be suspended here
    regardless of the actor's rank.
    """
    if not actor.is_active:
        return False
    if actor.id == target.id:
        return False
    if not policy.outranks(actor.role, target.role):
        return False
    if new_status == AccountStatus.SUSPENDED and target.role in policy.unsuspendable_roles:
        return False
    return True


def can_delete_user(
    actor: Principal,
    target: Principal,
    policy: RbacPolicy = DEFAULT_POLICY,
) -> bool:
    """Check whether ``actor`` may delete ``target`` (strict rank over its current role)."""
    if not actor.is_active:
        return False
    if actor.id == target.id:
        return False
    return policy.outranks(actor.role, target.role)


def get_assignable_user_roles(
    actor: Principal,
    policy: RbacPolicy = DEFAULT_POLICY,
) -> frozenset[Role]:
    """
    Roles ``actor`` may grant to other accounts.

    Strictly below the actor's own weight for every role, the top role
    included, so this agrees with ``can_manage_users``.
    """
    if not actor.is_active:
        return frozenset()
    return frozenset(role for role in policy.hierarchy if policy.outranks(actor.role, role))


def can_assign_role(
    actor: Principal,
    target: Principal,
    new_role: Role,
    policy: RbacPolicy = DEFAULT_POLICY,
) -> bool:
    """
    Check a full role reassignment: the actor must manage the target's
    current role and be allowed to grant the new one.
    """
    if actor.id == target.id:
        return False
    if not can_manage_users(actor, target.role, policy):
        return False
    return new_role in get_assignable_user_roles(actor, policy)
