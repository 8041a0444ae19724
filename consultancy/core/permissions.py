"""
Permission Token Registry
=========================

Single source of truth for permission names.

Permissions are opaque ``resource:action`` strings matched exactly;
``content:update:own`` is a distinct token and is not implied by
``content:update``. Route handlers must reference the constants below
rather than literal strings so that a typo fails at import time instead
of silently denying access.
"""

from typing import Final


class Permission:
    """Namespace of permission tokens."""

    ALL: Final = "*"

    USERS_READ: Final = "users:read"
    USERS_UPDATE: Final = "users:update"
    USERS_DELETE: Final = "users:delete"
    USERS_EXPORT: Final = "users:export"

    CONTENT_READ: Final = "content:read"
    CONTENT_CREATE: Final = "content:create"
    CONTENT_UPDATE: Final = "content:update"
    CONTENT_UPDATE_OWN: Final = "content:update:own"
    CONTENT_PUBLISH: Final = "content:publish"
    CONTENT_DELETE: Final = "content:delete"

    COMMENTS_MODERATE: Final = "comments:moderate"

    SETTINGS_MANAGE: Final = "settings:manage"
    ANALYTICS_VIEW: Final = "analytics:view"
    AUDIT_READ: Final = "audit:read"


def all_permission_tokens() -> frozenset[str]:
    """Return every concrete token (the wildcard excluded)."""
    return frozenset(
        value
        for name, value in vars(Permission).items()
        if name.isupper() and value != Permission.ALL
    )
