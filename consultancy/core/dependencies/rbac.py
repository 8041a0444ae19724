"""
Role-Based Access Control (RBAC) Dependencies Module
=====================================================

FastAPI dependencies for permission-based authorization.

Features:
- Exact permission-token enforcement
- Injectable RBAC policy (overridable in tests)
- Audit logging for unauthorized access

Usage:
    @router.get("/users")
    def list_users(actor: Principal = Depends(require_permission(Permission.USERS_READ))):
        ...
"""

from typing import Callable

from fastapi import Depends, Request

from consultancy.core.dependencies.auth import get_current_principal
from consultancy.core.exceptions import PermissionDeniedError, exception_to_http_exception
from consultancy.core.logging import get_logger, security_logger
from consultancy.core.rbac import DEFAULT_POLICY, Principal, RbacPolicy, has_permission

# Initialize logger
logger = get_logger(__name__)


def get_rbac_policy() -> RbacPolicy:
    """Policy used by request handlers."""
    return DEFAULT_POLICY


# =====================================
# Permission Requirement Dependencies
# =====================================

def require_permission(permission: str) -> Callable:
    """
    Create a dependency that requires a permission token.

    Args:
        permission: Token from ``Permission`` (e.g. ``Permission.USERS_READ``)

    Returns:
        Dependency function resolving to the acting Principal

    Usage:
        @router.delete("/users/{user_id}")
        def delete(actor: Principal = Depends(require_permission(Permission.USERS_DELETE))):
            ...
    """
    def permission_checker(
        request: Request,
        principal: Principal = Depends(get_current_principal),
        policy: RbacPolicy = Depends(get_rbac_policy),
    ) -> Principal:
        if not has_permission(principal, permission, policy):
            security_logger.log_unauthorized_access(
                user_id=str(principal.id),
                resource=request.url.path,
                action=request.method,
                reason=f"missing_permission:{permission}",
            )

            logger.warning(
                "permission_denied",
                user_role=principal.role.value,
                required_permission=permission,
                path=request.url.path,
            )

            raise exception_to_http_exception(PermissionDeniedError(permission))

        return principal

    return permission_checker
