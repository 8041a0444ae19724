"""
Admin Routes Module
===================

Administrative endpoints for user management.

Features:
- Dashboard statistics
- User listing, lookup and export
- Role and status changes, unlock and deletion
- Bulk role/status updates
- Audit log browsing

Security:
- Every endpoint is gated by a permission token
- Mutations additionally require rank over the target account
- The last active administrator can never be demoted, deactivated or deleted
- All mutations are audit logged
"""

from datetime import datetime, UTC
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from consultancy.core.dependencies.auth import get_client_ip, get_current_principal
from consultancy.core.dependencies.rbac import get_rbac_policy, require_permission
from consultancy.core.enums import AccountStatus, ExportFormat
from consultancy.core.logging import get_logger
from consultancy.core.permissions import Permission
from consultancy.core.rbac import (
    Principal,
    RbacPolicy,
    describe_role,
    get_assignable_user_roles,
)
from consultancy.db.session import get_db
from consultancy.models.role_enum import Role
from consultancy.schemas import (
    AssignableRolesResponse,
    AuditLogListResponse,
    BulkActionRequest,
    BulkActionResponse,
    DashboardResponse,
    ErrorResponse,
    RoleUpdateRequest,
    StatusUpdateRequest,
    UserActionResponse,
    UserDeleteResponse,
    UserListResponse,
    UserResponse,
)
from consultancy.services.account_store import AccountStore
from consultancy.services.audit_service import list_events
from consultancy.services.user_admin_service import UserAdminService

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Insufficient permissions"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)

MUTATION_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Action targets your own account"},
    404: {"model": ErrorResponse, "description": "User not found"},
    409: {"model": ErrorResponse, "description": "Would remove the last active administrator"},
}


# =====================================
# Dashboard Endpoint
# =====================================

@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Admin Dashboard",
    description="Account counts by role and status plus recent activity. Requires `analytics:view`.",
)
def admin_dashboard(
    actor: Principal = Depends(require_permission(Permission.ANALYTICS_VIEW)),
    db: Session = Depends(get_db),
) -> dict:
    logger.info("admin_dashboard_accessed", user_id=str(actor.id))
    return UserAdminService(db).dashboard_summary()


# =====================================
# User Listing Endpoints
# =====================================

@router.get(
    "/users",
    response_model=UserListResponse,
    summary="List Users",
    description="List user accounts with optional role, status and text filters. Requires `users:read`.",
)
def list_users(
    role: Optional[Role] = Query(default=None, description="Filter by role"),
    status: Optional[AccountStatus] = Query(default=None, description="Filter by status"),
    q: Optional[str] = Query(default=None, max_length=255, description="Search email or name"),
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Items per page"),
    actor: Principal = Depends(require_permission(Permission.USERS_READ)),
    db: Session = Depends(get_db),
) -> dict:
    users, total = AccountStore(db).list_users(
        role=role,
        status=status,
        q=q,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return {
        "users": users,
        "total": total,
        "page": page,
        "page_size": page_size,
    }


@router.get(
    "/users/export",
    summary="Export Users",
    description="Download the filtered user list as CSV or JSON. Requires `users:export`.",
    responses={200: {"content": {"text/csv": {}, "application/json": {}}}},
)
def export_users(
    format: ExportFormat = Query(default=ExportFormat.CSV, description="Output format"),
    role: Optional[Role] = Query(default=None),
    status: Optional[AccountStatus] = Query(default=None),
    actor: Principal = Depends(require_permission(Permission.USERS_EXPORT)),
    db: Session = Depends(get_db),
) -> Response:
    body = UserAdminService(db).export_users(format, role=role, status=status)
    media_type = "application/json" if format == ExportFormat.JSON else "text/csv"
    filename = f"users-export-{datetime.now(UTC):%Y-%m-%d}.{format.value}"

    logger.info("users_exported", user_id=str(actor.id), format=format.value)
    return Response(
        content=body,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get(
    "/users/assignable-roles",
    response_model=AssignableRolesResponse,
    summary="Assignable Roles",
    description="Roles the current user may grant to other accounts, most privileged first.",
)
def assignable_roles(
    actor: Principal = Depends(get_current_principal),
    policy: RbacPolicy = Depends(get_rbac_policy),
) -> dict:
    roles = policy.ranked(get_assignable_user_roles(actor, policy))
    return {"roles": [{"role": role, "description": describe_role(role)} for role in roles]}


@router.get(
    "/users/{user_id}",
    response_model=UserResponse,
    summary="Get User",
    description="Get a single user account. Requires `users:read`.",
    responses={404: {"model": ErrorResponse, "description": "User not found"}},
)
def get_user(
    user_id: UUID,
    actor: Principal = Depends(require_permission(Permission.USERS_READ)),
    db: Session = Depends(get_db),
):
    return AccountStore(db).get_or_raise(user_id)


# =====================================
# User Mutation Endpoints
# =====================================

@router.patch(
    "/users/{user_id}/role",
    response_model=UserActionResponse,
    summary="Change User Role",
    description="""
    Assign a new role to a user.

    The caller must hold `users:update`, strictly outrank the target's
    current role, and may only grant roles strictly below their own.
    """,
    responses=MUTATION_RESPONSES,
)
def update_user_role(
    request: Request,
    user_id: UUID,
    body: RoleUpdateRequest,
    actor: Principal = Depends(require_permission(Permission.USERS_UPDATE)),
    policy: RbacPolicy = Depends(get_rbac_policy),
    db: Session = Depends(get_db),
) -> dict:
    user = UserAdminService(db, policy).change_role(
        actor, user_id, body.role, ip_address=get_client_ip(request)
    )
    return {"message": "User role updated successfully", "user": user}


@router.patch(
    "/users/{user_id}/status",
    response_model=UserActionResponse,
    summary="Change User Status",
    description="""
    Move a user to a new account status.

    Leaving ACTIVE revokes every token the user holds. Super admins
    cannot be suspended.
    """,
    responses=MUTATION_RESPONSES,
)
def update_user_status(
    request: Request,
    user_id: UUID,
    body: StatusUpdateRequest,
    actor: Principal = Depends(require_permission(Permission.USERS_UPDATE)),
    policy: RbacPolicy = Depends(get_rbac_policy),
    db: Session = Depends(get_db),
) -> dict:
    user = UserAdminService(db, policy).change_status(
        actor, user_id, body.status, ip_address=get_client_ip(request)
    )
    return {"message": "User status updated successfully", "user": user}


@router.post(
    "/users/{user_id}/unlock",
    response_model=UserActionResponse,
    summary="Unlock User",
    description="Clear a login lockout. Requires `users:update` and rank over the target.",
    responses=MUTATION_RESPONSES,
)
def unlock_user(
    request: Request,
    user_id: UUID,
    actor: Principal = Depends(require_permission(Permission.USERS_UPDATE)),
    policy: RbacPolicy = Depends(get_rbac_policy),
    db: Session = Depends(get_db),
) -> dict:
    user = UserAdminService(db, policy).unlock_user(actor, user_id, ip_address=get_client_ip(request))
    return {"message": "Account unlocked successfully", "user": user}


@router.delete(
    "/users/{user_id}",
    response_model=UserDeleteResponse,
    summary="Delete User",
    description="Permanently delete a user. Requires `users:delete` and rank over the target.",
    responses=MUTATION_RESPONSES,
)
def delete_user(
    request: Request,
    user_id: UUID,
    actor: Principal = Depends(require_permission(Permission.USERS_DELETE)),
    policy: RbacPolicy = Depends(get_rbac_policy),
    db: Session = Depends(get_db),
) -> dict:
    UserAdminService(db, policy).delete_user(actor, user_id, ip_address=get_client_ip(request))
    return {"message": "User deleted successfully", "user_id": user_id}


@router.post(
    "/users/bulk",
    response_model=BulkActionResponse,
    summary="Bulk Update Users",
    description="""
    Apply one role or status change to several users.

    All targets are checked first; if any is refused nothing changes.
    The caller's own account may not be included.
    """,
    responses=MUTATION_RESPONSES,
)
def bulk_update_users(
    request: Request,
    body: BulkActionRequest,
    actor: Principal = Depends(require_permission(Permission.USERS_UPDATE)),
    policy: RbacPolicy = Depends(get_rbac_policy),
    db: Session = Depends(get_db),
) -> dict:
    affected = UserAdminService(db, policy).bulk_update(
        actor,
        body.user_ids,
        body.action,
        role=body.role,
        status=body.status,
        ip_address=get_client_ip(request),
    )
    return {"message": f"Successfully updated {affected} users", "affected": affected}


# =====================================
# Audit Log Endpoint
# =====================================

@router.get(
    "/audit-logs",
    response_model=AuditLogListResponse,
    summary="Audit Logs",
    description="Browse administrative audit records, newest first. Requires `audit:read`.",
)
def audit_logs(
    action: Optional[str] = Query(default=None, max_length=64),
    entity_id: Optional[str] = Query(default=None, max_length=64),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=200),
    actor: Principal = Depends(require_permission(Permission.AUDIT_READ)),
    db: Session = Depends(get_db),
) -> dict:
    logs, total = list_events(
        db,
        action=action,
        entity_id=entity_id,
        skip=(page - 1) * page_size,
        limit=page_size,
    )
    return {"logs": logs, "total": total, "page": page, "page_size": page_size}
