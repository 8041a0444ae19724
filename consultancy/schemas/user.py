"""
User Schemas Module
===================

Pydantic models for user administration request/response validation.

Benefits:
- Request validation (closed role and status enums)
- Response serialization
- OpenAPI documentation
- Sensitive data exclusion
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from consultancy.core.enums import AccountStatus, BulkAction
from consultancy.models.role_enum import Role


# ==========================
# Response Schemas
# ==========================

class UserResponse(BaseModel):
    """User response schema (excludes sensitive data)."""

    id: UUID = Field(..., description="User UUID")
    email: str = Field(..., description="User email address")
    name: Optional[str] = Field(default=None, description="Display name")
    role: Role = Field(..., description="User role")
    status: AccountStatus = Field(..., description="Account status")
    is_locked: bool = Field(..., description="Account locked status")
    last_login_at: Optional[datetime] = Field(default=None, description="Last successful login")
    created_at: datetime = Field(..., description="Account creation timestamp")

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "email": "editor@example.com",
                "name": "Jordan Editor",
                "role": "EDITOR",
                "status": "ACTIVE",
                "is_locked": False,
                "last_login_at": None,
                "created_at": "2024-01-15T10:30:00Z"
            }
        }
    )


class UserListResponse(BaseModel):
    """Paginated user list."""

    users: list[UserResponse]
    total: int = Field(..., description="Total number of matching users")
    page: int = Field(default=1, description="Current page number")
    page_size: int = Field(default=20, description="Number of users per page")


class RoleInfo(BaseModel):
    """A role with its human-readable description."""

    role: Role
    description: str


class AssignableRolesResponse(BaseModel):
    """Roles the current user may grant, most privileged first."""

    roles: list[RoleInfo]


class CurrentUserResponse(UserResponse):
    """
    Current authenticated user response.

    Includes effective permissions and assignable roles so a client
    can hide controls the server would reject.
    """

    role_description: str
    permissions: list[str]
    assignable_roles: list[Role]


# ==========================
# Mutation Requests
# ==========================

class RoleUpdateRequest(BaseModel):
    """Change a user's role."""

    role: Role = Field(..., description="New role")


class StatusUpdateRequest(BaseModel):
    """Change a user's account status."""

    status: AccountStatus = Field(..., description="New account status")


class BulkActionRequest(BaseModel):
    """Apply one role or status change to several users."""

    user_ids: list[UUID] = Field(..., min_length=1, max_length=500)
    action: BulkAction
    role: Optional[Role] = None
    status: Optional[AccountStatus] = None

    @model_validator(mode="after")
    def check_value_for_action(self) -> "BulkActionRequest":
        if self.action == BulkAction.UPDATE_ROLE and self.role is None:
            raise ValueError("role is required for UPDATE_ROLE")
        if self.action == BulkAction.UPDATE_STATUS and self.status is None:
            raise ValueError("status is required for UPDATE_STATUS")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "user_ids": ["550e8400-e29b-41d4-a716-446655440000"],
                "action": "UPDATE_STATUS",
                "status": "INACTIVE"
            }
        }
    )


# ==========================
# Mutation Responses
# ==========================

class UserActionResponse(BaseModel):
    """Result of a single-user mutation."""

    message: str
    user: UserResponse


class UserDeleteResponse(BaseModel):
    message: str = "User deleted successfully"
    user_id: UUID


class BulkActionResponse(BaseModel):
    message: str
    affected: int = Field(..., description="Number of accounts actually changed")


# ==========================
# Audit & Dashboard
# ==========================

class AuditLogResponse(BaseModel):
    """Audit record as returned to administrators."""

    id: UUID
    actor_id: Optional[UUID]
    action: str
    entity_type: str
    entity_id: Optional[str]
    old_value: Optional[str]
    new_value: Optional[str]
    details: Optional[dict]
    ip_address: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AuditLogListResponse(BaseModel):
    logs: list[AuditLogResponse]
    total: int
    page: int
    page_size: int


class DashboardResponse(BaseModel):
    """Account counts and latest administrative activity."""

    total_users: int
    users_by_role: dict[str, int]
    users_by_status: dict[str, int]
    recent_activity: list[AuditLogResponse]
