"""
Schemas Package Initialization
==============================

Exports all Pydantic schemas for the application.

Usage:
    from consultancy.schemas import LoginRequest, TokenResponse, UserResponse
"""

# Auth schemas
from consultancy.schemas.auth import (
    LoginRequest,
    TokenResponse,
    RefreshTokenRequest,
    LogoutResponse,
    RegisterRequest,
    RegisterResponse,
    ErrorResponse,
)

# User schemas
from consultancy.schemas.user import (
    UserResponse,
    UserListResponse,
    RoleInfo,
    AssignableRolesResponse,
    CurrentUserResponse,
    RoleUpdateRequest,
    StatusUpdateRequest,
    BulkActionRequest,
    UserActionResponse,
    UserDeleteResponse,
    BulkActionResponse,
    AuditLogResponse,
    AuditLogListResponse,
    DashboardResponse,
)

__all__ = [
    # Auth
    "LoginRequest",
    "TokenResponse",
    "RefreshTokenRequest",
    "LogoutResponse",
    "RegisterRequest",
    "RegisterResponse",
    "ErrorResponse",
    # User
    "UserResponse",
    "UserListResponse",
    "RoleInfo",
    "AssignableRolesResponse",
    "CurrentUserResponse",
    "RoleUpdateRequest",
    "StatusUpdateRequest",
    "BulkActionRequest",
    "UserActionResponse",
    "UserDeleteResponse",
    "BulkActionResponse",
    "AuditLogResponse",
    "AuditLogListResponse",
    "DashboardResponse",
]
