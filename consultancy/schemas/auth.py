"""
Authentication Schemas Module
=============================

Pydantic models for authentication request/response validation.

Benefits:
- Request validation
- Response serialization
- OpenAPI documentation
- Type safety
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


# ==========================
# Login Schemas
# ==========================

class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr = Field(
        ...,
        description="User email address",
        examples=["editor@example.com"]
    )
    password: str = Field(
        ...,
        min_length=1,
        description="User password",
        examples=["SecureP@ss123"]
    )


class TokenResponse(BaseModel):
    """Token response schema for login/refresh."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: Optional[int] = Field(
        default=None,
        description="Access token expiration in seconds"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "refresh_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
                "expires_in": 900
            }
        }
    )


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""

    refresh_token: str = Field(..., description="Valid refresh token")


# ==========================
# Logout Schemas
# ==========================

class LogoutResponse(BaseModel):
    """Logout response schema."""

    message: str = Field(
        default="Successfully logged out",
        description="Logout confirmation message"
    )


# ==========================
# Registration Schemas
# ==========================

class RegisterRequest(BaseModel):
    """Self-service registration request schema."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="User password (min 8 characters)"
    )
    name: Optional[str] = Field(
        default=None,
        min_length=1,
        max_length=255,
        description="Display name"
    )

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        """Validate password meets security requirements."""
        errors = []

        if not re.search(r"[A-Z]", v):
            errors.append("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", v):
            errors.append("Password must contain at least one lowercase letter")
        if not re.search(r"\d", v):
            errors.append("Password must contain at least one digit")
        if not re.search(r"[!@#$%^&*(),.?\":{}|<>]", v):
            errors.append("Password must contain at least one special character")

        if errors:
            raise ValueError("; ".join(errors))

        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "reader@example.com",
                "password": "SecureP@ss123",
                "name": "Avery Reader"
            }
        }
    )


class RegisterResponse(BaseModel):
    """Registration response schema."""

    message: str = Field(
        default="User registered successfully",
        description="Registration confirmation message"
    )
    user_id: str = Field(..., description="New user's UUID")
    role: str = Field(..., description="Role granted at registration")


# ==========================
# Error Schemas
# ==========================

class ErrorResponse(BaseModel):
    """Standard error response schema."""

    message: str = Field(..., description="Error message")
    details: Optional[dict] = Field(
        default=None,
        description="Additional error details"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "Insufficient permissions for this action",
                "details": {"required_permission": "users:update"}
            }
        }
    )
