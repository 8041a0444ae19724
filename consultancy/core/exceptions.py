"""
Centralized Exception Handling Module
=====================================

Defines custom exception classes for the application.

Every exception carries a message, an HTTP status code and a details
mapping; a single FastAPI handler renders them as
``{"message": ..., "details": ...}``.

Usage:
    raise AuthenticationError("Invalid credentials")
    raise AuthorizationError("Insufficient permissions")
"""

from typing import Any, Dict, Optional
from fastapi import HTTPException, status


class ConsultancyException(Exception):
    """
    Base exception class for the application.

    All custom exceptions should inherit from this class.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ==========================
# Configuration Exceptions
# ==========================

class RbacConfigurationError(ConsultancyException):
    """Raised when the role or permission tables are incomplete or inconsistent."""

    def __init__(self, message: str):
        super().__init__(message=message)


# ==========================
# Authentication Exceptions
# ==========================

class AuthenticationError(ConsultancyException):
    """Raised when authentication fails."""

    def __init__(
        self,
        message: str = "Could not validate credentials",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are invalid."""

    def __init__(self):
        super().__init__(message="Invalid email or password")


class TokenExpiredError(AuthenticationError):
    """Raised when a JWT token has expired."""

    def __init__(self, token_type: str = "access"):
        super().__init__(
            message=f"{token_type.capitalize()} token has expired",
            details={"token_type": token_type}
        )


class TokenInvalidError(AuthenticationError):
    """Raised when a JWT token is invalid."""

    def __init__(self, reason: str = "Invalid token"):
        super().__init__(
            message="Invalid token",
            details={"reason": reason}
        )


class TokenVersionMismatchError(AuthenticationError):
    """Raised when token version doesn't match user's current version."""

    def __init__(self):
        super().__init__(
            message="Token has been invalidated. Please log in again."
        )


# ==========================
# Authorization Exceptions
# ==========================

class AuthorizationError(ConsultancyException):
    """Raised when user lacks required permissions."""

    def __init__(
        self,
        message: str = "Insufficient permissions",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
        )


class PermissionDeniedError(AuthorizationError):
    """Raised when the principal's role lacks a permission token."""

    def __init__(self, permission: str):
        super().__init__(
            message="Insufficient permissions for this action",
            details={"required_permission": permission}
        )


class SelfActionError(ConsultancyException):
    """Raised when an administrative action targets the acting account."""

    def __init__(self, message: str = "You cannot perform this action on your own account"):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class LastAuthorityError(ConsultancyException):
    """Raised when a mutation would leave no active administrator."""

    def __init__(self, target_ids: Optional[list] = None):
        super().__init__(
            message="At least one active administrator must remain",
            status_code=status.HTTP_409_CONFLICT,
            details={"target_ids": [str(t) for t in (target_ids or [])]},
        )


# ==========================
# Account Status Exceptions
# ==========================

class AccountError(ConsultancyException):
    """Base exception for account-related issues."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_403_FORBIDDEN,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            details=details,
        )


class AccountLockedError(AccountError):
    """Raised when account is locked due to failed attempts."""

    def __init__(self):
        super().__init__(
            message="Account is locked due to multiple failed login attempts. "
                    "Please contact your administrator."
        )


class AccountDisabledError(AccountError):
    """Raised when account is not in the ACTIVE state."""

    def __init__(self, account_status: Optional[str] = None):
        details = {"status": account_status} if account_status else None
        super().__init__(
            message="Account is not active. Please contact your administrator.",
            details=details,
        )


# ==========================
# Resource Exceptions
# ==========================

class NotFoundError(ConsultancyException):
    """Raised when a resource is not found."""

    def __init__(self, resource: str = "Resource", identifier: Optional[str] = None):
        message = f"{resource} not found"
        details = {"resource": resource}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
        )


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""

    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="User", identifier=identifier)


# ==========================
# Validation Exceptions
# ==========================

class ValidationError(ConsultancyException):
    """Raised when validation fails."""

    def __init__(
        self,
        message: str = "Validation error",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class EmailAlreadyExistsError(ValidationError):
    """Raised when attempting to register with existing email."""

    def __init__(self):
        super().__init__(
            message="An account with this email already exists"
        )


# ==========================
# Helper Functions
# ==========================

def exception_to_http_exception(
    exc: ConsultancyException,
    headers: Optional[Dict[str, str]] = None,
) -> HTTPException:
    """
    Convert a ConsultancyException to FastAPI HTTPException.

    Args:
        exc: ConsultancyException instance
        headers: Extra response headers (e.g. WWW-Authenticate)

    Returns:
        HTTPException with appropriate status code and detail
    """
    return HTTPException(
        status_code=exc.status_code,
        detail={
            "message": exc.message,
            "details": exc.details,
        },
        headers=headers,
    )
