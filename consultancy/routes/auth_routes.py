"""
Authentication Routes Module
============================

Handles:
- User registration (VIEWER accounts)
- User login with account lockout protection
- Token refresh
- Logout (token invalidation)
- Current user profile with effective permissions

Security Features:
- Account lockout handling
- Token version validation
- Rate limiting (middleware)
- Security logging

Service errors propagate as ConsultancyException subclasses and are
rendered by the application-wide handler.
"""

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from consultancy.core.dependencies.auth import get_client_ip, get_current_user
from consultancy.core.dependencies.rbac import get_rbac_policy
from consultancy.core.logging import get_logger
from consultancy.core.rbac import (
    Principal,
    RbacPolicy,
    describe_role,
    get_assignable_user_roles,
    get_permissions,
)
from consultancy.db.session import get_db
from consultancy.models.user import User
from consultancy.schemas import (
    CurrentUserResponse,
    ErrorResponse,
    LoginRequest,
    LogoutResponse,
    RefreshTokenRequest,
    RegisterRequest,
    RegisterResponse,
    TokenResponse,
)
from consultancy.services.auth_service import AuthService

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"model": ErrorResponse, "description": "Authentication failed"},
        403: {"model": ErrorResponse, "description": "Access forbidden"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


# =====================================
# Registration Endpoint
# =====================================

@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="""
    Create a reader account.

    Self-registered accounts always start as ACTIVE viewers; higher
    roles are granted by an administrator.
    """,
    responses={
        422: {"model": ErrorResponse, "description": "Email taken or weak password"},
    },
)
def register(
    request: Request,
    register_data: RegisterRequest,
    db: Session = Depends(get_db),
) -> dict:
    user = AuthService(db).register_user(
        email=register_data.email,
        password=register_data.password,
        name=register_data.name,
        ip_address=get_client_ip(request),
    )
    return {
        "message": "User registered successfully",
        "user_id": str(user.id),
        "role": user.role.value,
    }


# =====================================
# Login Endpoint
# =====================================

@router.post(
    "/login",
    response_model=TokenResponse,
    summary="User Login",
    description="""
    Authenticate user with email and password.

    Returns JWT access and refresh tokens on success.

    Security features:
    - Account locks after repeated failed attempts
    - Rate limited per IP
    - All attempts are logged
    """,
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        403: {"model": ErrorResponse, "description": "Account locked or not active"},
        429: {"model": ErrorResponse, "description": "Too many requests"},
    },
)
def login(
    request: Request,
    login_data: LoginRequest,
    db: Session = Depends(get_db),
) -> dict:
    """
    Authenticate user and return JWT tokens.

    Raises:
        InvalidCredentialsError: Unknown email or wrong password (401)
        AccountLockedError / AccountDisabledError: Account cannot sign in (403)
    """
    client_ip = get_client_ip(request)
    user, tokens = AuthService(db).authenticate_user(
        email=login_data.email,
        password=login_data.password,
        ip_address=client_ip,
    )

    logger.info("user_logged_in", user_id=str(user.id), ip_address=client_ip)
    return tokens


# =====================================
# Refresh Token Endpoint
# =====================================

@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh Access Token",
    description="""
    Refresh access token using a valid refresh token.

    The refresh token must be valid, not expired, and issued for the
    account's current token version.
    """,
    responses={
        200: {"description": "Tokens refreshed successfully"},
        401: {"model": ErrorResponse, "description": "Invalid or expired token"},
        403: {"model": ErrorResponse, "description": "Account locked or not active"},
    },
)
def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db),
) -> dict:
    return AuthService(db).refresh_tokens(refresh_data.refresh_token)


# =====================================
# Logout Endpoint
# =====================================

@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="User Logout",
    description="""
    Logout the current user by invalidating all tokens.

    This increments the user's token version, making all
    existing tokens invalid.
    """,
    responses={
        200: {"description": "Successfully logged out"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
def logout(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    AuthService(db).logout(current_user)
    return {"message": "Successfully logged out"}


# =====================================
# Get Current User Endpoint
# =====================================

@router.get(
    "/me",
    response_model=CurrentUserResponse,
    summary="Get Current User",
    description="Get the authenticated user's profile, permissions and assignable roles.",
    responses={
        200: {"description": "Current user info"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
def get_me(
    current_user: User = Depends(get_current_user),
    policy: RbacPolicy = Depends(get_rbac_policy),
) -> dict:
    principal = Principal.from_user(current_user)
    return {
        "id": current_user.id,
        "email": current_user.email,
        "name": current_user.name,
        "role": current_user.role,
        "status": current_user.status,
        "is_locked": current_user.is_locked,
        "last_login_at": current_user.last_login_at,
        "created_at": current_user.created_at,
        "role_description": describe_role(current_user.role),
        "permissions": sorted(get_permissions(principal, policy)),
        "assignable_roles": policy.ranked(get_assignable_user_roles(principal, policy)),
    }
