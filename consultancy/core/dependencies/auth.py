"""
Authentication Dependencies Module
==================================

FastAPI dependencies for authentication and principal extraction.

Features:
- JWT token validation
- User extraction from token
- Account status verification
- Principal construction for RBAC decisions

Usage:
    @router.get("/protected")
    def protected_route(user: User = Depends(get_current_user)):
        return {"user": user.email}
"""

from fastapi import Depends, HTTPException, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from consultancy.core.exceptions import (
    AccountError,
    AuthenticationError,
    TokenVersionMismatchError,
    exception_to_http_exception,
)
from consultancy.core.logging import get_logger, security_logger, user_id_context
from consultancy.core.rbac import Principal
from consultancy.db.session import get_db
from consultancy.models.user import User
from consultancy.services.auth_service import AuthService

# Initialize logger
logger = get_logger(__name__)


# =====================================
# OAuth2 Scheme
# =====================================

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/auth/login",
    auto_error=True,
    description="OAuth2 token for authentication",
)


# =====================================
# Get Current User
# =====================================

def get_current_user(
    request: Request,
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Validate JWT and return current user from database.

    Security checks performed:
    - Token signature validation
    - Token expiration check
    - Token type validation (must be access token)
    - Token version validation (for revocation)
    - Account status check (locked, not ACTIVE)

    Raises:
        HTTPException: 401 for token problems, 403 for account problems
    """
    auth_service = AuthService(db)
    client_ip = request.client.host if request.client else "unknown"

    try:
        user = auth_service.validate_access_token(token)
    except TokenVersionMismatchError as e:
        security_logger.log_token_invalid(reason="token_version_mismatch", ip_address=client_ip)
        raise exception_to_http_exception(e, headers={"WWW-Authenticate": "Bearer"})
    except AuthenticationError as e:
        logger.warning("invalid_token_presented", reason=e.details.get("reason", e.message))
        raise exception_to_http_exception(e, headers={"WWW-Authenticate": "Bearer"})
    except AccountError as e:
        raise exception_to_http_exception(e)

    # Set request context for logging
    request.state.user_id = str(user.id)
    user_id_context.set(str(user.id))
    return user


def get_current_principal(
    current_user: User = Depends(get_current_user),
) -> Principal:
    """Authorization subject for the authenticated user."""
    return Principal.from_user(current_user)


def get_client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"
