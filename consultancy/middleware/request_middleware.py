"""
Request Middleware Module
=========================

Starlette middleware for request processing.

Features:
- Request ID generation for tracing
- Token subject extraction for request logs
- Request timing and access logging
- Security headers
- Sliding-window rate limiting for credential endpoints

Note:
    Nothing here authorizes a request. Token validation, account status
    checks and permission checks happen in the dependency layer.
"""

import time
import uuid
from collections import defaultdict, deque
from typing import Callable, Optional

from fastapi.responses import JSONResponse
from jose import jwt, JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from consultancy.core.config import settings
from consultancy.core.logging import get_logger, request_id_context, security_logger

# Initialize logger
logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Request preprocessing for tracing.

    Responsibilities:
    - Generate unique request ID (echoed as ``X-Request-ID``)
    - Record the token subject on ``request.state`` for access logs
    - Log request timing
    """

    QUIET_PATHS = frozenset({"/", "/health", "/ready"})

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id_context.set(request_id)

        request.state.request_id = request_id
        request.state.user_id = self._token_subject(request)

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_processing_error",
                error=str(e),
                path=request.url.path,
                method=request.method,
            )
            raise

        process_time = time.perf_counter() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"

        self._log_request(request, response, process_time)
        return response

    @staticmethod
    def _token_subject(request: Request) -> Optional[str]:
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return None
        try:
            payload = jwt.decode(
                auth_header.split(" ", 1)[1],
                settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM],
                options={"verify_aud": False, "verify_iss": False},
            )
        except JWTError:
            return None
        return payload.get("sub")

    def _log_request(self, request: Request, response: Response, process_time: float) -> None:
        if request.url.path in self.QUIET_PATHS:
            return

        log_data = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(process_time * 1000, 2),
            "user_id": getattr(request.state, "user_id", None),
            "ip_address": request.client.host if request.client else None,
        }

        if response.status_code >= 500:
            logger.error("request_completed_with_error", **log_data)
        elif response.status_code >= 400:
            logger.warning("request_completed_with_client_error", **log_data)
        else:
            logger.info("request_completed", **log_data)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add security headers to all responses.

    Headers added:
    - X-Content-Type-Options: nosniff
    - X-Frame-Options: DENY
    - Referrer-Policy
    - Content-Security-Policy (relaxed for API docs in debug mode)
    - Strict-Transport-Security (in production)
    """

    _DOCS_PATHS = frozenset({"/docs", "/redoc", "/openapi.json"})

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Swagger UI and ReDoc load assets from cdn.jsdelivr.net
        if settings.DEBUG and request.url.path in self._DOCS_PATHS:
            response.headers["Content-Security-Policy"] = (
                "default-src 'self'; "
                "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
                "img-src 'self' data: https://cdn.jsdelivr.net https://fastapi.tiangolo.com; "
                "frame-ancestors 'none';"
            )
        else:
            response.headers["Content-Security-Policy"] = (
                "default-src 'none'; frame-ancestors 'none';"
            )

        if settings.ENVIRONMENT == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains; preload"
            )

        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding-window rate limiting for credential endpoints.

    Limits POSTs to ``/auth/login`` and ``/auth/register`` per client IP
    to ``LOGIN_RATE_LIMIT`` requests per window. State is per process.
    """

    LIMITED_PATHS = frozenset({"/auth/login", "/auth/register"})

    def __init__(self, app: ASGIApp, window_seconds: int = 60):
        super().__init__(app)
        self.window_seconds = window_seconds
        self._requests: defaultdict[tuple[str, str], deque] = defaultdict(deque)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if not settings.RATE_LIMIT_ENABLED:
            return await call_next(request)

        if request.method != "POST" or request.url.path not in self.LIMITED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        if self._is_rate_limited((client_ip, request.url.path), settings.LOGIN_RATE_LIMIT):
            security_logger.log_rate_limit_exceeded(
                ip_address=client_ip,
                endpoint=request.url.path,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "message": "Too many requests. Please try again later.",
                    "details": {"retry_after_seconds": self.window_seconds},
                },
                headers={"Retry-After": str(self.window_seconds)},
            )

        return await call_next(request)

    def _is_rate_limited(self, key: tuple[str, str], max_requests: int) -> bool:
        now = time.monotonic()
        timestamps = self._requests[key]

        while timestamps and timestamps[0] <= now - self.window_seconds:
            timestamps.popleft()

        if len(timestamps) >= max_requests:
            return True

        timestamps.append(now)
        return False
