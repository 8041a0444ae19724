"""
Logging Infrastructure
======================

This module provides structured logging with support for:
- JSON formatted logs for production
- Text formatted logs for development
- Context binding for request tracing
- Dedicated security and audit event loggers
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from structlog.types import Processor

from consultancy.core.config import get_settings

# Context variables for request tracing
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_context: ContextVar[Optional[str]] = ContextVar("user_id", default=None)


def add_context_variables(
    logger: logging.Logger,
    method_name: str,
    event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Add context variables to log entries.

    This processor adds request_id and user_id from context
    variables to every log entry.
    """
    request_id = request_id_context.get()
    if request_id:
        event_dict["request_id"] = request_id

    user_id = user_id_context.get()
    if user_id:
        event_dict["user_id"] = user_id

    return event_dict


def get_log_level(settings: Any) -> int:
    """Convert string log level to logging constant."""
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(settings.LOG_LEVEL.upper(), logging.INFO)


def get_processors(settings: Any) -> list[Processor]:
    """Get structlog processors based on settings."""
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_context_variables,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    return processors


def configure_logging() -> None:
    """
    Configure structured logging for the application.

    This should be called once at application startup.
    """
    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=get_log_level(settings),
    )

    structlog.configure(
        processors=get_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name. If None, uses the calling module's name.

    Returns:
        A structlog BoundLogger instance.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("user_role_changed", user_id="123", new_role="EDITOR")
    """
    return structlog.get_logger(name)


class SecurityLogger:
    """
    Logger for authentication and access-control events.

    Events are emitted under the ``security`` logger so they can be
    routed to a SIEM independently of application logs.
    """

    def __init__(self) -> None:
        self.log = get_logger("security")

    def log_login_success(self, user_id: str, ip_address: str) -> None:
        self.log.info("login_success", user_id=user_id, ip_address=ip_address)

    def log_login_failure(self, email: str, ip_address: str, reason: str) -> None:
        self.log.warning("login_failure", email=email, ip_address=ip_address, reason=reason)

    def log_account_locked(self, user_id: str, ip_address: str) -> None:
        self.log.warning("account_locked", user_id=user_id, ip_address=ip_address)

    def log_token_invalid(self, reason: str, ip_address: str) -> None:
        self.log.warning("token_invalid", reason=reason, ip_address=ip_address)

    def log_token_refresh(self, user_id: str) -> None:
        self.log.info("token_refreshed", user_id=user_id)

    def log_logout(self, user_id: str) -> None:
        self.log.info("logout", user_id=user_id)

    def log_unauthorized_access(
        self,
        user_id: str,
        resource: str,
        action: str,
        reason: Optional[str] = None,
    ) -> None:
        """Log a denied authorization decision."""
        self.log.warning(
            "unauthorized_access",
            user_id=user_id,
            resource=resource,
            action=action,
            reason=reason,
        )

    def log_rate_limit_exceeded(self, ip_address: str, endpoint: str) -> None:
        self.log.warning("rate_limit_exceeded", ip_address=ip_address, endpoint=endpoint)


class AuditLogger:
    """
    Logger mirroring persisted audit records.

    The database row in ``audit_logs`` is the record of truth; these
    events make the same changes visible in the log stream.
    """

    def __init__(self) -> None:
        self.log = get_logger("audit")

    def log_role_changed(
        self,
        actor_id: str,
        target_user_id: str,
        old_role: str,
        new_role: str,
    ) -> None:
        self.log.info(
            "user_role_changed",
            actor_id=actor_id,
            target_user_id=target_user_id,
            old_role=old_role,
            new_role=new_role,
        )

    def log_status_changed(
        self,
        actor_id: str,
        target_user_id: str,
        old_status: str,
        new_status: str,
    ) -> None:
        self.log.info(
            "user_status_changed",
            actor_id=actor_id,
            target_user_id=target_user_id,
            old_status=old_status,
            new_status=new_status,
        )

    def log_user_deleted(self, actor_id: str, target_user_id: str, email: str) -> None:
        self.log.info("user_deleted", actor_id=actor_id, target_user_id=target_user_id, email=email)

    def log_user_unlocked(self, actor_id: str, target_user_id: str) -> None:
        self.log.info("user_unlocked", actor_id=actor_id, target_user_id=target_user_id)

    def log_bulk_action(self, actor_id: str, action: str, target_ids: list[str], affected: int) -> None:
        self.log.info(
            "bulk_user_action",
            actor_id=actor_id,
            action=action,
            target_ids=target_ids,
            affected=affected,
        )

    def log_authority_guard_blocked(self, actor_id: str, target_ids: list[str], operation: str) -> None:
        self.log.warning(
            "last_authority_guard_blocked",
            actor_id=actor_id,
            target_ids=target_ids,
            operation=operation,
        )


security_logger = SecurityLogger()
audit_logger = AuditLogger()
