"""
Model Package Initialization
============================

Ensures models are properly registered when imported by the application.

All SQLAlchemy ORM models are exported from this module.

Usage:
    from consultancy.models import User, AuditLog, Role
"""

from .user import User
from .audit_log import AuditLog, AuditAction
from .role_enum import Role

__all__ = [
    "User",
    "AuditLog",
    "AuditAction",
    "Role",
]
