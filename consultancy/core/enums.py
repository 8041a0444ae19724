"""
Enumeration Module
==================

Defines enumerations used across the application.
"""

from enum import Enum


class AccountStatus(str, Enum):
    """Lifecycle states of a user account."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    PENDING = "PENDING"
    SUSPENDED = "SUSPENDED"


class BulkAction(str, Enum):
    """Actions accepted by the bulk user endpoint."""

    UPDATE_ROLE = "UPDATE_ROLE"
    UPDATE_STATUS = "UPDATE_STATUS"


class ExportFormat(str, Enum):
    """Output formats for the user export."""

    CSV = "csv"
    JSON = "json"
