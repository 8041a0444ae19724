"""
Role Enumeration Module
=======================

Defines all valid roles in the system.

Security Purpose:
- Prevents arbitrary role injection
- Prevents frontend role manipulation
- Enforces strict backend validation
"""

from enum import Enum


class Role(str, Enum):
    """
    System-wide allowed roles, most privileged first.
    """

    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    EDITOR = "EDITOR"
    AUTHOR = "AUTHOR"
    CONTRIBUTOR = "CONTRIBUTOR"
    VIEWER = "VIEWER"
