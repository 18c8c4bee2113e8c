"""
Role Constants for the MegaInvest API

Role names used by the admin back office, kept here to avoid hardcoded
values in route dependencies.
"""

from enum import Enum


class RoleName(str, Enum):
    """Enumeration of role names in the system."""

    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


# Roles allowed to read consent analytics
ADMIN_ROLES = [RoleName.ADMIN.value, RoleName.SUPERADMIN.value]
