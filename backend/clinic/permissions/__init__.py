# Overview: Permission system package.
# Re-exports all public APIs so callers import from clinic.permissions.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    APPOINTMENT_PERMISSIONS,
    SETTINGS_PERMISSIONS,
    CASH_PERMISSIONS,
    REPORT_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, StaffRole
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    get_permission_definition,
    validate_permission_code,
    is_valid_role,
    get_role_permissions,
    role_has_permission,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "APPOINTMENT_PERMISSIONS",
    "SETTINGS_PERMISSIONS",
    "CASH_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "StaffRole",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "get_permission_definition",
    "validate_permission_code",
    "is_valid_role",
    "get_role_permissions",
    "role_has_permission",
]
