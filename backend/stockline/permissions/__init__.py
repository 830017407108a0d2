# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import PERMISSION_DEFINITIONS, ALLOWED_ROLES
from .roles import ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF, ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_permission_definition,
    allowed_roles,
    role_can,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "ALLOWED_ROLES",
    "ROLES",
    "ROLE_ADMIN",
    "ROLE_MANAGER",
    "ROLE_STAFF",
    "ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_permission_definition",
    "allowed_roles",
    "role_can",
]
