# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS, ALLOWED_ROLES


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def get_permission_definition(code):
    """Get full definition for a permission code."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == code:
            return {
                "code": perm[0],
                "name": perm[1],
                "description": perm[2],
                "category": perm[3],
                "roles": sorted(perm[4]),
            }
    return None


def allowed_roles(code) -> frozenset:
    """
    Roles allowed to perform an operation.

    Unknown codes raise KeyError so a typo in a route decorator fails loudly
    instead of silently allowing or denying everyone.
    """
    return ALLOWED_ROLES[code]


def role_can(role, code) -> bool:
    return role in allowed_roles(code)
