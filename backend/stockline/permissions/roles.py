# Overview: Role names and the role -> operation mapping derived from the definitions table.

from .definitions import PERMISSION_DEFINITIONS

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_STAFF = "staff"

ROLES = (ROLE_ADMIN, ROLE_MANAGER, ROLE_STAFF)


def _build_role_permissions() -> dict[str, list[str]]:
    mapping: dict[str, list[str]] = {role: [] for role in ROLES}
    for code, _name, _description, _category, allowed in PERMISSION_DEFINITIONS:
        for role in allowed:
            mapping[role].append(code)
    return mapping


ROLE_PERMISSIONS = _build_role_permissions()
