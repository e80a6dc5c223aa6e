# Overview: Pure lookups over the operation/role tables.

from .definitions import OPERATION_ROLES
from .roles import ALL_ROLES


def is_valid_role(role) -> bool:
    return role in ALL_ROLES


def is_known_operation(operation: str) -> bool:
    return operation in OPERATION_ROLES


def is_allowed(role, operation: str) -> bool:
    """Allow/deny for a role. Unknown operations and unknown roles are denied."""
    if not is_known_operation(operation) or not is_valid_role(role):
        return False
    roles = OPERATION_ROLES[operation]
    return roles is None or role in roles


def operations_for_role(role) -> list[str]:
    """All operation codes a role may invoke, sorted."""
    return sorted(op for op in OPERATION_ROLES if is_allowed(role, op))
