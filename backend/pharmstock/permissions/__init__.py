# Overview: Role-based access control tables.
# Re-exports the public API so callers import from `pharmstock.permissions`.

from .roles import Role, ALL_ROLES, DEFAULT_ROLE
from .definitions import Operation, OPERATION_ROLES, SELF_SCOPED_ALLOCATION_ROLES
from .helpers import (
    is_valid_role,
    is_known_operation,
    is_allowed,
    operations_for_role,
)

__all__ = [
    "Role",
    "ALL_ROLES",
    "DEFAULT_ROLE",
    "Operation",
    "OPERATION_ROLES",
    "SELF_SCOPED_ALLOCATION_ROLES",
    "is_valid_role",
    "is_known_operation",
    "is_allowed",
    "operations_for_role",
]
