# Overview: Operation -> allowed roles table consulted by the authorization guard.
# Each entry is: operation code -> frozenset of roles, or None for "any authenticated user".

from .roles import Role


class Operation:
    """Operation codes guarded by the API."""
    LIST_USERS = "list_users"
    CREATE_USER = "create_user"
    UPDATE_USER = "update_user"
    LIST_USERS_BY_ROLE = "list_users_by_role"

    VIEW_STOCK = "view_stock"
    CREATE_STOCK_ITEM = "create_stock_item"
    UPDATE_STOCK_ITEM = "update_stock_item"
    VIEW_EXPIRING_STOCK = "view_expiring_stock"
    VIEW_LOW_STOCK = "view_low_stock"

    LIST_ALLOCATIONS = "list_allocations"
    LIST_USER_ALLOCATIONS = "list_user_allocations"
    CREATE_ALLOCATION = "create_allocation"
    UPDATE_ALLOCATION_STATUS = "update_allocation_status"

    LIST_MOVEMENTS = "list_movements"
    LIST_STOCK_MOVEMENTS = "list_stock_movements"

    VIEW_REPORTS = "view_reports"


_EXECUTIVE = frozenset({Role.CEO, Role.ADMIN})
_ALLOCATORS = _EXECUTIVE | {Role.MARKETER, Role.SALES_MANAGER}
_STOCK_EDITORS = _ALLOCATORS | {Role.STOCK_MANAGER}
_STOCK_OVERSIGHT = _EXECUTIVE | {Role.STOCK_MANAGER}


OPERATION_ROLES = {
    # -- USERS --
    Operation.LIST_USERS: _EXECUTIVE,
    Operation.CREATE_USER: _EXECUTIVE,
    Operation.UPDATE_USER: _EXECUTIVE,
    Operation.LIST_USERS_BY_ROLE: _ALLOCATORS,

    # -- STOCK --
    Operation.VIEW_STOCK: None,
    Operation.CREATE_STOCK_ITEM: _STOCK_EDITORS,
    Operation.UPDATE_STOCK_ITEM: _STOCK_EDITORS,
    Operation.VIEW_EXPIRING_STOCK: _STOCK_OVERSIGHT,
    Operation.VIEW_LOW_STOCK: _STOCK_OVERSIGHT,

    # -- ALLOCATIONS --
    # Medical Reps may list, but only their own rows (see permission_service.allocation_scope_for)
    Operation.LIST_ALLOCATIONS: None,
    Operation.LIST_USER_ALLOCATIONS: _ALLOCATORS,
    Operation.CREATE_ALLOCATION: _ALLOCATORS,
    Operation.UPDATE_ALLOCATION_STATUS: _ALLOCATORS,

    # -- MOVEMENTS / REPORTS --
    Operation.LIST_MOVEMENTS: _EXECUTIVE,
    Operation.LIST_STOCK_MOVEMENTS: _STOCK_OVERSIGHT,
    Operation.VIEW_REPORTS: _STOCK_OVERSIGHT,
}

# Roles whose allocation listing is narrowed to rows where they are the recipient
SELF_SCOPED_ALLOCATION_ROLES = frozenset({Role.MEDICAL_REP})
