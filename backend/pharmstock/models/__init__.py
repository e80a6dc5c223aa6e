from .auth import User, SessionToken
from .security import SecurityEvent
from .inventory import (
    StockItem,
    Allocation,
    Movement,
    ALLOCATION_STATUS_PENDING,
    ALLOCATION_STATUS_RECEIVED,
    ALLOCATION_STATUS_CANCELLED,
    ALLOCATION_STATUSES,
    MOVEMENT_ADD,
    MOVEMENT_REMOVE,
    MOVEMENT_ALLOCATE,
    MOVEMENT_DEALLOCATE,
    MOVEMENT_TYPES,
)

__all__ = [
    'User', 'SessionToken', 'SecurityEvent',
    'StockItem', 'Allocation', 'Movement',
    'ALLOCATION_STATUS_PENDING', 'ALLOCATION_STATUS_RECEIVED', 'ALLOCATION_STATUS_CANCELLED',
    'ALLOCATION_STATUSES',
    'MOVEMENT_ADD', 'MOVEMENT_REMOVE', 'MOVEMENT_ALLOCATE', 'MOVEMENT_DEALLOCATE',
    'MOVEMENT_TYPES',
]
