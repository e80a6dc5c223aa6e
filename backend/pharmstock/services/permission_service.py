# Overview: Service-layer operations for the authorization guard; encapsulates business logic and database work.

"""
Authorization Guard and Security Event Logging

WHY: Enforce role-based access control and create an audit trail of denials.

DESIGN PRINCIPLES:
- Fail closed: unknown operations and unknown roles are denied
- One table: permissions.OPERATION_ROLES is the only place roles are listed
- Log denials only: grants are not logged
- Unauthenticated is decided before any role check (see decorators.require_auth)
- Data scoping (Medical Reps see only their own allocations) is layered on
  top of allow/deny, not expressed as a denial
"""

from flask import current_app

from ..errors import ForbiddenError, UnauthenticatedError
from ..extensions import db
from ..models import User, SecurityEvent
from ..permissions import (
    SELF_SCOPED_ALLOCATION_ROLES,
    is_allowed,
    operations_for_role,
)
from pharmstock.time_utils import utcnow


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - LOGIN_FAILED
    - LOGOUT
    - USER_CREATED
    - ROLE_CHANGED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def check(role: str | None, operation: str) -> bool:
    """Pure allow/deny for a role and operation."""
    return is_allowed(role, operation)


def require_operation(
    user: User | None,
    operation: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require the actor's role to permit operation.

    Raises UnauthenticatedError when there is no actor, ForbiddenError (and
    logs a PERMISSION_DENIED event) when the role is not allowed.

    Usage:
        require_operation(g.current_user, Operation.CREATE_ALLOCATION, resource=request.path)
    """
    if user is None:
        raise UnauthenticatedError()

    if is_allowed(user.role, operation):
        return

    log_security_event(
        user_id=user.id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=operation,
        reason=f"Role {user.role!r} not permitted for {operation}",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    current_app.logger.warning(
        "Denied %s for user %s (role %s) on %s", operation, user.id, user.role, resource,
    )
    raise ForbiddenError(f"Access denied: your role ({user.role}) cannot perform {operation}")


def allocation_scope_for(user: User) -> int | None:
    """
    Recipient filter for allocation listings.

    Returns the user's own id for self-scoped roles, None (no filter) otherwise.
    """
    if user.role in SELF_SCOPED_ALLOCATION_ROLES:
        return user.id
    return None


def get_user_operations(user: User) -> list[str]:
    """Operation codes the user's role may invoke (for clients building menus)."""
    return operations_for_role(user.role)
