# Overview: Request decorators for API routes (current-actor resolution and the authorization guard).

from functools import wraps
from flask import request, g

from .errors import UnauthenticatedError
from .services import session_service, permission_service


def _is_authenticated() -> bool:
    return getattr(g, "current_user", None) is not None


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require authentication and establish the current actor.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    Raises UnauthenticatedError (401) if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            raise UnauthenticatedError("Authentication required")

        context = session_service.validate_session(token)
        if not context:
            raise UnauthenticatedError("Invalid or expired token")

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_operation(operation: str):
    """
    Require the current actor's role to permit operation.

    Must be applied below @require_auth. Denials are logged as
    PERMISSION_DENIED security events and returned as 403.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise UnauthenticatedError("Authentication required")

            permission_service.require_operation(
                g.current_user,
                operation,
                resource=request.path,
                ip_address=request.remote_addr,
                user_agent=request.headers.get("User-Agent"),
            )
            return f(*args, **kwargs)

        return decorated_function
    return decorator
