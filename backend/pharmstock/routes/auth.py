# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/pharmstock/routes/auth.py
"""
Authentication API routes

- Self-registration creates Medical Rep accounts only (other roles are
  assigned by CEO/Admin through /api/users)
- Login returns a bearer token for the Authorization header
- Failed logins are recorded as LOGIN_FAILED security events
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..decorators import require_auth
from ..errors import ForbiddenError, UnauthenticatedError
from ..services import auth_service, session_service, permission_service
from ..validation import ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


def _login_payload(user, session, token) -> dict:
    return {
        "user": user.to_dict(),
        "operations": permission_service.get_user_operations(user),
        "token": token,
        "session": session.to_dict(),
    }


@auth_bp.post("/register")
def register_route():
    """Self-register a Medical Rep account and sign it in."""
    if not current_app.config.get("ALLOW_SELF_REGISTRATION", True):
        raise ForbiddenError("Self-registration is disabled. Contact an administrator to create an account.")

    data = _json_body()
    user = auth_service.register_user(
        username=data.get("username"),
        password=data.get("password"),
        full_name=data.get("full_name"),
        department=data.get("department"),
    )

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=request.headers.get("User-Agent"),
        ip_address=request.remote_addr,
    )
    return jsonify(_login_payload(user, session, token)), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = _json_body()
    username = data.get("username")
    password = data.get("password")

    if not username or not password:
        raise ValidationError("username and password required")

    user_agent = request.headers.get("User-Agent")
    ip_address = request.remote_addr

    user = auth_service.authenticate(username, password)
    if not user:
        permission_service.log_security_event(
            user_id=None,
            event_type="LOGIN_FAILED",
            success=False,
            resource=request.path,
            action="login",
            reason=f"Invalid credentials for {username!r}",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        raise UnauthenticatedError("Invalid credentials")

    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    current_app.logger.info("User %s logged in", user.id)
    return jsonify(_login_payload(user, session, token)), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the session token used for this request."""
    token = request.headers["Authorization"].split(" ", 1)[1].strip()
    session_service.revoke_session(token, reason="User logout")
    return jsonify({"message": "Logout successful"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "operations": permission_service.get_user_operations(user),
    }), 200
