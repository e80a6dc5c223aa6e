# Overview: Flask API routes for user management; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_operation
from ..permissions import Operation
from ..services import auth_service, session_service, permission_service
from ..validation import ValidationError


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_operation(Operation.LIST_USERS)
def list_users_route():
    users = auth_service.list_users()
    return jsonify([u.to_dict() for u in users]), 200


@users_bp.post("")
@require_auth
@require_operation(Operation.CREATE_USER)
def create_user_route():
    """Create a user with any role (CEO/Admin only)."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    kwargs = {
        "username": data.get("username"),
        "password": data.get("password"),
        "full_name": data.get("full_name"),
        "department": data.get("department"),
    }
    if data.get("role") is not None:
        kwargs["role"] = data["role"]

    user = auth_service.create_user(**kwargs)
    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type="USER_CREATED",
        success=True,
        resource=request.path,
        action="create_user",
        reason=f"Created user {user.id} with role {user.role}",
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )
    return jsonify(user.to_dict()), 201


@users_bp.patch("/<int:user_id>")
@require_auth
@require_operation(Operation.UPDATE_USER)
def update_user_route(user_id: int):
    """Edit role and/or department. A role change signs the user out everywhere."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    unknown = set(data) - {"role", "department"}
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    previous_role = auth_service.get_user(user_id).role
    user = auth_service.update_user(
        user_id=user_id,
        role=data.get("role"),
        department=data.get("department"),
        clear_department="department" in data and data["department"] is None,
    )

    if user.role != previous_role:
        session_service.revoke_all_user_sessions(user.id, reason="Role changed")
        permission_service.log_security_event(
            user_id=g.current_user.id,
            event_type="ROLE_CHANGED",
            success=True,
            resource=request.path,
            action="update_user",
            reason=f"User {user.id}: {previous_role} -> {user.role}",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )

    return jsonify(user.to_dict()), 200


@users_bp.get("/role/<role>")
@require_auth
@require_operation(Operation.LIST_USERS_BY_ROLE)
def list_users_by_role_route(role: str):
    users = auth_service.list_users_by_role(role)
    return jsonify([u.to_dict() for u in users]), 200
