# Overview: Flask API routes for allocation operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_operation
from ..permissions import Operation
from ..services import allocation_service
from ..validation import ValidationError, coerce_int


allocations_bp = Blueprint("allocations", __name__, url_prefix="/api/allocations")


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


@allocations_bp.get("")
@require_auth
@require_operation(Operation.LIST_ALLOCATIONS)
def list_allocations_route():
    """All allocations, or only the caller's own for Medical Reps."""
    allocations = allocation_service.list_allocations_for_actor(g.current_user)
    return jsonify([a.to_dict() for a in allocations]), 200


@allocations_bp.get("/user/<int:user_id>")
@require_auth
@require_operation(Operation.LIST_USER_ALLOCATIONS)
def list_user_allocations_route(user_id: int):
    allocations = allocation_service.list_allocations_for_user(user_id)
    return jsonify([a.to_dict() for a in allocations]), 200


@allocations_bp.post("")
@require_auth
@require_operation(Operation.CREATE_ALLOCATION)
def create_allocation_route():
    """
    Allocate stock to a user.

    Body: {"stock_item_id": int, "user_id": int, "quantity": int > 0}
    """
    data = _json_body()
    for field in ("stock_item_id", "user_id", "quantity"):
        if data.get(field) is None:
            raise ValidationError(f"{field} is required")

    allocation = allocation_service.create_allocation(
        stock_item_id=coerce_int(data["stock_item_id"], "stock_item_id"),
        recipient_user_id=coerce_int(data["user_id"], "user_id"),
        quantity=data["quantity"],
        actor_id=g.current_user.id,
    )
    return jsonify(allocation.to_dict()), 201


@allocations_bp.put("/<int:allocation_id>/status")
@require_auth
@require_operation(Operation.UPDATE_ALLOCATION_STATUS)
def update_allocation_status_route(allocation_id: int):
    data = _json_body()
    status = data.get("status")
    if not isinstance(status, str):
        raise ValidationError("Invalid status")

    allocation = allocation_service.update_allocation_status(
        allocation_id=allocation_id,
        new_status=status,
        actor_id=g.current_user.id,
    )
    return jsonify(allocation.to_dict()), 200
