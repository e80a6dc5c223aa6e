# Overview: Flask API routes for the movement ledger; read-only JSON listings.

from flask import Blueprint, jsonify

from ..decorators import require_auth, require_operation
from ..permissions import Operation
from ..services import movement_service, stock_service


movements_bp = Blueprint("movements", __name__, url_prefix="/api/movements")


@movements_bp.get("")
@require_auth
@require_operation(Operation.LIST_MOVEMENTS)
def list_movements_route():
    movements = movement_service.list_movements()
    return jsonify([m.to_dict() for m in movements]), 200


@movements_bp.get("/stock/<int:stock_item_id>")
@require_auth
@require_operation(Operation.LIST_STOCK_MOVEMENTS)
def list_stock_movements_route(stock_item_id: int):
    # 404 for unknown items rather than an empty ledger
    stock_service.get_stock_item(stock_item_id)
    movements = movement_service.list_movements_for_stock_item(stock_item_id)
    return jsonify([m.to_dict() for m in movements]), 200
