# Overview: Flask API routes for stock operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_auth, require_operation
from ..models import StockItem
from ..permissions import Operation
from ..services import stock_service
from ..validation import ModelValidationPolicy, validate_payload


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


STOCK_ITEM_POLICY = ModelValidationPolicy(
    writable_fields=set(stock_service.STOCK_ITEM_FIELDS),
    required_on_create={"name", "unique_number"},
)


@stock_bp.get("")
@require_auth
@require_operation(Operation.VIEW_STOCK)
def list_stock_route():
    items = stock_service.list_stock_items()
    return jsonify([i.to_dict() for i in items]), 200


@stock_bp.get("/<int:stock_item_id>")
@require_auth
@require_operation(Operation.VIEW_STOCK)
def get_stock_route(stock_item_id: int):
    item = stock_service.get_stock_item(stock_item_id)
    return jsonify(item.to_dict()), 200


@stock_bp.get("/unique/<unique_number>")
@require_auth
@require_operation(Operation.VIEW_STOCK)
def get_stock_by_unique_number_route(unique_number: str):
    item = stock_service.get_stock_item_by_unique_number(unique_number)
    return jsonify(item.to_dict()), 200


@stock_bp.post("")
@require_auth
@require_operation(Operation.CREATE_STOCK_ITEM)
def create_stock_route():
    """
    Create a stock item.

    Body: name, unique_number (required); category, quantity, expiry_date
    (ISO-8601), image_url (optional).
    """
    patch = validate_payload(
        model=StockItem,
        payload=request.get_json(silent=True),
        policy=STOCK_ITEM_POLICY,
        partial=False,
    )
    item = stock_service.create_stock_item(data=patch, actor_id=g.current_user.id)
    return jsonify(item.to_dict()), 201


@stock_bp.put("/<int:stock_item_id>")
@require_auth
@require_operation(Operation.UPDATE_STOCK_ITEM)
def update_stock_route(stock_item_id: int):
    """Partial update. A quantity change is recorded as an add/remove movement."""
    patch = validate_payload(
        model=StockItem,
        payload=request.get_json(silent=True),
        policy=STOCK_ITEM_POLICY,
        partial=True,
    )
    item = stock_service.update_stock_item(
        stock_item_id=stock_item_id,
        patch=patch,
        actor_id=g.current_user.id,
    )
    return jsonify(item.to_dict()), 200


@stock_bp.get("/expiring/<days>")
@require_auth
@require_operation(Operation.VIEW_EXPIRING_STOCK)
def expiring_stock_route(days: str):
    items = stock_service.list_expiring_stock_items(days)
    return jsonify([i.to_dict() for i in items]), 200


@stock_bp.get("/low/<threshold>")
@require_auth
@require_operation(Operation.VIEW_LOW_STOCK)
def low_stock_route(threshold: str):
    items = stock_service.list_low_stock_items(threshold)
    return jsonify([i.to_dict() for i in items]), 200
