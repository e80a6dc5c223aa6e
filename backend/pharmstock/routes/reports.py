# Overview: Flask API routes for reports; query params override configured defaults.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_operation
from ..permissions import Operation
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_auth
@require_operation(Operation.VIEW_REPORTS)
def summary_route():
    """
    Dashboard summary.

    Query params:
    - threshold: low-stock threshold (default LOW_STOCK_THRESHOLD)
    - days: expiry window in days (default EXPIRY_WINDOW_DAYS)
    """
    summary = reporting_service.dashboard_summary(
        low_stock_threshold=request.args.get("threshold", current_app.config["LOW_STOCK_THRESHOLD"]),
        expiry_days=request.args.get("days", current_app.config["EXPIRY_WINDOW_DAYS"]),
    )
    return jsonify(summary), 200


@reports_bp.get("/movements")
@require_auth
@require_operation(Operation.VIEW_REPORTS)
def movements_report_route():
    report = reporting_service.movement_report(days=request.args.get("days", 30))
    return jsonify(report), 200
