# Overview: Service-layer operations for reporting; read-only projections over stock, allocations and movements.

from __future__ import annotations

from sqlalchemy import func

from pharmstock.extensions import db
from pharmstock.models import StockItem, Movement, MOVEMENT_TYPES
from pharmstock.services import stock_service
from pharmstock.services.allocation_service import count_allocations_by_status
from pharmstock.time_utils import days_ago, utcnow, to_utc_z
from pharmstock.validation import coerce_non_negative_int, coerce_window_days


def dashboard_summary(*, low_stock_threshold, expiry_days) -> dict:
    low_stock_threshold = coerce_non_negative_int(low_stock_threshold, "threshold")
    expiry_days = coerce_window_days(expiry_days, "days")

    totals = db.session.query(
        func.count(StockItem.id).label("items"),
        func.coalesce(func.sum(StockItem.quantity), 0).label("units"),
    ).one()

    return {
        "generated_at": to_utc_z(utcnow()),
        "total_stock_items": int(totals.items or 0),
        "total_units_on_hand": int(totals.units or 0),
        "low_stock_threshold": low_stock_threshold,
        "low_stock_count": len(stock_service.list_low_stock_items(low_stock_threshold)),
        "expiry_window_days": expiry_days,
        "expiring_count": len(stock_service.list_expiring_stock_items(expiry_days)),
        "allocations_by_status": count_allocations_by_status(),
    }


def movement_report(*, days) -> dict:
    """
    Per-day movement totals by type over the trailing window.

    Days without movements are omitted; every row carries all four types.
    """
    days = coerce_window_days(days, "days")
    start_dt = days_ago(days)

    period_expr = func.date(Movement.performed_at)
    rows = db.session.query(
        period_expr.label("period"),
        Movement.type,
        func.coalesce(func.sum(Movement.quantity), 0).label("units"),
        func.count(Movement.id).label("movements"),
    ).filter(
        Movement.performed_at >= start_dt,
    ).group_by("period", Movement.type).order_by("period").all()

    periods: dict[str, dict] = {}
    for row in rows:
        period = str(row.period)
        entry = periods.setdefault(period, {
            "period": period,
            **{f"{t}_units": 0 for t in MOVEMENT_TYPES},
            "movement_count": 0,
        })
        entry[f"{row.type}_units"] = int(row.units or 0)
        entry["movement_count"] += int(row.movements or 0)

    return {
        "start": to_utc_z(start_dt),
        "days": days,
        "rows": list(periods.values()),
    }
