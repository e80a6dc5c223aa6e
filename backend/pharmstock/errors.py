# Overview: Error taxonomy shared by services and the request boundary.

"""
Every business failure raised by a service is a StockTrackerError subclass.
Each class carries the HTTP status and the stable `kind` string rendered to
callers, so routes never translate errors by hand.

Response shape:
    {"error": "<kind>", "message": "<human readable>"}
"""

from __future__ import annotations

from flask import Flask, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .extensions import db


class StockTrackerError(Exception):
    """Base class for errors recovered at the request boundary."""
    status_code = 400
    kind = "error"
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class NotFoundError(StockTrackerError):
    """Referenced entity is absent."""
    status_code = 404
    kind = "not_found"
    default_message = "Not found"


class InvalidInputError(StockTrackerError):
    """Malformed or out-of-range field (non-positive quantity, unknown status, ...)."""
    status_code = 400
    kind = "invalid_input"
    default_message = "Invalid input"


class InsufficientStockError(StockTrackerError):
    """Allocation quantity exceeds what the stock item holds."""
    status_code = 409
    kind = "insufficient_stock"
    default_message = "Not enough stock available"


class ConflictError(StockTrackerError):
    """Uniqueness conflict (duplicate unique number or username)."""
    status_code = 409
    kind = "conflict"
    default_message = "Conflict"


class ForbiddenError(StockTrackerError):
    """Authenticated actor's role is not permitted for the operation."""
    status_code = 403
    kind = "forbidden"
    default_message = "You do not have permission to perform this action"


class UnauthenticatedError(StockTrackerError):
    """No actor context on the request."""
    status_code = 401
    kind = "unauthenticated"
    default_message = "Authentication required"


class StorageError(StockTrackerError):
    """Storage-layer failure (connectivity, constraint violation, exhausted retries)."""
    status_code = 500
    kind = "storage_error"
    default_message = "Storage failure"


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(StockTrackerError)
    def handle_stock_tracker_error(exc: StockTrackerError):
        if isinstance(exc, StorageError):
            current_app.logger.error("Storage failure: %s", exc, exc_info=exc.__cause__)
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_sqlalchemy_error(exc: SQLAlchemyError):
        db.session.rollback()
        current_app.logger.exception("Unhandled storage error")
        return jsonify(StorageError().to_dict()), 500

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc: HTTPException):
        kind = {401: "unauthenticated", 403: "forbidden", 404: "not_found"}.get(exc.code, "http_error")
        return jsonify({"error": kind, "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        current_app.logger.exception("Unhandled error")
        return jsonify({"error": "internal_error", "message": "Internal server error"}), 500
