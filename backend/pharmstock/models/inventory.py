from __future__ import annotations

from ..extensions import db
from pharmstock.time_utils import to_utc_z


# Allocation lifecycle
ALLOCATION_STATUS_PENDING = "pending"
ALLOCATION_STATUS_RECEIVED = "received"
ALLOCATION_STATUS_CANCELLED = "cancelled"

ALLOCATION_STATUSES = (
    ALLOCATION_STATUS_PENDING,
    ALLOCATION_STATUS_RECEIVED,
    ALLOCATION_STATUS_CANCELLED,
)

# Movement types
MOVEMENT_ADD = "add"
MOVEMENT_REMOVE = "remove"
MOVEMENT_ALLOCATE = "allocate"
MOVEMENT_DEALLOCATE = "deallocate"

MOVEMENT_TYPES = (MOVEMENT_ADD, MOVEMENT_REMOVE, MOVEMENT_ALLOCATE, MOVEMENT_DEALLOCATE)


class StockItem(db.Model):
    """
    A stocked pharmaceutical product.

    QUANTITY DESIGN DECISION:
    StockItem.quantity is the free pool: units on hand that are not tied up
    in a pending or received allocation. Allocating moves units out of it,
    cancelling moves them back.

    - quantity >= 0 is enforced by a CHECK constraint and by every service write
    - Allocation writes use a conditional UPDATE (quantity >= :amount)
    - Direct edits use a row lock plus the version_id optimistic counter

    unique_number is the business identifier printed on the package and is
    globally unique.
    """
    __tablename__ = "stock_items"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
        db.Index("ix_stock_items_expiry_date", "expiry_date"),
        db.Index("ix_stock_items_quantity", "quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    unique_number = db.Column(db.String(64), nullable=False, unique=True, index=True)
    category = db.Column(db.String(128), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    expiry_date = db.Column(db.DateTime(timezone=True), nullable=True)
    image_url = db.Column(db.String(512), nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    creator = db.relationship("User", foreign_keys=[created_by])
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<StockItem id={self.id} unique_number={self.unique_number!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "unique_number": self.unique_number,
            "category": self.category,
            "quantity": self.quantity,
            "expiry_date": to_utc_z(self.expiry_date),
            "image_url": self.image_url,
            "created_by": self.created_by,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Allocation(db.Model):
    """
    A quantity of a stock item assigned to a recipient user.

    LIFECYCLE:
    1. pending: created, units already removed from the item's free pool
    2. received: recipient confirmed; units stay out of the pool
    3. cancelled: units returned to the pool (terminal)

    quantity is immutable after creation.
    """
    __tablename__ = "allocations"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_allocations_quantity_positive"),
        db.Index("ix_allocations_stock_status", "stock_item_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    stock_item_id = db.Column(db.Integer, db.ForeignKey("stock_items.id"), nullable=False, index=True)
    # Recipient
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=ALLOCATION_STATUS_PENDING, index=True)

    allocated_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    allocated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    status_changed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    status_changed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    stock_item = db.relationship("StockItem", backref=db.backref("allocations", lazy=True))
    recipient = db.relationship("User", foreign_keys=[user_id])
    allocator = db.relationship("User", foreign_keys=[allocated_by])

    def __repr__(self) -> str:
        return (
            f"<Allocation id={self.id} stock_item_id={self.stock_item_id} "
            f"user_id={self.user_id} quantity={self.quantity} status={self.status!r}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stock_item_id": self.stock_item_id,
            "user_id": self.user_id,
            "quantity": self.quantity,
            "status": self.status,
            "allocated_by": self.allocated_by,
            "allocated_at": to_utc_z(self.allocated_at),
            "status_changed_by": self.status_changed_by,
            "status_changed_at": to_utc_z(self.status_changed_at),
        }


class Movement(db.Model):
    """
    Stock movement history.

    IMMUTABLE: Never update or delete. Append-only for audit integrity.
    quantity is unsigned; direction comes from type.
    """
    __tablename__ = "movements"
    __table_args__ = (
        db.Index("ix_movements_stock_performed", "stock_item_id", "performed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    stock_item_id = db.Column(db.Integer, db.ForeignKey("stock_items.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(16), nullable=False, index=True)  # add, remove, allocate, deallocate

    from_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    to_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    performed_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    performed_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    stock_item = db.relationship("StockItem", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stock_item_id": self.stock_item_id,
            "quantity": self.quantity,
            "type": self.type,
            "from_user_id": self.from_user_id,
            "to_user_id": self.to_user_id,
            "performed_by": self.performed_by,
            "performed_at": to_utc_z(self.performed_at),
        }
