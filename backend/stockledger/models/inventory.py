from __future__ import annotations

import uuid

from ..extensions import db
from stockledger.serialization import id_str
from stockledger.time_utils import to_utc_z, utcnow


# Movement type constants
MOVEMENT_PURCHASE = "PURCHASE"
MOVEMENT_SALE = "SALE"
MOVEMENT_TRANSFER_IN = "TRANSFER_IN"
MOVEMENT_TRANSFER_OUT = "TRANSFER_OUT"
MOVEMENT_INVENTORY_ADJUSTMENT = "INVENTORY_ADJUSTMENT"

MOVEMENT_TYPES = (
    MOVEMENT_PURCHASE,
    MOVEMENT_SALE,
    MOVEMENT_TRANSFER_IN,
    MOVEMENT_TRANSFER_OUT,
    MOVEMENT_INVENTORY_ADJUSTMENT,
)

# Required sign of quantity_change per type (+1 / -1); absent means either.
MOVEMENT_SIGNS = {
    MOVEMENT_PURCHASE: 1,
    MOVEMENT_SALE: -1,
    MOVEMENT_TRANSFER_IN: 1,
    MOVEMENT_TRANSFER_OUT: -1,
}


class Stock(db.Model):
    """
    Current on-hand quantity for one (product, location) pair.

    Inventory invariants:
    - At most one row per (product, location): uq_stock_product_location.
    - Rows are created lazily on first activity; a missing row means zero.
    - quantity == SUM(stock_movements.quantity_change) for the same pair.
      Only stock_service.apply_adjustment writes here, and it appends the
      matching movement in the same DB transaction.
    - version_id is an optimistic-concurrency counter: a concurrent writer
      that loaded a stale row fails at flush with StaleDataError and is
      retried by run_with_retry.
    """
    __tablename__ = "stock"
    __table_args__ = (
        db.UniqueConstraint("product_id", "location_id", name="uq_stock_product_location"),
        db.Index("ix_stock_location", "location_id"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False, index=True)
    location_id = db.Column(db.Uuid, db.ForeignKey("locations.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    last_updated = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", backref=db.backref("stock_rows", lazy=True))
    location = db.relationship("Location", backref=db.backref("stock_rows", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Stock product_id={self.product_id} location_id={self.location_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "product_id": id_str(self.product_id),
            "location_id": id_str(self.location_id),
            "quantity": self.quantity,
            "last_updated": to_utc_z(self.last_updated),
            "version_id": self.version_id,
        }


class StockMovement(db.Model):
    """
    Append-only audit trail of quantity deltas.

    reference_id points at the originating Purchase / Sale / Transfer /
    InventoryLine (by movement_type); it is null for manual adjustments.
    Rows are never updated or deleted in normal operation.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_movements_product_location_date", "product_id", "location_id", "movement_date"),
        db.Index("ix_movements_type_date", "movement_type", "movement_date"),
        db.CheckConstraint("quantity_change <> 0", name="ck_movements_nonzero"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False)
    location_id = db.Column(db.Uuid, db.ForeignKey("locations.id"), nullable=False)

    # Signed: positive increases on-hand, negative decreases
    quantity_change = db.Column(db.Integer, nullable=False)

    movement_type = db.Column(db.String(32), nullable=False)

    reference_id = db.Column(db.Uuid, nullable=True, index=True)
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=True, index=True)
    note = db.Column(db.String(255), nullable=True)

    movement_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product")
    location = db.relationship("Location")
    user = db.relationship("User")

    def __repr__(self) -> str:
        return (
            f"<StockMovement {self.movement_type} {self.quantity_change:+d} "
            f"product_id={self.product_id} location_id={self.location_id}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "product_id": id_str(self.product_id),
            "location_id": id_str(self.location_id),
            "quantity_change": self.quantity_change,
            "movement_type": self.movement_type,
            "reference_id": id_str(self.reference_id),
            "user_id": id_str(self.user_id),
            "note": self.note,
            "movement_date": to_utc_z(self.movement_date),
        }
