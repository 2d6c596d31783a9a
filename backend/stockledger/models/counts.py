from __future__ import annotations

import uuid

from ..extensions import db
from stockledger.serialization import id_str
from stockledger.time_utils import to_utc_z, utcnow


# Session status constants
SESSION_STATUS_OPEN = "OPEN"
SESSION_STATUS_CLOSED = "CLOSED"


class InventorySession(db.Model):
    """
    Physical inventory count at one location.

    LIFECYCLE:
    1. OPEN: lines are added and counted
    2. CLOSED: discrepancies posted as INVENTORY_ADJUSTMENT movements (terminal)

    At most one OPEN session per location. The partial unique index backs
    up the locked pre-check in count_service.open_session.
    """
    __tablename__ = "inventory_sessions"
    __table_args__ = (
        db.Index(
            "uq_inventory_sessions_open_location",
            "location_id",
            unique=True,
            sqlite_where=db.text("status = 'OPEN'"),
            postgresql_where=db.text("status = 'OPEN'"),
        ),
        db.Index("ix_inventory_sessions_status", "status"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    location_id = db.Column(db.Uuid, db.ForeignKey("locations.id"), nullable=False, index=True)

    started_by_user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=False)
    closed_by_user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=SESSION_STATUS_OPEN)
    note = db.Column(db.Text, nullable=True)

    start_time = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)

    location = db.relationship("Location", backref=db.backref("inventory_sessions", lazy=True))
    started_by = db.relationship("User", foreign_keys=[started_by_user_id])
    closed_by = db.relationship("User", foreign_keys=[closed_by_user_id])

    @property
    def is_open(self) -> bool:
        return self.status == SESSION_STATUS_OPEN

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "location_id": id_str(self.location_id),
            "started_by_user_id": id_str(self.started_by_user_id),
            "closed_by_user_id": id_str(self.closed_by_user_id),
            "status": self.status,
            "note": self.note,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time),
        }


class InventoryLine(db.Model):
    """
    One product on a count.

    expected_quantity is the ledger snapshot taken when the line was added
    and never changes afterwards. counted_quantity stays null until counted;
    recounts overwrite it while the session is open.
    """
    __tablename__ = "inventory_lines"
    __table_args__ = (
        db.UniqueConstraint("session_id", "product_id", name="uq_inventory_lines_session_product"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    session_id = db.Column(db.Uuid, db.ForeignKey("inventory_sessions.id"), nullable=False, index=True)
    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False)

    expected_quantity = db.Column(db.Integer, nullable=False)
    counted_quantity = db.Column(db.Integer, nullable=True)
    note = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    counted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Set on close when the line produced an INVENTORY_ADJUSTMENT
    adjustment_movement_id = db.Column(db.Uuid, db.ForeignKey("stock_movements.id"), nullable=True)

    session = db.relationship(
        "InventorySession",
        backref=db.backref("lines", lazy=True, order_by="InventoryLine.created_at"),
    )
    product = db.relationship("Product")

    @property
    def difference(self) -> int | None:
        if self.counted_quantity is None:
            return None
        return self.counted_quantity - self.expected_quantity

    @property
    def has_discrepancy(self) -> bool:
        diff = self.difference
        return diff is not None and diff != 0

    @property
    def is_surplus(self) -> bool:
        diff = self.difference
        return diff is not None and diff > 0

    @property
    def is_shortage(self) -> bool:
        diff = self.difference
        return diff is not None and diff < 0

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "session_id": id_str(self.session_id),
            "product_id": id_str(self.product_id),
            "product_name": self.product.name if self.product else None,
            "expected_quantity": self.expected_quantity,
            "counted_quantity": self.counted_quantity,
            "difference": self.difference,
            "has_discrepancy": self.has_discrepancy,
            "is_surplus": self.is_surplus,
            "is_shortage": self.is_shortage,
            "note": self.note,
            "created_at": to_utc_z(self.created_at),
            "counted_at": to_utc_z(self.counted_at),
            "adjustment_movement_id": id_str(self.adjustment_movement_id),
        }
