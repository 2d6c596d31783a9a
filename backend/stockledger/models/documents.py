from __future__ import annotations

import uuid

from ..extensions import db
from stockledger.serialization import id_str
from stockledger.time_utils import to_utc_z, utcnow


class Purchase(db.Model):
    """
    Goods received from a supplier into a location.

    Recording a purchase appends one PURCHASE movement (+quantity) whose
    reference_id is this purchase's id.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_product_date", "product_id", "purchase_date"),
        db.CheckConstraint("quantity > 0", name="ck_purchases_quantity_positive"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False)
    supplier_id = db.Column(db.Uuid, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    location_id = db.Column(db.Uuid, db.ForeignKey("locations.id"), nullable=False, index=True)
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)

    # Authoritative storage in cents
    unit_cost_cents = db.Column(db.Integer, nullable=False)

    batch_number = db.Column(db.String(50), nullable=True, index=True)
    expiry_date = db.Column(db.Date, nullable=True)

    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product")
    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))
    location = db.relationship("Location")
    user = db.relationship("User")

    @property
    def total_cost_cents(self) -> int:
        return self.quantity * self.unit_cost_cents

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "product_id": id_str(self.product_id),
            "supplier_id": id_str(self.supplier_id),
            "location_id": id_str(self.location_id),
            "user_id": id_str(self.user_id),
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "total_cost_cents": self.total_cost_cents,
            "batch_number": self.batch_number,
            "expiry_date": self.expiry_date.isoformat() if self.expiry_date else None,
            "purchase_date": to_utc_z(self.purchase_date),
        }


class Sale(db.Model):
    """
    Goods sold from a location. Appends one SALE movement (-quantity).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_product_date", "product_id", "sale_date"),
        db.CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False)
    location_id = db.Column(db.Uuid, db.ForeignKey("locations.id"), nullable=False, index=True)
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product")
    location = db.relationship("Location")
    user = db.relationship("User")

    @property
    def total_cents(self) -> int:
        return self.quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "product_id": id_str(self.product_id),
            "location_id": id_str(self.location_id),
            "user_id": id_str(self.user_id),
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
            "sale_date": to_utc_z(self.sale_date),
        }


class Transfer(db.Model):
    """
    Stock moved between two locations.

    Appends TRANSFER_OUT (-quantity at from_location) and TRANSFER_IN
    (+quantity at to_location), both referencing this transfer. The two
    adjustments are applied in one DB transaction: both or neither.
    """
    __tablename__ = "transfers"
    __table_args__ = (
        db.Index("ix_transfers_product_date", "product_id", "transfer_date"),
        db.CheckConstraint("quantity > 0", name="ck_transfers_quantity_positive"),
        db.CheckConstraint("from_location_id <> to_location_id", name="ck_transfers_distinct_locations"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False)
    from_location_id = db.Column(db.Uuid, db.ForeignKey("locations.id"), nullable=False, index=True)
    to_location_id = db.Column(db.Uuid, db.ForeignKey("locations.id"), nullable=False, index=True)
    user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    note = db.Column(db.Text, nullable=True)

    transfer_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product")
    from_location = db.relationship("Location", foreign_keys=[from_location_id])
    to_location = db.relationship("Location", foreign_keys=[to_location_id])
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "product_id": id_str(self.product_id),
            "from_location_id": id_str(self.from_location_id),
            "to_location_id": id_str(self.to_location_id),
            "user_id": id_str(self.user_id),
            "quantity": self.quantity,
            "note": self.note,
            "transfer_date": to_utc_z(self.transfer_date),
        }
