# backend/stockledger/services/purchase_service.py
"""
Purchase recording: goods received from a supplier into a location.

Each purchase produces exactly one PURCHASE movement (+quantity) whose
reference_id is the purchase id. The purchase row and the stock change are
written in one DB transaction; the caller commits.
"""
from __future__ import annotations

import uuid
from datetime import date, datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Location, Product, Purchase, Supplier, User
from ..models.inventory import MOVEMENT_PURCHASE
from ..validation import (
    NotFoundError,
    ValidationError,
    enforce_rules_cents,
    optional_text,
    require_positive_quantity,
)
from .audit_service import record_activity
from .concurrency import run_with_retry
from .lookup import require_entity, require_optional_entity
from .stock_service import apply_adjustment


def record_purchase(
    *,
    product_id: uuid.UUID,
    supplier_id: uuid.UUID,
    location_id: uuid.UUID,
    quantity: int,
    unit_cost_cents: int,
    user_id: uuid.UUID | None = None,
    batch_number: str | None = None,
    expiry_date: date | None = None,
    purchase_date: datetime | None = None,
) -> Purchase:
    """
    Record a purchase and increase stock at the receiving location.

    Args:
        product_id: Product received
        supplier_id: Supplier it was bought from
        location_id: Location receiving the goods
        quantity: Units received (> 0)
        unit_cost_cents: Cost per unit in cents (>= 0)
        user_id: Optional user recording the purchase
        batch_number: Optional supplier batch/lot number
        expiry_date: Optional best-before date for the batch
        purchase_date: Defaults to now

    Returns:
        Purchase: The persisted purchase (flushed, not committed)

    Raises:
        ValidationError: Bad quantity or cost
        NotFoundError: Product, supplier, location or user missing
    """
    require_positive_quantity(quantity)
    enforce_rules_cents(unit_cost_cents, "unit_cost_cents")
    batch_number = optional_text(batch_number, "batch_number", max_length=50)

    def _op():
        require_entity(Product, product_id, "Product")
        require_entity(Supplier, supplier_id, "Supplier")
        require_entity(Location, location_id, "Location")
        require_optional_entity(User, user_id, "User")

        purchase = Purchase(
            product_id=product_id,
            supplier_id=supplier_id,
            location_id=location_id,
            user_id=user_id,
            quantity=quantity,
            unit_cost_cents=unit_cost_cents,
            batch_number=batch_number,
            expiry_date=expiry_date,
        )
        if purchase_date is not None:
            purchase.purchase_date = purchase_date

        db.session.add(purchase)
        db.session.flush()  # Get ID

        apply_adjustment(
            product_id=product_id,
            location_id=location_id,
            delta=quantity,
            movement_type=MOVEMENT_PURCHASE,
            reference_id=purchase.id,
            user_id=user_id,
        )
        record_activity(
            f"Purchase {purchase.id} recorded: {quantity} x product {product_id} at location {location_id}",
            user_id=user_id,
        )
        current_app.logger.info("Recorded purchase %s (%d units)", purchase.id, quantity)
        return purchase

    return run_with_retry(_op)


def get_purchase(purchase_id: uuid.UUID) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if purchase is None:
        raise NotFoundError("Purchase", purchase_id)
    return purchase


def list_purchases(
    *,
    product_id: uuid.UUID | None = None,
    supplier_id: uuid.UUID | None = None,
    location_id: uuid.UUID | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[Purchase]:
    query = db.session.query(Purchase)
    if product_id is not None:
        query = query.filter(Purchase.product_id == product_id)
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    if location_id is not None:
        query = query.filter(Purchase.location_id == location_id)
    if start is not None:
        query = query.filter(Purchase.purchase_date >= start)
    if end is not None:
        query = query.filter(Purchase.purchase_date <= end)
    query = query.order_by(Purchase.purchase_date.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def purchase_summary(start: datetime | None = None, end: datetime | None = None) -> dict:
    """Units received and total value (cents) in an inclusive date range."""
    if start is not None and end is not None and start > end:
        raise ValidationError("start must be before end")

    query = db.session.query(
        func.count(Purchase.id),
        func.coalesce(func.sum(Purchase.quantity), 0),
        func.coalesce(func.sum(Purchase.quantity * Purchase.unit_cost_cents), 0),
    )
    if start is not None:
        query = query.filter(Purchase.purchase_date >= start)
    if end is not None:
        query = query.filter(Purchase.purchase_date <= end)

    count, units, value = query.one()
    return {
        "purchase_count": int(count or 0),
        "total_units": int(units or 0),
        "total_value_cents": int(value or 0),
    }


def list_expiring_purchases(before_date: date) -> list[Purchase]:
    """Purchases whose batch expires on or before the given date, soonest first."""
    return (
        db.session.query(Purchase)
        .filter(Purchase.expiry_date.isnot(None))
        .filter(Purchase.expiry_date <= before_date)
        .order_by(Purchase.expiry_date.asc())
        .all()
    )
