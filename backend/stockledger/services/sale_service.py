# backend/stockledger/services/sale_service.py
"""
Sale recording.

A sale decreases stock at its location with one SALE movement (-quantity)
referencing the sale id. Under the default negative-stock policy a sale
larger than on-hand fails with InsufficientStockError and nothing is written.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Location, Product, Sale, User
from ..models.inventory import MOVEMENT_SALE
from ..validation import (
    NotFoundError,
    ValidationError,
    enforce_rules_cents,
    require_positive_quantity,
)
from .audit_service import record_activity
from .concurrency import run_with_retry
from .lookup import require_entity
from .stock_service import apply_adjustment


def record_sale(
    *,
    product_id: uuid.UUID,
    location_id: uuid.UUID,
    user_id: uuid.UUID,
    quantity: int,
    unit_price_cents: int,
    sale_date: datetime | None = None,
) -> Sale:
    """
    Record a sale and decrease stock at the selling location.

    Returns:
        Sale: The persisted sale (flushed, not committed)

    Raises:
        ValidationError: Bad quantity or price
        NotFoundError: Product, location or user missing
        InsufficientStockError: Not enough on hand (default policy)
    """
    require_positive_quantity(quantity)
    enforce_rules_cents(unit_price_cents, "unit_price_cents")

    def _op():
        require_entity(Product, product_id, "Product")
        require_entity(Location, location_id, "Location")
        require_entity(User, user_id, "User")

        sale = Sale(
            product_id=product_id,
            location_id=location_id,
            user_id=user_id,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
        )
        if sale_date is not None:
            sale.sale_date = sale_date

        db.session.add(sale)
        db.session.flush()  # Get ID

        apply_adjustment(
            product_id=product_id,
            location_id=location_id,
            delta=-quantity,
            movement_type=MOVEMENT_SALE,
            reference_id=sale.id,
            user_id=user_id,
        )
        record_activity(
            f"Sale {sale.id} recorded: {quantity} x product {product_id} at location {location_id}",
            user_id=user_id,
        )
        current_app.logger.info("Recorded sale %s (%d units)", sale.id, quantity)
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: uuid.UUID) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError("Sale", sale_id)
    return sale


def list_sales(
    *,
    product_id: uuid.UUID | None = None,
    location_id: uuid.UUID | None = None,
    user_id: uuid.UUID | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[Sale]:
    query = db.session.query(Sale)
    if product_id is not None:
        query = query.filter(Sale.product_id == product_id)
    if location_id is not None:
        query = query.filter(Sale.location_id == location_id)
    if user_id is not None:
        query = query.filter(Sale.user_id == user_id)
    if start is not None:
        query = query.filter(Sale.sale_date >= start)
    if end is not None:
        query = query.filter(Sale.sale_date <= end)
    query = query.order_by(Sale.sale_date.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def sales_summary(
    start: datetime | None = None,
    end: datetime | None = None,
    *,
    location_id: uuid.UUID | None = None,
) -> dict:
    """Units sold and revenue (cents) in an inclusive date range."""
    if start is not None and end is not None and start > end:
        raise ValidationError("start must be before end")

    query = db.session.query(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.quantity), 0),
        func.coalesce(func.sum(Sale.quantity * Sale.unit_price_cents), 0),
    )
    if start is not None:
        query = query.filter(Sale.sale_date >= start)
    if end is not None:
        query = query.filter(Sale.sale_date <= end)
    if location_id is not None:
        query = query.filter(Sale.location_id == location_id)

    count, units, revenue = query.one()
    return {
        "sale_count": int(count or 0),
        "total_units": int(units or 0),
        "total_revenue_cents": int(revenue or 0),
    }


def top_selling_products(limit: int = 10) -> list[dict]:
    """Products ranked by units sold, highest first."""
    if limit <= 0:
        raise ValidationError("limit must be > 0")

    units = func.sum(Sale.quantity).label("units")
    rows = (
        db.session.query(
            Product.id,
            Product.name,
            units,
            func.sum(Sale.quantity * Sale.unit_price_cents).label("revenue"),
        )
        .join(Sale, Sale.product_id == Product.id)
        .group_by(Product.id, Product.name)
        .order_by(units.desc(), Product.name.asc())
        .limit(limit)
        .all()
    )
    return [
        {
            "product_id": str(product_id),
            "product_name": name,
            "units_sold": int(units_sold or 0),
            "revenue_cents": int(revenue or 0),
        }
        for product_id, name, units_sold, revenue in rows
    ]
