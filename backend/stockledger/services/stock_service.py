# Overview: Service-layer operations for the stock ledger; the only writer of Stock and StockMovement.

# backend/stockledger/services/stock_service.py

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Location, Product, Stock, StockMovement, User
from ..models.inventory import (
    MOVEMENT_INVENTORY_ADJUSTMENT,
    MOVEMENT_SIGNS,
    MOVEMENT_TYPES,
)
from ..validation import MAX_QUANTITY, InsufficientStockError, ValidationError, enforce_int_range
from .audit_service import record_activity
from .concurrency import lock_for_update, run_with_retry
from .lookup import require_entity, require_optional_entity
from stockledger.time_utils import utcnow
"""
Stock Ledger Invariants (authoritative)

Model:
- Stock holds the current on-hand quantity per (product, location).
- StockMovement is the append-only log of every change to it.
- For every pair: Stock.quantity == SUM(StockMovement.quantity_change).

Mutation:
- apply_adjustment() is the single entry point. It locks the Stock row,
  updates quantity + last_updated, and appends the movement in the same
  DB transaction. Recorders (purchase/sale/transfer/count close) call it;
  nothing else writes Stock or StockMovement, except the explicit
  rebuild_stock_from_movements() repair which re-derives Stock from the log.
- apply_adjustment() never commits and never retries. Callers wrap their
  whole unit of work in run_with_retry() and the route commits once.

Negative stock:
- Movement types listed in STOCK_REJECT_NEGATIVE_TYPES (default SALE,
  TRANSFER_OUT) fail with InsufficientStockError if the result would be < 0.
- Other types (INVENTORY_ADJUSTMENT in particular) may go negative.

Reads:
- A missing Stock row reads as quantity 0; reads never create rows.
- Totals are computed from current rows on every call (no caching).
"""


@dataclass
class AdjustmentResult:
    stock: Stock
    movement: StockMovement

    def to_dict(self) -> dict:
        return {"stock": self.stock.to_dict(), "movement": self.movement.to_dict()}


@dataclass
class LedgerMismatch:
    product_id: uuid.UUID
    location_id: uuid.UUID
    stock_quantity: int | None
    movement_total: int

    def to_dict(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "location_id": str(self.location_id),
            "stock_quantity": self.stock_quantity,
            "movement_total": self.movement_total,
        }


def reject_negative_types() -> set[str]:
    """Movement types that may not drive a stock row below zero (per deployment config)."""
    raw = current_app.config.get("STOCK_REJECT_NEGATIVE_TYPES", "SALE,TRANSFER_OUT")
    items = raw.split(",") if isinstance(raw, str) else raw
    return {str(t).strip().upper() for t in items if t and str(t).strip()}


def _find_stock(product_id: uuid.UUID, location_id: uuid.UUID, *, lock: bool = False) -> Stock | None:
    query = db.session.query(Stock).filter_by(product_id=product_id, location_id=location_id)
    if lock:
        query = lock_for_update(query)
    return query.first()


def get_or_create_stock(product_id: uuid.UUID, location_id: uuid.UUID, *, lock: bool = False) -> Stock:
    """
    Return the Stock row for (product, location), creating it with quantity 0.

    A concurrent creator loses on uq_stock_product_location at flush; the
    IntegrityError is retried by run_with_retry and the next attempt finds
    the winner's row.
    """
    require_entity(Product, product_id, "Product")
    require_entity(Location, location_id, "Location")

    stock = _find_stock(product_id, location_id, lock=lock)
    if stock is None:
        stock = Stock(product_id=product_id, location_id=location_id, quantity=0, last_updated=utcnow())
        db.session.add(stock)
        db.session.flush()
    return stock


def _validate_adjustment(delta, movement_type: str) -> None:
    if movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Invalid movement type: {movement_type}")

    if not isinstance(delta, int) or isinstance(delta, bool):
        raise ValidationError("quantity_change must be an integer")
    if delta == 0:
        raise ValidationError("quantity_change must be non-zero")
    enforce_int_range(delta, "quantity_change")

    sign = MOVEMENT_SIGNS.get(movement_type)
    if sign is not None and (delta > 0) != (sign > 0):
        direction = "positive" if sign > 0 else "negative"
        raise ValidationError(f"quantity_change must be {direction} for {movement_type}")


def apply_adjustment(
    *,
    product_id: uuid.UUID,
    location_id: uuid.UUID,
    delta: int,
    movement_type: str,
    reference_id: uuid.UUID | None = None,
    user_id: uuid.UUID | None = None,
    note: str | None = None,
) -> AdjustmentResult:
    """
    Apply a signed delta to one (product, location) and append its movement.

    Must run inside a caller-owned unit of work (see module notes).

    Raises:
        ValidationError: bad movement type, zero delta, or wrong sign for the type
        NotFoundError: product, location or user missing
        InsufficientStockError: negative result for a rejecting movement type
    """
    _validate_adjustment(delta, movement_type)

    require_entity(Product, product_id, "Product")
    require_entity(Location, location_id, "Location")
    require_optional_entity(User, user_id, "User")

    stock = _find_stock(product_id, location_id, lock=True)
    on_hand = stock.quantity if stock is not None else 0
    new_quantity = on_hand + delta
    if abs(new_quantity) > MAX_QUANTITY:
        raise ValidationError(
            f"Resulting quantity {new_quantity} for product {product_id} at location {location_id} "
            f"is outside +/-{MAX_QUANTITY}"
        )

    if new_quantity < 0 and movement_type in reject_negative_types():
        current_app.logger.warning(
            "Rejected %s of %d for product %s at location %s: on-hand %d",
            movement_type, delta, product_id, location_id, on_hand,
        )
        raise InsufficientStockError(
            product_id=product_id,
            location_id=location_id,
            on_hand=on_hand,
            requested=-delta,
        )

    if stock is None:
        stock = get_or_create_stock(product_id, location_id, lock=True)

    now = utcnow()
    stock.quantity = new_quantity
    stock.last_updated = now

    movement = StockMovement(
        product_id=product_id,
        location_id=location_id,
        quantity_change=delta,
        movement_type=movement_type,
        reference_id=reference_id,
        user_id=user_id,
        note=note,
        movement_date=now,
    )
    db.session.add(movement)
    db.session.flush()  # version check on stock happens here

    current_app.logger.info(
        "Stock %s %+d product=%s location=%s -> %d (ref=%s)",
        movement_type, delta, product_id, location_id, new_quantity, reference_id,
    )
    return AdjustmentResult(stock=stock, movement=movement)


def adjust_stock(
    *,
    product_id: uuid.UUID,
    location_id: uuid.UUID,
    delta: int,
    movement_type: str = MOVEMENT_INVENTORY_ADJUSTMENT,
    reference_id: uuid.UUID | None = None,
    user_id: uuid.UUID | None = None,
    note: str | None = None,
) -> AdjustmentResult:
    """
    Public ledger adjustment: apply_adjustment() as its own retried unit of work.

    Caller commits.
    """
    def _op():
        result = apply_adjustment(
            product_id=product_id,
            location_id=location_id,
            delta=delta,
            movement_type=movement_type,
            reference_id=reference_id,
            user_id=user_id,
            note=note,
        )
        record_activity(
            f"Stock adjusted {movement_type} {delta:+d} product={product_id} location={location_id}",
            user_id=user_id,
        )
        return result

    return run_with_retry(_op)


def get_stock(product_id: uuid.UUID, location_id: uuid.UUID) -> dict:
    """
    Current quantity for (product, location). Missing row reads as zero.
    """
    require_entity(Product, product_id, "Product")
    require_entity(Location, location_id, "Location")

    stock = _find_stock(product_id, location_id)
    if stock is None:
        return {
            "id": None,
            "product_id": str(product_id),
            "location_id": str(location_id),
            "quantity": 0,
            "last_updated": None,
            "version_id": None,
        }
    return stock.to_dict()


def total_for_product(product_id: uuid.UUID) -> int:
    """Sum of quantity across all locations, computed from current rows."""
    require_entity(Product, product_id, "Product")
    total = (
        db.session.query(func.coalesce(func.sum(Stock.quantity), 0))
        .filter(Stock.product_id == product_id)
        .scalar()
    )
    return int(total or 0)


def list_stock(
    *,
    product_id: uuid.UUID | None = None,
    location_id: uuid.UUID | None = None,
) -> list[Stock]:
    query = db.session.query(Stock)
    if product_id is not None:
        query = query.filter(Stock.product_id == product_id)
    if location_id is not None:
        query = query.filter(Stock.location_id == location_id)
    return query.order_by(Stock.last_updated.desc()).all()


def list_low_stock(threshold: int, *, location_id: uuid.UUID | None = None) -> list[Stock]:
    """Stock rows strictly below threshold, lowest first."""
    if not isinstance(threshold, int) or isinstance(threshold, bool):
        raise ValidationError("threshold must be an integer")
    query = db.session.query(Stock).filter(Stock.quantity < threshold)
    if location_id is not None:
        query = query.filter(Stock.location_id == location_id)
    return query.order_by(Stock.quantity.asc()).all()


def list_movements(
    *,
    product_id: uuid.UUID | None = None,
    location_id: uuid.UUID | None = None,
    movement_type: str | None = None,
    reference_id: uuid.UUID | None = None,
    user_id: uuid.UUID | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[StockMovement]:
    """
    Movement log query, newest first. Date bounds are inclusive.
    """
    if movement_type is not None and movement_type not in MOVEMENT_TYPES:
        raise ValidationError(f"Invalid movement type: {movement_type}")
    if start is not None and end is not None and start > end:
        raise ValidationError("start must be before end")

    query = db.session.query(StockMovement)
    if product_id is not None:
        query = query.filter(StockMovement.product_id == product_id)
    if location_id is not None:
        query = query.filter(StockMovement.location_id == location_id)
    if movement_type is not None:
        query = query.filter(StockMovement.movement_type == movement_type)
    if reference_id is not None:
        query = query.filter(StockMovement.reference_id == reference_id)
    if user_id is not None:
        query = query.filter(StockMovement.user_id == user_id)
    if start is not None:
        query = query.filter(StockMovement.movement_date >= start)
    if end is not None:
        query = query.filter(StockMovement.movement_date <= end)

    query = query.order_by(StockMovement.movement_date.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def movement_total(product_id: uuid.UUID, location_id: uuid.UUID | None = None) -> int:
    """SUM(quantity_change) for a product, optionally at one location."""
    query = db.session.query(func.coalesce(func.sum(StockMovement.quantity_change), 0)).filter(
        StockMovement.product_id == product_id
    )
    if location_id is not None:
        query = query.filter(StockMovement.location_id == location_id)
    return int(query.scalar() or 0)


def verify_ledger() -> list[LedgerMismatch]:
    """
    Compare every Stock row with the sum of its movements.

    Also reports movement sums with no Stock row at all (non-zero only).
    An empty list means the ledger is consistent.
    """
    sums = (
        db.session.query(
            StockMovement.product_id,
            StockMovement.location_id,
            func.sum(StockMovement.quantity_change),
        )
        .group_by(StockMovement.product_id, StockMovement.location_id)
        .all()
    )
    totals = {(p, l): int(total or 0) for p, l, total in sums}

    mismatches: list[LedgerMismatch] = []
    for stock in db.session.query(Stock).all():
        expected = totals.pop((stock.product_id, stock.location_id), 0)
        if stock.quantity != expected:
            mismatches.append(
                LedgerMismatch(
                    product_id=stock.product_id,
                    location_id=stock.location_id,
                    stock_quantity=stock.quantity,
                    movement_total=expected,
                )
            )

    for (product_id, location_id), total in totals.items():
        if total != 0:
            mismatches.append(
                LedgerMismatch(
                    product_id=product_id,
                    location_id=location_id,
                    stock_quantity=None,
                    movement_total=total,
                )
            )

    return mismatches


def rebuild_stock_from_movements() -> int:
    """
    Repair: re-derive Stock.quantity from the movement log for every mismatch.

    The log is the source of truth. Returns the number of rows corrected.
    Caller commits.
    """
    def _op():
        fixed = 0
        for mismatch in verify_ledger():
            stock = _find_stock(mismatch.product_id, mismatch.location_id, lock=True)
            if stock is None:
                stock = Stock(
                    product_id=mismatch.product_id,
                    location_id=mismatch.location_id,
                    quantity=0,
                )
                db.session.add(stock)
            stock.quantity = mismatch.movement_total
            stock.last_updated = utcnow()
            fixed += 1
        db.session.flush()
        if fixed:
            current_app.logger.warning("Rebuilt %d stock rows from movement log", fixed)
            record_activity(f"Stock ledger rebuilt from movements ({fixed} rows)")
        return fixed

    return run_with_retry(_op)
