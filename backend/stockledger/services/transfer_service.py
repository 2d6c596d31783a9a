# backend/stockledger/services/transfer_service.py
"""
Inter-location transfer service.

A transfer moves stock from one location to another in a single step:
1. TRANSFER_OUT (-quantity) at the source location
2. TRANSFER_IN (+quantity) at the destination location

Both movements reference the transfer id and are applied in one DB
transaction. If the source leg fails (e.g. insufficient stock) nothing is
written: no transfer row and no movement at either location.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Location, Product, Transfer, User
from ..models.inventory import MOVEMENT_TRANSFER_IN, MOVEMENT_TRANSFER_OUT
from ..validation import NotFoundError, ValidationError, optional_text, require_positive_quantity
from .audit_service import record_activity
from .concurrency import run_with_retry
from .lookup import require_entity
from .stock_service import apply_adjustment


def record_transfer(
    *,
    product_id: uuid.UUID,
    from_location_id: uuid.UUID,
    to_location_id: uuid.UUID,
    user_id: uuid.UUID,
    quantity: int,
    note: str | None = None,
    transfer_date: datetime | None = None,
) -> Transfer:
    """
    Move stock between two locations.

    Args:
        product_id: Product being moved
        from_location_id: Source location
        to_location_id: Destination location (must differ from source)
        user_id: User performing the transfer
        quantity: Units moved (> 0)
        note: Optional free text
        transfer_date: Defaults to now

    Returns:
        Transfer: The persisted transfer (flushed, not committed)

    Raises:
        ValidationError: Same location, bad quantity
        NotFoundError: Product, either location or user missing
        InsufficientStockError: Source cannot cover the quantity (default policy)
    """
    require_positive_quantity(quantity)
    if from_location_id == to_location_id:
        raise ValidationError("Cannot transfer to the same location")
    note = optional_text(note, "note")

    def _op():
        require_entity(Product, product_id, "Product")
        require_entity(Location, from_location_id, "Location")
        require_entity(Location, to_location_id, "Location")
        require_entity(User, user_id, "User")

        transfer = Transfer(
            product_id=product_id,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            user_id=user_id,
            quantity=quantity,
            note=note,
        )
        if transfer_date is not None:
            transfer.transfer_date = transfer_date

        db.session.add(transfer)
        db.session.flush()  # Get ID

        apply_adjustment(
            product_id=product_id,
            location_id=from_location_id,
            delta=-quantity,
            movement_type=MOVEMENT_TRANSFER_OUT,
            reference_id=transfer.id,
            user_id=user_id,
            note=note,
        )
        apply_adjustment(
            product_id=product_id,
            location_id=to_location_id,
            delta=quantity,
            movement_type=MOVEMENT_TRANSFER_IN,
            reference_id=transfer.id,
            user_id=user_id,
            note=note,
        )

        record_activity(
            f"Transfer {transfer.id}: {quantity} x product {product_id} "
            f"from {from_location_id} to {to_location_id}",
            user_id=user_id,
        )
        current_app.logger.info(
            "Recorded transfer %s: %d units %s -> %s",
            transfer.id, quantity, from_location_id, to_location_id,
        )
        return transfer

    return run_with_retry(_op)


def get_transfer(transfer_id: uuid.UUID) -> Transfer:
    transfer = db.session.get(Transfer, transfer_id)
    if transfer is None:
        raise NotFoundError("Transfer", transfer_id)
    return transfer


def list_transfers(
    *,
    product_id: uuid.UUID | None = None,
    location_id: uuid.UUID | None = None,
    user_id: uuid.UUID | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[Transfer]:
    """List transfers; location_id matches either end of the transfer."""
    query = db.session.query(Transfer)
    if product_id is not None:
        query = query.filter(Transfer.product_id == product_id)
    if location_id is not None:
        query = query.filter(
            or_(Transfer.from_location_id == location_id, Transfer.to_location_id == location_id)
        )
    if user_id is not None:
        query = query.filter(Transfer.user_id == user_id)
    if start is not None:
        query = query.filter(Transfer.transfer_date >= start)
    if end is not None:
        query = query.filter(Transfer.transfer_date <= end)
    query = query.order_by(Transfer.transfer_date.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()
