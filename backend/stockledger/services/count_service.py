# backend/stockledger/services/count_service.py
"""
Physical inventory count (reconciliation) service.

Compares the ledger quantity snapshotted when a line is added (expected)
with the physical count (counted) and posts each non-zero difference as an
INVENTORY_ADJUSTMENT movement when the session closes.

LIFECYCLE:
1. OPEN: lines added and counted; recounts overwrite (last write wins)
2. CLOSED: discrepancies posted to the ledger (terminal, never reopened)

At most one OPEN session per location.
"""
from __future__ import annotations

import uuid

from flask import current_app

from ..extensions import db
from ..models import InventoryLine, InventorySession, Location, Product, User
from ..models.counts import SESSION_STATUS_CLOSED, SESSION_STATUS_OPEN
from ..models.inventory import MOVEMENT_INVENTORY_ADJUSTMENT
from ..validation import (
    DuplicateResourceError,
    NotFoundError,
    ValidationError,
    enforce_int_range,
    optional_text,
)
from .audit_service import record_activity
from .concurrency import lock_for_update, run_with_retry
from .lookup import require_entity, require_optional_entity
from .stock_service import apply_adjustment, get_stock
from stockledger.time_utils import utcnow

SESSION_STATUSES = (SESSION_STATUS_OPEN, SESSION_STATUS_CLOSED)


def _lock_session(session_id: uuid.UUID) -> InventorySession:
    session = lock_for_update(db.session.query(InventorySession).filter_by(id=session_id)).first()
    if session is None:
        raise NotFoundError("InventorySession", session_id)
    return session


def _require_open(session: InventorySession, action: str) -> None:
    if not session.is_open:
        raise ValidationError(f"Cannot {action} inventory session in {session.status} status")


def open_session(location_id: uuid.UUID, user_id: uuid.UUID, note: str | None = None) -> InventorySession:
    """
    Open a count at a location.

    Args:
        location_id: Location being counted
        user_id: User starting the count
        note: Optional free text

    Returns:
        InventorySession: The new OPEN session

    Raises:
        NotFoundError: Location or user missing
        DuplicateResourceError: An OPEN session already exists for the location
    """
    note = optional_text(note, "note")

    def _op():
        # Location row lock serializes concurrent openers
        require_entity(Location, location_id, "Location", lock=True)
        require_entity(User, user_id, "User")

        existing = (
            db.session.query(InventorySession)
            .filter_by(location_id=location_id, status=SESSION_STATUS_OPEN)
            .first()
        )
        if existing is not None:
            current_app.logger.warning(
                "Refused second open inventory session at location %s (open: %s)",
                location_id, existing.id,
            )
            raise DuplicateResourceError(
                f"Location {location_id} already has an open inventory session ({existing.id})"
            )

        session = InventorySession(
            location_id=location_id,
            started_by_user_id=user_id,
            status=SESSION_STATUS_OPEN,
            note=note,
            start_time=utcnow(),
        )
        db.session.add(session)
        db.session.flush()  # partial unique index backs up the pre-check

        record_activity(f"Inventory session {session.id} opened at location {location_id}", user_id=user_id)
        current_app.logger.info("Opened inventory session %s at location %s", session.id, location_id)
        return session

    return run_with_retry(_op)


def add_line(session_id: uuid.UUID, product_id: uuid.UUID, note: str | None = None) -> InventoryLine:
    """
    Add a product to an OPEN session, snapshotting its current ledger quantity.

    Raises:
        NotFoundError: Session or product missing
        ValidationError: Session is not OPEN
        DuplicateResourceError: Product already on this session
    """
    note = optional_text(note, "note")

    def _op():
        session = _lock_session(session_id)
        _require_open(session, "add lines to")
        require_entity(Product, product_id, "Product")

        existing = (
            db.session.query(InventoryLine)
            .filter_by(session_id=session_id, product_id=product_id)
            .first()
        )
        if existing is not None:
            raise DuplicateResourceError(f"Product {product_id} is already on inventory session {session_id}")

        expected = get_stock(product_id, session.location_id)["quantity"]

        line = InventoryLine(
            session_id=session_id,
            product_id=product_id,
            expected_quantity=expected,
            counted_quantity=None,
            note=note,
            created_at=utcnow(),
        )
        db.session.add(line)
        db.session.flush()
        return line

    return run_with_retry(_op)


def record_count(line_id: uuid.UUID, counted_quantity: int, note: str | None = None) -> InventoryLine:
    """
    Set the physical count for a line. Recounting overwrites the previous value.

    Raises:
        NotFoundError: Line missing
        ValidationError: Negative/non-integer count, or session not OPEN
    """
    if not isinstance(counted_quantity, int) or isinstance(counted_quantity, bool):
        raise ValidationError("counted_quantity must be an integer")
    if counted_quantity < 0:
        raise ValidationError("counted_quantity cannot be negative")
    enforce_int_range(counted_quantity, "counted_quantity")
    note = optional_text(note, "note")

    def _op():
        line = db.session.get(InventoryLine, line_id)
        if line is None:
            raise NotFoundError("InventoryLine", line_id)

        session = _lock_session(line.session_id)
        _require_open(session, "record counts on")

        line.counted_quantity = counted_quantity
        line.counted_at = utcnow()
        if note is not None:
            line.note = note
        db.session.flush()
        return line

    return run_with_retry(_op)


def close_session(session_id: uuid.UUID, user_id: uuid.UUID | None = None) -> InventorySession:
    """
    Close a session, posting every counted discrepancy to the ledger.

    Each counted line with difference != 0 gets one INVENTORY_ADJUSTMENT
    movement (delta = difference, reference_id = line id). Uncounted lines
    are left alone. All adjustments and the status change commit together.

    Raises:
        NotFoundError: Session or user missing
        ValidationError: Session already CLOSED
    """
    def _op():
        session = _lock_session(session_id)
        _require_open(session, "close")
        require_optional_entity(User, user_id, "User")

        adjusted = 0
        for line in session.lines:
            if not line.has_discrepancy:
                continue

            result = apply_adjustment(
                product_id=line.product_id,
                location_id=session.location_id,
                delta=line.difference,
                movement_type=MOVEMENT_INVENTORY_ADJUSTMENT,
                reference_id=line.id,
                user_id=user_id,
                note=f"Inventory session {session.id} discrepancy: {line.difference:+d}",
            )
            line.adjustment_movement_id = result.movement.id
            adjusted += 1

        session.status = SESSION_STATUS_CLOSED
        session.end_time = utcnow()
        session.closed_by_user_id = user_id
        db.session.flush()

        record_activity(
            f"Inventory session {session.id} closed with {adjusted} adjustment(s)",
            user_id=user_id,
        )
        current_app.logger.info("Closed inventory session %s (%d adjustments)", session.id, adjusted)
        return session

    return run_with_retry(_op)


def get_session(session_id: uuid.UUID) -> InventorySession:
    session = db.session.get(InventorySession, session_id)
    if session is None:
        raise NotFoundError("InventorySession", session_id)
    return session


def get_session_summary(session_id: uuid.UUID) -> dict:
    """
    Session with its lines and count totals.

    Returns:
        dict: session fields, "lines" and "totals"
    """
    session = get_session(session_id)
    lines = list(session.lines)
    counted = [line for line in lines if line.counted_quantity is not None]

    totals = {
        "line_count": len(lines),
        "counted_count": len(counted),
        "uncounted_count": len(lines) - len(counted),
        "total_expected": sum(line.expected_quantity for line in lines),
        "total_counted": sum(line.counted_quantity for line in counted),
        "total_discrepancy": sum(line.difference for line in counted),
        "surplus_lines": sum(1 for line in counted if line.is_surplus),
        "shortage_lines": sum(1 for line in counted if line.is_shortage),
    }
    return {
        **session.to_dict(),
        "lines": [line.to_dict() for line in lines],
        "totals": totals,
    }


def list_sessions(*, location_id: uuid.UUID | None = None, status: str | None = None) -> list[InventorySession]:
    if status is not None and status not in SESSION_STATUSES:
        raise ValidationError(f"Invalid session status: {status}")

    query = db.session.query(InventorySession)
    if location_id is not None:
        query = query.filter(InventorySession.location_id == location_id)
    if status is not None:
        query = query.filter(InventorySession.status == status)
    return query.order_by(InventorySession.start_time.desc()).all()


def list_discrepancies(session_id: uuid.UUID) -> list[InventoryLine]:
    """Counted lines whose count differs from the snapshot."""
    session = get_session(session_id)
    return [line for line in session.lines if line.has_discrepancy]
