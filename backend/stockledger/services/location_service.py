# Overview: Service-layer operations for stock locations.

"""
Location Service

Locations key every stock row, movement and inventory session. A location
can only be deleted while nothing references it; there is no cascade.
"""
from __future__ import annotations

import uuid

from flask import current_app

from ..extensions import db
from ..models import InventorySession, Location, Stock, StockMovement
from ..validation import DuplicateResourceError, NotFoundError, ValidationError, optional_text, require_text
from .audit_service import record_activity


def _ensure_unique_name(name: str, *, exclude_id: uuid.UUID | None = None) -> None:
    query = db.session.query(Location).filter(Location.name == name)
    if exclude_id is not None:
        query = query.filter(Location.id != exclude_id)
    if query.first() is not None:
        raise DuplicateResourceError.for_field("Location", "name", name)


def get_location(location_id: uuid.UUID) -> Location:
    location = db.session.get(Location, location_id)
    if location is None:
        raise NotFoundError("Location", location_id)
    return location


def list_locations() -> list[Location]:
    return db.session.query(Location).order_by(Location.name.asc()).all()


def search_locations(term: str) -> list[Location]:
    term = (term or "").strip()
    if not term:
        return list_locations()
    return (
        db.session.query(Location)
        .filter(Location.name.ilike(f"%{term}%"))
        .order_by(Location.name.asc())
        .all()
    )


def create_location(*, name: str, address: str | None = None) -> Location:
    name = require_text(name, "name", max_length=100)
    address = optional_text(address, "address")
    _ensure_unique_name(name)

    location = Location(name=name, address=address)
    db.session.add(location)
    db.session.flush()

    record_activity(f"Location created: {name}")
    current_app.logger.info("Created location %s (%s)", location.id, name)
    return location


def update_location(location_id: uuid.UUID, *, patch: dict) -> Location:
    location = get_location(location_id)

    if "name" in patch:
        name = require_text(patch["name"], "name", max_length=100)
        _ensure_unique_name(name, exclude_id=location.id)
        location.name = name
    if "address" in patch:
        location.address = optional_text(patch["address"], "address")

    db.session.flush()
    return location


def delete_location(location_id: uuid.UUID) -> None:
    """
    Delete a location with no stock rows, movements or inventory sessions.

    Raises:
        NotFoundError: Location missing
        ValidationError: Location still referenced
    """
    location = get_location(location_id)

    references = {
        "stock rows": db.session.query(Stock.id).filter(Stock.location_id == location.id).count(),
        "movements": db.session.query(StockMovement.id).filter(StockMovement.location_id == location.id).count(),
        "inventory sessions": db.session.query(InventorySession.id)
        .filter(InventorySession.location_id == location.id)
        .count(),
    }
    in_use = [f"{count} {label}" for label, count in references.items() if count]
    if in_use:
        raise ValidationError(f"Cannot delete location '{location.name}': it has {', '.join(in_use)}")

    db.session.delete(location)
    db.session.flush()
    record_activity(f"Location deleted: {location.name}")
    current_app.logger.info("Deleted location %s", location_id)
