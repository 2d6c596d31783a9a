# Overview: Flask API routes for inventory count sessions; parses input and returns JSON responses.

# backend/stockledger/routes/counts.py
"""
Physical inventory count API routes.

OPEN -> CLOSED, one way. Closing posts every counted discrepancy as an
INVENTORY_ADJUSTMENT movement.
"""
import uuid

from flask import Blueprint, request

from ..extensions import db
from ..services import count_service
from ..validation import ValidationError, optional_text, parse_optional_uuid, parse_uuid
from .params import arg_uuid, json_body

counts_bp = Blueprint("counts", __name__, url_prefix="/api/inventory-sessions")


@counts_bp.post("")
def open_session():
    """
    Open a count at a location.

    Request body:
    {
        "location_id": UUID,
        "user_id": UUID,
        "note": str (optional)
    }

    Returns:
        201: Session opened
        400: Invalid request
        404: Location or user not found
        409: Location already has an open session
    """
    data = json_body()
    session = count_service.open_session(
        parse_uuid(data.get("location_id"), "location_id"),
        parse_uuid(data.get("user_id"), "user_id"),
        note=optional_text(data.get("note"), "note"),
    )
    db.session.commit()
    return session.to_dict(), 201


@counts_bp.get("")
def list_sessions():
    status = request.args.get("status")
    sessions = count_service.list_sessions(
        location_id=arg_uuid("location_id"),
        status=status.strip().upper() if status else None,
    )
    return {"items": [s.to_dict() for s in sessions], "count": len(sessions)}


@counts_bp.get("/<uuid:session_id>")
def get_session(session_id: uuid.UUID):
    """Session with lines and totals."""
    return count_service.get_session_summary(session_id)


@counts_bp.get("/<uuid:session_id>/discrepancies")
def list_discrepancies(session_id: uuid.UUID):
    lines = count_service.list_discrepancies(session_id)
    return {"items": [line.to_dict() for line in lines], "count": len(lines)}


@counts_bp.post("/<uuid:session_id>/lines")
def add_line(session_id: uuid.UUID):
    """
    Add a product to the count. Expected quantity is snapshotted from the ledger.

    Request body:
    {
        "product_id": UUID,
        "note": str (optional)
    }

    Returns:
        201: Line added
        400: Session not open
        404: Session or product not found
        409: Product already on this session
    """
    data = json_body()
    line = count_service.add_line(
        session_id,
        parse_uuid(data.get("product_id"), "product_id"),
        note=optional_text(data.get("note"), "note"),
    )
    db.session.commit()
    return line.to_dict(), 201


@counts_bp.put("/lines/<uuid:line_id>")
def record_count(line_id: uuid.UUID):
    """
    Record (or overwrite) the physical count for a line.

    Request body:
    {
        "counted_quantity": int,  // >= 0
        "note": str (optional)
    }
    """
    data = json_body()
    if "counted_quantity" not in data:
        raise ValidationError("counted_quantity is required")

    line = count_service.record_count(
        line_id,
        data.get("counted_quantity"),
        note=optional_text(data.get("note"), "note"),
    )
    db.session.commit()
    return line.to_dict()


@counts_bp.post("/<uuid:session_id>/close")
def close_session(session_id: uuid.UUID):
    """
    Close the session and post discrepancies.

    Request body (optional):
    {
        "user_id": UUID
    }

    Returns:
        200: Session summary after close
        400: Session already closed
        404: Session or user not found
    """
    data = json_body()
    count_service.close_session(session_id, parse_optional_uuid(data.get("user_id"), "user_id"))
    db.session.commit()
    return count_service.get_session_summary(session_id)
