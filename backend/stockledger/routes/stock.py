# Overview: Flask API routes for the stock ledger; parses input and returns JSON responses.

# backend/stockledger/routes/stock.py
"""
Stock ledger routes.

Reads never create stock rows. POST /adjust is the only write here and goes
through stock_service.adjust_stock (ledger row + movement in one commit).
"""
import uuid

from flask import Blueprint, request

from ..extensions import db
from ..models.inventory import MOVEMENT_INVENTORY_ADJUSTMENT
from ..services import stock_service
from ..validation import ValidationError, optional_text, parse_optional_uuid, parse_uuid
from .params import arg_datetime, arg_int, arg_limit, arg_uuid, json_body

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.get("")
def get_stock():
    """
    Current quantity for one product at one location.

    Query params:
    - product_id: UUID (required)
    - location_id: UUID (required)

    A pair with no stock row reads as quantity 0.
    """
    product_id = parse_uuid(request.args.get("product_id"), "product_id")
    location_id = parse_uuid(request.args.get("location_id"), "location_id")
    return stock_service.get_stock(product_id, location_id)


@stock_bp.post("/adjust")
def adjust_stock():
    """
    Apply a manual stock adjustment.

    Request body:
    {
        "product_id": UUID,
        "location_id": UUID,
        "quantity_change": int,        // non-zero, signed
        "movement_type": str,          // optional, default INVENTORY_ADJUSTMENT
        "reference_id": UUID,          // optional
        "user_id": UUID,               // optional
        "note": str                    // optional
    }

    Returns:
        201: {"stock": {...}, "movement": {...}}
        400: Invalid request
        404: Product, location or user not found
        409: Insufficient stock or concurrent update conflict
    """
    payload = json_body()

    if "quantity_change" not in payload:
        raise ValidationError("quantity_change is required")

    result = stock_service.adjust_stock(
        product_id=parse_uuid(payload.get("product_id"), "product_id"),
        location_id=parse_uuid(payload.get("location_id"), "location_id"),
        delta=payload.get("quantity_change"),
        movement_type=str(payload.get("movement_type") or MOVEMENT_INVENTORY_ADJUSTMENT).strip().upper(),
        reference_id=parse_optional_uuid(payload.get("reference_id"), "reference_id"),
        user_id=parse_optional_uuid(payload.get("user_id"), "user_id"),
        note=optional_text(payload.get("note"), "note", max_length=255),
    )
    db.session.commit()
    return result.to_dict(), 201


@stock_bp.get("/products/<uuid:product_id>/total")
def total_stock(product_id: uuid.UUID):
    """Total on-hand across all locations."""
    return {
        "product_id": str(product_id),
        "total_quantity": stock_service.total_for_product(product_id),
    }


@stock_bp.get("/levels")
def list_levels():
    """Stock rows, optionally filtered by product_id / location_id."""
    rows = stock_service.list_stock(product_id=arg_uuid("product_id"), location_id=arg_uuid("location_id"))
    return {"items": [r.to_dict() for r in rows], "count": len(rows)}


@stock_bp.get("/low")
def list_low():
    """Stock rows with quantity strictly below ?threshold= (default 10)."""
    threshold = arg_int("threshold", 10)
    rows = stock_service.list_low_stock(threshold, location_id=arg_uuid("location_id"))
    return {"threshold": threshold, "items": [r.to_dict() for r in rows], "count": len(rows)}


@stock_bp.get("/movements")
def list_movements():
    """
    Movement log, newest first.

    Query params: product_id, location_id, movement_type, reference_id,
    user_id, start, end (ISO-8601, inclusive), limit.
    """
    movement_type = request.args.get("movement_type")
    movements = stock_service.list_movements(
        product_id=arg_uuid("product_id"),
        location_id=arg_uuid("location_id"),
        movement_type=movement_type.strip().upper() if movement_type else None,
        reference_id=arg_uuid("reference_id"),
        user_id=arg_uuid("user_id"),
        start=arg_datetime("start"),
        end=arg_datetime("end", end_of_day=True),
        limit=arg_limit(),
    )
    return {"items": [m.to_dict() for m in movements], "count": len(movements)}


@stock_bp.get("/verify")
def verify_ledger():
    """Compare every stock row with its movement sum."""
    mismatches = stock_service.verify_ledger()
    return {
        "consistent": not mismatches,
        "mismatches": [m.to_dict() for m in mismatches],
    }
