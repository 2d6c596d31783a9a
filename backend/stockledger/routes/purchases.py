# Overview: Flask API routes for purchases; parses input and returns JSON responses.

# backend/stockledger/routes/purchases.py
import uuid

from flask import Blueprint

from ..extensions import db
from ..models import Purchase
from ..services import purchase_service
from ..validation import ModelValidationPolicy, ValidationError, validate_payload
from .params import arg_date, arg_datetime, arg_limit, arg_uuid, json_body

PURCHASE_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id", "supplier_id", "location_id", "user_id", "quantity",
        "unit_cost_cents", "batch_number", "expiry_date", "purchase_date",
    },
    required_on_create={"product_id", "supplier_id", "location_id", "quantity", "unit_cost_cents"},
)

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.post("")
def record_purchase():
    """
    Record goods received from a supplier.

    Request body:
    {
        "product_id": UUID,
        "supplier_id": UUID,
        "location_id": UUID,
        "quantity": int,             // > 0
        "unit_cost_cents": int,      // >= 0
        "user_id": UUID,             // optional
        "batch_number": str,         // optional
        "expiry_date": "YYYY-MM-DD", // optional
        "purchase_date": ISO-8601    // optional, default now
    }

    Returns:
        201: Purchase created (stock increased, one PURCHASE movement)
        400: Invalid request
        404: Referenced entity not found
    """
    patch = validate_payload(model=Purchase, payload=json_body(), policy=PURCHASE_POLICY, partial=False)
    purchase = purchase_service.record_purchase(**patch)
    db.session.commit()
    return purchase.to_dict(), 201


@purchases_bp.get("")
def list_purchases():
    purchases = purchase_service.list_purchases(
        product_id=arg_uuid("product_id"),
        supplier_id=arg_uuid("supplier_id"),
        location_id=arg_uuid("location_id"),
        start=arg_datetime("start"),
        end=arg_datetime("end", end_of_day=True),
        limit=arg_limit(),
    )
    return {"items": [p.to_dict() for p in purchases], "count": len(purchases)}


@purchases_bp.get("/summary")
def purchase_summary():
    """Units and value received between ?start= and ?end= (inclusive)."""
    return purchase_service.purchase_summary(arg_datetime("start"), arg_datetime("end", end_of_day=True))


@purchases_bp.get("/expiring")
def list_expiring():
    """Purchases whose batch expires on or before ?before=YYYY-MM-DD."""
    before = arg_date("before")
    if before is None:
        raise ValidationError("before is required")
    purchases = purchase_service.list_expiring_purchases(before)
    return {"items": [p.to_dict() for p in purchases], "count": len(purchases)}


@purchases_bp.get("/<uuid:purchase_id>")
def get_purchase(purchase_id: uuid.UUID):
    return purchase_service.get_purchase(purchase_id).to_dict()
