# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/stockledger/routes/sales.py
import uuid

from flask import Blueprint

from ..extensions import db
from ..models import Sale
from ..services import sale_service
from ..validation import ModelValidationPolicy, validate_payload
from .params import arg_datetime, arg_int, arg_limit, arg_uuid, json_body

SALE_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "location_id", "user_id", "quantity", "unit_price_cents", "sale_date"},
    required_on_create={"product_id", "location_id", "user_id", "quantity", "unit_price_cents"},
)

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.post("")
def record_sale():
    """
    Record a sale.

    Request body:
    {
        "product_id": UUID,
        "location_id": UUID,
        "user_id": UUID,
        "quantity": int,           // > 0
        "unit_price_cents": int,   // >= 0
        "sale_date": ISO-8601      // optional, default now
    }

    Returns:
        201: Sale created (stock decreased, one SALE movement)
        400: Invalid request
        404: Referenced entity not found
        409: Insufficient stock
    """
    patch = validate_payload(model=Sale, payload=json_body(), policy=SALE_POLICY, partial=False)
    sale = sale_service.record_sale(**patch)
    db.session.commit()
    return sale.to_dict(), 201


@sales_bp.get("")
def list_sales():
    sales = sale_service.list_sales(
        product_id=arg_uuid("product_id"),
        location_id=arg_uuid("location_id"),
        user_id=arg_uuid("user_id"),
        start=arg_datetime("start"),
        end=arg_datetime("end", end_of_day=True),
        limit=arg_limit(),
    )
    return {"items": [s.to_dict() for s in sales], "count": len(sales)}


@sales_bp.get("/summary")
def sales_summary():
    """Units sold and revenue between ?start= and ?end= (inclusive)."""
    return sale_service.sales_summary(
        arg_datetime("start"),
        arg_datetime("end", end_of_day=True),
        location_id=arg_uuid("location_id"),
    )


@sales_bp.get("/top")
def top_selling():
    items = sale_service.top_selling_products(arg_int("limit", 10))
    return {"items": items, "count": len(items)}


@sales_bp.get("/<uuid:sale_id>")
def get_sale(sale_id: uuid.UUID):
    return sale_service.get_sale(sale_id).to_dict()
