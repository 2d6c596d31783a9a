# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/stockledger/routes/products.py
"""
Product catalog routes: CRUD, barcode lookup, filters and tag assignment.
"""
import uuid

from flask import Blueprint, request

from ..extensions import db
from ..models import Product
from ..services import products_service, stock_service
from ..validation import ModelValidationPolicy, ValidationError, parse_uuid, validate_payload
from .params import arg_bool, arg_uuid, json_body

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "barcode", "unit", "description", "category_id"},
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _tag_ids(payload: dict) -> list[uuid.UUID]:
    raw = payload.pop("tag_ids", None)
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("tag_ids must be a list")
    return [parse_uuid(v, "tag_ids") for v in raw]


@products_bp.get("")
def list_products():
    """
    List products.

    Query params:
    - category_id: UUID (optional)
    - tag_id: UUID (optional)
    - unit: str (optional)
    - search: str (optional) - name substring
    - stocked: bool (optional) - true = has stock > 0 somewhere, false = none
    """
    products = products_service.list_products(
        category_id=arg_uuid("category_id"),
        tag_id=arg_uuid("tag_id"),
        unit=request.args.get("unit"),
        search=request.args.get("search"),
        stocked=arg_bool("stocked"),
    )
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.post("")
def create_product_route():
    """
    Create a new product.

    Request body:
    {
        "name": str,
        "barcode": str (optional, unique),
        "unit": str (optional),
        "description": str (optional),
        "category_id": UUID (optional),
        "tag_ids": [UUID] (optional)
    }
    """
    payload = dict(json_body())
    tag_ids = _tag_ids(payload)
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)

    product = products_service.create_product(patch=patch, tag_ids=tag_ids)
    db.session.commit()
    return product.to_dict(), 201


@products_bp.get("/barcode/<string:barcode>")
def get_by_barcode(barcode: str):
    return products_service.get_product_by_barcode(barcode).to_dict()


@products_bp.get("/<uuid:product_id>")
def get_product(product_id: uuid.UUID):
    return products_service.get_product(product_id).to_dict()


@products_bp.put("/<uuid:product_id>")
def update_product_route(product_id: uuid.UUID):
    patch = validate_payload(model=Product, payload=json_body(), policy=PRODUCT_POLICY, partial=True)
    product = products_service.update_product(product_id, patch=patch)
    db.session.commit()
    return product.to_dict()


@products_bp.delete("/<uuid:product_id>")
def delete_product_route(product_id: uuid.UUID):
    """Refused (400) once the product has stock rows."""
    products_service.delete_product(product_id)
    db.session.commit()
    return {"ok": True}, 200


@products_bp.post("/<uuid:product_id>/tags/<uuid:tag_id>")
def add_tag(product_id: uuid.UUID, tag_id: uuid.UUID):
    product = products_service.add_tag(product_id, tag_id)
    db.session.commit()
    return product.to_dict()


@products_bp.delete("/<uuid:product_id>/tags/<uuid:tag_id>")
def remove_tag(product_id: uuid.UUID, tag_id: uuid.UUID):
    product = products_service.remove_tag(product_id, tag_id)
    db.session.commit()
    return product.to_dict()


@products_bp.get("/<uuid:product_id>/stock")
def product_stock(product_id: uuid.UUID):
    """Stock rows for the product at every location, plus the total."""
    products_service.get_product(product_id)
    rows = stock_service.list_stock(product_id=product_id)
    return {
        "product_id": str(product_id),
        "total_quantity": stock_service.total_for_product(product_id),
        "items": [r.to_dict() for r in rows],
    }
