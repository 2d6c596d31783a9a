# Overview: Flask API routes for product categories; parses input and returns JSON responses.

import uuid

from flask import Blueprint, request

from ..extensions import db
from ..models import Category
from ..services import category_service
from ..validation import ModelValidationPolicy, validate_payload
from .params import json_body

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description"},
    required_on_create={"name"},
)

categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")


@categories_bp.get("")
def list_categories():
    search = request.args.get("search")
    if search:
        categories = category_service.search_categories(search)
    else:
        categories = category_service.list_categories()
    return {"items": [c.to_dict() for c in categories], "count": len(categories)}


@categories_bp.get("/with-products")
def list_categories_with_products():
    """Categories with their products nested under "products"."""
    items = category_service.list_categories_with_products()
    return {"items": items, "count": len(items)}


@categories_bp.post("")
def create_category():
    patch = validate_payload(model=Category, payload=json_body(), policy=CATEGORY_POLICY, partial=False)
    category = category_service.create_category(**patch)
    db.session.commit()
    return category.to_dict(), 201


@categories_bp.get("/<uuid:category_id>")
def get_category(category_id: uuid.UUID):
    return category_service.get_category(category_id).to_dict()


@categories_bp.put("/<uuid:category_id>")
def update_category(category_id: uuid.UUID):
    patch = validate_payload(model=Category, payload=json_body(), policy=CATEGORY_POLICY, partial=True)
    category = category_service.update_category(category_id, patch=patch)
    db.session.commit()
    return category.to_dict()


@categories_bp.delete("/<uuid:category_id>")
def delete_category(category_id: uuid.UUID):
    category_service.delete_category(category_id)
    db.session.commit()
    return {"ok": True}, 200
