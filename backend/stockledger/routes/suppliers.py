# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

import uuid

from flask import Blueprint, request

from ..extensions import db
from ..models import Supplier
from ..services import supplier_service
from ..validation import ModelValidationPolicy, validate_payload
from .params import json_body

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_info", "phone_number", "email"},
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
def list_suppliers():
    suppliers = supplier_service.list_suppliers(request.args.get("search"))
    return {"items": [s.to_dict() for s in suppliers], "count": len(suppliers)}


@suppliers_bp.post("")
def create_supplier():
    patch = validate_payload(model=Supplier, payload=json_body(), policy=SUPPLIER_POLICY, partial=False)
    supplier = supplier_service.create_supplier(**patch)
    db.session.commit()
    return supplier.to_dict(), 201


@suppliers_bp.get("/<uuid:supplier_id>")
def get_supplier(supplier_id: uuid.UUID):
    return supplier_service.get_supplier(supplier_id).to_dict()


@suppliers_bp.put("/<uuid:supplier_id>")
def update_supplier(supplier_id: uuid.UUID):
    patch = validate_payload(model=Supplier, payload=json_body(), policy=SUPPLIER_POLICY, partial=True)
    supplier = supplier_service.update_supplier(supplier_id, patch=patch)
    db.session.commit()
    return supplier.to_dict()


@suppliers_bp.delete("/<uuid:supplier_id>")
def delete_supplier(supplier_id: uuid.UUID):
    supplier_service.delete_supplier(supplier_id)
    db.session.commit()
    return {"ok": True}, 200
