# Overview: Flask API routes for stock locations; parses input and returns JSON responses.

import uuid

from flask import Blueprint, request

from ..extensions import db
from ..models import Location
from ..services import location_service, stock_service
from ..validation import ModelValidationPolicy, validate_payload
from .params import json_body

LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address"},
    required_on_create={"name"},
)

locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


@locations_bp.get("")
def list_locations():
    search = request.args.get("search")
    if search:
        locations = location_service.search_locations(search)
    else:
        locations = location_service.list_locations()
    return {"items": [l.to_dict() for l in locations], "count": len(locations)}


@locations_bp.post("")
def create_location():
    patch = validate_payload(model=Location, payload=json_body(), policy=LOCATION_POLICY, partial=False)
    location = location_service.create_location(**patch)
    db.session.commit()
    return location.to_dict(), 201


@locations_bp.get("/<uuid:location_id>")
def get_location(location_id: uuid.UUID):
    return location_service.get_location(location_id).to_dict()


@locations_bp.put("/<uuid:location_id>")
def update_location(location_id: uuid.UUID):
    patch = validate_payload(model=Location, payload=json_body(), policy=LOCATION_POLICY, partial=True)
    location = location_service.update_location(location_id, patch=patch)
    db.session.commit()
    return location.to_dict()


@locations_bp.delete("/<uuid:location_id>")
def delete_location(location_id: uuid.UUID):
    """Refused (400) while stock rows, movements or sessions reference the location."""
    location_service.delete_location(location_id)
    db.session.commit()
    return {"ok": True}, 200


@locations_bp.get("/<uuid:location_id>/stock")
def location_stock(location_id: uuid.UUID):
    location_service.get_location(location_id)
    rows = stock_service.list_stock(location_id=location_id)
    return {"location_id": str(location_id), "items": [r.to_dict() for r in rows], "count": len(rows)}
