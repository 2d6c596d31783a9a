# Overview: Flask API routes for product tags; parses input and returns JSON responses.

import uuid

from flask import Blueprint

from ..extensions import db
from ..models import Tag
from ..services import tag_service
from ..validation import ModelValidationPolicy, validate_payload
from .params import json_body

TAG_POLICY = ModelValidationPolicy(writable_fields={"name"}, required_on_create={"name"})

tags_bp = Blueprint("tags", __name__, url_prefix="/api/tags")


@tags_bp.get("")
def list_tags():
    tags = tag_service.list_tags()
    return {"items": [t.to_dict() for t in tags], "count": len(tags)}


@tags_bp.post("")
def create_tag():
    patch = validate_payload(model=Tag, payload=json_body(), policy=TAG_POLICY, partial=False)
    tag = tag_service.create_tag(**patch)
    db.session.commit()
    return tag.to_dict(), 201


@tags_bp.put("/<uuid:tag_id>")
def rename_tag(tag_id: uuid.UUID):
    patch = validate_payload(model=Tag, payload=json_body(), policy=TAG_POLICY, partial=False)
    tag = tag_service.rename_tag(tag_id, name=patch["name"])
    db.session.commit()
    return tag.to_dict()


@tags_bp.delete("/<uuid:tag_id>")
def delete_tag(tag_id: uuid.UUID):
    tag_service.delete_tag(tag_id)
    db.session.commit()
    return {"ok": True}, 200
