# Overview: Service-layer operations for product tags.

from __future__ import annotations

import uuid

from flask import current_app

from ..extensions import db
from ..models import Tag, product_tags
from ..validation import DuplicateResourceError, NotFoundError, ValidationError, require_text
from .audit_service import record_activity


def _ensure_unique_name(name: str, *, exclude_id: uuid.UUID | None = None) -> None:
    query = db.session.query(Tag).filter(Tag.name == name)
    if exclude_id is not None:
        query = query.filter(Tag.id != exclude_id)
    if query.first() is not None:
        raise DuplicateResourceError.for_field("Tag", "name", name)


def get_tag(tag_id: uuid.UUID) -> Tag:
    tag = db.session.get(Tag, tag_id)
    if tag is None:
        raise NotFoundError("Tag", tag_id)
    return tag


def get_tag_by_name(name: str) -> Tag | None:
    return db.session.query(Tag).filter(Tag.name == (name or "").strip()).first()


def list_tags() -> list[Tag]:
    return db.session.query(Tag).order_by(Tag.name.asc()).all()


def create_tag(*, name: str) -> Tag:
    name = require_text(name, "name", max_length=50)
    _ensure_unique_name(name)

    tag = Tag(name=name)
    db.session.add(tag)
    db.session.flush()

    record_activity(f"Tag created: {name}")
    current_app.logger.info("Created tag %s (%s)", tag.id, name)
    return tag


def rename_tag(tag_id: uuid.UUID, *, name: str) -> Tag:
    tag = get_tag(tag_id)
    name = require_text(name, "name", max_length=50)
    _ensure_unique_name(name, exclude_id=tag.id)
    tag.name = name
    db.session.flush()
    return tag


def delete_tag(tag_id: uuid.UUID) -> None:
    """Refused while any product carries the tag."""
    tag = get_tag(tag_id)

    in_use = (
        db.session.query(product_tags.c.product_id)
        .filter(product_tags.c.tag_id == tag.id)
        .count()
    )
    if in_use:
        raise ValidationError(f"Cannot delete tag '{tag.name}': {in_use} product(s) still carry it")

    db.session.delete(tag)
    db.session.flush()
    record_activity(f"Tag deleted: {tag.name}")
    current_app.logger.info("Deleted tag %s", tag_id)
