# Overview: Service-layer operations for product categories.

from __future__ import annotations

import uuid

from flask import current_app

from ..extensions import db
from ..models import Category, Product
from ..validation import DuplicateResourceError, NotFoundError, ValidationError, optional_text, require_text
from .audit_service import record_activity


def _ensure_unique_name(name: str, *, exclude_id: uuid.UUID | None = None) -> None:
    query = db.session.query(Category).filter(Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first() is not None:
        raise DuplicateResourceError.for_field("Category", "name", name)


def get_category(category_id: uuid.UUID) -> Category:
    category = db.session.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category", category_id)
    return category


def list_categories() -> list[Category]:
    return db.session.query(Category).order_by(Category.name.asc()).all()


def search_categories(term: str) -> list[Category]:
    term = (term or "").strip()
    if not term:
        return list_categories()
    return (
        db.session.query(Category)
        .filter(Category.name.ilike(f"%{term}%"))
        .order_by(Category.name.asc())
        .all()
    )


def list_categories_with_products() -> list[dict]:
    """Every category with its products, name order; empty categories included."""
    categories = list_categories()
    products = (
        db.session.query(Product)
        .filter(Product.category_id.isnot(None))
        .order_by(Product.name.asc())
        .all()
    )
    by_category: dict[uuid.UUID, list[Product]] = {}
    for product in products:
        by_category.setdefault(product.category_id, []).append(product)

    return [
        {
            **category.to_dict(),
            "products": [p.to_dict() for p in by_category.get(category.id, [])],
        }
        for category in categories
    ]


def create_category(*, name: str, description: str | None = None) -> Category:
    name = require_text(name, "name", max_length=100)
    description = optional_text(description, "description")
    _ensure_unique_name(name)

    category = Category(name=name, description=description)
    db.session.add(category)
    db.session.flush()

    record_activity(f"Category created: {name}")
    current_app.logger.info("Created category %s (%s)", category.id, name)
    return category


def update_category(category_id: uuid.UUID, *, patch: dict) -> Category:
    category = get_category(category_id)

    if "name" in patch:
        name = require_text(patch["name"], "name", max_length=100)
        _ensure_unique_name(name, exclude_id=category.id)
        category.name = name
    if "description" in patch:
        category.description = optional_text(patch["description"], "description")

    db.session.flush()
    return category


def delete_category(category_id: uuid.UUID) -> None:
    """Refused while any product is in the category."""
    category = get_category(category_id)

    in_use = db.session.query(Product.id).filter(Product.category_id == category.id).count()
    if in_use:
        raise ValidationError(f"Cannot delete category '{category.name}': {in_use} product(s) still use it")

    db.session.delete(category)
    db.session.flush()
    record_activity(f"Category deleted: {category.name}")
    current_app.logger.info("Deleted category %s", category_id)
