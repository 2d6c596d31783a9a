# backend/stockledger/services/products_service.py
"""
Products Service

UNIQUENESS: product name always, barcode when present.
LIFECYCLE: a product can be deleted only while nothing refers to it; after
stock, transactions or count lines exist its history must stay attributable.
"""
from __future__ import annotations

import uuid

from flask import current_app
from sqlalchemy import exists, or_

from ..extensions import db
from ..models import (
    Category,
    InventoryLine,
    Product,
    Purchase,
    Recipe,
    RecipeIngredient,
    Sale,
    Stock,
    StockMovement,
    Tag,
    Transfer,
)
from ..validation import DuplicateResourceError, NotFoundError, ValidationError, optional_text, require_text
from .audit_service import record_activity
from .lookup import require_entity

PRODUCT_MUTABLE_FIELDS = {"name", "barcode", "unit", "description", "category_id"}


def _ensure_unique(field: str, value: str, *, exclude_id: uuid.UUID | None = None) -> None:
    column = getattr(Product, field)
    query = db.session.query(Product).filter(column == value)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise DuplicateResourceError.for_field("Product", field, value)


def _normalize_patch(patch: dict) -> dict:
    clean: dict = {}
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        if k == "name":
            clean[k] = require_text(v, "name", max_length=100)
        elif k == "barcode":
            clean[k] = optional_text(v, "barcode", max_length=50)
        elif k == "unit":
            clean[k] = optional_text(v, "unit", max_length=20)
        elif k == "description":
            clean[k] = optional_text(v, "description")
        elif k == "category_id":
            if v is not None:
                require_entity(Category, v, "Category")
            clean[k] = v
    return clean


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def get_product(product_id: uuid.UUID) -> Product:
    product = db.session.get(Product, product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


def get_product_by_barcode(barcode: str) -> Product:
    code = (barcode or "").strip()
    if not code:
        raise ValidationError("barcode is required")
    product = db.session.query(Product).filter(Product.barcode == code).first()
    if product is None:
        raise NotFoundError("Product with barcode", code)
    return product


def list_products(
    *,
    category_id: uuid.UUID | None = None,
    tag_id: uuid.UUID | None = None,
    unit: str | None = None,
    search: str | None = None,
    stocked: bool | None = None,
) -> list[Product]:
    """
    Product listing with optional filters.

    Args:
        category_id: Only products in this category
        tag_id: Only products carrying this tag
        unit: Exact unit match
        search: Case-insensitive substring of name or description
        stocked: True = has at least one stock row with quantity > 0,
            False = has none
    """
    query = db.session.query(Product)
    if category_id is not None:
        query = query.filter(Product.category_id == category_id)
    if tag_id is not None:
        query = query.filter(Product.tags.any(Tag.id == tag_id))
    if unit:
        query = query.filter(Product.unit == unit.strip())
    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.description.ilike(pattern)))
    if stocked is not None:
        has_stock = exists().where(Stock.product_id == Product.id).where(Stock.quantity > 0)
        query = query.filter(has_stock if stocked else ~has_stock)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def create_product(*, patch: dict, tag_ids: list[uuid.UUID] | None = None) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        ValidationError: Missing/blank name, field too long
        NotFoundError: Category or tag missing
        DuplicateResourceError: Name or barcode already used
    """
    if "name" not in patch:
        raise ValidationError("name is required")
    clean = _normalize_patch(patch)

    _ensure_unique("name", clean["name"])
    if clean.get("barcode"):
        _ensure_unique("barcode", clean["barcode"])

    p = Product()
    apply_product_patch(p, clean)
    for tag_id in tag_ids or []:
        tag = require_entity(Tag, tag_id, "Tag")
        if tag not in p.tags:
            p.tags.append(tag)

    db.session.add(p)
    db.session.flush()

    record_activity(f"Product created: name={p.name} barcode={p.barcode}")
    current_app.logger.info("Created product %s (%s)", p.id, p.name)
    return p


def update_product(product_id: uuid.UUID, *, patch: dict) -> Product:
    p = get_product(product_id)
    clean = _normalize_patch(patch)

    if "name" in clean:
        _ensure_unique("name", clean["name"], exclude_id=p.id)
    if clean.get("barcode"):
        _ensure_unique("barcode", clean["barcode"], exclude_id=p.id)

    apply_product_patch(p, clean)
    db.session.flush()
    return p


def add_tag(product_id: uuid.UUID, tag_id: uuid.UUID) -> Product:
    """Attach a tag; attaching an already-present tag is a no-op."""
    p = get_product(product_id)
    tag = require_entity(Tag, tag_id, "Tag")
    if tag not in p.tags:
        p.tags.append(tag)
        db.session.flush()
    return p


def remove_tag(product_id: uuid.UUID, tag_id: uuid.UUID) -> Product:
    p = get_product(product_id)
    tag = require_entity(Tag, tag_id, "Tag")
    if tag not in p.tags:
        raise ValidationError(f"Product '{p.name}' does not carry tag '{tag.name}'")
    p.tags.remove(tag)
    db.session.flush()
    return p


def delete_product(product_id: uuid.UUID) -> None:
    """
    Delete a product nothing refers to.

    Raises:
        NotFoundError: Product missing
        ValidationError: Product has stock rows, movements, transactions,
            inventory count lines or recipe references
    """
    p = get_product(product_id)

    stock_rows = db.session.query(Stock.id).filter(Stock.product_id == p.id).count()
    if stock_rows:
        raise ValidationError(f"Cannot delete product '{p.name}': it has stock at {stock_rows} location(s)")

    # Open count lines post to this product when their session closes
    references = {
        "stock movements": db.session.query(StockMovement.id).filter(StockMovement.product_id == p.id),
        "purchases": db.session.query(Purchase.id).filter(Purchase.product_id == p.id),
        "sales": db.session.query(Sale.id).filter(Sale.product_id == p.id),
        "transfers": db.session.query(Transfer.id).filter(Transfer.product_id == p.id),
        "inventory count lines": db.session.query(InventoryLine.id).filter(InventoryLine.product_id == p.id),
    }
    in_use = [label for label, query in references.items() if query.first() is not None]
    if in_use:
        raise ValidationError(f"Cannot delete product '{p.name}': it has {', '.join(in_use)}")

    recipe_refs = (
        db.session.query(Recipe.id).filter(Recipe.product_id == p.id).count()
        + db.session.query(RecipeIngredient.id).filter(RecipeIngredient.ingredient_product_id == p.id).count()
    )
    if recipe_refs:
        raise ValidationError(f"Cannot delete product '{p.name}': it is used by {recipe_refs} recipe(s)")

    name = p.name
    p.tags.clear()
    db.session.delete(p)
    db.session.flush()
    record_activity(f"Product deleted: {name}")
    current_app.logger.info("Deleted product %s", product_id)
