# Overview: Service-layer operations for suppliers.

"""
Supplier Service

Every purchase names exactly one supplier. Names are unique; emails are
unique when specified. Suppliers with purchase history cannot be deleted.
"""
from __future__ import annotations

import re
import uuid

from flask import current_app

from ..extensions import db
from ..models import Purchase, Supplier
from ..validation import DuplicateResourceError, NotFoundError, ValidationError, optional_text, require_text
from .audit_service import record_activity

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _ensure_unique(field: str, value: str, *, exclude_id: uuid.UUID | None = None) -> None:
    column = getattr(Supplier, field)
    query = db.session.query(Supplier).filter(column == value)
    if exclude_id is not None:
        query = query.filter(Supplier.id != exclude_id)
    if query.first() is not None:
        raise DuplicateResourceError.for_field("Supplier", field, value)


def _normalize_email(email) -> str | None:
    email = optional_text(email, "email", max_length=50)
    if email is None:
        return None
    email = email.lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("email is not a valid address")
    return email


def get_supplier(supplier_id: uuid.UUID) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if supplier is None:
        raise NotFoundError("Supplier", supplier_id)
    return supplier


def list_suppliers(search: str | None = None) -> list[Supplier]:
    query = db.session.query(Supplier)
    term = (search or "").strip()
    if term:
        query = query.filter(Supplier.name.ilike(f"%{term}%"))
    return query.order_by(Supplier.name.asc()).all()


def create_supplier(
    *,
    name: str,
    contact_info: str | None = None,
    phone_number: str | None = None,
    email: str | None = None,
) -> Supplier:
    """
    Create a supplier.

    Raises:
        ValidationError: Missing name, bad email, field too long
        DuplicateResourceError: Name or email already used
    """
    name = require_text(name, "name", max_length=100)
    contact_info = optional_text(contact_info, "contact_info")
    phone_number = optional_text(phone_number, "phone_number", max_length=20)
    email = _normalize_email(email)

    _ensure_unique("name", name)
    if email:
        _ensure_unique("email", email)

    supplier = Supplier(name=name, contact_info=contact_info, phone_number=phone_number, email=email)
    db.session.add(supplier)
    db.session.flush()

    record_activity(f"Supplier created: {name}")
    current_app.logger.info("Created supplier %s (%s)", supplier.id, name)
    return supplier


def update_supplier(supplier_id: uuid.UUID, *, patch: dict) -> Supplier:
    supplier = get_supplier(supplier_id)

    if "name" in patch:
        name = require_text(patch["name"], "name", max_length=100)
        _ensure_unique("name", name, exclude_id=supplier.id)
        supplier.name = name
    if "contact_info" in patch:
        supplier.contact_info = optional_text(patch["contact_info"], "contact_info")
    if "phone_number" in patch:
        supplier.phone_number = optional_text(patch["phone_number"], "phone_number", max_length=20)
    if "email" in patch:
        email = _normalize_email(patch["email"])
        if email:
            _ensure_unique("email", email, exclude_id=supplier.id)
        supplier.email = email

    db.session.flush()
    return supplier


def delete_supplier(supplier_id: uuid.UUID) -> None:
    supplier = get_supplier(supplier_id)

    purchases = db.session.query(Purchase.id).filter(Purchase.supplier_id == supplier.id).count()
    if purchases:
        raise ValidationError(f"Cannot delete supplier '{supplier.name}': {purchases} purchase(s) reference it")

    db.session.delete(supplier)
    db.session.flush()
    record_activity(f"Supplier deleted: {supplier.name}")
    current_app.logger.info("Deleted supplier %s", supplier_id)
