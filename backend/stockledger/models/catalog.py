from __future__ import annotations

import uuid

from ..extensions import db
from stockledger.serialization import id_str
from stockledger.time_utils import to_utc_z


product_tags = db.Table(
    "product_tags",
    db.Column("product_id", db.Uuid, db.ForeignKey("products.id"), primary_key=True),
    db.Column("tag_id", db.Uuid, db.ForeignKey("tags.id"), primary_key=True),
)


class Category(db.Model):
    """
    Product grouping for reporting and browsing.

    Deleting a category is refused while products still point at it
    (see category_service.delete_category); there is no cascade.
    """
    __tablename__ = "categories"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(100), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Category id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Tag(db.Model):
    __tablename__ = "tags"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    name = db.Column(db.String(50), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Tag id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {"id": id_str(self.id), "name": self.name}


class Product(db.Model):
    """
    Product master data.

    UNIQUENESS:
    - name is required and unique
    - barcode is optional; when present it is unique

    LIFECYCLE:
    A product can only be deleted while it has no stock rows. Once any
    quantity has been recorded at a location, the movement history must
    stay attributable to it.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category", "category_id"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)

    name = db.Column(db.String(100), nullable=False, unique=True)
    barcode = db.Column(db.String(50), nullable=True, unique=True)
    unit = db.Column(db.String(20), nullable=True)
    description = db.Column(db.Text, nullable=True)

    category_id = db.Column(db.Uuid, db.ForeignKey("categories.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    tags = db.relationship("Tag", secondary=product_tags, backref=db.backref("products", lazy=True), lazy=True)

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} barcode={self.barcode!r}>"

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "name": self.name,
            "barcode": self.barcode,
            "unit": self.unit,
            "description": self.description,
            "category_id": id_str(self.category_id),
            "category_name": self.category.name if self.category else None,
            "tags": sorted((t.to_dict() for t in self.tags), key=lambda t: t["name"]),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
