from __future__ import annotations

import uuid
from decimal import ROUND_HALF_UP, Decimal

from ..extensions import db
from stockledger.serialization import decimal_str, id_str
from stockledger.time_utils import to_utc_z, utcnow


class Recipe(db.Model):
    """
    Bill of materials for an assembled product. One recipe per product.
    """
    __tablename__ = "recipes"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False, unique=True)

    name = db.Column(db.String(150), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product", backref=db.backref("recipe", uselist=False, lazy=True))
    ingredients = db.relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self, *, include_ingredients: bool = True) -> dict:
        data = {
            "id": id_str(self.id),
            "product_id": id_str(self.product_id),
            "name": self.name,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_ingredients:
            data["ingredients"] = [i.to_dict() for i in self.ingredients]
        return data


class RecipeIngredient(db.Model):
    __tablename__ = "recipe_ingredients"
    __table_args__ = (
        db.UniqueConstraint("recipe_id", "ingredient_product_id", name="uq_recipe_ingredients_recipe_product"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    recipe_id = db.Column(db.Uuid, db.ForeignKey("recipes.id"), nullable=False, index=True)
    ingredient_product_id = db.Column(db.Uuid, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(10, 3), nullable=False)
    unit = db.Column(db.String(20), nullable=False)
    cost_per_unit_cents = db.Column(db.Integer, nullable=True)

    recipe = db.relationship("Recipe", back_populates="ingredients")
    ingredient_product = db.relationship("Product")

    @property
    def total_cost_cents(self) -> int | None:
        """quantity * cost_per_unit_cents, rounded half-up to the cent."""
        if self.cost_per_unit_cents is None or self.quantity is None:
            return None
        total = Decimal(self.quantity) * self.cost_per_unit_cents
        return int(total.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "recipe_id": id_str(self.recipe_id),
            "ingredient_product_id": id_str(self.ingredient_product_id),
            "ingredient_name": self.ingredient_product.name if self.ingredient_product else None,
            "quantity": decimal_str(self.quantity),
            "unit": self.unit,
            "cost_per_unit_cents": self.cost_per_unit_cents,
            "total_cost_cents": self.total_cost_cents,
        }
