# backend/stockledger/services/recipe_service.py
"""
Recipe (bill of materials) service.

A recipe belongs to exactly one assembled product and lists the ingredient
products it consumes. Costs are informational only: recipes never move
stock.
"""
from __future__ import annotations

import uuid
from decimal import Decimal, InvalidOperation

from flask import current_app

from ..extensions import db
from ..models import Product, Recipe, RecipeIngredient
from ..validation import (
    DuplicateResourceError,
    NotFoundError,
    ValidationError,
    enforce_rules_cents,
    optional_text,
    require_text,
)
from .audit_service import record_activity
from .lookup import require_entity

MAX_INGREDIENT_QUANTITY = Decimal("9999999.999")


def _parse_quantity(value) -> Decimal:
    if value is None or isinstance(value, bool):
        raise ValidationError("quantity is required")
    try:
        quantity = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("quantity must be a number")
    if not quantity.is_finite() or quantity <= 0:
        raise ValidationError("quantity must be > 0")
    if quantity > MAX_INGREDIENT_QUANTITY:
        raise ValidationError(f"quantity cannot exceed {MAX_INGREDIENT_QUANTITY}")
    if quantity != quantity.quantize(Decimal("0.001")):
        raise ValidationError("quantity supports at most 3 decimal places")
    return quantity


def _ensure_unique_name(name: str, *, exclude_id: uuid.UUID | None = None) -> None:
    query = db.session.query(Recipe).filter(Recipe.name == name)
    if exclude_id is not None:
        query = query.filter(Recipe.id != exclude_id)
    if query.first() is not None:
        raise DuplicateResourceError.for_field("Recipe", "name", name)


def get_recipe(recipe_id: uuid.UUID) -> Recipe:
    recipe = db.session.get(Recipe, recipe_id)
    if recipe is None:
        raise NotFoundError("Recipe", recipe_id)
    return recipe


def get_recipe_for_product(product_id: uuid.UUID) -> Recipe:
    recipe = db.session.query(Recipe).filter(Recipe.product_id == product_id).first()
    if recipe is None:
        raise NotFoundError("Recipe for product", product_id)
    return recipe


def list_recipes(search: str | None = None) -> list[Recipe]:
    query = db.session.query(Recipe)
    term = (search or "").strip()
    if term:
        query = query.filter(Recipe.name.ilike(f"%{term}%"))
    return query.order_by(Recipe.name.asc()).all()


def list_recipes_using(product_id: uuid.UUID) -> list[Recipe]:
    """Recipes that list the product as an ingredient."""
    require_entity(Product, product_id, "Product")
    return (
        db.session.query(Recipe)
        .join(RecipeIngredient, RecipeIngredient.recipe_id == Recipe.id)
        .filter(RecipeIngredient.ingredient_product_id == product_id)
        .order_by(Recipe.name.asc())
        .all()
    )


def create_recipe(*, product_id: uuid.UUID, name: str, description: str | None = None) -> Recipe:
    """
    Create the recipe for an assembled product.

    Raises:
        NotFoundError: Product missing
        DuplicateResourceError: Product already has a recipe, or name taken
    """
    name = require_text(name, "name", max_length=150)
    description = optional_text(description, "description")
    require_entity(Product, product_id, "Product")

    if db.session.query(Recipe).filter(Recipe.product_id == product_id).first() is not None:
        raise DuplicateResourceError(f"Product {product_id} already has a recipe")
    _ensure_unique_name(name)

    recipe = Recipe(product_id=product_id, name=name, description=description)
    db.session.add(recipe)
    db.session.flush()

    record_activity(f"Recipe created: {name}")
    current_app.logger.info("Created recipe %s for product %s", recipe.id, product_id)
    return recipe


def update_recipe(recipe_id: uuid.UUID, *, patch: dict) -> Recipe:
    recipe = get_recipe(recipe_id)

    if "name" in patch:
        name = require_text(patch["name"], "name", max_length=150)
        _ensure_unique_name(name, exclude_id=recipe.id)
        recipe.name = name
    if "description" in patch:
        recipe.description = optional_text(patch["description"], "description")

    db.session.flush()
    return recipe


def delete_recipe(recipe_id: uuid.UUID) -> None:
    """Deletes the recipe and its ingredient lines; products are untouched."""
    recipe = get_recipe(recipe_id)
    name = recipe.name
    db.session.delete(recipe)
    db.session.flush()
    record_activity(f"Recipe deleted: {name}")
    current_app.logger.info("Deleted recipe %s", recipe_id)


def add_ingredient(
    recipe_id: uuid.UUID,
    *,
    ingredient_product_id: uuid.UUID,
    quantity,
    unit: str,
    cost_per_unit_cents: int | None = None,
) -> RecipeIngredient:
    """
    Add an ingredient line.

    Raises:
        NotFoundError: Recipe or ingredient product missing
        ValidationError: Self-reference, bad quantity/unit/cost
        DuplicateResourceError: Ingredient already on the recipe
    """
    recipe = get_recipe(recipe_id)
    require_entity(Product, ingredient_product_id, "Product")

    if ingredient_product_id == recipe.product_id:
        raise ValidationError("A recipe cannot use its own product as an ingredient")

    existing = (
        db.session.query(RecipeIngredient)
        .filter_by(recipe_id=recipe.id, ingredient_product_id=ingredient_product_id)
        .first()
    )
    if existing is not None:
        raise DuplicateResourceError(f"Product {ingredient_product_id} is already an ingredient of this recipe")

    ingredient = RecipeIngredient(
        recipe_id=recipe.id,
        ingredient_product_id=ingredient_product_id,
        quantity=_parse_quantity(quantity),
        unit=require_text(unit, "unit", max_length=20),
        cost_per_unit_cents=enforce_rules_cents(cost_per_unit_cents, "cost_per_unit_cents", required=False),
    )
    recipe.ingredients.append(ingredient)
    db.session.flush()
    return ingredient


def _get_ingredient(recipe_id: uuid.UUID, ingredient_id: uuid.UUID) -> RecipeIngredient:
    ingredient = (
        db.session.query(RecipeIngredient)
        .filter_by(id=ingredient_id, recipe_id=recipe_id)
        .first()
    )
    if ingredient is None:
        raise NotFoundError("RecipeIngredient", ingredient_id)
    return ingredient


def update_ingredient(recipe_id: uuid.UUID, ingredient_id: uuid.UUID, *, patch: dict) -> RecipeIngredient:
    ingredient = _get_ingredient(recipe_id, ingredient_id)

    if "quantity" in patch:
        ingredient.quantity = _parse_quantity(patch["quantity"])
    if "unit" in patch:
        ingredient.unit = require_text(patch["unit"], "unit", max_length=20)
    if "cost_per_unit_cents" in patch:
        ingredient.cost_per_unit_cents = enforce_rules_cents(
            patch["cost_per_unit_cents"], "cost_per_unit_cents", required=False
        )

    db.session.flush()
    return ingredient


def remove_ingredient(recipe_id: uuid.UUID, ingredient_id: uuid.UUID) -> None:
    recipe = get_recipe(recipe_id)
    ingredient = _get_ingredient(recipe.id, ingredient_id)
    recipe.ingredients.remove(ingredient)
    db.session.flush()


def recipe_cost(recipe_id: uuid.UUID) -> dict:
    """
    Sum of known ingredient costs.

    Returns:
        dict: total_cost_cents over priced ingredients, plus the number of
        ingredients with no cost (so callers can tell the total is partial)
    """
    recipe = get_recipe(recipe_id)
    total = 0
    missing = 0
    for ingredient in recipe.ingredients:
        cost = ingredient.total_cost_cents
        if cost is None:
            missing += 1
        else:
            total += cost
    return {
        "recipe_id": str(recipe.id),
        "ingredient_count": len(recipe.ingredients),
        "total_cost_cents": total,
        "ingredients_without_cost": missing,
        "complete": missing == 0,
    }
