# Overview: Flask API routes for recipes and their ingredients; parses input and returns JSON responses.

import uuid

from flask import Blueprint, request

from ..extensions import db
from ..services import recipe_service
from ..validation import ValidationError, optional_text, parse_uuid
from .params import arg_uuid, json_body

recipes_bp = Blueprint("recipes", __name__, url_prefix="/api/recipes")

RECIPE_FIELDS = {"name", "description"}
INGREDIENT_FIELDS = {"quantity", "unit", "cost_per_unit_cents"}


def _only(payload: dict, allowed: set[str]) -> dict:
    for k in payload:
        if k not in allowed:
            raise ValidationError(f"Field not allowed: {k}")
    return payload


@recipes_bp.get("")
def list_recipes():
    """
    List recipes.

    Query params:
    - search: str (optional) - name substring
    - uses_product_id: UUID (optional) - recipes using this product as an ingredient
    """
    uses_product_id = arg_uuid("uses_product_id")
    if uses_product_id is not None:
        recipes = recipe_service.list_recipes_using(uses_product_id)
    else:
        recipes = recipe_service.list_recipes(request.args.get("search"))
    return {"items": [r.to_dict(include_ingredients=False) for r in recipes], "count": len(recipes)}


@recipes_bp.post("")
def create_recipe():
    """
    Create a recipe for an assembled product.

    Request body:
    {
        "product_id": UUID,
        "name": str,
        "description": str (optional)
    }
    """
    data = json_body()
    recipe = recipe_service.create_recipe(
        product_id=parse_uuid(data.get("product_id"), "product_id"),
        name=data.get("name"),
        description=optional_text(data.get("description"), "description"),
    )
    db.session.commit()
    return recipe.to_dict(), 201


@recipes_bp.get("/<uuid:recipe_id>")
def get_recipe(recipe_id: uuid.UUID):
    return recipe_service.get_recipe(recipe_id).to_dict()


@recipes_bp.put("/<uuid:recipe_id>")
def update_recipe(recipe_id: uuid.UUID):
    recipe = recipe_service.update_recipe(recipe_id, patch=_only(json_body(), RECIPE_FIELDS))
    db.session.commit()
    return recipe.to_dict()


@recipes_bp.delete("/<uuid:recipe_id>")
def delete_recipe(recipe_id: uuid.UUID):
    recipe_service.delete_recipe(recipe_id)
    db.session.commit()
    return {"ok": True}, 200


@recipes_bp.get("/<uuid:recipe_id>/cost")
def recipe_cost(recipe_id: uuid.UUID):
    return recipe_service.recipe_cost(recipe_id)


@recipes_bp.post("/<uuid:recipe_id>/ingredients")
def add_ingredient(recipe_id: uuid.UUID):
    """
    Request body:
    {
        "ingredient_product_id": UUID,
        "quantity": number | str,          // > 0, up to 3 decimals
        "unit": str,
        "cost_per_unit_cents": int (optional)
    }
    """
    data = json_body()
    ingredient = recipe_service.add_ingredient(
        recipe_id,
        ingredient_product_id=parse_uuid(data.get("ingredient_product_id"), "ingredient_product_id"),
        quantity=data.get("quantity"),
        unit=data.get("unit"),
        cost_per_unit_cents=data.get("cost_per_unit_cents"),
    )
    db.session.commit()
    return ingredient.to_dict(), 201


@recipes_bp.put("/<uuid:recipe_id>/ingredients/<uuid:ingredient_id>")
def update_ingredient(recipe_id: uuid.UUID, ingredient_id: uuid.UUID):
    ingredient = recipe_service.update_ingredient(
        recipe_id, ingredient_id, patch=_only(json_body(), INGREDIENT_FIELDS)
    )
    db.session.commit()
    return ingredient.to_dict()


@recipes_bp.delete("/<uuid:recipe_id>/ingredients/<uuid:ingredient_id>")
def remove_ingredient(recipe_id: uuid.UUID, ingredient_id: uuid.UUID):
    recipe_service.remove_ingredient(recipe_id, ingredient_id)
    db.session.commit()
    return {"ok": True}, 200
