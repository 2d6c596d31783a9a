# Overview: Flask API routes for users; parses input and returns JSON responses.

# backend/stockledger/routes/users.py
"""
User management routes. Users exist for attribution only; there is no
login or session handling in this API.
"""
import uuid

from flask import Blueprint, request

from ..extensions import db
from ..models import User
from ..services import user_service
from ..validation import ModelValidationPolicy, validate_payload
from .params import arg_bool, json_body

USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "role", "is_active"},
    required_on_create={"username"},
)

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
def list_users():
    users = user_service.list_users(
        role=request.args.get("role"),
        active_only=bool(arg_bool("active_only")),
    )
    return {"items": [u.to_dict() for u in users], "count": len(users)}


@users_bp.post("")
def create_user():
    """
    Create a user.

    Request body:
    {
        "username": str,
        "password": str,   // min 8 chars, upper, lower, digit, special
        "role": str        // ADMIN | MANAGER | CASHIER (default CASHIER)
    }
    """
    payload = dict(json_body())
    password = payload.pop("password", None)
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)

    user = user_service.create_user(
        username=patch["username"],
        password=password,
        role=patch.get("role"),
    )
    db.session.commit()
    return user.to_dict(), 201


@users_bp.get("/<uuid:user_id>")
def get_user(user_id: uuid.UUID):
    return user_service.get_user(user_id).to_dict()


@users_bp.put("/<uuid:user_id>")
def update_user(user_id: uuid.UUID):
    payload = dict(json_body())
    password = payload.pop("password", None)
    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
    if password is not None:
        patch["password"] = password

    user = user_service.update_user(user_id, patch=patch)
    db.session.commit()
    return user.to_dict()


@users_bp.delete("/<uuid:user_id>")
def delete_user(user_id: uuid.UUID):
    """Refused (400) once anything is attributed to the user; deactivate instead."""
    user_service.delete_user(user_id)
    db.session.commit()
    return {"ok": True}, 200
