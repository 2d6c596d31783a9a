# Overview: Service-layer operations for users; bcrypt hashing and role validation.

"""
User Service

Users exist for attribution: sales, transfers, counts and manual adjustments
record who performed them. There is no login flow here.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
"""
from __future__ import annotations

import re
import uuid

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import ActivityLog, InventorySession, Purchase, Sale, StockMovement, Transfer, User
from ..models.users import ROLE_CASHIER, USER_ROLES
from ..validation import DuplicateResourceError, NotFoundError, ValidationError, require_text
from .audit_service import record_activity


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str):
        raise PasswordValidationError("Password is required")

    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    rounds = int(current_app.config.get("BCRYPT_ROUNDS", 12))
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Returns True if password matches the bcrypt hash, False otherwise."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash
        return False


def _validate_role(role: str | None) -> str:
    if role is None:
        return ROLE_CASHIER
    role = str(role).strip().upper()
    if role not in USER_ROLES:
        raise ValidationError(f"Invalid role: {role}. Must be one of {', '.join(USER_ROLES)}")
    return role


def get_user(user_id: uuid.UUID) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def get_user_by_username(username: str) -> User | None:
    return db.session.query(User).filter(User.username == (username or "").strip()).first()


def list_users(*, role: str | None = None, active_only: bool = False) -> list[User]:
    query = db.session.query(User)
    if role is not None:
        query = query.filter(User.role == _validate_role(role))
    if active_only:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.username.asc()).all()


def create_user(*, username: str, password: str, role: str | None = None) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        ValidationError: Blank username, weak password, unknown role
        DuplicateResourceError: Username taken
    """
    username = require_text(username, "username", max_length=50)
    role = _validate_role(role)

    if get_user_by_username(username) is not None:
        raise DuplicateResourceError.for_field("User", "username", username)

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.flush()

    record_activity(f"User created: {username} ({role})")
    current_app.logger.info("Created user %s (%s)", user.id, username)
    return user


def update_user(user_id: uuid.UUID, *, patch: dict) -> User:
    user = get_user(user_id)

    if "username" in patch:
        username = require_text(patch["username"], "username", max_length=50)
        other = get_user_by_username(username)
        if other is not None and other.id != user.id:
            raise DuplicateResourceError.for_field("User", "username", username)
        user.username = username
    if "role" in patch:
        user.role = _validate_role(patch["role"])
    if "is_active" in patch:
        if not isinstance(patch["is_active"], bool):
            raise ValidationError("is_active must be a boolean")
        user.is_active = patch["is_active"]
    if "password" in patch:
        user.password_hash = hash_password(patch["password"])

    db.session.flush()
    return user


def delete_user(user_id: uuid.UUID) -> None:
    """
    Delete a user nothing is attributed to; otherwise deactivate instead.

    Raises:
        ValidationError: User is referenced by transactions, movements,
            inventory sessions or activity entries
    """
    user = get_user(user_id)

    attributed = [
        db.session.query(model.id).filter(model.user_id == user.id)
        for model in (Sale, Purchase, Transfer, StockMovement, ActivityLog)
    ]
    attributed.append(
        db.session.query(InventorySession.id).filter(
            (InventorySession.started_by_user_id == user.id)
            | (InventorySession.closed_by_user_id == user.id)
        )
    )
    if any(query.first() is not None for query in attributed):
        raise ValidationError(
            f"Cannot delete user '{user.username}': records are attributed to them; deactivate instead"
        )

    username = user.username
    db.session.delete(user)
    db.session.flush()
    record_activity(f"User deleted: {username}")
    current_app.logger.info("Deleted user %s", user_id)
