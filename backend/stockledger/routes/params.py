# Overview: Query-string and JSON body parsing shared by the API routes.

from __future__ import annotations

import uuid
from datetime import date, datetime

from flask import current_app, request

from ..time_utils import parse_iso_date, parse_iso_datetime
from ..validation import ValidationError, enforce_int_range, parse_optional_uuid

MAX_PAGE_LIMIT = 1000


def json_body() -> dict:
    """Request JSON object; missing or invalid bodies read as {}."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def arg_uuid(name: str) -> uuid.UUID | None:
    return parse_optional_uuid(request.args.get(name), name)


def arg_datetime(name: str, *, end_of_day: bool = False) -> datetime | None:
    try:
        return parse_iso_datetime(request.args.get(name), end_of_day=end_of_day)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")


def arg_date(name: str) -> date | None:
    try:
        return parse_iso_date(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date (YYYY-MM-DD)")


def arg_int(name: str, default: int | None = None) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    return enforce_int_range(value, name)


def arg_bool(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return None
    value = raw.strip().lower()
    if value in ("1", "true", "yes"):
        return True
    if value in ("0", "false", "no"):
        return False
    raise ValidationError(f"{name} must be true or false")


def arg_limit() -> int:
    limit = arg_int("limit", current_app.config.get("DEFAULT_PAGE_LIMIT", 100))
    if limit <= 0:
        raise ValidationError("limit must be > 0")
    return min(limit, MAX_PAGE_LIMIT)
