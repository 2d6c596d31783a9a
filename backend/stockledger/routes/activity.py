# Overview: Flask API routes for the activity log (read-only).

from flask import Blueprint

from ..services import audit_service
from .params import arg_limit, arg_uuid

activity_bp = Blueprint("activity", __name__, url_prefix="/api/activity")


@activity_bp.get("")
def list_activity():
    entries = audit_service.list_activity(user_id=arg_uuid("user_id"), limit=arg_limit())
    return {"items": [e.to_dict() for e in entries], "count": len(entries)}
