# Overview: Service-layer operations for the activity log; append-only.

from __future__ import annotations

import uuid

from flask import current_app, has_request_context, request

from ..extensions import db
from ..models import ActivityLog
"""
Activity log invariants:

- Append-only: no updates or deletes.
- Rows are added to the caller's session and committed (or rolled back)
  together with the action they describe.
- Client IP and user agent are captured only when called inside a request.
"""

MAX_ACTION_LENGTH = 2000


def record_activity(action: str, *, user_id: uuid.UUID | None = None) -> ActivityLog:
    """Append an activity row for the current unit of work."""
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = (request.remote_addr or "")[:45] or None
        user_agent = request.headers.get("User-Agent")

    entry = ActivityLog(
        action=action[:MAX_ACTION_LENGTH],
        user_id=user_id,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.session.add(entry)
    current_app.logger.debug("activity: %s (user=%s)", action, user_id)
    return entry


def list_activity(*, user_id: uuid.UUID | None = None, limit: int = 100) -> list[ActivityLog]:
    query = db.session.query(ActivityLog)
    if user_id is not None:
        query = query.filter(ActivityLog.user_id == user_id)
    return query.order_by(ActivityLog.created_at.desc()).limit(limit).all()
