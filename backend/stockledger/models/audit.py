from __future__ import annotations

import uuid

from ..extensions import db
from stockledger.serialization import id_str
from stockledger.time_utils import to_utc_z, utcnow


class ActivityLog(db.Model):
    """
    Append-only record of user and system actions.

    Written in the same DB transaction as the action it describes, so a
    rolled-back operation leaves no activity row behind.
    """
    __tablename__ = "activity_logs"
    __table_args__ = (
        db.Index("ix_activity_logs_user_created", "user_id", "created_at"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    action = db.Column(db.Text, nullable=False)

    user_id = db.Column(db.Uuid, db.ForeignKey("users.id"), nullable=True)

    # Long enough for IPv6
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": id_str(self.id),
            "action": self.action,
            "user_id": id_str(self.user_id),
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": to_utc_z(self.created_at),
        }
