from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class ChangeEvent(db.Model):
    """
    Row-change notification feed.

    Append-only. One row per insert/update/delete of a watched relation,
    written in the same transaction as the change it describes. The id is the
    polling cursor.
    """
    __tablename__ = "change_events"
    __table_args__ = (
        db.Index("ix_change_events_owner_relation", "owner_user_id", "relation", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    relation = db.Column(db.String(64), nullable=False)
    event = db.Column(db.String(8), nullable=False)  # INSERT, UPDATE, DELETE
    row_id = db.Column(db.Integer, nullable=False)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "relation": self.relation,
            "event": self.event,
            "row_id": self.row_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
