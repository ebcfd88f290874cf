from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, to_iso_date


TRANSACTION_TYPES = ("income", "expense")


class Transaction(db.Model):
    """Balance sheet entry: a dated income or expense amount."""
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_owner_date", "owner_user_id", "transaction_date"),
        db.CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_non_negative"),
        db.CheckConstraint("type IN ('income', 'expense')", name="ck_transactions_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False)
    category = db.Column(db.String(128), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.Text, nullable=True)
    transaction_date = db.Column(db.Date, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "category": self.category,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "transaction_date": to_iso_date(self.transaction_date),
            "created_at": to_utc_z(self.created_at),
        }
