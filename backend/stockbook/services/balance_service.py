# Overview: Balance sheet; income and expense transactions and their totals.

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..extensions import db
from ..models import Transaction
from ..time_utils import today
from .change_service import record_change
from .document_service import paginate
from .ownership_service import get_owned, owned_query, require_user_id

TRANSACTION_MUTABLE_FIELDS = {"type", "category", "amount_cents", "description", "transaction_date"}


def list_transactions(
    *,
    user_id: int,
    type: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = owned_query(Transaction, user_id)
    if type:
        query = query.filter(Transaction.type == type)
    if date_from is not None:
        query = query.filter(Transaction.transaction_date >= date_from)
    if date_to is not None:
        query = query.filter(Transaction.transaction_date <= date_to)
    query = query.order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda t: t.to_dict())


def create_transaction(*, user_id: int, patch: dict) -> dict:
    require_user_id(user_id)
    tx = Transaction(owner_user_id=user_id)
    for key, value in patch.items():
        if key in TRANSACTION_MUTABLE_FIELDS:
            setattr(tx, key, value)
    if tx.transaction_date is None:
        tx.transaction_date = today()
    db.session.add(tx)
    db.session.flush()
    record_change(user_id=user_id, relation="transactions", event="INSERT", row_id=tx.id)
    db.session.commit()
    return tx.to_dict()


def delete_transaction(*, user_id: int, transaction_id: int) -> bool:
    tx = get_owned(Transaction, transaction_id, user_id)
    if tx is None:
        return False
    record_change(user_id=user_id, relation="transactions", event="DELETE", row_id=tx.id)
    db.session.delete(tx)
    db.session.commit()
    return True


def balance_sheet(*, user_id: int, start: date | None = None, end: date | None = None) -> dict:
    """
    Income, expenses and net over an optional inclusive date range,
    with per-category breakdowns.
    """
    require_user_id(user_id)

    query = db.session.query(
        Transaction.type,
        Transaction.category,
        func.coalesce(func.sum(Transaction.amount_cents), 0),
        func.count(Transaction.id),
    ).filter(Transaction.owner_user_id == user_id)
    if start is not None:
        query = query.filter(Transaction.transaction_date >= start)
    if end is not None:
        query = query.filter(Transaction.transaction_date <= end)

    rows = query.group_by(Transaction.type, Transaction.category).all()

    income = 0
    expenses = 0
    by_category = {"income": [], "expense": []}
    for tx_type, category, amount, count in rows:
        amount = int(amount or 0)
        if tx_type == "income":
            income += amount
        else:
            expenses += amount
        by_category[tx_type].append({
            "category": category,
            "amount_cents": amount,
            "count": int(count or 0),
        })

    for entries in by_category.values():
        entries.sort(key=lambda e: (-e["amount_cents"], e["category"]))

    return {
        "start": start.isoformat() if start else None,
        "end": end.isoformat() if end else None,
        "income_cents": income,
        "expense_cents": expenses,
        "net_cents": income - expenses,
        "income_by_category": by_category["income"],
        "expense_by_category": by_category["expense"],
    }
