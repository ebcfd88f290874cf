# Overview: Stock adjustment procedure; atomic product quantity changes driven by document lifecycle.

"""
Stock Adjustment Service

WHY: Product quantities must follow document lifecycle events exactly once,
with no lost updates between concurrent requests.

DESIGN:
- Every change is one conditional UPDATE:
      quantity = quantity + :delta  WHERE ... AND quantity + :delta >= 0
  so concurrent adjustments of the same product serialise in the database
  instead of racing through a read-modify-write in Python.
- Line deltas for the same product are summed before applying.
- Lines without a product reference never move stock.
- Every applied delta appends a StockMovement and records a product UPDATE
  in the change feed.
- Nothing here commits. The caller owns the transaction, so a document and
  all of its stock effects land (or roll back) together.

EFFECTS:
    Invoice         -qty at creation, +qty on cancel / delete when not cancelled
    Bill            +qty at creation, -qty on cancel / delete when not cancelled
    Purchase order  +qty on pending -> received only
"""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import update

from ..extensions import db
from ..models import Product, StockMovement
from ..time_utils import utcnow
from .change_service import record_change
from .ownership_service import require_user_id

logger = logging.getLogger(__name__)

REASON_INVOICE_CREATED = "INVOICE_CREATED"
REASON_INVOICE_REVERSED = "INVOICE_REVERSED"
REASON_BILL_CREATED = "BILL_CREATED"
REASON_BILL_REVERSED = "BILL_REVERSED"
REASON_PURCHASE_ORDER_RECEIVED = "PURCHASE_ORDER_RECEIVED"
REASON_MANUAL_EDIT = "MANUAL_EDIT"


class InsufficientStockError(Exception):
    """Raised when a decrease would drive a product's quantity below zero."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def aggregate_line_deltas(lines: Iterable, *, sign: int) -> dict[int, int]:
    """
    Sum line quantities per product, multiplied by sign (+1 / -1).

    Free-text lines (product_id is None) are skipped.
    """
    deltas: dict[int, int] = {}
    for line in lines:
        product_id = line["product_id"] if isinstance(line, dict) else line.product_id
        quantity = line["quantity"] if isinstance(line, dict) else line.quantity
        if product_id is None:
            continue
        deltas[product_id] = deltas.get(product_id, 0) + sign * quantity
    return deltas


def apply_deltas(
    *,
    user_id: int,
    deltas: dict[int, int],
    reason: str,
    document_type: str | None = None,
    document_id: int | None = None,
) -> list[StockMovement]:
    """
    Apply per-product quantity deltas inside the caller's transaction.

    Products are updated in id order so concurrent multi-product documents
    take row locks in the same order.

    Products that no longer exist for this owner are skipped with a warning
    (a deleted product cannot be restocked).

    Raises:
        InsufficientStockError: if any decrease would go below zero. Nothing
            is committed; the caller must roll back.
    """
    require_user_id(user_id)

    movements: list[StockMovement] = []
    insufficient = []
    now = utcnow()

    for product_id in sorted(deltas):
        delta = deltas[product_id]
        if delta == 0:
            continue

        stmt = (
            update(Product)
            .where(
                Product.id == product_id,
                Product.owner_user_id == user_id,
                Product.quantity + delta >= 0,
            )
            .values(
                quantity=Product.quantity + delta,
                version_id=Product.version_id + 1,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = db.session.execute(stmt)

        if not result.rowcount:
            on_hand = (
                db.session.query(Product.quantity)
                .filter(Product.id == product_id, Product.owner_user_id == user_id)
                .scalar()
            )
            if on_hand is None:
                logger.warning(
                    "Skipping stock change for missing product_id=%s (reason=%s %s=%s)",
                    product_id, reason, document_type, document_id,
                )
                continue
            insufficient.append({
                "product_id": product_id,
                "requested_quantity": -delta,
                "on_hand": on_hand,
            })
            continue

        quantity_after = (
            db.session.query(Product.quantity)
            .filter(Product.id == product_id)
            .scalar()
        )

        movement = StockMovement(
            owner_user_id=user_id,
            product_id=product_id,
            quantity_delta=delta,
            quantity_after=quantity_after,
            reason=reason,
            document_type=document_type,
            document_id=document_id,
            occurred_at=now,
        )
        db.session.add(movement)
        movements.append(movement)

        record_change(user_id=user_id, relation="products", event="UPDATE", row_id=product_id)

    if insufficient:
        raise InsufficientStockError(
            "Insufficient stock",
            details={"items": insufficient},
        )

    if movements:
        db.session.flush()
        logger.info(
            "Applied %d stock change(s) for %s %s (%s)",
            len(movements), document_type or "product", document_id, reason,
        )

    return movements


def apply_line_items(
    *,
    user_id: int,
    lines: Iterable,
    sign: int,
    reason: str,
    document_type: str,
    document_id: int,
) -> list[StockMovement]:
    """Aggregate a document's lines and apply them with the given sign."""
    return apply_deltas(
        user_id=user_id,
        deltas=aggregate_line_deltas(lines, sign=sign),
        reason=reason,
        document_type=document_type,
        document_id=document_id,
    )


def list_movements(*, user_id: int, product_id: int, limit: int = 100) -> list[dict]:
    require_user_id(user_id)
    rows = (
        db.session.query(StockMovement)
        .filter(
            StockMovement.owner_user_id == user_id,
            StockMovement.product_id == product_id,
        )
        .order_by(StockMovement.id.desc())
        .limit(min(max(limit, 1), 500))
        .all()
    )
    return [r.to_dict() for r in rows]
