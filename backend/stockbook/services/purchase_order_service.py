# Overview: Service-layer operations for purchase orders; stock only moves when an order is received.

"""
Purchase Order Service

LIFECYCLE:
1. pending: placed with the supplier, nothing received
2. received: goods arrived, stock added (terminal)
3. cancelled: abandoned before receipt (terminal)

STOCK:
- Creation moves nothing.
- pending -> received adds every line's quantity. Receiving an order that
  is already received is a no-op.
- Cancelling a pending order moves nothing, and deleting an order never
  reverses stock (received goods stay on the shelf).

Every line must reference a product: an order is for stock.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import PurchaseOrder, PurchaseOrderItem
from ..time_utils import utcnow, today
from .change_service import record_change
from .client_service import resolve_document_client
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .document_service import (
    DOCUMENT_PURCHASE_ORDER,
    DocumentNotFoundError,
    DocumentValidationError,
    apply_list_filters,
    check_transition,
    next_document_number,
    paginate,
)
from .line_items import build_item_rows, resolve_lines
from .ownership_service import get_owned, owned_query, require_user_id
from .settings_service import get_or_create_settings, resolve_tax
from .stock_service import REASON_PURCHASE_ORDER_RECEIVED, apply_line_items
from .totals_service import calculate_totals

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_RECEIVED = "received"
STATUS_CANCELLED = "cancelled"

PURCHASE_ORDER_STATUSES = {STATUS_PENDING, STATUS_RECEIVED, STATUS_CANCELLED}


def create_purchase_order(
    *,
    user_id: int,
    header: dict,
    items: list[dict],
    tax_enabled: bool | None = None,
    tax_rate_bps: int | None = None,
) -> PurchaseOrder:
    """
    Create a pending purchase order. No stock changes.

    Raises:
        DocumentValidationError: unknown client/product, free-text line, or
            missing supplier
    """
    require_user_id(user_id)

    if any(item.get("product_id") is None for item in items):
        raise DocumentValidationError("Every purchase order item must reference a product")

    def _op() -> PurchaseOrder:
        begin_write_transaction()
        settings = get_or_create_settings(user_id)

        client = resolve_document_client(user_id=user_id, client_id=header.get("client_id"))

        supplier_name = header.get("supplier_name") or (client.name if client else None)
        supplier_email = header.get("supplier_email") or (client.email if client else None)
        if not supplier_name:
            raise DocumentValidationError("supplier_name is required")

        lines = resolve_lines(user_id=user_id, items=items, price_field="purchase_price_cents")
        enabled, rate = resolve_tax(user_id, tax_enabled, tax_rate_bps)
        totals = calculate_totals(lines, tax_enabled=enabled, tax_rate_bps=rate)

        order = PurchaseOrder(
            owner_user_id=user_id,
            client_id=client.id if client else None,
            document_number=next_document_number(
                user_id=user_id,
                document_type=DOCUMENT_PURCHASE_ORDER,
                prefix=settings.purchase_order_prefix,
            ),
            supplier_name=supplier_name,
            supplier_email=supplier_email,
            order_date=header.get("order_date") or today(),
            status=STATUS_PENDING,
            subtotal_cents=totals.subtotal_cents,
            tax_cents=totals.tax_cents,
            total_cents=totals.total_cents,
            tax_rate_bps=rate if enabled else 0,
            notes=header.get("notes"),
        )
        order.items = build_item_rows(PurchaseOrderItem, lines)
        db.session.add(order)
        db.session.flush()

        record_change(user_id=user_id, relation="purchase_orders", event="INSERT", row_id=order.id)
        db.session.commit()
        logger.info("Created purchase order %s (id=%s)", order.document_number, order.id)
        return order

    return run_with_retry(_op)


def get_purchase_order(*, user_id: int, purchase_order_id: int) -> PurchaseOrder:
    order = get_owned(PurchaseOrder, purchase_order_id, user_id)
    if order is None:
        raise DocumentNotFoundError("Purchase order not found")
    return order


def list_purchase_orders(
    *,
    user_id: int,
    status: str | None = None,
    client_id: int | None = None,
    date_from=None,
    date_to=None,
    page: int | None = None,
    per_page: int | None = None,
) -> dict:
    query = apply_list_filters(
        owned_query(PurchaseOrder, user_id),
        PurchaseOrder,
        date_column=PurchaseOrder.order_date,
        status=status,
        client_id=client_id,
        date_from=date_from,
        date_to=date_to,
    ).order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda o: o.to_dict())


def _lock_purchase_order(user_id: int, purchase_order_id: int) -> PurchaseOrder:
    order = lock_for_update(
        owned_query(PurchaseOrder, user_id).filter(PurchaseOrder.id == purchase_order_id)
    ).first()
    if order is None:
        raise DocumentNotFoundError("Purchase order not found")
    return order


def set_purchase_order_status(*, user_id: int, purchase_order_id: int, status: str) -> PurchaseOrder:
    """
    pending -> received adds stock; pending -> cancelled does not.

    Raises:
        DocumentNotFoundError, DocumentStateError
    """
    require_user_id(user_id)

    def _op() -> PurchaseOrder:
        begin_write_transaction()
        order = _lock_purchase_order(user_id, purchase_order_id)

        if not check_transition(DOCUMENT_PURCHASE_ORDER, order.status, status):
            db.session.commit()
            return order

        now = utcnow()
        if status == STATUS_RECEIVED:
            apply_line_items(
                user_id=user_id,
                lines=order.items,
                sign=+1,
                reason=REASON_PURCHASE_ORDER_RECEIVED,
                document_type=DOCUMENT_PURCHASE_ORDER,
                document_id=order.id,
            )
            order.received_at = now
        elif status == STATUS_CANCELLED:
            order.cancelled_at = now

        order.status = status
        record_change(user_id=user_id, relation="purchase_orders", event="UPDATE", row_id=order.id)
        db.session.commit()
        logger.info("Purchase order %s status -> %s", order.document_number, status)
        return order

    return run_with_retry(_op)


def receive_purchase_order(*, user_id: int, purchase_order_id: int) -> PurchaseOrder:
    """Mark a pending order received. Repeating the call changes nothing."""
    return set_purchase_order_status(
        user_id=user_id,
        purchase_order_id=purchase_order_id,
        status=STATUS_RECEIVED,
    )


def delete_purchase_order(*, user_id: int, purchase_order_id: int) -> None:
    require_user_id(user_id)

    def _op() -> None:
        begin_write_transaction()
        order = _lock_purchase_order(user_id, purchase_order_id)
        record_change(user_id=user_id, relation="purchase_orders", event="DELETE", row_id=order.id)
        db.session.delete(order)
        db.session.commit()

    run_with_retry(_op)
