# Overview: Service-layer operations for bills; stock enters on creation and leaves on cancel/delete.

"""
Bill Service

A bill records goods bought and received in one step.

LIFECYCLE:
1. active: recorded, stock received
2. cancelled: voided (terminal)

STOCK:
- Creation increments every product line's quantity.
- Cancelling an active bill, or deleting one, takes those quantities back
  out. If some of the stock has been sold since, the reversal fails with
  InsufficientStockError and nothing changes.
- The earlier client app added stock again on cancel. Removing it is
  deliberate: a voided receipt means the goods never arrived.
"""

from __future__ import annotations

import logging

from ..extensions import db
from ..models import Bill, BillItem
from ..time_utils import utcnow, today
from .change_service import record_change
from .client_service import resolve_document_client
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .document_service import (
    DOCUMENT_BILL,
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
from .stock_service import REASON_BILL_CREATED, REASON_BILL_REVERSED, apply_line_items
from .totals_service import calculate_totals

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"

BILL_STATUSES = {STATUS_ACTIVE, STATUS_CANCELLED}


def create_bill(
    *,
    user_id: int,
    header: dict,
    items: list[dict],
    tax_enabled: bool | None = None,
    tax_rate_bps: int | None = None,
) -> Bill:
    """
    Create a bill and add the purchased quantities to stock.

    Unit prices default to each product's purchase price.

    Raises:
        DocumentValidationError: unknown client/product or missing counterparty
    """
    require_user_id(user_id)

    def _op() -> Bill:
        begin_write_transaction()
        settings = get_or_create_settings(user_id)

        client = resolve_document_client(user_id=user_id, client_id=header.get("client_id"))

        customer_name = header.get("customer_name") or (client.name if client else None)
        customer_email = header.get("customer_email") or (client.email if client else None)
        if not customer_name:
            raise DocumentValidationError("customer_name is required")

        lines = resolve_lines(user_id=user_id, items=items, price_field="purchase_price_cents")
        enabled, rate = resolve_tax(user_id, tax_enabled, tax_rate_bps)
        totals = calculate_totals(lines, tax_enabled=enabled, tax_rate_bps=rate)

        bill = Bill(
            owner_user_id=user_id,
            client_id=client.id if client else None,
            document_number=next_document_number(
                user_id=user_id,
                document_type=DOCUMENT_BILL,
                prefix=settings.bill_prefix,
            ),
            customer_name=customer_name,
            customer_email=customer_email,
            bill_date=header.get("bill_date") or today(),
            status=STATUS_ACTIVE,
            subtotal_cents=totals.subtotal_cents,
            tax_cents=totals.tax_cents,
            total_cents=totals.total_cents,
            tax_rate_bps=rate if enabled else 0,
            notes=header.get("notes"),
        )
        bill.items = build_item_rows(BillItem, lines)
        db.session.add(bill)
        db.session.flush()

        apply_line_items(
            user_id=user_id,
            lines=lines,
            sign=+1,
            reason=REASON_BILL_CREATED,
            document_type=DOCUMENT_BILL,
            document_id=bill.id,
        )

        record_change(user_id=user_id, relation="bills", event="INSERT", row_id=bill.id)
        db.session.commit()
        logger.info("Created bill %s (id=%s) with %d item(s)", bill.document_number, bill.id, len(lines))
        return bill

    return run_with_retry(_op)


def get_bill(*, user_id: int, bill_id: int) -> Bill:
    bill = get_owned(Bill, bill_id, user_id)
    if bill is None:
        raise DocumentNotFoundError("Bill not found")
    return bill


def list_bills(
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
        owned_query(Bill, user_id),
        Bill,
        date_column=Bill.bill_date,
        status=status,
        client_id=client_id,
        date_from=date_from,
        date_to=date_to,
    ).order_by(Bill.bill_date.desc(), Bill.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda b: b.to_dict())


def _lock_bill(user_id: int, bill_id: int) -> Bill:
    bill = lock_for_update(owned_query(Bill, user_id).filter(Bill.id == bill_id)).first()
    if bill is None:
        raise DocumentNotFoundError("Bill not found")
    return bill


def set_bill_status(*, user_id: int, bill_id: int, status: str) -> Bill:
    """
    active -> cancelled reverses the received stock. Same status is a no-op.

    Raises:
        DocumentNotFoundError, DocumentStateError, InsufficientStockError
    """
    require_user_id(user_id)

    def _op() -> Bill:
        begin_write_transaction()
        bill = _lock_bill(user_id, bill_id)

        if not check_transition(DOCUMENT_BILL, bill.status, status):
            db.session.commit()
            return bill

        if status == STATUS_CANCELLED:
            apply_line_items(
                user_id=user_id,
                lines=bill.items,
                sign=-1,
                reason=REASON_BILL_REVERSED,
                document_type=DOCUMENT_BILL,
                document_id=bill.id,
            )
            bill.cancelled_at = utcnow()

        bill.status = status
        record_change(user_id=user_id, relation="bills", event="UPDATE", row_id=bill.id)
        db.session.commit()
        logger.info("Bill %s status -> %s", bill.document_number, status)
        return bill

    return run_with_retry(_op)


def delete_bill(*, user_id: int, bill_id: int) -> None:
    """Delete a bill; an active bill's quantities are taken back out first."""
    require_user_id(user_id)

    def _op() -> None:
        begin_write_transaction()
        bill = _lock_bill(user_id, bill_id)

        if bill.status != STATUS_CANCELLED:
            apply_line_items(
                user_id=user_id,
                lines=bill.items,
                sign=-1,
                reason=REASON_BILL_REVERSED,
                document_type=DOCUMENT_BILL,
                document_id=bill.id,
            )

        record_change(user_id=user_id, relation="bills", event="DELETE", row_id=bill.id)
        logger.info("Deleting bill %s (status=%s)", bill.document_number, bill.status)
        db.session.delete(bill)
        db.session.commit()

    run_with_retry(_op)
