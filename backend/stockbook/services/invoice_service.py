# Overview: Service-layer operations for invoices; stock leaves on creation and returns on cancel/delete.

"""
Invoice Service

LIFECYCLE:
1. draft: created, not yet sent to the customer
2. sent: delivered, awaiting payment
3. overdue: sent and past due
4. paid: settled (terminal)
5. cancelled: voided (terminal)

STOCK:
- Creation decrements every product line's quantity, whatever the initial
  status.
- Moving to cancelled restores those quantities exactly once.
- Deleting an invoice that is not cancelled restores them as well; deleting
  a cancelled invoice moves nothing.

IMMUTABLE: Lines and totals are fixed at creation. Only status changes and
deletion are allowed afterwards.

Every operation runs as one transaction: document row, lines, stock
changes, movements and change events commit together or not at all.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from ..extensions import db
from ..models import Invoice, InvoiceItem
from ..time_utils import utcnow, today
from .change_service import record_change
from .client_service import resolve_document_client
from .concurrency import begin_write_transaction, lock_for_update, run_with_retry
from .document_service import (
    DOCUMENT_INVOICE,
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
from .stock_service import (
    REASON_INVOICE_CREATED,
    REASON_INVOICE_REVERSED,
    apply_line_items,
)
from .totals_service import calculate_totals

logger = logging.getLogger(__name__)

STATUS_DRAFT = "draft"
STATUS_SENT = "sent"
STATUS_OVERDUE = "overdue"
STATUS_PAID = "paid"
STATUS_CANCELLED = "cancelled"

INVOICE_STATUSES = {STATUS_DRAFT, STATUS_SENT, STATUS_OVERDUE, STATUS_PAID, STATUS_CANCELLED}
CREATE_STATUSES = {STATUS_DRAFT, STATUS_SENT, STATUS_PAID}


def create_invoice(
    *,
    user_id: int,
    header: dict,
    items: list[dict],
    tax_enabled: bool | None = None,
    tax_rate_bps: int | None = None,
) -> Invoice:
    """
    Create an invoice with its lines and take the sold quantities out of stock.

    Args:
        user_id: Owner (required)
        header: Validated header fields (customer_name, customer_email,
            client_id, issue_date, due_date, status, notes)
        items: Validated line payloads (see validation.validate_line_items)
        tax_enabled / tax_rate_bps: Per-invoice overrides of the owner's
            settings

    Raises:
        DocumentValidationError: unknown client/product, missing customer,
            or a status that cannot be used at creation
        InsufficientStockError: a product line exceeds the quantity on hand
    """
    require_user_id(user_id)

    status = header.get("status") or STATUS_DRAFT
    if status not in CREATE_STATUSES:
        raise DocumentValidationError(
            f"Invoices can only be created as {', '.join(sorted(CREATE_STATUSES))}"
        )

    def _op() -> Invoice:
        begin_write_transaction()
        settings = get_or_create_settings(user_id)

        client = resolve_document_client(user_id=user_id, client_id=header.get("client_id"))
        customer_name = header.get("customer_name") or (client.name if client else None)
        customer_email = header.get("customer_email") or (client.email if client else None)
        if not customer_name:
            raise DocumentValidationError("customer_name is required")

        issue_date = header.get("issue_date") or today()
        due_date = header.get("due_date")
        if due_date is None:
            due_date = issue_date + timedelta(days=settings.default_payment_terms)
        if due_date < issue_date:
            raise DocumentValidationError("due_date cannot be before issue_date")

        lines = resolve_lines(user_id=user_id, items=items, price_field="sale_price_cents")
        enabled, rate = resolve_tax(user_id, tax_enabled, tax_rate_bps)
        totals = calculate_totals(lines, tax_enabled=enabled, tax_rate_bps=rate)

        invoice = Invoice(
            owner_user_id=user_id,
            client_id=client.id if client else None,
            document_number=next_document_number(
                user_id=user_id,
                document_type=DOCUMENT_INVOICE,
                prefix=settings.invoice_prefix,
            ),
            customer_name=customer_name,
            customer_email=customer_email,
            issue_date=issue_date,
            due_date=due_date,
            status=status,
            subtotal_cents=totals.subtotal_cents,
            tax_cents=totals.tax_cents,
            total_cents=totals.total_cents,
            tax_rate_bps=rate if enabled else 0,
            notes=header.get("notes"),
        )
        invoice.items = build_item_rows(InvoiceItem, lines)
        db.session.add(invoice)
        db.session.flush()

        apply_line_items(
            user_id=user_id,
            lines=lines,
            sign=-1,
            reason=REASON_INVOICE_CREATED,
            document_type=DOCUMENT_INVOICE,
            document_id=invoice.id,
        )

        record_change(user_id=user_id, relation="invoices", event="INSERT", row_id=invoice.id)
        db.session.commit()
        logger.info("Created invoice %s (id=%s) with %d item(s)", invoice.document_number, invoice.id, len(lines))
        return invoice

    return run_with_retry(_op)


def get_invoice(*, user_id: int, invoice_id: int) -> Invoice:
    invoice = get_owned(Invoice, invoice_id, user_id)
    if invoice is None:
        raise DocumentNotFoundError("Invoice not found")
    return invoice


def list_invoices(
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
        owned_query(Invoice, user_id),
        Invoice,
        date_column=Invoice.issue_date,
        status=status,
        client_id=client_id,
        date_from=date_from,
        date_to=date_to,
    ).order_by(Invoice.issue_date.desc(), Invoice.id.desc())
    return paginate(query, page=page, per_page=per_page, serialize=lambda i: i.to_dict())


def _lock_invoice(user_id: int, invoice_id: int) -> Invoice:
    invoice = lock_for_update(
        owned_query(Invoice, user_id).filter(Invoice.id == invoice_id)
    ).first()
    if invoice is None:
        raise DocumentNotFoundError("Invoice not found")
    return invoice


def set_invoice_status(*, user_id: int, invoice_id: int, status: str) -> Invoice:
    """
    Move an invoice to a new status.

    Same-status requests are no-ops, so a repeated cancel never restores
    stock twice. The current status is re-read under the write lock.

    Raises:
        DocumentNotFoundError, DocumentStateError
    """
    require_user_id(user_id)

    def _op() -> Invoice:
        begin_write_transaction()
        invoice = _lock_invoice(user_id, invoice_id)

        if not check_transition(DOCUMENT_INVOICE, invoice.status, status):
            db.session.commit()
            return invoice

        previous = invoice.status
        if status == STATUS_CANCELLED:
            apply_line_items(
                user_id=user_id,
                lines=invoice.items,
                sign=+1,
                reason=REASON_INVOICE_REVERSED,
                document_type=DOCUMENT_INVOICE,
                document_id=invoice.id,
            )
            invoice.cancelled_at = utcnow()

        invoice.status = status
        record_change(user_id=user_id, relation="invoices", event="UPDATE", row_id=invoice.id)
        db.session.commit()
        logger.info("Invoice %s status %s -> %s", invoice.document_number, previous, status)
        return invoice

    return run_with_retry(_op)


def delete_invoice(*, user_id: int, invoice_id: int) -> None:
    """
    Delete an invoice and its lines.

    A non-cancelled invoice still holds its stock; deleting it puts the
    quantities back. Cancelled invoices were already restored.
    """
    require_user_id(user_id)

    def _op() -> None:
        begin_write_transaction()
        invoice = _lock_invoice(user_id, invoice_id)

        if invoice.status != STATUS_CANCELLED:
            apply_line_items(
                user_id=user_id,
                lines=invoice.items,
                sign=+1,
                reason=REASON_INVOICE_REVERSED,
                document_type=DOCUMENT_INVOICE,
                document_id=invoice.id,
            )

        record_change(user_id=user_id, relation="invoices", event="DELETE", row_id=invoice.id)
        logger.info("Deleting invoice %s (status=%s)", invoice.document_number, invoice.status)
        db.session.delete(invoice)
        db.session.commit()

    run_with_retry(_op)
