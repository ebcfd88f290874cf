# Overview: Flask API routes for invoices operations; parses input and returns JSON responses.

# backend/stockbook/routes/invoices.py
"""Invoice API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import invoice_service
from ..services.document_service import (
    DocumentNotFoundError,
    DocumentStateError,
    DocumentValidationError,
)
from ..services.stock_service import InsufficientStockError
from ..validation import (
    ValidationError,
    parse_document_filters,
    parse_document_header,
    parse_tax_options,
    validate_line_items,
)
from ..decorators import require_auth


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")

INVOICE_HEADER_FIELDS = {
    "client_id",
    "customer_name",
    "customer_email",
    "issue_date",
    "due_date",
    "status",
    "notes",
}


@invoices_bp.get("")
@require_auth
def list_invoices_route():
    """
    List invoices, newest issue date first.

    Query params: status, client_id, date_from, date_to (issue date,
    inclusive), page, per_page
    """
    try:
        filters = parse_document_filters(request.args, statuses=invoice_service.INVOICE_STATUSES)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return invoice_service.list_invoices(
        user_id=g.current_user.id,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        **filters,
    )


@invoices_bp.post("")
@require_auth
def create_invoice_route():
    """
    Create an invoice. Product lines leave stock immediately.

    Body:
    {
        "customer_name": "Acme", "customer_email": "...", "client_id": 1,
        "issue_date": "2024-01-31", "due_date": "2024-03-01",
        "status": "draft" | "sent" | "paid",
        "tax_enabled": true, "tax_rate_bps": 1800,
        "notes": "...",
        "items": [{"product_id": 1, "quantity": 2, "unit_price_cents": 500,
                   "description": "..."}]
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        header = parse_document_header(payload, allowed=INVOICE_HEADER_FIELDS, email_key="customer_email")
        items = validate_line_items(payload.get("items"))
        tax_enabled, tax_rate_bps = parse_tax_options(payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        invoice = invoice_service.create_invoice(
            user_id=g.current_user.id,
            header=header,
            items=items,
            tax_enabled=tax_enabled,
            tax_rate_bps=tax_rate_bps,
        )
        return jsonify(invoice.to_dict(include_items=True)), 201

    except DocumentValidationError as e:
        return jsonify({"error": str(e)}), 400
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(user_id=g.current_user.id, invoice_id=invoice_id)
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(invoice.to_dict(include_items=True))


@invoices_bp.post("/<int:invoice_id>/status")
@require_auth
def set_invoice_status_route(invoice_id: int):
    """
    Change invoice status.

    Moving to "cancelled" puts the invoice's quantities back in stock.
    Repeating the current status changes nothing.
    """
    data = request.get_json(silent=True) or {}
    status = data.get("status") if isinstance(data, dict) else None
    if not status or not isinstance(status, str):
        return jsonify({"error": "status required"}), 400

    try:
        invoice = invoice_service.set_invoice_status(
            user_id=g.current_user.id,
            invoice_id=invoice_id,
            status=status.strip().lower(),
        )
        return jsonify(invoice.to_dict(include_items=True)), 200

    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DocumentStateError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to change invoice status")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
def delete_invoice_route(invoice_id: int):
    """Delete an invoice. A non-cancelled invoice returns its stock first."""
    try:
        invoice_service.delete_invoice(user_id=g.current_user.id, invoice_id=invoice_id)
        return jsonify({"ok": True}), 200

    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete invoice")
        return jsonify({"error": "Internal server error"}), 500
