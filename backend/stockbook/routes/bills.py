# Overview: Flask API routes for bills operations; parses input and returns JSON responses.

# backend/stockbook/routes/bills.py
"""Bill API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import bill_service
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


bills_bp = Blueprint("bills", __name__, url_prefix="/api/bills")

BILL_HEADER_FIELDS = {"client_id", "customer_name", "customer_email", "bill_date", "notes"}


@bills_bp.get("")
@require_auth
def list_bills_route():
    """Query params: status, client_id, date_from, date_to (bill date), page, per_page"""
    try:
        filters = parse_document_filters(request.args, statuses=bill_service.BILL_STATUSES)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return bill_service.list_bills(
        user_id=g.current_user.id,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        **filters,
    )


@bills_bp.post("")
@require_auth
def create_bill_route():
    """Create a bill. Product lines enter stock immediately."""
    payload = request.get_json(silent=True) or {}

    try:
        header = parse_document_header(payload, allowed=BILL_HEADER_FIELDS, email_key="customer_email")
        items = validate_line_items(payload.get("items"))
        tax_enabled, tax_rate_bps = parse_tax_options(payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        bill = bill_service.create_bill(
            user_id=g.current_user.id,
            header=header,
            items=items,
            tax_enabled=tax_enabled,
            tax_rate_bps=tax_rate_bps,
        )
        return jsonify(bill.to_dict(include_items=True)), 201

    except DocumentValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create bill")
        return jsonify({"error": "Internal server error"}), 500


@bills_bp.get("/<int:bill_id>")
@require_auth
def get_bill_route(bill_id: int):
    try:
        bill = bill_service.get_bill(user_id=g.current_user.id, bill_id=bill_id)
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(bill.to_dict(include_items=True))


@bills_bp.post("/<int:bill_id>/status")
@require_auth
def set_bill_status_route(bill_id: int):
    """Cancel a bill ({"status": "cancelled"}); its quantities leave stock again."""
    data = request.get_json(silent=True) or {}
    status = data.get("status") if isinstance(data, dict) else None
    if not status or not isinstance(status, str):
        return jsonify({"error": "status required"}), 400

    try:
        bill = bill_service.set_bill_status(
            user_id=g.current_user.id,
            bill_id=bill_id,
            status=status.strip().lower(),
        )
        return jsonify(bill.to_dict(include_items=True)), 200

    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DocumentStateError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to change bill status")
        return jsonify({"error": "Internal server error"}), 500


@bills_bp.delete("/<int:bill_id>")
@require_auth
def delete_bill_route(bill_id: int):
    try:
        bill_service.delete_bill(user_id=g.current_user.id, bill_id=bill_id)
        return jsonify({"ok": True}), 200

    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to delete bill")
        return jsonify({"error": "Internal server error"}), 500
