# Overview: Flask API routes for purchase order operations; parses input and returns JSON responses.

# backend/stockbook/routes/purchase_orders.py
"""Purchase order API routes"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import purchase_order_service
from ..services.document_service import (
    DocumentNotFoundError,
    DocumentStateError,
    DocumentValidationError,
)
from ..validation import (
    ValidationError,
    parse_document_filters,
    parse_document_header,
    parse_tax_options,
    validate_line_items,
)
from ..decorators import require_auth


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")

PURCHASE_ORDER_HEADER_FIELDS = {"client_id", "supplier_name", "supplier_email", "order_date", "notes"}


@purchase_orders_bp.get("")
@require_auth
def list_purchase_orders_route():
    """Query params: status, client_id, date_from, date_to (order date), page, per_page"""
    try:
        filters = parse_document_filters(
            request.args, statuses=purchase_order_service.PURCHASE_ORDER_STATUSES
        )
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    return purchase_order_service.list_purchase_orders(
        user_id=g.current_user.id,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
        **filters,
    )


@purchase_orders_bp.post("")
@require_auth
def create_purchase_order_route():
    """Create a pending purchase order. Stock is untouched until it is received."""
    payload = request.get_json(silent=True) or {}

    try:
        header = parse_document_header(
            payload, allowed=PURCHASE_ORDER_HEADER_FIELDS, email_key="supplier_email"
        )
        items = validate_line_items(payload.get("items"), require_product=True)
        tax_enabled, tax_rate_bps = parse_tax_options(payload)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        order = purchase_order_service.create_purchase_order(
            user_id=g.current_user.id,
            header=header,
            items=items,
            tax_enabled=tax_enabled,
            tax_rate_bps=tax_rate_bps,
        )
        return jsonify(order.to_dict(include_items=True)), 201

    except DocumentValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.get("/<int:purchase_order_id>")
@require_auth
def get_purchase_order_route(purchase_order_id: int):
    try:
        order = purchase_order_service.get_purchase_order(
            user_id=g.current_user.id, purchase_order_id=purchase_order_id
        )
    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify(order.to_dict(include_items=True))


def _change_status(purchase_order_id: int, status: str):
    try:
        order = purchase_order_service.set_purchase_order_status(
            user_id=g.current_user.id,
            purchase_order_id=purchase_order_id,
            status=status,
        )
        return jsonify(order.to_dict(include_items=True)), 200

    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except DocumentStateError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Failed to change purchase order status")
        return jsonify({"error": "Internal server error"}), 500


@purchase_orders_bp.post("/<int:purchase_order_id>/receive")
@require_auth
def receive_purchase_order_route(purchase_order_id: int):
    """Receive a pending order into stock. Receiving twice is a no-op."""
    return _change_status(purchase_order_id, purchase_order_service.STATUS_RECEIVED)


@purchase_orders_bp.post("/<int:purchase_order_id>/status")
@require_auth
def set_purchase_order_status_route(purchase_order_id: int):
    data = request.get_json(silent=True) or {}
    status = data.get("status") if isinstance(data, dict) else None
    if not status or not isinstance(status, str):
        return jsonify({"error": "status required"}), 400
    return _change_status(purchase_order_id, status.strip().lower())


@purchase_orders_bp.delete("/<int:purchase_order_id>")
@require_auth
def delete_purchase_order_route(purchase_order_id: int):
    """Delete an order. Received stock stays where it is."""
    try:
        purchase_order_service.delete_purchase_order(
            user_id=g.current_user.id, purchase_order_id=purchase_order_id
        )
        return jsonify({"ok": True}), 200

    except DocumentNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete purchase order")
        return jsonify({"error": "Internal server error"}), 500
