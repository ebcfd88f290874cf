# Overview: Flask API routes for balance sheet transactions; parses input and returns JSON responses.

# backend/stockbook/routes/transactions.py
"""
Balance sheet routes.

Transactions are manual income/expense entries. They are independent of
invoices and bills.
"""
from flask import Blueprint, request, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..services import balance_service
from ..models import Transaction
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_transaction,
    parse_date_param,
    ValidationError,
)
from ..decorators import require_auth

TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={"type", "category", "amount_cents", "description", "transaction_date"},
    required_on_create={"type", "category", "amount_cents"},
)

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api")


@transactions_bp.get("/transactions")
@require_auth
def list_transactions_route():
    """Query params: type (income|expense), date_from, date_to, page, per_page"""
    tx_type = request.args.get("type") or None
    if tx_type is not None and tx_type not in ("income", "expense"):
        return {"error": "type must be 'income' or 'expense'"}, 400

    try:
        date_from = parse_date_param("date_from", request.args.get("date_from"))
        date_to = parse_date_param("date_to", request.args.get("date_to"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    return balance_service.list_transactions(
        user_id=g.current_user.id,
        type=tx_type,
        date_from=date_from,
        date_to=date_to,
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@transactions_bp.post("/transactions")
@require_auth
def create_transaction_route():
    """Record an income or expense. transaction_date defaults to today."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Transaction, payload=payload, policy=TRANSACTION_POLICY, partial=False)
        enforce_rules_transaction(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = balance_service.create_transaction(user_id=g.current_user.id, patch=patch)
    except SQLAlchemyError:
        current_app.logger.exception("Failed to create transaction")
        return {"error": "Internal server error"}, 500

    return created, 201


@transactions_bp.delete("/transactions/<int:transaction_id>")
@require_auth
def delete_transaction_route(transaction_id: int):
    try:
        deleted = balance_service.delete_transaction(user_id=g.current_user.id, transaction_id=transaction_id)
    except SQLAlchemyError:
        current_app.logger.exception("Failed to delete transaction")
        return {"error": "Internal server error"}, 500

    if not deleted:
        return {"error": "Transaction not found"}, 404

    return {"ok": True}, 200


@transactions_bp.get("/balance-sheet")
@require_auth
def balance_sheet_route():
    """Totals over an optional inclusive range: ?start=YYYY-MM-DD&end=YYYY-MM-DD"""
    try:
        start = parse_date_param("start", request.args.get("start"))
        end = parse_date_param("end", request.args.get("end"))
    except ValidationError as e:
        return {"error": str(e)}, 400

    if start and end and end < start:
        return {"error": "end cannot be before start"}, 400

    return balance_service.balance_sheet(user_id=g.current_user.id, start=start, end=end)
