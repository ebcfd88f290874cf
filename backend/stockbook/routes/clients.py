# Overview: Flask API routes for client operations; parses input and returns JSON responses.

# backend/stockbook/routes/clients.py
"""Client management routes"""

from flask import Blueprint, request, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..services import client_service
from ..services.client_service import ClientNotFoundError
from ..models import Client
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_client,
    ValidationError,
)
from ..decorators import require_auth

CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "email", "phone", "address"},
    required_on_create={"name"},
)

clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


@clients_bp.get("")
@require_auth
def list_clients_route():
    """Query params: search (name or email contains), page, per_page"""
    return client_service.list_clients(
        user_id=g.current_user.id,
        search=request.args.get("search"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@clients_bp.get("/<int:client_id>")
@require_auth
def get_client_route(client_id: int):
    try:
        client = client_service.get_client(user_id=g.current_user.id, client_id=client_id)
    except ClientNotFoundError as e:
        return {"error": str(e)}, 404
    return client.to_dict()


@clients_bp.post("")
@require_auth
def create_client_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=False)
        enforce_rules_client(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = client_service.create_client(user_id=g.current_user.id, patch=patch)
    except SQLAlchemyError:
        current_app.logger.exception("Failed to create client")
        return {"error": "Internal server error"}, 500

    return created, 201


@clients_bp.put("/<int:client_id>")
@require_auth
def update_client_route(client_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=True)
        enforce_rules_client(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = client_service.update_client(user_id=g.current_user.id, client_id=client_id, patch=patch)
    except SQLAlchemyError:
        current_app.logger.exception("Failed to update client")
        return {"error": "Internal server error"}, 500

    if not updated:
        return {"error": "Client not found"}, 404

    return updated, 200


@clients_bp.delete("/<int:client_id>")
@require_auth
def delete_client_route(client_id: int):
    """Delete a client. Documents keep their copied name and email."""
    try:
        deleted = client_service.delete_client(user_id=g.current_user.id, client_id=client_id)
    except SQLAlchemyError:
        current_app.logger.exception("Failed to delete client")
        return {"error": "Internal server error"}, 500

    if not deleted:
        return {"error": "Client not found"}, 404

    return {"ok": True}, 200
