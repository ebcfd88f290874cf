# Overview: Flask API routes for user settings; parses input and returns JSON responses.

from __future__ import annotations

from flask import Blueprint, jsonify, request, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..decorators import require_auth
from ..services import settings_service
from ..models import CompanyProfile, UserSettings
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_settings,
    enforce_rules_company_profile,
    ValidationError,
)


SETTINGS_POLICY = ModelValidationPolicy(writable_fields=set(settings_service.SETTINGS_MUTABLE_FIELDS))
COMPANY_PROFILE_POLICY = ModelValidationPolicy(
    writable_fields=set(settings_service.COMPANY_PROFILE_MUTABLE_FIELDS)
)

settings_bp = Blueprint("settings", __name__, url_prefix="/api")


@settings_bp.get("/settings")
@require_auth
def get_settings_route():
    return jsonify(settings_service.get_settings(g.current_user.id))


@settings_bp.put("/settings")
@require_auth
def update_settings_route():
    """Partial update. Existing documents keep the values they were created with."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=UserSettings, payload=payload, policy=SETTINGS_POLICY, partial=True)
        enforce_rules_settings(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        return jsonify(settings_service.update_settings(user_id=g.current_user.id, patch=patch)), 200
    except SQLAlchemyError:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500


@settings_bp.get("/settings/company")
@require_auth
def get_company_profile_route():
    return jsonify(settings_service.get_company_profile(g.current_user.id))


@settings_bp.put("/settings/company")
@require_auth
def update_company_profile_route():
    """Partial update of the business details printed on documents."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=CompanyProfile, payload=payload, policy=COMPANY_PROFILE_POLICY, partial=True)
        enforce_rules_company_profile(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        return jsonify(settings_service.update_company_profile(user_id=g.current_user.id, patch=patch)), 200
    except SQLAlchemyError:
        current_app.logger.exception("Failed to update company profile")
        return jsonify({"error": "Internal server error"}), 500
