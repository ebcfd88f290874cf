# Overview: Flask API route for global search across products, clients and documents.

from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..decorators import require_auth
from ..services import search_service


search_bp = Blueprint("search", __name__, url_prefix="/api/search")


@search_bp.get("")
@require_auth
def search_route():
    """
    Query params:
    - q: search term (required)
    """
    term = (request.args.get("q") or "").strip()
    if not term:
        return jsonify({"error": "q is required"}), 400

    try:
        return jsonify(search_service.search(user_id=g.current_user.id, term=term)), 200
    except SQLAlchemyError:
        current_app.logger.exception("Search failed")
        return jsonify({"error": "Internal server error"}), 500
