# Overview: Flask API routes for the change feed; clients poll for rows changed since a cursor.

from flask import Blueprint, request, jsonify, g

from ..services import change_service
from ..services.change_service import ChangeFeedError
from ..decorators import require_auth


changes_bp = Blueprint("changes", __name__, url_prefix="/api/changes")


@changes_bp.get("")
@require_auth
def list_changes_route():
    """
    Poll the caller's change events.

    Query params:
    - since: int cursor (exclusive), default 0
    - relation: table name or "*"
    - event: INSERT | UPDATE | DELETE | "*"
    - limit: 1..500, default 100
    """
    since = request.args.get("since", default=0, type=int)
    limit = request.args.get("limit", default=100, type=int)

    try:
        result = change_service.list_changes(
            user_id=g.current_user.id,
            since=since,
            relation=request.args.get("relation"),
            event=(request.args.get("event") or "").upper() or None,
            limit=limit,
        )
    except ChangeFeedError as e:
        return jsonify({"error": str(e)}), 400

    return jsonify(result)
