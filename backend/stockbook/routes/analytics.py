# Overview: Flask API routes for analytics; profit report and dashboard figures.

# backend/stockbook/routes/analytics.py
from flask import Blueprint, request, jsonify, g, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..validation import parse_date_param, ValidationError
from ..decorators import require_auth


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("/profit")
@require_auth
def profit_report_route():
    """
    Profit analytics over invoice lines.

    Query params:
    - start, end: YYYY-MM-DD (default: last six calendar months)
    """
    try:
        start = parse_date_param("start", request.args.get("start"))
        end = parse_date_param("end", request.args.get("end"))
        report = reporting_service.profit_report(user_id=g.current_user.id, start=start, end=end)
        return jsonify(report), 200

    except (ValidationError, ReportError) as e:
        return jsonify({"error": str(e)}), 400
    except SQLAlchemyError:
        current_app.logger.exception("Failed to build profit report")
        return jsonify({"error": "Internal server error"}), 500


@analytics_bp.get("/dashboard")
@require_auth
def dashboard_route():
    return jsonify(reporting_service.dashboard_stats(user_id=g.current_user.id)), 200
