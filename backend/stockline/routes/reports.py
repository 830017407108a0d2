# Overview: Flask API routes for the back-office dashboard figures.

from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..responses import ok
from ..services import reporting_service
from .common import DOMAIN_ERRORS, error_response


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
@require_permission("VIEW_REPORTS")
def dashboard_stats_route():
    """
    Revenue, counts, recent orders, top products and a daily revenue series.

    Query params: days (daily series window, default 7).
    """
    try:
        stats = reporting_service.dashboard_stats(days=request.args.get("days", 7, type=int))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(stats)
