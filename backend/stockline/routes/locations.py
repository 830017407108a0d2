# Overview: Flask API routes for outlets and warehouses, including per-location inventory.

from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..models.locations import LOCATION_OUTLET, LOCATION_WAREHOUSE
from ..responses import ok
from ..services import reporting_service, resources, stock_service
from ..validation import NotFoundError
from .common import DOMAIN_ERRORS, register_crud_routes, error_response


outlets_bp = Blueprint("outlets", __name__, url_prefix="/api/outlets")
warehouses_bp = Blueprint("warehouses", __name__, url_prefix="/api/warehouses")

register_crud_routes(
    outlets_bp,
    resources.OUTLETS,
    view_permission="VIEW_LOCATIONS",
    manage_permission="MANAGE_LOCATIONS",
    filter_args={"is_active": ("is_active", bool)},
)

register_crud_routes(
    warehouses_bp,
    resources.WAREHOUSES,
    view_permission="VIEW_LOCATIONS",
    manage_permission="MANAGE_LOCATIONS",
    filter_args={"is_active": ("is_active", bool)},
)


def _inventory(location_type: str, location_id: int):
    try:
        location = stock_service.get_location(location_type, location_id)
        items = stock_service.location_inventory(location_type, location_id)
    except NotFoundError as e:
        return error_response(e)
    return ok({
        "location": location.to_dict(),
        "items": items,
        "total_quantity": sum(item["quantity"] for item in items),
    })


@outlets_bp.get("/<int:outlet_id>/inventory")
@require_auth
@require_permission("VIEW_INVENTORY")
def outlet_inventory_route(outlet_id: int):
    """Per-product on-hand summary for one outlet."""
    return _inventory(LOCATION_OUTLET, outlet_id)


@warehouses_bp.get("/<int:warehouse_id>/inventory")
@require_auth
@require_permission("VIEW_INVENTORY")
def warehouse_inventory_route(warehouse_id: int):
    """Per-product on-hand summary for one warehouse."""
    return _inventory(LOCATION_WAREHOUSE, warehouse_id)


@outlets_bp.get("/stats")
@require_auth
@require_permission("VIEW_REPORTS")
def outlet_stats_route():
    """Stock held and recent sales per outlet; `days` sets the sales window."""
    try:
        stats = reporting_service.outlet_stats(days=request.args.get("days", 30, type=int))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(stats)
