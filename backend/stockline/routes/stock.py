# Overview: Flask API routes for stock lots; receipts, corrections, movements and alerts.

"""
Stock Routes

SECURITY: All routes require authentication.
- Reads require VIEW_INVENTORY
- Receipts require RECEIVE_STOCK, corrections/deletes ADJUST_STOCK,
  movements MOVE_STOCK (admin, manager)
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth, require_permission
from ..models import StockLot
from ..responses import ok, list_params, paginate, paginated
from ..services import reporting_service, stock_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_stock_lot,
)
from .common import DOMAIN_ERRORS, error_response, json_body, bool_arg


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")

RECEIVE_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id", "location_type", "location_id", "quantity", "unit_cost_cents",
        "unit_price_cents", "batch_number", "expire_date", "entry_date",
    },
    required_on_create={"product_id", "location_type", "location_id", "quantity"},
)

ADJUST_POLICY = ModelValidationPolicy(
    writable_fields={"quantity", "unit_cost_cents", "unit_price_cents", "batch_number", "expire_date"},
)

SORTABLE = {
    "entryDate": StockLot.entry_date,
    "expireDate": StockLot.expire_date,
    "quantity": StockLot.quantity,
}


@stock_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_stock_route():
    """
    List stock lots.

    Query params: product_id, location_type, location_id, in_stock (bool),
    plus page/limit/search/sortBy/sortOrder.
    """
    params = list_params()
    try:
        query = stock_service.list_lots_query(
            product_id=request.args.get("product_id", type=int),
            location_type=request.args.get("location_type"),
            location_id=request.args.get("location_id", type=int),
            in_stock_only=bool_arg("in_stock", False),
            search=params.search,
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    items, pagination = paginate(query, params, sortable=SORTABLE, default_sort=StockLot.entry_date)
    return paginated(items, pagination)


@stock_bp.post("")
@require_auth
@require_permission("RECEIVE_STOCK")
def receive_stock_route():
    """Receive stock as a new lot at a warehouse or outlet."""
    try:
        patch = validate_payload(model=StockLot, payload=json_body(), policy=RECEIVE_POLICY, partial=False)
        enforce_rules_stock_lot(patch)
        patch.setdefault("unit_cost_cents", 0)
        lot = stock_service.receive_stock(**patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info(
        "Stock received: lot=%s product=%s qty=%s at %s/%s by user=%s",
        lot.id, lot.product_id, lot.quantity, lot.location_type, lot.location_id, g.current_user.id,
    )
    return ok(lot.to_dict(), "Stock received", 201)


@stock_bp.get("/<int:lot_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_stock_route(lot_id: int):
    try:
        lot = stock_service.get_lot(lot_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(lot.to_dict())


@stock_bp.put("/<int:lot_id>")
@require_auth
@require_permission("ADJUST_STOCK")
def adjust_stock_route(lot_id: int):
    """Correct a lot's remaining quantity, prices, batch or expiry."""
    try:
        patch = validate_payload(model=StockLot, payload=json_body(), policy=ADJUST_POLICY, partial=True)
        enforce_rules_stock_lot(patch)
        lot = stock_service.adjust_lot(lot_id, patch)
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info("Stock lot %s adjusted by user=%s: %s", lot_id, g.current_user.id, sorted(patch))
    return ok(lot.to_dict(), "Stock updated")


@stock_bp.delete("/<int:lot_id>")
@require_auth
@require_permission("ADJUST_STOCK")
def delete_stock_route(lot_id: int):
    try:
        stock_service.delete_lot(lot_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(message="Stock lot deleted")


@stock_bp.post("/movement")
@require_auth
@require_permission("MOVE_STOCK")
def move_stock_route():
    """
    Move units between locations, oldest lots first.

    Request body:
    {
        "product_id": 1,
        "from_type": "WAREHOUSE", "from_id": 1,
        "to_type": "OUTLET", "to_id": 2,
        "quantity": 10
    }
    """
    try:
        data = json_body()
        lots = stock_service.move_stock(
            product_id=data.get("product_id"),
            from_type=data.get("from_type"),
            from_id=data.get("from_id"),
            to_type=data.get("to_type"),
            to_id=data.get("to_id"),
            quantity=data.get("quantity"),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info(
        "Stock moved: product=%s qty=%s %s/%s -> %s/%s by user=%s",
        data.get("product_id"), data.get("quantity"), data.get("from_type"), data.get("from_id"),
        data.get("to_type"), data.get("to_id"), g.current_user.id,
    )
    return ok([lot.to_dict() for lot in lots], "Stock moved", 201)


@stock_bp.get("/alerts")
@require_auth
@require_permission("VIEW_INVENTORY")
def stock_alerts_route():
    """Low-stock products and lots expiring within `days` (default 30)."""
    try:
        alerts = stock_service.inventory_alerts(
            location_type=request.args.get("location_type"),
            location_id=request.args.get("location_id", type=int),
            expiring_within_days=request.args.get("days", 30, type=int),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(alerts)


@stock_bp.get("/stats")
@require_auth
@require_permission("VIEW_REPORTS")
def stock_stats_route():
    """
    On-hand totals, values, alert counts, per-location breakdown and the
    most valuable products. Optional location_type / location_id scope it.
    """
    try:
        stats = reporting_service.stock_stats(
            location_type=request.args.get("location_type"),
            location_id=request.args.get("location_id", type=int),
            expiring_within_days=request.args.get("days", 30, type=int),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(stats)
