# Overview: Flask API routes for stock demands; requests for replenishment and their conversion to lots.

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth, require_permission
from ..models import Demand
from ..responses import ok, list_params, paginate, paginated
from ..services import demand_service
from .common import DOMAIN_ERRORS, error_response, json_body


demand_bp = Blueprint("demand", __name__, url_prefix="/api/demand")

SORTABLE = {
    "createdAt": Demand.created_at,
    "demandNumber": Demand.demand_number,
    "status": Demand.status,
}


@demand_bp.get("")
@require_auth
@require_permission("VIEW_DEMAND")
def list_demands_route():
    params = list_params()
    try:
        query = demand_service.list_demands_query(
            status=request.args.get("status"),
            location_type=request.args.get("location_type"),
            location_id=request.args.get("location_id", type=int),
            search=params.search,
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    items, pagination = paginate(query, params, sortable=SORTABLE, default_sort=Demand.created_at)
    return paginated(items, pagination)


@demand_bp.post("")
@require_auth
@require_permission("CREATE_DEMAND")
def create_demand_route():
    """
    Raise a demand for a location.

    Request body:
    {
        "location_type": "OUTLET",
        "location_id": 1,
        "lines": [{"product_id": 1, "quantity": 24}],
        "notes": "..."
    }
    """
    try:
        data = json_body()
        demand = demand_service.create_demand(
            location_type=data.get("location_type"),
            location_id=data.get("location_id"),
            lines=data.get("lines"),
            notes=data.get("notes"),
            user_id=g.current_user.id,
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info("Demand %s created by user=%s", demand.demand_number, g.current_user.id)
    return ok(demand.to_dict(), "Demand created", 201)


@demand_bp.post("/generate")
@require_auth
@require_permission("MANAGE_DEMAND")
def generate_demand_route():
    """
    Propose a demand from an outlet's recent sales.

    Request body: {"outlet_id": 1, "days": 30, "min_sales_threshold": 1}
    """
    try:
        data = json_body()
        demand = demand_service.generate_demand(
            outlet_id=data.get("outlet_id"),
            days=data.get("days", 30),
            min_sales_threshold=data.get("min_sales_threshold", 1),
            user_id=g.current_user.id,
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info(
        "Demand %s generated for outlet=%s (%s lines)",
        demand.demand_number, demand.location_id, len(demand.lines),
    )
    return ok(demand.to_dict(), "Demand generated", 201)


@demand_bp.get("/<int:demand_id>")
@require_auth
@require_permission("VIEW_DEMAND")
def get_demand_route(demand_id: int):
    try:
        demand = demand_service.get_demand(demand_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(demand.to_dict())


@demand_bp.put("/<int:demand_id>")
@require_auth
@require_permission("CREATE_DEMAND")
def update_demand_route(demand_id: int):
    try:
        demand = demand_service.update_demand(demand_id, json_body())
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(demand.to_dict(), "Demand updated")


@demand_bp.delete("/<int:demand_id>")
@require_auth
@require_permission("MANAGE_DEMAND")
def delete_demand_route(demand_id: int):
    try:
        demand_service.delete_demand(demand_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(message="Demand deleted")


@demand_bp.post("/<int:demand_id>/status")
@require_auth
@require_permission("MANAGE_DEMAND")
def update_demand_status_route(demand_id: int):
    """Request body: {"status": "APPROVED" | "CANCELLED"}"""
    try:
        demand = demand_service.update_demand_status(demand_id, json_body().get("status"))
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(demand.to_dict(), "Demand status updated")


@demand_bp.post("/<int:demand_id>/convert")
@require_auth
@require_permission("MANAGE_DEMAND")
def convert_demand_route(demand_id: int):
    """
    Receive a demand into a warehouse as new stock lots.

    Request body:
    {
        "warehouse_id": 1,
        "lines": [{"product_id": 1, "unit_cost_cents": 700, "batch_number": "B-12"}]   // optional
    }
    """
    try:
        data = json_body()
        result = demand_service.convert_demand(
            demand_id, data.get("warehouse_id"), data.get("lines")
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info(
        "Demand %s converted into warehouse=%s (%s lots) by user=%s",
        result["demand"]["demand_number"], data.get("warehouse_id"), len(result["lots"]), g.current_user.id,
    )
    return ok(result, "Demand converted", 201)
