# Overview: Flask API routes for sales; finalize at the POS, list, detail, void and returns.

"""
Sales Routes

POST /api/sales finalizes a sale in one step: totals are recomputed
server-side, payments reconciled, stock drawn oldest lot first and the sale
numbered. Nothing is persisted when any step fails.
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth, require_permission
from ..models import Sale
from ..responses import ok, list_params, paginate, paginated
from ..services import reporting_service, sales_service
from .common import DOMAIN_ERRORS, error_response, json_body, date_arg


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

SORTABLE = {
    "createdAt": Sale.created_at,
    "total": Sale.total_cents,
    "saleNumber": Sale.sale_number,
}


@sales_bp.post("")
@require_auth
@require_permission("CREATE_SALE")
def create_sale_route():
    """
    Finalize a sale.

    Request body:
    {
        "outlet_id": 1,
        "customer_id": 5,                       // optional
        "items": [{"product_id": 1, "quantity": 2, "unit_price_cents"?: 10000, "discount_cents"?: 0}],
        "discount_cents": 2000,                 // document discount, optional
        "payments": [{"method": "CASH", "amount_cents": 20000}],
        "change_cents": 0,
        "notes": "..."
    }
    """
    try:
        data = json_body()
        sale = sales_service.finalize_sale(
            outlet_id=data.get("outlet_id"),
            items=data.get("items"),
            payments=data.get("payments"),
            discount_cents=data.get("discount_cents", 0),
            customer_id=data.get("customer_id"),
            user_id=g.current_user.id,
            change_cents=data.get("change_cents", 0),
            notes=data.get("notes"),
        )
    except DOMAIN_ERRORS as e:
        current_app.logger.info("Sale rejected for user=%s: %s", g.current_user.id, e)
        return error_response(e)

    current_app.logger.info(
        "Sale %s finalized: outlet=%s total=%s due=%s user=%s",
        sale.sale_number, sale.outlet_id, sale.total_cents, sale.due_cents, g.current_user.id,
    )
    return ok(sale.to_dict(include_lines=True), "Sale completed", 201)


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """
    List sales.

    Query params: outlet_id, customer_id, status, payment_status,
    date_from, date_to (ISO-8601), plus page/limit/search/sortBy/sortOrder.
    """
    params = list_params()
    try:
        query = sales_service.list_sales_query(
            outlet_id=request.args.get("outlet_id", type=int),
            customer_id=request.args.get("customer_id", type=int),
            status=request.args.get("status"),
            payment_status=request.args.get("payment_status"),
            date_from=date_arg("date_from"),
            date_to=date_arg("date_to", end_of_day=True),
            search=params.search,
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    items, pagination = paginate(query, params, sortable=SORTABLE, default_sort=Sale.created_at)
    return paginated(items, pagination)


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(sale.to_dict(include_lines=True))


@sales_bp.post("/<int:sale_id>/void")
@require_auth
@require_permission("VOID_SALE")
def void_sale_route(sale_id: int):
    """Void a completed sale; all of its stock goes back to the original lots."""
    try:
        data = json_body()
        sale = sales_service.void_sale(sale_id, user_id=g.current_user.id, reason=data.get("reason"))
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info("Sale %s voided by user=%s", sale.sale_number, g.current_user.id)
    return ok(sale.to_dict(include_lines=True), "Sale voided")


@sales_bp.post("/<int:sale_id>/returns")
@require_auth
@require_permission("PROCESS_RETURN")
def return_sale_items_route(sale_id: int):
    """
    Return items from a sale.

    Request body: {"items": [{"sale_line_id": 3, "quantity": 1}]}
    """
    try:
        data = json_body()
        result = sales_service.return_sale_items(sale_id, data.get("items"), user_id=g.current_user.id)
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info(
        "Return on sale %s: refund=%s user=%s", sale_id, result["refund_cents"], g.current_user.id
    )
    return ok(result, "Items returned")


@sales_bp.get("/stats")
@require_auth
@require_permission("VIEW_REPORTS")
def sales_stats_route():
    """
    Sale count, revenue, average sale, revenue by payment method and by day.

    Query params: outlet_id, date_from, date_to, days (window for the daily
    series, default 30).
    """
    try:
        stats = reporting_service.sales_stats(
            outlet_id=request.args.get("outlet_id", type=int),
            start=date_arg("date_from"),
            end=date_arg("date_to", end_of_day=True),
            days=request.args.get("days", 30, type=int),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(stats)
