# Overview: Flask API routes for customer orders.

"""
Order Routes

Lifecycle: PENDING -> CONFIRMED -> FULFILLED, or CANCELLED.
Stock is only deducted by POST /api/orders/<id>/fulfill.
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth, require_permission
from ..models import Order
from ..responses import ok, list_params, paginate, paginated
from ..services import order_service
from .common import DOMAIN_ERRORS, error_response, json_body, date_arg


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")

SORTABLE = {
    "createdAt": Order.created_at,
    "total": Order.total_cents,
    "orderNumber": Order.order_number,
    "status": Order.status,
}


def _list(customer_id=None):
    params = list_params()
    try:
        query = order_service.list_orders_query(
            status=request.args.get("status"),
            customer_id=customer_id or request.args.get("customer_id", type=int),
            date_from=date_arg("date_from"),
            date_to=date_arg("date_to", end_of_day=True),
            search=params.search,
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    items, pagination = paginate(query, params, sortable=SORTABLE, default_sort=Order.created_at)
    return paginated(items, pagination)


@orders_bp.get("")
@require_auth
@require_permission("VIEW_ORDERS")
def list_orders_route():
    return _list()


@orders_bp.get("/customer/<int:customer_id>")
@require_auth
@require_permission("VIEW_ORDERS")
def customer_orders_route(customer_id: int):
    """Orders placed by one customer."""
    return _list(customer_id=customer_id)


@orders_bp.post("")
@require_auth
@require_permission("CREATE_ORDER")
def create_order_route():
    """
    Create a PENDING order.

    Request body:
    {
        "customer_id": 5 | "customer_name": "Walk-in",
        "items": [{"product_id": 1, "quantity": 2}],
        "discount_cents": 0,
        "payments": [{"method": "BKASH", "amount_cents": 5000}],
        "change_cents": 0,
        "notes": "..."
    }
    """
    try:
        data = json_body()
        order = order_service.create_order(
            items=data.get("items"),
            customer_id=data.get("customer_id"),
            customer_name=data.get("customer_name"),
            discount_cents=data.get("discount_cents", 0),
            payments=data.get("payments"),
            change_cents=data.get("change_cents", 0),
            notes=data.get("notes"),
            user_id=g.current_user.id,
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info("Order %s created by user=%s", order.order_number, g.current_user.id)
    return ok(order.to_dict(include_lines=True), "Order created", 201)


@orders_bp.get("/<int:order_id>")
@require_auth
@require_permission("VIEW_ORDERS")
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(order_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(order.to_dict(include_lines=True))


@orders_bp.put("/<int:order_id>")
@require_auth
@require_permission("CREATE_ORDER")
def update_order_route(order_id: int):
    """Edit items, discount, customer or notes of a PENDING order."""
    try:
        order = order_service.update_order(order_id, json_body())
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(order.to_dict(include_lines=True), "Order updated")


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_permission("MANAGE_ORDERS")
def delete_order_route(order_id: int):
    try:
        order_service.delete_order(order_id)
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(message="Order deleted")


@orders_bp.post("/<int:order_id>/status")
@require_auth
@require_permission("MANAGE_ORDERS")
def update_order_status_route(order_id: int):
    """Request body: {"status": "CONFIRMED" | "CANCELLED"}"""
    try:
        order = order_service.update_order_status(order_id, json_body().get("status"))
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info("Order %s -> %s by user=%s", order.order_number, order.status, g.current_user.id)
    return ok(order.to_dict(include_lines=True), "Order status updated")


@orders_bp.post("/<int:order_id>/fulfill")
@require_auth
@require_permission("MANAGE_ORDERS")
def fulfill_order_route(order_id: int):
    """Request body: {"location_type": "OUTLET" | "WAREHOUSE", "location_id": 1}"""
    try:
        data = json_body()
        order = order_service.fulfill_order(
            order_id,
            data.get("location_type"),
            data.get("location_id"),
            user_id=g.current_user.id,
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)

    current_app.logger.info(
        "Order %s fulfilled from %s/%s by user=%s",
        order.order_number, order.fulfilled_from_type, order.fulfilled_from_id, g.current_user.id,
    )
    return ok(order.to_dict(include_lines=True), "Order fulfilled")


@orders_bp.post("/<int:order_id>/payments")
@require_auth
@require_permission("CREATE_ORDER")
def record_order_payment_route(order_id: int):
    """Request body: {"payments": [{"method": "CASH", "amount_cents": 1000}], "change_cents": 0}"""
    try:
        data = json_body()
        order = order_service.record_order_payment(
            order_id, data.get("payments"), data.get("change_cents", 0)
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)
    return ok(order.to_dict(include_lines=True), "Payment recorded")
