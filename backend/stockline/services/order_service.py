# Overview: Service-layer operations for customer orders; pricing, status lifecycle, fulfillment and payments.

"""
Order Service

Orders are priced and numbered like sales but reserve nothing: stock is
deducted only by fulfill_order, in one transaction, from the chosen outlet
or warehouse.

Lifecycle:
    PENDING -> CONFIRMED -> FULFILLED
    PENDING | CONFIRMED -> CANCELLED
Only PENDING orders can be edited or deleted.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Order, OrderLine, OrderAllocation, OrderPayment
from ..models.orders import (
    ORDER_PENDING,
    ORDER_CONFIRMED,
    ORDER_FULFILLED,
    ORDER_CANCELLED,
    ORDER_TRANSITIONS,
)
from ..time_utils import utcnow
from ..validation import ValidationError, NotFoundError, InvalidStatusTransition
from .checkout_service import (
    price_cart,
    normalize_payments,
    settle,
    get_customer,
    apply_customer_stats,
    PaymentMismatchError,
)
from .concurrency import atomic, run_with_retry
from .counter_service import next_document_number, SCOPE_ORDER
from .stock_service import allocate, get_location, normalize_location_type


class OrderError(ValidationError):
    """Raised for order operation errors."""
    pass


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found")
    return order


def _apply_cart(order: Order, cart) -> None:
    order.lines.clear()
    for priced in cart.lines:
        order.lines.append(OrderLine(
            product_id=priced.product.id,
            quantity=priced.quantity,
            unit_price_cents=priced.unit_price_cents,
            line_discount_cents=priced.line_discount_cents,
            line_total_cents=priced.line_total_cents,
        ))
    order.subtotal_cents = cart.subtotal_cents
    order.discount_cents = cart.discount_cents
    order.total_cents = cart.total_cents


def _apply_settlement(order: Order, settlement) -> None:
    for method, amount, reference in settlement.payments:
        order.payments.append(OrderPayment(method=method, amount_cents=amount, reference=reference))
    order.paid_cents = settlement.paid_cents
    order.change_cents = settlement.change_cents
    order.due_cents = settlement.due_cents
    order.payment_status = settlement.payment_status


def create_order(
    *,
    items,
    customer_id: int | None = None,
    customer_name: str | None = None,
    discount_cents=0,
    payments=None,
    change_cents=0,
    notes: str | None = None,
    user_id: int | None = None,
) -> Order:
    """Price and number a new PENDING order. No stock moves."""
    def _op() -> Order:
        with atomic():
            customer = get_customer(customer_id)
            name = (customer_name or "").strip() or (customer.name if customer else None)
            if not name:
                raise ValidationError("customer_id or customer_name is required")

            cart = price_cart(items, discount_cents, customer)
            settlement = settle(cart.total_cents, normalize_payments(payments), change_cents)

            now = utcnow()
            order = Order(
                order_number=next_document_number(SCOPE_ORDER, moment=now),
                customer_id=customer.id if customer else None,
                customer_name=name,
                status=ORDER_PENDING,
                notes=notes,
                created_by_user_id=user_id,
                created_at=now,
            )
            _apply_cart(order, cart)
            _apply_settlement(order, settlement)
            db.session.add(order)
        return order

    return run_with_retry(_op)


def update_order(order_id: int, data: dict) -> Order:
    """
    Edit a PENDING order: items, discount, customer or notes.

    The cart is repriced; payments already recorded must not exceed the
    new total.
    """
    def _op() -> Order:
        with atomic():
            order = get_order(order_id)
            if order.status != ORDER_PENDING:
                raise OrderError(f"Only PENDING orders can be edited (order is {order.status})")

            if "customer_id" in data:
                customer = get_customer(data.get("customer_id"))
                order.customer_id = customer.id if customer else None
                if customer and not data.get("customer_name"):
                    order.customer_name = customer.name
            else:
                customer = get_customer(order.customer_id)
            if data.get("customer_name"):
                order.customer_name = str(data["customer_name"]).strip()
            if "notes" in data:
                order.notes = data.get("notes")

            if "items" in data or "discount_cents" in data:
                items = data.get("items")
                if items is None:
                    items = [
                        {
                            "product_id": line.product_id,
                            "quantity": line.quantity,
                            "unit_price_cents": line.unit_price_cents,
                            "discount_cents": line.line_discount_cents,
                        }
                        for line in order.lines
                    ]
                discount = data.get("discount_cents", order.discount_cents)
                cart = price_cart(items, discount, customer)
                settlement = settle(
                    cart.total_cents,
                    [],
                    0,
                    already_paid_cents=order.paid_cents,
                    already_change_cents=order.change_cents,
                )
                _apply_cart(order, cart)
                _apply_settlement(order, settlement)

            order.updated_at = utcnow()
        return order

    return run_with_retry(_op)


def delete_order(order_id: int) -> None:
    with atomic():
        order = get_order(order_id)
        if order.status != ORDER_PENDING:
            raise OrderError(f"Only PENDING orders can be deleted (order is {order.status})")
        db.session.delete(order)


def update_order_status(order_id: int, status: str) -> Order:
    """Move an order along its lifecycle. FULFILLED is only reachable via fulfill_order."""
    requested = (status or "").strip().upper()
    if requested not in ORDER_TRANSITIONS:
        raise ValidationError(f"Unknown order status: {status}")

    with atomic():
        order = get_order(order_id)
        if requested not in ORDER_TRANSITIONS[order.status]:
            raise InvalidStatusTransition(order.status, requested)
        order.status = requested
        order.updated_at = utcnow()
    return order


def fulfill_order(order_id: int, location_type: str, location_id: int, user_id: int | None = None) -> Order:
    """Deduct every line from one location, oldest lots first, and mark FULFILLED."""
    location_type = normalize_location_type(location_type)

    def _op() -> Order:
        with atomic():
            order = get_order(order_id)
            if order.status not in (ORDER_PENDING, ORDER_CONFIRMED):
                raise InvalidStatusTransition(order.status, ORDER_FULFILLED)
            location = get_location(location_type, location_id)
            if not location.is_active:
                raise OrderError("Fulfillment location is not active")

            for line in order.lines:
                for allocation in allocate(line.product_id, location_type, location.id, line.quantity):
                    line.allocations.append(OrderAllocation(
                        stock_lot_id=allocation.lot_id,
                        quantity=allocation.quantity,
                        unit_cost_cents=allocation.unit_cost_cents,
                    ))

            now = utcnow()
            order.status = ORDER_FULFILLED
            order.fulfilled_from_type = location_type
            order.fulfilled_from_id = location.id
            order.fulfilled_at = now
            order.updated_at = now

            apply_customer_stats(order.customer_id, order.total_cents, 1)
        return order

    return run_with_retry(_op)


def record_order_payment(order_id: int, payments, change_cents=0) -> Order:
    """Add payments to an order under the same over-payment rule as sales."""
    normalized = normalize_payments(payments)
    if not normalized:
        raise ValidationError("At least one payment is required")

    def _op() -> Order:
        with atomic():
            order = get_order(order_id)
            if order.status == ORDER_CANCELLED:
                raise OrderError("Cannot take payments on a CANCELLED order")
            if order.due_cents <= 0:
                raise PaymentMismatchError(
                    "Order is already fully paid",
                    total_cents=order.total_cents,
                    paid_cents=order.paid_cents - order.change_cents,
                    change_cents=change_cents or 0,
                )
            settlement = settle(
                order.total_cents,
                normalized,
                change_cents,
                already_paid_cents=order.paid_cents,
                already_change_cents=order.change_cents,
            )
            _apply_settlement(order, settlement)
            order.updated_at = utcnow()
        return order

    return run_with_retry(_op)


def list_orders_query(
    *,
    status: str | None = None,
    customer_id: int | None = None,
    date_from=None,
    date_to=None,
    search: str | None = None,
):
    query = db.session.query(Order)
    if status:
        query = query.filter(Order.status == status.upper())
    if customer_id:
        query = query.filter(Order.customer_id == customer_id)
    if date_from:
        query = query.filter(Order.created_at >= date_from)
    if date_to:
        query = query.filter(Order.created_at <= date_to)
    if search:
        like = f"%{search}%"
        query = query.filter(db.or_(Order.order_number.ilike(like), Order.customer_name.ilike(like)))
    return query
