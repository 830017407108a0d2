# Overview: Service-layer operations for sales; finalize, void, returns and listing.

"""
Sales Service

A sale is finalized in one transaction: price the cart, reconcile payments,
draw every line from the outlet's lots oldest first, number the document
and persist it. Any failure rolls back every decrement made so far.

Stock is restored to the exact lots recorded in SaleAllocation on void and
return.
"""

from __future__ import annotations

from ..extensions import db
from ..models import Sale, SaleLine, SaleAllocation, SalePayment
from ..models.locations import LOCATION_OUTLET
from ..models.sales import SALE_COMPLETED, SALE_VOIDED
from ..time_utils import utcnow
from ..validation import ValidationError, NotFoundError, require_positive_int
from .checkout_service import (
    price_cart,
    normalize_payments,
    settle,
    get_customer,
    apply_customer_stats,
)
from .concurrency import atomic, run_with_retry
from .counter_service import next_document_number, SCOPE_SALE
from .stock_service import allocate, restore_allocations, get_location


class SaleError(ValidationError):
    """Raised for sale operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def finalize_sale(
    *,
    outlet_id: int,
    items,
    payments=None,
    discount_cents=0,
    customer_id: int | None = None,
    user_id: int | None = None,
    change_cents=0,
    notes: str | None = None,
) -> Sale:
    """
    Price, pay, deduct stock and number a sale, all or nothing.

    Raises:
        ValidationError / PaymentMismatchError: bad input or payments
            (raised before any stock is touched)
        StockDepletedError: a line cannot be covered at the outlet
        NotFoundError: outlet, customer or product missing
    """
    def _op() -> Sale:
        with atomic():
            outlet = get_location(LOCATION_OUTLET, outlet_id)
            if not outlet.is_active:
                raise SaleError("Outlet is not active")
            customer = get_customer(customer_id)

            cart = price_cart(items, discount_cents, customer)
            settlement = settle(cart.total_cents, normalize_payments(payments), change_cents)

            now = utcnow()
            sale = Sale(
                sale_number="",
                outlet_id=outlet.id,
                customer_id=customer.id if customer else None,
                status=SALE_COMPLETED,
                subtotal_cents=cart.subtotal_cents,
                discount_cents=cart.discount_cents,
                total_cents=cart.total_cents,
                paid_cents=settlement.paid_cents,
                change_cents=settlement.change_cents,
                due_cents=settlement.due_cents,
                payment_status=settlement.payment_status,
                notes=notes,
                created_by_user_id=user_id,
                created_at=now,
            )

            for priced in cart.lines:
                line = SaleLine(
                    product_id=priced.product.id,
                    quantity=priced.quantity,
                    unit_price_cents=priced.unit_price_cents,
                    line_discount_cents=priced.line_discount_cents,
                    line_total_cents=priced.line_total_cents,
                )
                sale.lines.append(line)
                for allocation in allocate(priced.product.id, LOCATION_OUTLET, outlet.id, priced.quantity):
                    line.allocations.append(SaleAllocation(
                        stock_lot_id=allocation.lot_id,
                        quantity=allocation.quantity,
                        unit_cost_cents=allocation.unit_cost_cents,
                    ))

            for method, amount, reference in settlement.payments:
                sale.payments.append(SalePayment(method=method, amount_cents=amount, reference=reference))

            sale.sale_number = next_document_number(SCOPE_SALE, moment=now)
            db.session.add(sale)

            if customer:
                apply_customer_stats(customer.id, cart.total_cents, 1)
        return sale

    return run_with_retry(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found")
    return sale


def _outstanding(allocation: SaleAllocation) -> int:
    return allocation.quantity - allocation.restored_quantity


def void_sale(sale_id: int, user_id: int | None = None, reason: str | None = None) -> Sale:
    """Restore every outstanding unit to its lot and mark the sale VOIDED."""
    def _op() -> Sale:
        with atomic():
            sale = get_sale(sale_id)
            if sale.status != SALE_COMPLETED:
                raise SaleError(f"Cannot void a {sale.status} sale")

            to_restore = []
            for line in sale.lines:
                for allocation in line.allocations:
                    remaining = _outstanding(allocation)
                    if remaining > 0:
                        to_restore.append((allocation.stock_lot_id, remaining))
                        allocation.restored_quantity = allocation.quantity
                line.returned_quantity = line.quantity
            restore_allocations(to_restore)

            net_purchase = sale.total_cents - sale.refunded_cents
            apply_customer_stats(sale.customer_id, -net_purchase, -1)

            sale.status = SALE_VOIDED
            sale.voided_at = utcnow()
            sale.voided_by_user_id = user_id
            sale.void_reason = (reason or "").strip() or None
        return sale

    return run_with_retry(_op)


def line_net_totals(sale: Sale) -> dict[int, int]:
    """
    Each line's share of the sale total after the document discount.

    The discount is spread in proportion to line totals. Rounding cents go
    to the lines with the most room left, so the shares always sum to
    total_cents and no line goes below zero.
    """
    subtotal = sum(line.line_total_cents for line in sale.lines)
    if not subtotal:
        return {line.id: line.line_total_cents for line in sale.lines}

    shares = {line.id: sale.discount_cents * line.line_total_cents // subtotal for line in sale.lines}
    leftover = sale.discount_cents - sum(shares.values())
    by_room = sorted(sale.lines, key=lambda line: (shares[line.id] - line.line_total_cents, line.id))
    for line in by_room[:leftover]:
        shares[line.id] += 1
    return {line.id: line.line_total_cents - shares[line.id] for line in sale.lines}


def unit_refund_cents(line_net_cents: int, quantity: int, already_returned: int, returning: int) -> int:
    """
    Refund for `returning` more units of a line.

    Cumulative floors make piecewise returns add up to the full line net;
    the last unit back picks up any remainder.
    """
    before = line_net_cents * already_returned // quantity
    after = line_net_cents * (already_returned + returning) // quantity
    return after - before


def return_sale_items(sale_id: int, items, user_id: int | None = None) -> dict:
    """
    Return sold units to stock.

    items: [{"sale_line_id", "quantity"}]. Units go back to the lots they came
    from, newest allocation first, and never exceed sold minus returned.
    Each unit refunds its share of the line's net after the document
    discount; the refund is deducted from the customer's purchase total.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one return item is required")

    def _op() -> dict:
        with atomic():
            sale = get_sale(sale_id)
            if sale.status != SALE_COMPLETED:
                raise SaleError(f"Cannot return items on a {sale.status} sale")

            lines = {line.id: line for line in sale.lines}
            nets = line_net_totals(sale)
            refund_cents = 0
            returned = []

            for index, item in enumerate(items, start=1):
                if not isinstance(item, dict):
                    raise ValidationError(f"Return item {index} is invalid")
                line = lines.get(item.get("sale_line_id"))
                if line is None:
                    raise NotFoundError(f"Return item {index}: sale line not found on this sale")
                qty = require_positive_int(item.get("quantity"), f"Return item {index} quantity")
                returnable = line.quantity - line.returned_quantity
                if qty > returnable:
                    raise SaleError(
                        f"Return item {index}: only {returnable} unit(s) can be returned",
                        details={"sale_line_id": line.id, "returnable": returnable, "requested": qty},
                    )

                remaining = qty
                restores = []
                for allocation in sorted(line.allocations, key=lambda a: a.id, reverse=True):
                    if remaining == 0:
                        break
                    take = min(_outstanding(allocation), remaining)
                    if take <= 0:
                        continue
                    allocation.restored_quantity += take
                    restores.append((allocation.stock_lot_id, take))
                    remaining -= take
                restore_allocations(restores)

                line_refund = unit_refund_cents(nets[line.id], line.quantity, line.returned_quantity, qty)
                line.returned_quantity += qty
                refund_cents += line_refund
                returned.append({"sale_line_id": line.id, "quantity": qty, "refund_cents": line_refund})

            refund_cents = min(refund_cents, sale.total_cents - sale.refunded_cents)
            sale.refunded_cents += refund_cents
            apply_customer_stats(sale.customer_id, -refund_cents, 0)

        return {"sale": sale.to_dict(include_lines=True), "returned": returned, "refund_cents": refund_cents}

    return run_with_retry(_op)


def list_sales_query(
    *,
    outlet_id: int | None = None,
    customer_id: int | None = None,
    status: str | None = None,
    payment_status: str | None = None,
    date_from=None,
    date_to=None,
    search: str | None = None,
):
    query = db.session.query(Sale)
    if outlet_id:
        query = query.filter(Sale.outlet_id == outlet_id)
    if customer_id:
        query = query.filter(Sale.customer_id == customer_id)
    if status:
        query = query.filter(Sale.status == status.upper())
    if payment_status:
        query = query.filter(Sale.payment_status == payment_status.upper())
    if date_from:
        query = query.filter(Sale.created_at >= date_from)
    if date_to:
        query = query.filter(Sale.created_at <= date_to)
    if search:
        query = query.filter(Sale.sale_number.ilike(f"%{search}%"))
    return query
