# Overview: Cart pricing and payment settlement shared by sales and orders.

"""
Checkout Service

Totals are always recomputed from current data; client-supplied totals are
ignored. Everything here is read-only except apply_customer_stats, so a
pricing or payment failure never touches stock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import update

from ..extensions import db
from ..models import Product, Customer, Discount
from ..models.discounts import DISCOUNT_GENERAL, DISCOUNT_MEMBERSHIP
from ..models.sales import PAYMENT_METHODS
from ..time_utils import utcnow
from ..validation import ValidationError, NotFoundError, require_positive_int, require_non_negative_int


class PaymentMismatchError(ValidationError):
    """Payments do not reconcile with the document total and change given."""

    def __init__(self, message: str, *, total_cents: int, paid_cents: int, change_cents: int):
        super().__init__(message)
        self.total_cents = total_cents
        self.paid_cents = paid_cents
        self.change_cents = change_cents

    def to_dict(self) -> dict:
        return {
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "change_cents": self.change_cents,
            "expected_change_cents": max(self.paid_cents - self.total_cents, 0),
        }


@dataclass
class PricedLine:
    product: Product
    quantity: int
    unit_price_cents: int
    line_discount_cents: int
    line_total_cents: int


@dataclass
class PricedCart:
    lines: list[PricedLine]
    subtotal_cents: int
    discount_cents: int
    total_cents: int


@dataclass
class Settlement:
    payments: list[tuple[str, int, str | None]] = field(default_factory=list)
    new_paid_cents: int = 0
    paid_cents: int = 0
    change_cents: int = 0
    due_cents: int = 0
    payment_status: str = "UNPAID"


# =============================================================================
# Discounts
# =============================================================================

def active_discounts_query(product_id: int, moment: datetime | None = None):
    moment = moment or utcnow()
    return db.session.query(Discount).filter(
        Discount.product_id == product_id,
        Discount.is_active.is_(True),
        db.or_(Discount.start_date.is_(None), Discount.start_date <= moment),
        db.or_(Discount.end_date.is_(None), Discount.end_date >= moment),
    )


def best_unit_discount(product_id: int, customer: Customer | None = None, moment: datetime | None = None) -> int:
    """Largest active per-unit discount; MEMBERSHIP ones only count for members."""
    allowed = [DISCOUNT_GENERAL]
    if customer is not None and customer.is_member:
        allowed.append(DISCOUNT_MEMBERSHIP)

    best = (
        active_discounts_query(product_id, moment)
        .filter(Discount.discount_type.in_(allowed))
        .order_by(Discount.amount_cents.desc())
        .first()
    )
    return best.amount_cents if best else 0


# =============================================================================
# Pricing
# =============================================================================

def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def get_customer(customer_id: int | None) -> Customer | None:
    if customer_id in (None, ""):
        return None
    customer = db.session.get(Customer, customer_id)
    if not customer or not customer.is_active:
        raise NotFoundError("Customer not found")
    return customer


def price_cart(items, discount_cents=0, customer: Customer | None = None) -> PricedCart:
    """
    Price a cart from current product data.

    items: [{"product_id", "quantity", "unit_price_cents"?, "discount_cents"?}]
    - unit price defaults to the product's price_cents
    - line discount is the explicit value, else the best active discount
      times quantity; clamped to [0, gross]
    - document discount is clamped to [0, subtotal]
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one item is required")

    lines: list[PricedLine] = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"Item {index} is invalid")

        product_id = item.get("product_id")
        product = db.session.get(Product, product_id) if product_id else None
        if not product:
            raise NotFoundError(f"Item {index}: product not found")
        if not product.is_active:
            raise ValidationError(f"Item {index}: product '{product.name}' is inactive")

        quantity = require_positive_int(item.get("quantity"), f"Item {index} quantity")

        unit_price = item.get("unit_price_cents")
        if unit_price is None:
            unit_price = product.price_cents
        else:
            unit_price = require_non_negative_int(unit_price, f"Item {index} unit_price_cents")

        gross = unit_price * quantity

        explicit_discount = item.get("discount_cents")
        if explicit_discount is None:
            line_discount = best_unit_discount(product.id, customer) * quantity
        else:
            line_discount = require_non_negative_int(explicit_discount, f"Item {index} discount_cents")
        line_discount = _clamp(line_discount, 0, gross)

        lines.append(PricedLine(
            product=product,
            quantity=quantity,
            unit_price_cents=unit_price,
            line_discount_cents=line_discount,
            line_total_cents=gross - line_discount,
        ))

    subtotal = sum(line.line_total_cents for line in lines)

    if discount_cents in (None, ""):
        discount_cents = 0
    if isinstance(discount_cents, bool) or not isinstance(discount_cents, int):
        raise ValidationError("discount_cents must be an integer")
    discount = _clamp(discount_cents, 0, subtotal)

    return PricedCart(
        lines=lines,
        subtotal_cents=subtotal,
        discount_cents=discount,
        total_cents=subtotal - discount,
    )


# =============================================================================
# Payments
# =============================================================================

def normalize_payments(payments) -> list[tuple[str, int, str | None]]:
    """Validate [{"method", "amount_cents", "reference"?}] into tuples."""
    if payments in (None, ""):
        return []
    if not isinstance(payments, list):
        raise ValidationError("payments must be a list")

    normalized = []
    for index, payment in enumerate(payments, start=1):
        if not isinstance(payment, dict):
            raise ValidationError(f"Payment {index} is invalid")
        method = str(payment.get("method") or "").strip().upper()
        if method not in PAYMENT_METHODS:
            raise ValidationError(
                f"Payment {index}: method must be one of {', '.join(PAYMENT_METHODS)}"
            )
        amount = require_positive_int(payment.get("amount_cents"), f"Payment {index} amount_cents")
        reference = payment.get("reference")
        normalized.append((method, amount, str(reference).strip() if reference else None))
    return normalized


def payment_status_for(total_cents: int, net_paid_cents: int) -> str:
    if net_paid_cents >= total_cents:
        return "PAID"
    if net_paid_cents <= 0:
        return "UNPAID"
    return "PARTIAL"


def settle(
    total_cents: int,
    payments: list[tuple[str, int, str | None]],
    change_cents=0,
    *,
    already_paid_cents: int = 0,
    already_change_cents: int = 0,
) -> Settlement:
    """
    Reconcile payments against a total.

    paid <= total is accepted and leaves a due amount. paid > total is only
    accepted when change_cents equals the overpayment exactly.
    already_* carry earlier payments on the same document.

    Raises PaymentMismatchError.
    """
    if change_cents in (None, ""):
        change_cents = 0
    if isinstance(change_cents, bool) or not isinstance(change_cents, int) or change_cents < 0:
        raise ValidationError("change_cents must be a non-negative integer")

    new_paid = sum(amount for _method, amount, _ref in payments)
    net_before = already_paid_cents - already_change_cents
    tendered = net_before + new_paid

    if tendered > total_cents:
        expected = tendered - total_cents
        if change_cents != expected:
            raise PaymentMismatchError(
                f"Payments exceed total by {expected}; change_cents must be {expected}",
                total_cents=total_cents,
                paid_cents=tendered,
                change_cents=change_cents,
            )
    elif change_cents != 0:
        raise PaymentMismatchError(
            "change_cents must be 0 when payments do not exceed the total",
            total_cents=total_cents,
            paid_cents=tendered,
            change_cents=change_cents,
        )

    net_paid = tendered - change_cents
    return Settlement(
        payments=payments,
        new_paid_cents=new_paid,
        paid_cents=already_paid_cents + new_paid,
        change_cents=already_change_cents + change_cents,
        due_cents=total_cents - net_paid,
        payment_status=payment_status_for(total_cents, net_paid),
    )


# =============================================================================
# Customer stats
# =============================================================================

def apply_customer_stats(customer_id: int | None, amount_cents: int, orders: int) -> None:
    """Atomically add to a customer's purchase totals. Never commits."""
    if not customer_id or (amount_cents == 0 and orders == 0):
        return
    stmt = (
        update(Customer)
        .where(Customer.id == customer_id)
        .values(
            purchase_amount_cents=Customer.purchase_amount_cents + amount_cents,
            total_orders=Customer.total_orders + orders,
        )
        .execution_options(synchronize_session=False)
    )
    db.session.execute(stmt)
    customer = db.session.get(Customer, customer_id)
    if customer is not None:
        db.session.expire(customer, ["purchase_amount_cents", "total_orders"])
