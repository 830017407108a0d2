from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

ORDER_PENDING = "PENDING"
ORDER_CONFIRMED = "CONFIRMED"
ORDER_FULFILLED = "FULFILLED"
ORDER_CANCELLED = "CANCELLED"

# FULFILLED is reachable only through fulfill_order
ORDER_TRANSITIONS = {
    ORDER_PENDING: {ORDER_CONFIRMED, ORDER_CANCELLED},
    ORDER_CONFIRMED: {ORDER_CANCELLED},
    ORDER_FULFILLED: set(),
    ORDER_CANCELLED: set(),
}


class Order(db.Model):
    """
    Customer order.

    Priced and numbered at creation; stock is only deducted when the order
    is fulfilled from an outlet or warehouse.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("order_number", name="uq_orders_order_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)
    customer_name = db.Column(db.String(160), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=ORDER_PENDING, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)
    change_cents = db.Column(db.Integer, nullable=False, default=0)
    due_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="UNPAID")

    notes = db.Column(db.Text, nullable=True)

    # WAREHOUSE | OUTLET, set on fulfillment
    fulfilled_from_type = db.Column(db.String(16), nullable=True)
    fulfilled_from_id = db.Column(db.Integer, nullable=True)
    fulfilled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    customer = db.relationship("Customer", backref=db.backref("orders", lazy=True))

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "order_number": self.order_number,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "change_cents": self.change_cents,
            "due_cents": self.due_cents,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "fulfilled_from_type": self.fulfilled_from_type,
            "fulfilled_from_id": self.fulfilled_from_id,
            "fulfilled_at": to_utc_z(self.fulfilled_at) if self.fulfilled_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class OrderLine(db.Model):
    __tablename__ = "order_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_discount_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    order = db.relationship(
        "Order",
        backref=db.backref("lines", lazy=True, order_by="OrderLine.id", cascade="all, delete-orphan"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_discount_cents": self.line_discount_cents,
            "line_total_cents": self.line_total_cents,
            "allocations": [a.to_dict() for a in self.allocations],
        }


class OrderAllocation(db.Model):
    __tablename__ = "order_allocations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_line_id = db.Column(db.Integer, db.ForeignKey("order_lines.id"), nullable=False, index=True)
    stock_lot_id = db.Column(db.Integer, db.ForeignKey("stock_lots.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    line = db.relationship(
        "OrderLine",
        backref=db.backref("allocations", lazy=True, order_by="OrderAllocation.id", cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "stock_lot_id": self.stock_lot_id,
            "quantity": self.quantity,
            "unit_cost_cents": self.unit_cost_cents,
        }


class OrderPayment(db.Model):
    __tablename__ = "order_payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_order_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    method = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    reference = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship(
        "Order",
        backref=db.backref("payments", lazy=True, order_by="OrderPayment.id", cascade="all, delete-orphan"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "reference": self.reference,
        }
