from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

PAYMENT_METHODS = ("CASH", "BKASH", "ROCKET", "NAGAD", "BANK", "CARD")

SALE_COMPLETED = "COMPLETED"
SALE_VOIDED = "VOIDED"


class Sale(db.Model):
    """
    Finalized sale document.

    Totals are computed server-side at finalize time:
    sum(line_total_cents) - discount_cents == total_cents.
    Stock is already deducted when the row exists; there is no draft state.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("sale_number", name="uq_sales_sale_number"),
        db.Index("ix_sales_outlet_created", "outlet_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # e.g. "S2610190007"
    sale_number = db.Column(db.String(32), nullable=False)

    outlet_id = db.Column(db.Integer, db.ForeignKey("outlets.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    # COMPLETED | VOIDED
    status = db.Column(db.String(16), nullable=False, default=SALE_COMPLETED, index=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    paid_cents = db.Column(db.Integer, nullable=False, default=0)
    change_cents = db.Column(db.Integer, nullable=False, default=0)
    due_cents = db.Column(db.Integer, nullable=False, default=0)
    refunded_cents = db.Column(db.Integer, nullable=False, default=0)

    # UNPAID | PARTIAL | PAID
    payment_status = db.Column(db.String(16), nullable=False, default="UNPAID", index=True)

    notes = db.Column(db.Text, nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    voided_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    voided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    void_reason = db.Column(db.String(255), nullable=True)

    outlet = db.relationship("Outlet")
    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "sale_number": self.sale_number,
            "outlet_id": self.outlet_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "paid_cents": self.paid_cents,
            "change_cents": self.change_cents,
            "due_cents": self.due_cents,
            "refunded_cents": self.refunded_cents,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "voided_at": to_utc_z(self.voided_at) if self.voided_at else None,
            "void_reason": self.void_reason,
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class SaleLine(db.Model):
    __tablename__ = "sale_lines"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_discount_cents = db.Column(db.Integer, nullable=False, default=0)
    line_total_cents = db.Column(db.Integer, nullable=False)

    returned_quantity = db.Column(db.Integer, nullable=False, default=0)

    sale = db.relationship("Sale", backref=db.backref("lines", lazy=True, order_by="SaleLine.id"))
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_discount_cents": self.line_discount_cents,
            "line_total_cents": self.line_total_cents,
            "returned_quantity": self.returned_quantity,
            "allocations": [a.to_dict() for a in self.allocations],
        }


class SaleAllocation(db.Model):
    """Concrete lot draw behind a sale line. Used to restore stock on void/return."""
    __tablename__ = "sale_allocations"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_line_id = db.Column(db.Integer, db.ForeignKey("sale_lines.id"), nullable=False, index=True)
    stock_lot_id = db.Column(db.Integer, db.ForeignKey("stock_lots.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    # Quantity already put back to the lot by returns or a void
    restored_quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)

    line = db.relationship("SaleLine", backref=db.backref("allocations", lazy=True, order_by="SaleAllocation.id"))

    def to_dict(self) -> dict:
        return {
            "stock_lot_id": self.stock_lot_id,
            "quantity": self.quantity,
            "restored_quantity": self.restored_quantity,
            "unit_cost_cents": self.unit_cost_cents,
        }


class SalePayment(db.Model):
    """One tender on a sale. Split payments are several rows."""
    __tablename__ = "sale_payments"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_sale_payments_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    # CASH | BKASH | ROCKET | NAGAD | BANK | CARD
    method = db.Column(db.String(16), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    reference = db.Column(db.String(128), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship("Sale", backref=db.backref("payments", lazy=True, order_by="SalePayment.id"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "method": self.method,
            "amount_cents": self.amount_cents,
            "reference": self.reference,
        }
