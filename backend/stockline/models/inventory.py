from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class StockLot(db.Model):
    """
    A received batch of one product at one location.

    FIFO order is (entry_date, id). quantity is what remains; it is only
    changed through conditional single-statement updates and never drops
    below zero (enforced by a CHECK constraint as well).
    """
    __tablename__ = "stock_lots"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_stock_lots_quantity_nonnegative"),
        db.Index("ix_stock_lots_fifo", "product_id", "location_type", "location_id", "entry_date", "id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # WAREHOUSE | OUTLET
    location_type = db.Column(db.String(16), nullable=False)
    location_id = db.Column(db.Integer, nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    received_quantity = db.Column(db.Integer, nullable=False)

    unit_cost_cents = db.Column(db.Integer, nullable=False, default=0)
    unit_price_cents = db.Column(db.Integer, nullable=True)

    batch_number = db.Column(db.String(64), nullable=True)
    expire_date = db.Column(db.DateTime(timezone=True), nullable=True)
    entry_date = db.Column(db.DateTime(timezone=True), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("stock_lots", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "location_type": self.location_type,
            "location_id": self.location_id,
            "quantity": self.quantity,
            "received_quantity": self.received_quantity,
            "unit_cost_cents": self.unit_cost_cents,
            "unit_price_cents": self.unit_price_cents,
            "batch_number": self.batch_number,
            "expire_date": to_utc_z(self.expire_date),
            "entry_date": to_utc_z(self.entry_date),
        }
