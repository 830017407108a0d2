from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

DEMAND_PENDING = "PENDING"
DEMAND_APPROVED = "APPROVED"
DEMAND_CONVERTED = "CONVERTED"
DEMAND_CANCELLED = "CANCELLED"

# CONVERTED is reachable only through convert_demand
DEMAND_TRANSITIONS = {
    DEMAND_PENDING: {DEMAND_APPROVED, DEMAND_CANCELLED},
    DEMAND_APPROVED: {DEMAND_CANCELLED},
    DEMAND_CONVERTED: set(),
    DEMAND_CANCELLED: set(),
}


class Demand(db.Model):
    """Replenishment request raised by a location, converted into warehouse stock."""
    __tablename__ = "demands"
    __table_args__ = (
        db.UniqueConstraint("demand_number", name="uq_demands_demand_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    demand_number = db.Column(db.String(32), nullable=False)

    location_type = db.Column(db.String(16), nullable=False)
    location_id = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=DEMAND_PENDING, index=True)
    notes = db.Column(db.Text, nullable=True)

    converted_warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True)
    converted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "demand_number": self.demand_number,
            "location_type": self.location_type,
            "location_id": self.location_id,
            "status": self.status,
            "notes": self.notes,
            "converted_warehouse_id": self.converted_warehouse_id,
            "converted_at": to_utc_z(self.converted_at) if self.converted_at else None,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class DemandLine(db.Model):
    __tablename__ = "demand_lines"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_demand_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    demand_id = db.Column(db.Integer, db.ForeignKey("demands.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    demand = db.relationship(
        "Demand",
        backref=db.backref("lines", lazy=True, order_by="DemandLine.id", cascade="all, delete-orphan"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
        }
