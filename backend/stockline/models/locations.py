from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

LOCATION_WAREHOUSE = "WAREHOUSE"
LOCATION_OUTLET = "OUTLET"
LOCATION_TYPES = (LOCATION_WAREHOUSE, LOCATION_OUTLET)


class Warehouse(db.Model):
    """Back-of-house stock location. Receives stock and feeds outlets."""
    __tablename__ = "warehouses"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_warehouses_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    address = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Outlet(db.Model):
    """Point-of-sale location. Sales always deduct stock held at an outlet."""
    __tablename__ = "outlets"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_outlets_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(160), nullable=False)
    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(64), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "address": self.address,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
