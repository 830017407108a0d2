from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

MEMBERSHIP_NONE = "NONE"
MEMBERSHIP_MEMBER = "MEMBER"
MEMBERSHIP_STATUSES = (MEMBERSHIP_NONE, MEMBERSHIP_MEMBER)


class Customer(db.Model):
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_customers_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(160), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(64), nullable=True, index=True)
    address = db.Column(db.Text, nullable=True)

    # NONE | MEMBER
    membership_status = db.Column(db.String(16), nullable=False, default=MEMBERSHIP_NONE)

    # Running stats, changed with UPDATE ... SET x = x + :n only
    purchase_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_orders = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def is_member(self) -> bool:
        return self.membership_status == MEMBERSHIP_MEMBER

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "membership_status": self.membership_status,
            "purchase_amount_cents": self.purchase_amount_cents,
            "total_orders": self.total_orders,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
