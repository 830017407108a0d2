from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z

DISCOUNT_GENERAL = "GENERAL"
DISCOUNT_MEMBERSHIP = "MEMBERSHIP"
DISCOUNT_TYPES = (DISCOUNT_GENERAL, DISCOUNT_MEMBERSHIP)


class Discount(db.Model):
    """
    Per-unit price reduction on a product for a date window.

    MEMBERSHIP discounts only apply when the sale has a member customer.
    """
    __tablename__ = "discounts"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_discounts_code"),
        db.CheckConstraint("amount_cents >= 0", name="ck_discounts_amount_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    # GENERAL | MEMBERSHIP
    discount_type = db.Column(db.String(16), nullable=False, default=DISCOUNT_GENERAL)
    amount_cents = db.Column(db.Integer, nullable=False)

    start_date = db.Column(db.DateTime(timezone=True), nullable=True)
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "product_id": self.product_id,
            "discount_type": self.discount_type,
            "amount_cents": self.amount_cents,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
