from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Vendor(db.Model):
    """Supplier of products. Brands hang off vendors."""
    __tablename__ = "vendors"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_vendors_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    contact_name = db.Column(db.String(160), nullable=True)
    contact_email = db.Column(db.String(255), nullable=True)
    contact_phone = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_name": self.contact_name,
            "contact_email": self.contact_email,
            "contact_phone": self.contact_phone,
            "address": self.address,
            "notes": self.notes,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Brand(db.Model):
    __tablename__ = "brands"
    __table_args__ = (
        db.UniqueConstraint("vendor_id", "name", name="uq_brands_vendor_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    vendor = db.relationship("Vendor", backref=db.backref("brands", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor.name if self.vendor else None,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Category(db.Model):
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_categories_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(160), nullable=False)
    vat_status = db.Column(db.Boolean, nullable=False, default=False)
    description = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "vat_status": self.vat_status,
            "description": self.description,
            "created_at": to_utc_z(self.created_at),
        }


class Product(db.Model):
    """
    Catalog item.

    Quantity on hand is never stored here: it is the sum of the product's
    StockLot quantities at a location. price_cents is the default retail
    price used when a cart line does not carry its own price.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("barcode", name="uq_products_barcode"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    barcode = db.Column(db.String(64), nullable=False)
    description = db.Column(db.Text, nullable=True)

    vendor_id = db.Column(db.Integer, db.ForeignKey("vendors.id"), nullable=True, index=True)
    brand_id = db.Column(db.Integer, db.ForeignKey("brands.id"), nullable=True, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    price_cents = db.Column(db.Integer, nullable=False, default=0)
    reorder_level = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True, onupdate=db.func.now())

    vendor = db.relationship("Vendor")
    brand = db.relationship("Brand")
    category = db.relationship("Category")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "barcode": self.barcode,
            "description": self.description,
            "vendor_id": self.vendor_id,
            "brand_id": self.brand_id,
            "category_id": self.category_id,
            "category_name": self.category.name if self.category else None,
            "price_cents": self.price_cents,
            "reorder_level": self.reorder_level,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
