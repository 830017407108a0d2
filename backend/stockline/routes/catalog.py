# Overview: Flask API routes for vendors, brands, categories, products and discounts.

"""
Catalog Routes

SECURITY: All routes require authentication.
- Reads require VIEW_CATALOG (every role)
- Writes require MANAGE_CATALOG / MANAGE_DISCOUNTS (admin, manager)
"""

from flask import Blueprint

from ..services import resources
from .common import register_crud_routes


vendors_bp = Blueprint("vendors", __name__, url_prefix="/api/vendors")
brands_bp = Blueprint("brands", __name__, url_prefix="/api/brands")
categories_bp = Blueprint("categories", __name__, url_prefix="/api/categories")
products_bp = Blueprint("products", __name__, url_prefix="/api/products")
discounts_bp = Blueprint("discounts", __name__, url_prefix="/api/discounts")

register_crud_routes(
    vendors_bp,
    resources.VENDORS,
    view_permission="VIEW_CATALOG",
    manage_permission="MANAGE_CATALOG",
    filter_args={"is_active": ("is_active", bool)},
)

register_crud_routes(
    brands_bp,
    resources.BRANDS,
    view_permission="VIEW_CATALOG",
    manage_permission="MANAGE_CATALOG",
    filter_args={"vendor_id": ("vendor_id", int)},
)

register_crud_routes(
    categories_bp,
    resources.CATEGORIES,
    view_permission="VIEW_CATALOG",
    manage_permission="MANAGE_CATALOG",
)

register_crud_routes(
    products_bp,
    resources.PRODUCTS,
    view_permission="VIEW_CATALOG",
    manage_permission="MANAGE_CATALOG",
    filter_args={
        "vendor_id": ("vendor_id", int),
        "brand_id": ("brand_id", int),
        "category_id": ("category_id", int),
        "is_active": ("is_active", bool),
    },
)

register_crud_routes(
    discounts_bp,
    resources.DISCOUNTS,
    view_permission="VIEW_CATALOG",
    manage_permission="MANAGE_DISCOUNTS",
    filter_args={
        "product_id": ("product_id", int),
        "discount_type": ("discount_type", str),
        "is_active": ("is_active", bool),
    },
)
