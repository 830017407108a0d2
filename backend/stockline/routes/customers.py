# Overview: Flask API routes for customers.

from flask import Blueprint

from ..services import resources
from .common import register_crud_routes


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")

register_crud_routes(
    customers_bp,
    resources.CUSTOMERS,
    view_permission="VIEW_CUSTOMERS",
    manage_permission="MANAGE_CUSTOMERS",
    delete_permission="DELETE_CUSTOMERS",
    filter_args={
        "membership_status": ("membership_status", str),
        "is_active": ("is_active", bool),
    },
)
