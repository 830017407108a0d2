# Overview: Resource descriptions for the generic CRUD endpoints.

from __future__ import annotations

from ..extensions import db
from ..models import (
    Vendor,
    Brand,
    Category,
    Product,
    Customer,
    Outlet,
    Warehouse,
    Discount,
    StockLot,
    Sale,
    SaleLine,
    Order,
    OrderLine,
    Demand,
    DemandLine,
)
from ..models.locations import LOCATION_OUTLET, LOCATION_WAREHOUSE
from ..validation import (
    ModelValidationPolicy,
    ConflictError,
    ValidationError,
    enforce_rules_product,
    enforce_rules_customer,
    enforce_rules_discount,
    enforce_rules_outlet,
)
from .counter_service import next_sequence
from .crud_service import CrudResource


def _prepare_customer(patch: dict, obj) -> None:
    enforce_rules_customer(patch)
    if obj is None and not patch.get("code"):
        patch["code"] = f"C{next_sequence('customer', '000000'):06d}"
    elif patch.get("code"):
        patch["code"] = patch["code"].upper()


def _prepare_product(patch: dict, obj) -> None:
    enforce_rules_product(patch)
    brand_id = patch.get("brand_id")
    if not brand_id:
        return
    brand = db.session.get(Brand, brand_id)
    if brand is None:
        return
    vendor_id = patch.get("vendor_id", obj.vendor_id if obj is not None else None)
    if vendor_id is None:
        patch["vendor_id"] = brand.vendor_id
    elif brand.vendor_id != vendor_id:
        raise ValidationError("Brand belongs to a different vendor")


def _prepare_discount(patch: dict, obj) -> None:
    if obj is not None:
        # Validate the window against the stored bound that is not being changed
        if "end_date" in patch and "start_date" not in patch:
            patch["start_date"] = obj.start_date
        if "start_date" in patch and "end_date" not in patch:
            patch["end_date"] = obj.end_date
    enforce_rules_discount(patch)
    if patch.get("code"):
        patch["code"] = patch["code"].upper()


def _location_in_use(location_type: str):
    def check(obj) -> None:
        held = (
            db.session.query(StockLot.id)
            .filter(
                StockLot.location_type == location_type,
                StockLot.location_id == obj.id,
                StockLot.quantity > 0,
            )
            .first()
        )
        if held:
            raise ConflictError(f"{location_type.title()} still holds stock")
    return check


VENDORS = CrudResource(
    name="vendor",
    model=Vendor,
    policy=ModelValidationPolicy(
        writable_fields={"name", "contact_name", "contact_email", "contact_phone", "address", "notes", "is_active"},
        required_on_create={"name"},
    ),
    search_fields=("name", "contact_name", "contact_email"),
    sortable={"name": Vendor.name, "createdAt": Vendor.created_at},
    unique_fields=("name",),
    case_insensitive_unique=("name",),
    references=((Brand, "vendor_id", "brands"), (Product, "vendor_id", "products")),
)

BRANDS = CrudResource(
    name="brand",
    model=Brand,
    policy=ModelValidationPolicy(
        writable_fields={"name", "vendor_id", "description"},
        required_on_create={"name", "vendor_id"},
    ),
    search_fields=("name",),
    sortable={"name": Brand.name, "createdAt": Brand.created_at},
    unique_fields=(("vendor_id", "name"),),
    case_insensitive_unique=("name",),
    references=((Product, "brand_id", "products"),),
    foreign_keys={"vendor_id": Vendor},
)

CATEGORIES = CrudResource(
    name="category",
    model=Category,
    policy=ModelValidationPolicy(
        writable_fields={"name", "vat_status", "description"},
        required_on_create={"name"},
    ),
    search_fields=("name", "description"),
    sortable={"name": Category.name, "createdAt": Category.created_at},
    unique_fields=("name",),
    case_insensitive_unique=("name",),
    references=((Product, "category_id", "products"),),
)

PRODUCTS = CrudResource(
    name="product",
    model=Product,
    policy=ModelValidationPolicy(
        writable_fields={
            "name", "barcode", "description", "vendor_id", "brand_id", "category_id",
            "price_cents", "reorder_level", "is_active",
        },
        required_on_create={"name", "barcode"},
    ),
    search_fields=("name", "barcode"),
    sortable={
        "name": Product.name,
        "barcode": Product.barcode,
        "price": Product.price_cents,
        "createdAt": Product.created_at,
    },
    unique_fields=("barcode",),
    references=(
        (StockLot, "product_id", "stock lots"),
        (SaleLine, "product_id", "sales"),
        (OrderLine, "product_id", "orders"),
        (DemandLine, "product_id", "demands"),
        (Discount, "product_id", "discounts"),
    ),
    foreign_keys={"vendor_id": Vendor, "brand_id": Brand, "category_id": Category},
    prepare=_prepare_product,
)

CUSTOMERS = CrudResource(
    name="customer",
    model=Customer,
    policy=ModelValidationPolicy(
        writable_fields={"code", "name", "email", "phone", "address", "membership_status", "is_active"},
        required_on_create={"name"},
    ),
    search_fields=("name", "code", "phone", "email"),
    sortable={
        "name": Customer.name,
        "code": Customer.code,
        "purchaseAmount": Customer.purchase_amount_cents,
        "totalOrders": Customer.total_orders,
        "createdAt": Customer.created_at,
    },
    unique_fields=("code",),
    references=((Sale, "customer_id", "sales"), (Order, "customer_id", "orders")),
    prepare=_prepare_customer,
)

OUTLETS = CrudResource(
    name="outlet",
    model=Outlet,
    policy=ModelValidationPolicy(
        writable_fields={"code", "name", "address", "phone", "is_active"},
        required_on_create={"code", "name"},
    ),
    search_fields=("code", "name", "address"),
    sortable={"name": Outlet.name, "code": Outlet.code, "createdAt": Outlet.created_at},
    unique_fields=("code",),
    references=((Sale, "outlet_id", "sales"),),
    prepare=lambda patch, obj: enforce_rules_outlet(patch),
    before_delete=_location_in_use(LOCATION_OUTLET),
)

WAREHOUSES = CrudResource(
    name="warehouse",
    model=Warehouse,
    policy=ModelValidationPolicy(
        writable_fields={"name", "address", "is_active"},
        required_on_create={"name"},
    ),
    search_fields=("name", "address"),
    sortable={"name": Warehouse.name, "createdAt": Warehouse.created_at},
    unique_fields=("name",),
    case_insensitive_unique=("name",),
    references=((Demand, "converted_warehouse_id", "demands"),),
    before_delete=_location_in_use(LOCATION_WAREHOUSE),
)

DISCOUNTS = CrudResource(
    name="discount",
    model=Discount,
    policy=ModelValidationPolicy(
        writable_fields={"code", "product_id", "discount_type", "amount_cents", "start_date", "end_date", "is_active"},
        required_on_create={"code", "product_id", "amount_cents"},
    ),
    search_fields=("code",),
    sortable={"code": Discount.code, "amount": Discount.amount_cents, "startDate": Discount.start_date,
              "createdAt": Discount.created_at},
    unique_fields=("code",),
    foreign_keys={"product_id": Product},
    prepare=_prepare_discount,
)
