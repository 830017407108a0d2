# Overview: Service-layer operations for replenishment demand; creation, lifecycle, conversion and generation.

"""
Demand Service

A demand lists products a location needs. Once approved (or straight from
PENDING) it is converted into new stock lots at a warehouse.

generate_demand proposes one week of cover per product from recent outlet
sales: ceil(units_sold / days * 7).
"""

from __future__ import annotations


from sqlalchemy import func

from ..extensions import db
from ..models import Demand, DemandLine, Sale, SaleLine, Product
from ..models.demand import (
    DEMAND_PENDING,
    DEMAND_APPROVED,
    DEMAND_CONVERTED,
    DEMAND_TRANSITIONS,
)
from ..models.locations import LOCATION_OUTLET, LOCATION_WAREHOUSE
from ..models.sales import SALE_COMPLETED
from ..time_utils import days_ago, parse_iso_datetime, utcnow
from ..validation import (
    ValidationError,
    NotFoundError,
    InvalidStatusTransition,
    require_positive_int,
    require_non_negative_int,
)
from .concurrency import atomic, run_with_retry
from .counter_service import next_document_number, SCOPE_DEMAND
from .stock_service import create_lot, get_location, get_product, normalize_location_type


class DemandError(ValidationError):
    """Raised for demand operation errors."""
    pass


def get_demand(demand_id: int) -> Demand:
    demand = db.session.get(Demand, demand_id)
    if not demand:
        raise NotFoundError("Demand not found")
    return demand


def _build_lines(lines) -> list[DemandLine]:
    if not isinstance(lines, list) or not lines:
        raise ValidationError("At least one line is required")

    merged: dict[int, int] = {}
    for index, line in enumerate(lines, start=1):
        if not isinstance(line, dict):
            raise ValidationError(f"Line {index} is invalid")
        product = get_product(line.get("product_id"))
        qty = require_positive_int(line.get("quantity"), f"Line {index} quantity")
        merged[product.id] = merged.get(product.id, 0) + qty

    return [DemandLine(product_id=pid, quantity=qty) for pid, qty in merged.items()]


def create_demand(
    *,
    location_type: str,
    location_id: int,
    lines,
    notes: str | None = None,
    user_id: int | None = None,
) -> Demand:
    location_type = normalize_location_type(location_type)

    def _op() -> Demand:
        with atomic():
            get_location(location_type, location_id)
            now = utcnow()
            demand = Demand(
                demand_number=next_document_number(SCOPE_DEMAND, moment=now),
                location_type=location_type,
                location_id=location_id,
                status=DEMAND_PENDING,
                notes=notes,
                created_by_user_id=user_id,
                created_at=now,
            )
            demand.lines.extend(_build_lines(lines))
            db.session.add(demand)
        return demand

    return run_with_retry(_op)


def update_demand(demand_id: int, data: dict) -> Demand:
    """Replace lines or notes on a PENDING demand."""
    with atomic():
        demand = get_demand(demand_id)
        if demand.status != DEMAND_PENDING:
            raise DemandError(f"Only PENDING demands can be edited (demand is {demand.status})")
        if "lines" in data:
            new_lines = _build_lines(data.get("lines"))
            demand.lines.clear()
            demand.lines.extend(new_lines)
        if "notes" in data:
            demand.notes = data.get("notes")
    return demand


def delete_demand(demand_id: int) -> None:
    with atomic():
        demand = get_demand(demand_id)
        if demand.status == DEMAND_CONVERTED:
            raise DemandError("CONVERTED demands cannot be deleted")
        db.session.delete(demand)


def update_demand_status(demand_id: int, status: str) -> Demand:
    requested = (status or "").strip().upper()
    if requested not in DEMAND_TRANSITIONS:
        raise ValidationError(f"Unknown demand status: {status}")

    with atomic():
        demand = get_demand(demand_id)
        if requested not in DEMAND_TRANSITIONS[demand.status]:
            raise InvalidStatusTransition(demand.status, requested)
        demand.status = requested
    return demand


def convert_demand(demand_id: int, warehouse_id: int, lines=None) -> dict:
    """
    Receive a PENDING/APPROVED demand into a warehouse as new stock lots.

    lines optionally carries per-product receipt details:
    [{"product_id", "unit_cost_cents"?, "unit_price_cents"?, "batch_number"?, "expire_date"?}]
    Missing prices default to cost 0 and the product's current price.
    """
    details = {}
    for index, line in enumerate(lines or [], start=1):
        if not isinstance(line, dict) or not line.get("product_id"):
            raise ValidationError(f"Line {index} is invalid")
        details[line["product_id"]] = line

    def _op() -> dict:
        with atomic():
            demand = get_demand(demand_id)
            if demand.status not in (DEMAND_PENDING, DEMAND_APPROVED):
                raise InvalidStatusTransition(demand.status, DEMAND_CONVERTED)
            warehouse = get_location(LOCATION_WAREHOUSE, warehouse_id)

            lots = []
            for line in demand.lines:
                extra = details.get(line.product_id, {})
                cost = extra.get("unit_cost_cents")
                price = extra.get("unit_price_cents")
                expire = extra.get("expire_date")
                if isinstance(expire, str):
                    try:
                        expire = parse_iso_datetime(expire)
                    except ValueError:
                        raise ValidationError("expire_date must be an ISO-8601 datetime")
                lots.append(create_lot(
                    product_id=line.product_id,
                    location_type=LOCATION_WAREHOUSE,
                    location_id=warehouse.id,
                    quantity=line.quantity,
                    unit_cost_cents=require_non_negative_int(cost, "unit_cost_cents") if cost is not None else 0,
                    unit_price_cents=(
                        require_non_negative_int(price, "unit_price_cents")
                        if price is not None else line.product.price_cents
                    ),
                    batch_number=extra.get("batch_number"),
                    expire_date=expire,
                ))

            now = utcnow()
            demand.status = DEMAND_CONVERTED
            demand.converted_warehouse_id = warehouse.id
            demand.converted_at = now
        return {"demand": demand.to_dict(), "lots": [lot.to_dict() for lot in lots]}

    return run_with_retry(_op)


def suggested_quantity(units_sold: int, days: int) -> int:
    """One week of cover at the observed daily rate, rounded up."""
    return -(-units_sold * 7 // days)


def generate_demand(
    *,
    outlet_id: int,
    days: int = 30,
    min_sales_threshold: int = 1,
    user_id: int | None = None,
) -> Demand:
    """Propose a demand for an outlet from its completed sales over the last `days` days."""
    days = require_positive_int(days, "days")
    min_sales_threshold = require_positive_int(min_sales_threshold, "min_sales_threshold")
    get_location(LOCATION_OUTLET, outlet_id)

    since = days_ago(days)
    sold = func.sum(SaleLine.quantity - SaleLine.returned_quantity)
    rows = (
        db.session.query(SaleLine.product_id, sold.label("units"))
        .join(Sale, Sale.id == SaleLine.sale_id)
        .join(Product, Product.id == SaleLine.product_id)
        .filter(
            Sale.outlet_id == outlet_id,
            Sale.status == SALE_COMPLETED,
            Sale.created_at >= since,
            Product.is_active.is_(True),
        )
        .group_by(SaleLine.product_id)
        .having(sold >= min_sales_threshold)
        .order_by(SaleLine.product_id.asc())
        .all()
    )

    lines = [
        {"product_id": product_id, "quantity": suggested_quantity(int(units), days)}
        for product_id, units in rows
    ]
    if not lines:
        raise DemandError("No products met the sales threshold for this period")

    return create_demand(
        location_type=LOCATION_OUTLET,
        location_id=outlet_id,
        lines=lines,
        notes=f"Generated from {days} days of sales",
        user_id=user_id,
    )


def list_demands_query(*, status: str | None = None, location_type: str | None = None,
                       location_id: int | None = None, search: str | None = None):
    query = db.session.query(Demand)
    if status:
        query = query.filter(Demand.status == status.upper())
    if location_type:
        query = query.filter(Demand.location_type == normalize_location_type(location_type))
    if location_id:
        query = query.filter(Demand.location_id == location_id)
    if search:
        query = query.filter(Demand.demand_number.ilike(f"%{search}%"))
    return query
