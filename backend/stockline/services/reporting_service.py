# Overview: Service-layer operations for reporting; sales, stock, outlet and dashboard statistics.

"""
Reporting Service

Read-only aggregations over sales, orders and stock lots. All money is in
cents. Revenue is counted on COMPLETED sales net of refunds; voided sales
are left out entirely.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select

from ..extensions import db
from ..models import (
    Customer,
    Order,
    Outlet,
    Product,
    Sale,
    SaleLine,
    SalePayment,
    StockLot,
)
from ..models.locations import LOCATION_OUTLET
from ..models.orders import ORDER_CANCELLED, ORDER_CONFIRMED, ORDER_FULFILLED, ORDER_PENDING
from ..models.sales import SALE_COMPLETED
from ..time_utils import days_ago, to_utc_z, utcnow
from ..validation import ValidationError
from .stock_service import get_location, inventory_alerts, normalize_location_type

MAX_REPORT_DAYS = 366


class ReportError(ValidationError):
    """Raised when report parameters are invalid."""
    pass


def _check_days(days: int, name: str = "days") -> int:
    if days is None or days < 1 or days > MAX_REPORT_DAYS:
        raise ReportError(f"{name} must be between 1 and {MAX_REPORT_DAYS}")
    return days


def _net_sale_cents():
    return Sale.total_cents - Sale.refunded_cents


def _completed_sales(*, outlet_id: int | None = None, start: datetime | None = None, end: datetime | None = None):
    query = db.session.query(Sale).filter(Sale.status == SALE_COMPLETED)
    if outlet_id:
        query = query.filter(Sale.outlet_id == outlet_id)
    if start:
        query = query.filter(Sale.created_at >= start)
    if end:
        query = query.filter(Sale.created_at <= end)
    return query


def _day(column):
    # func.date gives YYYY-MM-DD text on SQLite and a date on PostgreSQL
    return func.date(column)


def _revenue_by_day(sales_query, since: datetime) -> list[dict]:
    sales = sales_query.filter(Sale.created_at >= since).subquery()
    day = _day(sales.c.created_at).label("day")
    rows = (
        db.session.query(
            day,
            func.count(sales.c.id).label("sale_count"),
            func.coalesce(func.sum(sales.c.total_cents - sales.c.refunded_cents), 0).label("revenue_cents"),
        )
        .group_by(day)
        .order_by(day)
        .all()
    )
    return [
        {"date": str(row.day), "sale_count": int(row.sale_count), "revenue_cents": int(row.revenue_cents)}
        for row in rows
    ]


def sales_stats(
    *,
    outlet_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    days: int = 30,
) -> dict:
    """
    Totals, average sale, revenue by payment method and by day.

    by_payment_method sums tendered amounts per method; change handed back
    is not subtracted. by_date covers the last `days` days inside the range.
    """
    _check_days(days)
    if outlet_id:
        get_location(LOCATION_OUTLET, outlet_id)
    if start and end and end < start:
        raise ReportError("end must be on or after start")

    sales = _completed_sales(outlet_id=outlet_id, start=start, end=end)
    count, revenue, refunded = sales.with_entities(
        func.count(Sale.id),
        func.coalesce(func.sum(_net_sale_cents()), 0),
        func.coalesce(func.sum(Sale.refunded_cents), 0),
    ).one()
    count, revenue = int(count), int(revenue)

    sale_ids = sales.with_entities(Sale.id).subquery()
    method_rows = (
        db.session.query(
            SalePayment.method,
            func.count(func.distinct(SalePayment.sale_id)).label("sale_count"),
            func.sum(SalePayment.amount_cents).label("amount_cents"),
        )
        .filter(SalePayment.sale_id.in_(select(sale_ids.c.id)))
        .group_by(SalePayment.method)
        .order_by(SalePayment.method)
        .all()
    )

    return {
        "outlet_id": outlet_id,
        "start": to_utc_z(start),
        "end": to_utc_z(end),
        "total_sales": count,
        "total_revenue_cents": revenue,
        "total_refunded_cents": int(refunded),
        "average_sale_cents": round(revenue / count) if count else 0,
        "by_payment_method": [
            {"method": row.method, "sale_count": int(row.sale_count), "amount_cents": int(row.amount_cents)}
            for row in method_rows
        ],
        "by_date": _revenue_by_day(sales, days_ago(days)),
    }


def _lot_value():
    return StockLot.quantity * func.coalesce(StockLot.unit_price_cents, Product.price_cents)


def stock_stats(
    *,
    location_type: str | None = None,
    location_id: int | None = None,
    expiring_within_days: int = 30,
    top: int = 10,
) -> dict:
    """
    On-hand totals and values for all stock or one location type / location.

    value_cents prices each lot at its own selling price, falling back to
    the product price; cost_cents uses the lot's unit cost.
    """
    _check_days(expiring_within_days, "expiring_within_days")
    filters = [StockLot.quantity > 0]
    if location_type:
        location_type = normalize_location_type(location_type)
        filters.append(StockLot.location_type == location_type)
        if location_id:
            get_location(location_type, location_id)
            filters.append(StockLot.location_id == location_id)
    elif location_id:
        raise ReportError("location_type is required with location_id")

    lots = db.session.query(StockLot).join(Product, Product.id == StockLot.product_id).filter(*filters)
    lot_count, quantity, value, cost = lots.with_entities(
        func.count(StockLot.id),
        func.coalesce(func.sum(StockLot.quantity), 0),
        func.coalesce(func.sum(_lot_value()), 0),
        func.coalesce(func.sum(StockLot.quantity * StockLot.unit_cost_cents), 0),
    ).one()

    location_rows = (
        lots.with_entities(
            StockLot.location_type,
            StockLot.location_id,
            func.count(StockLot.id).label("lot_count"),
            func.sum(StockLot.quantity).label("quantity"),
            func.sum(_lot_value()).label("value_cents"),
        )
        .group_by(StockLot.location_type, StockLot.location_id)
        .order_by(StockLot.location_type, StockLot.location_id)
        .all()
    )

    product_value = func.sum(_lot_value()).label("value_cents")
    product_rows = (
        lots.with_entities(
            Product.id,
            Product.name,
            func.sum(StockLot.quantity).label("quantity"),
            product_value,
        )
        .group_by(Product.id, Product.name)
        .order_by(product_value.desc(), Product.id.asc())
        .limit(top)
        .all()
    )

    alerts = inventory_alerts(
        location_type=location_type,
        location_id=location_id,
        expiring_within_days=expiring_within_days,
    )

    return {
        "location_type": location_type,
        "location_id": location_id,
        "lot_count": int(lot_count),
        "total_quantity": int(quantity),
        "total_value_cents": int(value),
        "total_cost_cents": int(cost),
        "low_stock_products": len(alerts["low_stock"]),
        "out_of_stock_products": sum(1 for item in alerts["low_stock"] if item["quantity"] == 0),
        "expiring_lots": len(alerts["expiring"]),
        "by_location": [
            {
                "location_type": row.location_type,
                "location_id": row.location_id,
                "lot_count": int(row.lot_count),
                "quantity": int(row.quantity),
                "value_cents": int(row.value_cents),
            }
            for row in location_rows
        ],
        "top_products": [
            {
                "product_id": row.id,
                "product_name": row.name,
                "quantity": int(row.quantity),
                "value_cents": int(row.value_cents),
            }
            for row in product_rows
        ],
    }


def outlet_stats(*, days: int = 30) -> dict:
    """Per-outlet stock and recent sales, plus totals across all outlets."""
    _check_days(days)
    since = days_ago(days)

    stock_rows = (
        db.session.query(
            StockLot.location_id,
            func.count(func.distinct(StockLot.product_id)).label("product_count"),
            func.sum(StockLot.quantity).label("quantity"),
            func.sum(_lot_value()).label("value_cents"),
        )
        .join(Product, Product.id == StockLot.product_id)
        .filter(StockLot.location_type == LOCATION_OUTLET, StockLot.quantity > 0)
        .group_by(StockLot.location_id)
        .all()
    )
    stock = {row.location_id: row for row in stock_rows}

    sales_rows = (
        _completed_sales(start=since)
        .with_entities(
            Sale.outlet_id,
            func.count(Sale.id).label("sale_count"),
            func.coalesce(func.sum(_net_sale_cents()), 0).label("revenue_cents"),
        )
        .group_by(Sale.outlet_id)
        .all()
    )
    sales = {row.outlet_id: row for row in sales_rows}

    outlets = []
    for outlet in db.session.query(Outlet).order_by(Outlet.code.asc()).all():
        held = stock.get(outlet.id)
        sold = sales.get(outlet.id)
        outlets.append({
            "outlet_id": outlet.id,
            "code": outlet.code,
            "name": outlet.name,
            "is_active": outlet.is_active,
            "product_count": int(held.product_count) if held else 0,
            "total_quantity": int(held.quantity) if held else 0,
            "stock_value_cents": int(held.value_cents) if held else 0,
            "sale_count": int(sold.sale_count) if sold else 0,
            "revenue_cents": int(sold.revenue_cents) if sold else 0,
        })

    return {
        "days": days,
        "total_outlets": len(outlets),
        "active_outlets": sum(1 for outlet in outlets if outlet["is_active"]),
        "total_stock_value_cents": sum(outlet["stock_value_cents"] for outlet in outlets),
        "total_revenue_cents": sum(outlet["revenue_cents"] for outlet in outlets),
        "low_stock_products": len(inventory_alerts(location_type=LOCATION_OUTLET)["low_stock"]),
        "outlets": outlets,
    }


def dashboard_stats(*, days: int = 7, recent: int = 5, top: int = 5) -> dict:
    """
    Headline numbers for the back office.

    Revenue is completed sales net of refunds plus fulfilled orders. Open
    orders are PENDING or CONFIRMED. top_products ranks by units sold net of
    returns across all completed sales.
    """
    _check_days(days)

    sales_revenue = int(
        _completed_sales().with_entities(func.coalesce(func.sum(_net_sale_cents()), 0)).scalar()
    )
    order_revenue = int(
        db.session.query(func.coalesce(func.sum(Order.total_cents), 0))
        .filter(Order.status == ORDER_FULFILLED)
        .scalar()
    )

    order_counts = dict(
        db.session.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
    )

    recent_orders = (
        db.session.query(Order)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(recent)
        .all()
    )

    sold = func.sum(SaleLine.quantity - SaleLine.returned_quantity).label("quantity_sold")
    top_rows = (
        db.session.query(
            Product.id,
            Product.name,
            sold,
            func.sum(SaleLine.line_total_cents).label("line_total_cents"),
        )
        .join(SaleLine, SaleLine.product_id == Product.id)
        .join(Sale, Sale.id == SaleLine.sale_id)
        .filter(Sale.status == SALE_COMPLETED)
        .group_by(Product.id, Product.name)
        .having(sold > 0)
        .order_by(sold.desc(), Product.id.asc())
        .limit(top)
        .all()
    )

    return {
        "generated_at": to_utc_z(utcnow()),
        "total_revenue_cents": sales_revenue + order_revenue,
        "sales_revenue_cents": sales_revenue,
        "order_revenue_cents": order_revenue,
        "total_sales": _completed_sales().count(),
        "total_orders": sum(count for status, count in order_counts.items() if status != ORDER_CANCELLED),
        "open_orders": order_counts.get(ORDER_PENDING, 0) + order_counts.get(ORDER_CONFIRMED, 0),
        "total_customers": db.session.query(Customer).filter(Customer.is_active.is_(True)).count(),
        "total_products": db.session.query(Product).filter(Product.is_active.is_(True)).count(),
        "low_stock_products": len(inventory_alerts()["low_stock"]),
        "recent_orders": [
            {
                "id": order.id,
                "order_number": order.order_number,
                "customer_name": order.customer_name,
                "status": order.status,
                "total_cents": order.total_cents,
                "created_at": to_utc_z(order.created_at),
            }
            for order in recent_orders
        ],
        "top_products": [
            {
                "product_id": row.id,
                "product_name": row.name,
                "quantity_sold": int(row.quantity_sold),
                "line_total_cents": int(row.line_total_cents),
            }
            for row in top_rows
        ],
        "revenue_by_day": _revenue_by_day(_completed_sales(), days_ago(days)),
    }
