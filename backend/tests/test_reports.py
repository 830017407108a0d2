"""
Reporting endpoint tests.

Verifies:
- Sales stats count completed sales net of refunds and leave voided ones out
- Stock stats value lots at the product price and split by location
- Outlet stats list every outlet, with or without stock and sales
- Dashboard stats combine sales and fulfilled orders
- Reports are manager-only and reject out-of-range windows
"""

from datetime import timedelta

import pytest

from stockline.extensions import db
from stockline.models import Outlet
from stockline.services import stock_service
from stockline.time_utils import utcnow

from .conftest import add_lot, make_product


def checkout(client, headers, outlet, items, payments=None, discount_cents=0):
    resp = client.post(
        "/api/sales",
        json={"outlet_id": outlet.id, "items": items, "payments": payments or [], "discount_cents": discount_cents},
        headers=headers,
    )
    assert resp.status_code == 201, resp.json
    return resp.json["data"]


@pytest.fixture
def trading_day(client, staff_headers, manager_headers, outlet, rice, oil):
    """Two completed sales (23000 and 10000) and one voided sale at the outlet."""
    add_lot(rice, outlet, 10)
    add_lot(oil, outlet, 10)
    first = checkout(
        client, staff_headers, outlet,
        [{"product_id": rice.id, "quantity": 2}, {"product_id": oil.id, "quantity": 1}],
        payments=[{"method": "CASH", "amount_cents": 20000}],
        discount_cents=2000,
    )
    second = checkout(
        client, staff_headers, outlet,
        [{"product_id": rice.id, "quantity": 1}],
        payments=[{"method": "BKASH", "amount_cents": 10000}],
    )
    voided = checkout(
        client, staff_headers, outlet,
        [{"product_id": oil.id, "quantity": 1}],
        payments=[{"method": "CASH", "amount_cents": 5000}],
    )
    resp = client.post(f"/api/sales/{voided['id']}/void", json={"reason": "Test"}, headers=manager_headers)
    assert resp.status_code == 200
    return {"first": first, "second": second, "voided": voided}


# =============================================================================
# SALES STATS
# =============================================================================


class TestSalesStats:

    def test_totals_and_breakdowns(self, client, manager_headers, trading_day):
        resp = client.get("/api/sales/stats", headers=manager_headers)

        assert resp.status_code == 200, resp.json
        stats = resp.json["data"]
        assert stats["total_sales"] == 2
        assert stats["total_revenue_cents"] == 33000
        assert stats["total_refunded_cents"] == 0
        assert stats["average_sale_cents"] == 16500
        assert stats["by_payment_method"] == [
            {"method": "BKASH", "sale_count": 1, "amount_cents": 10000},
            {"method": "CASH", "sale_count": 1, "amount_cents": 20000},
        ]
        assert stats["by_date"] == [
            {"date": utcnow().date().isoformat(), "sale_count": 2, "revenue_cents": 33000},
        ]

    def test_revenue_net_of_refunds(self, client, manager_headers, trading_day):
        second = trading_day["second"]
        client.post(
            f"/api/sales/{second['id']}/returns",
            json={"items": [{"sale_line_id": second["lines"][0]["id"], "quantity": 1}]},
            headers=manager_headers,
        )

        stats = client.get("/api/sales/stats", headers=manager_headers).json["data"]

        assert stats["total_revenue_cents"] == 23000
        assert stats["total_refunded_cents"] == 10000
        assert stats["average_sale_cents"] == 11500

    def test_other_outlet_is_empty(self, client, manager_headers, trading_day):
        other = Outlet(code="OUT-02", name="Second Outlet")
        db.session.add(other)
        db.session.commit()

        stats = client.get(f"/api/sales/stats?outlet_id={other.id}", headers=manager_headers).json["data"]

        assert stats["total_sales"] == 0
        assert stats["average_sale_cents"] == 0
        assert stats["by_payment_method"] == []
        assert stats["by_date"] == []

    def test_date_range(self, client, manager_headers, trading_day):
        tomorrow = (utcnow() + timedelta(days=1)).date().isoformat()
        today = utcnow().date().isoformat()

        later = client.get(f"/api/sales/stats?date_from={tomorrow}", headers=manager_headers).json["data"]
        same_day = client.get(
            f"/api/sales/stats?date_from={today}&date_to={today}", headers=manager_headers
        ).json["data"]

        assert later["total_sales"] == 0
        assert same_day["total_sales"] == 2

    def test_end_before_start(self, client, manager_headers):
        resp = client.get("/api/sales/stats?date_from=2026-02-01&date_to=2026-01-01", headers=manager_headers)
        assert resp.status_code == 400

    def test_unknown_outlet(self, client, manager_headers):
        resp = client.get("/api/sales/stats?outlet_id=999", headers=manager_headers)
        assert resp.status_code == 404

    @pytest.mark.parametrize("days", [0, -1, 367])
    def test_days_out_of_range(self, client, manager_headers, days):
        resp = client.get(f"/api/sales/stats?days={days}", headers=manager_headers)
        assert resp.status_code == 400

    def test_staff_denied(self, client, staff_headers):
        resp = client.get("/api/sales/stats", headers=staff_headers)
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "VIEW_REPORTS"


# =============================================================================
# STOCK STATS
# =============================================================================


class TestStockStats:

    @pytest.fixture
    def stocked(self, catalog, outlet, warehouse, rice, oil):
        add_lot(rice, outlet, 4)
        add_lot(rice, warehouse, 2)
        stock_service.create_lot(
            product_id=oil.id,
            location_type="WAREHOUSE",
            location_id=warehouse.id,
            quantity=3,
            unit_cost_cents=100,
            expire_date=utcnow() + timedelta(days=5),
        )
        db.session.commit()
        make_product(catalog, "Salt 1kg", "100000000003", 3300, reorder_level=5)

    def test_totals(self, client, manager_headers, outlet, warehouse, rice, stocked):
        resp = client.get("/api/stock/stats", headers=manager_headers)

        assert resp.status_code == 200, resp.json
        stats = resp.json["data"]
        assert stats["lot_count"] == 3
        assert stats["total_quantity"] == 9
        assert stats["total_value_cents"] == 75000
        assert stats["total_cost_cents"] == 900
        assert stats["low_stock_products"] == 1
        assert stats["out_of_stock_products"] == 1
        assert stats["expiring_lots"] == 1
        assert [(row["location_type"], row["location_id"], row["quantity"]) for row in stats["by_location"]] == [
            ("OUTLET", outlet.id, 4),
            ("WAREHOUSE", warehouse.id, 5),
        ]
        assert stats["top_products"][0]["product_id"] == rice.id
        assert stats["top_products"][0]["value_cents"] == 60000

    def test_scoped_to_location(self, client, manager_headers, warehouse, stocked):
        resp = client.get(
            f"/api/stock/stats?location_type=warehouse&location_id={warehouse.id}", headers=manager_headers
        )

        stats = resp.json["data"]
        assert stats["location_type"] == "WAREHOUSE"
        assert stats["total_quantity"] == 5
        assert stats["total_value_cents"] == 35000

    def test_lot_price_overrides_product_price(self, client, manager_headers, outlet, rice):
        stock_service.create_lot(
            product_id=rice.id,
            location_type="OUTLET",
            location_id=outlet.id,
            quantity=2,
            unit_price_cents=9000,
        )
        db.session.commit()

        stats = client.get("/api/stock/stats", headers=manager_headers).json["data"]
        assert stats["total_value_cents"] == 18000

    def test_location_id_needs_type(self, client, manager_headers, outlet):
        resp = client.get(f"/api/stock/stats?location_id={outlet.id}", headers=manager_headers)
        assert resp.status_code == 400

    def test_bad_location_type(self, client, manager_headers):
        resp = client.get("/api/stock/stats?location_type=TRUCK", headers=manager_headers)
        assert resp.status_code == 400


# =============================================================================
# OUTLET STATS
# =============================================================================


class TestOutletStats:

    def test_every_outlet_listed(self, client, manager_headers, outlet, warehouse, rice, trading_day):
        add_lot(rice, warehouse, 5)
        closed = Outlet(code="OUT-02", name="Closed Outlet", is_active=False)
        db.session.add(closed)
        db.session.commit()

        resp = client.get("/api/outlets/stats", headers=manager_headers)

        assert resp.status_code == 200, resp.json
        stats = resp.json["data"]
        assert stats["total_outlets"] == 2
        assert stats["active_outlets"] == 1
        main, other = stats["outlets"]
        assert main["outlet_id"] == outlet.id
        assert main["product_count"] == 2
        assert main["total_quantity"] == 16
        assert main["stock_value_cents"] == 7 * 10000 + 9 * 5000
        assert main["sale_count"] == 2
        assert main["revenue_cents"] == 33000
        assert other["code"] == "OUT-02"
        assert (other["total_quantity"], other["sale_count"], other["revenue_cents"]) == (0, 0, 0)
        assert stats["total_revenue_cents"] == 33000

    def test_staff_denied(self, client, staff_headers):
        assert client.get("/api/outlets/stats", headers=staff_headers).status_code == 403

    def test_days_out_of_range(self, client, manager_headers):
        assert client.get("/api/outlets/stats?days=400", headers=manager_headers).status_code == 400


# =============================================================================
# DASHBOARD
# =============================================================================


class TestDashboardStats:

    def test_headline_numbers(self, client, staff_headers, manager_headers, outlet, rice, oil, customer,
                              trading_day):
        pending = client.post(
            "/api/orders",
            json={"customer_id": customer.id, "items": [{"product_id": rice.id, "quantity": 3}]},
            headers=staff_headers,
        ).json["data"]
        fulfilled = client.post(
            "/api/orders",
            json={"customer_name": "Walk-in", "items": [{"product_id": oil.id, "quantity": 1}]},
            headers=staff_headers,
        ).json["data"]
        cancelled = client.post(
            "/api/orders",
            json={"customer_name": "Walk-in", "items": [{"product_id": oil.id, "quantity": 2}]},
            headers=staff_headers,
        ).json["data"]
        client.post(
            f"/api/orders/{fulfilled['id']}/fulfill",
            json={"location_type": "OUTLET", "location_id": outlet.id},
            headers=manager_headers,
        )
        client.post(f"/api/orders/{cancelled['id']}/status", json={"status": "CANCELLED"}, headers=manager_headers)

        resp = client.get("/api/dashboard/stats", headers=manager_headers)

        assert resp.status_code == 200, resp.json
        stats = resp.json["data"]
        assert stats["sales_revenue_cents"] == 33000
        assert stats["order_revenue_cents"] == 5000
        assert stats["total_revenue_cents"] == 38000
        assert stats["total_sales"] == 2
        assert stats["total_orders"] == 2
        assert stats["open_orders"] == 1
        assert stats["total_customers"] == 1
        assert stats["total_products"] == 2
        assert stats["low_stock_products"] == 0
        assert [order["id"] for order in stats["recent_orders"]] == [cancelled["id"], fulfilled["id"], pending["id"]]
        assert [(row["product_id"], row["quantity_sold"]) for row in stats["top_products"]] == [
            (rice.id, 3),
            (oil.id, 1),
        ]
        assert stats["top_products"][0]["line_total_cents"] == 30000
        assert stats["revenue_by_day"][0]["revenue_cents"] == 33000

    def test_returned_units_leave_top_products(self, client, manager_headers, rice, trading_day):
        second = trading_day["second"]
        client.post(
            f"/api/sales/{second['id']}/returns",
            json={"items": [{"sale_line_id": second["lines"][0]["id"], "quantity": 1}]},
            headers=manager_headers,
        )

        stats = client.get("/api/dashboard/stats", headers=manager_headers).json["data"]

        sold = {row["product_id"]: row["quantity_sold"] for row in stats["top_products"]}
        assert sold[rice.id] == 2

    def test_empty_database(self, client, manager_headers):
        stats = client.get("/api/dashboard/stats", headers=manager_headers).json["data"]
        assert stats["total_revenue_cents"] == 0
        assert stats["recent_orders"] == []
        assert stats["top_products"] == []

    def test_staff_denied(self, client, staff_headers):
        assert client.get("/api/dashboard/stats", headers=staff_headers).status_code == 403
