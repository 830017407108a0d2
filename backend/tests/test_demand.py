"""
Demand tests.

Verifies:
- Demands are numbered and merge duplicate product lines
- Status transitions (PENDING -> APPROVED -> CANCELLED) are enforced
- Conversion creates warehouse lots and is one-shot
- Generation proposes ceil(units sold / days * 7) per qualifying product
"""

import pytest

from stockline.extensions import db
from stockline.models import Demand, StockLot
from stockline.models.locations import LOCATION_WAREHOUSE
from stockline.services import demand_service, sales_service
from stockline.services.demand_service import DemandError, suggested_quantity
from stockline.validation import InvalidStatusTransition

from .conftest import add_lot


def create_demand(client, headers, outlet, lines):
    return client.post(
        "/api/demand",
        json={"location_type": "OUTLET", "location_id": outlet.id, "lines": lines},
        headers=headers,
    )


class TestCreateDemand:

    def test_numbered_and_merged(self, client, staff_headers, outlet, rice, oil):
        resp = create_demand(client, staff_headers, outlet, [
            {"product_id": rice.id, "quantity": 5},
            {"product_id": oil.id, "quantity": 2},
            {"product_id": rice.id, "quantity": 3},
        ])

        assert resp.status_code == 201, resp.json
        demand = resp.json["data"]
        assert demand["demand_number"].startswith("D")
        assert demand["status"] == "PENDING"
        quantities = {line["product_id"]: line["quantity"] for line in demand["lines"]}
        assert quantities == {rice.id: 8, oil.id: 2}

    def test_zero_quantity_rejected(self, client, staff_headers, outlet, rice):
        resp = create_demand(client, staff_headers, outlet, [{"product_id": rice.id, "quantity": 0}])
        assert resp.status_code == 400

    def test_unknown_location(self, client, staff_headers, rice, outlet):
        resp = client.post(
            "/api/demand",
            json={"location_type": "OUTLET", "location_id": 999, "lines": [{"product_id": rice.id, "quantity": 1}]},
            headers=staff_headers,
        )
        assert resp.status_code == 404


class TestDemandStatus:

    def test_approve_then_cancel(self, client, staff_headers, manager_headers, outlet, rice):
        demand_id = create_demand(
            client, staff_headers, outlet, [{"product_id": rice.id, "quantity": 1}]
        ).json["data"]["id"]

        approved = client.post(f"/api/demand/{demand_id}/status", json={"status": "APPROVED"}, headers=manager_headers)
        assert approved.json["data"]["status"] == "APPROVED"

        back = client.post(f"/api/demand/{demand_id}/status", json={"status": "PENDING"}, headers=manager_headers)
        assert back.status_code == 400

        cancelled = client.post(f"/api/demand/{demand_id}/status", json={"status": "CANCELLED"}, headers=manager_headers)
        assert cancelled.json["data"]["status"] == "CANCELLED"

    def test_edit_only_pending(self, client, staff_headers, manager_headers, outlet, rice):
        demand_id = create_demand(
            client, staff_headers, outlet, [{"product_id": rice.id, "quantity": 1}]
        ).json["data"]["id"]
        client.post(f"/api/demand/{demand_id}/status", json={"status": "APPROVED"}, headers=manager_headers)

        resp = client.put(f"/api/demand/{demand_id}", json={"notes": "late"}, headers=staff_headers)
        assert resp.status_code == 400


class TestConvertDemand:

    def test_creates_warehouse_lots(self, client, staff_headers, manager_headers, outlet, warehouse, rice, oil):
        demand_id = create_demand(client, staff_headers, outlet, [
            {"product_id": rice.id, "quantity": 12},
            {"product_id": oil.id, "quantity": 4},
        ]).json["data"]["id"]

        resp = client.post(
            f"/api/demand/{demand_id}/convert",
            json={
                "warehouse_id": warehouse.id,
                "lines": [{"product_id": rice.id, "unit_cost_cents": 700, "batch_number": "B-1"}],
            },
            headers=manager_headers,
        )

        assert resp.status_code == 201, resp.json
        data = resp.json["data"]
        assert data["demand"]["status"] == "CONVERTED"
        assert len(data["lots"]) == 2

        rice_lot = db.session.query(StockLot).filter_by(product_id=rice.id).one()
        assert rice_lot.location_type == LOCATION_WAREHOUSE
        assert rice_lot.location_id == warehouse.id
        assert rice_lot.quantity == 12
        assert rice_lot.unit_cost_cents == 700
        assert rice_lot.batch_number == "B-1"
        oil_lot = db.session.query(StockLot).filter_by(product_id=oil.id).one()
        assert oil_lot.unit_price_cents == oil.price_cents

    def test_convert_twice_rejected(self, app, outlet, warehouse, rice):
        demand = demand_service.create_demand(
            location_type="OUTLET", location_id=outlet.id, lines=[{"product_id": rice.id, "quantity": 1}]
        )
        demand_service.convert_demand(demand.id, warehouse.id)

        with pytest.raises(InvalidStatusTransition):
            demand_service.convert_demand(demand.id, warehouse.id)
        assert db.session.query(StockLot).count() == 1

    def test_converted_cannot_be_deleted(self, app, outlet, warehouse, rice):
        demand = demand_service.create_demand(
            location_type="OUTLET", location_id=outlet.id, lines=[{"product_id": rice.id, "quantity": 1}]
        )
        demand_service.convert_demand(demand.id, warehouse.id)

        with pytest.raises(DemandError):
            demand_service.delete_demand(demand.id)


class TestGenerateDemand:

    @pytest.mark.parametrize(
        "units,days,expected",
        [(10, 30, 3), (30, 30, 7), (1, 30, 1), (14, 7, 14), (0, 30, 0)],
    )
    def test_suggested_quantity(self, units, days, expected):
        assert suggested_quantity(units, days) == expected

    def test_generates_from_recent_sales(self, client, manager_headers, outlet, rice, oil):
        add_lot(rice, outlet, 50)
        add_lot(oil, outlet, 50)
        for _ in range(2):
            sales_service.finalize_sale(outlet_id=outlet.id, items=[{"product_id": rice.id, "quantity": 5}])
        sales_service.finalize_sale(outlet_id=outlet.id, items=[{"product_id": oil.id, "quantity": 1}])

        resp = client.post(
            "/api/demand/generate",
            json={"outlet_id": outlet.id, "days": 30, "min_sales_threshold": 2},
            headers=manager_headers,
        )

        assert resp.status_code == 201, resp.json
        lines = resp.json["data"]["lines"]
        assert [(line["product_id"], line["quantity"]) for line in lines] == [(rice.id, 3)]

    def test_voided_sales_ignored(self, app, outlet, rice):
        add_lot(rice, outlet, 10)
        sale = sales_service.finalize_sale(outlet_id=outlet.id, items=[{"product_id": rice.id, "quantity": 5}])
        sales_service.void_sale(sale.id)

        with pytest.raises(DemandError):
            demand_service.generate_demand(outlet_id=outlet.id)
        assert db.session.query(Demand).count() == 0
