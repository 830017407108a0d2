"""
Catalog and reference data endpoint tests.

Verifies:
- Create / read / update / delete through the generic resource routes
- Pagination envelope and clamping of limit
- Duplicate unique fields return 409
- Rows still referenced elsewhere cannot be deleted
"""

import pytest

from .conftest import add_lot, make_product


def create_vendor(client, headers, name="Fresh Farms"):
    return client.post("/api/vendors", json={"name": name}, headers=headers)


class TestVendorCrud:

    def test_create_get_update_delete(self, client, manager_headers):
        created = create_vendor(client, manager_headers)
        assert created.status_code == 201
        vendor_id = created.json["data"]["id"]

        fetched = client.get(f"/api/vendors/{vendor_id}", headers=manager_headers)
        assert fetched.json["data"]["name"] == "Fresh Farms"

        updated = client.put(f"/api/vendors/{vendor_id}", json={"contact_name": "Nadia"}, headers=manager_headers)
        assert updated.status_code == 200
        assert updated.json["data"]["contact_name"] == "Nadia"

        deleted = client.delete(f"/api/vendors/{vendor_id}", headers=manager_headers)
        assert deleted.status_code == 200
        assert client.get(f"/api/vendors/{vendor_id}", headers=manager_headers).status_code == 404

    def test_duplicate_name_case_insensitive(self, client, manager_headers):
        create_vendor(client, manager_headers, "Fresh Farms")
        resp = create_vendor(client, manager_headers, "FRESH FARMS")
        assert resp.status_code == 409

    def test_missing_required(self, client, manager_headers):
        resp = client.post("/api/vendors", json={"contact_name": "x"}, headers=manager_headers)
        assert resp.status_code == 400
        assert "name" in resp.json["error"]

    def test_unknown_field_rejected(self, client, manager_headers):
        resp = client.post("/api/vendors", json={"name": "X", "id": 7}, headers=manager_headers)
        assert resp.status_code == 400

    def test_cannot_delete_vendor_with_brands(self, client, manager_headers, catalog):
        resp = client.delete(f"/api/vendors/{catalog['vendor'].id}", headers=manager_headers)
        assert resp.status_code == 409


class TestPagination:

    def test_envelope(self, client, manager_headers):
        for i in range(12):
            create_vendor(client, manager_headers, f"Vendor {i:02d}")

        resp = client.get("/api/vendors?page=2&limit=5&sortBy=name&sortOrder=asc", headers=manager_headers)

        assert resp.status_code == 200
        assert resp.json["success"] is True
        assert resp.json["pagination"] == {"page": 2, "limit": 5, "total": 12, "totalPages": 3}
        assert [v["name"] for v in resp.json["data"]] == [f"Vendor {i:02d}" for i in range(5, 10)]

    @pytest.mark.parametrize("limit,expected", [(0, 1), (500, 100), (-3, 1)])
    def test_limit_clamped(self, client, manager_headers, limit, expected):
        resp = client.get(f"/api/vendors?limit={limit}", headers=manager_headers)
        assert resp.json["pagination"]["limit"] == expected

    def test_search(self, client, manager_headers):
        create_vendor(client, manager_headers, "Alpha Traders")
        create_vendor(client, manager_headers, "Beta Supplies")

        resp = client.get("/api/vendors?search=beta", headers=manager_headers)
        assert [v["name"] for v in resp.json["data"]] == ["Beta Supplies"]

    def test_empty_list(self, client, manager_headers):
        resp = client.get("/api/vendors", headers=manager_headers)
        assert resp.json["data"] == []
        assert resp.json["pagination"]["totalPages"] == 0


class TestProducts:

    def test_duplicate_barcode_409(self, client, manager_headers, catalog):
        body = {"name": "Tea", "barcode": "555", "price_cents": 3000, "brand_id": catalog["brand"].id}
        first = client.post("/api/products", json=body, headers=manager_headers)
        assert first.status_code == 201
        assert first.json["data"]["vendor_id"] == catalog["vendor"].id

        second = client.post("/api/products", json=dict(body, name="Tea 2"), headers=manager_headers)
        assert second.status_code == 409

    def test_negative_price(self, client, manager_headers):
        resp = client.post("/api/products", json={"name": "X", "barcode": "1", "price_cents": -1},
                           headers=manager_headers)
        assert resp.status_code == 400

    def test_decimal_price_rejected(self, client, manager_headers):
        resp = client.post("/api/products", json={"name": "X", "barcode": "1", "price_cents": 10.5},
                           headers=manager_headers)
        assert resp.status_code == 400

    def test_unknown_category(self, client, manager_headers):
        resp = client.post("/api/products", json={"name": "X", "barcode": "1", "category_id": 99},
                           headers=manager_headers)
        assert resp.status_code == 404

    def test_cannot_delete_product_with_stock(self, client, manager_headers, rice, outlet):
        add_lot(rice, outlet, 1)
        resp = client.delete(f"/api/products/{rice.id}", headers=manager_headers)
        assert resp.status_code == 409

    @pytest.mark.parametrize("value,expected", [("false", False), ("0", False), (0, False), ("yes", True)])
    def test_is_active_parsed_strictly(self, client, manager_headers, rice, value, expected):
        resp = client.put(f"/api/products/{rice.id}", json={"is_active": value}, headers=manager_headers)
        assert resp.status_code == 200, resp.json
        assert resp.json["data"]["is_active"] is expected

    def test_is_active_rejects_other_strings(self, client, manager_headers, rice):
        resp = client.put(f"/api/products/{rice.id}", json={"is_active": "maybe"}, headers=manager_headers)
        assert resp.status_code == 400

    def test_filter_by_category(self, client, staff_headers, catalog):
        make_product(catalog, "A", "1", 100)
        resp = client.get(f"/api/products?category_id={catalog['category'].id}", headers=staff_headers)
        assert resp.json["pagination"]["total"] == 1


class TestCustomers:

    def test_code_generated_and_membership_normalized(self, client, staff_headers):
        resp = client.post(
            "/api/customers",
            json={"name": "Rina", "membership_status": "member", "email": "Rina@Example.com"},
            headers=staff_headers,
        )

        assert resp.status_code == 201, resp.json
        data = resp.json["data"]
        assert data["code"] == "C000001"
        assert data["membership_status"] == "MEMBER"
        assert data["email"] == "rina@example.com"

    def test_invalid_membership(self, client, staff_headers):
        resp = client.post("/api/customers", json={"name": "X", "membership_status": "GOLD"}, headers=staff_headers)
        assert resp.status_code == 400

    def test_staff_cannot_delete(self, client, staff_headers, customer):
        resp = client.delete(f"/api/customers/{customer.id}", headers=staff_headers)
        assert resp.status_code == 403


class TestLocations:

    def test_manager_cannot_create_outlet(self, client, manager_headers):
        resp = client.post("/api/outlets", json={"code": "o-2", "name": "Second"}, headers=manager_headers)
        assert resp.status_code == 403

    def test_admin_creates_outlet_code_upper(self, client, admin_headers):
        resp = client.post("/api/outlets", json={"code": "o-2", "name": "Second"}, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json["data"]["code"] == "O-2"

    def test_cannot_delete_outlet_holding_stock(self, client, admin_headers, rice, outlet):
        add_lot(rice, outlet, 3)
        resp = client.delete(f"/api/outlets/{outlet.id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_outlet_inventory(self, client, staff_headers, rice, oil, outlet):
        add_lot(rice, outlet, 3, days_ago=2)
        add_lot(rice, outlet, 4, days_ago=1)
        add_lot(oil, outlet, 1)

        resp = client.get(f"/api/outlets/{outlet.id}/inventory", headers=staff_headers)

        assert resp.status_code == 200
        items = {item["product_id"]: item for item in resp.json["data"]["items"]}
        assert items[rice.id]["quantity"] == 7
        assert items[rice.id]["lot_count"] == 2
        assert resp.json["data"]["total_quantity"] == 8

    def test_warehouse_crud_and_inventory(self, client, admin_headers, staff_headers, rice):
        created = client.post("/api/warehouses", json={"name": "North Depot"}, headers=admin_headers)
        assert created.status_code == 201
        depot_id = created.json["data"]["id"]

        duplicate = client.post("/api/warehouses", json={"name": "north depot"}, headers=admin_headers)
        assert duplicate.status_code == 409

        client.post(
            "/api/stock",
            json={"product_id": rice.id, "location_type": "WAREHOUSE", "location_id": depot_id, "quantity": 12},
            headers=admin_headers,
        )
        resp = client.get(f"/api/warehouses/{depot_id}/inventory", headers=staff_headers)
        assert resp.json["data"]["total_quantity"] == 12


class TestDiscounts:

    def test_create_normalizes_type(self, client, manager_headers, rice):
        resp = client.post(
            "/api/discounts",
            json={"code": "mem10", "product_id": rice.id, "discount_type": "membership", "amount_cents": 1000},
            headers=manager_headers,
        )
        assert resp.status_code == 201
        assert resp.json["data"]["discount_type"] == "MEMBERSHIP"
        assert resp.json["data"]["code"] == "MEM10"

    def test_window_end_before_start(self, client, manager_headers, rice):
        resp = client.post(
            "/api/discounts",
            json={
                "code": "BAD", "product_id": rice.id, "amount_cents": 100,
                "start_date": "2026-02-01", "end_date": "2026-01-01",
            },
            headers=manager_headers,
        )
        assert resp.status_code == 400

    def test_unknown_type(self, client, manager_headers, rice):
        resp = client.post(
            "/api/discounts",
            json={"code": "X1", "product_id": rice.id, "discount_type": "BOGO", "amount_cents": 100},
            headers=manager_headers,
        )
        assert resp.status_code == 400

    def test_staff_cannot_create(self, client, staff_headers, rice):
        resp = client.post(
            "/api/discounts",
            json={"code": "S1", "product_id": rice.id, "amount_cents": 100},
            headers=staff_headers,
        )
        assert resp.status_code == 403


class TestErrors:

    def test_unknown_route_envelope(self, client):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        assert resp.json["success"] is False

    def test_health(self, client):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["data"]["status"] == "healthy"
