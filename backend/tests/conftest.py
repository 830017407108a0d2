"""
Pytest fixtures for Stockline backend tests.

Provides a fresh in-memory database per test, users for each role, a small
catalog with an outlet and a warehouse, and helpers to log in and receive
stock.
"""

from datetime import timedelta

import pytest
from stockline import create_app
from stockline.extensions import db
from stockline.models import Vendor, Brand, Category, Product, Outlet, Warehouse, Customer
from stockline.models.locations import LOCATION_OUTLET, LOCATION_WAREHOUSE
from stockline.services import auth_service, stock_service
from stockline.time_utils import utcnow

PASSWORD = "Password123!"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    # Most tests log in several users from the same address
    'LOGIN_RATE_LIMIT': 1000,
    'REGISTER_RATE_LIMIT': 1000,
}


def build_app(**overrides):
    config = dict(TEST_CONFIG)
    config.update(overrides)
    return create_app(config)


@pytest.fixture(scope='function')
def app():
    """Create application with an empty in-memory database."""
    app = build_app()
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def admin_user(app):
    return auth_service.create_user("Admin", "admin@stockline.test", PASSWORD, role="admin")


@pytest.fixture(scope='function')
def manager_user(app):
    return auth_service.create_user("Manager", "manager@stockline.test", PASSWORD, role="manager")


@pytest.fixture(scope='function')
def staff_user(app):
    return auth_service.create_user("Staff", "staff@stockline.test", PASSWORD, role="staff")


def get_auth_token(app, email: str, password: str = PASSWORD) -> str:
    """Log in from a throwaway client so the shared client carries no cookie."""
    response = app.test_client().post('/api/auth/login', json={
        'email': email,
        'password': password,
    })
    assert response.status_code == 200, response.json
    return response.json['data']['token']


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(app, admin_user):
    return auth_headers(get_auth_token(app, admin_user.email))


@pytest.fixture(scope='function')
def manager_headers(app, manager_user):
    return auth_headers(get_auth_token(app, manager_user.email))


@pytest.fixture(scope='function')
def staff_headers(app, staff_user):
    return auth_headers(get_auth_token(app, staff_user.email))


@pytest.fixture(scope='function')
def outlet(app):
    outlet = Outlet(code="OUT-01", name="Main Outlet")
    db.session.add(outlet)
    db.session.commit()
    return outlet


@pytest.fixture(scope='function')
def warehouse(app):
    warehouse = Warehouse(name="Central Warehouse")
    db.session.add(warehouse)
    db.session.commit()
    return warehouse


@pytest.fixture(scope='function')
def catalog(app):
    """Vendor, brand and category shared by product fixtures."""
    vendor = Vendor(name="Acme Foods")
    db.session.add(vendor)
    db.session.flush()
    brand = Brand(name="Acme", vendor_id=vendor.id)
    category = Category(name="Groceries")
    db.session.add_all([brand, category])
    db.session.commit()
    return {"vendor": vendor, "brand": brand, "category": category}


def make_product(catalog, name: str, barcode: str, price_cents: int, reorder_level: int = 0) -> Product:
    product = Product(
        name=name,
        barcode=barcode,
        vendor_id=catalog["vendor"].id,
        brand_id=catalog["brand"].id,
        category_id=catalog["category"].id,
        price_cents=price_cents,
        reorder_level=reorder_level,
    )
    db.session.add(product)
    db.session.commit()
    return product


@pytest.fixture(scope='function')
def rice(catalog):
    return make_product(catalog, "Rice 5kg", "100000000001", 10000)


@pytest.fixture(scope='function')
def oil(catalog):
    return make_product(catalog, "Oil 2L", "100000000002", 5000)


@pytest.fixture(scope='function')
def customer(app):
    customer = Customer(code="C000001", name="Karim", phone="01711111111")
    db.session.add(customer)
    db.session.commit()
    return customer


def add_lot(product, location, quantity: int, days_ago: int = 0, unit_cost_cents: int = 100,
            location_type: str | None = None):
    """Receive a lot dated days_ago into an outlet or warehouse."""
    if location_type is None:
        location_type = LOCATION_OUTLET if isinstance(location, Outlet) else LOCATION_WAREHOUSE
    lot = stock_service.create_lot(
        product_id=product.id,
        location_type=location_type,
        location_id=location.id,
        quantity=quantity,
        unit_cost_cents=unit_cost_cents,
        entry_date=utcnow() - timedelta(days=days_ago),
    )
    db.session.commit()
    return lot
