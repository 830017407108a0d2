# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/stockline/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init [--admin-email admin@stockline.local] [--admin-password "Password123!"]
#   Idempotent: creates all tables and an admin account if no admin exists.
# - python -m flask system seed-demo
#   DEV only: vendor, brand, category, products, one outlet, one warehouse and stock lots.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --name "Manager" --email manager@stockline.local --password "Password123!" --role manager
#   Create a user (prompts if options are omitted).
# - python -m flask users deactivate manager@stockline.local
#   Deactivate a user and revoke their sessions.
#
# Maintenance:
# - python -m flask maintenance cleanup-sessions --older-than-days 30
#   Delete expired or revoked sessions.
# - python -m flask maintenance cleanup-security-events --retention-days 90
#   Delete security events older than the retention window.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Vendor, Brand, Category, Product, Outlet, Warehouse
from .models.locations import LOCATION_OUTLET, LOCATION_WAREHOUSE
from .permissions import ROLES, ROLE_ADMIN
from .services import auth_service
from .services import session_service
from .services import security_service
from .services import stock_service
from .time_utils import days_ago
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--admin-name', default='Administrator', show_default=True)
@click.option('--admin-email', default='admin@stockline.local', show_default=True)
@click.option('--admin-password', default='Password123!', show_default=True)
@with_appcontext
def init_system(admin_name, admin_email, admin_password):
    """
    Create the schema and bootstrap the first admin account.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing Stockline...")

    db.create_all()
    click.echo("PASS Tables created")

    admin = db.session.query(User).filter_by(role=ROLE_ADMIN).first()
    if admin:
        click.echo(f"PASS Using existing admin: {admin.email} (ID: {admin.id})")
        return

    try:
        admin = auth_service.create_user(admin_name, admin_email, admin_password, role=ROLE_ADMIN)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created admin: {admin.email} (ID: {admin.id})")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """Load a small demo catalog with stock at one outlet and one warehouse."""
    if db.session.query(Product).count():
        click.echo("SKIP Products already exist; demo data not loaded.")
        return

    vendor = Vendor(name="Demo Foods Ltd", contact_name="Rahim", contact_phone="01700000000")
    db.session.add(vendor)
    db.session.flush()
    brand = Brand(name="Golden Harvest", vendor_id=vendor.id)
    category = Category(name="Groceries", vat_status=False)
    outlet = Outlet(code="OUT-01", name="Main Outlet")
    warehouse = Warehouse(name="Central Warehouse")
    db.session.add_all([brand, category, outlet, warehouse])
    db.session.flush()

    catalog = [
        ("Basmati Rice 5kg", "890100000001", 85000, 10),
        ("Lentils 1kg", "890100000002", 14000, 20),
        ("Soybean Oil 2L", "890100000003", 38000, 12),
        ("Sugar 1kg", "890100000004", 13500, 25),
    ]
    products = []
    for name, barcode, price, reorder in catalog:
        product = Product(
            name=name,
            barcode=barcode,
            vendor_id=vendor.id,
            brand_id=brand.id,
            category_id=category.id,
            price_cents=price,
            reorder_level=reorder,
        )
        db.session.add(product)
        products.append(product)
    db.session.flush()

    received = days_ago(14)
    for product in products:
        cost = product.price_cents * 80 // 100
        stock_service.create_lot(
            product_id=product.id,
            location_type=LOCATION_WAREHOUSE,
            location_id=warehouse.id,
            quantity=100,
            unit_cost_cents=cost,
            batch_number="DEMO-W1",
            entry_date=received,
        )
        for age, qty in ((7, 15), (1, 30)):
            stock_service.create_lot(
                product_id=product.id,
                location_type=LOCATION_OUTLET,
                location_id=outlet.id,
                quantity=qty,
                unit_cost_cents=cost,
                batch_number=f"DEMO-O{age}",
                entry_date=days_ago(age),
            )

    db.session.commit()
    click.echo(f"PASS Seeded {len(products)} products, outlet {outlet.code}, warehouse '{warehouse.name}'")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--name', prompt=True)
@click.option('--email', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(ROLES), default='staff', show_default=True)
@with_appcontext
def create_user_cli(name, email, password, role):
    """Create a user."""
    try:
        user = auth_service.create_user(name, email, password, role=role)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL Error: {str(e)}")
        return
    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@click.option('--role', type=click.Choice(ROLES), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users with their roles."""
    users = auth_service.list_users_query(role=role).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<35} {'Active':<8} {'Role'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<25} {user.email:<35} {active_str:<8} {user.role}")

    click.echo("="*90 + "\n")


@users_group.command('deactivate')
@click.argument('email')
@with_appcontext
def deactivate_user_cli(email):
    """Deactivate a user and revoke every session they hold."""
    user = auth_service.find_user_by_email(email)
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        return
    auth_service.deactivate_user(user)
    click.echo(f"PASS Deactivated {user.email}")


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('cleanup-sessions')
@click.option('--older-than-days', type=int, default=30, show_default=True)
@with_appcontext
def cleanup_sessions_cli(older_than_days):
    """Delete expired or revoked sessions created before the cutoff."""
    deleted = session_service.cleanup_expired_sessions(older_than_days=older_than_days)
    click.echo(f"Deleted {deleted} sessions older than {older_than_days} days.")


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events_cli(retention_days):
    """
    Cleanup old security events.

    Default retention: 90 days.
    """
    deleted = security_service.cleanup_security_events(older_than_days=retention_days)
    click.echo(f"Deleted {deleted} security events older than {retention_days} days.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(maintenance_group)
