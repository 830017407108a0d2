# backend/stockline/__init__.py
from flask import Flask, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .extensions import db, migrate
from .responses import fail
from .validation import ValidationError, ConflictError, NotFoundError


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.catalog import vendors_bp, brands_bp, categories_bp, products_bp, discounts_bp
    from .routes.customers import customers_bp
    from .routes.locations import outlets_bp, warehouses_bp
    from .routes.stock import stock_bp
    from .routes.sales import sales_bp
    from .routes.orders import orders_bp
    from .routes.demand import demand_bp
    from .routes.reports import dashboard_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(vendors_bp)
    app.register_blueprint(brands_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(discounts_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(outlets_bp)
    app.register_blueprint(warehouses_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(demand_bp)
    app.register_blueprint(dashboard_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    register_error_handlers(app)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def register_error_handlers(app: Flask) -> None:
    """Every error leaves the API in the same JSON envelope."""

    @app.errorhandler(NotFoundError)
    def handle_not_found(e):
        return fail(str(e) or "Not found", 404)

    @app.errorhandler(ConflictError)
    def handle_conflict(e):
        return fail(str(e), 409)

    @app.errorhandler(ValidationError)
    def handle_validation(e):
        return fail(str(e), 400)

    @app.errorhandler(HTTPException)
    def handle_http(e):
        return fail(e.name, e.code, message=e.description)

    @app.errorhandler(Exception)
    def handle_unexpected(e):
        if isinstance(e, HTTPException):
            return handle_http(e)
        db.session.rollback()
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return fail("Internal server error", 500)
