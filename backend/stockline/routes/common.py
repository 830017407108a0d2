# Overview: Shared helpers for routes; domain error translation and generic CRUD endpoints.

from __future__ import annotations

from flask import Blueprint, request

from ..decorators import require_auth, require_permission
from ..responses import ok, fail, list_params, paginate, paginated
from ..services import crud_service
from ..services.checkout_service import PaymentMismatchError
from ..services.crud_service import CrudResource
from ..services.stock_service import StockDepletedError
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError, ConflictError, NotFoundError

DOMAIN_ERRORS = (ValidationError, ConflictError, NotFoundError)


def error_response(exc: Exception):
    """Translate a domain exception into the JSON envelope."""
    if isinstance(exc, NotFoundError):
        return fail(str(exc) or "Not found", 404)
    if isinstance(exc, ConflictError):
        return fail(str(exc), 409)
    if isinstance(exc, (StockDepletedError, PaymentMismatchError)):
        return fail(str(exc), 400, details=exc.to_dict())
    details = getattr(exc, "details", None)
    if details:
        return fail(str(exc), 400, details=details)
    return fail(str(exc), 400)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def date_arg(name: str, *, end_of_day: bool = False):
    """Parse an ISO-8601 query parameter; a bad value is a ValidationError."""
    raw = request.args.get(name)
    try:
        return parse_iso_datetime(raw, end_of_day=end_of_day)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 date")


def bool_arg(name: str, default: bool | None = None) -> bool | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def register_crud_routes(
    bp: Blueprint,
    resource: CrudResource,
    *,
    view_permission: str,
    manage_permission: str,
    delete_permission: str | None = None,
    filter_args: dict | None = None,
) -> None:
    """
    Attach GET|POST "" and GET|PUT|DELETE "/<id>" to a blueprint.

    filter_args maps query parameter -> (column name, type) for equality
    filters on the list endpoint.
    """
    name = resource.name
    delete_permission = delete_permission or manage_permission
    filter_args = filter_args or {}

    @require_auth
    @require_permission(view_permission)
    def list_route():
        params = list_params()
        filters = {}
        for arg, (column, arg_type) in filter_args.items():
            if arg_type is bool:
                filters[column] = bool_arg(arg)
            else:
                filters[column] = request.args.get(arg, type=arg_type)
        query = crud_service.list_query(resource, search=params.search, filters=filters)
        items, pagination = paginate(
            query, params, sortable=resource.sortable, default_sort=resource.model.id
        )
        return paginated(items, pagination)

    @require_auth
    @require_permission(manage_permission)
    def create_route():
        try:
            obj = crud_service.create(resource, json_body())
        except DOMAIN_ERRORS as e:
            return error_response(e)
        return ok(obj.to_dict(), f"{name.capitalize()} created", 201)

    @require_auth
    @require_permission(view_permission)
    def get_route(obj_id: int):
        try:
            obj = crud_service.get(resource, obj_id)
        except NotFoundError as e:
            return error_response(e)
        return ok(obj.to_dict())

    @require_auth
    @require_permission(manage_permission)
    def update_route(obj_id: int):
        try:
            obj = crud_service.update(resource, obj_id, json_body())
        except DOMAIN_ERRORS as e:
            return error_response(e)
        return ok(obj.to_dict(), f"{name.capitalize()} updated")

    @require_auth
    @require_permission(delete_permission)
    def delete_route(obj_id: int):
        try:
            crud_service.delete(resource, obj_id)
        except DOMAIN_ERRORS as e:
            return error_response(e)
        return ok(message=f"{name.capitalize()} deleted")

    bp.add_url_rule("", f"list_{name}", list_route, methods=["GET"])
    bp.add_url_rule("", f"create_{name}", create_route, methods=["POST"])
    bp.add_url_rule("/<int:obj_id>", f"get_{name}", get_route, methods=["GET"])
    bp.add_url_rule("/<int:obj_id>", f"update_{name}", update_route, methods=["PUT"])
    bp.add_url_rule("/<int:obj_id>", f"delete_{name}", delete_route, methods=["DELETE"])
