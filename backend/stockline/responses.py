# Overview: JSON envelope and pagination helpers shared by every route.

"""
All API responses use one envelope:

    {"success": bool, "message"?: str, "data"?: any, "error"?: str}

List endpoints add {"pagination": {page, limit, total, totalPages}}.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, jsonify, request


def ok(data=None, message: str | None = None, status: int = 200, **extra):
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status


def fail(error: str, status: int = 400, message: str | None = None, **extra):
    body = {"success": False, "error": error}
    if message:
        body["message"] = message
    body.update(extra)
    return jsonify(body), status


@dataclass(frozen=True)
class ListParams:
    page: int
    limit: int
    search: str | None
    sort_by: str | None
    sort_order: str

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def list_params() -> ListParams:
    """Read page/limit/search/sortBy/sortOrder from the query string, clamped."""
    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 100)

    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", default_limit, type=int)

    if page < 1:
        page = 1
    if limit < 1:
        limit = 1
    if limit > max_limit:
        limit = max_limit

    search = (request.args.get("search") or "").strip() or None
    sort_by = (request.args.get("sortBy") or "").strip() or None
    sort_order = (request.args.get("sortOrder") or "desc").lower()
    if sort_order not in ("asc", "desc"):
        sort_order = "desc"

    return ListParams(page=page, limit=limit, search=search, sort_by=sort_by, sort_order=sort_order)


def paginate(query, params: ListParams, *, sortable: dict | None = None, default_sort=None):
    """
    Apply sorting and paging to a SQLAlchemy query.

    sortable maps client sortBy names to columns; unknown names fall back to
    default_sort. Returns (items, pagination_dict).
    """
    column = None
    if sortable and params.sort_by:
        column = sortable.get(params.sort_by)
    if column is None:
        column = default_sort
    if column is not None:
        query = query.order_by(column.asc() if params.sort_order == "asc" else column.desc())

    total = query.order_by(None).count()
    total_pages = (total + params.limit - 1) // params.limit if total > 0 else 0
    items = query.offset(params.offset).limit(params.limit).all()

    return items, {
        "page": params.page,
        "limit": params.limit,
        "total": total,
        "totalPages": total_pages,
    }


def paginated(items, pagination: dict):
    return ok([item.to_dict() for item in items], pagination=pagination)
