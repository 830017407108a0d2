from __future__ import annotations
from datetime import datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .time_utils import parse_iso_datetime


# Maximum price: 9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate email or barcode)."""


class NotFoundError(LookupError):
    """404-level missing record."""


class InvalidStatusTransition(ValidationError):
    """A document status change not allowed from its current status."""

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change status from {current} to {requested}")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


_TRUE_STRINGS = ("1", "true", "yes", "on")
_FALSE_STRINGS = ("0", "false", "no", "off")


def parse_bool(value: Any, field: str) -> bool:
    """Strict boolean: true/false, 1/0 or their usual string spellings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValidationError(f"{field} must be a boolean")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{col.key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{col.key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{col.key} must be an integer, not a decimal")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        return parse_bool(value, col.key)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def require_positive_int(value: Any, field: str) -> int:
    """Coerce a request value to an int >= 1."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a positive integer")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise ValidationError(f"{field} must be a positive integer")
    return value


def require_non_negative_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a non-negative integer")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field} must be a non-negative integer")
    return value


def _check_price(patch: dict, field: str) -> None:
    if field in patch and patch[field] is not None:
        price = patch[field]
        if price < 0:
            raise ValidationError(f"{field} must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _check_price(patch, "price_cents")
    if "reorder_level" in patch and patch["reorder_level"] is not None and patch["reorder_level"] < 0:
        raise ValidationError("reorder_level must be >= 0")


def enforce_rules_stock_lot(patch: dict) -> None:
    _check_price(patch, "unit_cost_cents")
    _check_price(patch, "unit_price_cents")
    if "quantity" in patch and patch["quantity"] is not None and patch["quantity"] < 0:
        raise ValidationError("quantity must be >= 0")


def enforce_rules_discount(patch: dict) -> None:
    from .models.discounts import DISCOUNT_TYPES

    _check_price(patch, "amount_cents")
    if "discount_type" in patch:
        patch["discount_type"] = (patch["discount_type"] or "").upper()
        if patch["discount_type"] not in DISCOUNT_TYPES:
            raise ValidationError(f"discount_type must be one of: {', '.join(DISCOUNT_TYPES)}")
    start, end = patch.get("start_date"), patch.get("end_date")
    if start and end and end < start:
        raise ValidationError("end_date must be on or after start_date")


def enforce_rules_customer(patch: dict) -> None:
    from .models.customers import MEMBERSHIP_STATUSES

    if "membership_status" in patch:
        patch["membership_status"] = (patch["membership_status"] or "").upper()
        if patch["membership_status"] not in MEMBERSHIP_STATUSES:
            raise ValidationError(f"membership_status must be one of: {', '.join(MEMBERSHIP_STATUSES)}")
    if "email" in patch and patch["email"]:
        patch["email"] = patch["email"].lower()


def enforce_rules_outlet(patch: dict) -> None:
    if "code" in patch and patch["code"]:
        patch["code"] = patch["code"].upper()
