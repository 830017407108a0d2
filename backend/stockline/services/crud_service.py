# Overview: Generic create/read/update/delete for simple reference resources.

"""
CRUD Service

Vendors, brands, categories, products, customers, outlets, warehouses and
discounts share the same shape: a validated patch is applied to one row.
Each resource is described by a CrudResource; routes and the CLI go
through these functions so uniqueness, reference checks and error mapping
stay in one place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ConflictError,
    NotFoundError,
)


@dataclass(frozen=True)
class CrudResource:
    """
    Description of one resource.

    - unique_fields: checked before insert/update for a clean 409
    - references: (model, fk column, label) rows that block deletion
    - foreign_keys: field -> model that must exist when the field is set
    - prepare: hook(patch, obj_or_None) for rules beyond column metadata
    - before_delete: hook(obj) that raises ConflictError to block deletion
    """
    name: str
    model: type
    policy: ModelValidationPolicy
    search_fields: tuple = ()
    sortable: dict = field(default_factory=dict)
    unique_fields: tuple = ()
    references: tuple = ()
    foreign_keys: dict = field(default_factory=dict)
    prepare: Callable | None = None
    before_delete: Callable | None = None
    case_insensitive_unique: tuple = ()


def _label(resource: CrudResource) -> str:
    return resource.name.replace("_", " ").capitalize()


def get(resource: CrudResource, obj_id: int):
    obj = db.session.get(resource.model, obj_id)
    if obj is None:
        raise NotFoundError(f"{_label(resource)} not found")
    return obj


def list_query(resource: CrudResource, search: str | None = None, filters: dict | None = None):
    model = resource.model
    query = db.session.query(model)
    for key, value in (filters or {}).items():
        if value is None or value == "":
            continue
        query = query.filter(getattr(model, key) == value)
    if search and resource.search_fields:
        like = f"%{search}%"
        query = query.filter(db.or_(*[getattr(model, f).ilike(like) for f in resource.search_fields]))
    return query


def _check_unique(resource: CrudResource, patch: dict, obj=None) -> None:
    model = resource.model
    for spec in resource.unique_fields:
        fields = spec if isinstance(spec, tuple) else (spec,)
        if not any(f in patch for f in fields):
            continue
        values = {f: patch.get(f, getattr(obj, f, None)) for f in fields}
        if any(v is None for v in values.values()):
            continue
        query = db.session.query(model)
        for f, v in values.items():
            column = getattr(model, f)
            if f in resource.case_insensitive_unique and isinstance(v, str):
                query = query.filter(db.func.lower(column) == v.lower())
            else:
                query = query.filter(column == v)
        if obj is not None:
            query = query.filter(model.id != obj.id)
        if query.first() is not None:
            raise ConflictError(f"{_label(resource)} with this {'/'.join(fields)} already exists")


def _check_foreign_keys(resource: CrudResource, patch: dict) -> None:
    for key, target in resource.foreign_keys.items():
        value = patch.get(key)
        if value is not None and db.session.get(target, value) is None:
            raise NotFoundError(f"{key.replace('_id', '').capitalize()} not found")


def _commit(resource: CrudResource) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f"{_label(resource)} conflicts with an existing record")


def create(resource: CrudResource, payload: dict, **defaults):
    patch = validate_payload(model=resource.model, payload=payload, policy=resource.policy, partial=False)
    if resource.prepare:
        resource.prepare(patch, None)
    for key, value in defaults.items():
        patch.setdefault(key, value)
    _check_foreign_keys(resource, patch)
    _check_unique(resource, patch)

    obj = resource.model(**patch)
    db.session.add(obj)
    _commit(resource)
    return obj


def update(resource: CrudResource, obj_id: int, payload: dict):
    obj = get(resource, obj_id)
    patch = validate_payload(model=resource.model, payload=payload, policy=resource.policy, partial=True)
    if resource.prepare:
        resource.prepare(patch, obj)
    _check_foreign_keys(resource, patch)
    _check_unique(resource, patch, obj)

    for key, value in patch.items():
        setattr(obj, key, value)
    _commit(resource)
    return obj


def delete(resource: CrudResource, obj_id: int) -> None:
    """Hard delete; refused with ConflictError while other rows reference it."""
    obj = get(resource, obj_id)
    for ref_model, column, label in resource.references:
        if db.session.query(ref_model.id).filter(getattr(ref_model, column) == obj.id).first():
            raise ConflictError(f"{_label(resource)} is used by existing {label}")
    if resource.before_delete:
        resource.before_delete(obj)
    db.session.delete(obj)
    _commit(resource)
