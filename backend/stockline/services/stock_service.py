# Overview: Service-layer operations for stock lots; FIFO allocation, receipts, movements and alerts.

"""
Stock Service

Quantity on hand is never stored on the product. It is the sum of the
remaining quantity of every StockLot for (product, location).

FIFO:
- Lots are consumed oldest first, ordered by (entry_date, id)
- Every decrement is a conditional single-statement UPDATE
  (quantity = quantity - n WHERE quantity >= n), so two writers can never
  take the same units
- allocate() never commits; the caller owns the transaction and must roll
  back if any later step fails
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import func, update

from ..extensions import db
from ..models import StockLot, Product, Warehouse, Outlet, SaleAllocation, OrderAllocation
from ..models.locations import LOCATION_TYPES, LOCATION_WAREHOUSE, LOCATION_OUTLET
from ..time_utils import days_from_now, to_utc_z, utcnow
from ..validation import ValidationError, NotFoundError, ConflictError, require_positive_int
from .concurrency import atomic


class StockDepletedError(ValidationError):
    """Not enough stock at a location to cover a request."""

    def __init__(self, product_id: int, location_type: str | None, location_id: int | None,
                 requested: int, available: int, product_name: str | None = None):
        self.product_id = product_id
        self.location_type = location_type
        self.location_id = location_id
        self.requested = requested
        self.available = available
        self.product_name = product_name
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}: requested {requested}, available {available}"
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "location_type": self.location_type,
            "location_id": self.location_id,
            "requested": self.requested,
            "available": self.available,
        }


@dataclass(frozen=True)
class Allocation:
    """Units taken from one lot."""
    lot_id: int
    quantity: int
    unit_cost_cents: int = 0


# =============================================================================
# Locations
# =============================================================================

_LOCATION_MODELS = {
    LOCATION_WAREHOUSE: Warehouse,
    LOCATION_OUTLET: Outlet,
}


def normalize_location_type(location_type: str | None) -> str:
    value = (location_type or "").strip().upper()
    if value not in LOCATION_TYPES:
        raise ValidationError(f"location_type must be one of: {', '.join(LOCATION_TYPES)}")
    return value


def get_location(location_type: str, location_id: int):
    """Return the Warehouse/Outlet row or raise NotFoundError."""
    location_type = normalize_location_type(location_type)
    model = _LOCATION_MODELS[location_type]
    location = db.session.get(model, location_id) if location_id else None
    if not location:
        raise NotFoundError(f"{location_type.title()} not found")
    return location


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id) if product_id else None
    if not product:
        raise NotFoundError("Product not found")
    return product


# =============================================================================
# FIFO
# =============================================================================

def _fifo_key(lot):
    return (lot.entry_date, lot.id)


def plan_allocation(lots: Iterable, requested_qty: int) -> list[tuple[int, int]]:
    """
    Pure FIFO selector.

    lots: objects with id, quantity and entry_date.
    Returns [(lot_id, qty_taken), ...] whose quantities sum to requested_qty.
    Lots with no remaining quantity are skipped.

    Raises:
        ValidationError: requested_qty <= 0
        StockDepletedError: lots cannot cover the request
    """
    if isinstance(requested_qty, bool) or not isinstance(requested_qty, int) or requested_qty <= 0:
        raise ValidationError("quantity must be a positive integer")

    candidates = sorted((lot for lot in lots if lot.quantity > 0), key=_fifo_key)

    plan: list[tuple[int, int]] = []
    remaining = requested_qty
    for lot in candidates:
        if remaining == 0:
            break
        take = min(lot.quantity, remaining)
        plan.append((lot.id, take))
        remaining -= take

    if remaining > 0:
        available = sum(lot.quantity for lot in candidates)
        product_id = getattr(candidates[0], "product_id", None) if candidates else None
        raise StockDepletedError(product_id, None, None, requested_qty, available)

    return plan


def fifo_lots_query(product_id: int, location_type: str, location_id: int):
    return (
        db.session.query(StockLot)
        .filter(
            StockLot.product_id == product_id,
            StockLot.location_type == location_type,
            StockLot.location_id == location_id,
            StockLot.quantity > 0,
        )
        .order_by(StockLot.entry_date.asc(), StockLot.id.asc())
    )


def _decrement_lot(lot_id: int, qty: int) -> bool:
    stmt = (
        update(StockLot)
        .where(StockLot.id == lot_id, StockLot.quantity >= qty)
        .values(quantity=StockLot.quantity - qty)
        .execution_options(synchronize_session=False)
    )
    return bool(db.session.execute(stmt).rowcount)


def _increment_lot(lot_id: int, qty: int) -> bool:
    stmt = (
        update(StockLot)
        .where(StockLot.id == lot_id)
        .values(quantity=StockLot.quantity + qty)
        .execution_options(synchronize_session=False)
    )
    return bool(db.session.execute(stmt).rowcount)


def allocate(product_id: int, location_type: str, location_id: int, requested_qty: int) -> list[Allocation]:
    """
    Take requested_qty units of a product from a location, oldest lots first.

    Nothing is mutated when the lots cannot cover the request. If a
    concurrent writer drains a lot between the read and the conditional
    update, StockDepletedError is raised and earlier decrements of this call
    are left in the session for the caller's rollback.
    """
    location_type = normalize_location_type(location_type)
    lots = fifo_lots_query(product_id, location_type, location_id).all()

    try:
        plan = plan_allocation(lots, requested_qty)
    except StockDepletedError as e:
        product = db.session.get(Product, product_id)
        raise StockDepletedError(
            product_id, location_type, location_id, e.requested, e.available,
            product_name=product.name if product else None,
        )

    by_id = {lot.id: lot for lot in lots}
    allocations: list[Allocation] = []
    for lot_id, take in plan:
        if not _decrement_lot(lot_id, take):
            db.session.expire_all()
            available = quantity_on_hand(product_id, location_type, location_id)
            product = db.session.get(Product, product_id)
            raise StockDepletedError(
                product_id, location_type, location_id, requested_qty, available,
                product_name=product.name if product else None,
            )
        lot = by_id[lot_id]
        db.session.expire(lot, ["quantity"])
        allocations.append(Allocation(lot_id=lot_id, quantity=take, unit_cost_cents=lot.unit_cost_cents))

    return allocations


def restore_allocations(allocations: Iterable[tuple[int, int]]) -> int:
    """
    Put units back into the exact lots they were drawn from.

    allocations: [(lot_id, qty), ...]. Never commits. Returns units restored.
    """
    restored = 0
    for lot_id, qty in allocations:
        if qty <= 0:
            continue
        if not _increment_lot(lot_id, qty):
            raise NotFoundError(f"Stock lot {lot_id} no longer exists")
        restored += qty
    return restored


def quantity_on_hand(product_id: int, location_type: str, location_id: int) -> int:
    total = (
        db.session.query(func.coalesce(func.sum(StockLot.quantity), 0))
        .filter(
            StockLot.product_id == product_id,
            StockLot.location_type == location_type,
            StockLot.location_id == location_id,
        )
        .scalar()
    )
    return int(total or 0)


# =============================================================================
# Receipts, movements, corrections
# =============================================================================

def create_lot(
    *,
    product_id: int,
    location_type: str,
    location_id: int,
    quantity: int,
    unit_cost_cents: int = 0,
    unit_price_cents: int | None = None,
    batch_number: str | None = None,
    expire_date=None,
    entry_date=None,
) -> StockLot:
    """Add a lot to the session without committing."""
    location_type = normalize_location_type(location_type)
    get_location(location_type, location_id)
    get_product(product_id)
    quantity = require_positive_int(quantity, "quantity")
    if unit_cost_cents is None or unit_cost_cents < 0:
        raise ValidationError("unit_cost_cents must be >= 0")
    if unit_price_cents is not None and unit_price_cents < 0:
        raise ValidationError("unit_price_cents must be >= 0")

    lot = StockLot(
        product_id=product_id,
        location_type=location_type,
        location_id=location_id,
        quantity=quantity,
        received_quantity=quantity,
        unit_cost_cents=unit_cost_cents,
        unit_price_cents=unit_price_cents,
        batch_number=batch_number,
        expire_date=expire_date,
        entry_date=entry_date or utcnow(),
    )
    db.session.add(lot)
    db.session.flush()
    return lot


def receive_stock(**kwargs) -> StockLot:
    """Receive stock into a warehouse or outlet as a new lot."""
    with atomic():
        lot = create_lot(**kwargs)
    return lot


def move_stock(
    *,
    product_id: int,
    from_type: str,
    from_id: int,
    to_type: str,
    to_id: int,
    quantity: int,
) -> list[StockLot]:
    """
    Transfer units between locations, oldest source lots first.

    Each destination lot copies batch, cost, price, expiry and entry date
    from its source lot, so FIFO age survives the move. All-or-nothing.
    """
    from_type = normalize_location_type(from_type)
    to_type = normalize_location_type(to_type)
    if from_type == to_type and from_id == to_id:
        raise ValidationError("Source and destination must differ")
    quantity = require_positive_int(quantity, "quantity")

    with atomic():
        get_product(product_id)
        get_location(from_type, from_id)
        get_location(to_type, to_id)

        allocations = allocate(product_id, from_type, from_id, quantity)
        created = []
        for allocation in allocations:
            source = db.session.get(StockLot, allocation.lot_id)
            lot = StockLot(
                product_id=product_id,
                location_type=to_type,
                location_id=to_id,
                quantity=allocation.quantity,
                received_quantity=allocation.quantity,
                unit_cost_cents=source.unit_cost_cents,
                unit_price_cents=source.unit_price_cents,
                batch_number=source.batch_number,
                expire_date=source.expire_date,
                entry_date=source.entry_date,
            )
            db.session.add(lot)
            created.append(lot)
        db.session.flush()

    return created


LOT_ADJUSTABLE_FIELDS = {"quantity", "unit_cost_cents", "unit_price_cents", "batch_number", "expire_date"}


def adjust_lot(lot_id: int, patch: dict) -> StockLot:
    """Manager correction of a lot. Quantity may be set to any value >= 0."""
    with atomic():
        lot = db.session.get(StockLot, lot_id)
        if not lot:
            raise NotFoundError("Stock lot not found")
        for key, value in patch.items():
            if key not in LOT_ADJUSTABLE_FIELDS:
                continue
            if key == "quantity" and (value is None or value < 0):
                raise ValidationError("quantity must be >= 0")
            setattr(lot, key, value)
    return lot


def delete_lot(lot_id: int) -> None:
    """Delete a lot that no sale or order has drawn from."""
    with atomic():
        lot = db.session.get(StockLot, lot_id)
        if not lot:
            raise NotFoundError("Stock lot not found")
        used = (
            db.session.query(SaleAllocation.id).filter_by(stock_lot_id=lot_id).first()
            or db.session.query(OrderAllocation.id).filter_by(stock_lot_id=lot_id).first()
        )
        if used:
            raise ConflictError("Stock lot has sales or orders drawn from it; adjust its quantity instead")
        db.session.delete(lot)


def get_lot(lot_id: int) -> StockLot:
    lot = db.session.get(StockLot, lot_id)
    if not lot:
        raise NotFoundError("Stock lot not found")
    return lot


def list_lots_query(
    *,
    product_id: int | None = None,
    location_type: str | None = None,
    location_id: int | None = None,
    in_stock_only: bool = False,
    search: str | None = None,
):
    query = db.session.query(StockLot).join(Product, Product.id == StockLot.product_id)
    if product_id:
        query = query.filter(StockLot.product_id == product_id)
    if location_type:
        query = query.filter(StockLot.location_type == normalize_location_type(location_type))
    if location_id:
        query = query.filter(StockLot.location_id == location_id)
    if in_stock_only:
        query = query.filter(StockLot.quantity > 0)
    if search:
        like = f"%{search}%"
        query = query.filter(
            db.or_(Product.name.ilike(like), Product.barcode.ilike(like), StockLot.batch_number.ilike(like))
        )
    return query


# =============================================================================
# Reporting
# =============================================================================

def location_inventory(location_type: str, location_id: int) -> list[dict]:
    """Per-product on-hand summary for one location."""
    location_type = normalize_location_type(location_type)
    get_location(location_type, location_id)

    rows = (
        db.session.query(
            Product,
            func.sum(StockLot.quantity).label("quantity"),
            func.count(StockLot.id).label("lot_count"),
            func.min(StockLot.expire_date).label("next_expiry"),
        )
        .join(StockLot, StockLot.product_id == Product.id)
        .filter(
            StockLot.location_type == location_type,
            StockLot.location_id == location_id,
            StockLot.quantity > 0,
        )
        .group_by(Product.id)
        .order_by(Product.name.asc())
        .all()
    )

    items = []
    for product, quantity, lot_count, next_expiry in rows:
        quantity = int(quantity or 0)
        items.append({
            "product_id": product.id,
            "product_name": product.name,
            "barcode": product.barcode,
            "price_cents": product.price_cents,
            "quantity": quantity,
            "lot_count": int(lot_count or 0),
            "next_expiry": to_utc_z(next_expiry),
            "reorder_level": product.reorder_level,
            "low_stock": quantity <= product.reorder_level,
        })
    return items


def inventory_alerts(
    *,
    location_type: str | None = None,
    location_id: int | None = None,
    expiring_within_days: int = 30,
) -> dict:
    """
    Products at or below their reorder level, and lots expiring soon.

    Without a location the low-stock check uses the product's total across
    all locations.
    """
    lot_filters = [StockLot.quantity > 0]
    if location_type:
        location_type = normalize_location_type(location_type)
        lot_filters.append(StockLot.location_type == location_type)
        if location_id:
            lot_filters.append(StockLot.location_id == location_id)

    on_hand = (
        db.session.query(StockLot.product_id, func.sum(StockLot.quantity).label("qty"))
        .filter(*lot_filters)
        .group_by(StockLot.product_id)
        .subquery()
    )
    low_rows = (
        db.session.query(Product, func.coalesce(on_hand.c.qty, 0))
        .outerjoin(on_hand, on_hand.c.product_id == Product.id)
        .filter(Product.is_active.is_(True))
        .filter(func.coalesce(on_hand.c.qty, 0) <= Product.reorder_level)
        .order_by(Product.name.asc())
        .all()
    )
    low_stock = [
        {
            "product_id": product.id,
            "product_name": product.name,
            "quantity": int(qty or 0),
            "reorder_level": product.reorder_level,
        }
        for product, qty in low_rows
    ]

    now = utcnow()
    horizon = days_from_now(expiring_within_days, now)
    expiring_lots = (
        db.session.query(StockLot)
        .filter(*lot_filters)
        .filter(StockLot.expire_date.isnot(None), StockLot.expire_date <= horizon)
        .order_by(StockLot.expire_date.asc(), StockLot.id.asc())
        .all()
    )
    expiring = []
    for lot in expiring_lots:
        data = lot.to_dict()
        data["expired"] = lot.expire_date < now
        expiring.append(data)

    return {"low_stock": low_stock, "expiring": expiring}
