# Overview: Inventory ledger; derives stock from transactions and guards stock-decreasing writes.

from __future__ import annotations

from sqlalchemy import case, func

from ..errors import InsufficientStock, ValidationFailed
from ..extensions import db
from ..identity import Identity
from ..models import Location, Stack, Transaction
from ..permissions import Permission
from ..units import bales_to_tons, normalize_price, to_bales, UNIT_BALES, UNIT_TONS, PRICE_UNIT_TON
from .tenant_service import get_in_org, scoped_query
"""
HayLedger Inventory Invariants (authoritative)

Inventory model:
- Stock is ledger-derived from Transaction rows; it is never stored as a mutable quantity.
- Stock for (stack, location) = SUM(amount) over production/purchase
                              - SUM(amount) over sale.
- move and adjustment rows are NOT counted by this aggregate. Reports built on
  this module inherit the same exclusion; changing it alters accepted sales.

Business invariants:
- A sale may never take a (stack, location) below zero: requested == available is
  allowed, requested == available + 1 is not.
- Edits obey the same rule for both the scope the row leaves and the scope it
  lands in.
- The sufficiency check and the insert that depends on it run in the caller's DB
  transaction, after the stack row is locked, so concurrent sales serialize.
- amount is stored in bales and price in $/ton regardless of entry units.
"""

STOCK_IN_TYPES = ("production", "purchase")
STOCK_OUT_TYPES = ("sale",)


def _signed_amount():
    return case(
        (Transaction.type.in_(STOCK_IN_TYPES), Transaction.amount),
        (Transaction.type.in_(STOCK_OUT_TYPES), -Transaction.amount),
        else_=0,
    )


def current_stock(org_id: str, stack_id: int, location_id: int | None = None) -> float:
    """
    Bales on hand for a stack, optionally at one location.

    Always recomputed from the full transaction history for the scope.
    """
    q = db.session.query(func.coalesce(func.sum(_signed_amount()), 0)).filter(
        Transaction.org_id == org_id,
        Transaction.stack_id == stack_id,
    )
    if location_id is not None:
        q = q.filter(Transaction.location_id == location_id)
    return float(q.scalar() or 0)


def check_sufficiency(org_id: str, stack_id: int, location_id: int | None, requested_bales: float) -> float:
    """
    Raise InsufficientStock unless `requested_bales` fits in current stock.

    Returns the available quantity. Callers that write afterwards must hold
    the stack row lock (see record_transaction / approve_ticket).
    """
    available = current_stock(org_id, stack_id, location_id)
    if requested_bales > available:
        raise InsufficientStock(available=available, requested=requested_bales)
    return available


def _resolve_location(org_id: str, location_id: int | None) -> Location | None:
    if location_id is None:
        return None
    return get_in_org(Location, location_id, org_id, resource="Location")


def _normalize_entry(stack: Stack, amount: float, unit: str | None, price: float | None, price_unit: str | None):
    lbs = stack.lbs_per_bale
    amount_in_bales = to_bales(amount, unit or UNIT_BALES, lbs)
    if amount_in_bales <= 0:
        raise ValidationFailed("Amount must be a positive number of bales")

    price_per_ton = 0.0
    if price is not None:
        price_per_ton = normalize_price(price, price_unit or PRICE_UNIT_TON, lbs)
    return amount_in_bales, price_per_ton


def record_transaction(
    *,
    actor: Identity,
    type: str,
    stack_id: int,
    location_id: int | None,
    amount: float,
    unit: str | None = UNIT_BALES,
    price: float | None = None,
    price_unit: str | None = PRICE_UNIT_TON,
    entity: str | None = None,
) -> Transaction:
    """
    Append a ledger entry.

    - amount is converted to bales (tons entries round to whole bales)
    - price is converted to $/ton using the stack's effective weight
    - sales require a source location and pass the sufficiency check

    Raises NotFound, ValidationFailed, InsufficientStock.
    """
    actor.require(Permission.INVENTORY_WRITE, "You do not have permission to record inventory")

    # Lock the stack first so concurrent sales against it serialize
    stack = get_in_org(Stack, stack_id, actor.org_id, lock=True, resource="Stack")
    location = _resolve_location(actor.org_id, location_id)

    amount_in_bales, price_per_ton = _normalize_entry(stack, amount, unit, price, price_unit)

    if type in STOCK_OUT_TYPES:
        if location is None:
            raise ValidationFailed("Source location is required for sales")
        check_sufficiency(actor.org_id, stack.id, location.id, amount_in_bales)

    tx = Transaction(
        org_id=actor.org_id,
        user_id=actor.user_id,
        type=type,
        stack_id=stack.id,
        location_id=location.id if location else None,
        amount=amount_in_bales,
        unit=UNIT_BALES,
        price=price_per_ton,
        entity=entity,
    )
    db.session.add(tx)
    db.session.flush()
    return tx


def _stock_delta(type: str, bales: float) -> float:
    if type in STOCK_IN_TYPES:
        return bales
    if type in STOCK_OUT_TYPES:
        return -bales
    return 0.0


def _check_edit_sufficiency(
    org_id: str,
    tx: Transaction,
    type: str,
    stack_id: int,
    location_id: int | None,
    amount_in_bales: float,
) -> None:
    """
    Reject an edit that would take the old or new (stack, location) negative.

    The row's current contribution is backed out of its own scope before the
    edited entry is applied, so re-saving an unchanged sale always passes.
    """
    same_scope = (tx.stack_id, tx.location_id) == (stack_id, location_id)
    old_delta = _stock_delta(tx.type, tx.amount)

    if type in STOCK_OUT_TYPES:
        available = current_stock(org_id, stack_id, location_id)
        if same_scope:
            available -= old_delta
        if amount_in_bales > available:
            raise InsufficientStock(available=available, requested=amount_in_bales)

    # Shrinking, moving or retyping stock-in must not strand sales already recorded
    if old_delta > 0 and tx.stack_id is not None:
        removed = old_delta
        if same_scope:
            removed -= _stock_delta(type, amount_in_bales)
        if removed > 0:
            check_sufficiency(org_id, tx.stack_id, tx.location_id, removed)


def get_transaction(org_id: str, transaction_id: int) -> Transaction:
    return get_in_org(Transaction, transaction_id, org_id, resource="Transaction")


def update_transaction(
    *,
    actor: Identity,
    transaction_id: int,
    type: str,
    stack_id: int,
    location_id: int | None,
    amount: float,
    unit: str | None = UNIT_BALES,
    price: float | None = None,
    price_unit: str | None = PRICE_UNIT_TON,
    entity: str | None = None,
) -> Transaction:
    """
    Rewrite an existing entry with freshly normalized amount and price.

    The edit is checked like a new entry: sales need a source location, and
    neither the row's old scope nor its new scope may be left below zero.

    Raises NotFound, ValidationFailed, InsufficientStock.
    """
    actor.require(Permission.INVENTORY_WRITE, "You do not have permission to edit inventory")
    tx = get_in_org(Transaction, transaction_id, actor.org_id, lock=True, resource="Transaction")
    stack = get_in_org(Stack, stack_id, actor.org_id, lock=True, resource="Stack")
    if tx.stack_id is not None and tx.stack_id != stack.id:
        get_in_org(Stack, tx.stack_id, actor.org_id, lock=True, resource="Stack")
    location = _resolve_location(actor.org_id, location_id)

    amount_in_bales, price_per_ton = _normalize_entry(stack, amount, unit, price, price_unit)

    if type in STOCK_OUT_TYPES and location is None:
        raise ValidationFailed("Source location is required for sales")
    _check_edit_sufficiency(actor.org_id, tx, type, stack.id, location.id if location else None, amount_in_bales)

    tx.type = type
    tx.stack_id = stack.id
    tx.location_id = location.id if location else None
    tx.amount = amount_in_bales
    tx.unit = UNIT_BALES
    tx.price = price_per_ton
    tx.entity = entity
    db.session.flush()
    return tx


def delete_transaction(*, actor: Identity, transaction_id: int) -> None:
    actor.require(Permission.INVENTORY_WRITE, "You do not have permission to delete inventory")
    tx = get_in_org(Transaction, transaction_id, actor.org_id, lock=True, resource="Transaction")
    db.session.delete(tx)
    db.session.flush()


def list_transactions(
    org_id: str,
    *,
    stack_id: int | None = None,
    location_id: int | None = None,
    type: str | None = None,
    limit: int = 200,
) -> list[Transaction]:
    q = scoped_query(Transaction, org_id)
    if stack_id is not None:
        q = q.filter(Transaction.stack_id == stack_id)
    if location_id is not None:
        q = q.filter(Transaction.location_id == location_id)
    if type is not None:
        q = q.filter(Transaction.type == type)
    return q.order_by(Transaction.created_at.desc(), Transaction.id.desc()).limit(limit).all()


def stack_stock_summary(org_id: str) -> list[dict]:
    """Bales and tons on hand for every stack in the org (all locations)."""
    rows = (
        db.session.query(Stack, func.coalesce(func.sum(_signed_amount()), 0))
        .outerjoin(
            Transaction,
            (Transaction.stack_id == Stack.id) & (Transaction.org_id == Stack.org_id),
        )
        .filter(Stack.org_id == org_id)
        .group_by(Stack.id)
        .order_by(Stack.name.asc(), Stack.id.asc())
        .all()
    )
    summary = []
    for stack, bales in rows:
        bales = float(bales or 0)
        summary.append({
            "stack_id": stack.id,
            "name": stack.name,
            "commodity": stack.commodity,
            "quality": stack.quality,
            "lbs_per_bale": stack.lbs_per_bale,
            "bales": bales,
            "tons": bales_to_tons(bales, stack.lbs_per_bale),
        })
    return summary


def location_inventory(org_id: str, location_id: int) -> dict:
    """
    Per-stack stock held at one location plus capacity utilization.

    Utilization compares like units: bales against a bales capacity, tons
    (at each stack's weight) against a tons capacity.
    """
    location = get_in_org(Location, location_id, org_id, resource="Location")

    rows = (
        db.session.query(Stack, func.coalesce(func.sum(_signed_amount()), 0))
        .join(Transaction, Transaction.stack_id == Stack.id)
        .filter(
            Transaction.org_id == org_id,
            Transaction.location_id == location.id,
        )
        .group_by(Stack.id)
        .order_by(Stack.name.asc(), Stack.id.asc())
        .all()
    )

    stacks = []
    total_bales = 0.0
    total_tons = 0.0
    for stack, bales in rows:
        bales = float(bales or 0)
        if bales == 0:
            continue
        tons = bales_to_tons(bales, stack.lbs_per_bale)
        total_bales += bales
        total_tons += tons
        stacks.append({
            "stack_id": stack.id,
            "name": stack.name,
            "commodity": stack.commodity,
            "quality": stack.quality,
            "bales": bales,
            "tons": tons,
        })

    used = total_tons if location.capacity_unit == UNIT_TONS else total_bales
    utilization = (used / location.capacity) if location.capacity else None

    return {
        "location": location.to_dict(),
        "stacks": stacks,
        "total_bales": total_bales,
        "total_tons": total_tons,
        "utilization": utilization,
    }


def require_stock_scope(org_id: str, stack_id: int, location_id: int | None) -> Stack:
    """Validate the ids used by a stock query before aggregating over them."""
    stack = get_in_org(Stack, stack_id, org_id, resource="Stack")
    _resolve_location(org_id, location_id)
    return stack


__all__ = [
    "STOCK_IN_TYPES",
    "STOCK_OUT_TYPES",
    "current_stock",
    "check_sufficiency",
    "record_transaction",
    "get_transaction",
    "update_transaction",
    "delete_transaction",
    "list_transactions",
    "stack_stock_summary",
    "location_inventory",
    "require_stock_scope",
]
