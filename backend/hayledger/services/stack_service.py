# Overview: Service-layer operations for stacks; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..identity import Identity
from ..models import Stack, Ticket, Transaction
from ..permissions import Permission
from ..units import normalize_bale_size
from .tenant_service import get_in_org, scoped_query


def list_stacks(org_id: str) -> list[Stack]:
    return scoped_query(Stack, org_id).order_by(Stack.name.asc(), Stack.id.asc()).all()


def get_stack(org_id: str, stack_id: int) -> Stack:
    return get_in_org(Stack, stack_id, org_id, resource="Stack")


def create_stack(
    *,
    actor: Identity,
    name: str,
    commodity: str,
    bale_size: str | None = None,
    quality: str | None = None,
    base_price: float | None = None,
    weight_per_bale: int | None = None,
    price_unit: str | None = None,
) -> Stack:
    stack = Stack(
        org_id=actor.org_id,
        user_id=actor.user_id,
        name=name,
        commodity=commodity,
        bale_size=normalize_bale_size(bale_size),
        quality=quality,
        base_price=base_price or 0,
        weight_per_bale=weight_per_bale,
        price_unit=price_unit or "bale",
    )
    db.session.add(stack)
    db.session.flush()
    return stack


def update_stack(*, actor: Identity, stack_id: int, patch: dict) -> Stack:
    """
    Apply an edit. Existing transactions keep the $/ton price they were
    recorded with even if the weight changes.
    """
    stack = get_in_org(Stack, stack_id, actor.org_id, lock=True, resource="Stack")

    for key in ("name", "commodity", "quality", "weight_per_bale"):
        if key in patch:
            setattr(stack, key, patch[key])
    if "bale_size" in patch:
        stack.bale_size = normalize_bale_size(patch["bale_size"])
    if "base_price" in patch:
        stack.base_price = patch["base_price"] or 0
    if "price_unit" in patch:
        stack.price_unit = patch["price_unit"] or "bale"

    db.session.flush()
    return stack


def delete_stack(*, actor: Identity, stack_id: int) -> None:
    """
    Delete a stack. History is kept: referencing transactions and tickets
    are orphaned (stack_id set to NULL), never cascaded.
    """
    actor.require(Permission.STACKS_DELETE, "You do not have permission to delete stacks")
    stack = get_in_org(Stack, stack_id, actor.org_id, lock=True, resource="Stack")

    scoped_query(Transaction, actor.org_id).filter(Transaction.stack_id == stack.id).update(
        {Transaction.stack_id: None}
    )
    scoped_query(Ticket, actor.org_id).filter(Ticket.stack_id == stack.id).update(
        {Ticket.stack_id: None}
    )
    db.session.delete(stack)
    db.session.flush()
