# Overview: Service-layer operations for dispatch tickets; encapsulates the approval workflow.

from __future__ import annotations

from ..errors import Forbidden, InvalidStateTransition, ValidationFailed
from ..extensions import db
from ..identity import Identity
from ..models import Location, Stack, Ticket, Transaction
from ..permissions import Permission
from ..units import UNIT_BALES
from .ledger_service import check_sufficiency
from .tenant_service import get_in_org, scoped_query


TICKET_STATUS_PENDING = "pending"
TICKET_STATUS_APPROVED = "approved"
TICKET_STATUS_REJECTED = "rejected"
TICKET_STATUS_INVOICED = "invoiced"

TICKET_TYPE_SALE = "sale"
TICKET_TYPE_BARN_TO_BARN = "barn_to_barn"


def create_ticket(
    *,
    actor: Identity,
    type: str,
    stack_id: int,
    location_id: int | None,
    amount: float,
    destination_id: int | None = None,
    net_lbs: float | None = None,
    customer: str | None = None,
    notes: str | None = None,
) -> Ticket:
    """
    Submit a dispatch ticket in pending state.

    Sale tickets with a source location are checked against current stock so
    drivers get an early answer; approval checks again under lock.
    """
    actor.require(Permission.TICKETS_CREATE, "You do not have permission to create tickets")

    if amount is None or amount <= 0:
        raise ValidationFailed("Amount must be a positive number")

    stack = get_in_org(Stack, stack_id, actor.org_id, resource="Stack")
    location = None
    if location_id is not None:
        location = get_in_org(Location, location_id, actor.org_id, resource="Location")

    destination = None
    if type == TICKET_TYPE_BARN_TO_BARN:
        if destination_id is None:
            raise ValidationFailed("Destination is required for barn-to-barn tickets")
        destination = get_in_org(Location, destination_id, actor.org_id, resource="Destination")
        if location is not None and destination.id == location.id:
            raise ValidationFailed("Destination must differ from the source location")

    if type == TICKET_TYPE_SALE and location is not None:
        check_sufficiency(actor.org_id, stack.id, location.id, amount)

    ticket = Ticket(
        org_id=actor.org_id,
        type=type,
        stack_id=stack.id,
        location_id=location.id if location else None,
        destination_id=destination.id if destination else None,
        amount=amount,
        net_lbs=net_lbs,
        customer=customer,
        notes=notes,
        status=TICKET_STATUS_PENDING,
        driver_id=actor.user_id,
    )
    db.session.add(ticket)
    db.session.flush()
    return ticket


def get_ticket(org_id: str, ticket_id: int) -> Ticket:
    return get_in_org(Ticket, ticket_id, org_id, resource="Ticket")


def list_tickets(org_id: str, *, status: str | None = None, driver_id: str | None = None) -> list[Ticket]:
    q = scoped_query(Ticket, org_id)
    if status is not None:
        q = q.filter(Ticket.status == status)
    if driver_id is not None:
        q = q.filter(Ticket.driver_id == driver_id)
    return q.order_by(Ticket.created_at.desc(), Ticket.id.desc()).all()


def _lock_pending(actor: Identity, ticket_id: int, verb: str) -> Ticket:
    ticket = get_in_org(Ticket, ticket_id, actor.org_id, lock=True, resource="Ticket")
    if ticket.status != TICKET_STATUS_PENDING:
        raise InvalidStateTransition(f"Cannot {verb} ticket in {ticket.status} status")
    return ticket


def approve_ticket(*, actor: Identity, ticket_id: int) -> Ticket:
    """
    Approve a pending ticket (manager action).

    Creates exactly one sale Transaction for the ticket amount (price 0 until
    invoiced) and links it. Sale tickets must pass the sufficiency check for
    their stack and source location; barn-to-barn tickets are not checked.

    Must run inside one DB transaction together with its caller's commit.

    Raises:
        Forbidden, NotFound, InvalidStateTransition, InsufficientStock, ValidationFailed
    """
    actor.require(Permission.TICKETS_MANAGE, "You do not have permission to manage tickets")
    ticket = _lock_pending(actor, ticket_id, "approve")

    if ticket.type == TICKET_TYPE_SALE:
        if ticket.stack_id is None:
            raise ValidationFailed("Ticket stack no longer exists")
        # Stack lock serializes concurrent approvals drawing on the same stock
        stack = get_in_org(Stack, ticket.stack_id, actor.org_id, lock=True, resource="Stack")
        check_sufficiency(actor.org_id, stack.id, ticket.location_id, ticket.amount)

    tx = Transaction(
        org_id=actor.org_id,
        user_id=actor.user_id,
        type="sale",
        stack_id=ticket.stack_id,
        location_id=ticket.location_id,
        amount=ticket.amount,
        unit=UNIT_BALES,
        price=0,
        entity=ticket.customer or f"Ticket #{ticket.id}",
    )
    db.session.add(tx)
    db.session.flush()

    ticket.transaction_id = tx.id
    ticket.status = TICKET_STATUS_APPROVED
    db.session.flush()
    return ticket


def reject_ticket(*, actor: Identity, ticket_id: int) -> Ticket:
    actor.require(Permission.TICKETS_MANAGE, "You do not have permission to manage tickets")
    ticket = _lock_pending(actor, ticket_id, "reject")
    ticket.status = TICKET_STATUS_REJECTED
    db.session.flush()
    return ticket


def delete_ticket(*, actor: Identity, ticket_id: int) -> None:
    """Pending tickets only; the driver who submitted it or a ticket manager."""
    ticket = _lock_pending(actor, ticket_id, "delete")
    if ticket.driver_id != actor.user_id and not actor.has(Permission.TICKETS_MANAGE):
        raise Forbidden("You can only delete your own tickets")
    db.session.delete(ticket)
    db.session.flush()
