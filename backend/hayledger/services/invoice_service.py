# Overview: Service-layer operations for invoices; numbering, pricing, lifecycle and share links.

from __future__ import annotations

import secrets

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..errors import InvalidStateTransition, NotFound, ValidationFailed
from ..extensions import db
from ..identity import Identity
from ..models import Invoice, InvoiceSequence, Ticket
from ..permissions import Permission
from ..time_utils import to_utc_z
from ..units import LBS_PER_TON, PRICE_UNIT_BALE, PRICE_UNIT_TON, PRICE_UNITS
from .tenant_service import get_in_org, get_many_in_org, scoped_query
from .ticket_service import (
    TICKET_STATUS_APPROVED,
    TICKET_STATUS_INVOICED,
    TICKET_TYPE_SALE,
    approve_ticket,
    create_ticket,
)
"""
HayLedger Invoice Invariants (authoritative)

Compilation:
- Every selected ticket must be APPROVED and belong to the caller's org, or the
  whole batch fails and nothing is written.
- Selected tickets move to INVOICED and point at the new invoice in the same
  DB transaction that inserts the invoice.

Pricing:
- price_unit 'ton':  total = price_per_unit * SUM(net_lbs) / 2000
- price_unit 'bale': total = price_per_unit * SUM(amount)
- no price: total = 0
- total_amount is frozen at compile time; only an explicit pricing edit
  recomputes it.

Lifecycle:
- draft -> sent -> paid, and sent -> draft (un-send). paid is terminal.

Numbering:
- INV-0001 style, strictly increasing per org, from an atomic counter row.
"""

INVOICE_STATUS_DRAFT = "draft"
INVOICE_STATUS_SENT = "sent"
INVOICE_STATUS_PAID = "paid"
INVOICE_STATUSES = (INVOICE_STATUS_DRAFT, INVOICE_STATUS_SENT, INVOICE_STATUS_PAID)

ALLOWED_TRANSITIONS = {
    INVOICE_STATUS_DRAFT: {INVOICE_STATUS_SENT},
    INVOICE_STATUS_SENT: {INVOICE_STATUS_PAID, INVOICE_STATUS_DRAFT},
    INVOICE_STATUS_PAID: set(),
}

INVOICE_PREFIX = "INV-"
INVOICE_NUMBER_PAD = 4


def generate_share_token() -> str:
    """256 random bits, hex encoded (64 chars)."""
    return secrets.token_hex(32)


def _sequence_value(org_id: str) -> int:
    return (
        db.session.query(InvoiceSequence.next_number)
        .filter(InvoiceSequence.org_id == org_id)
        .scalar()
    )


def _highest_existing_number(org_id: str) -> int:
    """Largest numeric suffix among the org's INV- numbers, 0 when there are none."""
    numbers = (
        db.session.query(Invoice.invoice_number)
        .filter(
            Invoice.org_id == org_id,
            Invoice.invoice_number.like(f"{INVOICE_PREFIX}%"),
        )
        .all()
    )
    highest = 0
    for (number,) in numbers:
        suffix = number[len(INVOICE_PREFIX):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest


def next_invoice_number(org_id: str) -> str:
    """
    Atomically allocate the next invoice number for an org.

    The counter row is bumped with a single UPDATE, so two concurrent
    compilations never read the same value. The first allocation inserts the
    row inside a savepoint, continuing after any invoices the org already
    has; losing that insert race falls back to the UPDATE.
    """
    stmt = (
        update(InvoiceSequence)
        .where(InvoiceSequence.org_id == org_id)
        .values(next_number=InvoiceSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        next_num = _sequence_value(org_id) - 1
    else:
        next_num = _highest_existing_number(org_id) + 1
        try:
            with db.session.begin_nested():
                db.session.add(InvoiceSequence(org_id=org_id, next_number=next_num + 1))
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _sequence_value(org_id) - 1

    return f"{INVOICE_PREFIX}{next_num:0{INVOICE_NUMBER_PAD}d}"


def _check_pricing(price_per_unit: float | None, price_unit: str | None) -> str:
    unit = price_unit or PRICE_UNIT_TON
    if unit not in PRICE_UNITS:
        raise ValidationFailed(f"price_unit must be one of: {', '.join(PRICE_UNITS)}")
    if price_per_unit is not None and price_per_unit < 0:
        raise ValidationFailed("price_per_unit must be >= 0")
    return unit


def line_amount(ticket: Ticket, price_per_unit: float | None, price_unit: str) -> float:
    """Billable amount for one ticket. A ticket without a scale weight bills 0 per ton."""
    if not price_per_unit:
        return 0.0
    if price_unit == PRICE_UNIT_BALE:
        return price_per_unit * (ticket.amount or 0)
    return price_per_unit * (ticket.net_lbs or 0) / LBS_PER_TON


def compute_total(tickets: list[Ticket], price_per_unit: float | None, price_unit: str) -> float:
    if not price_per_unit:
        return 0.0
    if price_unit == PRICE_UNIT_BALE:
        total_bales = sum(t.amount or 0 for t in tickets)
        return price_per_unit * total_bales
    total_lbs = sum(t.net_lbs or 0 for t in tickets)
    return price_per_unit * total_lbs / LBS_PER_TON


def compile_invoice(
    *,
    actor: Identity,
    ticket_ids: list[int],
    customer: str | None = None,
    notes: str | None = None,
    price_per_unit: float | None = None,
    price_unit: str | None = PRICE_UNIT_TON,
) -> Invoice:
    """
    Bill a batch of approved tickets.

    All-or-nothing: a single missing, foreign or non-approved ticket aborts the
    batch before any row is written.

    Raises:
        Forbidden, ValidationFailed, InvalidStateTransition
    """
    actor.require(Permission.INVOICES_MANAGE, "You do not have permission to manage invoices")

    if not ticket_ids:
        raise ValidationFailed("No tickets selected")
    unit = _check_pricing(price_per_unit, price_unit)

    tickets = get_many_in_org(Ticket, ticket_ids, actor.org_id, lock=True)
    if len(tickets) != len(set(ticket_ids)) or any(t.status != TICKET_STATUS_APPROVED for t in tickets):
        raise InvalidStateTransition("Some tickets are not available for invoicing")

    invoice = Invoice(
        org_id=actor.org_id,
        invoice_number=next_invoice_number(actor.org_id),
        customer=customer,
        status=INVOICE_STATUS_DRAFT,
        total_amount=compute_total(tickets, price_per_unit, unit),
        price_per_unit=price_per_unit,
        price_unit=unit,
        notes=notes,
        share_token=generate_share_token(),
        created_by=actor.user_id,
    )
    db.session.add(invoice)
    db.session.flush()

    for ticket in tickets:
        ticket.status = TICKET_STATUS_INVOICED
        ticket.invoice_id = invoice.id

    db.session.flush()
    return invoice


def update_invoice_status(*, actor: Identity, invoice_id: int, status: str) -> Invoice:
    actor.require(Permission.INVOICES_MANAGE, "You do not have permission to manage invoices")

    if status not in INVOICE_STATUSES:
        raise ValidationFailed(f"Invalid status: {status}")

    invoice = get_in_org(Invoice, invoice_id, actor.org_id, lock=True, resource="Invoice")
    if status not in ALLOWED_TRANSITIONS[invoice.status]:
        raise InvalidStateTransition(f"Cannot change invoice from {invoice.status} to {status}")

    invoice.status = status
    db.session.flush()
    return invoice


def update_invoice(
    *,
    actor: Identity,
    invoice_id: int,
    patch: dict,
) -> Invoice:
    """
    Edit customer, notes or pricing. A pricing change recomputes the total
    from the invoice's current tickets. Paid invoices are frozen.
    """
    actor.require(Permission.INVOICES_MANAGE, "You do not have permission to manage invoices")
    invoice = get_in_org(Invoice, invoice_id, actor.org_id, lock=True, resource="Invoice")

    if invoice.status == INVOICE_STATUS_PAID:
        raise InvalidStateTransition("Cannot edit a paid invoice")

    if "customer" in patch:
        invoice.customer = patch["customer"]
    if "notes" in patch:
        invoice.notes = patch["notes"]

    if "price_per_unit" in patch or "price_unit" in patch:
        price_per_unit = patch.get("price_per_unit", invoice.price_per_unit)
        unit = _check_pricing(price_per_unit, patch.get("price_unit", invoice.price_unit))
        invoice.price_per_unit = price_per_unit
        invoice.price_unit = unit
        invoice.total_amount = compute_total(_invoice_tickets(invoice), price_per_unit, unit)

    db.session.flush()
    return invoice


def _invoice_tickets(invoice: Invoice) -> list[Ticket]:
    return (
        scoped_query(Ticket, invoice.org_id)
        .filter(Ticket.invoice_id == invoice.id)
        .order_by(Ticket.created_at.asc(), Ticket.id.asc())
        .all()
    )


def _line_items(invoice: Invoice) -> list[dict]:
    lines = []
    for ticket in _invoice_tickets(invoice):
        stack = ticket.stack
        lines.append({
            "ticket_id": ticket.id,
            "type": ticket.type,
            "stack_name": stack.name if stack else None,
            "commodity": stack.commodity if stack else None,
            "location_name": ticket.location.name if ticket.location else None,
            "bales": ticket.amount,
            "net_lbs": ticket.net_lbs,
            "tons": (ticket.net_lbs or 0) / LBS_PER_TON,
            "amount": line_amount(ticket, invoice.price_per_unit, invoice.price_unit),
            "created_at": to_utc_z(ticket.created_at),
        })
    return lines


def get_invoice(org_id: str, invoice_id: int) -> Invoice:
    return get_in_org(Invoice, invoice_id, org_id, resource="Invoice")


def get_invoice_detail(org_id: str, invoice_id: int) -> dict:
    invoice = get_invoice(org_id, invoice_id)
    lines = _line_items(invoice)
    return {
        "invoice": invoice.to_dict(),
        "lines": lines,
        "total_bales": sum(line["bales"] or 0 for line in lines),
        "total_net_lbs": sum(line["net_lbs"] or 0 for line in lines),
    }


def list_invoices(org_id: str, *, status: str | None = None) -> list[Invoice]:
    q = scoped_query(Invoice, org_id)
    if status is not None:
        q = q.filter(Invoice.status == status)
    return q.order_by(Invoice.created_at.desc(), Invoice.id.desc()).all()


def get_public_invoice(share_token: str) -> dict:
    """
    Principal-less lookup by share token.

    The token is the only credential: no identity, no org filter. Unknown or
    empty tokens are NotFound. The token itself is not echoed back.
    """
    if not share_token:
        raise NotFound("Invoice")

    invoice = db.session.query(Invoice).filter(Invoice.share_token == share_token).first()
    if invoice is None:
        raise NotFound("Invoice")

    lines = _line_items(invoice)
    return {
        "invoice": invoice.to_dict(include_token=False),
        "lines": lines,
        "total_bales": sum(line["bales"] or 0 for line in lines),
        "total_net_lbs": sum(line["net_lbs"] or 0 for line in lines),
    }


def quick_sale(
    *,
    actor: Identity,
    stack_id: int,
    location_id: int | None,
    amount: float,
    net_lbs: float | None = None,
    customer: str | None = None,
    notes: str | None = None,
    price_per_unit: float | None = None,
    price_unit: str | None = PRICE_UNIT_TON,
) -> Invoice:
    """
    Ticket -> approval -> single-ticket invoice in one unit of work.

    The caller commits once; any failure along the way leaves nothing behind.
    """
    actor.require(Permission.TICKETS_MANAGE, "You do not have permission to manage tickets")
    actor.require(Permission.INVOICES_MANAGE, "You do not have permission to manage invoices")

    ticket = create_ticket(
        actor=actor,
        type=TICKET_TYPE_SALE,
        stack_id=stack_id,
        location_id=location_id,
        amount=amount,
        net_lbs=net_lbs,
        customer=customer,
        notes=notes,
    )
    approve_ticket(actor=actor, ticket_id=ticket.id)
    return compile_invoice(
        actor=actor,
        ticket_ids=[ticket.id],
        customer=customer,
        notes=notes,
        price_per_unit=price_per_unit,
        price_unit=price_unit,
    )


def backfill_share_tokens() -> int:
    """Give every invoice without a share token a fresh one. Returns the count."""
    missing = db.session.query(Invoice).filter(Invoice.share_token.is_(None)).all()
    for invoice in missing:
        invoice.share_token = generate_share_token()
    db.session.flush()
    return len(missing)
