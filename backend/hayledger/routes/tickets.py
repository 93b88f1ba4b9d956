# Overview: Flask API routes for dispatch tickets; parses input and returns JSON responses.

"""
Ticket workflow routes.

LIFECYCLE: pending -> approved | rejected; approved -> invoiced (via invoices).

SECURITY:
- Submit requires tickets:create
- Approve / reject require tickets:manage
- Delete: the submitting driver or tickets:manage (checked in the service)
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import HayLedgerError
from ..models import Ticket
from ..permissions import Permission
from ..services import ticket_service
from ..services.concurrency import run_in_transaction
from ..validation import ModelValidationPolicy, enforce_rules_ticket, validate_payload

TICKET_POLICY = ModelValidationPolicy(
    writable_fields={"type", "stack_id", "location_id", "destination_id", "amount", "net_lbs", "customer", "notes"},
    required_on_create={"stack_id", "amount"},
)

tickets_bp = Blueprint("tickets", __name__, url_prefix="/api/tickets")


@tickets_bp.get("")
@require_auth
def list_tickets():
    """
    Query params:
    - status: pending | approved | rejected | invoiced (optional)
    - mine: "1" to restrict to the caller's own tickets
    """
    driver_id = g.user_id if request.args.get("mine") in ("1", "true") else None
    tickets = ticket_service.list_tickets(
        g.org_id,
        status=request.args.get("status") or None,
        driver_id=driver_id,
    )
    return jsonify({"items": [t.to_dict() for t in tickets]})


@tickets_bp.get("/<int:ticket_id>")
@require_auth
def get_ticket(ticket_id: int):
    try:
        ticket = ticket_service.get_ticket(g.org_id, ticket_id)
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify(ticket.to_dict())


@tickets_bp.post("")
@require_auth
@require_permission(Permission.TICKETS_CREATE)
def create_ticket():
    """
    Request body:
    {
        "type": "sale" | "barn_to_barn" (default "sale"),
        "stack_id": int, "location_id": int, "destination_id": int,
        "amount": number (bales), "net_lbs": number,
        "customer": str, "notes": str
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Ticket, payload=payload, policy=TICKET_POLICY, partial=False)
        patch["type"] = patch.get("type") or ticket_service.TICKET_TYPE_SALE
        enforce_rules_ticket(patch)
        ticket = run_in_transaction(
            lambda: ticket_service.create_ticket(
                actor=g.identity,
                type=patch["type"],
                stack_id=patch["stack_id"],
                location_id=patch.get("location_id"),
                amount=patch["amount"],
                destination_id=patch.get("destination_id"),
                net_lbs=patch.get("net_lbs"),
                customer=patch.get("customer"),
                notes=patch.get("notes"),
            )
        )
        return jsonify(ticket.to_dict()), 201
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create ticket")
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.post("/<int:ticket_id>/approve")
@require_auth
@require_permission(Permission.TICKETS_MANAGE)
def approve_ticket(ticket_id: int):
    """
    Returns:
        200: Ticket approved, sale transaction recorded
        404: Ticket not found
        409: Not pending, or insufficient stock
    """
    try:
        ticket = run_in_transaction(
            lambda: ticket_service.approve_ticket(actor=g.identity, ticket_id=ticket_id)
        )
        return jsonify(ticket.to_dict())
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to approve ticket %s", ticket_id)
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.post("/<int:ticket_id>/reject")
@require_auth
@require_permission(Permission.TICKETS_MANAGE)
def reject_ticket(ticket_id: int):
    try:
        ticket = run_in_transaction(
            lambda: ticket_service.reject_ticket(actor=g.identity, ticket_id=ticket_id)
        )
        return jsonify(ticket.to_dict())
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to reject ticket %s", ticket_id)
        return jsonify({"error": "Internal server error"}), 500


@tickets_bp.delete("/<int:ticket_id>")
@require_auth
def delete_ticket(ticket_id: int):
    try:
        run_in_transaction(lambda: ticket_service.delete_ticket(actor=g.identity, ticket_id=ticket_id))
        return jsonify({"ok": True})
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete ticket %s", ticket_id)
        return jsonify({"error": "Internal server error"}), 500
