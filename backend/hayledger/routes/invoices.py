# Overview: Flask API routes for invoices; parses input and returns JSON responses.

"""
Invoice routes.

An invoice bills a batch of approved tickets. Compilation is all-or-nothing.
Status: draft -> sent -> paid, sent -> draft.

SECURITY: Writes require invoices:manage. Reads require authentication.
The unauthenticated share-link view lives in routes/public.py.
"""
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import String

from ..decorators import require_auth, require_permission
from ..errors import HayLedgerError
from ..models import Invoice, Ticket
from ..permissions import Permission
from ..services import invoice_service
from ..services.concurrency import run_in_transaction
from ..validation import (
    FieldSpec,
    ModelValidationPolicy,
    enforce_rules_invoice_pricing,
    enforce_rules_ticket,
    parse_id_list,
    validate_payload,
)

INVOICE_POLICY = ModelValidationPolicy(
    writable_fields={"customer", "notes", "price_per_unit", "price_unit"},
)

QUICK_SALE_POLICY = ModelValidationPolicy(
    writable_fields={
        "stack_id", "location_id", "amount", "net_lbs", "customer", "notes",
        "price_per_unit", "price_unit",
    },
    required_on_create={"stack_id", "amount"},
    extra_fields=(
        FieldSpec("price_per_unit", Invoice.__table__.c.price_per_unit.type),
        FieldSpec("price_unit", String(20)),
    ),
)

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


@invoices_bp.get("")
@require_auth
def list_invoices():
    invoices = invoice_service.list_invoices(g.org_id, status=request.args.get("status") or None)
    return jsonify({"items": [inv.to_dict() for inv in invoices]})


@invoices_bp.get("/<int:invoice_id>")
@require_auth
def get_invoice(invoice_id: int):
    """Invoice with per-ticket line items."""
    try:
        return jsonify(invoice_service.get_invoice_detail(g.org_id, invoice_id))
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@invoices_bp.post("")
@require_auth
@require_permission(Permission.INVOICES_MANAGE)
def compile_invoice():
    """
    Request body:
    {
        "ticket_ids": [int] | "1,2,3",
        "customer": str, "notes": str,
        "price_per_unit": number (optional), "price_unit": "ton" | "bale"
    }

    Returns:
        201: Invoice created, tickets invoiced
        400: Invalid request
        409: A ticket is missing or not approved (nothing written)
    """
    payload = dict(request.get_json(silent=True) or {})

    try:
        ticket_ids = parse_id_list(payload.pop("ticket_ids", None))
        patch = validate_payload(model=Invoice, payload=payload, policy=INVOICE_POLICY, partial=False)
        enforce_rules_invoice_pricing(patch)
        invoice = run_in_transaction(
            lambda: invoice_service.compile_invoice(
                actor=g.identity,
                ticket_ids=ticket_ids,
                customer=patch.get("customer"),
                notes=patch.get("notes"),
                price_per_unit=patch.get("price_per_unit"),
                price_unit=patch.get("price_unit"),
            )
        )
        return jsonify(invoice.to_dict()), 201
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to compile invoice")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/quick-sale")
@require_auth
@require_permission(Permission.TICKETS_MANAGE)
@require_permission(Permission.INVOICES_MANAGE)
def quick_sale():
    """Ticket, approval and single-ticket invoice in one request."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Ticket, payload=payload, policy=QUICK_SALE_POLICY, partial=False)
        enforce_rules_ticket(patch)
        enforce_rules_invoice_pricing(patch)
        invoice = run_in_transaction(
            lambda: invoice_service.quick_sale(
                actor=g.identity,
                stack_id=patch["stack_id"],
                location_id=patch.get("location_id"),
                amount=patch["amount"],
                net_lbs=patch.get("net_lbs"),
                customer=patch.get("customer"),
                notes=patch.get("notes"),
                price_per_unit=patch.get("price_per_unit"),
                price_unit=patch.get("price_unit"),
            )
        )
        return jsonify(invoice.to_dict()), 201
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record quick sale")
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.put("/<int:invoice_id>")
@require_auth
@require_permission(Permission.INVOICES_MANAGE)
def update_invoice(invoice_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Invoice, payload=payload, policy=INVOICE_POLICY, partial=True)
        enforce_rules_invoice_pricing(patch)
        invoice = run_in_transaction(
            lambda: invoice_service.update_invoice(actor=g.identity, invoice_id=invoice_id, patch=patch)
        )
        return jsonify(invoice.to_dict())
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update invoice %s", invoice_id)
        return jsonify({"error": "Internal server error"}), 500


@invoices_bp.post("/<int:invoice_id>/status")
@require_auth
@require_permission(Permission.INVOICES_MANAGE)
def update_invoice_status(invoice_id: int):
    """
    Request body: {"status": "draft" | "sent" | "paid"}

    Returns:
        200: Status changed
        400: Unknown status
        409: Transition not allowed
    """
    payload = request.get_json(silent=True) or {}
    status = payload.get("status")
    if not isinstance(status, str) or not status:
        return jsonify({"error": "status is required"}), 400

    try:
        invoice = run_in_transaction(
            lambda: invoice_service.update_invoice_status(
                actor=g.identity, invoice_id=invoice_id, status=status
            )
        )
        return jsonify(invoice.to_dict())
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update invoice %s status", invoice_id)
        return jsonify({"error": "Internal server error"}), 500
