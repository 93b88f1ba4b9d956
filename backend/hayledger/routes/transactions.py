# Overview: Flask API routes for ledger transactions; parses input and returns JSON responses.

"""
Ledger transaction routes.

Entered amounts may be bales or tons and prices per bale or per ton; the
ledger stores bales and $/ton. Sales are rejected with 409 when the source
location does not hold enough stock.

SECURITY: Writes require inventory:write.
"""
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import String

from ..decorators import require_auth, require_permission
from ..errors import HayLedgerError
from ..models import Transaction
from ..permissions import Permission
from ..services import ledger_service
from ..services.concurrency import run_in_transaction
from ..validation import (
    FieldSpec,
    ModelValidationPolicy,
    enforce_rules_transaction,
    validate_payload,
)

TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={"type", "stack_id", "location_id", "amount", "unit", "price", "price_unit", "entity"},
    required_on_create={"type", "stack_id", "amount"},
    extra_fields=(FieldSpec("price_unit", String(20)),),
)

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _transaction_fields(patch: dict) -> dict:
    return {
        "type": patch["type"],
        "stack_id": patch["stack_id"],
        "location_id": patch.get("location_id"),
        "amount": patch["amount"],
        "unit": patch.get("unit"),
        "price": patch.get("price"),
        "price_unit": patch.get("price_unit"),
        "entity": patch.get("entity"),
    }


@transactions_bp.get("")
@require_auth
def list_transactions():
    """
    Query params:
    - stack_id, location_id: int (optional)
    - type: str (optional)
    - limit: int (optional, default 200, max 1000)
    """
    limit = min(request.args.get("limit", default=200, type=int) or 200, 1000)
    rows = ledger_service.list_transactions(
        g.org_id,
        stack_id=request.args.get("stack_id", type=int),
        location_id=request.args.get("location_id", type=int),
        type=request.args.get("type") or None,
        limit=limit,
    )
    return jsonify({"items": [tx.to_dict() for tx in rows]})


@transactions_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction(transaction_id: int):
    try:
        tx = ledger_service.get_transaction(g.org_id, transaction_id)
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify(tx.to_dict())


@transactions_bp.post("")
@require_auth
@require_permission(Permission.INVENTORY_WRITE)
def create_transaction():
    """
    Request body:
    {
        "type": "production" | "purchase" | "sale" | "move" | "adjustment",
        "stack_id": int,
        "location_id": int (required for sales),
        "amount": number, "unit": "bales" | "tons",
        "price": number (optional), "price_unit": "bale" | "ton",
        "entity": str (optional)
    }

    Returns:
        201: Transaction recorded
        400: Invalid request
        404: Stack or location not found
        409: Insufficient stock
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Transaction, payload=payload, policy=TRANSACTION_POLICY, partial=False)
        enforce_rules_transaction(patch)
        fields = _transaction_fields(patch)
        tx = run_in_transaction(lambda: ledger_service.record_transaction(actor=g.identity, **fields))
        return jsonify(tx.to_dict()), 201
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.put("/<int:transaction_id>")
@require_auth
@require_permission(Permission.INVENTORY_WRITE)
def update_transaction(transaction_id: int):
    """Full replacement; the same body as create."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Transaction, payload=payload, policy=TRANSACTION_POLICY, partial=False)
        enforce_rules_transaction(patch)
        fields = _transaction_fields(patch)
        tx = run_in_transaction(
            lambda: ledger_service.update_transaction(
                actor=g.identity, transaction_id=transaction_id, **fields
            )
        )
        return jsonify(tx.to_dict())
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update transaction %s", transaction_id)
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.delete("/<int:transaction_id>")
@require_auth
@require_permission(Permission.INVENTORY_WRITE)
def delete_transaction(transaction_id: int):
    try:
        run_in_transaction(
            lambda: ledger_service.delete_transaction(actor=g.identity, transaction_id=transaction_id)
        )
        return jsonify({"ok": True})
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete transaction %s", transaction_id)
        return jsonify({"error": "Internal server error"}), 500
