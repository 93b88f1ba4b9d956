# Overview: Flask API routes for stacks; parses input and returns JSON responses.

"""
Stack management routes.

MULTI-TENANT: All stack operations are scoped to g.org_id (set by @require_auth).

SECURITY: All routes require authentication.
- Delete requires stacks:delete
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import HayLedgerError
from ..models import Stack
from ..permissions import Permission
from ..services import stack_service
from ..services.concurrency import run_in_transaction
from ..validation import ModelValidationPolicy, enforce_rules_stack, validate_payload

STACK_POLICY = ModelValidationPolicy(
    writable_fields={"name", "commodity", "bale_size", "quality", "base_price", "weight_per_bale", "price_unit"},
    required_on_create={"name", "commodity"},
)

stacks_bp = Blueprint("stacks", __name__, url_prefix="/api/stacks")


@stacks_bp.get("")
@require_auth
def list_stacks():
    stacks = stack_service.list_stacks(g.org_id)
    return jsonify({"items": [s.to_dict() for s in stacks]})


@stacks_bp.get("/<int:stack_id>")
@require_auth
def get_stack(stack_id: int):
    try:
        stack = stack_service.get_stack(g.org_id, stack_id)
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    return jsonify(stack.to_dict())


@stacks_bp.post("")
@require_auth
def create_stack():
    """
    Request body:
    {
        "name": str, "commodity": str,
        "bale_size": str (optional; legacy labels accepted),
        "quality": str, "base_price": number, "weight_per_bale": int,
        "price_unit": "bale" | "ton"
    }
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Stack, payload=payload, policy=STACK_POLICY, partial=False)
        enforce_rules_stack(patch)
        stack = run_in_transaction(lambda: stack_service.create_stack(actor=g.identity, **patch))
        return jsonify(stack.to_dict()), 201
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create stack")
        return jsonify({"error": "Internal server error"}), 500


@stacks_bp.put("/<int:stack_id>")
@require_auth
def update_stack(stack_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Stack, payload=payload, policy=STACK_POLICY, partial=True)
        enforce_rules_stack(patch)
        stack = run_in_transaction(
            lambda: stack_service.update_stack(actor=g.identity, stack_id=stack_id, patch=patch)
        )
        return jsonify(stack.to_dict())
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update stack %s", stack_id)
        return jsonify({"error": "Internal server error"}), 500


@stacks_bp.delete("/<int:stack_id>")
@require_auth
@require_permission(Permission.STACKS_DELETE)
def delete_stack(stack_id: int):
    """Transactions and tickets referencing the stack are kept, with stack_id cleared."""
    try:
        run_in_transaction(lambda: stack_service.delete_stack(actor=g.identity, stack_id=stack_id))
        return jsonify({"ok": True})
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete stack %s", stack_id)
        return jsonify({"error": "Internal server error"}), 500
