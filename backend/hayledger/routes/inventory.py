# Overview: Flask API routes for derived stock queries; read-only.

"""
Inventory (stock on hand) routes.

Stock is never stored; every response is recomputed from the ledger.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth
from ..errors import HayLedgerError
from ..services import ledger_service
from ..units import bales_to_tons, format_dual_units

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("/stacks")
@require_auth
def stock_by_stack():
    """Bales and tons on hand for every stack, across all locations."""
    items = ledger_service.stack_stock_summary(g.org_id)
    total_bales = sum(item["bales"] for item in items)
    total_tons = sum(item["tons"] for item in items)
    return jsonify({"items": items, "total_bales": total_bales, "total_tons": total_tons})


@inventory_bp.get("/stock")
@require_auth
def current_stock():
    """
    Query params:
    - stack_id: int (required)
    - location_id: int (optional; omitted means all locations)
    """
    stack_id = request.args.get("stack_id", type=int)
    location_id = request.args.get("location_id", type=int)
    if stack_id is None:
        return jsonify({"error": "stack_id is required"}), 400

    try:
        stack = ledger_service.require_stock_scope(g.org_id, stack_id, location_id)
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code

    bales = ledger_service.current_stock(g.org_id, stack_id, location_id)
    return jsonify({
        "stack_id": stack_id,
        "location_id": location_id,
        "bales": bales,
        "tons": bales_to_tons(bales, stack.lbs_per_bale),
        "display": format_dual_units(bales, stack.lbs_per_bale),
    })
