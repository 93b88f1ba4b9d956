# Overview: Flask API routes for storage locations; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..errors import HayLedgerError
from ..models import Location
from ..permissions import Permission
from ..services import ledger_service, location_service
from ..services.concurrency import run_in_transaction
from ..validation import ModelValidationPolicy, enforce_rules_location, validate_payload

LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"name", "capacity", "capacity_unit"},
    required_on_create={"name", "capacity"},
)

locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


@locations_bp.get("")
@require_auth
def list_locations():
    locations = location_service.list_locations(g.org_id)
    return jsonify({"items": [loc.to_dict() for loc in locations]})


@locations_bp.get("/<int:location_id>")
@require_auth
def get_location(location_id: int):
    """Location with per-stack stock and capacity utilization."""
    try:
        return jsonify(ledger_service.location_inventory(g.org_id, location_id))
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@locations_bp.post("")
@require_auth
def create_location():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=False)
        enforce_rules_location(patch)
        location = run_in_transaction(lambda: location_service.create_location(actor=g.identity, **patch))
        return jsonify(location.to_dict()), 201
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create location")
        return jsonify({"error": "Internal server error"}), 500


@locations_bp.put("/<int:location_id>")
@require_auth
def update_location(location_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=True)
        enforce_rules_location(patch)
        location = run_in_transaction(
            lambda: location_service.update_location(actor=g.identity, location_id=location_id, patch=patch)
        )
        return jsonify(location.to_dict())
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update location %s", location_id)
        return jsonify({"error": "Internal server error"}), 500


@locations_bp.delete("/<int:location_id>")
@require_auth
@require_permission(Permission.LOCATIONS_DELETE)
def delete_location(location_id: int):
    """
    Returns:
        200: deleted
        404: not found
        409: location has transaction history
    """
    try:
        run_in_transaction(lambda: location_service.delete_location(actor=g.identity, location_id=location_id))
        return jsonify({"ok": True})
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete location %s", location_id)
        return jsonify({"error": "Internal server error"}), 500
