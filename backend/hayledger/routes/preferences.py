# Overview: Flask API routes for the caller's own preferences.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import HayLedgerError
from ..services import preference_service
from ..services.concurrency import run_in_transaction

preferences_bp = Blueprint("preferences", __name__, url_prefix="/api/preferences")


@preferences_bp.get("/dashboard-layout")
@require_auth
def get_dashboard_layout():
    return jsonify(preference_service.get_dashboard_layout(g.identity))


@preferences_bp.put("/dashboard-layout")
@require_auth
def save_dashboard_layout():
    """Request body: {"order": [card ids], "hidden": [card ids]}"""
    payload = request.get_json(silent=True)

    try:
        layout = run_in_transaction(
            lambda: preference_service.save_dashboard_layout(g.identity, payload)
        )
        return jsonify(layout)
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to save dashboard layout")
        return jsonify({"error": "Internal server error"}), 500
