# Overview: Flask API routes for ledger reports.

from flask import Blueprint, g, jsonify

from ..decorators import require_auth
from ..services import ledger_service, report_service

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_auth
def summary():
    """Production, sales and purchase totals plus stock by stack."""
    totals = report_service.ledger_totals(g.org_id)
    return jsonify({
        "totals": totals,
        "stock": ledger_service.stack_stock_summary(g.org_id),
    })
