# Overview: Unauthenticated share-link access to a single invoice.

"""
Public invoice view.

SECURITY: No identity is resolved here. The share token is the only
credential and grants read access to exactly one invoice. Unknown tokens
return 404 without hinting whether an invoice exists.
"""
from flask import Blueprint, jsonify

from ..errors import HayLedgerError
from ..services import invoice_service

public_bp = Blueprint("public", __name__, url_prefix="/api/public")


@public_bp.get("/invoices/<string:share_token>")
def public_invoice(share_token: str):
    try:
        return jsonify(invoice_service.get_public_invoice(share_token))
    except HayLedgerError as e:
        return jsonify(e.to_dict()), e.status_code
