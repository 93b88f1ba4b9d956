# Overview: Org-wide ledger rollups for the reports page.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Stack, Transaction
from ..units import FALLBACK_WEIGHT_LBS, LBS_PER_TON


def ledger_totals(org_id: str) -> dict:
    """
    Production, sales and purchase totals across all stacks.

    Prices are stored per ton, so money totals convert each stack's bales to
    tons at that stack's effective weight. Orphaned rows (stack deleted) use
    the fallback weight.
    """
    rows = (
        db.session.query(
            Transaction.type,
            Transaction.stack_id,
            func.coalesce(func.sum(Transaction.amount), 0),
            func.coalesce(func.sum(Transaction.amount * Transaction.price), 0),
        )
        .filter(
            Transaction.org_id == org_id,
            Transaction.type.in_(("production", "sale", "purchase")),
        )
        .group_by(Transaction.type, Transaction.stack_id)
        .all()
    )

    stack_ids = {stack_id for _, stack_id, _, _ in rows if stack_id is not None}
    weights = {}
    if stack_ids:
        for stack in db.session.query(Stack).filter(Stack.org_id == org_id, Stack.id.in_(stack_ids)):
            weights[stack.id] = stack.lbs_per_bale

    totals = {
        "production_bales": 0.0,
        "sales_bales": 0.0,
        "sales_revenue": 0.0,
        "purchase_bales": 0.0,
        "purchase_cost": 0.0,
    }
    for tx_type, stack_id, bales, bale_dollars_per_ton in rows:
        tons_per_bale = weights.get(stack_id, FALLBACK_WEIGHT_LBS) / LBS_PER_TON
        bales = float(bales or 0)
        money = float(bale_dollars_per_ton or 0) * tons_per_bale
        if tx_type == "production":
            totals["production_bales"] += bales
        elif tx_type == "sale":
            totals["sales_bales"] += bales
            totals["sales_revenue"] += money
        else:
            totals["purchase_bales"] += bales
            totals["purchase_cost"] += money

    totals["sales_revenue"] = round(totals["sales_revenue"], 2)
    totals["purchase_cost"] = round(totals["purchase_cost"], 2)
    return totals
