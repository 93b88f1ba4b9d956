# Overview: Per-user preference storage; currently the dashboard card layout.

from __future__ import annotations

import copy

from ..errors import ValidationFailed
from ..extensions import db
from ..identity import Identity
from ..models import UserPreference

DASHBOARD_LAYOUT_KEY = "dashboard_layout"

DEFAULT_DASHBOARD_LAYOUT = {
    "order": [
        "total-stock",
        "stock-by-commodity",
        "sales-this-month",
        "bales-moved",
        "action-cards",
        "recent-activity",
    ],
    "hidden": [],
}


def _get_preference(actor: Identity, key: str) -> UserPreference | None:
    return (
        db.session.query(UserPreference)
        .filter_by(user_id=actor.user_id, org_id=actor.org_id, preference_key=key)
        .first()
    )


def get_dashboard_layout(actor: Identity) -> dict:
    pref = _get_preference(actor, DASHBOARD_LAYOUT_KEY)
    if pref is None:
        return copy.deepcopy(DEFAULT_DASHBOARD_LAYOUT)
    return pref.preference_value


def _validate_layout(layout) -> dict:
    if not isinstance(layout, dict):
        raise ValidationFailed("layout must be an object")

    cleaned = {}
    for key in ("order", "hidden"):
        value = layout.get(key, [])
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ValidationFailed(f"layout.{key} must be a list of card ids")
        cleaned[key] = value
    return cleaned


def save_dashboard_layout(actor: Identity, layout) -> dict:
    """Upsert on (user_id, org_id, preference_key)."""
    cleaned = _validate_layout(layout)

    pref = _get_preference(actor, DASHBOARD_LAYOUT_KEY)
    if pref is None:
        pref = UserPreference(
            user_id=actor.user_id,
            org_id=actor.org_id,
            preference_key=DASHBOARD_LAYOUT_KEY,
            preference_value=cleaned,
        )
        db.session.add(pref)
    else:
        pref.preference_value = cleaned

    db.session.flush()
    return pref.preference_value
