from __future__ import annotations

from ..extensions import db


class UserPreference(db.Model):
    """Per-(user, org) key/value settings, e.g. the dashboard card layout."""
    __tablename__ = "user_preferences"
    __table_args__ = (
        db.UniqueConstraint("user_id", "org_id", "preference_key", name="uq_user_preferences_user_org_key"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(255), nullable=False)
    org_id = db.Column(db.String(255), nullable=False, index=True)
    preference_key = db.Column(db.String(128), nullable=False)
    preference_value = db.Column(db.JSON, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
