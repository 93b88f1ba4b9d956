from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..units import resolve_weight


class Stack(db.Model):
    """
    A lot of one commodity (e.g. "North field 2nd cut alfalfa").

    MULTI-TENANT: Stacks are scoped to an organization via org_id.

    WEIGHT DESIGN DECISION:
    weight_per_bale is an optional override in lbs. When null, the bale_size
    label picks a default from units.BALE_SIZE_WEIGHTS. Always read the
    effective value through `lbs_per_bale`, never the raw column.

    DELETION: Stacks can be deleted while history references them. Referencing
    transactions and tickets keep their rows with stack_id set to NULL.
    """
    __tablename__ = "stacks"
    __table_args__ = (
        db.Index("ix_stacks_org_name", "org_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.String(255), nullable=False, index=True)
    user_id = db.Column(db.String(255), nullable=True)

    name = db.Column(db.String(255), nullable=False)
    commodity = db.Column(db.String(120), nullable=False)
    bale_size = db.Column(db.String(32), nullable=True)
    quality = db.Column(db.String(120), nullable=True)

    # Entered in price_unit; informational default for sales forms
    base_price = db.Column(db.Float, nullable=False, default=0)
    weight_per_bale = db.Column(db.Integer, nullable=True)
    price_unit = db.Column(db.String(20), nullable=False, default="bale")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    @property
    def lbs_per_bale(self) -> float:
        return resolve_weight(self.weight_per_bale, self.bale_size)

    def __repr__(self) -> str:
        return f"<Stack id={self.id} name={self.name!r} org_id={self.org_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "commodity": self.commodity,
            "bale_size": self.bale_size,
            "quality": self.quality,
            "base_price": self.base_price,
            "weight_per_bale": self.weight_per_bale,
            "lbs_per_bale": self.lbs_per_bale,
            "price_unit": self.price_unit,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Location(db.Model):
    """
    Storage site (barn, yard, shed).

    capacity is expressed in capacity_unit ('bales' or 'tons').
    A location with any transaction history cannot be deleted.
    """
    __tablename__ = "locations"
    __table_args__ = (
        db.Index("ix_locations_org_name", "org_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.String(255), nullable=False, index=True)
    user_id = db.Column(db.String(255), nullable=True)

    name = db.Column(db.String(255), nullable=False)
    capacity = db.Column(db.Float, nullable=False, default=0)
    capacity_unit = db.Column(db.String(20), nullable=False, default="bales")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r} org_id={self.org_id!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "name": self.name,
            "capacity": self.capacity,
            "capacity_unit": self.capacity_unit,
            "created_at": to_utc_z(self.created_at),
        }


class Transaction(db.Model):
    """
    Ledger entry. Stock is derived from these rows; it is never stored.

    amount is always bales (positive); price is always $/ton.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_org_stack_location", "org_id", "stack_id", "location_id"),
        db.Index("ix_transactions_org_type", "org_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.String(255), nullable=False, index=True)
    user_id = db.Column(db.String(255), nullable=True)

    type = db.Column(db.String(32), nullable=False, index=True)
    stack_id = db.Column(db.Integer, db.ForeignKey("stacks.id", ondelete="SET NULL"), nullable=True, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True, index=True)

    amount = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(20), nullable=False, default="bales")
    price = db.Column(db.Float, nullable=False, default=0)
    entity = db.Column(db.String(255), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    stack = db.relationship("Stack", backref=db.backref("transactions", lazy=True))
    location = db.relationship("Location", backref=db.backref("transactions", lazy=True))

    def __repr__(self) -> str:
        return f"<Transaction id={self.id} type={self.type} amount={self.amount} stack_id={self.stack_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "type": self.type,
            "stack_id": self.stack_id,
            "location_id": self.location_id,
            "amount": self.amount,
            "unit": self.unit,
            "price": self.price,
            "entity": self.entity,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
