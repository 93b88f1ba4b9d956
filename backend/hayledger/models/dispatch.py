from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Ticket(db.Model):
    """
    Driver-submitted dispatch request awaiting approval.

    LIFECYCLE:
    pending -> approved (creates exactly one sale Transaction, sets transaction_id)
    pending -> rejected (terminal)
    approved -> invoiced (batch, via invoice compilation)

    Only pending tickets can be deleted, by their driver or a ticket manager.
    amount is bales; net_lbs is the optional scale weight used for per-ton billing.
    """
    __tablename__ = "tickets"
    __table_args__ = (
        db.Index("ix_tickets_org_status", "org_id", "status"),
        db.Index("ix_tickets_org_driver", "org_id", "driver_id"),
        db.Index("ix_tickets_org_type", "org_id", "type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.String(255), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False, default="sale")
    stack_id = db.Column(db.Integer, db.ForeignKey("stacks.id", ondelete="SET NULL"), nullable=True)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)
    destination_id = db.Column(db.Integer, db.ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)

    amount = db.Column(db.Float, nullable=False)
    net_lbs = db.Column(db.Float, nullable=True)
    customer = db.Column(db.String(255), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(32), nullable=False, default="pending")
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id", ondelete="SET NULL"), nullable=True)
    driver_id = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    stack = db.relationship("Stack")
    location = db.relationship("Location", foreign_keys=[location_id])
    destination = db.relationship("Location", foreign_keys=[destination_id])
    invoice = db.relationship("Invoice", backref=db.backref("tickets", lazy=True))

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} type={self.type} status={self.status} amount={self.amount}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "org_id": self.org_id,
            "type": self.type,
            "stack_id": self.stack_id,
            "stack_name": self.stack.name if self.stack else None,
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "destination_id": self.destination_id,
            "destination_name": self.destination.name if self.destination else None,
            "amount": self.amount,
            "net_lbs": self.net_lbs,
            "customer": self.customer,
            "notes": self.notes,
            "status": self.status,
            "invoice_id": self.invoice_id,
            "transaction_id": self.transaction_id,
            "driver_id": self.driver_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Invoice(db.Model):
    """
    Billing document aggregating approved tickets.

    total_amount is computed when the invoice is compiled (or its pricing is
    edited); later changes to the tickets do not recompute it.

    share_token grants unauthenticated read access to this one invoice.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("org_id", "invoice_number", name="uq_invoices_org_number"),
        db.Index("ix_invoices_org_status", "org_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.String(255), nullable=False, index=True)

    invoice_number = db.Column(db.String(100), nullable=False)
    customer = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(32), nullable=False, default="draft")

    total_amount = db.Column(db.Float, nullable=False, default=0)
    price_per_unit = db.Column(db.Float, nullable=True)
    price_unit = db.Column(db.String(20), nullable=False, default="ton")
    notes = db.Column(db.Text, nullable=True)

    share_token = db.Column(db.String(64), nullable=True, unique=True, index=True)
    created_by = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Invoice id={self.id} number={self.invoice_number!r} status={self.status}>"

    def to_dict(self, include_token: bool = True) -> dict:
        data = {
            "id": self.id,
            "org_id": self.org_id,
            "invoice_number": self.invoice_number,
            "customer": self.customer,
            "status": self.status,
            "total_amount": self.total_amount,
            "price_per_unit": self.price_per_unit,
            "price_unit": self.price_unit,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_token:
            data["share_token"] = self.share_token
        return data


class InvoiceSequence(db.Model):
    """
    Atomic per-org invoice numbering.

    WHY: Counting existing invoices races under concurrent compilation.
    """
    __tablename__ = "invoice_sequences"
    __table_args__ = (
        db.UniqueConstraint("org_id", name="uq_invoice_sequences_org"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    org_id = db.Column(db.String(255), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
