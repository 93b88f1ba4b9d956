"""Initial schema: stacks, locations, transactions, tickets, invoices, preferences

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "stacks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("org_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("commodity", sa.String(120), nullable=False),
        sa.Column("bale_size", sa.String(32), nullable=True),
        sa.Column("quality", sa.String(120), nullable=True),
        sa.Column("base_price", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("weight_per_bale", sa.Integer(), nullable=True),
        sa.Column("price_unit", sa.String(20), nullable=False, server_default="bale"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("stacks", schema=None) as batch_op:
        batch_op.create_index("ix_stacks_org_id", ["org_id"], unique=False)
        batch_op.create_index("ix_stacks_org_name", ["org_id", "name"], unique=False)

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("org_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("capacity", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("capacity_unit", sa.String(20), nullable=False, server_default="bales"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("locations", schema=None) as batch_op:
        batch_op.create_index("ix_locations_org_id", ["org_id"], unique=False)
        batch_op.create_index("ix_locations_org_name", ["org_id", "name"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("org_id", sa.String(255), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=True),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("stack_id", sa.Integer(), nullable=True),
        sa.Column("location_id", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(20), nullable=False, server_default="bales"),
        sa.Column("price", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("entity", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["stack_id"], ["stacks.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("transactions", schema=None) as batch_op:
        batch_op.create_index("ix_transactions_org_id", ["org_id"], unique=False)
        batch_op.create_index("ix_transactions_type", ["type"], unique=False)
        batch_op.create_index("ix_transactions_stack_id", ["stack_id"], unique=False)
        batch_op.create_index("ix_transactions_location_id", ["location_id"], unique=False)
        batch_op.create_index("ix_transactions_created_at", ["created_at"], unique=False)
        batch_op.create_index("ix_transactions_org_stack_location", ["org_id", "stack_id", "location_id"], unique=False)
        batch_op.create_index("ix_transactions_org_type", ["org_id", "type"], unique=False)

    op.create_table(
        "invoices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("org_id", sa.String(255), nullable=False),
        sa.Column("invoice_number", sa.String(100), nullable=False),
        sa.Column("customer", sa.String(255), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="draft"),
        sa.Column("total_amount", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("price_per_unit", sa.Float(), nullable=True),
        sa.Column("price_unit", sa.String(20), nullable=False, server_default="ton"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("share_token", sa.String(64), nullable=True),
        sa.Column("created_by", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("org_id", "invoice_number", name="uq_invoices_org_number"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("invoices", schema=None) as batch_op:
        batch_op.create_index("ix_invoices_org_id", ["org_id"], unique=False)
        batch_op.create_index("ix_invoices_org_status", ["org_id", "status"], unique=False)
        batch_op.create_index("ix_invoices_share_token", ["share_token"], unique=True)

    op.create_table(
        "invoice_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("org_id", sa.String(255), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("org_id", name="uq_invoice_sequences_org"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("org_id", sa.String(255), nullable=False),
        sa.Column("type", sa.String(32), nullable=False, server_default="sale"),
        sa.Column("stack_id", sa.Integer(), nullable=True),
        sa.Column("location_id", sa.Integer(), nullable=True),
        sa.Column("destination_id", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("net_lbs", sa.Float(), nullable=True),
        sa.Column("customer", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("invoice_id", sa.Integer(), nullable=True),
        sa.Column("transaction_id", sa.Integer(), nullable=True),
        sa.Column("driver_id", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["stack_id"], ["stacks.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["destination_id"], ["locations.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["invoice_id"], ["invoices.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["transaction_id"], ["transactions.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("tickets", schema=None) as batch_op:
        batch_op.create_index("ix_tickets_org_id", ["org_id"], unique=False)
        batch_op.create_index("ix_tickets_invoice_id", ["invoice_id"], unique=False)
        batch_op.create_index("ix_tickets_org_status", ["org_id", "status"], unique=False)
        batch_op.create_index("ix_tickets_org_driver", ["org_id", "driver_id"], unique=False)
        batch_op.create_index("ix_tickets_org_type", ["org_id", "type"], unique=False)

    op.create_table(
        "user_preferences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("org_id", sa.String(255), nullable=False),
        sa.Column("preference_key", sa.String(128), nullable=False),
        sa.Column("preference_value", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "org_id", "preference_key", name="uq_user_preferences_user_org_key"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("user_preferences", schema=None) as batch_op:
        batch_op.create_index("ix_user_preferences_org_id", ["org_id"], unique=False)


def downgrade():
    op.drop_table("user_preferences")
    op.drop_table("tickets")
    op.drop_table("invoice_sequences")
    op.drop_table("invoices")
    op.drop_table("transactions")
    op.drop_table("locations")
    op.drop_table("stacks")
