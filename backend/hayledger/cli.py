# Overview: Flask CLI command groups for bootstrap, data repair and permission inspection.

# backend/hayledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent). Prefer `flask db upgrade` in production.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Data repair:
# - python -m flask data normalize-bale-sizes
#   Rewrite legacy bale size labels ('3x4x8', 'Round', ...) to canonical labels.
# - python -m flask data backfill-share-tokens
#   Generate share links for invoices created before share tokens existed.
#
# Permission inspection:
# - python -m flask perms list [--role bookkeeper]
#   List permission keys, optionally only those granted to a role.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Stack
from .permissions import PERMISSION_DEFINITIONS, Role, permissions_for_role
from .services.invoice_service import backfill_share_tokens
from .units import LEGACY_BALE_SIZES


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401

    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()
    click.echo("BUILD Creating all tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('data')
def data_group():
    """Data migration and repair commands."""


@data_group.command('normalize-bale-sizes')
@with_appcontext
def normalize_bale_sizes():
    """Rewrite legacy bale size labels to their canonical form."""
    total = 0
    for legacy, canonical in LEGACY_BALE_SIZES.items():
        updated = (
            db.session.query(Stack)
            .filter(Stack.bale_size == legacy)
            .update({Stack.bale_size: canonical}, synchronize_session=False)
        )
        if updated:
            click.echo(f"  {legacy:<14} -> {canonical:<6} {updated} stack(s)")
        total += updated

    db.session.commit()
    click.echo(f"PASS Normalized {total} stack(s)")


@data_group.command('backfill-share-tokens')
@with_appcontext
def backfill_share_tokens_cli():
    """Generate share tokens for invoices that have none."""
    count = backfill_share_tokens()
    db.session.commit()
    click.echo(f"PASS Generated {count} share token(s)")


@click.group('perms')
def perms_group():
    """Permission inspection commands."""


@perms_group.command('list')
@click.option('--role', help='Filter by role name (admin, bookkeeper, driver)')
def list_permissions_cli(role):
    """List permission keys, optionally only those a role is granted."""
    if role:
        try:
            role_enum = Role(role.strip().lower())
        except ValueError:
            click.echo(f"FAIL Role '{role}' not found")
            return
        granted = permissions_for_role(role_enum)
        definitions = [d for d in PERMISSION_DEFINITIONS if d[0] in granted]
        title = f"Permissions for role: {role_enum.value.upper()}"
    else:
        definitions = list(PERMISSION_DEFINITIONS)
        title = "All Permissions"

    click.echo(f"\n{'='*80}")
    click.echo(title)
    click.echo(f"{'='*80}\n")

    click.echo(f"{'Key':<22} {'Name':<24} {'Description'}")
    click.echo("-"*80)
    for perm, name, description in definitions:
        click.echo(f"{perm.value:<22} {name:<24} {description}")

    click.echo(f"\n Total: {len(definitions)} permissions\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(data_group)
    app.cli.add_command(perms_group)
