# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/storefront/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates missing tables and the WELCOME10 voucher.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-welcome-voucher
#   Create WELCOME10 if it is missing.
# - python -m flask system reset-pool
#   Dispose every pooled database connection.
#
# Back-office accounts:
# - python -m flask admins list
#   List admin accounts.
# - python -m flask admins create --name "Store Admin" --email admin@store.local --password "Password123!"
#   Create an admin (prompts if options are omitted).
#
# Maintenance:
# - python -m flask maintenance purge-sessions --retention-days 7
#   Delete revoked or expired session tokens older than the retention window.

import click
from datetime import timedelta
from flask.cli import with_appcontext
from sqlalchemy import or_

from .extensions import db
from .database import bootstrap_schema, reset_pool
from .models import Admin, SessionToken
from .services.auth_service import create_admin, PasswordValidationError
from .services.voucher_service import seed_welcome_voucher
from .validation import ValidationError
from .time_utils import utcnow


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the storefront database.

    Creates:
    - Any missing tables
    - The WELCOME10 voucher (100.00 off orders of 500.00 or more)

    Safe to run repeatedly.
    """
    click.echo("START Initializing storefront...")

    created = bootstrap_schema()
    if created:
        click.echo(f"PASS Created tables: {', '.join(created)}")
    else:
        click.echo("PASS Schema already up to date")

    voucher, voucher_created = seed_welcome_voucher()
    if voucher_created:
        click.echo(f"PASS Created voucher {voucher.code} (ID: {voucher.id})")
    else:
        click.echo(f"WARN  Voucher {voucher.code} already exists, skipping...")

    admin_count = db.session.query(Admin).count()
    if admin_count == 0:
        click.echo("\nWARN  No admin accounts yet. Run: python -m flask admins create")

    click.echo("\nDONE Storefront initialized")


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

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset. Run: python -m flask system init")


@system_group.command('seed-welcome-voucher')
@with_appcontext
def seed_welcome_voucher_cli():
    """Create the WELCOME10 voucher if it is missing."""
    voucher, created = seed_welcome_voucher()
    if created:
        click.echo(f"PASS Created voucher {voucher.code} (ID: {voucher.id})")
    else:
        click.echo(f"PASS Voucher {voucher.code} already exists (ID: {voucher.id})")


@system_group.command('reset-pool')
@with_appcontext
def reset_pool_cli():
    """Dispose every pooled database connection."""
    reset_pool()
    click.echo("PASS Connection pool disposed")


# =============================================================================
# ADMIN ACCOUNTS
# =============================================================================

@click.group('admins')
def admins_group():
    """Back-office account commands."""


@admins_group.command('list')
@with_appcontext
def list_admins():
    """List all admin accounts."""
    admins = db.session.query(Admin).order_by(Admin.id).all()

    if not admins:
        click.echo("No admins found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<25} {'Email':<30} {'Created'}")
    click.echo("="*70)

    for admin in admins:
        created = admin.created_at.isoformat() if admin.created_at else "-"
        click.echo(f"{admin.id:<5} {admin.name:<25} {admin.email:<30} {created}")

    click.echo("="*70 + "\n")


@admins_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Login email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@with_appcontext
def create_admin_cli(name, email, password):
    """Create a back-office admin account."""
    try:
        admin = create_admin(name, email, password)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        return
    except ValidationError as e:
        click.echo(f"FAIL {str(e)}")
        return

    click.echo(f"PASS Created admin: {admin.name} ({admin.email}) ID: {admin.id}")


# =============================================================================
# MAINTENANCE
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Housekeeping commands."""


@maintenance_group.command('purge-sessions')
@click.option('--retention-days', default=7, show_default=True, type=int, help='Keep dead tokens this many days')
@with_appcontext
def purge_sessions(retention_days):
    """Delete revoked or expired session tokens older than the retention window."""
    cutoff = utcnow() - timedelta(days=retention_days)
    deleted = db.session.query(SessionToken).filter(
        or_(SessionToken.is_revoked.is_(True), SessionToken.expires_at < utcnow()),
        SessionToken.created_at < cutoff,
    ).delete(synchronize_session=False)
    db.session.commit()
    click.echo(f"PASS Deleted {deleted} session token(s)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(admins_group)
    app.cli.add_command(maintenance_group)
