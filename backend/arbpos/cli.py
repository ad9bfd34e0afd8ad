# Overview: Flask CLI command groups for bootstrap, licensing and operator maintenance.

# backend/arbpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables and seed the default operator credential (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Licensing:
# - python -m flask tokens mint --store "Toko A" --duration 1m
#   Mint a token outside the operator UI.
# - python -m flask tokens list
#   List tokens with expiry, status and bound device.
# - python -m flask tokens reset-device ARB-XXXX-XXXX
#   Clear a token's device binding.
# - python -m flask tokens deactivate ARB-XXXX-XXXX / tokens activate ARB-XXXX-XXXX
#   Block or unblock a token without deleting it.
#
# Operator account:
# - python -m flask admin set-credentials --username owner --password "s3cret"
#   Replace the operator credential and revoke all operator sessions.

import click
from flask.cli import with_appcontext

from .errors import ArbError
from .extensions import db
from .services import auth_service, token_service
from .time_utils import DURATIONS, to_utc_z


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create all tables and seed the default operator credential."""
    click.echo("START Initializing ARB POS...")
    db.create_all()
    click.echo("PASS Tables ready")

    credential = auth_service.ensure_default_credential()
    click.echo(f"PASS Operator account: {credential.username}")
    click.echo("\nSECURITY WARNING: change the default operator password before going live.")


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
    click.echo("BUILD Creating tables...")
    db.create_all()
    click.echo("PASS Database reset complete")


@click.group('tokens')
def tokens_group():
    """Access token management."""


@tokens_group.command('mint')
@click.option('--store', 'store_name', required=True, help='Store name printed on the token')
@click.option('--duration', type=click.Choice(sorted(DURATIONS)), default='1m', show_default=True)
@with_appcontext
def mint_token(store_name, duration):
    """Mint a new, unbound token."""
    try:
        token = token_service.mint(store_name, duration)
        db.session.commit()
    except ArbError as e:
        db.session.rollback()
        raise click.ClickException(e.message)
    click.echo(f"PASS {token.code}  store={token.store_name}  expires={to_utc_z(token.expires_at)}")


@tokens_group.command('list')
@with_appcontext
def list_tokens():
    """List tokens, newest first."""
    tokens = token_service.list_tokens()
    if not tokens:
        click.echo("No tokens.")
        return
    for t in tokens:
        status = "active" if t.is_active else "inactive"
        device = t.bound_device_id or "-"
        click.echo(f"{t.code}  {t.store_name:<24}  {t.duration:<3}  {to_utc_z(t.expires_at)}  {status:<8}  {device}")


def _run_token_op(func, code, message):
    try:
        func(code)
    except ArbError as e:
        db.session.rollback()
        raise click.ClickException(e.message)
    click.echo(f"PASS {message}: {code}")


@tokens_group.command('reset-device')
@click.argument('code')
@with_appcontext
def reset_device(code):
    """Clear the device binding of CODE."""
    _run_token_op(token_service.reset_device_lock, code, "Device lock reset")


@tokens_group.command('deactivate')
@click.argument('code')
@with_appcontext
def deactivate_token(code):
    """Block CODE from logging in or using the ledger."""
    _run_token_op(lambda c: token_service.set_token_active(c, False), code, "Token deactivated")


@tokens_group.command('activate')
@click.argument('code')
@with_appcontext
def activate_token(code):
    """Re-enable a deactivated token."""
    _run_token_op(lambda c: token_service.set_token_active(c, True), code, "Token activated")


@click.group('admin')
def admin_group():
    """Operator account maintenance."""


@admin_group.command('set-credentials')
@click.option('--username', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@with_appcontext
def set_credentials(username, password):
    """Replace the operator credential and revoke every operator session."""
    try:
        auth_service.change_credentials(username, password)
        db.session.commit()
    except ArbError as e:
        db.session.rollback()
        raise click.ClickException(e.message)
    click.echo(f"PASS Operator credential replaced for '{username.strip()}'")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(tokens_group)
    app.cli.add_command(admin_group)
