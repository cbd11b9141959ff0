# Overview: Flask CLI command groups for ledger maintenance and development resets.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Ledger repair/inspection:
# - python -m flask ledger verify [--account-id 3]
#   Replay every account (or one) without writing; exits 1 when any drift is found.
# - python -m flask ledger recompute --account-id 3
#   Rebuild one account's balance and balance_after snapshots from its history.
# - python -m flask ledger recompute --all
#   Same, for every account.
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Account
from .services import ledger_service


@click.group('ledger')
def ledger_group():
    """Customer current-account ledger maintenance."""


def _account_ids(account_id, all_accounts):
    if account_id is not None:
        return [account_id]
    if all_accounts:
        return [row.id for row in db.session.query(Account.id).order_by(Account.id).all()]
    return None


@ledger_group.command('verify')
@click.option('--account-id', type=int, default=None, help='Only verify this account')
@with_appcontext
def verify_ledger(account_id):
    """
    Replay transactions and compare with stored balances. Read-only.

    Exit code 1 when any account has drifted.
    """
    ids = _account_ids(account_id, True)
    drifted = 0
    for aid in ids:
        result = ledger_service.verify_balance(aid)
        if result.drift_cents or result.snapshots_rewritten:
            drifted += 1
            click.echo(
                f"DRIFT account {aid}: stored={result.previous_balance_cents} "
                f"replayed={result.balance_cents} stale_snapshots={result.snapshots_rewritten}"
            )

    if drifted:
        click.echo(f"FAIL {drifted} of {len(ids)} account(s) drifted. Run 'flask ledger recompute'.")
        raise SystemExit(1)
    click.echo(f"PASS {len(ids)} account(s) verified, no drift")


@ledger_group.command('recompute')
@click.option('--account-id', type=int, default=None, help='Account to rebuild')
@click.option('--all', 'all_accounts', is_flag=True, help='Rebuild every account')
@with_appcontext
def recompute_ledger(account_id, all_accounts):
    """Rebuild balances from the transaction history (idempotent)."""
    ids = _account_ids(account_id, all_accounts)
    if ids is None:
        raise click.UsageError("Pass --account-id N or --all")

    repaired = 0
    for aid in ids:
        result = ledger_service.recompute_balance(aid)
        if result.drift_cents or result.snapshots_rewritten:
            repaired += 1
            click.echo(
                f"FIXED account {aid}: {result.previous_balance_cents} -> {result.balance_cents} "
                f"({result.snapshots_rewritten} snapshot(s) rewritten)"
            )
        else:
            click.echo(f"OK account {aid}: balance {result.balance_cents}")

    click.echo(f"PASS Recomputed {len(ids)} account(s), {repaired} repaired")


@click.group('system')
def system_group():
    """System maintenance commands."""


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

    click.echo("PASS Database reset complete.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(ledger_group)
    app.cli.add_command(system_group)
