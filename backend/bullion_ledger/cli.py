# Overview: Flask CLI command group for ledger bootstrap and inspection.

# backend/bullion_ledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask ledger <command> [options]
#
# - python -m flask ledger init-db
#   Create all tables (use `flask db upgrade` for migration-managed databases).
# - python -m flask ledger create-account --code C001 --name "Gulf Traders"
#   Onboard a party account with zero balances.
# - python -m flask ledger create-stock --code GB-1KG --purity 0.9999
#   Create a metal stock and its empty inventory row.
# - python -m flask ledger balances --code C001
#   Show a party's gold and cash balances.
# - python -m flask ledger registry --transaction-id 12
#   List the registry postings of a metal transaction.

import click
from flask.cli import with_appcontext

from .errors import LedgerError
from .extensions import db
from .services import account_service, inventory_service, registry_service
from .services.concurrency import run_atomic


@click.group("ledger")
def ledger_group():
    """Ledger bootstrap and inspection commands."""


@ledger_group.command("init-db")
@with_appcontext
def init_db():
    """Create all tables."""
    db.create_all()
    click.echo("Database tables created.")


@ledger_group.command("create-account")
@click.option("--code", required=True, help="Unique party code")
@click.option("--name", required=True, help="Display name")
@with_appcontext
def create_account(code, name):
    try:
        account = run_atomic("CREATE_ACCOUNT", lambda: account_service.create_account(code, name))
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"Created account {account.code} (id={account.id})")


@ledger_group.command("create-stock")
@click.option("--code", required=True, help="Unique stock code")
@click.option("--description", default=None)
@click.option("--purity", default=1.0, type=float, show_default=True, help="Fraction 0-1")
@with_appcontext
def create_stock(code, description, purity):
    try:
        stock = run_atomic(
            "CREATE_STOCK",
            lambda: inventory_service.create_metal_stock(code, description, purity),
        )
    except LedgerError as e:
        raise click.ClickException(e.message)
    click.echo(f"Created stock {stock.code} (id={stock.id})")


@ledger_group.command("balances")
@click.option("--code", required=True, help="Party code")
@with_appcontext
def balances(code):
    try:
        account = account_service.get_account_by_code(code)
    except LedgerError as e:
        raise click.ClickException(e.message)
    summary = registry_service.get_registry_balance(party_id=account.id)
    click.echo(f"{account.code} - {account.name} ({'active' if account.is_active else 'inactive'})")
    click.echo(f"  gold grams : {account.gold_total_grams:.3f}")
    click.echo(f"  gold value : {account.gold_total_value:.2f}")
    click.echo(f"  cash       : {account.cash_amount:.2f}")
    click.echo(f"  registry   : debit={summary['debit']:.3f} credit={summary['credit']:.3f}")


@ledger_group.command("registry")
@click.option("--transaction-id", "transaction_id", required=True, type=int, help="Metal transaction id")
@with_appcontext
def registry(transaction_id):
    entries = registry_service.get_entries_for_transaction(transaction_id)
    if not entries:
        click.echo("No registry entries.")
        return
    for e in entries:
        click.echo(
            f"{e.transaction_id:<28} {e.type:<20} party={e.party_id or '-':<5} "
            f"dr={e.debit:>12.3f} cr={e.credit:>12.3f}"
        )


def register_commands(app):
    app.cli.add_command(ledger_group)
