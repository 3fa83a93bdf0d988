"""
Tests for the `flask ledger` command group.
"""

from bullion_ledger.models import MetalStock
from bullion_ledger.services import account_service, inventory_service, metal_transaction_service


def run(app, *args):
    return app.test_cli_runner().invoke(args=["ledger", *args])


def test_create_account(app, db_session):
    result = run(app, "create-account", "--code", "C900", "--name", "Souk Metals")
    assert result.exit_code == 0
    assert "Created account C900" in result.output
    assert account_service.get_account_by_code("C900").name == "Souk Metals"


def test_duplicate_account_fails(app, party):
    result = run(app, "create-account", "--code", party.code, "--name", "Copy")
    assert result.exit_code != 0
    assert "already exists" in result.output


def test_create_stock(app, db_session):
    result = run(app, "create-stock", "--code", "KB-995", "--purity", "0.995")
    assert result.exit_code == 0
    stock = db_session.query(MetalStock).filter_by(code="KB-995").one()
    inventory = inventory_service.get_inventory(stock.id)
    assert inventory.purity == 0.995
    assert inventory.gross_weight == 0


def test_balances(app, party, make_payload):
    metal_transaction_service.create_metal_transaction(make_payload(), actor_id=1)
    result = run(app, "balances", "--code", party.code)
    assert result.exit_code == 0
    assert "gold grams : 100.000" in result.output
    assert "cash       : 50.00" in result.output


def test_balances_unknown_party(app, db_session):
    result = run(app, "balances", "--code", "NOPE")
    assert result.exit_code != 0


def test_registry_listing(app, make_payload):
    transaction = metal_transaction_service.create_metal_transaction(make_payload(), actor_id=1)
    result = run(app, "registry", "--transaction-id", str(transaction.id))
    assert result.exit_code == 0
    assert "PARTY_GOLD_BALANCE" in result.output
    assert "GOLD_STOCK" in result.output

    result = run(app, "registry", "--transaction-id", "999")
    assert "No registry entries." in result.output
