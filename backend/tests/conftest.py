"""
Pytest fixtures for ledger tests.

Provides the app on an in-memory database, per-test table cleanup,
the test client, and seeded parties and metal stock.
"""

import itertools

import pytest

from bullion_ledger import create_app
from bullion_ledger.extensions import db
from bullion_ledger.models import Account
from bullion_ledger.services import inventory_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def party(db_session):
    """Customer account with zero balances."""
    account = Account(code="P001", name="Gulf Traders", is_active=True)
    db_session.add(account)
    db_session.commit()
    return account


@pytest.fixture(scope='function')
def other_party(db_session):
    """Second customer account with zero balances."""
    account = Account(code="P002", name="Souk Bullion", is_active=True)
    db_session.add(account)
    db_session.commit()
    return account


@pytest.fixture(scope='function')
def stock(db_session):
    """Fine gold stock with an empty inventory row."""
    stock = inventory_service.create_metal_stock("GB-1KG", "Gold bar 1kg", 1.0)
    db_session.commit()
    return stock


def stock_item(stock_id: int, **fields) -> dict:
    """Stock item payload: 105 g gross, 100 g pure unless overridden."""
    item = {
        "stockId": stock_id,
        "pieces": 1,
        "grossWeight": 105,
        "purity": 1,
        "pureWeight": 100,
    }
    item.update(fields)
    return item


@pytest.fixture(scope='function')
def make_payload(party, stock):
    """Factory for metal transaction create payloads with unique voucher numbers."""
    counter = itertools.count(1)

    def _make(**overrides):
        payload = {
            "partyCode": party.code,
            "transactionType": "purchase",
            "fixed": False,
            "unfix": True,
            "voucherType": "MP",
            "voucherNumber": f"MP-{next(counter):04d}",
            "voucherDate": "2026-03-01",
            "stockItems": [stock_item(stock.id, makingCharges={"amount": 50})],
        }
        payload.update(overrides)
        return payload

    return _make
