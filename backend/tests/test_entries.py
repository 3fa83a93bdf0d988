"""
Tests for cash and metal receipt/payment entries.
"""

import pytest

from bullion_ledger.errors import NotFoundError, ValidationError
from bullion_ledger.extensions import db
from bullion_ledger.models import RegistryEntry
from bullion_ledger.services import entry_service


def entry_rows(entry_id):
    return (
        db.session.query(RegistryEntry)
        .filter_by(entry_id=entry_id)
        .order_by(RegistryEntry.transaction_id.asc())
        .all()
    )


class TestCashEntries:

    def test_cash_receipt(self, db_session, party):
        entry = entry_service.create_entry({
            "type": "cash receipt",
            "party_id": party.id,
            "voucher_code": "CR-1",
            "lines": [{"amount": 400}, {"amount": 100, "remarks": "balance"}],
        }, actor_id=1)

        assert entry.total_amount == 500
        assert party.cash_amount == pytest.approx(500)
        rows = entry_rows(entry.id)
        assert len(rows) == 4
        party_rows = [row for row in rows if row.party_id == party.id]
        assert {row.type for row in party_rows} == {"PARTY_CASH_BALANCE"}
        assert sum(row.credit for row in party_rows) == 500
        house_rows = [row for row in rows if row.party_id is None]
        assert {row.type for row in house_rows} == {"CASH"}
        assert sum(row.debit for row in house_rows) == 500

    def test_cash_payment(self, db_session, party):
        entry_service.create_entry({
            "type": "cash payment",
            "party_id": party.id,
            "lines": [{"amount": 250}],
        }, actor_id=1)
        assert party.cash_amount == pytest.approx(-250)

    def test_cash_lines_are_rounded(self, db_session, party):
        entry = entry_service.create_entry({
            "type": "cash receipt",
            "party_id": party.id,
            "lines": [{"amount": 75.004}],
        }, actor_id=1)

        assert party.cash_amount == pytest.approx(75.0)
        party_row, = [row for row in entry_rows(entry.id) if row.party_id == party.id]
        assert party_row.credit == 75.0

        with pytest.raises(ValidationError) as exc:
            entry_service.create_entry({
                "type": "cash receipt",
                "party_id": party.id,
                "lines": [{"amount": 0.003}],
            }, actor_id=1)
        assert exc.value.code == "INVALID_VALUE"

    def test_cash_entry_requires_party(self, db_session):
        with pytest.raises(ValidationError) as exc:
            entry_service.create_entry({"type": "cash receipt", "lines": [{"amount": 1}]}, actor_id=1)
        assert exc.value.code == "MISSING_REQUIRED_FIELDS"

    def test_delete_reverses_cash(self, db_session, party):
        entry = entry_service.create_entry({
            "type": "cash receipt",
            "party_id": party.code,
            "lines": [{"amount": 400}],
        }, actor_id=1)
        entry_id = entry.id

        result = entry_service.delete_entry(entry_id, actor_id=1)

        assert result["registry_entries_deleted"] == 2
        assert party.cash_amount == pytest.approx(0, abs=0.01)
        with pytest.raises(NotFoundError) as exc:
            entry_service.get_entry(entry_id)
        assert exc.value.code == "ENTRY_NOT_FOUND"


class TestMetalEntries:

    def test_metal_receipt_posts_stock_without_balance_change(self, db_session, party, stock):
        entry = entry_service.create_entry({
            "type": "metal-receipt",
            "party_id": party.id,
            "lines": [{"stock_id": stock.id, "purity_weight": 50}],
        }, actor_id=1)

        assert party.gold_total_grams == 0
        assert party.cash_amount == 0
        party_row, house_row = entry_rows(entry.id)
        assert (party_row.type, party_row.credit, party_row.pure_weight) == ("STOCK_BALANCE", 50, 50)
        assert (house_row.type, house_row.debit) == ("GOLD", 50)
        assert party_row.is_bullion is True

    def test_metal_payment_sides(self, db_session, stock):
        entry = entry_service.create_entry({
            "type": "metal-payment",
            "lines": [{"stock_id": stock.id, "purity_weight": 5}],
        }, actor_id=1)
        party_row, house_row = entry_rows(entry.id)
        assert party_row.debit == 5
        assert house_row.credit == 5

    def test_metal_line_needs_known_stock(self, db_session):
        with pytest.raises(NotFoundError) as exc:
            entry_service.create_entry({
                "type": "metal-receipt",
                "lines": [{"stock_id": 999, "purity_weight": 5}],
            }, actor_id=1)
        assert exc.value.code == "STOCK_NOT_FOUND"


class TestEntryValidation:

    @pytest.mark.parametrize("payload, code", [
        ({"type": "barter", "lines": [{"amount": 1}]}, "INVALID_ENTRY_TYPE"),
        ({"type": "cash receipt", "party_id": 1, "lines": []}, "MISSING_REQUIRED_FIELDS"),
        ({"type": "cash receipt", "party_id": 1, "lines": [{"amount": 0}]}, "INVALID_VALUE"),
        ({"type": "metal-receipt", "lines": [{"stock_id": 1, "purity_weight": -1}]}, "INVALID_VALUE"),
        ({"type": "metal-receipt", "lines": [{"purity_weight": 1}]}, "MISSING_REQUIRED_FIELDS"),
    ])
    def test_rejected_payloads(self, db_session, payload, code):
        with pytest.raises(ValidationError) as exc:
            entry_service.create_entry(payload, actor_id=1)
        assert exc.value.code == code

    def test_list_by_type(self, db_session, party):
        entry_service.create_entry({"type": "cash receipt", "party_id": party.id, "lines": [{"amount": 1}]}, actor_id=1)
        entry_service.create_entry({"type": "cash payment", "party_id": party.id, "lines": [{"amount": 1}]}, actor_id=1)
        assert [e.type for e in entry_service.list_entries(entry_type="cash payment")] == ["cash payment"]
        assert len(entry_service.list_entries(party_id=party.id)) == 2
