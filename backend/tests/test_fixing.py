"""
Tests for price fixings: balance effects, postings and reversal.
"""

import pytest

from bullion_ledger.errors import ConflictError, NotFoundError, ValidationError
from bullion_ledger.extensions import db
from bullion_ledger.models import Account, RegistryEntry
from bullion_ledger.services import fixing_service


def fixing_payload(party, fixing_type="PURCHASE", **overrides):
    payload = {
        "party_id": party.id,
        "type": fixing_type,
        "voucher_number": "FX-0001",
        "voucher_date": "2026-03-02",
        "orders": [{"quantity_gm": 10, "price": 250.5, "gold_bid_value": 2450}],
    }
    payload.update(overrides)
    return payload


def rows_for(fixing_id):
    return {
        entry.transaction_id.split("-", 3)[3]: entry
        for entry in db.session.query(RegistryEntry).filter_by(fixing_id=fixing_id).all()
    }


class TestCreateFixing:

    def test_purchase_fixing_converts_gold_to_cash(self, db_session, party):
        fixing = fixing_service.create_fixing(fixing_payload(party), actor_id=1)

        assert party.gold_total_grams == pytest.approx(-10)
        assert party.cash_amount == pytest.approx(2505)
        assert fixing.orders[0].total_amount == pytest.approx(2505)

        rows = rows_for(fixing.id)
        assert set(rows) == {"PARTY-GOLD-1", "PARTY-GOLD-FIX-1", "PARTY-CASH-1"}
        assert rows["PARTY-GOLD-1"].debit == 10
        assert rows["PARTY-GOLD-FIX-1"].type == "purchase-fixing"
        assert rows["PARTY-GOLD-FIX-1"].credit == 10
        assert rows["PARTY-CASH-1"].credit == pytest.approx(2505)
        assert all(row.gold_bid_value == 2450 for row in rows.values())

    def test_sell_fixing_is_the_mirror(self, db_session, party):
        fixing = fixing_service.create_fixing(fixing_payload(party, "SELL"), actor_id=1)

        assert party.gold_total_grams == pytest.approx(10)
        assert party.cash_amount == pytest.approx(-2505)

        rows = rows_for(fixing.id)
        assert rows["PARTY-GOLD-1"].credit == 10
        assert rows["PARTY-CASH-1"].debit == pytest.approx(2505)
        sales_fixing = rows["PARTY-GOLD-FIX-1"]
        assert sales_fixing.type == "sales-fixing"
        assert sales_fixing.value == 0
        assert sales_fixing.debit == 10

    def test_one_posting_set_per_order(self, db_session, party):
        orders = [
            {"quantity_gm": 10, "price": 250, "gold_bid_value": 2450},
            {"quantity_gm": 5, "price": 251, "gold_bid_value": 2460},
        ]
        fixing = fixing_service.create_fixing(fixing_payload(party, orders=orders), actor_id=1)

        assert db.session.query(RegistryEntry).filter_by(fixing_id=fixing.id).count() == 6
        assert party.gold_total_grams == pytest.approx(-15)
        assert party.cash_amount == pytest.approx(2500 + 1255)

    @pytest.mark.parametrize("orders", [
        [],
        None,
        [{"quantity_gm": 0, "price": 250, "gold_bid_value": 1}],
        [{"quantity_gm": 1, "price": "abc", "gold_bid_value": 1}],
    ])
    def test_invalid_orders(self, db_session, party, orders):
        with pytest.raises(ValidationError) as exc:
            fixing_service.create_fixing(fixing_payload(party, orders=orders), actor_id=1)
        assert exc.value.code == "INVALID_ORDERS"

    def test_party_reference_matches_code_first(self, db_session, party):
        numeric = Account(code=str(party.id), name="Numeric Code Traders", is_active=True)
        db_session.add(numeric)
        db_session.commit()

        fixing = fixing_service.create_fixing(fixing_payload(party, party_id=str(party.id)), actor_id=1)

        assert fixing.party_id == numeric.id
        assert numeric.cash_amount == pytest.approx(2505)
        assert party.cash_amount == 0

    def test_invalid_type(self, db_session, party):
        with pytest.raises(ValidationError) as exc:
            fixing_service.create_fixing(fixing_payload(party, "HOLD"), actor_id=1)
        assert exc.value.code == "INVALID_TRANSACTION_TYPE"

    def test_duplicate_voucher(self, db_session, party):
        fixing_service.create_fixing(fixing_payload(party), actor_id=1)
        with pytest.raises(ConflictError):
            fixing_service.create_fixing(fixing_payload(party), actor_id=1)
        assert party.gold_total_grams == pytest.approx(-10)


class TestDeleteFixing:

    def test_delete_restores_balances(self, db_session, party):
        fixing = fixing_service.create_fixing(fixing_payload(party), actor_id=1)
        fixing_id = fixing.id

        result = fixing_service.delete_fixing(fixing_id, actor_id=1)

        assert result["registry_entries_deleted"] == 3
        assert party.gold_total_grams == pytest.approx(0, abs=0.01)
        assert party.cash_amount == pytest.approx(0, abs=0.01)
        with pytest.raises(NotFoundError) as exc:
            fixing_service.get_fixing(fixing_id)
        assert exc.value.code == "FIXING_NOT_FOUND"

    def test_list_filters_by_type(self, db_session, party):
        fixing_service.create_fixing(fixing_payload(party), actor_id=1)
        fixing_service.create_fixing(fixing_payload(party, "SELL", voucher_number="FX-0002"), actor_id=1)
        assert [f.type for f in fixing_service.list_fixings(fixing_type="sell")] == ["SELL"]
        assert len(fixing_service.list_fixings(party_id=party.id)) == 2


class TestUpdateFixing:

    def test_update_reposts_new_orders(self, db_session, party):
        fixing = fixing_service.create_fixing(fixing_payload(party), actor_id=1)

        updated = fixing_service.update_fixing(fixing.id, {
            "type": "sell",
            "orders": [{"quantity_gm": 4, "price": 200, "gold_bid_value": 2400}],
        }, actor_id=2)

        assert updated.type == "SELL"
        assert updated.updated_by == 2
        assert [o.total_amount for o in updated.orders] == [800]
        assert party.gold_total_grams == pytest.approx(4)
        assert party.cash_amount == pytest.approx(-800)

        rows = rows_for(fixing.id)
        assert set(rows) == {"PARTY-GOLD-1", "PARTY-GOLD-FIX-1", "PARTY-CASH-1"}
        assert rows["PARTY-GOLD-1"].credit == 4
        assert rows["PARTY-CASH-1"].debit == pytest.approx(800)
        assert rows["PARTY-GOLD-FIX-1"].type == "sales-fixing"

    def test_voucher_only_update_keeps_orders(self, db_session, party):
        fixing = fixing_service.create_fixing(fixing_payload(party), actor_id=1)

        fixing_service.update_fixing(fixing.id, {"voucher_number": "FX-0009"}, actor_id=1)

        assert party.gold_total_grams == pytest.approx(-10)
        assert party.cash_amount == pytest.approx(2505)
        rows = rows_for(fixing.id)
        assert len(rows) == 3
        assert {row.reference for row in rows.values()} == {"FX-0009"}

    def test_party_change_moves_the_effect(self, db_session, party, other_party):
        fixing = fixing_service.create_fixing(fixing_payload(party), actor_id=1)

        fixing_service.update_fixing(fixing.id, {"party_id": other_party.id}, actor_id=1)

        assert party.gold_total_grams == pytest.approx(0, abs=0.01)
        assert party.cash_amount == pytest.approx(0, abs=0.01)
        assert other_party.gold_total_grams == pytest.approx(-10)
        assert other_party.cash_amount == pytest.approx(2505)
        assert {row.party_id for row in rows_for(fixing.id).values()} == {other_party.id}

    def test_invalid_orders_leave_fixing_untouched(self, db_session, party):
        fixing = fixing_service.create_fixing(fixing_payload(party), actor_id=1)

        with pytest.raises(ValidationError) as exc:
            fixing_service.update_fixing(fixing.id, {"orders": []}, actor_id=1)
        assert exc.value.code == "INVALID_ORDERS"
        assert party.cash_amount == pytest.approx(2505)
        assert len(rows_for(fixing.id)) == 3

    def test_duplicate_voucher_on_update(self, db_session, party):
        fixing_service.create_fixing(fixing_payload(party), actor_id=1)
        second = fixing_service.create_fixing(fixing_payload(party, voucher_number="FX-0002"), actor_id=1)

        with pytest.raises(ConflictError) as exc:
            fixing_service.update_fixing(second.id, {"voucher_number": "FX-0001"}, actor_id=1)
        assert exc.value.code == "DUPLICATE_VOUCHER"
        assert party.gold_total_grams == pytest.approx(-20)


class TestFixingStatus:

    def test_cancel_keeps_financial_effect(self, db_session, party):
        fixing = fixing_service.create_fixing(fixing_payload(party), actor_id=1)

        cancelled = fixing_service.cancel_fixing(fixing.id, actor_id=3)

        assert cancelled.status == "cancelled"
        assert cancelled.updated_by == 3
        assert party.gold_total_grams == pytest.approx(-10)
        assert party.cash_amount == pytest.approx(2505)
        assert len(rows_for(fixing.id)) == 3
        assert [f.id for f in fixing_service.list_fixings(status="cancelled")] == [fixing.id]

    def test_cancelled_fixing_cannot_be_edited(self, db_session, party):
        fixing = fixing_service.create_fixing(fixing_payload(party), actor_id=1)
        fixing_service.cancel_fixing(fixing.id, actor_id=1)

        with pytest.raises(ConflictError) as exc:
            fixing_service.update_fixing(fixing.id, {"type": "SELL"}, actor_id=1)
        assert exc.value.code == "FIXING_CANCELLED"

        with pytest.raises(ValidationError) as exc:
            fixing_service.cancel_fixing(fixing.id, actor_id=1)
        assert exc.value.code == "INVALID_STATUS_TRANSITION"

    def test_restore(self, db_session, party):
        fixing = fixing_service.create_fixing(fixing_payload(party), actor_id=1)
        fixing_service.cancel_fixing(fixing.id, actor_id=1)

        restored = fixing_service.restore_fixing(fixing.id, actor_id=1)

        assert restored.status == "active"
        fixing_service.update_fixing(fixing.id, {"orders": [{"quantity_gm": 2, "price": 100, "gold_bid_value": 2400}]}, actor_id=1)
        assert party.cash_amount == pytest.approx(200)

    def test_restore_active_fixing_is_rejected(self, db_session, party):
        fixing = fixing_service.create_fixing(fixing_payload(party), actor_id=1)
        with pytest.raises(ValidationError) as exc:
            fixing_service.restore_fixing(fixing.id, actor_id=1)
        assert exc.value.code == "INVALID_STATUS_TRANSITION"
