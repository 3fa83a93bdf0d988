"""
Tests for party-to-party transfers and opening balances.
"""

import pytest

from bullion_ledger.errors import ConflictError, NotFoundError, ValidationError
from bullion_ledger.extensions import db
from bullion_ledger.models import RegistryEntry
from bullion_ledger.services import fund_transfer_service


def transfer_rows(transfer_id):
    return (
        db.session.query(RegistryEntry)
        .filter_by(fund_transfer_id=transfer_id)
        .order_by(RegistryEntry.transaction_id.asc())
        .all()
    )


class TestAccountToAccountTransfer:

    def test_cash_transfer(self, db_session, party, other_party):
        transfer = fund_transfer_service.account_to_account_transfer(
            party.id, other_party.id, 300, "cash", actor_id=1, voucher={"voucher_number": "FT-1"},
        )

        assert transfer.asset_type == "CASH"
        assert party.cash_amount == pytest.approx(-300)
        assert other_party.cash_amount == pytest.approx(300)

        payer, payee = transfer_rows(transfer.id)
        assert payer.transaction_id.endswith("-001")
        assert (payer.party_id, payer.debit, payer.credit) == (party.id, 300, 0)
        assert (payer.previous_balance, payer.running_balance) == (0, -300)
        assert (payee.party_id, payee.debit, payee.credit) == (other_party.id, 0, 300)
        assert payee.running_balance == 300
        assert payee.reference == "FT-1"

    def test_negative_value_reverses_direction(self, db_session, party, other_party):
        transfer = fund_transfer_service.account_to_account_transfer(
            party.id, other_party.id, -12.5, "GOLD", actor_id=1,
        )

        assert transfer.sender_id == other_party.id
        assert transfer.value == 12.5
        assert party.gold_total_grams == pytest.approx(12.5)
        assert other_party.gold_total_grams == pytest.approx(-12.5)
        assert all(row.is_bullion for row in transfer_rows(transfer.id))

    def test_cash_value_matches_posted_balance(self, db_session, party, other_party):
        transfer = fund_transfer_service.account_to_account_transfer(
            party.id, other_party.id, 100.004, "CASH", actor_id=1,
        )

        assert transfer.value == 100.0
        assert party.cash_amount == pytest.approx(-100.0)
        payer, payee = transfer_rows(transfer.id)
        assert payer.debit == 100.0
        assert payee.credit == 100.0
        assert payee.running_balance == other_party.cash_amount

    def test_small_gold_value_is_kept(self, db_session, party, other_party):
        fund_transfer_service.account_to_account_transfer(party.id, other_party.id, 0.004, "GOLD", actor_id=1)
        assert other_party.gold_total_grams == pytest.approx(0.004)

    def test_same_party_rejected(self, db_session, party):
        with pytest.raises(ValidationError) as exc:
            fund_transfer_service.account_to_account_transfer(party.id, party.id, 10, "CASH", actor_id=1)
        assert exc.value.code == "INVALID_PARTY"

    @pytest.mark.parametrize("value, asset_type, code", [
        (0, "CASH", "INVALID_VALUE"),
        (0.004, "CASH", "INVALID_VALUE"),
        ("ten", "CASH", "INVALID_VALUE"),
        (10, "SILVER", "INVALID_ASSET_TYPE"),
    ])
    def test_invalid_input(self, db_session, party, other_party, value, asset_type, code):
        with pytest.raises(ValidationError) as exc:
            fund_transfer_service.account_to_account_transfer(
                party.id, other_party.id, value, asset_type, actor_id=1,
            )
        assert exc.value.code == code

    def test_inactive_receiver(self, db_session, party, other_party):
        other_party.is_active = False
        db_session.commit()
        with pytest.raises(NotFoundError):
            fund_transfer_service.account_to_account_transfer(party.id, other_party.id, 10, "CASH", actor_id=1)
        assert party.cash_amount == 0

    def test_delete_restores_both_parties(self, db_session, party, other_party):
        transfer = fund_transfer_service.account_to_account_transfer(
            party.id, other_party.id, 300, "CASH", actor_id=1,
        )
        transfer_id = transfer.id

        result = fund_transfer_service.delete_fund_transfer(transfer_id, actor_id=1)

        assert result["registry_entries_deleted"] == 2
        assert party.cash_amount == pytest.approx(0, abs=0.01)
        assert other_party.cash_amount == pytest.approx(0, abs=0.01)
        with pytest.raises(NotFoundError) as exc:
            fund_transfer_service.get_fund_transfer(transfer_id)
        assert exc.value.code == "FUND_TRANSFER_NOT_FOUND"


class TestOpeningBalance:

    def test_positive_opening_credits_party(self, db_session, party):
        transfer = fund_transfer_service.opening_balance(party.id, 1000, "CASH", actor_id=1)

        assert transfer.is_opening_balance is True
        assert transfer.sender_id is None
        assert party.cash_amount == pytest.approx(1000)

        party_row, contra = transfer_rows(transfer.id)
        assert (party_row.type, party_row.credit, party_row.party_id) == ("PARTY_CASH_BALANCE", 1000, party.id)
        assert (contra.type, contra.debit, contra.party_id) == ("OPENING_CASH_BALANCE", 1000, None)

    def test_negative_opening_debits_party(self, db_session, party):
        transfer = fund_transfer_service.opening_balance(party.id, -40, "GOLD", actor_id=1)

        assert party.gold_total_grams == pytest.approx(-40)
        party_row, contra = transfer_rows(transfer.id)
        assert party_row.debit == 40
        assert contra.type == "OPENING_GOLD_BALANCE"
        assert contra.credit == 40

    def test_cash_opening_is_rounded(self, db_session, party):
        transfer = fund_transfer_service.opening_balance(party.id, 250.126, "CASH", actor_id=1)

        party_row, contra = transfer_rows(transfer.id)
        assert party_row.credit == 250.13
        assert contra.debit == 250.13
        assert party.cash_amount == pytest.approx(250.13)

    def test_cash_opening_rounding_to_zero(self, db_session, party):
        with pytest.raises(ValidationError) as exc:
            fund_transfer_service.opening_balance(party.id, 0.001, "CASH", actor_id=1)
        assert exc.value.code == "INVALID_VALUE"

    def test_second_opening_requires_confirmation(self, db_session, party):
        first = fund_transfer_service.opening_balance(party.id, 1000, "CASH", actor_id=1)

        with pytest.raises(ConflictError) as exc:
            fund_transfer_service.opening_balance(party.id, 2000, "CASH", actor_id=1)
        assert exc.value.code == "OPENING_BALANCE_EXISTS"
        assert exc.value.details["fund_transfer_id"] == first.id
        assert party.cash_amount == pytest.approx(1000)

    def test_confirmed_opening_replaces_previous(self, db_session, party):
        first = fund_transfer_service.opening_balance(party.id, 1000, "CASH", actor_id=1)
        first_id = first.id

        second = fund_transfer_service.opening_balance(party.id, 2000, "CASH", actor_id=1, confirm=True)

        assert party.cash_amount == pytest.approx(2000)
        assert transfer_rows(first_id) == []
        assert len(transfer_rows(second.id)) == 2
        assert [t.id for t in fund_transfer_service.list_fund_transfers(party_id=party.id)] == [second.id]

    def test_openings_are_per_asset(self, db_session, party):
        fund_transfer_service.opening_balance(party.id, 1000, "CASH", actor_id=1)
        fund_transfer_service.opening_balance(party.id, 25, "GOLD", actor_id=1)
        assert party.cash_amount == pytest.approx(1000)
        assert party.gold_total_grams == pytest.approx(25)
