"""
Tests for payload parsing ahead of a unit of work.
"""

import pytest

from bullion_ledger.errors import ValidationError
from bullion_ledger.validation import (
    coerce_bool,
    coerce_number,
    normalize_purity,
    parse_session_totals,
    parse_stock_item,
    validate_create_payload,
    validate_update_payload,
)


def create_payload(**overrides):
    payload = {
        "partyCode": "P001",
        "transactionType": "sale",
        "voucherNumber": " MS-1 ",
        "voucherDate": "2026-03-01T10:00:00Z",
        "stockItems": [{"stockId": 1, "grossWeight": 10, "purity": 99.99}],
    }
    payload.update(overrides)
    return payload


class TestNumbers:

    @pytest.mark.parametrize("raw, expected", [(3, 3.0), ("2.5", 2.5), (None, 0.0), ("", 0.0)])
    def test_coerce_number(self, raw, expected):
        assert coerce_number(raw, "x") == expected

    @pytest.mark.parametrize("raw", ["abc", True, [1], float("nan"), float("inf")])
    def test_coerce_number_rejects(self, raw):
        with pytest.raises(ValidationError) as exc:
            coerce_number(raw, "x")
        assert exc.value.code == "INVALID_NUMBER"

    @pytest.mark.parametrize("raw, expected", [("true", True), ("0", False), (1, True), (None, False)])
    def test_coerce_bool(self, raw, expected):
        assert coerce_bool(raw) is expected


class TestPurity:

    @pytest.mark.parametrize("raw, expected", [(0.995, 0.995), (1, 1.0), (99.5, 0.995), ("100", 1.0)])
    def test_normalized_to_fraction(self, raw, expected):
        assert normalize_purity(raw) == pytest.approx(expected)

    @pytest.mark.parametrize("raw", [0, -1, 101, None])
    def test_out_of_range(self, raw):
        with pytest.raises(ValidationError) as exc:
            normalize_purity(raw)
        assert exc.value.code == "INVALID_PURITY"


class TestStockItem:

    def test_nested_sections(self):
        item = parse_stock_item({
            "stockId": "3",
            "pieces": 2,
            "grossWeight": 10,
            "purity": 0.9,
            "metalRateRequirements": {"rate": 250, "amount": 2250},
            "makingCharges": {"amount": 15, "rate": 1.5},
            "vat": {"percentage": 5, "amount": 0.75},
            "otherCharges": {"amount": 3, "description": "assay"},
            "premium": {"amount": -4},
            "itemTotal": {"baseAmount": 2250, "makingChargesTotal": 15, "subTotal": 2265},
        }, 0)
        assert item["stock_id"] == 3
        assert item["pure_weight"] == pytest.approx(9)
        assert item["metal_rate"] == 250
        assert item["making_charges_amount"] == 15
        assert item["vat_amount"] == 0.75
        assert item["other_charges_description"] == "assay"
        assert item["premium_amount"] == -4
        assert item["base_amount"] == 2250
        assert item["sub_total"] == 2265

    def test_flat_premium(self):
        item = parse_stock_item({"stockId": 1, "purity": 1, "premium": 12}, 0)
        assert item["premium_amount"] == 12

    def test_explicit_pure_weight_wins(self):
        item = parse_stock_item({"stockId": 1, "grossWeight": 105, "purity": 1, "pureWeight": 100}, 0)
        assert item["pure_weight"] == 100

    def test_base_fills_missing_fields(self):
        base = parse_stock_item({"stockId": 1, "grossWeight": 10, "purity": 1, "makingCharges": 7}, 0)
        item = parse_stock_item({"grossWeight": 20}, 0, base=base)
        assert item["stock_id"] == 1
        assert item["gross_weight"] == 20
        assert item["pure_weight"] == 20
        assert item["making_charges_amount"] == 7

    def test_stock_code_is_kept_for_lookup(self):
        item = parse_stock_item({"stockCode": " 1001 ", "purity": 1}, 0)
        assert item["stock_code"] == "1001"
        assert item["stock_id"] is None

    def test_stock_id_item_carries_no_code(self):
        assert "stock_code" not in parse_stock_item({"stockId": 4, "purity": 1}, 0)

    @pytest.mark.parametrize("raw, code", [
        ({"purity": 1}, "INVALID_STOCK_ITEMS"),
        ({"stockId": "abc", "purity": 1}, "INVALID_STOCK_ITEMS"),
        ({"stockCode": "  ", "purity": 1}, "INVALID_STOCK_ITEMS"),
        ({"stockCode": None, "purity": 1}, "INVALID_STOCK_ITEMS"),
        ({"stockId": 1}, "INVALID_PURITY"),
        ({"stockId": 1, "purity": 1, "grossWeight": -1}, "INVALID_GROSS_WEIGHT"),
        ({"stockId": 1, "purity": 1, "makingCharges": {"amount": -5}}, "INVALID_NUMBER"),
        ({"stockId": 1, "purity": 1, "pieces": -1}, "INVALID_NUMBER"),
        ("not an object", "INVALID_STOCK_ITEMS"),
    ])
    def test_rejected_items(self, raw, code):
        with pytest.raises(ValidationError) as exc:
            parse_stock_item(raw, 0)
        assert exc.value.code == code


class TestCreatePayload:

    def test_normalizes(self):
        data = validate_create_payload(create_payload())
        assert data["voucher_number"] == "MS-1"
        assert data["voucher_date"].hour == 10
        assert data["fixed"] is False and data["unfix"] is False
        assert data["items"][0]["purity"] == pytest.approx(0.9999)
        assert data["session"] is None

    def test_lists_all_missing_fields(self):
        with pytest.raises(ValidationError) as exc:
            validate_create_payload({"transactionType": "sale"})
        assert exc.value.details["missing"] == ["partyCode", "stockItems", "voucherDate", "voucherNumber"]

    def test_bad_date(self):
        with pytest.raises(ValidationError) as exc:
            validate_create_payload(create_payload(voucherDate="yesterday"))
        assert exc.value.code == "INVALID_DATE"

    def test_session_without_total_is_derived_later(self):
        session = parse_session_totals({"vatPercentage": 5})
        assert session == {"vatPercentage": 5.0, "totalAmountAED": None}

    def test_negative_session_total(self):
        with pytest.raises(ValidationError):
            parse_session_totals({"totalAmountAED": -1})


class TestUpdatePayload:

    def test_keeps_only_allowed_fields(self):
        changes = validate_update_payload({"voucherNumber": "X-2", "status": "completed", "createdBy": 9})
        assert changes == {"voucher_number": "X-2"}

    @pytest.mark.parametrize("payload", [{}, {"status": "completed"}, None])
    def test_nothing_to_update(self, payload):
        with pytest.raises(ValidationError) as exc:
            validate_update_payload(payload)
        assert exc.value.code == "NO_UPDATE_DATA"

    def test_empty_party_rejected(self):
        with pytest.raises(ValidationError):
            validate_update_payload({"partyCode": ""})
