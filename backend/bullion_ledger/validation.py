"""
Payload parsing for ledger operations.

Everything here runs before a unit of work opens: bad input is rejected
with a typed ValidationError and nothing is written.
"""

from __future__ import annotations

import math
from typing import Any

from .errors import ValidationError
from .models import TRANSACTION_TYPES
from .time_utils import coerce_voucher_date


REQUIRED_CREATE_FIELDS = ("partyCode", "transactionType", "stockItems", "voucherDate", "voucherNumber")

# Fields an update may touch; everything else in the payload is ignored.
UPDATABLE_FIELDS = (
    "partyCode",
    "stockItems",
    "totalAmountSession",
    "voucherDate",
    "voucherNumber",
    "transactionType",
    "fixed",
    "unfix",
)


def coerce_number(value: Any, field: str, *, code: str = "INVALID_NUMBER", default: float = 0.0) -> float:
    """Float from int/float/numeric string; None and "" give ``default``."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", code)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a number", code) from None
    else:
        raise ValidationError(f"{field} must be a number", code)
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{field} must be a finite number", code)
    return number


def coerce_non_negative(value: Any, field: str, *, code: str = "INVALID_NUMBER", default: float = 0.0) -> float:
    number = coerce_number(value, field, code=code, default=default)
    if number < 0:
        raise ValidationError(f"{field} must be a non-negative number", code)
    return number


def coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def normalize_purity(value: Any, field: str = "purity") -> float:
    """
    Purity as a fraction in (0, 1].

    Values in (1, 100] are read as percentages and divided by 100.
    """
    purity = coerce_number(value, field, code="INVALID_PURITY", default=None)
    if purity is None:
        raise ValidationError(f"{field} is required", "INVALID_PURITY")
    if 1 < purity <= 100:
        purity = purity / 100
    if not 0 < purity <= 1:
        raise ValidationError(f"{field} must be between 0 and 1", "INVALID_PURITY")
    return purity


def _section(raw: dict, key: str) -> dict:
    value = raw.get(key)
    if value is None:
        return {}
    if isinstance(value, (int, float, str)) and not isinstance(value, bool):
        # flat form, e.g. "premium": -25
        return {"amount": value}
    if not isinstance(value, dict):
        raise ValidationError(f"{key} must be an object", "INVALID_STOCK_ITEMS")
    return value


def parse_stock_item(raw: Any, index: int, *, base: dict | None = None) -> dict:
    """
    Parse one stock item payload into StockItem column values.

    With ``base`` (the current column values of an existing item), fields
    missing from ``raw`` keep their current value.
    """
    if not isinstance(raw, dict):
        raise ValidationError(f"stockItems[{index}] must be an object", "INVALID_STOCK_ITEMS")
    base = base or {}
    label = f"stockItems[{index}]"

    def pick(section: dict, key: str, column: str, parser, **kwargs):
        if key in section:
            return parser(section[key], f"{label}.{key}", **kwargs)
        return base.get(column, kwargs.get("default", 0.0))

    if "stockId" in raw or "stock_id" in raw:
        stock_ref = raw.get("stockId", raw.get("stock_id"))
        if stock_ref is None or isinstance(stock_ref, bool):
            raise ValidationError(f"{label}.stockId is required", "INVALID_STOCK_ITEMS")
        try:
            stock_id = int(stock_ref)
        except (TypeError, ValueError):
            raise ValidationError(f"{label}.stockId must be a stock id", "INVALID_STOCK_ITEMS") from None
        stock_code = None
    elif "stockCode" in raw:
        stock_code = raw["stockCode"]
        if stock_code is None or isinstance(stock_code, bool) or not str(stock_code).strip():
            raise ValidationError(f"{label}.stockCode is required", "INVALID_STOCK_ITEMS")
        stock_code = str(stock_code).strip()
        stock_id = None
    elif base.get("stock_id") is not None:
        stock_id = base["stock_id"]
        stock_code = None
    else:
        raise ValidationError(f"{label}.stockId or {label}.stockCode is required", "INVALID_STOCK_ITEMS")

    gross_weight = pick(raw, "grossWeight", "gross_weight", coerce_non_negative, code="INVALID_GROSS_WEIGHT")
    if "purity" in raw:
        purity = normalize_purity(raw["purity"], f"{label}.purity")
    elif "purity" in base:
        purity = base["purity"]
    else:
        raise ValidationError(f"{label}.purity is required", "INVALID_PURITY")

    if "pureWeight" in raw:
        pure_weight = coerce_non_negative(raw["pureWeight"], f"{label}.pureWeight", code="INVALID_PURE_WEIGHT")
    elif "grossWeight" in raw or "purity" in raw or "pure_weight" not in base:
        pure_weight = gross_weight * purity
    else:
        pure_weight = base["pure_weight"]

    rate = _section(raw, "metalRateRequirements")
    making = _section(raw, "makingCharges")
    vat = _section(raw, "vat")
    other = _section(raw, "otherCharges")
    premium = _section(raw, "premium")
    item_total = _section(raw, "itemTotal")

    pieces = raw.get("pieces", base.get("pieces", 0))
    if pieces in (None, ""):
        pieces = 0
    if isinstance(pieces, bool):
        raise ValidationError(f"{label}.pieces must be an integer", "INVALID_NUMBER")
    try:
        pieces = int(float(pieces))
    except (TypeError, ValueError):
        raise ValidationError(f"{label}.pieces must be an integer", "INVALID_NUMBER") from None
    if pieces < 0:
        raise ValidationError(f"{label}.pieces must be non-negative", "INVALID_NUMBER")

    parsed = {
        "stock_id": stock_id,
        "description": raw.get("description", base.get("description")),
        "pieces": pieces,
        "gross_weight": gross_weight,
        "purity": purity,
        "pure_weight": pure_weight,
        "weight_in_oz": pick(raw, "weightInOz", "weight_in_oz", coerce_non_negative),
        "metal_rate": pick(rate, "rate", "metal_rate", coerce_non_negative),
        "metal_rate_amount": pick(rate, "amount", "metal_rate_amount", coerce_non_negative),
        "making_charges_amount": pick(making, "amount", "making_charges_amount", coerce_non_negative),
        "making_charges_rate": pick(making, "rate", "making_charges_rate", coerce_non_negative),
        "vat_percentage": pick(vat, "percentage", "vat_percentage", coerce_non_negative),
        "vat_amount": pick(vat, "amount", "vat_amount", coerce_non_negative),
        "other_charges_amount": pick(other, "amount", "other_charges_amount", coerce_non_negative),
        "other_charges_rate": pick(other, "rate", "other_charges_rate", coerce_non_negative),
        "other_charges_description": other.get("description", base.get("other_charges_description")),
        "premium_amount": pick(premium, "amount", "premium_amount", coerce_number, code="INVALID_PREMIUM_DISCOUNT"),
        "premium_rate": pick(premium, "rate", "premium_rate", coerce_number, code="INVALID_PREMIUM_DISCOUNT"),
        "base_amount": pick(item_total, "baseAmount", "base_amount", coerce_non_negative),
        "making_charges_total": pick(item_total, "makingChargesTotal", "making_charges_total", coerce_non_negative),
        "premium_total": pick(
            item_total, "premiumTotal", "premium_total", coerce_number, code="INVALID_PREMIUM_DISCOUNT",
        ),
        "sub_total": pick(item_total, "subTotal", "sub_total", coerce_non_negative),
        "item_vat_amount": pick(item_total, "vatAmount", "item_vat_amount", coerce_non_negative),
        "item_total_amount": pick(item_total, "itemTotalAmount", "item_total_amount", coerce_non_negative),
    }
    if stock_code is not None:
        parsed["stock_code"] = stock_code
    return parsed


def parse_stock_items(raw: Any) -> list[dict]:
    if not isinstance(raw, list) or not raw:
        raise ValidationError("stockItems must be a non-empty list", "INVALID_STOCK_ITEMS")
    return [parse_stock_item(item, index) for index, item in enumerate(raw)]


def parse_session_totals(raw: Any) -> dict | None:
    """
    Parse totalAmountSession. Returns None when totalAmountAED is absent,
    in which case the caller derives the session totals from the items.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("totalAmountSession must be an object", "INVALID_NUMBER")
    vat_percentage = coerce_non_negative(raw.get("vatPercentage"), "totalAmountSession.vatPercentage")
    if raw.get("totalAmountAED") in (None, ""):
        return {"vatPercentage": vat_percentage, "totalAmountAED": None}
    return {
        "totalAmountAED": coerce_non_negative(raw.get("totalAmountAED"), "totalAmountSession.totalAmountAED"),
        "netAmountAED": coerce_non_negative(raw.get("netAmountAED"), "totalAmountSession.netAmountAED"),
        "vatAmount": coerce_non_negative(raw.get("vatAmount"), "totalAmountSession.vatAmount"),
        "vatPercentage": vat_percentage,
    }


def parse_transaction_type(value: Any) -> str:
    if value not in TRANSACTION_TYPES:
        raise ValidationError(
            f"transactionType must be one of {', '.join(TRANSACTION_TYPES)}",
            "INVALID_TRANSACTION_TYPE",
        )
    return value


def parse_voucher_date(value: Any):
    try:
        return coerce_voucher_date(value)
    except ValueError:
        raise ValidationError("voucherDate must be an ISO-8601 date", "INVALID_DATE") from None


def validate_create_payload(payload: Any) -> dict:
    """Validate a metal transaction create payload and normalize it."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object", "MISSING_REQUIRED_FIELDS")

    missing = [key for key in REQUIRED_CREATE_FIELDS if payload.get(key) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            "MISSING_REQUIRED_FIELDS",
            {"missing": missing},
        )

    return {
        "party_ref": payload["partyCode"],
        "transaction_type": parse_transaction_type(payload["transactionType"]),
        "fixed": coerce_bool(payload.get("fixed", False)),
        "unfix": coerce_bool(payload.get("unfix", False)),
        "voucher_type": payload.get("voucherType"),
        "voucher_number": str(payload["voucherNumber"]).strip(),
        "voucher_date": parse_voucher_date(payload["voucherDate"]),
        "items": parse_stock_items(payload.get("stockItems")),
        "session": parse_session_totals(payload.get("totalAmountSession")),
        "notes": payload.get("notes"),
    }


def validate_update_payload(payload: Any) -> dict:
    """Keep only allow-listed fields; an update with none of them is rejected."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object", "NO_UPDATE_DATA")

    present = [key for key in UPDATABLE_FIELDS if key in payload]
    if not present:
        raise ValidationError("No valid fields to update", "NO_UPDATE_DATA")

    changes: dict = {}
    if "partyCode" in payload:
        if payload["partyCode"] in (None, ""):
            raise ValidationError("partyCode cannot be empty", "MISSING_REQUIRED_FIELDS")
        changes["party_ref"] = payload["partyCode"]
    if "transactionType" in payload:
        changes["transaction_type"] = parse_transaction_type(payload["transactionType"])
    if "fixed" in payload:
        changes["fixed"] = coerce_bool(payload["fixed"])
    if "unfix" in payload:
        changes["unfix"] = coerce_bool(payload["unfix"])
    if "voucherNumber" in payload:
        if payload["voucherNumber"] in (None, ""):
            raise ValidationError("voucherNumber cannot be empty", "MISSING_REQUIRED_FIELDS")
        changes["voucher_number"] = str(payload["voucherNumber"]).strip()
    if "voucherDate" in payload:
        changes["voucher_date"] = parse_voucher_date(payload["voucherDate"])
    if "stockItems" in payload:
        changes["items"] = parse_stock_items(payload["stockItems"])
    if "totalAmountSession" in payload:
        changes["session"] = parse_session_totals(payload["totalAmountSession"])
    return changes
