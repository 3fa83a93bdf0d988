# backend/bullion_ledger/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/bullion_ledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///bullion_ledger.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Registry base ids are "<prefix>-<year>-<seq>"
    LEDGER_TRANSACTION_ID_PREFIX = os.environ.get("LEDGER_TRANSACTION_ID_PREFIX", "TXN")

    # Net cash deltas are rounded to this many decimal places before being applied
    LEDGER_CASH_PRECISION = int(os.environ.get("LEDGER_CASH_PRECISION", "2"))

    # Whole-unit retries on lock/stale-data failures
    LEDGER_RETRY_ATTEMPTS = int(os.environ.get("LEDGER_RETRY_ATTEMPTS", "3"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
