# backend/bullion_ledger/routes/system.py
"""
Health endpoint: database connectivity and ledger table counts.
"""

import time
from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Account, MetalTransaction, RegistryEntry
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "accounts": db.session.query(Account).count(),
            "metal_transactions": db.session.query(MetalTransaction).count(),
            "registry_entries": db.session.query(RegistryEntry).count(),
        }
    except SQLAlchemyError:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }
    elapsed_ms = (time.time() - start_time) * 1000
    return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}


@system_bp.get("/health")
def health():
    database = check_database_health()
    status = 200 if database["status"] == "healthy" else 503
    return jsonify({
        "status": database["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }), status
