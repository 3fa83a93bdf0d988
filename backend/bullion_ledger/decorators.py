# Overview: Request decorators for API routes: actor context and typed error mapping.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import LedgerError
from .extensions import db


def with_actor(f):
    """
    Establish the acting user for ledger writes.

    Sets g.actor_id from the X-Actor-Id header (default 0). Authentication
    is handled upstream of this service.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        raw = request.headers.get("X-Actor-Id", "0").strip()
        if not raw.isdigit():
            return jsonify({"error": "X-Actor-Id must be an integer", "code": "VALIDATION_ERROR"}), 400
        g.actor_id = int(raw)
        return f(*args, **kwargs)

    return decorated_function


def ledger_errors(f):
    """
    Map typed ledger errors to JSON responses.

    LedgerError -> its status_code with {"error", "code", "details"}.
    Anything else is logged with its traceback and returned as a generic 500.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except LedgerError as e:
            db.session.rollback()
            return jsonify(e.to_dict()), e.status_code
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Failed to handle %s %s", request.method, request.path)
            return jsonify({"error": "Internal server error occurred", "code": "INTERNAL_SERVER_ERROR"}), 500

    return decorated_function


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if data is not None else {}
