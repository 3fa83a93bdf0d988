# Overview: Party account lookup and onboarding; balances are never written here.

from __future__ import annotations

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Account
from .concurrency import lock_for_update


def create_account(code: str, name: str) -> Account:
    code = (code or "").strip()
    name = (name or "").strip()
    if not code or not name:
        raise ValidationError("Account code and name are required", "MISSING_REQUIRED_FIELDS")
    if db.session.query(Account.id).filter_by(code=code).first():
        raise ConflictError(f"Account code {code} already exists", "DUPLICATE_ACCOUNT")

    account = Account(code=code, name=name, is_active=True)
    db.session.add(account)
    db.session.flush()
    return account


def get_account(account_id: int) -> Account:
    account = db.session.get(Account, account_id)
    if not account:
        raise NotFoundError(f"Account {account_id} not found", "PARTY_NOT_FOUND")
    return account


def get_account_by_code(code: str) -> Account:
    account = db.session.query(Account).filter_by(code=code).first()
    if not account:
        raise NotFoundError(f"Account {code} not found", "PARTY_NOT_FOUND")
    return account


def get_active_party(party_id: int, *, lock: bool = False) -> Account:
    """
    Fetch an active party by id.

    Raises NotFoundError(PARTY_NOT_FOUND) when the party is absent or
    inactive. ``lock`` takes the row lock used to serialize balance writers.
    """
    query = db.session.query(Account).filter(Account.id == party_id, Account.is_active.is_(True))
    if lock:
        query = lock_for_update(query)
    party = query.first()
    if not party:
        raise NotFoundError(f"Party {party_id} not found or inactive", "PARTY_NOT_FOUND")
    return party


def resolve_party_code(party_code) -> int:
    """Look up a party by account code only; digit-only codes are still codes."""
    if isinstance(party_code, bool) or party_code is None or not str(party_code).strip():
        raise ValidationError("Party code is required", "MISSING_REQUIRED_FIELDS")
    return get_account_by_code(str(party_code).strip()).id


def resolve_party_id(party_ref) -> int:
    """
    Accept an account id or an account code.

    Integers are ids. Strings match an account code first and are read as
    an id only when no account carries that code.
    """
    if isinstance(party_ref, bool) or party_ref is None:
        raise ValidationError("Party is required", "MISSING_REQUIRED_FIELDS")
    if isinstance(party_ref, int):
        return party_ref
    ref = str(party_ref).strip()
    if not ref:
        raise ValidationError("Party is required", "MISSING_REQUIRED_FIELDS")
    account_id = db.session.query(Account.id).filter_by(code=ref).scalar()
    if account_id is not None:
        return account_id
    if ref.isdigit():
        return int(ref)
    raise NotFoundError(f"Account {ref} not found", "PARTY_NOT_FOUND")


def deactivate_account(account_id: int) -> Account:
    """Accounts are never hard-deleted; postings keep referencing them."""
    account = get_account(account_id)
    account.is_active = False
    db.session.flush()
    return account


def list_accounts(include_inactive: bool = False) -> list[Account]:
    query = db.session.query(Account)
    if not include_inactive:
        query = query.filter(Account.is_active.is_(True))
    return query.order_by(Account.code.asc()).all()
