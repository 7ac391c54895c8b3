# Overview: Service-layer operations for users, stores and store team membership.

from __future__ import annotations

from flask import current_app

from ..errors import StoreNotFound, UserNotFound
from ..extensions import db
from ..models import Store, StoreMembership, User
from ..money import Money
from . import session_service


class AccountError(ValueError):
    """Raised when account details are invalid or already taken."""
    pass


def create_user(first_name: str, last_name: str, mobile_number: str) -> User:
    first_name = (first_name or "").strip()
    last_name = (last_name or "").strip()
    mobile_number = (mobile_number or "").strip()

    if not first_name or not last_name:
        raise AccountError("First and last name are required")
    if not mobile_number:
        raise AccountError("Mobile number is required")
    if db.session.query(User).filter_by(mobile_number=mobile_number).first():
        raise AccountError(f"Mobile number {mobile_number} is already registered")

    user = User(first_name=first_name, last_name=last_name, mobile_number=mobile_number, is_active=True)
    db.session.add(user)
    db.session.commit()
    return user


def create_store(name: str, currency: str | None = None) -> Store:
    name = (name or "").strip()
    if not name:
        raise AccountError("Store name is required")

    # Validates the ISO code the same way order amounts are validated
    currency = Money.zero(currency or current_app.config["DEFAULT_CURRENCY"]).currency

    store = Store(name=name, currency=currency)
    db.session.add(store)
    db.session.commit()
    return store


def add_team_member(store_id: int, user_id: int, role: str = "Team Member", has_joined: bool = True) -> StoreMembership:
    """Add a user to a store team (or update their role / joined flag)."""
    if not db.session.get(Store, store_id):
        raise StoreNotFound(f"Store {store_id} not found")
    if not db.session.get(User, user_id):
        raise UserNotFound(f"User {user_id} not found")

    membership = db.session.query(StoreMembership).filter_by(store_id=store_id, user_id=user_id).first()
    if membership is None:
        membership = StoreMembership(store_id=store_id, user_id=user_id)
        db.session.add(membership)
    membership.role = role
    membership.has_joined = has_joined
    db.session.commit()
    return membership


def deactivate_user(user_id: int) -> int:
    """
    Deactivate a user and revoke their API tokens.

    Returns the number of tokens revoked. Deactivating twice is harmless.
    """
    user = db.session.get(User, user_id)
    if not user:
        raise UserNotFound(f"User {user_id} not found")

    user.is_active = False
    db.session.flush()
    revoked = session_service.revoke_all_user_tokens(user.id)
    current_app.logger.info("Deactivated user %s, revoked %s token(s)", user.id, revoked)
    return revoked
