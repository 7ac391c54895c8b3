# Overview: Request and permission decorators for API routes.

from functools import wraps

from flask import g, jsonify, request

from .extensions import db
from .models import Store
from .services import session_service
from .services.repositories import OrderRepository, TransactionRepository, UserRepository
from .statuses import OWNER_ORDER


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.current_user to the authenticated User.

    Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]
        user = session_service.validate_token(token)

        if not user:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = user
        return f(*args, **kwargs)

    return decorated_function


def _store_id_for_request(kwargs) -> int | None:
    if "store_id" in kwargs:
        store = db.session.get(Store, kwargs["store_id"])
        return store.id if store else None
    if "order_id" in kwargs:
        order = OrderRepository().get(kwargs["order_id"])
        return order.store_id if order else None
    if "transaction_id" in kwargs:
        transaction = TransactionRepository().get(kwargs["transaction_id"])
        if transaction is None or transaction.owner_type != OWNER_ORDER:
            return None
        return transaction.store_id
    return None


def require_store_member(f):
    """
    Require the current user to be a joined team member of the store named
    in the URL, or of the store that owns the order (or transaction) there.

    Unknown orders / transactions answer 404 so callers outside the store
    learn nothing more than "not found".
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401

        store_id = _store_id_for_request(kwargs)
        if store_id is None:
            return jsonify({"error": "Not found"}), 404

        if not UserRepository().is_joined_team_member(store_id, g.current_user.id):
            return jsonify({
                "error": "Permission denied",
                "message": "Only store team members can manage this order",
            }), 403

        g.store_id = store_id
        return f(*args, **kwargs)

    return decorated_function
