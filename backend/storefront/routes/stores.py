# Overview: Flask API routes for store-wide views of payments.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_store_member
from ..errors import StorefrontError
from ..services import settlement_service


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


@stores_bp.get("/<int:store_id>/transactions")
@require_auth
@require_store_member
def list_store_transactions_route(store_id: int):
    """
    List every transaction recorded in the store.

    Query params:
        filter: All (default), Paid, Pending Payment, Cancelled
        paid_by_user_id: only transactions paid (or owed) by this user
    """
    try:
        paid_by_user_id = request.args.get("paid_by_user_id", type=int)
        transactions = settlement_service.list_store_transactions(
            store_id,
            request.args.get("filter", "All"),
            paid_by_user_id=paid_by_user_id,
        )
        return jsonify({
            "transactions": [t.to_dict() for t in transactions],
            "count": len(transactions),
        }), 200
    except StorefrontError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to list store transactions")
        return jsonify({"error": "Internal server error"}), 500
