# Overview: Flask API routes for order settlement and collection; parses input and returns JSON responses.

"""
Order API Routes

DESIGN:
- Payment requests and verified payments are created against an order
- Ledger summary, transaction lists and payers are read per order
- Lifecycle: status changes, cancel / uncancel, delete
- Collection: collectors issue / revoke their code, team members redeem it

SECURITY:
- Every route requires a bearer token
- Settlement and lifecycle routes require joined membership of the order's store
- Collection code issue / revoke is for users allowed to collect the order
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_store_member
from ..errors import StorefrontError
from ..services import audit_service, collection_service, order_service, settlement_service


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


def _payment_kwargs(data: dict) -> dict:
    return {
        "amount_cents": data.get("amount_cents"),
        "percentage": data.get("percentage"),
        "currency": data.get("currency"),
        "paid_by_user_id": data.get("paid_by_user_id"),
        "payer_mobile_number": data.get("payer_mobile_number"),
        "payment_method": data.get("payment_method"),
    }


def _error(e: StorefrontError):
    return jsonify(e.to_dict()), e.http_status


# =============================================================================
# ORDER QUERIES
# =============================================================================

@orders_bp.get("/<int:order_id>")
@require_auth
@require_store_member
def get_order_route(order_id: int):
    try:
        order = settlement_service.get_order(order_id)
        return jsonify({
            "order": order.to_dict(),
            "collectors": [a.to_dict() for a in order_service.list_collectors(order_id)],
        }), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to get order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/payment-summary")
@require_auth
@require_store_member
def get_payment_summary_route(order_id: int):
    try:
        return jsonify({"summary": settlement_service.get_payment_summary(order_id)}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to get payment summary")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/transactions")
@require_auth
@require_store_member
def list_transactions_route(order_id: int):
    """
    List an order's transactions.

    Query params:
        filter: All (default), Paid, Pending Payment, Cancelled
    """
    try:
        status_filter = request.args.get("filter", "All")
        transactions = settlement_service.list_order_transactions(order_id, status_filter)
        return jsonify({
            "transactions": [t.to_dict() for t in transactions],
            "count": len(transactions),
        }), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to list order transactions")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/transactions/filters")
@require_auth
@require_store_member
def list_transaction_filters_route(order_id: int):
    try:
        return jsonify({"filters": settlement_service.list_transaction_filter_counts(order_id)}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to list transaction filters")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/paying-users")
@require_auth
@require_store_member
def list_paying_users_route(order_id: int):
    try:
        return jsonify({"users": settlement_service.list_paying_users(order_id)}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to list paying users")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.get("/<int:order_id>/events")
@require_auth
@require_store_member
def list_events_route(order_id: int):
    try:
        settlement_service.get_order(order_id)
        events = audit_service.list_order_events(order_id, request.args.get("event_type"))
        return jsonify({"events": [e.to_dict() for e in events]}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to list order events")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENTS
# =============================================================================

@orders_bp.post("/<int:order_id>/payment-requests")
@require_auth
@require_store_member
def request_payment_route(order_id: int):
    """
    Request a payment on an order.

    Request body:
    {
        "amount_cents": 6000,          (or "percentage": 60)
        "currency": "BWP",             (optional, must match the order)
        "paid_by_user_id": 12,         (optional, a user tagged on the order)
        "payer_mobile_number": "+267...", (optional)
        "payment_method": "CARD"       (optional; gateway methods return a payment link)
    }

    Returns:
        201: Pending transaction and updated summary
        4xx: Rule violation ({"error", "code"})
        502: Gateway failure; the pending transaction id is included
    """
    try:
        data = request.get_json(silent=True) or {}
        transaction = settlement_service.request_payment(
            order_id,
            g.current_user.id,
            **_payment_kwargs(data),
        )
        return jsonify({
            "transaction": transaction.to_dict(),
            "summary": settlement_service.get_payment_summary(order_id),
        }), 201
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to request payment")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/verified-payments")
@require_auth
@require_store_member
def record_verified_payment_route(order_id: int):
    """Record a payment taken outside the platform. Same body as payment requests."""
    try:
        data = request.get_json(silent=True) or {}
        transaction = settlement_service.record_verified_payment(
            order_id,
            g.current_user.id,
            **_payment_kwargs(data),
        )
        return jsonify({
            "transaction": transaction.to_dict(),
            "summary": settlement_service.get_payment_summary(order_id),
        }), 201
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to record verified payment")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# LIFECYCLE
# =============================================================================

@orders_bp.post("/<int:order_id>/status")
@require_auth
@require_store_member
def update_status_route(order_id: int):
    """
    Update the order status.

    Accepts a JSON body or query params (the collection QR code embeds the
    query form):
        status: waiting | on its way | ready for pickup | completed
        collection_code: required for completed
    """
    try:
        data = request.get_json(silent=True) or {}
        status = data.get("status") or request.args.get("status")
        collection_code = data.get("collection_code") or request.args.get("collection_code")

        if not status:
            return jsonify({"error": "status required"}), 400

        order = order_service.update_order_status(
            order_id,
            status,
            g.current_user.id,
            collection_code=collection_code,
        )
        return jsonify({"order": order.to_dict()}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/cancel")
@require_auth
@require_store_member
def cancel_order_route(order_id: int):
    try:
        data = request.get_json(silent=True) or {}
        order = order_service.cancel_order(order_id, g.current_user.id, data.get("reason"))
        return jsonify({"order": order.to_dict()}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/uncancel")
@require_auth
@require_store_member
def uncancel_order_route(order_id: int):
    try:
        order = order_service.uncancel_order(order_id, g.current_user.id)
        return jsonify({"order": order.to_dict()}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to uncancel order")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>")
@require_auth
@require_store_member
def delete_order_route(order_id: int):
    try:
        order_service.delete_order(order_id, g.current_user.id)
        return jsonify({"deleted": True}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to delete order")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# COLLECTORS & COLLECTION CODES
# =============================================================================

@orders_bp.post("/<int:order_id>/collectors")
@require_auth
@require_store_member
def add_collectors_route(order_id: int):
    """Request body: {"user_ids": [3, 4], "can_collect": true}"""
    try:
        data = request.get_json(silent=True) or {}
        user_ids = data.get("user_ids")
        if not isinstance(user_ids, list) or not user_ids:
            return jsonify({"error": "user_ids required"}), 400

        associations = order_service.add_collectors(order_id, user_ids, bool(data.get("can_collect", True)))
        return jsonify({"collectors": [a.to_dict() for a in associations]}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to add collectors")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>/collectors/<int:user_id>")
@require_auth
@require_store_member
def remove_collector_route(order_id: int, user_id: int):
    try:
        order_service.remove_collector(order_id, user_id)
        return jsonify({"removed": True}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to remove collector")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/collection-code")
@require_auth
def issue_collection_code_route(order_id: int):
    """Issue the caller's collection code (callers must be allowed to collect)."""
    try:
        association = collection_service.issue_collection_code(order_id, g.current_user.id)
        return jsonify({
            "collection_code": association.collection_code,
            "collection_qr_code": association.collection_qr_code,
            "collection_code_expires_at": association.to_dict()["collection_code_expires_at"],
        }), 201
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to issue collection code")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.delete("/<int:order_id>/collection-code")
@require_auth
def revoke_collection_code_route(order_id: int):
    try:
        collection_service.revoke_collection_code(order_id, g.current_user.id)
        return jsonify({"message": "The collection code was revoked"}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to revoke collection code")
        return jsonify({"error": "Internal server error"}), 500


@orders_bp.post("/<int:order_id>/collection-code/redeem")
@require_auth
@require_store_member
def redeem_collection_code_route(order_id: int):
    """Request body: {"collection_code": "123456"}"""
    try:
        data = request.get_json(silent=True) or {}
        code = data.get("collection_code")
        if not code:
            return jsonify({"error": "collection_code required"}), 400

        order = collection_service.redeem_collection_code(order_id, str(code), g.current_user.id)
        return jsonify({"order": order.to_dict()}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to redeem collection code")
        return jsonify({"error": "Internal server error"}), 500
