# Overview: Flask API routes for individual transactions; parses input and returns JSON responses.

"""
Transaction API Routes

DESIGN:
- Cancel / uncancel keep the transaction for the audit trail
- Delete removes an order transaction outright
- Payment links can be renewed while a request is pending
- The gateway reports payments through the provider callback, which is
  verified with the gateway before anything is marked paid
- Payments confirmed by hand can carry a proof of payment upload
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_store_member
from ..errors import StorefrontError
from ..services import settlement_service


transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


def _error(e: StorefrontError):
    return jsonify(e.to_dict()), e.http_status


def _with_summary(transaction) -> dict:
    body = {"transaction": transaction.to_dict()}
    if transaction.owner_type == "order":
        body["summary"] = settlement_service.get_payment_summary(transaction.owner_id)
    return body


@transactions_bp.get("/<int:transaction_id>")
@require_auth
@require_store_member
def get_transaction_route(transaction_id: int):
    try:
        transaction = settlement_service.get_transaction(transaction_id)
        return jsonify({"transaction": transaction.to_dict()}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to get transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<int:transaction_id>/cancel")
@require_auth
@require_store_member
def cancel_transaction_route(transaction_id: int):
    """Request body: {"reason": "Customer changed their mind"} (optional)"""
    try:
        data = request.get_json(silent=True) or {}
        transaction = settlement_service.cancel_transaction(transaction_id, g.current_user.id, data.get("reason"))
        return jsonify(_with_summary(transaction)), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to cancel transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<int:transaction_id>/uncancel")
@require_auth
@require_store_member
def uncancel_transaction_route(transaction_id: int):
    try:
        transaction = settlement_service.uncancel_transaction(transaction_id, g.current_user.id)
        return jsonify(_with_summary(transaction)), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to uncancel transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.delete("/<int:transaction_id>")
@require_auth
@require_store_member
def delete_transaction_route(transaction_id: int):
    try:
        settlement_service.delete_transaction(transaction_id, g.current_user.id)
        return jsonify({"deleted": True}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to delete transaction")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<int:transaction_id>/payment-link")
@require_auth
@require_store_member
def renew_payment_link_route(transaction_id: int):
    try:
        transaction = settlement_service.renew_payment_link(transaction_id, g.current_user.id)
        return jsonify({"transaction": transaction.to_dict()}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to renew payment link")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<int:transaction_id>/provider-callback")
def provider_callback_route(transaction_id: int):
    """
    Gateway callback after the payer completes (or abandons) a payment.

    No bearer token: the callback is trusted only after the gateway itself
    confirms the payment.
    """
    try:
        payload = request.get_json(silent=True) or dict(request.args)
        transaction = settlement_service.confirm_provider_payment(transaction_id, payload)
        return jsonify({
            "transaction_id": transaction.id,
            "payment_status": transaction.payment_status,
        }), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to confirm provider payment")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("/<int:transaction_id>/proof-of-payment")
@require_auth
@require_store_member
def get_proof_of_payment_route(transaction_id: int):
    try:
        url = settlement_service.get_proof_of_payment(transaction_id)
        return jsonify({"proof_of_payment_url": url}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to get proof of payment")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.post("/<int:transaction_id>/proof-of-payment")
@require_auth
@require_store_member
def update_proof_of_payment_route(transaction_id: int):
    """Multipart upload: proof_of_payment_photo=<png, jpg or pdf file>"""
    if "proof_of_payment_photo" not in request.files:
        return jsonify({"error": "proof_of_payment_photo is required"}), 400

    file = request.files["proof_of_payment_photo"]
    filename = file.filename or ""
    suffix = "." + filename.split(".")[-1].lower() if "." in filename else ""

    try:
        transaction = settlement_service.update_proof_of_payment(
            transaction_id, g.current_user.id, file.stream.read(), suffix=suffix
        )
        return jsonify({"proof_of_payment_url": transaction.proof_of_payment_url}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to update proof of payment")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.delete("/<int:transaction_id>/proof-of-payment")
@require_auth
@require_store_member
def remove_proof_of_payment_route(transaction_id: int):
    try:
        settlement_service.remove_proof_of_payment(transaction_id, g.current_user.id)
        return jsonify({"proof_of_payment_url": None}), 200
    except StorefrontError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to remove proof of payment")
        return jsonify({"error": "Internal server error"}), 500
