# Overview: Flask API routes for tokens and mobile verification codes.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..services import mobile_verification_service, session_service, verification_throttle_service


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the token used for this request."""
    try:
        token = request.headers["Authorization"].split(" ", 1)[1]
        session_service.revoke_token(token)
        return jsonify({"message": "Logged out"}), 200
    except Exception:
        current_app.logger.exception("Failed to log out")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/mobile-verification-code/verify")
@require_auth
def verify_mobile_code_route():
    """
    Check a mobile verification code.

    Request body: {"mobile_number": "+26772000001", "verification_code": "123456"}

    Repeated failures for one mobile number lock further checks (429).
    """
    data = request.get_json(silent=True) or {}
    mobile_number = data.get("mobile_number")
    code = data.get("verification_code")

    if not mobile_number or not code:
        return jsonify({"error": "mobile_number and verification_code required"}), 400

    locked, seconds_remaining = verification_throttle_service.is_locked(mobile_number)
    if locked:
        return jsonify({
            "error": "Too many failed verification attempts for this mobile number",
            "locked": True,
            "retry_after_seconds": seconds_remaining,
        }), 429

    if mobile_verification_service.verify_code(mobile_number, str(code)):
        verification_throttle_service.record_successful_attempt(mobile_number, g.current_user.id)
        return jsonify({"is_valid": True}), 200

    failed_count = verification_throttle_service.record_failed_attempt(mobile_number, g.current_user.id)
    remaining = verification_throttle_service.MAX_FAILED_ATTEMPTS - failed_count
    if remaining <= 0:
        current_app.logger.warning("Mobile verification locked for %s", mobile_number)
        return jsonify({
            "error": "Too many failed verification attempts for this mobile number",
            "locked": True,
            "retry_after_seconds": int(verification_throttle_service.LOCKOUT_DURATION.total_seconds()),
        }), 429

    return jsonify({"is_valid": False, "attempts_remaining": remaining}), 200
