# backend/storefront/routes/system.py
"""
System health endpoint.

Reports database connectivity and how the external collaborators
(payment gateway, asset store) are configured.
"""

import time
from pathlib import Path

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Order, Store, Transaction
from ..services.collaborators import get_collaborators
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """
    Check database connectivity and basic operations.

    Returns dict with status and details.
    """
    start_time = time.time()
    try:
        store_count = db.session.query(Store).count()
        order_count = db.session.query(Order).count()
        transaction_count = db.session.query(Transaction).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "stores": store_count,
                "orders": order_count,
                "transactions": transaction_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


def check_payment_provider_health() -> dict:
    """
    Configuration-only check: the gateway itself is not called.

    No gateway configured means every payment method is manual; the system
    still works, so this reports degraded rather than unhealthy.
    """
    methods = sorted(get_collaborators().payment_providers)
    if not methods:
        return {
            "status": "degraded",
            "warning": "No payment gateway configured; all payment methods are manual",
        }
    return {"status": "healthy", "details": {"gateway_methods": methods}}


def check_asset_store_health() -> dict:
    root = Path(current_app.config["ASSET_STORE_DIR"])
    if root.exists() and not root.is_dir():
        return {"status": "unhealthy", "error": f"{root} is not a directory"}
    return {"status": "healthy", "details": {"root": str(root), "exists": root.exists()}}


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: All systems healthy (or degraded but operational)
    - 503: One or more systems unhealthy
    """
    start_time = time.time()

    database_health = check_database_health()
    provider_health = check_payment_provider_health()
    asset_health = check_asset_store_health()

    all_checks = [database_health, provider_health, asset_health]
    unhealthy_count = sum(1 for check in all_checks if check["status"] == "unhealthy")
    degraded_count = sum(1 for check in all_checks if check["status"] == "degraded")

    if unhealthy_count > 0:
        overall_status = "unhealthy"
        http_status = 503
    elif degraded_count > 0:
        overall_status = "degraded"
        http_status = 200
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "database": database_health,
            "payment_provider": provider_health,
            "asset_store": asset_health,
        }
    }

    return response, http_status
