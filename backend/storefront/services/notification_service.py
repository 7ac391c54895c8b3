# Overview: Notifier contract, default logging notifier and order event payloads.

"""
Notifications

Notifications are fire-and-forget: services dispatch them only after their
unit of work has committed, and a failing notifier is logged and ignored so
it can never undo or block a ledger change.

Payloads are plain dicts; channel formatting (push, SMS wording) belongs to
whatever Notifier implementation is plugged in.
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app

from ..models import Order, Transaction, User


class Notifier:
    def notify(self, user_ids: list[int], payload: dict) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Default notifier: records the event in the application log."""

    def notify(self, user_ids: list[int], payload: dict) -> None:
        current_app.logger.info(
            "Notification %s for order %s to users %s",
            payload.get("event"), payload.get("order_id"), user_ids,
        )


def dispatch(notifier: Notifier | None, user_ids: Iterable[int], payload: dict) -> None:
    recipients = sorted({uid for uid in user_ids if uid is not None})
    if notifier is None or not recipients:
        return
    try:
        notifier.notify(recipients, payload)
    except Exception:
        current_app.logger.exception("Failed to deliver %s notification", payload.get("event"))


# =============================================================================
# PAYLOADS
# =============================================================================

def _order_fields(order: Order) -> dict:
    return {
        "order_id": order.id,
        "order_number": order.number,
        "store_id": order.store_id,
        "payment_status": order.payment_status,
        "status": order.status,
    }


def _transaction_fields(transaction: Transaction) -> dict:
    return {
        "transaction_id": transaction.id,
        "amount_cents": transaction.amount_cents,
        "currency": transaction.currency,
        "payment_method": transaction.payment_method,
    }


def order_payment_requested(order: Order, transaction: Transaction, requested_by: User | None) -> dict:
    return {
        "event": "order.payment_requested",
        **_order_fields(order),
        **_transaction_fields(transaction),
        "payment_link_url": transaction.payment_link_url,
        "requested_by_user_id": requested_by.id if requested_by else None,
    }


def order_marked_as_paid(order: Order, transaction: Transaction, verified_by: User | None) -> dict:
    return {
        "event": "order.marked_as_paid",
        **_order_fields(order),
        **_transaction_fields(transaction),
        "verified_by_user_id": verified_by.id if verified_by else None,
    }


def order_paid_online(order: Order, transaction: Transaction) -> dict:
    return {
        "event": "order.paid_online",
        **_order_fields(order),
        **_transaction_fields(transaction),
        "paid_by_user_id": transaction.paid_by_user_id,
    }


def order_status_updated(order: Order, updated_by: User | None) -> dict:
    return {
        "event": "order.status_updated",
        **_order_fields(order),
        "updated_by_user_id": updated_by.id if updated_by else None,
    }


def order_collected(order: Order) -> dict:
    return {
        "event": "order.collected",
        **_order_fields(order),
        "collected_by_user_id": order.collection_by_user_id,
        "verified_by_user_id": order.collection_verified_by_user_id,
    }
