# Overview: Service-layer operations for order collection codes (issue, revoke, redeem).

"""
Order Collection Codes

WHY: Goods are only handed over when the person at the counter proves they
may collect the order. A collector asks for a short-lived 6-digit code
(plus a QR image of it); a team member redeems it to complete the order.

DESIGN:
- Codes are unique among the codes currently held on the same order.
- Codes expire COLLECTION_CODE_TTL_SECONDS after issue; expiry is checked
  lazily at redemption.
- A user's generic mobile verification code is accepted as well. Because
  those codes are not unique, every order collector holding the code is
  considered and the first one allowed to collect wins.
- Redemption completes the order, snapshots who verified and who
  collected, and clears every code on the order in one unit of work.
- QR images are deleted only after the change that detached them commits.
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..errors import (
    AccessDenied,
    AlreadyCollected,
    CodeExpired,
    InvalidCode,
    OrderCancelled,
    UserNotFound,
)
from ..extensions import db
from ..models import Order, OrderCollectionAssociation
from ..statuses import OrderStatus
from ..time_utils import as_naive_utc, utcnow
from . import audit_service, mobile_verification_service, notification_service
from .asset_store import discard_assets
from .collaborators import get_collaborators
from .concurrency import run_with_retry
from .qr_service import collection_qr_payload, store_qr_code
from .repositories import CollectionRepository, UserRepository
from .settlement_service import load_order_for_update

collectors = CollectionRepository()
users = UserRepository()


def redemption_url(order: Order, code: str) -> str:
    """URL a team member's device opens after scanning the QR code."""
    base = current_app.config["PUBLIC_BASE_URL"].rstrip("/")
    return f"{base}/api/orders/{order.id}/status?status=completed&collection_code={code}"


def _ensure_collectable(order: Order) -> None:
    if order.collection_verified:
        raise AlreadyCollected()
    if order.is_cancelled:
        raise OrderCancelled("This order cannot be collected because it has been cancelled")


def _require_collector(order: Order, user_id: int) -> OrderCollectionAssociation:
    association = collectors.get_collector(order.id, user_id)
    if association is None:
        raise AccessDenied("You are not allowed to collect this order")
    return association


def issue_collection_code(order_id: int, collector_user_id: int) -> OrderCollectionAssociation:
    """
    Issue (or re-issue) the caller's collection code.

    Returns the association carrying collection_code, collection_qr_code
    and collection_code_expires_at.
    """
    collaborators = get_collaborators()
    replaced = []

    def _op():
        order = load_order_for_update(order_id)
        _ensure_collectable(order)
        association = _require_collector(order, collector_user_id)

        code = collaborators.code_generator.random_n_digit_code(
            current_app.config["COLLECTION_CODE_LENGTH"],
            exclude=collectors.active_codes(order.id),
        )
        qr_url = store_qr_code(collaborators.asset_store, collection_qr_payload(redemption_url(order, code), code))

        try:
            previous_qr = association.collection_qr_code
            association.collection_code = code
            association.collection_qr_code = qr_url
            association.collection_code_expires_at = utcnow() + timedelta(
                seconds=current_app.config["COLLECTION_CODE_TTL_SECONDS"]
            )
            audit_service.append_order_event(
                order=order,
                event_type=audit_service.COLLECTION_CODE_ISSUED,
                actor_user_id=collector_user_id,
            )
            db.session.commit()
        except Exception:
            discard_assets(collaborators.asset_store, [qr_url])
            raise

        if previous_qr:
            replaced.append(previous_qr)
        return association

    association = run_with_retry(_op)
    discard_assets(collaborators.asset_store, replaced)
    return association


def revoke_collection_code(order_id: int, collector_user_id: int) -> None:
    """Clear every collection code on the order and delete the QR images."""
    discarded = []

    def _op():
        order = load_order_for_update(order_id)
        _ensure_collectable(order)
        _require_collector(order, collector_user_id)

        discarded.extend(collectors.clear_codes(order.id))
        audit_service.append_order_event(
            order=order,
            event_type=audit_service.COLLECTION_CODE_REVOKED,
            actor_user_id=collector_user_id,
        )
        db.session.commit()

    run_with_retry(_op)
    discard_assets(get_collaborators().asset_store, discarded)


def _match_order_code(order: Order, code: str) -> OrderCollectionAssociation | None:
    association = collectors.find_by_code(order.id, code)
    if association is None:
        return None
    expires_at = as_naive_utc(association.collection_code_expires_at)
    if expires_at is None or expires_at <= utcnow():
        raise CodeExpired()
    if not association.can_collect:
        raise AccessDenied("This person does not have permission to collect this order")
    return association


def _match_mobile_code(order: Order, code: str) -> OrderCollectionAssociation | None:
    numbers = mobile_verification_service.find_mobile_numbers_for_code(code)
    matches = collectors.find_by_mobile_numbers(order.id, numbers)
    for association in matches:
        if association.can_collect:
            mobile_verification_service.revoke_code_for_user(association.user)
            return association
    if matches:
        raise AccessDenied("This person does not have permission to collect this order")
    return None


def redeem_collection_code(order_id: int, supplied_code: str, redeemed_by_user_id: int) -> Order:
    """
    Complete an order by redeeming a collection code.

    The code is looked up first among the order's collection codes, then
    among the collectors' mobile verification codes.

    Raises:
        AlreadyCollected, OrderCancelled, CodeExpired, AccessDenied, InvalidCode
    """
    code = (supplied_code or "").strip()
    discarded = []

    def _op():
        verifier = users.get(redeemed_by_user_id)
        if not verifier:
            raise UserNotFound(f"User {redeemed_by_user_id} not found")

        order = load_order_for_update(order_id)
        _ensure_collectable(order)

        association = None
        if code:
            association = _match_order_code(order, code) or _match_mobile_code(order, code)
        if association is None:
            raise InvalidCode()

        collector = association.user
        now = utcnow()

        order.status = OrderStatus.COMPLETED.value
        order.collection_verified = True
        order.collection_verified_at = now
        order.collection_verified_by_user_id = verifier.id
        order.collection_verified_by_user_first_name = verifier.first_name
        order.collection_verified_by_user_last_name = verifier.last_name
        order.collection_by_user_id = collector.id
        order.collection_by_user_first_name = collector.first_name
        order.collection_by_user_last_name = collector.last_name

        discarded.extend(collectors.clear_codes(order.id))
        audit_service.append_order_event(
            order=order,
            event_type=audit_service.ORDER_COLLECTED,
            actor_user_id=verifier.id,
            occurred_at=now,
            payload={"collected_by_user_id": collector.id},
        )
        db.session.commit()
        return order

    order = run_with_retry(_op)

    collaborators = get_collaborators()
    discard_assets(collaborators.asset_store, discarded)
    notification_service.dispatch(
        collaborators.notifier,
        users.order_user_ids(order.id) + users.joined_team_member_ids(order.store_id),
        notification_service.order_collected(order),
    )
    return order
