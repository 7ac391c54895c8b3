# Overview: Service-layer operations for the order lifecycle (checkout, collectors, status, cancellation).

"""
Order Lifecycle Service

WHY: Payments and collection both hang off an order. This module creates
orders, manages who may collect them and moves them through their
lifecycle statuses.

STATUS RULES:
- Waiting, On Its Way and Ready For Pickup can be set freely.
- Completed is only reachable by redeeming a collection code.
- Cancelled goes through cancel_order (a reason is recorded); uncancelling
  returns the order to Waiting.
- A collected order accepts no further status change.
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app

from ..errors import (
    AccessDenied,
    AlreadyCollected,
    InvalidPaymentAmount,
    InvalidStatus,
    OrderCancelled,
    OrderHasTransactions,
    StoreNotFound,
    UserNotFound,
)
from ..extensions import db
from ..models import Order, OrderCollectionAssociation, Store, User
from ..money import Money
from ..statuses import CollectorRole, OrderStatus
from . import audit_service, collection_service, notification_service
from .asset_store import discard_assets
from .collaborators import get_collaborators
from .concurrency import run_with_retry
from .repositories import CollectionRepository, OrderRepository, TransactionRepository, UserRepository
from .settlement_service import get_order, load_order_for_update, recompute_order_balance

orders = OrderRepository()
transactions = TransactionRepository()
collectors = CollectionRepository()
users = UserRepository()


def _require_user(user_id: int) -> User:
    user = users.get(user_id)
    if not user:
        raise UserNotFound(f"User {user_id} not found")
    return user


def _ensure_not_collected(order: Order) -> None:
    if order.collection_verified:
        raise AlreadyCollected()


# =============================================================================
# CHECKOUT
# =============================================================================

def create_order(
    store_id: int,
    customer_user_id: int,
    grand_total_cents: int,
    currency: str | None = None,
    friend_user_ids: Iterable[int] = (),
    friends_can_collect: bool = True,
) -> Order:
    """
    Create an order at checkout.

    The customer is always allowed to collect; friends tagged on the order
    may collect when friends_can_collect is set.
    """
    if isinstance(grand_total_cents, bool) or not isinstance(grand_total_cents, int) or grand_total_cents < 0:
        raise InvalidPaymentAmount("Order total must be a non-negative number of minor units")

    def _op():
        store = db.session.get(Store, store_id)
        if not store:
            raise StoreNotFound(f"Store {store_id} not found")
        customer = _require_user(customer_user_id)

        total = Money(grand_total_cents, currency or store.currency or current_app.config["DEFAULT_CURRENCY"])

        order = orders.add(Order(
            store_id=store.id,
            customer_user_id=customer.id,
            number=orders.next_number(store.id),
            status=OrderStatus.WAITING.value,
            currency=total.currency,
            grand_total_cents=total.amount,
        ))

        collectors.add(OrderCollectionAssociation(
            order_id=order.id,
            user_id=customer.id,
            role=CollectorRole.CUSTOMER.value,
            can_collect=True,
        ))
        for friend_id in dict.fromkeys(friend_user_ids):
            if friend_id == customer.id:
                continue
            _require_user(friend_id)
            collectors.add(OrderCollectionAssociation(
                order_id=order.id,
                user_id=friend_id,
                role=CollectorRole.FRIEND.value,
                can_collect=friends_can_collect,
            ))

        recompute_order_balance(order)
        audit_service.append_order_event(
            order=order,
            event_type=audit_service.ORDER_CREATED,
            actor_user_id=customer.id,
            payload={"grand_total_cents": total.amount, "currency": total.currency},
        )
        db.session.commit()
        return order

    order = run_with_retry(_op)
    current_app.logger.info("Created order %s (#%s) in store %s", order.id, order.number, order.store_id)
    return order


# =============================================================================
# COLLECTORS
# =============================================================================

def add_collectors(order_id: int, user_ids: Iterable[int], can_collect: bool = True) -> list[OrderCollectionAssociation]:
    """Tag friends on an order; existing associations get their can_collect updated."""
    def _op():
        order = load_order_for_update(order_id)
        _ensure_not_collected(order)

        result = []
        for user_id in dict.fromkeys(user_ids):
            _require_user(user_id)
            association = collectors.get(order.id, user_id)
            if association is None:
                association = collectors.add(OrderCollectionAssociation(
                    order_id=order.id,
                    user_id=user_id,
                    role=CollectorRole.FRIEND.value,
                    can_collect=can_collect,
                ))
            elif association.role == CollectorRole.FRIEND.value:
                association.can_collect = can_collect
            result.append(association)
        db.session.commit()
        return result

    return run_with_retry(_op)


def remove_collector(order_id: int, user_id: int) -> None:
    """Untag a friend. The customer cannot be removed."""
    discarded = []

    def _op():
        order = load_order_for_update(order_id)
        _ensure_not_collected(order)

        association = collectors.get(order.id, user_id)
        if association is None:
            raise UserNotFound(f"User {user_id} is not tagged on this order")
        if association.role == CollectorRole.CUSTOMER.value:
            raise AccessDenied("The customer cannot be removed from their order")

        if association.collection_qr_code:
            discarded.append(association.collection_qr_code)
        collectors.delete(association)
        db.session.commit()

    run_with_retry(_op)
    discard_assets(get_collaborators().asset_store, discarded)


def list_collectors(order_id: int) -> list[OrderCollectionAssociation]:
    get_order(order_id)
    return collectors.list_for_order(order_id)


# =============================================================================
# STATUS
# =============================================================================

def update_order_status(
    order_id: int,
    status: str | OrderStatus,
    acting_user_id: int,
    collection_code: str | None = None,
) -> Order:
    """
    Move an order to a new lifecycle status.

    Completed requires a collection code and is delegated to
    collection_service.redeem_collection_code. Cancelled requires
    cancel_order (which records a reason).
    """
    target = OrderStatus.parse(status)

    if target == OrderStatus.COMPLETED:
        if not collection_code:
            raise InvalidStatus("A collection code is required to complete an order")
        return collection_service.redeem_collection_code(order_id, collection_code, acting_user_id)

    if target == OrderStatus.CANCELLED:
        raise InvalidStatus("Use the cancel operation to cancel an order")

    def _op():
        actor = _require_user(acting_user_id)
        order = load_order_for_update(order_id)
        _ensure_not_collected(order)
        if order.is_cancelled:
            raise OrderCancelled("This order cannot change status because it has been cancelled")

        previous = order.status
        order.status = target.value
        audit_service.append_order_event(
            order=order,
            event_type=audit_service.ORDER_STATUS_UPDATED,
            actor_user_id=actor.id,
            payload={"from": previous, "to": target.value},
        )
        db.session.commit()
        return order, actor, previous

    order, actor, previous = run_with_retry(_op)

    if previous != order.status:
        notification_service.dispatch(
            get_collaborators().notifier,
            users.order_user_ids(order.id),
            notification_service.order_status_updated(order, actor),
        )
    return order


def cancel_order(order_id: int, acting_user_id: int, reason: str | None = None) -> Order:
    """
    Cancel an order.

    Outstanding collection codes are cleared; transactions are left as they
    are (a cancelled order accepts no transaction changes until uncancelled).
    """
    discarded = []

    def _op():
        actor = _require_user(acting_user_id)
        order = load_order_for_update(order_id)
        _ensure_not_collected(order)
        if order.is_cancelled:
            return order

        order.status = OrderStatus.CANCELLED.value
        order.cancellation_reason = reason
        discarded.extend(collectors.clear_codes(order.id))

        audit_service.append_order_event(
            order=order,
            event_type=audit_service.ORDER_CANCELLED,
            actor_user_id=actor.id,
            payload={"reason": reason} if reason else None,
        )
        db.session.commit()
        return order

    order = run_with_retry(_op)
    discard_assets(get_collaborators().asset_store, discarded)
    return order


def uncancel_order(order_id: int, acting_user_id: int) -> Order:
    def _op():
        actor = _require_user(acting_user_id)
        order = load_order_for_update(order_id)
        if not order.is_cancelled:
            return order

        order.status = OrderStatus.WAITING.value
        order.cancellation_reason = None
        recompute_order_balance(order)

        audit_service.append_order_event(
            order=order,
            event_type=audit_service.ORDER_UNCANCELLED,
            actor_user_id=actor.id,
        )
        db.session.commit()
        return order

    return run_with_retry(_op)


def delete_order(order_id: int, acting_user_id: int) -> None:
    """
    Delete an order that has no money recorded against it.

    Orders with non-cancelled transactions of any value must be cancelled
    instead; cancelled and zero-value transactions are deleted with it.
    """
    discarded = []

    def _op():
        order = load_order_for_update(order_id)
        if transactions.has_valued_transactions(order.id):
            raise OrderHasTransactions()

        for transaction in transactions.list_for_order(order.id):
            transactions.delete(transaction)
        discarded.extend(collectors.clear_codes(order.id))

        audit_service.append_order_event(
            order=order,
            event_type=audit_service.ORDER_DELETED,
            actor_user_id=acting_user_id,
            payload={"number": order.number},
        )
        orders.delete(order)
        db.session.commit()

    run_with_retry(_op)
    discard_assets(get_collaborators().asset_store, discarded)
