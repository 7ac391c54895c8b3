# Overview: Append-only order event trail written alongside settlement and collection changes.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..extensions import db
from ..models import Order, OrderEvent
from ..time_utils import utcnow
"""
Order Event Trail Invariants (authoritative)

- Append-only audit log for settlement and collection events.
- No business logic in the trail itself.
- Events are written inside the same DB transaction as the change they record.
- occurred_at is business time and defaults to utcnow().
"""

# Event types
PAYMENT_REQUESTED = "payment.requested"
PAYMENT_RECORDED = "payment.recorded"
PAYMENT_CONFIRMED = "payment.confirmed"
PAYMENT_LINK_RENEWED = "payment.link_renewed"
TRANSACTION_CANCELLED = "transaction.cancelled"
TRANSACTION_UNCANCELLED = "transaction.uncancelled"
TRANSACTION_DELETED = "transaction.deleted"
PROOF_OF_PAYMENT_UPDATED = "transaction.proof_of_payment_updated"
PROOF_OF_PAYMENT_REMOVED = "transaction.proof_of_payment_removed"
ORDER_CREATED = "order.created"
ORDER_STATUS_UPDATED = "order.status_updated"
ORDER_CANCELLED = "order.cancelled"
ORDER_UNCANCELLED = "order.uncancelled"
ORDER_DELETED = "order.deleted"
COLLECTION_CODE_ISSUED = "collection.code_issued"
COLLECTION_CODE_REVOKED = "collection.code_revoked"
ORDER_COLLECTED = "collection.redeemed"


def append_order_event(
    *,
    order: Order,
    event_type: str,
    actor_user_id: int | None = None,
    transaction_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    payload: Optional[dict] = None,
) -> OrderEvent:
    """
    Append-only order event.

    - No domain logic here.
    - No deletes/updates of existing events.
    """
    ev = OrderEvent(
        order_id=order.id,
        store_id=order.store_id,
        event_type=event_type,
        actor_user_id=actor_user_id,
        transaction_id=transaction_id,
        occurred_at=occurred_at or utcnow(),
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


def list_order_events(order_id: int, event_type: str | None = None) -> list[OrderEvent]:
    query = db.session.query(OrderEvent).filter_by(order_id=order_id)
    if event_type:
        query = query.filter_by(event_type=event_type)
    return query.order_by(OrderEvent.occurred_at, OrderEvent.id).all()
