from __future__ import annotations

from ..extensions import db
from ..money import Money
from ..time_utils import to_utc_z


class Order(db.Model):
    """
    Customer order placed with a store.

    LEDGER FIELDS: grand_total is fixed at checkout. The amount_* and
    *_percentage columns and payment_status are derived from the order's
    transactions and are only ever written by the ledger recomputation in
    settlement_service. All amounts are integer minor units in `currency`.

    COLLECTION: collection_verified flips to True once, when a collection
    code is redeemed; the verifier / collector names are snapshotted at
    that moment so later profile edits do not rewrite history.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("store_id", "number", name="uq_orders_store_number"),
        db.Index("ix_orders_store_status_created", "store_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    customer_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Human-readable order number (e.g., "00012"), sequential per store
    number = db.Column(db.String(16), nullable=False)

    # Lifecycle status: Waiting, On Its Way, Ready For Pickup, Cancelled, Completed
    status = db.Column(db.String(32), nullable=False, default="Waiting", index=True)
    cancellation_reason = db.Column(db.String(255), nullable=True)

    # Ledger (derived)
    currency = db.Column(db.String(3), nullable=False)
    grand_total_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_pending_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_outstanding_cents = db.Column(db.Integer, nullable=False, default=0)
    amount_paid_percentage = db.Column(db.Integer, nullable=False, default=0)
    amount_pending_percentage = db.Column(db.Integer, nullable=False, default=0)
    amount_outstanding_percentage = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(32), nullable=False, default="Unpaid", index=True)

    # Collection snapshot
    collection_verified = db.Column(db.Boolean, nullable=False, default=False)
    collection_verified_at = db.Column(db.DateTime(timezone=True), nullable=True)
    collection_verified_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    collection_verified_by_user_first_name = db.Column(db.String(64), nullable=True)
    collection_verified_by_user_last_name = db.Column(db.String(64), nullable=True)
    collection_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    collection_by_user_first_name = db.Column(db.String(64), nullable=True)
    collection_by_user_last_name = db.Column(db.String(64), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    store = db.relationship("Store", backref=db.backref("orders", lazy=True))
    customer = db.relationship("User", foreign_keys=[customer_user_id])

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def grand_total(self) -> Money:
        return Money(self.grand_total_cents, self.currency)

    @property
    def amount_paid(self) -> Money:
        return Money(self.amount_paid_cents, self.currency)

    @property
    def amount_pending(self) -> Money:
        return Money(self.amount_pending_cents, self.currency)

    @property
    def amount_outstanding(self) -> Money:
        return Money(self.amount_outstanding_cents, self.currency)

    @property
    def is_cancelled(self) -> bool:
        return self.status == "Cancelled"

    def __repr__(self) -> str:
        return f"<Order id={self.id} number={self.number!r} payment_status={self.payment_status!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "customer_user_id": self.customer_user_id,
            "number": self.number,
            "status": self.status,
            "cancellation_reason": self.cancellation_reason,
            "currency": self.currency,
            "grand_total_cents": self.grand_total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "amount_pending_cents": self.amount_pending_cents,
            "amount_outstanding_cents": self.amount_outstanding_cents,
            "amount_paid_percentage": self.amount_paid_percentage,
            "amount_pending_percentage": self.amount_pending_percentage,
            "amount_outstanding_percentage": self.amount_outstanding_percentage,
            "payment_status": self.payment_status,
            "collection_verified": self.collection_verified,
            "collection_verified_at": to_utc_z(self.collection_verified_at) if self.collection_verified_at else None,
            "collection_verified_by_user_id": self.collection_verified_by_user_id,
            "collection_verified_by_user_first_name": self.collection_verified_by_user_first_name,
            "collection_verified_by_user_last_name": self.collection_verified_by_user_last_name,
            "collection_by_user_id": self.collection_by_user_id,
            "collection_by_user_first_name": self.collection_by_user_first_name,
            "collection_by_user_last_name": self.collection_by_user_last_name,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class OrderCollectionAssociation(db.Model):
    """
    A user tagged on an order (the customer or a friend) and whether they
    may pick it up.

    At most one collection code is active per association; issuing again
    overwrites it. Codes are unique within an order while set.
    """
    __tablename__ = "order_collection_associations"
    __table_args__ = (
        db.UniqueConstraint("order_id", "user_id", name="uq_order_collection_order_user"),
        db.Index("ix_order_collection_order_code", "order_id", "collection_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    role = db.Column(db.String(16), nullable=False, default="Customer")  # Customer, Friend
    can_collect = db.Column(db.Boolean, nullable=False, default=False)

    collection_code = db.Column(db.String(6), nullable=True)
    collection_qr_code = db.Column(db.String(512), nullable=True)
    collection_code_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    order = db.relationship("Order", backref=db.backref("collection_associations", lazy=True))
    user = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "user_id": self.user_id,
            "role": self.role,
            "can_collect": self.can_collect,
            "collection_code_expires_at": to_utc_z(self.collection_code_expires_at) if self.collection_code_expires_at else None,
            "has_collection_code": self.collection_code is not None,
        }


class OrderEvent(db.Model):
    """
    Append-only audit trail of order settlement and collection events.

    Written inside the same database transaction as the change it records;
    never updated or deleted.
    """
    __tablename__ = "order_events"
    __table_args__ = (
        db.Index("ix_order_events_order_occurred", "order_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # Plain integer (no FK) so the trail survives order deletion
    order_id = db.Column(db.Integer, nullable=False, index=True)
    store_id = db.Column(db.Integer, nullable=False, index=True)
    event_type = db.Column(db.String(64), nullable=False, index=True)
    actor_user_id = db.Column(db.Integer, nullable=True)
    transaction_id = db.Column(db.Integer, nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False)
    payload = db.Column(db.JSON, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "store_id": self.store_id,
            "event_type": self.event_type,
            "actor_user_id": self.actor_user_id,
            "transaction_id": self.transaction_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "payload": self.payload,
        }
