from __future__ import annotations

from dataclasses import dataclass

from ..extensions import db
from ..money import Money
from ..statuses import VerifiedBy
from ..time_utils import to_utc_z


@dataclass(frozen=True)
class SystemRequested:
    """Payment requested through the platform; the gateway confirms it later."""
    by: int


@dataclass(frozen=True)
class UserVerified:
    """Payment taken outside the platform (cash, EFT) and confirmed by a team member."""
    by: int


class Transaction(db.Model):
    """
    A payment recorded against a billable owner (usually an order).

    INITIATOR: exactly one of requested_by_user_id / verified_by_user_id is
    set. Services build transactions from an initiator value
    (SystemRequested | UserVerified) and the CHECK constraint below rejects
    anything else at the database.

    CANCELLATION: cancelling sets is_cancelled and keeps the row (and its
    last payment_status) for the audit trail. Cancelled transactions are
    excluded from every ledger sum.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.CheckConstraint(
            "(requested_by_user_id IS NULL) <> (verified_by_user_id IS NULL)",
            name="ck_transactions_single_initiator",
        ),
        db.CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_non_negative"),
        db.Index("ix_transactions_owner", "owner_type", "owner_id"),
        db.Index("ix_transactions_owner_payer_status", "owner_type", "owner_id", "paid_by_user_id", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    # Polymorphic owner: "order" or another billable entity
    owner_type = db.Column(db.String(32), nullable=False)
    owner_id = db.Column(db.Integer, nullable=False)

    # Amount in minor units; percentage of the owner total is display-only
    amount_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False)
    percentage = db.Column(db.Integer, nullable=False, default=0)

    payment_status = db.Column(db.String(32), nullable=False, index=True)  # Pending Payment, Paid
    description = db.Column(db.String(255), nullable=True)
    payment_method = db.Column(db.String(32), nullable=True)

    is_cancelled = db.Column(db.Boolean, nullable=False, default=False, index=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancellation_reason = db.Column(db.String(255), nullable=True)

    # Attribution
    paid_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    requested_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    verified_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    verified_by = db.Column(db.String(16), nullable=False)  # System, User

    # Gateway bookkeeping
    payment_link_url = db.Column(db.String(512), nullable=True)
    provider_reference = db.Column(db.String(128), nullable=True)
    provider_metadata = db.Column(db.JSON, nullable=True)

    # Receipt or slip for a payment a team member confirmed by hand
    proof_of_payment_url = db.Column(db.String(512), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    paid_by = db.relationship("User", foreign_keys=[paid_by_user_id])
    requested_by = db.relationship("User", foreign_keys=[requested_by_user_id])
    verified_by_user = db.relationship("User", foreign_keys=[verified_by_user_id])

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def amount(self) -> Money:
        return Money(self.amount_cents, self.currency)

    @property
    def initiator(self) -> SystemRequested | UserVerified:
        if self.verified_by_user_id is not None:
            return UserVerified(by=self.verified_by_user_id)
        return SystemRequested(by=self.requested_by_user_id)

    @initiator.setter
    def initiator(self, value: SystemRequested | UserVerified) -> None:
        if isinstance(value, UserVerified):
            self.requested_by_user_id = None
            self.verified_by_user_id = value.by
            self.verified_by = VerifiedBy.USER.value
        elif isinstance(value, SystemRequested):
            self.requested_by_user_id = value.by
            self.verified_by_user_id = None
            self.verified_by = VerifiedBy.SYSTEM.value
        else:
            raise TypeError(f"Unsupported initiator: {value!r}")

    @property
    def is_pending_payment(self) -> bool:
        return self.payment_status == "Pending Payment"

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "Paid"

    def __repr__(self) -> str:
        return (
            f"<Transaction id={self.id} owner={self.owner_type}:{self.owner_id} "
            f"amount={self.amount_cents} status={self.payment_status!r} cancelled={self.is_cancelled}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "owner_type": self.owner_type,
            "owner_id": self.owner_id,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "percentage": self.percentage,
            "payment_status": self.payment_status,
            "description": self.description,
            "payment_method": self.payment_method,
            "is_cancelled": self.is_cancelled,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "cancellation_reason": self.cancellation_reason,
            "paid_by_user_id": self.paid_by_user_id,
            "requested_by_user_id": self.requested_by_user_id,
            "verified_by_user_id": self.verified_by_user_id,
            "verified_by": self.verified_by,
            "payment_link_url": self.payment_link_url,
            "provider_reference": self.provider_reference,
            "proof_of_payment_url": self.proof_of_payment_url,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
