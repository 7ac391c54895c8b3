from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Store(db.Model):
    """
    Store: the tenant boundary.

    Orders, transactions and team memberships all hang off a store.
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="BWP")

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "currency": self.currency,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class StoreMembership(db.Model):
    """
    Store team member.

    Invited members only count once they have joined (has_joined=True):
    joined members manage order payments and receive order notifications.
    """
    __tablename__ = "store_memberships"
    __table_args__ = (
        db.UniqueConstraint("store_id", "user_id", name="uq_store_memberships_store_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False, default="Team Member")  # Creator, Admin, Team Member
    has_joined = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store", backref=db.backref("memberships", lazy=True))
    user = db.relationship("User", backref=db.backref("store_memberships", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "user_id": self.user_id,
            "role": self.role,
            "has_joined": self.has_joined,
            "created_at": to_utc_z(self.created_at),
        }


class OrderNumberSequence(db.Model):
    """
    Per-store order number counter.

    Numbers are never reused, so deleting an order cannot make the next
    checkout collide with uq_orders_store_number.
    """
    __tablename__ = "order_number_sequences"
    __table_args__ = (
        db.UniqueConstraint("store_id", name="uq_order_number_sequences_store"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
