# Overview: Query ports for orders, transactions and collection associations.

"""
Repositories

The settlement and collection services never traverse ORM relationships to
reach an order's transactions or collectors; every read and write they need
goes through one of the small classes below. That keeps the business rules
in one place and the SQL in another.

All methods work on the current db.session and never commit: committing is
the job of the service-level unit of work.
"""

from __future__ import annotations

from ..extensions import db
from ..models import (
    MobileVerification,
    Order,
    OrderCollectionAssociation,
    OrderNumberSequence,
    Store,
    StoreMembership,
    Transaction,
    User,
)
from ..statuses import OWNER_ORDER, TransactionFilter
from .concurrency import lock_for_update


class OrderRepository:

    def get(self, order_id: int) -> Order | None:
        return db.session.get(Order, order_id)

    def get_for_update(self, order_id: int) -> Order | None:
        """Load the order row with a write lock (single writer per order)."""
        return lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()

    def add(self, order: Order) -> Order:
        db.session.add(order)
        db.session.flush()
        return order

    def delete(self, order: Order) -> None:
        for association in db.session.query(OrderCollectionAssociation).filter_by(order_id=order.id).all():
            db.session.delete(association)
        db.session.flush()
        db.session.delete(order)
        db.session.flush()

    def next_number(self, store_id: int) -> str:
        """
        Allocate the store's next order number (zero padded, never reused).

        The store row is locked first so concurrent checkouts in the same
        store take turns on the counter. A store without a counter row is
        seeded from its highest existing order number.
        """
        lock_for_update(db.session.query(Store).filter_by(id=store_id)).first()
        sequence = lock_for_update(
            db.session.query(OrderNumberSequence).filter_by(store_id=store_id)
        ).first()
        if sequence is None:
            highest = (
                db.session.query(db.func.max(db.cast(Order.number, db.Integer)))
                .filter(Order.store_id == store_id)
                .scalar()
            )
            sequence = OrderNumberSequence(store_id=store_id, next_number=(highest or 0) + 1)
            db.session.add(sequence)

        number = sequence.next_number
        sequence.next_number = number + 1
        db.session.flush()
        return f"{number:05d}"


class TransactionRepository:

    def get(self, transaction_id: int) -> Transaction | None:
        return db.session.get(Transaction, transaction_id)

    def get_for_update(self, transaction_id: int) -> Transaction | None:
        return lock_for_update(db.session.query(Transaction).filter_by(id=transaction_id)).first()

    def add(self, transaction: Transaction) -> Transaction:
        db.session.add(transaction)
        db.session.flush()
        return transaction

    def delete(self, transaction: Transaction) -> None:
        db.session.delete(transaction)
        db.session.flush()

    def _for_order(self, order_id: int):
        return db.session.query(Transaction).filter(
            Transaction.owner_type == OWNER_ORDER,
            Transaction.owner_id == order_id,
        )

    @staticmethod
    def _apply_filter(query, status_filter: TransactionFilter):
        if status_filter == TransactionFilter.CANCELLED:
            return query.filter(Transaction.is_cancelled.is_(True))
        if status_filter in (TransactionFilter.PAID, TransactionFilter.PENDING_PAYMENT):
            return query.filter(
                Transaction.is_cancelled.is_(False),
                Transaction.payment_status == status_filter.value,
            )
        return query

    def list_for_order(self, order_id: int, status_filter: TransactionFilter = TransactionFilter.ALL) -> list[Transaction]:
        query = self._apply_filter(self._for_order(order_id), status_filter)
        return query.order_by(Transaction.created_at, Transaction.id).all()

    def list_for_store(
        self,
        store_id: int,
        status_filter: TransactionFilter = TransactionFilter.ALL,
        paid_by_user_id: int | None = None,
    ) -> list[Transaction]:
        """Every transaction recorded in the store, most recently changed first."""
        query = db.session.query(Transaction).filter(Transaction.store_id == store_id)
        if paid_by_user_id is not None:
            query = query.filter(Transaction.paid_by_user_id == paid_by_user_id)
        query = self._apply_filter(query, status_filter)
        return query.order_by(Transaction.updated_at.desc(), Transaction.id.desc()).all()

    def count_for_order(self, order_id: int, status_filter: TransactionFilter = TransactionFilter.ALL) -> int:
        return len(self.list_for_order(order_id, status_filter))

    def has_open_pending_payment(self, order_id: int, payer_user_id: int, exclude_id: int | None = None) -> bool:
        query = self._for_order(order_id).filter(
            Transaction.is_cancelled.is_(False),
            Transaction.payment_status == "Pending Payment",
            Transaction.paid_by_user_id == payer_user_id,
        )
        if exclude_id is not None:
            query = query.filter(Transaction.id != exclude_id)
        return db.session.query(query.exists()).scalar()

    def has_valued_transactions(self, order_id: int) -> bool:
        query = self._for_order(order_id).filter(
            Transaction.is_cancelled.is_(False),
            Transaction.amount_cents > 0,
        )
        return db.session.query(query.exists()).scalar()

    def payer_counts(self, order_id: int) -> list[tuple[int, int]]:
        """(paid_by_user_id, number of transactions) for an order."""
        rows = (
            db.session.query(Transaction.paid_by_user_id, db.func.count(Transaction.id))
            .filter(Transaction.owner_type == OWNER_ORDER, Transaction.owner_id == order_id)
            .group_by(Transaction.paid_by_user_id)
            .order_by(Transaction.paid_by_user_id)
            .all()
        )
        return [(user_id, int(count)) for user_id, count in rows]


class CollectionRepository:

    def get(self, order_id: int, user_id: int) -> OrderCollectionAssociation | None:
        return db.session.query(OrderCollectionAssociation).filter_by(order_id=order_id, user_id=user_id).first()

    def get_collector(self, order_id: int, user_id: int) -> OrderCollectionAssociation | None:
        """Association for this user only if they are allowed to collect."""
        return (
            db.session.query(OrderCollectionAssociation)
            .filter_by(order_id=order_id, user_id=user_id, can_collect=True)
            .first()
        )

    def list_for_order(self, order_id: int) -> list[OrderCollectionAssociation]:
        return (
            db.session.query(OrderCollectionAssociation)
            .filter_by(order_id=order_id)
            .order_by(OrderCollectionAssociation.id)
            .all()
        )

    def find_by_code(self, order_id: int, code: str) -> OrderCollectionAssociation | None:
        return (
            db.session.query(OrderCollectionAssociation)
            .filter_by(order_id=order_id, collection_code=code)
            .first()
        )

    def find_by_mobile_numbers(self, order_id: int, mobile_numbers: list[str]) -> list[OrderCollectionAssociation]:
        if not mobile_numbers:
            return []
        return (
            db.session.query(OrderCollectionAssociation)
            .join(User, User.id == OrderCollectionAssociation.user_id)
            .filter(
                OrderCollectionAssociation.order_id == order_id,
                User.mobile_number.in_(mobile_numbers),
            )
            .order_by(OrderCollectionAssociation.id)
            .all()
        )

    def active_codes(self, order_id: int) -> set[str]:
        rows = (
            db.session.query(OrderCollectionAssociation.collection_code)
            .filter(
                OrderCollectionAssociation.order_id == order_id,
                OrderCollectionAssociation.collection_code.isnot(None),
            )
            .all()
        )
        return {code for (code,) in rows}

    def clear_codes(self, order_id: int) -> list[str]:
        """
        Clear code, QR and expiry on every association of the order.

        Returns the QR asset URLs that were detached so the caller can
        delete the files once the change is committed.
        """
        associations = self.list_for_order(order_id)
        qr_urls = [a.collection_qr_code for a in associations if a.collection_qr_code]
        for association in associations:
            association.collection_code = None
            association.collection_qr_code = None
            association.collection_code_expires_at = None
        db.session.flush()
        return qr_urls

    def add(self, association: OrderCollectionAssociation) -> OrderCollectionAssociation:
        db.session.add(association)
        db.session.flush()
        return association

    def delete(self, association: OrderCollectionAssociation) -> None:
        db.session.delete(association)
        db.session.flush()


class UserRepository:

    def get(self, user_id: int) -> User | None:
        return db.session.get(User, user_id)

    def find_by_mobile_number(self, mobile_number: str) -> User | None:
        return db.session.query(User).filter_by(mobile_number=mobile_number).first()

    def order_user_ids(self, order_id: int) -> list[int]:
        rows = (
            db.session.query(OrderCollectionAssociation.user_id)
            .filter_by(order_id=order_id)
            .order_by(OrderCollectionAssociation.id)
            .all()
        )
        return [user_id for (user_id,) in rows]

    def joined_team_member_ids(self, store_id: int) -> list[int]:
        rows = (
            db.session.query(StoreMembership.user_id)
            .filter_by(store_id=store_id, has_joined=True)
            .order_by(StoreMembership.user_id)
            .all()
        )
        return [user_id for (user_id,) in rows]

    def is_joined_team_member(self, store_id: int, user_id: int) -> bool:
        query = db.session.query(StoreMembership).filter_by(store_id=store_id, user_id=user_id, has_joined=True)
        return db.session.query(query.exists()).scalar()


class MobileVerificationRepository:

    def get(self, mobile_number: str) -> MobileVerification | None:
        return db.session.query(MobileVerification).filter_by(mobile_number=mobile_number).first()

    def mobile_numbers_for_code(self, code: str) -> list[str]:
        rows = (
            db.session.query(MobileVerification.mobile_number)
            .filter(MobileVerification.code == code)
            .order_by(MobileVerification.updated_at.desc(), MobileVerification.id.desc())
            .all()
        )
        return [number for (number,) in rows]

    def add(self, verification: MobileVerification) -> MobileVerification:
        db.session.add(verification)
        db.session.flush()
        return verification

    def clear_code(self, mobile_number: str) -> None:
        db.session.query(MobileVerification).filter_by(mobile_number=mobile_number).update(
            {"code": None}, synchronize_session=False
        )
