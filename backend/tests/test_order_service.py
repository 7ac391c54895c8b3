"""
Order lifecycle tests: checkout, collectors, status changes, cancellation
and deletion.
"""

import pytest

from storefront.errors import (
    AccessDenied,
    AlreadyCollected,
    InvalidPaymentAmount,
    InvalidStatus,
    OrderCancelled,
    OrderHasTransactions,
    OrderNotFound,
    StoreNotFound,
)
from storefront.extensions import db
from storefront.models import Order, Store, Transaction
from storefront.services import (
    audit_service,
    collection_service,
    order_service,
    settlement_service,
)


class TestCreateOrder:

    def test_numbers_are_sequential_per_store(self, fakes, store, customer):
        first = order_service.create_order(store.id, customer.id, 1000)
        second = order_service.create_order(store.id, customer.id, 2000)

        assert (first.number, second.number) == ("00001", "00002")

    def test_numbers_are_not_reused_after_delete(self, fakes, store, customer, staff):
        first = order_service.create_order(store.id, customer.id, 1000)
        order_service.create_order(store.id, customer.id, 2000)
        order_service.delete_order(first.id, staff.id)

        third = order_service.create_order(store.id, customer.id, 3000)

        assert third.number == "00003"

    def test_numbering_is_per_store(self, fakes, db_session, store, customer):
        other = Store(name="Harbour Deli", currency="BWP")
        db_session.add(other)
        db_session.commit()

        order_service.create_order(store.id, customer.id, 1000)
        elsewhere = order_service.create_order(other.id, customer.id, 1000)

        assert elsewhere.number == "00001"

    def test_counter_resumes_after_existing_orders(self, fakes, db_session, store, customer):
        db_session.add(Order(store_id=store.id, customer_user_id=customer.id, number="00041", currency="BWP"))
        db_session.commit()

        assert order_service.create_order(store.id, customer.id, 1000).number == "00042"

    def test_new_order_is_unpaid_and_waiting(self, order):
        assert order.status == "Waiting"
        assert order.payment_status == "Unpaid"
        assert order.currency == "BWP"
        assert order.amount_outstanding_cents == 10000
        assert order.amount_outstanding_percentage == 100

    def test_customer_and_friends_are_tagged(self, order, customer, friend):
        tagged = {(a.user_id, a.role, a.can_collect) for a in order_service.list_collectors(order.id)}
        assert tagged == {(customer.id, "Customer", True), (friend.id, "Friend", True)}

    def test_rejects_negative_total(self, fakes, store, customer):
        with pytest.raises(InvalidPaymentAmount):
            order_service.create_order(store.id, customer.id, -1)

    def test_unknown_store(self, fakes, db_session, customer):
        with pytest.raises(StoreNotFound):
            order_service.create_order(9999, customer.id, 1000)


class TestCollectors:

    def test_add_and_remove_friend(self, order, outsider):
        order_service.add_collectors(order.id, [outsider.id])
        assert outsider.id in [a.user_id for a in order_service.list_collectors(order.id)]

        order_service.remove_collector(order.id, outsider.id)
        assert outsider.id not in [a.user_id for a in order_service.list_collectors(order.id)]

    def test_customer_cannot_be_removed(self, order, customer):
        with pytest.raises(AccessDenied):
            order_service.remove_collector(order.id, customer.id)

    def test_removing_friend_discards_their_qr(self, order, friend, fakes):
        qr_url = collection_service.issue_collection_code(order.id, friend.id).collection_qr_code
        order_service.remove_collector(order.id, friend.id)
        assert fakes.assets.deleted == [qr_url]


class TestStatus:

    @pytest.mark.parametrize("raw", ["on its way", "ON_ITS_WAY", "onItsWay", "On Its Way"])
    def test_status_spellings(self, order, staff, raw):
        updated = order_service.update_order_status(order.id, raw, staff.id)
        assert updated.status == "On Its Way"

    def test_unknown_status(self, order, staff):
        with pytest.raises(InvalidStatus):
            order_service.update_order_status(order.id, "shipped", staff.id)

    def test_cancelled_requires_cancel_operation(self, order, staff):
        with pytest.raises(InvalidStatus):
            order_service.update_order_status(order.id, "cancelled", staff.id)

    def test_status_change_notifies_order_users(self, order, staff, customer, friend, fakes):
        order_service.update_order_status(order.id, "Ready For Pickup", staff.id)
        recipients, payload = fakes.notifier.sent[-1]
        assert recipients == sorted([customer.id, friend.id])
        assert payload["status"] == "Ready For Pickup"

    def test_collected_order_is_frozen(self, order, customer, staff):
        code = collection_service.issue_collection_code(order.id, customer.id).collection_code
        collection_service.redeem_collection_code(order.id, code, staff.id)

        with pytest.raises(AlreadyCollected):
            order_service.update_order_status(order.id, "Waiting", staff.id)
        with pytest.raises(AlreadyCollected):
            order_service.cancel_order(order.id, staff.id)

    def test_cancelled_order_cannot_change_status(self, order, staff):
        order_service.cancel_order(order.id, staff.id)
        with pytest.raises(OrderCancelled):
            order_service.update_order_status(order.id, "Waiting", staff.id)


class TestCancellation:

    def test_cancel_clears_codes(self, order, customer, staff, fakes):
        collection_service.issue_collection_code(order.id, customer.id)

        cancelled = order_service.cancel_order(order.id, staff.id, "Customer left")

        assert cancelled.status == "Cancelled"
        assert cancelled.cancellation_reason == "Customer left"
        assert fakes.assets.files == {}

    def test_uncancel_returns_to_waiting(self, order, staff):
        settlement_service.record_verified_payment(order.id, staff.id, amount_cents=4000)
        order_service.cancel_order(order.id, staff.id)

        restored = order_service.uncancel_order(order.id, staff.id)

        assert restored.status == "Waiting"
        assert restored.cancellation_reason is None
        assert restored.payment_status == "Partially Paid"
        assert restored.amount_paid_cents == 4000


class TestDeletion:

    def test_delete_order_without_payments(self, order, staff):
        order_id = order.id
        order_service.delete_order(order_id, staff.id)

        db.session.expire_all()
        assert db.session.get(Order, order_id) is None
        with pytest.raises(OrderNotFound):
            settlement_service.get_order(order_id)
        assert audit_service.list_order_events(order_id, audit_service.ORDER_DELETED)

    def test_delete_order_with_payments_is_refused(self, order, staff):
        settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        with pytest.raises(OrderHasTransactions):
            order_service.delete_order(order.id, staff.id)

    def test_cancelled_transactions_are_deleted_with_order(self, order, staff):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        settlement_service.cancel_transaction(transaction.id, staff.id)

        order_service.delete_order(order.id, staff.id)

        db.session.expire_all()
        assert db.session.get(Transaction, transaction.id) is None
