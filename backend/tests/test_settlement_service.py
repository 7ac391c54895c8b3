"""
Order settlement tests.

Verifies:
- Payment requests and verified payments keep the ledger consistent
- Guards reject invalid requests and leave nothing behind
- Cancel / uncancel / delete recompute the order
- Gateway links, callbacks and failures
"""

import pytest

from storefront.errors import (
    AmountExceedsOutstanding,
    CannotDeleteTransaction,
    CurrencyMismatch,
    DuplicatePendingPayment,
    InvalidPaymentAmount,
    InvalidProofOfPayment,
    NoAmountOutstanding,
    OrderCancelled,
    OrderFullyPaid,
    PercentageExceedsOutstanding,
    ProofOfPaymentNotAllowed,
    ProviderError,
    StoreNotFound,
    TransactionNotPending,
)
from storefront.extensions import db
from storefront.models import Order, Store, Transaction, UserVerified
from storefront.services import audit_service, order_service, settlement_service


def _reload(order):
    db.session.expire_all()
    return db.session.get(Order, order.id)


def _transactions(order):
    return settlement_service.list_order_transactions(order.id)


def _balanced(order):
    """Check the ledger identities and return (paid, pending)."""
    order = _reload(order)
    assert order.amount_paid_cents + order.amount_outstanding_cents == order.grand_total_cents
    assert 0 <= order.amount_pending_cents <= order.amount_outstanding_cents
    return order.amount_paid_cents, order.amount_pending_cents


# =============================================================================
# LEDGER SCENARIOS
# =============================================================================


class TestLedger:

    def test_partial_paid_then_pending(self, order, staff):
        settlement_service.record_verified_payment(order.id, staff.id, amount_cents=6000)
        settlement_service.request_payment(order.id, staff.id, amount_cents=2000)

        order = _reload(order)
        assert order.amount_paid_cents == 6000
        assert order.amount_pending_cents == 2000
        assert order.amount_outstanding_cents == 4000
        assert order.amount_paid_percentage == 60
        assert order.amount_pending_percentage == 20
        assert order.amount_outstanding_percentage == 40
        assert order.payment_status == "Pending Payment"

        summary = settlement_service.get_payment_summary(order.id)
        assert summary["remaining_payable_cents"] == 2000
        assert summary["transactions_count"] == 2

    def test_paid_plus_outstanding_equals_total(self, order, staff, friend):
        settlement_service.record_verified_payment(order.id, staff.id, amount_cents=3333)
        settlement_service.request_payment(order.id, staff.id, amount_cents=1111, paid_by_user_id=friend.id)

        order = _reload(order)
        assert order.amount_paid_cents + order.amount_outstanding_cents == order.grand_total_cents
        assert order.amount_pending_cents <= order.amount_outstanding_cents

    def test_ledger_stays_balanced_through_every_change(self, order, staff, friend, fakes):
        card = settlement_service.request_payment(order.id, staff.id, amount_cents=3000, payment_method="CARD")
        cash = settlement_service.record_verified_payment(
            order.id, staff.id, amount_cents=2000, paid_by_user_id=friend.id
        )
        seen = [_balanced(order)]

        settlement_service.cancel_transaction(card.id, staff.id)
        seen.append(_balanced(order))

        settlement_service.uncancel_transaction(card.id, staff.id)
        seen.append(_balanced(order))

        settlement_service.confirm_provider_payment(card.id, {"token": "cb-1"})
        seen.append(_balanced(order))

        settlement_service.delete_transaction(cash.id, staff.id)
        seen.append(_balanced(order))

        assert seen == [(2000, 3000), (2000, 0), (2000, 3000), (5000, 0), (3000, 0)]
        assert _reload(order).amount_outstanding_cents == 7000

    def test_full_verified_payment_marks_order_paid(self, order, staff):
        transaction = settlement_service.record_verified_payment(order.id, staff.id, percentage=100)

        assert transaction.amount_cents == 10000
        assert transaction.verified_by == "User"
        assert transaction.verified_by_user_id == staff.id
        assert transaction.requested_by_user_id is None
        assert transaction.description.startswith("Full payment for order #00001 confirmed by Tumi Dube")
        assert _reload(order).payment_status == "Paid"

    def test_request_is_attributed_to_requester(self, order, staff, customer):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=2500)

        assert transaction.payment_status == "Pending Payment"
        assert transaction.verified_by == "System"
        assert transaction.requested_by_user_id == staff.id
        assert transaction.verified_by_user_id is None
        assert transaction.paid_by_user_id == customer.id
        assert transaction.percentage == 25
        assert transaction.description == "Partial payment for order #00001 requested by Tumi Dube"


# =============================================================================
# GUARDS
# =============================================================================


class TestGuards:

    def test_amount_exceeding_outstanding(self, order, staff):
        with pytest.raises(AmountExceedsOutstanding):
            settlement_service.request_payment(order.id, staff.id, amount_cents=15000)

        assert _transactions(order) == []
        assert _reload(order).payment_status == "Unpaid"

    def test_amount_exceeding_outstanding_minus_pending(self, order, staff, friend):
        settlement_service.request_payment(order.id, staff.id, amount_cents=7000)
        with pytest.raises(AmountExceedsOutstanding):
            settlement_service.record_verified_payment(order.id, staff.id, amount_cents=3001, paid_by_user_id=friend.id)

    def test_percentage_exceeding_outstanding(self, order, staff, friend):
        settlement_service.request_payment(order.id, staff.id, percentage=50)
        with pytest.raises(PercentageExceedsOutstanding):
            settlement_service.request_payment(order.id, staff.id, percentage=60, paid_by_user_id=friend.id)

    def test_duplicate_pending_for_same_payer(self, order, staff):
        settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        with pytest.raises(DuplicatePendingPayment):
            settlement_service.request_payment(order.id, staff.id, amount_cents=1000)

        assert len(_transactions(order)) == 1

    def test_different_payers_may_each_have_a_pending_request(self, order, staff, friend):
        settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=1000, paid_by_user_id=friend.id)
        assert transaction.paid_by_user_id == friend.id

    def test_verified_payment_allowed_while_request_pending(self, order, staff):
        settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        transaction = settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        assert transaction.payment_status == "Paid"

    def test_payer_not_on_order_falls_back_to_customer(self, order, staff, outsider, customer):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=1000, paid_by_user_id=outsider.id)
        assert transaction.paid_by_user_id == customer.id

    def test_payer_by_mobile_number(self, order, staff, outsider):
        transaction = settlement_service.request_payment(
            order.id, staff.id, amount_cents=1000, payer_mobile_number=outsider.mobile_number
        )
        assert transaction.paid_by_user_id == outsider.id

    def test_fully_paid_order(self, order, staff):
        settlement_service.record_verified_payment(order.id, staff.id, amount_cents=10000)
        with pytest.raises(OrderFullyPaid):
            settlement_service.request_payment(order.id, staff.id, amount_cents=1)

    def test_zero_total_order_has_nothing_outstanding(self, fakes, store, customer, staff):
        free_order = order_service.create_order(store.id, customer.id, 0)
        with pytest.raises(NoAmountOutstanding):
            settlement_service.request_payment(free_order.id, staff.id, amount_cents=1)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"amount_cents": 0},
            {"amount_cents": -100},
            {"amount_cents": 10.5},
            {"percentage": 0},
            {"percentage": 101},
            {"amount_cents": 100, "percentage": 10},
            {},
        ],
    )
    def test_invalid_amounts(self, order, staff, kwargs):
        with pytest.raises(InvalidPaymentAmount):
            settlement_service.request_payment(order.id, staff.id, **kwargs)

    def test_currency_must_match_order(self, order, staff):
        with pytest.raises(CurrencyMismatch):
            settlement_service.request_payment(order.id, staff.id, amount_cents=100, currency="ZAR")

    def test_cancelled_order_rejects_new_payments(self, order, staff):
        order_service.cancel_order(order.id, staff.id, "Out of stock")

        with pytest.raises(OrderCancelled):
            settlement_service.request_payment(order.id, staff.id, amount_cents=100)
        with pytest.raises(OrderCancelled):
            settlement_service.record_verified_payment(order.id, staff.id, amount_cents=100)


# =============================================================================
# CANCEL / UNCANCEL / DELETE
# =============================================================================


class TestCancellation:

    def test_cancel_and_uncancel_round_trip(self, order, staff):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=2000)

        settlement_service.cancel_transaction(transaction.id, staff.id, "Wrong amount")
        cancelled = _reload(order)
        assert cancelled.amount_pending_cents == 0
        assert cancelled.payment_status == "Unpaid"
        assert db.session.get(Transaction, transaction.id).cancellation_reason == "Wrong amount"

        settlement_service.uncancel_transaction(transaction.id, staff.id)
        restored = _reload(order)
        assert restored.amount_pending_cents == 2000
        assert restored.payment_status == "Pending Payment"

    def test_cancelled_transactions_are_kept(self, order, staff):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=2000)
        settlement_service.cancel_transaction(transaction.id, staff.id)

        assert [t.id for t in settlement_service.list_order_transactions(order.id, "cancelled")] == [transaction.id]
        assert settlement_service.list_order_transactions(order.id, "pending payment") == []

    def test_uncancel_rechecks_outstanding(self, order, staff):
        first = settlement_service.record_verified_payment(order.id, staff.id, amount_cents=6000)
        settlement_service.cancel_transaction(first.id, staff.id)
        settlement_service.record_verified_payment(order.id, staff.id, amount_cents=8000)

        with pytest.raises(AmountExceedsOutstanding):
            settlement_service.uncancel_transaction(first.id, staff.id)
        assert db.session.get(Transaction, first.id).is_cancelled is True

    def test_uncancel_rechecks_duplicate_pending(self, order, staff):
        first = settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        settlement_service.cancel_transaction(first.id, staff.id)
        settlement_service.request_payment(order.id, staff.id, amount_cents=1000)

        with pytest.raises(DuplicatePendingPayment):
            settlement_service.uncancel_transaction(first.id, staff.id)

    def test_transaction_changes_blocked_on_cancelled_order(self, order, staff):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        order_service.cancel_order(order.id, staff.id, "Customer left")

        with pytest.raises(OrderCancelled):
            settlement_service.cancel_transaction(transaction.id, staff.id)
        with pytest.raises(OrderCancelled):
            settlement_service.delete_transaction(transaction.id, staff.id)

    def test_delete_recomputes(self, order, staff):
        transaction = settlement_service.record_verified_payment(order.id, staff.id, amount_cents=4000)
        settlement_service.delete_transaction(transaction.id, staff.id)

        order = _reload(order)
        assert order.amount_paid_cents == 0
        assert order.payment_status == "Unpaid"
        assert db.session.get(Transaction, transaction.id) is None

        deleted = audit_service.list_order_events(order.id, audit_service.TRANSACTION_DELETED)
        assert deleted[0].payload["amount_cents"] == 4000

    def test_only_order_transactions_can_be_deleted(self, store, staff):
        other = Transaction(
            store_id=store.id,
            owner_type="subscription",
            owner_id=1,
            amount_cents=500,
            currency="BWP",
            payment_status="Paid",
            paid_by_user_id=staff.id,
        )
        other.initiator = UserVerified(by=staff.id)
        db.session.add(other)
        db.session.commit()

        with pytest.raises(CannotDeleteTransaction):
            settlement_service.delete_transaction(other.id, staff.id)


# =============================================================================
# PAYMENT GATEWAY
# =============================================================================


class TestGateway:

    def test_card_request_gets_payment_link(self, order, staff, fakes):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=5000, payment_method="card")

        assert transaction.payment_method == "CARD"
        assert transaction.payment_link_url.startswith("https://pay.example.test/links/")
        assert transaction.provider_reference == f"TXN-{transaction.id:08d}"
        assert fakes.provider.created == [transaction.id]

    def test_cash_request_does_not_call_gateway(self, order, staff, fakes):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=5000, payment_method="CASH")
        assert transaction.payment_link_url is None
        assert fakes.provider.created == []

    def test_gateway_failure_keeps_pending_transaction(self, order, staff, failing_provider):
        with pytest.raises(ProviderError) as exc_info:
            settlement_service.request_payment(order.id, staff.id, amount_cents=5000, payment_method="CARD")

        transaction = db.session.get(Transaction, exc_info.value.transaction_id)
        assert transaction.payment_status == "Pending Payment"
        assert transaction.payment_link_url is None
        assert exc_info.value.to_dict()["transaction_id"] == transaction.id
        assert _reload(order).amount_pending_cents == 5000

    def test_confirmed_callback_marks_paid(self, order, staff, fakes):
        transaction = settlement_service.request_payment(order.id, staff.id, percentage=100, payment_method="CARD")

        confirmed = settlement_service.confirm_provider_payment(transaction.id, {"token": "abc"})

        assert confirmed.payment_status == "Paid"
        assert confirmed.provider_reference == f"GW-{transaction.id}"
        assert confirmed.provider_metadata == {"status": "approved"}
        assert confirmed.description.endswith("and paid by Kago Sebina")
        assert _reload(order).payment_status == "Paid"
        assert "order.paid_online" in fakes.notifier.events()

    def test_repeated_callback_is_idempotent(self, order, staff, fakes):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=5000, payment_method="CARD")
        settlement_service.confirm_provider_payment(transaction.id, {"token": "abc"})
        settlement_service.confirm_provider_payment(transaction.id, {"token": "abc"})

        assert len(fakes.provider.verified) == 1
        assert _reload(order).amount_paid_cents == 5000

    def test_declined_callback_leaves_pending(self, order, staff, fakes):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=5000, payment_method="CARD")
        fakes.provider.approve = False

        result = settlement_service.confirm_provider_payment(transaction.id, {"token": "abc"})

        assert result.payment_status == "Pending Payment"
        assert _reload(order).amount_paid_cents == 0

    def test_callback_for_cancelled_transaction(self, order, staff):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=5000, payment_method="CARD")
        settlement_service.cancel_transaction(transaction.id, staff.id)

        with pytest.raises(TransactionNotPending):
            settlement_service.confirm_provider_payment(transaction.id, {"token": "abc"})

    def test_renew_link_cancels_old_one(self, order, staff, fakes):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=5000, payment_method="CARD")
        old_link = transaction.payment_link_url

        renewed = settlement_service.renew_payment_link(transaction.id, staff.id)

        assert renewed.payment_link_url != old_link
        assert fakes.provider.cancelled == [transaction.id]

    def test_delete_withdraws_payment_link(self, order, staff, fakes):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=5000, payment_method="CARD")
        settlement_service.delete_transaction(transaction.id, staff.id)
        assert fakes.provider.cancelled == [transaction.id]

    def test_delete_aborted_when_gateway_fails(self, order, staff, fakes):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=5000, payment_method="CARD")
        fakes.provider.fail_with = ProviderError("down")

        with pytest.raises(ProviderError):
            settlement_service.delete_transaction(transaction.id, staff.id)
        assert db.session.get(Transaction, transaction.id) is not None


# =============================================================================
# NOTIFICATIONS, EVENTS, READ SIDE
# =============================================================================


class TestSideEffects:

    def test_request_notifies_payer(self, order, staff, customer, fakes):
        settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        recipients, payload = fakes.notifier.sent[-1]
        assert recipients == [customer.id]
        assert payload["event"] == "order.payment_requested"

    def test_verified_payment_notifies_order_users_and_team(self, order, staff, customer, friend, fakes):
        settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        recipients, payload = fakes.notifier.sent[-1]
        assert recipients == sorted([customer.id, friend.id, staff.id])
        assert payload["event"] == "order.marked_as_paid"

    def test_notifier_failure_does_not_undo_payment(self, order, staff, fakes):
        def boom(user_ids, payload):
            raise RuntimeError("push service down")
        fakes.notifier.notify = boom

        transaction = settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        assert db.session.get(Transaction, transaction.id) is not None

    def test_events_are_recorded(self, order, staff):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        settlement_service.cancel_transaction(transaction.id, staff.id)

        types = [e.event_type for e in audit_service.list_order_events(order.id)]
        assert types == [
            audit_service.ORDER_CREATED,
            audit_service.PAYMENT_REQUESTED,
            audit_service.TRANSACTION_CANCELLED,
        ]

    def test_paying_users(self, order, staff, customer, friend):
        settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        settlement_service.request_payment(order.id, staff.id, amount_cents=1000, paid_by_user_id=friend.id)

        payers = {p["user"]["id"]: p["transactions_count"] for p in settlement_service.list_paying_users(order.id)}
        assert payers == {customer.id: 2, friend.id: 1}

    def test_filter_counts(self, order, staff):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        settlement_service.cancel_transaction(transaction.id, staff.id)

        counts = {f["name"]: f["total"] for f in settlement_service.list_transaction_filter_counts(order.id)}
        assert counts == {"All": 2, "Paid": 1, "Pending Payment": 0, "Cancelled": 1}


# =============================================================================
# PROOF OF PAYMENT, STORE LISTING
# =============================================================================


class TestProofOfPayment:

    def test_attach_to_verified_payment(self, order, staff, fakes):
        transaction = settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)

        updated = settlement_service.update_proof_of_payment(transaction.id, staff.id, b"slip", suffix=".JPG")

        assert updated.proof_of_payment_url in fakes.assets.files
        assert updated.proof_of_payment_url.endswith(".jpg")
        assert settlement_service.get_proof_of_payment(transaction.id) == updated.proof_of_payment_url
        types = [e.event_type for e in audit_service.list_order_events(order.id)]
        assert audit_service.PROOF_OF_PAYMENT_UPDATED in types

    def test_replacing_deletes_previous_file(self, order, staff, fakes):
        transaction = settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        first = settlement_service.update_proof_of_payment(transaction.id, staff.id, b"one", ".png").proof_of_payment_url

        second = settlement_service.update_proof_of_payment(transaction.id, staff.id, b"two", ".pdf").proof_of_payment_url

        assert fakes.assets.deleted == [first]
        assert list(fakes.assets.files) == [second]

    def test_replacing_survives_asset_store_failure(self, order, staff, fakes):
        transaction = settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        settlement_service.update_proof_of_payment(transaction.id, staff.id, b"one", ".png")

        def broken_delete(url):
            raise RuntimeError("bucket unavailable")
        fakes.assets.delete = broken_delete

        updated = settlement_service.update_proof_of_payment(transaction.id, staff.id, b"two", ".png")

        db.session.expire_all()
        assert db.session.get(Transaction, transaction.id).proof_of_payment_url == updated.proof_of_payment_url

    def test_remove(self, order, staff, fakes):
        transaction = settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        url = settlement_service.update_proof_of_payment(transaction.id, staff.id, b"slip", ".png").proof_of_payment_url

        settlement_service.remove_proof_of_payment(transaction.id, staff.id)

        assert settlement_service.get_proof_of_payment(transaction.id) is None
        assert fakes.assets.deleted == [url]

    def test_deleting_transaction_deletes_file(self, order, staff, fakes):
        transaction = settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        url = settlement_service.update_proof_of_payment(transaction.id, staff.id, b"slip", ".png").proof_of_payment_url

        settlement_service.delete_transaction(transaction.id, staff.id)

        assert fakes.assets.deleted == [url]

    def test_payment_requests_cannot_carry_proof(self, order, staff, fakes):
        transaction = settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        with pytest.raises(ProofOfPaymentNotAllowed):
            settlement_service.update_proof_of_payment(transaction.id, staff.id, b"slip", ".png")
        assert fakes.assets.files == {}

    @pytest.mark.parametrize("data, suffix", [(b"", ".png"), (b"slip", ".exe"), (b"slip", "")])
    def test_rejects_bad_upload(self, order, staff, fakes, data, suffix):
        transaction = settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        with pytest.raises(InvalidProofOfPayment):
            settlement_service.update_proof_of_payment(transaction.id, staff.id, data, suffix)


class TestStoreTransactions:

    def test_lists_every_order_in_the_store(self, fakes, store, customer, staff, order):
        second = order_service.create_order(store.id, customer.id, 5000)
        settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        settlement_service.request_payment(second.id, staff.id, amount_cents=500)

        listed = settlement_service.list_store_transactions(store.id)

        assert {t.owner_id for t in listed} == {order.id, second.id}

    def test_status_and_payer_filters(self, order, store, staff, customer, friend):
        settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        cancelled = settlement_service.request_payment(order.id, staff.id, amount_cents=1000)
        settlement_service.cancel_transaction(cancelled.id, staff.id)
        settlement_service.request_payment(order.id, staff.id, amount_cents=1000, paid_by_user_id=friend.id)

        assert len(settlement_service.list_store_transactions(store.id, "paid")) == 1
        assert len(settlement_service.list_store_transactions(store.id, "Cancelled")) == 1
        pending = settlement_service.list_store_transactions(store.id, "Pending Payment")
        assert [t.paid_by_user_id for t in pending] == [friend.id]
        by_customer = settlement_service.list_store_transactions(store.id, paid_by_user_id=customer.id)
        assert len(by_customer) == 2

    def test_other_stores_are_excluded(self, fakes, db_session, order, staff, customer):
        settlement_service.record_verified_payment(order.id, staff.id, amount_cents=1000)
        other = Store(name="Harbour Deli", currency="BWP")
        db_session.add(other)
        db_session.commit()

        assert settlement_service.list_store_transactions(other.id) == []

    def test_unknown_store(self, db_session):
        with pytest.raises(StoreNotFound):
            settlement_service.list_store_transactions(9999)
