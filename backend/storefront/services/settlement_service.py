# Overview: Service-layer operations for order payments; enforces settlement rules and keeps the ledger in sync.

"""
Order Settlement Service

WHY: Orders are paid through a set of transactions: payment requests that
an external gateway confirms later, and payments taken in store that a team
member records directly. This module owns every change to that set and
recomputes the order's ledger figures in the same database transaction.

DESIGN PRINCIPLES:
- Amounts are canonical: a percentage input is converted to minor units
  once, up front; the stored percentage is display-only.
- One writer per order: every mutation locks the order row first.
- Nothing half-written: guard failures roll back the whole unit of work.
- Cancel, don't delete: cancelled transactions stay for the audit trail.
- Gateway calls happen outside the locked unit of work; a gateway failure
  leaves the ledger exactly as it was.
- Notifications go out only after commit.

GUARDS (new payments, in this order):
1. OrderCancelled
2. OrderFullyPaid
3. NoAmountOutstanding
4. InvalidPaymentAmount
5. AmountExceedsOutstanding / PercentageExceedsOutstanding (against outstanding - pending)
6. DuplicatePendingPayment (payment requests only)
"""

from __future__ import annotations

from flask import current_app

from ..errors import (
    AmountExceedsOutstanding,
    CannotDeleteTransaction,
    CurrencyMismatch,
    DuplicatePendingPayment,
    InvalidPaymentAmount,
    InvalidProofOfPayment,
    NoAmountOutstanding,
    OrderCancelled,
    OrderFullyPaid,
    OrderNotFound,
    PercentageExceedsOutstanding,
    ProofOfPaymentNotAllowed,
    ProviderError,
    StoreNotFound,
    TransactionNotFound,
    TransactionNotPending,
    UserNotFound,
)
from ..extensions import db
from ..models import Order, Store, SystemRequested, Transaction, User, UserVerified
from ..money import Money
from ..statuses import OWNER_ORDER, TransactionFilter, TransactionStatus
from ..time_utils import utcnow
from . import audit_service, notification_service
from .asset_store import discard_assets
from .collaborators import get_collaborators
from .concurrency import commit_with_retry, run_with_retry
from .ledger_service import LedgerBalance, compute_balance, derive_payment_status
from .payment_providers import transaction_reference
from .repositories import (
    CollectionRepository,
    OrderRepository,
    TransactionRepository,
    UserRepository,
)

orders = OrderRepository()
transactions = TransactionRepository()
users = UserRepository()
collectors = CollectionRepository()


# =============================================================================
# LEDGER RECOMPUTATION
# =============================================================================

def current_balance(order: Order) -> LedgerBalance:
    """Ledger figures computed from the order's transactions as they are now."""
    return compute_balance(order.grand_total, transactions.list_for_order(order.id))


def recompute_order_balance(order: Order) -> LedgerBalance:
    """
    Recalculate and write the order's ledger fields and payment status.

    Must run inside the caller's unit of work, after every transaction
    create / cancel / uncancel / delete / status change.
    """
    balance = current_balance(order)

    order.amount_paid_cents = balance.amount_paid.amount
    order.amount_pending_cents = balance.amount_pending.amount
    order.amount_outstanding_cents = balance.amount_outstanding.amount
    order.amount_paid_percentage = balance.percentage_paid
    order.amount_pending_percentage = balance.percentage_pending
    order.amount_outstanding_percentage = balance.percentage_outstanding
    order.payment_status = derive_payment_status(balance).value

    db.session.flush()
    return balance


# =============================================================================
# INTERNAL HELPERS
# =============================================================================

def load_order_for_update(order_id: int) -> Order:
    order = orders.get_for_update(order_id)
    if not order:
        raise OrderNotFound(f"Order {order_id} not found")
    return order


def _load_transaction(transaction_id: int) -> Transaction:
    transaction = transactions.get(transaction_id)
    if not transaction:
        raise TransactionNotFound(f"Transaction {transaction_id} not found")
    return transaction


def _require_user(user_id: int) -> User:
    user = users.get(user_id)
    if not user:
        raise UserNotFound(f"User {user_id} not found")
    return user


def _ensure_order_not_cancelled(order: Order, message: str | None = None) -> None:
    if order.is_cancelled:
        raise OrderCancelled(message)


def _guard_new_payment(order: Order, balance: LedgerBalance, cancelled_message: str) -> None:
    _ensure_order_not_cancelled(order, cancelled_message)

    if balance.grand_total.amount > 0 and balance.amount_paid >= balance.grand_total:
        raise OrderFullyPaid()

    if balance.amount_outstanding.amount <= 0:
        raise NoAmountOutstanding()


def _resolve_amount(
    order: Order,
    balance: LedgerBalance,
    amount_cents: int | None,
    percentage: int | None,
    currency: str | None,
) -> Money:
    """
    Turn the caller's amount or percentage into minor units and check it
    against what is still payable (outstanding minus pending).
    """
    if (amount_cents is None) == (percentage is None):
        raise InvalidPaymentAmount("Provide either an amount or a percentage")

    if currency and currency.strip().upper() != order.currency:
        raise CurrencyMismatch(f"This order is priced in {order.currency}, not {currency}")

    remaining = balance.remaining_payable

    if amount_cents is not None:
        if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
            raise InvalidPaymentAmount("Payment amount must be a positive number of minor units")
        amount = Money(amount_cents, order.currency)
        if amount > remaining:
            raise AmountExceedsOutstanding(
                f"The amount specified {amount} is more than the remaining payable "
                f"amount {remaining} for this order"
            )
        return amount

    if isinstance(percentage, bool) or not isinstance(percentage, int) or not 1 <= percentage <= 100:
        raise InvalidPaymentAmount("Payment percentage must be a whole number between 1 and 100")
    amount = order.grand_total.multiply_by_percentage(percentage)
    if amount > remaining:
        raise PercentageExceedsOutstanding(
            f"The percentage specified {percentage}% is more than the remaining payable "
            f"percentage {balance.remaining_payable_percentage}% for this order"
        )
    if amount.is_zero():
        raise InvalidPaymentAmount("Payment percentage is too small for this order total")
    return amount


def _resolve_payer(order: Order, paid_by_user_id: int | None, payer_mobile_number: str | None) -> int:
    """
    The payer is the customer unless the request names someone else: a
    mobile number (any registered user) or a user tagged on the order.
    """
    if payer_mobile_number:
        payer = users.find_by_mobile_number(payer_mobile_number)
        if not payer:
            raise UserNotFound(f"No user with mobile number {payer_mobile_number}")
        return payer.id

    if paid_by_user_id and collectors.get(order.id, paid_by_user_id):
        return paid_by_user_id

    return order.customer_user_id


def _describe(order: Order, amount: Money, balance: LedgerBalance, verb: str, actor: User) -> str:
    kind = "Full" if amount == balance.amount_outstanding else "Partial"
    return f"{kind} payment for order #{order.number} {verb} by {actor.name}"


def _new_order_transaction(
    order: Order,
    amount: Money,
    *,
    payment_status: TransactionStatus,
    initiator: SystemRequested | UserVerified,
    payer_user_id: int,
    payment_method: str | None,
    description: str,
) -> Transaction:
    transaction = Transaction(
        store_id=order.store_id,
        owner_type=OWNER_ORDER,
        owner_id=order.id,
        amount_cents=amount.amount,
        currency=amount.currency,
        percentage=amount.percentage_of(order.grand_total),
        payment_status=payment_status.value,
        description=description,
        payment_method=payment_method.upper() if payment_method else None,
        paid_by_user_id=payer_user_id,
        initiator=initiator,
    )
    return transactions.add(transaction)


def _order_audience(order: Order) -> list[int]:
    """Customer and friends tagged on the order plus the joined store team."""
    return users.order_user_ids(order.id) + users.joined_team_member_ids(order.store_id)


# =============================================================================
# NEW PAYMENTS
# =============================================================================

def request_payment(
    order_id: int,
    acting_user_id: int,
    *,
    amount_cents: int | None = None,
    percentage: int | None = None,
    currency: str | None = None,
    paid_by_user_id: int | None = None,
    payer_mobile_number: str | None = None,
    payment_method: str | None = None,
) -> Transaction:
    """
    Request a payment on an order.

    Creates a Pending Payment transaction for the payer and, when the
    payment method is settled through a gateway, attaches a payment link.

    Raises:
        OrderNotFound, UserNotFound, OrderCancelled, OrderFullyPaid,
        NoAmountOutstanding, InvalidPaymentAmount, AmountExceedsOutstanding,
        PercentageExceedsOutstanding, CurrencyMismatch, DuplicatePendingPayment
        ProviderError: the transaction was recorded (see error.transaction_id)
            but the gateway did not return a link; it stays pending.
    """
    def _op():
        actor = _require_user(acting_user_id)
        order = load_order_for_update(order_id)
        balance = current_balance(order)

        _guard_new_payment(order, balance, "This order cannot request payment because it has been cancelled")
        amount = _resolve_amount(order, balance, amount_cents, percentage, currency)
        payer_id = _resolve_payer(order, paid_by_user_id, payer_mobile_number)

        if transactions.has_open_pending_payment(order.id, payer_id):
            raise DuplicatePendingPayment()

        transaction = _new_order_transaction(
            order,
            amount,
            payment_status=TransactionStatus.PENDING_PAYMENT,
            initiator=SystemRequested(by=actor.id),
            payer_user_id=payer_id,
            payment_method=payment_method,
            description=_describe(order, amount, balance, "requested", actor),
        )
        recompute_order_balance(order)

        audit_service.append_order_event(
            order=order,
            event_type=audit_service.PAYMENT_REQUESTED,
            actor_user_id=actor.id,
            transaction_id=transaction.id,
            payload={"amount_cents": amount.amount, "paid_by_user_id": payer_id},
        )
        db.session.commit()
        return order, transaction, actor

    order, transaction, actor = run_with_retry(_op)
    collaborators = get_collaborators()

    provider = collaborators.provider_for(transaction.payment_method)
    if provider is not None:
        try:
            link = provider.create_payment_link(transaction)
        except ProviderError as exc:
            current_app.logger.warning(
                "Payment link creation failed for transaction %s: %s", transaction.id, exc.message
            )
            raise ProviderError(exc.message, transaction_id=transaction.id) from exc
        transaction.payment_link_url = link
        transaction.provider_reference = transaction_reference(transaction)
        commit_with_retry()

    notification_service.dispatch(
        collaborators.notifier,
        [transaction.paid_by_user_id],
        notification_service.order_payment_requested(order, transaction, actor),
    )
    return transaction


def record_verified_payment(
    order_id: int,
    acting_user_id: int,
    *,
    amount_cents: int | None = None,
    percentage: int | None = None,
    currency: str | None = None,
    paid_by_user_id: int | None = None,
    payer_mobile_number: str | None = None,
    payment_method: str | None = None,
) -> Transaction:
    """
    Record a payment taken outside the platform (cash, EFT, card machine).

    The transaction is Paid immediately and attributed to the verifying
    user. A payer may have a pending request open at the same time.
    """
    def _op():
        actor = _require_user(acting_user_id)
        order = load_order_for_update(order_id)
        balance = current_balance(order)

        _guard_new_payment(order, balance, "This order cannot be marked as paid because it has been cancelled")
        amount = _resolve_amount(order, balance, amount_cents, percentage, currency)
        payer_id = _resolve_payer(order, paid_by_user_id, payer_mobile_number)

        transaction = _new_order_transaction(
            order,
            amount,
            payment_status=TransactionStatus.PAID,
            initiator=UserVerified(by=actor.id),
            payer_user_id=payer_id,
            payment_method=payment_method,
            description=_describe(order, amount, balance, "confirmed", actor),
        )
        recompute_order_balance(order)

        audit_service.append_order_event(
            order=order,
            event_type=audit_service.PAYMENT_RECORDED,
            actor_user_id=actor.id,
            transaction_id=transaction.id,
            payload={"amount_cents": amount.amount, "paid_by_user_id": payer_id},
        )
        db.session.commit()
        return order, transaction, actor

    order, transaction, actor = run_with_retry(_op)

    notification_service.dispatch(
        get_collaborators().notifier,
        _order_audience(order),
        notification_service.order_marked_as_paid(order, transaction, actor),
    )
    return transaction


# =============================================================================
# GATEWAY CALLBACKS
# =============================================================================

def confirm_provider_payment(transaction_id: int, callback_payload: dict) -> Transaction:
    """
    Settle a pending transaction after the gateway reports a payment.

    The gateway is asked to verify the callback; only a verified payment
    marks the transaction Paid. Repeated callbacks for a transaction that
    is already paid return it unchanged.
    """
    transaction = _load_transaction(transaction_id)

    if transaction.is_paid and not transaction.is_cancelled:
        return transaction
    if transaction.is_cancelled or not transaction.is_pending_payment:
        raise TransactionNotPending()

    if transaction.owner_type == OWNER_ORDER:
        order = orders.get(transaction.owner_id)
        if order:
            _ensure_order_not_cancelled(order)

    collaborators = get_collaborators()
    provider = collaborators.provider_for(transaction.payment_method)
    if provider is None:
        raise ProviderError(
            f"No payment provider handles {transaction.payment_method or 'this payment method'}",
            transaction_id=transaction.id,
        )

    verification = provider.verify_payment(transaction, callback_payload)
    if not verification.verified:
        current_app.logger.info("Payment for transaction %s was not verified", transaction.id)
        return transaction

    def _op():
        order = None
        if transaction.owner_type == OWNER_ORDER:
            order = load_order_for_update(transaction.owner_id)
            _ensure_order_not_cancelled(order)

        locked = transactions.get_for_update(transaction_id)
        if locked.is_paid and not locked.is_cancelled:
            return order, locked, False
        if locked.is_cancelled or not locked.is_pending_payment:
            raise TransactionNotPending()

        locked.payment_status = TransactionStatus.PAID.value
        locked.provider_metadata = verification.metadata
        if verification.reference:
            locked.provider_reference = verification.reference
        payer = users.get(locked.paid_by_user_id)
        if payer and locked.description:
            locked.description = f"{locked.description} and paid by {payer.name}"

        if order is not None:
            recompute_order_balance(order)
            audit_service.append_order_event(
                order=order,
                event_type=audit_service.PAYMENT_CONFIRMED,
                transaction_id=locked.id,
                payload={"provider_reference": locked.provider_reference},
            )
        db.session.commit()
        return order, locked, True

    order, confirmed, changed = run_with_retry(_op)

    if changed and order is not None:
        notification_service.dispatch(
            collaborators.notifier,
            _order_audience(order),
            notification_service.order_paid_online(order, confirmed),
        )
    return confirmed


def renew_payment_link(transaction_id: int, acting_user_id: int) -> Transaction:
    """Replace the gateway link of a pending transaction (e.g., after it expired)."""
    _require_user(acting_user_id)
    transaction = _load_transaction(transaction_id)

    if transaction.is_cancelled or not transaction.is_pending_payment:
        raise TransactionNotPending()
    if transaction.owner_type == OWNER_ORDER:
        order = orders.get(transaction.owner_id)
        if order:
            _ensure_order_not_cancelled(order)

    provider = get_collaborators().provider_for(transaction.payment_method)
    if provider is None:
        raise ProviderError(
            f"No payment provider handles {transaction.payment_method or 'this payment method'}",
            transaction_id=transaction.id,
        )

    if transaction.payment_link_url:
        provider.cancel_payment_link(transaction)
    link = provider.create_payment_link(transaction)

    def _op():
        locked = transactions.get_for_update(transaction_id)
        locked.payment_link_url = link
        locked.provider_reference = transaction_reference(locked)
        if locked.owner_type == OWNER_ORDER:
            order = orders.get(locked.owner_id)
            if order:
                audit_service.append_order_event(
                    order=order,
                    event_type=audit_service.PAYMENT_LINK_RENEWED,
                    actor_user_id=acting_user_id,
                    transaction_id=locked.id,
                )
        db.session.commit()
        return locked

    return run_with_retry(_op)


# =============================================================================
# CANCEL / UNCANCEL / DELETE
# =============================================================================

def cancel_transaction(transaction_id: int, acting_user_id: int, reason: str | None = None) -> Transaction:
    """
    Cancel a transaction (kept for the audit trail, excluded from the ledger).

    Cancelling an already cancelled transaction is a no-op.
    """
    def _op():
        transaction = _load_transaction(transaction_id)
        order = None
        if transaction.owner_type == OWNER_ORDER:
            order = load_order_for_update(transaction.owner_id)
            _ensure_order_not_cancelled(order)

        locked = transactions.get_for_update(transaction_id)
        if locked.is_cancelled:
            return locked

        locked.is_cancelled = True
        locked.cancelled_at = utcnow()
        locked.cancelled_by_user_id = acting_user_id
        locked.cancellation_reason = reason

        if order is not None:
            recompute_order_balance(order)
            audit_service.append_order_event(
                order=order,
                event_type=audit_service.TRANSACTION_CANCELLED,
                actor_user_id=acting_user_id,
                transaction_id=locked.id,
                payload={"reason": reason} if reason else None,
            )
        db.session.commit()
        return locked

    return run_with_retry(_op)


def uncancel_transaction(transaction_id: int, acting_user_id: int) -> Transaction:
    """
    Restore a cancelled transaction.

    The order may have moved on since the cancellation, so the amount is
    re-checked against what is still payable, and a pending transaction
    must not collide with another open request from the same payer.
    """
    def _op():
        transaction = _load_transaction(transaction_id)
        order = None
        if transaction.owner_type == OWNER_ORDER:
            order = load_order_for_update(transaction.owner_id)
            _ensure_order_not_cancelled(order)

        locked = transactions.get_for_update(transaction_id)
        if not locked.is_cancelled:
            return locked

        if order is not None:
            balance = current_balance(order)
            remaining = balance.remaining_payable
            if locked.amount > remaining:
                raise AmountExceedsOutstanding(
                    f"The transaction cannot be uncancelled because the transaction amount "
                    f"{locked.amount} is more than the remaining payable amount {remaining} for this order"
                )
            if locked.is_pending_payment and transactions.has_open_pending_payment(
                order.id, locked.paid_by_user_id, exclude_id=locked.id
            ):
                raise DuplicatePendingPayment()

        locked.is_cancelled = False
        locked.cancelled_at = None
        locked.cancelled_by_user_id = None
        locked.cancellation_reason = None

        if order is not None:
            recompute_order_balance(order)
            audit_service.append_order_event(
                order=order,
                event_type=audit_service.TRANSACTION_UNCANCELLED,
                actor_user_id=acting_user_id,
                transaction_id=locked.id,
            )
        db.session.commit()
        return locked

    return run_with_retry(_op)


def delete_transaction(transaction_id: int, acting_user_id: int) -> None:
    """
    Delete an order transaction outright and recompute the order ledger.

    Only order transactions can be deleted; other billable owners keep
    their transactions. An outstanding gateway link is withdrawn first, so
    a provider failure aborts the deletion.
    """
    transaction = _load_transaction(transaction_id)
    if transaction.owner_type != OWNER_ORDER:
        raise CannotDeleteTransaction()

    order = orders.get(transaction.owner_id)
    if order is None:
        raise OrderNotFound(f"Order {transaction.owner_id} not found")
    _ensure_order_not_cancelled(order)

    if transaction.payment_link_url and transaction.is_pending_payment:
        provider = get_collaborators().provider_for(transaction.payment_method)
        if provider is not None:
            provider.cancel_payment_link(transaction)

    def _op():
        locked_order = load_order_for_update(transaction.owner_id)
        _ensure_order_not_cancelled(locked_order)

        locked = transactions.get_for_update(transaction_id)
        if locked is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")

        snapshot = {
            "amount_cents": locked.amount_cents,
            "payment_status": locked.payment_status,
            "is_cancelled": locked.is_cancelled,
            "paid_by_user_id": locked.paid_by_user_id,
        }
        proof_url = locked.proof_of_payment_url
        transactions.delete(locked)
        recompute_order_balance(locked_order)

        audit_service.append_order_event(
            order=locked_order,
            event_type=audit_service.TRANSACTION_DELETED,
            actor_user_id=acting_user_id,
            transaction_id=transaction_id,
            payload=snapshot,
        )
        db.session.commit()
        return proof_url

    proof_url = run_with_retry(_op)
    discard_assets(get_collaborators().asset_store, [proof_url])


# =============================================================================
# PROOF OF PAYMENT
# =============================================================================

PROOF_OF_PAYMENT_SUFFIXES = (".png", ".jpg", ".jpeg", ".pdf")


def _audit_proof(transaction: Transaction, acting_user_id: int, event_type: str, url: str | None) -> None:
    if transaction.owner_type != OWNER_ORDER:
        return
    order = orders.get(transaction.owner_id)
    if order:
        audit_service.append_order_event(
            order=order,
            event_type=event_type,
            actor_user_id=acting_user_id,
            transaction_id=transaction.id,
            payload={"proof_of_payment_url": url},
        )


def get_proof_of_payment(transaction_id: int) -> str | None:
    return _load_transaction(transaction_id).proof_of_payment_url


def update_proof_of_payment(transaction_id: int, acting_user_id: int, data: bytes, suffix: str = ".jpg") -> Transaction:
    """
    Attach a receipt or slip to a payment a team member confirmed by hand.

    A previous file is replaced and deleted once the change is committed.
    Payments requested through the platform are confirmed by the gateway
    and cannot carry one.

    Raises:
        TransactionNotFound, UserNotFound, ProofOfPaymentNotAllowed,
        InvalidProofOfPayment
    """
    _require_user(acting_user_id)
    transaction = _load_transaction(transaction_id)
    if not isinstance(transaction.initiator, UserVerified):
        raise ProofOfPaymentNotAllowed()

    suffix = (suffix or "").lower()
    if not data or suffix not in PROOF_OF_PAYMENT_SUFFIXES:
        raise InvalidProofOfPayment()

    asset_store = get_collaborators().asset_store
    url = asset_store.store(data, suffix=suffix)

    def _op():
        locked = transactions.get_for_update(transaction_id)
        if locked is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        previous = locked.proof_of_payment_url
        locked.proof_of_payment_url = url
        _audit_proof(locked, acting_user_id, audit_service.PROOF_OF_PAYMENT_UPDATED, url)
        db.session.commit()
        return locked, previous

    try:
        updated, previous = run_with_retry(_op)
    except Exception:
        discard_assets(asset_store, [url])
        raise

    discard_assets(asset_store, [previous])
    return updated


def remove_proof_of_payment(transaction_id: int, acting_user_id: int) -> Transaction:
    """Detach the proof of payment (no-op when there is none) and delete the file."""
    _require_user(acting_user_id)
    _load_transaction(transaction_id)

    def _op():
        locked = transactions.get_for_update(transaction_id)
        if locked is None:
            raise TransactionNotFound(f"Transaction {transaction_id} not found")
        previous = locked.proof_of_payment_url
        if previous:
            locked.proof_of_payment_url = None
            _audit_proof(locked, acting_user_id, audit_service.PROOF_OF_PAYMENT_REMOVED, previous)
            db.session.commit()
        return locked, previous

    updated, previous = run_with_retry(_op)
    discard_assets(get_collaborators().asset_store, [previous])
    return updated


# =============================================================================
# READ SIDE
# =============================================================================

def get_order(order_id: int) -> Order:
    order = orders.get(order_id)
    if not order:
        raise OrderNotFound(f"Order {order_id} not found")
    return order


def get_transaction(transaction_id: int) -> Transaction:
    return _load_transaction(transaction_id)


def get_payment_summary(order_id: int) -> dict:
    """
    Payment summary for an order.

    Returns the stored ledger fields plus what can still be requested.
    """
    order = get_order(order_id)
    balance = current_balance(order)

    summary = balance.to_dict()
    summary.update({
        "order_id": order.id,
        "payment_status": order.payment_status,
        "remaining_payable_cents": balance.remaining_payable.amount,
        "remaining_payable_percentage": balance.remaining_payable_percentage,
        "transactions_count": transactions.count_for_order(order.id),
    })
    return summary


def list_order_transactions(order_id: int, status_filter: str | TransactionFilter = TransactionFilter.ALL) -> list[Transaction]:
    get_order(order_id)
    return transactions.list_for_order(order_id, TransactionFilter.parse(status_filter))


def list_transaction_filter_counts(order_id: int) -> list[dict]:
    get_order(order_id)
    return [
        {"name": f.value, "total": transactions.count_for_order(order_id, f)}
        for f in TransactionFilter
    ]


def list_paying_users(order_id: int) -> list[dict]:
    """Users who paid (or were asked to pay) on an order, with transaction counts."""
    get_order(order_id)
    result = []
    for user_id, count in transactions.payer_counts(order_id):
        user = users.get(user_id)
        result.append({
            "user": user.to_dict() if user else {"id": user_id},
            "transactions_count": count,
        })
    return result


def list_store_transactions(
    store_id: int,
    status_filter: str | TransactionFilter = TransactionFilter.ALL,
    paid_by_user_id: int | None = None,
) -> list[Transaction]:
    """Transactions across the whole store, optionally for a single payer."""
    if not db.session.get(Store, store_id):
        raise StoreNotFound(f"Store {store_id} not found")
    return transactions.list_for_store(store_id, TransactionFilter.parse(status_filter), paid_by_user_id)
