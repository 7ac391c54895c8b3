# Overview: Pure ledger math over an order's transactions; no database access.

"""
Order Payment Ledger

WHY: An order's paid / pending / outstanding figures and its payment status
are derived data. Computing them from the transaction list with a pure
function means the same transactions always produce the same figures, and
the settlement service can recompute after every change without caring
what changed.

LEDGER RULES:
- amount_paid = sum of non-cancelled transactions in status Paid
- amount_pending = sum of non-cancelled transactions in status Pending Payment
- amount_outstanding = grand_total - amount_paid (pending money is still outstanding)
- percentages = amount / grand_total * 100, truncated; all 0 when grand_total is 0

PAYMENT STATUS (first match wins):
- Pending Payment: pending percentage != 0
- Unpaid: paid percentage == 0
- Paid: paid percentage == 100
- Partially Paid: otherwise
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

from ..money import Money
from ..statuses import OrderPaymentStatus, TransactionStatus


class LedgerEntry(Protocol):
    amount: Money
    payment_status: str
    is_cancelled: bool


@dataclass(frozen=True)
class LedgerBalance:
    grand_total: Money
    amount_paid: Money
    amount_pending: Money
    amount_outstanding: Money
    percentage_paid: int
    percentage_pending: int
    percentage_outstanding: int

    @property
    def remaining_payable(self) -> Money:
        """What can still be requested: outstanding minus what is already pending."""
        return self.amount_outstanding - self.amount_pending

    @property
    def remaining_payable_percentage(self) -> int:
        return self.percentage_outstanding - self.percentage_pending

    def to_dict(self) -> dict:
        return {
            "currency": self.grand_total.currency,
            "grand_total_cents": self.grand_total.amount,
            "amount_paid_cents": self.amount_paid.amount,
            "amount_pending_cents": self.amount_pending.amount,
            "amount_outstanding_cents": self.amount_outstanding.amount,
            "amount_paid_percentage": self.percentage_paid,
            "amount_pending_percentage": self.percentage_pending,
            "amount_outstanding_percentage": self.percentage_outstanding,
        }


def compute_balance(grand_total: Money, transactions: Iterable[LedgerEntry]) -> LedgerBalance:
    """Aggregate a transaction list into ledger figures for one order."""
    paid = Money.zero(grand_total.currency)
    pending = Money.zero(grand_total.currency)

    for transaction in transactions:
        if transaction.is_cancelled:
            continue
        if transaction.payment_status == TransactionStatus.PAID:
            paid = paid + transaction.amount
        elif transaction.payment_status == TransactionStatus.PENDING_PAYMENT:
            pending = pending + transaction.amount

    outstanding = grand_total - paid

    return LedgerBalance(
        grand_total=grand_total,
        amount_paid=paid,
        amount_pending=pending,
        amount_outstanding=outstanding,
        percentage_paid=paid.percentage_of(grand_total),
        percentage_pending=pending.percentage_of(grand_total),
        percentage_outstanding=outstanding.percentage_of(grand_total),
    )


def derive_payment_status(balance: LedgerBalance) -> OrderPaymentStatus:
    """Order payment status from ledger figures."""
    if balance.percentage_pending != 0:
        return OrderPaymentStatus.PENDING_PAYMENT
    if balance.percentage_paid == 0:
        return OrderPaymentStatus.UNPAID
    if balance.percentage_paid == 100:
        return OrderPaymentStatus.PAID
    return OrderPaymentStatus.PARTIALLY_PAID
