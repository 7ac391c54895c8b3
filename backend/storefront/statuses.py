# Overview: Closed status vocabularies for orders and transactions.

"""
Order / transaction statuses.

Stored values are the human-readable labels ("Pending Payment"). Anything
coming from outside (query strings, JSON bodies, CLI options) goes through
parse(), which accepts "pending payment", "PENDING_PAYMENT",
"pendingPayment" or "pending-payment" alike and rejects everything else.
"""

from __future__ import annotations

import re
from enum import Enum

from .errors import InvalidStatus


_WORD_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATORS = re.compile(r"[\s_\-]+")


def canonicalize(value: str) -> str:
    """Split camelCase / snake_case / kebab-case into lowercase words."""
    spaced = _WORD_BOUNDARY.sub(" ", value.strip())
    return _SEPARATORS.sub(" ", spaced).strip().lower()


class _LabelEnum(str, Enum):

    @classmethod
    def parse(cls, raw):
        if isinstance(raw, cls):
            return raw
        if not isinstance(raw, str) or not raw.strip():
            raise InvalidStatus(f"Expected one of: {', '.join(m.value for m in cls)}")
        wanted = canonicalize(raw)
        for member in cls:
            if canonicalize(member.value) == wanted or canonicalize(member.name) == wanted:
                return member
        raise InvalidStatus(
            f"Unknown value {raw!r}. Expected one of: {', '.join(m.value for m in cls)}"
        )

    def __str__(self) -> str:
        return self.value


class OrderPaymentStatus(_LabelEnum):
    UNPAID = "Unpaid"
    PENDING_PAYMENT = "Pending Payment"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"


class TransactionStatus(_LabelEnum):
    PENDING_PAYMENT = "Pending Payment"
    PAID = "Paid"


class OrderStatus(_LabelEnum):
    WAITING = "Waiting"
    ON_ITS_WAY = "On Its Way"
    READY_FOR_PICKUP = "Ready For Pickup"
    CANCELLED = "Cancelled"
    COMPLETED = "Completed"


class VerifiedBy(_LabelEnum):
    SYSTEM = "System"
    USER = "User"


class TransactionFilter(_LabelEnum):
    ALL = "All"
    PAID = "Paid"
    PENDING_PAYMENT = "Pending Payment"
    CANCELLED = "Cancelled"


class CollectorRole(_LabelEnum):
    CUSTOMER = "Customer"
    FRIEND = "Friend"


# Transaction owners (polymorphic owner_type column)
OWNER_ORDER = "order"
