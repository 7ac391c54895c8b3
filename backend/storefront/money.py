# Overview: Fixed-point currency value used by the ledger and settlement services.

"""
Money value object.

Amounts are integer minor units (cents / thebe) tagged with an ISO-4217
currency code. Arithmetic and comparison only happen between values of the
same currency; anything else raises CurrencyMismatch.

Percentage math rounds half-up to the nearest minor unit, using integer
arithmetic only so the same input always yields the same amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import total_ordering

from .errors import CurrencyMismatch


@total_ordering
@dataclass(frozen=True)
class Money:
    amount: int
    currency: str

    def __post_init__(self):
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise TypeError(f"Money amount must be integer minor units, got {self.amount!r}")
        if not self.currency or len(self.currency) != 3:
            raise ValueError(f"Invalid currency code: {self.currency!r}")
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def zero(cls, currency: str) -> Money:
        return cls(0, currency)

    def _check_currency(self, other: Money) -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Expected Money, got {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatch(
                f"Cannot combine {self.currency} with {other.currency}",
                left=self.currency,
                right=other.currency,
            )

    def add(self, other: Money) -> Money:
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: Money) -> Money:
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def multiply_by_percentage(self, percentage: int) -> Money:
        """
        Return percentage/100 of this amount, rounded half-up.

        Money(10001, "BWP").multiply_by_percentage(50) == Money(5001, "BWP")
        """
        if isinstance(percentage, bool) or not isinstance(percentage, int):
            raise TypeError("Percentage must be an integer")
        if percentage < 0 or percentage > 100:
            raise ValueError("Percentage must be between 0 and 100")
        numerator = self.amount * percentage
        sign = -1 if numerator < 0 else 1
        return Money(sign * ((abs(numerator) * 2 + 100) // 200), self.currency)

    def percentage_of(self, total: Money) -> int:
        """Share of total as a truncated integer percentage (0 when total is zero)."""
        self._check_currency(total)
        if total.amount == 0:
            return 0
        share = abs(self.amount) * 100 // abs(total.amount)
        negative = (self.amount < 0) != (total.amount < 0)
        return -share if negative else share

    def compare(self, other: Money) -> int:
        """-1, 0 or 1 like a classic comparator."""
        self._check_currency(other)
        return (self.amount > other.amount) - (self.amount < other.amount)

    def is_zero(self) -> bool:
        return self.amount == 0

    def __add__(self, other: Money) -> Money:
        return self.add(other)

    def __sub__(self, other: Money) -> Money:
        return self.subtract(other)

    def __lt__(self, other: Money) -> bool:
        return self.compare(other) < 0

    def format(self) -> str:
        sign = "-" if self.amount < 0 else ""
        major, minor = divmod(abs(self.amount), 100)
        return f"{self.currency} {sign}{major}.{minor:02d}"

    def __str__(self) -> str:
        return self.format()
