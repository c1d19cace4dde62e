"""
Expense Ledger

The in-memory, ordered collection of expenses for one session.

DESIGN DECISION: Bad user input is never fatal.
`add` either returns the new record or raises InvalidAmountError, which
the caller shows as a retry-able form message. The ledger is unchanged
after a rejected add.

Amounts are plain ASCII decimals, optionally in scientific notation, with
at most `max_integer_digits` digits before the point and
`max_fraction_digits` significant digits after it. Totals are summed in a
context wide enough for every accepted amount, with Inexact trapped, so a
total is never silently rounded.
"""

import re
import threading
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal, Inexact, InvalidOperation, localcontext
from typing import Iterable, Optional

from ibudget.config import LedgerSettings, get_settings
from ibudget.models.expense import ExpenseRecord


AMOUNT_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


class ValidationError(ValueError):
    """Raised when user-supplied expense data does not meet requirements."""


class InvalidAmountError(ValidationError):
    """The amount text is not a finite number greater than zero."""

    def __init__(self, amount_text: object):
        self.amount_text = amount_text
        super().__init__("Amount must be a number greater than zero")


def _integer_digits(amount: Decimal) -> int:
    return max(0, amount.adjusted() + 1)


def _fraction_digits(amount: Decimal) -> int:
    _, digits, exponent = amount.as_tuple()
    # trailing zeros after the point
    while exponent < 0 and len(digits) > 1 and digits[-1] == 0:
        digits = digits[:-1]
        exponent += 1
    return max(0, -exponent)


def parse_amount(amount_text: str, settings: Optional[LedgerSettings] = None) -> Decimal:
    """
    Parse form input into a strictly positive Decimal.

    Surrounding whitespace is ignored. Empty, non-numeric, non-finite
    (NaN, Infinity), non-positive and over-long inputs are rejected, as
    are digit group separators ("1,000", "1_000") and non-ASCII digits.
    """
    settings = settings or get_settings().ledger

    if not isinstance(amount_text, str):
        raise InvalidAmountError(amount_text)

    text = amount_text.strip()
    if not AMOUNT_PATTERN.fullmatch(text):
        raise InvalidAmountError(amount_text)

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise InvalidAmountError(amount_text) from None

    if amount <= 0:
        raise InvalidAmountError(amount_text)

    if (
        _integer_digits(amount) > settings.max_integer_digits
        or _fraction_digits(amount) > settings.max_fraction_digits
    ):
        raise InvalidAmountError(amount_text)

    return amount


class Ledger:
    """
    Ordered collection of ExpenseRecords.

    Insertion order is preserved. All reads and writes go through one lock,
    which a session shares with its other components.
    """

    def __init__(
        self,
        settings: Optional[LedgerSettings] = None,
        lock: Optional[AbstractContextManager] = None,
    ):
        self._settings = settings or get_settings().ledger
        self._lock = lock or threading.RLock()
        self._records: list[ExpenseRecord] = []

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def records(self) -> tuple[ExpenseRecord, ...]:
        """Snapshot of all records in insertion order."""
        with self._lock:
            return tuple(self._records)

    def _normalize_label(self, value: Optional[str], fallback: str) -> str:
        cleaned = (value or "").strip()
        return cleaned or fallback

    def add(
        self,
        title: Optional[str],
        category: Optional[str],
        amount_text: str,
        date: datetime,
    ) -> ExpenseRecord:
        """
        Validate form input and append a new expense.

        Raises:
            InvalidAmountError: If amount_text is unparsable, not > 0 or too long
        """
        amount = parse_amount(amount_text, self._settings)

        record = ExpenseRecord(
            title=self._normalize_label(title, self._settings.default_title),
            category=self._normalize_label(category, self._settings.default_category),
            amount=amount,
            date=date,
        )

        with self._lock:
            self._records.append(record)

        return record

    def _exact_sum(self, amounts: Iterable[Decimal]) -> Decimal:
        amounts = list(amounts)
        with localcontext() as ctx:
            ctx.prec = (
                self._settings.max_integer_digits
                + self._settings.max_fraction_digits
                + len(str(max(len(amounts), 1)))
            )
            ctx.traps[Inexact] = True
            return sum(amounts, Decimal("0"))

    def clear(self) -> None:
        """Drop every record."""
        with self._lock:
            self._records.clear()

    def total_spent(self) -> Decimal:
        """Exact sum of all amounts; Decimal("0") when empty."""
        with self._lock:
            amounts = [r.amount for r in self._records]
        return self._exact_sum(amounts)

    def distinct_categories(self) -> list[str]:
        """
        Category filter options.

        An empty ledger yields an empty list, without the "All" entry.
        Otherwise "All" comes first, followed by the distinct categories
        in lexicographic order.
        """
        with self._lock:
            if not self._records:
                return []
            categories = {r.category for r in self._records}

        return [self._settings.all_categories_label] + sorted(categories)

    def filtered_and_sorted(
        self,
        category: Optional[str] = None,
    ) -> list[ExpenseRecord]:
        """
        Records newest first, optionally restricted to one category.

        None or the "All" label selects everything. Records with equal
        dates keep their insertion order.
        """
        with self._lock:
            records = list(self._records)

        if category is not None and category != self._settings.all_categories_label:
            records = [r for r in records if r.category == category]

        # list.sort is stable, also with reverse=True
        records.sort(key=lambda r: r.date, reverse=True)
        return records

    def spending_by_category(self) -> dict[str, Decimal]:
        """Total amount per category, keyed in lexicographic order."""
        grouped: dict[str, list[Decimal]] = {}
        with self._lock:
            for record in self._records:
                grouped.setdefault(record.category, []).append(record.amount)

        return {category: self._exact_sum(grouped[category]) for category in sorted(grouped)}
