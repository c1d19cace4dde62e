"""Expense ledger package."""

from ibudget.ledger.ledger import (
    InvalidAmountError,
    Ledger,
    ValidationError,
    parse_amount,
)

__all__ = ["InvalidAmountError", "Ledger", "ValidationError", "parse_amount"]
