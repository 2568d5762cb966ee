"""
Ledger errors.

Every error the engine raises derives from LedgerError, which is a
ValueError, so callers that only care about "the request was bad"
can keep catching ValueError. None of them are retried internally.
"""

from decimal import Decimal


class LedgerError(ValueError):
    """Base class for all caller-visible ledger failures."""


class InvalidInput(LedgerError):
    """Malformed name, path, amount, date or pagination argument."""


class NotFound(LedgerError):
    """Referenced account, currency or parent account does not exist."""


class AccountNotFound(NotFound):

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Account {path} not found")


class AlreadyExists(LedgerError):
    """Duplicate account under the same parent, or duplicate currency code."""


class EntryNotBalanced(LedgerError):
    """Credit and debit sums differ beyond tolerance in base currency."""

    def __init__(self, credit_sum: Decimal, debit_sum: Decimal):
        self.credit_sum = credit_sum
        self.debit_sum = debit_sum
        super().__init__(
            f"Entry not balanced. Credit sum: {credit_sum}, "
            f"debit sum: {debit_sum}"
        )


class MissingExchangeRate(LedgerError):
    """Foreign-currency line without an explicit or cached rate."""


class AlreadyCommitted(LedgerError):
    """The entry has already been committed."""
