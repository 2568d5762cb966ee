"""Bookkeeping services."""

from ledger_book.services.currency_service import CurrencyService
from ledger_book.services.account_service import AccountService
from ledger_book.services.balance_service import BalanceService
from ledger_book.services.entry_service import Entry
from ledger_book.services.ledger_service import LedgerService

__all__ = [
    "CurrencyService",
    "AccountService",
    "BalanceService",
    "Entry",
    "LedgerService",
]
