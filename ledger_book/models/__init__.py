"""
Database models package.

All models must be imported here so that Alembic and init_db()
can discover them through Base.metadata.
"""

from ledger_book.models.base import Base
from ledger_book.models.enums import EntryDirection, SortOrder
from ledger_book.models.currency import Currency
from ledger_book.models.account import Account
from ledger_book.models.journal_entry import JournalEntry
from ledger_book.models.transaction import Transaction
from ledger_book.models.balance import Balance

__all__ = [
    "Base",
    "EntryDirection",
    "SortOrder",
    "Currency",
    "Account",
    "JournalEntry",
    "Transaction",
    "Balance",
]
