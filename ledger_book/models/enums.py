"""
Shared enumerations.
"""

import enum


class EntryDirection(str, enum.Enum):
    """Direction of a line in a journal entry."""
    DEBIT = "debit"
    CREDIT = "credit"


class SortOrder(str, enum.Enum):
    """Ordering of ledger history by creation time."""
    ASC = "asc"
    DESC = "desc"
