"""
Transaction model.

Each transaction is one line of a journal entry: a debit or a
credit of an integer amount (smallest currency unit) on one
account. Transactions are immutable and append-only; corrections
are made with new, inverse entries.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    String, DateTime, Boolean, BigInteger, ForeignKey, JSON,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_book.models.base import Base
from ledger_book.models.currency import RATE_TYPE

# Largest amount a BigInteger column holds
MAX_AMOUNT = 2**63 - 1


class Transaction(Base):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    credit: Mapped[bool] = mapped_column(Boolean, nullable=False)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    journal_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=False, index=True
    )
    memo: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    meta: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"),
        nullable=False,
        default=dict,
    )
    exchange_rate: Mapped[Decimal] = mapped_column(
        RATE_TYPE, nullable=False, default=Decimal(1)
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, index=True
    )

    # Relationships
    account: Mapped["Account"] = relationship(lazy="joined")
    journal: Mapped["JournalEntry"] = relationship(
        back_populates="transactions"
    )

    @property
    def signed_amount(self) -> int:
        """Debits count positive, credits negative."""
        return -self.amount if self.credit else self.amount

    def __repr__(self) -> str:
        side = "CREDIT" if self.credit else "DEBIT"
        return f"<Transaction {self.id} {side} {self.amount}>"
