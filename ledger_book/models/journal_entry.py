"""
Journal entry model.

A journal entry groups the transactions that were committed
together. Its debits and credits balance in base-currency terms
at the moment of commit. That invariant is enforced once, by the
entry commit protocol, not by the model.
"""

from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_book.models.base import Base


class JournalEntry(Base):

    __tablename__ = "journal_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    # Transactions are created together with their entry
    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="journal",
        cascade="save-update, merge",
        order_by="Transaction.id",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.id}>"
