"""
Balance cache model.

A balance row is a checkpoint: the running balance of one account
after folding every transaction up to and including transaction_id.
Rows are never authoritative. Deleting them costs only the time to
recompute; several rows for the same account are normal.
"""

from datetime import datetime

from sqlalchemy import DateTime, BigInteger, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from ledger_book.models.base import Base


class Balance(Base):

    __tablename__ = "balances"

    id: Mapped[int] = mapped_column(primary_key=True)
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.id"), nullable=False
    )
    # Signed, in the account's own currency units
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<Balance account={self.account_id} "
            f"checkpoint={self.transaction_id} amount={self.amount}>"
        )
