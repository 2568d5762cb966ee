"""
Account model (chart of accounts).

Accounts form a tree through parent_id. The tree is stored flat:
each row only knows its parent, and full_name spells out the whole
path ("Assets:bank:AlfaBank"). full_name is computed once, when the
account is created, and never changes afterwards.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_book.models.base import Base

PATH_SEPARATOR = ":"


class Account(Base):
    __tablename__ = "accounts"
    __table_args__ = (
        UniqueConstraint("name", "parent_id", name="uq_accounts_name_parent"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_name: Mapped[str] = mapped_column(
        String(1024), nullable=False, index=True
    )
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True, index=True
    )
    currency_id: Mapped[int] = mapped_column(
        ForeignKey("currencies.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    # Relationships. The currency is needed by every balance and
    # rate computation, so it is always loaded with the account.
    currency: Mapped["Currency"] = relationship(lazy="joined")
    parent: Mapped["Account | None"] = relationship(remote_side=[id])

    @property
    def path(self) -> list[str]:
        return self.full_name.split(PATH_SEPARATOR)

    def __repr__(self) -> str:
        return f"<Account {self.full_name}>"
