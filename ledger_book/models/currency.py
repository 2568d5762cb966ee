"""
Currency model.

Every account is denominated in exactly one currency. One currency
is the base currency: all cross-currency aggregation converts into
its units, and its rate is always 1.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, Boolean, DateTime, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from ledger_book.models.base import Base

# Longest rate, written out in plain notation, that can be stored
MAX_RATE_LENGTH = 64


class ExactDecimal(TypeDecorator):
    """
    A Decimal stored without rounding.

    PostgreSQL keeps it in an unconstrained NUMERIC. Every other
    dialect keeps it as plain-notation text (SQLite would round
    it through float), so the value read back always equals the
    value written.
    """

    impl = String(MAX_RATE_LENGTH)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Numeric(asdecimal=True))
        return dialect.type_descriptor(String(MAX_RATE_LENGTH))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = Decimal(value)
        if dialect.name == "postgresql":
            return value
        return format(value, "f")

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)


# Exchange rates are divisors: foreign amount / rate = base amount
RATE_TYPE = ExactDecimal()


class Currency(Base):
    """
    A currency known to the book.

    exchange_rate is the last rate used in a committed entry for
    this currency. It stays NULL until the first such entry.
    """

    __tablename__ = "currencies"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(
        String(10), unique=True, nullable=False
    )
    exchange_rate: Mapped[Decimal | None] = mapped_column(
        RATE_TYPE, nullable=True
    )
    is_base: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        marker = " base" if self.is_base else ""
        return f"<Currency {self.code}{marker}>"
