"""
Currency service: the currencies a book can hold accounts in.

The first currency ever created becomes the base currency. Its
rate is 1 and stays 1; every other currency gets its rate from
the entries that use it.
"""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_book.errors import AlreadyExists, InvalidInput, NotFound
from ledger_book.models.currency import Currency
from ledger_book.schemas.account import CurrencyResponse

logger = logging.getLogger(__name__)

MAX_CODE_LENGTH = 10


class CurrencyService:

    def __init__(self, db: Session):
        self.db = db

    def find_currency(self, code: str | None = None) -> Currency | None:
        """
        Find a currency by code. Without a code, return the base
        currency. Returns None when nothing matches.
        """
        if code is None:
            return self.db.execute(
                select(Currency).where(Currency.is_base.is_(True))
            ).scalar_one_or_none()

        if not isinstance(code, str):
            raise InvalidInput("Currency code should be a string")

        return self.db.execute(
            select(Currency).where(Currency.code == code)
        ).scalar_one_or_none()

    def get_base_currency(self) -> Currency:
        base = self.find_currency()
        if base is None:
            raise NotFound("No base currency: create a currency first")
        return base

    def create_currency(self, code: str) -> Currency:
        """
        Create a currency. The first one becomes the base currency.

        Raises InvalidInput for a malformed code and AlreadyExists
        for a duplicate.
        """
        if not isinstance(code, str):
            raise InvalidInput("Currency code should be a string")
        if not code:
            raise InvalidInput("No currency code provided")
        if len(code) > MAX_CODE_LENGTH:
            raise InvalidInput(
                f"Currency code should be <= {MAX_CODE_LENGTH} chars"
            )

        if self.find_currency(code):
            raise AlreadyExists(f"Currency {code} already exists")

        is_base = self.find_currency() is None
        currency = Currency(
            code=code,
            is_base=is_base,
            exchange_rate=Decimal(1) if is_base else None,
        )
        self.db.add(currency)
        self.db.flush()

        logger.info(
            "Created currency %s%s", code, " (base)" if is_base else ""
        )
        return currency

    def check_currency(self, code: str) -> CurrencyResponse | None:
        """Return the currency's public shape, or None if unknown."""
        currency = self.find_currency(code)
        if currency is None:
            return None
        return CurrencyResponse.model_validate(currency)
