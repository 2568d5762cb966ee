"""
Ledger service: the book as a whole.

This is the entry point callers use. It hands out draft entries
(the only way to write transactions) and answers the read side:
- balance of an account and its whole subtree
- transaction history of a subtree, filtered and paginated
- the trading balance across every currency

No other service is needed by callers for day-to-day bookkeeping;
currencies and accounts are created through the same object.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from ledger_book.errors import InvalidInput, MissingExchangeRate
from ledger_book.models.account import Account
from ledger_book.models.currency import Currency
from ledger_book.models.enums import SortOrder
from ledger_book.models.transaction import Transaction
from ledger_book.schemas.account import AccountNode, CurrencyResponse
from ledger_book.schemas.ledger import RichTransaction, TradingBalance
from ledger_book.services.account_service import AccountService
from ledger_book.services.balance_service import (
    BalanceService,
    format_decimal,
)
from ledger_book.services.currency_service import CurrencyService
from ledger_book.services.entry_service import Entry

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1)


def _date_window(start_date, end_date) -> tuple[datetime, datetime]:
    """Default and validate an inclusive [start, end] window."""
    if start_date is None:
        start_date = EPOCH
    if end_date is None:
        end_date = datetime.utcnow()
    if not isinstance(start_date, datetime):
        raise InvalidInput("start_date should be a datetime")
    if not isinstance(end_date, datetime):
        raise InvalidInput("end_date should be a datetime")
    # Stored timestamps are naive UTC
    start_date, end_date = (
        d.astimezone(timezone.utc).replace(tzinfo=None) if d.tzinfo else d
        for d in (start_date, end_date)
    )
    if start_date > end_date:
        raise InvalidInput(
            f"start_date {start_date.isoformat()} should go before "
            f"end_date {end_date.isoformat()}"
        )
    return start_date, end_date


def _non_negative_int(value, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidInput(f"{name} should be an integer >= 0")
    return value


def _meta_clause(key: str, value):
    """Exact-match condition on one key of the meta JSON."""
    if not isinstance(key, str):
        raise InvalidInput("meta keys should be strings")
    field = Transaction.meta[key]
    # bool before int: True is an int too
    if isinstance(value, bool):
        return field.as_boolean() == value
    if isinstance(value, int):
        return field.as_integer() == value
    if isinstance(value, float):
        return field.as_float() == value
    if isinstance(value, str):
        return field.as_string() == value
    raise InvalidInput(
        f"meta filter on {key!r} should be a string, number or boolean"
    )


class LedgerService:
    """
    All bookkeeping operations pass through this service.

    The service takes a database session as a constructor argument.
    Reads leave the transaction boundary to the caller; committing
    an entry manages its own, since it must be atomic on its own.
    """

    def __init__(self, db: Session):
        self.db = db
        self.currencies = CurrencyService(db)
        self.accounts = AccountService(db)
        self.balances = BalanceService(db)

    # --- Chart of accounts ---

    def create_currency(self, code: str) -> Currency:
        return self.currencies.create_currency(code)

    def check_currency(self, code: str) -> CurrencyResponse | None:
        return self.currencies.check_currency(code)

    def create_account(self, path: str, currency: str | None = None) -> Account:
        return self.accounts.create_account(path, currency)

    def check_account(self, path: str) -> AccountNode | None:
        return self.accounts.check_account(path)

    def get_accounts(self, parent: str | None = None) -> list[AccountNode]:
        return self.accounts.get_accounts(parent)

    # --- Writes ---

    def entry(self, memo: str | None = None) -> Entry:
        """Start a draft entry. Nothing is written until commit()."""
        return Entry(self.db, memo)

    # --- Reads ---

    def balance(self, path: str) -> str:
        """
        Balance of the account AND its descendants, in base currency.

        Foreign-currency accounts are converted at their currency's
        current cached rate, so this figure moves when rates move.
        """
        account = self.accounts.get_account(path)
        return format_decimal(self.balances.aggregate_balance(account))

    def isolated_balance(self, path: str) -> str:
        """Balance of the account alone, in its own currency units."""
        account = self.accounts.get_account(path)
        return format_decimal(Decimal(self.balances.isolated_balance(account)))

    def ledger(
        self,
        path: str,
        meta: dict[str, Any] | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        offset: int = 0,
        limit: int | None = None,
        order: str = SortOrder.DESC,
    ) -> list[RichTransaction]:
        """
        Transaction history of an account and all its descendants.

        meta keeps only transactions whose meta has every given
        key equal to the given value, e.g. {"type": "userTopUp"}.
        Results are ordered by creation time, newest first unless
        order is "asc".
        """
        start_date, end_date = _date_window(start_date, end_date)
        offset = _non_negative_int(offset, "offset")
        if limit is not None:
            limit = _non_negative_int(limit, "limit")
        if not isinstance(order, str):
            raise InvalidInput("order should be a string")
        ascending = order.lower() == SortOrder.ASC.value

        if meta is None:
            meta = {}
        if not isinstance(meta, dict):
            raise InvalidInput("meta should be a dict")
        meta_clauses = [_meta_clause(k, v) for k, v in meta.items()]

        account = self.accounts.get_account(path)
        account_ids = [
            acc.id for acc in [account, *self.accounts.subaccounts(account)]
        ]

        ordering = (
            (Transaction.created_at.asc(), Transaction.id.asc())
            if ascending
            else (Transaction.created_at.desc(), Transaction.id.desc())
        )
        query = (
            select(Transaction)
            .where(
                Transaction.account_id.in_(account_ids),
                Transaction.created_at.between(start_date, end_date),
                *meta_clauses,
            )
            .order_by(*ordering)
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)

        txs = self.db.execute(query).scalars().all()
        return [RichTransaction.from_transaction(tx) for tx in txs]

    def trading_balance(
        self,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> TradingBalance:
        """
        Debits minus credits per currency across the whole book.

        Raw amounts are summed without per-line rates, so a book
        whose entries all used the same rates nets out to zero in
        base currency; what remains is conversion gain or loss.
        Not cached: bound the dates on a large book.
        """
        start_date, end_date = _date_window(start_date, end_date)

        sums = self.db.execute(
            select(
                Account.currency_id,
                Transaction.credit,
                func.coalesce(func.sum(Transaction.amount), 0),
            )
            .join(Account, Transaction.account_id == Account.id)
            .where(Transaction.created_at.between(start_date, end_date))
            .group_by(Account.currency_id, Transaction.credit)
        ).all()

        diffs: dict[int, Decimal] = {}
        for currency_id, credit, total in sums:
            signed = -Decimal(total) if credit else Decimal(total)
            diffs[currency_id] = diffs.get(currency_id, Decimal(0)) + signed

        currencies = self.db.execute(
            select(Currency).order_by(Currency.id)
        ).scalars().all()

        per_currency = {}
        base = Decimal(0)
        for currency in currencies:
            diff = diffs.get(currency.id, Decimal(0))
            per_currency[currency.code] = format_decimal(diff)
            if currency.is_base or diff == 0:
                base += diff
            elif not currency.exchange_rate:
                raise MissingExchangeRate(
                    f"No exchange rate cached for currency {currency.code}"
                )
            else:
                base += diff / Decimal(currency.exchange_rate)

        logger.debug(
            "Trading balance %s..%s: %s", start_date, end_date, per_currency
        )
        return TradingBalance(currency=per_currency, base=format_decimal(base))
