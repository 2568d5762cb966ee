"""
Entry service: the only write path into the transaction log.

An Entry is a draft of debit and credit lines. Committing it:
1. Resolves every line's account path
2. Settles the exchange rate of every line
3. Checks that debits equal credits in base currency
4. Writes the journal entry and all its transactions atomically
5. Updates the cached rate of every currency the entry touched

Steps 1-3 run before anything is written, so a rejected entry
leaves no trace. Step 5 is a separate database transaction: if it
fails, the entry stays committed and only the cached rate is stale.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_book.errors import (
    AccountNotFound,
    AlreadyCommitted,
    EntryNotBalanced,
    InvalidInput,
    MissingExchangeRate,
)
from ledger_book.models.account import Account
from ledger_book.models.currency import MAX_RATE_LENGTH
from ledger_book.models.enums import EntryDirection
from ledger_book.models.journal_entry import JournalEntry
from ledger_book.models.transaction import MAX_AMOUNT, Transaction
from ledger_book.services.account_service import AccountService

logger = logging.getLogger(__name__)

MAX_MEMO_LENGTH = 1024

# Largest base-currency difference still treated as balanced
NEAR_ZERO = Decimal("1e-10")


def parse_amount(amount) -> int:
    """Accept a positive whole number in any numeric or string form."""
    if isinstance(amount, bool):
        raise InvalidInput("Amount should be a number")
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise InvalidInput(f"Amount {amount!r} is not a number")
    if not value.is_finite():
        raise InvalidInput(f"Amount {amount!r} is not a number")
    if value <= 0:
        raise InvalidInput("Amount should be > 0")
    if value != value.to_integral_value():
        raise InvalidInput("Amount is not integer")
    if value > MAX_AMOUNT:
        raise InvalidInput(f"Amount should be <= {MAX_AMOUNT}")
    return int(value)


def parse_rate(rate) -> Decimal:
    if isinstance(rate, bool):
        raise InvalidInput("Exchange rate is not a number")
    try:
        value = Decimal(str(rate))
    except InvalidOperation:
        raise InvalidInput(f"Exchange rate {rate!r} is not a number")
    if value.is_nan():
        raise InvalidInput("Exchange rate is not a number")
    if not value.is_finite() or value <= 0:
        raise InvalidInput("Exchange rate should be a finite number > 0")
    if len(format(value, "f")) > MAX_RATE_LENGTH:
        raise InvalidInput(
            f"Exchange rate should fit in {MAX_RATE_LENGTH} digits"
        )
    return value


@dataclass
class EntryLine:
    """One line of a draft. account stays a path until commit."""
    direction: EntryDirection
    account: str
    amount: int
    meta: dict[str, Any] = field(default_factory=dict)
    exchange_rate: Decimal | None = None


@dataclass
class ResolvedLine:
    line: EntryLine
    account: Account
    exchange_rate: Decimal

    @property
    def base_amount(self) -> Decimal:
        return Decimal(self.line.amount) / self.exchange_rate


class Entry:
    """
    A draft journal entry.

    Lines are chained:

        book.entry("User 1 top up") \\
            .debit("Assets:usdt", 10000, {"type": "userTopUp"}) \\
            .credit("UserBalances:1", 10000, {"type": "userTopUp"}) \\
            .commit()
    """

    def __init__(self, db: Session, memo: str | None = None):
        if memo is None:
            memo = ""
        if not isinstance(memo, str):
            raise InvalidInput("Memo should be a string")
        if len(memo) > MAX_MEMO_LENGTH:
            raise InvalidInput(f"Memo longer than {MAX_MEMO_LENGTH}")

        self.db = db
        self.memo = memo
        self.lines: list[EntryLine] = []
        self.journal: JournalEntry | None = None
        self.account_service = AccountService(db)

    @property
    def committed(self) -> bool:
        return self.journal is not None

    def add_line(
        self,
        direction: EntryDirection | str,
        account: str,
        amount,
        meta: dict[str, Any] | None = None,
        exchange_rate=None,
    ) -> "Entry":
        """
        Add a debit or credit line and return the entry.

        exchange_rate is a divisor: amount / exchange_rate is the
        value in base currency. It is ignored for base-currency
        accounts and may be omitted for currencies that already have
        a cached rate.
        """
        if self.committed:
            raise AlreadyCommitted("This entry is already committed")
        try:
            direction = EntryDirection(direction)
        except ValueError:
            raise InvalidInput(f"Unknown direction {direction!r}")
        if not isinstance(account, str):
            raise InvalidInput("Account should be a string")

        amount = parse_amount(amount)
        if exchange_rate is not None:
            exchange_rate = parse_rate(exchange_rate)

        if meta is None:
            meta = {}
        if not isinstance(meta, dict):
            raise InvalidInput("meta should be a dict")

        self.lines.append(EntryLine(
            direction=direction,
            account=account,
            amount=amount,
            meta=dict(meta),
            exchange_rate=exchange_rate,
        ))
        return self

    def debit(self, account, amount, meta=None, exchange_rate=None) -> "Entry":
        return self.add_line(
            EntryDirection.DEBIT, account, amount, meta, exchange_rate
        )

    def credit(self, account, amount, meta=None, exchange_rate=None) -> "Entry":
        return self.add_line(
            EntryDirection.CREDIT, account, amount, meta, exchange_rate
        )

    def _ordered_lines(self) -> list[EntryLine]:
        """Debits first, then credits, each in insertion order."""
        return [
            line for direction in (EntryDirection.DEBIT, EntryDirection.CREDIT)
            for line in self.lines if line.direction == direction
        ]

    def _resolve_accounts(self, lines: list[EntryLine]) -> list[tuple]:
        resolved = []
        for line in lines:
            account = self.account_service.resolve(line.account)
            if account is None:
                raise AccountNotFound(line.account)
            resolved.append((line, account))
        return resolved

    def _settle_rates(self, resolved: list[tuple]) -> list[ResolvedLine]:
        settled = []
        for line, account in resolved:
            currency = account.currency
            if currency.is_base:
                rate = Decimal(1)
            elif line.exchange_rate is not None:
                rate = line.exchange_rate
            elif currency.exchange_rate:
                rate = Decimal(currency.exchange_rate)
            else:
                raise MissingExchangeRate(
                    f"Cannot find exchange rate for account "
                    f"{account.full_name} in the entry nor cached for "
                    f"{currency.code}. Perhaps no entry used this "
                    f"currency before"
                )
            settled.append(ResolvedLine(line, account, rate))
        return settled

    @staticmethod
    def _check_balance(settled: list[ResolvedLine]) -> None:
        credit_sum = sum(
            (r.base_amount for r in settled
             if r.line.direction == EntryDirection.CREDIT),
            Decimal(0),
        )
        debit_sum = sum(
            (r.base_amount for r in settled
             if r.line.direction == EntryDirection.DEBIT),
            Decimal(0),
        )
        if abs(credit_sum - debit_sum) >= NEAR_ZERO:
            raise EntryNotBalanced(credit_sum, debit_sum)

    def _persist(self, settled: list[ResolvedLine]) -> JournalEntry:
        """Write the journal entry and its transactions as one unit."""
        journal = JournalEntry(transactions=[
            Transaction(
                amount=r.line.amount,
                credit=r.line.direction == EntryDirection.CREDIT,
                account_id=r.account.id,
                memo=self.memo or None,
                meta=r.line.meta,
                exchange_rate=r.exchange_rate,
            )
            for r in settled
        ])
        try:
            self.db.add(journal)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return journal

    def _update_rates(self, settled: list[ResolvedLine]) -> None:
        """
        Cache the last rate used for every non-base currency in
        this entry. Runs in its own database transaction, after the
        entry itself is durable.
        """
        last_rate = {}
        for r in settled:
            currency = r.account.currency
            if not currency.is_base:
                last_rate[currency.id] = (currency, r.exchange_rate)

        if not last_rate:
            return

        try:
            for currency, rate in last_rate.values():
                currency.exchange_rate = rate
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.error(
                "Journal entry %d committed but caching exchange rates "
                "failed; cached rates stay stale",
                self.journal.id, exc_info=True,
            )
            raise

        for currency, rate in last_rate.values():
            logger.info("Exchange rate of %s is now %s", currency.code, rate)

    def commit(self) -> JournalEntry:
        """
        Validate and write the entry. Returns the journal entry.

        Raises AccountNotFound, MissingExchangeRate or
        EntryNotBalanced before anything is written, and
        AlreadyCommitted on a second call.
        """
        if self.committed:
            raise AlreadyCommitted("This entry is already committed")
        if not self.lines:
            raise InvalidInput("Entry has no lines")

        settled = self._settle_rates(
            self._resolve_accounts(self._ordered_lines())
        )
        self._check_balance(settled)

        self.journal = self._persist(settled)
        logger.info(
            "Committed journal entry %d with %d transactions (%s)",
            self.journal.id, len(settled), self.memo or "no memo",
        )

        self._update_rates(settled)
        return self.journal

