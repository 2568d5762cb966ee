"""
Balance service: account balances over the transaction log.

The log only grows, and reads far outnumber writes, so the
balance of an account is never summed from scratch twice. Each
computation starts from the latest cached checkpoint, folds in the
transactions added since, and leaves a new checkpoint behind.

Checkpoints are an optimization only. Losing one, or failing to
write one, never changes a result.
"""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_book.errors import MissingExchangeRate
from ledger_book.models.account import Account
from ledger_book.models.balance import Balance
from ledger_book.models.transaction import Transaction
from ledger_book.services.account_service import AccountService

logger = logging.getLogger(__name__)


def format_decimal(value: Decimal) -> str:
    """Render a Decimal as a plain string, never in exponent form."""
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return format(value.normalize(), "f")


def to_base(amount, account: Account) -> Decimal:
    """
    Convert an amount in the account's currency into base units,
    using the currency's current cached rate.
    """
    amount = Decimal(amount)
    currency = account.currency
    if currency.is_base or amount == 0:
        return amount
    if not currency.exchange_rate:
        raise MissingExchangeRate(
            f"No exchange rate cached for currency {currency.code}"
        )
    return amount / Decimal(currency.exchange_rate)


class BalanceService:

    def __init__(self, db: Session):
        self.db = db
        self.account_service = AccountService(db)

    def latest_checkpoint(self, account: Account) -> Balance | None:
        return self.db.execute(
            select(Balance)
            .where(Balance.account_id == account.id)
            .order_by(Balance.transaction_id.desc(), Balance.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def isolated_balance(self, account: Account) -> int:
        """
        Balance of this account alone, in its own currency units.

        Debits count positive, credits negative. Only transactions
        newer than the latest checkpoint are read.
        """
        checkpoint = self.latest_checkpoint(account)
        from_tx_id = checkpoint.transaction_id if checkpoint else 0
        balance = checkpoint.amount if checkpoint else 0

        txs = self.db.execute(
            select(Transaction)
            .where(
                Transaction.account_id == account.id,
                Transaction.id > from_tx_id,
            )
            .order_by(Transaction.id.desc())
        ).scalars().all()

        for tx in txs:
            balance += tx.signed_amount

        if txs:
            logger.debug(
                "Folded %d transactions into %s (checkpoint %d -> %d)",
                len(txs), account.full_name, from_tx_id, txs[0].id,
            )
            self._write_checkpoint(account, txs[0].id, balance)

        return balance

    def _write_checkpoint(self, account: Account, tx_id: int, amount: int):
        """
        Store a checkpoint in its own savepoint. A failure here is
        logged and dropped: the caller already has its answer.
        """
        try:
            with self.db.begin_nested():
                self.db.add(Balance(
                    account_id=account.id,
                    transaction_id=tx_id,
                    amount=amount,
                ))
        except SQLAlchemyError:
            logger.warning(
                "Could not cache balance of %s at transaction %d",
                account.full_name, tx_id, exc_info=True,
            )

    def aggregate_balance(self, account: Account) -> Decimal:
        """
        Balance of the account and all its descendants, converted
        into base currency at each currency's current cached rate.
        """
        accounts = [account, *self.account_service.subaccounts(account)]
        total = Decimal(0)
        for acc in accounts:
            total += to_base(self.isolated_balance(acc), acc)
        return total
