"""
Tests for the LedgerService read side.

The fixture below posts the sample book:
1. User 1 tops up 10000 USDT
2. 9500 USDT moves to the Huntington bank account
3. User 1 pays 10000 USD worth of roubles into AlfaBank at 60.03
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import select

from ledger_book.errors import (
    AccountNotFound,
    InvalidInput,
    MissingExchangeRate,
)
from ledger_book.models.currency import Currency
from ledger_book.models.enums import SortOrder
from ledger_book.services.account_service import AccountService
from ledger_book.services.balance_service import BalanceService, to_base
from ledger_book.services.entry_service import NEAR_ZERO


@pytest.fixture
def posted(chart):
    chart.entry("User 1 top up") \
        .debit("Assets:usdt", 10000, {"type": "userTopUp"}) \
        .credit("UserBalances:1", 10000, {"type": "userTopUp"}) \
        .commit()
    chart.entry("Move to bank") \
        .credit("Assets:usdt", 9500) \
        .debit("Assets:bank:Huntington", 9500) \
        .commit()
    chart.entry("User 1 pays in roubles") \
        .debit("Assets:bank:AlfaBank", 600300,
               {"type": "userTopUp"}, exchange_rate=60.03) \
        .credit("UserBalances:1", 10000) \
        .commit()
    return chart


class TestBalance:

    def test_balances_after_sample_book(self, posted):
        assert posted.balance("Assets:usdt") == "500"
        assert posted.balance("UserBalances:1") == "-20000"
        assert posted.balance("Assets:bank") == "19500"
        assert posted.balance("Assets") == "20000"

    def test_isolated_balance_in_own_currency(self, posted):
        assert posted.isolated_balance("Assets:bank:AlfaBank") == "600300"
        assert posted.isolated_balance("Assets:bank") == "0"

    def test_balance_follows_cached_rate(self, posted):
        posted.entry() \
            .debit("UserBalances:1", 1) \
            .credit("Assets:bank:AlfaBank", 70, exchange_rate=70) \
            .commit()

        # 600230 RUB now valued at 70
        balance = Decimal(posted.balance("Assets:bank:AlfaBank"))
        assert abs(balance - Decimal(600230) / Decimal(70)) < Decimal("1e-10")

    def test_parent_is_sum_of_children(self, posted):
        children = [
            Decimal(posted.balance("Assets:usdt")),
            Decimal(posted.balance("Assets:bank")),
        ]
        assert Decimal(posted.balance("Assets")) == sum(children)

    def test_every_node_is_own_plus_children(self, posted, db_session):
        accounts = AccountService(db_session)
        balances = BalanceService(db_session)

        def check(nodes):
            for node in nodes:
                account = accounts.get_account(node.full_name)
                own = to_base(balances.isolated_balance(account), account)
                children = sum(
                    (balances.aggregate_balance(
                        accounts.get_account(child.full_name))
                     for child in node.children or []),
                    Decimal(0),
                )
                total = balances.aggregate_balance(account)
                assert abs(total - own - children) < NEAR_ZERO
                check(node.children or [])

        check(posted.get_accounts())

    def test_unknown_account(self, posted):
        with pytest.raises(AccountNotFound):
            posted.balance("Assets:cash")

    def test_empty_account_is_zero(self, chart):
        assert chart.balance("Assets") == "0"


class TestLedger:

    def test_subtree_newest_first(self, posted):
        txs = posted.ledger("Assets")

        assert len(txs) == 4
        assert txs[0].id == 5
        assert txs[-1].id == 1
        assert txs[0].account_name == "Assets:bank:AlfaBank"
        assert txs[0].account_path == ["Assets", "bank", "AlfaBank"]
        assert txs[0].currency == "RUB"
        assert txs[0].exchange_rate == Decimal("60.03")

    def test_ascending_order(self, posted):
        txs = posted.ledger("Assets", order=SortOrder.ASC)
        assert [tx.id for tx in txs] == [1, 3, 4, 5]

    def test_unknown_order_falls_back_to_newest_first(self, posted):
        txs = posted.ledger("Assets", order="sideways")
        assert txs[0].id == 5

    def test_non_string_order_rejected(self, posted):
        with pytest.raises(InvalidInput):
            posted.ledger("Assets", order=1)

    def test_limit_and_offset(self, posted):
        assert [tx.id for tx in posted.ledger("Assets", limit=1)] == [5]
        assert [tx.id for tx in posted.ledger("Assets", offset=1, limit=2)] \
            == [4, 3]
        assert posted.ledger("Assets", limit=0) == []

    @pytest.mark.parametrize("kwargs", [
        {"offset": -1}, {"limit": -1}, {"offset": "1"}, {"limit": True},
    ])
    def test_bad_pagination_rejected(self, posted, kwargs):
        with pytest.raises(InvalidInput):
            posted.ledger("Assets", **kwargs)

    def test_meta_filter(self, posted):
        txs = posted.ledger("Assets", {"type": "userTopUp"})
        assert {tx.id for tx in txs} == {1, 5}
        assert all(tx.meta["type"] == "userTopUp" for tx in txs)

    def test_meta_filter_no_match(self, posted):
        assert posted.ledger("Assets", {"type": "withdrawal"}) == []

    def test_meta_filter_rejects_nested_values(self, posted):
        with pytest.raises(InvalidInput):
            posted.ledger("Assets", {"type": {"nested": True}})

    def test_memo_carried(self, posted):
        txs = posted.ledger("UserBalances:1", order="asc")
        assert [tx.memo for tx in txs] == [
            "User 1 top up", "User 1 pays in roubles",
        ]
        assert all(tx.credit for tx in txs)

    def test_date_window(self, posted):
        future = datetime.utcnow() + timedelta(days=1)
        assert posted.ledger("Assets", start_date=future,
                             end_date=future + timedelta(days=1)) == []

        aware_now = datetime.now(timezone.utc) + timedelta(minutes=1)
        assert len(posted.ledger("Assets", end_date=aware_now)) == 4

    def test_start_after_end_rejected(self, posted):
        now = datetime.utcnow()
        with pytest.raises(InvalidInput):
            posted.ledger("Assets", start_date=now,
                          end_date=now - timedelta(days=1))

    def test_non_datetime_rejected(self, posted):
        with pytest.raises(InvalidInput):
            posted.ledger("Assets", start_date="2020-01-01")


class TestTradingBalance:

    def test_same_currency_book_nets_to_zero(self, chart):
        chart.entry() \
            .debit("Assets:usdt", 10000) \
            .credit("UserBalances:1", 10000) \
            .commit()

        result = chart.trading_balance()
        assert result.currency == {"USD": "0", "RUB": "0"}
        assert result.base == "0"

    def test_single_rate_nets_to_zero(self, posted):
        result = posted.trading_balance()
        assert result.currency == {"USD": "-10000", "RUB": "600300"}
        assert result.base == "0"

    def test_rate_move_leaves_conversion_difference(self, posted):
        posted.entry() \
            .debit("Assets:bank:AlfaBank", 700000, exchange_rate=70) \
            .credit("UserBalances:1", 10000) \
            .commit()

        result = posted.trading_balance()
        assert result.currency == {"USD": "-20000", "RUB": "1300300"}

        expected = Decimal(1300300) / Decimal(70) - Decimal(20000)
        assert abs(Decimal(result.base) - expected) < Decimal("1e-10")

    def test_missing_rate(self, chart, db_session):
        # A foreign amount with no cached rate cannot be converted
        chart.entry() \
            .debit("Assets:bank:AlfaBank", 600300, exchange_rate=60.03) \
            .credit("UserBalances:1", 10000) \
            .commit()
        rub = db_session.execute(
            select(Currency).where(Currency.code == "RUB")
        ).scalar_one()
        rub.exchange_rate = None
        db_session.commit()

        with pytest.raises(MissingExchangeRate):
            chart.trading_balance()

    def test_empty_window(self, posted):
        future = datetime.utcnow() + timedelta(days=1)
        result = posted.trading_balance(
            start_date=future, end_date=future + timedelta(days=1)
        )
        assert result.currency == {"USD": "0", "RUB": "0"}
        assert result.base == "0"
