"""
Tests for the CurrencyService.
"""

from decimal import Decimal

import pytest

from ledger_book.errors import AlreadyExists, InvalidInput, NotFound
from ledger_book.services.currency_service import CurrencyService


class TestCreateCurrency:

    def test_first_currency_becomes_base(self, db_session):
        service = CurrencyService(db_session)
        usd = service.create_currency("USD")
        db_session.commit()

        assert usd.id is not None
        assert usd.is_base is True
        assert usd.exchange_rate == Decimal(1)

    def test_second_currency_has_no_rate(self, db_session):
        service = CurrencyService(db_session)
        service.create_currency("USD")
        rub = service.create_currency("RUB")
        db_session.commit()

        assert rub.is_base is False
        assert rub.exchange_rate is None

    def test_duplicate_code_rejected(self, db_session):
        service = CurrencyService(db_session)
        service.create_currency("USD")
        db_session.commit()

        with pytest.raises(AlreadyExists, match="already exists"):
            service.create_currency("USD")

    @pytest.mark.parametrize("code", ["", "X" * 11, 42, None])
    def test_malformed_code_rejected(self, db_session, code):
        service = CurrencyService(db_session)
        with pytest.raises(InvalidInput):
            service.create_currency(code)


class TestFindCurrency:

    def test_no_code_returns_base(self, db_session):
        service = CurrencyService(db_session)
        service.create_currency("USD")
        service.create_currency("RUB")

        assert service.find_currency().code == "USD"
        assert service.get_base_currency().code == "USD"

    def test_unknown_code_returns_none(self, db_session):
        service = CurrencyService(db_session)
        assert service.find_currency("EUR") is None
        assert service.check_currency("EUR") is None

    def test_no_base_currency_yet(self, db_session):
        service = CurrencyService(db_session)
        with pytest.raises(NotFound):
            service.get_base_currency()

    def test_check_currency_returns_projection(self, db_session):
        service = CurrencyService(db_session)
        service.create_currency("USD")

        found = service.check_currency("USD")
        assert found.code == "USD"
        assert found.is_base is True
