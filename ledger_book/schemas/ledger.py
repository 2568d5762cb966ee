"""
Pydantic schemas for ledger operations.

These define the API contract and the projections the ledger
hands back to callers. They are separate from the database models
because the API shape and the storage shape are different: a
RichTransaction carries its account's name, path and currency
alongside the transaction fields.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ledger_book.models.enums import EntryDirection
from ledger_book.models.transaction import MAX_AMOUNT


CAMEL_CASE = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
)


# --- Request Schemas ---

class EntryLineCreate(BaseModel):
    """A single debit or credit line of an entry."""
    direction: EntryDirection
    account: str = Field(min_length=1, max_length=1024)
    amount: int = Field(gt=0, le=MAX_AMOUNT)
    meta: dict[str, Any] = Field(default_factory=dict)
    exchange_rate: Decimal | None = Field(default=None, gt=0)

    model_config = CAMEL_CASE


class EntryCreate(BaseModel):
    """A complete entry: lines that must balance in base currency."""
    memo: str | None = Field(default=None, max_length=1024)
    lines: list[EntryLineCreate] = Field(min_length=2)

    @field_validator("lines")
    @classmethod
    def must_have_debits_and_credits(cls, v: list) -> list:
        directions = {line.direction for line in v}
        if directions != {EntryDirection.DEBIT, EntryDirection.CREDIT}:
            raise ValueError(
                "entry must contain at least one debit and one credit"
            )
        return v


# --- Response Schemas ---

class RichTransaction(BaseModel):
    """A transaction denormalized with its account's identity."""
    id: int
    account_name: str
    account_path: list[str]
    amount: int
    credit: bool
    currency: str
    exchange_rate: Decimal
    memo: str | None
    meta: dict[str, Any]
    created_at: datetime

    model_config = CAMEL_CASE

    @classmethod
    def from_transaction(cls, tx) -> "RichTransaction":
        return cls(
            id=tx.id,
            account_name=tx.account.full_name,
            account_path=tx.account.path,
            amount=tx.amount,
            credit=tx.credit,
            currency=tx.account.currency.code,
            exchange_rate=tx.exchange_rate,
            memo=tx.memo,
            meta=tx.meta or {},
            created_at=tx.created_at,
        )


class EntryResponse(BaseModel):
    """Response after committing an entry."""
    journal_id: int
    created_at: datetime
    transactions: list[RichTransaction]

    model_config = CAMEL_CASE


class TradingBalance(BaseModel):
    """
    Per-currency debits minus credits, plus their sum in base currency.

    Figures are decimal strings so no precision is lost in JSON.
    """
    currency: dict[str, str]
    base: str
