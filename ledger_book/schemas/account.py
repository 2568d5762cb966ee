"""
Pydantic schemas for currencies and the chart of accounts.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# --- Currency Schemas ---

class CurrencyCreate(BaseModel):
    code: str = Field(min_length=1, max_length=10)


class CurrencyResponse(BaseModel):
    code: str
    exchange_rate: Decimal | None
    is_base: bool

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# --- Account Schemas ---

class AccountCreate(BaseModel):
    """
    Request to create an account.

    name is the full path ("Assets:bank:AlfaBank"); every parent
    level must already exist. currency defaults to the base currency.
    """
    name: str = Field(min_length=1, max_length=1024)
    currency: str | None = Field(default=None, max_length=10)


class AccountNode(BaseModel):
    """
    Safe projection of an account, optionally with its subtree.

    children is left unset for leaves and for single-account
    lookups, and is dropped from serialized output in that case.
    """
    name: str
    full_name: str
    path: list[str]
    currency: str
    children: list["AccountNode"] | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


AccountNode.model_rebuild()


class AccountBalanceResponse(BaseModel):
    account: str
    currency: str
    balance: str
    isolated_balance: str

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
