"""
Currency and chart-of-accounts API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ledger_book.errors import NotFound
from ledger_book.models.base import get_db
from ledger_book.schemas.account import (
    AccountBalanceResponse,
    AccountCreate,
    AccountNode,
    CurrencyCreate,
    CurrencyResponse,
)
from ledger_book.services.account_service import to_node
from ledger_book.services.ledger_service import LedgerService

router = APIRouter(tags=["Accounts"])


# --- Currency Endpoints ---

@router.post("/currencies", response_model=CurrencyResponse, status_code=201)
def create_currency(
    request: CurrencyCreate,
    db: Session = Depends(get_db),
):
    """
    Create a currency.

    The first currency created becomes the base currency.
    """
    service = LedgerService(db)
    try:
        currency = service.create_currency(request.code)
        db.commit()
        return currency
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/currencies/{code}", response_model=CurrencyResponse)
def get_currency(
    code: str,
    db: Session = Depends(get_db),
):
    """Get a currency and its cached exchange rate."""
    service = LedgerService(db)
    try:
        currency = service.check_currency(code)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if currency is None:
        raise HTTPException(
            status_code=404, detail=f"Currency {code} not found"
        )
    return currency


# --- Account Endpoints ---

@router.post(
    "/accounts",
    response_model=AccountNode,
    response_model_exclude_none=True,
    status_code=201,
)
def create_account(
    request: AccountCreate,
    db: Session = Depends(get_db),
):
    """
    Create an account.

    Only the last level of the path is created; its parent must
    already exist.
    """
    service = LedgerService(db)
    try:
        account = service.create_account(request.name, request.currency)
        db.commit()
        return to_node(account)
    except NotFound as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))


@router.get(
    "/accounts",
    response_model=list[AccountNode],
    response_model_exclude_none=True,
)
def get_accounts(
    parent: str | None = None,
    db: Session = Depends(get_db),
):
    """Get the account tree, whole or below a parent account."""
    service = LedgerService(db)
    try:
        return service.get_accounts(parent)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get(
    "/accounts/{path}",
    response_model=AccountNode,
    response_model_exclude_none=True,
)
def get_account(
    path: str,
    db: Session = Depends(get_db),
):
    """Get a single account by its path."""
    service = LedgerService(db)
    try:
        account = service.check_account(path)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if account is None:
        raise HTTPException(
            status_code=404, detail=f"Account {path} not found"
        )
    return account


@router.get("/accounts/{path}/balance", response_model=AccountBalanceResponse)
def get_account_balance(
    path: str,
    db: Session = Depends(get_db),
):
    """
    Get the balance of an account.

    balance covers the account and all its descendants in base
    currency; isolatedBalance is the account alone in its own
    currency. Computing them may leave new cache checkpoints,
    which are committed here.
    """
    service = LedgerService(db)
    try:
        account = service.accounts.get_account(path)
        balance = service.balance(path)
        isolated = service.isolated_balance(path)
        db.commit()
    except NotFound as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    return AccountBalanceResponse(
        account=account.full_name,
        currency=account.currency.code,
        balance=balance,
        isolated_balance=isolated,
    )
