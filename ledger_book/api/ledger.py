"""
Ledger API endpoints.

The API layer is thin: it handles HTTP concerns (status codes,
query string parsing) and delegates all bookkeeping to the
LedgerService.
"""

import json
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ledger_book.errors import NotFound
from ledger_book.models.base import get_db
from ledger_book.schemas.ledger import (
    EntryCreate,
    EntryResponse,
    RichTransaction,
    TradingBalance,
)
from ledger_book.services.ledger_service import LedgerService

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.post("/entries", response_model=EntryResponse, status_code=201)
def post_entry(
    request: EntryCreate,
    db: Session = Depends(get_db),
):
    """
    Commit a journal entry.

    Debits and credits must balance in base currency. Foreign
    currency lines take their exchangeRate from the request, or
    from the currency's cached rate when omitted.
    """
    service = LedgerService(db)
    try:
        entry = service.entry(request.memo)
        for line in request.lines:
            entry.add_line(
                line.direction,
                line.account,
                line.amount,
                line.meta,
                line.exchange_rate,
            )
        journal = entry.commit()
    except NotFound as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))

    return EntryResponse(
        journal_id=journal.id,
        created_at=journal.created_at,
        transactions=[
            RichTransaction.from_transaction(tx)
            for tx in journal.transactions
        ],
    )


@router.get(
    "/accounts/{path}/transactions",
    response_model=list[RichTransaction],
)
def get_account_transactions(
    path: str,
    meta: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    offset: int = 0,
    limit: int | None = None,
    order: str = "desc",
    db: Session = Depends(get_db),
):
    """
    Get the transaction history of an account and its descendants.

    meta is a JSON object; only transactions whose meta matches
    every key exactly are returned.
    """
    try:
        meta_filter = json.loads(meta) if meta else None
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="meta is not valid JSON")

    service = LedgerService(db)
    try:
        return service.ledger(
            path,
            meta_filter,
            start_date=start_date,
            end_date=end_date,
            offset=offset,
            limit=limit,
            order=order,
        )
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/trading-balance", response_model=TradingBalance)
def get_trading_balance(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    db: Session = Depends(get_db),
):
    """
    Get debits minus credits per currency over the whole book,
    and their sum converted into base currency.
    """
    service = LedgerService(db)
    try:
        return service.trading_balance(start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
