"""
Ledger Book: FastAPI Application.

This is the entry point for the HTTP surface of the ledger.
All routers are registered here.
"""

from fastapi import FastAPI

from ledger_book.config import configure_logging, get_settings
from ledger_book.api.accounts import router as accounts_router
from ledger_book.api.health import router as health_router
from ledger_book.api.ledger import router as ledger_router

settings = get_settings()
configure_logging(settings)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Double-entry bookkeeping with a hierarchical, "
                "multi-currency chart of accounts",
)

# Register routers
app.include_router(health_router)
app.include_router(accounts_router)
app.include_router(ledger_router)
