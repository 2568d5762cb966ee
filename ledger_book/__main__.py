"""
HTTP server entry point.

Usage:
    python -m ledger_book
"""

import uvicorn

from ledger_book.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "ledger_book.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
