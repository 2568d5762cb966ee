"""
Database engine, session management, and base model.

Every model inherits from Base. Every request gets a session
from get_db().
"""

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from ledger_book.config import get_settings

settings = get_settings()


def enable_sqlite_savepoints(engine) -> None:
    """
    Let SQLAlchemy, not pysqlite, emit BEGIN on SQLite.

    pysqlite only opens a transaction before DML, which leaves
    SAVEPOINTs and read views unreliable. The balance cache writes
    its checkpoints inside a SAVEPOINT, so it needs real ones.
    """
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


# --- Engine ---
# pool_pre_ping=True tests connections before handing them out,
# so a restarted database does not surface as a failed commit.
# SQLite connections must be shareable across FastAPI's threads.
connect_args = (
    {"check_same_thread": False}
    if settings.DATABASE_URL.startswith("sqlite")
    else {}
)

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)
if engine.dialect.name == "sqlite":
    enable_sqlite_savepoints(engine)

# --- Session Factory ---
# autoflush=False: nothing is sent to the database until an
# explicit flush or commit. The entry commit relies on this to
# stage a journal entry and all its transactions as one unit.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


def init_db(bind=None) -> None:
    """Create every table known to Base.metadata if missing."""
    # Importing the package registers all models on the metadata
    import ledger_book.models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


# --- Dependency for FastAPI ---
def get_db():
    """
    Provide a database session for a single request.

    The try/finally guarantees the session is closed even if the
    endpoint raises, so connections never leak from the pool.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
