import logging

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.orm import sessionmaker

from newsdesk.config import DB_URL

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("articles", "sources")

engine = create_engine(DB_URL, echo=False, connect_args={"timeout": 15})
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _set_sqlite_pragma(dbapi_conn, connection_record):
    # Refresh runs write while the API reads; WAL keeps readers unblocked.
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    mode = cursor.fetchone()[0]
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()
    if mode != "wal":
        logger.warning("Failed to enable WAL mode, got: %s", mode)


def init_db(bind=None):
    """Check the schema is in place. Tables are created by Alembic, never here."""
    inspector = inspect(bind or engine)
    if not inspector.has_table("alembic_version"):
        raise RuntimeError("Database not initialized. Run: alembic upgrade head")
    missing = [name for name in REQUIRED_TABLES if not inspector.has_table(name)]
    if missing:
        raise RuntimeError(f"Database schema is behind (missing: {', '.join(missing)}). Run: alembic upgrade head")


def get_session():
    """Get a new database session."""
    return SessionLocal()
