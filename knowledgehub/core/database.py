"""Database engine, session management and dialect helpers (SQLite or PostgreSQL)."""

import sqlite3
from collections.abc import Generator, Iterable

from sqlalchemy import Engine, create_engine, event, inspect, text
from sqlalchemy.orm import Session, sessionmaker

from knowledgehub.core.config import settings

# Tables the service cannot run without; reported by the health check.
REQUIRED_TABLES = ("users", "notes", "workflows")


def build_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine with per-dialect options."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    return create_engine(url, pool_pre_ping=True, echo=echo)


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = build_engine(settings.database_url, echo=settings.DEBUG)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def dialect_name(db: Session) -> str:
    """Return the dialect name ('sqlite' or 'postgresql') of the session's bind."""
    return db.get_bind().dialect.name


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def find_missing_tables(db: Session, required: Iterable[str] = REQUIRED_TABLES) -> list[str]:
    """Return the required tables that do not exist in the connected database."""
    existing = set(inspect(db.connection()).get_table_names())
    return [name for name in required if name not in existing]


def count_tables(db: Session) -> int:
    return len(inspect(db.connection()).get_table_names())


def init_db(bind: Engine | None = None) -> None:
    """Create all tables from the ORM metadata (used by scripts and tests; prod uses Alembic)."""
    from knowledgehub.models import Base

    Base.metadata.create_all(bind=bind or engine)
