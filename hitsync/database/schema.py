"""Engine and session lifecycle for the local swing store."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from hitsync.database.models import Base

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///data/hitsync.db"

# One engine per process; reset_engine() switches databases
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


def _prepare_sqlite_file(database_url: str) -> None:
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return
    if not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite leaves FK enforcement off per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> Engine:
    """
    Get the process-wide engine, creating it on first use.

    Later calls return the existing engine whatever URL they pass; call
    reset_engine() first to point at another database.

    Args:
        database_url: Database connection URL.
        echo: If True, log all SQL statements.

    Returns:
        SQLAlchemy engine instance.
    """
    global _engine

    if _engine is not None:
        return _engine

    _prepare_sqlite_file(database_url)
    _engine = create_engine(database_url, echo=echo, pool_pre_ping=True)
    if _engine.dialect.name == "sqlite":
        event.listen(_engine, "connect", _enable_foreign_keys)

    logger.info(f"Database engine created: {database_url}")
    return _engine


def get_session_factory(engine: Optional[Engine] = None) -> sessionmaker:
    """Get the sessionmaker bound to ``engine`` (default: the global engine)."""
    global _SessionLocal

    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=engine or get_engine(),
            autoflush=False,
            expire_on_commit=False,
        )
    return _SessionLocal


@contextmanager
def get_session() -> Iterator[Session]:
    """
    Open a session on the global engine.

    Uncommitted work is rolled back if the block raises; the session is
    closed either way. Repositories commit their own writes.

    Example:
        init_db(url)
        with get_session() as session:
            SwingRepository(session).get_database_stats()
    """
    session = get_session_factory()()
    try:
        yield session
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(database_url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> Engine:
    """
    Create any missing tables and return the engine.

    Safe to call repeatedly; existing tables and rows are left alone.
    """
    engine = get_engine(database_url, echo)
    Base.metadata.create_all(bind=engine)
    logger.debug(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")
    return engine


def reset_engine() -> None:
    """Dispose of the global engine and forget the session factory."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
