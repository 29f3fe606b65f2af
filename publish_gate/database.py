"""
Engine and session lifecycle for SqlStore.

Default database: <data dir>/gate.db (SQLite). Set PUBLISH_GATE_DATABASE_URL
to use any SQLAlchemy URL instead.
"""
import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from publish_gate.config import get_data_dir
from publish_gate.models import Base

logger = logging.getLogger(__name__)

DB_FILE_NAME = "gate.db"
SQLITE_BUSY_TIMEOUT_MS = 5000

_engine: Optional[Engine] = None
_SessionLocal = None


def resolve_database_url(db_url: Optional[str] = None) -> str:
    """Explicit URL, then PUBLISH_GATE_DATABASE_URL, then SQLite in the data dir."""
    if db_url:
        return db_url
    env_url = os.environ.get("PUBLISH_GATE_DATABASE_URL")
    if env_url:
        return env_url
    data_dir = get_data_dir()
    data_dir.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{data_dir / DB_FILE_NAME}"


def _sqlite_engine(db_url: str) -> Engine:
    engine = create_engine(
        db_url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Concurrent evaluators share the file; wait on a locked db instead of failing at once.
    @event.listens_for(engine, "connect")
    def _set_busy_timeout(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
        cursor.close()

    return engine


def get_engine(db_url: Optional[str] = None) -> Engine:
    """Get the shared engine, creating it on first use. db_url is only read then."""
    global _engine

    if _engine is None:
        url = resolve_database_url(db_url)
        if url.startswith("sqlite"):
            _engine = _sqlite_engine(url)
        else:
            _engine = create_engine(url, pool_pre_ping=True)
        logger.debug("Publish gate database: %s", _engine.url.render_as_string(hide_password=True))

    return _engine


def get_session() -> Session:
    """New session bound to the shared engine."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _SessionLocal()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Commit on success, roll back and re-raise on any exception."""
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Optional[Engine] = None) -> None:
    """Create the gate tables if they are missing."""
    Base.metadata.create_all(bind=engine or get_engine())


def reset_engine() -> None:
    """Dispose the shared engine and forget the session factory."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
