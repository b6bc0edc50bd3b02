from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

import structlog
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from . import models  # noqa: F401  registers the job table
from .config import settings

logger = structlog.get_logger(__name__)

# Job rows are updated from background tasks while requests read them.
BUSY_TIMEOUT_MS = 30000

_engine: Optional[Engine] = None


def _configure_sqlite(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute(f"PRAGMA busy_timeout={BUSY_TIMEOUT_MS}")
    cursor.close()


def get_engine() -> Engine:
    """Build the jobs engine on first use and create its tables."""
    global _engine
    if _engine is None:
        engine = create_engine(
            f"sqlite:///{settings.db_path}",
            connect_args={"check_same_thread": False},
        )
        event.listen(engine, "connect", _configure_sqlite)
        SQLModel.metadata.create_all(engine)
        logger.info("jobs_db_ready", path=str(settings.db_path))
        _engine = engine
    return _engine


def init_db() -> None:
    get_engine()


@contextmanager
def get_session(engine: Optional[Engine] = None) -> Iterator[Session]:
    with Session(engine or get_engine()) as session:
        yield session
