"""SQLite engine and sessions for the room and user stores.

The database file lives in $DATA_DIR (default ~/.room-stats). Room documents
sit in JSON columns and are written compactly. WAL mode lets the scheduled
room refresh read while a tool call saves a room.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import asynccontextmanager
from functools import partial
from pathlib import Path
from typing import AsyncIterator, Optional

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .core.errors import PersistenceFailure

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "~/.room-stats"
DB_FILENAME = "room-stats.db"

SQLITE_PRAGMAS = (
    ("journal_mode", "WAL"),
    ("synchronous", "NORMAL"),
    ("busy_timeout", "5000"),
)

_dump_document = partial(json.dumps, separators=(",", ":"), ensure_ascii=False)


def get_db_path() -> Path:
    """Database file under DATA_DIR, creating the directory if needed."""
    data_dir = Path(os.path.expanduser(os.environ.get("DATA_DIR", DEFAULT_DATA_DIR)))
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / DB_FILENAME


def _apply_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    for name, value in SQLITE_PRAGMAS:
        cursor.execute(f"PRAGMA {name}={value}")
    cursor.close()


class Database:
    """Lazily opened engine shared by the stores of one database.

    ``url`` defaults to the SQLite file under DATA_DIR, resolved on first use
    so the environment can change before the server starts.
    """

    def __init__(self, url: Optional[str] = None):
        self._url = url
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def url(self) -> str:
        return self._url or f"sqlite+aiosqlite:///{get_db_path()}"

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(self.url, echo=False, json_serializer=_dump_document)
            if self._engine.dialect.name == "sqlite":
                event.listen(self._engine.sync_engine, "connect", _apply_pragmas)
        return self._engine

    @asynccontextmanager
    async def session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Session scope that reports database errors as ``PersistenceFailure``."""
        if self._sessions is None:
            self._sessions = async_sessionmaker(self.engine, expire_on_commit=False)
        try:
            async with self._sessions() as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Database error during %s: %s", operation, exc)
            raise PersistenceFailure(operation, str(exc)) from exc

    async def create_schema(self) -> None:
        """Create all tables if they don't exist."""
        from .sqlmodels import Base

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database ready at %s", self.url)

    async def dispose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessions = None
