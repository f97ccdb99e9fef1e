"""SQLite file and schema management for the local record store."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, Optional

import aiosqlite

logger = logging.getLogger(__name__)

DATABASE_FILENAME = "gallery.db"

CLASSIFIED_IMAGE_SCHEMA = """
CREATE TABLE IF NOT EXISTS CLASSIFIED_IMAGE (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    username TEXT,
    original_filename TEXT,
    image_url TEXT,
    predicted_class TEXT,
    confidence_score REAL,
    disease_type TEXT,
    model_used TEXT,
    is_verified INTEGER NOT NULL DEFAULT 0,
    uploaded_at TEXT,
    image_data BLOB
)
"""

# Columns added after the first release, applied to older files on open.
ADDED_COLUMNS: Dict[str, str] = {
    "is_verified": "INTEGER NOT NULL DEFAULT 0",
    "model_used": "TEXT",
    "disease_type": "TEXT",
}


def resolve_database_dir(database_dir: Optional[Path | str] = None) -> Path:
    """Return the directory holding the store, creating it when missing.

    Falls back to the DATABASE_DIR environment variable.

    Raises:
        RuntimeError: If no directory is configured or the path is unusable.
    """
    configured = str(database_dir) if database_dir is not None else os.getenv("DATABASE_DIR", "")
    if not configured.strip():
        raise RuntimeError("DATABASE_DIR must name a writable directory for the local record store.")

    directory = Path(configured).expanduser()
    if directory.exists() and not directory.is_dir():
        raise RuntimeError(f"DATABASE_DIR={configured!r} is a file; expected a directory.")
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise RuntimeError(f"Cannot create database directory {directory}") from exc
    return directory


class AsyncDatabaseInitializer:
    """
    Own the `<database_dir>/gallery.db` file of the local record store.

    Existing rows are never dropped: opening an older file only adds the
    columns listed in `ADDED_COLUMNS`. The schema check runs once per instance.
    """

    def __init__(self, database_dir: Optional[Path | str] = None) -> None:
        self.db_dir = resolve_database_dir(database_dir)
        self.db_path = self.db_dir / DATABASE_FILENAME
        self._initialized = False

    async def ensure_database(self) -> None:
        """Create the table and add any missing columns."""
        if self._initialized:
            return

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(CLASSIFIED_IMAGE_SCHEMA)
            cur = await db.execute("PRAGMA table_info(CLASSIFIED_IMAGE)")
            present = {row[1] for row in await cur.fetchall()}
            for column, ddl in ADDED_COLUMNS.items():
                if column not in present:
                    logger.info("Adding column %s to %s", column, self.db_path)
                    await db.execute(f"ALTER TABLE CLASSIFIED_IMAGE ADD COLUMN {column} {ddl}")
            await db.commit()

        self._initialized = True

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """
        Yield an `aiosqlite.Connection` to the store, closing it afterwards.
        """
        await self.ensure_database()
        conn = await aiosqlite.connect(self.db_path)
        try:
            yield conn
        finally:
            await conn.close()
