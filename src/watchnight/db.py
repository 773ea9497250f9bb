"""SQLite bootstrap for the movie store."""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- One row per Watchmode title, or per TMDB id unknown to Watchmode
CREATE TABLE IF NOT EXISTS movies (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    watchmode_id INTEGER UNIQUE,
    imdb_id TEXT,
    tmdb_id INTEGER,
    title TEXT,
    year INTEGER,
    popularity REAL,
    has_video INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_movies_tmdb_id ON movies(tmdb_id);
CREATE INDEX IF NOT EXISTS idx_movies_title ON movies(title);
"""


async def stored_schema_version(conn: aiosqlite.Connection) -> int | None:
    """Version recorded in the database, or None for a database without one."""
    async with conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'schema_version'"
    ) as cursor:
        if await cursor.fetchone() is None:
            return None
    async with conn.execute("SELECT MAX(version) FROM schema_version") as cursor:
        row = await cursor.fetchone()
    return row[0] if row else None


async def init_db(db_path: str) -> aiosqlite.Connection:
    """
    Open the movie database, creating its file and tables on first use.

    Args:
        db_path: SQLite file path, or ":memory:" for a throwaway database.

    Returns:
        Open connection with rows readable by column name.

    Raises:
        RuntimeError: The file was written by a newer schema.
    """
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    try:
        await conn.execute("PRAGMA journal_mode=WAL")

        version = await stored_schema_version(conn)
        if version is not None and version > SCHEMA_VERSION:
            raise RuntimeError(
                f"{db_path} uses schema version {version}; this build supports up to {SCHEMA_VERSION}"
            )

        if version is None:
            logger.info("Creating movie database at %s", db_path)
            await conn.executescript(SCHEMA)
            await conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            await conn.commit()
    except BaseException:
        await conn.close()
        raise

    return conn
