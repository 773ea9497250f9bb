"""Movies table operations."""

from __future__ import annotations

import re
import unicodedata
from typing import Any

import aiosqlite

_DASHES = str.maketrans({"–": "-", "—": "-", "−": "-"})
_WHITESPACE = re.compile(r"\s+")


def normalize_title(title: str | None) -> str:
    """
    Fold a title to plain ASCII-friendly text.

    Diacritics are stripped (Amélie -> Amelie), en/em dashes become "-", and
    runs of whitespace collapse to one space.
    """
    if not title:
        return ""
    decomposed = unicodedata.normalize("NFD", title.translate(_DASHES))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped).strip()


def _format_movie(row: aiosqlite.Row) -> dict[str, Any]:
    movie = dict(row)
    movie["has_video"] = bool(movie["has_video"])
    return movie


class MoviesModel:
    """
    Movie record store.

    Owns the shared database connection. Writes are not committed per call;
    importers call commit() at checkpoints so a long import is not one
    transaction per row.
    """

    def __init__(self, conn: aiosqlite.Connection):
        self.conn = conn

    async def commit(self) -> None:
        await self.conn.commit()

    async def rollback(self) -> None:
        await self.conn.rollback()

    async def close(self) -> None:
        await self.conn.close()

    # --- Reads ---

    async def _fetch_one(self, query: str, params: tuple) -> dict[str, Any] | None:
        async with self.conn.execute(query, params) as cursor:
            row = await cursor.fetchone()
            return _format_movie(row) if row else None

    async def _fetch_all(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        async with self.conn.execute(query, params) as cursor:
            rows = await cursor.fetchall()
            return [_format_movie(row) for row in rows]

    async def get_by_id(self, movie_id: int) -> dict[str, Any] | None:
        return await self._fetch_one("SELECT * FROM movies WHERE id = ?", (movie_id,))

    async def get_by_watchmode_id(self, watchmode_id: int) -> dict[str, Any] | None:
        return await self._fetch_one("SELECT * FROM movies WHERE watchmode_id = ?", (watchmode_id,))

    async def get_by_tmdb_id(self, tmdb_id: int) -> dict[str, Any] | None:
        return await self._fetch_one(
            "SELECT * FROM movies WHERE tmdb_id = ? ORDER BY id LIMIT 1", (tmdb_id,)
        )

    async def get_all(self) -> list[dict[str, Any]]:
        return await self._fetch_all("SELECT * FROM movies ORDER BY title")

    async def search_by_title(self, term: str) -> list[dict[str, Any]]:
        """Partial, case-insensitive title match."""
        return await self._fetch_all(
            "SELECT * FROM movies WHERE title LIKE ? ORDER BY title", (f"%{term}%",)
        )

    async def count(self) -> int:
        async with self.conn.execute("SELECT COUNT(*) FROM movies") as cursor:
            row = await cursor.fetchone()
            return row[0]

    # --- Writes ---

    async def create(
        self,
        *,
        watchmode_id: int | None = None,
        imdb_id: str | None = None,
        tmdb_id: int | None = None,
        title: str | None = None,
        year: int | None = None,
        popularity: float | None = None,
        has_video: bool = False,
    ) -> int:
        cursor = await self.conn.execute(
            """
            INSERT INTO movies (watchmode_id, imdb_id, tmdb_id, title, year, popularity, has_video)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (watchmode_id, imdb_id, tmdb_id, title, year, popularity, int(has_video)),
        )
        return cursor.lastrowid

    async def delete(self, movie_id: int) -> bool:
        cursor = await self.conn.execute("DELETE FROM movies WHERE id = ?", (movie_id,))
        return cursor.rowcount > 0

    async def upsert_from_watchmode(
        self,
        watchmode_id: int,
        tmdb_id: int | None,
        title: str | None,
        year: int | None,
        imdb_id: str | None = None,
    ) -> int:
        """
        Insert or update the movie keyed by its Watchmode id.

        Repeated calls update the same row. A non-blank stored title is kept
        over the incoming one; popularity and the video flag are untouched.

        Returns:
            The row id.
        """
        title = normalize_title(title)
        existing = await self.get_by_watchmode_id(watchmode_id)

        if existing is None:
            return await self.create(
                watchmode_id=watchmode_id,
                imdb_id=imdb_id,
                tmdb_id=tmdb_id,
                title=title,
                year=year,
            )

        if existing["title"] and existing["title"].strip():
            title = existing["title"]

        await self.conn.execute(
            """
            UPDATE movies
            SET tmdb_id = ?, imdb_id = COALESCE(?, imdb_id), title = ?, year = ?
            WHERE id = ?
            """,
            (tmdb_id, imdb_id, title, year, existing["id"]),
        )
        return existing["id"]

    async def upsert_from_tmdb(
        self,
        tmdb_id: int,
        title: str | None,
        popularity: float | None,
        has_video: bool,
    ) -> int:
        """
        Apply a TMDB catalog entry.

        Every row already linked to ``tmdb_id`` gets the popularity and video
        flag, and a title if its own is blank. Unknown ids get a new row
        without a year.

        Returns:
            The id of the first matching row, or of the new row.
        """
        title = normalize_title(title)
        existing = await self.get_by_tmdb_id(tmdb_id)

        if existing is None:
            return await self.create(
                tmdb_id=tmdb_id,
                title=title,
                popularity=popularity,
                has_video=has_video,
            )

        await self.conn.execute(
            """
            UPDATE movies
            SET popularity = ?,
                has_video = ?,
                title = CASE WHEN title IS NULL OR TRIM(title) = '' THEN ? ELSE title END
            WHERE tmdb_id = ?
            """,
            (popularity, int(has_video), title, tmdb_id),
        )
        return existing["id"]
