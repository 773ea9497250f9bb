"""Tests for the movie store and title normalization."""

import pytest

from watchnight.db import SCHEMA_VERSION, init_db
from watchnight.movies import MoviesModel, normalize_title


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('"Café Society"', '"Cafe Society"'),
        ("Amélie", "Amelie"),
        ("Léon – The 'Professional'", "Leon - The 'Professional'"),
        ("Fargo", "Fargo"),
        ("Señorita", "Senorita"),
        ("Pokémon — The First Movie", "Pokemon - The First Movie"),
        ("Björk's Dancer in the Dark", "Bjork's Dancer in the Dark"),
        ("Smörgåsbord", "Smorgasbord"),
        ("The Hobbit — An Unexpected Journey", "The Hobbit - An Unexpected Journey"),
        ("Zoë's Extraordinary Playlist", "Zoe's Extraordinary Playlist"),
        ("  Two   Spaces ", "Two Spaces"),
        ("8½", "8½"),
        ("The ﬁrst", "The ﬁrst"),
        (None, ""),
    ],
)
def test_normalize_title(raw, expected):
    assert normalize_title(raw) == expected


class TestSchema:
    """Tests for database initialization."""

    async def test_schema_version_recorded(self, movies):
        """A fresh database records its schema version."""
        async with movies.conn.execute("SELECT version FROM schema_version") as cursor:
            row = await cursor.fetchone()
        assert row[0] == SCHEMA_VERSION

    async def test_reopen_keeps_data(self, tmp_path):
        """Opening an existing database file keeps its rows."""
        path = str(tmp_path / "sqlite" / "movies.db")
        model = MoviesModel(await init_db(path))
        await model.upsert_from_watchmode(1, 10, "Fargo", 1996)
        await model.commit()
        await model.close()

        model = MoviesModel(await init_db(path))
        try:
            assert await model.count() == 1
        finally:
            await model.close()

    async def test_newer_schema_rejected(self, tmp_path):
        """A database written by a newer schema is not opened."""
        path = str(tmp_path / "movies.db")
        conn = await init_db(path)
        await conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION + 1,))
        await conn.commit()
        await conn.close()

        with pytest.raises(RuntimeError, match="schema version"):
            await init_db(path)


class TestWatchmodeUpsert:
    """Tests for upsert_from_watchmode."""

    async def test_insert(self, movies):
        """Unknown Watchmode ids create a row."""
        row_id = await movies.upsert_from_watchmode(11083261, 550, "Fight Club", 1999, imdb_id="tt0137523")

        movie = await movies.get_by_id(row_id)
        assert movie["watchmode_id"] == 11083261
        assert movie["tmdb_id"] == 550
        assert movie["imdb_id"] == "tt0137523"
        assert movie["title"] == "Fight Club"
        assert movie["year"] == 1999
        assert movie["popularity"] is None
        assert movie["has_video"] is False

    async def test_repeated_upsert_updates(self, movies):
        """Repeated calls update the same row instead of duplicating it."""
        first = await movies.upsert_from_watchmode(1, 10, "Fargo", 1995)
        second = await movies.upsert_from_watchmode(1, 11, "Fargo", 1996)

        assert first == second
        assert await movies.count() == 1
        movie = await movies.get_by_watchmode_id(1)
        assert movie["tmdb_id"] == 11
        assert movie["year"] == 1996

    async def test_existing_title_preserved(self, movies):
        """A non-blank stored title survives a different or blank incoming one."""
        await movies.upsert_from_watchmode(1, 10, "Original Title", 2000)
        await movies.upsert_from_watchmode(1, 10, "Other Title", 2000)
        await movies.upsert_from_watchmode(1, 10, "", 2000)

        movie = await movies.get_by_watchmode_id(1)
        assert movie["title"] == "Original Title"

    async def test_blank_title_filled(self, movies):
        """A blank stored title is replaced by the incoming one."""
        await movies.upsert_from_watchmode(1, 10, "   ", 2000)
        await movies.upsert_from_watchmode(1, 10, "Amélie", 2001)

        movie = await movies.get_by_watchmode_id(1)
        assert movie["title"] == "Amelie"

    async def test_keeps_tmdb_fields(self, movies):
        """Watchmode updates leave popularity and the video flag alone."""
        await movies.upsert_from_watchmode(1, 10, "Fargo", 1996)
        await movies.upsert_from_tmdb(10, "Fargo", 12.5, True)
        await movies.upsert_from_watchmode(1, 10, "Fargo", 1996)

        movie = await movies.get_by_watchmode_id(1)
        assert movie["popularity"] == 12.5
        assert movie["has_video"] is True


class TestTmdbUpsert:
    """Tests for upsert_from_tmdb."""

    async def test_unknown_id_inserts_without_year(self, movies):
        """TMDB ids unknown to the store get a year-less row."""
        await movies.upsert_from_tmdb(1622513, "Some Film", 0.6, False)

        movie = await movies.get_by_tmdb_id(1622513)
        assert movie["title"] == "Some Film"
        assert movie["year"] is None
        assert movie["watchmode_id"] is None
        assert movie["popularity"] == 0.6

    async def test_updates_linked_rows(self, movies):
        """Every row linked to the TMDB id gets popularity and video flag."""
        await movies.upsert_from_watchmode(1, 10, "Fargo", 1996)
        await movies.upsert_from_watchmode(2, 10, "", 1996)

        await movies.upsert_from_tmdb(10, "Fargo (1996)", 7.5, True)

        first = await movies.get_by_watchmode_id(1)
        second = await movies.get_by_watchmode_id(2)
        assert first["popularity"] == second["popularity"] == 7.5
        assert first["has_video"] and second["has_video"]
        assert first["title"] == "Fargo"
        assert second["title"] == "Fargo (1996)"
        assert await movies.count() == 2

    async def test_idempotent(self, movies):
        """Applying the same entry twice leaves a single row."""
        await movies.upsert_from_tmdb(5, "Five", 1.0, False)
        await movies.upsert_from_tmdb(5, "Five", 2.0, False)

        assert await movies.count() == 1
        assert (await movies.get_by_tmdb_id(5))["popularity"] == 2.0


class TestQueries:
    """Tests for read helpers."""

    async def test_search_and_delete(self, movies):
        """Title search is partial; delete removes the row."""
        a = await movies.upsert_from_watchmode(1, None, "The Hobbit", 2012)
        await movies.upsert_from_watchmode(2, None, "Fargo", 1996)

        found = await movies.search_by_title("hob")
        assert [m["id"] for m in found] == [a]

        assert await movies.delete(a) is True
        assert await movies.delete(a) is False
        assert [m["title"] for m in await movies.get_all()] == ["Fargo"]

    async def test_rollback_discards_pending(self, movies):
        """Uncommitted writes are dropped by rollback."""
        await movies.upsert_from_watchmode(1, None, "Kept", 2000)
        await movies.commit()
        await movies.upsert_from_watchmode(2, None, "Dropped", 2000)

        await movies.rollback()

        assert await movies.count() == 1
