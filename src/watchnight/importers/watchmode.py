"""Watchmode title id map import."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Iterator

from watchnight.importers.base import ImportTask
from watchnight.task import TaskContext

logger = logging.getLogger(__name__)

# Columns of title_id_map.csv
COL_WATCHMODE_ID = "Watchmode ID"
COL_IMDB_ID = "IMDB ID"
COL_TMDB_ID = "TMDB ID"
COL_TMDB_TYPE = "TMDB Type"
COL_TITLE = "Title"
COL_YEAR = "Year"


def _int_or_none(value: str | None) -> int | None:
    value = (value or "").strip()
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


class ImportWatchmodeTask(ImportTask):
    """
    Imports the Watchmode title id map (CSV).

    Only rows whose TMDB type is "movie" are kept. Each row is upserted by its
    Watchmode id, linking it to its TMDB and IMDB ids.
    """

    label = "Import Watchmode Database"
    suffix = ".csv"

    def source_url(self, args: dict[str, Any]) -> str:
        return args.get("url") or self.settings.watchmode_url

    async def import_file(self, path: Path, context: TaskContext) -> int:
        total = path.stat().st_size
        consumed = 0

        with path.open("r", encoding="utf-8-sig", newline="") as fh:

            def lines() -> Iterator[str]:
                nonlocal consumed
                for line in fh:
                    consumed += len(line.encode("utf-8"))
                    yield line

            processed = 0
            imported = 0
            for row in csv.DictReader(lines()):
                processed += 1
                await self.tick(processed, context)
                if processed % self.settings.progress_interval == 0:
                    context.report_progress(consumed, total, f"Imported {imported:,} titles")

                if (row.get(COL_TMDB_TYPE) or "").strip().lower() != "movie":
                    continue
                watchmode_id = _int_or_none(row.get(COL_WATCHMODE_ID))
                if watchmode_id is None:
                    logger.debug("Skipping row %d without a Watchmode id", processed)
                    continue

                await self.movies.upsert_from_watchmode(
                    watchmode_id,
                    _int_or_none(row.get(COL_TMDB_ID)),
                    row.get(COL_TITLE),
                    _int_or_none(row.get(COL_YEAR)),
                    imdb_id=(row.get(COL_IMDB_ID) or "").strip() or None,
                )
                imported += 1

        return imported
