"""TMDB daily id export import."""

from __future__ import annotations

import gzip
import json
import logging
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from watchnight.importers.base import ImportTask
from watchnight.task import TaskContext

logger = logging.getLogger(__name__)


def default_export_date(now: datetime | None = None) -> date:
    """TMDB publishes each day's export the following morning, so use yesterday (UTC)."""
    now = now or datetime.now(timezone.utc)
    return (now - timedelta(days=1)).date()


class ImportTmdbTask(ImportTask):
    """
    Imports the TMDB movie id export (gzip-compressed JSON, one object per line).

    Adult titles and malformed lines are skipped. Each entry updates the
    popularity and video flag of the movies linked to its TMDB id, or adds a
    new movie when the id is unknown.
    """

    label = "Import TMDB Database"
    suffix = ".json.gz"

    def source_url(self, args: dict[str, Any]) -> str:
        if args.get("url"):
            return args["url"]
        raw = args.get("date")
        export_date = date.fromisoformat(raw) if raw else default_export_date()
        return self.settings.tmdb_export_url.format(date=export_date)

    async def import_file(self, path: Path, context: TaskContext) -> int:
        processed = 0
        imported = 0

        with gzip.open(path, "rt", encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if not line:
                    continue
                processed += 1
                await self.tick(processed, context)
                if processed % self.settings.progress_interval == 0:
                    # Record count of the export is unknown up front
                    context.report_progress(processed, None, f"Imported {imported:,} titles")

                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    logger.debug("Skipping malformed line %d", processed)
                    continue
                if not isinstance(entry, dict) or entry.get("adult"):
                    continue
                tmdb_id = entry.get("id")
                if not isinstance(tmdb_id, int):
                    continue

                await self.movies.upsert_from_tmdb(
                    tmdb_id,
                    entry.get("original_title"),
                    entry.get("popularity"),
                    bool(entry.get("video")),
                )
                imported += 1

        return imported
