"""Built-in import tasks."""

from __future__ import annotations

from watchnight.config import Settings
from watchnight.downloads import Downloader
from watchnight.importers.base import ImportTask
from watchnight.importers.tmdb import ImportTmdbTask
from watchnight.importers.watchmode import ImportWatchmodeTask
from watchnight.movies import MoviesModel
from watchnight.registry import TaskKind, TaskRegistry

# Registry of built-in importers
IMPORTERS: dict[TaskKind, type[ImportTask]] = {
    TaskKind.IMPORT_WATCHMODE: ImportWatchmodeTask,
    TaskKind.IMPORT_TMDB: ImportTmdbTask,
}


def register_importers(
    registry: TaskRegistry,
    movies: MoviesModel,
    settings: Settings | None = None,
    downloader: Downloader | None = None,
) -> TaskRegistry:
    """Register every built-in importer, bound to the shared movie store."""
    settings = settings or Settings()
    for kind, cls in IMPORTERS.items():
        registry.register(
            kind,
            lambda cls=cls: cls(movies, settings, downloader),
            label=cls.label,
        )
    return registry


__all__ = [
    "IMPORTERS",
    "ImportTask",
    "ImportTmdbTask",
    "ImportWatchmodeTask",
    "register_importers",
]
