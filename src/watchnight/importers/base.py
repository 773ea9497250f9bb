"""Shared download-then-parse flow for the import tasks."""

from __future__ import annotations

import logging
import os
import tempfile
from abc import abstractmethod
from pathlib import Path
from typing import Any

from watchnight.config import Settings
from watchnight.downloads import Downloader, download_file
from watchnight.movies import MoviesModel
from watchnight.task import BackgroundTask, TaskCancelled, TaskContext

logger = logging.getLogger(__name__)


class ImportTask(BackgroundTask):
    """
    Download a feed to a temporary file, then stream it into the movie store.

    Subclasses provide the feed URL and the per-file parse loop. The parse loop
    calls ``tick()`` once per record, which polls for cancellation, commits and
    yields to the event loop at the configured intervals.
    """

    suffix = ".tmp"

    def __init__(
        self,
        movies: MoviesModel,
        settings: Settings | None = None,
        downloader: Downloader | None = None,
    ):
        self.movies = movies
        self.settings = settings or Settings()
        self._downloader = downloader

    @abstractmethod
    def source_url(self, args: dict[str, Any]) -> str:
        ...

    @abstractmethod
    async def import_file(self, path: Path, context: TaskContext) -> int:
        """Parse the downloaded file. Returns the number of records imported."""

    async def download(self, url: str, dest: Path, context: TaskContext) -> int:
        if self._downloader is not None:
            return await self._downloader(url, dest, context.abort_signal)
        return await download_file(url, dest, context.abort_signal, timeout=self.settings.http_timeout)

    async def run_task(self, args: dict[str, Any], context: TaskContext) -> None:
        url = self.source_url(args)
        context.report_progress(description="Downloading...")

        fd, name = tempfile.mkstemp(prefix="watchnight-", suffix=self.suffix, dir=self.settings.temp_dir)
        os.close(fd)
        path = Path(name)

        try:
            await self.download(url, path, context)
            if context.is_cancelled():
                raise TaskCancelled()

            imported = await self.import_file(path, context)
            await self.movies.commit()
        except BaseException:
            await self.movies.rollback()
            raise
        finally:
            path.unlink(missing_ok=True)

        logger.info("%s: imported %d titles from %s", self.label, imported, url)
        context.report_progress(imported, imported, "Complete")

    async def tick(self, processed: int, context: TaskContext) -> None:
        """Per-record bookkeeping for the parse loop."""
        if processed % self.settings.cancel_poll_interval == 0 and context.is_cancelled():
            raise TaskCancelled()
        if processed % self.settings.yield_interval == 0:
            await self.movies.commit()
            await context.checkpoint()
