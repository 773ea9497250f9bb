#!/usr/bin/env python3
"""
watchnight: run movie catalog imports from the terminal.

Usage:
    watchnight import                      # Watchmode, then TMDB
    watchnight import tmdb --tmdb-date 2026-10-18
    watchnight import watchmode --plain --db ./movies.db
    watchnight count
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from watchnight.config import Settings
from watchnight.db import init_db
from watchnight.importers import register_importers
from watchnight.manager import TaskManager
from watchnight.models import JobStatus, ManagerState
from watchnight.movies import MoviesModel
from watchnight.notify import StateChannel
from watchnight.registry import TaskKind, TaskRegistry
from watchnight_cli.display import TaskDisplay, format_line

SOURCES = {
    "watchmode": TaskKind.IMPORT_WATCHMODE,
    "tmdb": TaskKind.IMPORT_TMDB,
}


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI."""
    wn_logger = logging.getLogger("watchnight")
    if verbose:
        wn_logger.setLevel(logging.DEBUG)
        wn_logger.addHandler(RichHandler(show_path=False))
    else:
        # Silence library logs - the display reports job outcomes itself
        wn_logger.setLevel(logging.CRITICAL)


class OutcomeRecorder:
    """
    Notification sink that remembers each job's terminal status, then forwards
    the snapshot to the latest-value channel.

    Runs synchronously on every notification, so no terminal state is lost to
    coalescing.
    """

    def __init__(self, channel: StateChannel):
        self.channel = channel
        self.outcomes: dict[str, tuple[str, JobStatus, str]] = {}

    def __call__(self, state: ManagerState) -> None:
        active = state.active
        if active is not None and active.status.is_terminal:
            self.outcomes[active.id] = (active.label, active.status, active.description)
        self.channel.publish(state)

    @property
    def all_completed(self) -> bool:
        return all(status is JobStatus.COMPLETED for _, status, _ in self.outcomes.values())


async def run_import(args: argparse.Namespace, console: Console) -> int:
    sources = args.sources or list(SOURCES)
    unknown = [s for s in sources if s not in SOURCES]
    if unknown:
        console.print(f"[red]Unknown source: {', '.join(unknown)}. Available: {', '.join(SOURCES)}[/red]")
        return 2

    settings = Settings.from_env()
    if args.db:
        settings.db_path = args.db

    conn = await init_db(settings.db_path)
    movies = MoviesModel(conn)
    try:
        registry = register_importers(TaskRegistry(), movies, settings)
        channel = StateChannel()
        recorder = OutcomeRecorder(channel)
        manager = TaskManager(registry, notify=recorder)

        for source in sources:
            job_args = {}
            if source == "tmdb" and args.tmdb_date:
                job_args["date"] = args.tmdb_date
            result = manager.enqueue(SOURCES[source], job_args)
            if not result.success:
                console.print(f"[red]{result.error}[/red]")
                await manager.stop()
                return 2

        loop = asyncio.get_running_loop()
        stopping: list[asyncio.Task] = []

        def on_interrupt() -> None:
            if not stopping:
                stopping.append(asyncio.create_task(manager.stop()))

        try:
            loop.add_signal_handler(signal.SIGINT, on_interrupt)
        except NotImplementedError:
            pass  # Windows: Ctrl+C falls through as KeyboardInterrupt

        async def render(display: TaskDisplay | None) -> None:
            async for state in channel.updates():
                if display is not None:
                    display.update(state)
                else:
                    console.print(format_line(state), highlight=False, markup=False)

        display = None if args.plain else TaskDisplay(console)
        if display is not None:
            display.__enter__()
        try:
            renderer = asyncio.create_task(render(display))
            await manager.join()
            channel.close()
            await renderer
        finally:
            if display is not None:
                display.__exit__(None, None, None)
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except NotImplementedError:
                pass

        print_summary(console, recorder)
        return 0 if recorder.all_completed else 1
    finally:
        await movies.close()


async def run_count(args: argparse.Namespace, console: Console) -> int:
    settings = Settings.from_env()
    if args.db:
        settings.db_path = args.db

    movies = MoviesModel(await init_db(settings.db_path))
    try:
        total = await movies.count()
    finally:
        await movies.close()
    console.print(f"[bold]{total:,}[/bold] movies in {settings.db_path}")
    return 0


def print_summary(console: Console, recorder: OutcomeRecorder) -> None:
    """Print final job outcomes."""
    table = Table(title="Import Results", show_header=False, border_style="green")
    table.add_column("Task", style="dim")
    table.add_column("Status", style="bold")
    table.add_column("Details")

    styles = {JobStatus.COMPLETED: "green", JobStatus.FAILED: "red", JobStatus.CANCELLED: "magenta"}
    for label, status, description in recorder.outcomes.values():
        style = styles.get(status, "white")
        table.add_row(label, f"[{style}]{status.value}[/{style}]", description)

    console.print()
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="watchnight",
        description="watchnight - import movie metadata into the local catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  watchnight import
  watchnight import tmdb --tmdb-date 2026-10-18
  watchnight import watchmode --plain --db ./movies.db
  watchnight count
        """,
    )
    parser.add_argument("--db", type=str, default=None, help="SQLite database path (default: per-user data dir)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show library debug logs")

    sub = parser.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Run import jobs one after another")
    imp.add_argument(
        "sources",
        nargs="*",
        help="Feeds to import, in order (default: watchmode tmdb)",
    )
    imp.add_argument("--tmdb-date", type=str, default=None, help="TMDB export date, YYYY-MM-DD (default: yesterday)")
    imp.add_argument("--plain", action="store_true", help="Print status lines instead of the live display")

    sub.add_parser("count", help="Print the number of stored movies")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(verbose=args.verbose)
    console = Console()

    handler = run_import if args.command == "import" else run_count
    try:
        return asyncio.run(handler(args, console))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
