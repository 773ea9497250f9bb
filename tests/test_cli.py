"""Tests for the command-line front end."""

import pytest
from rich.console import Console
from rich.panel import Panel

from watchnight import JobStatus, JobView, ManagerState, StateChannel
from watchnight.importers import register_importers
from watchnight_cli import cli
from watchnight_cli.display import TaskDisplay, format_line, progress_text

CSV = "Watchmode ID,IMDB ID,TMDB ID,TMDB Type,Title,Year\n1,tt0116282,275,movie,Fargo,1996\n"


def view(status=JobStatus.RUNNING, current=None, max=None, description="", id="task-1-0"):
    return JobView(
        id=id,
        type="import-watchmode",
        label="Import Watchmode Database",
        status=status,
        current=current,
        max=max,
        description=description,
    )


class TestDisplayText:
    """Tests for the plain-text formatting helpers."""

    def test_progress_text(self):
        assert progress_text(view(current=1, max=4)) == "25% complete"
        assert progress_text(view()) == "In progress..."
        assert progress_text(view(current=5, max=0)) == "In progress..."

    def test_format_line_idle(self):
        assert format_line(ManagerState()) == "idle, 0 queued"

    def test_format_line_active(self):
        state = ManagerState(
            active=view(current=50, max=100, description="Imported 50 titles"),
            queue=(view(status=JobStatus.QUEUED, id="task-2-0"),),
        )

        line = format_line(state)

        assert line == "Import Watchmode Database [running] Imported 50 titles (50% complete), 1 queued"

    def test_render_returns_panel(self):
        """The live display renders determinate, indeterminate and empty states."""
        display = TaskDisplay(Console(file=None, force_terminal=False))

        for state in (
            ManagerState(),
            ManagerState(active=view(description="Downloading...")),
            ManagerState(active=view(current=3, max=9), queue=(view(status=JobStatus.QUEUED, id="task-2-0"),)),
        ):
            display.update(state)
            assert isinstance(display.render(), Panel)


class TestOutcomeRecorder:
    """Tests for the terminal-status recorder."""

    def test_records_terminal_states_and_forwards(self):
        channel = StateChannel()
        recorder = cli.OutcomeRecorder(channel)

        recorder(ManagerState(active=view()))
        recorder(ManagerState(active=view(status=JobStatus.COMPLETED, description="Complete")))

        assert recorder.outcomes == {"task-1-0": ("Import Watchmode Database", JobStatus.COMPLETED, "Complete")}
        assert recorder.all_completed
        assert channel.version == 2

    def test_failure_is_not_all_completed(self):
        recorder = cli.OutcomeRecorder(StateChannel())

        recorder(ManagerState(active=view(status=JobStatus.FAILED, description="boom")))

        assert not recorder.all_completed


class TestParser:
    """Tests for argument parsing."""

    def test_import_defaults(self):
        args = cli.build_parser().parse_args(["import"])
        assert args.command == "import"
        assert args.sources == []
        assert args.tmdb_date is None
        assert args.plain is False

    def test_import_options(self):
        args = cli.build_parser().parse_args(
            ["--db", "movies.db", "-v", "import", "tmdb", "--tmdb-date", "2026-10-18", "--plain"]
        )
        assert args.db == "movies.db"
        assert args.verbose
        assert args.sources == ["tmdb"]
        assert args.tmdb_date == "2026-10-18"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])


class TestMain:
    """End-to-end runs of main()."""

    @pytest.fixture
    def fake_feeds(self, monkeypatch):
        async def download(url, dest, signal):
            dest.write_bytes(CSV.encode("utf-8"))
            return len(CSV)

        def register(registry, movies, settings=None, downloader=None):
            return register_importers(registry, movies, settings, download)

        monkeypatch.setattr(cli, "register_importers", register)

    def test_count_empty_database(self, tmp_path, capsys):
        db = str(tmp_path / "movies.db")

        assert cli.main(["--db", db, "count"]) == 0

        out = capsys.readouterr().out
        assert out.startswith("0 movies in")

    def test_plain_import(self, tmp_path, capsys, fake_feeds):
        db = str(tmp_path / "movies.db")

        assert cli.main(["--db", db, "import", "watchmode", "--plain"]) == 0
        out = capsys.readouterr().out
        assert "completed" in out
        assert "Import Results" in out

        assert cli.main(["--db", db, "count"]) == 0
        assert capsys.readouterr().out.startswith("1 movies in")

    def test_unknown_source(self, tmp_path, capsys):
        """Unknown sources are rejected before the database is touched."""
        db = tmp_path / "data" / "movies.db"

        assert cli.main(["--db", str(db), "import", "watchmode", "imdb", "--plain"]) == 2
        assert "Unknown source: imdb" in capsys.readouterr().out
        assert not db.parent.exists()
