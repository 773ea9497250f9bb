"""Rich-based display of background task state.

Renders ManagerState snapshots. It does not talk to the manager; the CLI
feeds it whatever the notification channel delivers.
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from watchnight.models import JobStatus, JobView, ManagerState

STATUS_STYLES = {
    JobStatus.QUEUED: "dim",
    JobStatus.RUNNING: "yellow",
    JobStatus.COMPLETED: "green",
    JobStatus.FAILED: "red",
    JobStatus.CANCELLED: "magenta",
}


def progress_text(view: JobView) -> str:
    """'42% complete' for determinate progress, 'In progress...' otherwise."""
    if view.percent is None:
        return "In progress..."
    return f"{view.percent}% complete"


def format_line(state: ManagerState) -> str:
    """One-line summary for plain (non-TUI) output."""
    queued = len(state.queue)
    if state.active is None:
        return f"idle, {queued} queued"
    a = state.active
    detail = a.description or "Working..."
    return f"{a.label} [{a.status.value}] {detail} ({progress_text(a)}), {queued} queued"


class TaskDisplay:
    """Live panel with the active job and the wait list."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console()
        self.state = ManagerState()
        self._live: Live | None = None

    def __enter__(self) -> TaskDisplay:
        self._live = Live(
            self.render(),
            console=self.console,
            refresh_per_second=10,
            screen=False,
        )
        self._live.__enter__()
        return self

    def __exit__(self, *args) -> None:
        if self._live:
            self._live.__exit__(*args)
            self._live = None

    def update(self, state: ManagerState) -> None:
        self.state = state
        if self._live:
            self._live.update(self.render())

    def render(self) -> Panel:
        return Panel(
            Group(self._build_active_section(), self._build_queue_section()),
            title="[bold cyan]Background Tasks[/bold cyan]",
            border_style="cyan",
        )

    def _build_active_section(self) -> Panel:
        active = self.state.active
        if active is None:
            return Panel("[dim]No task running[/dim]", title="[bold]Active Task[/bold]", border_style="blue")

        style = STATUS_STYLES.get(active.status, "white")
        header = Text()
        header.append(active.label, style="bold")
        header.append("  ")
        header.append(active.status.value, style=style)

        # total=None renders rich's pulsing bar, so indeterminate never looks like 0%
        if active.indeterminate:
            bar = ProgressBar(total=None, width=40)
        else:
            bar = ProgressBar(total=float(active.max), completed=float(active.current), width=40)

        table = Table.grid(padding=(0, 2))
        table.add_column()
        table.add_column(style="dim")
        table.add_row(bar, progress_text(active))

        body = Group(header, Text(active.description or "Working...", style="dim"), table)
        return Panel(body, title="[bold]Active Task[/bold]", border_style="blue")

    def _build_queue_section(self) -> Panel:
        table = Table(box=None, expand=True, padding=(0, 1), show_header=False)
        table.add_column("Label", ratio=1)
        table.add_column("ID", style="dim")

        for view in self.state.queue:
            table.add_row(view.label, view.id)

        if not self.state.queue:
            table.add_row("[dim]No tasks queued[/dim]", "")

        return Panel(table, title="[bold]Queued Tasks[/bold]", border_style="blue")
