"""Terminal rendering for the progress monitor."""

from __future__ import annotations

from typing import Optional

from rich.console import Console, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from backstop_tools.models.progress import ProgressState, RunSize, RunStatus

BAR_WIDTH = 30
MAX_SCENARIO_NAME = 50


def format_time(seconds: Optional[float]) -> str:
    if seconds is None:
        return "--:--"
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class ProgressDisplay:
    """Header, live progress line and final summary on a rich console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self._live: Optional[Live] = None

    def header(self, command: str, size: RunSize) -> None:
        table = Table.grid(padding=(0, 1))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Command", f"[yellow]backstop {command}[/yellow]")
        table.add_row(
            "Tests",
            f"[green]{size.scenarios}[/green] scenarios x [green]{size.viewports}[/green] "
            f"viewports x 2 phases = [green]{size.total}[/green]",
        )
        self.console.print(Panel(table, title="BackstopJS Progress Monitor", border_style="cyan"))

    def render(self, state: ProgressState) -> RenderableType:
        percent = state.percent
        if percent >= 100:
            bar_style = "green"
        elif percent >= 50:
            bar_style = "cyan"
        else:
            bar_style = "yellow"

        grid = Table.grid(padding=(0, 1))
        for _ in range(6):
            grid.add_column()
        grid.add_row(
            ProgressBar(
                total=max(state.total, 1),
                completed=state.completed,
                width=BAR_WIDTH,
                complete_style=bar_style,
                finished_style="green",
            ),
            Text(f"{percent}%", style="bold"),
            Text.assemble((str(state.completed), "green"), "/", (str(state.total), "dim")),
            Text(f"⏱ {format_time(state.elapsed_time)}"),
            Text(f"ETA: {format_time(state.eta_seconds)}"),
            Text.assemble(("✓ ", "green"), str(state.passed), "  ", ("✗ ", "red"), str(state.failed)),
        )
        return grid

    def start(self, state: ProgressState) -> None:
        self._live = Live(
            self.render(state),
            console=self.console,
            auto_refresh=False,
            transient=False,
        )
        self._live.start()

    def refresh(self, state: ProgressState) -> None:
        if self._live is not None:
            self._live.update(self.render(state), refresh=True)

    def stop(self, state: ProgressState) -> None:
        if self._live is not None:
            self._live.update(self.render(state), refresh=True)
            self._live.stop()
            self._live = None

    def scenario(self, name: str, viewport: str) -> None:
        if len(name) > MAX_SCENARIO_NAME:
            name = name[: MAX_SCENARIO_NAME - 3] + "..."
        suffix = f" [{viewport}]" if viewport else ""
        self.console.print(Text(f"→ {name}{suffix}", style="dim"))

    def runner_error(self, text: str) -> None:
        self.console.print(Text(f"✗ Error: {text}", style="red"))
        if "ENOENT" in text:
            self.console.print(
                "[yellow]• ENOENT usually means a file path got too long (common on Windows). "
                "Shorten scenario labels in backstop.json or move the project to a shorter path.[/yellow]"
            )

    def summary(self, state: ProgressState) -> None:
        ok = state.status == RunStatus.SUCCEEDED
        table = Table.grid(padding=(0, 1))
        table.add_column(style="bold")
        table.add_column()
        table.add_row("Status", "[green]✓ COMPLETED[/green]" if ok else "[red]✗ FAILED[/red]")
        table.add_row("Tests run", f"[green]{state.completed}[/green] of [dim]{state.total}[/dim]")
        table.add_row("Total time", f"[yellow]{format_time(state.elapsed_time)}[/yellow]")
        if state.passed or state.failed:
            table.add_row("Results", f"[green]{state.passed} passed[/green] | [red]{state.failed} failed[/red]")
        self.console.print(Panel(table, title="Summary", border_style="green" if ok else "red"))
