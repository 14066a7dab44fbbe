"""Rich-based execution history dashboard."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from workflow_studio.core.history import ExecutionHistoryStore
from workflow_studio.core.models import ExecutionStatus


def format_duration(ms: float) -> str:
    """Human-readable duration: ``Nms`` under a second, ``Ns`` under a minute, else ``Nm Ss``."""
    if ms < 1000:
        return f"{int(ms)}ms"
    seconds = int(ms // 1000)
    if seconds < 60:
        return f"{seconds}s"
    minutes, seconds = divmod(seconds, 60)
    return f"{minutes}m {seconds}s"


class HistoryDashboard:
    """Terminal dashboard for execution history.

    USAGE:
        dashboard = HistoryDashboard(history)
        dashboard.show()
    """

    def __init__(self, history: ExecutionHistoryStore, console: Console | None = None):
        self.history = history
        self.console = console or Console()

    def show(self, limit: int | None = None) -> None:
        """Display history dashboard once."""
        self.console.print()
        self.console.rule("[bold blue]Execution History[/bold blue]")

        self._show_summary()
        self.console.print()

        self._show_recent_runs(limit)
        self.console.print()

        self._show_recent_failures()

    def _show_summary(self) -> None:
        summary = self.history.summary()

        table = Table(title="Summary", show_header=False, box=None)
        table.add_column("Metric", style="dim")
        table.add_column("Value", style="bold")

        table.add_row("Total Executions", str(summary.total_executions))
        table.add_row("Successful", str(summary.successful))
        table.add_row("Failed", str(summary.failed))
        table.add_row("Success Rate", summary.formatted_success_rate)
        table.add_row("Avg Duration", format_duration(summary.avg_duration_ms))

        self.console.print(Panel(table))

    def _show_recent_runs(self, limit: int | None) -> None:
        records = self.history.list(limit)
        if not records:
            self.console.print("[dim]No executions yet[/dim]")
            return

        table = Table(title="Recent Executions")
        table.add_column("Started", style="dim")
        table.add_column("Execution", style="cyan")
        table.add_column("Trigger")
        table.add_column("Status", justify="center")
        table.add_column("Nodes", justify="right")
        table.add_column("Duration", justify="right")

        for record in records:
            style = "green" if record.status == ExecutionStatus.SUCCESS else "red"
            table.add_row(
                record.started_at.isoformat()[:19],
                escape(record.id[:8]),
                escape(record.trigger),
                f"[{style}]{record.status.value}[/]",
                f"{record.nodes_executed}/{record.nodes_total}",
                format_duration(record.duration_ms),
            )

        self.console.print(table)

    def _show_recent_failures(self, limit: int = 5) -> None:
        failures = self.history.failures(limit)

        if not failures:
            self.console.print("[dim]No recent failures[/dim]")
            return

        table = Table(title="Recent Failures")
        table.add_column("Time", style="dim")
        table.add_column("Workflow")
        table.add_column("Error")

        for record in failures:
            table.add_row(
                record.started_at.isoformat()[:19],
                escape(record.workflow_id[:12]) if record.workflow_id else "",
                escape(record.error or "unknown"),
            )

        self.console.print(table)
