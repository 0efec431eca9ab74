"""Rich rendering of audit trail summaries."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .audit import AuditTrail


def render_summary(trail: AuditTrail, console: Console | None = None) -> None:
    """Print tool usage, blocked operations and total execution time."""
    console = console or Console()
    summary = trail.summarize()

    usage = Table(title="Tool Usage", box=box.SIMPLE)
    usage.add_column("Tool", style="cyan")
    usage.add_column("Calls", justify="right")
    for tool, count in summary.per_tool_counts.items():
        usage.add_row(tool, str(count))
    console.print(usage)

    console.print(
        Panel(
            f"Blocked Operations: {summary.blocked_count}\n"
            f"Total Execution Time: {summary.total_duration_ms:.0f}ms\n"
            f"Correlation Anomalies: {summary.anomaly_count}",
            title="Audit Trail Summary",
            expand=False,
        )
    )

    blocked = trail.blocked_entries()
    if not blocked:
        return

    details = Table(title="Blocked Commands", box=box.SIMPLE)
    details.add_column("Tool", style="cyan")
    details.add_column("Reason", style="red")
    details.add_column("Command")
    for entry in blocked:
        command = (entry.input or {}).get("command")
        shown = "" if command is None else str(command)
        if len(shown) > 50:
            shown = f"{shown[:50]}..."
        details.add_row(entry.tool_name, entry.block_reason or "", shown)
    console.print(details)
