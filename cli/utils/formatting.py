"""Rich Formatting Utilities for CLI Output"""

from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

STATE_STYLES = {
    "available": "green",
    "running": "yellow",
    "dead_letter": "red",
    "completed": "blue",
}


def print_success(message: str):
    """Print success message with green styling"""
    console.print(f"[green]✓ {message}[/green]")


def print_error(message: str):
    """Print error message with red styling"""
    console.print(f"[red]✗ {message}[/red]")


def print_warning(message: str):
    """Print warning message with yellow styling"""
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_info(message: str):
    """Print info message with blue styling"""
    console.print(f"[blue]ℹ {message}[/blue]")


def _state(state: str) -> str:
    style = STATE_STYLES.get(state, "white")
    return f"[{style}]{state}[/{style}]"


def create_jobs_table(jobs: list[dict[str, Any]]) -> Table:
    """Create a formatted table for a job list"""
    table = Table(title="Jobs", box=box.ROUNDED)

    table.add_column("ID", justify="left", style="cyan", no_wrap=True)
    table.add_column("Queue", justify="left", style="magenta")
    table.add_column("State", justify="center")
    table.add_column("Scheduled", justify="left")
    table.add_column("Failures", justify="right")

    for job in jobs:
        table.add_row(
            str(job.get("id", ""))[:8],
            job.get("queue_name", ""),
            _state(job.get("state", "")),
            str(job.get("scheduled", ""))[:19],
            str(job.get("failure_count", 0)),
        )

    return table


def create_run_results_table(results: list[dict[str, Any]]) -> Table:
    """Create a table from the trigger's per-job results"""
    table = Table(title="Poll Cycle Results", box=box.ROUNDED)

    table.add_column("ID", justify="left", style="cyan", no_wrap=True)
    table.add_column("Result", justify="center")
    table.add_column("Details", justify="left")

    for result in results:
        data = result.get("data") or {}
        if result.get("success"):
            outcome = "[green]ok[/green]"
            details = ", ".join(
                f"{k}={data[k]}" for k in ("queue_name", "scheduled") if k in data
            )
        else:
            outcome = "[red]failed[/red]"
            details = f"failures={data.get('failure_count')} state={data.get('state')}"
        if data.get("committed") is False:
            details += " (dropped)"
        table.add_row(str(result.get("id", ""))[:8], outcome, details or "—")

    return table


def create_stats_panel(stats: dict[str, Any]) -> Panel:
    """Create formatted panel for queue statistics"""
    by_state = "\n".join(
        f"  • {_state(state)}: {count}"
        for state, count in sorted(stats.get("by_state", {}).items())
    )
    by_queue = "\n".join(
        f"  • {queue}: {count}"
        for queue, count in sorted(stats.get("by_queue", {}).items())
    )
    content = (
        f"Total jobs: [bold]{stats.get('total_jobs', 0)}[/bold]\n"
        f"Queue depth: [cyan]{stats.get('queue_depth', 0)}[/cyan]\n"
        f"Due now: [yellow]{stats.get('due_now', 0)}[/yellow]\n"
        f"Stale running: [red]{stats.get('stale_running', 0)}[/red]\n"
        f"Dead letter: [red]{stats.get('dead_letter', 0)}[/red]\n\n"
        f"[bold]By state[/bold]\n{by_state or '  —'}\n\n"
        f"[bold]By queue[/bold]\n{by_queue or '  —'}"
    )
    return Panel(content, title="Queue Statistics", border_style="blue")
