"""Keeper Jobs CLI - Main Entry Point"""

from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from .client.base import KeeperJobsError
from .client.endpoints import KeeperJobsClient
from .commands import config, jobs
from .utils.config_manager import config as config_manager
from .utils.formatting import create_run_results_table, print_error, print_info

console = Console()

app = typer.Typer(
    name="keeper-jobs",
    help="🗂 Compensation jobs CLI - run and inspect the background job queue",
    rich_markup_mode="rich",
)

app.add_typer(jobs.app, name="jobs")
app.add_typer(config.app, name="config")


@app.command()
def status():
    """📊 Check service status and queue health"""
    base_url = config_manager.get("api.base_url")
    print_info(f"Checking connection to: {base_url}")

    try:
        with KeeperJobsClient(base_url) as client:
            health = client.health_check()
    except KeeperJobsError as e:
        print_error(f"Failed to connect: {e}")
        console.print(Panel(
            f"🚫 [red]Connection Failed[/red]\n\n"
            f"Make sure the API is running at:\n"
            f"[blue]{base_url}[/blue]\n\n"
            f"You can update the API URL with:\n"
            f"[cyan]keeper-jobs config set api.base_url <url>[/cyan]",
            title="Connection Error",
            border_style="red"
        ))
        raise typer.Exit(1) from None

    queue = health.get("queue") or {}
    console.print(Panel(
        f"🚀 [green]Connected Successfully![/green]\n\n"
        f"• Version: [cyan]{health.get('version', 'unknown')}[/cyan]\n"
        f"• Environment: [yellow]{health.get('environment', 'unknown')}[/yellow]\n"
        f"• Queue depth: [cyan]{queue.get('queue_depth', '—')}[/cyan]\n"
        f"• Stale jobs: [red]{queue.get('stale_jobs_count', '—')}[/red]\n"
        f"• Dead letters: [red]{queue.get('dead_letter_count', '—')}[/red]",
        title="System Status",
        border_style="green"
    ))


@app.command()
def run():
    """▶️ Run one poll cycle on the server"""
    try:
        with KeeperJobsClient() as client:
            response = client.run_jobs()
    except KeeperJobsError as e:
        print_error(str(e))
        if e.status_code == 401:
            print_info("Set the trigger key with: keeper-jobs config set api.token <key>")
        raise typer.Exit(1) from None

    results = response.get("results", [])
    if not results:
        print_info("No jobs were due")
        return

    console.print(create_run_results_table(results))
    failed = sum(1 for r in results if not r.get("success"))
    console.print(f"[dim]{len(results)} processed, {failed} failed[/dim]")


def version_callback(value: bool):
    if value:
        from . import __version__
        console.print(f"Keeper Jobs CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
):
    """
    🗂 Keeper Jobs CLI

    Trigger poll cycles and inspect the job queue of the compensation service.
    """


if __name__ == "__main__":
    app()
