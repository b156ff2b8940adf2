"""Job Commands - inspect and enqueue background jobs"""

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

from ..client.base import KeeperJobsError
from ..client.endpoints import KeeperJobsClient
from ..utils.config_manager import config
from ..utils.formatting import (
    create_jobs_table,
    create_stats_panel,
    print_error,
    print_info,
    print_success,
)

console = Console()
app = typer.Typer(name="jobs", help="Inspect and enqueue jobs")


@app.command("list")
def list_jobs(
    state: str | None = typer.Option(None, "--state", "-s", help="Filter by state"),
    queue: str | None = typer.Option(None, "--queue", "-q", help="Filter by queue name"),
    limit: int | None = typer.Option(None, "--limit", "-l", help="Maximum results"),
    offset: int = typer.Option(0, "--offset", help="Results offset"),
):
    """📋 List jobs"""
    limit = limit or config.get("display.jobs_per_page", 20)
    try:
        with KeeperJobsClient() as client:
            data = client.list_jobs(state=state, queue_name=queue, limit=limit, offset=offset)
    except KeeperJobsError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    jobs = data.get("jobs", [])
    if not jobs:
        print_info("No jobs found")
        return

    console.print(create_jobs_table(jobs))
    console.print(f"[dim]Showing {len(jobs)} of {data.get('total', len(jobs))}[/dim]")


@app.command("show")
def show_job(job_id: str = typer.Argument(..., help="Job ID")):
    """🔍 Show a job with its payload"""
    try:
        with KeeperJobsClient() as client:
            job = client.get_job(job_id)
    except KeeperJobsError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    console.print(
        Panel(
            f"Queue: [magenta]{job.get('queue_name')}[/magenta]\n"
            f"State: [yellow]{job.get('state')}[/yellow]\n"
            f"Scheduled: {job.get('scheduled')}\n"
            f"Failures: {job.get('failure_count')}\n"
            f"Lock: {job.get('lock_id') or '—'}\n"
            f"Last heartbeat: {job.get('last_heartbeat') or '—'}",
            title=f"Job {job.get('id')}",
            border_style="cyan",
        )
    )
    console.print(Syntax(json.dumps(job.get("data", {}), indent=2), "json"))


@app.command("stats")
def job_stats():
    """📊 Show queue statistics"""
    try:
        with KeeperJobsClient() as client:
            stats = client.job_stats()
    except KeeperJobsError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    console.print(create_stats_panel(stats))


@app.command("enqueue")
def enqueue_job(
    queue: str = typer.Argument(..., help="Queue name, e.g. send_keeper_test"),
    data_file: Path = typer.Argument(..., exists=True, readable=True, help="JSON payload file"),
    scheduled: str | None = typer.Option(None, "--at", help="ISO-8601 scheduled time"),
):
    """➕ Enqueue a job from a JSON payload file"""
    try:
        data = json.loads(data_file.read_text())
    except json.JSONDecodeError as e:
        print_error(f"Invalid JSON in {data_file}: {e}")
        raise typer.Exit(1) from None

    try:
        with KeeperJobsClient() as client:
            result = client.enqueue_job(queue, data, scheduled=scheduled)
    except KeeperJobsError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    print_success(f"Enqueued job {result.get('job_id')} for {result.get('scheduled')}")
