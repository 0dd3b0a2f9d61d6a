"""Command-line entry points: one-off sync, cron scheduler and HTTP gateway."""

import os
from pathlib import Path
from typing import Optional

import typer
from rich import print as rprint

from .config import get_settings
from .logging_utils import setup_logging
from .pipeline import SYNC_MODES, run_sync, run_sync_logged
from .storage import LocalObjectStore, build_store

app = typer.Typer(help="Sync a Notion blog database into an object store.")


def _check_choice(value: str, choices, label: str) -> str:
    normalized = value.lower()
    if normalized not in choices:
        raise typer.BadParameter(f"{label} must be one of: {', '.join(choices)}.")
    return normalized


@app.command("sync")
def sync_command(
    mode: str = typer.Option(
        "posts",
        "--mode",
        "-m",
        help="'posts' (normalized blog document) or 'raw' (pages as Notion returns them).",
        case_sensitive=False,
    ),
    sink: str = typer.Option(
        "auto",
        "--sink",
        "-s",
        help="Where to write: 'auto', 'r2' or 'local'.",
        case_sensitive=False,
    ),
    out: Optional[Path] = typer.Option(
        None,
        "--out",
        "-o",
        help="Write to this local directory instead of the configured store.",
    ),
):
    """Run the sync once (suitable for cron)."""
    mode_normalized = _check_choice(mode, SYNC_MODES, "mode")
    sink_normalized = _check_choice(sink, ("auto", "r2", "local"), "sink")

    settings = get_settings()
    setup_logging(settings.log_level)

    if out is not None:
        store = LocalObjectStore(out)
    else:
        store = build_store(settings, sink_normalized)
        if store is None:
            raise typer.BadParameter(
                f"No '{sink_normalized}' store configured; set R2_BUCKET or "
                "LOCAL_STORE_DIR, or pass --out."
            )

    try:
        result = run_sync(settings, store=store, mode=mode_normalized)
    except Exception as exc:
        rprint(f"[red]Sync failed: {exc}[/red]")
        raise typer.Exit(code=1)

    rprint(
        f"[green]Stored {result.pagination.record_count} records "
        f"({result.pagination.page_count} pages) at {result.persisted.primary_key}[/green]"
    )
    if result.persisted.backup_key:
        rprint(f"[cyan]Backup at {result.persisted.backup_key}[/cyan]")
    else:
        rprint(f"[yellow]Backup not written: {result.persisted.backup_error}[/yellow]")


@app.command("schedule")
def schedule_command(
    cron: Optional[str] = typer.Option(
        None,
        "--cron",
        help="Crontab expression (defaults to SYNC_CRON, hourly).",
    ),
    mode: str = typer.Option("posts", "--mode", "-m", case_sensitive=False),
):
    """Run the sync on a cron schedule until interrupted."""
    from apscheduler.schedulers.blocking import BlockingScheduler
    from apscheduler.triggers.cron import CronTrigger

    mode_normalized = _check_choice(mode, SYNC_MODES, "mode")
    settings = get_settings()
    setup_logging(settings.log_level)
    expression = cron or settings.sync_cron
    try:
        trigger = CronTrigger.from_crontab(expression, timezone="UTC")
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid cron expression {expression!r}: {exc}") from exc

    scheduler = BlockingScheduler(timezone="UTC")
    scheduler.add_job(
        run_sync_logged,
        trigger,
        args=[settings],
        kwargs={"mode": mode_normalized},
        id="notion-sync",
        max_instances=1,
        coalesce=True,
    )
    rprint(f"[cyan]Scheduled sync with cron '{expression}' (UTC). Ctrl+C to stop.[/cyan]")
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        rprint("[cyan]Scheduler stopped.[/cyan]")


@app.command("serve")
def serve_command(
    host: str = typer.Option(os.getenv("SYNC_HOST", "0.0.0.0"), "--host"),
    port: int = typer.Option(int(os.getenv("SYNC_PORT", "8000")), "--port"),
    reload: bool = typer.Option(False, "--reload"),
):
    """Serve the HTTP gateway with uvicorn."""
    import uvicorn

    setup_logging(get_settings().log_level)
    uvicorn.run("notion_blog_sync.server:app", host=host, port=port, reload=reload)


def main():
    app()


if __name__ == "__main__":
    main()
