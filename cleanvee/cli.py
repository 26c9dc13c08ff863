"""Cleanvee CLI - operator commands around the reactors and the watchdog.

Commands:
- init: Initialize database schema
- validate: Run startup validations
- watchdog: Run one SLA sweep now
- process-log: Run the log-created reactor for a stored cleaning log
- process-feedback: Run the occupant feedback reactor for stored feedback
- enqueue-log / enqueue-feedback: Dispatch an event to the arq worker
- checkpoints: Show checkpoint freshness
- ticket-preview: Show the ticket request an alert would produce
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict

import typer
from rich.console import Console
from rich.table import Table

from cleanvee.config import get_config
from cleanvee.core.logging import configure_logging
from cleanvee.core.queue import dispatch_log_created, dispatch_occupant_feedback, get_queue
from cleanvee.db.connection import create_engine_from_config, create_session_factory, init_db
from cleanvee.db.models import AlertModel, CheckpointModel
from cleanvee.db.queries import fetch_checkpoints, fetch_cleaning_log, fetch_occupant_feedback
from cleanvee.integrations.tickets import ticket_request_from_alert
from cleanvee.reactors import LogCreatedReactor, OccupantFeedbackReactor
from cleanvee.sla.watchdog import SlaWatchdog
from cleanvee.startup_validation import StartupValidationError, run_startup_validation

app = typer.Typer(
    name="cleanvee",
    help="Cleanvee - cleaning SLA monitoring and alerting",
    no_args_is_help=True,
)

console = Console()

STATUS_STYLES = {"CLEAN": "green", "OVERDUE": "red", "UNKNOWN": "dim"}


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Console debug logging"),
):
    """Configure logging for every command."""
    configure_logging("DEBUG" if verbose else "WARNING", log_format="text")


@app.command()
def init(
    drop: bool = typer.Option(False, "--drop", help="Drop existing tables"),
):
    """Initialize database schema."""
    config = get_config()
    console.print(f"[bold]Initializing database:[/bold] {config.db.url}")

    async def _init():
        engine = create_engine_from_config(config.db)
        if drop:
            console.print("[yellow]Dropping existing tables...[/yellow]")
        console.print("[green]Creating tables...[/green]")
        await init_db(engine, drop=drop)
        await engine.dispose()

    asyncio.run(_init())
    console.print("[bold green]✓[/bold green] Database initialized")


@app.command()
def validate():
    """Run startup validations against the configured database."""
    config = get_config()

    async def _validate():
        engine = create_engine_from_config(config.db)
        try:
            async with create_session_factory(engine)() as session:
                await run_startup_validation(session)
        finally:
            await engine.dispose()

    try:
        asyncio.run(_validate())
    except StartupValidationError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)
    console.print("[bold green]✓[/bold green] All startup validations passed")


@app.command()
def watchdog(
    max_gap_hours: float | None = typer.Option(
        None, "--max-gap-hours", help="Override SLA_DEFAULT_MAX_GAP_HOURS"
    ),
):
    """Run one SLA watchdog sweep now."""
    config = get_config()

    async def _sweep():
        engine = create_engine_from_config(config.db)
        try:
            sweeper = SlaWatchdog.from_config(create_session_factory(engine), config.watchdog)
            if max_gap_hours is not None:
                sweeper.max_gap_hours = max_gap_hours
            return await sweeper.run()
        finally:
            await engine.dispose()

    result = asyncio.run(_sweep())

    table = Table(title="SLA sweep")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Overdue checkpoints", str(result.overdue))
    table.add_row("Already alerted", str(result.already_open))
    table.add_row("Alerts created", str(result.alerts_created))
    console.print(table)

    for checkpoint_id in result.flagged_checkpoint_ids:
        console.print(f"  [red]●[/red] {checkpoint_id}")


@app.command(name="process-log")
def process_log_cmd(
    log_id: str = typer.Argument(..., help="Cleaning log ID"),
):
    """Run the log-created reactor for a stored cleaning log."""
    config = get_config()

    async def _process():
        engine = create_engine_from_config(config.db)
        try:
            session_factory = create_session_factory(engine)
            async with session_factory() as session:
                log = await fetch_cleaning_log(session, log_id)
            if log is None:
                return None
            reactor = LogCreatedReactor.from_config(session_factory, config)
            return await reactor.handle(log_id, log)
        finally:
            await engine.dispose()

    outcome = asyncio.run(_process())
    if outcome is None:
        console.print(f"[red]✗[/red] Cleaning log not found: {log_id}")
        raise typer.Exit(1)

    table = Table(title=f"Log {log_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in asdict(outcome).items():
        if key != "log_id":
            table.add_row(key, "-" if value is None else str(value))
    console.print(table)


@app.command(name="process-feedback")
def process_feedback_cmd(
    feedback_id: str = typer.Argument(..., help="Occupant feedback ID"),
):
    """Run the occupant feedback reactor for stored feedback."""
    config = get_config()

    async def _process():
        engine = create_engine_from_config(config.db)
        try:
            session_factory = create_session_factory(engine)
            async with session_factory() as session:
                feedback = await fetch_occupant_feedback(session, feedback_id)
            if feedback is None:
                raise LookupError(feedback_id)
            return await OccupantFeedbackReactor(session_factory).handle(feedback_id, feedback)
        finally:
            await engine.dispose()

    try:
        flagged_log_id = asyncio.run(_process())
    except LookupError:
        console.print(f"[red]✗[/red] Feedback not found: {feedback_id}")
        raise typer.Exit(1)

    if flagged_log_id:
        console.print(f"[yellow]⚑[/yellow] Flagged log {flagged_log_id} for review")
    else:
        console.print("[dim]No log changed[/dim]")


@app.command(name="enqueue-log")
def enqueue_log_cmd(
    log_id: str = typer.Argument(..., help="Cleaning log ID"),
):
    """Dispatch the log-created event to the worker queue."""
    config = get_config()

    async def _enqueue():
        pool = await get_queue(config.worker.redis_url)
        try:
            return await dispatch_log_created(pool, log_id)
        finally:
            await pool.close()

    jobs = asyncio.run(_enqueue())
    console.print(f"[green]✓[/green] Enqueued {len(jobs)} job(s) for log {log_id}")


@app.command(name="enqueue-feedback")
def enqueue_feedback_cmd(
    feedback_id: str = typer.Argument(..., help="Occupant feedback ID"),
):
    """Dispatch the occupant feedback event to the worker queue."""
    config = get_config()

    async def _enqueue():
        pool = await get_queue(config.worker.redis_url)
        try:
            return await dispatch_occupant_feedback(pool, feedback_id)
        finally:
            await pool.close()

    job = asyncio.run(_enqueue())
    if job is None:
        console.print(f"[yellow]⚠[/yellow] Feedback {feedback_id} already queued")
    else:
        console.print(f"[green]✓[/green] Enqueued feedback {feedback_id}")


@app.command()
def checkpoints(
    building_id: str | None = typer.Option(None, "--building", help="Building ID"),
):
    """Show checkpoint freshness."""
    config = get_config()

    async def _list() -> list[CheckpointModel]:
        engine = create_engine_from_config(config.db)
        try:
            async with create_session_factory(engine)() as session:
                return await fetch_checkpoints(session, building_id)
        finally:
            await engine.dispose()

    rows = asyncio.run(_list())
    if not rows:
        console.print("[yellow]No checkpoints found[/yellow]")
        return

    table = Table(title="Checkpoints")
    table.add_column("ID", style="cyan")
    table.add_column("Building")
    table.add_column("Location")
    table.add_column("Active")
    table.add_column("Last cleaned")
    table.add_column("Status")

    for checkpoint in rows:
        style = STATUS_STYLES.get(checkpoint.current_status, "white")
        table.add_row(
            checkpoint.id,
            checkpoint.building_id,
            checkpoint.location_label or "-",
            "yes" if checkpoint.is_active else "no",
            checkpoint.last_cleaned_at or "never",
            f"[{style}]{checkpoint.current_status}[/{style}]",
        )
    console.print(table)


@app.command(name="ticket-preview")
def ticket_preview_cmd(
    alert_id: str = typer.Argument(..., help="Alert ID"),
):
    """Show the PII-free ticket request an alert would produce."""
    config = get_config()

    async def _load():
        engine = create_engine_from_config(config.db)
        try:
            async with create_session_factory(engine)() as session:
                alert = await session.get(AlertModel, alert_id)
                if alert is None:
                    return None
                checkpoint = await session.get(CheckpointModel, alert.checkpoint_id)
                location = checkpoint.location_label if checkpoint else None
                return ticket_request_from_alert(alert, location)
        finally:
            await engine.dispose()

    request = asyncio.run(_load())
    if request is None:
        console.print(f"[red]✗[/red] Alert not found: {alert_id}")
        raise typer.Exit(1)

    console.print_json(request.model_dump_json())


if __name__ == "__main__":
    app()
