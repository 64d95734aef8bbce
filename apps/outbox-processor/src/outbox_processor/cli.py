"""
Outbox CLI

Command-line interface for operating the outbox processor.

Commands:
- run: Start the processor loop (same as the worker)
- run-once: Process a single batch from every backend
- stats: Pending / processed / poisoned counts per backend
- poisoned: List poisoned records of a backend
- replay: Re-enqueue a poisoned (or delivered) record
- init-db: Create the relational tables without alembic (development)
"""

import asyncio
from typing import Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.table import Table

from fitcore.logging import setup_logging
from fitcore.settings import get_settings

from fitness_events.cancellation import CancellationToken
from fitness_events.errors import RecordNotFoundError, RecordNotTerminalError
from outbox_processor.main import install_signal_handlers
from outbox_processor.runtime import open_runtime

app = typer.Typer(
    name="outbox",
    help="Fitness outbox processor CLI",
)

console = Console()


def _settings(interval: Optional[float] = None, batch_size: Optional[int] = None):
    settings = get_settings()
    overrides = {}
    if interval is not None:
        overrides["OUTBOX_INTERVAL_SECONDS"] = interval
    if batch_size is not None:
        overrides["OUTBOX_BATCH_SIZE"] = batch_size
    return settings.model_copy(update=overrides) if overrides else settings


@app.command()
def run(
    interval: Optional[float] = typer.Option(None, help="Seconds between cycles (default OUTBOX_INTERVAL_SECONDS)"),
    batch_size: Optional[int] = typer.Option(None, help="Records per backend per cycle"),
):
    """Run the processor until SIGTERM/SIGINT."""
    setup_logging()

    async def _serve():
        token = CancellationToken()
        install_signal_handlers(token)
        async with open_runtime(_settings(interval, batch_size)) as runtime:
            await runtime.processor.run(token)

    asyncio.run(_serve())


@app.command("run-once")
def run_once(
    batch_size: Optional[int] = typer.Option(None, help="Records per backend"),
):
    """Process one batch from every backend and print what happened."""

    async def _cycle():
        async with open_runtime(_settings(batch_size=batch_size)) as runtime:
            return await runtime.processor.run_cycle()

    cycle = asyncio.run(_cycle())

    table = Table(title="Outbox cycle")
    table.add_column("Backend")
    table.add_column("Polled", justify="right")
    table.add_column("Delivered", justify="right")
    table.add_column("Retried", justify="right")
    table.add_column("Poisoned", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Error")
    for result in cycle.backends:
        table.add_row(
            result.backend,
            str(result.polled),
            str(result.succeeded),
            str(result.retried),
            str(result.poisoned),
            str(result.skipped),
            result.error or "",
        )
    console.print(table)

    if any(not result.ok for result in cycle.backends):
        raise typer.Exit(1)


@app.command()
def stats():
    """Show outbox counts per backend."""

    async def _stats():
        async with open_runtime() as runtime:
            return [await store.stats() for store in runtime.outbox_stores.values()]

    table = Table(title="Outbox")
    table.add_column("Backend")
    table.add_column("Pending", justify="right")
    table.add_column("Processed", justify="right")
    table.add_column("Poisoned", justify="right")
    for backend_stats in asyncio.run(_stats()):
        table.add_row(
            backend_stats.backend,
            str(backend_stats.pending),
            str(backend_stats.processed),
            str(backend_stats.poisoned),
        )
    console.print(table)


@app.command()
def poisoned(
    backend: str = typer.Argument(..., help="relational or documents"),
    limit: int = typer.Option(20, help="Maximum records to list"),
):
    """List poisoned records, most recent first."""

    async def _list():
        async with open_runtime() as runtime:
            return await runtime.outbox(backend).list_poisoned(limit)

    try:
        records = asyncio.run(_list())
    except KeyError as e:
        rprint(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(1)

    if not records:
        rprint(f"[green]No poisoned records in {backend}[/green]")
        return

    table = Table(title=f"Poisoned records ({backend})")
    table.add_column("ID")
    table.add_column("Event type")
    table.add_column("Event ID")
    table.add_column("Retries", justify="right")
    table.add_column("Last error")
    for record in records:
        table.add_row(str(record.id), record.event_type, record.event_id, str(record.retry_count), record.last_error or "")
    console.print(table)


@app.command()
def replay(
    backend: str = typer.Argument(..., help="relational or documents"),
    record_id: str = typer.Argument(..., help="Outbox record id"),
):
    """
    Re-enqueue a terminal record.

    A fresh record with the same event_id and payload is appended; consumers
    that already completed the event skip it.
    """

    async def _replay():
        async with open_runtime() as runtime:
            return await runtime.outbox(backend).replay(record_id)

    try:
        replayed = asyncio.run(_replay())
    except KeyError as e:
        rprint(f"[red]{e.args[0]}[/red]")
        raise typer.Exit(1)
    except (RecordNotFoundError, RecordNotTerminalError) as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(1)

    rprint("[green]Record replayed:[/green]")
    rprint(f"  Backend: {backend}")
    rprint(f"  Original ID: {record_id}")
    rprint(f"  New ID: {replayed.id}")
    rprint(f"  Event: {replayed.event_type} ({replayed.event_id})")


@app.command("init-db")
def init_db():
    """Create outbox, inbox and module tables directly from the models."""

    async def _create():
        async with open_runtime() as runtime:
            await runtime.create_tables()

    asyncio.run(_create())
    rprint("[green]Tables created[/green]")


if __name__ == "__main__":
    app()
