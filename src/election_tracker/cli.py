# Cli Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Propósito del módulo
#   2) Componentes principales
#   3) Puntos de extensión
#
# EN: Quick index
#   1) Module purpose
#   2) Main components
#   3) Extension points

"""Interfaz de línea de comandos del rastreador.

Tracker command line interface::

    election-tracker batches --config tracker.yaml
    election-tracker show --batch-id 3 --community Uptown
    election-tracker leaders --kind precinct
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import typer

from election_tracker.batch_store import BatchUnavailableError
from election_tracker.config import ConfigError, TrackerSettings, load_config
from election_tracker.core.models import ScopeKind
from election_tracker.fetcher import BatchFileSource, FetchError
from election_tracker.logging import setup_logging
from election_tracker.metadata import MetadataError
from election_tracker.tables import results_table
from election_tracker.tracker import ElectionTracker

app = typer.Typer(help="Election batch tracker CLI")

T = TypeVar("T")

ConfigOption = typer.Option(None, "--config", "-c", help="YAML config file (defaults to environment/.env).")


def _settings(config: Optional[Path]) -> TrackerSettings:
    try:
        settings = load_config(config)
    except ConfigError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(code=2) from exc
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR)
    return settings


def _run(settings: TrackerSettings, action: Callable[[ElectionTracker], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with BatchFileSource.from_settings(settings) as source:
            tracker = ElectionTracker(source, settings)
            await tracker.load()
            return await action(tracker)

    try:
        return asyncio.run(runner())
    except (FetchError, MetadataError, BatchUnavailableError, LookupError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def batches(config: Optional[Path] = ConfigOption) -> None:
    """Lista los lotes declarados. / List the declared batches."""
    settings = _settings(config)

    async def action(tracker: ElectionTracker):
        return tracker.metadata

    metadata = _run(settings, action)
    for update in metadata.updates:
        turnout = f"{update.turnout:.2f}%" if update.turnout is not None else "n/a"
        typer.echo(
            f"Batch {update.batch_id} - {update.timestamp.isoformat()} - "
            f"{update.source_file} - turnout {turnout}"
        )


@app.command()
def show(
    batch_id: Optional[int] = typer.Option(None, "--batch-id", "-b", help="Batch id (defaults to latest)."),
    community: Optional[str] = typer.Option(None, "--community", help="Show one community instead of the contest."),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Muestra resultados con cambios respecto al lote anterior.

    English: Show results with changes against the previous batch.
    """
    settings = _settings(config)

    async def action(tracker: ElectionTracker):
        view = await tracker.select(batch_id)
        previous = tracker.store.peek(view.previous_batch_id) if view.previous_batch_id is not None else None
        kind = ScopeKind.COMMUNITY if community else ScopeKind.CONTEST
        return view, results_table(view.snapshot, previous, kind, community)

    view, table = _run(settings, action)
    title = community or view.snapshot.contest.name or "Contest"
    typer.echo(f"{title} - batch {view.descriptor.batch_id}")
    table["percentage"] = table["percentage"].round(2)
    typer.echo(table.to_string(index=False))
    if not view.contest_deltas.available:
        typer.echo("No comparison available for this batch.")
    for diagnostic in view.diagnostics:
        typer.echo(f"[{diagnostic.kind.value}] {diagnostic.message}", err=True)


@app.command()
def leaders(
    batch_id: Optional[int] = typer.Option(None, "--batch-id", "-b", help="Batch id (defaults to latest)."),
    kind: ScopeKind = typer.Option(ScopeKind.COMMUNITY, "--kind", help="community or precinct."),
    config: Optional[Path] = ConfigOption,
) -> None:
    """Líder por comunidad o precinto. / Leader per community or precinct."""
    if kind is ScopeKind.CONTEST:
        typer.echo("Use 'show' for the contest-wide leader.", err=True)
        raise typer.Exit(code=2)
    settings = _settings(config)

    async def action(tracker: ElectionTracker):
        return await tracker.select(batch_id)

    view = _run(settings, action)
    results = view.community_leaders if kind is ScopeKind.COMMUNITY else view.precinct_leaders
    for name, result in results.items():
        if result.leader is None:
            typer.echo(f"{name}: no results yet")
        else:
            typer.echo(f"{name}: {result.leader.candidate_name} (+{result.margin})")


if __name__ == "__main__":
    app()
