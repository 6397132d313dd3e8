"""CLI entry point for the Transit Hike Planner."""

from __future__ import annotations

import datetime
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer
from rich.console import Console
from rich.markup import escape

from hike_planner.advisors import GeminiAdvisor
from hike_planner.config import DB_PATH, DEMO_REFERENCE_PATH
from hike_planner.context import AppContext, build_context
from hike_planner.errors import HikePlannerError
from hike_planner.ingest.reference import ReferenceData, load_gtfs_stops, load_reference_json, seed_store
from hike_planner.models import Position, RouteConstraints
from hike_planner.output.cli_formatter import (
    print_completed,
    print_exit_strategies,
    print_hike_summary,
    print_no_alternative,
    print_route,
)
from hike_planner.store.sqlite import SqliteStore

app = typer.Typer(help="Transit Hike Planner — plan transit-accessible hikes and track safe exits.")
console = Console()


def _parse_time(value: Optional[str]) -> Optional[datetime.datetime]:
    """Parse an optional ISO-8601 timestamp."""
    if value is None:
        return None
    try:
        return datetime.datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid timestamp: '{value}'. Use ISO-8601, e.g. 2026-05-01T09:30:00.")


@contextmanager
def _reporting_errors() -> Iterator[None]:
    try:
        yield
    except HikePlannerError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _show_exits(app_ctx: AppContext, hike_id: str) -> None:
    ids = app_ctx.exits.get_exit_strategies(hike_id)
    strategies = [app_ctx.exits.get_exit_strategy(i) for i in ids]
    points = {s.exit_point_id: app_ctx.exits.get_exit_point(s.exit_point_id) for s in strategies}
    print_exit_strategies(strategies, points)


@app.callback()
def main(
    ctx: typer.Context,
    db: Path = typer.Option(DB_PATH, "--db", help="SQLite database holding all records"),
    llm: bool = typer.Option(False, "--llm", help="Use Gemini for scenic classification and exit scoring"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Plan transit + hike routes and track hikes in progress."""
    # ── Logging setup ─────────────────────────────────────────────────
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    advisor = None
    if llm:
        try:
            advisor = GeminiAdvisor()
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)

    ctx.obj = build_context(SqliteStore(db), classifier=advisor, scorer=advisor)


# ── Reference data ────────────────────────────────────────────────────


@app.command()
def seed(
    ctx: typer.Context,
    file: Path = typer.Option(DEMO_REFERENCE_PATH, "--file", "-f", help="Reference JSON file"),
    gtfs: Optional[Path] = typer.Option(None, "--gtfs", help="Unpacked GTFS directory to import stops from"),
) -> None:
    """Load reference stops, trailheads, trails and exit points."""
    app_ctx: AppContext = ctx.obj
    try:
        ref = load_reference_json(file)
        if gtfs is not None:
            ref = ReferenceData(
                transit_stops=ref.transit_stops + load_gtfs_stops(gtfs),
                trailheads=ref.trailheads,
                trails=ref.trails,
                exit_points=ref.exit_points,
            )
    except (OSError, ValueError, KeyError) as e:
        console.print(f"[red]Error:[/red] could not read reference data: {e}")
        raise typer.Exit(1)

    counts = seed_store(app_ctx.store, ref)
    for collection, n in counts.items():
        console.print(f"  {collection}: {n} new")


# ── Route planning ────────────────────────────────────────────────────


@app.command()
def plan(
    ctx: typer.Context,
    lat: float = typer.Option(..., "--lat", help="Origin latitude"),
    lon: float = typer.Option(..., "--lon", help="Origin longitude"),
    trailhead: str = typer.Option(..., "--trailhead", "-t", help="Destination trailhead id"),
    max_minutes: float = typer.Option(..., "--max-minutes", "-m", help="Total time budget in minutes"),
    criteria: str = typer.Option("default", "--criteria", "-c", help="default, faster, shorter or scenic"),
    depart: Optional[str] = typer.Option(None, "--depart", help="Preferred departure (ISO-8601)"),
    access: list[str] = typer.Option([], "--access", help="Accessibility requirement (repeatable)"),
) -> None:
    """Plan a transit + hike route within a time budget."""
    app_ctx: AppContext = ctx.obj
    constraints = RouteConstraints(max_minutes, preferred_departure=depart, accessibility=access)
    with _reporting_errors():
        route_id = app_ctx.planner.plan(Position(lat, lon), trailhead, constraints, criteria)
        route = app_ctx.planner.get_route(route_id)
        print_route(route, app_ctx.planner.get_trailhead(route.destination_trailhead_id))


@app.command()
def route(ctx: typer.Context, route_id: str = typer.Argument(..., help="Planned route id")) -> None:
    """Show a stored route."""
    app_ctx: AppContext = ctx.obj
    with _reporting_errors():
        planned = app_ctx.planner.get_route(route_id)
        print_route(planned, app_ctx.planner.get_trailhead(planned.destination_trailhead_id))


@app.command()
def alternative(
    ctx: typer.Context,
    route_id: str = typer.Argument(..., help="Planned route id"),
    criteria: str = typer.Option(..., "--criteria", "-c", help="faster, shorter or scenic"),
) -> None:
    """Look for a meaningfully different route under other criteria."""
    app_ctx: AppContext = ctx.obj
    with _reporting_errors():
        ids = app_ctx.alternatives.alternative(route_id, criteria)
        if not ids:
            print_no_alternative(route_id, criteria)
            return
        alt = app_ctx.planner.get_route(ids[0])
        print_route(alt, app_ctx.planner.get_trailhead(alt.destination_trailhead_id), title="Alternative route")


@app.command("update-constraints")
def update_constraints(
    ctx: typer.Context,
    route_id: str = typer.Argument(..., help="Planned route id"),
    max_minutes: float = typer.Option(..., "--max-minutes", "-m", help="New total time budget in minutes"),
    depart: Optional[str] = typer.Option(None, "--depart", help="Preferred departure (ISO-8601)"),
    access: list[str] = typer.Option([], "--access", help="Accessibility requirement (repeatable)"),
) -> None:
    """Replan a route under new constraints, keeping its criteria."""
    app_ctx: AppContext = ctx.obj
    constraints = RouteConstraints(max_minutes, preferred_departure=depart, accessibility=access)
    with _reporting_errors():
        new_id = app_ctx.alternatives.update_constraints(route_id, constraints)
        if new_id is None:
            console.print(f"[yellow]No feasible route within {max_minutes:.0f} minutes.[/yellow]")
            raise typer.Exit(1)
        replanned = app_ctx.planner.get_route(new_id)
        print_route(replanned, app_ctx.planner.get_trailhead(replanned.destination_trailhead_id))


# ── Hike tracking ─────────────────────────────────────────────────────


@app.command()
def start(
    ctx: typer.Context,
    route_id: str = typer.Argument(..., help="Planned route id"),
    user: str = typer.Option(..., "--user", "-u", help="User id"),
    lat: float = typer.Option(..., "--lat", help="Start latitude"),
    lon: float = typer.Option(..., "--lon", help="Start longitude"),
    at: Optional[str] = typer.Option(None, "--at", help="Start time (ISO-8601), default now"),
) -> None:
    """Start tracking a hike."""
    app_ctx: AppContext = ctx.obj
    with _reporting_errors():
        hike_id = app_ctx.hikes.start(route_id, user, Position(lat, lon), _parse_time(at))
    console.print(f"[green]Hike started:[/green] {hike_id}")


@app.command()
def locate(
    ctx: typer.Context,
    hike_id: str = typer.Argument(..., help="Active hike id"),
    lat: float = typer.Option(..., "--lat", help="Current latitude"),
    lon: float = typer.Option(..., "--lon", help="Current longitude"),
    at: Optional[str] = typer.Option(None, "--at", help="Fix time (ISO-8601), default now"),
) -> None:
    """Report a new position and show the refreshed exit strategies."""
    app_ctx: AppContext = ctx.obj
    with _reporting_errors():
        app_ctx.hikes.update_location(hike_id, Position(lat, lon), _parse_time(at))
        print_hike_summary(app_ctx.hikes.get_hike_summary(hike_id))
        _show_exits(app_ctx, hike_id)


@app.command()
def exits(ctx: typer.Context, hike_id: str = typer.Argument(..., help="Active hike id")) -> None:
    """Show ranked exit strategies for a hike's latest position."""
    app_ctx: AppContext = ctx.obj
    with _reporting_errors():
        _show_exits(app_ctx, hike_id)


@app.command()
def end(
    ctx: typer.Context,
    hike_id: str = typer.Argument(..., help="Active hike id"),
    exit_point: str = typer.Option(..., "--exit", "-e", help="Exit point id used"),
    at: Optional[str] = typer.Option(None, "--at", help="End time (ISO-8601), default now"),
) -> None:
    """Finish a hike at an exit point."""
    app_ctx: AppContext = ctx.obj
    with _reporting_errors():
        completed_id = app_ctx.hikes.end(hike_id, exit_point, _parse_time(at))
        print_completed(app_ctx.hikes.get_completed_hike(completed_id))


if __name__ == "__main__":
    app()
