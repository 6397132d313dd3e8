"""Rich CLI output for planned routes, hikes and exit strategies."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hike_planner.models import (
    CompletedHike,
    ExitPoint,
    ExitStrategy,
    HikeStatus,
    HikeSummary,
    PlannedRoute,
    Trailhead,
)

console = Console()


# ── URL builders ──────────────────────────────────────────────────────

def _google_maps_url(lat: float, lon: float) -> str:
    return f"https://www.google.com/maps?q={lat:.6f},{lon:.6f}"


def _transit_directions_url(
    origin_lat: float,
    origin_lon: float,
    dest_lat: float,
    dest_lon: float,
) -> str:
    """Google Maps transit directions from origin to trailhead."""
    return (
        f"https://www.google.com/maps/dir/?api=1"
        f"&origin={origin_lat:.6f},{origin_lon:.6f}"
        f"&destination={dest_lat:.6f},{dest_lon:.6f}"
        f"&travelmode=transit"
    )


def _budget_color(used: float, budget: float) -> str:
    ratio = used / budget if budget > 0 else 1.0
    return "green" if ratio <= 0.8 else "yellow" if ratio <= 0.95 else "red"


# ── Output functions ──────────────────────────────────────────────────

def print_route(route: PlannedRoute, trailhead: Trailhead | None = None, title: str = "Planned route") -> None:
    """Print a planned route: transit out, hike, transit back."""
    budget = route.constraints.max_travel_minutes
    color = _budget_color(route.total_minutes, budget)

    parts: list[str] = [
        f"[bold]Route {route.id}[/bold]  ({route.criteria.value})",
        f"Total: [{color}]{route.total_minutes:.0f} min[/{color}] of {budget:.0f} min budget"
        f"  ({route.transit_minutes:.0f} transit / {route.hiking_minutes:.0f} hiking)",
        "",
    ]

    outbound, inbound = route.transit_segments[0], route.transit_segments[-1]
    parts.append("[bold cyan]>>> Outbound[/bold cyan]")
    parts.append(f"  {outbound.from_stop_id} -> {outbound.to_stop_id}  ({outbound.minutes:.0f} min)")
    parts.append("")

    parts.append("[bold green]--- Hiking[/bold green]")
    for seg in route.hiking_segments:
        parts.append(f"  {seg.trail_name}  ({seg.minutes:.0f} min)")
    if trailhead is not None:
        parts.append(f"  from {trailhead.name}")
    parts.append("")

    parts.append("[bold magenta]<<< Return[/bold magenta]")
    parts.append(f"  {inbound.from_stop_id} -> {inbound.to_stop_id}  ({inbound.minutes:.0f} min)")

    if trailhead is not None:
        origin = route.origin_position
        parts.append("")
        parts.append(
            "[dim]Directions:[/dim] "
            + _transit_directions_url(origin.lat, origin.lon, trailhead.position.lat, trailhead.position.lon)
        )

    console.print(Panel("\n".join(parts), title=title, border_style="blue"))


def print_no_alternative(route_id: str, criteria: str) -> None:
    console.print(f"[yellow]No different {criteria} alternative exists for route {route_id}.[/yellow]")


def print_hike_summary(summary: HikeSummary) -> None:
    status_color = "green" if summary.status is HikeStatus.ACTIVE else "dim"
    last = summary.last_update_at.strftime("%H:%M:%S") if summary.last_update_at else "—"
    lines = [
        f"User:       {summary.user_id}",
        f"Status:     [{status_color}]{summary.status.value}[/{status_color}]",
        f"Position:   {summary.position.lat:.5f}, {summary.position.lon:.5f}",
        f"Started:    {summary.started_at.strftime('%Y-%m-%d %H:%M:%S')}",
        f"Last fix:   {last}",
        f"Exits:      {summary.strategies_count} options",
        f"Map:        {_google_maps_url(summary.position.lat, summary.position.lon)}",
    ]
    console.print(Panel("\n".join(lines), title=f"Hike {summary.id}", border_style="blue"))


def print_exit_strategies(
    strategies: list[ExitStrategy],
    exit_points: dict[str, ExitPoint],
) -> None:
    """Print exit strategies as a ranked table."""
    if not strategies:
        console.print("[yellow]No exit points within range of the current position.[/yellow]")
        return

    table = Table(title="Exit strategies", show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("Exit")
    table.add_column("On foot", justify="right")
    table.add_column("Transit", justify="right")
    table.add_column("ETA", justify="right", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Access")

    for idx, s in enumerate(strategies, 1):
        point = exit_points.get(s.exit_point_id)
        table.add_row(
            str(idx),
            point.name if point else s.exit_point_id,
            f"{s.on_foot_minutes} min",
            f"{s.transit_minutes} min",
            f"{s.eta_minutes} min",
            f"{s.score:.0f}" if s.score is not None else "—",
            ", ".join(point.accessibility_tags) if point else "",
        )
    console.print(table)


def print_completed(completed: CompletedHike) -> None:
    console.print(
        f"[green]Hike finished[/green] at {completed.exit_point_id} after "
        f"{completed.duration_minutes} min  (archive {completed.id})"
    )
