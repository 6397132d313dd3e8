"""Reference data loading: transit stops, trailheads, trails and exit points.

Two sources:
  - ``load_reference_json`` → one JSON document with all four record kinds
  - ``load_gtfs_stops``     → transit stops from a GTFS feed directory
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from hike_planner.config import EXIT_POINTS, TRAILHEADS, TRAILS, TRANSIT_STOPS
from hike_planner.models import ExitPoint, Position, Trail, Trailhead, TransitStop
from hike_planner.store.base import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class ReferenceData:
    transit_stops: list[TransitStop] = field(default_factory=list)
    trailheads: list[Trailhead] = field(default_factory=list)
    trails: list[Trail] = field(default_factory=list)
    exit_points: list[ExitPoint] = field(default_factory=list)


def load_reference_json(path: Path) -> ReferenceData:
    """Load reference records from a JSON file.

    The file holds ``transit_stops``, ``trailheads``, ``trails`` and
    ``exit_points`` arrays; located records carry flat ``lat``/``lon`` keys.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    ref = ReferenceData(
        transit_stops=[
            TransitStop(
                id=s["id"],
                name=s["name"],
                position=Position(s["lat"], s["lon"]),
                served_routes=s.get("served_routes", []),
            )
            for s in data.get("transit_stops", [])
        ],
        trailheads=[
            Trailhead(
                id=t["id"],
                name=t["name"],
                position=Position(t["lat"], t["lon"]),
                connecting_trail_ids=t.get("connecting_trail_ids", []),
            )
            for t in data.get("trailheads", [])
        ],
        trails=[
            Trail(
                id=t["id"],
                name=t["name"],
                estimated_minutes=t["estimated_minutes"],
                description=t.get("description"),
            )
            for t in data.get("trails", [])
        ],
        exit_points=[
            ExitPoint(
                id=e["id"],
                name=e["name"],
                position=Position(e["lat"], e["lon"]),
                accessibility_tags=e.get("accessibility_tags", []),
                transit_stop_ids=e.get("transit_stop_ids", []),
            )
            for e in data.get("exit_points", [])
        ],
    )
    logger.info(
        "Loaded %d stops, %d trailheads, %d trails, %d exit points from %s",
        len(ref.transit_stops), len(ref.trailheads), len(ref.trails), len(ref.exit_points), path,
    )
    return ref


def seed_store(store: DocumentStore, ref: ReferenceData) -> dict[str, int]:
    """Insert reference records the store does not hold yet.

    Returns the number of new records per collection. Existing ids are
    left untouched, so seeding twice is harmless.
    """
    counts: dict[str, int] = {}
    for collection, records in (
        (TRANSIT_STOPS, ref.transit_stops),
        (TRAILHEADS, ref.trailheads),
        (TRAILS, ref.trails),
        (EXIT_POINTS, ref.exit_points),
    ):
        fresh = [r.to_doc() for r in records if store.get(collection, r.id) is None]
        if fresh:
            store.insert_many(collection, fresh)
        counts[collection] = len(fresh)
    logger.info("Seeded store: %s", counts)
    return counts


# ---------------------------------------------------------------------------
# GTFS
# ---------------------------------------------------------------------------


def _served_routes(gtfs_dir: Path) -> dict[str, list[str]]:
    """Map stop_id → sorted route names, via stop_times → trips → routes."""
    paths = [gtfs_dir / name for name in ("stop_times.txt", "trips.txt", "routes.txt")]
    if not all(p.exists() for p in paths):
        logger.info("GTFS trip files missing in %s; stops will have no served routes", gtfs_dir)
        return {}

    stop_times = pd.read_csv(paths[0], dtype=str, usecols=["trip_id", "stop_id"]).drop_duplicates()
    trips = pd.read_csv(paths[1], dtype=str, usecols=["trip_id", "route_id"])
    routes = pd.read_csv(paths[2], dtype=str)
    if "route_short_name" not in routes.columns:
        routes["route_short_name"] = pd.NA

    merged = stop_times.merge(trips, on="trip_id").merge(
        routes[["route_id", "route_short_name"]], on="route_id", how="left"
    )
    merged["label"] = merged["route_short_name"].fillna(merged["route_id"])
    grouped = merged.groupby("stop_id")["label"].apply(lambda s: sorted(set(s)))
    return grouped.to_dict()


def load_gtfs_stops(gtfs_dir: Path) -> list[TransitStop]:
    """Read transit stops from an unpacked GTFS feed.

    Parameters
    ----------
    gtfs_dir : Path
        Directory holding ``stops.txt`` and, optionally, ``stop_times.txt``,
        ``trips.txt`` and ``routes.txt`` for served-route lookup.
    """
    stops = pd.read_csv(
        gtfs_dir / "stops.txt",
        dtype=str,
        usecols=["stop_id", "stop_name", "stop_lat", "stop_lon"],
    )
    served = _served_routes(gtfs_dir)

    result: list[TransitStop] = []
    for row in stops.itertuples(index=False):
        try:
            lat = float(row.stop_lat)
            lon = float(row.stop_lon)
        except (ValueError, TypeError):
            continue
        if not (-90 <= lat <= 90 and -180 <= lon <= 180):
            continue
        stop_id = str(row.stop_id)
        result.append(
            TransitStop(
                id=stop_id,
                name=str(row.stop_name),
                position=Position(lat, lon),
                served_routes=served.get(stop_id, []),
            )
        )

    logger.info("Loaded %d GTFS stops from %s", len(result), gtfs_dir)
    return result
