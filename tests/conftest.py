"""Shared fixtures: stores and small reference datasets with known distances."""

from __future__ import annotations

import datetime

import pytest

from hike_planner.config import EXIT_POINTS, TRAILHEADS, TRAILS, TRANSIT_STOPS
from hike_planner.models import ExitPoint, Position, Trail, Trailhead, TransitStop
from hike_planner.store.memory import MemoryStore
from hike_planner.store.sqlite import SqliteStore

# One degree of latitude with a 6371 km Earth radius.
METERS_PER_LAT_DEGREE = 6_371_000 * 3.141592653589793 / 180

ORIGIN = Position(37.775, -122.419)
# 52.5 km due north of ORIGIN: 105 min one way at 30 km/h, 210 min round trip
TRAIL_STOP = Position(37.775 + 52_500 / METERS_PER_LAT_DEGREE, -122.419)
TRAILHEAD = Position(TRAIL_STOP.lat + 0.001, -122.419)


def north_of(position: Position, meters: float) -> Position:
    return Position(position.lat + meters / METERS_PER_LAT_DEGREE, position.lon)


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    return SqliteStore(tmp_path / "store.db")


def seed_route_data(store, trails: list[Trail] | None = None) -> None:
    """Two stops, one trailhead and (by default) 45/75/120 minute trails."""
    if trails is None:
        trails = [
            Trail("trail-45", "Alder Loop", 45, "Shady creekside loop."),
            Trail("trail-75", "Bayview Ridge", 75, "Ridge walk with bay views."),
            Trail("trail-120", "Condor Traverse", 120, "Long traverse over the summit."),
        ]
    store.insert_many(TRANSIT_STOPS, [
        TransitStop("stop-origin", "Civic Center", ORIGIN, ["1", "2"]).to_doc(),
        TransitStop("stop-trail", "Ridge Road", TRAIL_STOP, ["2"]).to_doc(),
    ])
    store.insert(
        TRAILHEADS,
        Trailhead("th-ridge", "Ridge Trailhead", TRAILHEAD, [t.id for t in trails]).to_doc(),
    )
    store.insert_many(TRAILS, [t.to_doc() for t in trails])


def seed_exit_points(store, points: list[ExitPoint]) -> None:
    store.insert_many(EXIT_POINTS, [p.to_doc() for p in points])


class FixedClock:
    """Deterministic clock; advance it by hand."""

    def __init__(self, start: datetime.datetime | None = None):
        self.now = start or datetime.datetime(2026, 5, 1, 9, 0, tzinfo=datetime.timezone.utc)

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now += datetime.timedelta(minutes=minutes)
