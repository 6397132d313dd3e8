"""Core data structures for the Transit Hike Planner.

Every record round-trips through the document store as a plain dict:
``to_doc()`` produces it and ``from_doc()`` rebuilds the dataclass.
Timestamps are stored as ISO-8601 strings, positions as ``{"lat", "lon"}``.
"""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


def utc_now() -> datetime.datetime:
    """Default clock: timezone-aware UTC now."""
    return datetime.datetime.now(datetime.timezone.utc)


def new_id() -> str:
    """Default identifier generator."""
    return uuid.uuid4().hex


def as_utc(ts: datetime.datetime) -> datetime.datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=datetime.timezone.utc)
    return ts


def _iso(ts: Optional[datetime.datetime]) -> Optional[str]:
    return as_utc(ts).isoformat() if ts is not None else None


def _parse_iso(value: Optional[str]) -> Optional[datetime.datetime]:
    return as_utc(datetime.datetime.fromisoformat(value)) if value else None


@dataclass(frozen=True)
class Position:
    """A WGS-84 point."""
    lat: float
    lon: float

    def to_doc(self) -> dict:
        return {"lat": self.lat, "lon": self.lon}

    @classmethod
    def from_doc(cls, doc: dict) -> Position:
        return cls(lat=float(doc["lat"]), lon=float(doc["lon"]))


class Criteria(str, Enum):
    """Caller-selected policy for route selection."""
    DEFAULT = "default"
    FASTER = "faster"
    SHORTER = "shorter"
    SCENIC = "scenic"


class HikeStatus(str, Enum):
    ACTIVE = "active"
    ENDED = "ended"


# ── Reference data ────────────────────────────────────────────────────


@dataclass(frozen=True)
class TransitStop:
    """A fixed point served by public transportation."""
    id: str
    name: str
    position: Position
    served_routes: list[str] = field(default_factory=list)

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position.to_doc(),
            "served_routes": list(self.served_routes),
        }

    @classmethod
    def from_doc(cls, doc: dict) -> TransitStop:
        return cls(
            id=doc["id"],
            name=doc["name"],
            position=Position.from_doc(doc["position"]),
            served_routes=list(doc.get("served_routes", [])),
        )


@dataclass(frozen=True)
class Trailhead:
    """An entry point to one or more trails."""
    id: str
    name: str
    position: Position
    connecting_trail_ids: list[str] = field(default_factory=list)

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position.to_doc(),
            "connecting_trail_ids": list(self.connecting_trail_ids),
        }

    @classmethod
    def from_doc(cls, doc: dict) -> Trailhead:
        return cls(
            id=doc["id"],
            name=doc["name"],
            position=Position.from_doc(doc["position"]),
            connecting_trail_ids=list(doc.get("connecting_trail_ids", [])),
        )


@dataclass(frozen=True)
class Trail:
    id: str
    name: str
    estimated_minutes: float
    description: Optional[str] = None

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "estimated_minutes": self.estimated_minutes,
            "description": self.description,
        }

    @classmethod
    def from_doc(cls, doc: dict) -> Trail:
        return cls(
            id=doc["id"],
            name=doc["name"],
            estimated_minutes=float(doc["estimated_minutes"]),
            description=doc.get("description"),
        )


@dataclass(frozen=True)
class ExitPoint:
    """A place where a hiker can leave the trail."""
    id: str
    name: str
    position: Position
    accessibility_tags: list[str] = field(default_factory=list)
    transit_stop_ids: list[str] = field(default_factory=list)

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "position": self.position.to_doc(),
            "accessibility_tags": list(self.accessibility_tags),
            "transit_stop_ids": list(self.transit_stop_ids),
        }

    @classmethod
    def from_doc(cls, doc: dict) -> ExitPoint:
        return cls(
            id=doc["id"],
            name=doc["name"],
            position=Position.from_doc(doc["position"]),
            accessibility_tags=list(doc.get("accessibility_tags", [])),
            transit_stop_ids=list(doc.get("transit_stop_ids", [])),
        )


# ── Planned routes ────────────────────────────────────────────────────


@dataclass(frozen=True)
class RouteConstraints:
    max_travel_minutes: float
    preferred_departure: Optional[str] = None  # ISO-8601, informational
    accessibility: list[str] = field(default_factory=list)

    def to_doc(self) -> dict:
        return {
            "max_travel_minutes": self.max_travel_minutes,
            "preferred_departure": self.preferred_departure,
            "accessibility": list(self.accessibility),
        }

    @classmethod
    def from_doc(cls, doc: dict) -> RouteConstraints:
        return cls(
            max_travel_minutes=float(doc["max_travel_minutes"]),
            preferred_departure=doc.get("preferred_departure"),
            accessibility=list(doc.get("accessibility", [])),
        )


@dataclass(frozen=True)
class TransitSegment:
    """One transit ride between two stops."""
    from_stop_id: str
    to_stop_id: str
    minutes: float


@dataclass(frozen=True)
class HikingSegment:
    trail_id: str
    trail_name: str
    minutes: float


@dataclass(frozen=True)
class PlannedRoute:
    """Transit out + hike + transit back. Never mutated once stored."""
    id: str
    origin_position: Position
    destination_trailhead_id: str
    transit_segments: list[TransitSegment]
    hiking_segments: list[HikingSegment]
    total_minutes: float
    transit_minutes: float
    hiking_minutes: float
    criteria: Criteria
    constraints: RouteConstraints

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "origin_position": self.origin_position.to_doc(),
            "destination_trailhead_id": self.destination_trailhead_id,
            "transit_segments": [
                {"from_stop_id": s.from_stop_id, "to_stop_id": s.to_stop_id, "minutes": s.minutes}
                for s in self.transit_segments
            ],
            "hiking_segments": [
                {"trail_id": s.trail_id, "trail_name": s.trail_name, "minutes": s.minutes}
                for s in self.hiking_segments
            ],
            "total_minutes": self.total_minutes,
            "transit_minutes": self.transit_minutes,
            "hiking_minutes": self.hiking_minutes,
            "criteria": self.criteria.value,
            "constraints": self.constraints.to_doc(),
        }

    @classmethod
    def from_doc(cls, doc: dict) -> PlannedRoute:
        return cls(
            id=doc["id"],
            origin_position=Position.from_doc(doc["origin_position"]),
            destination_trailhead_id=doc["destination_trailhead_id"],
            transit_segments=[TransitSegment(**s) for s in doc["transit_segments"]],
            hiking_segments=[HikingSegment(**s) for s in doc["hiking_segments"]],
            total_minutes=doc["total_minutes"],
            transit_minutes=doc["transit_minutes"],
            hiking_minutes=doc["hiking_minutes"],
            criteria=Criteria(doc["criteria"]),
            constraints=RouteConstraints.from_doc(doc["constraints"]),
        )


@dataclass(frozen=True)
class RouteSummary:
    id: str
    total_minutes: float
    transit_minutes: float
    hiking_minutes: float
    segments_count: int


# ── Hike tracking ─────────────────────────────────────────────────────


@dataclass
class ActiveHike:
    """One hiker's in-progress journey."""
    id: str
    user_id: str
    planned_route_id: str
    current_position: Position
    started_at: datetime.datetime
    last_update_at: Optional[datetime.datetime] = None
    status: HikeStatus = HikeStatus.ACTIVE
    strategy_generation: int = 0  # points at the visible ExitStrategy batch

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "planned_route_id": self.planned_route_id,
            "position": self.current_position.to_doc(),
            "started_at": _iso(self.started_at),
            "last_update_at": _iso(self.last_update_at),
            "status": self.status.value,
            "strategy_generation": self.strategy_generation,
        }

    @classmethod
    def from_doc(cls, doc: dict) -> ActiveHike:
        return cls(
            id=doc["id"],
            user_id=doc["user_id"],
            planned_route_id=doc["planned_route_id"],
            current_position=Position.from_doc(doc["position"]),
            started_at=_parse_iso(doc["started_at"]),
            last_update_at=_parse_iso(doc.get("last_update_at")),
            status=HikeStatus(doc["status"]),
            strategy_generation=int(doc.get("strategy_generation", 0)),
        )


@dataclass(frozen=True)
class ExitStrategy:
    id: str
    active_hike_id: str
    exit_point_id: str
    on_foot_minutes: int
    transit_minutes: int
    eta_minutes: int
    computed_at: datetime.datetime
    generation: int
    score: Optional[float] = None

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "active_hike_id": self.active_hike_id,
            "exit_point_id": self.exit_point_id,
            "on_foot_minutes": self.on_foot_minutes,
            "transit_minutes": self.transit_minutes,
            "eta_minutes": self.eta_minutes,
            "computed_at": _iso(self.computed_at),
            "generation": self.generation,
            "score": self.score,
        }

    @classmethod
    def from_doc(cls, doc: dict) -> ExitStrategy:
        return cls(
            id=doc["id"],
            active_hike_id=doc["active_hike_id"],
            exit_point_id=doc["exit_point_id"],
            on_foot_minutes=int(doc["on_foot_minutes"]),
            transit_minutes=int(doc["transit_minutes"]),
            eta_minutes=int(doc["eta_minutes"]),
            computed_at=_parse_iso(doc["computed_at"]),
            generation=int(doc["generation"]),
            score=doc.get("score"),
        )


@dataclass(frozen=True)
class CompletedHike:
    """Immutable archive of a finished hike."""
    id: str
    active_hike_id: str
    user_id: str
    planned_route_id: str
    ended_at: datetime.datetime
    exit_point_id: str
    duration_minutes: int

    def to_doc(self) -> dict:
        return {
            "id": self.id,
            "active_hike_id": self.active_hike_id,
            "user_id": self.user_id,
            "planned_route_id": self.planned_route_id,
            "ended_at": _iso(self.ended_at),
            "exit_point_id": self.exit_point_id,
            "duration_minutes": self.duration_minutes,
        }

    @classmethod
    def from_doc(cls, doc: dict) -> CompletedHike:
        return cls(
            id=doc["id"],
            active_hike_id=doc["active_hike_id"],
            user_id=doc["user_id"],
            planned_route_id=doc["planned_route_id"],
            ended_at=_parse_iso(doc["ended_at"]),
            exit_point_id=doc["exit_point_id"],
            duration_minutes=int(doc["duration_minutes"]),
        )


@dataclass(frozen=True)
class HikeSummary:
    id: str
    user_id: str
    position: Position
    started_at: datetime.datetime
    last_update_at: Optional[datetime.datetime]
    status: HikeStatus
    strategies_count: int
