"""Route feasibility planning — split a time budget between transit and hiking.

Given an origin, a destination trailhead and a total time allowance, the
planner estimates the round-trip transit time between the stops nearest
each end, spends what is left on the best-fitting trail under the chosen
criteria, and stores the result as a new PlannedRoute.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from hike_planner.advisors import ScenicClassifier
from hike_planner.config import (
    EXPRESS_TRANSIT_SPEED_KMH,
    PLANNED_ROUTES,
    TRAILHEADS,
    TRAILS,
    TRANSIT_SPEED_KMH,
)
from hike_planner.errors import NotFoundError, ValidationError
from hike_planner.geo import distance_m, round_minutes, travel_minutes, validate_position
from hike_planner.index.nearest import NearestLookup
from hike_planner.models import (
    Criteria,
    HikingSegment,
    PlannedRoute,
    Position,
    RouteConstraints,
    RouteSummary,
    Trail,
    Trailhead,
    TransitSegment,
    new_id,
)
from hike_planner.store.base import DocumentStore

logger = logging.getLogger(__name__)

Selector = Callable[[list[Trail], Optional[ScenicClassifier]], Trail]


def parse_criteria(value: Criteria | str) -> Criteria:
    """Coerce a criteria name to :class:`Criteria`."""
    try:
        return Criteria(value)
    except ValueError:
        known = ", ".join(c.value for c in Criteria)
        raise ValidationError(f"Invalid criteria '{value}'. Known criteria: {known}", value) from None


def transit_speed_kmh(criteria: Criteria) -> float:
    """Express service for "faster"; every other criteria rides the default."""
    if criteria is Criteria.FASTER:
        return EXPRESS_TRANSIT_SPEED_KMH
    return TRANSIT_SPEED_KMH


# ── Trail selection, one function per criteria ────────────────────────


def _select_longest(candidates: list[Trail], classifier: Optional[ScenicClassifier] = None) -> Trail:
    return max(candidates, key=lambda t: t.estimated_minutes)


def _select_shortest(candidates: list[Trail], classifier: Optional[ScenicClassifier] = None) -> Trail:
    return min(candidates, key=lambda t: t.estimated_minutes)


def _is_scenic(classifier: ScenicClassifier, trail: Trail) -> bool:
    try:
        return bool(classifier.classify(trail.name, trail.description))
    except Exception as e:
        logger.warning("Scenic classifier failed for trail %s: %s", trail.id, e)
        return False


def _select_scenic(candidates: list[Trail], classifier: Optional[ScenicClassifier] = None) -> Trail:
    """Longest scenic trail; the longest trail overall when none qualifies."""
    if classifier is not None:
        scenic = [t for t in candidates if _is_scenic(classifier, t)]
        if scenic:
            return _select_longest(scenic)
        logger.info("No candidate classified scenic; falling back to longest trail")
    return _select_longest(candidates)


SELECTORS: dict[Criteria, Selector] = {
    Criteria.DEFAULT: _select_longest,
    Criteria.FASTER: _select_longest,  # "faster" only changes transit speed
    Criteria.SHORTER: _select_shortest,
    Criteria.SCENIC: _select_scenic,
}


def select_trail(
    candidates: list[Trail],
    criteria: Criteria,
    classifier: Optional[ScenicClassifier] = None,
) -> Trail:
    """Pick one trail from a non-empty candidate list.

    Candidates are ordered by name first so equal durations resolve the
    same way on every run.
    """
    ordered = sorted(candidates, key=lambda t: (t.name, t.id))
    return SELECTORS[criteria](ordered, classifier)


# ── Planner ───────────────────────────────────────────────────────────


class RouteFeasibilityPlanner:
    """Plan transit + hike routes and keep every result as a new record."""

    def __init__(
        self,
        store: DocumentStore,
        lookup: NearestLookup | None = None,
        classifier: ScenicClassifier | None = None,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.store = store
        self.lookup = lookup or NearestLookup(store)
        self.classifier = classifier
        self.id_factory = id_factory

    # ── Reference lookups ─────────────────────────────────────────────

    def get_trailhead(self, trailhead_id: str) -> Trailhead:
        doc = self.store.get(TRAILHEADS, trailhead_id)
        if doc is None:
            raise NotFoundError("trailhead", trailhead_id)
        return Trailhead.from_doc(doc)

    def get_trailhead_position(self, trailhead_id: str) -> Position:
        return self.get_trailhead(trailhead_id).position

    def candidate_trails(self, trailhead: Trailhead, budget_minutes: float) -> list[Trail]:
        """Trails connected to *trailhead* that fit in *budget_minutes*.

        Connecting ids that do not resolve are skipped.
        """
        trails: list[Trail] = []
        for trail_id in trailhead.connecting_trail_ids:
            doc = self.store.get(TRAILS, trail_id)
            if doc is None:
                logger.warning("Trailhead %s links unknown trail %s", trailhead.id, trail_id)
                continue
            trail = Trail.from_doc(doc)
            if trail.estimated_minutes <= budget_minutes:
                trails.append(trail)
        return trails

    # ── Planning ──────────────────────────────────────────────────────

    def build_route(
        self,
        origin: Position,
        destination_trailhead_id: str,
        constraints: RouteConstraints,
        criteria: Criteria | str = Criteria.DEFAULT,
    ) -> PlannedRoute:
        """Compute a PlannedRoute without storing it.

        Raises
        ------
        ValidationError
            Bad coordinates, non-positive budget, not enough time left for
            hiking, or no connected trail fits the hiking budget.
        NotFoundError
            Unknown trailhead, or the store holds no transit stop at all.
        """
        criteria = parse_criteria(criteria)
        validate_position(origin)
        if not (constraints.max_travel_minutes > 0):
            raise ValidationError(
                f"max_travel_minutes must be positive, got {constraints.max_travel_minutes}",
                constraints.max_travel_minutes,
            )
        if not destination_trailhead_id:
            raise ValidationError("destination_trailhead_id is required", destination_trailhead_id)

        trailhead = self.get_trailhead(destination_trailhead_id)
        origin_stop = self.lookup.nearest_stop(origin)
        dest_stop = self.lookup.nearest_stop(trailhead.position)

        # ── Transit: round trip between the two stops ─────────────────
        one_way = travel_minutes(
            distance_m(origin_stop.position, dest_stop.position),
            transit_speed_kmh(criteria),
        )
        transit_total = round_minutes(one_way * 2)

        # ── Hiking: whatever the budget leaves ────────────────────────
        hiking_budget = constraints.max_travel_minutes - transit_total
        if hiking_budget <= 0:
            raise ValidationError(
                f"Insufficient time for hiking: {transit_total} min round-trip transit "
                f"exceeds max_travel_minutes={constraints.max_travel_minutes}",
                constraints.max_travel_minutes,
            )

        candidates = self.candidate_trails(trailhead, hiking_budget)
        if not candidates:
            raise ValidationError(
                f"No suitable trail from trailhead '{trailhead.id}' fits "
                f"{hiking_budget:.0f} min of hiking",
                hiking_budget,
            )
        trail = select_trail(candidates, criteria, self.classifier)

        return PlannedRoute(
            id=self.id_factory(),
            origin_position=origin,
            destination_trailhead_id=trailhead.id,
            transit_segments=[
                TransitSegment(origin_stop.id, dest_stop.id, one_way),
                TransitSegment(dest_stop.id, origin_stop.id, one_way),
            ],
            hiking_segments=[HikingSegment(trail.id, trail.name, trail.estimated_minutes)],
            total_minutes=transit_total + trail.estimated_minutes,
            transit_minutes=transit_total,
            hiking_minutes=trail.estimated_minutes,
            criteria=criteria,
            constraints=constraints,
        )

    def save(self, route: PlannedRoute) -> str:
        """Store *route* as a new record and return its id."""
        self.store.insert(PLANNED_ROUTES, route.to_doc())
        logger.info(
            "Planned route %s: %s min transit + %s min hiking (%s) to %s",
            route.id, route.transit_minutes, route.hiking_minutes,
            route.criteria.value, route.destination_trailhead_id,
        )
        return route.id

    def plan(
        self,
        origin: Position,
        destination_trailhead_id: str,
        constraints: RouteConstraints,
        criteria: Criteria | str = Criteria.DEFAULT,
    ) -> str:
        """Plan a route, store it, and return the new route id."""
        route = self.build_route(origin, destination_trailhead_id, constraints, criteria)
        return self.save(route)

    # ── Queries ───────────────────────────────────────────────────────

    def get_route(self, route_id: str) -> PlannedRoute:
        doc = self.store.get(PLANNED_ROUTES, route_id)
        if doc is None:
            raise NotFoundError("planned route", route_id)
        return PlannedRoute.from_doc(doc)

    def get_route_summary(self, route_id: str) -> RouteSummary:
        route = self.get_route(route_id)
        return RouteSummary(
            id=route.id,
            total_minutes=route.total_minutes,
            transit_minutes=route.transit_minutes,
            hiking_minutes=route.hiking_minutes,
            segments_count=len(route.transit_segments) + len(route.hiking_segments),
        )
