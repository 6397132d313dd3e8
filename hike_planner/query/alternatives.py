"""Alternative routes: re-run the planner under other criteria or constraints."""

from __future__ import annotations

import logging
from typing import Optional

from hike_planner.errors import NotFoundError, ValidationError
from hike_planner.models import Criteria, RouteConstraints
from hike_planner.query.planner import RouteFeasibilityPlanner, parse_criteria

logger = logging.getLogger(__name__)


class AlternativeRouteGenerator:
    def __init__(self, planner: RouteFeasibilityPlanner) -> None:
        self.planner = planner

    def alternative(self, route_id: str, criteria: Criteria | str) -> list[str]:
        """Plan the stored route again under *criteria*.

        Returns a one-element list with the new route id, or an empty list
        when the planner finds nothing or the result takes exactly as long
        as the original.
        """
        criteria = parse_criteria(criteria)
        original = self.planner.get_route(route_id)

        try:
            candidate = self.planner.build_route(
                original.origin_position,
                original.destination_trailhead_id,
                original.constraints,
                criteria,
            )
        except (ValidationError, NotFoundError) as e:
            logger.info("No %s alternative for route %s: %s", criteria.value, route_id, e)
            return []

        if (
            candidate.transit_minutes == original.transit_minutes
            and candidate.hiking_minutes == original.hiking_minutes
        ):
            logger.info("No different %s alternative for route %s", criteria.value, route_id)
            return []

        return [self.planner.save(candidate)]

    def update_constraints(self, route_id: str, constraints: RouteConstraints) -> Optional[str]:
        """Plan the stored route again under new constraints, same criteria.

        Returns the new route id, or ``None`` when the new constraints leave
        no feasible route.
        """
        original = self.planner.get_route(route_id)
        try:
            return self.planner.plan(
                original.origin_position,
                original.destination_trailhead_id,
                constraints,
                original.criteria,
            )
        except ValidationError as e:
            logger.info("Route %s infeasible under new constraints: %s", route_id, e)
            return None
