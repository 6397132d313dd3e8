"""Nearest-neighbour lookups over the document store.

Wraps the store's ``find_nearest`` query and turns raw documents into
typed reference records (transit stops, exit points).
"""

from __future__ import annotations

import logging

from hike_planner.config import EXIT_POINTS, TRANSIT_STOPS
from hike_planner.errors import NotFoundError
from hike_planner.models import ExitPoint, Position, TransitStop
from hike_planner.store.base import DocumentStore

logger = logging.getLogger(__name__)


class NearestLookup:
    """Find the documents nearest a position, optionally within a radius."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def nearest(
        self,
        collection: str,
        position: Position,
        radius_m: float | None = None,
        limit: int | None = None,
    ) -> list[tuple[float, dict]]:
        """Return ``(distance_m, doc)`` pairs sorted nearest first.

        Parameters
        ----------
        collection : str
            Store collection whose documents carry a ``position``.
        position : Position
            Query point.
        radius_m : float, optional
            Drop documents farther than this; ``None`` means unbounded.
        limit : int, optional
            Cap on the number of results.
        """
        if limit is not None and limit <= 0:
            return []
        results = self.store.find_nearest(
            collection, position.lat, position.lon, radius_m=radius_m, limit=limit
        )
        logger.debug(
            "Found %d %s near (%.4f, %.4f) within %s m",
            len(results), collection, position.lat, position.lon,
            "∞" if radius_m is None else f"{radius_m:.0f}",
        )
        return results

    def nearest_stop(self, position: Position) -> TransitStop:
        """The transit stop closest to *position*, however far away."""
        results = self.nearest(TRANSIT_STOPS, position, limit=1)
        if not results:
            raise NotFoundError("transit stop", f"near ({position.lat}, {position.lon})")
        return TransitStop.from_doc(results[0][1])

    def exit_points_near(
        self, position: Position, radius_m: float, limit: int
    ) -> list[tuple[float, ExitPoint]]:
        return [
            (dist, ExitPoint.from_doc(doc))
            for dist, doc in self.nearest(EXIT_POINTS, position, radius_m=radius_m, limit=limit)
        ]
