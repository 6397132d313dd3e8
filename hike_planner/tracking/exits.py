"""Exit strategies: ranked ways off the trail from the hiker's latest position.

Each position update produces a complete new batch of strategies tagged
with the next generation number. The hike record points at the generation
readers should see, so a batch becomes visible in one step and the
previous batch is removed afterwards.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, Optional

from hike_planner.advisors import ExitScorer
from hike_planner.config import (
    ACTIVE_HIKES,
    EXIT_POINTS,
    EXIT_SEARCH_RADIUS_M,
    EXIT_STRATEGIES,
    MAX_EXIT_CANDIDATES,
    TRANSIT_WAIT_PENALTY_MIN,
    WALK_SPEED_KMH,
)
from hike_planner.errors import NotFoundError
from hike_planner.geo import round_minutes, travel_minutes
from hike_planner.index.nearest import NearestLookup
from hike_planner.models import (
    ActiveHike,
    ExitPoint,
    ExitStrategy,
    HikeStatus,
    Position,
    new_id,
    utc_now,
)
from hike_planner.store.base import DocumentStore
from hike_planner.tracking.locks import HikeLocks

logger = logging.getLogger(__name__)


def describe_exit(position: Position, point: ExitPoint, on_foot_minutes: int) -> str:
    """Plain-text scenario handed to the exit scorer."""
    tags = ", ".join(point.accessibility_tags) or "none"
    return (
        f"Hiker is at ({position.lat:.4f}, {position.lon:.4f}). "
        f"Proposed exit is '{point.name}' which is a {on_foot_minutes} minute walk. "
        f"Accessibility: {tags}. Linked transit stops: {len(point.transit_stop_ids)}."
    )


def ranking_key(strategy: ExitStrategy) -> tuple:
    """Score descending (missing score last), then ETA ascending."""
    missing = strategy.score is None
    return (missing, -(strategy.score or 0.0), strategy.eta_minutes, strategy.exit_point_id)


class ExitStrategyEngine:
    def __init__(
        self,
        store: DocumentStore,
        lookup: NearestLookup | None = None,
        scorer: ExitScorer | None = None,
        clock: Callable = utc_now,
        id_factory: Callable[[], str] = new_id,
        locks: HikeLocks | None = None,
        radius_m: float = EXIT_SEARCH_RADIUS_M,
        max_candidates: int = MAX_EXIT_CANDIDATES,
    ) -> None:
        self.store = store
        self.lookup = lookup or NearestLookup(store)
        self.scorer = scorer
        self.clock = clock
        self.id_factory = id_factory
        self.locks = locks or HikeLocks()
        self.radius_m = radius_m
        self.max_candidates = max_candidates

    def _score(self, description: str, point: ExitPoint) -> Optional[float]:
        if self.scorer is None:
            return None
        try:
            score = float(self.scorer.score(description))
        except Exception as e:
            logger.warning("Exit scorer failed for exit point %s: %s", point.id, e)
            return None
        return score if math.isfinite(score) else None

    def build_strategies(
        self, hike: ActiveHike, position: Position, generation: int
    ) -> list[ExitStrategy]:
        """Strategies for every exit point within range of *position*.

        An empty list is a normal outcome: the hiker may be outside coverage.
        """
        computed_at = self.clock()
        candidates = self.lookup.exit_points_near(position, self.radius_m, self.max_candidates)

        strategies: list[ExitStrategy] = []
        for dist, point in candidates:
            on_foot = round_minutes(travel_minutes(dist, WALK_SPEED_KMH))
            transit = TRANSIT_WAIT_PENALTY_MIN if point.transit_stop_ids else 0
            strategies.append(
                ExitStrategy(
                    id=self.id_factory(),
                    active_hike_id=hike.id,
                    exit_point_id=point.id,
                    on_foot_minutes=on_foot,
                    transit_minutes=transit,
                    eta_minutes=on_foot + transit,
                    computed_at=computed_at,
                    generation=generation,
                    score=self._score(describe_exit(position, point, on_foot), point),
                )
            )
        return strategies

    def recompute(self, hike: ActiveHike, position: Position) -> int:
        """Stage a complete strategy batch for *position*.

        Returns the batch's generation. Nothing becomes visible until the
        hike record is pointed at that generation; see
        :meth:`discard_superseded` for removing the old batch afterwards.
        """
        generation = hike.strategy_generation + 1
        strategies = self.build_strategies(hike, position, generation)

        # leftovers from an earlier attempt that never got committed
        self.discard_generation(hike.id, generation)
        if strategies:
            self.store.insert_many(EXIT_STRATEGIES, [s.to_doc() for s in strategies])
        logger.info(
            "Staged %d exit strategies for hike %s (generation %d)",
            len(strategies), hike.id, generation,
        )
        return generation

    def discard_generation(self, hike_id: str, generation: int) -> int:
        return self.store.delete_many(EXIT_STRATEGIES, active_hike_id=hike_id, generation=generation)

    def discard_superseded(self, hike_id: str, current_generation: int) -> int:
        """Delete every strategy of *hike_id* outside *current_generation*."""
        stale = {
            doc["generation"]
            for doc in self.store.find(EXIT_STRATEGIES, active_hike_id=hike_id)
            if doc["generation"] != current_generation
        }
        return sum(self.discard_generation(hike_id, g) for g in stale)

    def discard_all(self, hike_id: str) -> int:
        return self.store.delete_many(EXIT_STRATEGIES, active_hike_id=hike_id)

    # ── Queries ───────────────────────────────────────────────────────

    def current_strategies(self, hike: ActiveHike) -> list[ExitStrategy]:
        docs = self.store.find(
            EXIT_STRATEGIES, active_hike_id=hike.id, generation=hike.strategy_generation
        )
        return sorted((ExitStrategy.from_doc(d) for d in docs), key=ranking_key)

    def get_exit_strategies(self, hike_id: str) -> list[str]:
        """Strategy ids for the hike's latest position, best first."""
        with self.locks.hold(hike_id):
            doc = self.store.get(ACTIVE_HIKES, hike_id)
            if doc is None or doc["status"] != HikeStatus.ACTIVE.value:
                raise NotFoundError("active hike", hike_id)
            return [s.id for s in self.current_strategies(ActiveHike.from_doc(doc))]

    def get_exit_strategy(self, strategy_id: str) -> ExitStrategy:
        doc = self.store.get(EXIT_STRATEGIES, strategy_id)
        if doc is None:
            raise NotFoundError("exit strategy", strategy_id)
        return ExitStrategy.from_doc(doc)

    def get_exit_point(self, exit_point_id: str) -> ExitPoint:
        doc = self.store.get(EXIT_POINTS, exit_point_id)
        if doc is None:
            raise NotFoundError("exit point", exit_point_id)
        return ExitPoint.from_doc(doc)
