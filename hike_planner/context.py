"""Wire the planner and the hike tracker onto one document store."""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from hike_planner.advisors import ExitScorer, ScenicClassifier
from hike_planner.index.nearest import NearestLookup
from hike_planner.models import new_id, utc_now
from hike_planner.query.alternatives import AlternativeRouteGenerator
from hike_planner.query.planner import RouteFeasibilityPlanner
from hike_planner.store.base import DocumentStore
from hike_planner.tracking.exits import ExitStrategyEngine
from hike_planner.tracking.lifecycle import ActiveHikeLifecycle

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Every service, sharing one store, lookup, clock and id factory."""
    store: DocumentStore
    lookup: NearestLookup
    planner: RouteFeasibilityPlanner
    alternatives: AlternativeRouteGenerator
    exits: ExitStrategyEngine
    hikes: ActiveHikeLifecycle


def build_context(
    store: DocumentStore,
    classifier: Optional[ScenicClassifier] = None,
    scorer: Optional[ExitScorer] = None,
    clock: Callable[[], datetime.datetime] = utc_now,
    id_factory: Callable[[], str] = new_id,
) -> AppContext:
    lookup = NearestLookup(store)
    planner = RouteFeasibilityPlanner(store, lookup, classifier=classifier, id_factory=id_factory)
    exits = ExitStrategyEngine(store, lookup, scorer=scorer, clock=clock, id_factory=id_factory)
    hikes = ActiveHikeLifecycle(store, exits, clock=clock, id_factory=id_factory)
    logger.info(
        "Services ready (classifier=%s, scorer=%s)",
        type(classifier).__name__ if classifier else None,
        type(scorer).__name__ if scorer else None,
    )
    return AppContext(
        store=store,
        lookup=lookup,
        planner=planner,
        alternatives=AlternativeRouteGenerator(planner),
        exits=exits,
        hikes=hikes,
    )
