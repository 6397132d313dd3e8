"""Active hike lifecycle: start → update location (repeatedly) → end.

A hike is ``active`` from :meth:`ActiveHikeLifecycle.start` until
:meth:`ActiveHikeLifecycle.end`; once ``ended`` it rejects every further
update. Each user owns at most one active hike, enforced by a uniqueness
constraint in the store so concurrent service instances agree.
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
from typing import Callable, Optional

from hike_planner.config import ACTIVE_HIKES, COMPLETED_HIKES
from hike_planner.errors import (
    ConflictError,
    DuplicateKeyError,
    NotFoundError,
    StateError,
    ValidationError,
)
from hike_planner.geo import round_minutes, validate_position
from hike_planner.models import (
    ActiveHike,
    CompletedHike,
    HikeStatus,
    HikeSummary,
    Position,
    as_utc,
    new_id,
    utc_now,
)
from hike_planner.store.base import DocumentStore
from hike_planner.tracking.exits import ExitStrategyEngine

logger = logging.getLogger(__name__)


class ActiveHikeLifecycle:
    def __init__(
        self,
        store: DocumentStore,
        engine: ExitStrategyEngine,
        clock: Callable[[], datetime.datetime] = utc_now,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self.store = store
        self.engine = engine
        self.clock = clock
        self.id_factory = id_factory
        self.locks = engine.locks
        store.ensure_unique(ACTIVE_HIKES, "user_id", {"status": HikeStatus.ACTIVE.value})
        store.ensure_unique(COMPLETED_HIKES, "active_hike_id", {})

    def _now(self, at: Optional[datetime.datetime]) -> datetime.datetime:
        return as_utc(at) if at is not None else as_utc(self.clock())

    def get_hike(self, hike_id: str) -> ActiveHike:
        doc = self.store.get(ACTIVE_HIKES, hike_id)
        if doc is None:
            raise NotFoundError("hike", hike_id)
        return ActiveHike.from_doc(doc)

    def _require_active(self, hike_id: str, action: str) -> ActiveHike:
        hike = self.get_hike(hike_id)
        if hike.status is not HikeStatus.ACTIVE:
            raise StateError(hike_id, hike.status.value, action)
        return hike

    # ── Transitions ───────────────────────────────────────────────────

    def start(
        self,
        planned_route_id: str,
        user_id: str,
        start_position: Position,
        start_time: Optional[datetime.datetime] = None,
    ) -> str:
        """Begin tracking a hike and return its id."""
        if not planned_route_id or not user_id:
            raise ValidationError(
                "planned_route_id and user_id are required",
                {"planned_route_id": planned_route_id, "user_id": user_id},
            )
        validate_position(start_position)

        if self.store.find(ACTIVE_HIKES, user_id=user_id, status=HikeStatus.ACTIVE.value):
            raise ConflictError(f"User '{user_id}' already has an active hike", user_id)

        hike = ActiveHike(
            id=self.id_factory(),
            user_id=user_id,
            planned_route_id=planned_route_id,
            current_position=start_position,
            started_at=self._now(start_time),
        )
        try:
            self.store.insert(ACTIVE_HIKES, hike.to_doc())
        except DuplicateKeyError as e:
            # another instance started a hike for this user in between
            raise ConflictError(f"User '{user_id}' already has an active hike", user_id) from e

        logger.info("Started hike %s for user %s on route %s", hike.id, user_id, planned_route_id)
        return hike.id

    def update_location(
        self,
        hike_id: str,
        position: Position,
        at_time: Optional[datetime.datetime] = None,
    ) -> None:
        """Move the hiker and swap in exit strategies for the new position."""
        with self.locks.hold(hike_id):
            hike = self._require_active(hike_id, "update location of")
            validate_position(position)

            generation = self.engine.recompute(hike, position)
            moved = dataclasses.replace(
                hike,
                current_position=position,
                last_update_at=self._now(at_time),
                strategy_generation=generation,
            ).to_doc()
            try:
                self.store.update(
                    ACTIVE_HIKES,
                    hike_id,
                    {k: moved[k] for k in ("position", "last_update_at", "strategy_generation")},
                )
            except Exception:
                self.engine.discard_generation(hike_id, generation)
                raise
            self.engine.discard_superseded(hike_id, generation)

    def end(
        self,
        hike_id: str,
        exit_point_id: str,
        end_time: Optional[datetime.datetime] = None,
    ) -> str:
        """Archive the hike as a CompletedHike and return the archive id."""
        with self.locks.hold(hike_id):
            hike = self._require_active(hike_id, "end")
            self.engine.get_exit_point(exit_point_id)

            ended_at = self._now(end_time)
            elapsed = (ended_at - hike.started_at).total_seconds() / 60
            if elapsed < 0:
                raise ValidationError(
                    f"end_time {ended_at.isoformat()} precedes start {hike.started_at.isoformat()}",
                    end_time,
                )

            completed = CompletedHike(
                id=self.id_factory(),
                active_hike_id=hike.id,
                user_id=hike.user_id,
                planned_route_id=hike.planned_route_id,
                ended_at=ended_at,
                exit_point_id=exit_point_id,
                duration_minutes=round_minutes(elapsed),
            )
            self.store.update(ACTIVE_HIKES, hike_id, {"status": HikeStatus.ENDED.value})
            try:
                self.store.insert(COMPLETED_HIKES, completed.to_doc())
            except Exception:
                # reopen so a retry can archive it
                self.store.update(ACTIVE_HIKES, hike_id, {"status": HikeStatus.ACTIVE.value})
                raise
            self.engine.discard_all(hike_id)

        logger.info(
            "Ended hike %s at exit %s after %d min",
            hike_id, exit_point_id, completed.duration_minutes,
        )
        return completed.id

    # ── Queries ───────────────────────────────────────────────────────

    def get_exit_strategies(self, hike_id: str) -> list[str]:
        return self.engine.get_exit_strategies(hike_id)

    def get_hike_summary(self, hike_id: str) -> HikeSummary:
        hike = self.get_hike(hike_id)
        return HikeSummary(
            id=hike.id,
            user_id=hike.user_id,
            position=hike.current_position,
            started_at=hike.started_at,
            last_update_at=hike.last_update_at,
            status=hike.status,
            strategies_count=len(self.engine.current_strategies(hike)),
        )

    def get_completed_hike(self, completed_id: str) -> CompletedHike:
        doc = self.store.get(COMPLETED_HIKES, completed_id)
        if doc is None:
            raise NotFoundError("completed hike", completed_id)
        return CompletedHike.from_doc(doc)
