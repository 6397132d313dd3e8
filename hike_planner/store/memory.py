"""In-process document store.

Nearest queries build an STRtree over each collection's ``(lon, lat)``
points, query them with degree boxes around the search point (split at the
antimeridian) and refine candidates with haversine, the same two-step
filter used for stop lookups against SQLite.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections import defaultdict
from typing import Any

from shapely import STRtree
from shapely.geometry import Point, box

from hike_planner.errors import DuplicateKeyError
from hike_planner.geo import haversine, search_boxes
from hike_planner.store.base import matches

logger = logging.getLogger(__name__)


class MemoryStore:
    """Thread-safe dict-backed :class:`DocumentStore`."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._docs: dict[str, dict[str, dict]] = defaultdict(dict)
        self._unique: dict[str, list[tuple[str, dict[str, Any]]]] = defaultdict(list)
        self._trees: dict[str, tuple[STRtree, list[dict]]] = {}

    # ── Constraints ───────────────────────────────────────────────────

    def ensure_unique(self, collection: str, field: str, where: dict[str, Any]) -> None:
        with self._lock:
            if (field, where) not in self._unique[collection]:
                self._unique[collection].append((field, dict(where)))

    def _check_unique(self, collection: str, doc: dict, existing: dict[str, dict] | None = None) -> None:
        if existing is None:
            existing = self._docs[collection]
        for field, where in self._unique[collection]:
            if not matches(doc, where):
                continue
            for other in existing.values():
                if other["id"] == doc["id"]:
                    continue
                if matches(other, where) and other.get(field) == doc.get(field):
                    raise DuplicateKeyError(collection, field, doc.get(field))

    # ── CRUD ──────────────────────────────────────────────────────────

    def get(self, collection: str, doc_id: str) -> dict | None:
        with self._lock:
            doc = self._docs[collection].get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def insert(self, collection: str, doc: dict) -> str:
        with self._lock:
            doc_id = doc["id"]
            if doc_id in self._docs[collection]:
                raise DuplicateKeyError(collection, "id", doc_id)
            self._check_unique(collection, doc)
            self._docs[collection][doc_id] = copy.deepcopy(doc)
            self._trees.pop(collection, None)
            return doc_id

    def insert_many(self, collection: str, docs: list[dict]) -> None:
        with self._lock:
            staged = dict(self._docs[collection])
            for doc in docs:
                if doc["id"] in staged:
                    raise DuplicateKeyError(collection, "id", doc["id"])
                self._check_unique(collection, doc, staged)
                staged[doc["id"]] = copy.deepcopy(doc)
            self._docs[collection] = staged
            self._trees.pop(collection, None)

    def update(self, collection: str, doc_id: str, changes: dict) -> None:
        with self._lock:
            current = self._docs[collection].get(doc_id)
            if current is None:
                raise KeyError(f"{collection}/{doc_id}")
            merged = {**current, **copy.deepcopy(changes), "id": doc_id}
            self._check_unique(collection, merged)
            self._docs[collection][doc_id] = merged
            if "position" in changes:
                self._trees.pop(collection, None)

    def find(self, collection: str, **match: Any) -> list[dict]:
        with self._lock:
            return [
                copy.deepcopy(doc)
                for doc in self._docs[collection].values()
                if matches(doc, match)
            ]

    def delete_many(self, collection: str, **match: Any) -> int:
        with self._lock:
            doomed = [k for k, doc in self._docs[collection].items() if matches(doc, match)]
            for key in doomed:
                del self._docs[collection][key]
            if doomed:
                self._trees.pop(collection, None)
            return len(doomed)

    # ── Nearest ───────────────────────────────────────────────────────

    def _tree(self, collection: str) -> tuple[STRtree, list[dict]] | None:
        cached = self._trees.get(collection)
        if cached is not None:
            return cached
        located = [d for d in self._docs[collection].values() if "position" in d]
        if not located:
            return None
        points = [Point(d["position"]["lon"], d["position"]["lat"]) for d in located]
        cached = (STRtree(points), located)
        self._trees[collection] = cached
        logger.debug("Built STRtree for %s from %d points", collection, len(points))
        return cached

    def find_nearest(
        self,
        collection: str,
        lat: float,
        lon: float,
        radius_m: float | None = None,
        limit: int | None = None,
    ) -> list[tuple[float, dict]]:
        with self._lock:
            if radius_m is None:
                candidates = [d for d in self._docs[collection].values() if "position" in d]
            else:
                built = self._tree(collection)
                if built is None:
                    return []
                tree, located = built
                hits: set[int] = set()
                for bounds in search_boxes(lat, lon, radius_m):
                    hits.update(int(i) for i in tree.query(box(*bounds)))
                candidates = [located[i] for i in sorted(hits)]

            results: list[tuple[float, dict]] = []
            for doc in candidates:
                pos = doc["position"]
                dist = haversine(lat, lon, pos["lat"], pos["lon"])
                if radius_m is None or dist <= radius_m:
                    results.append((dist, doc))

            results.sort(key=lambda r: (r[0], r[1]["id"]))
            if limit is not None:
                results = results[:limit]
            return [(dist, copy.deepcopy(doc)) for dist, doc in results]
