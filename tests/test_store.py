"""Tests for the document stores (in-memory and SQLite)."""

from __future__ import annotations

import pytest

from conftest import north_of
from hike_planner.errors import DuplicateKeyError
from hike_planner.geo import search_boxes
from hike_planner.models import Position
from hike_planner.store.memory import MemoryStore
from hike_planner.store.sqlite import SqliteStore

CENTER = Position(37.0, -122.0)


def _located(doc_id: str, position: Position, **extra) -> dict:
    return {"id": doc_id, "position": {"lat": position.lat, "lon": position.lon}, **extra}


# ═══════════════════════════════════════════════════════════════════════
# CRUD
# ═══════════════════════════════════════════════════════════════════════


class TestCrud:
    def test_insert_and_get(self, store):
        store.insert("things", {"id": "a", "name": "Alpha", "tags": ["x"]})
        assert store.get("things", "a") == {"id": "a", "name": "Alpha", "tags": ["x"]}
        assert store.get("things", "missing") is None
        assert store.get("other", "a") is None

    def test_duplicate_id(self, store):
        store.insert("things", {"id": "a"})
        with pytest.raises(DuplicateKeyError):
            store.insert("things", {"id": "a"})

    def test_insert_many_is_all_or_nothing(self, store):
        store.insert("things", {"id": "b"})
        with pytest.raises(DuplicateKeyError):
            store.insert_many("things", [{"id": "a"}, {"id": "b"}])
        assert store.get("things", "a") is None

    def test_update_merges(self, store):
        store.insert("things", {"id": "a", "name": "Alpha", "count": 1})
        store.update("things", "a", {"count": 2})
        assert store.get("things", "a") == {"id": "a", "name": "Alpha", "count": 2}

    def test_update_missing(self, store):
        with pytest.raises(KeyError):
            store.update("things", "nope", {"count": 2})

    def test_find_matches_all_keys(self, store):
        store.insert_many("things", [
            {"id": "a", "owner": "u1", "generation": 1},
            {"id": "b", "owner": "u1", "generation": 2},
            {"id": "c", "owner": "u2", "generation": 1},
        ])
        assert {d["id"] for d in store.find("things", owner="u1")} == {"a", "b"}
        assert [d["id"] for d in store.find("things", owner="u1", generation=1)] == ["a"]
        assert len(store.find("things")) == 3
        assert store.find("things", owner="nobody") == []

    def test_delete_many(self, store):
        store.insert_many("things", [
            {"id": "a", "owner": "u1"},
            {"id": "b", "owner": "u1"},
            {"id": "c", "owner": "u2"},
        ])
        assert store.delete_many("things", owner="u1") == 2
        assert [d["id"] for d in store.find("things")] == ["c"]
        assert store.delete_many("things", owner="u1") == 0

    def test_returned_docs_are_copies(self, store):
        store.insert("things", {"id": "a", "tags": ["x"]})
        doc = store.get("things", "a")
        doc["tags"].append("y")
        assert store.get("things", "a")["tags"] == ["x"]


# ═══════════════════════════════════════════════════════════════════════
# Partial uniqueness
# ═══════════════════════════════════════════════════════════════════════


class TestUnique:
    @pytest.fixture(autouse=True)
    def _constraint(self, store):
        store.ensure_unique("hikes", "user_id", {"status": "active"})

    def test_second_active_rejected(self, store):
        store.insert("hikes", {"id": "h1", "user_id": "u", "status": "active"})
        with pytest.raises(DuplicateKeyError) as exc:
            store.insert("hikes", {"id": "h2", "user_id": "u", "status": "active"})
        assert exc.value.field == "user_id"
        assert store.get("hikes", "h2") is None

    def test_inactive_rows_ignored(self, store):
        store.insert("hikes", {"id": "h1", "user_id": "u", "status": "ended"})
        store.insert("hikes", {"id": "h2", "user_id": "u", "status": "ended"})
        store.insert("hikes", {"id": "h3", "user_id": "u", "status": "active"})
        store.insert("hikes", {"id": "h4", "user_id": "v", "status": "active"})

    def test_update_into_conflict(self, store):
        store.insert("hikes", {"id": "h1", "user_id": "u", "status": "active"})
        store.insert("hikes", {"id": "h2", "user_id": "u", "status": "ended"})
        with pytest.raises(DuplicateKeyError):
            store.update("hikes", "h2", {"status": "active"})
        assert store.get("hikes", "h2")["status"] == "ended"

    def test_freed_after_status_change(self, store):
        store.insert("hikes", {"id": "h1", "user_id": "u", "status": "active"})
        store.update("hikes", "h1", {"status": "ended"})
        store.insert("hikes", {"id": "h2", "user_id": "u", "status": "active"})

    def test_batch_conflicting_with_itself(self, store):
        with pytest.raises(DuplicateKeyError):
            store.insert_many("hikes", [
                {"id": "h1", "user_id": "u", "status": "active"},
                {"id": "h2", "user_id": "u", "status": "active"},
            ])
        assert store.find("hikes") == []

    def test_batch_conflicting_with_stored(self, store):
        store.insert("hikes", {"id": "h1", "user_id": "u", "status": "active"})
        with pytest.raises(DuplicateKeyError):
            store.insert_many("hikes", [
                {"id": "h2", "user_id": "v", "status": "active"},
                {"id": "h3", "user_id": "u", "status": "active"},
            ])
        assert [d["id"] for d in store.find("hikes")] == ["h1"]

    def test_ensure_unique_is_idempotent(self, store):
        store.ensure_unique("hikes", "user_id", {"status": "active"})
        store.insert("hikes", {"id": "h1", "user_id": "u", "status": "active"})


# ═══════════════════════════════════════════════════════════════════════
# Nearest queries
# ═══════════════════════════════════════════════════════════════════════


class TestFindNearest:
    @pytest.fixture(autouse=True)
    def _points(self, store):
        store.insert_many("points", [
            _located("p-500", north_of(CENTER, 500)),
            _located("p-100", north_of(CENTER, -100)),
            _located("p-3000", north_of(CENTER, 3000)),
            {"id": "unlocated"},
        ])

    def test_ordered_by_distance(self, store):
        results = store.find_nearest("points", CENTER.lat, CENTER.lon)
        assert [doc["id"] for _, doc in results] == ["p-100", "p-500", "p-3000"]
        assert results[0][0] == pytest.approx(100, abs=0.5)

    def test_radius(self, store):
        results = store.find_nearest("points", CENTER.lat, CENTER.lon, radius_m=1000)
        assert [doc["id"] for _, doc in results] == ["p-100", "p-500"]

    def test_limit(self, store):
        results = store.find_nearest("points", CENTER.lat, CENTER.lon, radius_m=5000, limit=1)
        assert [doc["id"] for _, doc in results] == ["p-100"]

    def test_nothing_in_range(self, store):
        assert store.find_nearest("points", 0.0, 0.0, radius_m=1000) == []

    def test_empty_collection(self, store):
        assert store.find_nearest("empty", CENTER.lat, CENTER.lon, radius_m=1000) == []
        assert store.find_nearest("empty", CENTER.lat, CENTER.lon) == []

    def test_ties_broken_by_id(self, store):
        same = north_of(CENTER, 200)
        store.insert_many("ties", [_located("z", same), _located("a", same)])
        results = store.find_nearest("ties", CENTER.lat, CENTER.lon, radius_m=1000)
        assert [doc["id"] for _, doc in results] == ["a", "z"]

    def test_sees_moved_and_deleted_points(self, store):
        store.find_nearest("points", CENTER.lat, CENTER.lon, radius_m=1000)
        store.update("points", "p-3000", {"position": {"lat": CENTER.lat, "lon": CENTER.lon}})
        store.delete_many("points", id="p-100")
        results = store.find_nearest("points", CENTER.lat, CENTER.lon, radius_m=1000)
        assert [doc["id"] for _, doc in results] == ["p-3000", "p-500"]

    def test_high_latitude_radius(self, store):
        # longitude degrees are short near the poles
        north = Position(69.0, 20.0)
        east = Position(69.0, 20.0 + 4000 / (111_195 * 0.3584))
        store.insert("arctic", _located("east", east))
        results = store.find_nearest("arctic", north.lat, north.lon, radius_m=5000)
        assert [doc["id"] for _, doc in results] == ["east"]

    @pytest.mark.parametrize("here,there", [
        ((0.0, 179.95), (0.0, -179.95)),
        ((-12.0, -179.99), (-12.0, 179.99)),
        ((89.95, -80.0), (89.95, 100.0)),
        ((-89.99, 0.0), (-89.99, 180.0)),
    ])
    def test_across_antimeridian_and_poles(self, store, here, there):
        store.insert("edge", _located("far-side", Position(*there)))
        results = store.find_nearest("edge", *here, radius_m=20_000)
        assert [doc["id"] for _, doc in results] == ["far-side"]
        assert results[0][0] < 20_000

    def test_antimeridian_still_bounded(self, store):
        store.insert("edge", _located("too-far", Position(0.0, -179.0)))
        assert store.find_nearest("edge", 0.0, 179.95, radius_m=20_000) == []


class TestSearchBoxes:
    def test_single_box_mid_latitude(self):
        (box,) = search_boxes(37.0, -122.0, 20_000)
        min_lon, min_lat, max_lon, max_lat = box
        assert min_lat < 37.0 < max_lat
        assert min_lon < -122.0 < max_lon

    def test_split_at_antimeridian(self):
        east, west = search_boxes(0.0, 179.95, 20_000)
        assert east[2] == 180.0
        assert west[0] == -180.0
        assert -180.0 < west[2] < -179.0

    def test_pole_spans_all_longitudes(self):
        (box,) = search_boxes(89.95, -80.0, 20_000)
        assert (box[0], box[2], box[3]) == (-180.0, 180.0, 90.0)


# ═══════════════════════════════════════════════════════════════════════
# Backend specifics
# ═══════════════════════════════════════════════════════════════════════


class TestSqlitePersistence:
    def test_reopen(self, tmp_path):
        path = tmp_path / "nested" / "hikes.db"
        first = SqliteStore(path)
        first.insert("things", {"id": "a", "name": "Alpha"})
        first.ensure_unique("hikes", "user_id", {"status": "active"})
        first.insert("hikes", {"id": "h1", "user_id": "u", "status": "active"})

        second = SqliteStore(path)
        assert second.get("things", "a") == {"id": "a", "name": "Alpha"}
        # the index lives in the file, so a fresh instance still enforces it
        with pytest.raises(DuplicateKeyError):
            second.insert("hikes", {"id": "h2", "user_id": "u", "status": "active"})

    def test_bad_names_rejected(self, tmp_path):
        store = SqliteStore(tmp_path / "x.db")
        with pytest.raises(ValueError):
            store.find("things", **{"name') OR 1=1 --": "x"})


class TestMemoryStore:
    def test_stored_doc_isolated_from_caller(self):
        store = MemoryStore()
        doc = {"id": "a", "tags": ["x"]}
        store.insert("things", doc)
        doc["tags"].append("y")
        assert store.get("things", "a")["tags"] == ["x"]
