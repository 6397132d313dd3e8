"""Tests for the typer CLI against a temporary SQLite database."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from hike_planner.cli import app
from hike_planner.config import ACTIVE_HIKES, COMPLETED_HIKES, DEMO_REFERENCE_PATH, PLANNED_ROUTES
from hike_planner.context import build_context
from hike_planner.ingest.reference import load_reference_json, seed_store
from hike_planner.models import Position, RouteConstraints
from hike_planner.store.sqlite import SqliteStore

runner = CliRunner()

MARKET_ST = ("--lat=37.7850", "--lon=-122.4056")
NEAR_MUIR_WOODS_LOT = ("--lat=37.8925", "--lon=-122.5722")


@pytest.fixture
def db(tmp_path):
    path = tmp_path / "cli.db"
    seed_store(SqliteStore(path), load_reference_json(DEMO_REFERENCE_PATH))
    return path


def _run(db, *args):
    return runner.invoke(app, ["--db", str(db), *args])


def _plan_route(db, max_minutes=240.0) -> str:
    ctx = build_context(SqliteStore(db))
    return ctx.planner.plan(
        Position(37.7850, -122.4056), "th-muir-woods", RouteConstraints(max_minutes), "default",
    )


def _start_hike(db, user="alice") -> str:
    result = _run(db, "start", "route-x", "--user", user, *NEAR_MUIR_WOODS_LOT)
    assert result.exit_code == 0, result.output
    return result.output.split()[-1]


# ═══════════════════════════════════════════════════════════════════════
# Seeding
# ═══════════════════════════════════════════════════════════════════════


class TestSeed:
    def test_seed_demo(self, tmp_path):
        result = _run(tmp_path / "fresh.db", "seed")
        assert result.exit_code == 0, result.output
        assert "transit_stops: 5 new" in result.output
        assert "exit_points: 5 new" in result.output

    def test_seed_twice(self, db):
        result = _run(db, "seed")
        assert result.exit_code == 0
        assert "trails: 0 new" in result.output

    def test_missing_file(self, tmp_path):
        result = _run(tmp_path / "fresh.db", "seed", "--file", str(tmp_path / "nope.json"))
        assert result.exit_code == 1
        assert "could not read reference data" in result.output


# ═══════════════════════════════════════════════════════════════════════
# Planning
# ═══════════════════════════════════════════════════════════════════════


class TestPlan:
    def test_longest_trail_that_fits(self, db):
        # ~75 min of transit leaves 165 min: Dipsea (120) is the longest fit
        result = _run(db, "plan", *MARKET_ST, "-t", "th-muir-woods", "-m", "240")
        assert result.exit_code == 0, result.output
        assert "Dipsea Trail to Stinson" in result.output
        assert len(SqliteStore(db).find(PLANNED_ROUTES)) == 1

    def test_shorter(self, db):
        result = _run(db, "plan", *MARKET_ST, "-t", "th-muir-woods", "-m", "240", "-c", "shorter")
        assert result.exit_code == 0, result.output
        assert "Redwood Creek Loop" in result.output

    def test_unknown_trailhead(self, db):
        result = _run(db, "plan", *MARKET_ST, "-t", "th-nowhere", "-m", "240")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_budget_too_small(self, db):
        result = _run(db, "plan", *MARKET_ST, "-t", "th-muir-woods", "-m", "60")
        assert result.exit_code == 1
        assert "Insufficient time" in result.output

    def test_bad_criteria(self, db):
        result = _run(db, "plan", *MARKET_ST, "-t", "th-muir-woods", "-m", "240", "-c", "prettiest")
        assert result.exit_code == 1
        assert "Invalid criteria" in result.output

    def test_llm_without_key(self, db):
        with patch("hike_planner.cli.GeminiAdvisor", side_effect=ValueError("Gemini API key is required")):
            result = _run(db, "--llm", "plan", *MARKET_ST, "-t", "th-muir-woods", "-m", "240")
        assert result.exit_code == 1
        assert "API key" in result.output


class TestRouteCommands:
    def test_show_route(self, db):
        route_id = _plan_route(db)
        result = _run(db, "route", route_id)
        assert result.exit_code == 0, result.output
        assert "Dipsea Trail to Stinson" in result.output

    def test_show_missing_route(self, db):
        result = _run(db, "route", "nope")
        assert result.exit_code == 1

    def test_alternative(self, db):
        route_id = _plan_route(db)
        result = _run(db, "alternative", route_id, "-c", "shorter")
        assert result.exit_code == 0, result.output
        assert "Redwood Creek Loop" in result.output
        assert len(SqliteStore(db).find(PLANNED_ROUTES)) == 2

    def test_no_different_alternative(self, db):
        route_id = _plan_route(db)
        result = _run(db, "alternative", route_id, "-c", "default")
        assert result.exit_code == 0
        assert "No different" in result.output

    def test_update_constraints(self, db):
        route_id = _plan_route(db)
        result = _run(db, "update-constraints", route_id, "-m", "160")
        assert result.exit_code == 0, result.output
        assert "Ben Johnson Loop" in result.output

    def test_update_constraints_infeasible(self, db):
        route_id = _plan_route(db)
        result = _run(db, "update-constraints", route_id, "-m", "80")
        assert result.exit_code == 1
        assert "No feasible route" in result.output


# ═══════════════════════════════════════════════════════════════════════
# Hike tracking
# ═══════════════════════════════════════════════════════════════════════


class TestHikeCommands:
    def test_full_hike(self, db):
        hike_id = _start_hike(db)

        result = _run(db, "locate", hike_id, *NEAR_MUIR_WOODS_LOT)
        assert result.exit_code == 0, result.output
        assert "Exit strategies" in result.output

        result = _run(db, "exits", hike_id)
        assert result.exit_code == 0, result.output

        result = _run(db, "end", hike_id, "--exit", "exit-muir-woods-lot")
        assert result.exit_code == 0, result.output
        assert "Hike finished" in result.output

        store = SqliteStore(db)
        assert store.get(ACTIVE_HIKES, hike_id)["status"] == "ended"
        (completed,) = store.find(COMPLETED_HIKES)
        assert completed["exit_point_id"] == "exit-muir-woods-lot"

    def test_second_start_conflicts(self, db):
        _start_hike(db)
        result = _run(db, "start", "route-y", "--user", "alice", *NEAR_MUIR_WOODS_LOT)
        assert result.exit_code == 1
        assert "already has an active hike" in result.output

    def test_locate_after_end(self, db):
        hike_id = _start_hike(db)
        _run(db, "end", hike_id, "--exit", "exit-muir-woods-lot")
        result = _run(db, "locate", hike_id, *NEAR_MUIR_WOODS_LOT)
        assert result.exit_code == 1
        assert "Cannot update location" in result.output

    def test_end_at_unknown_exit(self, db):
        hike_id = _start_hike(db)
        result = _run(db, "end", hike_id, "--exit", "exit-nowhere")
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_explicit_times(self, db):
        result = _run(
            db, "start", "route-x", "--user", "bob", *NEAR_MUIR_WOODS_LOT,
            "--at", "2026-05-01T09:00:00",
        )
        hike_id = result.output.split()[-1]
        result = _run(db, "end", hike_id, "--exit", "exit-pantoll", "--at", "2026-05-01T12:15:20")
        assert result.exit_code == 0, result.output
        assert "after 195 min" in result.output

    def test_bad_timestamp(self, db):
        result = _run(db, "start", "route-x", "--user", "carol", *NEAR_MUIR_WOODS_LOT, "--at", "noon")
        assert result.exit_code != 0
        assert SqliteStore(db).find(ACTIVE_HIKES) == []
