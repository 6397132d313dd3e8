"""Constants and configuration for the Transit Hike Planner."""

import os
from pathlib import Path

# ── Paths ──────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"
PACKAGE_DATA_DIR = Path(__file__).resolve().parent / "data"
DEMO_REFERENCE_PATH = PACKAGE_DATA_DIR / "demo_reference.json"
DB_PATH = Path(os.environ.get("HIKE_PLANNER_DB", DATA_DIR / "hike_planner.db"))

# ── Collections ───────────────────────────────────────────────────────
TRANSIT_STOPS = "transit_stops"
TRAILHEADS = "trailheads"
TRAILS = "trails"
PLANNED_ROUTES = "planned_routes"
ACTIVE_HIKES = "active_hikes"
EXIT_POINTS = "exit_points"
EXIT_STRATEGIES = "exit_strategies"
COMPLETED_HIKES = "completed_hikes"

# ── Geometry ──────────────────────────────────────────────────────────
EARTH_RADIUS_M = 6_371_000
METERS_PER_DEGREE = 111_000

# ── Route planning ────────────────────────────────────────────────────
TRANSIT_SPEED_KMH = 30.0
EXPRESS_TRANSIT_SPEED_KMH = 50.0  # "faster" criteria

# ── Exit strategies ───────────────────────────────────────────────────
WALK_SPEED_KMH = 4.5
TRANSIT_WAIT_PENALTY_MIN = 10
EXIT_SEARCH_RADIUS_M = 20_000
MAX_EXIT_CANDIDATES = 10

# ── Gemini classifier / scorer ────────────────────────────────────────
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY", "")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-1.5-flash")
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
GEMINI_TIMEOUT_S = 15
MIN_EXIT_SCORE = 1
MAX_EXIT_SCORE = 100
