"""SQLite-backed document store.

All collections share one ``documents`` table holding JSON bodies. Points
are mirrored into ``lat``/``lon`` columns so nearest queries can apply a
rough bounding box in SQL before the exact haversine filter. Partial
uniqueness constraints become expression indexes over ``json_extract``,
which keeps them enforced across processes sharing the database file.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
import threading
from pathlib import Path
from typing import Any

from hike_planner.errors import DuplicateKeyError
from hike_planner.geo import haversine, search_boxes

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(r"^\w+$")


def _to_json(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def _literal(value: Any) -> str:
    """Render a constant for an index WHERE clause (parameters aren't allowed there)."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return repr(value)
    return "'" + str(value).replace("'", "''") + "'"


def _check_name(name: str) -> str:
    if not _NAME_RE.match(name):
        raise ValueError(f"Invalid collection or field name: {name!r}")
    return name


def _coords(doc: dict) -> tuple[float | None, float | None]:
    pos = doc.get("position")
    if not pos:
        return None, None
    return float(pos["lat"]), float(pos["lon"])


class SqliteStore:
    """:class:`DocumentStore` persisted to a single SQLite file."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._unique_indexes: dict[str, str] = {}  # index name -> field
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=5.0)
        conn.execute("PRAGMA journal_mode=WAL;")
        return conn

    def _init_schema(self) -> None:
        with self._lock, self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    id TEXT NOT NULL,
                    body TEXT NOT NULL,
                    lat REAL,
                    lon REAL,
                    PRIMARY KEY (collection, id)
                );
                CREATE INDEX IF NOT EXISTS documents_geo ON documents (collection, lat, lon);
                """
            )

    def ensure_unique(self, collection: str, field: str, where: dict[str, Any]) -> None:
        _check_name(collection)
        _check_name(field)
        clauses = [f"collection = {_literal(collection)}"]
        for key, value in where.items():
            clauses.append(f"json_extract(body, '$.{_check_name(key)}') = {_literal(value)}")
        name = f"uniq_{collection}_{field}"
        with self._lock, self._connect() as conn:
            conn.execute(
                f"CREATE UNIQUE INDEX IF NOT EXISTS {name} "
                f"ON documents (collection, json_extract(body, '$.{field}')) "
                f"WHERE {' AND '.join(clauses)}"
            )
        self._unique_indexes[name] = field

    def _duplicate(self, collection: str, doc: dict, exc: sqlite3.IntegrityError) -> DuplicateKeyError:
        message = str(exc)
        for name, field in self._unique_indexes.items():
            if name in message:
                return DuplicateKeyError(collection, field, doc.get(field))
        return DuplicateKeyError(collection, "id", doc.get("id"))

    # ── CRUD ──────────────────────────────────────────────────────────

    def get(self, collection: str, doc_id: str) -> dict | None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            ).fetchone()
        return json.loads(row[0]) if row else None

    def insert(self, collection: str, doc: dict) -> str:
        self.insert_many(collection, [doc])
        return doc["id"]

    def insert_many(self, collection: str, docs: list[dict]) -> None:
        rows = [(collection, d["id"], _to_json(d), *_coords(d)) for d in docs]
        with self._lock, self._connect() as conn:
            try:
                conn.executemany(
                    "INSERT INTO documents (collection, id, body, lat, lon) VALUES (?, ?, ?, ?, ?)",
                    rows,
                )
            except sqlite3.IntegrityError as exc:
                failed = docs[0] if len(docs) == 1 else {}
                raise self._duplicate(collection, failed, exc) from exc

    def update(self, collection: str, doc_id: str, changes: dict) -> None:
        with self._lock, self._connect() as conn:
            row = conn.execute(
                "SELECT body FROM documents WHERE collection = ? AND id = ?",
                (collection, doc_id),
            ).fetchone()
            if row is None:
                raise KeyError(f"{collection}/{doc_id}")
            merged = {**json.loads(row[0]), **changes, "id": doc_id}
            lat, lon = _coords(merged)
            try:
                conn.execute(
                    "UPDATE documents SET body = ?, lat = ?, lon = ? WHERE collection = ? AND id = ?",
                    (_to_json(merged), lat, lon, collection, doc_id),
                )
            except sqlite3.IntegrityError as exc:
                raise self._duplicate(collection, merged, exc) from exc

    def _where(self, collection: str, match: dict[str, Any]) -> tuple[str, list[Any]]:
        clauses = ["collection = ?"]
        params: list[Any] = [collection]
        for key, value in match.items():
            clauses.append(f"json_extract(body, '$.{_check_name(key)}') IS ?")
            params.append(value)
        return " AND ".join(clauses), params

    def find(self, collection: str, **match: Any) -> list[dict]:
        where, params = self._where(collection, match)
        with self._lock, self._connect() as conn:
            rows = conn.execute(f"SELECT body FROM documents WHERE {where} ORDER BY id", params).fetchall()
        return [json.loads(body) for (body,) in rows]

    def delete_many(self, collection: str, **match: Any) -> int:
        where, params = self._where(collection, match)
        with self._lock, self._connect() as conn:
            cur = conn.execute(f"DELETE FROM documents WHERE {where}", params)
            return cur.rowcount

    # ── Nearest ───────────────────────────────────────────────────────

    def find_nearest(
        self,
        collection: str,
        lat: float,
        lon: float,
        radius_m: float | None = None,
        limit: int | None = None,
    ) -> list[tuple[float, dict]]:
        sql = "SELECT lat, lon, body FROM documents WHERE collection = ? AND lat IS NOT NULL"
        params: list[Any] = [collection]
        if radius_m is not None:
            boxes = search_boxes(lat, lon, radius_m)
            sql += " AND (" + " OR ".join(
                "(lat BETWEEN ? AND ? AND lon BETWEEN ? AND ?)" for _ in boxes
            ) + ")"
            for min_lon, min_lat, max_lon, max_lat in boxes:
                params += [min_lat, max_lat, min_lon, max_lon]

        with self._lock, self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()

        results: list[tuple[float, dict]] = []
        for dlat, dlon, body in rows:
            dist = haversine(lat, lon, dlat, dlon)
            if radius_m is None or dist <= radius_m:
                results.append((dist, json.loads(body)))

        results.sort(key=lambda r: (r[0], r[1]["id"]))
        if limit is not None:
            results = results[:limit]
        logger.debug(
            "Found %d %s near (%.4f, %.4f) [SQLite].", len(results), collection, lat, lon,
        )
        return results
