"""Document-store interface shared by the planner and the hike tracker."""

from __future__ import annotations

from typing import Any, Protocol


class DocumentStore(Protocol):
    """Point lookup/insert/update by id plus a nearest-points query.

    Documents are plain dicts carrying an ``"id"`` key. Documents with a
    ``"position"`` key (``{"lat", "lon"}``) take part in nearest queries.
    """

    def get(self, collection: str, doc_id: str) -> dict | None: ...

    def insert(self, collection: str, doc: dict) -> str: ...

    def insert_many(self, collection: str, docs: list[dict]) -> None: ...

    def update(self, collection: str, doc_id: str, changes: dict) -> None: ...

    def find(self, collection: str, **match: Any) -> list[dict]: ...

    def delete_many(self, collection: str, **match: Any) -> int: ...

    def find_nearest(
        self,
        collection: str,
        lat: float,
        lon: float,
        radius_m: float | None = None,
        limit: int | None = None,
    ) -> list[tuple[float, dict]]: ...

    def ensure_unique(self, collection: str, field: str, where: dict[str, Any]) -> None: ...


def matches(doc: dict, match: dict[str, Any]) -> bool:
    """True if every key in *match* equals the document's value."""
    return all(doc.get(k) == v for k, v in match.items())
