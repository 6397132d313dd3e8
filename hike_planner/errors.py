"""Error taxonomy for planning and hike tracking."""

from __future__ import annotations


class HikePlannerError(Exception):
    """Base class for errors surfaced to callers."""


class ValidationError(HikePlannerError):
    """Malformed input, infeasible time budget, or no candidate trail."""

    def __init__(self, message: str, value: object = None):
        self.value = value
        super().__init__(message)


class NotFoundError(HikePlannerError):
    """An id did not resolve, or no transit stop exists at all."""

    def __init__(self, kind: str, ident: object):
        self.kind = kind
        self.ident = ident
        super().__init__(f"{kind} '{ident}' not found")


class ConflictError(HikePlannerError):
    """A second active hike was requested for one user."""

    def __init__(self, message: str, ident: str):
        self.ident = ident
        super().__init__(message)


class StateError(HikePlannerError):
    """Operation not valid for the hike's lifecycle state."""

    def __init__(self, hike_id: str, status: str, action: str):
        self.hike_id = hike_id
        self.status = status
        super().__init__(f"Cannot {action} hike '{hike_id}': status is {status}")


class DuplicateKeyError(Exception):
    """A store-level uniqueness constraint was violated."""

    def __init__(self, collection: str, field: str, value: object):
        self.collection = collection
        self.field = field
        self.value = value
        super().__init__(f"Duplicate {field}={value!r} in {collection}")
