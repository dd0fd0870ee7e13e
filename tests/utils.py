"""Shared test helpers: record factory and an in-memory zone store."""

import threading
from typing import Any

from zonefix.errors import ConflictError, RecordNotFoundError, StoreConnectionError
from zonefix.models.domain import GeometryRecord
from zonefix.models.enums import GeometryType, RecordPredicate

CLOSED_SQUARE = [[[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0], [0.0, 0.0]]]
OPEN_SQUARE = [[[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]]]


def make_record(
    record_id: str = "zone-1",
    coordinates: Any = None,
    geometry_type: GeometryType | None = GeometryType.POLYGON,
    **overrides: Any,
) -> GeometryRecord:
    """Build a GeometryRecord with sensible defaults (a closed unit square)."""
    fields = {
        "id": record_id,
        "title": f"Zone {record_id}",
        "geometry_type": geometry_type,
        "coordinates": CLOSED_SQUARE if coordinates is None else coordinates,
    }
    fields.update(overrides)
    return GeometryRecord(**fields)


class InMemoryZoneStore:
    """ZoneStore backed by a dict, with write counting and failure injection.

    Attributes:
        writes: Number of successful persist() calls
        conflict_ids: Ids whose next persist() raises ConflictError
        unreachable_ids: Ids whose persist() raises StoreConnectionError
        unreachable: When True, every call raises StoreConnectionError
    """

    def __init__(self, records: list[GeometryRecord] | None = None):
        self._records = {record.id: record for record in records or []}
        self._lock = threading.Lock()
        self.writes = 0
        self.conflict_ids: set[str] = set()
        self.unreachable_ids: set[str] = set()
        self.unreachable = False
        self.closed = False

    def _check_reachable(self) -> None:
        if self.unreachable:
            raise StoreConnectionError("store unreachable")

    def ping(self) -> None:
        self._check_reachable()

    def fetch_all(self, predicate: RecordPredicate = RecordPredicate.ALL) -> list[GeometryRecord]:
        self._check_reachable()
        records = list(self._records.values())
        if predicate is RecordPredicate.ACTIVE_ONLY:
            records = [record for record in records if record.active]
        return records

    def fetch_by_id(self, record_id: str) -> GeometryRecord:
        self._check_reachable()
        try:
            return self._records[record_id]
        except KeyError:
            raise RecordNotFoundError(f"Zone with ID {record_id} not found", record_id) from None

    def persist(self, record: GeometryRecord) -> GeometryRecord:
        self._check_reachable()
        if record.id in self.unreachable_ids:
            raise StoreConnectionError("connection lost", record.id)
        with self._lock:
            if record.id in self.conflict_ids:
                self.conflict_ids.discard(record.id)
                raise ConflictError(f"Zone {record.id} was modified concurrently", record.id)
            stored = self._records.get(record.id)
            if stored is None:
                raise RecordNotFoundError(f"Zone with ID {record.id} not found", record.id)
            if stored.version != record.version:
                raise ConflictError(f"Zone {record.id} was modified concurrently", record.id)
            updated = record.model_copy(update={"version": record.version + 1})
            self._records[record.id] = updated
            self.writes += 1
            return updated

    def get(self, record_id: str) -> GeometryRecord:
        """Stored record, bypassing failure injection."""
        return self._records[record_id]

    def close(self) -> None:
        self.closed = True
