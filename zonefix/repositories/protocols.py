"""Zone store protocol definitions."""

from typing import Protocol, runtime_checkable

from zonefix.models.domain import GeometryRecord
from zonefix.models.enums import RecordPredicate


@runtime_checkable
class ZoneStore(Protocol):
    """Protocol for the persistent zone store consumed by the engine.

    The engine only reads and updates; it never creates or deletes zones.
    """

    def ping(self) -> None:
        """Check connectivity.

        Raises:
            StoreConnectionError: If the store cannot be reached
        """
        ...

    def fetch_all(self, predicate: RecordPredicate = RecordPredicate.ALL) -> list[GeometryRecord]:
        """Fetch every zone matching the predicate, in a stable order."""
        ...

    def fetch_by_id(self, record_id: str) -> GeometryRecord:
        """Fetch one zone.

        Raises:
            RecordNotFoundError: If no zone has this id
        """
        ...

    def persist(self, record: GeometryRecord) -> GeometryRecord:
        """Write a working copy back and return the stored record.

        Raises:
            ConflictError: If the zone changed since it was fetched
            StoreConnectionError: If the store cannot be reached
        """
        ...
