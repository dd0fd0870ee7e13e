"""Repository for reading and updating zones with SQLAlchemy.

This module implements the ZoneStore protocol on top of SQLAlchemy 2.x
sessions. ORM rows never leave the repository: callers receive frozen
GeometryRecord models and hand them back to persist().
"""

import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy import func, select, text, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from zonefix.errors import ConflictError, RecordNotFoundError, StoreConnectionError
from zonefix.models.db import Base, Zone
from zonefix.models.domain import GeometryRecord
from zonefix.models.enums import GeometryType, RecordPredicate

logger = logging.getLogger(__name__)

# SQLAlchemy errors that mean the database is unreachable rather than a bad query
CONNECTION_ERRORS = (OperationalError, InterfaceError, DisconnectionError)


class ZoneRepository:
    """Repository for the zone catalog.

    Provides session management plus the four operations the reconciliation
    engine needs: ping, fetch_all, fetch_by_id and persist. Writes use the
    version column as an optimistic lock, so a zone edited by someone else
    between fetch and persist is reported as a ConflictError instead of being
    overwritten.

    Attributes:
        engine: SQLAlchemy engine for database connections
    """

    def __init__(self, engine: Engine):
        """Initialize repository with SQLAlchemy engine.

        Args:
            engine: SQLAlchemy engine configured for the zone database
        """
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def session(self) -> Session:
        """Create a new SQLAlchemy session.

        Returns:
            New SQLAlchemy Session instance
        """
        return self._session_factory()

    def create_schema(self) -> None:
        """Create the zones table if it does not exist (local development and tests)."""
        Base.metadata.create_all(self.engine)

    def ping(self) -> None:
        """Check the database is reachable.

        Raises:
            StoreConnectionError: If a connection cannot be established
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except CONNECTION_ERRORS as e:
            msg = f"Zone store unreachable: {e}"
            raise StoreConnectionError(msg) from e
        logger.info("Database connection check: OK")

    def fetch_all(self, predicate: RecordPredicate = RecordPredicate.ALL) -> list[GeometryRecord]:
        """Fetch every zone matching the predicate, oldest first.

        Args:
            predicate: ALL or ACTIVE_ONLY

        Returns:
            List of GeometryRecord working copies
        """
        stmt = select(Zone).order_by(Zone.created_at, Zone.id)
        if predicate is RecordPredicate.ACTIVE_ONLY:
            stmt = stmt.where(Zone.active.is_(True))

        try:
            with self.session() as session:
                rows = session.scalars(stmt).all()
                return [self._to_record(row) for row in rows]
        except CONNECTION_ERRORS as e:
            msg = f"Failed to fetch zones: {e}"
            raise StoreConnectionError(msg) from e

    def fetch_by_id(self, record_id: str) -> GeometryRecord:
        """Fetch a single zone by id.

        Raises:
            RecordNotFoundError: If no zone has this id
            StoreConnectionError: If the database cannot be reached
        """
        try:
            with self.session() as session:
                row = session.get(Zone, record_id)
                if row is None:
                    msg = f"Zone with ID {record_id} not found"
                    raise RecordNotFoundError(msg, record_id=record_id)
                return self._to_record(row)
        except CONNECTION_ERRORS as e:
            msg = f"Failed to fetch zone {record_id}: {e}"
            raise StoreConnectionError(msg, record_id=record_id) from e

    def persist(self, record: GeometryRecord) -> GeometryRecord:
        """Write a working copy back, guarded by its version.

        Only the mutable zone fields are written; id and created_at are
        store-owned. The version is incremented and updated_at refreshed.

        Args:
            record: Working copy carrying the version it was fetched at

        Returns:
            The written working copy with the store-assigned version and
            updated_at, read from the UPDATE itself so no second query runs
            after the commit

        Raises:
            ConflictError: If the stored version no longer matches
            RecordNotFoundError: If the zone was removed meanwhile
            StoreConnectionError: If the database cannot be reached
        """
        stmt = (
            update(Zone)
            .where(Zone.id == record.id, Zone.version == record.version)
            .values(**self._to_values(record), version=Zone.version + 1, updated_at=func.now())
            .returning(Zone.version, Zone.updated_at)
            .execution_options(synchronize_session=False)
        )

        try:
            with self.session() as session, session.begin():
                written = session.execute(stmt).first()
                if written is None:
                    stored_version = session.scalar(
                        select(Zone.version).where(Zone.id == record.id)
                    )
                    if stored_version is None:
                        msg = f"Zone with ID {record.id} not found"
                        raise RecordNotFoundError(msg, record_id=record.id)
                    msg = (
                        f"Zone {record.id} was modified concurrently "
                        f"(expected version {record.version}, found {stored_version})"
                    )
                    raise ConflictError(msg, record_id=record.id)
        except CONNECTION_ERRORS as e:
            msg = f"Failed to persist zone {record.id}: {e}"
            raise StoreConnectionError(msg, record_id=record.id) from e

        logger.debug(f"Persisted zone {record.id} (version {written.version})")
        return record.model_copy(
            update={"version": written.version, "updated_at": written.updated_at}
        )

    @staticmethod
    def _to_record(row: Zone) -> GeometryRecord:
        """Convert a row, keeping rows that break the record model.

        Rows that fail validation (empty title, negative tax rate, unknown
        geometry type) are built without validation and carry their problems
        in load_errors, so the validator reports them as Invalid and the rest
        of the fetch is unaffected.
        """
        try:
            return GeometryRecord.model_validate(row)
        except ValidationError as e:
            problems = tuple(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            )

        logger.warning(f"Zone {row.id} does not fit the zone model: {'; '.join(problems)}")
        try:
            geometry_type = GeometryType(row.geometry_type) if row.geometry_type else None
        except ValueError:
            geometry_type = None
        return GeometryRecord.model_construct(
            id=row.id,
            title=row.title,
            description=row.description,
            geometry_type=geometry_type,
            coordinates=row.coordinates,
            tax_rate=row.tax_rate,
            active=row.active,
            version=row.version,
            created_at=row.created_at,
            updated_at=row.updated_at,
            load_errors=problems,
        )

    @staticmethod
    def _to_values(record: GeometryRecord) -> dict[str, Any]:
        return {
            "title": record.title,
            "description": record.description,
            "geometry_type": record.geometry_type.value if record.geometry_type else None,
            "coordinates": record.coordinates,
            "tax_rate": record.tax_rate,
            "active": record.active,
        }

    def close(self) -> None:
        """Close the repository and dispose of the engine."""
        self.engine.dispose()

    def __enter__(self) -> "ZoneRepository":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit - close repository."""
        self.close()
