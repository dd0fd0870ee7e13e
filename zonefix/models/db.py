"""SQLAlchemy database model for the zone catalog.

Design approach:
- Coordinates stored as JSON (JSONB on PostgreSQL) rather than a PostGIS
  geometry column, because the catalog holds legacy rows that are not valid
  geometries and must still be readable
- Geometry type stored as a plain string, validated when the row is
  loaded into a GeometryRecord
- String primary keys (ids are opaque and assigned by the producer)
- Integer version column used as an optimistic concurrency token
- Timezone-aware timestamps with server-side defaults
"""

from datetime import datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""


def _new_id() -> str:
    return uuid4().hex


class Zone(Base):
    """A delivery zone row.

    Attributes:
        id: Opaque string primary key
        title: Zone label
        description: Optional free text
        geometry_type: Declared type (nullable: legacy rows may omit it)
        coordinates: Raw coordinates as JSON, any nesting
        tax_rate: Zone tax rate
        active: Whether the zone is eligible for lookups
        version: Incremented on every update
        created_at: Timestamp when record was created (server-side default)
        updated_at: Timestamp of the last update (server-side default)
    """

    __tablename__ = "zones"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)

    # Plain string: rows with an unknown type must still load
    geometry_type: Mapped[str | None] = mapped_column(String(16), nullable=True)

    # none_as_null: a missing geometry is SQL NULL, not the JSON literal null
    coordinates: Mapped[Any] = mapped_column(
        JSON(none_as_null=True).with_variant(JSONB(none_as_null=True), "postgresql"),
        nullable=True,
    )

    tax_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Zone(id={self.id}, title={self.title}, type={self.geometry_type})>"
