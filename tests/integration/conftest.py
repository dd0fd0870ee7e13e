"""Integration test fixtures for the SQLAlchemy zone repository."""

import pytest
from sqlalchemy.engine import Engine

from zonefix.config import DatabaseSettings
from zonefix.models.db import Base, Zone
from zonefix.models.enums import GeometryType
from zonefix.repositories.engine import create_db_engine
from zonefix.repositories.repository import ZoneRepository


@pytest.fixture(scope="function")
def test_engine() -> Engine:
    """Create an in-memory SQLite engine with the zones table.

    Function-scoped: every test starts from an empty database.
    """
    engine = create_db_engine(DatabaseSettings(url="sqlite://"))
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def repository(test_engine: Engine) -> ZoneRepository:
    """Create ZoneRepository instance bound to the test engine."""
    return ZoneRepository(test_engine)


@pytest.fixture(scope="function")
def sample_zones(repository: ZoneRepository) -> list[str]:
    """Load a small zone catalog covering the common defects.

    Returns:
        Zone ids in insertion order
    """
    zones = [
        # Valid closed polygon
        Zone(
            id="zone-a",
            title="Centre",
            geometry_type=GeometryType.POLYGON,
            coordinates=[[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]],
            tax_rate=0.1,
        ),
        # Point stored on a polygon zone
        Zone(
            id="zone-b",
            title="Depot",
            geometry_type=GeometryType.POLYGON,
            coordinates=[10, 20],
        ),
        # Open ring, inactive
        Zone(
            id="zone-c",
            title="North",
            geometry_type=GeometryType.POLYGON,
            coordinates=[[[0, 0], [2, 0], [2, 2], [0, 2]]],
            active=False,
        ),
        # No coordinates at all
        Zone(id="zone-d", title="Legacy", geometry_type=None, coordinates=None),
    ]

    with repository.session() as session, session.begin():
        session.add_all(zones)

    return [zone.id for zone in zones]


@pytest.fixture(scope="function")
def malformed_zones(repository: ZoneRepository, sample_zones: list[str]) -> list[str]:
    """Add legacy rows that break the record model next to the sample zones.

    Returns:
        Ids of the malformed rows
    """
    closed = [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]]
    zones = [
        Zone(id="zone-e", title="", geometry_type=GeometryType.POLYGON, coordinates=closed),
        Zone(
            id="zone-f",
            title="Old tariff",
            geometry_type=GeometryType.POLYGON,
            coordinates=closed,
            tax_rate=-1.0,
        ),
        Zone(id="zone-g", title="Hand entered", geometry_type="polygon", coordinates=closed),
    ]

    with repository.session() as session, session.begin():
        session.add_all(zones)

    return [zone.id for zone in zones]
