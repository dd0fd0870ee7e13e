"""Configuration and constants for the zone geometry repair engine.

This module defines the structural rules, repair policy and store
connection settings used by the engine.

Includes configuration for:
- Repair heuristics (RepairConfig with ZONEFIX_ prefix)
- Database connection (DatabaseSettings with DB_ prefix)

Configuration can be overridden via:
1. Environment variables (e.g., ZONEFIX_BUFFER_RADIUS_DEG=0.02, DB_URL=sqlite:///zones.db)
2. .env file in the current directory
3. Default values in code
"""

from dataclasses import dataclass

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class CoordinateBounds:
    """Structural limits a zone geometry must respect.

    These are NOT configurable - they describe the longitude/latitude
    coordinate space and the smallest closed ring.

    All attributes are immutable (frozen=True prevents modification).
    """

    MIN_LONGITUDE: float = -180.0
    MAX_LONGITUDE: float = 180.0
    MIN_LATITUDE: float = -90.0
    MAX_LATITUDE: float = 90.0

    # Three distinct corners plus the closing point
    MIN_RING_POINTS: int = 4

    # Rings shorter than this are never closed automatically
    MIN_CLOSABLE_POINTS: int = 3

    # Decimal places kept on synthesized coordinates
    COORDINATE_DECIMALS: int = 10


# Module-level singleton for coordinate bounds
BOUNDS = CoordinateBounds()


class RepairConfig(BaseSettings):
    """Repair policy for the reconciliation engine.

    Can be overridden via environment variables with ZONEFIX_ prefix:
    - ZONEFIX_BUFFER_RADIUS_DEG
    - ZONEFIX_WRAP_BARE_RINGS
    - ZONEFIX_MAX_WORKERS

    Attributes:
        buffer_radius_deg: Half-width of the square synthesised around a point zone
        wrap_bare_rings: Wrap an un-nested ring into a polygon container instead
            of reporting it as unsupported
        max_workers: Number of records reconciled concurrently (1 = sequential)
    """

    model_config = SettingsConfigDict(
        env_prefix="ZONEFIX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    buffer_radius_deg: float = Field(
        default=0.01,
        gt=0,
        le=1.0,
        description="Half-width of the buffered square in degrees (~1 km at mid-latitudes)",
    )
    wrap_bare_rings: bool = Field(
        default=False,
        description="Wrap bare rings into a single-ring polygon (off: report as unsupported)",
    )
    max_workers: int = Field(
        default=1, ge=1, le=32, description="Records reconciled concurrently"
    )


DEFAULT_REPAIR_CONFIG = RepairConfig()


class DatabaseSettings(BaseSettings):
    """Zone store connection configuration.

    Supports three modes:
    1. Explicit URL: DB_URL holds a full SQLAlchemy URL (tests, SQLite, local)
    2. Local development: PostgreSQL with a static password from DB_LOCAL_PASSWORD
    3. AWS RDS (IAM): short-lived tokens generated per connection

    Environment variables:
    - DB_URL: Full SQLAlchemy URL, overrides the individual parameters
    - DB_HOST: Database host (default: localhost)
    - DB_PORT: Database port (default: 5432)
    - DB_DATABASE: Database name (default: zones)
    - DB_USER: Database user (default: postgres)
    - DB_IAM_AUTHENTICATION: Enable IAM auth (default: false)
    - DB_LOCAL_PASSWORD: Static password for local dev (default: empty)
    - DB_SSL_MODE: SSL mode - require, verify-ca, verify-full (default: require)
    - DB_REGION: AWS region used to sign IAM tokens (default: eu-west-2)
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    url: str | None = Field(default=None, description="Full SQLAlchemy URL override")

    # Connection parameters
    host: str = Field(default="localhost", description="Database host")
    port: int = Field(default=5432, ge=1, le=65535, description="Database port")
    database: str = Field(default="zones", description="Database name")
    user: str = Field(default="postgres", description="Database user")

    # Authentication mode
    iam_authentication: bool = Field(
        default=False,
        description="Use IAM authentication for RDS",
    )
    local_password: str = Field(
        default="",
        description="Static password for local development",
    )

    ssl_mode: str = Field(
        default="require",
        description="SSL mode for IAM connections (require, verify-ca, verify-full)",
    )
    region: str = Field(default="eu-west-2", description="AWS region for IAM tokens")

    @field_validator("url")
    @classmethod
    def must_not_be_blank(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            msg = "DB_URL cannot be blank"
            raise ValueError(msg)
        return v

    @property
    def connection_url(self) -> str:
        """Build connection URL from individual parameters.

        Password is not included - it's injected by the engine factory
        (either static password or IAM token). An explicit DB_URL is
        returned unchanged.
        """
        if self.url:
            return self.url
        return f"postgresql://{self.user}@{self.host}:{self.port}/{self.database}"
