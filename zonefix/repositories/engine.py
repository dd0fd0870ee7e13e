"""SQLAlchemy engine factory for zone store connection management.

Supports an explicit URL (SQLite or any SQLAlchemy URL), local PostgreSQL with
a static password, and AWS RDS with IAM authentication (short-lived tokens).
"""

import logging

import boto3
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from zonefix.config import DatabaseSettings

logger = logging.getLogger(__name__)

# Token lifetime is 15 minutes; recycle connections at 10 minutes
# to ensure fresh tokens before expiry
IAM_TOKEN_POOL_RECYCLE_SECONDS = 600


def _get_iam_auth_token(settings: DatabaseSettings) -> str:
    """Generate a short-lived IAM authentication token for RDS.

    Args:
        settings: Database settings with host, port, user and region.

    Returns:
        Short-lived authentication token (valid for 15 minutes).
    """
    client = boto3.client("rds", region_name=settings.region)
    token = client.generate_db_auth_token(
        DBHostname=settings.host,
        Port=settings.port,
        DBUsername=settings.user,
        Region=settings.region,
    )
    logger.debug("Generated IAM auth token for RDS connection")
    return token


def create_db_engine(
    settings: DatabaseSettings | None = None,
    *,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False,
) -> Engine:
    """Create a SQLAlchemy engine from database settings.

    Supports three modes:
    1. DB_URL set: the URL is used as-is (in-memory SQLite gets a StaticPool
       so every session sees the same database)
    2. Local development: static password from DB_LOCAL_PASSWORD
    3. IAM authentication: a fresh RDS token injected for each new connection,
       SSL required, pool recycled every 10 minutes

    Args:
        settings: Database connection settings. If None, uses default settings.
        pool_size: Number of connections to keep in the pool (default: 5)
        max_overflow: Max overflow connections beyond pool_size (default: 10)
        echo: Enable SQLAlchemy query logging (default: False)

    Returns:
        Configured SQLAlchemy Engine instance
    """
    if settings is None:
        settings = DatabaseSettings()

    base_url = settings.connection_url

    if settings.url:
        if base_url.startswith("sqlite"):
            kwargs: dict = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in base_url or base_url.rstrip("/") == "sqlite:":
                kwargs["poolclass"] = StaticPool
            engine = create_engine(base_url, echo=echo, **kwargs)
        else:
            engine = create_engine(
                base_url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
                echo=echo,
            )
        logger.info("Created engine from explicit DB_URL")
        return engine

    if settings.iam_authentication:
        engine = create_engine(
            base_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_recycle=IAM_TOKEN_POOL_RECYCLE_SECONDS,
            pool_pre_ping=True,  # Verify connections before use
            echo=echo,
            connect_args={"sslmode": settings.ssl_mode},
        )

        # Register event listener to inject fresh IAM token for each connection
        @event.listens_for(engine, "do_connect")
        def provide_token(_dialect, _conn_rec, _cargs, cparams):
            """Inject fresh IAM token before each connection."""
            cparams["password"] = _get_iam_auth_token(settings)

        logger.info(
            "Created engine with IAM authentication (pool_recycle=%ds)",
            IAM_TOKEN_POOL_RECYCLE_SECONDS,
        )
        return engine

    # Local development: include static password in URL
    url_with_password = base_url
    if settings.local_password:
        url_with_password = base_url.replace(
            f"{settings.user}@",
            f"{settings.user}:{settings.local_password}@",
        )

    engine = create_engine(
        url_with_password,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        echo=echo,
    )
    logger.info("Created engine with local authentication")
    return engine
