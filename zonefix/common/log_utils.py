"""Logging utilities for the zone reconciliation CLI.

Provides:
- configure_logging: dictConfig from logging.json / logging-dev.json with a
  basicConfig fallback
- ZoneContextFilter: adds the current zone id and run mode to log records
"""

import json
import logging
import logging.config
import os
from pathlib import Path

from zonefix.common.tracing import ctx_run_mode, ctx_zone_id

# Set ZONEFIX_LOG_FORMAT=json to get structured logs (e.g. when run as a scheduled task)
LOG_FORMAT_ENV = "ZONEFIX_LOG_FORMAT"
LOG_LEVEL_ENV = "ZONEFIX_LOG_LEVEL"


class ZoneContextFilter(logging.Filter):
    """Adds zone_id and run_mode fields to log records.

    Records logged outside a zone context get "-" so format strings that
    reference %(zone_id)s never fail.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.zone_id = ctx_zone_id.get() or "-"
        record.run_mode = ctx_run_mode.get() or "-"
        return True


def configure_logging() -> None:
    """Configure logging based on environment.

    Structured: uses logging.json (JSON lines, one object per record).
    Locally: uses logging-dev.json with a plain text format for readability.
    ZONEFIX_LOG_LEVEL overrides the root level of either.
    """
    structured = os.environ.get(LOG_FORMAT_ENV, "").lower() == "json"
    config_file = "logging.json" if structured else "logging-dev.json"
    config_path = Path(__file__).parent.parent.parent / config_file

    if config_path.exists():
        with open(config_path) as f:
            logging.config.dictConfig(json.load(f))
    else:
        # Fallback to basic config if file not found
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(zone_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
        for handler in logging.getLogger().handlers:
            handler.addFilter(ZoneContextFilter())

    level = os.environ.get(LOG_LEVEL_ENV)
    if level:
        logging.getLogger().setLevel(level.upper())
