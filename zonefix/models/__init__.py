"""Domain models for zone geometry reconciliation."""

from zonefix.models.domain import (
    Diagnostic,
    GeometryRecord,
    Issue,
    RecordOutcome,
    RunSummary,
)

__all__ = [
    "GeometryRecord",
    "Issue",
    "Diagnostic",
    "RecordOutcome",
    "RunSummary",
]
