"""Enums shared by the zone models, the validator and the runner.

GeometryType values are persisted as-is in the zones table, so they keep the
GeoJSON spelling used by the records' producers.
"""

from enum import Enum, StrEnum


class GeometryType(StrEnum):
    """Declared geometry type of a zone."""

    POINT = "Point"
    POLYGON = "Polygon"


class IssueCode(StrEnum):
    """Diagnostic issue codes reported per zone."""

    INACTIVE_FLAG = "InactiveFlag"
    MISSING_GEOMETRY = "MissingGeometry"
    MISSING_COORDINATES = "MissingCoordinates"
    UNSUPPORTED_FORMAT = "UnsupportedFormat"
    TYPE_MISMATCH = "TypeMismatch"
    BARE_RING = "BareRing"
    OPEN_RING = "OpenRing"
    TOO_FEW_POINTS = "TooFewPoints"
    OUT_OF_RANGE = "OutOfRange"
    MALFORMED_RECORD = "MalformedRecord"


class DiagnosticStatus(StrEnum):
    """Final verdict for one zone."""

    VALID = "Valid"
    REPAIRED = "Repaired"
    INVALID = "Invalid"


class ValidationMode(Enum):
    """Whether the validator may repair what it finds."""

    FIX = "fix"
    VERIFY = "verify"


class RunMode(StrEnum):
    """Reconciliation pass modes, chosen by the caller."""

    APPLY = "apply"
    DRY_RUN = "dry-run"
    VERIFY = "verify"

    @property
    def validation_mode(self) -> ValidationMode:
        return ValidationMode.VERIFY if self is RunMode.VERIFY else ValidationMode.FIX

    @property
    def writes(self) -> bool:
        return self is RunMode.APPLY


class RecordState(StrEnum):
    """Per-record reconciliation states, visited in declaration order."""

    FETCHED = "Fetched"
    CLASSIFIED = "Classified"
    REPAIR_APPLIED = "RepairApplied"
    REPAIR_SKIPPED = "RepairSkipped"
    VALIDATED = "Validated"
    PERSISTED = "Persisted"
    REPORTED = "Reported"


class RecordPredicate(Enum):
    """Record selections supported by the zone store."""

    ALL = "all"
    ACTIVE_ONLY = "active"
