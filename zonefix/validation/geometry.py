"""Geometry validation for zone records."""

import logging
import math
from dataclasses import dataclass
from typing import Any

from zonefix.config import BOUNDS, DEFAULT_REPAIR_CONFIG, RepairConfig
from zonefix.errors import RepairImpossible
from zonefix.models.domain import Diagnostic, GeometryRecord, Issue
from zonefix.models.enums import GeometryType, IssueCode, ValidationMode
from zonefix.models.geometry import (
    NestedPolygon,
    ScalarPoint,
    Shape,
    Unrecognized,
    is_closed,
    shape_name,
)
from zonefix.validation.classifier import classify
from zonefix.validation.repair import RepairAction, apply_plan, plan_repair

logger = logging.getLogger(__name__)

MANUAL_OVERRIDE_FIX = "coordinates: manual override"


@dataclass(frozen=True)
class ValidationOutcome:
    """Validator result for one zone.

    Attributes:
        record: Working copy after validation; the input record itself when
            nothing was changed (always the case in verify mode)
        diagnostic: Status, issues and applied fixes
    """

    record: GeometryRecord
    diagnostic: Diagnostic

    @property
    def changed(self) -> bool:
        return bool(self.diagnostic.fixes)


class GeometryValidator:
    """Validates, and in fix mode repairs, the geometry of a zone record.

    Checks, in order:
    - Record loaded cleanly (malformed rows are reported, never repaired)
    - Active flag (housekeeping fix, independent of geometry)
    - Geometry type and coordinates present
    - Structural format (classifier), unsupported formats are terminal
    - Point zones declared as polygons (buffered in fix mode)
    - Ring closure (closed in fix mode)
    - Coordinate range (reported only, never clamped)

    The validator is stateless: one instance can serve any number of records
    concurrently.
    """

    def __init__(self, config: RepairConfig = DEFAULT_REPAIR_CONFIG):
        self.config = config

    def validate(
        self, record: GeometryRecord, mode: ValidationMode = ValidationMode.FIX
    ) -> ValidationOutcome:
        """Validate a zone record.

        Args:
            record: Zone as fetched from the store (never modified)
            mode: FIX applies repairs to a working copy, VERIFY only reports

        Returns:
            ValidationOutcome with the (possibly repaired) working copy
        """
        if record.load_errors:
            return self._reject_malformed(record)

        fix = mode is ValidationMode.FIX
        issues: list[Issue] = []
        fixes: list[str] = []
        updates: dict[str, Any] = {}

        if not record.active:
            issues.append(
                Issue(
                    code=IssueCode.INACTIVE_FLAG,
                    message="Zone is inactive and excluded from lookups",
                    field="active",
                    resolved=fix,
                )
            )
            if fix:
                updates["active"] = True
                fixes.append("isActive: true")

        if record.geometry_type is None:
            issues.append(
                Issue(
                    code=IssueCode.MISSING_GEOMETRY,
                    message="Geometry type is missing - cannot fix automatically",
                    field="geometry_type",
                )
            )
            return self._finish(record, updates, issues, fixes, None)

        if record.coordinates is None:
            issues.append(
                Issue(
                    code=IssueCode.MISSING_COORDINATES,
                    message="Coordinates are missing - cannot fix automatically",
                    field="coordinates",
                )
            )
            return self._finish(record, updates, issues, fixes, None)

        shape = classify(record.coordinates, record.geometry_type)

        if record.geometry_type is GeometryType.POINT:
            return self._validate_point(record, shape, updates, issues, fixes)

        try:
            plan = plan_repair(shape, self.config)
        except RepairImpossible as e:
            issues.append(Issue(code=e.code, message=e.reason, field="coordinates"))
            return self._finish(record, updates, issues, fixes, shape)

        for action in plan.actions:
            issues.append(self._issue_for(action, plan.open_rings, resolved=fix))

        if fix and plan.needed:
            repaired = apply_plan(plan, self.config)
            fixes.extend(action.value for action in plan.actions)
            updates["coordinates"] = repaired.to_coordinates()
            updates["geometry_type"] = GeometryType.POLYGON
            # Re-derive from the repaired coordinates rather than trusting the plan
            shape = classify(updates["coordinates"], GeometryType.POLYGON)
            logger.debug(f"Zone {record.id}: applied {', '.join(fixes)}")

        if fix and isinstance(shape, NestedPolygon):
            still_open = [i for i, ring in enumerate(shape.rings) if not is_closed(ring)]
            if still_open:
                issues.append(
                    Issue(
                        code=IssueCode.OPEN_RING,
                        message=f"Rings {still_open} are still open after repair",
                        field="coordinates",
                    )
                )

        issues.extend(self._range_issues(shape))
        return self._finish(record, updates, issues, fixes, shape)

    def validate_override(
        self, record: GeometryRecord, coordinates: Any
    ) -> ValidationOutcome:
        """Validate caller-supplied coordinates replacing a zone's geometry.

        The caller is the authority on the geometry, so no heuristic runs:
        the coordinates must already be a polygon with closed rings.

        Args:
            record: Zone as fetched from the store
            coordinates: Replacement coordinates (decoded JSON)

        Returns:
            ValidationOutcome whose record carries exactly the supplied coordinates
        """
        if record.load_errors:
            return self._reject_malformed(record)

        issues: list[Issue] = []
        shape = classify(coordinates, GeometryType.POLYGON)

        if not isinstance(shape, NestedPolygon):
            if isinstance(shape, Unrecognized):
                reason = shape.reason
            else:
                reason = f"expected polygon coordinates [[[lng, lat], ...]], got {shape_name(shape)}"
            issues.append(
                Issue(code=IssueCode.UNSUPPORTED_FORMAT, message=reason, field="coordinates")
            )
            return self._finish(record, {}, issues, [], shape)

        for index, ring in enumerate(shape.rings):
            if not is_closed(ring):
                issues.append(
                    Issue(
                        code=IssueCode.OPEN_RING,
                        message=f"Ring {index} is not closed (first point != last point)",
                        field="coordinates",
                    )
                )
            elif len(ring) < BOUNDS.MIN_RING_POINTS:
                issues.append(
                    Issue(
                        code=IssueCode.TOO_FEW_POINTS,
                        message=(
                            f"Ring {index} has {len(ring)} points, "
                            f"at least {BOUNDS.MIN_RING_POINTS} required"
                        ),
                        field="coordinates",
                    )
                )

        if issues:
            return self._finish(record, {}, issues, [], shape)

        updates = {"coordinates": coordinates, "geometry_type": GeometryType.POLYGON}
        return self._finish(record, updates, issues, [MANUAL_OVERRIDE_FIX], shape)

    def _validate_point(
        self,
        record: GeometryRecord,
        shape: Shape,
        updates: dict[str, Any],
        issues: list[Issue],
        fixes: list[str],
    ) -> ValidationOutcome:
        """Point zones must carry exactly one [lng, lat] pair."""
        if isinstance(shape, ScalarPoint):
            issues.extend(self._range_issues(shape))
        else:
            issues.append(
                Issue(
                    code=IssueCode.TYPE_MISMATCH,
                    message=f"Point zone carries {shape_name(shape)} coordinates, expected [lng, lat]",
                    field="geometry_type",
                )
            )
        return self._finish(record, updates, issues, fixes, shape)

    def _reject_malformed(self, record: GeometryRecord) -> ValidationOutcome:
        """Records that failed to load are reported as they are and never repaired."""
        issues = [
            Issue(
                code=IssueCode.MALFORMED_RECORD,
                message=f"Stored record is malformed - {problem}",
                field=problem.split(":", 1)[0] or None,
            )
            for problem in record.load_errors
        ]
        return self._finish(record, {}, issues, [], None)

    @staticmethod
    def _issue_for(action: RepairAction, open_rings: tuple[int, ...], resolved: bool) -> Issue:
        if action is RepairAction.BUFFER_POINT:
            return Issue(
                code=IssueCode.TYPE_MISMATCH,
                message="Polygon zone carries a single point",
                field="coordinates",
                resolved=resolved,
            )
        if action is RepairAction.WRAP_RING:
            return Issue(
                code=IssueCode.BARE_RING,
                message="Ring is not wrapped in a polygon container",
                field="coordinates",
                resolved=resolved,
            )
        return Issue(
            code=IssueCode.OPEN_RING,
            message=f"Rings {list(open_rings)} are not closed (first point != last point)",
            field="coordinates",
            resolved=resolved,
        )

    @staticmethod
    def _range_issues(shape: Shape) -> list[Issue]:
        """Report pairs outside lng [-180, 180] / lat [-90, 90] or not finite."""
        bad = [
            (lng, lat)
            for lng, lat in shape.pairs()
            if not (
                math.isfinite(lng)
                and math.isfinite(lat)
                and BOUNDS.MIN_LONGITUDE <= lng <= BOUNDS.MAX_LONGITUDE
                and BOUNDS.MIN_LATITUDE <= lat <= BOUNDS.MAX_LATITUDE
            )
        ]
        if not bad:
            return []
        return [
            Issue(
                code=IssueCode.OUT_OF_RANGE,
                message=f"{len(bad)} coordinate pair(s) out of range, first: [{bad[0][0]}, {bad[0][1]}]",
                field="coordinates",
            )
        ]

    @staticmethod
    def _finish(
        record: GeometryRecord,
        updates: dict[str, Any],
        issues: list[Issue],
        fixes: list[str],
        shape: Shape | None,
    ) -> ValidationOutcome:
        working = record.model_copy(update=updates) if updates else record
        return ValidationOutcome(
            record=working,
            diagnostic=Diagnostic.from_issues(issues, fixes, shape_name(shape)),
        )
