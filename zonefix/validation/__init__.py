"""Validation and repair of zone geometry.

This module provides:
1. Format classification - structural shape of raw coordinates (classify)
2. Repair heuristics - point buffering, ring closure (plan_repair, apply_plan)
3. Geometry validation - diagnostics per zone, repairing in fix mode (GeometryValidator)
"""

from zonefix.validation.classifier import classify
from zonefix.validation.geometry import GeometryValidator, ValidationOutcome
from zonefix.validation.repair import (
    RepairAction,
    RepairPlan,
    apply_plan,
    buffer_point,
    close_ring,
    plan_repair,
)

__all__ = [
    "classify",
    "GeometryValidator",
    "ValidationOutcome",
    "RepairAction",
    "RepairPlan",
    "apply_plan",
    "buffer_point",
    "close_ring",
    "plan_repair",
]
