"""Deterministic repair heuristics for zone geometry.

Every function here is pure: the same shape always yields the same repaired
shape, and nothing other than the coordinates is ever touched.

Heuristics:
- Point buffering: a lone [lng, lat] becomes a small square polygon
- Ring closure: an open ring gets a copy of its first point appended
- Bare ring wrapping: only when explicitly enabled (RepairConfig.wrap_bare_rings)
"""

from dataclasses import dataclass, field
from enum import StrEnum

from zonefix.config import BOUNDS, DEFAULT_REPAIR_CONFIG, RepairConfig
from zonefix.errors import RepairImpossible
from zonefix.models.enums import IssueCode
from zonefix.models.geometry import (
    Coordinate,
    NestedPolygon,
    Ring,
    ScalarPoint,
    Shape,
    SingleRing,
    Unrecognized,
    is_closed,
)


class RepairAction(StrEnum):
    """Repairs the planner can schedule, with their fix labels."""

    BUFFER_POINT = "coordinates: Point -> Polygon"
    WRAP_RING = "coordinates: Ring -> Polygon"
    CLOSE_RING = "closed polygon"


@dataclass(frozen=True)
class RepairPlan:
    """Repairs needed to turn a shape into a valid NestedPolygon.

    Attributes:
        shape: The classified shape the plan applies to
        actions: Repairs to run, in order (empty when nothing is needed)
        open_rings: Indices of rings that will be closed
    """

    shape: Shape
    actions: tuple[RepairAction, ...] = ()
    open_rings: tuple[int, ...] = field(default=())

    @property
    def needed(self) -> bool:
        return bool(self.actions)


def _rounded(value: float) -> float:
    return round(value, BOUNDS.COORDINATE_DECIMALS)


def buffer_point(
    point: Coordinate, radius: float = DEFAULT_REPAIR_CONFIG.buffer_radius_deg
) -> NestedPolygon:
    """Synthesize a closed square ring of half-width ``radius`` around a point.

    Corner order is SW, SE, NE, NW, SW. Corners are rounded to
    BOUNDS.COORDINATE_DECIMALS places so the result does not carry float noise.

    Args:
        point: (lng, lat) pair
        radius: Half-width in degrees

    Returns:
        Single-ring NestedPolygon with 5 points
    """
    lng, lat = point
    west, east = _rounded(lng - radius), _rounded(lng + radius)
    south, north = _rounded(lat - radius), _rounded(lat + radius)
    ring = ((west, south), (east, south), (east, north), (west, north), (west, south))
    return NestedPolygon((ring,))


def close_ring(ring: Ring) -> Ring:
    """Append a copy of the first point when the ring is open.

    Rings that are already closed, or too short to describe an area, are
    returned unchanged. Interior points are never reordered or deduplicated.
    """
    if len(ring) < BOUNDS.MIN_CLOSABLE_POINTS or is_closed(ring):
        return ring
    return ring + (ring[0],)


def close_polygon(polygon: NestedPolygon) -> NestedPolygon:
    """Close every open ring of a polygon."""
    return NestedPolygon(tuple(close_ring(ring) for ring in polygon.rings))


def wrap_ring(ring: SingleRing) -> NestedPolygon:
    """Wrap a bare ring into a single-ring polygon container."""
    return NestedPolygon((ring.points,))


def _ring_problems(rings: tuple[Ring, ...]) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """Split ring indices into (closable open rings, rings too short to be valid)."""
    open_rings = []
    short_rings = []
    for index, ring in enumerate(rings):
        closed = is_closed(ring)
        if len(ring) < BOUNDS.MIN_CLOSABLE_POINTS or (
            closed and len(ring) < BOUNDS.MIN_RING_POINTS
        ):
            short_rings.append(index)
        elif not closed:
            open_rings.append(index)
    return tuple(open_rings), tuple(short_rings)


def plan_repair(shape: Shape, config: RepairConfig = DEFAULT_REPAIR_CONFIG) -> RepairPlan:
    """Decide which heuristics a shape needs to become a valid polygon.

    Args:
        shape: Classified coordinates of a Polygon zone
        config: Repair policy

    Returns:
        RepairPlan (with no actions when the shape is already valid)

    Raises:
        RepairImpossible: For Unrecognized shapes, bare rings of two or more
            points (unless wrapping is enabled) and rings too short to close
    """
    if isinstance(shape, Unrecognized):
        raise RepairImpossible(shape.reason)

    if isinstance(shape, ScalarPoint):
        return RepairPlan(shape, (RepairAction.BUFFER_POINT,))

    if isinstance(shape, SingleRing):
        if len(shape.points) == 1:
            return RepairPlan(shape, (RepairAction.BUFFER_POINT,))
        if not config.wrap_bare_rings:
            raise RepairImpossible(
                f"bare ring of {len(shape.points)} points is not wrapped in a polygon "
                "container; the intended nesting cannot be inferred"
            )
        open_rings, short_rings = _ring_problems((shape.points,))
        if short_rings:
            raise RepairImpossible(
                f"bare ring of {len(shape.points)} points is too short to wrap",
                IssueCode.TOO_FEW_POINTS,
            )
        actions = (RepairAction.WRAP_RING,)
        if open_rings:
            actions += (RepairAction.CLOSE_RING,)
        return RepairPlan(shape, actions, open_rings)

    if isinstance(shape, NestedPolygon):
        open_rings, short_rings = _ring_problems(shape.rings)
        if short_rings:
            sizes = ", ".join(f"ring {i}: {len(shape.rings[i])}" for i in short_rings)
            raise RepairImpossible(
                f"rings need at least {BOUNDS.MIN_RING_POINTS} points when closed ({sizes})",
                IssueCode.TOO_FEW_POINTS,
            )
        if open_rings:
            return RepairPlan(shape, (RepairAction.CLOSE_RING,), open_rings)
        return RepairPlan(shape)

    msg = f"Unhandled shape type: {type(shape).__name__}"
    raise TypeError(msg)


def apply_plan(plan: RepairPlan, config: RepairConfig = DEFAULT_REPAIR_CONFIG) -> NestedPolygon:
    """Run the planned heuristics and return the repaired polygon.

    Raises:
        ValueError: If the plan leaves the shape something other than a polygon
    """
    shape = plan.shape
    for action in plan.actions:
        if action is RepairAction.BUFFER_POINT:
            point = shape.point if isinstance(shape, ScalarPoint) else shape.points[0]
            shape = buffer_point(point, config.buffer_radius_deg)
        elif action is RepairAction.WRAP_RING:
            shape = wrap_ring(shape)
        elif action is RepairAction.CLOSE_RING:
            shape = close_polygon(shape)

    if not isinstance(shape, NestedPolygon):
        msg = f"Repair plan left a {type(shape).__name__}, expected NestedPolygon"
        raise ValueError(msg)
    return shape
