"""Structural classification of raw zone coordinates.

The decision is purely structural: nesting depth (down to two levels) and
element arity. No attempt is made to interpret what the producer meant.
"""

from collections.abc import Sequence
from numbers import Real
from typing import Any

from zonefix.models.enums import GeometryType
from zonefix.models.geometry import (
    Coordinate,
    NestedPolygon,
    Shape,
    ScalarPoint,
    SingleRing,
    Unrecognized,
)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, str | bytes)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a coordinate
    return isinstance(value, Real) and not isinstance(value, bool)


def _as_pair(value: Any) -> Coordinate | None:
    """Return value as a coordinate pair, or None if it is not exactly two numbers."""
    if _is_sequence(value) and len(value) == 2 and all(_is_number(v) for v in value):
        return (value[0], value[1])
    return None


def classify(raw_coordinates: Any, declared_type: GeometryType | None = None) -> Shape:
    """Determine the structural shape of raw coordinates.

    Args:
        raw_coordinates: Coordinates exactly as stored
        declared_type: The record's declared geometry type; only used to make
            Unrecognized reasons more specific, never to change the result

    Returns:
        ScalarPoint, SingleRing, NestedPolygon or Unrecognized
    """
    label = declared_type.value if declared_type else "geometry"

    if raw_coordinates is None:
        return Unrecognized(f"{label} coordinates are missing")
    if not _is_sequence(raw_coordinates):
        return Unrecognized(
            f"{label} coordinates are not an array ({type(raw_coordinates).__name__})"
        )
    if len(raw_coordinates) == 0:
        return Unrecognized(f"{label} coordinates are an empty array")

    point = _as_pair(raw_coordinates)
    if point is not None:
        return ScalarPoint(point)

    if all(_is_number(v) for v in raw_coordinates):
        return Unrecognized(
            f"{label} coordinates are a flat array of {len(raw_coordinates)} numbers"
        )

    pairs = [_as_pair(v) for v in raw_coordinates]
    if all(p is not None for p in pairs):
        return SingleRing(tuple(pairs))

    if not all(_is_sequence(v) for v in raw_coordinates):
        return Unrecognized(f"{label} coordinates mix arrays and scalars")

    rings = []
    for index, ring in enumerate(raw_coordinates):
        if len(ring) == 0:
            return Unrecognized(f"{label} ring {index} is empty")
        ring_pairs = [_as_pair(v) for v in ring]
        if any(p is None for p in ring_pairs):
            if any(_is_sequence(v) and any(_is_sequence(c) for c in v) for v in ring):
                return Unrecognized(f"{label} coordinates are nested deeper than two levels")
            return Unrecognized(f"{label} ring {index} has elements that are not [lng, lat] pairs")
        rings.append(tuple(ring_pairs))

    return NestedPolygon(tuple(rings))
