"""Structural shapes a zone's raw coordinates can take.

A ``Shape`` is produced once by the format classifier and matched downstream
by type; nothing after classification looks at the raw nesting again.
"""

from collections.abc import Iterator
from dataclasses import dataclass

Coordinate = tuple[float, float]
Ring = tuple[Coordinate, ...]


@dataclass(frozen=True)
class ScalarPoint:
    """A flat ``[lng, lat]`` pair."""

    point: Coordinate

    def pairs(self) -> Iterator[Coordinate]:
        yield self.point

    def to_coordinates(self) -> list[float]:
        return list(self.point)


@dataclass(frozen=True)
class SingleRing:
    """One level of nesting: a bare ring not wrapped in a polygon container."""

    points: Ring

    def pairs(self) -> Iterator[Coordinate]:
        yield from self.points

    def to_coordinates(self) -> list[list[float]]:
        return [list(p) for p in self.points]


@dataclass(frozen=True)
class NestedPolygon:
    """Two levels of nesting: a sequence of rings, outer ring first."""

    rings: tuple[Ring, ...]

    @property
    def outer(self) -> Ring:
        return self.rings[0]

    def pairs(self) -> Iterator[Coordinate]:
        for ring in self.rings:
            yield from ring

    def to_coordinates(self) -> list[list[list[float]]]:
        return [[list(p) for p in ring] for ring in self.rings]


@dataclass(frozen=True)
class Unrecognized:
    """Anything else: missing, not an array, wrong arity or too deep."""

    reason: str

    def pairs(self) -> Iterator[Coordinate]:
        return iter(())


Shape = ScalarPoint | SingleRing | NestedPolygon | Unrecognized


def shape_name(shape: Shape | None) -> str | None:
    """Return the display name of a shape (class name), or None."""
    return type(shape).__name__ if shape is not None else None


def is_closed(ring: Ring) -> bool:
    """Check the closed-ring invariant: first and last pair equal component-wise."""
    if not ring:
        return False
    first, last = ring[0], ring[-1]
    return first[0] == last[0] and first[1] == last[1]
