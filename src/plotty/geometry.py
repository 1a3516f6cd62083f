"""Axis-aligned rectangle model for plot perimeters.

All predicates are pure. The vertical extent of a perimeter is implicit: plots
always span the full build height of the world they live in.
"""

from __future__ import annotations

from dataclasses import dataclass

from plotty.errors import ValidationError

# Vanilla world border limit on both horizontal axes.
WORLD_BORDER = 30_000_000


@dataclass(frozen=True, slots=True)
class Point:
    """A horizontal block coordinate."""

    x: int
    z: int

    def __post_init__(self) -> None:
        for axis, value in (("x", self.x), ("z", self.z)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValidationError(f"Coordinate {axis} must be an integer, got {value!r}")


@dataclass(frozen=True, slots=True)
class Perimeter:
    """Two opposite corners of a rectangle, in any order."""

    a: Point
    b: Point

    @classmethod
    def from_coords(cls, x1: int, z1: int, x2: int, z2: int) -> Perimeter:
        return cls(Point(x1, z1), Point(x2, z2))

    def size(self) -> int:
        return abs(self.b.x - self.a.x) * abs(self.b.z - self.a.z)

    def corners(self) -> tuple[Point, Point, Point, Point]:
        """Return the stored corners followed by the two mixed ones."""
        return (
            self.a,
            self.b,
            Point(self.a.x, self.b.z),
            Point(self.b.x, self.a.z),
        )

    def normalize(self) -> Perimeter:
        return normalize(self)

    def contains_point(self, pt: Point) -> bool:
        return contains_point(self, pt)

    def intersects(self, other: Perimeter) -> bool:
        return intersects(self, other)

    def overlaps(self, other: Perimeter) -> bool:
        return overlaps(self, other)

    def validate(self) -> None:
        for corner in (self.a, self.b):
            for value in (corner.x, corner.z):
                if not -WORLD_BORDER <= value <= WORLD_BORDER:
                    raise ValidationError(
                        f"Coordinate {value} is outside of the world border (±{WORLD_BORDER})."
                    )


def normalize(p: Perimeter) -> Perimeter:
    """Order each axis independently so that ``a`` is the lesser corner.

    The resulting corners may mix values of both input corners.
    """
    min_x, max_x = sorted((p.a.x, p.b.x))
    min_z, max_z = sorted((p.a.z, p.b.z))
    return Perimeter(Point(min_x, min_z), Point(max_x, max_z))


def contains_point(p: Perimeter, pt: Point) -> bool:
    """Strict interior test; edges and corners are outside."""
    n = normalize(p)
    return n.a.x < pt.x < n.b.x and n.a.z < pt.z < n.b.z


def _intersects_unidirect(p: Perimeter, other: Perimeter) -> bool:
    return any(contains_point(p, corner) for corner in other.corners())


def intersects(p: Perimeter, other: Perimeter) -> bool:
    """Corner containment in both directions.

    Rectangles that only share an edge or a corner do not intersect. Overlaps
    where no corner of either rectangle lies strictly inside the other are
    missed as well, e.g. two rectangles crossing like a plus sign or two
    identical rectangles; see :func:`overlaps`.
    """
    return _intersects_unidirect(p, other) or _intersects_unidirect(other, p)


def overlaps(p: Perimeter, other: Perimeter) -> bool:
    """Open-interval overlap on both axes.

    Reports every overlap with a positive area, including the cases
    :func:`intersects` misses.
    """
    n, o = normalize(p), normalize(other)
    return n.a.x < o.b.x and o.a.x < n.b.x and n.a.z < o.b.z and o.a.z < n.b.z
