"""Topological building blocks of a :class:`~hullsplit.hull.Hull`.

Points and edges compare by identity.  Two triangles that share a side
share the same :class:`Edge` object, and every vertex sitting at the same
position refers to the same :class:`Point`; lookups during a split are
keyed on these objects rather than on coordinates.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from hullsplit.geometry_utils import Vec3, sub


@dataclass(eq=False)
class Point:
    """A deduplicated position shared by every vertex located there."""

    position: Vec3


@dataclass(eq=False)
class Edge:
    """Ordered pair of points; ``line`` runs from ``point0`` to ``point1``."""

    point0: Point
    point1: Point
    line: Vec3 = field(init=False)

    def __post_init__(self) -> None:
        self.line = sub(self.point1.position, self.point0.position)

    def joins(self, a: Point, b: Point) -> bool:
        """Return ``True`` if the edge connects ``a`` and ``b`` in either order."""

        return (self.point0 is a and self.point1 is b) or (self.point0 is b and self.point1 is a)


@dataclass(frozen=True)
class EdgeHit:
    """Where the cutting plane crosses an edge during one split.

    ``scalar`` runs from ``edge.point0`` towards ``edge.point1``.
    ``split_a`` and ``split_b`` start at the new cut point of their side
    and end at the original endpoint lying on that side.
    """

    scalar: float
    split_a: Edge
    split_b: Edge


@dataclass(frozen=True)
class Triangle:
    """Three vertex indices with their points and edges in winding order.

    ``edge0`` joins ``point0``/``point1``, ``edge1`` joins
    ``point1``/``point2`` and ``edge2`` joins ``point2``/``point0``.
    """

    vertex0: int
    vertex1: int
    vertex2: int
    point0: Point
    point1: Point
    point2: Point
    edge0: Edge
    edge1: Edge
    edge2: Edge

    @property
    def vertices(self) -> tuple[int, int, int]:
        return (self.vertex0, self.vertex1, self.vertex2)

    @property
    def points(self) -> tuple[Point, Point, Point]:
        return (self.point0, self.point1, self.point2)

    @property
    def edges(self) -> tuple[Edge, Edge, Edge]:
        return (self.edge0, self.edge1, self.edge2)

    def reindexed(self, mapping) -> "Triangle":
        """Return a copy whose vertex indices are looked up in ``mapping``."""

        return Triangle(mapping[self.vertex0], mapping[self.vertex1], mapping[self.vertex2],
                        self.point0, self.point1, self.point2,
                        self.edge0, self.edge1, self.edge2)


__all__ = ['Point', 'Edge', 'EdgeHit', 'Triangle']
