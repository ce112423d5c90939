"""Ear clipping triangulation of planar boundary loops.

:class:`Triangulation` fills one or more closed loops lying in a common
plane.  Outer loops wind counter-clockwise about the plane normal and
holes wind clockwise.  A hole is fused into the loop that surrounds it
the first time it shows up inside a candidate ear: a pair of coincident,
opposite bridge edges splices the hole's vertices into the outer loop,
after which clipping carries on as for a simple polygon.

Besides the triangles themselves the triangulator reports which edges
each triangle is bounded by, so callers can reuse their own edge objects
for the boundary and create new ones only for the interior diagonals.

The helper :func:`triangulate_polygon` wraps all of this for polygons
given as plain point lists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from hullsplit.geometry_utils import (
    Vec3,
    cross,
    dist,
    dot,
    epsilon,
    mag,
    normalize,
    point_in_triangle,
    point_on_segment,
    polygon_area,
    segments_cross,
    sub,
    to_vec3,
)

logger = logging.getLogger(__name__)

EdgePair = Tuple[int, int]
IndexTriple = Tuple[int, int, int]


@dataclass
class TriangulationResult:
    """Output of :meth:`Triangulation.fill`.

    ``triangles`` are point index triples wound counter-clockwise about
    the plane normal.  ``triangle_edges`` is parallel to it: entry ``k``
    of a triple is the index of the edge joining triangle vertex ``k``
    to vertex ``k + 1``, counted over the input edges followed by
    ``new_edges``.
    """

    new_edges: List[EdgePair] = field(default_factory=list)
    triangles: List[IndexTriple] = field(default_factory=list)
    triangle_edges: List[IndexTriple] = field(default_factory=list)


@dataclass(eq=False)
class _Loop:
    # edges[k] runs from points[k] to points[k + 1]
    points: List[int]
    edges: List[int]
    reflex: List[bool]


class Triangulation:
    """Fill closed loops given as points plus directed ``(start, end)`` edges."""

    def __init__(self, points: Sequence[Sequence[float]], edges: Iterable[Sequence[int]],
                 normal: Sequence[float], tol: float = epsilon) -> None:
        unit = normalize(to_vec3(normal))
        if unit is None:
            raise ValueError("triangulation normal must be non-zero")
        self.points: List[Vec3] = [to_vec3(p) for p in points]
        self.input_edges: List[EdgePair] = [(int(e[0]), int(e[1])) for e in edges]
        for start, end in self.input_edges:
            if not (0 <= start < len(self.points) and 0 <= end < len(self.points)):
                raise ValueError(f"edge ({start}, {end}) references a missing point")
        self.normal = unit
        self.tol = tol

        self.edges: List[EdgePair] = []
        self._holes: List[_Loop] = []
        self._bridges: List[Tuple[int, int]] = []
        self._triangles: List[IndexTriple] = []
        self._triangle_edges: List[IndexTriple] = []

    def fill(self) -> TriangulationResult:
        """Triangulate every loop and return the resulting triangles."""

        self.edges = list(self.input_edges)
        self._bridges = []
        self._triangles = []
        self._triangle_edges = []

        outers: List[_Loop] = []
        self._holes = []
        for loop in self._locate_loops():
            area = polygon_area([self.points[p] for p in loop.points], self.normal)
            if area < 0.0:
                self._holes.append(loop)
            else:
                outers.append(loop)

        for loop in outers:
            self._triangulate(loop)

        if self._holes:
            logger.debug("%d hole loop(s) not enclosed by any filled loop", len(self._holes))
        return self._output()

    # -- loop preparation -------------------------------------------------

    def _locate_loops(self) -> List[_Loop]:
        starting: Dict[int, List[int]] = {}
        for i, (start, _) in enumerate(self.edges):
            starting.setdefault(start, []).append(i)

        used = [False] * len(self.edges)
        loops: List[_Loop] = []
        for first in range(len(self.edges)):
            if used[first]:
                continue
            used[first] = True
            chain = [first]
            start, current = self.edges[first]
            closed = True
            while current != start:
                following = next((i for i in starting.get(current, ()) if not used[i]), None)
                if following is None:
                    closed = False
                    break
                used[following] = True
                chain.append(following)
                current = self.edges[following][1]

            if not closed:
                logger.debug("ignoring open chain of %d edges", len(chain))
                continue
            if len(chain) < 3:
                logger.debug("ignoring degenerate loop of %d edges", len(chain))
                continue

            loop = _Loop(points=[self.edges[i][0] for i in chain], edges=chain,
                         reflex=[False] * len(chain))
            for k in range(len(chain)):
                loop.reflex[k] = self._is_reflex(loop, k)
            loops.append(loop)
        return loops

    def _is_reflex(self, loop: _Loop, k: int) -> bool:
        count = len(loop.points)
        previous = self.points[loop.points[k - 1]]
        current = self.points[loop.points[k]]
        following = self.points[loop.points[(k + 1) % count]]
        incoming = sub(current, previous)
        outgoing = sub(following, current)
        turn = dot(cross(incoming, outgoing), self.normal)
        return turn <= self.tol * mag(incoming) * mag(outgoing)

    # -- ear clipping -----------------------------------------------------

    def _triangulate(self, loop: _Loop) -> None:
        index = 0
        failures = 0
        while len(loop.points) >= 3:
            count = len(loop.points)
            if failures >= count:
                logger.debug("no ear left in loop of %d vertices; leaving it unfilled", count)
                return
            i = index % count
            if loop.reflex[i] or self._overlaps_reflex(loop, i):
                index = i + 1
                failures += 1
                continue

            merged = self._merge_hole(loop, i)
            if merged is None:
                self._clip(loop, i)
                index = max(i - 1, 0)
                failures = 0
            elif merged:
                index = i
                failures = 0
            else:
                index = i + 1
                failures += 1

    def _ear(self, loop: _Loop, i: int) -> IndexTriple:
        count = len(loop.points)
        return loop.points[i - 1], loop.points[i], loop.points[(i + 1) % count]

    def _overlaps_reflex(self, loop: _Loop, i: int) -> bool:
        ear = self._ear(loop, i)
        t0, t1, t2 = (self.points[p] for p in ear)
        for k, p in enumerate(loop.points):
            if not loop.reflex[k] or p in ear:
                continue
            position = self.points[p]
            if point_in_triangle(position, t0, t1, t2, strict=True, tol=self.tol):
                return True
            # a vertex on the new diagonal would be cut off into a sliver
            if point_on_segment(position, t0, t2, tol=self.tol):
                return True
        return False

    def _clip(self, loop: _Loop, i: int) -> None:
        count = len(loop.points)
        previous = (i - 1) % count
        following = (i + 1) % count
        p_prev, p_ear, p_next = self._ear(loop, i)

        if count == 3:
            cross_edge = loop.edges[following]
        else:
            cross_edge = self._add_edge(p_prev, p_next)

        self._triangles.append((p_prev, p_ear, p_next))
        self._triangle_edges.append((loop.edges[previous], loop.edges[i], cross_edge))

        loop.edges[previous] = cross_edge
        del loop.points[i]
        del loop.edges[i]
        del loop.reflex[i]

        remaining = len(loop.points)
        if remaining >= 3:
            for k in ((i - 1) % remaining, i % remaining):
                loop.reflex[k] = self._is_reflex(loop, k)

    # -- hole fusion ------------------------------------------------------

    def _merge_hole(self, loop: _Loop, i: int) -> Optional[bool]:
        """Fuse a hole poking into the ear at ``i``.

        Returns ``None`` when no hole vertex lies in the ear, ``True`` when
        a hole was fused and ``False`` when hole vertices lie in the ear
        but none can be bridged to without crossing an edge.
        """

        if not self._holes:
            return None
        ear = self._ear(loop, i)
        t0, t1, t2 = (self.points[p] for p in ear)
        anchor = self.points[ear[1]]

        candidates = []
        for hole in self._holes:
            for k, p in enumerate(hole.points):
                if point_in_triangle(self.points[p], t0, t1, t2, strict=False, tol=self.tol):
                    candidates.append((dist(self.points[p], anchor), hole, k))
        if not candidates:
            return None

        candidates.sort(key=lambda item: item[0])
        for _, hole, k in candidates:
            if self._bridge_is_clear(ear[1], hole.points[k], loop):
                self._insert_loop(loop, i, hole, k)
                self._holes.remove(hole)
                return True
        return False

    def _bridge_is_clear(self, start: int, end: int, loop: _Loop) -> bool:
        a = self.points[start]
        b = self.points[end]
        for other in [loop] + self._holes:
            count = len(other.points)
            for k in range(count):
                s = other.points[k]
                e = other.points[(k + 1) % count]
                if s in (start, end) or e in (start, end):
                    continue
                if segments_cross(a, b, self.points[s], self.points[e], self.normal):
                    return False
        return True

    def _insert_loop(self, loop: _Loop, i: int, hole: _Loop, k: int) -> None:
        outer_point = loop.points[i]
        hole_point = hole.points[k]
        size = len(hole.points)
        order = [(k + m) % size for m in range(size)]

        bridge_in = self._add_edge(outer_point, hole_point)
        bridge_out = self._add_edge(hole_point, outer_point)
        self._bridges.append((bridge_in, bridge_out))

        outgoing = loop.edges[i]
        loop.points[i + 1:i + 1] = [hole.points[m] for m in order] + [hole_point, outer_point]
        loop.edges[i:i + 1] = ([bridge_in] + [hole.edges[m] for m in order]
                               + [bridge_out, outgoing])
        loop.reflex[i + 1:i + 1] = [hole.reflex[m] for m in order] + [False, False]

        for position in (i, i + 1, i + size + 1, i + size + 2):
            loop.reflex[position] = self._is_reflex(loop, position)

    # -- output -----------------------------------------------------------

    def _add_edge(self, start: int, end: int) -> int:
        self.edges.append((start, end))
        return len(self.edges) - 1

    def _output(self) -> TriangulationResult:
        """Drop the reverse copy of each bridge; its twin stays as the diagonal two fill triangles share."""

        duplicates = {second: first for first, second in self._bridges}
        remap: Dict[int, int] = {}
        kept: List[EdgePair] = []
        for index, edge in enumerate(self.edges):
            if index in duplicates:
                continue
            remap[index] = len(kept)
            kept.append(edge)
        for index, twin in duplicates.items():
            remap[index] = remap[twin]

        return TriangulationResult(
            new_edges=kept[len(self.input_edges):],
            triangles=list(self._triangles),
            triangle_edges=[(remap[e0], remap[e1], remap[e2])
                            for e0, e1, e2 in self._triangle_edges],
        )


def triangulate_polygon(outer: Sequence[Sequence[float]],
                        holes: Iterable[Sequence[Sequence[float]]] | None = None,
                        normal: Sequence[float] = (0.0, 0.0, 1.0)) -> List[List[Vec3]]:
    """Return triangles covering ``outer`` minus any ``holes``.

    ``outer`` and each entry in ``holes`` is a sequence of points lying in
    the plane with the given ``normal``.  Repeated and closing points are
    dropped and loops are re-oriented as needed, so callers need not care
    about winding.  Degenerate loops (fewer than three distinct points)
    are ignored.  Triangles are returned as lists of three ``(x, y, z)``
    tuples wound counter-clockwise about ``normal``.
    """

    if holes is None:
        holes = []
    unit = normalize(to_vec3(normal))
    if unit is None:
        raise ValueError("polygon normal must be non-zero")

    outer_loop = _prepare_loop(outer, unit, want_ccw=True)
    if len(outer_loop) < 3:
        return []

    points: List[Vec3] = []
    edges: List[EdgePair] = []

    def _append(loop: Sequence[Vec3]) -> None:
        base = len(points)
        points.extend(loop)
        edges.extend((base + k, base + (k + 1) % len(loop)) for k in range(len(loop)))

    _append(outer_loop)
    for hole in holes:
        loop = _prepare_loop(hole, unit, want_ccw=False)
        if len(loop) < 3:
            continue
        _append(loop)

    result = Triangulation(points, edges, unit).fill()
    return [[points[i], points[j], points[k]] for i, j, k in result.triangles]


def _prepare_loop(points: Sequence[Sequence[float]], normal: Vec3, *, want_ccw: bool) -> List[Vec3]:
    loop: List[Vec3] = []
    for pt in points:
        p = to_vec3(pt)
        if loop and _near(loop[-1], p):
            continue
        loop.append(p)
    if loop and _near(loop[0], loop[-1]):
        loop.pop()
    if len(loop) < 3:
        return loop
    area = polygon_area(loop, normal)
    if want_ccw and area < 0:
        loop.reverse()
    elif not want_ccw and area > 0:
        loop.reverse()
    return loop


def _near(p1: Vec3, p2: Vec3) -> bool:
    return dist(p1, p2) <= epsilon


__all__ = ['Triangulation', 'TriangulationResult', 'triangulate_polygon']
