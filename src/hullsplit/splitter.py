"""Split a :class:`~hullsplit.hull.Hull` in two along a plane.

The split runs as a strict chain of passes over the source hull:

1. points are classified by signed distance to the plane,
2. vertices migrate with their points,
3. edges stay whole or are cut in two,
4. triangles stay whole or are cut into one apex triangle and a quad,
5. optionally, the cut boundary is assembled into loops, triangulated
   once and attached to both halves as mirrored caps.

Per-call indices of points and edges live in dictionaries local to the
call; nothing is stored on the shared point and edge objects.  The
source hull is cleared once its geometry has moved to the two halves.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from hullsplit.geometry_utils import (
    UP,
    Vec3,
    Vec4,
    area_epsilon,
    dot,
    epsilon,
    lerp,
    normalize,
    perpendicular,
    scale3,
    sub,
    to_vec3,
    triangle_normal,
)
from hullsplit.hull import Hull
from hullsplit.shapes import Edge, EdgeHit, Point, Triangle
from hullsplit.triangulator import Triangulation

logger = logging.getLogger(__name__)


def split_hull(hull: Hull, point_on_plane: Sequence[float], plane_normal: Sequence[float],
               fill_cut: bool = True) -> Tuple[Hull, Hull]:
    """Split ``hull`` by the plane through ``point_on_plane``.

    Returns ``(a, b)`` where ``a`` holds everything on the side
    ``plane_normal`` points to (points on the plane included) and ``b``
    the rest.  With ``fill_cut`` both halves are closed with a flat cap
    over the cross-section.

    A zero ``plane_normal`` is replaced by world up.  An empty ``hull``
    is not split: two empty hulls are returned and ``hull`` is left as
    is.  Either half may come back empty (see :meth:`Hull.is_empty`);
    callers must discard such halves.
    """

    origin = to_vec3(point_on_plane)
    normal = normalize(to_vec3(plane_normal))
    if normal is None:
        normal = UP

    if hull.is_empty():
        logger.warning("split requested on empty hull %r; nothing to split", hull)
        return Hull(), Hull()

    a = Hull()
    b = Hull()

    point_index = {id(point): i for i, point in enumerate(hull.points)}
    edge_index = {id(edge): i for i, edge in enumerate(hull.edges)}

    above = _assign_points(hull, a, b, origin, normal)
    old_to_new = _assign_vertices(hull, a, b, above, point_index)
    hits = _assign_edges(hull, a, b, above, point_index)
    cut_edges_a, cut_edges_b = _assign_triangles(hull, a, b, above, hits, old_to_new,
                                                 point_index, edge_index)

    if fill_cut and cut_edges_a:
        _fill_cut(a, b, cut_edges_a, cut_edges_b, normal)

    logger.debug("split %d triangles into %d above / %d below (%d cut edges)",
                 len(hull.triangles), len(a.triangles), len(b.triangles), len(cut_edges_a))

    hull.clear()
    return a, b


def _plane_tolerance(hull: Hull, origin: Vec3) -> float:
    extent = max((abs(c) for point in hull.points for c in point.position), default=0.0)
    extent = max(extent, abs(origin[0]), abs(origin[1]), abs(origin[2]), 1.0)
    return epsilon * extent


def _assign_points(hull: Hull, a: Hull, b: Hull, origin: Vec3, normal: Vec3) -> List[Tuple[bool, float]]:
    """Classify points; returns ``(above, signed distance)`` per point index.

    Distances within the plane tolerance are snapped to zero, so points
    created on the plane by an earlier cut land on side A again.
    """

    tol = _plane_tolerance(hull, origin)
    sides: List[Tuple[bool, float]] = []
    for point in hull.points:
        distance = dot(sub(point.position, origin), normal)
        if abs(distance) <= tol:
            distance = 0.0
        is_above = distance >= 0.0
        sides.append((is_above, distance))
        if is_above:
            a.points.append(point)
        else:
            b.points.append(point)
    return sides


def _assign_vertices(hull: Hull, a: Hull, b: Hull, above, point_index) -> List[int]:
    old_to_new: List[int] = []
    for i, point in enumerate(hull.vertex_points):
        target = a if above[point_index[id(point)]][0] else b
        old_to_new.append(target.add_vertex(hull.positions[i], hull.normals[i],
                                            hull.tangents[i], point))
    return old_to_new


def _assign_edges(hull: Hull, a: Hull, b: Hull, above, point_index) -> Dict[int, EdgeHit]:
    """Move whole edges and cut crossing ones; returns hits keyed by edge index."""

    hits: Dict[int, EdgeHit] = {}
    for i, edge in enumerate(hull.edges):
        above0, d0 = above[point_index[id(edge.point0)]]
        above1, d1 = above[point_index[id(edge.point1)]]

        if above0 and above1:
            a.edges.append(edge)
            continue
        if not above0 and not above1:
            b.edges.append(edge)
            continue

        denominator = d0 - d1
        if abs(denominator) <= area_epsilon:
            scalar = 0.5
        else:
            scalar = min(1.0, max(0.0, d0 / denominator))
        intersection = lerp(edge.point0.position, edge.point1.position, scalar)

        point_a = Point(intersection)
        point_b = Point(intersection)
        a.points.append(point_a)
        b.points.append(point_b)

        if above0:
            split_a = Edge(point_a, edge.point0)
            split_b = Edge(point_b, edge.point1)
        else:
            split_a = Edge(point_a, edge.point1)
            split_b = Edge(point_b, edge.point0)
        a.edges.append(split_a)
        b.edges.append(split_b)

        hits[i] = EdgeHit(scalar, split_a, split_b)
    return hits


def _assign_triangles(hull: Hull, a: Hull, b: Hull, above, hits, old_to_new,
                      point_index, edge_index) -> Tuple[List[Edge], List[Edge]]:
    """Distribute triangles, cutting the mixed ones.

    Returns the cut edges of both sides as parallel lists: entry ``k`` of
    each list comes from the same source triangle.  Side A's cut edge
    runs along side A's winding; side B's is its geometric twin.
    """

    cut_edges_a: List[Edge] = []
    cut_edges_b: List[Edge] = []

    for tri in hull.triangles:
        above0 = above[point_index[id(tri.point0)]][0]
        above1 = above[point_index[id(tri.point1)]][0]
        above2 = above[point_index[id(tri.point2)]][0]

        if above0 and above1 and above2:
            a.triangles.append(tri.reindexed(old_to_new))
            continue
        if not (above0 or above1 or above2):
            b.triangles.append(tri.reindexed(old_to_new))
            continue

        crossing0 = edge_index[id(tri.edge0)] in hits
        crossing1 = edge_index[id(tri.edge1)] in hits

        # rotate so that edge0/edge1 cross the plane and meet at the apex (vertex1)
        if crossing0 and crossing1:
            apex = tri.point1
            edge0, edge1, edge2 = tri.edge0, tri.edge1, tri.edge2
            vertex0, vertex1, vertex2 = tri.vertex0, tri.vertex1, tri.vertex2
        elif crossing1:
            apex = tri.point2
            edge0, edge1, edge2 = tri.edge1, tri.edge2, tri.edge0
            vertex0, vertex1, vertex2 = tri.vertex1, tri.vertex2, tri.vertex0
        else:
            apex = tri.point0
            edge0, edge1, edge2 = tri.edge2, tri.edge0, tri.edge1
            vertex0, vertex1, vertex2 = tri.vertex2, tri.vertex0, tri.vertex1

        hit0 = hits[edge_index[id(edge0)]]
        hit1 = hits[edge_index[id(edge1)]]

        # scalar0 runs vertex0 -> apex, scalar1 runs apex -> vertex2
        scalar0 = hit0.scalar if edge0.point1 is apex else 1.0 - hit0.scalar
        scalar1 = hit1.scalar if edge1.point0 is apex else 1.0 - hit1.scalar

        if above[point_index[id(apex)]][0]:
            cut_a = Edge(hit1.split_a.point0, hit0.split_a.point0)
            cut_b = Edge(hit1.split_b.point0, hit0.split_b.point0)
            a.edges.append(cut_a)
            b.edges.append(cut_b)
            _split_triangle(hull, a, b, hit0.split_a, hit1.split_a, cut_a,
                            hit0.split_b, hit1.split_b, cut_b, edge2,
                            vertex0, vertex1, vertex2, scalar0, scalar1, old_to_new)
        else:
            cut_a = Edge(hit0.split_a.point0, hit1.split_a.point0)
            cut_b = Edge(hit0.split_b.point0, hit1.split_b.point0)
            a.edges.append(cut_a)
            b.edges.append(cut_b)
            _split_triangle(hull, b, a, hit0.split_b, hit1.split_b, cut_b,
                            hit0.split_a, hit1.split_a, cut_a, edge2,
                            vertex0, vertex1, vertex2, scalar0, scalar1, old_to_new)

        cut_edges_a.append(cut_a)
        cut_edges_b.append(cut_b)

    return cut_edges_a, cut_edges_b


def _split_triangle(source: Hull, top: Hull, bottom: Hull,
                    top_edge0: Edge, top_edge1: Edge, top_cut: Edge,
                    bottom_edge0: Edge, bottom_edge1: Edge, bottom_cut: Edge, bottom_edge2: Edge,
                    vertex0: int, vertex1: int, vertex2: int,
                    scalar0: float, scalar1: float, old_to_new: List[int]) -> None:
    """Cut one triangle whose apex (``vertex1``) lies alone on ``top``'s side.

    ``top`` receives the apex triangle; ``bottom`` receives the remaining
    quad as two triangles fanned from ``vertex0``.
    """

    face = triangle_normal(source.positions[vertex0], source.positions[vertex1],
                           source.positions[vertex2])

    normal0 = _blend_normal(source.normals[vertex0], source.normals[vertex1], scalar0, face)
    normal1 = _blend_normal(source.normals[vertex1], source.normals[vertex2], scalar1, face)

    handedness = source.tangents[vertex1][3]
    tangent0 = _blend_tangent(source.tangents[vertex0], source.tangents[vertex1], scalar0, handedness)
    tangent1 = _blend_tangent(source.tangents[vertex1], source.tangents[vertex2], scalar1, handedness)

    top_cut0 = top.add_vertex(top_edge0.point0.position, normal0, tangent0, top_edge0.point0)
    top_cut1 = top.add_vertex(top_edge1.point0.position, normal1, tangent1, top_edge1.point0)
    bottom_cut0 = bottom.add_vertex(bottom_edge0.point0.position, normal0, tangent0, bottom_edge0.point0)
    bottom_cut1 = bottom.add_vertex(bottom_edge1.point0.position, normal1, tangent1, bottom_edge1.point0)

    top.triangles.append(Triangle(
        top_cut0, old_to_new[vertex1], top_cut1,
        top_edge0.point0, top_edge0.point1, top_edge1.point0,
        top_edge0, top_edge1, top_cut))

    cross_edge = Edge(bottom_edge0.point1, bottom_edge1.point0)
    bottom.edges.append(cross_edge)
    bottom.triangles.append(Triangle(
        old_to_new[vertex0], bottom_cut0, bottom_cut1,
        bottom_edge0.point1, bottom_edge0.point0, bottom_edge1.point0,
        bottom_edge0, bottom_cut, cross_edge))
    bottom.triangles.append(Triangle(
        old_to_new[vertex0], bottom_cut1, old_to_new[vertex2],
        bottom_edge0.point1, bottom_edge1.point0, bottom_edge1.point1,
        cross_edge, bottom_edge1, bottom_edge2))


def _blend_normal(n0: Vec3, n1: Vec3, t: float, fallback: Vec3 | None) -> Vec3:
    blended = normalize(lerp(n0, n1, t))
    if blended is not None:
        return blended
    if fallback is not None:
        return fallback
    return normalize(n0) or UP


def _blend_tangent(t0: Vec4, t1: Vec4, t: float, handedness: float) -> Vec4:
    blended = normalize(lerp(t0, t1, t))
    if blended is None:
        blended = normalize(t0) or normalize(t1) or perpendicular(UP)
    return blended + (handedness,)


def sort_cut_edges(cut_edges: Sequence[Edge]) -> List[List[int]]:
    """Order cut edges into closed loops.

    Returns one list of positions into ``cut_edges`` per loop, in
    traversal order: each edge starts where the previous one ends and
    the last edge ends at the first edge's start.  Chains that do not
    close (degenerate cuts) are dropped.
    """

    starting: Dict[int, List[int]] = {}
    for i, edge in enumerate(cut_edges):
        starting.setdefault(id(edge.point0), []).append(i)

    used = [False] * len(cut_edges)
    loops: List[List[int]] = []
    for first in range(len(cut_edges)):
        if used[first]:
            continue
        used[first] = True
        loop = [first]
        start = cut_edges[first].point0
        current = cut_edges[first].point1
        closed = True
        while current is not start:
            candidates = [i for i in starting.get(id(current), ()) if not used[i]]
            if not candidates:
                closed = False
                break
            following = candidates[0]
            used[following] = True
            loop.append(following)
            current = cut_edges[following].point1
        if closed:
            loops.append(loop)
        else:
            logger.debug("dropping open cut chain of %d edges", len(loop))
    return loops


def _fill_cut(a: Hull, b: Hull, cut_edges_a: List[Edge], cut_edges_b: List[Edge],
              normal: Vec3) -> None:
    """Triangulate the cut loops once and attach mirrored caps to both halves."""

    loops = sort_cut_edges(cut_edges_a)
    if len(loops) > 1:
        logger.debug("cross-section has %d separate loops", len(loops))

    order = [i for loop in loops for i in loop]
    points_a = [cut_edges_a[i].point0 for i in order]
    points_b = [cut_edges_b[i].point0 for i in order]
    positions = [p.position for p in points_a]

    edges: List[Tuple[int, int]] = []
    base = 0
    for loop in loops:
        count = len(loop)
        edges.extend((base + k, base + (k + 1) % count) for k in range(count))
        base += count

    result = Triangulation(positions, edges, normal).fill()
    if not result.triangles:
        logger.debug("cut loops produced no cap triangles")
        return

    edge_objects_a = [cut_edges_a[i] for i in order]
    edge_objects_b = [cut_edges_b[i] for i in order]
    for start, end in result.new_edges:
        edge_a = Edge(points_a[start], points_a[end])
        edge_b = Edge(points_b[start], points_b[end])
        a.edges.append(edge_a)
        b.edges.append(edge_b)
        edge_objects_a.append(edge_a)
        edge_objects_b.append(edge_b)

    tangent = perpendicular(normal)
    normal_a = scale3(normal, -1.0)
    tangent_a = tangent + (-1.0,)
    tangent_b = tangent + (1.0,)

    vertices_a: Dict[int, int] = {}
    vertices_b: Dict[int, int] = {}

    def vertex_a(k: int) -> int:
        if k not in vertices_a:
            vertices_a[k] = a.add_vertex(positions[k], normal_a, tangent_a, points_a[k])
        return vertices_a[k]

    def vertex_b(k: int) -> int:
        if k not in vertices_b:
            vertices_b[k] = b.add_vertex(positions[k], normal, tangent_b, points_b[k])
        return vertices_b[k]

    for (i, j, k), (e_ij, e_jk, e_ki) in zip(result.triangles, result.triangle_edges):
        b.triangles.append(Triangle(
            vertex_b(i), vertex_b(j), vertex_b(k),
            points_b[i], points_b[j], points_b[k],
            edge_objects_b[e_ij], edge_objects_b[e_jk], edge_objects_b[e_ki]))
        a.triangles.append(Triangle(
            vertex_a(i), vertex_a(k), vertex_a(j),
            points_a[i], points_a[k], points_a[j],
            edge_objects_a[e_ki], edge_objects_a[e_jk], edge_objects_a[e_ij]))

    logger.debug("capped cut with %d triangles per side", len(result.triangles))


__all__ = ['split_hull', 'sort_cut_edges']
