"""Validation helpers for hulls and boundary loops."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import List, Sequence

from hullsplit.geometry_utils import dist, epsilon, mag


def loop_is_closed(points: Sequence[Sequence[float]], tol: float = epsilon) -> bool:
    """Return ``True`` if a polyline is closed within ``tol``."""

    if not points:
        return False
    first = points[0]
    last = points[-1]
    if len(first) < 3 or len(last) < 3:
        return False
    return dist(first, last) <= tol


def hull_consistent(hull) -> "CheckResult":
    """Check the membership invariants linking triangles, edges and points."""

    point_ids = {id(p) for p in hull.points}
    edge_ids = {id(e) for e in hull.edges}
    warnings: List[str] = []

    for idx, edge in enumerate(hull.edges):
        if id(edge.point0) not in point_ids or id(edge.point1) not in point_ids:
            warnings.append(f'edge {idx} references a point outside the hull')

    for idx, tri in enumerate(hull.triangles):
        for vertex, point in zip(tri.vertices, tri.points):
            if not 0 <= vertex < hull.vertex_count:
                warnings.append(f'triangle {idx} references missing vertex {vertex}')
            elif hull.vertex_points[vertex] is not point:
                warnings.append(f'triangle {idx} vertex {vertex} does not map to its point')
        for k, edge in enumerate(tri.edges):
            if id(edge) not in edge_ids:
                warnings.append(f'triangle {idx} edge{k} is not part of the hull')
            if not edge.joins(tri.points[k], tri.points[(k + 1) % 3]):
                warnings.append(f'triangle {idx} edge{k} does not join its points')

    return CheckResult(not warnings, warnings)


def hull_watertight(hull) -> "CheckResult":
    """Check that every side is shared by exactly two triangles."""

    sides = Counter()
    for tri in hull.triangles:
        p0, p1, p2 = (id(p) for p in tri.points)
        sides[_side_key(p0, p1)] += 1
        sides[_side_key(p1, p2)] += 1
        sides[_side_key(p2, p0)] += 1

    boundary = [side for side, count in sides.items() if count == 1]
    invalid = [side for side, count in sides.items() if count > 2]

    warnings: List[str] = []
    ok = True
    if boundary:
        ok = False
        warnings.append(f'{len(boundary)} boundary edges detected')
    if invalid:
        ok = False
        warnings.append(f'{len(invalid)} edges shared by more than two triangles')

    return CheckResult(ok, warnings)


def attributes_normalized(hull, tol: float = 1e-6) -> "CheckResult":
    """Check for finite unit normals and unit tangents with ``w = +-1``."""

    warnings: List[str] = []
    for idx, (normal, tangent) in enumerate(zip(hull.normals, hull.tangents)):
        if not all(math.isfinite(c) for c in normal) or abs(mag(normal) - 1.0) > tol:
            warnings.append(f'vertex {idx} normal is not unit length')
        if not all(math.isfinite(c) for c in tangent) or abs(mag(tangent) - 1.0) > tol:
            warnings.append(f'vertex {idx} tangent is not unit length')
        elif abs(abs(tangent[3]) - 1.0) > tol:
            warnings.append(f'vertex {idx} tangent handedness is {tangent[3]}')
    return CheckResult(not warnings, warnings)


def _side_key(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a < b else (b, a)


@dataclass
class CheckResult:
    ok: bool
    warnings: List[str]

    def __bool__(self) -> bool:
        return self.ok


__all__ = [
    'CheckResult',
    'loop_is_closed',
    'hull_consistent',
    'hull_watertight',
    'attributes_normalized',
]
