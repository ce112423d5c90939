"""Geometry store for a closed triangulated surface.

A :class:`Hull` keeps the render attributes of every vertex in parallel
lists (position, normal, tangent) and, alongside them, the topology used
to classify the surface against a cutting plane: deduplicated
:class:`~hullsplit.shapes.Point` objects, shared
:class:`~hullsplit.shapes.Edge` objects and
:class:`~hullsplit.shapes.Triangle` records.

Example
=======

.. code-block:: python

    hull = Hull.from_mesh(positions, normals, tangents, indices)
    a, b = hull.split((0, 0, 0), (0, 1, 0), fill_cut=True)
    for piece in (a, b):
        if not piece.is_empty():
            mesh = piece.to_mesh()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from hullsplit.geometry_utils import (
    Vec3,
    Vec4,
    add,
    cross,
    mesh_volume,
    normalize,
    perpendicular,
    sub,
)
from hullsplit.shapes import Edge, Point, Triangle

logger = logging.getLogger(__name__)

MIN_POINTS = 4
MIN_EDGES = 6
MIN_TRIANGLES = 4


@dataclass
class MeshData:
    """Render buffers exported from a hull."""

    positions: np.ndarray
    normals: np.ndarray
    tangents: np.ndarray
    indices: np.ndarray

    @property
    def vertex_count(self) -> int:
        return int(self.positions.shape[0])

    @property
    def triangle_count(self) -> int:
        return int(self.indices.shape[0] // 3)


class Hull:
    """Vertex attributes plus point/edge/triangle topology of one surface."""

    def __init__(self) -> None:
        self.positions: List[Vec3] = []
        self.normals: List[Vec3] = []
        self.tangents: List[Vec4] = []
        self.vertex_points: List[Point] = []

        self.points: List[Point] = []
        self.edges: List[Edge] = []
        self.triangles: List[Triangle] = []

    def __repr__(self) -> str:
        return (f"Hull(vertices={self.vertex_count}, points={len(self.points)}, "
                f"edges={len(self.edges)}, triangles={len(self.triangles)})")

    @classmethod
    def from_mesh(cls, positions, normals, tangents, indices) -> "Hull":
        """Build a hull from render buffers.

        ``positions`` is ``(n, 3)``; ``normals`` is ``(n, 3)`` and
        ``tangents`` is ``(n, 4)``.  Either may be ``None``, in which case
        area-weighted vertex normals and perpendicular tangents with
        handedness ``+1`` are derived.  ``indices`` is a flat sequence of
        vertex indices, three per triangle, wound counter-clockwise when
        seen from outside.

        Vertices with identical positions share one :class:`Point`; sides
        shared by two triangles share one :class:`Edge`.
        """

        pos = np.asarray(positions, dtype=float)
        if pos.ndim != 2 or pos.shape[1] != 3:
            raise ValueError("positions must have shape (n, 3)")
        count = pos.shape[0]

        idx = np.asarray(indices, dtype=np.int64).reshape(-1)
        if idx.size % 3 != 0:
            raise ValueError("triangle index count must be a multiple of 3")
        if idx.size and (idx.min() < 0 or idx.max() >= count):
            raise ValueError("triangle index out of range")
        faces = [tuple(int(i) for i in idx[k:k + 3]) for k in range(0, idx.size, 3)]

        pos_list = [tuple(row) for row in pos.tolist()]

        if normals is None:
            norm_list = _vertex_normals(pos_list, faces)
        else:
            norm = np.asarray(normals, dtype=float)
            if norm.shape != (count, 3):
                raise ValueError("normals must have the same length as positions and shape (n, 3)")
            norm_list = [tuple(row) for row in norm.tolist()]

        if tangents is None:
            tan_list = [perpendicular(n) + (1.0,) for n in norm_list]
        else:
            tan = np.asarray(tangents, dtype=float)
            if tan.shape != (count, 4):
                raise ValueError("tangents must have the same length as positions and shape (n, 4)")
            tan_list = [tuple(row) for row in tan.tolist()]

        hull = cls()
        unique: Dict[Vec3, Point] = {}
        for position, normal, tangent in zip(pos_list, norm_list, tan_list):
            point = unique.get(position)
            if point is None:
                point = Point(position)
                unique[position] = point
                hull.points.append(point)
            hull.add_vertex(position, normal, tangent, point)

        edge_map: Dict[Tuple[int, int], Edge] = {}
        for v0, v1, v2 in faces:
            hull._add_triangle(v0, v1, v2, edge_map)
        return hull

    def _add_triangle(self, v0: int, v1: int, v2: int,
                      edge_map: Dict[Tuple[int, int], Edge]) -> Triangle:
        p0 = self.vertex_points[v0]
        p1 = self.vertex_points[v1]
        p2 = self.vertex_points[v2]
        triangle = Triangle(v0, v1, v2, p0, p1, p2,
                            self._unique_edge(p0, p1, edge_map),
                            self._unique_edge(p1, p2, edge_map),
                            self._unique_edge(p2, p0, edge_map))
        self.triangles.append(triangle)
        return triangle

    def _unique_edge(self, p0: Point, p1: Point,
                     edge_map: Dict[Tuple[int, int], Edge]) -> Edge:
        key = (id(p0), id(p1)) if id(p0) < id(p1) else (id(p1), id(p0))
        edge = edge_map.get(key)
        if edge is None:
            edge = Edge(p0, p1)
            edge_map[key] = edge
            self.edges.append(edge)
        return edge

    def add_vertex(self, position: Vec3, normal: Vec3, tangent: Vec4, point: Point) -> int:
        """Append one vertex and return its index."""

        self.positions.append(position)
        self.normals.append(normal)
        self.tangents.append(tangent)
        self.vertex_points.append(point)
        return len(self.positions) - 1

    @property
    def vertex_count(self) -> int:
        return len(self.positions)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    def is_empty(self) -> bool:
        """Return ``True`` if the hull is too small to render or split."""

        return (len(self.points) < MIN_POINTS
                or len(self.edges) < MIN_EDGES
                or len(self.triangles) < MIN_TRIANGLES)

    def clear(self) -> None:
        self.positions.clear()
        self.normals.clear()
        self.tangents.clear()
        self.vertex_points.clear()
        self.points.clear()
        self.edges.clear()
        self.triangles.clear()

    def indices(self) -> List[int]:
        """Flat triangle index list."""

        flat: List[int] = []
        for tri in self.triangles:
            flat.extend((tri.vertex0, tri.vertex1, tri.vertex2))
        return flat

    def to_mesh(self) -> Optional[MeshData]:
        """Export render buffers, or ``None`` when the hull is empty."""

        if self.is_empty():
            logger.warning("refusing to export empty hull: %r", self)
            return None
        return MeshData(
            positions=np.asarray(self.positions, dtype=float).reshape(-1, 3),
            normals=np.asarray(self.normals, dtype=float).reshape(-1, 3),
            tangents=np.asarray(self.tangents, dtype=float).reshape(-1, 4),
            indices=np.asarray(self.indices(), dtype=np.int64),
        )

    def volume(self) -> float:
        """Signed enclosed volume; positive for outward-wound closed hulls."""

        return mesh_volume(self.positions, self.indices())

    def bounds(self) -> Optional[Tuple[Vec3, Vec3]]:
        """Axis-aligned ``(min, max)`` corners of the referenced points."""

        if not self.points:
            return None
        coords = np.asarray([p.position for p in self.points], dtype=float)
        lo = coords.min(axis=0)
        hi = coords.max(axis=0)
        return tuple(float(c) for c in lo), tuple(float(c) for c in hi)

    def split(self, point_on_plane: Sequence[float], plane_normal: Sequence[float],
              fill_cut: bool = True) -> Tuple["Hull", "Hull"]:
        """Split by a plane given in local coordinates.

        See :func:`hullsplit.splitter.split_hull`.  The hull is cleared
        afterwards; the returned pieces own the geometry.
        """

        from hullsplit.splitter import split_hull
        return split_hull(self, point_on_plane, plane_normal, fill_cut=fill_cut)


def _vertex_normals(positions: Sequence[Vec3], faces: Sequence[Tuple[int, int, int]]) -> List[Vec3]:
    """Area-weighted vertex normals accumulated over shared positions."""

    sums: Dict[Vec3, Vec3] = {}
    for v0, v1, v2 in faces:
        p0, p1, p2 = positions[v0], positions[v1], positions[v2]
        face = cross(sub(p1, p0), sub(p2, p0))
        for p in (p0, p1, p2):
            sums[p] = add(sums.get(p, (0.0, 0.0, 0.0)), face)
    normals: List[Vec3] = []
    for p in positions:
        n = normalize(sums.get(p, (0.0, 0.0, 0.0)))
        normals.append(n if n is not None else (0.0, 1.0, 0.0))
    return normals


__all__ = ['Hull', 'MeshData', 'MIN_POINTS', 'MIN_EDGES', 'MIN_TRIANGLES']
