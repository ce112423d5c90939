"""Cutting planes and multi-plane splitting.

Hulls are split in their own local frame.  Callers that place a hull in
the world with an object transform convert world-space planes with
:func:`plane_to_local` first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence

import numpy as np

from hullsplit.geometry_utils import UP, Vec3, normalize, scale3, to_vec3
from hullsplit.hull import Hull
from hullsplit.splitter import split_hull

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Plane:
    """Oriented plane through ``point``; ``normal`` points to the A side."""

    point: Vec3
    normal: Vec3

    def __post_init__(self) -> None:
        object.__setattr__(self, 'point', to_vec3(self.point))
        object.__setattr__(self, 'normal', normalize(to_vec3(self.normal)) or UP)

    @classmethod
    def from_normal_distance(cls, normal: Sequence[float], distance: float) -> "Plane":
        """Plane satisfying ``dot(normal, x) + distance == 0``."""

        unit = normalize(to_vec3(normal)) or UP
        return cls(scale3(unit, -distance), unit)

    def signed_distance(self, position: Sequence[float]) -> float:
        p = to_vec3(position)
        return ((p[0] - self.point[0]) * self.normal[0]
                + (p[1] - self.point[1]) * self.normal[1]
                + (p[2] - self.point[2]) * self.normal[2])

    def flipped(self) -> "Plane":
        return Plane(self.point, scale3(self.normal, -1.0))


def plane_to_local(plane: Plane, matrix) -> Plane:
    """Express a world-space ``plane`` in the frame of an object transform.

    ``matrix`` is the 4x4 local-to-world transform of the object.  The
    point is mapped by the inverse transform; the normal by the transpose
    of the linear part (the inverse transpose of the world-to-local map)
    and renormalised, so non-uniform scale is handled.
    """

    m = np.asarray(matrix, dtype=float)
    if m.shape != (4, 4):
        raise ValueError("transform must be a 4x4 matrix")
    inverse = np.linalg.inv(m)
    point = inverse @ np.array([plane.point[0], plane.point[1], plane.point[2], 1.0])
    point = point[:3] / point[3]
    normal = m[:3, :3].T @ np.asarray(plane.normal, dtype=float)
    return Plane(tuple(float(c) for c in point), tuple(float(c) for c in normal))


def split_by_planes(hull: Hull, planes: Iterable[Plane], fill_cut: bool = True) -> List[Hull]:
    """Split ``hull`` by each plane in turn.

    Every piece produced so far is split by the next plane.  Empty pieces
    are discarded as soon as they appear.  ``hull`` itself is consumed.
    """

    if hull.is_empty():
        logger.warning("nothing to slice: %r is empty", hull)
        return []

    pieces = [hull]
    for plane in planes:
        next_pieces: List[Hull] = []
        for piece in pieces:
            a, b = split_hull(piece, plane.point, plane.normal, fill_cut=fill_cut)
            for half in (a, b):
                if half.is_empty():
                    logger.debug("discarding empty piece %r", half)
                    continue
                next_pieces.append(half)
        pieces = next_pieces
    return pieces


__all__ = ['Plane', 'plane_to_local', 'split_by_planes']
