"""Common geometric helpers shared by the hull store, splitter and triangulator.

Vectors are plain ``(x, y, z)`` tuples of floats; tangents carry a fourth
handedness component ``w``.  The module level tolerances below are used
as defaults throughout :mod:`hullsplit`.  Redefine these at your peril.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence, Tuple

import numpy as np

Vec3 = Tuple[float, float, float]
Vec4 = Tuple[float, float, float, float]

#: general purpose length/angle tolerance
epsilon = 1e-9
#: below this magnitude a vector is treated as zero
area_epsilon = 1e-12

UP: Vec3 = (0.0, 1.0, 0.0)
FORWARD: Vec3 = (0.0, 0.0, 1.0)


def to_vec3(point_like: Sequence[float]) -> Vec3:
    """Return the XYZ components of a point/vector as a float tuple."""

    if len(point_like) < 3:
        raise ValueError("value must have at least three components")
    return float(point_like[0]), float(point_like[1]), float(point_like[2])


def to_vec4(vec: Sequence[float], w: float = 1.0) -> Vec4:
    """Return ``vec`` as an ``(x, y, z, w)`` tuple, defaulting ``w``."""

    if len(vec) < 3:
        raise ValueError("vector must have three components")
    if len(vec) > 3:
        w = vec[3]
    return float(vec[0]), float(vec[1]), float(vec[2]), float(w)


def add(a: Sequence[float], b: Sequence[float]) -> Vec3:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def sub(a: Sequence[float], b: Sequence[float]) -> Vec3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def scale3(a: Sequence[float], c: float) -> Vec3:
    return (a[0] * c, a[1] * c, a[2] * c)


def dot(a: Sequence[float], b: Sequence[float]) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def cross(a: Sequence[float], b: Sequence[float]) -> Vec3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def mag(a: Sequence[float]) -> float:
    return math.sqrt(a[0] * a[0] + a[1] * a[1] + a[2] * a[2])


def dist(a: Sequence[float], b: Sequence[float]) -> float:
    return mag(sub(a, b))


def normalize(v: Sequence[float], tol: float = area_epsilon) -> Vec3 | None:
    """Return ``v`` scaled to unit length, or ``None`` if it vanishes."""

    m = mag(v)
    if m <= tol:
        return None
    return (v[0] / m, v[1] / m, v[2] / m)


def lerp(a: Sequence[float], b: Sequence[float], t: float) -> Vec3:
    return (
        a[0] + (b[0] - a[0]) * t,
        a[1] + (b[1] - a[1]) * t,
        a[2] + (b[2] - a[2]) * t,
    )


def perpendicular(normal: Sequence[float]) -> Vec3:
    """Return a unit vector perpendicular to ``normal``.

    The world up axis is crossed with ``normal``; when the two are
    parallel the world forward axis is used instead.
    """

    tangent = normalize(cross(normal, UP), tol=epsilon)
    if tangent is None:
        tangent = normalize(cross(normal, FORWARD), tol=epsilon)
    if tangent is None:
        return (1.0, 0.0, 0.0)
    return tangent


def triangle_normal(v0: Vec3, v1: Vec3, v2: Vec3) -> Vec3 | None:
    """Return the unit normal of a triangle or ``None`` if degenerate."""

    return normalize(cross(sub(v1, v0), sub(v2, v0)))


def triangle_area(v0: Vec3, v1: Vec3, v2: Vec3) -> float:
    """Return the area of a triangle."""

    return 0.5 * mag(cross(sub(v1, v0), sub(v2, v0)))


def triangle_is_degenerate(v0: Vec3, v1: Vec3, v2: Vec3, tol: float = area_epsilon) -> bool:
    """Return ``True`` if a triangle collapses under the given tolerance."""

    return triangle_area(v0, v1, v2) <= tol


def orientation(a: Vec3, b: Vec3, c: Vec3, normal: Vec3) -> float:
    """Signed doubled area of ``abc`` as seen looking down ``normal``.

    Positive when ``a -> b -> c`` turns counter-clockwise about
    ``normal``.
    """

    return dot(cross(sub(b, a), sub(c, a)), normal)


def point_in_triangle(point: Vec3, t0: Vec3, t1: Vec3, t2: Vec3, *,
                      strict: bool = True, tol: float = epsilon) -> bool:
    """Barycentric containment test for a point lying in the triangle's plane.

    Points further than ``tol`` (relative to the triangle size) from the
    triangle's plane are rejected.  With ``strict`` the triangle boundary
    is excluded, otherwise it is included.  Degenerate triangles contain
    nothing.
    """

    v0 = sub(t2, t0)
    v1 = sub(t1, t0)
    v2 = sub(point, t0)

    n = cross(v1, v0)
    n_mag = mag(n)
    if n_mag <= area_epsilon:
        return False
    scale = max(mag(v0), mag(v1))
    if abs(dot(v2, n)) / n_mag > tol * max(scale, 1.0):
        return False

    dot00 = dot(v0, v0)
    dot01 = dot(v0, v1)
    dot02 = dot(v0, v2)
    dot11 = dot(v1, v1)
    dot12 = dot(v1, v2)

    denom = dot00 * dot11 - dot01 * dot01
    if abs(denom) <= area_epsilon:
        return False
    inv = 1.0 / denom
    u = (dot11 * dot02 - dot01 * dot12) * inv
    v = (dot00 * dot12 - dot01 * dot02) * inv
    if strict:
        return u > tol and v > tol and (u + v) < 1.0 - tol
    return u >= -tol and v >= -tol and (u + v) <= 1.0 + tol


def point_on_segment(point: Vec3, a: Vec3, b: Vec3, tol: float = epsilon) -> bool:
    """Return ``True`` if ``point`` lies on segment ``ab`` away from its ends."""

    ab = sub(b, a)
    length = mag(ab)
    if length <= area_epsilon:
        return False
    ap = sub(point, a)
    if mag(cross(ab, ap)) / length > tol * max(length, 1.0):
        return False
    t = dot(ap, ab) / (length * length)
    return tol < t < 1.0 - tol


def segments_cross(a: Vec3, b: Vec3, c: Vec3, d: Vec3, normal: Vec3) -> bool:
    """Return ``True`` if coplanar segments ``ab`` and ``cd`` properly cross."""

    o1 = orientation(a, b, c, normal)
    o2 = orientation(a, b, d, normal)
    o3 = orientation(c, d, a, normal)
    o4 = orientation(c, d, b, normal)
    return o1 * o2 < 0.0 and o3 * o4 < 0.0


def polygon_area(loop: Sequence[Vec3], normal: Vec3) -> float:
    """Signed area of a planar loop about ``normal`` (Newell's method)."""

    total = (0.0, 0.0, 0.0)
    count = len(loop)
    for i, p0 in enumerate(loop):
        total = add(total, cross(p0, loop[(i + 1) % count]))
    return 0.5 * dot(total, normal)


def mesh_volume(positions: Iterable[Sequence[float]], indices: Sequence[int]) -> float:
    """Signed volume enclosed by a triangle mesh.

    Uses the divergence theorem: each triangle contributes the signed
    volume of the tetrahedron it forms with the origin.  The result is
    only meaningful for closed, consistently wound meshes.
    """

    verts = np.asarray(list(positions), dtype=float).reshape(-1, 3)
    faces = np.asarray(indices, dtype=np.int64).reshape(-1, 3)
    if faces.size == 0:
        return 0.0
    v0 = verts[faces[:, 0]]
    v1 = verts[faces[:, 1]]
    v2 = verts[faces[:, 2]]
    return float(np.einsum('ij,ij->i', v0, np.cross(v1, v2)).sum() / 6.0)


__all__ = [
    "Vec3",
    "Vec4",
    "epsilon",
    "area_epsilon",
    "UP",
    "FORWARD",
    "to_vec3",
    "to_vec4",
    "add",
    "sub",
    "scale3",
    "dot",
    "cross",
    "mag",
    "dist",
    "normalize",
    "lerp",
    "perpendicular",
    "triangle_normal",
    "triangle_area",
    "triangle_is_degenerate",
    "orientation",
    "point_in_triangle",
    "point_on_segment",
    "segments_cross",
    "polygon_area",
    "mesh_volume",
]
