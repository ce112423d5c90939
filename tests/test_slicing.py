import math

import numpy as np
import pytest

from hullsplit.geometry_checks import hull_watertight
from hullsplit.hull import Hull
from hullsplit.slicing import Plane, plane_to_local, split_by_planes


def _make_cube(half=0.5):
    h = half
    positions = [
        (-h, -h, -h), (h, -h, -h), (h, h, -h), (-h, h, -h),
        (-h, -h, h), (h, -h, h), (h, h, h), (-h, h, h),
    ]
    indices = [
        0, 2, 1, 0, 3, 2,
        4, 5, 6, 4, 6, 7,
        0, 1, 5, 0, 5, 4,
        3, 7, 6, 3, 6, 2,
        0, 4, 7, 0, 7, 3,
        1, 2, 6, 1, 6, 5,
    ]
    return Hull.from_mesh(positions, None, None, indices)


def test_plane_normalises():
    plane = Plane((0, 1, 0), (0, 0, 3))
    assert plane.point == (0.0, 1.0, 0.0)
    assert plane.normal == (0.0, 0.0, 1.0)
    assert math.isclose(plane.signed_distance((4, 4, 2)), 2.0)
    assert math.isclose(plane.flipped().signed_distance((4, 4, 2)), -2.0)


def test_plane_zero_normal_is_up():
    assert Plane((0, 0, 0), (0, 0, 0)).normal == (0.0, 1.0, 0.0)


def test_plane_from_normal_distance():
    plane = Plane.from_normal_distance((0, 2, 0), -1.0)
    assert plane.point == pytest.approx((0.0, 1.0, 0.0))
    assert math.isclose(plane.signed_distance((0, 3, 0)), 2.0)


def test_plane_to_local_translation():
    matrix = np.eye(4)
    matrix[:3, 3] = (0.0, 5.0, 0.0)
    local = plane_to_local(Plane((1, 5, 1), (0, 1, 0)), matrix)
    assert local.point == pytest.approx((1.0, 0.0, 1.0))
    assert local.normal == pytest.approx((0.0, 1.0, 0.0))


def test_plane_to_local_non_uniform_scale():
    matrix = np.diag([2.0, 1.0, 1.0, 1.0])
    world = Plane((2.0, 0.0, 0.0), (1.0, 1.0, 0.0))
    local = plane_to_local(world, matrix)

    assert local.point == pytest.approx((1.0, 0.0, 0.0))
    s = math.sqrt(5.0)
    assert local.normal == pytest.approx((2.0 / s, 1.0 / s, 0.0))
    # a local point on the plane maps to a world point on the plane
    assert math.isclose(local.signed_distance((0.0, 2.0, 0.0)), 0.0, abs_tol=1e-12)
    assert math.isclose(world.signed_distance((0.0, 2.0, 0.0)), 0.0, abs_tol=1e-12)


def test_plane_to_local_rejects_bad_matrix():
    with pytest.raises(ValueError):
        plane_to_local(Plane((0, 0, 0), (0, 1, 0)), np.eye(3))


def test_split_by_planes_quarters():
    planes = [Plane((0.0, 0.0, 0.0), (0.0, 1.0, 0.0)),
              Plane((0.1, 0.0, 0.0), (1.0, 0.0, 0.0))]
    pieces = split_by_planes(_make_cube(), planes)

    assert len(pieces) == 4
    volumes = sorted(piece.volume() for piece in pieces)
    assert volumes == pytest.approx([0.2, 0.2, 0.3, 0.3])
    assert all(hull_watertight(piece) for piece in pieces)


def test_split_by_planes_discards_empty_pieces():
    planes = [Plane((0.0, 5.0, 0.0), (0.0, 1.0, 0.0))]
    pieces = split_by_planes(_make_cube(), planes)
    assert len(pieces) == 1
    assert math.isclose(pieces[0].volume(), 1.0)


def test_split_by_planes_empty_input():
    assert split_by_planes(Hull(), [Plane((0, 0, 0), (0, 1, 0))]) == []
