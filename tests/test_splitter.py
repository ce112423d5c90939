import math

import pytest

from hullsplit.geometry_checks import attributes_normalized, hull_consistent, hull_watertight
from hullsplit.geometry_utils import cross, dot, sub
from hullsplit.hull import Hull
from hullsplit.shapes import Edge, Point
from hullsplit.splitter import sort_cut_edges, split_hull


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


def _make_tetra():
    positions = [(0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)]
    indices = [0, 2, 1, 0, 1, 3, 0, 3, 2, 1, 2, 3]
    return Hull.from_mesh(positions, None, None, indices)


def _quad(triangles, a, b, c, d, outward):
    if dot(cross(sub(b, a), sub(c, a)), outward) < 0:
        b, d = d, b
    triangles.append((a, b, c))
    triangles.append((a, c, d))


def _make_tube(outer=1.0, inner=0.5, half_height=0.5):
    """Square tube along y: a closed surface whose cross-section has a hole."""
    ring_o = [(-outer, -outer), (outer, -outer), (outer, outer), (-outer, outer)]
    ring_i = [(-inner, -inner), (inner, -inner), (inner, inner), (-inner, inner)]
    h = half_height

    def at(xz, y):
        return (float(xz[0]), float(y), float(xz[1]))

    triangles = []
    for k in range(4):
        o0, o1 = ring_o[k], ring_o[(k + 1) % 4]
        i0, i1 = ring_i[k], ring_i[(k + 1) % 4]
        out_dir = ((o0[0] + o1[0]) / 2, 0.0, (o0[1] + o1[1]) / 2)
        in_dir = (-(i0[0] + i1[0]) / 2, 0.0, -(i0[1] + i1[1]) / 2)
        _quad(triangles, at(o0, -h), at(o1, -h), at(o1, h), at(o0, h), out_dir)
        _quad(triangles, at(i0, -h), at(i1, -h), at(i1, h), at(i0, h), in_dir)
        _quad(triangles, at(o0, h), at(o1, h), at(i1, h), at(i0, h), (0.0, 1.0, 0.0))
        _quad(triangles, at(o0, -h), at(o1, -h), at(i1, -h), at(i0, -h), (0.0, -1.0, 0.0))

    positions = [p for tri in triangles for p in tri]
    return Hull.from_mesh(positions, None, None, list(range(len(positions))))


def _make_icosphere(subdivisions=1, radius=1.0):
    t = (1.0 + math.sqrt(5.0)) / 2.0
    corners = [
        (-1, t, 0), (1, t, 0), (-1, -t, 0), (1, -t, 0),
        (0, -1, t), (0, 1, t), (0, -1, -t), (0, 1, -t),
        (t, 0, -1), (t, 0, 1), (-t, 0, -1), (-t, 0, 1),
    ]
    faces = [
        (0, 11, 5), (0, 5, 1), (0, 1, 7), (0, 7, 10), (0, 10, 11),
        (1, 5, 9), (5, 11, 4), (11, 10, 2), (10, 7, 6), (7, 1, 8),
        (3, 9, 4), (3, 4, 2), (3, 2, 6), (3, 6, 8), (3, 8, 9),
        (4, 9, 5), (2, 4, 11), (6, 2, 10), (8, 6, 7), (9, 8, 1),
    ]

    def on_sphere(p):
        length = math.sqrt(dot(p, p))
        return tuple(radius * c / length for c in p)

    positions = [on_sphere(p) for p in corners]
    for _ in range(subdivisions):
        midpoints = {}

        def midpoint(i, j):
            key = (min(i, j), max(i, j))
            if key not in midpoints:
                p, q = positions[i], positions[j]
                positions.append(on_sphere(tuple((p[k] + q[k]) / 2.0 for k in range(3))))
                midpoints[key] = len(positions) - 1
            return midpoints[key]

        refined = []
        for i, j, k in faces:
            ij, jk, ki = midpoint(i, j), midpoint(j, k), midpoint(k, i)
            refined.extend([(i, ij, ki), (j, jk, ij), (k, ki, jk), (ij, jk, ki)])
        faces = refined

    indices = []
    for i, j, k in faces:
        a, b, c = positions[i], positions[j], positions[k]
        # wind outward
        if dot(cross(sub(b, a), sub(c, a)), a) < 0:
            j, k = k, j
        indices.extend((i, j, k))
    return Hull.from_mesh(positions, None, None, indices)


def _make_u_prism(half_depth=0.5):
    """A U-shaped outline in xy extruded along z; its area is 5."""
    outline = [(0, 0), (3, 0), (3, 2), (2, 2), (2, 1), (1, 1), (1, 2), (0, 2)]
    cap = [(0, 1, 4), (1, 2, 4), (2, 3, 4), (0, 4, 5), (0, 5, 7), (5, 6, 7)]
    h = half_depth

    def at(xy, z):
        return (float(xy[0]), float(xy[1]), float(z))

    triangles = []
    for i, j, k in cap:
        triangles.append((at(outline[i], h), at(outline[j], h), at(outline[k], h)))
        triangles.append((at(outline[i], -h), at(outline[k], -h), at(outline[j], -h)))
    for k in range(len(outline)):
        p0, p1 = outline[k], outline[(k + 1) % len(outline)]
        outward = (float(p1[1] - p0[1]), float(p0[0] - p1[0]), 0.0)
        _quad(triangles, at(p0, -h), at(p1, -h), at(p1, h), at(p0, h), outward)

    positions = [p for tri in triangles for p in tri]
    return Hull.from_mesh(positions, None, None, list(range(len(positions))))


def _assert_closed_piece(hull):
    assert not hull.is_empty()
    assert hull_consistent(hull)
    assert hull_watertight(hull)
    assert attributes_normalized(hull)


def test_cube_split_in_half():
    a, b = split_hull(_make_cube(), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))

    for piece in (a, b):
        _assert_closed_piece(piece)
        assert math.isclose(piece.volume(), 0.5, rel_tol=1e-9)
    assert all(p.position[1] >= 0.0 for p in a.points)
    assert all(p.position[1] <= 0.0 for p in b.points)


def test_cube_split_triangle_counts():
    a, b = split_hull(_make_cube(), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), fill_cut=False)
    # 4 uncut triangles plus 8 cut ones producing 3 each
    assert a.triangle_count + b.triangle_count == 28
    assert a.triangle_count == 14
    assert not hull_watertight(a)

    a, b = split_hull(_make_cube(), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), fill_cut=True)
    # the 8-point cross-section adds 6 cap triangles per side
    assert a.triangle_count == 20
    assert b.triangle_count == 20


def test_cap_attributes_face_away_from_each_half():
    a, b = split_hull(_make_cube(), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))

    cap_a = [(n, t) for p, n, t in zip(a.positions, a.normals, a.tangents)
             if p[1] == 0.0 and n == pytest.approx((0.0, -1.0, 0.0))]
    cap_b = [(n, t) for p, n, t in zip(b.positions, b.normals, b.tangents)
             if p[1] == 0.0 and n == pytest.approx((0.0, 1.0, 0.0))]
    assert len(cap_a) == 8
    assert len(cap_b) == 8
    assert all(t[3] == -1.0 for _, t in cap_a)
    assert all(t[3] == 1.0 for _, t in cap_b)
    assert all(t[:3] == cap_b[0][1][:3] for _, t in cap_a)


def test_cut_vertices_interpolate_attributes():
    hull = _make_cube()
    hull.tangents = [(1.0, 0.0, 0.0, -1.0)] * hull.vertex_count
    a, b = split_hull(hull, (0.0, 0.0, 0.0), (0.0, 1.0, 0.0), fill_cut=False)

    assert attributes_normalized(a)
    assert all(t[3] == -1.0 for t in a.tangents)
    assert all(t[3] == -1.0 for t in b.tangents)


def test_split_clears_source():
    hull = _make_cube()
    a, b = hull.split((0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    assert hull.is_empty()
    assert hull.vertex_count == 0
    assert not a.is_empty() and not b.is_empty()


def test_plane_missing_the_hull():
    source = _make_tetra()
    triangles = [t.vertices for t in source.triangles]
    positions = list(source.positions)

    a, b = split_hull(source, (0.0, -10.0, 0.0), (0.0, 1.0, 0.0))

    assert b.is_empty()
    assert b.vertex_count == 0
    assert [t.vertices for t in a.triangles] == triangles
    assert a.positions == positions
    assert len(a.points) == 4
    assert len(a.edges) == 6

    a, b = split_hull(_make_tetra(), (0.0, 10.0, 0.0), (0.0, 1.0, 0.0))
    assert a.is_empty()
    assert b.triangle_count == 4


def test_tetra_corner_cut():
    a, b = split_hull(_make_tetra(), (0.25, 0.0, 0.0), (1.0, 0.0, 0.0))

    assert a.triangle_count == 4
    assert b.triangle_count == 8
    _assert_closed_piece(a)
    _assert_closed_piece(b)
    corner = 0.75 ** 3 / 6.0
    assert math.isclose(a.volume(), corner, rel_tol=1e-9)
    assert math.isclose(b.volume(), 1.0 / 6.0 - corner, rel_tol=1e-9)


def test_split_is_idempotent():
    a, b = split_hull(_make_cube(), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    count_a = a.triangle_count
    count_b = b.triangle_count

    again_a, empty = split_hull(a, (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    assert empty.is_empty()
    assert again_a.triangle_count == count_a

    again_b, empty = split_hull(b, (0.0, 0.0, 0.0), (0.0, -1.0, 0.0))
    assert empty.is_empty()
    assert again_b.triangle_count == count_b


def test_zero_normal_defaults_to_up():
    a, b = split_hull(_make_cube(), (0.0, 0.0, 0.0), (0.0, 0.0, 0.0))
    assert all(p.position[1] >= 0.0 for p in a.points)
    assert math.isclose(a.volume(), 0.5, rel_tol=1e-9)
    assert math.isclose(b.volume(), 0.5, rel_tol=1e-9)


def test_unnormalised_normal():
    a, b = split_hull(_make_cube(), (0.0, 0.25, 0.0), (0.0, 5.0, 0.0))
    assert math.isclose(a.volume(), 0.25, rel_tol=1e-9)
    assert math.isclose(b.volume(), 0.75, rel_tol=1e-9)


def test_split_empty_hull():
    a, b = split_hull(Hull(), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))
    assert a.is_empty()
    assert b.is_empty()


def test_tube_cross_section_has_a_hole():
    tube = _make_tube()
    assert math.isclose(tube.volume(), 3.0, rel_tol=1e-9)

    a, b = split_hull(tube, (0.0, 0.0, 0.0), (0.0, 1.0, 0.0))

    for piece in (a, b):
        _assert_closed_piece(piece)
        assert math.isclose(piece.volume(), 1.5, rel_tol=1e-9)


def test_sort_cut_edges_orders_loops():
    pts = [Point((float(i), 0.0, 0.0)) for i in range(6)]
    tri_a = [Edge(pts[0], pts[1]), Edge(pts[1], pts[2]), Edge(pts[2], pts[0])]
    tri_b = [Edge(pts[3], pts[4]), Edge(pts[4], pts[5]), Edge(pts[5], pts[3])]
    edges = [tri_a[2], tri_b[1], tri_a[0], tri_b[0], tri_a[1], tri_b[2]]

    loops = sort_cut_edges(edges)

    assert len(loops) == 2
    assert sorted(len(loop) for loop in loops) == [3, 3]
    for loop in loops:
        for k, index in enumerate(loop):
            following = edges[loop[(k + 1) % len(loop)]]
            assert edges[index].point1 is following.point0


def test_sort_cut_edges_drops_open_chains():
    pts = [Point((float(i), 0.0, 0.0)) for i in range(3)]
    assert sort_cut_edges([Edge(pts[0], pts[1]), Edge(pts[1], pts[2])]) == []


OBLIQUE_PLANES = [
    ((0.0, 0.0, 0.0), (0.3, 0.8, 0.5)),
    ((0.1, 0.2, -0.05), (-0.7, 0.2, 0.4)),
    ((0.0, -0.37, 0.11), (0.123, -0.456, 0.789)),
    ((0.45, 0.3, 0.2), (1.0, 1.0, 1.0)),
    ((-0.6, 0.0, 0.33), (0.91, -0.17, 0.29)),
]


@pytest.mark.parametrize('origin,normal', OBLIQUE_PLANES)
def test_oblique_split_of_sphere(origin, normal):
    sphere = _make_icosphere()
    volume = sphere.volume()

    a, b = split_hull(sphere, origin, normal)

    _assert_closed_piece(a)
    _assert_closed_piece(b)
    assert math.isclose(a.volume() + b.volume(), volume, rel_tol=1e-9)


@pytest.mark.parametrize('origin,normal', OBLIQUE_PLANES)
def test_oblique_split_is_idempotent(origin, normal):
    a, b = split_hull(_make_icosphere(), origin, normal)
    count_a = a.triangle_count
    count_b = b.triangle_count

    again_a, empty = split_hull(a, origin, normal)
    assert empty.is_empty()
    assert again_a.triangle_count == count_a
    assert len(empty.points) == 0

    flipped = tuple(-c for c in normal)
    again_b, empty = split_hull(b, origin, flipped)
    assert empty.is_empty()
    assert again_b.triangle_count == count_b


def test_near_plane_points_join_side_a():
    hull = _make_tetra()
    a, b = split_hull(hull, (0.0, 0.0, 1e-12), (0.0, 0.0, 1.0))
    # the base face lies within tolerance of the plane
    assert b.is_empty()
    assert a.triangle_count == 4


def test_u_prism_cut_across_both_legs():
    prism = _make_u_prism()
    assert math.isclose(prism.volume(), 5.0, rel_tol=1e-9)

    a, b = split_hull(prism, (0.0, 1.5, 0.0), (0.0, 1.0, 0.0))

    _assert_closed_piece(a)
    _assert_closed_piece(b)
    assert math.isclose(a.volume(), 1.0, rel_tol=1e-9)
    assert math.isclose(b.volume(), 4.0, rel_tol=1e-9)
    # the two leg tips stay separate: no triangle of A spans the gap between them
    for tri in a.triangles:
        xs = [a.positions[v][0] for v in tri.vertices]
        assert max(xs) <= 1.0 or min(xs) >= 2.0


def test_u_prism_concave_cross_section():
    a, b = split_hull(_make_u_prism(), (0.0, 0.0, 0.1), (0.0, 0.0, 1.0))

    _assert_closed_piece(a)
    _assert_closed_piece(b)
    assert math.isclose(a.volume(), 2.0, rel_tol=1e-9)
    assert math.isclose(b.volume(), 3.0, rel_tol=1e-9)
