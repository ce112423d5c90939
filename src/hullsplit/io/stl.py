"""STL import and export for hulls."""

from __future__ import annotations

import logging
import re
import struct
from dataclasses import dataclass
from typing import Iterable, List

from hullsplit.geometry_utils import Vec3, normalize, triangle_normal
from hullsplit.hull import Hull

logger = logging.getLogger(__name__)

_HEADER_SIZE = 80
_STRUCT_TRIANGLE = struct.Struct('<12fH')


@dataclass(frozen=True)
class Facet:
    """One STL facet: a normal and three vertices."""

    normal: Vec3
    v0: Vec3
    v1: Vec3
    v2: Vec3


def write_stl(hull: Hull, path_or_file, *, binary: bool = True, name: str = 'hullsplit') -> None:
    """Write ``hull`` to STL.

    ``path_or_file`` can be a filesystem path or an open binary/text
    stream.  Facet normals are recomputed from the geometry and
    degenerate triangles are skipped.  An empty hull is written as a
    file without facets.
    """

    facets = list(_facets_from_hull(hull))

    if binary:
        _write_binary(facets, path_or_file, name)
    else:
        _write_ascii(facets, path_or_file, name)


def _facets_from_hull(hull: Hull) -> Iterable[Facet]:
    if hull.is_empty():
        logger.warning("writing empty hull %r as an STL without facets", hull)
        return
    for tri in hull.triangles:
        v0 = hull.positions[tri.vertex0]
        v1 = hull.positions[tri.vertex1]
        v2 = hull.positions[tri.vertex2]
        normal = triangle_normal(v0, v1, v2)
        if normal is None:
            continue
        yield Facet(normal=normal, v0=v0, v1=v1, v2=v2)


def _write_binary(facets: List[Facet], path_or_file, name: str) -> None:
    close_when_done = False
    if hasattr(path_or_file, 'write'):
        stream = path_or_file
    else:
        stream = open(path_or_file, 'wb')
        close_when_done = True

    try:
        header = (name[:_HEADER_SIZE]).encode('ascii', errors='replace')
        header = header.ljust(_HEADER_SIZE, b' ')
        stream.write(header)
        stream.write(struct.pack('<I', len(facets)))

        for facet in facets:
            stream.write(_STRUCT_TRIANGLE.pack(*facet.normal, *facet.v0, *facet.v1, *facet.v2, 0))
    finally:
        if close_when_done:
            stream.close()


def _write_ascii(facets: List[Facet], path_or_file, name: str) -> None:
    close_when_done = False
    if hasattr(path_or_file, 'write'):
        stream = path_or_file
    else:
        stream = open(path_or_file, 'w', encoding='ascii')
        close_when_done = True

    try:
        print(f"solid {name}", file=stream)
        for facet in facets:
            n = facet.normal
            print(f"  facet normal {n[0]:.9e} {n[1]:.9e} {n[2]:.9e}", file=stream)
            print("    outer loop", file=stream)
            for v in (facet.v0, facet.v1, facet.v2):
                print(f"      vertex {v[0]:.9e} {v[1]:.9e} {v[2]:.9e}", file=stream)
            print("    endloop", file=stream)
            print("  endfacet", file=stream)
        print(f"endsolid {name}", file=stream)
    finally:
        if close_when_done:
            stream.close()


# ---------------------------------------------------------------------------
# STL Import
# ---------------------------------------------------------------------------


def _is_binary_stl(data: bytes) -> bool:
    """Determine if STL data is binary format.

    Binary STL has 80-byte header + 4-byte count, then 50 bytes per triangle.
    ASCII STL starts with 'solid' keyword.
    """
    if len(data) < 84:
        return False

    header = data[:80].decode('ascii', errors='ignore').strip().lower()
    if not header.startswith('solid'):
        return True
    # 'solid' may just be part of a binary header; trust the size
    tri_count = struct.unpack('<I', data[80:84])[0]
    if len(data) != 84 + tri_count * 50:
        return False
    rest = data[84:min(200, len(data))]
    return not (b'facet' in rest or b'vertex' in rest)


def _parse_binary_stl(data: bytes) -> List[Facet]:
    if len(data) < 84:
        raise ValueError("invalid binary STL: file too small")

    tri_count = struct.unpack('<I', data[80:84])[0]
    if len(data) < 84 + tri_count * 50:
        raise ValueError(f"invalid binary STL: expected {tri_count} facets")

    facets = []
    offset = 84
    for _ in range(tri_count):
        values = _STRUCT_TRIANGLE.unpack(data[offset:offset + 50])
        facets.append(Facet(normal=tuple(values[0:3]), v0=tuple(values[3:6]),
                            v1=tuple(values[6:9]), v2=tuple(values[9:12])))
        offset += 50
    return facets


_NUMBER = r'([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)'
_FACET_PATTERN = re.compile(
    r'facet\s+normal\s+' + r'\s+'.join([_NUMBER] * 3) + r'\s+'
    r'outer\s+loop\s+'
    + r'\s+'.join([r'vertex\s+' + r'\s+'.join([_NUMBER] * 3)] * 3) + r'\s+'
    r'endloop\s+endfacet',
    re.IGNORECASE,
)


def _parse_ascii_stl(text: str) -> List[Facet]:
    facets = []
    for match in _FACET_PATTERN.finditer(text):
        values = [float(g) for g in match.groups()]
        facets.append(Facet(normal=tuple(values[0:3]), v0=tuple(values[3:6]),
                            v1=tuple(values[6:9]), v2=tuple(values[9:12])))
    return facets


def _facets_to_hull(facets: List[Facet], deduplicate: bool) -> Hull:
    positions: List[Vec3] = []
    normals: List[Vec3] = []
    indices: List[int] = []

    facet_normals = []
    for facet in facets:
        normal = triangle_normal(facet.v0, facet.v1, facet.v2)
        if normal is None:
            normal = normalize(facet.normal) or (0.0, 0.0, 1.0)
        facet_normals.append(normal)

    if deduplicate:
        vertex_map = {}
        sums: List[List[float]] = []
        for facet, normal in zip(facets, facet_normals):
            for v in (facet.v0, facet.v1, facet.v2):
                idx = vertex_map.get(v)
                if idx is None:
                    idx = len(positions)
                    vertex_map[v] = idx
                    positions.append(v)
                    sums.append([0.0, 0.0, 0.0])
                sums[idx][0] += normal[0]
                sums[idx][1] += normal[1]
                sums[idx][2] += normal[2]
                indices.append(idx)
        for total in sums:
            normals.append(normalize(total) or (0.0, 0.0, 1.0))
    else:
        for facet, normal in zip(facets, facet_normals):
            base = len(positions)
            positions.extend((facet.v0, facet.v1, facet.v2))
            normals.extend((normal, normal, normal))
            indices.extend((base, base + 1, base + 2))

    return Hull.from_mesh(positions, normals, None, indices)


def read_stl(path_or_file, *, deduplicate: bool = True) -> Hull:
    """Read an STL file into a :class:`Hull`.

    Parameters
    ----------
    path_or_file : str or path-like or file-like
        Path to STL file, or an open binary file object.
    deduplicate : bool, optional
        If True (default), coincident vertices are merged and their
        normals averaged (smooth shading).  If False, each facet gets its
        own three vertices carrying the facet normal (flat shading).
        Points are shared by position either way.

    Returns
    -------
    Hull
        The imported surface.  Tangents are derived from the normals.
        A file without facets yields an empty hull.
    """

    if hasattr(path_or_file, 'read'):
        data = path_or_file.read()
        if isinstance(data, str):
            data = data.encode('utf-8')
    else:
        with open(path_or_file, 'rb') as f:
            data = f.read()

    if _is_binary_stl(data):
        facets = _parse_binary_stl(data)
    else:
        facets = _parse_ascii_stl(data.decode('utf-8', errors='replace'))

    if not facets:
        return Hull()
    return _facets_to_hull(facets, deduplicate)


__all__ = ['Facet', 'write_stl', 'read_stl']
