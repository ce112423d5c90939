# -*- coding: utf-8 -*-
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("hullsplit")
except PackageNotFoundError:  # pragma: no cover - handled when package not installed
    __version__ = "unknown"

from hullsplit.hull import Hull, MeshData  # noqa: E402
from hullsplit.slicing import Plane, plane_to_local, split_by_planes  # noqa: E402
from hullsplit.splitter import split_hull  # noqa: E402
from hullsplit.triangulator import Triangulation, triangulate_polygon  # noqa: E402

__all__ = [
    "__version__",
    "Hull",
    "MeshData",
    "Plane",
    "Triangulation",
    "plane_to_local",
    "split_by_planes",
    "split_hull",
    "triangulate_polygon",
]
