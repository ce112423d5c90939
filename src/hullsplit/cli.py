"""Command line front end: split an STL file by one or more planes.

Usage::

    python -m hullsplit part.stl --plane 0 0 0 0 1 0
    python -m hullsplit part.stl --plane 0 0 0 1 0 0 --plane 0 0 0 0 0 1 \\
        --output-dir pieces --prefix part --ascii
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from hullsplit import __version__
from hullsplit.io.stl import read_stl, write_stl
from hullsplit.slicing import Plane, split_by_planes

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hullsplit",
        description="Split a closed STL surface into capped pieces along planes.",
    )
    parser.add_argument("input", help="Path to the input STL file")
    parser.add_argument(
        "--plane",
        action="append",
        nargs=6,
        type=float,
        required=True,
        metavar=("PX", "PY", "PZ", "NX", "NY", "NZ"),
        help="Cutting plane as a point followed by a normal (repeatable)",
    )
    parser.add_argument("--no-fill", action="store_true", help="Leave the cut open instead of capping it")
    parser.add_argument("--ascii", action="store_true", help="Write ASCII STL instead of binary")
    parser.add_argument("--output-dir", default=".", help="Directory for the output pieces (default: .)")
    parser.add_argument("--prefix", default=None, help="Output file prefix (default: input file stem)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(args.input)
    if not input_path.is_file():
        parser.error(f"input file not found: {input_path}")

    try:
        hull = read_stl(input_path)
    except ValueError as exc:
        parser.error(f"could not read {input_path}: {exc}")

    if hull.is_empty():
        logger.error("%s does not describe a closed surface", input_path)
        return 1

    planes = [Plane(tuple(values[:3]), tuple(values[3:])) for values in args.plane]
    logger.info("splitting %s (%d triangles) by %d plane(s)",
                input_path, hull.triangle_count, len(planes))
    pieces = split_by_planes(hull, planes, fill_cut=not args.no_fill)

    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    prefix = args.prefix or input_path.stem

    written: List[Path] = []
    for k, piece in enumerate(pieces):
        target = out_dir / f"{prefix}_{k}.stl"
        write_stl(piece, target, binary=not args.ascii, name=f"{prefix}_{k}")
        written.append(target)
        logger.info("wrote %s (%d triangles)", target, piece.triangle_count)

    print(f"{len(written)} piece(s) written to {out_dir}")
    return 0


__all__ = ["main"]


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
