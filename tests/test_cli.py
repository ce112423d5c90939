import math

import pytest

from hullsplit.cli import main
from hullsplit.hull import Hull
from hullsplit.io.stl import read_stl, write_stl


def _write_cube(path, half=0.5):
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
    write_stl(Hull.from_mesh(positions, None, None, indices), path)


def test_cli_splits_cube(tmp_path):
    source = tmp_path / 'cube.stl'
    _write_cube(source)
    out_dir = tmp_path / 'pieces'

    code = main([str(source), '--plane', '0', '0', '0', '0', '1', '0',
                 '--output-dir', str(out_dir), '--prefix', 'half'])

    assert code == 0
    written = sorted(p.name for p in out_dir.iterdir())
    assert written == ['half_0.stl', 'half_1.stl']
    for name in written:
        piece = read_stl(out_dir / name)
        assert math.isclose(piece.volume(), 0.5, rel_tol=1e-6)


def test_cli_multiple_planes_ascii(tmp_path):
    source = tmp_path / 'cube.stl'
    _write_cube(source)

    code = main([str(source),
                 '--plane', '0', '0', '0', '0', '1', '0',
                 '--plane', '0.1', '0', '0', '-1', '0', '0',
                 '--ascii', '--output-dir', str(tmp_path)])

    assert code == 0
    pieces = sorted(tmp_path.glob('cube_*.stl'))
    assert len(pieces) == 4
    assert pieces[0].read_text().startswith('solid cube_0')


def test_cli_no_fill_writes_open_pieces(tmp_path):
    source = tmp_path / 'cube.stl'
    _write_cube(source)

    code = main([str(source), '--plane', '0', '0', '0', '0', '1', '0', '--no-fill',
                 '--output-dir', str(tmp_path / 'out')])

    assert code == 0
    piece = read_stl(tmp_path / 'out' / 'cube_0.stl')
    assert piece.triangle_count == 14


def test_cli_empty_input(tmp_path):
    source = tmp_path / 'empty.stl'
    write_stl(Hull(), source)

    assert main([str(source), '--plane', '0', '0', '0', '0', '1', '0',
                 '--output-dir', str(tmp_path / 'out')]) == 1


def test_cli_argument_errors(tmp_path):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path / 'missing.stl'), '--plane', '0', '0', '0', '0', '1', '0'])
    assert exc.value.code == 2

    source = tmp_path / 'cube.stl'
    _write_cube(source)
    with pytest.raises(SystemExit) as exc:
        main([str(source)])
    assert exc.value.code == 2

    with pytest.raises(SystemExit) as exc:
        main([str(source), '--plane', '0', '0', '0'])
    assert exc.value.code == 2
