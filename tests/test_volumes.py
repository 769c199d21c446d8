import math
import os
import stat

import numpy as np
import pytest

from galcos.state import Particle
from galcos.volumes import (
    QhullError,
    cayley_menger_matrix,
    delaunay_volumes,
    parse_facets,
    run_qdelaunay,
    spherical_volumes,
    tetrahedron_volume,
)

UNIT_TETRA = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]


def _script(tmp_path, body):
    path = tmp_path / "fake_qdelaunay"
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return str(path)


def _echo_script(tmp_path, output):
    out = tmp_path / "facets.txt"
    out.write_text(output)
    captured = tmp_path / "input.txt"
    return _script(tmp_path, f'cat > "{captured}"\ncat "{out}"\n'), captured


def test_cayley_menger_structure():
    m = cayley_menger_matrix(UNIT_TETRA)
    assert m.shape == (5, 5)
    assert np.allclose(m, m.T)
    assert list(m[0]) == [0.0, 1.0, 1.0, 1.0, 1.0]
    assert all(m[k, k] == 0.0 for k in range(5))
    assert m[1, 2] == pytest.approx(1.0)
    assert m[2, 3] == pytest.approx(2.0)


def test_cayley_menger_rejects_wrong_shape():
    with pytest.raises(ValueError):
        cayley_menger_matrix(UNIT_TETRA[:3])


def test_unit_tetrahedron_volume():
    assert tetrahedron_volume(UNIT_TETRA) == pytest.approx(1.0 / 6.0)


def test_volume_scales_with_cube_of_length():
    small = tetrahedron_volume(UNIT_TETRA)
    big = tetrahedron_volume([[2 * c for c in p] for p in UNIT_TETRA])
    assert big == pytest.approx(8 * small)


def test_volume_is_translation_invariant():
    moved = [[c + 3.5 for c in p] for p in UNIT_TETRA]
    assert tetrahedron_volume(moved) == pytest.approx(tetrahedron_volume(UNIT_TETRA))


def test_flat_tetrahedron_has_no_volume():
    flat = [[0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 1, 0]]
    assert tetrahedron_volume(flat) == pytest.approx(0.0, abs=1e-9)


def test_parse_facets():
    text = "2\n4 0 1 2 3\n4 1 2 3 4\n"
    assert parse_facets(text) == [(0, 1, 2, 3), (1, 2, 3, 4)]


def test_parse_facets_empty_count():
    assert parse_facets("0\n") == []


@pytest.mark.parametrize("text", ["", "x", "2\n4 0 1 2 3\n"])
def test_parse_facets_malformed(text):
    with pytest.raises(QhullError):
        parse_facets(text)


def test_run_qdelaunay_input_and_output(tmp_path):
    exe, captured = _echo_script(tmp_path, "1\n4 0 1 2 3\n")
    points = [[0.5, 1.5, 2.5], [1, 0, 0], [0, 1, 0], [0, 0, 1]]
    facets = run_qdelaunay(points, exe)
    assert facets == [(0, 1, 2, 3)]
    lines = captured.read_text().splitlines()
    assert lines[0] == "3"
    assert lines[1] == str(len(points))
    assert [float(v) for v in lines[2].split()] == points[0]


def test_run_qdelaunay_missing_executable(tmp_path):
    with pytest.raises(QhullError):
        run_qdelaunay(UNIT_TETRA, str(tmp_path / "does-not-exist"))


def test_run_qdelaunay_failure_status(tmp_path):
    exe = _script(tmp_path, "cat > /dev/null\nexit 3\n")
    with pytest.raises(QhullError):
        run_qdelaunay(UNIT_TETRA, exe)


def test_delaunay_volumes_share_tetrahedron(tmp_path):
    exe, _ = _echo_script(tmp_path, "1\n4 0 1 2 3\n")
    particles = [Particle(pos=p) for p in UNIT_TETRA]
    volumes = delaunay_volumes(particles, [0, 1, 2, 3], exe)
    quarter = tetrahedron_volume(UNIT_TETRA) / 4
    assert volumes == pytest.approx([quarter] * 4)
    assert [p.volume for p in particles] == pytest.approx([quarter] * 4)


def test_delaunay_volumes_orphan_point(tmp_path):
    exe, _ = _echo_script(tmp_path, "1\n4 0 1 2 3\n")
    particles = [Particle(pos=p) for p in UNIT_TETRA] + [Particle(pos=[5, 5, 5])]
    with pytest.raises(QhullError):
        delaunay_volumes(particles, range(5), exe)


def test_delaunay_volumes_bad_index(tmp_path):
    exe, _ = _echo_script(tmp_path, "1\n4 0 1 2 9\n")
    particles = [Particle(pos=p) for p in UNIT_TETRA]
    with pytest.raises(QhullError):
        delaunay_volumes(particles, range(4), exe)


def test_spherical_volume_direct_pair():
    particles = [Particle(pos=[0, 0, 0]), Particle(pos=[4, 0, 0])]
    volumes = spherical_volumes(particles, [0, 1], ngb_max=10)
    assert volumes == pytest.approx([4.0 / 3.0 * math.pi] * 2)
    assert particles[1].volume == pytest.approx(volumes[1])


def _grid():
    return [
        Particle(pos=[1.0 + x, 1.0 + 1.5 * y, 1.0 + 2.0 * z], id=n)
        for n, (x, y, z) in enumerate(
            (x, y, z) for x in range(2) for y in range(2) for z in range(2)
        )
    ]


def test_spherical_volumes_tree_matches_direct():
    via_tree = spherical_volumes(_grid(), range(8), ngb_max=1)
    direct = spherical_volumes(_grid(), range(8), ngb_max=100)
    assert via_tree == pytest.approx(direct)


def test_spherical_volumes_needs_two_particles():
    with pytest.raises(ValueError):
        spherical_volumes([Particle()], [0], ngb_max=1)