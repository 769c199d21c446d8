"""Particle volumes from Delaunay tessellations and nearest-neighbour spheres."""

from __future__ import annotations

import math
import subprocess
from typing import List, Sequence, Tuple

import numpy as np

from galcos.neighbours import nearest_neighbours
from galcos.routines import distance
from galcos.state import Particle
from galcos.tree import build_tree

_VERTICES = 4
_CM_SIZE = _VERTICES + 1
# det(Cayley-Menger) = 288 V^2 for a tetrahedron.
_CM_FACTOR = 288.0

Facet = Tuple[int, int, int, int]


class QhullError(RuntimeError):
    """Running qdelaunay or reading its output failed."""


def _as_tetrahedron(points: Sequence[Sequence[float]]) -> np.ndarray:
    coords = np.asarray(points, dtype=float)
    if coords.shape != (_VERTICES, 3):
        raise ValueError(f"a tetrahedron needs 4 points in 3-D, got shape {coords.shape}")
    return coords


def cayley_menger_matrix(points: Sequence[Sequence[float]]) -> np.ndarray:
    """Bordered 5x5 matrix of squared edge lengths of a tetrahedron."""
    coords = _as_tetrahedron(points)
    matrix = np.ones((_CM_SIZE, _CM_SIZE))
    matrix[0, 0] = 0.0
    diff = coords[:, None, :] - coords[None, :, :]
    matrix[1:, 1:] = np.einsum("ijk,ijk->ij", diff, diff)
    return matrix


def tetrahedron_volume(points: Sequence[Sequence[float]]) -> float:
    """Volume of the tetrahedron with the four given vertices."""
    det = float(np.linalg.det(cayley_menger_matrix(points)))
    return math.sqrt(max(det, 0.0) / _CM_FACTOR)


def parse_facets(text: str) -> List[Facet]:
    """Parse qdelaunay ``Fv`` output into vertex-index quadruples."""
    tokens = text.split()
    try:
        count = int(tokens[0])
        values = [int(t) for t in tokens[1 : 1 + count * (_VERTICES + 1)]]
    except (IndexError, ValueError) as exc:
        raise QhullError("malformed qdelaunay output") from exc
    if count < 0 or len(values) < count * (_VERTICES + 1):
        raise QhullError(f"qdelaunay output announces {count} facets but holds fewer")
    step = _VERTICES + 1
    return [
        tuple(values[start + 1 : start + step])  # type: ignore[misc]
        for start in range(0, count * step, step)
    ]


def run_qdelaunay(
    points: Sequence[Sequence[float]], executable: str = "qdelaunay"
) -> List[Facet]:
    """Tessellate ``points`` with qdelaunay and return its tetrahedra."""
    lines = ["3", str(len(points))]
    lines.extend("%g %g %g" % tuple(p) for p in points)
    try:
        result = subprocess.run(
            [executable, "Fv", "QJ"],
            input="\n".join(lines) + "\n",
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise QhullError(f"cannot run {executable}: {exc}") from exc
    if result.returncode != 0:
        raise QhullError(
            f"{executable} failed with status {result.returncode}: {result.stderr.strip()}"
        )
    return parse_facets(result.stdout)


def delaunay_volumes(
    particles: Sequence[Particle],
    members: Sequence[int],
    executable: str = "qdelaunay",
) -> List[float]:
    """Give each member a quarter of the volume of the tetrahedra it belongs to.

    The volumes are stored on the particles and returned in member order.
    """
    members = list(members)
    coords = [particles[i].pos for i in members]
    facets = run_qdelaunay(coords, executable)

    shares = [0.0] * len(members)
    used = [False] * len(members)
    for facet in facets:
        if any(not 0 <= v < len(members) for v in facet):
            raise QhullError(f"facet {facet} refers to an unknown point")
        volume = tetrahedron_volume([coords[v] for v in facet])
        for v in facet:
            shares[v] += volume
            used[v] = True

    volumes = []
    for i, share, seen in zip(members, shares, used):
        if not seen:
            raise QhullError(f"particle {i} belongs to no tetrahedron")
        particles[i].volume = share / _VERTICES
        volumes.append(particles[i].volume)
    return volumes


def _sphere_volume(nearest: float) -> float:
    radius = nearest / 4.0
    return (4.0 / 3.0) * math.pi * radius**3


def spherical_volumes(
    particles: Sequence[Particle], members: Sequence[int], ngb_max: int
) -> List[float]:
    """Volume of a sphere of a quarter of the nearest-neighbour distance, per member.

    Groups larger than ``ngb_max`` use the tree search; smaller ones compare
    every pair directly. Volumes are stored on the particles and returned.
    """
    members = list(members)
    if len(members) < 2:
        raise ValueError("at least two particles are needed for neighbour distances")

    volumes = []
    if len(members) > ngb_max:
        root = build_tree(particles, members)
        for i in members:
            _, dists = nearest_neighbours(particles, i, root, len(members), ngb_max)
            particles[i].volume = _sphere_volume(dists[0])
            volumes.append(particles[i].volume)
    else:
        for i in members:
            nearest = min(
                distance(particles[i].pos, particles[j].pos) for j in members if j != i
            )
            particles[i].volume = _sphere_volume(nearest)
            volumes.append(particles[i].volume)
    return volumes