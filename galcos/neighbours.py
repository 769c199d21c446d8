"""Neighbour searches through the Barnes-Hut octree."""

from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from galcos.routines import distance, sort_by_key
from galcos.state import Particle
from galcos.tree import NodeKind, TreeNode

_GROWTH = 1.5
_INITIAL_FRACTION = 0.01


def _half_diagonal(node_size: float) -> float:
    half = node_size / 2.0
    return math.sqrt(2.0 * half * half)


def sphere_intersects_node(
    lsearch: float,
    pos: Sequence[float],
    node_pos: Sequence[float],
    node_size: float,
) -> bool:
    """True when a search sphere of radius ``lsearch`` may overlap the node."""
    dist = distance(pos, node_pos)
    return dist <= lsearch + 2.0 * _half_diagonal(node_size)


def node_contains_sphere(
    lsearch: float,
    pos: Sequence[float],
    node_pos: Sequence[float],
    node_size: float,
) -> bool:
    """True when the sphere covers the node or the node encloses the sphere's cube."""
    dist = distance(pos, node_pos)
    half = node_size / 2.0
    if lsearch >= dist + _half_diagonal(node_size):
        return True
    if node_size >= lsearch:
        return all(
            p + lsearch <= c + half and p - lsearch >= c - half
            for p, c in zip(pos, node_pos)
        )
    return False


def neighbours_within(
    particles: Sequence[Particle],
    index: int,
    root: TreeNode,
    lsearch: float,
) -> List[Tuple[int, float]]:
    """Other particles of the tree within ``lsearch`` of particle ``index``.

    Returns ``(particle index, distance)`` pairs in tree order.
    """
    pos = particles[index].pos
    found: List[Tuple[int, float]] = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.kind is NodeKind.EMPTY:
            continue
        if not (
            sphere_intersects_node(lsearch, pos, node.center, node.size)
            or node_contains_sphere(lsearch, pos, node.center, node.size)
        ):
            continue
        if node.kind is NodeKind.TWIG:
            stack.extend(reversed(node.sons))
        elif node.particle != index:
            dist = distance(pos, particles[node.particle].pos)
            if dist <= lsearch:
                found.append((node.particle, dist))
    return found


def nearest_neighbours(
    particles: Sequence[Particle],
    index: int,
    root: TreeNode,
    nparticles: int,
    ngb_max: int,
) -> Tuple[List[int], List[float]]:
    """The ``ngb_max`` nearest neighbours of particle ``index`` and their distances.

    The search radius starts from the mean density of ``nparticles`` in the
    root cell and grows by half until enough neighbours are found.
    """
    if ngb_max <= 0:
        raise ValueError("ngb_max must be positive")
    if nparticles <= 0:
        raise ValueError("nparticles must be positive")
    available = sum(
        1 for node in root.walk() if node.is_leaf() and node.particle != index
    )
    if available < ngb_max:
        raise ValueError(
            f"only {available} neighbours available, {ngb_max} requested"
        )
    density = nparticles / root.size**3
    lsearch = _INITIAL_FRACTION * (ngb_max / density) ** (1.0 / 3.0)
    if not lsearch > 0.0:
        raise ValueError("search radius must be positive")

    found = neighbours_within(particles, index, root, lsearch)
    while len(found) < ngb_max:
        lsearch *= _GROWTH
        found = neighbours_within(particles, index, root, lsearch)

    dists, indices = sort_by_key([d for _, d in found], [i for i, _ in found])
    return indices[:ngb_max], dists[:ngb_max]