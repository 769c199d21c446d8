"""Barnes-Hut octree with monopole, dipole and quadrupole moments."""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Sequence

from galcos.routines import dipole_sum, distance, grav_soft_spline, quadrupole_sum
from galcos.state import BH_OPENING, EMPTY_FLAG, Particle

# Octants numbered from the lower-left corner, counter-clockwise, bottom to top.
_OCTANT_SIGNS = (
    (-1, -1, -1),
    (1, -1, -1),
    (1, 1, -1),
    (-1, 1, -1),
    (-1, -1, 1),
    (1, -1, 1),
    (1, 1, 1),
    (-1, 1, 1),
)

# Halving a cell this many times means the particles cannot be separated.
_MAX_DEPTH = 256

_ORIGIN = (0.0, 0.0, 0.0)


class NodeKind(Enum):
    """What a tree cell holds."""

    EMPTY = EMPTY_FLAG
    LEAF = 0
    TWIG = 1


@dataclass(eq=False)
class TreeNode:
    """A cubic cell of the octree."""

    center: List[float]
    size: float
    members: List[int]
    kind: NodeKind = NodeKind.EMPTY
    particle: int = EMPTY_FLAG
    mass: float = 0.0
    poscm: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    dipole: float = 0.0
    quadrupole: float = 0.0
    sons: List["TreeNode"] = field(default_factory=list)
    index: int = 0

    def walk(self) -> Iterator["TreeNode"]:
        """Yield this node and all its descendants in depth-first pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.sons))

    def is_leaf(self) -> bool:
        """True when the cell holds exactly one particle."""
        return self.kind is NodeKind.LEAF


def node_center(center: Sequence[float], size: float, octant: int) -> List[float]:
    """Centre of sub-cell ``octant`` (0-7) of a cell of side ``size`` at ``center``."""
    if not 0 <= octant < len(_OCTANT_SIGNS):
        raise ValueError(f"octant must be between 0 and 7, got {octant}")
    quarter = size / 4.0
    return [c + s * quarter for c, s in zip(center, _OCTANT_SIGNS[octant])]


def particles_in_box(
    particles: Sequence[Particle],
    indices: Sequence[int],
    center: Sequence[float],
    size: float,
) -> List[int]:
    """Indices whose particles lie in the half-open cube of side ``size`` at ``center``."""
    half = size / 2.0
    bounds = [(c - half, c + half) for c in center]
    return [
        i
        for i in indices
        if all(lo <= p < hi for p, (lo, hi) in zip(particles[i].pos, bounds))
    ]


def _allocate(
    particles: Sequence[Particle],
    members: List[int],
    center: List[float],
    size: float,
    counter: Iterator[int],
    depth: int,
) -> TreeNode:
    node = TreeNode(center=center, size=size, members=members, index=next(counter))
    if len(members) == 1:
        node.kind = NodeKind.LEAF
        node.particle = members[0]
        only = particles[members[0]]
        node.mass = only.mass
        node.poscm = list(only.pos)
    elif len(members) > 1:
        if depth >= _MAX_DEPTH:
            raise ValueError("particles are too close to be separated by the tree")
        node.kind = NodeKind.TWIG
        son_size = size / 2.0
        for octant in range(len(_OCTANT_SIGNS)):
            son_center = node_center(center, size, octant)
            son_members = particles_in_box(particles, members, son_center, son_size)
            node.sons.append(
                _allocate(particles, son_members, son_center, son_size, counter, depth + 1)
            )
        node.mass = sum(son.mass for son in node.sons)
        weighted = [
            sum(son.poscm[k] * son.mass for son in node.sons) for k in range(3)
        ]
        if node.mass != 0.0:
            node.poscm = [w / node.mass for w in weighted]
        else:
            node.poscm = [math.nan, math.nan, math.nan]
    return node


def _accumulate_multipoles(node: TreeNode) -> None:
    rcm = distance(node.poscm, _ORIGIN)
    if not rcm > 0.0:
        # Moments are expanded about the origin and are undefined there.
        return
    r3 = rcm**3
    r5 = r3 * rcm * rcm
    for leaf in node.walk():
        if not leaf.is_leaf():
            continue
        rel = [a - b for a, b in zip(leaf.poscm, node.poscm)]
        node.dipole -= leaf.mass * dipole_sum(rel, node.poscm, r3)
        node.quadrupole -= leaf.mass * quadrupole_sum(rel, node.poscm, rcm, r5)


def build_tree(particles: Sequence[Particle], indices: Sequence[int]) -> TreeNode:
    """Build the octree over ``particles[indices]`` with masses and moments filled in.

    The root cell always encloses the origin as well as every particle.
    """
    members = list(indices)
    if not members:
        raise ValueError("cannot build a tree without particles")

    mins = [0.0, 0.0, 0.0]
    maxs = [0.0, 0.0, 0.0]
    for i in members:
        for k, p in enumerate(particles[i].pos):
            mins[k] = min(mins[k], p)
            maxs[k] = max(maxs[k], p)

    sizes = [hi - lo for lo, hi in zip(mins, maxs)]
    if any(math.isnan(s) for s in sizes):
        raise ValueError(f"cannot compute the root cell of the tree: {sizes}")
    center = [lo + s / 2.0 for lo, s in zip(mins, sizes)]
    box = max(sizes)
    box += 2.0 * box / float(len(members)) ** (1.0 / 3.0)

    root = _allocate(particles, members, center, box, itertools.count(), 0)

    _accumulate_multipoles(root)
    for son in root.sons:
        _accumulate_multipoles(son)
    return root


def tree_potential(
    particles: Sequence[Particle],
    root: TreeNode,
    index: int,
    g_internal: float,
    grav_soft: float,
) -> float:
    """Softened gravitational potential at particle ``index`` from the tree."""
    pos = particles[index].pos
    potential = 0.0
    stack = [root]
    while stack:
        node = stack.pop()
        if node.kind is NodeKind.EMPTY:
            continue
        dist = distance(pos, node.poscm)
        if dist > 0.0 and node.size / dist <= BH_OPENING:
            monopole = (node.mass / grav_soft) * grav_soft_spline(dist, grav_soft)
            potential -= g_internal * (monopole + node.dipole + node.quadrupole)
        else:
            stack.extend(reversed(node.sons))
    return potential