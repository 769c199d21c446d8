"""Cluster assembly, centring on the most bound particle and unbinding."""

from __future__ import annotations

from typing import List, Sequence

from galcos.routines import sort_by_key
from galcos.state import Halo, Particle
from galcos.tree import build_tree, tree_potential

_LARGE_UNBOUND = 20


def build_cluster(
    particles: Sequence[Particle],
    members: Sequence[int],
    cluster_id: int,
    center_id: int,
) -> Halo:
    """Create a halo from ``members`` and tag those particles with ``cluster_id``."""
    halo = Halo(
        id_center_halo=center_id,
        id_cluster=cluster_id,
        halo_particles=list(members),
        domain_particles=[],
        number_of_subhalos=0,
    )
    for i in halo.halo_particles:
        particles[i].cluster_id = cluster_id
    return halo


def _compute_potentials(
    particles: Sequence[Particle],
    members: Sequence[int],
    g_internal: float,
    grav_soft: float,
) -> None:
    root = build_tree(particles, members)
    for i in members:
        particles[i].ep = tree_potential(particles, root, i, g_internal, grav_soft)


def cluster_bound(
    particles: Sequence[Particle],
    members: Sequence[int],
    halo: Halo,
    g_internal: float,
    grav_soft: float,
) -> int:
    """Centre the cluster on its most bound particle and return that particle's index.

    Member positions become relative to that particle and velocities relative
    to the mass-weighted mean velocity; both are stored on ``halo``.
    """
    members = list(members)
    if not members:
        raise ValueError("a cluster needs at least one particle")
    _compute_potentials(particles, members, g_internal, grav_soft)
    _, order = sort_by_key([particles[i].ep for i in members], members)
    center = order[0]

    total_mass = sum(particles[i].mass for i in members)
    if total_mass == 0.0:
        raise ValueError("the cluster has no mass")
    vcm = [
        sum(particles[i].mass * particles[i].vel[k] for i in members) / total_mass
        for k in range(3)
    ]
    cpos = list(particles[center].pos)
    halo.pos = list(cpos)
    halo.vel = list(vcm)

    dpos = [-c for c in cpos]
    dvel = [-v for v in vcm]
    for i in members:
        particles[i].shift(dpos, dvel)
    return center


def bound_substructure(
    particles: Sequence[Particle],
    members: Sequence[int],
    center: int,
    minimum: int,
    g_internal: float,
    grav_soft: float,
) -> List[int]:
    """Strip unbound particles from a substructure centred on particle ``center``.

    Each pass orders members by total energy and drops the least bound ones:
    a quarter of the unbound count when more than twenty are unbound, one
    otherwise. Passes stop once every member is bound or fewer than
    ``minimum - 1`` remain. Returns the surviving members.
    """
    current = list(members)
    while current and len(current) >= minimum - 1:
        _compute_potentials(particles, current, g_internal, grav_soft)

        cpos = list(particles[center].pos)
        cvel = list(particles[center].vel)
        dpos = [-c for c in cpos]
        dvel = [-v for v in cvel]
        for i in current:
            p = particles[i]
            p.shift(dpos, dvel)
            p.ek = 0.5 * p.mass * sum(v * v for v in p.vel)

        energies, current = sort_by_key(
            [particles[i].ep + particles[i].ek for i in current], current
        )
        unbound = sum(1 for e in energies if e >= 0.0)
        if unbound == 0:
            return current
        drop = unbound // 4 if unbound > _LARGE_UNBOUND else 1
        current = current[: len(current) - drop]
    return current