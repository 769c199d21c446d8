"""Halo centring across periodic boundaries and virial properties."""

from __future__ import annotations

import math
from typing import List, Sequence

from galcos.routines import distance, grav_soft_spline, virial_density
from galcos.state import Cosmology, Halo, Particle

_CENTER_CANDIDATES = 20
_VIRIAL_START = 20
_ORIGIN = (0.0, 0.0, 0.0)


def _direct_potential(
    particles: Sequence[Particle],
    index: int,
    members: Sequence[int],
    g_internal: float,
    grav_soft: float,
) -> float:
    pos = particles[index].pos
    potential = 0.0
    for j in reversed(members):
        if j == index:
            continue
        dist = distance(pos, particles[j].pos)
        potential -= g_internal * (particles[j].mass / grav_soft) * grav_soft_spline(
            dist, grav_soft
        )
    return potential


def periodic_boundary_corrections(
    particles: Sequence[Particle],
    halo: Halo,
    box_size: float,
    g_internal: float,
    grav_soft: float,
) -> int:
    """Unwrap halo members across the periodic box around a bound centre.

    Twenty members taken at a regular stride are tried as centre candidates;
    the one with the lowest direct-summation potential is kept. Every member
    further than half a box from it along an axis is moved by one box length
    towards it. Returns the index of the chosen centre.
    """
    members = halo.halo_particles
    if not members:
        raise ValueError("the halo has no particles")
    stride = len(members) // _CENTER_CANDIDATES
    candidates = [members[n * stride] for n in range(_CENTER_CANDIDATES)]
    potentials = [
        _direct_potential(particles, i, members, g_internal, grav_soft)
        for i in candidates
    ]
    center = min(zip(potentials, candidates), key=lambda pair: pair[0])[1]

    cpos = list(particles[center].pos)
    limit = (0.5 * box_size) ** 2
    for i in members:
        p = particles[i]
        for k, c in enumerate(cpos):
            if (c - p.pos[k]) ** 2 > limit:
                p.pos[k] += box_size if c > p.pos[k] else -box_size
    return center


def halo_center_mass(
    particles: Sequence[Particle], halo: Halo, cosmology: Cosmology
) -> Halo:
    """Fill in total mass, extent, half-mass radius and virial radius and mass.

    Member positions are taken relative to the halo centre at the origin.
    Particles are assumed to share one mass. The enclosed mass grows outward
    from the twentieth radius until the mean density drops to the virial
    threshold; without such a crossing the whole halo is virial.
    """
    members = halo.halo_particles
    if not members:
        raise ValueError("the halo has no particles")
    radii: List[float] = sorted(distance(particles[i].pos, _ORIGIN) for i in members)
    total = sum(particles[i].mass for i in members)
    unit = particles[members[0]].mass

    halo.radius = radii[-1]
    threshold = virial_density(cosmology)

    enclosed = _VIRIAL_START * unit
    crossed = False
    for r in radii[_VIRIAL_START:]:
        enclosed += unit
        volume = 4.0 * math.pi * r**3
        density = 3.0 * enclosed / volume if volume > 0.0 else math.inf
        if enclosed <= total / 2.0:
            halo.hmr = r
        if density <= threshold:
            halo.rvir = r
            halo.mvir = enclosed
            crossed = True
            break

    if not crossed:
        halo.mvir = total
        halo.rvir = radii[-1]
    halo.mass = total
    return halo


def halo_properties(
    particles: Sequence[Particle], halo: Halo, cosmology: Cosmology
) -> Halo:
    """Compute the derived properties of ``halo``."""
    return halo_center_mass(particles, halo, cosmology)