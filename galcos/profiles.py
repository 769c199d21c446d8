"""Stacked radial volume profiles of intermediate-size halos."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from galcos.routines import distance
from galcos.state import Halo, Particle

_MIN_MEMBERS = 75
_MAX_MEMBERS = 250
_ORIGIN = (0.0, 0.0, 0.0)


@dataclass
class ProfileBin:
    """One radial shell, in units of the virial radius, summed over halos."""

    radius: float
    shell_volume: float
    volume: float = 0.0
    mass: float = 0.0
    per_halo: List[Tuple[int, float, int]] = field(default_factory=list)


def radial_profiles(
    particles: Sequence[Particle],
    halos: Sequence[Halo],
    rmax: float = 50.0,
    dr: float = 0.5,
) -> List[ProfileBin]:
    """Particle volumes binned by distance over virial radius.

    Only halos with more than 75 and fewer than 250 members contribute; both
    their domain and their own particles are counted. Each bin records, per
    halo, the summed volume and particle count.
    """
    if dr <= 0.0:
        raise ValueError("dr must be positive")
    selected = [
        (h_id, halo)
        for h_id, halo in enumerate(halos)
        if _MIN_MEMBERS < halo.member_count() < _MAX_MEMBERS
    ]
    for h_id, halo in selected:
        if halo.rvir <= 0.0:
            raise ValueError(f"halo {h_id} has no virial radius")

    scaled = [
        (
            h_id,
            [
                (distance(particles[i].pos, _ORIGIN) / halo.rvir, particles[i])
                for i in (*halo.domain_particles, *halo.halo_particles)
            ],
        )
        for h_id, halo in selected
    ]

    bins = []
    for k in range(int(rmax / dr)):
        r = k * dr
        shell = (4.0 / 3.0) * math.pi * ((r + dr) ** 3 - r**3)
        profile = ProfileBin(radius=r, shell_volume=shell)
        for h_id, entries in scaled:
            inside = [p for d, p in entries if r <= d < r + dr]
            volume = sum(p.volume for p in inside)
            profile.per_halo.append((h_id, volume, len(inside)))
            profile.volume += volume
            profile.mass += sum(p.mass for p in inside)
        bins.append(profile)
    return bins