"""Particle, halo and cosmology records shared by the halo-finding tools."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

EMPTY_FLAG = -1
BH_OPENING = 0.7

# Physical constants in cgs units.
G_GRAVITY = 6.672e-8
HUBBLE = 3.2407789e-18  # h / s
HUBBLE_TIME = 3.09e17  # s / h


def _vector(values: Sequence[float], what: str) -> List[float]:
    vector = [float(v) for v in values]
    if len(vector) != 3:
        raise ValueError(f"{what} must have three components, got {len(vector)}")
    return vector


@dataclass
class Particle:
    """A simulation particle with phase-space coordinates and bookkeeping."""

    pos: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    vel: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    mass: float = 0.0
    ep: float = 0.0
    ek: float = 0.0
    volume: float = 0.0
    id: int = 0
    oid: int = 0
    cluster_id: int = EMPTY_FLAG

    def __post_init__(self) -> None:
        self.pos = _vector(self.pos, "pos")
        self.vel = _vector(self.vel, "vel")

    def shift(self, dpos: Sequence[float], dvel: Optional[Sequence[float]] = None) -> None:
        """Move the particle by ``dpos`` in position and ``dvel`` in velocity."""
        offset = _vector(dpos, "dpos")
        self.pos = [p + d for p, d in zip(self.pos, offset)]
        if dvel is not None:
            voffset = _vector(dvel, "dvel")
            self.vel = [v + d for v, d in zip(self.vel, voffset)]


@dataclass
class Halo:
    """A friends-of-friends group and the properties derived for it."""

    mass: float = 0.0
    pos: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    vel: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    bpos: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    hmr: float = 0.0
    rvir: float = 0.0
    mvir: float = 0.0
    radius: float = 0.0
    id_center_halo: int = EMPTY_FLAG
    id_cluster: int = EMPTY_FLAG
    halo_particles: List[int] = field(default_factory=list)
    domain_particles: List[int] = field(default_factory=list)
    number_of_subhalos: int = 0
    id_subhalos: List[int] = field(default_factory=list)
    mass_fraction: float = 0.0
    total_ek: float = 0.0
    total_ep: float = 0.0
    total_energy: float = 0.0
    total_angular_mom: float = 0.0
    vvir: float = 0.0
    tvir: float = 0.0
    lambda_spin: float = 0.0

    def member_count(self) -> int:
        """Number of particles that belong to the halo itself."""
        return len(self.halo_particles)


@dataclass
class Cosmology:
    """Snapshot-wide cosmological parameters."""

    box_size: float = 0.0
    redshift: float = 0.0
    omega_matter: float = 0.0
    omega_lambda: float = 0.0
    omega_baryon: float = 0.0
    hubble_param: float = 0.0
    cosmic_time: float = 0.0
    particle_mass: float = 0.0
    npart_total: int = 0