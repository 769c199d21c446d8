"""Geometric, cosmological and gravitational helper routines."""

from __future__ import annotations

import math
from datetime import datetime
from operator import itemgetter
from typing import List, Optional, Sequence, Tuple, TypeVar

from galcos.state import HUBBLE_TIME, Cosmology

SECONDS_PER_YEAR = 31536000.0

V = TypeVar("V")


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two 3-D points."""
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))


def distance_eps(a: Sequence[float], b: Sequence[float], eps: float) -> float:
    """Distance between two points softened by ``eps``."""
    return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)) + eps * eps)


def linking_length(b_link: float, box_size: float, npart_total: int) -> float:
    """Friends-of-friends linking length: b times the mean interparticle spacing."""
    if npart_total <= 0:
        raise ValueError("npart_total must be positive")
    return b_link * box_size / float(npart_total) ** (1.0 / 3.0)


def sort_by_key(keys: Sequence[float], values: Sequence[V]) -> Tuple[List[float], List[V]]:
    """Sort ``keys`` ascending and reorder ``values`` alongside them."""
    if len(keys) != len(values):
        raise ValueError("keys and values must have the same length")
    pairs = sorted(zip(keys, values), key=itemgetter(0))
    return [k for k, _ in pairs], [v for _, v in pairs]


def mean_molecular_weight(x: float, y: float, z: float) -> float:
    """Mean molecular weight of fully ionised gas with mass fractions X, Y, Z."""
    return 1.0 / (2.0 * x + 0.75 * y + 0.5 * z)


def cosmic_time(redshift: float) -> float:
    """Age of an Einstein-de Sitter universe at ``redshift``, in years."""
    age = (2.0 / 3.0) * (HUBBLE_TIME / SECONDS_PER_YEAR) / 0.72
    return age / (1.0 + redshift) ** 1.5


def virial_density(cosmology: Cosmology) -> float:
    """Virial overdensity threshold times the critical density (physical units)."""
    z1 = 1.0 + cosmology.redshift
    ez_square = cosmology.omega_matter * z1**3 + (1.0 - cosmology.omega_matter)
    omega_z = cosmology.omega_matter * z1**3 / ez_square
    x = omega_z - 1.0
    delta = 18.0 * math.pi * math.pi + 82.0 * x - 39.0 * x * x
    rhocrit_z = 27.7536627 * ez_square * cosmology.cosmic_time**3
    return delta * rhocrit_z


def seconds_since_year_start(now: Optional[datetime] = None) -> int:
    """Seconds elapsed since the start of the year of ``now`` (local time by default)."""
    if now is None:
        now = datetime.now()
    tm = now.timetuple()
    return tm.tm_sec + tm.tm_min * 60 + tm.tm_hour * 3600 + (tm.tm_yday - 1) * 86400


def quadrupole_sum(
    rel: Sequence[float], center: Sequence[float], r: float, r5: float
) -> float:
    """Quadrupole term of a particle at ``rel`` seen from ``center`` at distance ``r``."""
    xi, yi, zi = rel
    x, y, z = center
    ri2 = xi * xi + yi * yi + zi * zi
    qxx, qyy, qzz = 3.0 * xi * xi - ri2, 3.0 * yi * yi - ri2, 3.0 * zi * zi - ri2
    qxy, qxz, qyz = 3.0 * xi * yi, 3.0 * xi * zi, 3.0 * yi * zi
    rr = r * r
    rxx, ryy, rzz = 3.0 * x * x - rr, 3.0 * y * y - rr, 3.0 * z * z - rr
    rxy, rxz, ryz = 3.0 * x * y, 3.0 * x * z, 3.0 * y * z
    total = (
        qxx * rxx
        + qyy * ryy
        + qzz * rzz
        + 2.0 * (qxy * rxy + qxz * rxz + qyz * ryz)
    )
    return total / (6.0 * r5)


def dipole_sum(rel: Sequence[float], center: Sequence[float], r3: float) -> float:
    """Dipole term: projection of ``rel`` onto ``center`` divided by ``r3``."""
    return sum(a * b for a, b in zip(rel, center)) / r3


def grav_soft_spline(x: float, h: float) -> float:
    """Spline-softened gravitational potential kernel (sign flipped, in units of 1/h)."""
    u = x / h
    if 0.0 <= u < 0.5:
        kern = (16.0 / 3.0) * u**2 - (48.0 / 5.0) * u**4 + (32.0 / 5.0) * u**5 - 14.0 / 5.0
    elif 0.5 <= u < 1.0:
        kern = (
            1.0 / (15.0 * u)
            + (32.0 / 3.0) * u**2
            - 16.0 * u**3
            + (48.0 / 5.0) * u**4
            - (32.0 / 15.0) * u**5
            - 16.0 / 5.0
        )
    elif u >= 1.0:
        kern = -1.0 / u
    else:
        kern = 0.0
    return -kern