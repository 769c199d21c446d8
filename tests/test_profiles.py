import math

import pytest

from galcos.profiles import radial_profiles
from galcos.state import Halo, Particle


def _setup(members=100):
    particles = [
        Particle(pos=[0.75, 0.0, 0.0], mass=1.0, volume=2.0) for _ in range(members)
    ]
    particles.append(Particle(pos=[0.0, 0.2, 0.0], mass=3.0, volume=5.0))
    halo = Halo(halo_particles=list(range(members)), domain_particles=[members], rvir=1.0)
    return particles, halo


def test_number_of_bins_and_radii():
    particles, halo = _setup()
    bins = radial_profiles(particles, [halo], 50.0, 0.5)
    assert len(bins) == int(50.0 / 0.5)
    assert [b.radius for b in bins[:3]] == [0.0, 0.5, 1.0]


def test_volumes_land_in_expected_bins():
    particles, halo = _setup()
    bins = radial_profiles(particles, [halo], 2.0, 0.5)
    assert bins[1].volume == pytest.approx(100 * 2.0)
    assert bins[1].mass == pytest.approx(100 * 1.0)
    assert bins[0].volume == pytest.approx(5.0)
    assert bins[0].per_halo == [(0, 5.0, 1)]
    assert bins[2].volume == 0.0


def test_total_volume_is_conserved():
    particles, halo = _setup()
    bins = radial_profiles(particles, [halo], 5.0, 0.25)
    assert sum(b.volume for b in bins) == pytest.approx(sum(p.volume for p in particles))


def test_shell_volumes_fill_the_sphere():
    bins = radial_profiles([], [], 3.0, 0.5)
    total = sum(b.shell_volume for b in bins)
    assert math.isclose(total, (4.0 / 3.0) * math.pi * 3.0**3)


def test_small_halos_are_excluded():
    particles, halo = _setup(members=50)
    bins = radial_profiles(particles, [halo], 2.0, 0.5)
    assert all(b.volume == 0.0 and b.per_halo == [] for b in bins)


def test_missing_virial_radius_raises():
    particles, halo = _setup()
    halo.rvir = 0.0
    with pytest.raises(ValueError):
        radial_profiles(particles, [halo], 2.0, 0.5)


def test_bad_bin_width():
    with pytest.raises(ValueError):
        radial_profiles([], [], 2.0, 0.0)