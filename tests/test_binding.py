import random

import pytest

from galcos.binding import bound_substructure, build_cluster, cluster_bound
from galcos.state import EMPTY_FLAG, Halo, Particle


def _cluster(n=12, seed=3, offset=5.0):
    rng = random.Random(seed)
    return [
        Particle(
            pos=[offset + rng.uniform(-1.0, 1.0) for _ in range(3)],
            vel=[rng.uniform(-1.0, 1.0) for _ in range(3)],
            mass=1.0 + rng.random(),
            id=i,
        )
        for i in range(n)
    ]


def test_build_cluster_tags_particles():
    particles = [Particle(id=i) for i in range(6)]
    halo = build_cluster(particles, [1, 3, 4], 7, 3)
    assert halo.halo_particles == [1, 3, 4]
    assert halo.id_cluster == 7
    assert halo.id_center_halo == 3
    assert halo.member_count() == 3
    assert halo.number_of_subhalos == 0
    assert halo.domain_particles == []
    assert [p.cluster_id for p in particles] == [EMPTY_FLAG, 7, EMPTY_FLAG, 7, 7, EMPTY_FLAG]


def test_cluster_bound_centres_on_most_bound():
    particles = _cluster()
    members = list(range(len(particles)))
    original = [list(p.pos) for p in particles]
    halo = Halo()
    center = cluster_bound(particles, members, halo, 1.0, 0.1)
    assert center in members
    assert particles[center].ep == min(particles[i].ep for i in members)
    assert particles[center].pos == pytest.approx([0.0, 0.0, 0.0])
    assert halo.pos == pytest.approx(original[center])
    for i in members:
        expected = [o - c for o, c in zip(original[i], original[center])]
        assert particles[i].pos == pytest.approx(expected)


def test_cluster_bound_removes_bulk_velocity():
    particles = _cluster()
    members = list(range(len(particles)))
    cluster_bound(particles, members, Halo(), 1.0, 0.1)
    for k in range(3):
        momentum = sum(particles[i].mass * particles[i].vel[k] for i in members)
        assert momentum == pytest.approx(0.0, abs=1e-9)


def test_cluster_bound_potentials_are_negative():
    particles = _cluster()
    members = list(range(len(particles)))
    center = cluster_bound(particles, members, Halo(), 1.0, 0.1)
    assert particles[center].ep < 0.0


def test_cluster_bound_rejects_massless_cluster():
    particles = [Particle(pos=[1.0 + i, 2.0, 3.0]) for i in range(3)]
    with pytest.raises(ValueError):
        cluster_bound(particles, [0, 1, 2], Halo(), 1.0, 0.1)


def test_cluster_bound_rejects_empty_cluster():
    with pytest.raises(ValueError):
        cluster_bound([], [], Halo(), 1.0, 0.1)


def test_bound_substructure_too_small_is_untouched():
    particles = _cluster(n=4)
    before = [list(p.pos) for p in particles]
    result = bound_substructure(particles, [2, 0, 3, 1], 0, 10, 1.0, 0.1)
    assert result == [2, 0, 3, 1]
    assert [p.pos for p in particles] == before


def test_bound_substructure_empty():
    assert bound_substructure([], [], 0, 0, 1.0, 0.1) == []


def test_bound_substructure_drops_fast_particle():
    particles = _cluster(n=10)
    for p in particles:
        p.vel = [0.0, 0.0, 0.0]
    particles[0].vel = [0.0, 0.0, 0.0]
    particles[9].vel = [1.0e4, 0.0, 0.0]
    members = list(range(10))
    result = bound_substructure(particles, members, 0, 2, 1.0, 0.1)
    assert 9 not in result
    assert set(result) <= set(members)
    assert len(result) < len(members)


def test_bound_substructure_result_is_energy_ordered_prefix():
    particles = _cluster(n=10)
    for p in particles:
        p.vel = [0.0, 0.0, 0.0]
    particles[4].vel = [0.0, 5.0e3, 0.0]
    result = bound_substructure(particles, list(range(10)), 0, 2, 1.0, 0.1)
    energies = [particles[i].ep + particles[i].ek for i in result]
    assert energies == sorted(energies)
    assert all(e < 0.0 for e in energies)


def test_bound_substructure_stops_below_minimum():
    particles = _cluster(n=30)
    rng = random.Random(11)
    for p in particles:
        p.vel = [rng.choice([-1.0, 1.0]) * 1.0e3 for _ in range(3)]
    particles[0].vel = [0.0, 0.0, 0.0]
    minimum = 10
    result = bound_substructure(particles, list(range(30)), 0, minimum, 1.0, 0.1)
    assert 0 < len(result) < minimum - 1
    assert set(result) <= set(range(30))