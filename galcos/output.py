"""Text output of clusters, halo catalogues and property distributions."""

from __future__ import annotations

import math
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Union

from galcos.state import Halo, Particle

PathLike = Union[str, Path]

_PARTICLE_LINE = "%d  %d  %f  %f  %f  %f  %f  %f  %f %f %f\n"


def _particle_rows(particles: Sequence[Particle], halo: Halo, members: Sequence[int]) -> str:
    rows = []
    for i in members:
        p = particles[i]
        rows.append(
            _PARTICLE_LINE
            % (
                p.id,
                p.cluster_id,
                p.mass,
                p.pos[0] + halo.bpos[0],
                p.pos[1] + halo.bpos[1],
                p.pos[2] + halo.bpos[2],
                p.vel[0],
                p.vel[1],
                p.vel[2],
                p.ep,
                p.volume,
            )
        )
    return "".join(rows)


def write_cluster(
    particles: Sequence[Particle], halo: Halo, directory: PathLike = "."
) -> List[Path]:
    """Write the halo and domain particles of ``halo`` to two files; return their paths."""
    directory = Path(directory)
    written = []
    for prefix, members in (("clusterH_", halo.halo_particles), ("clusterD_", halo.domain_particles)):
        path = directory / f"{prefix}{halo.id_cluster}.glc"
        path.write_text(_particle_rows(particles, halo, members))
        written.append(path)
    return written


def write_halo_properties(
    path: PathLike, halos: Sequence[Halo], redshift: float, final_nhalos: int
) -> Path:
    """Write the halo catalogue with members and virial properties to ``path``."""
    path = Path(path)
    parts = []
    if halos:
        parts.append("%d\n" % final_nhalos)
        parts.append("%g\n" % redshift)
        for h in halos:
            parts.append("%d " % h.id_center_halo)
            parts.append("%g " % h.mass)
            parts.extend("%g " % v for v in h.pos)
            parts.extend("%g " % v for v in h.vel)
            parts.append("%d " % h.member_count())
            parts.append("%d " % h.id_cluster)
            parts.append("%d " % h.number_of_subhalos)
            parts.append("%g " % h.mass_fraction)
            parts.append("%g\n" % h.hmr)
            parts.extend("%d " % i for i in h.halo_particles)
            parts.append("\n")
            parts.append(
                "%g %g %g %g %g %g %g\n"
                % (
                    h.rvir,
                    h.mvir,
                    h.vvir,
                    h.tvir,
                    h.total_energy,
                    h.total_angular_mom,
                    h.lambda_spin,
                )
            )
            parts.append("\n\n")
    else:
        parts.append("%d\n" % 0)
        parts.append("%g\n" % redshift)
        parts.append("%g " % 0.0 * 8)
        parts.append("%d " % 0 * 3)
        parts.append("%g " % 0.0)
        parts.append("%g\n" % 0.0)
        parts.append("%g %g %g %g %g %g %g\n" % ((0.0,) * 7))
        parts.append("\n")
    path.write_text("".join(parts))
    return path


_HISTOGRAMS: Dict[str, Callable[[Halo], float]] = {
    "MasesTotal_": lambda h: h.mass,
    "MasesVirial_": lambda h: h.mvir,
    "VirialRadius_": lambda h: h.rvir,
    "LambdaParam_": lambda h: h.lambda_spin,
    "TotalMeanDens_": lambda h: 3.0 * h.mass / 4.0 * math.pi * h.radius**3,
    "VirialMeanDens_": lambda h: 3.0 * h.mvir / 4.0 * math.pi * h.rvir**3,
    "HmrMeanDens_": lambda h: 3.0 * h.mass / 8.0 * math.pi * h.hmr**3,
    "VirialDist_": lambda h: 2.0 * h.total_ek + h.total_ep,
}


def write_histograms(
    halos: Sequence[Halo], name: str, directory: PathLike = "."
) -> Dict[str, Path]:
    """Write one value per halo for each property distribution; return paths by prefix."""
    directory = Path(directory)
    written = {}
    for prefix, value in _HISTOGRAMS.items():
        path = directory / f"{prefix}{name}.glc"
        path.write_text("".join("%g\n" % value(h) for h in halos))
        written[prefix] = path
    return written


def count_subhalos(halos: Sequence[Halo], halo_id: int) -> int:
    """Number of subhalos of the subhalos of ``halo_id``, at every depth below."""
    total = 0
    halo = halos[halo_id]
    for sub in halo.id_subhalos[: halo.number_of_subhalos]:
        total += halos[sub].number_of_subhalos + count_subhalos(halos, sub)
    return total


def write_all(
    halo: Halo, halos: Sequence[Halo], name: str, directory: PathLike = "."
) -> Path:
    """Append one summary line for ``halo`` to the run-wide catalogue."""
    path = Path(directory) / f"All_{name}.glc"
    total = count_subhalos(halos, halo.id_cluster) + halo.number_of_subhalos
    line = (
        "%d\t %d\t %g\t %g\t %g\t %g\t %g\t %d\t %g\t %g\t %g\t %g\t %g\t %g %d\n"
        % (
            halo.id_cluster,
            halo.member_count(),
            halo.mass,
            halo.mass_fraction,
            halo.hmr,
            halo.total_ek,
            halo.total_ep,
            halo.number_of_subhalos,
            halo.radius,
            halo.rvir,
            halo.mvir,
            halo.vvir,
            halo.tvir,
            halo.lambda_spin,
            total,
        )
    )
    with path.open("a") as handle:
        handle.write(line)
    return path