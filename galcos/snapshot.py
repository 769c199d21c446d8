"""Reading of binary Gadget snapshots together with their group files."""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple, Union

import numpy as np

from galcos.state import EMPTY_FLAG, Cosmology, Particle

logger = logging.getLogger(__name__)

_HEADER_SIZE = 256
_HEADER_FORMAT = "<6i6d2d2i6i2i4d"
_HEADER_FIELDS = struct.calcsize(_HEADER_FORMAT)
_MARKER = struct.Struct("<i")
_NTYPES = 6

PathLike = Union[str, Path]


class SnapshotError(ValueError):
    """The snapshot or its group file is missing or malformed."""


@dataclass
class GadgetHeader:
    """The 256-byte header block of a Gadget snapshot."""

    npart: Tuple[int, ...]
    mass: Tuple[float, ...]
    time: float
    redshift: float
    flag_sfr: int
    flag_feedback: int
    npart_total: Tuple[int, ...]
    flag_cooling: int
    num_files: int
    box_size: float
    omega0: float
    omega_lambda: float
    hubble_param: float


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise SnapshotError(f"snapshot ends while reading {what}")
    return data


def read_header(stream: BinaryIO) -> GadgetHeader:
    """Read the header record from the start of a snapshot stream."""
    _read_exact(stream, _MARKER.size, "the header marker")
    block = _read_exact(stream, _HEADER_SIZE, "the header")
    _read_exact(stream, _MARKER.size, "the header marker")
    v = struct.unpack(_HEADER_FORMAT, block[:_HEADER_FIELDS])
    return GadgetHeader(
        npart=tuple(v[0:6]),
        mass=tuple(v[6:12]),
        time=v[12],
        redshift=v[13],
        flag_sfr=v[14],
        flag_feedback=v[15],
        npart_total=tuple(v[16:22]),
        flag_cooling=v[22],
        num_files=v[23],
        box_size=v[24],
        omega0=v[25],
        omega_lambda=v[26],
        hubble_param=v[27],
    )


def _log_header(header: GadgetHeader) -> None:
    for k, n in enumerate(header.npart_total):
        logger.info("Header nall[%d] is: %d", k, n)
    for k, (n, m) in enumerate(zip(header.npart, header.mass)):
        if n != 0 and m != 0:
            logger.info("The mass of particle type %d is %g", k, m)
        elif n != 0:
            logger.info("There are individual masses for particle type %d", k)
    logger.info("Frame's time %g, redshift %g", header.time, header.redshift)
    logger.info(
        "Flags sfr %d feedback %d cooling %d, files %d",
        header.flag_sfr,
        header.flag_feedback,
        header.flag_cooling,
        header.num_files,
    )
    logger.info(
        "Box size %g, Omega0 %g, OmegaLambda %g, HubbleParam %g",
        header.box_size,
        header.omega0,
        header.omega_lambda,
        header.hubble_param,
    )


def _particle_mass(header: GadgetHeader) -> float:
    typed = [m for n, m in zip(header.npart, header.mass) if n != 0 and m != 0]
    if len(typed) != 1:
        raise SnapshotError("multiple mass distribution or mistake reading file")
    return typed[0]


def _read_vectors(stream: BinaryIO, count: int, what: str) -> np.ndarray:
    _read_exact(stream, _MARKER.size, f"the {what} marker")
    data = _read_exact(stream, 12 * count, f"the {what}")
    _read_exact(stream, _MARKER.size, f"the {what} marker")
    return np.frombuffer(data, dtype="<f4").reshape(count, 3).astype(float)


def _read_groups(path: Path, count: int) -> List[int]:
    try:
        tokens = path.read_text().split()
    except OSError as exc:
        raise SnapshotError(f"cannot read group file {path}: {exc}") from exc
    try:
        groups = [int(t) for t in tokens[1 : 1 + count]]
    except ValueError as exc:
        raise SnapshotError(f"malformed group file {path}") from exc
    if not tokens or len(groups) < count:
        raise SnapshotError(f"group file {path} holds fewer than {count} entries")
    return groups


def load_snapshot(
    path: PathLike, group_path: Optional[PathLike] = None
) -> Tuple[Cosmology, List[Particle], int, int]:
    """Load particles and their friends-of-friends groups from a snapshot.

    Positions are scaled by the expansion factor and velocities by its square
    root. The group file defaults to the snapshot path with ``.grp`` appended.
    Returns the cosmology, the particles, the number of groups and the number
    of particles in no group.
    """
    path = Path(path)
    group_path = Path(group_path) if group_path is not None else Path(f"{path}.grp")
    try:
        stream = path.open("rb")
    except OSError as exc:
        raise SnapshotError(f"cannot open {path}: {exc}") from exc

    with stream:
        header = read_header(stream)
        _log_header(header)
        npart = sum(header.npart_total)
        mass = _particle_mass(header)
        positions = _read_vectors(stream, npart, "positions")
        groups = _read_groups(group_path, npart)
        velocities = _read_vectors(stream, npart, "velocities")

    scale_pos = header.time
    scale_vel = math.sqrt(header.time)
    particles = [
        Particle(
            pos=(scale_pos * pos).tolist(),
            vel=(scale_vel * vel).tolist(),
            mass=mass,
            id=i,
            cluster_id=g - 1 if g > 0 else EMPTY_FLAG,
        )
        for i, (pos, vel, g) in enumerate(zip(positions, velocities, groups))
    ]
    nclusters = max([0, *groups])
    unclustered = sum(1 for g in groups if g == 0)

    cosmology = Cosmology(
        box_size=header.box_size,
        redshift=header.redshift,
        omega_matter=header.omega0,
        omega_lambda=header.omega_lambda,
        hubble_param=header.hubble_param,
        cosmic_time=header.time,
        particle_mass=mass,
        npart_total=npart,
    )
    return cosmology, particles, nclusters, unclustered