# galcos

Tools for studying dark-matter halos in cosmological N-body simulations.
Starting from a binary Gadget snapshot and its friends-of-friends group
file, `galcos` builds a Barnes–Hut octree over halo members, computes
gravitational potentials, strips unbound particles, measures virial
masses and radii, estimates per-particle volumes and writes halo
catalogues and property distributions as plain text.

## What is inside

| Module | Purpose |
| --- | --- |
| `galcos.state` | `Particle`, `Halo` and `Cosmology` dataclasses, and constants such as `EMPTY_FLAG` and `BH_OPENING` |
| `galcos.routines` | `distance`, `distance_eps`, `sort_by_key`, `linking_length`, `mean_molecular_weight`, `cosmic_time`, `virial_density`, `seconds_since_year_start`, `grav_soft_spline`, `dipole_sum`, `quadrupole_sum` |
| `galcos.params` | the parameter file: `Parameters`, `parse_parameters`, `read_parameters`, `ParameterError` |
| `galcos.snapshot` | binary Gadget snapshots: `GadgetHeader`, `read_header`, `load_snapshot`, `SnapshotError` |
| `galcos.tree` | Barnes–Hut octree: `TreeNode`, `build_tree`, `tree_potential`, `node_center`, `particles_in_box` |
| `galcos.neighbours` | tree neighbour searches: `neighbours_within`, `nearest_neighbours`, `sphere_intersects_node`, `node_contains_sphere` |
| `galcos.binding` | cluster construction and unbinding: `build_cluster`, `cluster_bound`, `bound_substructure` |
| `galcos.halos` | periodic unwrapping and virial properties: `periodic_boundary_corrections`, `halo_center_mass`, `halo_properties` |
| `galcos.volumes` | per-particle volumes: `delaunay_volumes`, `spherical_volumes`, `tetrahedron_volume`, `cayley_menger_matrix`, `run_qdelaunay`, `parse_facets`, `QhullError` |
| `galcos.profiles` | stacked radial volume profiles: `radial_profiles`, `ProfileBin` |
| `galcos.output` | text output: `write_cluster`, `write_halo_properties`, `write_histograms`, `write_all`, `count_subhalos` |

## Requirements

Python 3.10 or later and NumPy. `galcos.volumes.delaunay_volumes`
runs the `qdelaunay` program from Qhull, found on the search path or
given as the `executable` argument; everything else is pure Python.

## The parameter file

`parse_parameters` reads `name value` lines in a fixed order: minimum
members, minimum substructure size, linking parameter `b_link`,
neighbour count `ngb_max`, softening `grav_soft`, a skipped line, the
subfind flag, a skipped line, baryon and matter densities, a skipped
line, and then the internal units (G, length, velocity, mass, time,
energy, density, Hubble). Only the second whitespace-separated token of
each line is used, read as a leading integer or float. A line with
fewer than two tokens, or a file that ends early, raises
`ParameterError`; so does a missing file in `read_parameters`.

```python
from galcos.params import read_parameters, ParameterError

try:
    params = read_parameters("analysis.param")
except ParameterError as exc:
    print(f"bad parameter file: {exc}")
```

## A typical session

```python
from galcos.params import read_parameters
from galcos.snapshot import load_snapshot
from galcos.binding import build_cluster, cluster_bound
from galcos.halos import halo_properties
from galcos.volumes import spherical_volumes
from galcos.output import write_cluster

params = read_parameters("analysis.param")
cosmology, particles, nclusters, unclustered = load_snapshot("snapshot_063")

members = [i for i, p in enumerate(particles) if p.cluster_id == 0]
halo = build_cluster(particles, members, cluster_id=0, center_id=-1)
halo.id_center_halo = cluster_bound(
    particles, members, halo, params.g_internal_units, params.grav_soft
)
halo_properties(particles, halo, cosmology)
spherical_volumes(particles, members, params.ngb_max)
write_cluster(particles, halo, ".")
```

`load_snapshot` reads the group file from the snapshot path with `.grp`
appended unless another path is given, scales positions by the
expansion factor and velocities by its square root, and raises
`SnapshotError` when the files are missing or short, or when the header
does not name exactly one particle type with a fixed mass.

`cluster_bound` moves the members so that the most bound particle sits
at the origin, which is what `halo_properties` expects. To remove
unbound members from a substructure, use
`bound_substructure(particles, members, center, minimum, g_internal, grav_soft)`,
which returns the surviving members. `radial_profiles` bins particle
volumes of halos with more than 75 and fewer than 250 members by
distance over virial radius.

## What the package does not do

There is no command-line program: every step is a function to be
called from Python. Only the binary Gadget snapshot layout is read;
HDF5 snapshots and group catalogues are not supported. Work runs in a
single process.

## Running the tests

Install the package with its `test` extra and run `pytest` from the
project directory.