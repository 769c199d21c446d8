[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "galcos"
version = "0.1.0"
description = "Halo and domain analysis tools for dark-matter particles in cosmological N-body snapshots"
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = [
    "cosmology",
    "n-body",
    "dark matter",
    "halos",
    "barnes-hut",
    "gadget",
    "delaunay",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Astronomy",
    "Topic :: Scientific/Engineering :: Physics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["galcos"]

[tool.hatch.build.targets.sdist]
include = [
    "galcos",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
