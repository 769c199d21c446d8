"""Halo and domain analysis for dark-matter particles in N-body snapshots."""

__version__ = "0.1.0"