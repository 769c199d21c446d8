"""Reading of the run parameter file (group sizes, softening, internal units)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional, Tuple, Union

logger = logging.getLogger(__name__)


class ParameterError(ValueError):
    """The parameter file is missing or malformed."""


@dataclass
class Parameters:
    """Run parameters in the order they appear in the parameter file."""

    minimum_members: int = 0
    minimum_nsubstruct: int = 0
    b_link: float = 0.0
    ngb_max: int = 0
    grav_soft: float = 0.0
    flag_subfind: int = 0
    omega_baryon: float = 0.0
    omega_matter: float = 0.0
    g_internal_units: float = 0.0
    length_internal_units: float = 0.0
    velocity_internal_units: float = 0.0
    mass_internal_units: float = 0.0
    time_internal_units: float = 0.0
    energy_internal_units: float = 0.0
    density_internal_units: float = 0.0
    hubble_internal_units: float = 0.0


_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)


def _leading_int(text: str) -> int:
    match = _INT_RE.match(text)
    return int(match.group()) if match else 0


def _leading_float(text: str) -> float:
    match = _FLOAT_RE.match(text)
    return float(match.group()) if match else 0.0


_SKIP = None
_Entry = Optional[Tuple[str, Callable[[str], Union[int, float]]]]

_LAYOUT: Tuple[_Entry, ...] = (
    ("minimum_members", _leading_int),
    ("minimum_nsubstruct", _leading_int),
    ("b_link", _leading_float),
    ("ngb_max", _leading_int),
    ("grav_soft", _leading_float),
    _SKIP,
    ("flag_subfind", _leading_int),
    _SKIP,
    ("omega_baryon", _leading_float),
    ("omega_matter", _leading_float),
    _SKIP,
    ("g_internal_units", _leading_float),
    ("length_internal_units", _leading_float),
    ("velocity_internal_units", _leading_float),
    ("mass_internal_units", _leading_float),
    ("time_internal_units", _leading_float),
    ("energy_internal_units", _leading_float),
    ("density_internal_units", _leading_float),
    ("hubble_internal_units", _leading_float),
)


def parse_parameters(lines: Iterable[str]) -> Parameters:
    """Parse parameter lines of the form ``NAME value`` in the fixed file order."""
    numbered = enumerate(lines, start=1)
    values = {}
    for entry in _LAYOUT:
        line = next(numbered, None)
        if entry is _SKIP:
            continue
        name, convert = entry
        if line is None:
            raise ParameterError(f"parameter {name} is missing from the parameter file")
        lineno, text = line
        tokens = text.split()
        if len(tokens) < 2:
            raise ParameterError(
                f"error in parameter {name} in parameter file (line {lineno})"
            )
        values[name] = convert(tokens[1])
        logger.info("%s %s", tokens[0], values[name])
    return Parameters(**values)


def read_parameters(path: Union[str, Path]) -> Parameters:
    """Read and parse the parameter file at ``path``."""
    try:
        with open(path, encoding="utf-8") as handle:
            return parse_parameters(handle)
    except FileNotFoundError as exc:
        raise ParameterError(f"parameter file {path} not found") from exc