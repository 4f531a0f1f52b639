"""
Serpent 2 Output Reader Module

Reads the Matlab-syntax text files written by Serpent 2:

- ``<case>_res.m``: run summary (scalars, strings and value/relative-error
  arrays), one block per result step
- ``<case>_det<N>.m``: detector tallies and their energy/spatial grids

Only the field-name/shape contract is interpreted here; the physics of the
fields is left to the normalization, spectrum and dose modules.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, List, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

FieldValue = Union[str, float, np.ndarray]

# Serpent detector tables: 1-based columns 11 and 12 hold mean and relative error
SCORE_COLUMN = 10
ERROR_COLUMN = 11
DETECTOR_COLUMNS = 12

# Energy grid columns (DET<name>E)
GRID_LOWER_COLUMN = 0
GRID_UPPER_COLUMN = 1
GRID_MEAN_COLUMN = 2

_RESULT_LINE = re.compile(
    r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*"
    r"\(\s*idx\s*,\s*(?:\[\s*1\s*:\s*(\d+)\s*\]|1)\s*\)\s*"
    r"=\s*(.+?)\s*;\s*$"
)
_STEP_MARKER = re.compile(r"^\s*if\s*\(\s*exist\s*\(\s*'idx'")
_ARRAY_START = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=\s*\[(.*)$")


# =============================================================================
# Result table (_res.m)
# =============================================================================

class ResultTable(Mapping):
    """
    Read-only view of one result step of a Serpent ``_res.m`` file.

    Values are strings, floats or read-only numpy arrays. Most numeric
    fields are stored as interleaved (value, relative error) pairs, which
    :meth:`means` and :meth:`rel_errors` split apart.
    """

    def __init__(
        self,
        fields: Mapping[str, FieldValue],
        source: Optional[Path] = None,
        step: int = 0,
    ):
        frozen: Dict[str, FieldValue] = {}
        for name, value in fields.items():
            if isinstance(value, np.ndarray):
                value = np.array(value, dtype=float)
                value.setflags(write=False)
            frozen[name] = value
        self._fields = MappingProxyType(frozen)
        self.source = source
        self.step = step

    def __getitem__(self, name: str) -> FieldValue:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"ResultTable(source={self.source!r}, step={self.step}, fields={len(self)})"

    def contains(self, name: str) -> bool:
        """Whether the field was present in the loaded step."""
        return name in self._fields

    def size(self, name: str) -> int:
        """Number of numeric elements in a field (0 when missing or text)."""
        value = self._fields.get(name)
        if value is None or isinstance(value, str):
            return 0
        if isinstance(value, np.ndarray):
            return int(value.size)
        return 1

    def first(self, name: str) -> Optional[float]:
        """First numeric element of a field, or None when unavailable."""
        value = self._fields.get(name)
        if value is None or isinstance(value, str):
            return None
        if isinstance(value, np.ndarray):
            if value.size == 0:
                return None
            return float(value.flat[0])
        return float(value)

    def text(self, name: str) -> Optional[str]:
        """String field value, or None when missing or numeric."""
        value = self._fields.get(name)
        return value if isinstance(value, str) else None

    def means(self, name: str) -> Optional[np.ndarray]:
        """Mean values of a (value, relative error) pair array."""
        arr = self._as_array(name)
        return None if arr is None else arr[::2]

    def rel_errors(self, name: str) -> Optional[np.ndarray]:
        """Relative errors of a (value, relative error) pair array."""
        arr = self._as_array(name)
        return None if arr is None else arr[1::2]

    def _as_array(self, name: str) -> Optional[np.ndarray]:
        value = self._fields.get(name)
        if value is None or isinstance(value, str):
            return None
        return np.atleast_1d(np.asarray(value, dtype=float))


def _parse_result_value(raw: str) -> FieldValue:
    raw = raw.strip()
    if raw.startswith("'"):
        end = raw.rfind("'")
        return raw[1:end] if end > 0 else raw[1:]
    if raw.startswith("["):
        inner = raw[1:raw.rfind("]")] if "]" in raw else raw[1:]
        return np.array([float(tok) for tok in inner.split()], dtype=float)
    return float(raw)


def read_result_steps(filepath: Union[str, Path]) -> List[ResultTable]:
    """
    Read every result step from a Serpent ``_res.m`` file.

    Parameters
    ----------
    filepath : str or Path
        Path to the results file.

    Returns
    -------
    List[ResultTable]
        One table per ``idx`` block, in file order.
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Serpent results file not found: {filepath}")

    steps: List[Dict[str, FieldValue]] = [{}]
    with open(filepath, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            if _STEP_MARKER.match(line):
                if steps[-1]:
                    steps.append({})
                continue

            match = _RESULT_LINE.match(line)
            if not match:
                continue

            name, _, raw = match.groups()
            try:
                steps[-1][name] = _parse_result_value(raw)
            except ValueError:
                logger.warning(f"Could not parse field {name} in {filepath.name}; skipping")

    tables = [ResultTable(fields, source=filepath, step=i) for i, fields in enumerate(steps)]
    logger.debug(f"Read {len(tables)} result step(s) from {filepath}")
    return tables


def read_results_file(filepath: Union[str, Path], step: int = 0) -> ResultTable:
    """
    Read one result step from a Serpent ``_res.m`` file.

    Parameters
    ----------
    filepath : str or Path
        Path to the results file.
    step : int
        Result step to return; negative values count from the end.

    Returns
    -------
    ResultTable
        Immutable table of the selected step.
    """
    steps = read_result_steps(filepath)
    try:
        table = steps[step]
    except IndexError:
        raise IndexError(f"Step {step} not found in {filepath}; file has {len(steps)} step(s)")
    logger.info(f"Loaded {len(table)} result fields from {Path(filepath).name}")
    return table


# =============================================================================
# Detector output (_det*.m)
# =============================================================================

@dataclass
class DetectorTally:
    """
    Energy-binned detector tally.

    Attributes:
        name: Detector name without the ``DET`` prefix
        lower: Lower bin bounds (MeV)
        upper: Upper bin bounds (MeV)
        mean_energy: Mean bin energy (MeV)
        raw_score: Unnormalized detector score per bin
        rel_error: Relative statistical error per bin (fraction)
    """

    name: str
    lower: np.ndarray
    upper: np.ndarray
    mean_energy: np.ndarray
    raw_score: np.ndarray
    rel_error: np.ndarray

    def __post_init__(self) -> None:
        self.lower = np.asarray(self.lower, dtype=float)
        self.upper = np.asarray(self.upper, dtype=float)
        self.mean_energy = np.asarray(self.mean_energy, dtype=float)
        self.raw_score = np.asarray(self.raw_score, dtype=float)
        self.rel_error = np.asarray(self.rel_error, dtype=float)

        n = len(self.raw_score)
        for label in ("lower", "upper", "mean_energy", "rel_error"):
            if len(getattr(self, label)) != n:
                raise ValueError(
                    f"Detector {self.name}: {label} has {len(getattr(self, label))} "
                    f"entries, expected {n}"
                )
        for arr in (self.lower, self.upper, self.mean_energy, self.raw_score, self.rel_error):
            arr.setflags(write=False)

    @property
    def n_bins(self) -> int:
        return len(self.raw_score)

    @property
    def has_data(self) -> bool:
        return bool(np.sum(self.raw_score) != 0)


@dataclass
class DetectorFile:
    """All ``DET*`` arrays read from one Serpent detector file."""

    arrays: Dict[str, np.ndarray] = field(default_factory=dict)
    source: Optional[Path] = None

    def detector_names(self) -> List[str]:
        """Detector names (without ``DET`` prefix) that carry tally tables."""
        names = []
        for key, arr in self.arrays.items():
            if key.startswith("DET") and arr.ndim == 2 and arr.shape[1] >= DETECTOR_COLUMNS:
                names.append(key[3:])
        return names

    def __contains__(self, name: str) -> bool:
        return _det_key(name) in self.arrays

    def scores(self, name: str) -> np.ndarray:
        """Raw score column of a detector table."""
        return self._table(name)[:, SCORE_COLUMN]

    def has_data(self, name: str) -> bool:
        """Whether a detector recorded a non-zero total score."""
        if name not in self:
            return False
        return bool(np.sum(self.scores(name)) != 0)

    def tally(self, name: str) -> DetectorTally:
        """
        Build an energy-binned tally from ``DET<name>`` and ``DET<name>E``.

        Raises
        ------
        KeyError
            The detector or its energy grid is missing.
        ValueError
            The table and grid have different row counts.
        """
        key = _det_key(name)
        table = self._table(name)
        grid_key = key + "E"
        if grid_key not in self.arrays:
            raise KeyError(f"Energy grid {grid_key} not found for detector {key}")
        grid = self.arrays[grid_key]
        if grid.ndim != 2 or grid.shape[1] < 3:
            raise ValueError(f"Energy grid {grid_key} must have 3 columns, got shape {grid.shape}")
        if grid.shape[0] != table.shape[0]:
            raise ValueError(
                f"Detector {key} has {table.shape[0]} rows but energy grid has {grid.shape[0]}"
            )

        return DetectorTally(
            name=key[3:],
            lower=grid[:, GRID_LOWER_COLUMN],
            upper=grid[:, GRID_UPPER_COLUMN],
            mean_energy=grid[:, GRID_MEAN_COLUMN],
            raw_score=table[:, SCORE_COLUMN],
            rel_error=table[:, ERROR_COLUMN],
        )

    def _table(self, name: str) -> np.ndarray:
        key = _det_key(name)
        if key not in self.arrays:
            available = ", ".join(self.detector_names()) or "none"
            raise KeyError(f"Detector {key} not found. Available: {available}")
        table = self.arrays[key]
        if table.ndim != 2 or table.shape[1] < DETECTOR_COLUMNS:
            raise ValueError(
                f"Detector {key} must have at least {DETECTOR_COLUMNS} columns, got shape {table.shape}"
            )
        return table


def _det_key(name: str) -> str:
    return name if name.startswith("DET") else f"DET{name}"


def _rows_to_array(name: str, body: str) -> np.ndarray:
    rows: List[List[float]] = []
    for chunk in re.split(r"[;\n]", body):
        chunk = chunk.strip()
        if not chunk:
            continue
        rows.append([float(tok) for tok in chunk.split()])

    if not rows:
        return np.zeros((0, 0))
    widths = {len(r) for r in rows}
    if len(widths) != 1:
        raise ValueError(f"Array {name} has ragged rows (widths {sorted(widths)})")
    return np.array(rows, dtype=float)


def read_detector_file(filepath: Union[str, Path]) -> DetectorFile:
    """
    Read a Serpent detector output file.

    Parameters
    ----------
    filepath : str or Path
        Path to ``<case>_det<N>.m``.

    Returns
    -------
    DetectorFile
        All bracketed arrays keyed by variable name.

    Examples
    --------
    >>> det = read_detector_file("core_det0.m")
    >>> tally = det.tally("FluxDet")
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"Serpent detector file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8", errors="replace") as f:
        lines = f.readlines()

    arrays: Dict[str, np.ndarray] = {}
    i = 0
    while i < len(lines):
        match = _ARRAY_START.match(lines[i])
        if not match:
            i += 1
            continue

        name, rest = match.groups()
        body_parts = []
        while "]" not in rest:
            body_parts.append(rest)
            i += 1
            if i >= len(lines):
                raise ValueError(f"Unterminated array {name} in {filepath}")
            rest = lines[i]
        body_parts.append(rest[: rest.index("]")])
        arrays[name] = _rows_to_array(name, "\n".join(body_parts))
        i += 1

    detector = DetectorFile(arrays=arrays, source=filepath)
    logger.info(
        f"Loaded {len(detector.detector_names())} detector(s) from {filepath.name}"
    )
    return detector
