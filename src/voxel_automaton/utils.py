# src/voxel_automaton/utils.py
from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .rules import NUM_TYPES

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover
    tomllib = None  # type: ignore


@dataclass
class GenerationResult:
    """Finished voxel grid plus the parameters that produced it."""

    grid: np.ndarray
    meta: Dict[str, Any]

    @property
    def size(self) -> int:
        return int(self.grid.shape[0])


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Create the single random source for a run (fresh entropy if seed is None)."""
    return np.random.default_rng(None if seed is None else int(seed))


def now_str() -> str:
    return time.strftime("%Y%m%d-%H%M%S")


def voxel_counts(grid: np.ndarray) -> Dict[int, int]:
    """Number of cells holding each voxel type 1..3."""
    counts = np.bincount(grid.ravel().astype(np.int64), minlength=NUM_TYPES + 1)
    return {t: int(counts[t]) for t in range(1, NUM_TYPES + 1)}


def voxel_instances(grid: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    List the non-empty cells for a renderer.

    Positions are remapped so that the seeded layer (k = K - 1) becomes the
    ground plane: x = i, y = K - 1 - k, z = j. Returns ``(positions, types)``
    with shapes (N, 3) and (N,).
    """
    size = grid.shape[0]
    cells = np.argwhere(grid != 0)
    positions = np.column_stack(
        (cells[:, 0], size - 1 - cells[:, 2], cells[:, 1])
    ).astype(np.int64)
    types = grid[cells[:, 0], cells[:, 1], cells[:, 2]].astype(np.int8)
    return positions, types


def load_params(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """
    Load generation parameters from JSON or TOML.
    """
    path = str(path)
    if not Path(path).exists():
        raise FileNotFoundError(f"Missing parameter file: {path}")
    with open(path, "rb") as fh:
        data = fh.read()
    suffix = Path(path).suffix.lower()
    if suffix in {".json", ""}:
        return json.loads(data.decode("utf-8"))
    if suffix in {".toml", ".tml"}:
        if tomllib is None:
            raise RuntimeError("tomllib is unavailable; cannot parse TOML files")
        return tomllib.loads(data.decode("utf-8"))
    raise ValueError(f"Unsupported parameter file format: {suffix}")
