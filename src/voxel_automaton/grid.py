from __future__ import annotations

import numpy as np

from .rules import NUM_TYPES

EMPTY = 0
GRID_DTYPE = np.int8


def grid_side(levels: int) -> int:
    """Side length K = 2**levels + 1 of the voxel cube."""
    if int(levels) != levels or levels < 1:
        raise ValueError(f"levels must be an integer >= 1, got {levels}")
    return (1 << int(levels)) + 1


def make_grid(levels: int) -> np.ndarray:
    """Create an empty K x K x K voxel grid."""
    size = grid_side(levels)
    return np.zeros((size, size, size), dtype=GRID_DTYPE)


def check_grid(grid: np.ndarray) -> int:
    """Validate a grid buffer and return its side length."""
    if grid.ndim != 3 or len(set(grid.shape)) != 1:
        raise ValueError(f"Grid must be a cube, got shape {grid.shape}")
    size = grid.shape[0]
    span = size - 1
    if span < 2 or span & (span - 1):
        raise ValueError(f"Grid side must be 2**L + 1 with L >= 1, got {size}")
    if not grid.flags.writeable:
        raise ValueError("Grid buffer is read-only")
    return size


def seed_boundary(grid: np.ndarray, rng: np.random.Generator) -> None:
    """Fill the bottom layer (k = K - 1) with random voxel types 1..3."""
    size = check_grid(grid)
    grid[:, :, size - 1] = rng.integers(1, NUM_TYPES + 1, size=(size, size))
