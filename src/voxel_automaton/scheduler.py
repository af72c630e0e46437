"""
Scale scheduler.

Drives the samplers from the coarsest block (w = K - 1) down to w = 2,
halving each step. Every scale is finished before the next, finer one starts,
since finer samplers read the coarser results as their corners. Within a
block the cube is evaluated before the faces and the faces before the edges.
"""

from __future__ import annotations

from typing import Iterator, Optional

import numpy as np
from numba import njit

from .grid import check_grid
from .rules import RuleSet
from .samplers import visit_block


def block_widths(size: int) -> Iterator[int]:
    """Yield K - 1, (K - 1) // 2, ..., 2."""
    width = size - 1
    while width >= 2:
        yield width
        width //= 2


@njit
def run_schedule_kernel(
    grid: np.ndarray,
    cube_table: np.ndarray,
    face_table: np.ndarray,
    edge_table: np.ndarray,
    flip_p: float,
    flip_mode: int,
    rng: np.random.Generator,
) -> int:
    """One full coarse-to-fine pass over the grid. Returns the write count."""
    size = grid.shape[0]
    writes = 0
    width = size - 1
    while width >= 2:
        for i in range(0, size - 1, width):
            for j in range(0, size - 1, width):
                for k in range(0, size - 1, width):
                    writes += visit_block(
                        grid, cube_table, face_table, edge_table,
                        i, j, k, width, flip_p, flip_mode, rng,
                    )
        width //= 2
    return writes


def run_schedule(
    grid: np.ndarray,
    rules: RuleSet,
    flip_p: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """
    Fill the grid in place by running every scale once.

    ``rng`` is only consumed when ``flip_p > 0``.
    """
    check_grid(grid)
    if not 0.0 <= flip_p <= 1.0:
        raise ValueError(f"flip_p must be in [0, 1], got {flip_p}")
    if rng is None:
        rng = np.random.default_rng()
    return int(
        run_schedule_kernel(
            grid,
            rules.cube.table,
            rules.face.table,
            rules.edge.table,
            float(flip_p),
            rules.flip_mode,
            rng,
        )
    )
