from __future__ import annotations

from typing import Optional

import numpy as np

from .grid import EMPTY, check_grid
from .rules import CYCLIC, NUM_TYPES, RuleSet, RuleTable
from .samplers import CUBE_PATTERNS, EDGE_PATTERNS, FACE_PATTERNS
from .scheduler import block_widths


def apply_pattern(grid, rule: RuleTable, pattern, origin, half, flip_p, rng) -> bool:
    """Plain Python version of one sampler evaluation."""
    size = grid.shape[0]
    cells = [tuple(int(o + d * half) for o, d in zip(origin, row)) for row in pattern]
    for cell in cells:
        if any(c < 0 or c >= size for c in cell):
            return False

    counts = [0] * (NUM_TYPES + 1)
    for cell in cells[1:]:
        counts[int(grid[cell])] += 1
    value = rule.lookup(counts[1], counts[2], counts[3])
    if value != EMPTY and flip_p > 0.0 and rng.random() < flip_p:
        if rule.mode == CYCLIC:
            value = value % NUM_TYPES + 1
        else:
            value = 3 - value
    grid[cells[0]] = value
    return True


def run_schedule_reference(
    grid: np.ndarray,
    rules: RuleSet,
    flip_p: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """
    Slow, uncompiled scale scheduler. Produces the same grid as
    ``scheduler.run_schedule`` and is meant for small grids only.
    """
    size = check_grid(grid)
    rng = rng if rng is not None else np.random.default_rng()
    stages = (
        (rules.cube, CUBE_PATTERNS),
        (rules.face, FACE_PATTERNS),
        (rules.edge, EDGE_PATTERNS),
    )
    writes = 0
    for width in block_widths(size):
        half = width // 2
        for i in range(0, size - 1, width):
            for j in range(0, size - 1, width):
                for k in range(0, size - 1, width):
                    for rule, patterns in stages:
                        for pattern in patterns:
                            if apply_pattern(
                                grid, rule, pattern, (i, j, k), half, flip_p, rng
                            ):
                                writes += 1
    return writes
