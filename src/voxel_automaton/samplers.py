"""
Neighbor samplers for the multiscale voxel automaton.

Every sampler reads a fixed pattern of cells around a block of width ``w``,
counts how many samples hold each voxel type and writes the rule-table output
into a midpoint cell:

1.  **Cube:** the 8 corners of the block, written to the centroid.
2.  **Faces:** the 4 corners of a face plus the two cube centroids on either
    side of it, written to the face center. All six faces are visited.
3.  **Edges:** the 6 axis neighbors of an edge midpoint (the edge endpoints
    and four face centers). The four x-directed and four y-directed edges are
    visited; z-directed edges are not.

Patterns are data rather than code. Each one is an ``(n + 1, 3)`` array of
offsets in half-width units from the block origin: row 0 is the target cell,
the remaining rows are the samples. A pattern whose target or samples fall
outside the grid is skipped and the target keeps its previous value.
"""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import numpy as np
from numba import njit

from .grid import EMPTY
from .rules import FLIP_CYCLIC, NUM_TYPES, UNSET, RuleSet

###############################################################################
# Offset tables
###############################################################################


def _face_pattern(target: Sequence[int], normal: int) -> np.ndarray:
    in_plane = [axis for axis in range(3) if axis != normal]
    rows = [list(target)]
    for da in (-1, 1):
        for db in (-1, 1):
            row = list(target)
            row[in_plane[0]] += da
            row[in_plane[1]] += db
            rows.append(row)
    for dn in (-1, 1):
        row = list(target)
        row[normal] += dn
        rows.append(row)
    return np.array(rows, dtype=np.int64)


def _edge_pattern(target: Sequence[int]) -> np.ndarray:
    rows = [list(target)]
    for axis in range(3):
        for d in (-1, 1):
            row = list(target)
            row[axis] += d
            rows.append(row)
    return np.array(rows, dtype=np.int64)


CUBE_PATTERNS = np.array(
    [
        [
            [1, 1, 1],
            [0, 0, 0],
            [0, 0, 2],
            [0, 2, 0],
            [0, 2, 2],
            [2, 0, 0],
            [2, 0, 2],
            [2, 2, 0],
            [2, 2, 2],
        ]
    ],
    dtype=np.int64,
)

# z-, y-, x-, z+, y+, x+
FACE_PATTERNS = np.stack(
    [
        _face_pattern((1, 1, 0), 2),
        _face_pattern((1, 0, 1), 1),
        _face_pattern((0, 1, 1), 0),
        _face_pattern((1, 1, 2), 2),
        _face_pattern((1, 2, 1), 1),
        _face_pattern((2, 1, 1), 0),
    ]
)

# x-directed edges, then y-directed edges
EDGE_PATTERNS = np.stack(
    [
        _edge_pattern((1, 0, 0)),
        _edge_pattern((1, 2, 0)),
        _edge_pattern((1, 0, 2)),
        _edge_pattern((1, 2, 2)),
        _edge_pattern((0, 1, 0)),
        _edge_pattern((2, 1, 0)),
        _edge_pattern((0, 1, 2)),
        _edge_pattern((2, 1, 2)),
    ]
)

###############################################################################
# Kernels
###############################################################################


@njit(cache=True)
def flip_type(value: int, flip_mode: int) -> int:
    """
    Remap a non-empty type. Cyclic mode maps 1 -> 2 -> 3 -> 1; mirror mode
    computes ``3 - value``, the flip of the 2-count rule design: 1 and 2
    swap and a flipped 3 becomes empty.
    """
    if flip_mode == FLIP_CYCLIC:
        return value % NUM_TYPES + 1
    return 3 - value


@njit
def evaluate_pattern(
    grid: np.ndarray,
    table: np.ndarray,
    pattern: np.ndarray,
    i: int,
    j: int,
    k: int,
    half: int,
    flip_p: float,
    flip_mode: int,
    rng: np.random.Generator,
) -> bool:
    """
    Evaluate one sampling pattern anchored at block origin (i, j, k).

    Returns False without touching the grid when any required cell lies
    outside [0, K).
    """
    size = grid.shape[0]
    ti = i + pattern[0, 0] * half
    tj = j + pattern[0, 1] * half
    tk = k + pattern[0, 2] * half
    if ti < 0 or tj < 0 or tk < 0 or ti >= size or tj >= size or tk >= size:
        return False

    c1 = 0
    c2 = 0
    c3 = 0
    for s in range(1, pattern.shape[0]):
        x = i + pattern[s, 0] * half
        y = j + pattern[s, 1] * half
        z = k + pattern[s, 2] * half
        if x < 0 or y < 0 or z < 0 or x >= size or y >= size or z >= size:
            return False
        v = grid[x, y, z]
        if v == 1:
            c1 += 1
        elif v == 2:
            c2 += 1
        elif v == 3:
            c3 += 1

    value = np.int64(table[c1, c2, c3])
    if value == UNSET:
        raise RuntimeError("Rule table queried outside its domain")
    if value != EMPTY and flip_p > 0.0:
        if rng.random() < flip_p:
            value = flip_type(value, flip_mode)
    grid[ti, tj, tk] = value
    return True


@njit
def _evaluate_patterns(
    grid, table, patterns, i, j, k, half, flip_p, flip_mode, rng
) -> int:
    writes = 0
    for p in range(patterns.shape[0]):
        if evaluate_pattern(
            grid, table, patterns[p], i, j, k, half, flip_p, flip_mode, rng
        ):
            writes += 1
    return writes


@njit
def visit_block(
    grid: np.ndarray,
    cube_table: np.ndarray,
    face_table: np.ndarray,
    edge_table: np.ndarray,
    i: int,
    j: int,
    k: int,
    width: int,
    flip_p: float,
    flip_mode: int,
    rng: np.random.Generator,
) -> int:
    """Cube, then faces, then edges for a single block. Returns write count."""
    half = width // 2
    writes = _evaluate_patterns(
        grid, cube_table, CUBE_PATTERNS, i, j, k, half, flip_p, flip_mode, rng
    )
    writes += _evaluate_patterns(
        grid, face_table, FACE_PATTERNS, i, j, k, half, flip_p, flip_mode, rng
    )
    writes += _evaluate_patterns(
        grid, edge_table, EDGE_PATTERNS, i, j, k, half, flip_p, flip_mode, rng
    )
    return writes


###############################################################################
# Python entry points (single block, mainly for inspection and tests)
###############################################################################


def _prepare(
    width: int, flip_p: float, rng: Optional[np.random.Generator]
) -> Tuple[int, np.random.Generator]:
    if width < 2 or width % 2:
        raise ValueError(f"Block width must be an even integer >= 2, got {width}")
    if not 0.0 <= flip_p <= 1.0:
        raise ValueError(f"flip_p must be in [0, 1], got {flip_p}")
    return width // 2, rng if rng is not None else np.random.default_rng()


def evaluate_cube(
    grid: np.ndarray,
    rules: RuleSet,
    i: int,
    j: int,
    k: int,
    width: int,
    flip_p: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> bool:
    """Write the centroid of the block at (i, j, k). False if skipped."""
    half, rng = _prepare(width, flip_p, rng)
    return bool(
        evaluate_pattern(
            grid, rules.cube.table, CUBE_PATTERNS[0], i, j, k, half,
            float(flip_p), rules.flip_mode, rng,
        )
    )


def evaluate_faces(
    grid: np.ndarray,
    rules: RuleSet,
    i: int,
    j: int,
    k: int,
    width: int,
    flip_p: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """Write the six face centers of the block. Returns the number written."""
    half, rng = _prepare(width, flip_p, rng)
    return int(
        _evaluate_patterns(
            grid, rules.face.table, FACE_PATTERNS, i, j, k, half,
            float(flip_p), rules.flip_mode, rng,
        )
    )


def evaluate_edges(
    grid: np.ndarray,
    rules: RuleSet,
    i: int,
    j: int,
    k: int,
    width: int,
    flip_p: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """Write the eight edge midpoints of the block. Returns the number written."""
    half, rng = _prepare(width, flip_p, rng)
    return int(
        _evaluate_patterns(
            grid, rules.edge.table, EDGE_PATTERNS, i, j, k, half,
            float(flip_p), rules.flip_mode, rng,
        )
    )
