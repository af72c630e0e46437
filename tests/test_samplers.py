"""
Tests for the cube / face / edge samplers and the stochastic flip.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from voxel_automaton.grid import make_grid, seed_boundary
from voxel_automaton.rules import (
    CUBE_NEIGHBORS,
    EDGE_NEIGHBORS,
    FACE_NEIGHBORS,
    FLIP_CYCLIC,
    FLIP_MIRROR,
    MIRROR,
    UNSET,
    RuleSet,
    RuleTable,
)
from voxel_automaton.samplers import (
    CUBE_PATTERNS,
    EDGE_PATTERNS,
    FACE_PATTERNS,
    evaluate_cube,
    evaluate_edges,
    evaluate_faces,
    evaluate_pattern,
    flip_type,
)
from voxel_automaton.scheduler import run_schedule


def _targets(patterns, origin, half):
    return [tuple(int(o + d * half) for o, d in zip(origin, p[0])) for p in patterns]


def test_pattern_shapes():
    assert CUBE_PATTERNS.shape == (1, 1 + CUBE_NEIGHBORS, 3)
    assert FACE_PATTERNS.shape == (6, 1 + FACE_NEIGHBORS, 3)
    assert EDGE_PATTERNS.shape == (8, 1 + EDGE_NEIGHBORS, 3)


def test_patterns_sample_distinct_cells_at_distance_one():
    for patterns in (FACE_PATTERNS, EDGE_PATTERNS):
        for pattern in patterns:
            target, samples = pattern[0], pattern[1:]
            assert len({tuple(s) for s in samples}) == len(samples)
            # every sample sits one half-width away along each moved axis
            assert np.all(np.abs(samples - target) <= 1)
            assert not any(np.array_equal(s, target) for s in samples)


def test_face_targets_cover_all_six_faces():
    targets = {tuple(p[0]) for p in FACE_PATTERNS}
    assert targets == {(1, 1, 0), (1, 0, 1), (0, 1, 1), (1, 1, 2), (1, 2, 1), (2, 1, 1)}


def test_edge_targets_are_x_and_y_edges():
    targets = {tuple(p[0]) for p in EDGE_PATTERNS}
    assert len(targets) == 8
    for t in targets:
        assert t[2] in (0, 2)
        assert sorted(t).count(1) == 1
        assert t[2] != 1


def test_cube_writes_centroid():
    grid = make_grid(2)
    grid[::4, ::4, ::4] = 1
    rules = RuleSet.filled(0)
    table = np.array(rules.cube.table)
    table.setflags(write=True)
    table[8, 0, 0] = 3
    table.setflags(write=False)
    rules = RuleSet(cube=RuleTable(CUBE_NEIGHBORS, table), face=rules.face, edge=rules.edge)

    assert evaluate_cube(grid, rules, 0, 0, 0, 4)
    assert grid[2, 2, 2] == 3


def test_cube_out_of_bounds_is_skipped():
    grid = make_grid(2)
    grid[4, 2, 2] = 3
    before = grid.copy()

    # corners at i + 4 = 6 fall outside a 5-cube
    assert not evaluate_cube(grid, RuleSet.filled(1), 2, 0, 0, 4)
    np.testing.assert_array_equal(grid, before)


def test_skipped_cells_keep_previous_value():
    """Skip never clamps or zeroes the candidate cell."""
    grid = make_grid(2)
    origin, half = (0, 0, 0), 2
    for target in _targets(FACE_PATTERNS, origin, half) + _targets(EDGE_PATTERNS, origin, half):
        grid[target] = 2
    before = grid.copy()
    rules = RuleSet.filled(1)

    assert evaluate_faces(grid, rules, 0, 0, 0, 4) == 0
    assert evaluate_edges(grid, rules, 0, 0, 0, 4) == 0
    np.testing.assert_array_equal(grid, before)


def test_corner_block_writes_only_interior_targets():
    grid = make_grid(2)
    rules = RuleSet.filled(1)

    assert evaluate_cube(grid, rules, 0, 0, 0, 2)
    assert evaluate_faces(grid, rules, 0, 0, 0, 2) == 3
    assert evaluate_edges(grid, rules, 0, 0, 0, 2) == 2

    written = {tuple(int(v) for v in c) for c in np.argwhere(grid == 1)}
    assert written == {
        (1, 1, 1),
        (1, 1, 2), (1, 2, 1), (2, 1, 1),
        (1, 2, 2), (2, 1, 2),
    }


def test_flip_type_modes():
    assert [flip_type(v, FLIP_CYCLIC) for v in (1, 2, 3)] == [2, 3, 1]
    assert [flip_type(v, FLIP_MIRROR) for v in (1, 2, 3)] == [2, 1, 0]


def test_certain_flip_never_stores_type_one():
    rng = np.random.default_rng(0)
    grid = make_grid(4)
    seed_boundary(grid, rng)
    size = grid.shape[0]

    run_schedule(grid, RuleSet.filled(1), flip_p=1.0, rng=rng)

    interior = grid[:, :, : size - 1]
    assert not np.any(interior == 1)
    assert np.all(np.isin(interior, (0, 2)))
    assert np.count_nonzero(interior) > 0


def test_mirror_flip_erases_type_three():
    rng = np.random.default_rng(0)
    grid = make_grid(3)
    seed_boundary(grid, rng)
    size = grid.shape[0]

    run_schedule(grid, RuleSet.filled(3, mode=MIRROR), flip_p=1.0, rng=rng)

    assert np.all(grid[:, :, : size - 1] == 0)


def test_zero_flip_keeps_table_output():
    grid = make_grid(3)
    seed_boundary(grid, np.random.default_rng(0))
    size = grid.shape[0]

    run_schedule(grid, RuleSet.filled(1), flip_p=0.0)

    interior = grid[:, :, : size - 1]
    assert np.all(np.isin(interior, (0, 1)))
    assert np.count_nonzero(interior) > 0


def test_unset_entry_is_an_invariant_violation():
    table = np.full((CUBE_NEIGHBORS + 1,) * 3, UNSET, dtype=np.int8)

    with pytest.raises(RuntimeError):
        evaluate_pattern(
            make_grid(2), table, CUBE_PATTERNS[0], 0, 0, 0, 2,
            0.0, FLIP_CYCLIC, np.random.default_rng(0),
        )


def test_invalid_width_and_flip():
    grid = make_grid(2)
    rules = RuleSet.filled(1)
    with pytest.raises(ValueError):
        evaluate_cube(grid, rules, 0, 0, 0, 3)
    with pytest.raises(ValueError):
        evaluate_faces(grid, rules, 0, 0, 0, 2, flip_p=1.5)
