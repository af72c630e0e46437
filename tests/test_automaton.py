"""
Tests for configuration, boundary seeding and the renderer hand-off helpers.
"""

import json
import sys
from pathlib import Path

import numpy as np
import pytest

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from voxel_automaton import AutomatonConfig, RuleSet, VoxelAutomaton, utils
from voxel_automaton.grid import check_grid, grid_side, make_grid, seed_boundary


@pytest.mark.parametrize(
    "kwargs",
    [
        {"levels": 0},
        {"levels": -2},
        {"levels": 2.5},
        {"sparsity": -0.01},
        {"sparsity": 1.01},
        {"flip_p": 2.0},
        {"rule_mode": "ising"},
    ],
)
def test_invalid_config_is_rejected(kwargs):
    with pytest.raises(ValueError):
        AutomatonConfig(**kwargs)


def test_config_defaults():
    config = AutomatonConfig()
    assert config.levels == 7
    assert config.size == 129
    assert config.sparsity == pytest.approx(0.35)
    assert config.flip_p == 0.0
    assert config.rule_mode == "cyclic"


def test_config_from_dict_round_trip():
    config = AutomatonConfig.from_dict(
        {"levels": 3, "sparsity": 0.2, "flip_p": 0.1, "seed": 5, "rule_mode": "mirror"}
    )
    assert config == AutomatonConfig(3, 0.2, 0.1, 5, "mirror")
    assert AutomatonConfig.from_dict(config.to_dict()) == config


def test_grid_side_rejects_bad_levels():
    with pytest.raises(ValueError):
        grid_side(0)
    assert check_grid(make_grid(3)) == 9


def test_boundary_seeding_layout():
    grid = make_grid(3)
    seed_boundary(grid, np.random.default_rng(0))
    size = grid.shape[0]

    assert np.all(np.isin(grid[:, :, size - 1], (1, 2, 3)))
    assert np.all(grid[:, :, : size - 1] == 0)
    assert set(np.unique(grid[:, :, size - 1])) == {1, 2, 3}


def test_rules_mode_must_match_config():
    with pytest.raises(ValueError):
        VoxelAutomaton(AutomatonConfig(levels=2, rule_mode="cyclic"), rules=RuleSet.filled(1, mode="mirror"))


def test_injected_rules_are_used():
    automaton = VoxelAutomaton(AutomatonConfig(levels=3, seed=0), rules=RuleSet.filled(2))
    grid = automaton.run()
    interior = grid[:, :, :-1]
    assert set(np.unique(interior)) == {0, 2}


def test_voxel_counts():
    grid = np.zeros((3, 3, 3), dtype=np.int8)
    grid[0, 0, 0] = 1
    grid[1, 1, 1] = 3
    grid[2, 2, 2] = 3
    assert utils.voxel_counts(grid) == {1: 1, 2: 0, 3: 2}


def test_voxel_instances_remap_bottom_layer_to_ground():
    grid = np.zeros((5, 5, 5), dtype=np.int8)
    grid[1, 3, 4] = 2   # seeded layer
    grid[2, 0, 0] = 1   # top of the cube

    positions, types = utils.voxel_instances(grid)

    lookup = {tuple(int(v) for v in p): int(t) for p, t in zip(positions, types)}
    assert lookup == {(1, 0, 3): 2, (2, 4, 0): 1}


def test_load_params_json(tmp_path):
    path = tmp_path / "params.json"
    path.write_text(json.dumps({"levels": 4, "seed": 3}))
    params = utils.load_params(path)
    assert AutomatonConfig.from_dict(params).size == 17


def test_load_params_toml(tmp_path):
    if utils.tomllib is None:
        pytest.skip("tomllib unavailable")
    path = tmp_path / "params.toml"
    path.write_text('levels = 2\nsparsity = 1.0\nrule_mode = "mirror"\n')
    config = AutomatonConfig.from_dict(utils.load_params(path))
    assert config.levels == 2
    assert config.rule_mode == "mirror"


def test_load_params_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        utils.load_params(tmp_path / "missing.json")
    bad = tmp_path / "params.yaml"
    bad.write_text("levels: 3\n")
    with pytest.raises(ValueError):
        utils.load_params(bad)


def test_project_metadata():
    if utils.tomllib is None:
        pytest.skip("tomllib unavailable")
    pyproject = SRC.parent / "pyproject.toml"
    project = utils.tomllib.loads(pyproject.read_text())["project"]

    assert project["name"] == "voxel-automaton"
    assert "readme" not in project
    deps = {d.split(">")[0].split("=")[0] for d in project["dependencies"]}
    assert deps == {"numpy", "numba", "matplotlib"}
