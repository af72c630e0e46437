"""
Voxel Automaton - multiscale subdivision cellular automaton in 3D

This package generates a cubic voxel field of side 2**L + 1:
- RuleSet: random cube / face / edge lookup tables over neighbor-type counts
- seed_boundary: random voxel types on the bottom layer
- run_schedule: coarse-to-fine subdivision driving the neighbor samplers
- VoxelAutomaton: one complete generation run from an AutomatonConfig
"""

from .automaton import AutomatonConfig, VoxelAutomaton, generate
from .grid import grid_side, make_grid, seed_boundary
from .rules import RuleSet, RuleTable, make_rule_table
from .scheduler import block_widths, run_schedule
from . import utils

__all__ = [
    # Generation
    "VoxelAutomaton",
    "AutomatonConfig",
    "generate",
    # Building blocks
    "RuleSet",
    "RuleTable",
    "make_rule_table",
    "grid_side",
    "make_grid",
    "seed_boundary",
    "block_widths",
    "run_schedule",
    # Utilities
    "utils",
]
