"""
Multiscale Voxel Automaton.

Generates a K x K x K voxel field (K = 2**L + 1) by seeding the bottom layer
with random types and then subdividing the cube at halving scales. At every
scale, cube centroids, face centers and edge midpoints are set by looking up
the counts of their sampled neighbors in random rule tables.

Key pieces:
1.  **Rule tables:** sparse count -> type lookups for the cube (8 samples),
    face (6) and edge (6) topologies. See ``rules.py``.
2.  **Boundary seed:** the only source of non-empty cells before the
    automaton runs. See ``grid.py``.
3.  **Scheduler:** the coarse-to-fine traversal compiled with `@numba.njit`.
    See ``scheduler.py`` and ``samplers.py``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional
import time

import numpy as np

from . import utils
from .grid import grid_side, make_grid, seed_boundary
from .rules import CYCLIC, RULE_MODES, RuleSet
from .scheduler import run_schedule

###############################################################################
# Configuration
###############################################################################


@dataclass(frozen=True)
class AutomatonConfig:
    """Parameters of one generation run."""

    levels: int = 7
    sparsity: float = 0.35
    flip_p: float = 0.0
    seed: Optional[int] = None
    rule_mode: str = CYCLIC

    def __post_init__(self) -> None:
        if isinstance(self.levels, bool) or int(self.levels) != self.levels or self.levels < 1:
            raise ValueError(f"levels must be an integer >= 1, got {self.levels}")
        if not 0.0 <= self.sparsity <= 1.0:
            raise ValueError(f"sparsity must be in [0, 1], got {self.sparsity}")
        if not 0.0 <= self.flip_p <= 1.0:
            raise ValueError(f"flip_p must be in [0, 1], got {self.flip_p}")
        if self.rule_mode not in RULE_MODES:
            raise ValueError(
                f"Unknown rule_mode={self.rule_mode!r} (use 'cyclic' or 'mirror')"
            )

    @property
    def size(self) -> int:
        return grid_side(self.levels)

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> "AutomatonConfig":
        seed = params.get("seed")
        return cls(
            levels=int(params.get("levels", 7)),
            sparsity=float(params.get("sparsity", 0.35)),
            flip_p=float(params.get("flip_p", 0.0)),
            seed=None if seed is None else int(seed),
            rule_mode=str(params.get("rule_mode", CYCLIC)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


###############################################################################
# Generator
###############################################################################


class VoxelAutomaton:
    """
    Owns everything a single generation run touches.

    Responsibilities:
    1. Hold the one random source (rules, seed layer and flips draw from it).
    2. Build the rule tables once.
    3. Allocate, seed and fill the grid.
    """

    def __init__(
        self,
        config: AutomatonConfig | None = None,
        *,
        rules: Optional[RuleSet] = None,
    ) -> None:
        self.config = config or AutomatonConfig()
        self.rng = utils.make_rng(self.config.seed)

        if rules is None:
            rules = RuleSet.generate(
                self.config.sparsity, self.rng, mode=self.config.rule_mode
            )
        elif rules.mode != self.config.rule_mode:
            raise ValueError(
                f"Rule set mode {rules.mode!r} does not match config "
                f"rule_mode {self.config.rule_mode!r}"
            )
        self.rules = rules

        self.size = self.config.size
        self.grid: Optional[np.ndarray] = None
        self.writes = 0
        self.elapsed = 0.0

    def run(self) -> np.ndarray:
        """Seed the boundary and run every scale once. Returns the grid."""
        self.grid = make_grid(self.config.levels)
        seed_boundary(self.grid, self.rng)

        print(f"Running voxel automaton: L={self.config.levels} "
              f"({self.size}x{self.size}x{self.size}), "
              f"sparsity={self.config.sparsity}, flip_p={self.config.flip_p}")

        start = time.time()
        self.writes = run_schedule(
            self.grid, self.rules, flip_p=self.config.flip_p, rng=self.rng
        )
        self.elapsed = time.time() - start

        counts = utils.voxel_counts(self.grid)
        print(f"Voxel counts: {counts[1]} {counts[2]} {counts[3]} "
              f"Total: {sum(counts.values())}")
        return self.grid

    def result(self) -> utils.GenerationResult:
        """Package the finished grid for a downstream consumer."""
        if self.grid is None:
            raise RuntimeError("run() must be called before result()")
        grid = self.grid.copy()
        grid.setflags(write=False)
        meta = self.config.to_dict()
        meta.update(
            {
                "size": self.size,
                "writes": self.writes,
                "elapsed_seconds": self.elapsed,
                "counts": utils.voxel_counts(grid),
            }
        )
        return utils.GenerationResult(grid=grid, meta=meta)


def generate(config: AutomatonConfig | None = None) -> np.ndarray:
    """Run one generation and return the finished (read-only) grid."""
    automaton = VoxelAutomaton(config)
    automaton.run()
    return automaton.result().grid


__all__ = ["AutomatonConfig", "VoxelAutomaton", "generate"]


if __name__ == "__main__":
    # Standalone execution for a quick look
    automaton = VoxelAutomaton(AutomatonConfig(levels=6, seed=42))
    automaton.run()
    print(f"Finished in {automaton.elapsed:.2f}s with {automaton.writes} writes")
