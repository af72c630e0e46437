from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

###############################################################################
# Constants
###############################################################################

CUBE_NEIGHBORS = 8
FACE_NEIGHBORS = 6
EDGE_NEIGHBORS = 6

NUM_TYPES = 3
UNSET = -1  # marks count triples outside the table domain

CYCLIC = "cyclic"
MIRROR = "mirror"
RULE_MODES = (CYCLIC, MIRROR)

# Integer codes handed to the numba kernels
FLIP_CYCLIC = 0
FLIP_MIRROR = 1


def flip_code(mode: str) -> int:
    if mode == CYCLIC:
        return FLIP_CYCLIC
    if mode == MIRROR:
        return FLIP_MIRROR
    raise ValueError(f"Unknown rule mode {mode!r} (use 'cyclic' or 'mirror')")


def _valid_triples(n_neighbors: int) -> Iterator[Tuple[int, int, int]]:
    for a in range(n_neighbors + 1):
        for b in range(n_neighbors + 1 - a):
            for c in range(n_neighbors + 1 - a - b):
                yield a, b, c


def _blank_table(n_neighbors: int) -> np.ndarray:
    size = n_neighbors + 1
    return np.full((size, size, size), UNSET, dtype=np.int8)


def _domain_mask(n_neighbors: int) -> np.ndarray:
    a, b, c = np.indices((n_neighbors + 1,) * 3)
    return a + b + c <= n_neighbors


def _draw_type(rng: np.random.Generator, sparsity: float) -> int:
    if rng.random() < sparsity:
        return int(rng.integers(1, NUM_TYPES + 1))
    return 0


@dataclass(frozen=True, eq=False)
class RuleTable:
    """Lookup table from neighbor-type counts to an output voxel type.

    The table is indexed by ``(count1, count2, count3)``. Only triples whose
    sum is at most ``n_neighbors`` are stored; every other slot holds
    ``UNSET`` and must never be reached by a sampler. The table is validated
    and stored as a read-only copy.
    """

    n_neighbors: int
    table: np.ndarray  # int8, shape (n+1, n+1, n+1)
    mode: str = CYCLIC

    def __post_init__(self) -> None:
        flip_code(self.mode)
        size = self.n_neighbors + 1
        table = np.asarray(self.table)
        if self.n_neighbors < 1 or table.shape != (size, size, size):
            raise ValueError(
                f"Expected a table of shape {(size,) * 3}, got {table.shape}"
            )
        if not np.issubdtype(table.dtype, np.integer):
            raise ValueError(f"Rule table must be integer, got {table.dtype}")
        valid = _domain_mask(self.n_neighbors)
        values = table.astype(np.int64)
        if np.any((values[valid] < 0) | (values[valid] > NUM_TYPES)):
            raise ValueError(f"Rule values must be in [0, {NUM_TYPES}]")
        if np.any(values[~valid] != UNSET):
            raise ValueError("Slots outside the count domain must hold UNSET")
        frozen = values.astype(np.int8)
        frozen.setflags(write=False)
        object.__setattr__(self, "table", frozen)

    @classmethod
    def filled(cls, n_neighbors: int, value: int, mode: str = CYCLIC) -> "RuleTable":
        """Table whose every valid entry maps to ``value``."""
        if not 0 <= value <= NUM_TYPES:
            raise ValueError(f"Rule value must be in [0, {NUM_TYPES}], got {value}")
        flip_code(mode)
        table = _blank_table(n_neighbors)
        for a, b, c in _valid_triples(n_neighbors):
            table[a, b, c] = value
        return cls(n_neighbors=n_neighbors, table=table, mode=mode)

    def lookup(self, c1: int, c2: int, c3: int) -> int:
        if min(c1, c2, c3) < 0 or c1 + c2 + c3 > self.n_neighbors:
            raise RuntimeError(
                f"Rule table queried outside its domain: ({c1}, {c2}, {c3}) "
                f"with {self.n_neighbors} neighbors"
            )
        return int(self.table[c1, c2, c3])

    def entries(self) -> Iterator[Tuple[Tuple[int, int, int], int]]:
        """Yield ``((a, b, c), value)`` for every stored entry."""
        for triple in _valid_triples(self.n_neighbors):
            yield triple, int(self.table[triple])

    def __len__(self) -> int:
        return int(np.count_nonzero(self.table != UNSET))

    @property
    def fill_fraction(self) -> float:
        """Fraction of stored entries that produce a non-empty voxel."""
        stored = self.table[self.table != UNSET]
        return float(np.count_nonzero(stored)) / stored.size


def make_rule_table(
    n_neighbors: int,
    sparsity: float,
    rng: np.random.Generator,
    mode: str = CYCLIC,
) -> RuleTable:
    """
    Populate a random rule table.

    In ``cyclic`` mode every valid ``(a, b, c)`` receives an independent draw.
    In ``mirror`` mode only ``(a, b)`` is drawn and the value is shared by
    all valid ``c``, so the type-3 count has no influence on the output.
    """
    if not 0.0 <= sparsity <= 1.0:
        raise ValueError(f"sparsity must be in [0, 1], got {sparsity}")
    flip_code(mode)

    table = _blank_table(n_neighbors)
    if mode == CYCLIC:
        for a, b, c in _valid_triples(n_neighbors):
            table[a, b, c] = _draw_type(rng, sparsity)
    else:
        for a in range(n_neighbors + 1):
            for b in range(n_neighbors + 1 - a):
                table[a, b, : n_neighbors + 1 - a - b] = _draw_type(rng, sparsity)
    return RuleTable(n_neighbors=n_neighbors, table=table, mode=mode)


@dataclass(frozen=True)
class RuleSet:
    """The cube, face and edge tables used by one generation run."""

    cube: RuleTable
    face: RuleTable
    edge: RuleTable

    def __post_init__(self) -> None:
        expected = (
            (self.cube, CUBE_NEIGHBORS),
            (self.face, FACE_NEIGHBORS),
            (self.edge, EDGE_NEIGHBORS),
        )
        for rule, n in expected:
            if rule.n_neighbors != n:
                raise ValueError(
                    f"Expected a table over {n} neighbors, got {rule.n_neighbors}"
                )
        modes = {self.cube.mode, self.face.mode, self.edge.mode}
        if len(modes) != 1:
            raise ValueError(f"Rule tables mix modes: {sorted(modes)}")

    @property
    def mode(self) -> str:
        return self.cube.mode

    @property
    def flip_mode(self) -> int:
        return flip_code(self.mode)

    @classmethod
    def generate(
        cls, sparsity: float, rng: np.random.Generator, mode: str = CYCLIC
    ) -> "RuleSet":
        cube = make_rule_table(CUBE_NEIGHBORS, sparsity, rng, mode)
        face = make_rule_table(FACE_NEIGHBORS, sparsity, rng, mode)
        edge = make_rule_table(EDGE_NEIGHBORS, sparsity, rng, mode)
        return cls(cube=cube, face=face, edge=edge)

    @classmethod
    def filled(cls, value: int, mode: str = CYCLIC) -> "RuleSet":
        return cls(
            cube=RuleTable.filled(CUBE_NEIGHBORS, value, mode),
            face=RuleTable.filled(FACE_NEIGHBORS, value, mode),
            edge=RuleTable.filled(EDGE_NEIGHBORS, value, mode),
        )
