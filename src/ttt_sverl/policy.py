"""
Policies: functions from a board to a distribution grid over cells.

Contract for every policy:
- all-zero output iff the board has no side to move (winner or full board);
- otherwise non-negative, zero at occupied cells, summing to 1.
Evaluators downstream assume this and do not check it.
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import numpy as np

from .game_basics import Board, Position
from .grids import frozen, normalize, zero_grid
from .observation import Observation
from .solver import MinimaxSolver, TIE_TOLERANCE

POLICY_NAMES = ('random', 'minimax')


class Policy(ABC):
    name = 'policy'

    @abstractmethod
    def evaluate(self, board: Board) -> np.ndarray:
        ...

    def __call__(self, board: Board) -> np.ndarray:
        return self.evaluate(board)


class RandomPolicy(Policy):
    """Uniform over the empty cells."""

    name = 'random'

    def evaluate(self, board: Board) -> np.ndarray:
        dist = zero_grid(board.size)
        if board.current_player() is None:
            return dist
        for x, y in board.empty_positions():
            dist[y, x] = 1.0
        return normalize(dist)


class MinimaxPolicy(Policy):
    """Perfect play, sharing probability equally among all optimal moves.

    Solutions and distributions are cached per instance. The cache stays valid
    across queries because a board's minimax solution does not depend on how
    the board was reached; distributions are returned read-only.
    """

    name = 'minimax'

    def __init__(self, depth_limit: Optional[int] = None, tolerance: float = TIE_TOLERANCE):
        self.solver = MinimaxSolver(depth_limit=depth_limit, tolerance=tolerance)
        self._dist_cache: Dict[Board, np.ndarray] = {}

    @property
    def depth_limit(self) -> Optional[int]:
        return self.solver.depth_limit

    def evaluate(self, board: Board) -> np.ndarray:
        cached = self._dist_cache.get(board)
        if cached is not None:
            return cached
        dist = zero_grid(board.size)
        for x, y in self.solver.solve(board)["optimal_moves"]:
            dist[y, x] = 1.0
        dist = frozen(normalize(dist))
        self._dist_cache[board] = dist
        return dist

    def choose(self, board: Board) -> Tuple[Optional[Position], float]:
        """First optimal move in row-major order and the board's minimax value."""
        sol = self.solver.solve(board)
        if not sol['optimal_moves']:
            return None, 0.0
        return sol['optimal_moves'][0], float(sol['value'])


class MarginalizedPolicy(Policy):
    """A base policy that never sees one cell.

    Each decision averages the base policy over every completion of the
    excluded cell. On terminal boards the output need not be zero, since some
    completions are non-terminal; predictors stop at terminal boards first.
    """

    name = 'marginalized'

    def __init__(self, base: Policy, excluded: Position):
        self.base = base
        self.excluded = excluded

    def __repr__(self) -> str:
        return f"MarginalizedPolicy(base={self.base.name}, excluded={self.excluded})"

    def evaluate(self, board: Board) -> np.ndarray:
        observation = Observation.full(board)
        if not observation.subtract(self.excluded):
            raise ValueError(f"Excluded cell {self.excluded} is not on the board")
        return observation.value(self.base)


def make_policy(name: str, depth_limit: Optional[int] = None) -> Policy:
    if name == 'random':
        return RandomPolicy()
    if name == 'minimax':
        return MinimaxPolicy(depth_limit=depth_limit)
    raise ValueError(f"Unknown policy: {name} (expected one of {', '.join(POLICY_NAMES)})")
