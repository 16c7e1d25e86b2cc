"""
SVERL: Shapley values of a policy's discounted expected return.

predict(s) = 0 when s has no side to move, otherwise
    sum over empty a of policy(s)[a] * (reward_after(s, a, p) + gamma * predict(s after a))
where p moves at s and reward_after is the reward to p of the board after a.

For a feature f and coalition c, the contribution of each immediate action a
is P_c[a] * predict'(s after a), with P_c the policy marginalized under c.
- local: predict' rolls out the unmodified policy.
- global: predict' rolls out MarginalizedPolicy(policy, f) at every step.
Each (policy, gamma) pair gets its own ReturnPredictor and thus its own cache,
so values from different policies can never mix.
"""
import logging
from typing import Dict, Tuple

import numpy as np

from .game_basics import Board, Position
from .grids import zero_grid
from .observation import Observation
from .policy import MarginalizedPolicy, Policy
from .shapley import ValueFunction, shapley_values

MODES = ('local', 'global')


def check_gamma(gamma: float) -> float:
    if not 0.0 <= gamma <= 1.0:
        raise ValueError(f"gamma must lie in [0, 1], got {gamma}")
    return float(gamma)


def check_mode(mode: str) -> str:
    if mode not in MODES:
        raise ValueError(f"Unknown SVERL mode: {mode} (expected one of {', '.join(MODES)})")
    return mode


class ReturnPredictor:
    def __init__(self, policy: Policy, gamma: float):
        self.policy = policy
        self.gamma = check_gamma(gamma)
        self._cache: Dict[Board, float] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def predict(self, board: Board) -> float:
        cached = self._cache.get(board)
        if cached is not None:
            return cached
        player = board.current_player()
        if player is None:
            return 0.0
        weights = self.policy(board)
        result = 0.0
        for x, y in board.empty_positions():
            prob = weights[y, x]
            if prob <= 0.0:
                continue
            child = board.play((x, y), player)
            result += prob * (child.reward(player) + self.gamma * self.predict(child))
        self._cache[board] = result
        return result


class SverlValue(ValueFunction):
    """Per-action return contributions of one board under a coalition."""

    def __init__(self, board: Board, policy: Policy, gamma: float, mode: str = 'local'):
        self.board = board
        self.policy = policy
        self.gamma = check_gamma(gamma)
        self.mode = check_mode(mode)
        self.feature_dependent = mode == 'global'
        self._local = ReturnPredictor(policy, gamma)
        self._global: Dict[Position, ReturnPredictor] = {}
        self._distributions: Dict[Tuple, np.ndarray] = {}

    def cache_sizes(self) -> Dict[str, int]:
        """Boards memoized by the local predictor and summed over global ones."""
        return {
            "local": len(self._local),
            "global": sum(len(p) for p in self._global.values()),
            "global_predictors": len(self._global),
        }

    def predictor(self, feature: Position) -> ReturnPredictor:
        if self.mode == 'local':
            return self._local
        if feature not in self._global:
            self._global[feature] = ReturnPredictor(MarginalizedPolicy(self.policy, feature), self.gamma)
        return self._global[feature]

    def distribution(self, observation: Observation) -> np.ndarray:
        key = observation.key()
        if key not in self._distributions:
            self._distributions[key] = observation.value(self.policy)
        return self._distributions[key]

    def __call__(self, feature: Position, observation: Observation) -> np.ndarray:
        result = zero_grid(self.board.size)
        player = self.board.current_player()
        if player is None:
            return result
        first = self.distribution(observation)
        predictor = self.predictor(feature)
        for x, y in self.board.empty_positions():
            prob = first[y, x]
            if prob <= 0.0:
                continue
            child = self.board.play((x, y), player)
            result[y, x] = prob * predictor.predict(child)
        return result


def sverl(board: Board, policy: Policy, gamma: float = 0.5, mode: str = 'local') -> np.ndarray:
    """One SVERL score per cell."""
    if board.current_player() is None:
        return zero_grid(board.size)
    value_fn = SverlValue(board, policy, gamma, mode)
    values = shapley_values(board, value_fn)
    sizes = value_fn.cache_sizes()
    logging.debug(
        "sverl(%s): local cache %d boards, %d global predictors (%d boards)",
        mode, sizes["local"], sizes["global_predictors"], sizes["global"],
    )
    return values.sum(axis=(2, 3))
