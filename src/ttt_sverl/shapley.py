"""
Exact Shapley values over board cells.

phi(f) = 1/n! * sum over coalitions C without f of s!(n-s-1)! * (V(C + f) - V(C)),
with s = |C|. All 2**n coalitions are enumerated; for each coalition that
contains f the marginal contribution is taken by un-observing f.

V is a ValueFunction strategy, so the policy explanation and SVERL share this
one routine. Values are memoized for the duration of a single run, keyed by
the observation (and by the feature when V depends on it).
"""
import logging
import time
from abc import ABC, abstractmethod
from math import factorial
from typing import Dict, Hashable, Iterator, Optional, Sequence, Tuple

import numpy as np

from .game_basics import Board, Position
from .observation import Observation
from .policy import Policy


class ValueFunction(ABC):
    """Value of an observation, as seen while attributing to `feature`."""

    feature_dependent = False

    @abstractmethod
    def __call__(self, feature: Position, observation: Observation) -> np.ndarray:
        ...


class PolicyValue(ValueFunction):
    def __init__(self, policy: Policy):
        self.policy = policy

    def __call__(self, feature: Position, observation: Observation) -> np.ndarray:
        return observation.value(self.policy)


def powerset(items: Sequence[Position]) -> Iterator[Tuple[Position, ...]]:
    """Every subset, by bitmask over the item order."""
    for mask in range(2 ** len(items)):
        yield tuple(item for t, item in enumerate(items) if (mask >> t) & 1)


def shapley_values(board: Board, value_fn: ValueFunction) -> np.ndarray:
    """Shapley value of every cell; shape (size, size) + shape of V's output."""
    positions = board.positions()
    n = len(positions)
    cache: Dict[Tuple[Optional[Position], Hashable], np.ndarray] = {}

    def evaluate(feature: Position, observation: Observation) -> np.ndarray:
        key = (feature if value_fn.feature_dependent else None, observation.key())
        value = cache.get(key)
        if value is None:
            value = np.asarray(value_fn(feature, observation), dtype=np.float64)
            cache[key] = value
        return value

    t0 = time.perf_counter()
    phi: Optional[np.ndarray] = None
    for coalition in powerset(positions):
        if not coalition:
            continue
        s = len(coalition) - 1
        weight = float(factorial(s) * factorial(n - s - 1))
        for feature in coalition:
            observation = Observation(board, set(coalition))
            with_feature = evaluate(feature, observation)
            observation.subtract(feature)
            without_feature = evaluate(feature, observation)
            if phi is None:
                phi = np.zeros((board.size, board.size) + with_feature.shape)
            x, y = feature
            phi[y, x] += weight * (with_feature - without_feature)
    phi *= 1.0 / factorial(n)
    logging.debug(
        "shapley: %d features, %d cached values, %.3fs",
        n, len(cache), time.perf_counter() - t0,
    )
    return phi


def explain_policy(board: Board, policy: Policy) -> np.ndarray:
    """Grid of grids: [fy, fx, ay, ax] is how much seeing cell (fx, fy) moves mass onto (ax, ay)."""
    return shapley_values(board, PolicyValue(policy))


def base_value(board: Board, policy: Policy) -> np.ndarray:
    """Value of the empty coalition; attributions sum to policy(board) minus this."""
    return Observation.hidden(board).value(policy)
