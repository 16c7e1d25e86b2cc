import math

import numpy as np
import pytest

from ttt_sverl.game_basics import Board, Tile
from ttt_sverl.observation import Observation
from ttt_sverl.policy import MinimaxPolicy, RandomPolicy
from ttt_sverl.shapley import (
    PolicyValue,
    ValueFunction,
    base_value,
    explain_policy,
    powerset,
    shapley_values,
)
from ttt_sverl.symmetry import ALL_SYMS, transform_grid_of_grids

CORNERS = [(0, 0), (2, 0), (0, 2), (2, 2)]
EDGES = [(1, 0), (0, 1), (2, 1), (1, 2)]


class ObservedPieces(ValueFunction):
    """Counts observed occupied cells: an additive game."""

    def __init__(self):
        self.calls = 0

    def __call__(self, feature, observation):
        self.calls += 1
        return np.array(float(sum(
            1 for pos in observation.observed if observation.board.get(pos) != Tile.EMPTY
        )))


class FeatureAwareCounter(ObservedPieces):
    feature_dependent = True


@pytest.fixture(scope="module")
def empty_random_explanation():
    return explain_policy(Board.empty(), RandomPolicy())


def test_powerset_covers_every_coalition():
    subsets = list(powerset(Board.empty().positions()))
    assert len(subsets) == 512
    assert len(set(subsets)) == 512
    assert subsets[0] == ()
    assert len(subsets[-1]) == 9


def test_additive_game_gives_each_piece_unit_credit():
    board = Board.from_string("100020001")
    phi = shapley_values(board, ObservedPieces())
    assert phi.shape == (3, 3)
    for (x, y), tile in zip(board.positions(), board.cells):
        expected = 0.0 if tile == Tile.EMPTY else 1.0
        assert math.isclose(phi[y, x], expected, abs_tol=1e-12)


def test_value_cache_collapses_repeated_coalitions():
    board = Board.from_string("100020000")
    shared = ObservedPieces()
    shapley_values(board, shared)
    assert shared.calls == 512
    per_feature = FeatureAwareCounter()
    shapley_values(board, per_feature)
    assert per_feature.calls == 9 * 256 * 2


@pytest.mark.parametrize("raw,policy_cls", [
    ("100020000", RandomPolicy),
    ("122010000", MinimaxPolicy),
])
def test_efficiency(raw, policy_cls):
    board = Board.from_string(raw)
    policy = policy_cls()
    phi = explain_policy(board, policy)
    assert phi.shape == (3, 3, 3, 3)
    reconstructed = phi.sum(axis=(0, 1)) + base_value(board, policy)
    assert np.allclose(reconstructed, policy(board), rtol=0, atol=1e-9)
    assert np.allclose(base_value(board, policy), Observation.hidden(board).value(policy))


def test_empty_board_random_explanation_is_symmetric(empty_random_explanation):
    phi = empty_random_explanation
    for op in ALL_SYMS:
        assert np.allclose(transform_grid_of_grids(phi, op), phi, rtol=0, atol=1e-12)


def test_symmetric_cells_collapse_to_one_value(empty_random_explanation):
    phi = empty_random_explanation
    for group in (CORNERS, EDGES):
        # Mass each cell moves onto itself
        self_credit = [phi[y, x, y, x] for x, y in group]
        assert np.allclose(self_credit, self_credit[0], rtol=0, atol=1e-12)
        totals = [phi[y, x].sum() for x, y in group]
        assert np.allclose(totals, totals[0], rtol=0, atol=1e-12)
    # The centre is the only cell of its class; its grid is itself symmetric
    centre = phi[1, 1]
    assert np.allclose(centre, centre.T) and np.allclose(centre, centre[::-1, ::-1])


def test_policy_value_ignores_feature():
    board = Board.from_string("100020000")
    obs = Observation.full(board)
    pv = PolicyValue(RandomPolicy())
    assert pv.feature_dependent is False
    assert np.array_equal(pv((0, 0), obs), pv((2, 2), obs))
