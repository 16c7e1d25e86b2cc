import math

import pytest

from ttt_sverl.game_basics import Board
from ttt_sverl.policy import MinimaxPolicy
from ttt_sverl.solver import MinimaxSolver


@pytest.fixture(scope="module")
def minimax():
    return MinimaxPolicy()


def test_terminal_positions_values():
    solver = MinimaxSolver()
    for raw in ("111220000", "222110100", "112221121"):
        res = solver.solve(Board.from_string(raw))
        assert res['value'] == 0.0
        assert res['plies_to_end'] == 0
        assert res['optimal_moves'] == ()


def test_initial_state_is_draw_under_perfect_play(minimax):
    board = Board.empty()
    action, value = minimax.choose(board)
    assert value == 0.0
    assert action == (0, 0)
    # Every opening move draws, so all nine share the mass
    dist = minimax(board)
    assert all(math.isclose(v, 1.0 / 9) for v in dist.ravel())


def test_winning_corner_gets_all_the_mass(minimax):
    # X . .      X at centre and top-left, bottom-right corner empty, X to move
    # X O O
    board = Board.from_string("122010000")
    dist = minimax(board)
    assert dist[2, 2] == 1.0
    assert dist.sum() == 1.0
    action, value = minimax.choose(board)
    assert action == (2, 2)
    assert value == 1.0


def test_forced_block(minimax):
    board = Board.from_string("110020000")
    dist = minimax(board)
    assert dist[0, 2] == 1.0
    sol = minimax.solver.solve(board)
    # Any other move lets X win on the next ply
    for mv, q in sol['q_values'].items():
        if mv != (2, 0):
            assert q == pytest.approx(-0.5)


def test_depth_discount_prefers_faster_wins():
    # X wins now at (2,0); every other move keeps the game going
    board = Board.from_string("110220000")
    sol = MinimaxSolver().solve(board)
    assert sol['optimal_moves'] == ((2, 0),)
    assert sol['q_values'][(2, 0)] == 1.0
    assert all(q < 1.0 for mv, q in sol['q_values'].items() if mv != (2, 0))


def test_depth_discount_prefers_slower_losses():
    # X . X      O to move and lost either way: blocking at (1,0) only delays
    # . . .      the loss until X forks with (0,2); anything else loses at once
    # . . O
    board = Board.from_string("101000002")
    sol = MinimaxSolver().solve(board)
    assert sol['optimal_moves'] == ((1, 0),)
    assert sol['q_values'][(1, 0)] == pytest.approx(-0.25)
    assert sol['dtt_action'][(1, 0)] == 4
    assert sol['outcome'] == -1
    assert sol['plies_to_end'] == 4
    for mv, q in sol['q_values'].items():
        if mv != (1, 0):
            assert q == pytest.approx(-0.5)
            assert sol['dtt_action'][mv] == 2
    assert MinimaxPolicy()(board)[0, 1] == 1.0


def test_depth_limit_scores_cutoff_as_terminal():
    board = Board.from_string("110020000")
    shallow = MinimaxPolicy(depth_limit=0)(board)
    # Nothing wins or loses immediately, so all six moves tie at the cutoff
    for x, y in board.empty_positions():
        assert math.isclose(shallow[y, x], 1.0 / 6)
    assert MinimaxPolicy(depth_limit=1)(board)[0, 2] == 1.0
    with pytest.raises(ValueError):
        MinimaxSolver(depth_limit=-1)


def test_cache_is_shared_across_queries():
    solver = MinimaxSolver()
    solver.solve(Board.empty())
    size = len(solver)
    assert size > 1000
    solver.solve(Board.from_string("100020000"))
    assert len(solver) == size
    solver.clear()
    assert len(solver) == 0
