"""
Exact game-theoretic solver (minimax with memoization), from the side-to-move perspective.
Scoring:
- A finished game scores reward/plies for the mover, so a win now is worth 1,
  a win in three plies 1/3, and a loss in two plies -1/2.
- Maximizing that score prefers win over draw over loss, faster wins, and
  slower losses.
- Every move whose score is within the tolerance of the best is optimal.
Each board stores (outcome, plies_to_end) rather than a depth-discounted value,
so a solution does not depend on the depth at which the board was reached and
one cache serves every query.
"""
from typing import Dict, Optional, Tuple

from .game_basics import Board

TIE_TOLERANCE = 1e-9


class MinimaxSolver:
    def __init__(self, depth_limit: Optional[int] = None, tolerance: float = TIE_TOLERANCE):
        if depth_limit is not None and depth_limit < 0:
            raise ValueError(f"depth_limit must be non-negative, got {depth_limit}")
        self.depth_limit = depth_limit
        self.tolerance = tolerance
        self._cache: Dict[Tuple[Board, Optional[int]], Dict] = {}

    def __len__(self) -> int:
        return len(self._cache)

    def clear(self) -> None:
        self._cache.clear()

    def solve(self, board: Board) -> Dict:
        return self._solve(board, self.depth_limit)

    def _solve(self, board: Board, remaining: Optional[int]) -> Dict:
        key = (board, remaining)
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        p = board.current_player()
        if p is None:
            res = {
                'value': 0.0,
                'outcome': 0,
                'plies_to_end': 0,
                'optimal_moves': tuple(),
                'q_values': {},
                'dtt_action': {},
            }
            self._cache[key] = res
            return res
        q_vals: Dict = {}
        dtt_action: Dict = {}
        outcomes: Dict = {}
        for mv in board.empty_positions():
            child = board.play(mv, p)
            cutoff = remaining is not None and remaining <= 0
            if child.current_player() is None or cutoff:
                outcome, dtt = child.reward(p), 1
            else:
                sub = self._solve(child, None if remaining is None else remaining - 1)
                outcome, dtt = -sub['outcome'], 1 + sub['plies_to_end']
            outcomes[mv] = outcome
            dtt_action[mv] = dtt
            q_vals[mv] = outcome / dtt
        best_val = max(q_vals.values())
        best_moves = tuple(mv for mv in q_vals if q_vals[mv] >= best_val - self.tolerance)
        lead = max(best_moves, key=lambda mv: q_vals[mv])
        res = {
            'value': best_val,
            'outcome': outcomes[lead],
            'plies_to_end': dtt_action[lead],
            'optimal_moves': best_moves,
            'q_values': q_vals,
            'dtt_action': dtt_action,
        }
        self._cache[key] = res
        return res
