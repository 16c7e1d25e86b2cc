"""ttt_sverl package.

Exact Shapley-value and SVERL explanations of tic-tac-toe policies.

Convenience imports are exposed for common workflows.
"""

from .game_basics import Board, Player, Tile
from .observation import Observation
from .policy import MarginalizedPolicy, MinimaxPolicy, Policy, RandomPolicy, make_policy
from .shapley import base_value, explain_policy, shapley_values
from .sverl import ReturnPredictor, sverl
from .symmetry import ALL_SYMS, transform_board, transform_grid, transform_grid_of_grids

__all__ = [
    "Board",
    "Player",
    "Tile",
    "Observation",
    "Policy",
    "RandomPolicy",
    "MinimaxPolicy",
    "MarginalizedPolicy",
    "make_policy",
    "shapley_values",
    "explain_policy",
    "base_value",
    "ReturnPredictor",
    "sverl",
    "ALL_SYMS",
    "transform_board",
    "transform_grid",
    "transform_grid_of_grids",
]
