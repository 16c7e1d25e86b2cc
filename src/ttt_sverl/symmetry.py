"""
Symmetry of the square board.
Teaching notes:
- There are 8 symmetries (the dihedral group of the square).
- Boards, positions, and grids all transform the same way, so an explanation
  of a transformed board should be the transformed explanation.
- A grid of grids ([fy, fx, ay, ax]) transforms on both axis pairs.
"""
from typing import Callable, Dict

import numpy as np

from .game_basics import Board, Position, Tile

ALL_SYMS = ['id', 'rot90', 'rot180', 'rot270', 'hflip', 'vflip', 'd1', 'd2']

_GRID_OPS: Dict[str, Callable[[np.ndarray], np.ndarray]] = {
    'id': lambda g: g,
    'rot90': lambda g: np.rot90(g, k=-1, axes=(0, 1)),
    'rot180': lambda g: np.rot90(g, k=2, axes=(0, 1)),
    'rot270': lambda g: np.rot90(g, k=1, axes=(0, 1)),
    'hflip': lambda g: np.flip(g, axis=1),
    'vflip': lambda g: np.flip(g, axis=0),
    'd1': lambda g: np.swapaxes(g, 0, 1),
    'd2': lambda g: np.rot90(np.swapaxes(g, 0, 1), k=2, axes=(0, 1)),
}


def _op(kind: str) -> Callable[[np.ndarray], np.ndarray]:
    try:
        return _GRID_OPS[kind]
    except KeyError:
        raise ValueError(f"Unknown transformation: {kind}") from None


def transform_grid(grid: np.ndarray, kind: str) -> np.ndarray:
    """Transform the leading [y, x] axes of a grid."""
    return np.ascontiguousarray(_op(kind)(grid))


def transform_grid_of_grids(grid: np.ndarray, kind: str) -> np.ndarray:
    """Transform features and actions of an [fy, fx, ay, ax] explanation together."""
    outer = transform_grid(grid, kind)
    inner = np.moveaxis(outer, (2, 3), (0, 1))
    return np.ascontiguousarray(np.moveaxis(transform_grid(inner, kind), (0, 1), (2, 3)))


def transform_board(board: Board, kind: str) -> Board:
    cells = np.array([int(t) for t in board.cells]).reshape(board.size, board.size)
    out = transform_grid(cells, kind)
    return Board(tuple(Tile(int(v)) for v in out.ravel()), board.size)


def transform_position(pos: Position, kind: str, size: int = 3) -> Position:
    marker = np.zeros((size, size), dtype=int)
    x, y = pos
    marker[y, x] = 1
    ty, tx = np.argwhere(transform_grid(marker, kind))[0]
    return int(tx), int(ty)
