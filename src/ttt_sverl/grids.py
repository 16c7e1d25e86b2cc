"""
Distribution grids: one float per cell, stored as numpy arrays indexed [y, x].

The same shape serves as a probability distribution over actions
(non-negative, sums to 1 over legal cells) and as an attribution grid
(signed, no sum constraint).
"""
from typing import List

import numpy as np

from .game_basics import DEFAULT_SIZE


def zero_grid(size: int = DEFAULT_SIZE) -> np.ndarray:
    return np.zeros((size, size), dtype=np.float64)


def normalize(grid: np.ndarray) -> np.ndarray:
    total = grid.sum()
    if total == 0:
        return grid
    return grid / total


def frozen(grid: np.ndarray) -> np.ndarray:
    """Mark a grid read-only so cached results cannot be altered by callers."""
    grid.setflags(write=False)
    return grid


def format_grid(grid: np.ndarray, precision: int = 4) -> List[str]:
    return [' '.join(f"{v:+.{precision}f}" for v in row) for row in grid]
