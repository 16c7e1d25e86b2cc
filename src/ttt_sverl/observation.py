"""
Partial observations of a board and the policy's expected output under them.

An Observation says: the true board is `board`, but only the `observed`
positions are visible. Hidden cells are marginalized with a uniform prior over
{EMPTY, X, O}, independently per cell. That prior ignores reachability and so
admits illegal boards (for example all X); attributions are defined under it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, FrozenSet, Iterator, List, Set, Tuple

import numpy as np

from .game_basics import Board, Position, Tile
from .grids import zero_grid

if TYPE_CHECKING:
    from .policy import Policy

TILES = (Tile.EMPTY, Tile.X, Tile.O)


@dataclass
class Observation:
    board: Board
    observed: Set[Position] = field(default_factory=set)

    @classmethod
    def full(cls, board: Board) -> "Observation":
        return cls(board, set(board.positions()))

    @classmethod
    def hidden(cls, board: Board) -> "Observation":
        return cls(board, set())

    def key(self) -> Tuple[Board, FrozenSet[Position]]:
        return self.board, frozenset(self.observed)

    def subtract(self, pos: Position) -> bool:
        """Stop observing `pos`; report whether it was observed."""
        if pos in self.observed:
            self.observed.remove(pos)
            return True
        return False

    def hidden_positions(self) -> List[Position]:
        return [pos for pos in self.board.positions() if pos not in self.observed]

    def possible_states(self) -> Iterator[Board]:
        """All 3**h completions; digit t of the index (base 3) fills hidden cell t."""
        hidden = self.hidden_positions()
        size = self.board.size
        base = list(self.board.cells)
        flat = [y * size + x for x, y in hidden]
        for i in range(3 ** len(hidden)):
            cells = base[:]
            rest = i
            for idx in flat:
                rest, digit = divmod(rest, 3)
                cells[idx] = TILES[digit]
            yield Board(tuple(cells), size)

    def value(self, policy: "Policy") -> np.ndarray:
        """Policy distribution averaged over every completion with equal weight."""
        result = zero_grid(self.board.size)
        count = 0
        for state in self.possible_states():
            result += policy(state)
            count += 1
        result *= 1.0 / count
        return result
