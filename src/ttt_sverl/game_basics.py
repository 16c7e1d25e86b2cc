"""
Game basics: tiles, players, and the immutable board value.
Teaching notes:
- A board is a row-major tuple of tiles: 0=empty, 1=X, 2=O. X always starts.
- Boards are hashable values; every cache in the package is keyed by them.
- Positions are (x, y) pairs. Out-of-range positions are "absent": reads give
  None and writes leave the board unchanged.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from functools import lru_cache
from typing import List, Optional, Tuple

Position = Tuple[int, int]

DEFAULT_SIZE = 3


class Player(IntEnum):
    X = 1
    O = 2

    def next(self) -> "Player":
        return Player.O if self is Player.X else Player.X


class Tile(IntEnum):
    EMPTY = 0
    X = 1
    O = 2

    @classmethod
    def from_player(cls, player: Player) -> "Tile":
        return cls(int(player))


@lru_cache(maxsize=None)
def board_positions(size: int) -> Tuple[Position, ...]:
    return tuple((x, y) for y in range(size) for x in range(size))


@lru_cache(maxsize=None)
def win_lines(size: int) -> Tuple[Tuple[int, ...], ...]:
    """Flat-index lines that win: rows, then columns, then both diagonals."""
    rows = [tuple(y * size + x for x in range(size)) for y in range(size)]
    cols = [tuple(y * size + x for y in range(size)) for x in range(size)]
    main_diag = tuple(i * size + i for i in range(size))
    anti_diag = tuple(i * size + (size - 1 - i) for i in range(size))
    return tuple(rows + cols + [main_diag, anti_diag])


@dataclass(frozen=True, order=True)
class Board:
    cells: Tuple[Tile, ...]
    size: int = DEFAULT_SIZE

    def __post_init__(self) -> None:
        if len(self.cells) != self.size * self.size:
            raise ValueError(
                f"Board of size {self.size} needs {self.size * self.size} cells, got {len(self.cells)}"
            )

    @classmethod
    def empty(cls, size: int = DEFAULT_SIZE) -> "Board":
        return cls(tuple([Tile.EMPTY] * (size * size)), size)

    @classmethod
    def from_string(cls, raw: str) -> "Board":
        raw = raw.strip()
        size = int(round(len(raw) ** 0.5))
        if size == 0 or size * size != len(raw) or any(c not in "012" for c in raw):
            raise ValueError(f"Invalid board string {raw!r}: need a square number of 0/1/2 digits")
        return cls(tuple(Tile(int(c)) for c in raw), size)

    def to_string(self) -> str:
        return ''.join(str(int(t)) for t in self.cells)

    def __str__(self) -> str:
        glyph = {Tile.EMPTY: '.', Tile.X: 'X', Tile.O: 'O'}
        return '\n'.join(
            ''.join(glyph[t] for t in self.cells[y * self.size:(y + 1) * self.size])
            for y in range(self.size)
        )

    def _index(self, pos: Position) -> Optional[int]:
        x, y = pos
        if 0 <= x < self.size and 0 <= y < self.size:
            return y * self.size + x
        return None

    def get(self, pos: Position) -> Optional[Tile]:
        idx = self._index(pos)
        return None if idx is None else self.cells[idx]

    def with_tile(self, pos: Position, tile: Tile) -> "Board":
        idx = self._index(pos)
        if idx is None:
            return self
        cells = list(self.cells)
        cells[idx] = tile
        return Board(tuple(cells), self.size)

    def play(self, pos: Position, player: Player) -> "Board":
        return self.with_tile(pos, Tile.from_player(player))

    def positions(self) -> Tuple[Position, ...]:
        return board_positions(self.size)

    def empty_positions(self) -> List[Position]:
        return [pos for pos, t in zip(self.positions(), self.cells) if t == Tile.EMPTY]

    def counts(self) -> Tuple[int, int]:
        return self.cells.count(Tile.X), self.cells.count(Tile.O)

    def is_full(self) -> bool:
        return Tile.EMPTY not in self.cells

    def winner(self) -> Optional[Player]:
        for line in win_lines(self.size):
            first = self.cells[line[0]]
            if first != Tile.EMPTY and all(self.cells[i] == first for i in line):
                return Player(int(first))
        return None

    def is_terminal(self) -> bool:
        return self.winner() is not None or self.is_full()

    def current_player(self) -> Optional[Player]:
        if self.is_terminal():
            return None
        x, o = self.counts()
        return Player.O if x > o else Player.X

    def reward(self, player: Player) -> int:
        w = self.winner()
        if w is None:
            return 0
        return 1 if w == player else -1

    def is_valid_state(self) -> bool:
        """True if the board can arise from alternating play starting with X."""
        x, o = self.counts()
        if not (x == o or x == o + 1):
            return False
        wins = {
            Player(int(self.cells[line[0]]))
            for line in win_lines(self.size)
            if self.cells[line[0]] != Tile.EMPTY
            and all(self.cells[i] == self.cells[line[0]] for i in line)
        }
        if len(wins) > 1:
            return False
        if Player.X in wins and x != o + 1:
            return False
        if Player.O in wins and x != o:
            return False
        return True
