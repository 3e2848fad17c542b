from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterator, List, Optional, Tuple

from fruitmatch.components.tile import SpecialKind, Tile

Position = Tuple[int, int]
CellSnapshot = Optional[Tuple[str, Optional[SpecialKind]]]
GridSnapshot = Tuple[Tuple[CellSnapshot, ...], ...]


@dataclass(slots=True)
class Board:
    """Fixed-size grid of cells addressed by zero-based ``(row, col)``.

    Row 0 is the top of the board; gravity pulls tiles towards ``rows - 1``.
    Each cell is either ``None`` (absent) or a :class:`Tile`. Out-of-range
    access raises ``IndexError``; callers are expected to stay in bounds.
    """
    rows: int
    cols: int
    cells: List[List[Optional[Tile]]] = field(default_factory=list)
    blocked: FrozenSet[Position] = frozenset()

    def __post_init__(self) -> None:
        if self.rows <= 0 or self.cols <= 0:
            raise ValueError(f"Board dimensions must be positive, got {self.rows}x{self.cols}")
        if not self.cells:
            self.cells = [[None] * self.cols for _ in range(self.rows)]
        self.blocked = frozenset(self.blocked)

    @classmethod
    def create(cls, rows: int, cols: int, *, blocked=()) -> "Board":
        return cls(rows=rows, cols=cols, blocked=frozenset(blocked))

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def _check(self, row: int, col: int) -> None:
        if not self.in_bounds(row, col):
            raise IndexError(f"Cell ({row}, {col}) outside {self.rows}x{self.cols} board")

    def get(self, row: int, col: int) -> Optional[Tile]:
        self._check(row, col)
        return self.cells[row][col]

    def set(self, row: int, col: int, tile: Optional[Tile]) -> None:
        self._check(row, col)
        self.cells[row][col] = tile

    def swap(self, r1: int, c1: int, r2: int, c2: int) -> None:
        """Exchange the contents of two cells, absence included."""
        self._check(r1, c1)
        self._check(r2, c2)
        self.cells[r1][c1], self.cells[r2][c2] = self.cells[r2][c2], self.cells[r1][c1]

    def is_empty(self) -> bool:
        return all(cell is None for row in self.cells for cell in row)

    def is_blocked(self, row: int, col: int) -> bool:
        return (row, col) in self.blocked

    def positions(self) -> Iterator[Position]:
        for row in range(self.rows):
            for col in range(self.cols):
                yield (row, col)

    def occupied_positions(self) -> List[Position]:
        return [(r, c) for r, c in self.positions() if self.cells[r][c] is not None]

    def kind_at(self, row: int, col: int) -> Optional[str]:
        tile = self.get(row, col)
        return tile.kind if tile is not None else None

    def snapshot(self) -> GridSnapshot:
        """Immutable copy of every cell, comparable with ``==``."""
        return tuple(
            tuple(None if tile is None else (tile.kind, tile.special) for tile in row)
            for row in self.cells
        )

    def load(self, snapshot: GridSnapshot) -> None:
        if len(snapshot) != self.rows or any(len(row) != self.cols for row in snapshot):
            raise ValueError("Snapshot dimensions do not match the board")
        self.cells = [
            [None if cell is None else Tile(kind=cell[0], special=cell[1]) for cell in row]
            for row in snapshot
        ]
