"""Special tile creation and activation rules.

Creation is decided once per player swap from the shape of the match that
contains the swap origin; activation turns a special inside a pending
removal set into the extra cells it clears.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from fruitmatch.components.board import Board
from fruitmatch.components.tile import SpecialKind, Tile
from fruitmatch.constants import COLOR_PLACEHOLDER_KIND

Position = Tuple[int, int]
# A T or L of two crossing runs of three.
BOMB_SHAPE_SIZE = 5


@dataclass(frozen=True, slots=True)
class SwapOrigin:
    """Cell a player swap most directly caused to match, and the cell it was swapped with."""
    row: int
    col: int
    swapped_with: Optional[Position] = None

    @property
    def position(self) -> Position:
        return (self.row, self.col)


@dataclass(frozen=True, slots=True)
class SpecialSpawn:
    position: Position
    special: SpecialKind
    kind: str

    def make_tile(self) -> Tile:
        return Tile(kind=self.kind, special=self.special)


@dataclass(frozen=True, slots=True)
class Activation:
    position: Position
    special: SpecialKind
    cells: frozenset


def resolve_origin(matches: Set[Position], src: Position, dst: Position) -> Optional[SwapOrigin]:
    """Prefer the swap destination (where the dragged tile landed); fall back to the source."""
    if dst in matches:
        return SwapOrigin(dst[0], dst[1], swapped_with=src)
    if src in matches:
        return SwapOrigin(src[0], src[1], swapped_with=dst)
    return None


def _matched_kind(board: Board, matches: Set[Position], pos: Position) -> Optional[str]:
    if pos not in matches:
        return None
    tile = board.cells[pos[0]][pos[1]]
    if tile is None or tile.special is SpecialKind.COLOR:
        return None
    return tile.kind


def run_length(board: Board, matches: Set[Position], pos: Position, horizontal: bool) -> int:
    """Length of the matched same-kind run through pos along one axis."""
    kind = _matched_kind(board, matches, pos)
    if kind is None:
        return 0
    dr, dc = (0, 1) if horizontal else (1, 0)
    length = 1
    for step in (1, -1):
        row, col = pos[0] + dr * step, pos[1] + dc * step
        while board.in_bounds(row, col) and _matched_kind(board, matches, (row, col)) == kind:
            length += 1
            row, col = row + dr * step, col + dc * step
    return length


def _connected_group(board: Board, matches: Set[Position], start: Position) -> Set[Position]:
    kind = _matched_kind(board, matches, start)
    group = {start}
    frontier = [start]
    while frontier:
        row, col = frontier.pop()
        for neighbour in ((row - 1, col), (row + 1, col), (row, col - 1), (row, col + 1)):
            if neighbour not in group and _matched_kind(board, matches, neighbour) == kind:
                group.add(neighbour)
                frontier.append(neighbour)
    return group


def is_branching(board: Board, matches: Set[Position], origin: Position) -> bool:
    """True when the origin's match group contains a crossing of a horizontal and a vertical run of three."""
    for pos in _connected_group(board, matches, origin):
        if run_length(board, matches, pos, True) >= 3 and run_length(board, matches, pos, False) >= 3:
            return True
    return False


def decide_special(board: Board, matches: Set[Position], origin: Optional[SwapOrigin]) -> Optional[SpecialSpawn]:
    """Pick the special a player swap earns, or None.

    Precedence: five in a line (colour), a five-cell T or L made of crossing
    runs (bomb), exactly four in a line (line clearer oriented with the run). Without an origin no
    special is ever created.
    """
    if origin is None:
        return None
    pos = origin.position
    kind = _matched_kind(board, matches, pos)
    if kind is None:
        return None
    horizontal = run_length(board, matches, pos, True)
    vertical = run_length(board, matches, pos, False)
    if horizontal >= 5 or vertical >= 5:
        return SpecialSpawn(pos, SpecialKind.COLOR, COLOR_PLACEHOLDER_KIND)
    if len(_connected_group(board, matches, pos)) == BOMB_SHAPE_SIZE and is_branching(board, matches, pos):
        return SpecialSpawn(pos, SpecialKind.BOMB, kind)
    if horizontal == 4:
        return SpecialSpawn(pos, SpecialKind.LINE_H, kind)
    if vertical == 4:
        return SpecialSpawn(pos, SpecialKind.LINE_V, kind)
    return None


def activation_cells(board: Board, row: int, col: int, special: Optional[SpecialKind]) -> Set[Position]:
    cells: Set[Position] = {(row, col)}
    if special is SpecialKind.BOMB:
        for r in range(row - 1, row + 2):
            for c in range(col - 1, col + 2):
                if board.in_bounds(r, c):
                    cells.add((r, c))
    elif special is SpecialKind.LINE_H:
        cells.update((row, c) for c in range(board.cols))
    elif special is SpecialKind.LINE_V:
        cells.update((r, col) for r in range(board.rows))
    # A colour special on its own clears only itself.
    return cells


def combo_cells(board: Board, a: Position, b: Position) -> Set[Position]:
    """Cells cleared when a swap pairs two specials: both bomb-style neighbourhoods."""
    return activation_cells(board, a[0], a[1], SpecialKind.BOMB) | activation_cells(board, b[0], b[1], SpecialKind.BOMB)


def expand_with_specials(board: Board, pending: Set[Position]) -> Tuple[Set[Position], List[Activation]]:
    """Union in the activation cells of every special in pending, transitively."""
    expanded = set(pending)
    activated: List[Activation] = []
    seen: Set[Position] = set()
    queue = sorted(pos for pos in expanded if _special_at(board, pos) is not None)
    while queue:
        pos = queue.pop(0)
        if pos in seen:
            continue
        seen.add(pos)
        special = _special_at(board, pos)
        cells = activation_cells(board, pos[0], pos[1], special)
        activated.append(Activation(pos, special, frozenset(cells)))
        for cell in sorted(cells - expanded):
            expanded.add(cell)
            if _special_at(board, cell) is not None:
                queue.append(cell)
    return expanded, activated


def _special_at(board: Board, pos: Position) -> Optional[SpecialKind]:
    tile = board.get(pos[0], pos[1])
    return tile.special if tile is not None else None
