from __future__ import annotations

import random
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set, Tuple

from esper import World

from fruitmatch.components.board import Board
from fruitmatch.components.tile import SpecialKind, Tile
from fruitmatch.components.tile_types import TileTypes
from fruitmatch.errors import BoardGenerationError

Position = Tuple[int, int]
Swap = Tuple[Position, Position]
TypeEntry = Tuple[int, int, str]


@dataclass(slots=True)
class GravityMove:
    source: Position
    target: Position
    type_name: str


def get_board(world: World) -> Board:
    for _, board in world.get_component(Board):
        return board
    raise RuntimeError("Board component not found")


def get_tile_registry(world: World) -> TileTypes:
    for _, registry in world.get_component(TileTypes):
        return registry
    raise RuntimeError("TileTypes definitions not found")


def is_adjacent(a: Position, b: Position) -> bool:
    ar, ac = a
    br, bc = b
    return abs(ar - br) + abs(ac - bc) == 1


def _match_kind(board: Board, row: int, col: int) -> Optional[str]:
    """Kind used for equality checks; absent cells and colour specials never match."""
    tile = board.cells[row][col]
    if tile is None or tile.special is SpecialKind.COLOR:
        return None
    return tile.kind


def find_matches(board: Board) -> Set[Position]:
    """Return every cell that belongs to a horizontal or vertical run of three or more."""
    matches: Set[Position] = set()
    rows, cols = board.rows, board.cols
    # Horizontal windows
    for r in range(rows):
        for c in range(cols - 2):
            kind = _match_kind(board, r, c)
            if kind is not None and kind == _match_kind(board, r, c + 1) == _match_kind(board, r, c + 2):
                matches.update(((r, c), (r, c + 1), (r, c + 2)))
    # Vertical windows
    for r in range(rows - 2):
        for c in range(cols):
            kind = _match_kind(board, r, c)
            if kind is not None and kind == _match_kind(board, r + 1, c) == _match_kind(board, r + 2, c):
                matches.update(((r, c), (r + 1, c), (r + 2, c)))
    return matches


def find_match_groups(board: Board, matches: Set[Position] | None = None) -> List[List[Position]]:
    """Group matched cells into connected same-kind clusters (T/L shapes become one group)."""
    if matches is None:
        matches = find_matches(board)
    if not matches:
        return []
    remaining = set(matches)
    groups: List[List[Position]] = []
    while remaining:
        start = min(remaining)
        remaining.discard(start)
        kind = board.kind_at(*start)
        group = {start}
        frontier = [start]
        while frontier:
            row, col = frontier.pop()
            for neighbour in ((row - 1, col), (row + 1, col), (row, col - 1), (row, col + 1)):
                if neighbour in remaining and board.kind_at(*neighbour) == kind:
                    remaining.discard(neighbour)
                    group.add(neighbour)
                    frontier.append(neighbour)
        groups.append(sorted(group))
    return groups


def _swappable(board: Board, pos: Position) -> bool:
    return pos not in board.blocked and board.cells[pos[0]][pos[1]] is not None


def swap_creates_match(board: Board, src: Position, dst: Position) -> bool:
    """Return True if swapping src/dst would produce any match. The board is restored before returning."""
    board.swap(src[0], src[1], dst[0], dst[1])
    try:
        return bool(find_matches(board))
    finally:
        board.swap(src[0], src[1], dst[0], dst[1])


def _candidate_swaps(board: Board):
    for row in range(board.rows):
        for col in range(board.cols):
            pos = (row, col)
            if not _swappable(board, pos):
                continue
            right = (row, col + 1)
            if col + 1 < board.cols and _swappable(board, right):
                yield pos, right
            down = (row + 1, col)
            if row + 1 < board.rows and _swappable(board, down):
                yield pos, down


def is_solvable(board: Board) -> bool:
    """True when at least one adjacent swap would create a match."""
    for src, dst in _candidate_swaps(board):
        if swap_creates_match(board, src, dst):
            return True
    return False


def find_valid_swaps(board: Board) -> List[Swap]:
    """Enumerate adjacent swaps that would produce a match."""
    return [(src, dst) for src, dst in _candidate_swaps(board) if swap_creates_match(board, src, dst)]


def clear_positions(board: Board, positions) -> List[TypeEntry]:
    """Mark every position absent and return what was there, in sorted order."""
    typed: List[TypeEntry] = []
    for row, col in sorted(positions):
        tile = board.get(row, col)
        if tile is None:
            continue
        typed.append((row, col, tile.kind))
        board.set(row, col, None)
    return typed


def compute_gravity_moves(board: Board) -> List[GravityMove]:
    moves: List[GravityMove] = []
    for col in range(board.cols):
        playable_rows = [row for row in range(board.rows) if (row, col) not in board.blocked]
        filled_rows = [row for row in playable_rows if board.cells[row][col] is not None]
        target_rows = playable_rows[len(playable_rows) - len(filled_rows):]
        for original_row, target_row in zip(filled_rows, target_rows):
            if original_row == target_row:
                continue
            tile = board.cells[original_row][col]
            moves.append(GravityMove(source=(original_row, col), target=(target_row, col), type_name=tile.kind))
    return moves


def apply_gravity(board: Board) -> List[GravityMove]:
    """Compact each column downwards, keeping relative order and skipping blocked cells."""
    moves = compute_gravity_moves(board)
    for col in range(board.cols):
        playable_rows = [row for row in range(board.rows) if (row, col) not in board.blocked]
        tiles = [board.cells[row][col] for row in playable_rows if board.cells[row][col] is not None]
        empty = len(playable_rows) - len(tiles)
        for index, row in enumerate(playable_rows):
            board.cells[row][col] = tiles[index - empty] if index >= empty else None
    return moves


def refill_absent(board: Board, choices: Sequence[str], rng: random.Random) -> List[Position]:
    """Spawn a random kind into every absent, non-blocked cell, column by column from the top."""
    if not choices:
        raise ValueError("No spawnable tile kinds")
    spawned: List[Position] = []
    for col in range(board.cols):
        for row in range(board.rows):
            if board.cells[row][col] is None and (row, col) not in board.blocked:
                board.cells[row][col] = Tile(kind=rng.choice(choices))
                spawned.append((row, col))
    return spawned


def shuffle_board(board: Board, rng: random.Random) -> List[Position]:
    """Permute tile contents among the occupied cells; the absence pattern is unchanged."""
    positions = board.occupied_positions()
    tiles = [board.cells[row][col] for row, col in positions]
    rng.shuffle(tiles)
    for (row, col), tile in zip(positions, tiles):
        board.cells[row][col] = tile
    return positions


def fill_random(board: Board, choices: Sequence[str], rng: random.Random) -> None:
    """Fill every playable cell, steering away from kinds that would complete a run to the left or above."""
    for row in range(board.rows):
        for col in range(board.cols):
            if (row, col) in board.blocked:
                board.cells[row][col] = None
                continue
            available = list(choices)
            if col >= 2:
                left1 = board.kind_at(row, col - 1)
                if left1 is not None and left1 == board.kind_at(row, col - 2):
                    available = [t for t in available if t != left1]
            if row >= 2:
                up1 = board.kind_at(row - 1, col)
                if up1 is not None and up1 == board.kind_at(row - 2, col):
                    available = [t for t in available if t != up1]
            board.cells[row][col] = Tile(kind=rng.choice(available or list(choices)))


def generate_board(
    board: Board,
    choices: Sequence[str],
    rng: random.Random,
    *,
    max_attempts: int,
) -> int:
    """Fill the board until it has no matches and at least one valid move.

    Returns the number of attempts used. Raises BoardGenerationError once
    max_attempts layouts have been rejected.
    """
    if not choices:
        raise ValueError("No spawnable tile kinds")
    for attempt in range(1, max_attempts + 1):
        fill_random(board, choices, rng)
        if find_matches(board):
            continue
        if not board.occupied_positions() or is_solvable(board):
            return attempt
    raise BoardGenerationError(
        f"Unable to generate a {board.rows}x{board.cols} board without matches and with a valid move",
        attempts=max_attempts,
    )
