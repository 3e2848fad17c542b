import pytest

from fruitmatch.components.board import Board
from fruitmatch.components.tile import SpecialKind, Tile


def test_create_board_is_empty():
    board = Board.create(9, 9)
    assert (board.rows, board.cols) == (9, 9)
    assert board.is_empty()
    assert board.get(0, 0) is None
    assert board.get(8, 8) is None


def test_set_get_and_is_empty():
    board = Board.create(3, 4)
    board.set(2, 3, Tile(kind="apple"))
    assert board.get(2, 3) == Tile(kind="apple")
    assert not board.is_empty()
    board.set(2, 3, None)
    assert board.is_empty()


def test_swap_exchanges_contents_including_absence():
    board = Board.create(2, 2)
    bomb = Tile(kind="grape", special=SpecialKind.BOMB)
    board.set(0, 0, bomb)
    board.swap(0, 0, 1, 1)
    assert board.get(0, 0) is None
    assert board.get(1, 1) is bomb
    board.swap(1, 1, 0, 0)
    assert board.get(0, 0) is bomb
    assert board.get(1, 1) is None


@pytest.mark.parametrize("row,col", [(-1, 0), (0, -1), (3, 0), (0, 4)])
def test_out_of_range_access_is_an_error(row, col):
    board = Board.create(3, 4)
    with pytest.raises(IndexError):
        board.get(row, col)
    with pytest.raises(IndexError):
        board.set(row, col, Tile(kind="apple"))
    with pytest.raises(IndexError):
        board.swap(0, 0, row, col)


def test_invalid_dimensions_rejected():
    with pytest.raises(ValueError):
        Board.create(0, 5)


def test_snapshot_is_immutable_copy(board_from):
    board = board_from(["ab", "g."], specials={(0, 0): SpecialKind.LINE_H})
    snap = board.snapshot()
    assert snap == (
        (("apple", SpecialKind.LINE_H), ("banana", None)),
        (("grape", None), None),
    )
    board.set(0, 1, None)
    assert snap[0][1] == ("banana", None)
    assert board.snapshot() != snap


def test_occupied_positions_and_blocked_cells(board_from):
    board = board_from(["a.", "#b"])
    assert board.occupied_positions() == [(0, 0), (1, 1)]
    assert board.is_blocked(1, 0)
