import sys, os

# Ensure src is on path for test imports
ROOT = os.path.dirname(os.path.dirname(__file__))
SRC = os.path.join(ROOT, 'src')
if SRC not in sys.path:
    sys.path.insert(0, SRC)

import random

import pytest

from fruitmatch.components.board import Board
from fruitmatch.components.tile import Tile
from fruitmatch.constants import FRUIT_KINDS

FRUITS = list(FRUIT_KINDS.keys())
# Single letters used in board diagrams.
LETTER_KINDS = {name[0]: name for name in FRUITS}


def build_board(pattern, specials=None, kinds=None):
    """Build a Board from rows of letters: '.' is absent, '#' is blocked.

    Letters map through ``kinds`` (default: first letter of each fruit name).
    """
    kinds = kinds or LETTER_KINDS
    rows = len(pattern)
    cols = len(pattern[0])
    blocked = {(r, c) for r, line in enumerate(pattern) for c, ch in enumerate(line) if ch == '#'}
    board = Board.create(rows, cols, blocked=blocked)
    for r, line in enumerate(pattern):
        assert len(line) == cols, "ragged board pattern"
        for c, ch in enumerate(line):
            if ch in '.#':
                continue
            board.set(r, c, Tile(kind=kinds.get(ch, ch)))
    for (r, c), special in (specials or {}).items():
        board.get(r, c).special = special
    return board


def load_pattern(target: Board, pattern, specials=None):
    """Overwrite target's cells (and blocked set) with a diagram."""
    source = build_board(pattern, specials)
    assert (source.rows, source.cols) == (target.rows, target.cols)
    target.blocked = source.blocked
    target.load(source.snapshot())
    return target


@pytest.fixture
def board_from():
    return build_board


@pytest.fixture
def load_board():
    return load_pattern


@pytest.fixture
def rng():
    return random.Random(1234)
