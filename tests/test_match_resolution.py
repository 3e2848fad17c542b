import random

import pytest

from fruitmatch.components.game_state import GameMode
from fruitmatch.components.tile import SpecialKind
from fruitmatch.constants import SWAP_PAUSE
from fruitmatch.errors import CascadeOverflowError, ShuffleError
from fruitmatch.events.bus import (
    EventBus,
    EVENT_BOARD_SHUFFLED,
    EVENT_BOARD_STUCK,
    EVENT_CASCADE_COMPLETE,
    EVENT_CASCADE_STEP,
    EVENT_ENGINE_FAILURE,
    EVENT_GRAVITY_APPLIED,
    EVENT_MATCH_CLEARED,
    EVENT_MATCH_FOUND,
    EVENT_SPECIAL_ACTIVATED,
    EVENT_SPECIAL_CREATED,
    EVENT_TILE_SWAP_INVALID,
    EVENT_TILE_SWAP_REJECTED,
    EVENT_TILE_SWAP_REQUEST,
    EVENT_TILE_SWAP_VALID,
)
from fruitmatch.session import GameSession
from fruitmatch.systems.board_ops import find_matches, find_valid_swaps, is_solvable
from fruitmatch.systems.cascade_state_utils import get_or_create_cascade_state
from fruitmatch.systems.match_resolution import CascadePauses, SwapOutcome

FOUR_IN_A_ROW = [
    "aagas",
    "bsawo",
    "gobsw",
    "swobg",
    "obwgb",
]

# kind index (col + 2*row) % 5: no kind repeats within two cells along a line.
SPREAD = [
    "abgosa",
    "gosabg",
    "sabgos",
    "bgosab",
    "osabgo",
    "abgosa",
]


def record(bus, *names):
    seen = []
    for name in names:
        bus.subscribe(name, lambda sender, _name=name, **payload: seen.append((_name, payload)))
    return seen


def make_session(rows, cols, seed=11, **kwargs):
    bus = EventBus()
    kwargs.setdefault("pauses", CascadePauses.none())
    kwargs.setdefault("rng", random.Random(seed))
    session = GameSession(rows=rows, cols=cols, event_bus=bus, **kwargs)
    return session, bus


def test_four_in_a_row_spawns_horizontal_line_at_destination(load_board):
    session, bus = make_session(5, 5)
    load_board(session.board, FOUR_IN_A_ROW)
    events = record(bus, EVENT_TILE_SWAP_VALID, EVENT_CASCADE_STEP, EVENT_MATCH_FOUND,
                    EVENT_MATCH_CLEARED, EVENT_SPECIAL_CREATED, EVENT_GRAVITY_APPLIED,
                    EVENT_CASCADE_COMPLETE)

    result = session.propose_swap(1, 2, 0, 2)

    assert result.outcome is SwapOutcome.RESOLVED
    created = [payload for name, payload in events if name == EVENT_SPECIAL_CREATED]
    assert created[0]["position"] == (0, 2)
    assert created[0]["special"] is SpecialKind.LINE_H
    assert created[0]["kind"] == "apple"

    names = [name for name, _ in events]
    assert names[:6] == [
        EVENT_TILE_SWAP_VALID,
        EVENT_CASCADE_STEP,
        EVENT_MATCH_FOUND,
        EVENT_MATCH_CLEARED,
        EVENT_SPECIAL_CREATED,
        EVENT_GRAVITY_APPLIED,
    ]
    assert names[-1] == EVENT_CASCADE_COMPLETE

    labels = [snap.label for snap in result.snapshots]
    assert labels[:4] == ["swap", "cleared", "settled", "refilled"]
    cleared = result.snapshots[1].cells
    assert [cleared[0][c] for c in range(4)] == [None] * 4
    settled = result.snapshots[2].cells
    assert settled[0][2] == ("apple", SpecialKind.LINE_H)


def test_resolved_swap_leaves_a_stable_playable_board(load_board):
    session, _ = make_session(5, 5)
    load_board(session.board, FOUR_IN_A_ROW)
    result = session.propose_swap(1, 2, 0, 2)
    assert result.final.cells == session.board.snapshot()
    assert find_matches(session.board) == set()
    assert session.board.is_empty() or is_solvable(session.board)
    assert get_or_create_cascade_state(session.world).busy is False


def test_special_pair_clears_both_neighbourhoods(load_board):
    session, bus = make_session(6, 6)
    load_board(session.board, SPREAD, specials={(2, 2): SpecialKind.BOMB, (2, 3): SpecialKind.LINE_V})
    events = record(bus, EVENT_TILE_SWAP_VALID, EVENT_SPECIAL_ACTIVATED)

    result = session.propose_swap(2, 2, 2, 3)

    assert result.outcome is SwapOutcome.RESOLVED
    assert events[0] == (EVENT_TILE_SWAP_VALID, {"src": (2, 2), "dst": (2, 3), "combo": True})
    activated = {payload["position"]: payload["special"] for name, payload in events if name == EVENT_SPECIAL_ACTIVATED}
    assert activated[(2, 2)] is SpecialKind.BOMB
    assert activated[(2, 3)] is SpecialKind.LINE_V

    first = result.snapshots[0]
    assert first.label == "cleared"
    must_clear = {(r, c) for r in range(1, 4) for c in range(1, 4)} | {(r, 3) for r in range(6)}
    for r, c in must_clear:
        assert first.cells[r][c] is None


def test_non_adjacent_swap_is_rejected_without_touching_the_board(load_board):
    session, bus = make_session(5, 5)
    load_board(session.board, FOUR_IN_A_ROW)
    rejected = record(bus, EVENT_TILE_SWAP_REJECTED)
    before = session.board.snapshot()

    result = session.propose_swap(0, 0, 0, 2)

    assert result.outcome is SwapOutcome.REJECTED
    assert result.reason == "not_adjacent"
    assert result.snapshots == []
    assert session.board.snapshot() == before
    assert rejected == [(EVENT_TILE_SWAP_REJECTED, {"src": (0, 0), "dst": (0, 2), "reason": "not_adjacent"})]


@pytest.mark.parametrize("coords,reason", [
    ((0, 0, -1, 0), "out_of_bounds"),
    ((4, 4, 5, 4), "out_of_bounds"),
    ((1, 1, 1, 1), "not_adjacent"),
    ((2, 2, 3, 3), "not_adjacent"),
])
def test_invalid_coordinates_are_rejected(load_board, coords, reason):
    session, _ = make_session(5, 5)
    load_board(session.board, FOUR_IN_A_ROW)
    before = session.board.snapshot()
    result = session.propose_swap(*coords)
    assert result.outcome is SwapOutcome.REJECTED
    assert result.reason == reason
    assert session.board.snapshot() == before


def test_holes_cannot_be_swapped(load_board):
    session, _ = make_session(3, 3)
    load_board(session.board, [
        "a.b",
        "g#s",
        "aob",
    ])
    assert session.propose_swap(0, 0, 0, 1).reason == "empty_cell"
    assert session.propose_swap(1, 0, 1, 1).reason == "blocked"


def test_swap_while_busy_is_rejected(load_board):
    session, _ = make_session(5, 5)
    load_board(session.board, FOUR_IN_A_ROW)
    before = session.board.snapshot()
    get_or_create_cascade_state(session.world).busy = True

    result = session.propose_swap(1, 2, 0, 2)

    assert result.outcome is SwapOutcome.REJECTED
    assert result.reason == "busy"
    assert session.board.snapshot() == before


def test_non_matching_swap_reverts(load_board):
    session, bus = make_session(5, 5)
    load_board(session.board, FOUR_IN_A_ROW)
    invalid = record(bus, EVENT_TILE_SWAP_INVALID, EVENT_CASCADE_STEP)
    before = session.board.snapshot()

    result = session.propose_swap(2, 0, 2, 1)

    assert result.outcome is SwapOutcome.NO_MATCH
    assert [snap.label for snap in result.snapshots] == ["swap", "swap_back"]
    assert result.snapshots[-1].cells == before
    assert session.board.snapshot() == before
    assert invalid == [(EVENT_TILE_SWAP_INVALID, {"src": (2, 0), "dst": (2, 1)})]
    assert get_or_create_cascade_state(session.world).busy is False


def test_many_swaps_always_settle():
    session, _ = make_session(9, 9, seed=2024)
    assert session.start_level(1).ok
    chooser = random.Random(5)
    for _ in range(25):
        swaps = find_valid_swaps(session.board)
        assert swaps
        (r1, c1), (r2, c2) = chooser.choice(swaps)
        result = session.propose_swap(r1, c1, r2, c2)
        assert result.outcome is SwapOutcome.RESOLVED
        assert find_matches(session.board) == set()
        assert is_solvable(session.board)
        assert all(session.board.get(r, c) is not None for r, c in session.board.positions())


def test_unshufflable_board_reports_failure(load_board):
    session, bus = make_session(3, 3, max_shuffle_attempts=3)
    session.level_state.refill = False
    load_board(session.board, [
        "...",
        "g.a",
        "aab",
    ])
    events = record(bus, EVENT_BOARD_STUCK, EVENT_BOARD_SHUFFLED, EVENT_ENGINE_FAILURE, EVENT_CASCADE_COMPLETE)

    result = session.propose_swap(1, 2, 2, 2)

    assert result.outcome is SwapOutcome.FAILED
    assert isinstance(result.failure, ShuffleError)
    names = [name for name, _ in events]
    assert names.count(EVENT_BOARD_STUCK) == 3
    assert names.count(EVENT_BOARD_SHUFFLED) == 3
    assert EVENT_CASCADE_COMPLETE not in names
    failure = events[-1]
    assert failure[0] == EVENT_ENGINE_FAILURE
    assert failure[1]["stage"] == "shuffle"
    assert failure[1]["recovery"] == "retry_level"
    assert session.game_state.mode is GameMode.BOARD_ERROR
    assert session.game_state.next_action == "retry_level"
    assert get_or_create_cascade_state(session.world).busy is False
    # Further swaps are refused until the level is retried.
    assert session.propose_swap(2, 0, 2, 1).reason == "inactive"


def test_stuck_board_is_shuffled_until_playable(load_board):
    session, bus = make_session(4, 4, seed=3)
    load_board(session.board, [
        "abgo",
        "gosa",
        "sabg",
        "bgos",
    ])
    events = record(bus, EVENT_BOARD_STUCK, EVENT_BOARD_SHUFFLED)

    result = session.match_resolution_system.stabilize()

    assert result.outcome is SwapOutcome.RESOLVED
    assert events[0][0] == EVENT_BOARD_STUCK
    assert events[0][1]["message"] == "No more moves, shuffling..."
    assert EVENT_BOARD_SHUFFLED in [name for name, _ in events]
    labels = [snap.label for snap in result.snapshots]
    assert labels[:2] == ["stuck", "shuffled"]
    assert find_matches(session.board) == set()
    assert is_solvable(session.board)


def test_pause_callable_receives_each_delay(load_board):
    delays = []
    session, _ = make_session(5, 5, pauses=CascadePauses(), pause=delays.append)
    load_board(session.board, FOUR_IN_A_ROW)

    result = session.propose_swap(1, 2, 0, 2)

    assert delays[0] == SWAP_PAUSE
    assert delays == [snap.delay for snap in result.snapshots]


def test_swap_request_event_runs_the_engine(load_board):
    session, bus = make_session(5, 5)
    load_board(session.board, FOUR_IN_A_ROW)
    bus.emit(EVENT_TILE_SWAP_REQUEST, src=(1, 2), dst=(0, 2))
    assert session.match_resolution_system.last_result.outcome is SwapOutcome.RESOLVED


# Swapping (4,2) up completes row 3; the drop then lines up four grapes in column 0.
FOLLOW_UP_RUN = [
    "obsw",
    "gsbo",
    "gwob",
    "aasa",
    "gbaw",
    "gows",
]


class SortingRandom(random.Random):
    """Shuffles by grouping kinds together so a shuffle always lines tiles up."""

    def shuffle(self, x):
        x.sort(key=lambda tile: tile.kind)


def test_only_the_player_pass_creates_a_special(load_board):
    session, bus = make_session(6, 4)
    session.level_state.refill = False
    load_board(session.board, FOLLOW_UP_RUN)
    events = record(bus, EVENT_CASCADE_STEP, EVENT_SPECIAL_CREATED)

    session.propose_swap(4, 2, 3, 2)

    steps = [payload for name, payload in events if name == EVENT_CASCADE_STEP]
    assert steps[0]["reason"] == "swap"
    assert steps[0]["positions"] == [(3, c) for c in range(4)]
    assert steps[1]["reason"] == "cascade"
    assert steps[1]["positions"] == [(r, 0) for r in range(2, 6)]
    created = [payload for name, payload in events if name == EVENT_SPECIAL_CREATED]
    assert len(created) == 1
    assert created[0]["position"] == (3, 2)
    assert created[0]["special"] is SpecialKind.LINE_H


def test_runaway_cascade_is_reported_with_its_own_stage(load_board):
    session, bus = make_session(6, 4)
    session.level_state.refill = False
    session.match_resolution_system.max_cascade_passes = 1
    load_board(session.board, FOLLOW_UP_RUN)
    failures = record(bus, EVENT_ENGINE_FAILURE)

    result = session.propose_swap(4, 2, 3, 2)

    assert result.outcome is SwapOutcome.FAILED
    assert isinstance(result.failure, CascadeOverflowError)
    assert failures[0][1]["stage"] == "cascade"
    assert session.game_state.mode is GameMode.BOARD_ERROR


def test_matches_made_by_a_shuffle_resolve_without_specials(load_board):
    session, bus = make_session(4, 4, rng=SortingRandom(0))
    session.level_state.refill = False
    load_board(session.board, [
        "abgo",
        "gosa",
        "sabg",
        "bgos",
    ])
    events = record(bus, EVENT_BOARD_SHUFFLED, EVENT_CASCADE_STEP, EVENT_SPECIAL_CREATED)

    result = session.match_resolution_system.stabilize()

    assert result.outcome is SwapOutcome.RESOLVED
    names = [name for name, _ in events]
    assert names[:2] == [EVENT_BOARD_SHUFFLED, EVENT_CASCADE_STEP]
    step = events[1][1]
    assert step["reason"] == "shuffle"
    assert step["positions"] == [(0, 0), (0, 1), (0, 2), (3, 1), (3, 2), (3, 3)]
    assert EVENT_SPECIAL_CREATED not in names
    assert find_matches(session.board) == set()
    assert is_solvable(session.board)


@pytest.mark.parametrize("coords", [
    ("a", 0, 0, 1),
    (0.0, 0, 0, 1),
    (0, 0, None, 1),
    (True, 0, 0, 0),
])
def test_non_integer_coordinates_are_malformed(load_board, coords):
    session, bus = make_session(5, 5)
    load_board(session.board, FOUR_IN_A_ROW)
    rejected = record(bus, EVENT_TILE_SWAP_REJECTED)
    before = session.board.snapshot()

    result = session.propose_swap(*coords)

    assert result.outcome is SwapOutcome.REJECTED
    assert result.reason == "malformed"
    assert rejected[0][1]["reason"] == "malformed"
    assert session.board.snapshot() == before
