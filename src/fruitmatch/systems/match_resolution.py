from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Set, Tuple

from esper import World

from fruitmatch.components.board import Board, GridSnapshot
from fruitmatch.components.cascade_state import CascadePhase
from fruitmatch.components.game_state import GameMode
from fruitmatch.constants import (
    CLEAR_PAUSE,
    MAX_CASCADE_PASSES,
    MAX_SHUFFLE_ATTEMPTS,
    REFILL_PAUSE,
    SETTLE_PAUSE,
    SHUFFLE_PAUSE,
    SWAP_PAUSE,
)
from fruitmatch.errors import CascadeOverflowError, EngineFailure, ShuffleError
from fruitmatch.events.bus import (
    EventBus,
    EVENT_BOARD_SHUFFLED,
    EVENT_BOARD_SNAPSHOT,
    EVENT_BOARD_STUCK,
    EVENT_CASCADE_COMPLETE,
    EVENT_CASCADE_STEP,
    EVENT_ENGINE_FAILURE,
    EVENT_GRAVITY_APPLIED,
    EVENT_MATCH_CLEARED,
    EVENT_MATCH_FOUND,
    EVENT_REFILL_COMPLETED,
    EVENT_SPECIAL_ACTIVATED,
    EVENT_SPECIAL_CREATED,
    EVENT_TILE_SWAP_INVALID,
    EVENT_TILE_SWAP_REJECTED,
    EVENT_TILE_SWAP_REQUEST,
    EVENT_TILE_SWAP_VALID,
)
from fruitmatch.systems.board_ops import (
    apply_gravity,
    clear_positions,
    find_match_groups,
    find_matches,
    get_board,
    get_tile_registry,
    is_adjacent,
    is_solvable,
    refill_absent,
    shuffle_board,
)
from fruitmatch.systems.cascade_state_utils import get_or_create_cascade_state
from fruitmatch.systems.specials import (
    SwapOrigin,
    combo_cells,
    decide_special,
    expand_with_specials,
    resolve_origin,
)
from fruitmatch.utils.game_state import get_game_state, get_level_state

Position = Tuple[int, int]


class SwapOutcome(Enum):
    REJECTED = "rejected"
    NO_MATCH = "no_match"
    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CascadePauses:
    """Delay hints (seconds) attached to snapshots for the renderer."""
    swap: float = SWAP_PAUSE
    clear: float = CLEAR_PAUSE
    settle: float = SETTLE_PAUSE
    refill: float = REFILL_PAUSE
    shuffle: float = SHUFFLE_PAUSE

    @classmethod
    def none(cls) -> "CascadePauses":
        return cls(swap=0.0, clear=0.0, settle=0.0, refill=0.0, shuffle=0.0)


@dataclass(frozen=True, slots=True)
class BoardSnapshot:
    label: str
    cells: GridSnapshot
    delay: float = 0.0
    depth: int = 0


@dataclass(slots=True)
class SwapResult:
    outcome: SwapOutcome
    snapshots: List[BoardSnapshot] = field(default_factory=list)
    reason: Optional[str] = None
    failure: Optional[EngineFailure] = None

    @property
    def final(self) -> Optional[BoardSnapshot]:
        return self.snapshots[-1] if self.snapshots else None


class MatchResolutionSystem:
    """Runs a player swap through removal, gravity, refill and rematch until the board is stable.

    The whole cascade runs synchronously inside ``propose_swap``; each
    visible intermediate state is emitted as a ``board_snapshot`` carrying a
    presentation delay. An optional ``pause`` callable is invoked with that
    delay after every snapshot for callers that want to block.
    """

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        *,
        pauses: CascadePauses | None = None,
        pause: Callable[[float], None] | None = None,
        max_shuffle_attempts: int = MAX_SHUFFLE_ATTEMPTS,
        max_cascade_passes: int = MAX_CASCADE_PASSES,
    ):
        self.world = world
        self.event_bus = event_bus
        self.pauses = pauses or CascadePauses()
        self._pause = pause
        self.max_shuffle_attempts = max_shuffle_attempts
        self.max_cascade_passes = max_cascade_passes
        self._snapshots: List[BoardSnapshot] = []
        self.last_result: SwapResult | None = None
        self.event_bus.subscribe(EVENT_TILE_SWAP_REQUEST, self.on_swap_request)

    @property
    def _rng(self) -> random.Random:
        rng = getattr(self.world, "random", None)
        return rng if isinstance(rng, random.Random) else random.Random()

    def on_swap_request(self, sender, **kwargs):
        src = kwargs.get('src')
        dst = kwargs.get('dst')
        if not src or not dst:
            return
        self.last_result = self.propose_swap(src, dst)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def propose_swap(self, src: Position, dst: Position) -> SwapResult:
        board = get_board(self.world)
        reason = self._rejection_reason(board, src, dst)
        if reason is not None:
            self.event_bus.emit(EVENT_TILE_SWAP_REJECTED, src=src, dst=dst, reason=reason)
            return SwapResult(SwapOutcome.REJECTED, reason=reason)

        state = get_or_create_cascade_state(self.world)
        state.busy = True
        state.depth = 0
        state.shuffles = 0
        state.action_source = "swap"
        self._snapshots = []
        try:
            src_tile = board.get(*src)
            dst_tile = board.get(*dst)
            if src_tile.is_special and dst_tile.is_special:
                # Both specials detonate where they stand; the swap itself is not committed.
                self.event_bus.emit(EVENT_TILE_SWAP_VALID, src=src, dst=dst, combo=True)
                self._run_cascade(board, combo_cells(board, src, dst), None, reason="combo")
            else:
                board.swap(src[0], src[1], dst[0], dst[1])
                self._snapshot(board, "swap", self.pauses.swap)
                matches = find_matches(board)
                if not matches:
                    board.swap(src[0], src[1], dst[0], dst[1])
                    self._snapshot(board, "swap_back", self.pauses.swap)
                    self._finish(state)
                    self.event_bus.emit(EVENT_TILE_SWAP_INVALID, src=src, dst=dst)
                    return SwapResult(SwapOutcome.NO_MATCH, snapshots=list(self._snapshots))
                self.event_bus.emit(EVENT_TILE_SWAP_VALID, src=src, dst=dst, combo=False)
                self._run_cascade(board, matches, resolve_origin(matches, src, dst), reason="swap")
            self._settle(board)
        except EngineFailure as exc:
            return self._fail(state, exc)
        depth, shuffles = state.depth, state.shuffles
        self._finish(state)
        self.event_bus.emit(EVENT_CASCADE_COMPLETE, depth=depth, shuffles=shuffles)
        return SwapResult(SwapOutcome.RESOLVED, snapshots=list(self._snapshots))

    def stabilize(self) -> SwapResult:
        """Resolve whatever matches are on the board and guarantee a move, without a player origin."""
        board = get_board(self.world)
        state = get_or_create_cascade_state(self.world)
        if state.busy:
            return SwapResult(SwapOutcome.REJECTED, reason="busy")
        state.busy = True
        state.depth = 0
        state.shuffles = 0
        state.action_source = "stabilize"
        self._snapshots = []
        try:
            matches = find_matches(board)
            if matches:
                self._run_cascade(board, matches, None, reason="board_changed")
            self._settle(board)
        except EngineFailure as exc:
            return self._fail(state, exc)
        depth, shuffles = state.depth, state.shuffles
        self._finish(state)
        self.event_bus.emit(EVENT_CASCADE_COMPLETE, depth=depth, shuffles=shuffles)
        return SwapResult(SwapOutcome.RESOLVED, snapshots=list(self._snapshots))

    # ------------------------------------------------------------------
    # Cascade phases
    # ------------------------------------------------------------------

    def _rejection_reason(self, board: Board, src: Position, dst: Position) -> str | None:
        state = get_or_create_cascade_state(self.world)
        if state.busy:
            return "busy"
        game_state = get_game_state(self.world)
        if game_state is not None and game_state.mode is not GameMode.PLAYING:
            return "inactive"
        try:
            (r1, c1), (r2, c2) = src, dst
        except (TypeError, ValueError):
            return "malformed"
        if not all(isinstance(value, int) and not isinstance(value, bool) for value in (r1, c1, r2, c2)):
            return "malformed"
        if not (board.in_bounds(r1, c1) and board.in_bounds(r2, c2)):
            return "out_of_bounds"
        if not is_adjacent(src, dst):
            return "not_adjacent"
        if board.is_blocked(r1, c1) or board.is_blocked(r2, c2):
            return "blocked"
        if board.get(r1, c1) is None or board.get(r2, c2) is None:
            return "empty_cell"
        return None

    def _run_cascade(
        self,
        board: Board,
        pending: Set[Position],
        origin: Optional[SwapOrigin],
        *,
        reason: str,
    ) -> None:
        state = get_or_create_cascade_state(self.world)
        passes = 0
        while pending:
            passes += 1
            if passes > self.max_cascade_passes:
                raise CascadeOverflowError(
                    f"Cascade did not settle after {self.max_cascade_passes} passes",
                    attempts=self.max_cascade_passes,
                )
            state.phase = CascadePhase.RESOLVING
            state.depth += 1
            positions = sorted(pending)
            self.event_bus.emit(EVENT_CASCADE_STEP, depth=state.depth, positions=positions, reason=reason)
            self.event_bus.emit(
                EVENT_MATCH_FOUND,
                positions=positions,
                size=len(positions),
                groups=find_match_groups(board, pending & find_matches(board)),
                reason=reason,
            )
            # Only the first pass of a player swap may create a special.
            spawn = decide_special(board, pending, origin)
            origin = None

            expanded, activations = expand_with_specials(board, pending)
            for activation in activations:
                self.event_bus.emit(
                    EVENT_SPECIAL_ACTIVATED,
                    position=activation.position,
                    special=activation.special,
                    cells=sorted(activation.cells),
                )
            cleared = sorted(expanded)
            kinds = clear_positions(board, cleared)
            self.event_bus.emit(EVENT_MATCH_CLEARED, positions=cleared, kinds=kinds)
            self._snapshot(board, "cleared", self.pauses.clear)

            if spawn is not None:
                board.set(spawn.position[0], spawn.position[1], spawn.make_tile())
                self.event_bus.emit(
                    EVENT_SPECIAL_CREATED,
                    position=spawn.position,
                    special=spawn.special,
                    kind=spawn.kind,
                )

            state.phase = CascadePhase.SETTLING
            moves = apply_gravity(board)
            columns = {move.source[1] for move in moves}
            self.event_bus.emit(EVENT_GRAVITY_APPLIED, moves=moves, cascades=len(columns))
            self._snapshot(board, "settled", self.pauses.settle)
            if self._refill_enabled():
                new_tiles = refill_absent(board, get_tile_registry(self.world).spawnable_types(), self._rng)
                if new_tiles:
                    self.event_bus.emit(EVENT_REFILL_COMPLETED, new_tiles=new_tiles)
                    self._snapshot(board, "refilled", self.pauses.refill)

            state.phase = CascadePhase.STABLE_CHECK
            pending = find_matches(board)
            reason = "cascade"

    def _settle(self, board: Board) -> None:
        """Shuffle until the board is empty or has a move, resolving any matches a shuffle creates."""
        state = get_or_create_cascade_state(self.world)
        attempts = 0
        while True:
            state.phase = CascadePhase.SOLVABILITY_CHECK
            if board.is_empty() or is_solvable(board):
                return
            attempts += 1
            if attempts > self.max_shuffle_attempts:
                raise ShuffleError(
                    f"Cannot find a solvable move after {self.max_shuffle_attempts} shuffles",
                    attempts=self.max_shuffle_attempts,
                )
            state.phase = CascadePhase.SHUFFLE
            state.shuffles += 1
            self.event_bus.emit(EVENT_BOARD_STUCK, attempt=attempts, message="No more moves, shuffling...")
            self._snapshot(board, "stuck", self.pauses.shuffle)
            positions = shuffle_board(board, self._rng)
            self.event_bus.emit(EVENT_BOARD_SHUFFLED, attempt=attempts, positions=positions)
            self._snapshot(board, "shuffled", self.pauses.swap)
            matches = find_matches(board)
            if matches:
                self._run_cascade(board, matches, None, reason="shuffle")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _snapshot(self, board: Board, label: str, delay: float) -> None:
        state = get_or_create_cascade_state(self.world)
        snapshot = BoardSnapshot(label=label, cells=board.snapshot(), delay=delay, depth=state.depth)
        self._snapshots.append(snapshot)
        self.event_bus.emit(EVENT_BOARD_SNAPSHOT, snapshot=snapshot)
        if self._pause is not None and delay > 0:
            self._pause(delay)

    def _finish(self, state) -> None:
        state.phase = CascadePhase.IDLE
        state.busy = False
        state.action_source = None

    def _fail(self, state, exc: EngineFailure) -> SwapResult:
        self._finish(state)
        self.event_bus.emit(
            EVENT_ENGINE_FAILURE,
            stage=exc.stage,
            message=str(exc),
            recovery=exc.recovery,
            level_index=self._level_index(),
        )
        return SwapResult(SwapOutcome.FAILED, snapshots=list(self._snapshots), failure=exc)

    def _refill_enabled(self) -> bool:
        level = get_level_state(self.world)
        return True if level is None else level.refill

    def _level_index(self) -> int | None:
        level = get_level_state(self.world)
        return level.level_index if level is not None else None
