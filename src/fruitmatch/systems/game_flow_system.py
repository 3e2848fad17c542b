"""High-level coordinator for level start, completion and game over."""
from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence

from esper import World

from fruitmatch.components.game_state import GameMode
from fruitmatch.components.level_config import DEFAULT_LEVELS, LevelConfig, level_config_for
from fruitmatch.components.level_state import LevelState
from fruitmatch.constants import MAX_GENERATION_ATTEMPTS
from fruitmatch.errors import BoardGenerationError
from fruitmatch.events.bus import (
    EventBus,
    EVENT_ALL_LEVELS_COMPLETE,
    EVENT_BOARD_SNAPSHOT,
    EVENT_CASCADE_COMPLETE,
    EVENT_CHOICE_SELECTED,
    EVENT_ENGINE_FAILURE,
    EVENT_GAME_OVER,
    EVENT_LEVEL_COMPLETE,
    EVENT_LEVEL_EXPIRED,
    EVENT_LEVEL_STARTED,
)
from fruitmatch.systems.board_ops import generate_board, get_board, get_tile_registry
from fruitmatch.systems.cascade_state_utils import get_or_create_cascade_state
from fruitmatch.systems.match_resolution import BoardSnapshot
from fruitmatch.utils.game_state import get_game_state, get_level_state, set_game_mode

ACTION_ADVANCE = "advance"
ACTION_RESTART = "restart"
ACTION_RETRY_LEVEL = "retry_level"


@dataclass(slots=True)
class LevelStartResult:
    ok: bool
    level_index: int
    time_budget: int
    attempts: int = 0
    failure: Optional[BoardGenerationError] = None


class GameFlowSystem:
    """Starts levels and turns cascade completion or timer expiry into level outcomes."""

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        *,
        levels: Sequence[LevelConfig] = DEFAULT_LEVELS,
        max_generation_attempts: int = MAX_GENERATION_ATTEMPTS,
    ) -> None:
        if not levels:
            raise ValueError("At least one level is required")
        self.world = world
        self.event_bus = event_bus
        self.levels = tuple(levels)
        self.max_generation_attempts = max_generation_attempts
        self.event_bus.subscribe(EVENT_CASCADE_COMPLETE, self._on_cascade_complete)
        self.event_bus.subscribe(EVENT_LEVEL_EXPIRED, self._on_level_expired)
        self.event_bus.subscribe(EVENT_ENGINE_FAILURE, self._on_engine_failure)
        self.event_bus.subscribe(EVENT_CHOICE_SELECTED, self._on_choice_selected)

    # ------------------------------------------------------------------
    # Level lifecycle
    # ------------------------------------------------------------------

    def start_level(self, level_index: int, config: LevelConfig | None = None) -> LevelStartResult:
        config = config or level_config_for(level_index, self.levels)
        board = get_board(self.world)
        for row, col in config.blocked_cells:
            if not board.in_bounds(row, col):
                raise ValueError(f"Blocked cell ({row}, {col}) outside {board.rows}x{board.cols} board")

        # Cancel the previous level's clock and any cascade bookkeeping before touching the board.
        state = self._level_state()
        state.timer_running = False
        state.timer_suspended = False
        state.elapsed = 0.0
        state.level_index = level_index
        state.total_levels = max(len(self.levels), level_index)
        state.time_budget = config.time_budget_seconds
        state.time_left = config.time_budget_seconds
        state.refill = config.refill
        cascade = get_or_create_cascade_state(self.world)
        cascade.busy = True
        cascade.depth = 0
        cascade.shuffles = 0
        cascade.action_source = "level_start"

        board.blocked = frozenset(config.blocked_cells)
        board.cells = [[None] * board.cols for _ in range(board.rows)]
        try:
            attempts = generate_board(
                board,
                get_tile_registry(self.world).spawnable_types(),
                self._rng(),
                max_attempts=self.max_generation_attempts,
            )
        except BoardGenerationError as exc:
            cascade.busy = False
            cascade.action_source = None
            self.event_bus.emit(
                EVENT_ENGINE_FAILURE,
                stage=exc.stage,
                message=str(exc),
                recovery=exc.recovery,
                level_index=level_index,
            )
            return LevelStartResult(False, level_index, config.time_budget_seconds, exc.attempts, exc)

        cascade.busy = False
        cascade.action_source = None
        set_game_mode(self.world, self.event_bus, GameMode.PLAYING)
        self.event_bus.emit(
            EVENT_BOARD_SNAPSHOT,
            snapshot=BoardSnapshot(label="level_start", cells=board.snapshot()),
        )
        self.event_bus.emit(
            EVENT_LEVEL_STARTED,
            level_index=level_index,
            time_budget=config.time_budget_seconds,
            attempts=attempts,
        )
        return LevelStartResult(True, level_index, config.time_budget_seconds, attempts)

    def check_game_state(self) -> GameMode | None:
        """Decide whether the level is won or lost; returns the new mode or None while still playing."""
        game_state = get_game_state(self.world)
        if game_state is not None and game_state.mode is not GameMode.PLAYING:
            return None
        state = self._level_state()
        board = get_board(self.world)
        if board.is_empty():
            if state.is_last_level:
                message = "Congratulations, every level cleared!"
                set_game_mode(self.world, self.event_bus, GameMode.ALL_LEVELS_COMPLETE,
                              next_action=ACTION_RESTART, message=message)
                self.event_bus.emit(EVENT_ALL_LEVELS_COMPLETE, level_index=state.level_index,
                                    next_action=ACTION_RESTART, message=message)
                return GameMode.ALL_LEVELS_COMPLETE
            message = f"Level {state.level_index} cleared!"
            set_game_mode(self.world, self.event_bus, GameMode.LEVEL_COMPLETE,
                          next_action=ACTION_ADVANCE, message=message)
            self.event_bus.emit(EVENT_LEVEL_COMPLETE, level_index=state.level_index,
                                next_action=ACTION_ADVANCE, message=message)
            return GameMode.LEVEL_COMPLETE
        if state.expired:
            message = "Game over!"
            set_game_mode(self.world, self.event_bus, GameMode.GAME_OVER,
                          next_action=ACTION_RETRY_LEVEL, message=message)
            self.event_bus.emit(EVENT_GAME_OVER, level_index=state.level_index,
                                next_action=ACTION_RETRY_LEVEL, message=message)
            return GameMode.GAME_OVER
        return None

    def choose(self, action: str) -> LevelStartResult | None:
        """Apply the next action offered by the latest terminal notification."""
        game_state = get_game_state(self.world)
        if game_state is None or game_state.next_action != action:
            return None
        state = self._level_state()
        if action == ACTION_ADVANCE:
            return self.start_level(state.level_index + 1)
        if action == ACTION_RESTART:
            return self.start_level(self.levels[0].level_index)
        if action == ACTION_RETRY_LEVEL:
            return self.start_level(state.level_index)
        return None

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_cascade_complete(self, sender, **payload) -> None:
        self.check_game_state()

    def _on_level_expired(self, sender, **payload) -> None:
        self.check_game_state()

    def _on_engine_failure(self, sender, **payload) -> None:
        message = payload.get("message") or "Engine failure"
        set_game_mode(self.world, self.event_bus, GameMode.BOARD_ERROR,
                      next_action=payload.get("recovery") or ACTION_RETRY_LEVEL, message=message)

    def _on_choice_selected(self, sender, **payload) -> None:
        action = payload.get("action")
        if action:
            self.choose(action)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _level_state(self) -> LevelState:
        state = get_level_state(self.world)
        if state is None:
            state = LevelState(total_levels=len(self.levels))
            self.world.create_entity(state)
        return state

    def _rng(self) -> random.Random:
        rng = getattr(self.world, "random", None)
        return rng if isinstance(rng, random.Random) else random.Random()
