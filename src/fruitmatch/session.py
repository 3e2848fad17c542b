"""Headless entry point wiring the world, the event bus and the engine systems."""
from __future__ import annotations

import random
from typing import Callable, Sequence

from fruitmatch.components.board import Board
from fruitmatch.components.level_config import DEFAULT_LEVELS, LevelConfig
from fruitmatch.constants import GRID_COLS, GRID_ROWS, MAX_GENERATION_ATTEMPTS, MAX_SHUFFLE_ATTEMPTS
from fruitmatch.events.bus import EventBus
from fruitmatch.systems.board import BoardSystem
from fruitmatch.systems.game_flow_system import GameFlowSystem, LevelStartResult
from fruitmatch.systems.level_timer_system import LevelTimerSystem
from fruitmatch.systems.match_resolution import (
    CascadePauses,
    MatchResolutionSystem,
    SwapResult,
)
from fruitmatch.utils.game_state import get_game_state, get_level_state
from fruitmatch.world import create_world


class GameSession:
    """One player's game: levels, timer and the match-resolution engine behind a small API."""

    def __init__(
        self,
        *,
        rows: int = GRID_ROWS,
        cols: int = GRID_COLS,
        levels: Sequence[LevelConfig] = DEFAULT_LEVELS,
        kinds=None,
        rng: random.Random | None = None,
        event_bus: EventBus | None = None,
        pauses: CascadePauses | None = None,
        pause: Callable[[float], None] | None = None,
        max_generation_attempts: int = MAX_GENERATION_ATTEMPTS,
        max_shuffle_attempts: int = MAX_SHUFFLE_ATTEMPTS,
    ):
        self.event_bus = event_bus or EventBus()
        self.world = create_world(self.event_bus, kinds=kinds, total_levels=len(levels), rng=rng)
        self.board_system = BoardSystem(self.world, self.event_bus, rows=rows, cols=cols)
        self.match_resolution_system = MatchResolutionSystem(
            self.world,
            self.event_bus,
            pauses=pauses,
            pause=pause,
            max_shuffle_attempts=max_shuffle_attempts,
        )
        self.level_timer_system = LevelTimerSystem(self.world, self.event_bus)
        self.game_flow_system = GameFlowSystem(
            self.world,
            self.event_bus,
            levels=levels,
            max_generation_attempts=max_generation_attempts,
        )

    @property
    def board(self) -> Board:
        return self.board_system.board

    @property
    def level_state(self):
        return get_level_state(self.world)

    @property
    def game_state(self):
        return get_game_state(self.world)

    def start_level(self, level_index: int, config: LevelConfig | None = None) -> LevelStartResult:
        return self.game_flow_system.start_level(level_index, config)

    def propose_swap(self, r1: int, c1: int, r2: int, c2: int) -> SwapResult:
        return self.match_resolution_system.propose_swap((r1, c1), (r2, c2))

    def tick(self) -> bool:
        """One second of play time elapsed; True when the level has just expired."""
        return self.level_timer_system.advance_second()

    def is_level_complete(self) -> bool:
        return self.board.is_empty()

    def choose(self, action: str) -> LevelStartResult | None:
        return self.game_flow_system.choose(action)

