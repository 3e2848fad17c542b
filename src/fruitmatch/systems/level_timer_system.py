from __future__ import annotations

from esper import World

from fruitmatch.components.level_state import LevelState
from fruitmatch.events.bus import (
    EventBus,
    EVENT_CASCADE_COMPLETE,
    EVENT_CASCADE_STEP,
    EVENT_ALL_LEVELS_COMPLETE,
    EVENT_ENGINE_FAILURE,
    EVENT_GAME_OVER,
    EVENT_LEVEL_COMPLETE,
    EVENT_LEVEL_EXPIRED,
    EVENT_LEVEL_STARTED,
    EVENT_TICK,
    EVENT_TIMER_CHANGED,
)
from fruitmatch.utils.game_state import get_level_state


class LevelTimerSystem:
    """Per-second countdown for the active level.

    Only reads and decrements LevelState; never touches the board. The
    countdown is suspended while a cascade runs so "time's up" cannot race
    a board that is being cleared.
    """

    def __init__(self, world: World, event_bus: EventBus):
        self.world = world
        self.event_bus = event_bus
        self.event_bus.subscribe(EVENT_TICK, self.on_tick)
        self.event_bus.subscribe(EVENT_CASCADE_STEP, self.on_cascade_step)
        self.event_bus.subscribe(EVENT_CASCADE_COMPLETE, self.on_cascade_complete)
        self.event_bus.subscribe(EVENT_ENGINE_FAILURE, self.on_engine_failure)
        self.event_bus.subscribe(EVENT_LEVEL_STARTED, self.on_level_started)
        for name in (EVENT_LEVEL_COMPLETE, EVENT_ALL_LEVELS_COMPLETE, EVENT_GAME_OVER):
            self.event_bus.subscribe(name, self.on_level_ended)

    def _state(self) -> LevelState | None:
        return get_level_state(self.world)

    def start(self, time_budget: int) -> None:
        state = self._state()
        if state is None:
            return
        state.time_budget = time_budget
        state.time_left = time_budget
        state.elapsed = 0.0
        state.timer_running = True
        state.timer_suspended = False
        self._emit_changed(state)

    def stop(self) -> None:
        state = self._state()
        if state is None or not state.timer_running:
            return
        state.timer_running = False
        state.elapsed = 0.0
        self._emit_changed(state)

    def on_tick(self, sender, **kwargs):
        dt = kwargs.get('dt') or 0.0
        state = self._state()
        if state is None or not self._counting(state):
            return
        state.elapsed += dt
        while state.elapsed >= 1.0 and self._counting(state):
            state.elapsed -= 1.0
            self.advance_second()

    def advance_second(self) -> bool:
        """Take one second off the clock; True when this second expired the level."""
        state = self._state()
        if state is None or not self._counting(state):
            return False
        state.time_left = max(0, state.time_left - 1)
        self._emit_changed(state)
        if state.time_left > 0:
            return False
        state.timer_running = False
        self.event_bus.emit(EVENT_LEVEL_EXPIRED, level_index=state.level_index)
        return True

    def on_cascade_step(self, sender, **kwargs):
        state = self._state()
        if state is not None:
            state.timer_suspended = True

    def on_cascade_complete(self, sender, **kwargs):
        state = self._state()
        if state is not None:
            state.timer_suspended = False

    def on_level_started(self, sender, **kwargs):
        self.start(int(kwargs.get("time_budget") or 0))

    def on_level_ended(self, sender, **kwargs):
        self.stop()

    def on_engine_failure(self, sender, **kwargs):
        self.stop()

    @staticmethod
    def _counting(state: LevelState) -> bool:
        return state.timer_running and not state.timer_suspended

    def _emit_changed(self, state: LevelState) -> None:
        self.event_bus.emit(
            EVENT_TIMER_CHANGED,
            level_index=state.level_index,
            time_left=state.time_left,
            running=state.timer_running,
        )
