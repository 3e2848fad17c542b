from __future__ import annotations

from esper import World

from fruitmatch.components.game_state import GameMode, GameState
from fruitmatch.components.level_state import LevelState
from fruitmatch.events.bus import EVENT_GAME_MODE_CHANGED, EventBus


def get_game_state(world: World) -> GameState | None:
    for _, state in world.get_component(GameState):
        return state
    return None


def get_level_state(world: World) -> LevelState | None:
    for _, state in world.get_component(LevelState):
        return state
    return None


def set_game_mode(
    world: World,
    event_bus: EventBus,
    mode: GameMode,
    *,
    next_action: str | None = None,
    message: str | None = None,
) -> None:
    """Update the global game mode and emit a change event when it differs."""

    state = get_game_state(world)
    if state is None:
        state = GameState(mode=mode)
        world.create_entity(state)
        previous_mode = None
    else:
        previous_mode = state.mode
    state.next_action = next_action
    state.message = message
    if previous_mode == mode:
        return
    state.mode = mode
    event_bus.emit(
        EVENT_GAME_MODE_CHANGED,
        previous_mode=previous_mode,
        new_mode=mode,
        next_action=next_action,
    )
