import random

from esper import World

from fruitmatch.components.cascade_state import CascadeState
from fruitmatch.components.game_state import GameState, GameMode
from fruitmatch.components.level_state import LevelState
from fruitmatch.components.tile_types import TileTypes
from fruitmatch.constants import FRUIT_KINDS, COLOR_PLACEHOLDER_KIND, COLOR_PLACEHOLDER_STYLE
from fruitmatch.events.bus import EventBus


def create_world(
    event_bus: EventBus,
    initial_mode: GameMode = GameMode.PLAYING,
    *,
    kinds=None,
    total_levels: int = 10,
    rng: random.Random | None = None,
) -> World:
    """Create the world with its singleton resources; systems add the board."""
    world = World()
    setattr(world, "random", rng or random.Random())

    # Register the global game, level and cascade state resources.
    world.create_entity(GameState(mode=initial_mode))
    world.create_entity(LevelState(total_levels=total_levels))
    world.create_entity(CascadeState())

    types = dict(kinds) if kinds is not None else dict(FRUIT_KINDS)
    if len(types) < 4:
        raise ValueError("At least four tile kinds are needed for a solvable board")
    spawnable = list(types.keys())
    # The colour special's placeholder is displayable but never spawned.
    types[COLOR_PLACEHOLDER_KIND] = COLOR_PLACEHOLDER_STYLE
    world.create_entity(TileTypes(types=types, spawnable=spawnable))
    return world
