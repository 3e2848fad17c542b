"""Game state resource describing the active high-level mode."""
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class GameMode(Enum):
    """High-level modes that decide whether the board accepts input."""
    PLAYING = auto()
    LEVEL_COMPLETE = auto()
    ALL_LEVELS_COMPLETE = auto()
    GAME_OVER = auto()
    BOARD_ERROR = auto()


@dataclass
class GameState:
    """Singleton component storing the currently active game mode."""
    mode: GameMode = GameMode.PLAYING
    # Action offered to the player by the latest terminal notification.
    next_action: Optional[str] = None
    message: Optional[str] = None
