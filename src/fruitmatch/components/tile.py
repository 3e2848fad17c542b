from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SpecialKind(Enum):
    """Bonus behaviour a tile carries beyond plain removal."""
    BOMB = "bomb"
    LINE_H = "line-h"
    LINE_V = "line-v"
    COLOR = "color"


@dataclass(slots=True)
class Tile:
    """Contents of an occupied board cell.

    An absent cell is represented by ``None`` on the Board, never by a Tile.
    """
    kind: str
    special: Optional[SpecialKind] = None

    @property
    def is_special(self) -> bool:
        return self.special is not None
