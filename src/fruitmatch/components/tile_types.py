from dataclasses import dataclass, field
from typing import Dict, Iterable, Tuple, List

Style = Tuple[str, Tuple[int, int, int]]


@dataclass(slots=True)
class TileTypes:
    """Canonical fruit kind definitions stored on a single entity.

    Maps each kind to the glyph and background colour the renderer uses and
    keeps the ordered list of kinds that refill and generation may spawn.
    """
    types: Dict[str, Style]
    spawnable: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.spawnable:
            self.set_spawnable(self.spawnable)
        else:
            self.spawnable = list(self.types.keys())

    def style_for(self, type_name: str) -> Style:
        return self.types[type_name]

    def spawnable_types(self) -> List[str]:
        return list(self.spawnable)

    def set_spawnable(self, type_names: Iterable[str]) -> None:
        # Preserve order while filtering unknown types.
        seen: set[str] = set()
        filtered: List[str] = []
        for name in type_names:
            if name in self.types and name not in seen:
                filtered.append(name)
                seen.add(name)
        self.spawnable = filtered or list(self.types.keys())
