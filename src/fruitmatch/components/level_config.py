from dataclasses import dataclass, field
from typing import FrozenSet, Tuple

Position = Tuple[int, int]


@dataclass(frozen=True, slots=True)
class LevelConfig:
    """Static definition of one level.

    blocked_cells stay permanently absent. With refill disabled, cleared
    cells are left empty so the board can be cleared outright.
    """
    level_index: int
    time_budget_seconds: int
    blocked_cells: FrozenSet[Position] = field(default_factory=frozenset)
    refill: bool = True

    def __post_init__(self) -> None:
        if self.level_index < 1:
            raise ValueError(f"level_index must start at 1, got {self.level_index}")
        if self.time_budget_seconds <= 0:
            raise ValueError(f"time_budget_seconds must be positive, got {self.time_budget_seconds}")
        object.__setattr__(self, "blocked_cells", frozenset(self.blocked_cells))


DEFAULT_LEVELS: Tuple[LevelConfig, ...] = tuple(
    LevelConfig(level_index=index, time_budget_seconds=160 - 10 * index)
    for index in range(1, 11)
)


def level_config_for(level_index: int, levels: Tuple[LevelConfig, ...] = DEFAULT_LEVELS) -> LevelConfig:
    for config in levels:
        if config.level_index == level_index:
            return config
    raise ValueError(f"Unknown level {level_index}")
