from dataclasses import dataclass


@dataclass(slots=True)
class LevelState:
    """Current level index and the countdown for it."""

    level_index: int = 1
    total_levels: int = 1
    time_budget: int = 0
    time_left: int = 0
    timer_running: bool = False
    timer_suspended: bool = False
    refill: bool = True
    # Fraction of a second accumulated from frame ticks.
    elapsed: float = 0.0

    @property
    def is_last_level(self) -> bool:
        return self.level_index >= self.total_levels

    @property
    def expired(self) -> bool:
        return self.time_left <= 0
