class EngineFailure(RuntimeError):
    """Bounded retry loop exhausted; the level must be retried or reloaded."""

    stage = "engine"
    recovery = "retry_level"

    def __init__(self, message: str, *, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class BoardGenerationError(EngineFailure):
    """No match-free, solvable layout found within the generation ceiling."""

    stage = "generation"


class ShuffleError(EngineFailure):
    """The board stayed stuck (or never settled) within the shuffle ceiling."""

    stage = "shuffle"


class CascadeOverflowError(EngineFailure):
    """Removal and refill kept producing matches past the pass ceiling."""

    stage = "cascade"
