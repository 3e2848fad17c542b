from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class CascadePhase(Enum):
    """Phases the match-resolution engine moves through for one swap."""
    IDLE = auto()
    RESOLVING = auto()
    SETTLING = auto()
    STABLE_CHECK = auto()
    SOLVABILITY_CHECK = auto()
    SHUFFLE = auto()


@dataclass(slots=True)
class CascadeState:
    """Tracks the in-flight cascade shared across systems.

    ``busy`` is the input gate: while set, swap requests and tile clicks are
    rejected so only one cascade can run at a time.
    """

    phase: CascadePhase = CascadePhase.IDLE
    busy: bool = False
    depth: int = 0
    shuffles: int = 0
    action_source: Optional[str] = None
