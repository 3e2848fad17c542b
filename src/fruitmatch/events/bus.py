from blinker import Signal
from typing import Dict

class EventBus:
    """Simple event bus leveraging blinker Signal objects."""
    def __init__(self):
        self._signals: Dict[str, Signal] = {}

    def subscribe(self, name: str, fn):
        sig = self._signals.setdefault(name, Signal(name))
        # Use weak=False to retain strong reference to bound methods so systems not kept in a variable still receive events.
        sig.connect(fn, weak=False)

    def unsubscribe(self, name: str, fn):
        sig = self._signals.get(name)
        if sig:
            sig.disconnect(fn)

    def emit(self, name: str, **payload):
        sig = self._signals.get(name)
        if sig:
            sig.send(self, **payload)


# ============================================================================
# SYSTEM & TIMING
# ============================================================================
EVENT_TICK = "tick"                                # payload: dt=float
EVENT_TIMER_CHANGED = "timer_changed"              # payload: level_index=int, time_left=int, running=bool
EVENT_LEVEL_EXPIRED = "level_expired"              # payload: level_index=int


# ============================================================================
# INPUT & INTERACTION
# ============================================================================
EVENT_MOUSE_PRESS = "mouse_press"          # payload: x, y, button
EVENT_TILE_CLICK = "tile_click"            # payload: row, col


# ============================================================================
# TILE & BOARD MECHANICS
# ============================================================================
EVENT_TILE_SELECTED = "tile_selected"              # payload: row, col
EVENT_TILE_DESELECTED = "tile_deselected"          # payload: reason=str
EVENT_TILE_SWAP_REQUEST = "tile_swap_request"      # payload: src=(r,c), dst=(r,c)
EVENT_TILE_SWAP_REJECTED = "tile_swap_rejected"    # payload: src=(r,c), dst=(r,c), reason=str
EVENT_TILE_SWAP_VALID = "tile_swap_valid"          # payload: src=(r,c), dst=(r,c), combo=bool
EVENT_TILE_SWAP_INVALID = "tile_swap_invalid"      # payload: src=(r,c), dst=(r,c)
EVENT_MATCH_FOUND = "match_found"                  # payload: positions=[(r,c),...], size=int, groups=list, reason=str
EVENT_SPECIAL_ACTIVATED = "special_activated"      # payload: position=(r,c), special=SpecialKind, cells=[(r,c),...]
EVENT_MATCH_CLEARED = "match_cleared"              # payload: positions=[(r,c),...], kinds=[(r,c,kind),...]
EVENT_SPECIAL_CREATED = "special_created"          # payload: position=(r,c), special=SpecialKind, kind=str
EVENT_GRAVITY_APPLIED = "gravity_applied"          # payload: moves=[GravityMove,...], cascades=int
EVENT_REFILL_COMPLETED = "refill_completed"        # payload: new_tiles=[(r,c),...]
EVENT_CASCADE_STEP = "cascade_step"                # payload: depth=int, positions=[(r,c),...]
EVENT_CASCADE_COMPLETE = "cascade_complete"        # payload: depth=int, shuffles=int
EVENT_BOARD_SNAPSHOT = "board_snapshot"            # payload: snapshot=BoardSnapshot
EVENT_BOARD_STUCK = "board_stuck"                  # payload: attempt=int, message=str
EVENT_BOARD_SHUFFLED = "board_shuffled"            # payload: attempt=int, positions=[(r,c),...]


# ============================================================================
# GAME FLOW & STATE
# ============================================================================
EVENT_GAME_MODE_CHANGED = "game_mode_changed"          # payload: previous_mode=GameMode|None, new_mode=GameMode
EVENT_LEVEL_STARTED = "level_started"                  # payload: level_index=int, time_budget=int, attempts=int
EVENT_LEVEL_COMPLETE = "level_complete"                # payload: level_index=int, next_action=str, message=str
EVENT_ALL_LEVELS_COMPLETE = "all_levels_complete"      # payload: level_index=int, next_action=str, message=str
EVENT_GAME_OVER = "game_over"                          # payload: level_index=int, next_action=str, message=str
EVENT_ENGINE_FAILURE = "engine_failure"                # payload: stage=str, message=str, recovery=str, level_index=int
EVENT_CHOICE_SELECTED = "choice_selected"              # payload: action=str
