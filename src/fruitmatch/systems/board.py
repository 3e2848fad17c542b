from typing import Optional, Tuple
from esper import World
from fruitmatch.events.bus import (EventBus, EVENT_TILE_CLICK, EVENT_TILE_SELECTED, EVENT_TILE_DESELECTED,
                                   EVENT_TILE_SWAP_REQUEST, EVENT_MOUSE_PRESS, EVENT_LEVEL_STARTED)
from fruitmatch.components.board import Board
from fruitmatch.components.game_state import GameMode
from fruitmatch.systems.board_ops import is_adjacent
from fruitmatch.systems.cascade_state_utils import get_or_create_cascade_state
from fruitmatch.utils.game_state import get_game_state


class BoardSystem:
    """Owns the board entity and turns tile clicks into swap requests."""

    def __init__(self, world: World, event_bus: EventBus, rows: int = 9, cols: int = 9):
        self.world = world
        self.event_bus = event_bus
        # Create a single board entity with Board component
        self.board_entity = self.world.create_entity(Board.create(rows, cols))
        self.selected: Optional[Tuple[int, int]] = None
        self.event_bus.subscribe(EVENT_TILE_CLICK, self.on_tile_click)
        self.event_bus.subscribe(EVENT_MOUSE_PRESS, self.on_mouse_press)
        self.event_bus.subscribe(EVENT_LEVEL_STARTED, self.on_level_started)

    @property
    def board(self) -> Board:
        return self.world.component_for_entity(self.board_entity, Board)

    def _input_locked(self) -> bool:
        if get_or_create_cascade_state(self.world).busy:
            return True
        state = get_game_state(self.world)
        return state is not None and state.mode is not GameMode.PLAYING

    def on_tile_click(self, sender, **kwargs):
        row = kwargs.get('row')
        col = kwargs.get('col')
        if row is None or col is None:
            return
        if self._input_locked() or not self.board.in_bounds(row, col):
            return
        if self.board.get(row, col) is None:
            return
        if self.selected is None:
            self.selected = (row, col)
            self.event_bus.emit(EVENT_TILE_SELECTED, row=row, col=col)
        elif self.selected == (row, col):
            self._clear_selection('same_tile')
        elif is_adjacent(self.selected, (row, col)):
            src = self.selected
            dst = (row, col)
            self.selected = None
            self.event_bus.emit(EVENT_TILE_SWAP_REQUEST, src=src, dst=dst)
        else:
            # Change selection to new tile
            self.selected = (row, col)
            self.event_bus.emit(EVENT_TILE_SELECTED, row=row, col=col)

    def on_mouse_press(self, sender, **kwargs):
        # Right-click clears the current selection. Arcade uses 4 for the right mouse button.
        if kwargs.get('button') != 4:
            return
        self._clear_selection('right_click')

    def on_level_started(self, sender, **kwargs):
        self._clear_selection('level_started')

    def _clear_selection(self, reason: str):
        prev = self.selected
        if prev is None:
            return
        self.selected = None
        self.event_bus.emit(EVENT_TILE_DESELECTED, reason=reason, prev_row=prev[0], prev_col=prev[1])
